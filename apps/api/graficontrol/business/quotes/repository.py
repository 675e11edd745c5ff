from __future__ import annotations

from graficontrol.platform.security.repository import BaseRepository


class QuoteRepository(BaseRepository):
    resource = "quotes.quote"
