from __future__ import annotations

from graficontrol.platform.security.repository import BaseRepository


class FinancialTransactionRepository(BaseRepository):
    resource = "financial.transaction"
