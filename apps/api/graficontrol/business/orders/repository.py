from __future__ import annotations

from graficontrol.platform.security.repository import BaseRepository


class OrderRepository(BaseRepository):
    resource = "orders.order"
