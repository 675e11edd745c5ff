from graficontrol.business.orders.api import router
from graficontrol.business.orders.models import Order, OrderStatus
from graficontrol.business.orders.service import OrderService, order_service
from graficontrol.business.orders.state_machine import ORDER_TRANSITIONS, can_transition

__all__ = [
    "router",
    "Order",
    "OrderStatus",
    "OrderService",
    "order_service",
    "ORDER_TRANSITIONS",
    "can_transition",
]
