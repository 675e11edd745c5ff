from __future__ import annotations

from graficontrol.business.orders.models import OrderStatus


ORDER_TRANSITIONS: dict[OrderStatus, frozenset[OrderStatus]] = {
    OrderStatus.IN_PROGRESS: frozenset({OrderStatus.READY, OrderStatus.CANCELLED}),
    OrderStatus.READY: frozenset({OrderStatus.DELIVERED_PENDING_PAYMENT, OrderStatus.COMPLETED}),
    OrderStatus.DELIVERED_PENDING_PAYMENT: frozenset({OrderStatus.COMPLETED}),
    OrderStatus.COMPLETED: frozenset(),
    OrderStatus.CANCELLED: frozenset(),
}

INITIAL_STATUSES = frozenset({OrderStatus.IN_PROGRESS, OrderStatus.READY})


def is_terminal(status: OrderStatus) -> bool:
    return not ORDER_TRANSITIONS[status]


def can_transition(current: OrderStatus, target: OrderStatus) -> bool:
    return target in ORDER_TRANSITIONS[current]
