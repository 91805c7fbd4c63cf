"""Order status state machine.

    PENDING -> PROCESSING -> COMPLETED
       |            |
       +------------+-----> CANCELLED

COMPLETED and CANCELLED are terminal. Transitions are admin-triggered only.
"""
from typing import Dict, FrozenSet

from exceptions import IllegalStateError
from models import OrderStatus

ALLOWED_TRANSITIONS: Dict[OrderStatus, FrozenSet[OrderStatus]] = {
    OrderStatus.PENDING: frozenset({OrderStatus.PROCESSING, OrderStatus.CANCELLED}),
    OrderStatus.PROCESSING: frozenset({OrderStatus.COMPLETED, OrderStatus.CANCELLED}),
    OrderStatus.COMPLETED: frozenset(),
    OrderStatus.CANCELLED: frozenset(),
}


def is_terminal(status: OrderStatus) -> bool:
    return not ALLOWED_TRANSITIONS[status]


def can_transition(current: OrderStatus, target: OrderStatus) -> bool:
    return target in ALLOWED_TRANSITIONS[current]


def check_transition(current: OrderStatus, target: OrderStatus) -> None:
    """
    Validate a status change.

    Raises:
        IllegalStateError: If the transition is not allowed
    """
    if is_terminal(current):
        raise IllegalStateError(
            f"Order is {current.value} and can no longer change status"
        )
    if not can_transition(current, target):
        raise IllegalStateError(
            f"Cannot change order status from {current.value} to {target.value}"
        )
