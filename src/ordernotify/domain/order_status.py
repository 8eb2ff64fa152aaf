"""Order status state machine.

pending -> confirmed -> preparing -> ready -> completed, one step at a time.
Any non-terminal state may move to cancelled. completed and cancelled are
terminal.
"""

from __future__ import annotations

from enum import Enum


class OrderStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    PREPARING = "preparing"
    READY = "ready"
    COMPLETED = "completed"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES


class NotificationKind(str, Enum):
    """Which message variant a notification uses."""

    CONFIRMATION = "confirmation"
    STATUS_UPDATE = "status_update"
    BUSINESS_ALERT = "business_alert"


class InvalidTransition(Exception):
    """Raised when a status change is not allowed from the current status."""

    def __init__(self, current: OrderStatus | str, target: OrderStatus, reason: str) -> None:
        self.current = current
        self.target = target
        self.reason = reason
        current_name = current.value if isinstance(current, OrderStatus) else current
        super().__init__(f"cannot move order from {current_name} to {target.value}: {reason}")


TERMINAL_STATUSES = frozenset({OrderStatus.COMPLETED, OrderStatus.CANCELLED})

_FORWARD: dict[OrderStatus, OrderStatus] = {
    OrderStatus.PENDING: OrderStatus.CONFIRMED,
    OrderStatus.CONFIRMED: OrderStatus.PREPARING,
    OrderStatus.PREPARING: OrderStatus.READY,
    OrderStatus.READY: OrderStatus.COMPLETED,
}

ALLOWED_TRANSITIONS: dict[OrderStatus, frozenset[OrderStatus]] = {
    status: frozenset(
        {_FORWARD[status], OrderStatus.CANCELLED} if status in _FORWARD else set()
    )
    for status in OrderStatus
}

# Values written by older storefront builds.
_LEGACY_ALIASES: dict[str, OrderStatus] = {
    "paid": OrderStatus.CONFIRMED,
    "delivered": OrderStatus.COMPLETED,
    "canceled": OrderStatus.CANCELLED,
}


def parse_status(value: str | OrderStatus | None) -> OrderStatus | None:
    """Map a stored status string to OrderStatus.

    Returns None for values that are neither a known status nor a legacy
    alias.
    """
    if value is None:
        return None
    if isinstance(value, OrderStatus):
        return value
    key = str(value).strip().lower()
    try:
        return OrderStatus(key)
    except ValueError:
        return _LEGACY_ALIASES.get(key)


def can_transition(current: OrderStatus, target: OrderStatus) -> bool:
    return target in ALLOWED_TRANSITIONS[current]


def validate_transition(current: OrderStatus, target: OrderStatus) -> None:
    """Check a requested status change.

    Raises:
        InvalidTransition: If ``current`` is terminal or ``target`` is not
            the next forward step or ``cancelled``.
    """
    if current.is_terminal:
        raise InvalidTransition(current, target, "order is already in a terminal state")
    if not can_transition(current, target):
        raise InvalidTransition(current, target, "transition not allowed")


def notification_kind_for(target: OrderStatus) -> NotificationKind:
    """Customer-facing variant for entering ``target``."""
    if target is OrderStatus.CONFIRMED:
        return NotificationKind.CONFIRMATION
    return NotificationKind.STATUS_UPDATE
