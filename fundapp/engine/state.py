# fundapp/engine/state.py
"""
Target state machine.

Stored states:

    PENDING -> IN_PROGRESS -> COMPLETED
    PENDING / IN_PROGRESS -> CANCELLED   (explicit action only)

COMPLETED is sticky: once reached, a later recompute that lowers the
total never moves the target back. OVERDUE is never stored by the engine;
it is derived for display from the end date.
"""

from datetime import date
from decimal import Decimal

PENDING = "PENDING"
IN_PROGRESS = "IN_PROGRESS"
COMPLETED = "COMPLETED"
OVERDUE = "OVERDUE"
CANCELLED = "CANCELLED"

STATUS_CHOICES = [
    (PENDING, "Pending"),
    (IN_PROGRESS, "In Progress"),
    (COMPLETED, "Completed"),
    (OVERDUE, "Overdue"),
    (CANCELLED, "Cancelled"),
]

ACTIVE_STATUSES = (PENDING, IN_PROGRESS)
TERMINAL_STATUSES = (COMPLETED, CANCELLED)

ZERO = Decimal("0")
HUNDRED = Decimal("100")


def next_status(current, total_collection, target_value):
    """
    Status after a collection or team recompute.
    Terminal states are returned unchanged.
    """
    if current in TERMINAL_STATUSES:
        return current
    if target_value > ZERO and total_collection >= target_value:
        return COMPLETED
    if total_collection > ZERO and current in (PENDING, OVERDUE):
        return IN_PROGRESS
    return current


def can_cancel(current):
    return current not in TERMINAL_STATUSES


def progress_percentage(total_collection, target_value):
    """total / value * 100 clamped to [0, 100]; a zero target gives 0."""
    if not target_value or target_value <= ZERO:
        return ZERO
    pct = Decimal(total_collection) / Decimal(target_value) * HUNDRED
    return max(ZERO, min(HUNDRED, pct)).quantize(Decimal("0.01"))


def is_overdue(end_date, status, today=None):
    today = today or date.today()
    return today > end_date and status not in TERMINAL_STATUSES


def display_status(status, end_date, today=None):
    if is_overdue(end_date, status, today=today):
        return OVERDUE
    return status
