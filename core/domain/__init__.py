# Pure billing rules with no I/O
from .subscription import (
    ALLOWED_TRANSITIONS,
    add_billing_cycle,
    add_months,
    calculate_amount,
    calculate_tax,
    calculate_trial_end,
    can_transition,
    days_remaining,
    ensure_transition,
)

__all__ = [
    "ALLOWED_TRANSITIONS",
    "add_billing_cycle",
    "add_months",
    "calculate_amount",
    "calculate_tax",
    "calculate_trial_end",
    "can_transition",
    "days_remaining",
    "ensure_transition",
]
