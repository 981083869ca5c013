"""Subscription billing rules: cycle arithmetic, pricing and status transitions."""
import calendar
import math
from datetime import datetime, timedelta
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional, Protocol

from core.exceptions import BusinessRuleError
from infrastructure.database.models.billing import BillingCycle, SubscriptionStatus

PAISE = Decimal("0.01")

CYCLE_MONTHS = {
    BillingCycle.MONTHLY: 1,
    BillingCycle.QUARTERLY: 3,
    BillingCycle.YEARLY: 12,
}

_S = SubscriptionStatus

ALLOWED_TRANSITIONS: dict[SubscriptionStatus, frozenset[SubscriptionStatus]] = {
    _S.TRIAL: frozenset({_S.ACTIVE, _S.GRACE_PERIOD, _S.CANCELLED}),
    _S.ACTIVE: frozenset({_S.ACTIVE, _S.GRACE_PERIOD, _S.CANCELLED}),
    _S.GRACE_PERIOD: frozenset({_S.ACTIVE, _S.EXPIRED, _S.CANCELLED}),
    _S.EXPIRED: frozenset({_S.ACTIVE}),
    _S.CANCELLED: frozenset(),
}


class PlanPricing(Protocol):
    price_monthly: float
    price_quarterly: Optional[float]
    price_yearly: float


def add_months(value: datetime, months: int) -> datetime:
    """Shift ``value`` by whole calendar months, clamping the day to the month end."""
    month_index = value.month - 1 + months
    year = value.year + month_index // 12
    month = month_index % 12 + 1
    day = min(value.day, calendar.monthrange(year, month)[1])
    return value.replace(year=year, month=month, day=day)


def add_billing_cycle(start: datetime, cycle: BillingCycle | str) -> datetime:
    """End of one billing period starting at ``start``.

    >>> add_billing_cycle(datetime(2024, 1, 31), "MONTHLY")
    datetime.datetime(2024, 2, 29, 0, 0)
    """
    return add_months(start, CYCLE_MONTHS[BillingCycle(cycle)])


def calculate_amount(plan: PlanPricing, cycle: BillingCycle | str) -> float:
    """Price of one billing period of ``plan``.

    Plans without a quarterly price are billed three monthly periods.
    """
    cycle = BillingCycle(cycle)
    if cycle == BillingCycle.MONTHLY:
        return float(plan.price_monthly)
    if cycle == BillingCycle.QUARTERLY:
        if plan.price_quarterly:
            return float(plan.price_quarterly)
        return float(plan.price_monthly) * 3
    return float(plan.price_yearly)


def calculate_trial_end(start: datetime, trial_days: int) -> datetime:
    return start + timedelta(days=trial_days)


def can_transition(current: SubscriptionStatus | str, target: SubscriptionStatus | str) -> bool:
    return SubscriptionStatus(target) in ALLOWED_TRANSITIONS[SubscriptionStatus(current)]


def ensure_transition(current: SubscriptionStatus | str, target: SubscriptionStatus | str) -> None:
    """Raise BusinessRuleError unless ``current`` may move to ``target``."""
    if not can_transition(current, target):
        raise BusinessRuleError(
            f"Cannot change subscription status from {SubscriptionStatus(current).value} "
            f"to {SubscriptionStatus(target).value}"
        )


def days_remaining(end: datetime, now: datetime) -> int:
    """Whole days left until ``end``, rounded up and never negative."""
    seconds = (end - now).total_seconds()
    return max(0, math.ceil(seconds / 86400))


def calculate_tax(subtotal: float, tax_rate: float) -> tuple[float, float]:
    """Return (tax_amount, total) rounded to paise.

    The total is always exactly subtotal + tax_amount.
    """
    base = Decimal(str(subtotal))
    tax_amount = (base * Decimal(str(tax_rate)) / 100).quantize(PAISE, rounding=ROUND_HALF_UP)
    return float(tax_amount), float(base + tax_amount)
