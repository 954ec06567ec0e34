"""
Due-date arithmetic for unit billing.

A unit with ``payment_due_day = D`` is due on day D of every month, clamped to
the month's last day when the month is shorter (D=31 in April -> April 30,
D=30 in February -> Feb 28/29).
"""
from calendar import monthrange
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import List, Optional

from sqlalchemy.orm import Session

from occupancy.core.config import settings
from occupancy.core.errors import ValidationError
from occupancy.core.validators import validate_payment_due_day
from occupancy.repositories.units import UnitRepository


def _as_date(value) -> date:
    return value.date() if isinstance(value, datetime) else value


def clamp_due_date(year: int, month: int, due_day: int) -> date:
    _, last_day = monthrange(year, month)
    return date(year, month, min(due_day, last_day))


def _next_month(year: int, month: int):
    if month == 12:
        return year + 1, 1
    return year, month + 1


def next_due_date(due_day: int, reference_date) -> date:
    """
    Nearest due date on or after ``reference_date``.

    Stays in the reference month unless that month's (clamped) due day has
    already passed; a due date equal to the reference date counts as not passed.
    """
    validate_payment_due_day(due_day)
    ref = _as_date(reference_date)
    candidate = clamp_due_date(ref.year, ref.month, due_day)
    if candidate >= ref:
        return candidate
    year, month = _next_month(ref.year, ref.month)
    return clamp_due_date(year, month, due_day)


def compute_next_due_date(unit, reference_date) -> date:
    """Next due date for a unit's configured ``payment_due_day``."""
    if unit.payment_due_day is None:
        raise ValidationError(
            "unit has no payment_due_day configured",
            field="payment_due_day",
            unit_id=getattr(unit, "id", None),
        )
    return next_due_date(unit.payment_due_day, reference_date)


def payment_schedule(start, end, due_day: int) -> List[date]:
    """All due dates between ``start`` and ``end``, both inclusive."""
    start, end = _as_date(start), _as_date(end)
    if end < start:
        return []
    dates = []
    current = next_due_date(due_day, start)
    while current <= end:
        dates.append(current)
        year, month = _next_month(current.year, current.month)
        current = clamp_due_date(year, month, due_day)
    return dates


@dataclass(frozen=True)
class UpcomingBilling:
    unit_id: int
    unit_number: str
    unit_block: Optional[str]
    condominium_id: int
    monthly_amount: Decimal
    payment_due_day: int
    next_billing_date: date
    days_until_billing: int
    # Date on which the external ledger should generate the charge
    auto_create_date: date


def upcoming_billings(
    db: Session,
    reference_date,
    window_days: Optional[int] = None,
    lead_days: Optional[int] = None,
) -> List[UpcomingBilling]:
    """
    Units with auto billing enabled whose next due date falls within the window.

    Read-only: posting the charge to the ledger is someone else's job.
    """
    window_days = settings.BILLING_WINDOW_DAYS if window_days is None else window_days
    lead_days = settings.BILLING_LEAD_DAYS if lead_days is None else lead_days
    ref = _as_date(reference_date)

    units = UnitRepository(db).list_units_with_auto_billing()

    result: List[UpcomingBilling] = []
    for unit in units:
        due = next_due_date(unit.payment_due_day, ref)
        days_until = (due - ref).days
        if days_until > window_days:
            continue
        result.append(
            UpcomingBilling(
                unit_id=unit.id,
                unit_number=unit.number,
                unit_block=unit.block,
                condominium_id=unit.condominium_id,
                monthly_amount=unit.monthly_amount,
                payment_due_day=unit.payment_due_day,
                next_billing_date=due,
                days_until_billing=days_until,
                auto_create_date=due - timedelta(days=lead_days),
            )
        )
    result.sort(key=lambda b: (b.next_billing_date, b.unit_id))
    return result
