"""Contract term helpers. Every function takes an explicit ``today`` so results are reproducible."""
from dataclasses import dataclass
from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional

from occupancy.core.billing import clamp_due_date

CENTS = Decimal("0.01")


def _as_date(value) -> Optional[date]:
    if value is None:
        return None
    return value.date() if isinstance(value, datetime) else value


def contract_end_date(start_date, duration_months: int = 12) -> date:
    """
    Same day ``duration_months`` later, clamped to the last day of a shorter month
    (2024-01-31 + 1 month -> 2024-02-29).
    """
    start = _as_date(start_date)
    months = start.month - 1 + duration_months
    return clamp_due_date(start.year + months // 12, months % 12 + 1, start.day)


def is_contract_expired(end_date, today: date) -> bool:
    end = _as_date(end_date)
    if end is None:
        return False
    return today > end


def days_until_expiry(end_date, today: date) -> Optional[int]:
    end = _as_date(end_date)
    if end is None:
        return None
    return (end - today).days


def is_contract_near_expiry(end_date, today: date, warning_days: int = 30) -> bool:
    days_left = days_until_expiry(end_date, today)
    return days_left is not None and 0 < days_left <= warning_days


def total_contract_value(monthly_amount, condominium_fee, duration_months: int = 12) -> Decimal:
    monthly = Decimal(str(monthly_amount or 0)) + Decimal(str(condominium_fee or 0))
    return monthly * duration_months


def rent_adjustment(current_rent, index_percentage) -> Optional[Decimal]:
    """Rent after an annual index (IGP-M, IPCA...) of ``index_percentage`` percent, in cents."""
    if not current_rent or not index_percentage:
        return current_rent
    rent = Decimal(str(current_rent))
    factor = 1 + Decimal(str(index_percentage)) / 100
    return (rent * factor).quantize(CENTS, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class ContractAttention:
    needs_attention: bool
    reason: Optional[str] = None
    priority: Optional[str] = None  # high / medium / low


def contract_attention(unit, today: date) -> ContractAttention:
    end = unit.contract_end_date
    if is_contract_expired(end, today):
        return ContractAttention(True, "contract expired", "high")

    days_left = days_until_expiry(end, today)
    if is_contract_near_expiry(end, today, 30):
        return ContractAttention(True, f"expires in {days_left} days", "medium")
    if is_contract_near_expiry(end, today, 60):
        return ContractAttention(True, f"expires in {days_left} days", "low")
    return ContractAttention(False)
