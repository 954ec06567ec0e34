"""
Validation rules applied before any write.

These are plain functions so the coordinator can run them against the merged
(current + requested) state of a row. Every failure raises
``occupancy.core.errors.ValidationError``.
"""
import re
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Mapping, Optional

from occupancy.core.errors import ValidationError
from occupancy.models.enums import UnitStatus

_NON_DIGITS = re.compile(r"\D")

# Every ordered pair of distinct statuses is an allowed transition
ALLOWED_STATUS_TRANSITIONS = frozenset(
    (old, new) for old in UnitStatus for new in UnitStatus if old is not new
)


def normalize_cpf(value: Optional[str]) -> Optional[str]:
    """Strip punctuation: "123.456.789-09" -> "12345678909"."""
    if value is None:
        return None
    return _NON_DIGITS.sub("", str(value))


def validate_cpf_format(cpf: Optional[str], field: str = "cpf") -> str:
    """Resident CPFs must be exactly 11 digits once punctuation is removed."""
    digits = normalize_cpf(cpf)
    if not digits:
        raise ValidationError(f"{field} is required", field=field)
    if len(digits) != 11:
        raise ValidationError(f"{field} must have 11 digits", field=field, length=len(digits))
    return digits


def is_valid_cpf(cpf: Optional[str]) -> bool:
    """Full CPF check: 11 digits, not all equal, both check digits match."""
    digits = normalize_cpf(cpf)
    if not digits or len(digits) != 11:
        return False
    if digits == digits[0] * 11:
        return False

    for position in (9, 10):
        total = sum(int(digits[i]) * (position + 1 - i) for i in range(position))
        remainder = total % 11
        check = 0 if remainder < 2 else 11 - remainder
        if int(digits[position]) != check:
            return False
    return True


def validate_optional_cpf(cpf: Optional[str], field: str) -> Optional[str]:
    """Owner and guarantor CPFs are optional but, when given, must pass the check digits."""
    if cpf is None or cpf == "":
        return None
    digits = normalize_cpf(cpf)
    if not is_valid_cpf(digits):
        raise ValidationError(f"{field} is not a valid CPF", field=field)
    return digits


def validate_payment_due_day(day: Any) -> Optional[int]:
    if day is None:
        return None
    if isinstance(day, bool) or not isinstance(day, int):
        raise ValidationError("payment_due_day must be an integer", field="payment_due_day", value=day)
    if not 1 <= day <= 31:
        raise ValidationError("payment_due_day must be between 1 and 31", field="payment_due_day", value=day)
    return day


def as_decimal(value: Any, field: str) -> Optional[Decimal]:
    """Amounts go through str() so 99.9 becomes Decimal("99.9"), not its binary expansion."""
    if value is None:
        return None
    if isinstance(value, Decimal):
        return value
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise ValidationError(f"{field} must be a number", field=field, value=value)


def validate_billing(
    monthly_amount: Any, payment_due_day: Any, auto_billing_enabled: bool
) -> None:
    """Auto billing needs both an amount and a due day; amounts cannot be negative."""
    validate_payment_due_day(payment_due_day)
    amount = as_decimal(monthly_amount, "monthly_amount")
    if amount is not None and amount < 0:
        raise ValidationError("monthly_amount cannot be negative", field="monthly_amount")
    if auto_billing_enabled:
        if amount is None:
            raise ValidationError(
                "monthly_amount is required when auto_billing_enabled is true", field="monthly_amount"
            )
        if payment_due_day is None:
            raise ValidationError(
                "payment_due_day is required when auto_billing_enabled is true", field="payment_due_day"
            )


def _as_date(value: Any) -> Optional[date]:
    if isinstance(value, datetime):
        return value.date()
    return value


def validate_contract(state: Mapping[str, Any]) -> None:
    """Contract terms on the merged unit state."""
    start = _as_date(state.get("contract_start_date"))
    end = _as_date(state.get("contract_end_date"))
    if start is not None and end is not None and end <= start:
        raise ValidationError(
            "contract_end_date must be after contract_start_date", field="contract_end_date"
        )

    deposit = as_decimal(state.get("deposit_amount"), "deposit_amount")
    if deposit is not None and deposit < 0:
        raise ValidationError("deposit_amount cannot be negative", field="deposit_amount")

    # Deposit is capped at three months of rent
    rent = as_decimal(state.get("monthly_amount"), "monthly_amount")
    if deposit and rent and deposit > rent * 3:
        raise ValidationError(
            "deposit_amount cannot exceed three times monthly_amount",
            field="deposit_amount",
            limit=str(rent * 3),
        )

    parking = state.get("parking_spots")
    if parking is not None and parking < 0:
        raise ValidationError("parking_spots cannot be negative", field="parking_spots")


def validate_unit_state(state: Mapping[str, Any]) -> Dict[str, Optional[str]]:
    """
    Every unit-level rule, run against current values overlaid with the requested change.

    Returns the owner and guarantor CPFs reduced to digits, which is how they are stored.
    """
    validate_billing(
        state.get("monthly_amount"),
        state.get("payment_due_day"),
        bool(state.get("auto_billing_enabled")),
    )
    validate_contract(state)
    condominium_fee = as_decimal(state.get("condominium_fee"), "condominium_fee")
    if condominium_fee is not None and condominium_fee < 0:
        raise ValidationError("condominium_fee cannot be negative", field="condominium_fee")
    return {
        field: validate_optional_cpf(state.get(field), field)
        for field in ("owner_cpf", "guarantor_cpf")
    }


def validate_status_transition(old: UnitStatus, new: UnitStatus) -> UnitStatus:
    try:
        new = UnitStatus(new)
    except ValueError:
        raise ValidationError("unknown unit status", field="status", value=new)
    if (UnitStatus(old), new) not in ALLOWED_STATUS_TRANSITIONS:
        raise ValidationError(
            f"unit is already {new.value}", field="status", old_status=UnitStatus(old).value
        )
    return new


def validate_resident_data(data: Mapping[str, Any]) -> None:
    """Required fields of a new resident."""
    if not (data.get("name") or "").strip():
        raise ValidationError("name is required", field="name")
    validate_cpf_format(data.get("cpf"))
    move_in = data.get("move_in_date")
    move_out = data.get("move_out_date")
    if move_in is not None and move_out is not None and move_out < move_in:
        raise ValidationError("move_out_date cannot be before move_in_date", field="move_out_date")
