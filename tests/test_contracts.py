from datetime import date
from decimal import Decimal
from types import SimpleNamespace

import pytest

from occupancy.core.contracts import (
    contract_attention,
    contract_end_date,
    days_until_expiry,
    is_contract_expired,
    is_contract_near_expiry,
    rent_adjustment,
    total_contract_value,
)

TODAY = date(2024, 6, 1)


def test_expiry():
    assert is_contract_expired(date(2024, 5, 31), TODAY)
    assert not is_contract_expired(date(2024, 6, 1), TODAY)
    assert not is_contract_expired(None, TODAY)


def test_days_until_expiry():
    assert days_until_expiry(date(2024, 6, 11), TODAY) == 10
    assert days_until_expiry(None, TODAY) is None


def test_near_expiry():
    assert is_contract_near_expiry(date(2024, 6, 20), TODAY)
    assert not is_contract_near_expiry(date(2024, 6, 1), TODAY)
    assert not is_contract_near_expiry(date(2024, 8, 1), TODAY)
    assert is_contract_near_expiry(date(2024, 7, 21), TODAY, warning_days=60)


def test_total_contract_value():
    assert total_contract_value(Decimal("1500.00"), Decimal("450.00"), 12) == Decimal("23400.00")
    assert total_contract_value(None, None) == Decimal("0")


def test_contract_attention_levels():
    def unit(end):
        return SimpleNamespace(contract_end_date=end)

    expired = contract_attention(unit(date(2024, 5, 1)), TODAY)
    assert (expired.needs_attention, expired.priority) == (True, "high")

    soon = contract_attention(unit(date(2024, 6, 16)), TODAY)
    assert soon.priority == "medium"
    assert soon.reason == "expires in 15 days"

    later = contract_attention(unit(date(2024, 7, 16)), TODAY)
    assert later.priority == "low"

    fine = contract_attention(unit(date(2025, 1, 1)), TODAY)
    assert fine.needs_attention is False
    assert contract_attention(unit(None), TODAY).needs_attention is False


@pytest.mark.parametrize(
    "start, months, expected",
    [
        (date(2024, 3, 15), 12, date(2025, 3, 15)),
        (date(2024, 1, 31), 1, date(2024, 2, 29)),
        (date(2024, 11, 30), 3, date(2025, 2, 28)),
        (date(2024, 6, 1), 30, date(2026, 12, 1)),
    ],
)
def test_contract_end_date(start, months, expected):
    assert contract_end_date(start, months) == expected


def test_contract_end_date_defaults_to_one_year():
    assert contract_end_date(date(2024, 2, 29)) == date(2025, 2, 28)


def test_rent_adjustment():
    assert rent_adjustment(Decimal("1500.00"), Decimal("4.5")) == Decimal("1567.50")
    assert rent_adjustment(1000, 3.33) == Decimal("1033.30")
    assert rent_adjustment(Decimal("1200.00"), Decimal("-2")) == Decimal("1176.00")


def test_rent_adjustment_without_rent_or_index():
    assert rent_adjustment(None, Decimal("5")) is None
    assert rent_adjustment(Decimal("800.00"), 0) == Decimal("800.00")
