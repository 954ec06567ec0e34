from datetime import date, datetime
from decimal import Decimal
from types import SimpleNamespace

import pytest

from occupancy.core.billing import (
    clamp_due_date,
    compute_next_due_date,
    next_due_date,
    payment_schedule,
    upcoming_billings,
)
from occupancy.core.errors import ValidationError


def unit_due_on(day):
    return SimpleNamespace(id=1, payment_due_day=day)


@pytest.mark.parametrize(
    "due_day, reference, expected",
    [
        (31, date(2024, 2, 15), date(2024, 2, 29)),  # leap year clamp
        (15, date(2024, 3, 20), date(2024, 4, 15)),  # already passed, next month
        (1, date(2024, 3, 1), date(2024, 3, 1)),  # due today is not passed
        (31, date(2023, 2, 10), date(2023, 2, 28)),
        (30, date(2024, 4, 30), date(2024, 4, 30)),
        (31, date(2024, 4, 30), date(2024, 4, 30)),
        (10, date(2024, 12, 11), date(2025, 1, 10)),  # year rollover
        (31, date(2024, 3, 31), date(2024, 3, 31)),
        (29, date(2023, 2, 28), date(2023, 2, 28)),
    ],
)
def test_compute_next_due_date(due_day, reference, expected):
    assert compute_next_due_date(unit_due_on(due_day), reference) == expected


def test_rolling_into_a_short_month_clamps():
    # Day 29 already passed in January; February 2023 only has 28 days
    assert next_due_date(29, date(2023, 1, 30)) == date(2023, 2, 28)
    assert next_due_date(31, date(2024, 1, 31)) == date(2024, 1, 31)


def test_accepts_datetime_reference():
    assert next_due_date(5, datetime(2024, 6, 5, 23, 59)) == date(2024, 6, 5)


def test_unit_without_due_day_is_rejected():
    with pytest.raises(ValidationError) as exc:
        compute_next_due_date(unit_due_on(None), date(2024, 1, 1))
    assert exc.value.field == "payment_due_day"


@pytest.mark.parametrize("day", [0, 32, -1])
def test_out_of_range_due_day_is_rejected(day):
    with pytest.raises(ValidationError):
        next_due_date(day, date(2024, 1, 1))


def test_clamp_due_date():
    assert clamp_due_date(2024, 2, 30) == date(2024, 2, 29)
    assert clamp_due_date(2024, 6, 31) == date(2024, 6, 30)
    assert clamp_due_date(2024, 7, 31) == date(2024, 7, 31)


def test_payment_schedule_clamps_each_month():
    schedule = payment_schedule(date(2024, 1, 1), date(2024, 5, 31), 31)
    assert schedule == [
        date(2024, 1, 31),
        date(2024, 2, 29),
        date(2024, 3, 31),
        date(2024, 4, 30),
        date(2024, 5, 31),
    ]


def test_payment_schedule_starts_next_month_when_first_due_day_passed():
    schedule = payment_schedule(date(2024, 1, 20), date(2024, 3, 10), 10)
    assert schedule == [date(2024, 2, 10), date(2024, 3, 10)]


def test_payment_schedule_empty_when_end_before_start():
    assert payment_schedule(date(2024, 3, 1), date(2024, 2, 1), 5) == []


def test_upcoming_billings(db, make_unit):
    soon = make_unit(auto_billing_enabled=True, monthly_amount=Decimal("800.00"), payment_due_day=20)
    later = make_unit(auto_billing_enabled=True, monthly_amount=Decimal("900.00"), payment_due_day=5)
    make_unit(auto_billing_enabled=False, monthly_amount=Decimal("700.00"), payment_due_day=12)
    make_unit(auto_billing_enabled=True, monthly_amount=Decimal("0"), payment_due_day=12)

    billings = upcoming_billings(db, date(2024, 3, 15), window_days=30, lead_days=10)

    assert [b.unit_id for b in billings] == [soon.id, later.id]
    first, second = billings
    assert first.next_billing_date == date(2024, 3, 20)
    assert first.days_until_billing == 5
    assert first.auto_create_date == date(2024, 3, 10)
    assert second.next_billing_date == date(2024, 4, 5)
    assert second.days_until_billing == 21


def test_upcoming_billings_respects_window(db, make_unit):
    make_unit(auto_billing_enabled=True, monthly_amount=Decimal("800.00"), payment_due_day=14)
    assert upcoming_billings(db, date(2024, 3, 15), window_days=7) == []
