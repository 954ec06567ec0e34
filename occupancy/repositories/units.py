"""
Unit Record Store.

Reads and writes unit rows inside the caller's transaction. Mutations return
the full before-image so the coordinator can hand it to the history recorder;
the store itself never writes history and never commits.
"""
from typing import Any, Dict, List, Mapping, Tuple

from sqlalchemy.orm import Session

from occupancy.core.errors import NotFoundError, ValidationError
from occupancy.core.snapshots import Snapshot, snapshot
from occupancy.core.validators import as_decimal, validate_status_transition, validate_unit_state
from occupancy.models.enums import UnitStatus
from occupancy.models.unit import Unit

# Columns update_unit may touch; status has its own path
UPDATABLE_FIELDS = frozenset(
    {
        "number", "block", "floor", "type", "bedrooms", "bathrooms", "area",
        "condominium_fee", "owner_name", "owner_email", "owner_phone", "owner_cpf",
        "notes", "resident_user_id", "monthly_amount", "payment_due_day",
        "auto_billing_enabled", "contract_start_date", "contract_end_date",
        "contract_type", "deposit_amount", "guarantor_name", "guarantor_cpf",
        "guarantor_phone", "auto_renewal", "parking_spots", "furnished",
        "pet_allowed", "balcony", "last_renovation_date",
    }
)

# Numeric columns; inputs are coerced to Decimal so equal amounts compare equal
AMOUNT_FIELDS = frozenset({"area", "condominium_fee", "monthly_amount", "deposit_amount"})


class UnitRepository:
    def __init__(self, db: Session):
        self.db = db

    def get_unit(self, unit_id: int) -> Unit:
        unit = self.db.get(Unit, unit_id)
        if unit is None:
            raise NotFoundError("unit", unit_id, unit_id=unit_id)
        return unit

    def lock_unit(self, unit_id: int) -> Unit:
        """
        Load the unit with a row lock held until the transaction ends.

        This is what serializes compound operations on the same unit; other
        units are unaffected. populate_existing refreshes a row already in the
        identity map with the locked read.
        """
        unit = (
            self.db.query(Unit)
            .filter(Unit.id == unit_id)
            .populate_existing()
            .with_for_update()
            .one_or_none()
        )
        if unit is None:
            raise NotFoundError("unit", unit_id, unit_id=unit_id)
        return unit

    def update_unit(self, unit_id: int, fields: Mapping[str, Any]) -> Tuple[Unit, Snapshot]:
        unknown = set(fields) - UPDATABLE_FIELDS
        if "status" in unknown:
            raise ValidationError("status must be changed through set_status", field="status", unit_id=unit_id)
        if unknown:
            raise ValidationError(
                f"unknown unit fields: {', '.join(sorted(unknown))}", unit_id=unit_id
            )

        unit = self.get_unit(unit_id)
        before = snapshot(unit)

        fields = dict(fields)
        for key in AMOUNT_FIELDS & set(fields):
            fields[key] = as_decimal(fields[key], key)

        # Validate the state the row would end up in, before touching it
        merged: Dict[str, Any] = dict(before)
        merged.update(fields)
        cpfs = validate_unit_state(merged)
        for key, digits in cpfs.items():
            if key in fields:
                fields[key] = digits

        for key, value in fields.items():
            setattr(unit, key, value)
        self.db.flush()
        return unit, before

    def set_status(self, unit_id: int, new_status: UnitStatus) -> Tuple[Unit, Snapshot]:
        unit = self.get_unit(unit_id)
        new_status = validate_status_transition(unit.status, new_status)
        before = snapshot(unit)
        unit.status = new_status
        self.db.flush()
        return unit, before

    def list_units(self, condominium_id: int, status: UnitStatus = None) -> List[Unit]:
        q = self.db.query(Unit).filter(Unit.condominium_id == condominium_id)
        if status is not None:
            q = q.filter(Unit.status == UnitStatus(status))
        return q.order_by(Unit.block, Unit.number).all()

    def list_units_with_auto_billing(self) -> List[Unit]:
        """Units that get a charge generated every month: flag on, positive amount, due day set."""
        return (
            self.db.query(Unit)
            .filter(Unit.auto_billing_enabled.is_(True))
            .filter(Unit.monthly_amount > 0)
            .filter(Unit.payment_due_day.isnot(None))
            .order_by(Unit.payment_due_day, Unit.id)
            .all()
        )
