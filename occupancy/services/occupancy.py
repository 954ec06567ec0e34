"""
Occupancy Coordinator.

The only component that changes units and residents. Each public operation:

1. locks the target unit row (serializing work on the same unit),
2. validates and applies the change through the record stores,
3. writes one history entry, or two when a status change is chained,
4. commits, or rolls everything back, history included, on any failure.
"""
import logging
from contextlib import contextmanager
from datetime import date
from typing import Any, Dict, Iterator, List, Mapping, Optional, Union

from pydantic import BaseModel
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from occupancy.core import billing
from occupancy.core.errors import OccupancyError, PersistenceError, ValidationError
from occupancy.core.history import HistoryRecorder, describe_action
from occupancy.core.snapshots import snapshot
from occupancy.models.enums import (
    MAINTENANCE_ACTIONS,
    HistoryActionType,
    ResidentRelationship,
    UnitStatus,
)
from occupancy.models.resident import Resident
from occupancy.models.unit import Unit
from occupancy.models.unit_history import UnitHistoryEntry
from occupancy.repositories.residents import ResidentRepository
from occupancy.repositories.units import UnitRepository
from occupancy.schemas.unit import OWNER_FIELDS

logger = logging.getLogger(__name__)

A = HistoryActionType

BILLING_FIELDS = ("monthly_amount", "payment_due_day", "auto_billing_enabled")


def _as_fields(payload: Union[BaseModel, Mapping[str, Any], None], partial: bool) -> Dict[str, Any]:
    """Schema or mapping -> plain dict. Partial payloads keep only the fields the caller set."""
    if payload is None:
        return {}
    if isinstance(payload, BaseModel):
        return payload.model_dump(exclude_unset=partial)
    return dict(payload)


class OccupancyCoordinator:
    def __init__(self, db: Session):
        self.db = db
        self.units = UnitRepository(db)
        self.residents = ResidentRepository(db)
        self.history = HistoryRecorder(db)

    @contextmanager
    def _transaction(self, operation: str, **context: Any) -> Iterator[None]:
        try:
            yield
            self.db.commit()
        except OccupancyError as exc:
            self.db.rollback()
            logger.warning("%s rejected: %s", operation, exc)
            raise
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.exception("%s failed", operation)
            raise PersistenceError(f"{operation} failed", **context) from exc
        except Exception:
            self.db.rollback()
            raise

    def _change_status(
        self,
        unit: Unit,
        new_status: UnitStatus,
        acting_user_id: Optional[int],
        resident_id: Optional[int] = None,
        reason: Optional[str] = None,
    ) -> UnitHistoryEntry:
        unit, before = self.units.set_status(unit.id, new_status)
        old_status = UnitStatus(before["status"])
        return self.history.record(
            unit.id,
            resident_id,
            A.STATUS_CHANGED,
            describe_action(A.STATUS_CHANGED, old_status=old_status.value, new_status=unit.status.value),
            before,
            snapshot(unit),
            changed_by_user_id=acting_user_id,
            metadata={"reason": reason} if reason else None,
        )

    # -- residents -----------------------------------------------------------

    def move_in_resident(
        self,
        unit_id: int,
        resident_data: Union[BaseModel, Mapping[str, Any]],
        acting_user_id: Optional[int] = None,
    ) -> Resident:
        """
        Register a resident on a unit.

        Allowed whatever the unit status. A vacant unit becomes occupied and
        gets a chained status_changed entry after resident_added.
        """
        data = _as_fields(resident_data, partial=False)
        make_main = bool(data.pop("is_main_resident", False))

        with self._transaction("move_in_resident", unit_id=unit_id):
            unit = self.units.lock_unit(unit_id)
            resident = self.residents.add_resident(unit_id, data)
            if make_main:
                self.residents.set_main_resident(unit_id, resident.id)

            self.history.record(
                unit_id,
                resident.id,
                A.RESIDENT_ADDED,
                describe_action(A.RESIDENT_ADDED, resident=resident.name),
                None,
                snapshot(resident),
                changed_by_user_id=acting_user_id,
            )
            if unit.status == UnitStatus.VACANT:
                self._change_status(unit, UnitStatus.OCCUPIED, acting_user_id, resident.id, reason="move_in")

        logger.info("Resident %s moved into unit %s", resident.id, unit_id)
        return resident

    def move_out_resident(
        self,
        resident_id: int,
        move_out_date: Optional[date] = None,
        acting_user_id: Optional[int] = None,
    ) -> Resident:
        """
        Deactivate a resident. When nobody active is left the unit becomes vacant.

        The unit's resident_user_id link is left as is even when it points at
        the departing resident's account; clearing it is an explicit unit update.
        """
        move_out_date = move_out_date or date.today()

        with self._transaction("move_out_resident", resident_id=resident_id):
            unit_id = self.residents.get_resident(resident_id).unit_id
            unit = self.units.lock_unit(unit_id)
            resident, before = self.residents.deactivate_resident(resident_id, move_out_date)

            self.history.record(
                unit_id,
                resident.id,
                A.RESIDENT_REMOVED,
                describe_action(A.RESIDENT_REMOVED, resident=resident.name),
                before,
                snapshot(resident),
                changed_by_user_id=acting_user_id,
                metadata={"was_main_resident": bool(before["is_main_resident"])},
            )
            if self.residents.count_active(unit_id) == 0 and unit.status != UnitStatus.VACANT:
                self._change_status(unit, UnitStatus.VACANT, acting_user_id, resident.id, reason="move_out")

            if unit.resident_user_id is not None and unit.resident_user_id == resident.user_id:
                logger.info(
                    "Unit %s still linked to account %s of departed resident %s",
                    unit_id, unit.resident_user_id, resident.id,
                )

        logger.info("Resident %s moved out of unit %s", resident_id, unit_id)
        return resident

    def update_resident(
        self,
        resident_id: int,
        changes: Union[BaseModel, Mapping[str, Any]],
        acting_user_id: Optional[int] = None,
    ) -> Resident:
        """Contact/role update. Becoming main clears the flag on everyone else in the unit."""
        fields = _as_fields(changes, partial=True)
        make_main = fields.pop("is_main_resident", None)
        if not fields and make_main is None:
            raise ValidationError("no resident fields to update", resident_id=resident_id)

        with self._transaction("update_resident", resident_id=resident_id):
            unit_id = self.residents.get_resident(resident_id).unit_id
            self.units.lock_unit(unit_id)
            resident = self.residents.get_resident(resident_id)
            before = snapshot(resident)

            if fields:
                self.residents.update_resident(resident_id, fields)
            if make_main is True and not resident.is_main_resident:
                self.residents.set_main_resident(unit_id, resident_id)
            elif make_main is False and resident.is_main_resident:
                self.residents.clear_main_resident(resident_id)

            after = snapshot(resident)
            action = A.RESIDENT_UPDATED
            if before["relationship"] != after["relationship"]:
                if after["relationship"] == ResidentRelationship.TENANT:
                    action = A.TENANT_CHANGED
                elif after["relationship"] == ResidentRelationship.OWNER:
                    action = A.OWNER_CHANGED
            self.history.record(
                unit_id,
                resident_id,
                action,
                describe_action(action, resident=resident.name),
                before,
                after,
                changed_by_user_id=acting_user_id,
            )

        logger.info("Resident %s updated (%s)", resident_id, action.value)
        return resident

    def set_main_resident(
        self, unit_id: int, resident_id: int, acting_user_id: Optional[int] = None
    ) -> Resident:
        with self._transaction("set_main_resident", unit_id=unit_id, resident_id=resident_id):
            self.units.lock_unit(unit_id)
            previous = self.residents.get_main_resident(unit_id)
            resident, before = self.residents.set_main_resident(unit_id, resident_id)
            self.history.record(
                unit_id,
                resident_id,
                A.RESIDENT_UPDATED,
                describe_action(A.RESIDENT_UPDATED, resident=resident.name),
                before,
                snapshot(resident),
                changed_by_user_id=acting_user_id,
                metadata={"previous_main_resident_id": previous.id if previous else None},
            )

        logger.info("Resident %s is now main resident of unit %s", resident_id, unit_id)
        return resident

    def reactivate_resident(self, resident_id: int, acting_user_id: Optional[int] = None) -> Resident:
        """Undo a move-out. A vacant unit becomes occupied again."""
        with self._transaction("reactivate_resident", resident_id=resident_id):
            unit_id = self.residents.get_resident(resident_id).unit_id
            unit = self.units.lock_unit(unit_id)
            resident, before = self.residents.reactivate_resident(resident_id)
            self.history.record(
                unit_id,
                resident_id,
                A.RESIDENT_UPDATED,
                describe_action(A.RESIDENT_UPDATED, resident=resident.name),
                before,
                snapshot(resident),
                changed_by_user_id=acting_user_id,
                metadata={"reactivated": True},
            )
            if unit.status == UnitStatus.VACANT:
                self._change_status(unit, UnitStatus.OCCUPIED, acting_user_id, resident_id, reason="reactivation")

        logger.info("Resident %s reactivated on unit %s", resident_id, unit_id)
        return resident

    # -- units ---------------------------------------------------------------

    def change_unit_status(
        self,
        unit_id: int,
        new_status: UnitStatus,
        acting_user_id: Optional[int] = None,
        reason: Optional[str] = None,
    ) -> Unit:
        with self._transaction("change_unit_status", unit_id=unit_id):
            unit = self.units.lock_unit(unit_id)
            self._change_status(unit, new_status, acting_user_id, reason=reason)

        logger.info("Unit %s status is now %s", unit_id, unit.status.value)
        return unit

    def update_billing_config(
        self,
        unit_id: int,
        billing_config: Union[BaseModel, Mapping[str, Any]],
        acting_user_id: Optional[int] = None,
    ) -> Unit:
        """
        Change monthly amount, due day and/or the auto billing flag.

        Fields not set in the payload keep their current value; the result is
        validated as a whole (due day in 1-31, auto billing needs amount and day).
        """
        fields = _as_fields(billing_config, partial=True)
        unknown = set(fields) - set(BILLING_FIELDS)
        if unknown:
            raise ValidationError(
                f"not billing fields: {', '.join(sorted(unknown))}", unit_id=unit_id
            )

        with self._transaction("update_billing_config", unit_id=unit_id):
            self.units.lock_unit(unit_id)
            unit, before = self.units.update_unit(unit_id, fields)
            self.history.record(
                unit_id,
                None,
                A.FEE_CHANGED,
                describe_action(A.FEE_CHANGED),
                {k: before[k] for k in BILLING_FIELDS},
                snapshot(unit, BILLING_FIELDS),
                changed_by_user_id=acting_user_id,
            )

        logger.info("Billing configuration of unit %s updated", unit_id)
        return unit

    def update_unit(
        self,
        unit_id: int,
        changes: Union[BaseModel, Mapping[str, Any]],
        acting_user_id: Optional[int] = None,
    ) -> Unit:
        """
        Descriptive, owner and contract fields.

        Recorded as owner_changed when an owner field changed, else fee_changed
        when condominium_fee changed, else general_update.
        """
        fields = _as_fields(changes, partial=True)
        if "status" in fields:
            raise ValidationError("use change_unit_status to change status", field="status", unit_id=unit_id)
        billing_keys = set(fields) & set(BILLING_FIELDS)
        if billing_keys:
            raise ValidationError(
                "use update_billing_config for billing fields",
                field=sorted(billing_keys)[0],
                unit_id=unit_id,
            )

        with self._transaction("update_unit", unit_id=unit_id):
            self.units.lock_unit(unit_id)
            unit, before = self.units.update_unit(unit_id, fields)
            after = snapshot(unit)

            changed = {k for k in after if k in before and before[k] != after[k]}
            if changed & set(OWNER_FIELDS):
                action = A.OWNER_CHANGED
            elif "condominium_fee" in changed:
                action = A.FEE_CHANGED
            else:
                action = A.GENERAL_UPDATE
            self.history.record(
                unit_id,
                None,
                action,
                describe_action(action),
                before,
                after,
                changed_by_user_id=acting_user_id,
            )

        logger.info("Unit %s updated (%s)", unit_id, action.value)
        return unit

    def record_maintenance_event(
        self,
        unit_id: int,
        action_type: HistoryActionType,
        description: Optional[str] = None,
        acting_user_id: Optional[int] = None,
        resident_id: Optional[int] = None,
        metadata: Optional[Mapping[str, Any]] = None,
    ) -> UnitHistoryEntry:
        """Maintenance workflow lives elsewhere; it reports its milestones into the unit history."""
        try:
            action_type = HistoryActionType(action_type)
        except ValueError:
            raise ValidationError("unknown action type", field="action_type", value=action_type)
        if action_type not in MAINTENANCE_ACTIONS:
            raise ValidationError(
                "only maintenance request events can be recorded directly",
                field="action_type",
                value=action_type.value,
            )

        with self._transaction("record_maintenance_event", unit_id=unit_id):
            self.units.lock_unit(unit_id)
            if resident_id is not None:
                resident = self.residents.get_resident(resident_id)
                if resident.unit_id != unit_id:
                    raise ValidationError(
                        "resident does not belong to this unit", unit_id=unit_id, resident_id=resident_id
                    )
            entry = self.history.record(
                unit_id,
                resident_id,
                action_type,
                description or describe_action(action_type),
                changed_by_user_id=acting_user_id,
                metadata=metadata,
            )

        logger.info("Maintenance event %s recorded for unit %s", action_type.value, unit_id)
        return entry

    # -- reads ---------------------------------------------------------------

    def unit_history(self, unit_id: int, **filters: Any) -> List[UnitHistoryEntry]:
        self.units.get_unit(unit_id)
        return self.history.list_history(unit_id, **filters)

    @staticmethod
    def compute_next_due_date(unit: Unit, reference_date: date) -> date:
        return billing.compute_next_due_date(unit, reference_date)
