"""
Resident Record Store.

CPF uniqueness is global: one natural person is registered once, whatever the
unit and whether or not the earlier record is still active. Residents are
deactivated on move-out, never deleted, so history keeps its back-reference.
"""
from datetime import date
from typing import Any, Dict, List, Mapping, Optional, Tuple

from sqlalchemy import case
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from occupancy.core.errors import DuplicateCpfError, InvariantViolation, NotFoundError, ValidationError
from occupancy.core.snapshots import Snapshot, snapshot
from occupancy.core.validators import validate_cpf_format, validate_resident_data
from occupancy.models.enums import ResidentRelationship
from occupancy.models.resident import Resident

# Activation, main flag and unit membership have dedicated operations
UPDATABLE_FIELDS = frozenset(
    {
        "name", "cpf", "rg", "email", "phone", "birth_date", "relationship_type",
        "emergency_contact_name", "emergency_contact_phone", "move_in_date",
        "notes", "user_id",
    }
)

CREATE_FIELDS = UPDATABLE_FIELDS | {"move_out_date"}


def _column_names(data: Mapping[str, Any]) -> Dict[str, Any]:
    """Accept the stored column name ``relationship`` as well as the attribute name."""
    fields = dict(data)
    if "relationship" in fields:
        value = fields.pop("relationship")
        if fields.get("relationship_type", value) != value:
            raise ValidationError("relationship and relationship_type disagree", field="relationship")
        fields["relationship_type"] = value
    if fields.get("relationship_type") is not None:
        try:
            fields["relationship_type"] = ResidentRelationship(fields["relationship_type"])
        except ValueError:
            raise ValidationError(
                "unknown relationship", field="relationship", value=fields["relationship_type"]
            )
    return fields


class ResidentRepository:
    def __init__(self, db: Session):
        self.db = db

    def get_resident(self, resident_id: int) -> Resident:
        resident = self.db.get(Resident, resident_id)
        if resident is None:
            raise NotFoundError("resident", resident_id, resident_id=resident_id)
        return resident

    def find_by_cpf(self, cpf: str) -> Optional[Resident]:
        return self.db.query(Resident).filter(Resident.cpf == cpf).one_or_none()

    def list_residents(self, unit_id: int, include_inactive: bool = False) -> List[Resident]:
        """Main resident first, then by relationship and name."""
        q = self.db.query(Resident).filter(Resident.unit_id == unit_id)
        if not include_inactive:
            q = q.filter(Resident.is_active.is_(True))
        main_first = case((Resident.is_main_resident.is_(True), 0), else_=1)
        return q.order_by(main_first, Resident.relationship_type, Resident.name, Resident.id).all()

    def count_active(self, unit_id: int) -> int:
        return (
            self.db.query(Resident)
            .filter(Resident.unit_id == unit_id, Resident.is_active.is_(True))
            .count()
        )

    def get_main_resident(self, unit_id: int) -> Optional[Resident]:
        return (
            self.db.query(Resident)
            .filter(
                Resident.unit_id == unit_id,
                Resident.is_main_resident.is_(True),
                Resident.is_active.is_(True),
            )
            .one_or_none()
        )

    def _ensure_cpf_free(self, cpf: str, exclude_id: Optional[int] = None, unit_id: Optional[int] = None):
        existing = self.find_by_cpf(cpf)
        if existing is not None and existing.id != exclude_id:
            raise DuplicateCpfError(cpf, existing_resident_id=existing.id, unit_id=unit_id)

    def _flush_checking_cpf(self, cpf: str, unit_id: Optional[int]) -> None:
        """
        Flush, turning a hit on the CPF unique index into DuplicateCpfError.

        The lookup in _ensure_cpf_free cannot see a concurrent insert that
        commits before this flush; the index still can.
        """
        try:
            self.db.flush()
        except IntegrityError as exc:
            if "cpf" not in str(exc.orig).lower():
                raise
            raise DuplicateCpfError(cpf, unit_id=unit_id) from exc

    def add_resident(self, unit_id: int, data: Mapping[str, Any]) -> Resident:
        """
        Insert a new active resident.

        The row is always inserted as non-main; the coordinator promotes it
        with set_main_resident so the single-main rule holds at every step.
        """
        data = _column_names(data)
        unknown = set(data) - CREATE_FIELDS
        if unknown:
            raise ValidationError(f"unknown resident fields: {', '.join(sorted(unknown))}", unit_id=unit_id)
        validate_resident_data(data)
        cpf = validate_cpf_format(data["cpf"])
        self._ensure_cpf_free(cpf, unit_id=unit_id)

        fields = dict(data)
        fields["cpf"] = cpf
        if fields.get("relationship_type") is None:
            fields["relationship_type"] = ResidentRelationship.FAMILY
        resident = Resident(unit_id=unit_id, is_main_resident=False, is_active=True, **fields)
        self.db.add(resident)
        self._flush_checking_cpf(cpf, unit_id)
        return resident

    def update_resident(self, resident_id: int, fields: Mapping[str, Any]) -> Tuple[Resident, Snapshot]:
        fields = _column_names(fields)
        unknown = set(fields) - UPDATABLE_FIELDS
        if unknown:
            raise ValidationError(
                f"resident fields cannot be updated here: {', '.join(sorted(unknown))}",
                resident_id=resident_id,
            )
        resident = self.get_resident(resident_id)
        before = snapshot(resident)

        if "name" in fields and not (fields["name"] or "").strip():
            raise ValidationError("name is required", field="name", resident_id=resident_id)
        if "relationship_type" in fields and fields["relationship_type"] is None:
            raise ValidationError("relationship is required", field="relationship", resident_id=resident_id)
        if "cpf" in fields:
            fields["cpf"] = validate_cpf_format(fields["cpf"])
            if fields["cpf"] != resident.cpf:
                self._ensure_cpf_free(fields["cpf"], exclude_id=resident.id, unit_id=resident.unit_id)

        for key, value in fields.items():
            setattr(resident, key, value)
        self._flush_checking_cpf(resident.cpf, resident.unit_id)
        return resident, before

    def set_main_resident(self, unit_id: int, resident_id: int) -> Tuple[Resident, Snapshot]:
        """
        Make ``resident_id`` the unit's main resident.

        Every other resident of the unit is cleared first, in its own statement,
        so there is no point at which two main residents exist.
        """
        resident = self.get_resident(resident_id)
        if resident.unit_id != unit_id:
            raise ValidationError(
                "resident does not belong to this unit", unit_id=unit_id, resident_id=resident_id
            )
        if not resident.is_active:
            raise ValidationError(
                "an inactive resident cannot be the main resident", unit_id=unit_id, resident_id=resident_id
            )
        before = snapshot(resident)

        (
            self.db.query(Resident)
            .filter(
                Resident.unit_id == unit_id,
                Resident.id != resident_id,
                Resident.is_main_resident.is_(True),
            )
            .update({Resident.is_main_resident: False}, synchronize_session="fetch")
        )
        resident.is_main_resident = True
        self.db.flush()

        mains = (
            self.db.query(Resident.id)
            .filter(
                Resident.unit_id == unit_id,
                Resident.is_main_resident.is_(True),
                Resident.is_active.is_(True),
            )
            .all()
        )
        if [row.id for row in mains] != [resident_id]:
            raise InvariantViolation(
                "unit must have exactly one active main resident after reassignment",
                invariant="single_main_resident",
                unit_id=unit_id,
                resident_id=resident_id,
            )
        return resident, before

    def clear_main_resident(self, resident_id: int) -> Tuple[Resident, Snapshot]:
        resident = self.get_resident(resident_id)
        before = snapshot(resident)
        resident.is_main_resident = False
        self.db.flush()
        return resident, before

    def deactivate_resident(self, resident_id: int, move_out_date: date) -> Tuple[Resident, Snapshot]:
        """
        Mark the resident as moved out.

        A main resident loses the flag and the unit is left without one; picking
        the next main resident is a business decision for the caller.
        """
        resident = self.get_resident(resident_id)
        if not resident.is_active:
            raise ValidationError("resident has already moved out", resident_id=resident_id)
        if move_out_date is None:
            raise ValidationError("move_out_date is required", field="move_out_date", resident_id=resident_id)
        if resident.move_in_date is not None and move_out_date < resident.move_in_date:
            raise ValidationError(
                "move_out_date cannot be before move_in_date", field="move_out_date", resident_id=resident_id
            )
        before = snapshot(resident)
        resident.is_active = False
        resident.is_main_resident = False
        resident.move_out_date = move_out_date
        self.db.flush()
        return resident, before

    def reactivate_resident(self, resident_id: int) -> Tuple[Resident, Snapshot]:
        resident = self.get_resident(resident_id)
        if resident.is_active:
            raise ValidationError("resident is already active", resident_id=resident_id)
        before = snapshot(resident)
        resident.is_active = True
        resident.move_out_date = None
        self.db.flush()
        return resident, before
