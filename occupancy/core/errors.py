"""
Exceptions raised by the occupancy subsystem.

Every error carries the identifiers needed to act on it (unit id, resident id,
offending field or invariant) in ``context``. Nothing here is retried
internally; the caller decides.
"""
from typing import Any, Optional


class OccupancyError(Exception):
    """Base class for every error raised by the subsystem."""

    def __init__(self, message: str, **context: Any):
        super().__init__(message)
        self.message = message
        self.context = {k: v for k, v in context.items() if v is not None}

    def __str__(self) -> str:
        if not self.context:
            return self.message
        details = ", ".join(f"{k}={v}" for k, v in sorted(self.context.items()))
        return f"{self.message} ({details})"


class ValidationError(OccupancyError):
    """Input rejected before any write (bad due day, malformed CPF, missing field...)."""

    def __init__(self, message: str, field: Optional[str] = None, **context: Any):
        super().__init__(message, field=field, **context)
        self.field = field


class DuplicateCpfError(OccupancyError):
    """A resident with the same CPF already exists, active or not."""

    def __init__(self, cpf: str, existing_resident_id: Optional[int] = None, **context: Any):
        super().__init__(
            "a resident with this CPF is already registered",
            cpf=cpf,
            existing_resident_id=existing_resident_id,
            **context,
        )
        self.cpf = cpf
        self.existing_resident_id = existing_resident_id


class NotFoundError(OccupancyError):
    def __init__(self, entity: str, entity_id: Any, **context: Any):
        super().__init__(f"{entity} not found", entity=entity, entity_id=entity_id, **context)
        self.entity = entity
        self.entity_id = entity_id


class InvariantViolation(OccupancyError):
    """A cross-entity invariant failed; the current transaction is rolled back."""

    def __init__(self, message: str, invariant: str, **context: Any):
        super().__init__(message, invariant=invariant, **context)
        self.invariant = invariant


class PersistenceError(OccupancyError):
    """Storage or transaction failure. The whole compound operation may be retried."""
