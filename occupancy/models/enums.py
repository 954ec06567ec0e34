import enum


class UnitType(str, enum.Enum):
    APARTMENT = "apartment"
    HOUSE = "house"


class UnitStatus(str, enum.Enum):
    VACANT = "vacant"
    OCCUPIED = "occupied"
    RENTED = "rented"


class ContractType(str, enum.Enum):
    RESIDENTIAL = "residential"
    COMMERCIAL = "commercial"
    TEMPORARY = "temporary"
    INDEFINITE = "indefinite"


class ResidentRelationship(str, enum.Enum):
    OWNER = "owner"
    TENANT = "tenant"
    FAMILY = "family"
    DEPENDENT = "dependent"
    GUEST = "guest"


class HistoryActionType(str, enum.Enum):
    RESIDENT_ADDED = "resident_added"
    RESIDENT_REMOVED = "resident_removed"
    RESIDENT_UPDATED = "resident_updated"
    STATUS_CHANGED = "status_changed"
    OWNER_CHANGED = "owner_changed"
    TENANT_CHANGED = "tenant_changed"
    FEE_CHANGED = "fee_changed"
    GENERAL_UPDATE = "general_update"
    MAINTENANCE_REQUEST_CREATED = "maintenance_request_created"
    MAINTENANCE_REQUEST_APPROVED = "maintenance_request_approved"
    MAINTENANCE_REQUEST_COMPLETED = "maintenance_request_completed"
    MAINTENANCE_REQUEST_REJECTED = "maintenance_request_rejected"


MAINTENANCE_ACTIONS = frozenset(
    {
        HistoryActionType.MAINTENANCE_REQUEST_CREATED,
        HistoryActionType.MAINTENANCE_REQUEST_APPROVED,
        HistoryActionType.MAINTENANCE_REQUEST_COMPLETED,
        HistoryActionType.MAINTENANCE_REQUEST_REJECTED,
    }
)


def enum_values(enum_cls):
    """Persist enum members by value ("vacant"), not by name ("VACANT")."""
    return [member.value for member in enum_cls]
