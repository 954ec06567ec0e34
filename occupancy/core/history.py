"""
Append-only unit history.

HistoryRecorder adds entries to the caller's session and flushes; it never
commits. The coordinator owns the transaction, so a rolled-back operation
leaves no entry behind.
"""
import logging
from datetime import datetime, time, timedelta, timezone
from typing import Any, Dict, List, Mapping, Optional, Tuple

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from occupancy.core.errors import NotFoundError, PersistenceError
from occupancy.core.snapshots import diff_values, to_json
from occupancy.models.enums import HistoryActionType
from occupancy.models.unit_history import UnitHistoryEntry

logger = logging.getLogger(__name__)

A = HistoryActionType

# One template per action type; test_history checks every member is covered
ACTION_DESCRIPTIONS: Dict[HistoryActionType, str] = {
    A.RESIDENT_ADDED: "Resident {resident} added to unit",
    A.RESIDENT_REMOVED: "Resident {resident} moved out of unit",
    A.RESIDENT_UPDATED: "Resident {resident} information updated",
    A.STATUS_CHANGED: "Unit status changed from {old_status} to {new_status}",
    A.OWNER_CHANGED: "Unit owner information updated",
    A.TENANT_CHANGED: "Unit tenant changed to {resident}",
    A.FEE_CHANGED: "Unit billing configuration updated",
    A.GENERAL_UPDATE: "Unit information updated",
    A.MAINTENANCE_REQUEST_CREATED: "Maintenance request created",
    A.MAINTENANCE_REQUEST_APPROVED: "Maintenance request approved",
    A.MAINTENANCE_REQUEST_COMPLETED: "Maintenance request completed",
    A.MAINTENANCE_REQUEST_REJECTED: "Maintenance request rejected",
}


def describe_action(action_type: HistoryActionType, **params: Any) -> str:
    template = ACTION_DESCRIPTIONS[HistoryActionType(action_type)]
    return template.format(**params)


def _utc(value: datetime) -> datetime:
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


def _range_bounds(start, end) -> Tuple[Optional[datetime], Optional[datetime], bool]:
    """
    Turn date/datetime bounds into datetimes.

    A bare ``date`` as end bound covers the whole day, so the upper bound
    becomes the next midnight and is exclusive.
    """
    lower = upper = None
    exclusive_upper = False
    if start is not None:
        lower = _utc(start) if isinstance(start, datetime) else datetime.combine(start, time.min, timezone.utc)
    if end is not None:
        if isinstance(end, datetime):
            upper = _utc(end)
        else:
            upper = datetime.combine(end + timedelta(days=1), time.min, timezone.utc)
            exclusive_upper = True
    return lower, upper, exclusive_upper


class HistoryRecorder:
    def __init__(self, db: Session):
        self.db = db

    def record(
        self,
        unit_id: int,
        resident_id: Optional[int],
        action_type: HistoryActionType,
        description: str,
        old_values: Optional[Mapping[str, Any]] = None,
        new_values: Optional[Mapping[str, Any]] = None,
        changed_by_user_id: Optional[int] = None,
        metadata: Optional[Mapping[str, Any]] = None,
    ) -> UnitHistoryEntry:
        """Append one entry holding only the fields that actually changed."""
        old, new = diff_values(old_values, new_values)
        entry = UnitHistoryEntry(
            unit_id=unit_id,
            resident_id=resident_id,
            action_type=HistoryActionType(action_type),
            description=description,
            old_values=to_json(old) if old else None,
            new_values=to_json(new) if new else None,
            changed_by_user_id=changed_by_user_id,
            extra=to_json(dict(metadata)) if metadata else None,
        )
        try:
            self.db.add(entry)
            self.db.flush()
        except SQLAlchemyError as exc:
            logger.exception("Failed to record %s for unit %s", entry.action_type.value, unit_id)
            raise PersistenceError(
                "could not write history entry",
                unit_id=unit_id,
                resident_id=resident_id,
                action_type=entry.action_type.value,
            ) from exc
        logger.debug("History %s recorded for unit %s (entry %s)", entry.action_type.value, unit_id, entry.id)
        return entry

    def _filtered(self, unit_id, action_type=None, resident_id=None, start=None, end=None):
        q = self.db.query(UnitHistoryEntry).filter(UnitHistoryEntry.unit_id == unit_id)
        if action_type is not None:
            q = q.filter(UnitHistoryEntry.action_type == HistoryActionType(action_type))
        if resident_id is not None:
            q = q.filter(UnitHistoryEntry.resident_id == resident_id)

        lower, upper, exclusive_upper = _range_bounds(start, end)
        if lower is not None:
            q = q.filter(UnitHistoryEntry.created_at >= lower)
        if upper is not None:
            if exclusive_upper:
                q = q.filter(UnitHistoryEntry.created_at < upper)
            else:
                q = q.filter(UnitHistoryEntry.created_at <= upper)
        return q

    def list_history(
        self,
        unit_id: int,
        action_type: Optional[HistoryActionType] = None,
        resident_id: Optional[int] = None,
        start=None,
        end=None,
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> List[UnitHistoryEntry]:
        """Entries of a unit, oldest first. id breaks ties between entries of the same transaction."""
        q = self._filtered(unit_id, action_type, resident_id, start, end)
        q = q.order_by(UnitHistoryEntry.created_at.asc(), UnitHistoryEntry.id.asc())
        if offset:
            q = q.offset(offset)
        if limit is not None:
            q = q.limit(limit)
        return q.all()

    def get_entry(self, entry_id: int) -> UnitHistoryEntry:
        entry = self.db.get(UnitHistoryEntry, entry_id)
        if entry is None:
            raise NotFoundError("history entry", entry_id)
        return entry

    def history_stats(self, unit_id: int, start=None, end=None, recent: int = 5) -> Dict[str, Any]:
        q = self._filtered(unit_id, start=start, end=end)
        total = q.count()

        counts_q = (
            self._filtered(unit_id, start=start, end=end)
            .with_entities(UnitHistoryEntry.action_type, func.count(UnitHistoryEntry.id))
            .group_by(UnitHistoryEntry.action_type)
        )
        action_counts = {HistoryActionType(action): count for action, count in counts_q.all()}

        recent_activity = (
            self._filtered(unit_id, start=start, end=end)
            .order_by(UnitHistoryEntry.created_at.desc(), UnitHistoryEntry.id.desc())
            .limit(recent)
            .all()
        )
        return {
            "total_entries": total,
            "action_counts": action_counts,
            "recent_activity": recent_activity,
        }
