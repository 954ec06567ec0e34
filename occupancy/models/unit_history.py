from datetime import datetime, timezone

from sqlalchemy import Column, Integer, DateTime, ForeignKey, Enum, Text, JSON
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from occupancy.core.database import Base
from occupancy.models.enums import HistoryActionType, enum_values


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class UnitHistoryEntry(Base):
    """Append-only audit record. Written once by HistoryRecorder, never updated."""

    __tablename__ = "unit_history"

    id = Column(Integer, primary_key=True, index=True)

    unit_id = Column(Integer, ForeignKey("units.id", ondelete="CASCADE"), nullable=False, index=True)
    unit = relationship("Unit", back_populates="history")

    # Weak references: the entry outlives the resident and the acting account
    resident_id = Column(Integer, ForeignKey("residents.id", ondelete="SET NULL"), nullable=True, index=True)
    changed_by_user_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)

    action_type = Column(
        Enum(HistoryActionType, name="unit_history_action_type", values_callable=enum_values),
        nullable=False,
        index=True,
    )
    description = Column(Text, nullable=False)

    # Only the fields that differ; JSON primitives
    old_values = Column(JSON, nullable=True)
    new_values = Column(JSON, nullable=True)
    # "metadata" is reserved on declarative classes
    extra = Column("metadata", JSON, nullable=True)

    created_at = Column(
        DateTime(timezone=True), default=_utcnow, server_default=func.now(), nullable=False, index=True
    )

    def __repr__(self) -> str:
        return f"<UnitHistoryEntry {self.id}: unit={self.unit_id} {self.action_type}>"
