from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from occupancy.models.enums import HistoryActionType


class UnitHistoryOut(BaseModel):
    id: int
    unit_id: int
    resident_id: Optional[int] = None
    action_type: HistoryActionType
    description: str
    old_values: Optional[Dict[str, Any]] = None
    new_values: Optional[Dict[str, Any]] = None
    changed_by_user_id: Optional[int] = None
    metadata: Optional[Dict[str, Any]] = Field(default=None, validation_alias="extra")
    created_at: datetime

    class Config:
        from_attributes = True


class HistoryStats(BaseModel):
    total_entries: int
    action_counts: Dict[HistoryActionType, int]
    recent_activity: List[UnitHistoryOut]
