from occupancy.models.condominium import Condominium
from occupancy.models.user import User
from occupancy.models.unit import Unit
from occupancy.models.resident import Resident
from occupancy.models.unit_history import UnitHistoryEntry

__all__ = ["Condominium", "User", "Unit", "Resident", "UnitHistoryEntry"]
