from sqlalchemy import Column, String, Integer, DateTime
from sqlalchemy.sql import func
from occupancy.core.database import Base


class User(Base):
    """Authenticated account. Auth itself is external; residents, units and history point here."""

    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    email = Column(String, nullable=True, unique=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
