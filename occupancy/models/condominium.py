from sqlalchemy import Column, String, Integer, DateTime
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from occupancy.core.database import Base


class Condominium(Base):
    """Managed property. Owned by the onboarding layer; only what units reference lives here."""

    __tablename__ = "condominiums"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)

    units = relationship("Unit", back_populates="condominium", cascade="all, delete-orphan", passive_deletes=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
