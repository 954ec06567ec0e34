from sqlalchemy import Column, String, Integer, DateTime, Date, ForeignKey, Boolean, Enum, Index, Text, and_
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from occupancy.core.database import Base
from occupancy.models.enums import ResidentRelationship, enum_values


class Resident(Base):
    __tablename__ = "residents"

    id = Column(Integer, primary_key=True, index=True)

    unit_id = Column(Integer, ForeignKey("units.id", ondelete="CASCADE"), nullable=False, index=True)
    unit = relationship("Unit", back_populates="residents")

    name = Column(String, nullable=False)
    cpf = Column(String(11), nullable=False, unique=True)  # unique system-wide, not per unit
    rg = Column(String, nullable=True)
    email = Column(String, nullable=True)
    phone = Column(String, nullable=True)
    birth_date = Column(Date, nullable=True)

    relationship_type = Column(
        "relationship",
        Enum(ResidentRelationship, name="resident_relationship", values_callable=enum_values),
        nullable=False,
        default=ResidentRelationship.FAMILY,
        index=True,
    )
    is_main_resident = Column(Boolean, nullable=False, default=False)

    emergency_contact_name = Column(String, nullable=True)
    emergency_contact_phone = Column(String, nullable=True)

    move_in_date = Column(Date, nullable=True)
    move_out_date = Column(Date, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True, index=True)
    notes = Column(Text, nullable=True)

    user_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), onupdate=func.now(), server_default=func.now(), nullable=False)

    __table_args__ = (
        # At most one active main resident per unit
        Index(
            "uq_residents_unit_main_active",
            "unit_id",
            unique=True,
            postgresql_where=and_(is_main_resident.is_(True), is_active.is_(True)),
            sqlite_where=and_(is_main_resident.is_(True), is_active.is_(True)),
        ),
    )

    def __repr__(self) -> str:
        return f"<Resident {self.id}: {self.name} unit={self.unit_id}>"
