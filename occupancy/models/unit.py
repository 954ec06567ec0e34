from sqlalchemy import Column, String, Integer, DateTime, Date, ForeignKey, Boolean, Numeric, Enum, Text, CheckConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from occupancy.core.database import Base
from occupancy.models.enums import ContractType, UnitStatus, UnitType, enum_values


class Unit(Base):
    __tablename__ = "units"

    id = Column(Integer, primary_key=True, index=True)

    # Deleting a condominium removes its units (and through them residents and history)
    condominium_id = Column(
        Integer, ForeignKey("condominiums.id", ondelete="CASCADE"), nullable=False, index=True
    )
    condominium = relationship("Condominium", back_populates="units")

    # Identification and physical attributes
    number = Column(String, nullable=False)
    block = Column(String, nullable=True)
    floor = Column(Integer, nullable=True)
    type = Column(
        Enum(UnitType, name="unit_type", values_callable=enum_values),
        nullable=False,
        default=UnitType.APARTMENT,
    )
    bedrooms = Column(Integer, nullable=True)
    bathrooms = Column(Integer, nullable=True)
    area = Column(Numeric(8, 2), nullable=True)

    # Only changed through UnitRepository.set_status
    status = Column(
        Enum(UnitStatus, name="unit_status", values_callable=enum_values),
        nullable=False,
        index=True,
    )
    condominium_fee = Column(Numeric(10, 2), nullable=False, default=0)

    # Owner contact
    owner_name = Column(String, nullable=True)
    owner_email = Column(String, nullable=True)
    owner_phone = Column(String, nullable=True)
    owner_cpf = Column(String(11), nullable=True)
    notes = Column(Text, nullable=True)

    resident_user_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)

    # Billing: auto_billing_enabled requires monthly_amount and payment_due_day
    monthly_amount = Column(Numeric(10, 2), nullable=True)
    payment_due_day = Column(Integer, nullable=True, index=True)  # 1-31, clamped to month length
    auto_billing_enabled = Column(Boolean, nullable=False, default=False, index=True)

    # Contract
    contract_start_date = Column(Date, nullable=True)
    contract_end_date = Column(Date, nullable=True)
    contract_type = Column(
        Enum(ContractType, name="contract_type", values_callable=enum_values),
        nullable=True,
    )
    deposit_amount = Column(Numeric(10, 2), nullable=True)
    guarantor_name = Column(String, nullable=True)
    guarantor_cpf = Column(String(11), nullable=True)
    guarantor_phone = Column(String, nullable=True)
    auto_renewal = Column(Boolean, nullable=False, default=False)

    # Amenities
    parking_spots = Column(Integer, nullable=True, default=0)
    furnished = Column(Boolean, nullable=False, default=False)
    pet_allowed = Column(Boolean, nullable=False, default=False)
    balcony = Column(Boolean, nullable=False, default=False)
    last_renovation_date = Column(Date, nullable=True)

    residents = relationship(
        "Resident",
        back_populates="unit",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="Resident.id",
    )
    history = relationship(
        "UnitHistoryEntry",
        back_populates="unit",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="UnitHistoryEntry.id",
    )

    # Timestamps
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), onupdate=func.now(), server_default=func.now(), nullable=False)

    __table_args__ = (
        CheckConstraint("payment_due_day BETWEEN 1 AND 31", name="ck_units_payment_due_day"),
    )

    def __repr__(self) -> str:
        return f"<Unit {self.id}: {self.number}{'/' + self.block if self.block else ''} {self.status}>"
