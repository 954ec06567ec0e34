from pydantic import BaseModel, field_validator
from datetime import date, datetime
from typing import Optional
from decimal import Decimal

from occupancy.core.validators import normalize_cpf
from occupancy.models.enums import ContractType, UnitStatus, UnitType


# Fields whose change is recorded as owner_changed instead of general_update
OWNER_FIELDS = ("owner_name", "owner_email", "owner_phone", "owner_cpf")


class UnitUpdate(BaseModel):
    """
    Partial update of a unit's descriptive, owner and contract fields.

    status goes through change_unit_status and the billing trio through
    update_billing_config, so neither is accepted here.
    """
    number: Optional[str] = None
    block: Optional[str] = None
    floor: Optional[int] = None
    type: Optional[UnitType] = None
    bedrooms: Optional[int] = None
    bathrooms: Optional[int] = None
    area: Optional[Decimal] = None
    condominium_fee: Optional[Decimal] = None

    owner_name: Optional[str] = None
    owner_email: Optional[str] = None
    owner_phone: Optional[str] = None
    owner_cpf: Optional[str] = None
    notes: Optional[str] = None
    resident_user_id: Optional[int] = None

    contract_start_date: Optional[date] = None
    contract_end_date: Optional[date] = None
    contract_type: Optional[ContractType] = None
    deposit_amount: Optional[Decimal] = None
    guarantor_name: Optional[str] = None
    guarantor_cpf: Optional[str] = None
    guarantor_phone: Optional[str] = None
    auto_renewal: Optional[bool] = None

    parking_spots: Optional[int] = None
    furnished: Optional[bool] = None
    pet_allowed: Optional[bool] = None
    balcony: Optional[bool] = None
    last_renovation_date: Optional[date] = None

    @field_validator("owner_cpf", "guarantor_cpf", mode="before")
    @classmethod
    def strip_cpf_punctuation(cls, v):
        return normalize_cpf(v) if v else v


class BillingConfig(BaseModel):
    """PATCH-style: only the fields explicitly set are applied."""
    monthly_amount: Optional[Decimal] = None
    payment_due_day: Optional[int] = None
    auto_billing_enabled: Optional[bool] = None


class UnitOut(BaseModel):
    id: int
    condominium_id: int
    number: str
    block: Optional[str] = None
    floor: Optional[int] = None
    type: UnitType
    bedrooms: Optional[int] = None
    bathrooms: Optional[int] = None
    area: Optional[Decimal] = None
    status: UnitStatus
    condominium_fee: Decimal
    owner_name: Optional[str] = None
    owner_email: Optional[str] = None
    owner_phone: Optional[str] = None
    owner_cpf: Optional[str] = None
    resident_user_id: Optional[int] = None
    monthly_amount: Optional[Decimal] = None
    payment_due_day: Optional[int] = None
    auto_billing_enabled: bool
    contract_start_date: Optional[date] = None
    contract_end_date: Optional[date] = None
    contract_type: Optional[ContractType] = None
    deposit_amount: Optional[Decimal] = None
    guarantor_name: Optional[str] = None
    guarantor_cpf: Optional[str] = None
    guarantor_phone: Optional[str] = None
    auto_renewal: bool
    parking_spots: Optional[int] = None
    furnished: bool
    pet_allowed: bool
    balcony: bool
    last_renovation_date: Optional[date] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True
