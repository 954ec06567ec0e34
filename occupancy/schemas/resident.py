from pydantic import AliasChoices, BaseModel, Field, field_validator
from datetime import date, datetime
from typing import Optional

from occupancy.core.validators import normalize_cpf
from occupancy.models.enums import ResidentRelationship


class ResidentCreate(BaseModel):
    name: str
    cpf: str  # punctuation is stripped; length is checked by the store
    rg: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    birth_date: Optional[date] = None
    relationship_type: ResidentRelationship = Field(
        default=ResidentRelationship.FAMILY,
        validation_alias=AliasChoices("relationship", "relationship_type"),
    )
    is_main_resident: bool = False
    emergency_contact_name: Optional[str] = None
    emergency_contact_phone: Optional[str] = None
    move_in_date: Optional[date] = None
    notes: Optional[str] = None
    user_id: Optional[int] = None

    @field_validator("cpf", mode="before")
    @classmethod
    def strip_cpf_punctuation(cls, v):
        return normalize_cpf(v) if v is not None else v


class ResidentUpdate(BaseModel):
    """
    Contact and role changes. Activation goes through move-out / reactivate,
    and the unit a resident belongs to never changes.
    """
    name: Optional[str] = None
    cpf: Optional[str] = None
    rg: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    birth_date: Optional[date] = None
    relationship_type: Optional[ResidentRelationship] = Field(
        default=None,
        validation_alias=AliasChoices("relationship", "relationship_type"),
    )
    is_main_resident: Optional[bool] = None
    emergency_contact_name: Optional[str] = None
    emergency_contact_phone: Optional[str] = None
    move_in_date: Optional[date] = None
    notes: Optional[str] = None
    user_id: Optional[int] = None

    @field_validator("cpf", mode="before")
    @classmethod
    def strip_cpf_punctuation(cls, v):
        return normalize_cpf(v) if v is not None else v


class ResidentOut(BaseModel):
    id: int
    unit_id: int
    name: str
    cpf: str
    rg: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    birth_date: Optional[date] = None
    relationship_type: ResidentRelationship
    is_main_resident: bool
    emergency_contact_name: Optional[str] = None
    emergency_contact_phone: Optional[str] = None
    move_in_date: Optional[date] = None
    move_out_date: Optional[date] = None
    is_active: bool
    notes: Optional[str] = None
    user_id: Optional[int] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True
