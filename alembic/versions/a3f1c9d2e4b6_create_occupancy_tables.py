"""create condominiums, users, units, residents and unit_history

Revision ID: a3f1c9d2e4b6
Revises:
Create Date: 2026-10-19 09:12:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "a3f1c9d2e4b6"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

unit_type = sa.Enum("apartment", "house", name="unit_type")
unit_status = sa.Enum("vacant", "occupied", "rented", name="unit_status")
contract_type = sa.Enum("residential", "commercial", "temporary", "indefinite", name="contract_type")
resident_relationship = sa.Enum(
    "owner", "tenant", "family", "dependent", "guest", name="resident_relationship"
)
action_type = sa.Enum(
    "resident_added",
    "resident_removed",
    "resident_updated",
    "status_changed",
    "owner_changed",
    "tenant_changed",
    "fee_changed",
    "general_update",
    "maintenance_request_created",
    "maintenance_request_approved",
    "maintenance_request_completed",
    "maintenance_request_rejected",
    name="unit_history_action_type",
)


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table(
        "condominiums",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_condominiums_id", "condominiums", ["id"], unique=False)

    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("email", sa.String(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("email"),
    )
    op.create_index("ix_users_id", "users", ["id"], unique=False)

    op.create_table(
        "units",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("condominium_id", sa.Integer(), nullable=False),
        sa.Column("number", sa.String(), nullable=False),
        sa.Column("block", sa.String(), nullable=True),
        sa.Column("floor", sa.Integer(), nullable=True),
        sa.Column("type", unit_type, nullable=False),
        sa.Column("bedrooms", sa.Integer(), nullable=True),
        sa.Column("bathrooms", sa.Integer(), nullable=True),
        sa.Column("area", sa.Numeric(8, 2), nullable=True),
        sa.Column("status", unit_status, nullable=False),
        sa.Column("condominium_fee", sa.Numeric(10, 2), server_default="0", nullable=False),
        sa.Column("owner_name", sa.String(), nullable=True),
        sa.Column("owner_email", sa.String(), nullable=True),
        sa.Column("owner_phone", sa.String(), nullable=True),
        sa.Column("owner_cpf", sa.String(11), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("resident_user_id", sa.Integer(), nullable=True),
        sa.Column("monthly_amount", sa.Numeric(10, 2), nullable=True),
        sa.Column("payment_due_day", sa.Integer(), nullable=True),
        sa.Column("auto_billing_enabled", sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column("contract_start_date", sa.Date(), nullable=True),
        sa.Column("contract_end_date", sa.Date(), nullable=True),
        sa.Column("contract_type", contract_type, nullable=True),
        sa.Column("deposit_amount", sa.Numeric(10, 2), nullable=True),
        sa.Column("guarantor_name", sa.String(), nullable=True),
        sa.Column("guarantor_cpf", sa.String(11), nullable=True),
        sa.Column("guarantor_phone", sa.String(), nullable=True),
        sa.Column("auto_renewal", sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column("parking_spots", sa.Integer(), server_default="0", nullable=True),
        sa.Column("furnished", sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column("pet_allowed", sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column("balcony", sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column("last_renovation_date", sa.Date(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.ForeignKeyConstraint(["condominium_id"], ["condominiums.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["resident_user_id"], ["users.id"], ondelete="SET NULL"),
        sa.CheckConstraint("payment_due_day BETWEEN 1 AND 31", name="ck_units_payment_due_day"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_units_id", "units", ["id"], unique=False)
    op.create_index("ix_units_condominium_id", "units", ["condominium_id"], unique=False)
    op.create_index("ix_units_status", "units", ["status"], unique=False)
    op.create_index("ix_units_resident_user_id", "units", ["resident_user_id"], unique=False)
    op.create_index("ix_units_auto_billing_enabled", "units", ["auto_billing_enabled"], unique=False)
    op.create_index("ix_units_payment_due_day", "units", ["payment_due_day"], unique=False)

    op.create_table(
        "residents",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("unit_id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("cpf", sa.String(11), nullable=False),
        sa.Column("rg", sa.String(), nullable=True),
        sa.Column("email", sa.String(), nullable=True),
        sa.Column("phone", sa.String(), nullable=True),
        sa.Column("birth_date", sa.Date(), nullable=True),
        sa.Column("relationship", resident_relationship, server_default="family", nullable=False),
        sa.Column("is_main_resident", sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column("emergency_contact_name", sa.String(), nullable=True),
        sa.Column("emergency_contact_phone", sa.String(), nullable=True),
        sa.Column("move_in_date", sa.Date(), nullable=True),
        sa.Column("move_out_date", sa.Date(), nullable=True),
        sa.Column("is_active", sa.Boolean(), server_default=sa.true(), nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("user_id", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.ForeignKeyConstraint(["unit_id"], ["units.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("cpf"),
    )
    op.create_index("ix_residents_id", "residents", ["id"], unique=False)
    op.create_index("ix_residents_unit_id", "residents", ["unit_id"], unique=False)
    op.create_index("ix_residents_user_id", "residents", ["user_id"], unique=False)
    op.create_index("ix_residents_is_active", "residents", ["is_active"], unique=False)
    op.create_index("ix_residents_relationship", "residents", ["relationship"], unique=False)
    op.create_index(
        "uq_residents_unit_main_active",
        "residents",
        ["unit_id"],
        unique=True,
        postgresql_where=sa.text("is_main_resident AND is_active"),
    )

    op.create_table(
        "unit_history",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("unit_id", sa.Integer(), nullable=False),
        sa.Column("resident_id", sa.Integer(), nullable=True),
        sa.Column("changed_by_user_id", sa.Integer(), nullable=True),
        sa.Column("action_type", action_type, nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("old_values", sa.JSON(), nullable=True),
        sa.Column("new_values", sa.JSON(), nullable=True),
        sa.Column("metadata", sa.JSON(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.ForeignKeyConstraint(["unit_id"], ["units.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["resident_id"], ["residents.id"], ondelete="SET NULL"),
        sa.ForeignKeyConstraint(["changed_by_user_id"], ["users.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_unit_history_id", "unit_history", ["id"], unique=False)
    op.create_index("ix_unit_history_unit_id", "unit_history", ["unit_id"], unique=False)
    op.create_index("ix_unit_history_resident_id", "unit_history", ["resident_id"], unique=False)
    op.create_index("ix_unit_history_action_type", "unit_history", ["action_type"], unique=False)
    op.create_index("ix_unit_history_changed_by_user_id", "unit_history", ["changed_by_user_id"], unique=False)
    op.create_index("ix_unit_history_created_at", "unit_history", ["created_at"], unique=False)


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_index("ix_unit_history_created_at", table_name="unit_history")
    op.drop_index("ix_unit_history_changed_by_user_id", table_name="unit_history")
    op.drop_index("ix_unit_history_action_type", table_name="unit_history")
    op.drop_index("ix_unit_history_resident_id", table_name="unit_history")
    op.drop_index("ix_unit_history_unit_id", table_name="unit_history")
    op.drop_index("ix_unit_history_id", table_name="unit_history")
    op.drop_table("unit_history")

    op.drop_index("uq_residents_unit_main_active", table_name="residents")
    op.drop_index("ix_residents_relationship", table_name="residents")
    op.drop_index("ix_residents_is_active", table_name="residents")
    op.drop_index("ix_residents_user_id", table_name="residents")
    op.drop_index("ix_residents_unit_id", table_name="residents")
    op.drop_index("ix_residents_id", table_name="residents")
    op.drop_table("residents")

    op.drop_index("ix_units_payment_due_day", table_name="units")
    op.drop_index("ix_units_auto_billing_enabled", table_name="units")
    op.drop_index("ix_units_resident_user_id", table_name="units")
    op.drop_index("ix_units_status", table_name="units")
    op.drop_index("ix_units_condominium_id", table_name="units")
    op.drop_index("ix_units_id", table_name="units")
    op.drop_table("units")

    op.drop_index("ix_users_id", table_name="users")
    op.drop_table("users")
    op.drop_index("ix_condominiums_id", table_name="condominiums")
    op.drop_table("condominiums")

    bind = op.get_bind()
    for enum_type in (action_type, resident_relationship, contract_type, unit_status, unit_type):
        enum_type.drop(bind, checkfirst=True)
