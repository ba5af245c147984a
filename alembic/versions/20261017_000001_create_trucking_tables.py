"""Create storage request, trucking load, shipment and inventory tables

Revision ID: 20261017_000001
Revises: 
Create Date: 2026-10-17 09:00:00

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "20261017_000001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> list:
    return [
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
    ]


def upgrade() -> None:
    op.create_table(
        "storage_request",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("company_id", sa.String(), nullable=False),
        sa.Column("company_name", sa.String(), nullable=True),
        sa.Column("reference_id", sa.String(), nullable=False),
        sa.Column("contact_email", sa.String(), nullable=True),
        sa.Column("status", sa.String(), nullable=False, server_default="DRAFT"),
        sa.Column("request_details", sa.JSON(), nullable=True),
        sa.Column("rejection_reason", sa.String(), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_storage_request_company_id", "storage_request", ["company_id"])
    op.create_index("ix_storage_request_reference_id", "storage_request", ["reference_id"])
    op.create_index("ix_storage_request_status", "storage_request", ["status"])

    op.create_table(
        "trucking_load",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column(
            "storage_request_id",
            sa.String(),
            sa.ForeignKey("storage_request.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("direction", sa.String(), nullable=False),
        sa.Column("sequence_number", sa.Integer(), nullable=False),
        sa.Column("status", sa.String(), nullable=False, server_default="NEW"),
        sa.Column("scheduled_slot_start", sa.DateTime(), nullable=True),
        sa.Column("scheduled_slot_end", sa.DateTime(), nullable=True),
        sa.Column("pickup_location", sa.JSON(), nullable=True),
        sa.Column("delivery_location", sa.JSON(), nullable=True),
        sa.Column("destination_lsd", sa.String(), nullable=True),
        sa.Column("destination_well_name", sa.String(), nullable=True),
        sa.Column("destination_uwi", sa.String(), nullable=True),
        sa.Column("shipping_method", sa.String(), nullable=True),
        sa.Column("trucking_company", sa.String(), nullable=True),
        sa.Column("contact_company", sa.String(), nullable=True),
        sa.Column("contact_name", sa.String(), nullable=True),
        sa.Column("contact_phone", sa.String(), nullable=True),
        sa.Column("contact_email", sa.String(), nullable=True),
        sa.Column("driver_name", sa.String(), nullable=True),
        sa.Column("driver_phone", sa.String(), nullable=True),
        sa.Column("notes", sa.String(), nullable=True),
        sa.Column("rejection_reason", sa.String(), nullable=True),
        sa.Column("total_joints_planned", sa.Integer(), nullable=True),
        sa.Column("total_length_ft_planned", sa.Numeric(12, 2), nullable=True),
        sa.Column("total_weight_lbs_planned", sa.Numeric(12, 2), nullable=True),
        sa.Column("total_joints_completed", sa.Integer(), nullable=True),
        sa.Column("total_length_ft_completed", sa.Numeric(12, 2), nullable=True),
        sa.Column("total_weight_lbs_completed", sa.Numeric(12, 2), nullable=True),
        sa.Column("approved_at", sa.DateTime(), nullable=True),
        sa.Column("in_transit_at", sa.DateTime(), nullable=True),
        sa.Column("completed_at", sa.DateTime(), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint(
            "storage_request_id",
            "direction",
            "sequence_number",
            name="uq_trucking_load_request_direction_sequence",
        ),
        sa.CheckConstraint("sequence_number > 0", name="ck_trucking_load_sequence_positive"),
    )
    op.create_index("ix_trucking_load_storage_request_id", "trucking_load", ["storage_request_id"])
    op.create_index("ix_trucking_load_direction", "trucking_load", ["direction"])
    op.create_index("ix_trucking_load_status", "trucking_load", ["status"])

    op.create_table(
        "shipment",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("request_id", sa.String(), sa.ForeignKey("storage_request.id", ondelete="CASCADE"), nullable=False),
        sa.Column("company_id", sa.String(), nullable=False),
        sa.Column("created_by", sa.String(), nullable=True),
        sa.Column("direction", sa.String(), nullable=False, server_default="INBOUND"),
        sa.Column("status", sa.String(), nullable=False, server_default="SCHEDULED"),
        sa.Column("trucking_method", sa.String(), nullable=False, server_default="CUSTOMER_PROVIDED"),
        sa.Column("trucking_company", sa.String(), nullable=True),
        sa.Column("trucking_contact_name", sa.String(), nullable=True),
        sa.Column("trucking_contact_phone", sa.String(), nullable=True),
        sa.Column("trucking_contact_email", sa.String(), nullable=True),
        sa.Column("number_of_trucks", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("estimated_joint_count", sa.Integer(), nullable=True),
        sa.Column("estimated_total_length_ft", sa.Numeric(12, 2), nullable=True),
        sa.Column("special_instructions", sa.String(), nullable=True),
        sa.Column("surcharge_applicable", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("surcharge_amount", sa.Numeric(10, 2), nullable=False, server_default="0"),
        sa.Column("documents_status", sa.String(), nullable=True),
        sa.Column(
            "trucking_load_id",
            sa.String(),
            sa.ForeignKey("trucking_load.id", ondelete="SET NULL"),
            nullable=True,
        ),
        *_timestamps(),
    )
    op.create_index("ix_shipment_request_id", "shipment", ["request_id"])
    op.create_index("ix_shipment_company_id", "shipment", ["company_id"])
    op.create_index("ix_shipment_trucking_load_id", "shipment", ["trucking_load_id"])

    op.create_table(
        "shipment_truck",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("shipment_id", sa.String(), sa.ForeignKey("shipment.id", ondelete="CASCADE"), nullable=False),
        sa.Column("sequence_number", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("status", sa.String(), nullable=False, server_default="PENDING"),
        sa.Column("trucking_company", sa.String(), nullable=True),
        sa.Column("contact_name", sa.String(), nullable=True),
        sa.Column("contact_phone", sa.String(), nullable=True),
        sa.Column("contact_email", sa.String(), nullable=True),
        sa.Column("scheduled_slot_start", sa.DateTime(), nullable=True),
        sa.Column("scheduled_slot_end", sa.DateTime(), nullable=True),
        sa.Column("notes", sa.String(), nullable=True),
        sa.Column(
            "trucking_load_id",
            sa.String(),
            sa.ForeignKey("trucking_load.id", ondelete="SET NULL"),
            nullable=True,
        ),
        *_timestamps(),
    )
    op.create_index("ix_shipment_truck_shipment_id", "shipment_truck", ["shipment_id"])
    op.create_index("ix_shipment_truck_trucking_load_id", "shipment_truck", ["trucking_load_id"])

    op.create_table(
        "dock_appointment",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column(
            "shipment_id",
            sa.String(),
            sa.ForeignKey("shipment.id", ondelete="CASCADE"),
            nullable=False,
            unique=True,
        ),
        sa.Column("truck_id", sa.String(), sa.ForeignKey("shipment_truck.id", ondelete="SET NULL"), nullable=True),
        sa.Column("slot_start", sa.DateTime(), nullable=False),
        sa.Column("slot_end", sa.DateTime(), nullable=False),
        sa.Column("after_hours", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("surcharge_applied", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("status", sa.String(), nullable=False, server_default="PENDING"),
        sa.Column(
            "trucking_load_id",
            sa.String(),
            sa.ForeignKey("trucking_load.id", ondelete="SET NULL"),
            nullable=True,
        ),
        *_timestamps(),
    )
    op.create_index("ix_dock_appointment_slot_start", "dock_appointment", ["slot_start"])
    op.create_index("ix_dock_appointment_trucking_load_id", "dock_appointment", ["trucking_load_id"])

    op.create_table(
        "trucking_document",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column(
            "trucking_load_id",
            sa.String(),
            sa.ForeignKey("trucking_load.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("truck_id", sa.String(), sa.ForeignKey("shipment_truck.id", ondelete="SET NULL"), nullable=True),
        sa.Column("file_name", sa.String(), nullable=False),
        sa.Column("storage_path", sa.String(), nullable=False),
        sa.Column("document_type", sa.String(), nullable=True),
        sa.Column("uploaded_by", sa.String(), nullable=True),
        sa.Column("parsed_payload", sa.JSON(), nullable=True),
        sa.Column("uploaded_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_trucking_document_trucking_load_id", "trucking_document", ["trucking_load_id"])

    op.create_table(
        "inventory_item",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column(
            "storage_request_id",
            sa.String(),
            sa.ForeignKey("storage_request.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "trucking_load_id",
            sa.String(),
            sa.ForeignKey("trucking_load.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("status", sa.String(), nullable=False, server_default="IN_STORAGE"),
        sa.Column("joints", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("length_ft", sa.Numeric(12, 2), nullable=True),
        sa.Column("weight_lbs", sa.Numeric(12, 2), nullable=True),
        sa.Column("rack_name", sa.String(), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_inventory_item_storage_request_id", "inventory_item", ["storage_request_id"])


def downgrade() -> None:
    op.drop_table("inventory_item")
    op.drop_table("trucking_document")
    op.drop_table("dock_appointment")
    op.drop_table("shipment_truck")
    op.drop_table("shipment")
    op.drop_table("trucking_load")
    op.drop_table("storage_request")
