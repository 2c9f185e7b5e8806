"""Utility schema: properties, leases, meter readings, bills and allocations.

Revision ID: 001_utility_schema
Revises:
Create Date: 2026-10-17 12:00:00.000000

"""

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision = "001_utility_schema"
down_revision = None
branch_labels = None
depends_on = None

LEASE_STATUS = sa.Enum(
    "DRAFT", "PENDING", "ACTIVE", "EXPIRED", "TERMINATED", name="leasestatus"
)
BILL_STATUS = sa.Enum(
    "DRAFT",
    "PROCESSING",
    "REVIEW_REQUIRED",
    "APPROVED",
    "POSTED",
    "REJECTED",
    name="utilitybillstatus",
)
SPLIT_METHOD = sa.Enum(
    "EQUAL",
    "OCCUPANCY_BASED",
    "SQ_FOOTAGE",
    "SUB_METERED",
    "CUSTOM_RATIO",
    "AI_OPTIMIZED",
    name="utilitysplitmethod",
)
IMPORT_METHOD = sa.Enum(
    "CSV", "API", "PDF_OCR", "MANUAL_ENTRY", "IMAGE_SCAN", name="utilityimportmethod"
)


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.current_timestamp(),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.current_timestamp(),
        ),
    ]


def upgrade() -> None:
    # Create properties table
    op.create_table(
        "properties",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column(
            "address", sa.String(length=500), nullable=True, comment="Street address of the property"
        ),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
    )

    # Create units table
    op.create_table(
        "units",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("property_id", sa.Integer(), nullable=False),
        sa.Column(
            "unit_number",
            sa.String(length=50),
            nullable=False,
            comment="Door or unit label (e.g., 'A1', '12B')",
        ),
        *_timestamps(),
        sa.ForeignKeyConstraint(["property_id"], ["properties.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("property_id", "unit_number", name="uq_unit_property_number"),
        sa.Index("ix_units_property_id", "property_id"),
    )

    # Create house_details table
    op.create_table(
        "house_details",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("unit_id", sa.Integer(), nullable=False),
        sa.Column(
            "size", sa.Numeric(precision=10, scale=2), nullable=True, comment="Floor area in square feet"
        ),
        sa.Column("bedrooms", sa.Integer(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(["unit_id"], ["units.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("unit_id"),
        sa.Index("idx_house_detail_unit", "unit_id"),
    )

    # Create lease_applications table
    op.create_table(
        "lease_applications",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("applicant_name", sa.String(length=200), nullable=False),
        sa.Column(
            "occupants", sa.Integer(), nullable=True, comment="Number of people living in the unit"
        ),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
    )

    # Create leases table
    op.create_table(
        "leases",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("unit_id", sa.Integer(), nullable=False),
        sa.Column("application_id", sa.Integer(), nullable=True),
        sa.Column("status", LEASE_STATUS, nullable=False),
        sa.Column("start_date", sa.Date(), nullable=True),
        sa.Column("end_date", sa.Date(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(["unit_id"], ["units.id"]),
        sa.ForeignKeyConstraint(["application_id"], ["lease_applications.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.Index("ix_leases_unit_id", "unit_id"),
        sa.Index("ix_leases_status", "status"),
        sa.Index("idx_lease_unit_status", "unit_id", "status"),
    )

    # Create lease_utilities table
    op.create_table(
        "lease_utilities",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("lease_id", sa.Integer(), nullable=False),
        sa.Column(
            "utility_type",
            sa.String(length=50),
            nullable=False,
            comment="Utility kind, e.g. 'water' or 'electricity'",
        ),
        sa.Column("is_tenant_responsible", sa.Boolean(), nullable=False, server_default="1"),
        *_timestamps(),
        sa.ForeignKeyConstraint(["lease_id"], ["leases.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.Index("ix_lease_utilities_lease_id", "lease_id"),
    )

    # Create utility_readings table
    op.create_table(
        "utility_readings",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("lease_utility_id", sa.Integer(), nullable=False),
        sa.Column(
            "reading_value",
            sa.Numeric(precision=12, scale=3),
            nullable=False,
            comment="Cumulative meter value",
        ),
        sa.Column("reading_date", sa.DateTime(timezone=True), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(["lease_utility_id"], ["lease_utilities.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.Index("ix_utility_readings_lease_utility_id", "lease_utility_id"),
        sa.Index("idx_reading_lease_utility_date", "lease_utility_id", "reading_date"),
    )

    # Create utility_bills table
    op.create_table(
        "utility_bills",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("property_id", sa.Integer(), nullable=False),
        sa.Column("provider_name", sa.String(length=200), nullable=False),
        sa.Column(
            "utility_type",
            sa.String(length=50),
            nullable=True,
            comment="Restricts sub-metered splits to lease utilities of this type",
        ),
        sa.Column("total_amount", sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column("split_method", SPLIT_METHOD, nullable=False),
        sa.Column("import_method", IMPORT_METHOD, nullable=False),
        sa.Column("status", BILL_STATUS, nullable=False),
        sa.Column("bill_date", sa.Date(), nullable=False),
        sa.Column("due_date", sa.Date(), nullable=False),
        sa.Column("period_start", sa.Date(), nullable=True),
        sa.Column("period_end", sa.Date(), nullable=True),
        sa.Column("file_url", sa.String(length=500), nullable=True),
        sa.Column("ocr_confidence", sa.Float(), nullable=True),
        sa.Column("approved_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("rejected_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("rejection_reason", sa.String(length=500), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(["property_id"], ["properties.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.Index("ix_utility_bills_property_id", "property_id"),
        sa.Index("ix_utility_bills_status", "status"),
        sa.Index("idx_utility_bill_property_status", "property_id", "status"),
    )

    # Create utility_allocations table
    op.create_table(
        "utility_allocations",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("utility_bill_id", sa.Integer(), nullable=False),
        sa.Column("unit_id", sa.Integer(), nullable=False),
        sa.Column("amount", sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column(
            "percentage",
            sa.Numeric(precision=5, scale=2),
            nullable=True,
            comment="Derived share in percent (0-100), not used for recomputation",
        ),
        *_timestamps(),
        sa.ForeignKeyConstraint(["utility_bill_id"], ["utility_bills.id"]),
        sa.ForeignKeyConstraint(["unit_id"], ["units.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("utility_bill_id", "unit_id", name="uq_allocation_bill_unit"),
        sa.Index("ix_utility_allocations_utility_bill_id", "utility_bill_id"),
        sa.Index("ix_utility_allocations_unit_id", "unit_id"),
    )

    # Create audit_logs table
    op.create_table(
        "audit_logs",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("entity_type", sa.String(), nullable=False),
        sa.Column("entity_id", sa.Integer(), nullable=False),
        sa.Column("action", sa.String(), nullable=False),
        sa.Column("actor_id", sa.Integer(), nullable=True),
        sa.Column("changes", sa.JSON(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
    )


def downgrade() -> None:
    op.drop_table("audit_logs")
    op.drop_table("utility_allocations")
    op.drop_table("utility_bills")
    op.drop_table("utility_readings")
    op.drop_table("lease_utilities")
    op.drop_table("leases")
    op.drop_table("lease_applications")
    op.drop_table("house_details")
    op.drop_table("units")
    op.drop_table("properties")

    bind = op.get_bind()
    for enum in (IMPORT_METHOD, SPLIT_METHOD, BILL_STATUS, LEASE_STATUS):
        enum.drop(bind, checkfirst=True)
