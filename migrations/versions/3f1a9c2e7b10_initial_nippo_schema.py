"""initial nippo schema

Revision ID: 3f1a9c2e7b10
Revises:
Create Date: 2026-10-19 10:12:41.208311

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '3f1a9c2e7b10'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create drivers, daily reports, vehicles, rates and audit tables."""
    # Check if tables already exist (idempotent)
    conn = op.get_bind()
    inspector = sa.inspect(conn)
    existing_tables = set(inspector.get_table_names())

    if "drivers" not in existing_tables:
        op.create_table(
            "drivers",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("name", sa.String(128), nullable=False),
            sa.Column("display_name", sa.String(64), nullable=True),
            sa.Column("role", sa.String(32), nullable=False, server_default="DRIVER"),
            sa.Column("company_code", sa.String(3), nullable=True),
            sa.Column("office_code", sa.String(6), nullable=True),
            sa.Column("driver_code", sa.String(9), nullable=True, unique=True),
            sa.Column("pin_hash", sa.String(255), nullable=True),
            sa.Column("postal_code", sa.String(16), nullable=True),
            sa.Column("address", sa.String(512), nullable=True),
            sa.Column("phone", sa.String(32), nullable=True),
            sa.Column("bank_name", sa.String(128), nullable=True),
            sa.Column("bank_no", sa.String(64), nullable=True),
            sa.Column("bank_holder", sa.String(128), nullable=True),
            sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        )
        op.create_index("idx_drivers_company_role", "drivers", ["company_code", "role"])
        op.create_index("idx_drivers_name", "drivers", ["name"])

    if "daily_reports" not in existing_tables:
        op.create_table(
            "daily_reports",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("driver_id", sa.Integer(), sa.ForeignKey("drivers.id", ondelete="CASCADE"), nullable=False),
            sa.Column("report_date", sa.Date(), nullable=False),
            sa.Column("takuhaibin_completed", sa.Integer(), nullable=False, server_default="0"),
            sa.Column("takuhaibin_returned", sa.Integer(), nullable=False, server_default="0"),
            sa.Column("nekopos_completed", sa.Integer(), nullable=False, server_default="0"),
            sa.Column("nekopos_returned", sa.Integer(), nullable=False, server_default="0"),
            sa.Column("submitted_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
            sa.UniqueConstraint("driver_id", "report_date", name="uq_daily_reports_driver_date"),
        )
        op.create_index("idx_daily_reports_date", "daily_reports", ["report_date"])

    if "rate_master" not in existing_tables:
        op.create_table(
            "rate_master",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("kind", sa.String(32), nullable=False, unique=True),
            sa.Column("rate_per_completed", sa.Integer(), nullable=False, server_default="0"),
        )

    if "vehicles" not in existing_tables:
        op.create_table(
            "vehicles",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("number_prefix", sa.String(32), nullable=True),
            sa.Column("number_class", sa.String(8), nullable=True),
            sa.Column("number_hiragana", sa.String(8), nullable=True),
            sa.Column("number_numeric", sa.String(8), nullable=True),
            sa.Column("manufacturer", sa.String(128), nullable=True),
            sa.Column("brand", sa.String(128), nullable=True),
            sa.Column("current_mileage", sa.Integer(), nullable=False, server_default="0"),
            sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        )
        op.create_index("idx_vehicles_manufacturer_brand", "vehicles", ["manufacturer", "brand"])

    if "vehicle_drivers" not in existing_tables:
        op.create_table(
            "vehicle_drivers",
            sa.Column("vehicle_id", sa.Integer(), sa.ForeignKey("vehicles.id", ondelete="CASCADE"), primary_key=True),
            sa.Column("driver_id", sa.Integer(), sa.ForeignKey("drivers.id", ondelete="CASCADE"), primary_key=True),
        )

    if "driver_vehicle_preferences" not in existing_tables:
        op.create_table(
            "driver_vehicle_preferences",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("driver_id", sa.Integer(), sa.ForeignKey("drivers.id", ondelete="CASCADE"), nullable=False, unique=True),
            sa.Column("vehicle_id", sa.Integer(), sa.ForeignKey("vehicles.id", ondelete="CASCADE"), nullable=False),
            sa.Column("updated_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        )

    if "audit_events" not in existing_tables:
        op.create_table(
            "audit_events",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
            sa.Column("request_id", sa.String(64), nullable=True),
            sa.Column("actor_driver_id", sa.Integer(), sa.ForeignKey("drivers.id", ondelete="SET NULL"), nullable=True),
            sa.Column("actor_role", sa.String(32), nullable=True),
            sa.Column("action", sa.String(128), nullable=False),
            sa.Column("entity_type", sa.String(128), nullable=True),
            sa.Column("entity_id", sa.String(128), nullable=True),
            sa.Column("reason", sa.String(512), nullable=True),
            sa.Column("metadata_json", sa.Text(), nullable=True),
            sa.Column("client_ip", sa.String(64), nullable=True),
        )
        op.create_index("idx_audit_events_action", "audit_events", ["action"])


def downgrade() -> None:
    op.drop_table("audit_events")
    op.drop_table("driver_vehicle_preferences")
    op.drop_table("vehicle_drivers")
    op.drop_table("vehicles")
    op.drop_table("rate_master")
    op.drop_table("daily_reports")
    op.drop_table("drivers")
