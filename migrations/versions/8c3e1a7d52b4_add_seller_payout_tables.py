"""add seller payout account and payout method tables

Revision ID: 8c3e1a7d52b4
Revises:
Requires: the users table owned by the identity service
Create Date: 2026-10-17 11:42:08.311274

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '8c3e1a7d52b4'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade():
    op.create_table(
        "seller_payout_account",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("seller_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("version", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("schedule_frequency", sa.String(length=16), nullable=True),
        sa.Column("schedule_day_of_week", sa.Integer(), nullable=True),
        sa.Column("schedule_day_of_month", sa.Integer(), nullable=True),
        sa.Column("next_payout_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("last_payout_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("minimum_payout_amount", sa.Numeric(12, 2), nullable=False, server_default="0"),
        sa.Column("auto_payout", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_seller_payout_account_seller_id", "seller_payout_account", ["seller_id"], unique=True)

    op.create_table(
        "payout_method",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("public_id", sa.Uuid(as_uuid=True), nullable=False),
        sa.Column("account_id", sa.Integer(), sa.ForeignKey("seller_payout_account.id", ondelete="CASCADE"), nullable=False),
        sa.Column("kind", sa.String(length=32), nullable=False),
        sa.Column("bank_name", sa.String(length=100), nullable=True),
        sa.Column("account_number", sa.Text(), nullable=True),
        sa.Column("routing_number", sa.Text(), nullable=True),
        sa.Column("account_holder_name", sa.String(length=100), nullable=True),
        sa.Column("account_type", sa.String(length=16), nullable=True),
        sa.Column("country", sa.String(length=100), nullable=True),
        sa.Column("currency", sa.String(length=3), nullable=True),
        sa.Column("swift_code", sa.String(length=11), nullable=True),
        sa.Column("iban", sa.String(length=34), nullable=True),
        sa.Column("paypal_email", sa.String(length=320), nullable=True),
        sa.Column("mobile_money_provider", sa.String(length=100), nullable=True),
        sa.Column("mobile_money_number", sa.Text(), nullable=True),
        sa.Column("crypto_wallet", sa.String(length=255), nullable=True),
        sa.Column("is_default", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("verification_status", sa.String(length=16), nullable=False),
        sa.Column("verification_code", sa.String(length=32), nullable=True),
        sa.Column("added_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("verified_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("last_modified_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_payout_method_public_id", "payout_method", ["public_id"], unique=True)
    op.create_index("ix_payout_method_account_id", "payout_method", ["account_id"])
    op.create_index("ix_payout_method_kind", "payout_method", ["kind"])

    # at most one default method per seller
    op.create_index(
        "uq_payout_method_one_default",
        "payout_method",
        ["account_id"],
        unique=True,
        postgresql_where=sa.text("is_default = true"),
        sqlite_where=sa.text("is_default = 1"),
    )


def downgrade():
    op.drop_index("uq_payout_method_one_default", table_name="payout_method")
    op.drop_index("ix_payout_method_kind", table_name="payout_method")
    op.drop_index("ix_payout_method_account_id", table_name="payout_method")
    op.drop_index("ix_payout_method_public_id", table_name="payout_method")
    op.drop_table("payout_method")
    op.drop_index("ix_seller_payout_account_seller_id", table_name="seller_payout_account")
    op.drop_table("seller_payout_account")
