"""create ledger tables

Revision ID: 3f9c2a7d1b64
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision = "3f9c2a7d1b64"
down_revision = None
branch_labels = None
depends_on = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("(CURRENT_TIMESTAMP)"),
            nullable=True,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("(CURRENT_TIMESTAMP)"),
            nullable=True,
        ),
    ]


def upgrade() -> None:
    op.create_table(
        "members",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("first_name", sa.String(length=255), nullable=True),
        sa.Column("last_name", sa.String(length=255), nullable=True),
        sa.Column("email", sa.String(length=255), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_members_email"), "members", ["email"], unique=True)

    op.create_table(
        "member_activities",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("member_id", sa.String(length=36), nullable=False),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("value", sa.Float(), nullable=False),
        sa.Column("override_value", sa.Float(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(["member_id"], ["members.id"], ondelete="RESTRICT"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("member_id", "date", name="uq_member_activity_member_date"),
    )
    op.create_index(
        op.f("ix_member_activities_member_id"), "member_activities", ["member_id"], unique=False
    )
    op.create_index(op.f("ix_member_activities_date"), "member_activities", ["date"], unique=False)
    op.create_index(
        "ix_member_activities_member_date",
        "member_activities",
        ["member_id", "date"],
        unique=False,
    )

    op.create_table(
        "ticket_orders",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("member_id", sa.String(length=36), nullable=False),
        sa.Column("purchase_date", sa.Date(), nullable=False),
        sa.Column("tickets_quantity", sa.Integer(), nullable=False),
        sa.Column("price", sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column("order_reference", sa.String(length=255), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(["member_id"], ["members.id"], ondelete="RESTRICT"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        op.f("ix_ticket_orders_member_id"), "ticket_orders", ["member_id"], unique=False
    )
    op.create_index(
        op.f("ix_ticket_orders_purchase_date"), "ticket_orders", ["purchase_date"], unique=False
    )

    op.create_table(
        "subscriptions",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("member_id", sa.String(length=36), nullable=False),
        sa.Column("start_date", sa.Date(), nullable=False),
        sa.Column("end_date", sa.Date(), nullable=False),
        sa.Column("purchase_date", sa.Date(), nullable=False),
        sa.Column("price", sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column("order_reference", sa.String(length=255), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(["member_id"], ["members.id"], ondelete="RESTRICT"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        op.f("ix_subscriptions_member_id"), "subscriptions", ["member_id"], unique=False
    )
    op.create_index(
        op.f("ix_subscriptions_purchase_date"), "subscriptions", ["purchase_date"], unique=False
    )
    op.create_index(
        "ix_subscriptions_start_end", "subscriptions", ["start_date", "end_date"], unique=False
    )

    op.create_table(
        "memberships",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("member_id", sa.String(length=36), nullable=False),
        sa.Column("membership_start", sa.Date(), nullable=False),
        sa.Column("purchase_date", sa.Date(), nullable=False),
        sa.Column("price", sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column("order_reference", sa.String(length=255), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(["member_id"], ["members.id"], ondelete="RESTRICT"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_memberships_member_id"), "memberships", ["member_id"], unique=False)
    op.create_index(
        op.f("ix_memberships_purchase_date"), "memberships", ["purchase_date"], unique=False
    )


def downgrade() -> None:
    op.drop_index(op.f("ix_memberships_purchase_date"), table_name="memberships")
    op.drop_index(op.f("ix_memberships_member_id"), table_name="memberships")
    op.drop_table("memberships")
    op.drop_index("ix_subscriptions_start_end", table_name="subscriptions")
    op.drop_index(op.f("ix_subscriptions_purchase_date"), table_name="subscriptions")
    op.drop_index(op.f("ix_subscriptions_member_id"), table_name="subscriptions")
    op.drop_table("subscriptions")
    op.drop_index(op.f("ix_ticket_orders_purchase_date"), table_name="ticket_orders")
    op.drop_index(op.f("ix_ticket_orders_member_id"), table_name="ticket_orders")
    op.drop_table("ticket_orders")
    op.drop_index("ix_member_activities_member_date", table_name="member_activities")
    op.drop_index(op.f("ix_member_activities_date"), table_name="member_activities")
    op.drop_index(op.f("ix_member_activities_member_id"), table_name="member_activities")
    op.drop_table("member_activities")
    op.drop_index(op.f("ix_members_email"), table_name="members")
    op.drop_table("members")
