"""rentloop core tables

Revision ID: 0001_rentloop_core
Revises:
Create Date: 2026-10-18 09:00:00
"""

from typing import Sequence

import sqlalchemy as sa
from alembic import op

revision: str = "0001_rentloop_core"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None

role_enum = sa.Enum("TENANT", "OWNER", "ADMIN", name="role_enum")
furnishing_enum = sa.Enum("FURNISHED", "SEMI_FURNISHED", "UNFURNISHED", name="furnishing_enum")
property_status_enum = sa.Enum(
    "AVAILABLE", "IN_DISCUSSION", "APPROVED", "RENTED", "ARCHIVED", name="property_status_enum"
)
lead_label_enum = sa.Enum("HOT", "WARM", "COLD", "LOST", "CONVERTED", name="lead_label_enum")
lead_stage_enum = sa.Enum(
    "ENQUIRY",
    "VIEWING_SCHEDULED",
    "VIEWING_DONE",
    "NEGOTIATING",
    "APPROVED",
    "CONFIRMED",
    "REJECTED",
    name="lead_stage_enum",
)
receipt_status_enum = sa.Enum("CONFIRMED", "CANCELLED", "COMPLETED", name="receipt_status_enum")
notification_type_enum = sa.Enum(
    "MESSAGE",
    "APPROVAL",
    "REJECTION",
    "DEAL_CONFIRMED",
    "ENQUIRY",
    "STATUS_CHANGE",
    "SYSTEM",
    name="notification_type_enum",
)
notification_category_enum = sa.Enum("CHAT", "PROPERTY", "DEAL", "SYSTEM", name="notification_category_enum")


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
    ]


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("email", sa.String(length=320), nullable=False),
        sa.Column("phone", sa.String(length=64), nullable=True),
        sa.Column("role", role_enum, nullable=False, server_default=sa.text("'TENANT'")),
        sa.Column("suspended", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("suspended_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("id", sa.Uuid(), nullable=False),
        *_timestamps(),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("email", name="uq_users_email"),
    )
    op.create_index("ix_users_created_at", "users", ["created_at"], unique=False)

    op.create_table(
        "properties",
        sa.Column("owner_id", sa.Uuid(), nullable=False),
        sa.Column("title", sa.String(length=200), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("address", sa.String(length=500), nullable=False),
        sa.Column("latitude", sa.Float(), nullable=False),
        sa.Column("longitude", sa.Float(), nullable=False),
        sa.Column("price", sa.Float(), nullable=False),
        sa.Column("bedrooms", sa.Integer(), nullable=False),
        sa.Column("bathrooms", sa.Integer(), nullable=False),
        sa.Column("area", sa.Float(), nullable=False),
        sa.Column("furnishing", furnishing_enum, nullable=False),
        sa.Column("status", property_status_enum, nullable=False, server_default=sa.text("'AVAILABLE'")),
        sa.Column("available", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("confirmed_tenant_id", sa.Uuid(), nullable=True),
        sa.Column("rented_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("archived_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("deleted_by_user_id", sa.Uuid(), nullable=True),
        sa.Column("hidden", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("hidden_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("hidden_reason", sa.String(length=500), nullable=True),
        sa.Column("images_json", sa.JSON(), nullable=False),
        sa.Column("rating_average", sa.Float(), nullable=False, server_default=sa.text("0")),
        sa.Column("rating_count", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("views", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("id", sa.Uuid(), nullable=False),
        *_timestamps(),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(["owner_id"], ["users.id"]),
        sa.ForeignKeyConstraint(["confirmed_tenant_id"], ["users.id"]),
        sa.ForeignKeyConstraint(["deleted_by_user_id"], ["users.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_properties_owner_id", "properties", ["owner_id"], unique=False)
    op.create_index("ix_properties_status", "properties", ["status"], unique=False)
    op.create_index(
        "ix_properties_price_bedrooms_bathrooms", "properties", ["price", "bedrooms", "bathrooms"], unique=False
    )
    op.create_index("ix_properties_created_at", "properties", ["created_at"], unique=False)

    op.create_table(
        "leads",
        sa.Column("owner_id", sa.Uuid(), nullable=False),
        sa.Column("tenant_id", sa.Uuid(), nullable=False),
        sa.Column("property_id", sa.Uuid(), nullable=False),
        sa.Column("label", lead_label_enum, nullable=False, server_default=sa.text("'WARM'")),
        sa.Column("stage", lead_stage_enum, nullable=False, server_default=sa.text("'ENQUIRY'")),
        sa.Column("last_contact_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("total_messages", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("tenant_budget", sa.Float(), nullable=True),
        sa.Column("preferred_move_in_date", sa.Date(), nullable=True),
        sa.Column("converted_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("rejected_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("rejection_reason", sa.String(length=500), nullable=True),
        sa.Column("id", sa.Uuid(), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(["owner_id"], ["users.id"]),
        sa.ForeignKeyConstraint(["tenant_id"], ["users.id"]),
        sa.ForeignKeyConstraint(["property_id"], ["properties.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("owner_id", "tenant_id", "property_id", name="uq_leads_owner_tenant_property"),
    )
    op.create_index("ix_leads_owner_label", "leads", ["owner_id", "label"], unique=False)
    op.create_index("ix_leads_owner_stage", "leads", ["owner_id", "stage"], unique=False)
    op.create_index("ix_leads_created_at", "leads", ["created_at"], unique=False)

    op.create_table(
        "lead_notes",
        sa.Column("lead_id", sa.Uuid(), nullable=False),
        sa.Column("author_user_id", sa.Uuid(), nullable=False),
        sa.Column("text", sa.String(length=500), nullable=False),
        sa.Column("noted_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("id", sa.Uuid(), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(["lead_id"], ["leads.id"]),
        sa.ForeignKeyConstraint(["author_user_id"], ["users.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_lead_notes_lead_id", "lead_notes", ["lead_id"], unique=False)

    op.create_table(
        "deal_receipts",
        sa.Column("receipt_id", sa.String(length=32), nullable=False),
        sa.Column("property_id", sa.Uuid(), nullable=False),
        sa.Column("owner_id", sa.Uuid(), nullable=False),
        sa.Column("tenant_id", sa.Uuid(), nullable=False),
        sa.Column("property_snapshot_json", sa.JSON(), nullable=False),
        sa.Column("agreed_rent", sa.Float(), nullable=False),
        sa.Column("security_deposit", sa.Float(), nullable=False, server_default=sa.text("0")),
        sa.Column("lease_start_date", sa.Date(), nullable=True),
        sa.Column("lease_duration_months", sa.Integer(), nullable=False, server_default=sa.text("12")),
        sa.Column("status", receipt_status_enum, nullable=False, server_default=sa.text("'CONFIRMED'")),
        sa.Column("confirmed_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("cancelled_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("cancelled_by_user_id", sa.Uuid(), nullable=True),
        sa.Column("cancellation_reason", sa.String(length=500), nullable=True),
        sa.Column("notes", sa.String(length=1000), nullable=True),
        sa.Column("terms_json", sa.JSON(), nullable=False),
        sa.Column("id", sa.Uuid(), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(["property_id"], ["properties.id"]),
        sa.ForeignKeyConstraint(["owner_id"], ["users.id"]),
        sa.ForeignKeyConstraint(["tenant_id"], ["users.id"]),
        sa.ForeignKeyConstraint(["cancelled_by_user_id"], ["users.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("receipt_id", name="uq_deal_receipts_receipt_id"),
    )
    op.create_index("ix_deal_receipts_property_id", "deal_receipts", ["property_id"], unique=False)
    op.create_index(
        "ix_deal_receipts_owner_confirmed_at", "deal_receipts", ["owner_id", "confirmed_at"], unique=False
    )
    op.create_index(
        "ix_deal_receipts_tenant_confirmed_at", "deal_receipts", ["tenant_id", "confirmed_at"], unique=False
    )
    op.create_index(
        "uq_deal_receipts_property_confirmed",
        "deal_receipts",
        ["property_id"],
        unique=True,
        postgresql_where=sa.text("status = 'CONFIRMED'"),
        sqlite_where=sa.text("status = 'CONFIRMED'"),
    )

    op.create_table(
        "receipt_sequences",
        sa.Column("year", sa.Integer(), autoincrement=False, nullable=False),
        sa.Column("last_value", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.PrimaryKeyConstraint("year"),
    )

    op.create_table(
        "notifications",
        sa.Column("user_id", sa.Uuid(), nullable=False),
        sa.Column("type", notification_type_enum, nullable=False),
        sa.Column("title", sa.String(length=200), nullable=False),
        sa.Column("body", sa.String(length=500), nullable=True),
        sa.Column("related_property_id", sa.Uuid(), nullable=True),
        sa.Column("related_user_id", sa.Uuid(), nullable=True),
        sa.Column("related_receipt_id", sa.Uuid(), nullable=True),
        sa.Column("action_url", sa.String(length=500), nullable=True),
        sa.Column("category", notification_category_enum, nullable=False, server_default=sa.text("'SYSTEM'")),
        sa.Column("read", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("read_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("delivered_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("id", sa.Uuid(), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"]),
        sa.ForeignKeyConstraint(["related_property_id"], ["properties.id"]),
        sa.ForeignKeyConstraint(["related_user_id"], ["users.id"]),
        sa.ForeignKeyConstraint(["related_receipt_id"], ["deal_receipts.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_notifications_user_read_created_at", "notifications", ["user_id", "read", "created_at"], unique=False
    )
    op.create_index("ix_notifications_read_at", "notifications", ["read_at"], unique=False)

    op.create_table(
        "messages",
        sa.Column("property_id", sa.Uuid(), nullable=False),
        sa.Column("sender_id", sa.Uuid(), nullable=False),
        sa.Column("receiver_id", sa.Uuid(), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("sent_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("read", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("id", sa.Uuid(), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(["property_id"], ["properties.id"]),
        sa.ForeignKeyConstraint(["sender_id"], ["users.id"]),
        sa.ForeignKeyConstraint(["receiver_id"], ["users.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_messages_property_sender_receiver", "messages", ["property_id", "sender_id", "receiver_id"], unique=False
    )
    op.create_index("ix_messages_sent_at", "messages", ["sent_at"], unique=False)

    op.create_table(
        "audit_logs",
        sa.Column("actor_user_id", sa.Uuid(), nullable=True),
        sa.Column("action", sa.String(length=100), nullable=False),
        sa.Column("target_type", sa.String(length=100), nullable=False),
        sa.Column("target_id", sa.String(length=255), nullable=False),
        sa.Column("metadata_json", sa.JSON(), nullable=False),
        sa.Column("id", sa.Uuid(), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(["actor_user_id"], ["users.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_audit_logs_target", "audit_logs", ["target_type", "target_id"], unique=False)
    op.create_index("ix_audit_logs_created_at", "audit_logs", ["created_at"], unique=False)


def downgrade() -> None:
    op.drop_index("ix_audit_logs_created_at", table_name="audit_logs")
    op.drop_index("ix_audit_logs_target", table_name="audit_logs")
    op.drop_table("audit_logs")

    op.drop_index("ix_messages_sent_at", table_name="messages")
    op.drop_index("ix_messages_property_sender_receiver", table_name="messages")
    op.drop_table("messages")

    op.drop_index("ix_notifications_read_at", table_name="notifications")
    op.drop_index("ix_notifications_user_read_created_at", table_name="notifications")
    op.drop_table("notifications")

    op.drop_table("receipt_sequences")

    op.drop_index("uq_deal_receipts_property_confirmed", table_name="deal_receipts")
    op.drop_index("ix_deal_receipts_tenant_confirmed_at", table_name="deal_receipts")
    op.drop_index("ix_deal_receipts_owner_confirmed_at", table_name="deal_receipts")
    op.drop_index("ix_deal_receipts_property_id", table_name="deal_receipts")
    op.drop_table("deal_receipts")

    op.drop_index("ix_lead_notes_lead_id", table_name="lead_notes")
    op.drop_table("lead_notes")

    op.drop_index("ix_leads_created_at", table_name="leads")
    op.drop_index("ix_leads_owner_stage", table_name="leads")
    op.drop_index("ix_leads_owner_label", table_name="leads")
    op.drop_table("leads")

    op.drop_index("ix_properties_created_at", table_name="properties")
    op.drop_index("ix_properties_price_bedrooms_bathrooms", table_name="properties")
    op.drop_index("ix_properties_status", table_name="properties")
    op.drop_index("ix_properties_owner_id", table_name="properties")
    op.drop_table("properties")

    op.drop_index("ix_users_created_at", table_name="users")
    op.drop_table("users")

    bind = op.get_bind()
    for enum_type in (
        notification_category_enum,
        notification_type_enum,
        receipt_status_enum,
        lead_stage_enum,
        lead_label_enum,
        property_status_enum,
        furnishing_enum,
        role_enum,
    ):
        enum_type.drop(bind, checkfirst=True)
