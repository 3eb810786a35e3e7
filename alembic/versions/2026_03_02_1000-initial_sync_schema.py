"""Initial sync schema

Revision ID: initial_sync_schema
Revises:
Create Date: 2026-03-02

"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

revision: str = "initial_sync_schema"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("now()"),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("now()"),
        ),
    ]


def _company_fk(ondelete: str = "CASCADE", nullable: bool = False) -> sa.Column:
    return sa.Column(
        "company_id",
        sa.UUID(),
        sa.ForeignKey("companies.id", ondelete=ondelete),
        nullable=nullable,
    )


def upgrade() -> None:
    op.create_table(
        "companies",
        sa.Column("id", sa.UUID(), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("chatwoot_account_id", sa.Integer(), nullable=True),
        sa.Column("chatwoot_api_key", sa.String(255), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_companies_chatwoot_account_id",
        "companies",
        ["chatwoot_account_id"],
        unique=True,
    )

    op.create_table(
        "users",
        sa.Column("id", sa.UUID(), nullable=False),
        _company_fk(),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("name", sa.String(255), nullable=True),
        sa.Column("chatwoot_agent_id", sa.Integer(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_users_company_chatwoot_agent",
        "users",
        ["company_id", "chatwoot_agent_id"],
    )

    op.create_table(
        "instances",
        sa.Column("id", sa.UUID(), nullable=False),
        _company_fk(),
        sa.Column("uazapi_instance_name", sa.String(255), nullable=False),
        sa.Column("uazapi_token", sa.String(255), nullable=True),
        sa.Column(
            "uazapi_status",
            sa.String(16),
            nullable=False,
            server_default="connecting",
        ),
        sa.Column("chatwoot_inbox_id", sa.Integer(), nullable=True),
        sa.Column("connected_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("disconnected_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("uazapi_instance_name"),
    )
    op.create_index("ix_instances_company_id", "instances", ["company_id"])

    op.create_table(
        "contacts",
        sa.Column("id", sa.UUID(), nullable=False),
        _company_fk(),
        sa.Column("phone", sa.String(32), nullable=False),
        sa.Column("phone_normalized", sa.String(32), nullable=False),
        sa.Column("name", sa.String(255), nullable=True),
        sa.Column("email", sa.String(255), nullable=True),
        sa.Column("avatar_url", sa.String(1024), nullable=True),
        sa.Column("chatwoot_contact_id", sa.Integer(), nullable=True),
        sa.Column("source", sa.String(32), nullable=False, server_default="whatsapp"),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint(
            "company_id", "phone_normalized", name="uq_contacts_company_phone"
        ),
    )
    op.create_index("ix_contacts_company_id", "contacts", ["company_id"])

    op.create_table(
        "kanban_stages",
        sa.Column("id", sa.UUID(), nullable=False),
        _company_fk(),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("slug", sa.String(100), nullable=False),
        sa.Column("color", sa.String(16), nullable=True),
        sa.Column("position", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("is_initial", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("is_final", sa.Boolean(), nullable=False, server_default=sa.false()),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("company_id", "slug", name="uq_kanban_stages_company_slug"),
    )
    op.create_index("ix_kanban_stages_company_id", "kanban_stages", ["company_id"])

    op.create_table(
        "conversations",
        sa.Column("id", sa.UUID(), nullable=False),
        _company_fk(),
        sa.Column(
            "contact_id",
            sa.UUID(),
            sa.ForeignKey("contacts.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("chatwoot_conversation_id", sa.Integer(), nullable=False),
        sa.Column("chatwoot_inbox_id", sa.Integer(), nullable=True),
        sa.Column(
            "stage_id",
            sa.UUID(),
            sa.ForeignKey("kanban_stages.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column(
            "assigned_to",
            sa.UUID(),
            sa.ForeignKey("users.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("priority", sa.String(16), nullable=False, server_default="none"),
        sa.Column("status", sa.String(16), nullable=False, server_default="open"),
        sa.Column("last_message", sa.String(255), nullable=True),
        sa.Column("unread_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("first_response_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("resolved_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "last_activity_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("now()"),
        ),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint(
            "company_id",
            "chatwoot_conversation_id",
            name="uq_conversations_company_chatwoot_conversation",
        ),
    )
    op.create_index("ix_conversations_company_id", "conversations", ["company_id"])
    op.create_index("ix_conversations_contact_id", "conversations", ["contact_id"])

    op.create_table(
        "timeline_events",
        sa.Column("id", sa.UUID(), nullable=False),
        _company_fk(),
        sa.Column(
            "contact_id",
            sa.UUID(),
            sa.ForeignKey("contacts.id", ondelete="CASCADE"),
            nullable=True,
        ),
        sa.Column(
            "conversation_id",
            sa.UUID(),
            sa.ForeignKey("conversations.id", ondelete="CASCADE"),
            nullable=True,
        ),
        sa.Column("event_type", sa.String(64), nullable=False),
        sa.Column(
            "data",
            postgresql.JSONB(astext_type=sa.Text()),
            nullable=False,
            server_default=sa.text("'{}'::jsonb"),
        ),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_timeline_events_conversation_created",
        "timeline_events",
        ["conversation_id", "created_at"],
    )

    op.create_table(
        "webhook_events",
        sa.Column("id", sa.UUID(), nullable=False),
        _company_fk(ondelete="SET NULL", nullable=True),
        sa.Column(
            "instance_id",
            sa.UUID(),
            sa.ForeignKey("instances.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("source", sa.String(32), nullable=False),
        sa.Column("event_type", sa.String(64), nullable=False),
        sa.Column("payload", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column("status", sa.String(16), nullable=False, server_default="processing"),
        sa.Column("attempts", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("last_error", sa.Text(), nullable=True),
        sa.Column("processed_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_webhook_events_status_created",
        "webhook_events",
        ["status", "created_at"],
    )


def downgrade() -> None:
    op.drop_index("ix_webhook_events_status_created", table_name="webhook_events")
    op.drop_table("webhook_events")
    op.drop_index(
        "ix_timeline_events_conversation_created", table_name="timeline_events"
    )
    op.drop_table("timeline_events")
    op.drop_index("ix_conversations_contact_id", table_name="conversations")
    op.drop_index("ix_conversations_company_id", table_name="conversations")
    op.drop_table("conversations")
    op.drop_index("ix_kanban_stages_company_id", table_name="kanban_stages")
    op.drop_table("kanban_stages")
    op.drop_index("ix_contacts_company_id", table_name="contacts")
    op.drop_table("contacts")
    op.drop_index("ix_instances_company_id", table_name="instances")
    op.drop_table("instances")
    op.drop_index("ix_users_company_chatwoot_agent", table_name="users")
    op.drop_table("users")
    op.drop_index("ix_companies_chatwoot_account_id", table_name="companies")
    op.drop_table("companies")
