"""initial_crm_schema

Revision ID: 3f9d2b71c0a4
Revises:
Create Date: 2026-10-17 10:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from realty_crm.db.base import UUIDType

# revision identifiers, used by Alembic.
revision: str = '3f9d2b71c0a4'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _common_columns() -> list[sa.Column]:
    """Primary key, owner and timestamps shared by every CRM table."""
    return [
        sa.Column('id', UUIDType(), nullable=False),
        sa.Column('user_id', sa.String(length=64), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
    ]


def _owner_indexes(table: str) -> None:
    op.create_index(f'ix_{table}_user_id', table, ['user_id'])
    op.create_index(f'ix_{table}_created_at', table, ['created_at'])


def upgrade() -> None:
    """Create automation, CRM record and mail tables."""
    op.create_table('automation_rules',
        *_common_columns(),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('trigger_type', sa.String(length=20), nullable=False, comment='email, lead, property, deadline'),
        sa.Column('trigger_condition', sa.Text(), nullable=False),
        # Ordered [{id, type, details}, ...]
        sa.Column('actions', sa.JSON(), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    _owner_indexes('automation_rules')
    op.create_index('ix_automation_rules_trigger_type', 'automation_rules', ['trigger_type'])
    op.create_index('ix_automation_rules_user_created', 'automation_rules', ['user_id', 'created_at'])

    op.create_table('deadline_alerts',
        *_common_columns(),
        sa.Column('title', sa.String(length=255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('due_date', sa.DateTime(), nullable=False),
        sa.Column('category', sa.String(length=20), nullable=False, comment='payment, contract, follow-up, other'),
        sa.Column('priority', sa.String(length=10), nullable=False, comment='low, medium, high'),
        sa.Column('status', sa.String(length=20), nullable=False, comment='pending, acknowledged, resolved'),
        sa.PrimaryKeyConstraint('id'),
    )
    _owner_indexes('deadline_alerts')
    op.create_index('ix_deadline_alerts_due_date', 'deadline_alerts', ['due_date'])
    op.create_index('ix_deadline_alerts_status', 'deadline_alerts', ['status'])

    op.create_table('leads',
        *_common_columns(),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=True),
        sa.Column('phone', sa.String(length=50), nullable=True),
        sa.Column('status', sa.String(length=10), nullable=False, comment='cold, warm, hot'),
        sa.Column('source', sa.String(length=50), nullable=True, comment='website, referral, social, portal, ...'),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('response_time_minutes', sa.Float(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    _owner_indexes('leads')
    op.create_index('ix_leads_email', 'leads', ['email'])
    op.create_index('ix_leads_status', 'leads', ['status'])

    op.create_table('properties',
        *_common_columns(),
        sa.Column('title', sa.String(length=255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('price', sa.Float(), nullable=False),
        sa.Column('location', sa.String(length=255), nullable=True),
        sa.Column('property_type', sa.String(length=50), nullable=True, comment='house, apartment, condo, land, commercial'),
        sa.Column('status', sa.String(length=20), nullable=False, comment='active, inactive, sold'),
        sa.Column('views', sa.Integer(), nullable=False),
        sa.Column('sold_at', sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    _owner_indexes('properties')
    op.create_index('ix_properties_status', 'properties', ['status'])

    op.create_table('tasks',
        *_common_columns(),
        sa.Column('title', sa.String(length=255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('status', sa.String(length=20), nullable=False, comment='pending, in_progress, completed'),
        sa.Column('priority', sa.String(length=10), nullable=False, comment='low, medium, high'),
        sa.Column('due_date', sa.DateTime(), nullable=True),
        sa.Column('completed_at', sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    _owner_indexes('tasks')
    op.create_index('ix_tasks_status', 'tasks', ['status'])
    op.create_index('ix_tasks_due_date', 'tasks', ['due_date'])
    op.create_index('ix_tasks_user_status', 'tasks', ['user_id', 'status'])

    op.create_table('communications',
        *_common_columns(),
        sa.Column('type', sa.String(length=20), nullable=False, comment='email, whatsapp'),
        sa.Column('direction', sa.String(length=10), nullable=False, comment='sent, received'),
        sa.Column('recipient', sa.String(length=255), nullable=True),
        sa.Column('subject', sa.String(length=500), nullable=True),
        sa.Column('content', sa.Text(), nullable=True),
        sa.Column('delivery_status', sa.String(length=20), nullable=True, comment='sent, delivered, read, failed'),
        sa.Column('response_time_minutes', sa.Float(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    _owner_indexes('communications')
    op.create_index('ix_communications_type', 'communications', ['type'])

    op.create_table('email_accounts',
        *_common_columns(),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('display_name', sa.String(length=255), nullable=True),
        sa.Column('provider', sa.String(length=20), nullable=False, comment='smtp, gmail'),
        sa.Column('imap_host', sa.String(length=255), nullable=True),
        sa.Column('imap_port', sa.Integer(), nullable=True),
        sa.Column('smtp_host', sa.String(length=255), nullable=False),
        sa.Column('smtp_port', sa.Integer(), nullable=False),
        sa.Column('smtp_secure', sa.Boolean(), nullable=False, comment='implicit TLS (port 465) instead of STARTTLS'),
        sa.Column('username', sa.String(length=255), nullable=True),

        # Fernet-encrypted secrets
        sa.Column('password_encrypted', sa.Text(), nullable=True),
        sa.Column('oauth_access_token_encrypted', sa.Text(), nullable=True),
        sa.Column('oauth_refresh_token_encrypted', sa.Text(), nullable=True),
        sa.Column('oauth_expires_at', sa.DateTime(), nullable=True),

        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    _owner_indexes('email_accounts')
    op.create_index('ix_email_accounts_email', 'email_accounts', ['email'])

    op.create_table('email_logs',
        *_common_columns(),
        sa.Column('account_id', UUIDType(), nullable=True),
        sa.Column('recipients', sa.JSON(), nullable=False),
        sa.Column('subject', sa.String(length=500), nullable=False),
        sa.Column('provider', sa.String(length=20), nullable=False, comment='smtp, resend'),
        sa.Column('status', sa.String(length=20), nullable=False, comment='sent, failed'),
        sa.Column('message_id', sa.String(length=255), nullable=True),
        sa.Column('error', sa.Text(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    _owner_indexes('email_logs')
    op.create_index('ix_email_logs_account_id', 'email_logs', ['account_id'])
    op.create_index('ix_email_logs_status', 'email_logs', ['status'])


def downgrade() -> None:
    """Drop all CRM tables."""
    for table in (
        'email_logs',
        'email_accounts',
        'communications',
        'tasks',
        'properties',
        'leads',
        'deadline_alerts',
        'automation_rules',
    ):
        op.drop_table(table)
