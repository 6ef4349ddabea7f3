"""Initial schema with users, managed accounts and tasks.

Revision ID: 001
Revises:
Create Date: 2026-10-18

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = '001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # Create users table (enums will be created automatically)
    op.create_table(
        'users',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('email', sa.String(255), nullable=False),
        sa.Column('password', sa.String(255), nullable=False),
        sa.Column('role', sa.Enum('owner', 'manager', 'admin', name='user_role'), nullable=False, server_default='owner'),
        sa.Column('status', sa.Enum('pending', 'active', 'suspended', name='user_status'), nullable=False, server_default='pending'),
        sa.Column('created_at', sa.DateTime, nullable=False, server_default=sa.text('NOW()')),
        sa.Column('updated_at', sa.DateTime, nullable=False, server_default=sa.text('NOW()')),
    )
    op.create_index('ix_users_email', 'users', ['email'], unique=True)
    op.create_index('ix_users_role', 'users', ['role'])
    op.create_index('ix_users_status', 'users', ['status'])

    # Create managed_accounts table
    op.create_table(
        'managed_accounts',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('owner_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('manager_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('users.id', ondelete='SET NULL')),
        sa.Column('account_type', sa.String(100), nullable=False),
        sa.Column('credentials', sa.Text),
        sa.Column('status', sa.Enum('pending', 'active', 'suspended', 'completed', name='account_status'), nullable=False, server_default='pending'),
        sa.Column('management_instructions', sa.Text, nullable=False, server_default=''),
        sa.Column('created_at', sa.DateTime, nullable=False, server_default=sa.text('NOW()')),
        sa.Column('updated_at', sa.DateTime, nullable=False, server_default=sa.text('NOW()')),
    )
    op.create_index('ix_managed_accounts_owner_id', 'managed_accounts', ['owner_id'])
    op.create_index('ix_managed_accounts_manager_id', 'managed_accounts', ['manager_id'])
    op.create_index('ix_managed_accounts_status', 'managed_accounts', ['status'])
    op.create_index('ix_managed_accounts_created_at', 'managed_accounts', ['created_at'])

    # Create tasks table
    op.create_table(
        'tasks',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('account_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('managed_accounts.id', ondelete='CASCADE'), nullable=False),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('description', sa.Text),
        sa.Column('priority', sa.Enum('low', 'medium', 'high', name='task_priority'), nullable=False, server_default='medium'),
        sa.Column('status', sa.Enum('pending', 'in-progress', 'completed', 'cancelled', name='task_status'), nullable=False, server_default='pending'),
        sa.Column('due_date', sa.Date),
        sa.Column('completion_status', sa.Numeric(5, 2), nullable=False, server_default='0'),
        sa.Column('created_by', postgresql.UUID(as_uuid=True), sa.ForeignKey('users.id', ondelete='SET NULL')),
        sa.Column('assigned_to', postgresql.UUID(as_uuid=True), sa.ForeignKey('users.id', ondelete='SET NULL')),
        sa.Column('created_at', sa.DateTime, nullable=False, server_default=sa.text('NOW()')),
        sa.Column('updated_at', sa.DateTime, nullable=False, server_default=sa.text('NOW()')),
        sa.CheckConstraint(
            'completion_status >= 0 AND completion_status <= 100',
            name='valid_completion_status'
        )
    )
    op.create_index('ix_tasks_account_id', 'tasks', ['account_id'])
    op.create_index('ix_tasks_assigned_to', 'tasks', ['assigned_to'])
    op.create_index('ix_tasks_status', 'tasks', ['status'])
    op.create_index('ix_tasks_priority', 'tasks', ['priority'])
    op.create_index('ix_tasks_due_date', 'tasks', ['due_date'])
    op.create_index('ix_tasks_created_at', 'tasks', ['created_at'])


def downgrade() -> None:
    # Drop tables
    op.drop_table('tasks')
    op.drop_table('managed_accounts')
    op.drop_table('users')

    # Drop enums
    op.execute('DROP TYPE IF EXISTS task_status')
    op.execute('DROP TYPE IF EXISTS task_priority')
    op.execute('DROP TYPE IF EXISTS account_status')
    op.execute('DROP TYPE IF EXISTS user_status')
    op.execute('DROP TYPE IF EXISTS user_role')
