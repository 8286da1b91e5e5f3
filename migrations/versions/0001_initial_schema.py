"""initial schema: users, servers, sites, system_settings, audit_events

Revision ID: 0001_initial_schema
Revises:
Create Date: 2026-10-18 09:12:41.204117

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '0001_initial_schema'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table('users',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('password_hash', sa.String(length=255), nullable=False),
        sa.Column('full_name', sa.String(length=255), nullable=True),
        sa.Column('is_admin', sa.Boolean(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=True),
        sa.Column('last_login_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('email')
    )

    op.create_table('servers',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('server_id', sa.String(length=100), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=True),
        sa.Column('ip_address', sa.String(length=45), nullable=True),
        sa.Column('connection_status', sa.String(length=30), nullable=False),
        sa.Column('phpmyadmin_url', sa.String(length=500), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('server_id')
    )
    op.create_index('ix_servers_connection_status', 'servers', ['connection_status'], unique=False)

    op.create_table('sites',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('uuid', sa.String(length=32), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('domain', sa.String(length=255), nullable=False),
        sa.Column('server_ref_id', sa.String(length=36), nullable=True),
        sa.Column('server_id', sa.String(length=100), nullable=True),
        sa.Column('status', sa.String(length=50), nullable=False),
        sa.Column('php_version', sa.String(length=10), nullable=True),
        sa.Column('application_id', sa.String(length=100), nullable=True),
        sa.Column('system_username', sa.String(length=100), nullable=True),
        sa.Column('wp_username', sa.String(length=100), nullable=True),
        sa.Column('database_name', sa.String(length=100), nullable=True),
        sa.Column('database_id', sa.String(length=100), nullable=True),
        sa.Column('database_username', sa.String(length=100), nullable=True),
        sa.Column('database_password', sa.String(length=255), nullable=True),
        sa.Column('database_host', sa.String(length=255), nullable=True),
        sa.Column('site_data', sa.JSON(), nullable=True),
        sa.Column('reminder', sa.Boolean(), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=True),
        sa.Column('reminder_sent_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('cloudflare_record_id', sa.String(length=100), nullable=True),
        sa.Column('has_dns_record', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
        sa.ForeignKeyConstraint(['server_ref_id'], ['servers.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('uuid'),
        sa.UniqueConstraint('domain')
    )
    # Reminder sweep: pending reminders ordered by age
    op.create_index('ix_sites_reminder_pending', 'sites', ['reminder', 'reminder_sent_at', 'created_at'], unique=False)

    op.create_table('system_settings',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('key', sa.String(length=100), nullable=False),
        sa.Column('value', sa.Text(), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('key')
    )

    op.create_table('audit_events',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('actor_user_id', sa.String(length=36), nullable=True),
        sa.Column('action', sa.String(length=255), nullable=False),
        sa.Column('metadata', sa.JSON(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
        sa.ForeignKeyConstraint(['actor_user_id'], ['users.id'], ),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_audit_events_created_at', 'audit_events', ['created_at'], unique=False)


def downgrade():
    op.drop_index('ix_audit_events_created_at', table_name='audit_events')
    op.drop_table('audit_events')
    op.drop_table('system_settings')
    op.drop_index('ix_sites_reminder_pending', table_name='sites')
    op.drop_table('sites')
    op.drop_index('ix_servers_connection_status', table_name='servers')
    op.drop_table('servers')
    op.drop_table('users')
