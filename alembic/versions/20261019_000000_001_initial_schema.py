# Campeiro - Photo Marketplace API
# Copyright (c) 2026 George Scott Foley
# ORCID: 0009-0006-4957-0540
# Email: Georgescottfoley@proton.me
# Licensed under the MIT License - see LICENSE file for details

"""Initial schema: users, sessions, audit_logs and marketplace entities

Revision ID: 001
Revises:
Create Date: 2026-10-19

Ids are String(36) UUIDs so the schema matches campeiro.data.models on
both PostgreSQL and SQLite.
"""
from alembic import op
import sqlalchemy as sa

# revision identifiers
revision = '001'
down_revision = None
branch_labels = None
depends_on = None


def _timestamps(updated=True):
    cols = [
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.func.now()),
    ]
    if updated:
        cols.append(
            sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False,
                      server_default=sa.func.now())
        )
    return cols


def upgrade():
    # ------------------------------------------------------------------
    # Identity and sessions
    # ------------------------------------------------------------------
    op.create_table(
        'users',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('email', sa.String(255), nullable=False),
        sa.Column('cpf', sa.String(11), nullable=False),
        sa.Column('phone', sa.String(20), nullable=True),
        sa.Column('password_hash', sa.String(255), nullable=True),
        sa.Column('role', sa.String(20), nullable=False, server_default='client'),
        *_timestamps(),
        sa.UniqueConstraint('cpf', name='users_cpf_key'),
    )
    op.create_index('ix_users_email', 'users', ['email'], unique=True)

    op.create_table(
        'sessions',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('user_id', sa.String(36), nullable=False),
        sa.Column('user_agent', sa.String(255), nullable=True),
        sa.Column('ip_address', sa.String(45), nullable=True,
                  comment='Client IP (IPv4 or IPv6)'),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('is_revoked', sa.Boolean, nullable=False, server_default=sa.false()),
        *_timestamps(updated=False),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
    )
    op.create_index('ix_sessions_user_id', 'sessions', ['user_id'])

    # Partial index for active sessions (not yet revoked)
    op.execute("""
        CREATE INDEX idx_sessions_active
        ON sessions (user_id, created_at DESC)
        WHERE is_revoked = false
    """)

    # ------------------------------------------------------------------
    # Audit trail (append only)
    # ------------------------------------------------------------------
    op.create_table(
        'audit_logs',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('level', sa.String(10), nullable=False),
        sa.Column('event', sa.String(50), nullable=False),
        sa.Column('message', sa.JSON, nullable=False),
        sa.Column('user_id', sa.String(36), nullable=True),
        sa.Column('ip_address', sa.String(45), nullable=True),
        sa.Column('request_id', sa.String(64), nullable=True),
        *_timestamps(updated=False),
    )
    op.create_index('ix_audit_logs_level', 'audit_logs', ['level'])
    op.create_index('ix_audit_logs_event', 'audit_logs', ['event'])
    op.create_index('ix_audit_logs_user_id', 'audit_logs', ['user_id'])
    op.create_index('ix_audit_logs_created_at', 'audit_logs', ['created_at'])

    # ------------------------------------------------------------------
    # Marketplace entities
    # ------------------------------------------------------------------
    op.create_table(
        'events',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('location', sa.String(255), nullable=True),
        sa.Column('description', sa.Text, nullable=True),
        sa.Column('starts_at', sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
    )

    op.create_table(
        'photos',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('event_id', sa.String(36), nullable=False),
        sa.Column('storage_key', sa.String(512), nullable=False),
        sa.Column('price_cents', sa.Integer, nullable=False, server_default='0'),
        sa.Column('meta', sa.JSON, nullable=True),
        *_timestamps(updated=False),
        sa.ForeignKeyConstraint(['event_id'], ['events.id'], ondelete='CASCADE'),
    )
    op.create_index('ix_photos_event_id', 'photos', ['event_id'])

    op.create_table(
        'selections',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('user_id', sa.String(36), nullable=False),
        sa.Column('event_id', sa.String(36), nullable=False),
        *_timestamps(updated=False),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['event_id'], ['events.id'], ondelete='CASCADE'),
    )
    op.create_index('ix_selections_user_id', 'selections', ['user_id'])

    op.create_table(
        'selection_items',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('selection_id', sa.String(36), nullable=False),
        sa.Column('photo_id', sa.String(36), nullable=False),
        *_timestamps(updated=False),
        sa.ForeignKeyConstraint(['selection_id'], ['selections.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['photo_id'], ['photos.id'], ondelete='CASCADE'),
    )
    op.create_index('ix_selection_items_selection_id', 'selection_items', ['selection_id'])

    op.create_table(
        'orders',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('user_id', sa.String(36), nullable=False),
        sa.Column('selection_id', sa.String(36), nullable=True),
        sa.Column('status', sa.String(20), nullable=False, server_default='pending'),
        sa.Column('total_cents', sa.Integer, nullable=False, server_default='0'),
        *_timestamps(),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['selection_id'], ['selections.id'], ondelete='SET NULL'),
    )
    op.create_index('ix_orders_user_id', 'orders', ['user_id'])


def downgrade():
    op.drop_table('orders')
    op.drop_table('selection_items')
    op.drop_table('selections')
    op.drop_table('photos')
    op.drop_table('events')
    op.drop_table('audit_logs')
    op.execute('DROP INDEX IF EXISTS idx_sessions_active')
    op.drop_table('sessions')
    op.drop_table('users')
