"""initial schema

Revision ID: 3c1d0a7e5b21
Revises:
Create Date: 2026-10-19 09:12:44.102311

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = '3c1d0a7e5b21'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

competition_status = postgresql.ENUM('DRAFT', 'LIVE', 'COMPLETED', 'CANCELLED', name='competition_status',
                                     create_type=False)
ticket_status = postgresql.ENUM('AVAILABLE', 'RESERVED', 'PURCHASED', name='ticket_status', create_type=False)
payment_status = postgresql.ENUM('REQUIRES_ACTION', 'COMPLETED', 'FAILED', name='payment_status', create_type=False)
entry_status = postgresql.ENUM('ACTIVE', 'WON', 'LOST', name='entry_status', create_type=False)


def upgrade() -> None:
    """Upgrade schema."""
    bind = op.get_bind()
    for enum_type in (competition_status, ticket_status, payment_status, entry_status):
        enum_type.create(bind, checkfirst=True)

    op.create_table(
        'roles',
        sa.Column('id', sa.Integer(), sa.Identity(always=True), primary_key=True),
        sa.Column('name', sa.Text(), nullable=False, unique=True),
    )
    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), sa.Identity(always=True), primary_key=True),
        sa.Column('first_name', sa.Text(), nullable=False),
        sa.Column('last_name', sa.Text(), nullable=False),
        sa.Column('email', sa.Text(), nullable=False, unique=True),
        sa.Column('phone_number', sa.Text(), nullable=True, unique=True),
        sa.Column('password_hash', sa.Text(), nullable=False),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.text("timezone('utc', now())"),
                  nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.text('true')),
    )
    op.create_table(
        'user_roles',
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='CASCADE'), primary_key=True),
        sa.Column('role_id', sa.Integer(), sa.ForeignKey('roles.id', ondelete='CASCADE'), primary_key=True),
    )
    op.create_table(
        'categories',
        sa.Column('id', sa.Integer(), sa.Identity(always=True), primary_key=True),
        sa.Column('name', sa.Text(), nullable=False, unique=True),
        sa.Column('slug', sa.Text(), nullable=False, unique=True),
    )
    op.create_table(
        'competitions',
        sa.Column('id', sa.Integer(), sa.Identity(always=True), primary_key=True),
        sa.Column('title', sa.Text(), nullable=False),
        sa.Column('description', sa.Text(), nullable=False),
        sa.Column('image_url', sa.Text(), nullable=True),
        sa.Column('category_id', sa.Integer(), sa.ForeignKey('categories.id', ondelete='SET NULL'), nullable=True),
        sa.Column('ticket_price', sa.Integer(), nullable=False),
        sa.Column('cash_alternative', sa.Integer(), nullable=True),
        sa.Column('max_tickets', sa.Integer(), nullable=False),
        sa.Column('tickets_sold', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('draw_date', sa.TIMESTAMP(timezone=True), nullable=False),
        sa.Column('quiz_question', sa.Text(), nullable=True),
        sa.Column('quiz_answers', postgresql.JSONB(), nullable=False, server_default=sa.text("'[]'::jsonb")),
        sa.Column('quiz_correct_answer', sa.Text(), nullable=True),
        sa.Column('is_featured', sa.Boolean(), nullable=False, server_default=sa.text('false')),
        sa.Column('status', competition_status, nullable=False, server_default='DRAFT'),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.TIMESTAMP(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.CheckConstraint('ticket_price >= 0', name='chk_ticket_price_nonneg'),
        sa.CheckConstraint('max_tickets >= 1', name='chk_max_tickets_positive'),
        sa.CheckConstraint('tickets_sold >= 0 AND tickets_sold <= max_tickets', name='chk_tickets_sold_range'),
    )
    op.create_index('ix_competitions_category_id', 'competitions', ['category_id'])
    op.create_index('ix_competitions_status', 'competitions', ['status'])

    op.create_table(
        'tickets',
        sa.Column('id', sa.Integer(), sa.Identity(always=True), primary_key=True),
        sa.Column('competition_id', sa.Integer(), sa.ForeignKey('competitions.id', ondelete='CASCADE'),
                  nullable=False),
        sa.Column('number', sa.Integer(), nullable=False),
        sa.Column('status', ticket_status, nullable=False, server_default='AVAILABLE'),
        sa.Column('holder_ref', sa.Text(), nullable=True),
        sa.Column('reserved_at', sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column('reserved_until', sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='SET NULL'), nullable=True),
        sa.Column('purchased_at', sa.TIMESTAMP(timezone=True), nullable=True),
        sa.UniqueConstraint('competition_id', 'number', name='uq_ticket_competition_number'),
        sa.CheckConstraint('number >= 1', name='chk_ticket_number_positive'),
        sa.CheckConstraint(
            "(status = 'RESERVED') = (holder_ref IS NOT NULL AND reserved_until IS NOT NULL)",
            name='chk_ticket_reserved_fields'
        ),
        sa.CheckConstraint(
            "status <> 'PURCHASED' OR (user_id IS NOT NULL AND purchased_at IS NOT NULL)",
            name='chk_ticket_purchased_fields'
        ),
    )
    op.create_index('ix_tickets_holder_ref', 'tickets', ['holder_ref'])
    op.create_index('ix_tickets_user_id', 'tickets', ['user_id'])
    op.create_index('ix_tickets_reserved_until', 'tickets', ['reserved_until'],
                    postgresql_where=sa.text("status = 'RESERVED'"))

    op.create_table(
        'cart_items',
        sa.Column('id', sa.Integer(), sa.Identity(always=True), primary_key=True),
        sa.Column('holder_ref', sa.Text(), nullable=False),
        sa.Column('competition_id', sa.Integer(), sa.ForeignKey('competitions.id', ondelete='CASCADE'),
                  nullable=False),
        sa.Column('ticket_numbers', postgresql.ARRAY(sa.Integer()), nullable=False),
        sa.Column('expires_at', sa.TIMESTAMP(timezone=True), nullable=False),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.UniqueConstraint('holder_ref', 'competition_id', name='uq_cart_holder_competition'),
    )
    op.create_index('ix_cart_items_holder_ref', 'cart_items', ['holder_ref'])

    op.create_table(
        'payments',
        sa.Column('id', sa.Integer(), sa.Identity(always=True), primary_key=True),
        sa.Column('payment_ref', sa.Text(), nullable=False, unique=True),
        sa.Column('holder_ref', sa.Text(), nullable=False),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='SET NULL'), nullable=True),
        sa.Column('amount', sa.Integer(), nullable=False),
        sa.Column('currency', sa.String(3), nullable=False),
        sa.Column('provider', sa.Text(), nullable=False),
        sa.Column('status', payment_status, nullable=False, server_default='REQUIRES_ACTION'),
        sa.Column('idempotency_key', sa.Text(), nullable=False, unique=True),
        sa.Column('client_secret', sa.Text(), nullable=False),
        sa.Column('items', postgresql.JSONB(), nullable=False),
        sa.Column('settlement', postgresql.JSONB(), nullable=True),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('paid_at', sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column('settled_at', sa.TIMESTAMP(timezone=True), nullable=True),
        sa.CheckConstraint('amount >= 0', name='chk_payment_amount_nonneg'),
    )
    op.create_index('ix_payments_holder_ref', 'payments', ['holder_ref'])
    op.create_index('ix_payments_user_id', 'payments', ['user_id'])

    op.create_table(
        'entries',
        sa.Column('id', sa.Integer(), sa.Identity(always=True), primary_key=True),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='RESTRICT'), nullable=False),
        sa.Column('competition_id', sa.Integer(), sa.ForeignKey('competitions.id', ondelete='RESTRICT'),
                  nullable=False),
        sa.Column('ticket_numbers', postgresql.ARRAY(sa.Integer()), nullable=False),
        sa.Column('payment_ref', sa.Text(), nullable=False),
        sa.Column('status', entry_status, nullable=False, server_default='ACTIVE'),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.UniqueConstraint('payment_ref', 'competition_id', name='uq_entry_payment_competition'),
    )
    op.create_index('ix_entries_user_id', 'entries', ['user_id'])
    op.create_index('ix_entries_competition_id', 'entries', ['competition_id'])

    op.create_table(
        'site_config',
        sa.Column('id', sa.Integer(), sa.Identity(always=True), primary_key=True),
        sa.Column('key', sa.Text(), nullable=False, unique=True),
        sa.Column('value', sa.Text(), nullable=False),
        sa.Column('updated_by', sa.Integer(), sa.ForeignKey('users.id', ondelete='SET NULL'), nullable=True),
        sa.Column('updated_at', sa.TIMESTAMP(timezone=True), server_default=sa.func.now(), nullable=False),
    )


def downgrade() -> None:
    """Downgrade schema."""
    for table in ('site_config', 'entries', 'payments', 'cart_items', 'tickets', 'competitions', 'categories',
                  'user_roles', 'users', 'roles'):
        op.drop_table(table)
    bind = op.get_bind()
    for enum_type in (entry_status, payment_status, ticket_status, competition_status):
        enum_type.drop(bind, checkfirst=True)
