"""Initial schema: users, credentials, orders, items, shipping, sync and label jobs

Revision ID: 3f1d7c2a9b10
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = '3f1d7c2a9b10'
down_revision = None
branch_labels = None
depends_on = None

sync_job_type = sa.Enum('PULL_ORDERS', 'SHIPPING_INFO', name='syncjobtype')
sync_job_status = sa.Enum('RUNNING', 'SUCCESS', 'FAILED', name='syncjobstatus')
log_level = sa.Enum('INFO', 'ERROR', name='loglevel')
label_job_status = sa.Enum('PENDING', 'SUBMITTED', 'FAILED', name='labeljobstatus')


def upgrade() -> None:
    op.create_table(
        'users',
        sa.Column('id', sa.String(), nullable=False),
        sa.Column('email', sa.String(), nullable=True),
        sa.Column('name', sa.String(), nullable=True),
        sa.Column('apps_script_id', sa.String(), nullable=True),
        sa.Column('google_sheet_id', sa.String(), nullable=True),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_users_email', 'users', ['email'], unique=True)

    op.create_table(
        'marketplace_credentials',
        sa.Column('id', sa.String(), nullable=False),
        sa.Column('user_id', sa.String(), nullable=False),
        sa.Column('marketplace', sa.String(), nullable=False),
        sa.Column('value_encrypted', sa.String(), nullable=True),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.func.now(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.UniqueConstraint('user_id', 'marketplace', name='uq_marketplace_credentials_user_marketplace'),
    )
    op.create_index('ix_marketplace_credentials_user_id', 'marketplace_credentials', ['user_id'])
    op.create_index('ix_marketplace_credentials_marketplace', 'marketplace_credentials', ['marketplace'])

    op.create_table(
        'shipper_profiles',
        sa.Column('id', sa.String(), nullable=False),
        sa.Column('user_id', sa.String(), nullable=False),
        sa.Column('shipper_name', sa.String(), nullable=True),
        sa.Column('shipper_person_name', sa.String(), nullable=True),
        sa.Column('shipper_phone_number', sa.String(), nullable=True),
        sa.Column('shipper_street1', sa.String(), nullable=True),
        sa.Column('shipper_street2', sa.String(), nullable=True),
        sa.Column('shipper_city', sa.String(), nullable=True),
        sa.Column('shipper_state_code', sa.String(), nullable=True),
        sa.Column('shipper_postal_code', sa.String(), nullable=True),
        sa.Column('shipper_country_code', sa.String(), nullable=True),
        sa.Column('default_currency_code', sa.String(length=3), nullable=True),
        sa.Column('duties_payment_type', sa.String(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.func.now(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.UniqueConstraint('user_id'),
    )

    op.create_table(
        'orders',
        sa.Column('id', sa.String(), nullable=False),
        sa.Column('user_id', sa.String(), nullable=False),
        sa.Column('source', sa.String(), nullable=False),
        sa.Column('marketplace', sa.String(), nullable=False),
        sa.Column('marketplace_key', sa.String(), nullable=False),
        sa.Column('marketplace_created_at', sa.DateTime(), nullable=True),
        sa.Column('customer_name', sa.String(), nullable=False),
        sa.Column('status', sa.String(), nullable=False),
        sa.Column('ship_by_date', sa.DateTime(), nullable=True),
        sa.Column('currency', sa.String(length=3), nullable=True),
        sa.Column('total_price', sa.Numeric(12, 2), nullable=False),
        sa.Column('shipping_address', sa.JSON(), nullable=True),
        sa.Column('packing_status', sa.String(), nullable=True),
        sa.Column('production_notes', sa.String(), nullable=True),
        sa.Column('packing_edited_at', sa.DateTime(), nullable=True),
        sa.Column('production_edited_at', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.func.now(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.UniqueConstraint('user_id', 'marketplace', 'marketplace_key', name='orders_user_marketplace_key_unique'),
    )
    op.create_index('ix_orders_user_id', 'orders', ['user_id'])
    op.create_index('ix_orders_source', 'orders', ['source'])

    op.create_table(
        'order_items',
        sa.Column('id', sa.String(), nullable=False),
        sa.Column('order_id', sa.String(), nullable=False),
        sa.Column('marketplace_line_id', sa.String(), nullable=True),
        sa.Column('sku', sa.String(), nullable=False),
        sa.Column('product_name', sa.String(), nullable=False),
        sa.Column('variant_info', sa.String(), nullable=True),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('unit_price', sa.Numeric(12, 2), nullable=False),
        sa.Column('total_price', sa.Numeric(12, 2), nullable=False),
        sa.Column('image_url', sa.String(), nullable=True),
        sa.Column('notes', sa.String(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['order_id'], ['orders.id'], ondelete='CASCADE'),
    )
    op.create_index('ix_order_items_order_id', 'order_items', ['order_id'])

    op.create_table(
        'order_shippings',
        sa.Column('id', sa.String(), nullable=False),
        sa.Column('order_id', sa.String(), nullable=False),
        sa.Column('first_name', sa.String(), nullable=False),
        sa.Column('last_name', sa.String(), nullable=False),
        sa.Column('company', sa.String(), nullable=False),
        sa.Column('street1', sa.String(), nullable=False),
        sa.Column('street2', sa.String(), nullable=False),
        sa.Column('city', sa.String(), nullable=False),
        sa.Column('state', sa.String(), nullable=False),
        sa.Column('postal_code', sa.String(), nullable=False),
        sa.Column('country_code', sa.String(), nullable=False),
        sa.Column('phone', sa.String(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.func.now(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['order_id'], ['orders.id'], ondelete='CASCADE'),
        sa.UniqueConstraint('order_id'),
    )

    op.create_table(
        'sync_jobs',
        sa.Column('id', sa.String(), nullable=False),
        sa.Column('user_id', sa.String(), nullable=True),
        sa.Column('marketplace', sa.String(), nullable=True),
        sa.Column('job_type', sync_job_type, nullable=False),
        sa.Column('status', sync_job_status, nullable=True),
        sa.Column('started_at', sa.DateTime(), nullable=True),
        sa.Column('finished_at', sa.DateTime(), nullable=True),
        sa.Column('records_created', sa.Integer(), nullable=True),
        sa.Column('records_updated', sa.Integer(), nullable=True),
        sa.Column('records_failed', sa.Integer(), nullable=True),
        sa.Column('error_message', sa.String(), nullable=True),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
    )
    op.create_index('ix_sync_jobs_user_id', 'sync_jobs', ['user_id'])

    op.create_table(
        'sync_logs',
        sa.Column('id', sa.String(), nullable=False),
        sa.Column('sync_job_id', sa.String(), nullable=False),
        sa.Column('level', log_level, nullable=False),
        sa.Column('message', sa.String(), nullable=False),
        sa.Column('raw_payload', sa.JSON(), nullable=True),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['sync_job_id'], ['sync_jobs.id'], ondelete='CASCADE'),
    )

    op.create_table(
        'label_jobs',
        sa.Column('id', sa.String(), nullable=False),
        sa.Column('order_id', sa.String(), nullable=False),
        sa.Column('user_id', sa.String(), nullable=False),
        sa.Column('status', label_job_status, nullable=True),
        sa.Column('request_payload', sa.JSON(), nullable=True),
        sa.Column('response_payload', sa.JSON(), nullable=True),
        sa.Column('error', sa.String(), nullable=True),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.func.now(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['order_id'], ['orders.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
    )
    op.create_index('ix_label_jobs_order_id', 'label_jobs', ['order_id'])


def downgrade() -> None:
    op.drop_index('ix_label_jobs_order_id', table_name='label_jobs')
    op.drop_table('label_jobs')
    op.drop_table('sync_logs')
    op.drop_index('ix_sync_jobs_user_id', table_name='sync_jobs')
    op.drop_table('sync_jobs')
    op.drop_table('order_shippings')
    op.drop_index('ix_order_items_order_id', table_name='order_items')
    op.drop_table('order_items')
    op.drop_index('ix_orders_source', table_name='orders')
    op.drop_index('ix_orders_user_id', table_name='orders')
    op.drop_table('orders')
    op.drop_table('shipper_profiles')
    op.drop_index('ix_marketplace_credentials_marketplace', table_name='marketplace_credentials')
    op.drop_index('ix_marketplace_credentials_user_id', table_name='marketplace_credentials')
    op.drop_table('marketplace_credentials')
    op.drop_index('ix_users_email', table_name='users')
    op.drop_table('users')
    for enum_type in (label_job_status, log_level, sync_job_status, sync_job_type):
        enum_type.drop(op.get_bind(), checkfirst=True)
