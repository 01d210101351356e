"""Initial schema: depots, users, driver compliance, route authorizations, maintenance, audit, notifications

Revision ID: initial_schema
Revises:
Create Date: 2026-10-18 00:00:00.000000

"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.sql import func


# revision identifiers, used by Alembic.
revision = 'initial_schema'
down_revision = None
branch_labels = None
depends_on = None


def _soft_delete_columns():
    return [
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('deleted_at', sa.DateTime(), nullable=True),
    ]


def _timestamps():
    return [
        sa.Column('created_at', sa.DateTime(), server_default=func.now()),
        sa.Column('updated_at', sa.DateTime(), server_default=func.now()),
    ]


def _active_row_where():
    # Условие частичного уникального индекса для текущего диалекта
    if op.get_bind().dialect.name == 'sqlite':
        return sa.text('is_active = 1 AND deleted_at IS NULL')
    return sa.text('is_active = true AND deleted_at IS NULL')


def upgrade() -> None:
    """
    Создание таблиц учета допусков
    """
    op.create_table(
        'depots',
        sa.Column('id', sa.Integer(), nullable=False, autoincrement=True),
        sa.Column('name', sa.String(length=200), nullable=False),
        sa.Column('code', sa.String(length=50), nullable=False),
        sa.Column('address', sa.String(length=500), nullable=True),
        *_soft_delete_columns(),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_depots_id', 'depots', ['id'])
    op.create_index('ix_depots_code', 'depots', ['code'], unique=True)
    op.create_index('ix_depots_is_active', 'depots', ['is_active'])

    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), nullable=False, autoincrement=True),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('hashed_password', sa.String(length=255), nullable=False),
        sa.Column('role', sa.String(length=50), nullable=False),
        sa.Column('depot_id', sa.Integer(), sa.ForeignKey('depots.id', ondelete='SET NULL'), nullable=True),
        *_soft_delete_columns(),
        *_timestamps(),
        sa.Column('last_login', sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_users_id', 'users', ['id'])
    op.create_index('ix_users_email', 'users', ['email'], unique=True)
    op.create_index('ix_users_role', 'users', ['role'])
    op.create_index('ix_users_depot_id', 'users', ['depot_id'])
    op.create_index('ix_users_is_active', 'users', ['is_active'])
    op.create_index('idx_users_role_depot', 'users', ['role', 'depot_id'])

    op.create_table(
        'driver_profiles',
        sa.Column('id', sa.Integer(), nullable=False, autoincrement=True),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False, unique=True),
        sa.Column('pf_number', sa.String(length=50), nullable=False),
        sa.Column('driver_name', sa.String(length=200), nullable=False),
        sa.Column('designation', sa.String(length=200), nullable=False),
        sa.Column('basic_pay', sa.Integer(), nullable=False),
        sa.Column('date_of_appointment', sa.Date(), nullable=False),
        sa.Column('date_of_entry', sa.Date(), nullable=False),
        sa.Column('depot_id', sa.Integer(), sa.ForeignKey('depots.id'), nullable=False),
        *_soft_delete_columns(),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_driver_profiles_id', 'driver_profiles', ['id'])
    op.create_index('ix_driver_profiles_pf_number', 'driver_profiles', ['pf_number'], unique=True)
    op.create_index('ix_driver_profiles_driver_name', 'driver_profiles', ['driver_name'])
    op.create_index('ix_driver_profiles_depot_id', 'driver_profiles', ['depot_id'])
    op.create_index('ix_driver_profiles_is_active', 'driver_profiles', ['is_active'])

    op.create_table(
        'compliance_types',
        sa.Column('id', sa.Integer(), nullable=False, autoincrement=True),
        sa.Column('name', sa.String(length=50), nullable=False),
        sa.Column('description', sa.String(length=500), nullable=True),
        sa.Column('default_frequency_months', sa.Integer(), nullable=False),
        *_soft_delete_columns(),
        sa.Column('created_at', sa.DateTime(), server_default=func.now()),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_compliance_types_id', 'compliance_types', ['id'])
    op.create_index('ix_compliance_types_name', 'compliance_types', ['name'], unique=True)

    op.create_table(
        'driver_compliances',
        sa.Column('id', sa.Integer(), nullable=False, autoincrement=True),
        sa.Column('driver_profile_id', sa.Integer(), sa.ForeignKey('driver_profiles.id'), nullable=False),
        sa.Column('compliance_type_id', sa.Integer(), sa.ForeignKey('compliance_types.id'), nullable=False),
        sa.Column('done_date', sa.Date(), nullable=False),
        sa.Column('due_date', sa.Date(), nullable=False),
        sa.Column('frequency_months', sa.Integer(), nullable=False),
        sa.Column('notes', sa.Text(), nullable=True),
        *_soft_delete_columns(),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_driver_compliances_id', 'driver_compliances', ['id'])
    op.create_index('ix_driver_compliances_driver_profile_id', 'driver_compliances', ['driver_profile_id'])
    op.create_index('ix_driver_compliances_compliance_type_id', 'driver_compliances', ['compliance_type_id'])
    op.create_index('ix_driver_compliances_due_date', 'driver_compliances', ['due_date'])
    op.create_index('ix_driver_compliances_is_active', 'driver_compliances', ['is_active'])
    op.create_index('idx_driver_compliance_due_active', 'driver_compliances', ['due_date', 'is_active'])
    op.create_index(
        'uq_driver_compliance_active_pair',
        'driver_compliances',
        ['driver_profile_id', 'compliance_type_id'],
        unique=True,
        postgresql_where=_active_row_where(),
        sqlite_where=_active_row_where(),
    )

    op.create_table(
        'route_sections',
        sa.Column('id', sa.Integer(), nullable=False, autoincrement=True),
        sa.Column('code', sa.String(length=50), nullable=False),
        sa.Column('name', sa.String(length=200), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('is_predefined', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('depot_id', sa.Integer(), sa.ForeignKey('depots.id'), nullable=True),
        *_soft_delete_columns(),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_route_sections_id', 'route_sections', ['id'])
    op.create_index('ix_route_sections_code', 'route_sections', ['code'])
    op.create_index('ix_route_sections_depot_id', 'route_sections', ['depot_id'])
    op.create_index('ix_route_sections_is_active', 'route_sections', ['is_active'])

    op.create_table(
        'driver_route_auths',
        sa.Column('id', sa.Integer(), nullable=False, autoincrement=True),
        sa.Column('driver_profile_id', sa.Integer(), sa.ForeignKey('driver_profiles.id'), nullable=False),
        sa.Column('route_section_id', sa.Integer(), sa.ForeignKey('route_sections.id'), nullable=False),
        sa.Column('authorized_date', sa.Date(), nullable=False),
        sa.Column('expiry_date', sa.Date(), nullable=False),
        *_soft_delete_columns(),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_driver_route_auths_id', 'driver_route_auths', ['id'])
    op.create_index('ix_driver_route_auths_driver_profile_id', 'driver_route_auths', ['driver_profile_id'])
    op.create_index('ix_driver_route_auths_route_section_id', 'driver_route_auths', ['route_section_id'])
    op.create_index('ix_driver_route_auths_expiry_date', 'driver_route_auths', ['expiry_date'])
    op.create_index('ix_driver_route_auths_is_active', 'driver_route_auths', ['is_active'])
    op.create_index(
        'uq_driver_route_auth_active_pair',
        'driver_route_auths',
        ['driver_profile_id', 'route_section_id'],
        unique=True,
        postgresql_where=_active_row_where(),
        sqlite_where=_active_row_where(),
    )

    op.create_table(
        'assets',
        sa.Column('id', sa.Integer(), nullable=False, autoincrement=True),
        sa.Column('asset_number', sa.String(length=100), nullable=False),
        sa.Column('asset_type', sa.String(length=50), nullable=False),
        sa.Column('depot_id', sa.Integer(), sa.ForeignKey('depots.id'), nullable=False),
        sa.Column('current_hours', sa.Integer(), nullable=True),
        sa.Column('last_service_date', sa.Date(), nullable=True),
        *_soft_delete_columns(),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_assets_id', 'assets', ['id'])
    op.create_index('ix_assets_asset_number', 'assets', ['asset_number'])
    op.create_index('ix_assets_depot_id', 'assets', ['depot_id'])
    op.create_index('ix_assets_is_active', 'assets', ['is_active'])

    op.create_table(
        'maintenance_types',
        sa.Column('id', sa.Integer(), nullable=False, autoincrement=True),
        sa.Column('name', sa.String(length=200), nullable=False, unique=True),
        sa.Column('description', sa.String(length=500), nullable=True),
        sa.Column('frequency_days', sa.Integer(), nullable=True),
        sa.Column('frequency_hours', sa.Integer(), nullable=True),
        *_soft_delete_columns(),
        sa.Column('created_at', sa.DateTime(), server_default=func.now()),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_maintenance_types_id', 'maintenance_types', ['id'])

    op.create_table(
        'maintenance_schedules',
        sa.Column('id', sa.Integer(), nullable=False, autoincrement=True),
        sa.Column('asset_id', sa.Integer(), sa.ForeignKey('assets.id'), nullable=False),
        sa.Column('maintenance_type_id', sa.Integer(), sa.ForeignKey('maintenance_types.id'), nullable=False),
        sa.Column('last_completed_date', sa.Date(), nullable=True),
        sa.Column('next_due_date', sa.Date(), nullable=True),
        sa.Column('last_completed_hours', sa.Integer(), nullable=True),
        sa.Column('next_due_hours', sa.Integer(), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        *_soft_delete_columns(),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_maintenance_schedules_id', 'maintenance_schedules', ['id'])
    op.create_index('ix_maintenance_schedules_asset_id', 'maintenance_schedules', ['asset_id'])
    op.create_index('ix_maintenance_schedules_maintenance_type_id', 'maintenance_schedules', ['maintenance_type_id'])
    op.create_index('ix_maintenance_schedules_next_due_date', 'maintenance_schedules', ['next_due_date'])
    op.create_index('ix_maintenance_schedules_is_active', 'maintenance_schedules', ['is_active'])

    op.create_table(
        'audit_logs',
        sa.Column('id', sa.Integer(), nullable=False, autoincrement=True),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='SET NULL'), nullable=True),
        sa.Column('depot_id', sa.Integer(), sa.ForeignKey('depots.id', ondelete='SET NULL'), nullable=True),
        sa.Column('entity_type', sa.String(length=100), nullable=False),
        sa.Column('entity_id', sa.String(length=100), nullable=False),
        sa.Column('action', sa.String(length=20), nullable=False),
        sa.Column('old_value', sa.Text(), nullable=True),
        sa.Column('new_value', sa.Text(), nullable=True),
        sa.Column('ip_address', sa.String(length=50), nullable=True),
        sa.Column('user_agent', sa.String(length=500), nullable=True),
        sa.Column('created_at', sa.DateTime(), server_default=func.now()),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_audit_logs_id', 'audit_logs', ['id'])
    op.create_index('ix_audit_logs_user_id', 'audit_logs', ['user_id'])
    op.create_index('ix_audit_logs_depot_id', 'audit_logs', ['depot_id'])
    op.create_index('ix_audit_logs_entity_type', 'audit_logs', ['entity_type'])
    op.create_index('ix_audit_logs_entity_id', 'audit_logs', ['entity_id'])
    op.create_index('ix_audit_logs_action', 'audit_logs', ['action'])
    op.create_index('ix_audit_logs_created_at', 'audit_logs', ['created_at'])
    op.create_index('idx_audit_logs_entity', 'audit_logs', ['entity_type', 'entity_id'])
    op.create_index('idx_audit_logs_depot_created', 'audit_logs', ['depot_id', 'created_at'])

    op.create_table(
        'notifications',
        sa.Column('id', sa.Integer(), nullable=False, autoincrement=True),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('title', sa.String(length=300), nullable=False),
        sa.Column('message', sa.Text(), nullable=False),
        sa.Column('category', sa.String(length=100), nullable=True),
        sa.Column('is_read', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('read_at', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), server_default=func.now()),
        sa.Column('related_entity_type', sa.String(length=100), nullable=True),
        sa.Column('related_entity_id', sa.Integer(), nullable=True),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_notifications_id', 'notifications', ['id'])
    op.create_index('ix_notifications_user_id', 'notifications', ['user_id'])
    op.create_index('ix_notifications_category', 'notifications', ['category'])
    op.create_index('ix_notifications_is_read', 'notifications', ['is_read'])
    op.create_index('ix_notifications_created_at', 'notifications', ['created_at'])
    op.create_index('idx_notifications_user_created', 'notifications', ['user_id', 'created_at'])
    op.create_index('idx_notifications_user_read', 'notifications', ['user_id', 'is_read'])
    op.create_index('idx_notifications_related', 'notifications', ['related_entity_type', 'related_entity_id'])

    op.create_table(
        'system_settings',
        sa.Column('id', sa.Integer(), nullable=False, autoincrement=True),
        sa.Column('key', sa.String(length=100), nullable=False),
        sa.Column('value', sa.Text(), nullable=False),
        sa.Column('description', sa.String(length=500), nullable=True),
        sa.Column('updated_by', sa.Integer(), sa.ForeignKey('users.id', ondelete='SET NULL'), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_system_settings_id', 'system_settings', ['id'])
    op.create_index('ix_system_settings_key', 'system_settings', ['key'], unique=True)


def downgrade() -> None:
    """
    Удаление таблиц учета допусков
    """
    for table in (
        'system_settings',
        'notifications',
        'audit_logs',
        'maintenance_schedules',
        'maintenance_types',
        'assets',
        'driver_route_auths',
        'route_sections',
        'driver_compliances',
        'compliance_types',
        'driver_profiles',
        'users',
        'depots',
    ):
        op.drop_table(table)
