"""Initial PetCare schema

Revision ID: 001
Revises:
Create Date: 2026-10-19 09:00:00.000000

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


user_role = postgresql.ENUM(
    'pet_owner', 'veterinarian', 'administrator', name='user_role', create_type=False
)
access_level = postgresql.ENUM(
    'standard', 'elevated', 'super_admin', name='access_level', create_type=False
)
pet_gender = postgresql.ENUM('male', 'female', 'unknown', name='pet_gender', create_type=False)
appointment_status = postgresql.ENUM(
    'scheduled', 'completed', 'cancelled', name='appointment_status', create_type=False
)
notification_type = postgresql.ENUM(
    'appointment_reminder',
    'appointment_cancelled',
    'appointment_rescheduled',
    'vaccination_due',
    'medication_reminder',
    'medical_update',
    'system_alert',
    'welcome',
    'password_changed',
    name='notification_type',
    create_type=False,
)
related_entity_type = postgresql.ENUM(
    'appointment', 'pet', 'medication', 'vaccination', name='related_entity_type', create_type=False
)
notification_priority = postgresql.ENUM(
    'low', 'normal', 'high', 'urgent', name='notification_priority', create_type=False
)
email_delivery_status = postgresql.ENUM(
    'sent', 'failed', name='email_delivery_status', create_type=False
)

ENUM_TYPES = (
    user_role,
    access_level,
    pet_gender,
    appointment_status,
    notification_type,
    related_entity_type,
    notification_priority,
    email_delivery_status,
)


def base_columns() -> list:
    """Columns shared by every table (see ``petcare_core.models.base.BaseModel``)."""
    return [
        sa.Column('id', postgresql.UUID(as_uuid=True), server_default=sa.text('gen_random_uuid()'), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('created_by', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('updated_by', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('deleted_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('is_deleted', sa.Boolean(), server_default=sa.text('false'), nullable=False),
    ]


def upgrade() -> None:
    bind = op.get_bind()
    for enum_type in ENUM_TYPES:
        enum_type.create(bind, checkfirst=True)

    # Create users table
    op.create_table('users',
        *base_columns(),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('password_hash', sa.String(length=255), nullable=False),
        sa.Column('full_name', sa.String(length=255), nullable=False),
        sa.Column('phone', sa.String(length=50), nullable=True),
        sa.Column('address', sa.Text(), nullable=True),
        sa.Column('role', user_role, nullable=False),
        sa.Column('access_level', access_level, nullable=True),
        sa.Column('specialization', sa.String(length=255), nullable=True),
        sa.Column('license_number', sa.String(length=100), nullable=True),
        sa.Column('email_notifications', sa.Boolean(), server_default=sa.text('true'), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('email', name='uq_users_email')
    )
    op.create_index('ix_users_email', 'users', ['email'])
    op.create_index('idx_users_role', 'users', ['role'])

    # Create pets table
    op.create_table('pets',
        *base_columns(),
        sa.Column('owner_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('species', sa.String(length=100), nullable=False),
        sa.Column('breed', sa.String(length=255), nullable=True),
        sa.Column('age', sa.Integer(), nullable=True),
        sa.Column('weight', sa.Numeric(precision=10, scale=2), nullable=True),
        sa.Column('color', sa.String(length=100), nullable=True),
        sa.Column('gender', pet_gender, nullable=True),
        sa.Column('microchip_id', sa.String(length=100), nullable=True),
        sa.Column('allergies', postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.CheckConstraint('age IS NULL OR age >= 0', name='check_pet_age_non_negative'),
        sa.CheckConstraint('weight IS NULL OR weight > 0', name='check_pet_weight_positive'),
        sa.ForeignKeyConstraint(['owner_id'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('microchip_id', name='uq_pets_microchip_id')
    )
    op.create_index('ix_pets_owner_id', 'pets', ['owner_id'])
    op.create_index('ix_pets_species', 'pets', ['species'])
    op.create_index('idx_pets_owner_active', 'pets', ['owner_id', 'is_deleted'])

    # Create appointments table
    op.create_table('appointments',
        *base_columns(),
        sa.Column('pet_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('owner_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('veterinarian_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('appointment_type', sa.String(length=100), nullable=False),
        sa.Column('date', sa.Date(), nullable=False),
        sa.Column('time', sa.Time(), nullable=True),
        sa.Column('reason', sa.Text(), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('status', appointment_status, nullable=False),
        sa.ForeignKeyConstraint(['pet_id'], ['pets.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['owner_id'], ['users.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['veterinarian_id'], ['users.id']),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_appointments_pet_id', 'appointments', ['pet_id'])
    op.create_index('ix_appointments_owner_id', 'appointments', ['owner_id'])
    op.create_index('ix_appointments_veterinarian_id', 'appointments', ['veterinarian_id'])
    op.create_index('ix_appointments_date', 'appointments', ['date'])
    op.create_index('ix_appointments_status', 'appointments', ['status'])
    op.create_index('idx_appointments_status_date', 'appointments', ['status', 'date'])
    op.create_index('idx_appointments_vet_date', 'appointments', ['veterinarian_id', 'date'])

    # Create medical_records table
    op.create_table('medical_records',
        *base_columns(),
        sa.Column('pet_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('date', sa.Date(), nullable=False),
        sa.Column('record_type', sa.String(length=100), nullable=False),
        sa.Column('description', sa.Text(), nullable=False),
        sa.Column('diagnosis', sa.Text(), nullable=True),
        sa.Column('treatment', sa.Text(), nullable=True),
        sa.Column('veterinarian_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('veterinarian_name', sa.String(length=255), nullable=False),
        sa.ForeignKeyConstraint(['pet_id'], ['pets.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['veterinarian_id'], ['users.id']),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_medical_records_pet_id', 'medical_records', ['pet_id'])
    op.create_index('idx_medical_records_pet_date', 'medical_records', ['pet_id', 'date'])

    # Create clinical_records table
    op.create_table('clinical_records',
        *base_columns(),
        sa.Column('pet_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('appointment_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('veterinarian_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('date', sa.Date(), nullable=False),
        sa.Column('symptoms', sa.Text(), nullable=False),
        sa.Column('diagnosis', sa.Text(), nullable=False),
        sa.Column('treatment', sa.Text(), nullable=False),
        sa.Column('medications', postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('follow_up_date', sa.Date(), nullable=True),
        sa.ForeignKeyConstraint(['pet_id'], ['pets.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['appointment_id'], ['appointments.id']),
        sa.ForeignKeyConstraint(['veterinarian_id'], ['users.id']),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_clinical_records_pet_id', 'clinical_records', ['pet_id'])
    op.create_index('ix_clinical_records_veterinarian_id', 'clinical_records', ['veterinarian_id'])

    # Create vaccinations table
    op.create_table('vaccinations',
        *base_columns(),
        sa.Column('pet_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('vaccine', sa.String(length=255), nullable=False),
        sa.Column('date', sa.Date(), nullable=False),
        sa.Column('next_due', sa.Date(), nullable=True),
        sa.Column('administered_by', postgresql.UUID(as_uuid=True), nullable=True),
        sa.CheckConstraint('next_due IS NULL OR next_due >= date', name='check_vaccination_next_due_after_date'),
        sa.ForeignKeyConstraint(['pet_id'], ['pets.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['administered_by'], ['users.id']),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_vaccinations_pet_id', 'vaccinations', ['pet_id'])
    op.create_index('ix_vaccinations_next_due', 'vaccinations', ['next_due'])
    op.create_index('idx_vaccinations_pet_vaccine', 'vaccinations', ['pet_id', 'vaccine'])

    # Create medications table
    op.create_table('medications',
        *base_columns(),
        sa.Column('pet_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('dosage', sa.String(length=255), nullable=False),
        sa.Column('start_date', sa.Date(), nullable=False),
        sa.Column('end_date', sa.Date(), nullable=True),
        sa.Column('prescribed_by', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('active', sa.Boolean(), server_default=sa.text('true'), nullable=False),
        sa.CheckConstraint('end_date IS NULL OR end_date >= start_date', name='check_medication_end_after_start'),
        sa.ForeignKeyConstraint(['pet_id'], ['pets.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['prescribed_by'], ['users.id']),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_medications_pet_id', 'medications', ['pet_id'])

    # Create notifications table
    op.create_table('notifications',
        *base_columns(),
        sa.Column('user_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('type', notification_type, nullable=False),
        sa.Column('title', sa.String(length=255), nullable=False),
        sa.Column('message', sa.Text(), nullable=False),
        sa.Column('related_entity_type', related_entity_type, nullable=True),
        sa.Column('related_entity_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('priority', notification_priority, nullable=False),
        sa.Column('read', sa.Boolean(), server_default=sa.text('false'), nullable=False),
        sa.Column('read_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('scheduled_for', sa.DateTime(timezone=True), nullable=True),
        sa.Column('sent', sa.Boolean(), server_default=sa.text('false'), nullable=False),
        sa.Column('sent_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_notifications_user_id', 'notifications', ['user_id'])
    op.create_index('ix_notifications_type', 'notifications', ['type'])
    op.create_index('idx_notifications_user_read', 'notifications', ['user_id', 'read'])
    op.create_index(
        'idx_notifications_scheduled',
        'notifications',
        ['scheduled_for'],
        postgresql_where=sa.text('scheduled_for IS NOT NULL AND sent = false'),
    )
    op.create_index(
        'idx_notifications_related_entity',
        'notifications',
        ['related_entity_id', 'type', 'created_at'],
    )

    # Create email_logs table
    op.create_table('email_logs',
        *base_columns(),
        sa.Column('user_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('to_email', sa.String(length=255), nullable=False),
        sa.Column('subject', sa.String(length=255), nullable=False),
        sa.Column('type', sa.String(length=50), nullable=False),
        sa.Column('notification_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('delivery_status', email_delivery_status, nullable=False),
        sa.Column('error_message', sa.Text(), nullable=True),
        sa.ForeignKeyConstraint(['user_id'], ['users.id']),
        sa.ForeignKeyConstraint(['notification_id'], ['notifications.id']),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_email_logs_user_id', 'email_logs', ['user_id'])
    op.create_index('idx_email_logs_created_at', 'email_logs', ['created_at'])

    # Create password_reset_tokens table
    op.create_table('password_reset_tokens',
        *base_columns(),
        sa.Column('user_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('token', sa.String(length=255), nullable=False),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('used', sa.Boolean(), server_default=sa.text('false'), nullable=False),
        sa.Column('used_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('token', name='uq_password_reset_tokens_token')
    )
    op.create_index('ix_password_reset_tokens_user_id', 'password_reset_tokens', ['user_id'])
    op.create_index('ix_password_reset_tokens_expires_at', 'password_reset_tokens', ['expires_at'])


def downgrade() -> None:
    # Drop tables in reverse order
    op.drop_table('password_reset_tokens')
    op.drop_table('email_logs')
    op.drop_table('notifications')
    op.drop_table('medications')
    op.drop_table('vaccinations')
    op.drop_table('clinical_records')
    op.drop_table('medical_records')
    op.drop_table('appointments')
    op.drop_table('pets')
    op.drop_table('users')

    # Drop enum types
    bind = op.get_bind()
    for enum_type in reversed(ENUM_TYPES):
        enum_type.drop(bind, checkfirst=True)
