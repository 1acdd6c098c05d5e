"""initial schema: trainings, signatures, repair events

Revision ID: 0001_initial_schema
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '0001_initial_schema'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'companies',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('address', sa.String(length=255), nullable=True),
        sa.Column('postal_code', sa.String(length=16), nullable=True),
        sa.Column('city', sa.String(length=128), nullable=True),
        sa.Column('country', sa.String(length=64), nullable=True),
        sa.Column('siret', sa.String(length=32), nullable=True),
        sa.Column('email', sa.String(length=255), nullable=True),
        sa.Column('phone', sa.String(length=64), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_companies_id'), 'companies', ['id'], unique=False)

    op.create_table(
        'trainings',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('title', sa.String(length=255), nullable=False),
        sa.Column('content', sa.Text(), nullable=True),
        sa.Column('objectives', sa.JSON(), nullable=True),
        sa.Column('evaluation_methods', sa.JSON(), nullable=True),
        sa.Column('tracking_methods', sa.JSON(), nullable=True),
        sa.Column('pedagogical_methods', sa.JSON(), nullable=True),
        sa.Column('material_elements', sa.JSON(), nullable=True),
        sa.Column('start_date', sa.Date(), nullable=True),
        sa.Column('end_date', sa.Date(), nullable=True),
        sa.Column('duration', sa.String(length=64), nullable=True),
        sa.Column('time_slots', sa.JSON(), nullable=True),
        sa.Column('location', sa.String(length=255), nullable=True),
        sa.Column('trainer_id', sa.String(length=36), nullable=True),
        sa.Column('trainer_name', sa.String(length=255), nullable=True),
        sa.Column('company_id', sa.String(length=36), nullable=True),
        sa.Column('price', sa.Float(), nullable=True),
        sa.Column('status', sa.String(length=32), nullable=False),
        sa.Column('created_by', sa.String(length=36), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['company_id'], ['companies.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_trainings_id'), 'trainings', ['id'], unique=False)
    op.create_index(op.f('ix_trainings_trainer_id'), 'trainings', ['trainer_id'], unique=False)
    op.create_index(op.f('ix_trainings_company_id'), 'trainings', ['company_id'], unique=False)
    op.create_index(op.f('ix_trainings_status'), 'trainings', ['status'], unique=False)
    op.create_index('ix_trainings_company_status', 'trainings', ['company_id', 'status'], unique=False)

    op.create_table(
        'participants',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('training_id', sa.String(length=36), nullable=True),
        sa.Column('company_id', sa.String(length=36), nullable=True),
        sa.Column('first_name', sa.String(length=128), nullable=False),
        sa.Column('last_name', sa.String(length=128), nullable=False),
        sa.Column('job_position', sa.String(length=255), nullable=True),
        sa.Column('email', sa.String(length=255), nullable=True),
        sa.Column('company', sa.String(length=255), nullable=True),
        sa.Column('status', sa.String(length=64), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['training_id'], ['trainings.id'], ondelete='SET NULL'),
        sa.ForeignKeyConstraint(['company_id'], ['companies.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_participants_id'), 'participants', ['id'], unique=False)
    op.create_index(op.f('ix_participants_training_id'), 'participants', ['training_id'], unique=False)
    op.create_index(op.f('ix_participants_company_id'), 'participants', ['company_id'], unique=False)
    op.create_index('ix_participants_training_company', 'participants', ['training_id', 'company_id'], unique=False)

    op.create_table(
        'organization_settings',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('organization_name', sa.String(length=255), nullable=True),
        sa.Column('address', sa.String(length=255), nullable=True),
        sa.Column('postal_code', sa.String(length=16), nullable=True),
        sa.Column('city', sa.String(length=128), nullable=True),
        sa.Column('country', sa.String(length=64), nullable=True),
        sa.Column('siret', sa.String(length=32), nullable=True),
        sa.Column('activity_declaration_number', sa.String(length=64), nullable=True),
        sa.Column('representative_name', sa.String(length=255), nullable=True),
        sa.Column('representative_title', sa.String(length=128), nullable=True),
        sa.Column('email', sa.String(length=255), nullable=True),
        sa.Column('phone', sa.String(length=64), nullable=True),
        sa.Column('website', sa.String(length=255), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )

    op.create_table(
        'documents',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('title', sa.String(length=255), nullable=False),
        sa.Column('type', sa.String(length=64), nullable=True),
        sa.Column('training_id', sa.String(length=36), nullable=True),
        sa.Column('user_id', sa.String(length=36), nullable=True),
        sa.Column('company_id', sa.String(length=36), nullable=True),
        sa.Column('file_url', sa.Text(), nullable=True),
        sa.Column('created_by', sa.String(length=36), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_documents_id'), 'documents', ['id'], unique=False)
    op.create_index(op.f('ix_documents_training_id'), 'documents', ['training_id'], unique=False)
    op.create_index(op.f('ix_documents_user_id'), 'documents', ['user_id'], unique=False)
    op.create_index('ix_documents_training_title', 'documents', ['training_id', 'title'], unique=False)

    op.create_table(
        'document_signatures',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('training_id', sa.String(length=36), nullable=True),
        sa.Column('user_id', sa.String(length=36), nullable=True),
        sa.Column('company_id', sa.String(length=36), nullable=True),
        sa.Column('document_type', sa.String(length=32), nullable=False),
        sa.Column('signature_type', sa.String(length=32), nullable=False),
        sa.Column('signature_url', sa.Text(), nullable=False),
        sa.Column('path', sa.String(length=512), nullable=True),
        sa.Column('shared_from_user_id', sa.String(length=36), nullable=True),
        sa.Column('metadata', sa.JSON(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['training_id'], ['trainings.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint(
            'training_id', 'user_id', 'document_type', 'signature_type',
            name='uq_document_signatures_slot',
        ),
    )
    op.create_index(op.f('ix_document_signatures_id'), 'document_signatures', ['id'], unique=False)
    op.create_index(op.f('ix_document_signatures_training_id'), 'document_signatures', ['training_id'], unique=False)
    op.create_index(op.f('ix_document_signatures_user_id'), 'document_signatures', ['user_id'], unique=False)
    op.create_index(op.f('ix_document_signatures_company_id'), 'document_signatures', ['company_id'], unique=False)
    op.create_index(
        'ix_document_signatures_training_type',
        'document_signatures',
        ['training_id', 'signature_type'],
        unique=False,
    )

    op.create_table(
        'repair_events',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('entity_type', sa.String(length=64), nullable=False),
        sa.Column('entity_id', sa.String(length=64), nullable=False),
        sa.Column('action', sa.String(length=64), nullable=False),
        sa.Column('provenance', sa.String(length=16), nullable=False),
        sa.Column('actor', sa.String(length=128), nullable=True),
        sa.Column('occurred_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('before', sa.JSON(), nullable=True),
        sa.Column('after', sa.JSON(), nullable=True),
        sa.Column('metadata', sa.JSON(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_repair_events_id'), 'repair_events', ['id'], unique=False)
    op.create_index(op.f('ix_repair_events_entity_type'), 'repair_events', ['entity_type'], unique=False)
    op.create_index(op.f('ix_repair_events_entity_id'), 'repair_events', ['entity_id'], unique=False)
    op.create_index(op.f('ix_repair_events_action'), 'repair_events', ['action'], unique=False)
    op.create_index(op.f('ix_repair_events_occurred_at'), 'repair_events', ['occurred_at'], unique=False)
    op.create_index('ix_repair_events_entity', 'repair_events', ['entity_type', 'entity_id'], unique=False)
    op.create_index('ix_repair_events_time_desc', 'repair_events', [sa.text('occurred_at DESC')], unique=False)


def downgrade() -> None:
    op.drop_index('ix_repair_events_time_desc', table_name='repair_events')
    op.drop_index('ix_repair_events_entity', table_name='repair_events')
    op.drop_index(op.f('ix_repair_events_occurred_at'), table_name='repair_events')
    op.drop_index(op.f('ix_repair_events_action'), table_name='repair_events')
    op.drop_index(op.f('ix_repair_events_entity_id'), table_name='repair_events')
    op.drop_index(op.f('ix_repair_events_entity_type'), table_name='repair_events')
    op.drop_index(op.f('ix_repair_events_id'), table_name='repair_events')
    op.drop_table('repair_events')

    op.drop_index('ix_document_signatures_training_type', table_name='document_signatures')
    op.drop_index(op.f('ix_document_signatures_company_id'), table_name='document_signatures')
    op.drop_index(op.f('ix_document_signatures_user_id'), table_name='document_signatures')
    op.drop_index(op.f('ix_document_signatures_training_id'), table_name='document_signatures')
    op.drop_index(op.f('ix_document_signatures_id'), table_name='document_signatures')
    op.drop_table('document_signatures')

    op.drop_index('ix_documents_training_title', table_name='documents')
    op.drop_index(op.f('ix_documents_user_id'), table_name='documents')
    op.drop_index(op.f('ix_documents_training_id'), table_name='documents')
    op.drop_index(op.f('ix_documents_id'), table_name='documents')
    op.drop_table('documents')

    op.drop_table('organization_settings')

    op.drop_index('ix_participants_training_company', table_name='participants')
    op.drop_index(op.f('ix_participants_company_id'), table_name='participants')
    op.drop_index(op.f('ix_participants_training_id'), table_name='participants')
    op.drop_index(op.f('ix_participants_id'), table_name='participants')
    op.drop_table('participants')

    op.drop_index('ix_trainings_company_status', table_name='trainings')
    op.drop_index(op.f('ix_trainings_status'), table_name='trainings')
    op.drop_index(op.f('ix_trainings_company_id'), table_name='trainings')
    op.drop_index(op.f('ix_trainings_trainer_id'), table_name='trainings')
    op.drop_index(op.f('ix_trainings_id'), table_name='trainings')
    op.drop_table('trainings')

    op.drop_index(op.f('ix_companies_id'), table_name='companies')
    op.drop_table('companies')
