"""Create tenant entity tables

Revision ID: 001
Revises:
Create Date: 2026-10-17

"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = '001'
down_revision = None
branch_labels = None
depends_on = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('NOW()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('NOW()'), nullable=False),
    ]


def _file_columns() -> list[sa.Column]:
    return [
        sa.Column('file_name', sa.String(255), nullable=True),
        sa.Column('original_file_name', sa.String(255), nullable=True),
        sa.Column('path', sa.String(1024), nullable=True),
        sa.Column('extension', sa.String(50), nullable=True),
        sa.Column('type', sa.String(255), nullable=True),
        sa.Column('tags', sa.JSON, nullable=True),
    ]


def upgrade() -> None:
    """Create code sequences, accounts, contracts, resumes and resume files."""
    op.execute('CREATE EXTENSION IF NOT EXISTS "uuid-ossp"')

    # Code generator counters
    op.create_table(
        'next_codes',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True, server_default=sa.text('uuid_generate_v4()')),
        sa.Column('tenant', sa.String(100), nullable=False),
        sa.Column('entity', sa.String(100), nullable=False),
        sa.Column('attribute', sa.String(100), nullable=False, server_default='code'),
        sa.Column('prefix', sa.String(20), nullable=True),
        sa.Column('suffix', sa.String(20), nullable=True),
        sa.Column('value', sa.BigInteger, nullable=False, server_default='0'),
        sa.Column('value_length', sa.Integer, nullable=False, server_default='6'),
        sa.Column('increment', sa.Integer, nullable=False, server_default='1'),
        *_timestamps(),
        sa.UniqueConstraint('tenant', 'entity', 'attribute', name='uc_next_code_entity'),
    )

    # Accounts (soft cancellation)
    op.create_table(
        'accounts',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True, server_default=sa.text('uuid_generate_v4()')),
        sa.Column('tenant', sa.String(100), nullable=False),
        sa.Column('code', sa.String(50), nullable=True),
        sa.Column('login', sa.String(100), nullable=False, unique=True),
        sa.Column('email', sa.String(255), nullable=False),
        sa.Column('first_name', sa.String(100), nullable=True),
        sa.Column('last_name', sa.String(100), nullable=True),
        sa.Column('active', sa.Boolean, nullable=False, server_default='false'),
        sa.Column('check_cancel', sa.Boolean, nullable=False, server_default='false'),
        sa.Column('cancel_date', sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
    )
    op.create_index('ix_accounts_tenant', 'accounts', ['tenant'])
    op.create_index('ix_accounts_code', 'accounts', ['code'])

    # Contracts (one document)
    op.create_table(
        'contracts',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True, server_default=sa.text('uuid_generate_v4()')),
        sa.Column('tenant', sa.String(100), nullable=False),
        sa.Column('code', sa.String(50), nullable=True),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('description', sa.Text, nullable=True),
        sa.Column('start_date', sa.DateTime(timezone=True), nullable=True),
        sa.Column('end_date', sa.DateTime(timezone=True), nullable=True),
        sa.Column('active', sa.Boolean, nullable=False, server_default='false'),
        *_file_columns(),
        *_timestamps(),
    )
    op.create_index('ix_contracts_tenant', 'contracts', ['tenant'])
    op.create_index('ix_contracts_code', 'contracts', ['code'])

    # Resumes (photo, document and additional files)
    op.create_table(
        'resumes',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True, server_default=sa.text('uuid_generate_v4()')),
        sa.Column('tenant', sa.String(100), nullable=False),
        sa.Column('code', sa.String(50), nullable=True),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('description', sa.Text, nullable=True),
        sa.Column('start_date', sa.DateTime(timezone=True), nullable=True),
        sa.Column('end_date', sa.DateTime(timezone=True), nullable=True),
        sa.Column('active', sa.Boolean, nullable=False, server_default='false'),
        sa.Column('image_path', sa.String(1024), nullable=True),
        *_file_columns(),
        *_timestamps(),
    )
    op.create_index('ix_resumes_tenant', 'resumes', ['tenant'])
    op.create_index('ix_resumes_code', 'resumes', ['code'])

    op.create_table(
        'resume_linked_files',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True, server_default=sa.text('uuid_generate_v4()')),
        sa.Column('resume_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('resumes.id', ondelete='CASCADE'), nullable=False),
        sa.Column('tenant', sa.String(100), nullable=False),
        sa.Column('code', sa.String(50), nullable=True),
        sa.Column('path', sa.String(1024), nullable=True),
        sa.Column('original_file_name', sa.String(255), nullable=True),
        sa.Column('file_name', sa.String(255), nullable=True),
        sa.Column('extension', sa.String(50), nullable=True),
        sa.Column('mimetype', sa.String(255), nullable=True),
        sa.Column('crc16', sa.Integer, nullable=True),
        sa.Column('crc32', sa.BigInteger, nullable=True),
        sa.Column('size', sa.BigInteger, nullable=False, server_default='0'),
        sa.Column('version', sa.Integer, nullable=False, server_default='1'),
        sa.Column('tags', sa.JSON, nullable=True),
        *_timestamps(),
    )
    op.create_index('ix_resume_linked_files_resume_id', 'resume_linked_files', ['resume_id'])
    op.create_index('ix_resume_linked_files_tenant', 'resume_linked_files', ['tenant'])
    op.create_index('ix_resume_linked_files_code', 'resume_linked_files', ['code'])


def downgrade() -> None:
    """Drop tenant entity tables."""
    op.drop_table('resume_linked_files')
    op.drop_table('resumes')
    op.drop_table('contracts')
    op.drop_table('accounts')
    op.drop_table('next_codes')
