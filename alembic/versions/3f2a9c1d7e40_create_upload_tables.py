"""create_upload_tables

Revision ID: 3f2a9c1d7e40
Revises:
Create Date: 2026-10-17 09:12:31.402118

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '3f2a9c1d7e40'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'upload_jobs',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('object_key', sa.String(length=500), nullable=False),
        sa.Column('multipart_session_id', sa.String(length=1024), nullable=True),
        sa.Column('filename', sa.String(length=255), nullable=False),
        sa.Column('file_size_bytes', sa.BigInteger(), nullable=False),
        sa.Column('content_type', sa.String(length=100), nullable=False),
        sa.Column('part_size_bytes', sa.BigInteger(), nullable=True),
        sa.Column('number_of_parts', sa.Integer(), nullable=False),
        sa.Column(
            'status',
            sa.Enum(
                'INITIATED', 'COMPLETING', 'COMPLETED', 'FAILED', 'ABORTED',
                name='uploadstatus', native_enum=False, length=20,
            ),
            nullable=False,
        ),
        sa.Column('progress', sa.Integer(), nullable=False),
        sa.Column('artifact_id', sa.Uuid(), nullable=True),
        sa.Column('error_message', sa.String(length=1000), nullable=True),
        sa.Column('batch_id', sa.Uuid(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('completed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('object_key'),
    )
    op.create_index('ix_upload_jobs_status_created_at', 'upload_jobs', ['status', 'created_at'])
    op.create_index(op.f('ix_upload_jobs_batch_id'), 'upload_jobs', ['batch_id'])

    op.create_table(
        'finalized_artifacts',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('object_key', sa.String(length=500), nullable=False),
        sa.Column('upload_job_id', sa.Uuid(), nullable=False),
        sa.Column('filename', sa.String(length=255), nullable=False),
        sa.Column('size_bytes', sa.BigInteger(), nullable=False),
        sa.Column('mime_type', sa.String(length=100), nullable=False),
        sa.Column('integrity_tag', sa.String(length=255), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('object_key'),
    )
    op.create_index(
        op.f('ix_finalized_artifacts_upload_job_id'), 'finalized_artifacts', ['upload_job_id']
    )

    op.create_table(
        'batch_jobs',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('file_count', sa.Integer(), nullable=False),
        sa.Column('total_size_bytes', sa.BigInteger(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )


def downgrade() -> None:
    op.drop_table('batch_jobs')
    op.drop_index(op.f('ix_finalized_artifacts_upload_job_id'), table_name='finalized_artifacts')
    op.drop_table('finalized_artifacts')
    op.drop_index(op.f('ix_upload_jobs_batch_id'), table_name='upload_jobs')
    op.drop_index('ix_upload_jobs_status_created_at', table_name='upload_jobs')
    op.drop_table('upload_jobs')
