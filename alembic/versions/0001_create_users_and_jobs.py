"""create users and jobs tables

Revision ID: 0001_users_jobs
Revises: 
Create Date: 2026-10-19

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '0001_users_jobs'
down_revision = None
branch_labels = None
depends_on = None

JOB_STATUSES = ('applied', 'interview', 'technical', 'offer', 'rejected', 'accepted')


def upgrade() -> None:
    op.create_table(
        'users',
        sa.Column('id', sa.String(32), primary_key=True),
        sa.Column('name', sa.String(50), nullable=False),
        sa.Column('email', sa.String(320), nullable=False),
        sa.Column('hashed_password', sa.String(255), nullable=False),
        sa.Column('reset_password_token', sa.String(64), nullable=True),
        sa.Column('reset_password_expires', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index('ix_users_email', 'users', ['email'], unique=True)
    op.create_index('ix_users_reset_password_token', 'users', ['reset_password_token'])

    op.create_table(
        'jobs',
        sa.Column('id', sa.String(32), primary_key=True),
        sa.Column('company', sa.String(100), nullable=False),
        sa.Column('position', sa.String(100), nullable=False),
        sa.Column(
            'status',
            sa.Enum(*JOB_STATUSES, name='jobstatus', native_enum=False, length=20),
            nullable=False,
        ),
        sa.Column('notes', sa.Text(), nullable=False),
        sa.Column('salary', sa.String(50), nullable=False),
        sa.Column('location', sa.String(100), nullable=False),
        sa.Column('contact', sa.String(100), nullable=False),
        sa.Column('job_url', sa.String(2048), nullable=False),
        sa.Column('owner_id', sa.String(32), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
    )
    # Every job query filters on owner_id
    op.create_index('ix_jobs_owner_id', 'jobs', ['owner_id'])
    op.create_index('ix_jobs_owner_created', 'jobs', ['owner_id', 'created_at'])


def downgrade() -> None:
    op.drop_index('ix_jobs_owner_created', table_name='jobs')
    op.drop_index('ix_jobs_owner_id', table_name='jobs')
    op.drop_table('jobs')
    op.drop_index('ix_users_reset_password_token', table_name='users')
    op.drop_index('ix_users_email', table_name='users')
    op.drop_table('users')
