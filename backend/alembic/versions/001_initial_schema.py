"""Users, observations, comments and votes

Revision ID: 001_initial_schema
Create Date: 2026-10-19 00:00:00.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '001_initial_schema'
down_revision = None
branch_labels = None
depends_on = None

MODERATION_STATUSES = "'pending', 'approved', 'rejected'"


def upgrade() -> None:
    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(200), nullable=False),
        sa.Column('email', sa.String(255), nullable=False),
        sa.Column('password_hash', sa.String(255), nullable=False),
        sa.Column('role', sa.String(16), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint("role IN ('user', 'admin')", name='user_role'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_users_email', 'users', ['email'], unique=True)

    op.create_table(
        'observations',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('author_id', sa.Integer(), nullable=False),
        sa.Column('author_name', sa.String(200), nullable=False),
        sa.Column('photo_ref', sa.String(500), nullable=False),
        sa.Column('popular_name', sa.String(200), nullable=False),
        sa.Column('scientific_name', sa.String(200), nullable=False),
        sa.Column('species_group', sa.String(100), nullable=False),
        sa.Column('location', sa.String(300), nullable=False),
        sa.Column('sex', sa.String(50), nullable=False),
        sa.Column('observed_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('status', sa.String(16), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint(f"status IN ({MODERATION_STATUSES})", name='observation_status'),
        sa.ForeignKeyConstraint(['author_id'], ['users.id']),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_observations_author_id', 'observations', ['author_id'])
    op.create_index('ix_observations_status', 'observations', ['status'])
    op.create_index('ix_observations_created_at', 'observations', ['created_at'])

    op.create_table(
        'comments',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('observation_id', sa.Integer(), nullable=False),
        sa.Column('author_id', sa.Integer(), nullable=False),
        sa.Column('author_name', sa.String(200), nullable=False),
        sa.Column('text', sa.Text(), nullable=False),
        sa.Column('status', sa.String(16), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint(f"status IN ({MODERATION_STATUSES})", name='comment_status'),
        sa.ForeignKeyConstraint(['observation_id'], ['observations.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['author_id'], ['users.id']),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_comments_observation_id', 'comments', ['observation_id'])
    op.create_index('ix_comments_status', 'comments', ['status'])

    op.create_table(
        'votes',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('observation_id', sa.Integer(), nullable=False),
        sa.Column('voter_id', sa.Integer(), nullable=False),
        sa.Column('value', sa.String(16), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint("value IN ('coherent', 'incoherent')", name='vote_value'),
        sa.ForeignKeyConstraint(['observation_id'], ['observations.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['voter_id'], ['users.id']),
        sa.UniqueConstraint('observation_id', 'voter_id', name='uq_vote_observation_voter'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_votes_observation_id', 'votes', ['observation_id'])


def downgrade() -> None:
    op.drop_table('votes')
    op.drop_table('comments')
    op.drop_table('observations')
    op.drop_table('users')
