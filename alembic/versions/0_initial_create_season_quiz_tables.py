"""Initial migration - create season quiz tables

Revision ID: 0_initial
Revises:
Create Date: 2026-10-18 00:00:00.000000
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = '0_initial'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # ── Create enums ──────────────────────────────────────────────────
    op.execute("""
        DO $$ BEGIN
            CREATE TYPE role_enum AS ENUM ('student', 'admin');
        EXCEPTION WHEN duplicate_object THEN null;
        END $$;
    """)

    # ── users table ───────────────────────────────────────────────────
    op.create_table(
        'users',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('email', sa.String(255), nullable=False),
        sa.Column('full_name', sa.String(255), nullable=False),
        sa.Column('role', postgresql.ENUM('student', 'admin', name='role_enum', create_type=False), nullable=False, server_default='student'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='true'),
        sa.Column('is_disqualified', sa.Boolean(), nullable=False, server_default='false'),
        sa.Column('disqualified_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('has_passed_qualification', sa.Boolean(), nullable=False, server_default='false'),
        sa.Column('last_qualification_attempt_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_users_email', 'users', ['email'], unique=True)
    op.create_index('ix_users_has_passed_qualification', 'users', ['has_passed_qualification'])

    # ── seasons table ─────────────────────────────────────────────────
    op.create_table(
        'seasons',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('start_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('end_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='false'),
        sa.Column('is_qualification_round', sa.Boolean(), nullable=False, server_default='false'),
        sa.Column('minimum_score_percentage', sa.Integer(), nullable=True, server_default='50'),
        sa.Column('requires_qualification', sa.Boolean(), nullable=False, server_default='false'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.CheckConstraint('start_at < end_at', name='ck_season_window'),
        sa.CheckConstraint(
            'minimum_score_percentage IS NULL OR '
            '(minimum_score_percentage >= 0 AND minimum_score_percentage <= 100)',
            name='ck_season_minimum_score_range',
        ),
    )
    op.create_index('ix_seasons_is_active', 'seasons', ['is_active'])

    # ── questions table ───────────────────────────────────────────────
    op.create_table(
        'questions',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('text', sa.Text(), nullable=False),
        sa.Column('options', sa.JSON(), nullable=False),
        sa.Column('correct_answer', sa.Text(), nullable=False),
        sa.Column('category', sa.String(50), nullable=False, server_default='General'),
        sa.Column('difficulty', sa.String(20), nullable=False, server_default='medium'),
        sa.Column('time_limit_seconds', sa.Integer(), nullable=False, server_default='30'),
        sa.Column('season_id', sa.UUID(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['season_id'], ['seasons.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_questions_season_id', 'questions', ['season_id'])

    # ── attempts table ────────────────────────────────────────────────
    op.create_table(
        'attempts',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('user_id', sa.UUID(), nullable=False),
        sa.Column('season_id', sa.UUID(), nullable=True),
        sa.Column('started_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('completed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('total_questions', sa.Integer(), nullable=False),
        sa.Column('score', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('percentage_score', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('completed', sa.Boolean(), nullable=False, server_default='false'),
        sa.Column('qualifies_for_next_round', sa.Boolean(), nullable=False, server_default='false'),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['season_id'], ['seasons.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('user_id', 'season_id', name='uq_attempt_user_season'),
        sa.CheckConstraint('total_questions > 0', name='ck_attempt_total_positive'),
    )
    op.create_index('ix_attempts_season_id', 'attempts', ['season_id'])
    op.create_index('ix_attempts_completed', 'attempts', ['completed'])

    # ── attempt_progress table ────────────────────────────────────────
    op.create_table(
        'attempt_progress',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('attempt_id', sa.UUID(), nullable=False),
        sa.Column('question_id', sa.UUID(), nullable=False),
        sa.Column('answer', sa.Text(), nullable=False),
        sa.Column('is_correct', sa.Boolean(), nullable=False, server_default='false'),
        sa.Column('answered_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['attempt_id'], ['attempts.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['question_id'], ['questions.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('attempt_id', 'question_id', name='uq_progress_attempt_question'),
    )


def downgrade() -> None:
    # Drop all tables in reverse order
    op.drop_table('attempt_progress')
    op.drop_table('attempts')
    op.drop_table('questions')
    op.drop_table('seasons')
    op.drop_table('users')
    op.execute("DROP TYPE IF EXISTS role_enum")
