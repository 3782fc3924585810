"""Initial migration - create all tables

Revision ID: 001_initial
Revises: None
Create Date: 2024-01-15

Creates all database tables for TestTutor:
- users: learners and administrators
- domains: subject areas with default settings
- tests: practice tests and their review status
- questions / options: test content and answer key
- test_attempts: learner attempts with answers and results

Column types are portable so the revision applies to PostgreSQL and SQLite.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers
revision: str = '001_initial'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # ── Users Table ───────────────────────────────────────────
    op.create_table(
        'users',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('email', sa.Text(), nullable=False, unique=True),
        sa.Column('name', sa.Text(), nullable=True),
        sa.Column('role', sa.Text(), nullable=False, server_default='USER'),
        sa.Column('created_at', sa.DateTime(),
                  server_default=sa.func.now(), nullable=True),
    )

    # ── Domains Table ─────────────────────────────────────────
    op.create_table(
        'domains',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('name', sa.Text(), nullable=False, unique=True),
        sa.Column('display_name', sa.Text(), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('config', sa.Text(), nullable=False, server_default='{}'),
        sa.Column('is_active', sa.Boolean(), nullable=False,
                  server_default='1'),
        sa.Column('created_at', sa.DateTime(),
                  server_default=sa.func.now(), nullable=True),
    )

    # ── Tests Table ───────────────────────────────────────────
    op.create_table(
        'tests',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('title', sa.Text(), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('domain_id', sa.String(36),
                  sa.ForeignKey('domains.id'), nullable=False),
        sa.Column('creator_id', sa.String(36),
                  sa.ForeignKey('users.id'), nullable=True),
        sa.Column('status', sa.Text(), nullable=False, server_default='DRAFT'),
        sa.Column('pass_percentage', sa.Integer(), nullable=True),
        sa.Column('time_limit', sa.Integer(), nullable=True),
        sa.Column('is_public', sa.Boolean(), nullable=False,
                  server_default='1'),
        sa.Column('created_at', sa.DateTime(),
                  server_default=sa.func.now(), nullable=True),
        sa.Column('published_at', sa.DateTime(), nullable=True),
    )
    op.create_index('ix_tests_domain_id', 'tests', ['domain_id'])
    op.create_index('ix_tests_status', 'tests', ['status'])

    # ── Questions / Options Tables ────────────────────────────
    op.create_table(
        'questions',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('test_id', sa.String(36),
                  sa.ForeignKey('tests.id'), nullable=False),
        sa.Column('stem', sa.Text(), nullable=False),
        sa.Column('type', sa.Text(), nullable=False, server_default='SINGLE_CHOICE'),
        sa.Column('explanation', sa.Text(), nullable=True),
        sa.Column('points', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('difficulty', sa.Text(), nullable=False, server_default='MEDIUM'),
        sa.Column('order', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime(),
                  server_default=sa.func.now(), nullable=True),
    )
    op.create_index('ix_questions_test_id', 'questions', ['test_id'])

    op.create_table(
        'options',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('question_id', sa.String(36),
                  sa.ForeignKey('questions.id'), nullable=False),
        sa.Column('label', sa.Text(), nullable=False),
        sa.Column('is_correct', sa.Boolean(), nullable=False,
                  server_default='0'),
        sa.Column('feedback', sa.Text(), nullable=True),
        sa.Column('order', sa.Integer(), nullable=False, server_default='0'),
    )

    # ── Test Attempts Table ───────────────────────────────────
    op.create_table(
        'test_attempts',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('test_id', sa.String(36),
                  sa.ForeignKey('tests.id'), nullable=False),
        sa.Column('user_id', sa.String(36),
                  sa.ForeignKey('users.id'), nullable=True),
        sa.Column('session_id', sa.Text(), nullable=True),
        sa.Column('answers', sa.Text(), nullable=False, server_default='{}'),
        sa.Column('status', sa.Text(), nullable=False, server_default='IN_PROGRESS'),
        sa.Column('started_at', sa.DateTime(), nullable=False),
        sa.Column('completed_at', sa.DateTime(), nullable=True),
        sa.Column('score', sa.Float(), nullable=True),
        sa.Column('percentage', sa.Integer(), nullable=True),
        sa.Column('time_spent', sa.Integer(), nullable=True),
    )

    # Indexes for common query patterns on attempts
    op.create_index('ix_test_attempts_test_id', 'test_attempts', ['test_id'])
    op.create_index('ix_test_attempts_user_id', 'test_attempts', ['user_id'])
    op.create_index('ix_test_attempts_status', 'test_attempts', ['status'])
    op.create_index('ix_test_attempts_started_at', 'test_attempts', ['started_at'])


def downgrade() -> None:
    """Drop all tables in reverse dependency order."""
    op.drop_index('ix_test_attempts_started_at', table_name='test_attempts')
    op.drop_index('ix_test_attempts_status', table_name='test_attempts')
    op.drop_index('ix_test_attempts_user_id', table_name='test_attempts')
    op.drop_index('ix_test_attempts_test_id', table_name='test_attempts')
    op.drop_table('test_attempts')
    op.drop_table('options')
    op.drop_index('ix_questions_test_id', table_name='questions')
    op.drop_table('questions')
    op.drop_index('ix_tests_status', table_name='tests')
    op.drop_index('ix_tests_domain_id', table_name='tests')
    op.drop_table('tests')
    op.drop_table('domains')
    op.drop_table('users')
