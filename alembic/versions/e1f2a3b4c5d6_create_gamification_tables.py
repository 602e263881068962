"""create gamification and progress tables

Revision ID: e1f2a3b4c5d6
Revises:
Create Date: 2026-10-18 12:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = 'e1f2a3b4c5d6'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create config, avatar catalog, progress ledger and workshop read model tables."""
    icon_type_enum = postgresql.ENUM(
        'emoji', 'lucide', 'svg',
        name='medal_icon_type_enum', create_type=False,
    )
    condition_type_enum = postgresql.ENUM(
        'tests_completed', 'workshops_completed', 'perfect_scores', 'streak_days',
        'ranking_position', 'total_xp', 'level_reached',
        name='medal_condition_type_enum', create_type=False,
    )
    condition_operator_enum = postgresql.ENUM(
        'gte', 'lte', 'eq',
        name='medal_condition_operator_enum', create_type=False,
    )
    content_status_enum = postgresql.ENUM(
        'draft', 'in_review', 'approved', 'rejected',
        name='content_status_enum', create_type=False,
    )
    for enum in (icon_type_enum, condition_type_enum, condition_operator_enum, content_status_enum):
        enum.create(op.get_bind(), checkfirst=True)

    # Per-school configuration
    op.create_table(
        'gamification_configs',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('school_id', sa.String(64), nullable=False),
        sa.Column('xp_rules', sa.JSON(), nullable=False),
        sa.Column('level_config', sa.JSON(), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('last_modified_by', sa.String(64), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_gamification_configs_school_id', 'gamification_configs', ['school_id'], unique=True)

    op.create_table(
        'medal_definitions',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('config_id', sa.UUID(), nullable=False),
        sa.Column('medal_id', sa.String(64), nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('description', sa.Text(), nullable=False),
        sa.Column('icon', sa.Text(), nullable=False),
        sa.Column('icon_type', icon_type_enum, nullable=False),
        sa.Column('icon_color', sa.String(32), nullable=True),
        sa.Column('bg_color', sa.String(32), nullable=True),
        sa.Column('xp_reward', sa.Integer(), nullable=False),
        sa.Column('condition_type', condition_type_enum, nullable=False),
        sa.Column('condition_value', sa.Integer(), nullable=False),
        sa.Column('condition_operator', condition_operator_enum, nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('sort_order', sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(['config_id'], ['gamification_configs.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('config_id', 'medal_id', name='uq_medal_definition_config_medal'),
    )

    op.create_table(
        'avatar_options',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('config_id', sa.UUID(), nullable=False),
        sa.Column('option_id', sa.String(64), nullable=False),
        sa.Column('category', sa.String(64), nullable=False),
        sa.Column('value', sa.String(255), nullable=False),
        sa.Column('display_name', sa.String(255), nullable=False),
        sa.Column('preview_url', sa.String(512), nullable=True),
        sa.Column('required_xp', sa.Integer(), nullable=False),
        sa.Column('required_level', sa.Integer(), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('sort_order', sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(['config_id'], ['gamification_configs.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('config_id', 'option_id', name='uq_avatar_option_config_option'),
    )

    # Avatar styles and normalized per-style unlock config
    op.create_table(
        'avatar_styles',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('style_id', sa.String(64), nullable=False),
        sa.Column('display_name', sa.String(255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('creator', sa.String(255), nullable=True),
        sa.Column('api_url', sa.String(512), nullable=False),
        sa.Column('categories', sa.JSON(), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('sort_order', sa.Integer(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_avatar_styles_style_id', 'avatar_styles', ['style_id'], unique=True)

    op.create_table(
        'style_option_configs',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('school_id', sa.String(64), nullable=False),
        sa.Column('style_id', sa.String(64), nullable=False),
        sa.Column('category', sa.String(64), nullable=False),
        sa.Column('option_value', sa.String(255), nullable=False),
        sa.Column('display_name', sa.String(255), nullable=False),
        sa.Column('preview_url', sa.String(512), nullable=True),
        sa.Column('required_xp', sa.Integer(), nullable=False),
        sa.Column('required_level', sa.Integer(), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('sort_order', sa.Integer(), nullable=False),
        sa.Column('last_modified_by', sa.String(64), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint(
            'school_id', 'style_id', 'category', 'option_value',
            name='uq_style_option_config_key',
        ),
    )
    op.create_index(
        'ix_style_option_configs_school_style', 'style_option_configs',
        ['school_id', 'style_id', 'category'],
    )

    # Progress ledger
    op.create_table(
        'student_progress',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('user_id', sa.String(64), nullable=False),
        sa.Column('school_id', sa.String(64), nullable=False),
        sa.Column('username', sa.String(255), nullable=False),
        sa.Column('total_xp', sa.Integer(), nullable=False),
        sa.Column('tests_completed_count', sa.Integer(), nullable=False),
        sa.Column('workshops_completed_count', sa.Integer(), nullable=False),
        sa.Column('perfect_scores_count', sa.Integer(), nullable=False),
        sa.Column('current_streak', sa.Integer(), nullable=False),
        sa.Column('longest_streak', sa.Integer(), nullable=False),
        sa.Column('last_activity_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('avatar', sa.JSON(), nullable=False),
        sa.Column('version', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_student_progress_user_id', 'student_progress', ['user_id'], unique=True)
    op.create_index('ix_student_progress_school_xp', 'student_progress', ['school_id', 'total_xp'])

    op.create_table(
        'test_completions',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('progress_id', sa.UUID(), nullable=False),
        sa.Column('test_id', sa.String(64), nullable=False),
        sa.Column('workshop_id', sa.String(64), nullable=False),
        sa.Column('best_score', sa.Float(), nullable=False),
        sa.Column('max_score', sa.Float(), nullable=False),
        sa.Column('xp_earned', sa.Integer(), nullable=False),
        sa.Column('first_completed_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('last_attempt_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('attempt_count', sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(['progress_id'], ['student_progress.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('progress_id', 'test_id', name='uq_test_completion_progress_test'),
    )

    op.create_table(
        'workshop_completions',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('progress_id', sa.UUID(), nullable=False),
        sa.Column('workshop_id', sa.String(64), nullable=False),
        sa.Column('completed_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('total_score', sa.Float(), nullable=False),
        sa.Column('max_possible_score', sa.Float(), nullable=False),
        sa.ForeignKeyConstraint(['progress_id'], ['student_progress.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint(
            'progress_id', 'workshop_id', name='uq_workshop_completion_progress_workshop',
        ),
    )

    op.create_table(
        'earned_medals',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('progress_id', sa.UUID(), nullable=False),
        sa.Column('medal_id', sa.String(64), nullable=False),
        sa.Column('earned_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('xp_awarded', sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(['progress_id'], ['student_progress.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('progress_id', 'medal_id', name='uq_earned_medal_progress_medal'),
    )

    # Workshop read model (written by the content workflow)
    op.create_table(
        'workshops',
        sa.Column('id', sa.String(64), nullable=False),
        sa.Column('school_id', sa.String(64), nullable=False),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('status', content_status_enum, nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_workshops_school_id', 'workshops', ['school_id'])

    op.create_table(
        'tests',
        sa.Column('id', sa.String(64), nullable=False),
        sa.Column('workshop_id', sa.String(64), nullable=False),
        sa.Column('school_id', sa.String(64), nullable=False),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('status', content_status_enum, nullable=False),
        sa.Column('max_score', sa.Float(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_tests_workshop_school_status', 'tests', ['workshop_id', 'school_id', 'status'])

    op.create_table(
        'test_attempts',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('school_id', sa.String(64), nullable=False),
        sa.Column('test_id', sa.String(64), nullable=False),
        sa.Column('workshop_id', sa.String(64), nullable=False),
        sa.Column('student_user_id', sa.String(64), nullable=False),
        sa.Column('total_score', sa.Float(), nullable=False),
        sa.Column('is_submitted', sa.Boolean(), nullable=False),
        sa.Column('submitted_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_test_attempts_workshop_student', 'test_attempts', ['workshop_id', 'student_user_id'])


def downgrade() -> None:
    """Drop all gamification tables and enum types."""
    op.drop_index('ix_test_attempts_workshop_student', table_name='test_attempts')
    op.drop_table('test_attempts')
    op.drop_index('ix_tests_workshop_school_status', table_name='tests')
    op.drop_table('tests')
    op.drop_index('ix_workshops_school_id', table_name='workshops')
    op.drop_table('workshops')
    op.drop_table('earned_medals')
    op.drop_table('workshop_completions')
    op.drop_table('test_completions')
    op.drop_index('ix_student_progress_school_xp', table_name='student_progress')
    op.drop_index('ix_student_progress_user_id', table_name='student_progress')
    op.drop_table('student_progress')
    op.drop_index('ix_style_option_configs_school_style', table_name='style_option_configs')
    op.drop_table('style_option_configs')
    op.drop_index('ix_avatar_styles_style_id', table_name='avatar_styles')
    op.drop_table('avatar_styles')
    op.drop_table('avatar_options')
    op.drop_table('medal_definitions')
    op.drop_index('ix_gamification_configs_school_id', table_name='gamification_configs')
    op.drop_table('gamification_configs')
    for name in (
        'content_status_enum', 'medal_condition_operator_enum',
        'medal_condition_type_enum', 'medal_icon_type_enum',
    ):
        sa.Enum(name=name).drop(op.get_bind(), checkfirst=True)
