"""Initial schema

Revision ID: 001_initial
Revises:
Create Date: 2026-10-19

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '001_initial'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # Users table (group FK added once groups exists)
    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('email', sa.String(256), nullable=False),
        sa.Column('full_name', sa.String(100), nullable=False, server_default=''),
        sa.Column('student_code', sa.String(20), nullable=True),
        sa.Column('role', sa.String(20), nullable=False, server_default='Student'),
        sa.Column('github_username', sa.String(255), nullable=True),
        sa.Column('jira_account_id', sa.String(255), nullable=True),
        sa.Column('group_id', sa.Integer(), nullable=True),
        sa.Column('is_deleted', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('created_at', sa.DateTime(), server_default=sa.text('now()'), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('email'),
    )
    op.create_index('ix_users_group_id', 'users', ['group_id'])

    # Groups table
    op.create_table(
        'groups',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('name', sa.String(100), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('jira_project_key', sa.String(50), nullable=True),
        sa.Column('github_repo_url', sa.String(512), nullable=True),
        sa.Column('leader_id', sa.Integer(), nullable=True),
        sa.Column('lecturer_id', sa.Integer(), nullable=True),
        sa.Column('is_deleted', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('created_at', sa.DateTime(), server_default=sa.text('now()'), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )

    # users <-> groups reference each other
    op.create_foreign_key(
        'fk_users_group', 'users', 'groups',
        ['group_id'], ['id'], ondelete='SET NULL',
    )
    op.create_foreign_key(
        'fk_groups_leader', 'groups', 'users',
        ['leader_id'], ['id'], ondelete='SET NULL',
    )
    op.create_foreign_key(
        'fk_groups_lecturer', 'groups', 'users',
        ['lecturer_id'], ['id'], ondelete='SET NULL',
    )

    # Imported GitHub commits
    op.create_table(
        'github_commits',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('commit_sha', sa.String(40), nullable=False),
        sa.Column('message', sa.Text(), nullable=False, server_default=''),
        sa.Column('author_name', sa.String(255), nullable=False, server_default=''),
        sa.Column('author_email', sa.String(255), nullable=False, server_default=''),
        sa.Column('author_login', sa.String(255), nullable=True),
        sa.Column('commit_date', sa.DateTime(), nullable=False),
        sa.Column('additions', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('deletions', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('url', sa.String(512), nullable=True),
        sa.Column('group_id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(), server_default=sa.text('now()'), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['group_id'], ['groups.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='SET NULL'),
    )
    op.create_index('idx_gh_commits_group', 'github_commits', ['group_id'])
    op.create_index('idx_gh_commits_commit_date', 'github_commits', ['commit_date'])
    op.create_index('idx_gh_commits_user', 'github_commits', ['user_id'])
    op.create_index('uq_gh_commits_sha', 'github_commits', ['commit_sha'], unique=True)

    # Requirements imported from Jira
    op.create_table(
        'requirements',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('title', sa.String(500), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('jira_issue_key', sa.String(50), nullable=True),
        sa.Column('jira_issue_url', sa.String(512), nullable=True),
        sa.Column('priority', sa.String(50), nullable=True, server_default='Medium'),
        sa.Column('status', sa.String(100), nullable=True),
        sa.Column('group_id', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(), server_default=sa.text('now()'), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['group_id'], ['groups.id'], ondelete='CASCADE'),
    )
    op.create_index('idx_requirements_group', 'requirements', ['group_id'])
    op.create_index(
        'uq_requirements_jira_issue_key', 'requirements', ['jira_issue_key'], unique=True
    )

    # Tasks (not written by the importer, kept for FK behaviour)
    op.create_table(
        'project_tasks',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('title', sa.String(500), nullable=False),
        sa.Column('status', sa.String(30), nullable=False, server_default='Todo'),
        sa.Column('jira_issue_key', sa.String(50), nullable=True),
        sa.Column('group_id', sa.Integer(), nullable=False),
        sa.Column('requirement_id', sa.Integer(), nullable=True),
        sa.Column('assignee_id', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(), server_default=sa.text('now()'), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['group_id'], ['groups.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['requirement_id'], ['requirements.id'], ondelete='SET NULL'),
        sa.ForeignKeyConstraint(['assignee_id'], ['users.id'], ondelete='SET NULL'),
    )

    # Runtime integration credentials
    op.create_table(
        'integration_settings',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('key', sa.String(100), nullable=False),
        sa.Column('value', sa.Text(), nullable=False, server_default=''),
        sa.Column('description', sa.String(255), nullable=True),
        sa.Column('created_at', sa.DateTime(), server_default=sa.text('now()'), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('key'),
    )


def downgrade() -> None:
    op.drop_table('integration_settings')
    op.drop_table('project_tasks')
    op.drop_index('uq_requirements_jira_issue_key', table_name='requirements')
    op.drop_index('idx_requirements_group', table_name='requirements')
    op.drop_table('requirements')
    op.drop_index('uq_gh_commits_sha', table_name='github_commits')
    op.drop_index('idx_gh_commits_user', table_name='github_commits')
    op.drop_index('idx_gh_commits_commit_date', table_name='github_commits')
    op.drop_index('idx_gh_commits_group', table_name='github_commits')
    op.drop_table('github_commits')
    op.drop_constraint('fk_groups_lecturer', 'groups', type_='foreignkey')
    op.drop_constraint('fk_groups_leader', 'groups', type_='foreignkey')
    op.drop_constraint('fk_users_group', 'users', type_='foreignkey')
    op.drop_table('groups')
    op.drop_index('ix_users_group_id', table_name='users')
    op.drop_table('users')
