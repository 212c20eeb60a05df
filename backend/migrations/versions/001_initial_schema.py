"""Initial schema: catalog, stars, embeddings, annotations, mirror, sync jobs, tags

Revision ID: 001_initial
Revises: 
Create Date: 2026-10-19 00:00:00.000000

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
    # Create repositories table
    op.create_table(
        'repositories',
        sa.Column('id', sa.BigInteger(), primary_key=True, autoincrement=False),
        sa.Column('owner_login', sa.String(length=255), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('full_name', sa.String(length=511), nullable=False),
        sa.Column('html_url', sa.String(length=1000), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('language', sa.String(length=100), nullable=True),
        sa.Column('stargazers_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('forks_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('watchers_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('open_issues_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('created_at_gh', sa.DateTime(), nullable=True),
        sa.Column('updated_at_gh', sa.DateTime(), nullable=True),
        sa.Column('pushed_at_gh', sa.DateTime(), nullable=True),
        sa.Column('is_fork', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('is_private', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('archived', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('disabled', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('default_branch', sa.String(length=255), nullable=True),
        sa.Column('topics_json', sa.Text(), nullable=True),
        sa.Column('license_key', sa.String(length=100), nullable=True),
        sa.Column('license_name', sa.String(length=255), nullable=True),
        sa.Column('readme_sha', sa.String(length=64), nullable=True),
        sa.Column('needs_reindex', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('last_synced_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column('raw_data_json', sa.Text(), nullable=True),
    )
    op.create_index('idx_repos_owner', 'repositories', ['owner_login'])
    op.create_index('idx_repos_lang', 'repositories', ['language'])
    op.create_index('idx_repos_pushed', 'repositories', ['pushed_at_gh'])
    op.create_index('idx_repos_readme_sha', 'repositories', ['readme_sha'])
    op.create_index(
        'ux_repos_full_name_nocase', 'repositories', [sa.text('lower(full_name)')], unique=True
    )

    # Create stars table
    op.create_table(
        'stars',
        sa.Column('repo_id', sa.BigInteger(), sa.ForeignKey('repositories.id', ondelete='CASCADE'), primary_key=True),
        sa.Column('starred_at', sa.DateTime(), nullable=False),
    )
    op.create_index('idx_stars_starred_at', 'stars', ['starred_at'])

    # Create embeddings table
    op.create_table(
        'embeddings',
        sa.Column('id', sa.String(length=255), primary_key=True),
        sa.Column('repo_id', sa.BigInteger(), sa.ForeignKey('repositories.id', ondelete='CASCADE'), nullable=False),
        sa.Column('source', sa.String(length=20), nullable=False),
        sa.Column('chunk_idx', sa.Integer(), nullable=False),
        sa.Column('text', sa.Text(), nullable=False),
        sa.Column('dim', sa.Integer(), nullable=False),
        sa.Column('text_hash', sa.String(length=64), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint('repo_id', 'source', 'chunk_idx', name='idx_embeddings_repo_src_chunk'),
        sa.CheckConstraint(
            "source IN ('readme', 'description', 'topics', 'about')", name='ck_embeddings_source'
        ),
    )
    op.create_index('idx_embeddings_text_hash', 'embeddings', ['text_hash'])
    op.create_index('idx_embeddings_repo', 'embeddings', ['repo_id'])

    # Create repo_ai table
    op.create_table(
        'repo_ai',
        sa.Column('repo_id', sa.BigInteger(), sa.ForeignKey('repositories.id', ondelete='CASCADE'), primary_key=True),
        sa.Column('ai_description', sa.Text(), nullable=True),
        sa.Column('last_indexed_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )

    # Create repo_fts search mirror
    op.create_table(
        'repo_fts',
        sa.Column('repo_id', sa.BigInteger(), sa.ForeignKey('repositories.id', ondelete='CASCADE'), primary_key=True),
        sa.Column('full_name', sa.String(length=511), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('topics', sa.Text(), nullable=True),
        sa.Column('ai_description', sa.Text(), nullable=True),
    )

    # Create sync_jobs table
    op.create_table(
        'sync_jobs',
        sa.Column('id', sa.String(length=36), primary_key=True),
        sa.Column('triggered_by', sa.String(length=100), nullable=True),
        sa.Column('status', sa.String(length=20), nullable=False, server_default='started'),
        sa.Column('started_at', sa.DateTime(), nullable=False),
        sa.Column('completed_at', sa.DateTime(), nullable=True),
        sa.Column('duration_seconds', sa.Float(), nullable=True),
        sa.Column('repos_processed', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('vectors_upserted', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('repos_skipped', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('repos_failed', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('error', sa.Text(), nullable=True),
        sa.CheckConstraint("status IN ('started', 'completed', 'error')", name='ck_sync_jobs_status'),
    )
    op.create_index('idx_sync_jobs_started', 'sync_jobs', ['started_at'])
    op.create_index('idx_sync_jobs_status', 'sync_jobs', ['status'])

    # Create ai_tags table
    op.create_table(
        'ai_tags',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('tag_name', sa.String(length=100), nullable=False),
    )
    op.create_index(
        'ux_ai_tags_name_nocase', 'ai_tags', [sa.text('lower(tag_name)')], unique=True
    )

    # Create repo_ai_tags join table
    op.create_table(
        'repo_ai_tags',
        sa.Column('repo_id', sa.BigInteger(), sa.ForeignKey('repositories.id', ondelete='CASCADE'), primary_key=True),
        sa.Column('tag_id', sa.Integer(), sa.ForeignKey('ai_tags.id', ondelete='CASCADE'), primary_key=True),
    )
    op.create_index('idx_repo_ai_tags_repo', 'repo_ai_tags', ['repo_id'])
    op.create_index('idx_repo_ai_tags_tag', 'repo_ai_tags', ['tag_id'])


def downgrade() -> None:
    op.drop_table('repo_ai_tags')
    op.drop_table('ai_tags')
    op.drop_table('sync_jobs')
    op.drop_table('repo_fts')
    op.drop_table('repo_ai')
    op.drop_table('embeddings')
    op.drop_table('stars')
    op.drop_table('repositories')
