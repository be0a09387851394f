"""create artist analyses table

Revision ID: 20261017_000001
Revises:
Create Date: 2026-10-17 00:00:01.000000
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "20261017_000001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "artist_analyses",
        sa.Column("id", sa.String(), nullable=False),
        sa.Column("artist_slug", sa.String(), nullable=False),
        sa.Column("artist_name", sa.String(), nullable=False),
        sa.Column("instagram_username", sa.String(), nullable=True),
        sa.Column("tiktok_username", sa.String(), nullable=True),
        sa.Column("posts_analyzed", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("analysis_result", sa.JSON(), nullable=False),
        sa.Column("scraped_posts", sa.JSON(), nullable=False),
        sa.Column("profile_data", sa.JSON(), nullable=True),
        sa.Column("engagement_summary", sa.JSON(), nullable=True),
        sa.Column("external_profile_data", sa.JSON(), nullable=True),
        sa.Column("analysis_token", sa.String(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        op.f("ix_artist_analyses_artist_slug"),
        "artist_analyses",
        ["artist_slug"],
        unique=True,
    )


def downgrade() -> None:
    op.drop_index(op.f("ix_artist_analyses_artist_slug"), table_name="artist_analyses")
    op.drop_table("artist_analyses")
