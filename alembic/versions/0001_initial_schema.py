"""Initial schema: prompts, rotation cursors, submissions, ratings

Revision ID: 0001
Revises:
Create Date: 2026-10-16 12:00:00.000000

"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = "0001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "prompts",
        sa.Column("seq", sa.Integer(), autoincrement=True, primary_key=True),
        sa.Column("id", sa.String(8), nullable=False, unique=True),
        sa.Column("category", sa.String(10), nullable=False),
        sa.Column("text", sa.Text(), nullable=False),
        sa.Column("position", sa.Integer(), nullable=False),
        sa.Column("created_by", sa.String(32), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.CheckConstraint("category IN ('truth', 'dare')", name="ck_prompts_category"),
    )
    op.create_index(
        "uq_prompts_category_position", "prompts", ["category", "position"], unique=True,
    )

    op.create_table(
        "rotation_cursors",
        sa.Column("category", sa.String(10), primary_key=True),
        sa.Column("last_position", sa.Integer(), nullable=False, server_default="0"),
    )

    op.create_table(
        "submissions",
        sa.Column("seq", sa.Integer(), autoincrement=True, primary_key=True),
        sa.Column("id", sa.String(6), nullable=False, unique=True),
        sa.Column("category", sa.String(10), nullable=False),
        sa.Column("text", sa.Text(), nullable=False),
        sa.Column("submitter_id", sa.BigInteger(), nullable=False),
        sa.Column("origin_guild_id", sa.BigInteger(), nullable=True),
        sa.Column("status", sa.String(10), nullable=False, server_default="pending"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("resolved_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("resolver_id", sa.BigInteger(), nullable=True),
        sa.Column("moderation_channel_id", sa.BigInteger(), nullable=True),
        sa.Column("moderation_message_id", sa.BigInteger(), nullable=True),
        sa.CheckConstraint("category IN ('truth', 'dare')", name="ck_submissions_category"),
        sa.CheckConstraint(
            "status IN ('pending', 'approved', 'rejected')", name="ck_submissions_status",
        ),
    )
    op.create_index("ix_submissions_status", "submissions", ["status"])
    op.create_index(
        "ix_submissions_submitter_status", "submissions", ["submitter_id", "status"],
    )

    op.create_table(
        "prompt_ratings",
        sa.Column(
            "prompt_id",
            sa.String(8),
            sa.ForeignKey("prompts.id", ondelete="CASCADE"),
            primary_key=True,
        ),
        sa.Column("user_id", sa.BigInteger(), primary_key=True),
        sa.Column("value", sa.SmallInteger(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.CheckConstraint("value IN (-1, 1)", name="ck_prompt_ratings_value"),
    )
    op.create_index("ix_prompt_ratings_user", "prompt_ratings", ["user_id"])


def downgrade() -> None:
    op.drop_index("ix_prompt_ratings_user", table_name="prompt_ratings")
    op.drop_table("prompt_ratings")
    op.drop_index("ix_submissions_submitter_status", table_name="submissions")
    op.drop_index("ix_submissions_status", table_name="submissions")
    op.drop_table("submissions")
    op.drop_table("rotation_cursors")
    op.drop_index("uq_prompts_category_position", table_name="prompts")
    op.drop_table("prompts")
