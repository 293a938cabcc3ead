"""initial schema

Revision ID: 001
Revises:
Create Date: 2026-10-18

Both tables as defined in app/models/database_models.py:
document_wrappers, pictures.
"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = "001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    # ── document_wrappers ─────────────────────────────────────────────────
    op.create_table(
        "document_wrappers",
        sa.Column("id", sa.Integer, primary_key=True, index=True),
        sa.Column("file_name", sa.String(255), nullable=False),
        sa.Column("landscape", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("num_columns", sa.Integer, nullable=False, server_default="1"),
        sa.Column("num_single_column_lines", sa.Integer, nullable=False, server_default="0"),
        sa.Column("content_json", sa.JSON, nullable=False),
        sa.Column("table_configs_json", sa.JSON, nullable=False),
        sa.Column("output_file_name", sa.String(512), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )

    # ── pictures ──────────────────────────────────────────────────────────
    op.create_table(
        "pictures",
        sa.Column("id", sa.Integer, primary_key=True, index=True),
        sa.Column(
            "document_id",
            sa.Integer,
            sa.ForeignKey("document_wrappers.id", ondelete="CASCADE"),
            nullable=False,
            index=True,
        ),
        sa.Column("file_name", sa.String(255), nullable=False),
        sa.Column("data", sa.LargeBinary, nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.UniqueConstraint("document_id", "file_name", name="uq_pictures_document_file"),
    )


def downgrade() -> None:
    op.drop_table("pictures")
    op.drop_table("document_wrappers")
