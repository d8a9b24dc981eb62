"""acknowledgement tables

Revision ID: f1a2b3c4d5e6
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""

from alembic import op
import sqlalchemy as sa

revision = "f1a2b3c4d5e6"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    # --- Document revision index ---
    op.create_table(
        "documents",
        sa.Column("id", sa.String(length=255), nullable=False),
        sa.Column("lastmod", sa.Integer(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )

    # --- Assignments ---
    op.create_table(
        "assignments",
        sa.Column("document_id", sa.String(length=255), nullable=False),
        sa.Column("page_assignees", sa.Text(), nullable=False, server_default=""),
        sa.Column("pattern_assignees", sa.Text(), nullable=False, server_default=""),
        sa.ForeignKeyConstraint(["document_id"], ["documents.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("document_id"),
    )

    op.create_table(
        "assignment_patterns",
        sa.Column("pattern", sa.String(length=255), nullable=False),
        sa.Column("assignees", sa.Text(), nullable=False),
        sa.PrimaryKeyConstraint("pattern"),
    )

    # --- Acknowledgement log ---
    op.create_table(
        "acknowledgements",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("document_id", sa.String(length=255), nullable=False),
        sa.Column("user", sa.String(length=255), nullable=False),
        sa.Column("ack", sa.Integer(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_acknowledgements_document_user",
        "acknowledgements",
        ["document_id", "user"],
    )
    op.create_index("ix_acknowledgements_ack", "acknowledgements", ["ack"])


def downgrade() -> None:
    op.drop_index("ix_acknowledgements_ack", table_name="acknowledgements")
    op.drop_index("ix_acknowledgements_document_user", table_name="acknowledgements")
    op.drop_table("acknowledgements")

    op.drop_table("assignment_patterns")
    op.drop_table("assignments")
    op.drop_table("documents")
