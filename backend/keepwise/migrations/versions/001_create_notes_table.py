"""Create notes table

Revision ID: 001
Revises: None
Create Date: 2025-01-15 00:00:00.000000+00:00

What:  Creates the initial `notes` table holding captured page excerpts.
       Notes were not yet owned by users at this revision; 002 adds user_id.

Rollback: downgrade() drops the table entirely (destructive — all data lost).
"""

from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

# revision identifiers
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create the notes table and its created_at index."""
    op.create_table(
        "notes",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column(
            "url",
            sa.Text(),
            nullable=False,
            comment="Address of the page the text was captured from",
        ),
        sa.Column(
            "highlighted_text",
            sa.Text(),
            nullable=False,
            comment="The text the user selected on the page",
        ),
        sa.Column(
            "summary",
            sa.Text(),
            nullable=False,
            comment="Summary of highlighted_text",
        ),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
            comment="When this note was created (UTC)",
        ),
        sa.PrimaryKeyConstraint("id"),
        # Never reuse ids of deleted notes on SQLite
        sqlite_autoincrement=True,
    )

    op.create_index(
        "idx_notes_created_at",
        "notes",
        [sa.text("created_at DESC")],
    )


def downgrade() -> None:
    """
    Drop the notes table entirely.

    WARNING: This is destructive — all note data will be permanently lost.
    """
    op.drop_index("idx_notes_created_at", table_name="notes")
    op.drop_table("notes")
