"""Add user_id to notes

Revision ID: 002
Revises: 001
Create Date: 2025-02-03 00:00:00.000000+00:00

What:  Makes notes per-user. Rows written before authentication existed are
       assigned to the shared 'anonymous' user, the identity every caller
       gets when no identity provider is configured.
"""

from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

# revision identifiers
revision: str = "002"
down_revision: Union[str, None] = "001"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    if op.get_context().as_sql:
        columns = set()
    else:
        columns = {c["name"] for c in sa.inspect(op.get_bind()).get_columns("notes")}

    # Unversioned tables may already carry user_id (added ad hoc, nullable)
    if "user_id" not in columns:
        with op.batch_alter_table("notes") as batch_op:
            batch_op.add_column(
                sa.Column(
                    "user_id",
                    sa.String(128),
                    nullable=False,
                    server_default="anonymous",
                    comment="Owner uid as resolved by the token verifier",
                )
            )

    op.execute("UPDATE notes SET user_id = 'anonymous' WHERE user_id IS NULL OR user_id = ''")

    op.create_index("idx_notes_user_id", "notes", ["user_id"], if_not_exists=True)
    # Missing on tables created before 001 existed
    op.create_index(
        "idx_notes_created_at", "notes", [sa.text("created_at DESC")], if_not_exists=True
    )


def downgrade() -> None:
    op.drop_index("idx_notes_user_id", table_name="notes")
    with op.batch_alter_table("notes") as batch_op:
        batch_op.drop_column("user_id")
