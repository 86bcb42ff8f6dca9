"""Create pending_answers table for revealable answers."""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "20261017_0001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "pending_answers",
        sa.Column("key", sa.String(length=128), primary_key=True, nullable=False),
        sa.Column("payload", sa.Text(), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index("ix_pending_answers_expires_at", "pending_answers", ["expires_at"])


def downgrade() -> None:
    op.drop_index("ix_pending_answers_expires_at", table_name="pending_answers")
    op.drop_table("pending_answers")
