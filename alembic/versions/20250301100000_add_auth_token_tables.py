"""Add refresh_tokens and password_reset_tokens tables.

Revision ID: 20250301100000
Revises: 20250301000000
Create Date: 2025-03-01

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

revision: str = "20250301100000"
down_revision: Union[str, None] = "20250301000000"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _create_token_table(name: str, token_type: sa.types.TypeEngine) -> None:
    op.create_table(
        name,
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("token", token_type, nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("now()"),
        ),
        sa.ForeignKeyConstraint(
            ["user_id"],
            ["users.id"],
            name=op.f(f"fk_{name}_user_id_users"),
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("id", name=op.f(f"pk_{name}")),
        sa.UniqueConstraint("token", name=op.f(f"uq_{name}_token")),
    )
    op.create_index(op.f(f"ix_{name}_user_id"), name, ["user_id"], unique=False)
    op.create_index(op.f(f"ix_{name}_expires_at"), name, ["expires_at"], unique=False)


def _drop_token_table(name: str) -> None:
    op.drop_index(op.f(f"ix_{name}_expires_at"), table_name=name)
    op.drop_index(op.f(f"ix_{name}_user_id"), table_name=name)
    op.drop_table(name)


def upgrade() -> None:
    _create_token_table("refresh_tokens", sa.Text())
    _create_token_table("password_reset_tokens", sa.String(length=128))


def downgrade() -> None:
    _drop_token_table("password_reset_tokens")
    _drop_token_table("refresh_tokens")
