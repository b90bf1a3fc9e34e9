"""Create users, collections and contributions tables

Revision ID: 001
Revises: None
Create Date: 2026-10-19 00:00:00.000000+00:00

Rollback: downgrade() drops all three tables (destructive).
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
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column(
            "email",
            sa.String(255),
            nullable=False,
            comment="Login identifier, lower-cased",
        ),
        sa.Column("password_hash", sa.String(255), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id", name="pk_users"),
        sa.UniqueConstraint("email", name="uq_users_email"),
    )

    op.create_table(
        "collections",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("created_by", sa.Integer(), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id", name="pk_collections"),
        sa.ForeignKeyConstraint(
            ["created_by"], ["users.id"],
            name="fk_collections_created_by",
            ondelete="CASCADE",
        ),
    )
    op.create_index(
        "idx_collections_created_at",
        "collections",
        [sa.text("created_at DESC")],
    )
    op.create_index("idx_collections_created_by", "collections", ["created_by"])

    op.create_table(
        "contributions",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("collection_id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column(
            "file_url",
            sa.String(1024),
            nullable=False,
            comment="Storage backend file reference (path or URL)",
        ),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id", name="pk_contributions"),
        sa.ForeignKeyConstraint(
            ["collection_id"], ["collections.id"],
            name="fk_contributions_collection_id",
            ondelete="CASCADE",
        ),
        sa.ForeignKeyConstraint(
            ["user_id"], ["users.id"],
            name="fk_contributions_user_id",
            ondelete="CASCADE",
        ),
    )
    # Export reads a collection's rows in primary-key order
    op.create_index(
        "idx_contributions_collection_id",
        "contributions",
        ["collection_id", "id"],
    )


def downgrade() -> None:
    op.drop_index("idx_contributions_collection_id", table_name="contributions")
    op.drop_table("contributions")
    op.drop_index("idx_collections_created_by", table_name="collections")
    op.drop_index("idx_collections_created_at", table_name="collections")
    op.drop_table("collections")
    op.drop_table("users")
