"""addresses and checks

Revision ID: 20261019_0001
Revises:
Create Date: 2026-10-19 00:00:00.000000

"""
from __future__ import annotations

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = "20261019_0001"
down_revision = None
branch_labels = None
depends_on = None


def _has_table(table_name: str) -> bool:
    bind = op.get_bind()
    insp = sa.inspect(bind)
    return table_name in set(insp.get_table_names())


def _existing_indexes(table_name: str) -> set[str]:
    bind = op.get_bind()
    insp = sa.inspect(bind)
    try:
        return {str(i.get("name", "")) for i in insp.get_indexes(table_name)}
    except Exception:
        return set()


def _create_index_if_missing(name: str, table_name: str, cols: list[str]) -> None:
    if name in _existing_indexes(table_name):
        return
    op.create_index(name, table_name, cols, unique=False)


def upgrade() -> None:
    if not _has_table("addresses"):
        op.create_table(
            "addresses",
            sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
            sa.Column("name", sa.String(), nullable=False),
            sa.Column("created_at", sa.String(), nullable=False),
            sa.UniqueConstraint("name", name="uq_addresses_name"),
        )
    _create_index_if_missing("idx_addresses_created_at", "addresses", ["created_at", "id"])

    if not _has_table("checks"):
        op.create_table(
            "checks",
            sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
            sa.Column("address_id", sa.Integer(), nullable=False),
            sa.Column("status_code", sa.Integer(), nullable=False),
            sa.Column("title", sa.Text(), nullable=True),
            sa.Column("h1", sa.Text(), nullable=True),
            sa.Column("description", sa.Text(), nullable=True),
            sa.Column("created_at", sa.String(), nullable=False),
            sa.ForeignKeyConstraint(
                ["address_id"],
                ["addresses.id"],
                name="fk_checks_address_id",
                ondelete="CASCADE",
            ),
        )
    _create_index_if_missing("idx_checks_address_created", "checks", ["address_id", "created_at", "id"])


def downgrade() -> None:
    if _has_table("checks"):
        op.drop_table("checks")
    if _has_table("addresses"):
        op.drop_table("addresses")
