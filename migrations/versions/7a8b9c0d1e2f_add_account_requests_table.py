"""add_account_requests_table

Instructor account requests reviewed by admins.  Ids are UUID strings;
registration_key is mailed to the requester on approval.

Revision ID: 7a8b9c0d1e2f
Revises: 1c2d3e4f5a6b
Create Date: 2026-09-14

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

revision: str = "7a8b9c0d1e2f"
down_revision: Union[str, Sequence[str], None] = "1c2d3e4f5a6b"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute(sa.text("""
        CREATE TABLE IF NOT EXISTS account_requests (
            id TEXT PRIMARY KEY,
            name TEXT NOT NULL,
            email TEXT NOT NULL,
            institute TEXT NOT NULL,
            status TEXT NOT NULL DEFAULT 'PENDING',
            comments TEXT,
            registration_key TEXT NOT NULL UNIQUE,
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            registered_at TEXT
        )
    """))
    op.execute(sa.text(
        "CREATE INDEX IF NOT EXISTS idx_account_requests_status "
        "ON account_requests(status)"
    ))
    op.execute(sa.text(
        "CREATE INDEX IF NOT EXISTS idx_account_requests_email "
        "ON account_requests(email)"
    ))


def downgrade() -> None:
    op.execute(sa.text("DROP TABLE IF EXISTS account_requests"))
