"""users email case insensitive

Revision ID: 8e2b6d0c4a17
Revises: 3c1f9a7e52d4
Create Date: 2026-10-17 15:40:03.114862

"""
from collections.abc import Sequence

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision: str = '8e2b6d0c4a17'
down_revision: str | None = '3c1f9a7e52d4'
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    # Fails on existing case-only duplicates, which must be merged by hand first
    op.execute("UPDATE users SET email = lower(email) WHERE email <> lower(email)")
    op.create_index(
        'ix_users_email_lower',
        'users',
        [sa.text('lower(email)')],
        unique=True,
    )


def downgrade() -> None:
    op.drop_index('ix_users_email_lower', table_name='users')
