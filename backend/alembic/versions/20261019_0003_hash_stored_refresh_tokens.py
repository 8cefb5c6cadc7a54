"""Store refresh tokens as SHA-256 digests.

Rows written before this revision hold raw tokens that can no longer match a
digest, so those sessions are ended and users sign in again.
"""

from collections.abc import Sequence

from alembic import op
import sqlalchemy as sa

revision: str = "20261019_0003"
down_revision: str | None = "20261019_0002"
branch_labels: Sequence[str] | None = None
depends_on: Sequence[str] | None = None

REFRESH_TOKEN_DIGEST_LENGTH = 64


def upgrade() -> None:
    op.execute("UPDATE users SET refresh_token = NULL")
    bind = op.get_bind()
    if bind.dialect.name == "sqlite":
        return

    op.alter_column(
        "users",
        "refresh_token",
        existing_type=sa.String(length=1024),
        type_=sa.String(length=REFRESH_TOKEN_DIGEST_LENGTH),
        existing_nullable=True,
    )


def downgrade() -> None:
    op.execute("UPDATE users SET refresh_token = NULL")
    bind = op.get_bind()
    if bind.dialect.name == "sqlite":
        return

    op.alter_column(
        "users",
        "refresh_token",
        existing_type=sa.String(length=REFRESH_TOKEN_DIGEST_LENGTH),
        type_=sa.String(length=1024),
        existing_nullable=True,
    )
