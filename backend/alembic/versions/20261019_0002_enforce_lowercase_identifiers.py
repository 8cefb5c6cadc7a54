"""Enforce lowercase usernames and emails."""

from collections.abc import Sequence

from alembic import op

revision: str = "20261019_0002"
down_revision: str | None = "20261019_0001"
branch_labels: Sequence[str] | None = None
depends_on: Sequence[str] | None = None

CHECKS = {
    "ck_users_username_lowercase": "username = lower(username)",
    "ck_users_email_lowercase": "email = lower(email)",
}


def upgrade() -> None:
    bind = op.get_bind()
    if bind.dialect.name == "sqlite":
        # Test suite uses SQLite; runtime production DB is PostgreSQL.
        return

    op.execute("UPDATE users SET username = lower(username), email = lower(email)")
    for name, condition in CHECKS.items():
        op.create_check_constraint(name, "users", condition)


def downgrade() -> None:
    bind = op.get_bind()
    if bind.dialect.name == "sqlite":
        return

    for name in CHECKS:
        op.drop_constraint(name, "users", type_="check")
