"""Apply, roll back or create schema migrations for the booking database.

Usage:
    python scripts/migrate.py                    # upgrade to head
    python scripts/migrate.py create <message>   # autogenerate a revision
    python scripts/migrate.py downgrade [rev]    # default: one step back
    python scripts/migrate.py current            # show the applied revision
"""

import sys
from pathlib import Path

from alembic import command
from alembic.config import Config

ALEMBIC_INI = Path(__file__).resolve().parent.parent / "alembic.ini"


def _config() -> Config:
    return Config(str(ALEMBIC_INI))


def _run(label: str, action) -> None:
    try:
        print(f"{label}...")
        action()
        print(f"✓ {label} finished")
    except Exception as e:
        print(f"✗ {label} failed: {e}", file=sys.stderr)
        sys.exit(1)


def upgrade(revision: str = "head") -> None:
    """Bring the schema up to ``revision``."""
    _run(f"Upgrading to {revision}", lambda: command.upgrade(_config(), revision))


def downgrade(revision: str = "-1") -> None:
    """Roll the schema back to ``revision``."""
    _run(f"Downgrading to {revision}", lambda: command.downgrade(_config(), revision))


def create_migration(message: str) -> None:
    """Autogenerate a revision from the table metadata."""
    _run(
        f"Creating migration '{message}'",
        lambda: command.revision(_config(), message=message, autogenerate=True),
    )


def main(argv: list[str]) -> None:
    if not argv:
        upgrade()
    elif argv[0] == "create" and len(argv) > 1:
        create_migration(" ".join(argv[1:]))
    elif argv[0] == "downgrade":
        downgrade(argv[1] if len(argv) > 1 else "-1")
    elif argv[0] == "current":
        command.current(_config(), verbose=True)
    else:
        print(__doc__)
        sys.exit(2)


if __name__ == "__main__":
    main(sys.argv[1:])
