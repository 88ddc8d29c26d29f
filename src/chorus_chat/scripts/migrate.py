# src/chorus_chat/scripts/migrate.py
"""Bring the configured database schema up to date."""
from __future__ import annotations

import argparse
import os

from alembic import command
from alembic.config import Config

from chorus_chat.core.settings import settings

MIGRATIONS_DIR = os.path.abspath(
    os.path.join(os.path.dirname(__file__), "..", "..", "..", "migrations")
)


def run_upgrade_head() -> None:
    cfg = Config(os.path.join(MIGRATIONS_DIR, "alembic.ini"))
    cfg.set_main_option("sqlalchemy.url", settings.database_url_sync)
    cfg.set_main_option("script_location", MIGRATIONS_DIR)
    command.upgrade(cfg, "head")


def main() -> None:
    parser = argparse.ArgumentParser(description="Migrate the Chorus Chat database")
    parser.add_argument(
        "--create-all",
        action="store_true",
        help="Create tables straight from the ORM metadata instead of running Alembic.",
    )
    args = parser.parse_args()

    if args.create_all:
        from chorus_chat.db.session import create_tables

        create_tables()
        print(f"[migrate] created tables on {settings.effective_database_url}")
    else:
        run_upgrade_head()


if __name__ == "__main__":
    main()
