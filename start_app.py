# start_app.py
"""Migrate the outlet databases and launch the API server."""

from __future__ import annotations

import argparse
import asyncio
import os
import sys

import uvicorn
from dotenv import load_dotenv

import config
from api.app.db.tenant import run_tenant_migrations


def main(argv: list[str] | None = None) -> None:
    """Load settings, migrate each ``--tenant`` database, then start the API."""

    parser = argparse.ArgumentParser()
    parser.add_argument(
        "--tenant",
        action="append",
        default=[],
        help="Organization whose database should be migrated (repeatable)",
    )
    parser.add_argument(
        "--skip-db-migrations",
        action="store_true",
        help="Start without running Alembic migrations",
    )
    args = parser.parse_args(argv)

    load_dotenv()  # load environment variables from a .env file

    env_flag = os.getenv("SKIP_DB_MIGRATIONS")
    skip = args.skip_db_migrations or (
        env_flag and env_flag.lower() not in {"0", "false"}
    )

    if not skip:
        for tenant_id in args.tenant:
            try:
                asyncio.run(run_tenant_migrations(tenant_id))
            except Exception as exc:
                print(
                    f"database migration failed for {tenant_id}: {exc}",
                    file=sys.stderr,
                )
                raise SystemExit(1)

    settings = config.get_settings()

    uvicorn.run(
        "api.app.main:app",
        host="0.0.0.0",  # nosec B104: bind for local development
        port=int(os.getenv("PORT", "8000")),
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
