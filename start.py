"""
Unified startup script.

Handles:
    1. Schema migrations (alembic upgrade head)
    2. Starts the FastAPI backend (uvicorn) in the foreground

Usage:
    python start.py                 # migrate + serve
    python start.py --migrate-only  # migrations only
    python start.py --web           # serve only, skip migrations
"""

import argparse
import os
import sys
from pathlib import Path

from alembic import command
from alembic.config import Config

ROOT = Path(__file__).resolve().parent


def alembic_config() -> Config:
    return Config(str(ROOT / "alembic.ini"))


def run_migrations(revision: str = "head"):
    print(f"  Applying migrations up to {revision}...")
    command.upgrade(alembic_config(), revision)
    print("  Migrations complete")


def main(argv=None):
    parser = argparse.ArgumentParser()
    parser.add_argument("--web", action="store_true", help="Start FastAPI only")
    parser.add_argument("--migrate-only", action="store_true", help="Apply migrations and exit")
    args = parser.parse_args(argv)

    port = os.environ.get("PORT", "8080")

    print("=" * 60)
    print("  Insightboard -- startup")
    print("=" * 60)

    if not args.web:
        print("\n[1/2] Database migrations...")
        run_migrations()
    else:
        print("\n[1/2] Skipping migrations (--web mode)")

    if args.migrate_only:
        return

    print(f"\n[2/2] Starting FastAPI on port {port}...")
    os.chdir(ROOT)
    os.execvp(
        sys.executable,
        [sys.executable, "-m", "uvicorn", "backend.app:app",
         "--host", "0.0.0.0", "--port", port],
    )


if __name__ == "__main__":
    main()
