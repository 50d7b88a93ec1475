"""
Railway unified startup script.

Handles:
    1. Database schema creation + optional CSV seeding (SEED_DATA_DIR)
    2. Starts FastAPI backend (uvicorn) in foreground

Usage:
    python railway_start.py            # seed (if configured) + api
    python railway_start.py --no-seed  # api only
"""

import asyncio
import logging
import os
import sys

os.chdir(os.path.dirname(os.path.abspath(__file__)))
sys.path.insert(0, ".")

import config_env

logger = logging.getLogger("railway_start")


async def run_db_migration():
    """Create tables, then load CSV seed data if SEED_DATA_DIR is set."""
    from backend.database import init_db

    await init_db()
    if not config_env.SEED_DATA_DIR:
        print("  No SEED_DATA_DIR set, skipping CSV seed")
        return

    print(f"  Seeding from {config_env.SEED_DATA_DIR} ...")
    try:
        from backend.migrate_csv import migrate
        await migrate(config_env.SEED_DATA_DIR)
        print("  Seeding complete")
    except Exception as e:
        logger.exception("Seeding failed (non-fatal)")
        print(f"  Seed error (non-fatal): {e}")


def main():
    import argparse
    parser = argparse.ArgumentParser()
    parser.add_argument("--no-seed", action="store_true", help="Skip database seeding")
    args = parser.parse_args()

    logging.basicConfig(level=getattr(logging, config_env.LOG_LEVEL, logging.INFO))
    port = config_env.PORT

    print("=" * 60)
    print("  Metior -- Railway Startup")
    print("=" * 60)

    if not args.no_seed:
        print("\n[1/2] Database initialization...")
        asyncio.run(run_db_migration())
    else:
        print("\n[1/2] Skipping DB initialization (--no-seed)")

    print(f"\n[2/2] Starting FastAPI on port {port}...")
    os.execvp(
        sys.executable,
        [sys.executable, "-m", "uvicorn", "backend.app:app",
         "--host", "0.0.0.0", "--port", port],
    )


if __name__ == "__main__":
    main()
