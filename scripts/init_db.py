"""Creates every table of the SlotSwapper schema on the configured database.

Usage:
    python scripts/init_db.py            # DATABASE_URL_PROD
    python scripts/init_db.py --test     # DATABASE_URL_TEST
"""

import argparse
import asyncio
import os
import sys
from pathlib import Path

from dotenv import load_dotenv

# --- Path Setup ---
PROJECT_ROOT = Path(__file__).resolve().parent.parent
if str(PROJECT_ROOT / "src") not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT / "src"))


async def main(test_mode: bool):
    load_dotenv(PROJECT_ROOT / ".env")
    if test_mode:
        os.environ["TEST_MODE"] = "True"

    # Settings are read on import, after the environment is ready
    from slot_swapper_backend.common.config import settings
    from slot_swapper_backend.database import engine as db_engine

    print(f"Initializing {'TEST' if settings.TEST_MODE else 'PROD'} database...")
    db_engine.create_db_engine_and_session_factory()
    try:
        await db_engine.create_all_tables()
    finally:
        await db_engine.dispose_db_engine()
    print("Done.")


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Create the SlotSwapper tables.")
    parser.add_argument("--test", action="store_true", help="use DATABASE_URL_TEST")
    args = parser.parse_args()
    asyncio.run(main(args.test))
