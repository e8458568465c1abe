#!/usr/bin/env python3
"""
Store setup script for RepoDeck.
Creates the key-value table and reports which layers are already stored.
"""

import argparse
import logging
import sys

from infrastructure.layers import ANNOTATIONS_KEY, INFRA_URLS_KEY, SNAPSHOT_KEY
from infrastructure.store import open_store

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)

logger = logging.getLogger(__name__)


def main():
    """Initialize the store schema."""
    parser = argparse.ArgumentParser(description="Create the RepoDeck store")
    parser.add_argument(
        "--store",
        choices=["sqlite", "postgres"],
        default=None,
        help="Store backend (default: $STORE_BACKEND or sqlite)",
    )
    parser.add_argument(
        "--store-path",
        type=str,
        default=None,
        help="SQLite file path (default: $STORE_PATH or repodeck.db)",
    )
    args = parser.parse_args()

    try:
        logger.info("Starting store setup...")

        with open_store(args.store, args.store_path) as store:
            store.create_schema()

            existing = set(store.keys())
            for key in (SNAPSHOT_KEY, INFRA_URLS_KEY, ANNOTATIONS_KEY):
                state = "present" if key in existing else "empty"
                logger.info(f"  layer '{key}': {state}")

        logger.info("Store setup completed successfully!")
        return 0

    except Exception as e:
        logger.error(f"Store setup failed: {e}", exc_info=True)
        return 1


if __name__ == "__main__":
    sys.exit(main())
