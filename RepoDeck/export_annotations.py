#!/usr/bin/env python3
"""
Import/export script for RepoDeck.
Moves the annotation layer in and out of JSON files, and exports enabled projects.
"""

import logging
import sys
import argparse

from core.use_cases import (
    Dashboard,
    ExportAnnotations,
    ExportEnabledProjects,
    ImportAnnotations,
)
from infrastructure.layers import AnnotationLayer, InfraUrlLayer, SnapshotLayer
from infrastructure.store import open_store

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)

logger = logging.getLogger(__name__)


def main():
    """Main import/export entry point."""
    parser = argparse.ArgumentParser(
        description="Export or import repository annotations"
    )
    parser.add_argument(
        "action",
        choices=["export", "import", "export-enabled"],
        help="export annotations, import annotations, or export enabled projects",
    )
    parser.add_argument(
        "path",
        type=str,
        nargs="?",
        default=None,
        help="File to write or read (default: annotations.json / projects.json)",
    )
    parser.add_argument(
        "--store",
        type=str,
        default=None,
        help="Store backend: sqlite, postgres or memory (default: $STORE_BACKEND or sqlite)",
    )
    parser.add_argument(
        "--store-path",
        type=str,
        default=None,
        help="SQLite file path (default: $STORE_PATH or repodeck.db)",
    )

    args = parser.parse_args()

    try:
        logger.info("=" * 60)
        logger.info(f"RepoDeck - Annotations {args.action}")
        logger.info("=" * 60)

        with open_store(args.store, args.store_path) as store:
            dashboard = Dashboard(
                SnapshotLayer(store), InfraUrlLayer(store), AnnotationLayer(store)
            ).load()

            if args.action == "export":
                path = args.path or "annotations.json"
                ExportAnnotations(dashboard).execute(path)
                logger.info(f"Annotations saved to: {path}")

            elif args.action == "export-enabled":
                path = args.path or "projects.json"
                count = ExportEnabledProjects(dashboard).execute(path)
                logger.info(f"{count:,} enabled projects saved to: {path}")

            else:
                path = args.path or "annotations.json"
                if not ImportAnnotations(dashboard).execute(path):
                    logger.warning(f"Nothing imported from {path}")

        logger.info("=" * 60)
        return 0

    except Exception as e:
        logger.error(f"{args.action} failed: {e}", exc_info=True)
        return 1


if __name__ == "__main__":
    sys.exit(main())
