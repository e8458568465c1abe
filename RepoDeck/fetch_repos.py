#!/usr/bin/env python3
"""
Fetch script for RepoDeck.
Fetches every repository of a GitHub account and stores the snapshot.
"""

import logging
import sys
import argparse

from core.errors import FetchError
from core.use_cases import Dashboard, FetchRepositories
from infrastructure.github_client import GitHubClient
from infrastructure.layers import AnnotationLayer, InfraUrlLayer, SnapshotLayer
from infrastructure.store import open_store

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)

logger = logging.getLogger(__name__)


def main():
    """Main fetch entry point."""
    parser = argparse.ArgumentParser(
        description="Fetch GitHub repositories and store their metadata"
    )
    parser.add_argument(
        "--token",
        type=str,
        default=None,
        help="GitHub personal access token (default: $GITHUB_TOKEN)",
    )
    parser.add_argument(
        "--user",
        type=str,
        default=None,
        help="GitHub login for the token-less public listing (default: $GITHUB_USER)",
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
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable debug logging",
    )

    args = parser.parse_args()

    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    try:
        logger.info("=" * 60)
        logger.info("RepoDeck - GitHub Repository Fetch")
        logger.info("=" * 60)

        github = GitHubClient(token=args.token, username=args.user)
        if github.token:
            logger.info("Fetch mode: GraphQL (token)")
        elif github.username:
            logger.info(f"Fetch mode: REST (user {github.username})")

        with open_store(args.store, args.store_path) as store:
            snapshot = SnapshotLayer(store)
            records = FetchRepositories(github, snapshot).execute()

            dashboard = Dashboard(snapshot, InfraUrlLayer(store), AnnotationLayer(store)).load()
            aggregates = dashboard.view.aggregates

            logger.info("=" * 60)
            logger.info("Fetch Summary:")
            logger.info(f"  Repositories fetched: {len(records):,}")
            for type_label, count in sorted(aggregates.types.items()):
                logger.info(f"  {type_label:10s} {count:6,}")
            logger.info("=" * 60)

        return 0

    except KeyboardInterrupt:
        logger.info("\nFetch interrupted by user. Stored data is unchanged.")
        return 130  # Standard exit code for SIGINT

    except FetchError as e:
        logger.error(f"Fetch failed: {e}")
        return 1

    except Exception as e:
        logger.error(f"Fetch failed: {e}", exc_info=True)
        return 1


if __name__ == "__main__":
    sys.exit(main())
