#!/usr/bin/env python3
"""
Dashboard script for RepoDeck.
Lists stored repositories with filters, sorting and paging, and edits annotations.
"""

import argparse
import logging
import sys

from core.use_cases import Dashboard, LoadInfraUrls
from core.view_state import COLUMNS, NO_CLASS, SORT_KEYS, SOURCES, ViewState
from infrastructure.layers import AnnotationLayer, InfraUrlLayer, SnapshotLayer
from infrastructure.store import open_store

# Configure logging
logging.basicConfig(
    level=logging.WARNING,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)

logger = logging.getLogger(__name__)

COLUMN_WIDTHS = {
    "name": 32,
    "owner": 16,
    "type": 8,
    "language": 12,
    "class": 12,
    "stars": 6,
    "created_at": 10,
    "disk_usage": 9,
    "commits": 7,
    "enabled": 7,
    "urls": 40,
    "description": 50,
}


def print_separator(char="=", length=70):
    """Print a separator line."""
    print(char * length)


def cell(record, column: str) -> str:
    values = {
        "name": record.name,
        "owner": record.owner,
        "type": record.type_label,
        "language": record.primary_language or "",
        "class": record.class_label,
        "stars": record.star_count,
        "created_at": record.created_at[:10],
        "disk_usage": record.disk_usage_kb,
        "commits": "" if record.default_branch_commit_count is None
        else record.default_branch_commit_count,
        "enabled": "yes" if record.enabled else "",
        "urls": " ".join(record.resolved_urls),
        "description": record.resolved_description,
    }
    width = COLUMN_WIDTHS[column]
    text = str(values[column])
    if len(text) > width:
        text = text[:width - 1] + "…"
    return text.ljust(width)


def print_counts(title: str, counts: dict):
    print(f"{title}:")
    for label, count in sorted(counts.items(), key=lambda item: (-item[1], item[0])):
        print(f"  {label:30s} {count:6,}")


def list_repositories(dashboard: Dashboard, args):
    view = dashboard.view
    view.set_filters(
        name=args.name,
        owner=args.owner,
        language=args.language,
        type_category=None if args.type == "all" else args.type,
        class_label=args.class_label,
    )
    view.set_sort(args.sort, descending=args.desc)
    if args.columns:
        for column in COLUMNS:
            view.set_column_visible(column, column in args.columns)
    view.set_page(args.page)

    columns = view.visible_columns
    header = " ".join(column.upper().ljust(COLUMN_WIDTHS[column]) for column in columns)
    print(header)
    print_separator("-", len(header))
    for record in view.visible_records:
        print(" ".join(cell(record, column) for column in columns))
    print_separator("-", len(header))
    print(
        f"{view.filtered_count:,} of {len(view.records):,} repositories, "
        f"page {view.page + 1} of {max(view.page_count, 1)}"
    )

    if args.counts:
        aggregates = view.aggregates
        print_separator()
        print_counts("Types", aggregates.types)
        print_counts("Owners", aggregates.owners)
        print_counts("Languages", aggregates.languages)
        print_counts("Classes", aggregates.classes)


def annotate_repository(dashboard: Dashboard, args):
    key = args.repo_key
    known = {record.repo_key for record in dashboard.records}
    if key not in known:
        logger.warning(f"{key} is not in the stored snapshot; annotating anyway")

    if args.enable:
        dashboard.set_enabled(key, True)
    if args.disable:
        dashboard.set_enabled(key, False)
    if args.class_label is not None:
        if args.class_label and args.class_label not in dashboard.annotations.classes:
            logger.warning(f"Class '{args.class_label}' is not in the class list")
        dashboard.set_class(key, args.class_label)
    if args.description is not None:
        dashboard.set_description(key, args.description)
    for url in args.add_url or []:
        dashboard.add_url(key, url)
    if args.set_url:
        index, url = args.set_url
        dashboard.update_url(key, int(index), url)
    if args.remove_url is not None:
        dashboard.remove_url(key, args.remove_url)

    annotation = dashboard.annotations.record_for(key)
    print(f"{key}:")
    print(f"  enabled:     {annotation.enabled}")
    print(f"  class:       {annotation.class_label or NO_CLASS}")
    print(f"  description: {annotation.description_override}")
    for index, url in enumerate(annotation.custom_urls):
        print(f"  url[{index}]:      {url}")


def manage_classes(dashboard: Dashboard, args):
    if args.action == "add":
        if not dashboard.add_class(args.label or ""):
            logger.warning(f"Class '{args.label}' not added (blank or duplicate)")
    elif args.action == "remove":
        if not dashboard.remove_class(args.label or ""):
            logger.warning(f"Class '{args.label}' not found")

    counts = dashboard.view.aggregates.classes
    for label in dashboard.annotations.classes:
        print(f"  {label:30s} {counts.get(label, 0):6,}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Browse and annotate stored repositories")
    parser.add_argument("--store", type=str, default=None,
                        help="Store backend: sqlite, postgres or memory")
    parser.add_argument("--store-path", type=str, default=None,
                        help="SQLite file path (default: $STORE_PATH or repodeck.db)")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")

    commands = parser.add_subparsers(dest="command", required=True)

    listing = commands.add_parser("list", help="List repositories")
    listing.add_argument("--name", help="Substring of the repository name")
    listing.add_argument("--owner", help="Exact owner login")
    listing.add_argument("--language", help="Exact primary language")
    listing.add_argument("--type", default=SOURCES,
                         choices=[SOURCES, "Public", "Private", "Fork", "all"],
                         help=f"Type category (default: {SOURCES})")
    listing.add_argument("--class", dest="class_label",
                         help=f"Class label, or '{NO_CLASS}' for unclassified")
    listing.add_argument("--sort", default="name", choices=sorted(SORT_KEYS))
    listing.add_argument("--desc", action="store_true", help="Sort descending")
    listing.add_argument("--page", type=int, default=0, help="Zero-based page index")
    listing.add_argument("--columns", nargs="+", choices=COLUMNS,
                         help="Columns to show")
    listing.add_argument("--counts", action="store_true",
                         help="Show per-type/owner/language/class counts")

    annotate = commands.add_parser("annotate", help="Edit one repository's annotations")
    annotate.add_argument("repo_key", help="owner/name")
    toggle = annotate.add_mutually_exclusive_group()
    toggle.add_argument("--enable", action="store_true")
    toggle.add_argument("--disable", action="store_true")
    annotate.add_argument("--class", dest="class_label", help="Class label ('' clears)")
    annotate.add_argument("--description", help="Description override ('' clears)")
    annotate.add_argument("--add-url", action="append", help="Append a custom URL")
    annotate.add_argument("--set-url", nargs=2, metavar=("INDEX", "URL"),
                          help="Replace the custom URL at INDEX")
    annotate.add_argument("--remove-url", type=int, metavar="INDEX",
                          help="Remove the custom URL at INDEX")

    classes = commands.add_parser("classes", help="Manage the class list")
    classes.add_argument("action", choices=["list", "add", "remove"])
    classes.add_argument("label", nargs="?")

    infra = commands.add_parser("load-infra", help="Replace infra URLs from a JSON file")
    infra.add_argument("path", help="Flat {name: url} map or pages_urls output")

    return parser


def main():
    """Main dashboard entry point."""
    args = build_parser().parse_args()

    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    try:
        with open_store(args.store, args.store_path) as store:
            dashboard = Dashboard(
                SnapshotLayer(store),
                InfraUrlLayer(store),
                AnnotationLayer(store),
                view=ViewState(),
            ).load()

            if args.command == "list":
                list_repositories(dashboard, args)
            elif args.command == "annotate":
                annotate_repository(dashboard, args)
            elif args.command == "classes":
                manage_classes(dashboard, args)
            elif args.command == "load-infra":
                count = LoadInfraUrls(dashboard).execute(args.path)
                if count is None:
                    return 1
                print(f"Loaded {count:,} infra URLs")

        return 0

    except KeyboardInterrupt:
        return 130

    except Exception as e:
        logger.error(f"{args.command} failed: {e}", exc_info=args.verbose)
        return 1


if __name__ == "__main__":
    sys.exit(main())
