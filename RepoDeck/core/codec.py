"""
JSON import/export of the annotation layer.

The export envelope has the same shape as the persisted annotation bundle:
{classes, repoClasses, customUrls, repoEnabled, repoDescriptions}.
Two older shapes are still accepted on import: URL values stored as a
single string, and the {pages_urls: {value: {name: url}}} output of the
deployment tooling.
"""

import json
import logging
from typing import Any, Iterable

from core.entities import AnnotationState, ViewRecord
from core.errors import ParseError

logger = logging.getLogger(__name__)

LEGACY_URLS_KEY = "pagesUrls"
LEGACY_PAGES_KEY = "pages_urls"


def annotations_to_dict(state: AnnotationState) -> dict:
    return {
        "classes": list(state.classes),
        "repoClasses": dict(state.repo_classes),
        "customUrls": {key: list(urls) for key, urls in state.custom_urls.items()},
        "repoEnabled": dict(state.repo_enabled),
        "repoDescriptions": dict(state.repo_descriptions),
    }


def annotations_from_dict(data: dict) -> AnnotationState:
    """Build a fresh state from a persisted bundle, tolerating missing keys."""
    state = AnnotationState()
    apply_envelope(state, data)
    return state


def export_annotations(state: AnnotationState) -> str:
    return json.dumps(annotations_to_dict(state), indent=2)


def migrate_urls(value: Any) -> list[str]:
    """
    Normalize one URL entry to a list.

    A bare string becomes a one-element list, or an empty list when the
    string is empty.
    """
    if isinstance(value, str):
        return [value] if value else []
    if isinstance(value, list) and all(isinstance(url, str) for url in value):
        return list(value)
    if value is None:
        return []
    raise ParseError(f"Invalid URL entry: {value!r}")


def _expect_mapping(data: dict, key: str) -> dict:
    value = data[key]
    if not isinstance(value, dict):
        raise ParseError(f"'{key}' must be an object, got {type(value).__name__}")
    return value


def _expect_values(data: dict, key: str, value_type: type) -> dict:
    """Like _expect_mapping, and every value must be a ``value_type``."""
    mapping = _expect_mapping(data, key)
    for repo_key, value in mapping.items():
        if not isinstance(value, value_type):
            raise ParseError(
                f"'{key}' value for '{repo_key}' must be {value_type.__name__}, "
                f"got {type(value).__name__}"
            )
    return mapping


def _parse_envelope(data: Any) -> dict:
    """
    Validate an import envelope and convert it to attribute assignments.

    Nothing is applied here, so a bad key anywhere leaves the state as it was.
    """
    if not isinstance(data, dict):
        raise ParseError("Import must be a JSON object")

    updates = {}

    if "classes" in data:
        classes = data["classes"]
        if not isinstance(classes, list) or not all(isinstance(c, str) for c in classes):
            raise ParseError("'classes' must be a list of strings")
        updates["classes"] = list(dict.fromkeys(classes))

    if "repoClasses" in data:
        updates["repo_classes"] = {
            key: label for key, label in _expect_values(data, "repoClasses", str).items()
            if label
        }

    for urls_key in ("customUrls", LEGACY_URLS_KEY):
        if urls_key in data:
            updates["custom_urls"] = {
                key: migrate_urls(value)
                for key, value in _expect_mapping(data, urls_key).items()
            }
            break

    if "repoEnabled" in data:
        updates["repo_enabled"] = {
            key: value for key, value in _expect_values(data, "repoEnabled", bool).items()
        }

    if "repoDescriptions" in data:
        updates["repo_descriptions"] = {
            key: text
            for key, text in _expect_values(data, "repoDescriptions", str).items()
            if text
        }

    if LEGACY_PAGES_KEY in data:
        pages = _expect_mapping(data, LEGACY_PAGES_KEY)
        value = pages.get("value", {})
        if not isinstance(value, dict):
            raise ParseError(f"'{LEGACY_PAGES_KEY}.value' must be an object")
        updates["_legacy_pages"] = {key: migrate_urls(url) for key, url in value.items()}

    return updates


def apply_envelope(state: AnnotationState, data: Any) -> AnnotationState:
    """
    Assign every top-level key present in ``data`` onto ``state`` in place.

    Each present key replaces its mapping entirely. Legacy pages URLs are
    appended to the custom URLs per key afterwards.

    Raises:
        ParseError: If the envelope is malformed; state is left untouched
    """
    updates = _parse_envelope(data)
    legacy_pages = updates.pop("_legacy_pages", {})

    for attr, value in updates.items():
        setattr(state, attr, value)

    if legacy_pages:
        merged = dict(state.custom_urls)
        for key, urls in legacy_pages.items():
            if urls:
                merged[key] = merged.get(key, []) + urls
        state.custom_urls = merged

    return state


def import_annotations(state: AnnotationState, text: str) -> bool:
    """
    Best-effort import of an exported envelope into ``state``.

    Malformed input is logged and ignored, leaving ``state`` untouched.

    Returns:
        True if the import was applied
    """
    try:
        try:
            data = json.loads(text)
        except (TypeError, ValueError) as e:
            raise ParseError(f"Invalid JSON: {e}") from e
        apply_envelope(state, data)
    except ParseError as e:
        logger.warning(f"Ignoring annotation import: {e}")
        return False

    logger.info(
        f"Imported annotations: {len(state.classes)} classes, "
        f"{len(state.repo_classes)} classified, {len(state.custom_urls)} with URLs"
    )
    return True


def enabled_project(record: ViewRecord) -> dict:
    """Flatten one view record into a plain export row."""
    return {
        "name": record.name,
        "owner": record.owner,
        "url": record.url,
        "description": record.resolved_description,
        "language": record.primary_language,
        "type": record.type_label,
        "class": record.class_label,
        "urls": list(record.resolved_urls),
        "stars": record.star_count,
        "createdAt": record.created_at,
        "diskUsage": record.disk_usage_kb,
        "commits": record.default_branch_commit_count,
    }


def export_enabled(records: Iterable[ViewRecord]) -> str:
    """Snapshot of every enabled repository as a JSON array."""
    return json.dumps([enabled_project(r) for r in records if r.enabled], indent=2)


def parse_infra_urls(text: str) -> dict[str, str]:
    """
    Read a deployment URL map, keyed by bare repository name.

    Accepts either a flat {name: url} object or the tooling output shape
    {pages_urls: {value: {name: url}}}. Non-string and empty URLs are dropped.

    Raises:
        ParseError: If the text is not one of those shapes
    """
    try:
        data = json.loads(text)
    except (TypeError, ValueError) as e:
        raise ParseError(f"Invalid JSON: {e}") from e

    if not isinstance(data, dict):
        raise ParseError("Infra URLs must be a JSON object")

    if LEGACY_PAGES_KEY in data:
        pages = data[LEGACY_PAGES_KEY]
        data = pages.get("value") if isinstance(pages, dict) else None
        if not isinstance(data, dict):
            raise ParseError(f"'{LEGACY_PAGES_KEY}.value' must be an object")

    return {name: url for name, url in data.items() if isinstance(url, str) and url}
