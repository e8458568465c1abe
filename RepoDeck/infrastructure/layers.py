"""
Typed access to the three persisted layers.

Each layer lives under its own key and is read and written on its own;
there is no transaction spanning layers.
"""

import logging

from core.codec import annotations_from_dict, annotations_to_dict
from core.entities import AnnotationState, RemoteRecord
from core.errors import ParseError
from infrastructure.store import KeyValueStore

logger = logging.getLogger(__name__)

SNAPSHOT_KEY = "repos"
INFRA_URLS_KEY = "infra_urls"
ANNOTATIONS_KEY = "annotations"


class SnapshotLayer:
    """The repository list of the last successful fetch."""

    def __init__(self, store: KeyValueStore, key: str = SNAPSHOT_KEY):
        self.store = store
        self.key = key

    def load(self) -> list[RemoteRecord]:
        """Malformed entries are skipped rather than failing the whole list."""
        data = self.store.get(self.key, [])
        if not isinstance(data, list):
            logger.warning(f"Ignoring snapshot '{self.key}': expected a list")
            return []

        records = []
        for item in data:
            try:
                records.append(RemoteRecord.from_dict(item))
            except (KeyError, TypeError, ValueError, AttributeError) as e:
                logger.warning(f"Skipping malformed snapshot entry {item!r}: {e}")
        return records

    def save(self, records: list[RemoteRecord]):
        self.store.set(self.key, [record.to_dict() for record in records])
        logger.info(f"Saved snapshot of {len(records)} repositories")


class InfraUrlLayer:
    """Deployment URLs keyed by bare repository name."""

    def __init__(self, store: KeyValueStore, key: str = INFRA_URLS_KEY):
        self.store = store
        self.key = key

    def load(self) -> dict[str, str]:
        data = self.store.get(self.key, {})
        if not isinstance(data, dict):
            logger.warning(f"Ignoring infra URLs '{self.key}': expected an object")
            return {}
        return {name: url for name, url in data.items() if isinstance(url, str)}

    def save(self, urls: dict[str, str]):
        self.store.set(self.key, dict(urls))
        logger.info(f"Saved {len(urls)} infra URLs")


class AnnotationLayer:
    """The bundled annotation object."""

    def __init__(self, store: KeyValueStore, key: str = ANNOTATIONS_KEY):
        self.store = store
        self.key = key

    def load(self) -> AnnotationState:
        data = self.store.get(self.key, {})
        try:
            return annotations_from_dict(data)
        except ParseError as e:
            logger.warning(f"Ignoring corrupt annotations '{self.key}': {e}")
            return AnnotationState()

    def save(self, state: AnnotationState):
        self.store.set(self.key, annotations_to_dict(state))
