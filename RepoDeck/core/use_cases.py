"""
Business logic / use cases for the repository dashboard.
This layer orchestrates the GitHub client, the persisted layers and the view.
"""

import logging
from typing import Optional

from core import codec
from core.entities import AnnotationState, RemoteRecord, ViewRecord
from core.errors import FetchError, ParseError
from core.reconcile import reconcile
from core.view_state import ViewState
from infrastructure.github_client import GitHubClient
from infrastructure.layers import AnnotationLayer, InfraUrlLayer, SnapshotLayer

logger = logging.getLogger(__name__)


class FetchRepositories:
    """
    Use case for fetching every repository of an account and storing the snapshot.
    The stored snapshot is only replaced once every page has been fetched.
    """

    def __init__(self, github_client: GitHubClient, snapshot_layer: SnapshotLayer):
        """
        Initialize the use case.

        Args:
            github_client: GitHub API client
            snapshot_layer: Where the fetched list is persisted
        """
        self.github = github_client
        self.snapshot = snapshot_layer

    def execute(
        self,
        token: Optional[str] = None,
        username: Optional[str] = None,
    ) -> list[RemoteRecord]:
        """
        Execute the fetch.

        Args:
            token: GitHub token; falls back to the client's configuration
            username: Account for the token-less REST path

        Returns:
            The fetched repositories

        Raises:
            FetchError: On any failure; the stored snapshot is left untouched
        """
        try:
            records = self.github.fetch_repositories(token=token, username=username)
        except FetchError as e:
            logger.error(f"Fetch failed ({e.kind}): {e}")
            raise

        self.snapshot.save(records)
        logger.info(f"Fetch completed. {len(records):,} repositories stored")
        return records


class Dashboard:
    """
    In-memory state of the dashboard: the three layers plus the view over them.

    Layers are read once by load(). Every annotation edit is written back
    immediately. The reconciled list is rebuilt only when one of the layer
    versions has moved since the last build.
    """

    def __init__(
        self,
        snapshot_layer: SnapshotLayer,
        infra_layer: InfraUrlLayer,
        annotation_layer: AnnotationLayer,
        view: Optional[ViewState] = None,
    ):
        self.snapshot_layer = snapshot_layer
        self.infra_layer = infra_layer
        self.annotation_layer = annotation_layer
        self.view = view or ViewState()

        self.records: list[RemoteRecord] = []
        self.infra_urls: dict[str, str] = {}
        self.annotations = AnnotationState()

        self._snapshot_version = 0
        self._infra_version = 0
        self._annotations_version = 0
        self._view_stamp: Optional[tuple] = None
        self._pushed_stamp: Optional[tuple] = None
        self._view_records: list[ViewRecord] = []

    def load(self) -> "Dashboard":
        """Read all three layers from the store."""
        self.records = self.snapshot_layer.load()
        self.infra_urls = self.infra_layer.load()
        self.annotations = self.annotation_layer.load()
        self._snapshot_version += 1
        self._infra_version += 1
        self._annotations_version += 1
        logger.info(
            f"Loaded {len(self.records)} repositories, {len(self.infra_urls)} infra URLs"
        )
        self.refresh_view()
        return self

    def _stamp(self) -> tuple:
        return (self._snapshot_version, self._infra_version, self._annotations_version)

    def view_records(self) -> list[ViewRecord]:
        """Reconciled records, rebuilt only when a layer changed."""
        stamp = self._stamp()
        if stamp != self._view_stamp:
            self._view_records = reconcile(self.records, self.infra_urls, self.annotations)
            self._view_stamp = stamp
        return self._view_records

    def refresh_view(self):
        """Push the reconciled list into the view if a layer changed since the last push."""
        stamp = self._stamp()
        if stamp != self._pushed_stamp:
            self.view.set_records(self.view_records())
            self._pushed_stamp = stamp

    def replace_records(self, records: list[RemoteRecord]):
        """Swap in a freshly fetched list. Annotations are kept as they are."""
        self.records = list(records)
        self._snapshot_version += 1
        self.refresh_view()

    def replace_infra_urls(self, urls: dict[str, str]):
        self.infra_urls = dict(urls)
        self.infra_layer.save(self.infra_urls)
        self._infra_version += 1
        self.refresh_view()

    def _annotations_changed(self):
        self.annotation_layer.save(self.annotations)
        self._annotations_version += 1
        self.refresh_view()

    # -- annotation edits ----------------------------------------------

    def set_enabled(self, repo_key: str, enabled: bool):
        self.annotations.set_enabled(repo_key, enabled)
        self._annotations_changed()

    def set_class(self, repo_key: str, label: str):
        self.annotations.set_class(repo_key, label)
        self._annotations_changed()

    def set_description(self, repo_key: str, text: str):
        self.annotations.set_description(repo_key, text)
        self._annotations_changed()

    def add_url(self, repo_key: str, url: str):
        self.annotations.add_url(repo_key, url)
        self._annotations_changed()

    def update_url(self, repo_key: str, index: int, url: str):
        self.annotations.update_url(repo_key, index, url)
        self._annotations_changed()

    def remove_url(self, repo_key: str, index: int):
        self.annotations.remove_url(repo_key, index)
        self._annotations_changed()

    def add_class(self, label: str) -> bool:
        added = self.annotations.add_class(label)
        if added:
            self._annotations_changed()
        return added

    def remove_class(self, label: str) -> bool:
        removed = self.annotations.remove_class(label)
        if removed:
            self._annotations_changed()
        return removed

    # -- import / export -----------------------------------------------

    def export_annotations(self) -> str:
        return codec.export_annotations(self.annotations)

    def import_annotations(self, text: str) -> bool:
        """Best-effort import; malformed input changes nothing."""
        if not codec.import_annotations(self.annotations, text):
            return False
        self._annotations_changed()
        return True

    def export_enabled(self) -> str:
        return codec.export_enabled(self.view_records())


class ExportAnnotations:
    """
    Use case for writing the annotation bundle to a file.
    """

    def __init__(self, dashboard: Dashboard):
        self.dashboard = dashboard

    def execute(self, output_path: str = "annotations.json"):
        """
        Export annotations to JSON.

        Args:
            output_path: Path to output file
        """
        logger.info(f"Exporting annotations to {output_path}")
        with open(output_path, "w", encoding="utf-8") as f:
            f.write(self.dashboard.export_annotations())
        logger.info("Export completed")


class ImportAnnotations:
    """
    Use case for reading an annotation bundle (current or legacy shape) from a file.
    """

    def __init__(self, dashboard: Dashboard):
        self.dashboard = dashboard

    def execute(self, input_path: str) -> bool:
        """
        Import annotations from JSON.

        Args:
            input_path: Path to the exported file

        Returns:
            True if anything was imported
        """
        logger.info(f"Importing annotations from {input_path}")
        with open(input_path, encoding="utf-8") as f:
            imported = self.dashboard.import_annotations(f.read())
        if imported:
            logger.info("Import completed")
        return imported


class ExportEnabledProjects:
    """
    Use case for writing the enabled repositories, fully resolved, to a file.
    """

    def __init__(self, dashboard: Dashboard):
        self.dashboard = dashboard

    def execute(self, output_path: str = "projects.json") -> int:
        """
        Returns:
            Number of repositories exported
        """
        count = sum(1 for record in self.dashboard.view_records() if record.enabled)
        logger.info(f"Exporting {count} enabled repositories to {output_path}")
        with open(output_path, "w", encoding="utf-8") as f:
            f.write(self.dashboard.export_enabled())
        return count


class LoadInfraUrls:
    """
    Use case for replacing the infra URL layer from the deployment tooling's output.
    """

    def __init__(self, dashboard: Dashboard):
        self.dashboard = dashboard

    def execute(self, input_path: str) -> Optional[int]:
        """
        Returns:
            Number of URLs loaded, or None if the file was not usable
        """
        with open(input_path, encoding="utf-8") as f:
            text = f.read()

        try:
            urls = codec.parse_infra_urls(text)
        except ParseError as e:
            logger.warning(f"Ignoring infra URLs from {input_path}: {e}")
            return None

        self.dashboard.replace_infra_urls(urls)
        return len(urls)
