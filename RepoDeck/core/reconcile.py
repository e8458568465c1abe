"""
Reconciliation of fetched repositories with the local annotation layers.
"""

from typing import Iterable, Mapping

from core.entities import AnnotationState, RemoteRecord, ViewRecord, type_label_for


def resolve_urls(
    record: RemoteRecord,
    infra_urls: Mapping[str, str],
    annotations: AnnotationState,
) -> list[str]:
    """
    Infra URL first, then the user's custom URLs in insertion order.

    The infra layer is keyed by bare repository name, so two owners with
    a repository of the same name share one infra URL.
    """
    urls = []
    infra_url = infra_urls.get(record.name)
    if infra_url:
        urls.append(infra_url)
    urls.extend(url for url in annotations.custom_urls.get(record.repo_key, []) if url)
    return urls


def resolve_description(record: RemoteRecord, annotations: AnnotationState) -> str:
    """A non-empty override wins; an empty one counts as no override."""
    override = annotations.repo_descriptions.get(record.repo_key, "")
    return override or record.description or ""


def reconcile(
    remote_records: Iterable[RemoteRecord],
    infra_urls: Mapping[str, str],
    annotations: AnnotationState,
) -> list[ViewRecord]:
    """
    Merge remote records with the infra URL and annotation layers.

    Pure and order-preserving: one ViewRecord per remote record, in input
    order. Layer entries that match no remote record are ignored here and
    left alone in storage.
    """
    view_records = []
    for record in remote_records:
        annotation = annotations.record_for(record.repo_key)
        view_records.append(
            ViewRecord(
                name=record.name,
                owner=record.owner,
                url=record.url,
                description=record.description,
                primary_language=record.primary_language,
                is_private=record.is_private,
                is_fork=record.is_fork,
                star_count=record.star_count,
                created_at=record.created_at,
                disk_usage_kb=record.disk_usage_kb,
                default_branch_commit_count=record.default_branch_commit_count,
                resolved_urls=resolve_urls(record, infra_urls, annotations),
                resolved_description=resolve_description(record, annotations),
                type_label=type_label_for(record.is_fork, record.is_private),
                enabled=annotation.enabled,
                class_label=annotation.class_label,
            )
        )
    return view_records
