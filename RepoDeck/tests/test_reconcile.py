"""
Tests for merging remote records with the annotation layers.
"""

from core.entities import AnnotationState, RemoteRecord
from core.reconcile import reconcile


def remote(name, owner="octocat", **kwargs):
    return RemoteRecord(name=name, owner=owner, url=f"https://github.com/{owner}/{name}", **kwargs)


class TestReconcile:
    """Test reconcile()."""

    def test_preserves_input_order(self):
        records = [remote("zeta"), remote("alpha"), remote("mid")]

        view = reconcile(records, {}, AnnotationState())

        assert [v.name for v in view] == ["zeta", "alpha", "mid"]

    def test_is_pure(self):
        records = [remote("a", description="x"), remote("b", is_fork=True)]
        annotations = AnnotationState(custom_urls={"octocat/a": ["https://a.example"]})
        infra = {"a": "https://infra.example/a"}

        first = reconcile(records, infra, annotations)
        second = reconcile(records, infra, annotations)

        assert first == second
        assert annotations.custom_urls == {"octocat/a": ["https://a.example"]}
        assert infra == {"a": "https://infra.example/a"}

    def test_infra_url_prepended_to_custom_urls(self):
        annotations = AnnotationState(
            custom_urls={"octocat/site": ["https://b.example", "", "https://b.example"]}
        )

        (view,) = reconcile([remote("site")], {"site": "https://infra.example"}, annotations)

        assert view.resolved_urls == [
            "https://infra.example",
            "https://b.example",
            "https://b.example",
        ]

    def test_empty_infra_url_ignored(self):
        (view,) = reconcile([remote("site")], {"site": ""}, AnnotationState())

        assert view.resolved_urls == []

    def test_infra_urls_keyed_by_bare_name(self):
        """Two owners with the same repository name share one infra URL."""
        records = [remote("site", owner="alice"), remote("site", owner="bob")]

        view = reconcile(records, {"site": "https://infra.example"}, AnnotationState())

        assert [v.resolved_urls for v in view] == [
            ["https://infra.example"],
            ["https://infra.example"],
        ]

    def test_description_override(self):
        annotations = AnnotationState(repo_descriptions={"octocat/a": "Mine"})
        records = [
            remote("a", description="Remote"),
            remote("b", description="Remote"),
            remote("c", description=None),
        ]

        view = reconcile(records, {}, annotations)

        assert [v.resolved_description for v in view] == ["Mine", "Remote", ""]

    def test_empty_override_is_not_an_override(self):
        annotations = AnnotationState(repo_descriptions={"octocat/a": ""})

        (view,) = reconcile([remote("a", description="Remote")], {}, annotations)

        assert view.resolved_description == "Remote"

    def test_annotations_and_type_label(self):
        annotations = AnnotationState(
            repo_enabled={"octocat/a": True},
            repo_classes={"octocat/a": "tool"},
        )
        records = [remote("a", is_private=True), remote("b", is_fork=True), remote("c")]

        a, b, c = reconcile(records, {}, annotations)

        assert (a.enabled, a.class_label, a.type_label) == (True, "tool", "Private")
        assert (b.enabled, b.class_label, b.type_label) == (False, "", "Fork")
        assert c.type_label == "Public"

    def test_orphaned_annotations_ignored(self):
        annotations = AnnotationState(
            repo_enabled={"someone/gone": True},
            custom_urls={"someone/gone": ["https://old.example"]},
        )

        view = reconcile([remote("a")], {"gone": "https://x.example"}, annotations)

        assert len(view) == 1
        assert view[0].resolved_urls == []
        assert "someone/gone" in annotations.repo_enabled
