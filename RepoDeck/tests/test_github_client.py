"""
Tests for the GitHub client pagination and error handling.
"""

import pytest
import requests
from unittest.mock import Mock

from core.errors import ApiError, AuthError, FetchError, NetworkError
from infrastructure.github_client import GitHubClient


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    monkeypatch.delenv("GITHUB_TOKEN", raising=False)
    monkeypatch.delenv("GITHUB_USER", raising=False)


def make_response(status=200, payload=None, text=""):
    response = Mock()
    response.status_code = status
    response.ok = 200 <= status < 300
    response.text = text
    response.json.return_value = payload
    return response


def make_node(name, owner="octocat", **overrides):
    node = {
        "name": name,
        "description": f"{name} description",
        "url": f"https://github.com/{owner}/{name}",
        "stargazerCount": 3,
        "primaryLanguage": {"name": "Python"},
        "homepageUrl": None,
        "isPrivate": False,
        "isFork": False,
        "createdAt": "2021-04-01T10:00:00Z",
        "diskUsage": 120,
        "owner": {"login": owner},
        "defaultBranchRef": {"target": {"history": {"totalCount": 42}}},
    }
    node.update(overrides)
    return node


def graphql_page(nodes, has_next, cursor, total):
    return {
        "data": {
            "viewer": {
                "repositories": {
                    "totalCount": total,
                    "pageInfo": {"hasNextPage": has_next, "endCursor": cursor},
                    "nodes": nodes,
                }
            }
        }
    }


def make_rest_item(name, owner="octocat"):
    return {
        "name": name,
        "html_url": f"https://github.com/{owner}/{name}",
        "description": None,
        "language": "Go",
        "fork": False,
        "private": False,
        "stargazers_count": 1,
        "created_at": "2020-01-01T00:00:00Z",
        "size": 10,
        "owner": {"login": owner},
    }


def make_client(responses, **kwargs):
    session = Mock()
    session.headers = {}
    session.request.side_effect = responses
    return GitHubClient(session=session, **kwargs), session


class TestGraphQLPagination:
    """Token path: cursor pagination over the viewer's repositories."""

    def test_requests_every_page_and_unions_nodes(self):
        """250 repositories take exactly three pages."""
        nodes = [make_node(f"repo-{i}") for i in range(250)]
        client, session = make_client([
            make_response(payload=graphql_page(nodes[:100], True, "c1", 250)),
            make_response(payload=graphql_page(nodes[100:200], True, "c2", 250)),
            make_response(payload=graphql_page(nodes[200:], False, "c3", 250)),
        ])

        records = client.fetch_viewer_repositories("secret")

        assert session.request.call_count == 3
        assert [r.name for r in records] == [f"repo-{i}" for i in range(250)]
        assert len({r.repo_key for r in records}) == 250

    def test_passes_previous_cursor(self):
        """Each request carries the endCursor of the page before it."""
        client, session = make_client([
            make_response(payload=graphql_page([make_node("a")], True, "c1", 2)),
            make_response(payload=graphql_page([make_node("b")], False, None, 2)),
        ])

        client.fetch_viewer_repositories("secret")

        cursors = [
            call.kwargs["json"]["variables"]["cursor"]
            for call in session.request.call_args_list
        ]
        assert cursors == [None, "c1"]

    def test_sends_bearer_token_and_affiliations(self):
        client, session = make_client([
            make_response(payload=graphql_page([], False, None, 0)),
        ])

        client.fetch_viewer_repositories("secret")

        method, url = session.request.call_args.args
        kwargs = session.request.call_args.kwargs
        assert method == "POST"
        assert url == GitHubClient.GRAPHQL_ENDPOINT
        assert kwargs["headers"]["Authorization"] == "Bearer secret"
        assert "ownerAffiliations: [OWNER, COLLABORATOR]" in kwargs["json"]["query"]
        assert session.headers["User-Agent"] == "repomgr"

    def test_maps_node_fields(self):
        client, _ = make_client([
            make_response(payload=graphql_page([
                make_node("tool", owner="acme", isPrivate=True, stargazerCount=9),
                make_node("empty", primaryLanguage=None, defaultBranchRef=None),
            ], False, None, 2)),
        ])

        tool, empty = client.fetch_viewer_repositories("secret")

        assert tool.owner == "acme"
        assert tool.is_private is True
        assert tool.star_count == 9
        assert tool.primary_language == "Python"
        assert tool.default_branch_commit_count == 42
        assert tool.disk_usage_kb == 120
        assert empty.primary_language is None
        assert empty.default_branch_commit_count is None

    def test_stops_when_data_missing(self):
        client, session = make_client([make_response(payload={"data": None})])

        assert client.fetch_viewer_repositories("secret") == []
        assert session.request.call_count == 1


class TestGraphQLErrors:
    """Token path failures."""

    def test_non_success_status_is_auth_error(self):
        client, _ = make_client([make_response(status=401, text="Bad credentials")])

        with pytest.raises(AuthError, match="GitHub API error: 401") as exc_info:
            client.fetch_viewer_repositories("bad")

        assert exc_info.value.kind == "auth"
        assert exc_info.value.status_code == 401

    def test_errors_array_on_200_is_api_error(self):
        client, _ = make_client([
            make_response(payload={
                "errors": [{"message": "Field 'x' doesn't exist"}, {"message": "other"}],
            }),
        ])

        with pytest.raises(ApiError, match="Field 'x' doesn't exist") as exc_info:
            client.fetch_viewer_repositories("secret")

        assert exc_info.value.kind == "api"

    def test_transport_failure_is_network_error(self):
        client, _ = make_client(requests.ConnectionError("connection refused"))

        with pytest.raises(NetworkError) as exc_info:
            client.fetch_viewer_repositories("secret")

        assert exc_info.value.kind == "network"
        assert isinstance(exc_info.value, FetchError)

    def test_failed_second_page_aborts(self):
        """Nothing from page one is returned when page two fails."""
        nodes = [make_node(f"repo-{i}") for i in range(100)]
        client, session = make_client([
            make_response(payload=graphql_page(nodes, True, "c1", 150)),
            make_response(status=502, text="Bad gateway"),
        ])

        with pytest.raises(AuthError):
            client.fetch_viewer_repositories("secret")

        assert session.request.call_count == 2

    def test_invalid_json_is_api_error(self):
        response = make_response()
        response.json.side_effect = ValueError("Expecting value")
        client, _ = make_client([response])

        with pytest.raises(ApiError, match="invalid JSON"):
            client.fetch_viewer_repositories("secret")

    def test_non_object_body_is_api_error(self):
        client, _ = make_client([make_response(payload=[])])

        with pytest.raises(ApiError, match="unexpected payload") as exc_info:
            client.fetch_viewer_repositories("secret")

        assert exc_info.value.kind == "api"

    def test_missing_page_info_is_api_error(self):
        client, _ = make_client([
            make_response(payload={"data": {"viewer": {"repositories": {"nodes": []}}}}),
        ])

        with pytest.raises(ApiError, match="unexpected payload"):
            client.fetch_viewer_repositories("secret")

    def test_node_without_owner_is_api_error(self):
        node = make_node("a")
        node["owner"] = None
        client, _ = make_client([
            make_response(payload=graphql_page([node], False, None, 1)),
        ])

        with pytest.raises(ApiError, match="unexpected payload"):
            client.fetch_viewer_repositories("secret")

    def test_invalid_node_values_are_api_error(self):
        client, _ = make_client([
            make_response(payload=graphql_page(
                [make_node("a", stargazerCount=-3)], False, None, 1
            )),
        ])

        with pytest.raises(ApiError):
            client.fetch_viewer_repositories("secret")


class TestRestPagination:
    """Token-less path: numbered pages over the public REST API."""

    def test_short_page_ends_loop(self):
        client, session = make_client([
            make_response(payload=[make_rest_item(f"r{i}") for i in range(100)]),
            make_response(payload=[make_rest_item(f"r{i}") for i in range(100, 200)]),
            make_response(payload=[make_rest_item(f"r{i}") for i in range(200, 230)]),
        ])

        records = client.fetch_user_repositories("octocat")

        assert len(records) == 230
        pages = [call.kwargs["params"]["page"] for call in session.request.call_args_list]
        assert pages == [1, 2, 3]
        assert all(
            call.kwargs["params"]["per_page"] == 100
            for call in session.request.call_args_list
        )
        assert session.request.call_args.args[1] == (
            "https://api.github.com/users/octocat/repos"
        )

    def test_full_last_page_ends_on_empty_page(self):
        client, session = make_client([
            make_response(payload=[make_rest_item(f"r{i}") for i in range(100)]),
            make_response(payload=[]),
        ])

        records = client.fetch_user_repositories("octocat")

        assert len(records) == 100
        assert session.request.call_count == 2

    def test_maps_rest_fields(self):
        client, _ = make_client([make_response(payload=[make_rest_item("cli")])])

        (record,) = client.fetch_user_repositories("octocat")

        assert record.url == "https://github.com/octocat/cli"
        assert record.primary_language == "Go"
        assert record.disk_usage_kb == 10
        assert record.default_branch_commit_count is None

    def test_not_found_is_auth_error(self):
        client, _ = make_client([make_response(status=404, text="Not Found")])

        with pytest.raises(AuthError, match="404"):
            client.fetch_user_repositories("nobody")

    def test_item_without_owner_is_api_error(self):
        client, _ = make_client([make_response(payload=[{"name": "a", "html_url": "u"}])])

        with pytest.raises(ApiError, match="unexpected payload") as exc_info:
            client.fetch_user_repositories("octocat")

        assert exc_info.value.kind == "api"

    def test_non_list_body_is_api_error(self):
        client, _ = make_client([make_response(payload={"message": "odd"})])

        with pytest.raises(ApiError, match="unexpected payload"):
            client.fetch_user_repositories("octocat")


class TestFetchRepositories:
    """Choosing between the token and username paths."""

    def test_token_wins_over_username(self):
        client, session = make_client(
            [make_response(payload=graphql_page([make_node("a")], False, None, 1))],
            token="secret",
            username="octocat",
        )

        client.fetch_repositories()

        assert session.request.call_args.args[0] == "POST"

    def test_username_path_without_token(self):
        client, session = make_client([make_response(payload=[])])

        client.fetch_repositories(username="octocat")

        assert session.request.call_args.args[0] == "GET"

    def test_token_from_environment(self, monkeypatch):
        monkeypatch.setenv("GITHUB_TOKEN", "from-env")
        client, session = make_client(
            [make_response(payload=graphql_page([], False, None, 0))]
        )

        client.fetch_repositories()

        headers = session.request.call_args.kwargs["headers"]
        assert headers["Authorization"] == "Bearer from-env"

    def test_no_credential_is_auth_error(self):
        client, session = make_client([])

        with pytest.raises(AuthError, match="Token required"):
            client.fetch_repositories()

        session.request.assert_not_called()
