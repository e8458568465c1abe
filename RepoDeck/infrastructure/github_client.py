"""
GitHub API client for listing an account's repositories.
Uses the GraphQL API when a token is available and the public REST API otherwise.
"""

import logging
import os
from typing import Optional

import requests

from core.entities import RemoteRecord
from core.errors import ApiError, AuthError, NetworkError

logger = logging.getLogger(__name__)


class GitHubClient:
    """
    Client for fetching every repository of one GitHub account.
    Pages are accumulated in memory; any failure discards them all.
    """

    GRAPHQL_ENDPOINT = "https://api.github.com/graphql"
    REST_ENDPOINT = "https://api.github.com"
    PAGE_SIZE = 100
    USER_AGENT = "repomgr"

    # Repositories the viewer owns or collaborates on
    VIEWER_REPOSITORIES_QUERY = """
    query ViewerRepositories($cursor: String) {
      viewer {
        repositories(first: 100, after: $cursor, ownerAffiliations: [OWNER, COLLABORATOR]) {
          totalCount
          pageInfo {
            hasNextPage
            endCursor
          }
          nodes {
            name
            description
            url
            stargazerCount
            primaryLanguage {
              name
            }
            homepageUrl
            isPrivate
            isFork
            createdAt
            diskUsage
            owner {
              login
            }
            defaultBranchRef {
              target {
                ... on Commit {
                  history {
                    totalCount
                  }
                }
              }
            }
          }
        }
      }
    }
    """

    def __init__(
        self,
        token: Optional[str] = None,
        username: Optional[str] = None,
        timeout: float = 30,
        session: Optional[requests.Session] = None,
    ):
        """
        Initialize GitHub client.

        Args:
            token: GitHub personal access token (or uses GITHUB_TOKEN env var)
            username: Account to list without a token (or uses GITHUB_USER env var)
            timeout: Per-request timeout in seconds
            session: Optional requests session, mostly for tests
        """
        self.token = token or os.environ.get("GITHUB_TOKEN")
        self.username = username or os.environ.get("GITHUB_USER")
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update({"User-Agent": self.USER_AGENT})

    def fetch_repositories(
        self,
        token: Optional[str] = None,
        username: Optional[str] = None,
    ) -> list[RemoteRecord]:
        """
        Fetch all repositories, preferring the token path.

        Raises:
            AuthError: If neither a token nor a username is available
            ApiError, NetworkError: See the path-specific methods
        """
        token = token or self.token
        username = username or self.username

        if token:
            return self.fetch_viewer_repositories(token)
        if username:
            return self.fetch_user_repositories(username)
        raise AuthError("Token required")

    def _request(self, method: str, url: str, **kwargs) -> requests.Response:
        try:
            response = self.session.request(method, url, timeout=self.timeout, **kwargs)
        except requests.RequestException as e:
            logger.error(f"Request to {url} failed: {e}")
            raise NetworkError(f"Network error: {e}") from e

        logger.debug(f"GitHub API response status: {response.status_code}")

        if not response.ok:
            logger.error(f"GitHub API error response: {response.text}")
            raise AuthError(
                f"GitHub API error: {response.status_code}",
                status_code=response.status_code,
            )
        return response

    @staticmethod
    def _json(response: requests.Response):
        try:
            return response.json()
        except ValueError as e:
            raise ApiError(
                "GitHub API returned invalid JSON", status_code=response.status_code
            ) from e

    def fetch_viewer_repositories(self, token: str) -> list[RemoteRecord]:
        """
        Page through the viewer's repositories over GraphQL.

        Args:
            token: GitHub personal access token

        Returns:
            Every repository, in the order GitHub returned them

        Raises:
            AuthError: For non-2xx responses
            ApiError: For errors reported in a 2xx body, or a body that is
                not the expected shape
            NetworkError: For transport failures
        """
        headers = {
            "Authorization": f"Bearer {token}",
            "Content-Type": "application/json",
        }

        nodes = []
        cursor = None
        has_next_page = True
        page = 0
        status_code = None

        while has_next_page:
            response = self._request(
                "POST",
                self.GRAPHQL_ENDPOINT,
                json={"query": self.VIEWER_REPOSITORIES_QUERY, "variables": {"cursor": cursor}},
                headers=headers,
            )
            status_code = response.status_code
            result = self._json(response)
            if not isinstance(result, dict):
                raise self._unexpected_payload(status_code)

            errors = result.get("errors")
            if errors:
                first = errors[0] if isinstance(errors, list) else None
                message = (
                    first.get("message") if isinstance(first, dict) else None
                ) or "GraphQL query failed"
                logger.error(f"GraphQL errors: {message}")
                raise ApiError(message, status_code=status_code)

            try:
                data = ((result.get("data") or {}).get("viewer") or {}).get("repositories")
                if not data:
                    logger.warning("GraphQL response carried no repositories; stopping")
                    break

                nodes.extend(data["nodes"])
                has_next_page = data["pageInfo"]["hasNextPage"]
                cursor = data["pageInfo"]["endCursor"]
                total = data.get("totalCount")
            except (KeyError, TypeError, ValueError, AttributeError) as e:
                raise self._unexpected_payload(status_code) from e

            page += 1
            logger.info(f"Fetched page {page}: {len(nodes)} / {total} repositories")

        return self._to_records(self._record_from_graphql, nodes, status_code)

    def fetch_user_repositories(self, username: str) -> list[RemoteRecord]:
        """
        Page through a user's public repositories over REST.

        A page shorter than PAGE_SIZE ends the loop, so a full last page
        costs one extra (empty) request.

        Args:
            username: GitHub login

        Returns:
            Every public repository of the user
        """
        url = f"{self.REST_ENDPOINT}/users/{username}/repos"
        items = []
        page = 1

        while True:
            response = self._request(
                "GET", url, params={"per_page": self.PAGE_SIZE, "page": page}
            )
            batch = self._json(response)
            if not isinstance(batch, list):
                raise self._unexpected_payload(response.status_code)

            items.extend(batch)
            logger.info(f"Fetched page {page}: {len(items)} repositories for {username}")

            if len(batch) < self.PAGE_SIZE:
                break
            page += 1

        return self._to_records(self._record_from_rest, items, response.status_code)

    @staticmethod
    def _unexpected_payload(status_code: Optional[int]) -> ApiError:
        logger.error("GitHub API returned an unexpected payload")
        return ApiError("GitHub API returned an unexpected payload", status_code=status_code)

    def _to_records(self, mapper, items: list, status_code: Optional[int]) -> list[RemoteRecord]:
        """Map raw items to records; any malformed item fails the whole fetch."""
        try:
            return [mapper(item) for item in items]
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            raise self._unexpected_payload(status_code) from e

    @staticmethod
    def _record_from_graphql(node: dict) -> RemoteRecord:
        branch = node.get("defaultBranchRef") or {}
        history = (branch.get("target") or {}).get("history") or {}
        language = node.get("primaryLanguage") or {}

        return RemoteRecord(
            name=node["name"],
            owner=node["owner"]["login"],
            url=node["url"],
            description=node.get("description"),
            primary_language=language.get("name"),
            is_private=bool(node.get("isPrivate")),
            is_fork=bool(node.get("isFork")),
            star_count=node.get("stargazerCount") or 0,
            created_at=node.get("createdAt") or "",
            disk_usage_kb=node.get("diskUsage") or 0,
            default_branch_commit_count=history.get("totalCount"),
        )

    @staticmethod
    def _record_from_rest(item: dict) -> RemoteRecord:
        return RemoteRecord(
            name=item["name"],
            owner=item["owner"]["login"],
            url=item["html_url"],
            description=item.get("description"),
            primary_language=item.get("language"),
            is_private=bool(item.get("private")),
            is_fork=bool(item.get("fork")),
            star_count=item.get("stargazers_count") or 0,
            created_at=item.get("created_at") or "",
            disk_usage_kb=item.get("size") or 0,
        )
