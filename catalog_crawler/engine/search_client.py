"""GraphQL search client for the paginated instructor catalog."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Protocol

import httpx
import structlog

from ..config import SearchConfig
from ..errors import SearchError

TEACHER_SEARCH_QUERY = """
query TeacherSearch($count: Int!, $cursor: String, $queryText: String!) {
    search: newSearch {
        teachers(query: {text: $queryText}, first: $count, after: $cursor) {
            resultCount
            pageInfo { hasNextPage endCursor }
            edges {
                node {
                    id legacyId firstName lastName avgRating
                    avgDifficulty numRatings wouldTakeAgainPercent
                    department school { id }
                }
            }
        }
    }
}
"""


@dataclass(slots=True)
class SearchPage:
    """One page of search results."""

    result_count: int
    has_next_page: bool
    end_cursor: str | None
    nodes: list[dict[str, Any]] = field(default_factory=list)


class SearchBackend(Protocol):
    """Anything able to fetch one page for a query."""

    def search(self, query_text: str, page_size: int, cursor: str | None = None) -> SearchPage:
        ...


class SearchClient:
    """Issue paginated search queries with a static credential header."""

    def __init__(
        self,
        config: SearchConfig,
        logger: structlog.BoundLogger | None = None,
    ) -> None:
        self.config = config
        self.logger = logger or structlog.get_logger("catalog_crawler.search")
        self._client = httpx.Client(
            auth=httpx.BasicAuth(config.username, config.password),
            headers={"User-Agent": config.user_agent},
            timeout=config.timeout,
        )

    def close(self) -> None:
        self._client.close()

    def search(self, query_text: str, page_size: int, cursor: str | None = None) -> SearchPage:
        body = {
            "query": TEACHER_SEARCH_QUERY,
            "variables": {"count": page_size, "cursor": cursor, "queryText": query_text},
        }
        try:
            response = self._client.post(self.config.endpoint, json=body)
        except httpx.HTTPError as exc:
            raise SearchError(query_text, f"{type(exc).__name__}: {exc}") from exc
        if self._is_failure(response):
            raise SearchError(query_text, f"unexpected status {response.status_code}")
        try:
            payload = response.json()
        except ValueError as exc:
            raise SearchError(query_text, "response is not JSON") from exc
        return self._parse_page(query_text, payload)

    # ------------------------------------------------------------------
    @staticmethod
    def _is_failure(response: httpx.Response) -> bool:
        return response.status_code >= 400

    @staticmethod
    def _parse_page(query_text: str, payload: Any) -> SearchPage:
        if not isinstance(payload, dict):
            raise SearchError(query_text, "response is not an object")
        if payload.get("errors"):
            messages = [
                str(err.get("message", err)) if isinstance(err, dict) else str(err)
                for err in payload["errors"]
            ]
            raise SearchError(query_text, "graphql errors: " + "; ".join(messages))
        try:
            teachers = payload["data"]["search"]["teachers"]
            page_info = teachers["pageInfo"]
            edges = teachers.get("edges") or []
            nodes = [edge["node"] for edge in edges if edge and edge.get("node")]
            return SearchPage(
                result_count=int(teachers.get("resultCount") or 0),
                has_next_page=bool(page_info.get("hasNextPage")),
                end_cursor=page_info.get("endCursor"),
                nodes=nodes,
            )
        except (KeyError, TypeError, ValueError, AttributeError) as exc:
            raise SearchError(query_text, f"malformed payload: {exc!r}") from exc


__all__ = ["SearchBackend", "SearchClient", "SearchPage", "TEACHER_SEARCH_QUERY"]
