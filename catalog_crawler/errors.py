"""Exception hierarchy shared by the crawler components."""

from __future__ import annotations


class CrawlerError(Exception):
    """Base exception for Catalog-Crawler."""


class AuthenticationError(CrawlerError):
    """The destination store refused the session; the run cannot start."""


class SearchError(CrawlerError):
    """A search page could not be fetched or decoded."""

    def __init__(self, query_text: str, reason: str) -> None:
        self.query_text = query_text
        self.reason = reason
        super().__init__(f"Search failed for {query_text!r}: {reason}")


class UploadError(CrawlerError):
    """A bulk upsert batch was rejected or did not reach the destination."""


class UploadAborted(CrawlerError):
    """Retrying a batch was interrupted by the abort signal."""

    def __init__(self, pending: int) -> None:
        self.pending = pending
        super().__init__(f"Upload aborted with {pending} records still queued")


class StateError(CrawlerError):
    """Persisted resumption state could not be read."""


__all__ = [
    "AuthenticationError",
    "CrawlerError",
    "SearchError",
    "StateError",
    "UploadAborted",
    "UploadError",
]
