"""Pytest configuration providing fakes for the search API and destination store."""

from __future__ import annotations

from pathlib import Path
from threading import Event
from typing import Any, Callable, Iterable, Sequence

import pytest
import structlog

from catalog_crawler.config import CrawlerConfig, DestinationConfig, SearchConfig
from catalog_crawler.engine import (
    Deduplicator,
    Enumerator,
    KeySpace,
    NormalizedRecord,
    Normalizer,
    SearchPage,
    StateStore,
    UploadQueue,
)
from catalog_crawler.engine.exporter import BaseExporter
from catalog_crawler.errors import SearchError, UploadError


def make_node(legacy_id: Any, **overrides: Any) -> dict[str, Any]:
    node: dict[str, Any] = {
        "id": f"node-{legacy_id}",
        "legacyId": legacy_id,
        "firstName": "Ada",
        "lastName": "Lovelace",
        "avgRating": 4.5,
        "avgDifficulty": 3.1,
        "numRatings": 12,
        "wouldTakeAgainPercent": 87.5,
        "department": "Mathematics",
        "school": {"id": "U2Nob29sLTE="},
    }
    node.update(overrides)
    return node


def make_page(
    nodes: Sequence[dict[str, Any]],
    result_count: int | None = None,
    next_cursor: str | None = None,
) -> SearchPage:
    return SearchPage(
        result_count=len(nodes) if result_count is None else result_count,
        has_next_page=next_cursor is not None,
        end_cursor=next_cursor,
        nodes=list(nodes),
    )


class FakeSearch:
    """Scripted search backend keyed by ``(query_text, cursor)``.

    Unscripted queries return an empty final page. Values may be an
    exception instance, which is raised instead of returning a page.
    """

    def __init__(self, pages: dict[tuple[str, str | None], Any] | None = None) -> None:
        self.pages = dict(pages or {})
        self.calls: list[tuple[str, str | None]] = []
        self.events: list[tuple[str, str]] | None = None
        self.on_search: Callable[[str, str | None], None] | None = None

    def search(self, query_text: str, page_size: int, cursor: str | None = None) -> SearchPage:
        self.calls.append((query_text, cursor))
        if self.events is not None:
            self.events.append(("search", query_text))
        if self.on_search is not None:
            self.on_search(query_text, cursor)
        result = self.pages.get((query_text, cursor))
        if isinstance(result, Exception):
            raise result
        if result is None:
            return make_page([])
        return result

    @property
    def queried_keys(self) -> list[str]:
        return [key for key, cursor in self.calls if cursor is None]


class RecordingExporter(BaseExporter):
    """Destination double that stores batches and can fail on demand."""

    def __init__(self, failures: int = 0) -> None:
        self.failures = failures
        self.batches: list[list[NormalizedRecord]] = []
        self.attempts = 0
        self.authenticated = False
        self.closed = False

    def authenticate(self) -> None:
        self.authenticated = True

    def upsert_batch(self, records: Sequence[NormalizedRecord]) -> None:
        self.attempts += 1
        if self.failures:
            self.failures -= 1
            raise UploadError("destination unavailable")
        self.batches.append(list(records))

    def close(self) -> None:
        self.closed = True

    @property
    def stored_ids(self) -> list[int]:
        return [record.legacyId for batch in self.batches for record in batch]


class SpyStateStore(StateStore):
    """State store that also records checkpoint writes in order."""

    def __init__(self, *args: Any, events: list[tuple[str, str]] | None = None, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self.events = events if events is not None else []
        self.checkpoints: list[str] = []

    def save_checkpoint(self, key: str) -> None:
        super().save_checkpoint(key)
        self.checkpoints.append(key)
        self.events.append(("checkpoint", key))


@pytest.fixture(autouse=True)
def isolated_home(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    monkeypatch.setenv("CATALOG_CRAWLER_HOME", str(tmp_path))
    monkeypatch.delenv("PB_EMAIL", raising=False)
    monkeypatch.delenv("PB_PASS", raising=False)
    return tmp_path


@pytest.fixture
def quiet_logger() -> structlog.BoundLogger:
    return structlog.get_logger("tests")


@pytest.fixture
def sample_config() -> CrawlerConfig:
    return CrawlerConfig(
        search=SearchConfig(page_size=6, page_delay=0.0),
        destination=DestinationConfig(batch_size=5, retry_backoff=0.0),
    )


@pytest.fixture
def state_store(tmp_path: Path) -> SpyStateStore:
    return SpyStateStore(tmp_path / "state" / "scrape_state.json", tmp_path / "state" / "failed.txt")


@pytest.fixture
def exporter() -> RecordingExporter:
    return RecordingExporter()


@pytest.fixture
def build_enumerator(
    state_store: SpyStateStore, exporter: RecordingExporter, quiet_logger
) -> Callable[..., Enumerator]:
    def _builder(
        search: FakeSearch,
        batch_size: int = 5,
        abort_event: Event | None = None,
        **overrides: Any,
    ) -> Enumerator:
        event = abort_event or Event()
        queue = UploadQueue(exporter, batch_size=batch_size, backoff=0.0, abort_event=event)
        options: dict[str, Any] = {
            "page_size": 6,
            "result_cap": 1000,
            "max_drill_length": 3,
            "page_delay": 0.0,
        }
        options.update(overrides)
        return Enumerator(
            search,
            state_store,
            Deduplicator(),
            queue,
            Normalizer(),
            KeySpace(),
            abort_event=event,
            logger=quiet_logger,
            **options,
        )

    return _builder


def search_error(key: str) -> SearchError:
    return SearchError(key, "ReadTimeout: timed out")


def nodes_for(ids: Iterable[int]) -> list[dict[str, Any]]:
    return [make_node(legacy_id) for legacy_id in ids]
