"""Prefix-expansion search driver.

A query is capped at ``result_cap`` results by the search API. When the
first page of a short prefix reports a result count at or above the cap,
the prefix is not consumed directly; each one-character extension is
searched instead. The tree walk runs off an explicit stack so children are
visited in alphabet order and a drilled prefix is checkpointed only after
its whole subtree has finished.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from enum import Enum
from threading import Event

import structlog

from ..errors import SearchError
from .dedup import Deduplicator
from .keys import KeySpace
from .normalizer import Normalizer, extract_identity
from .search_client import SearchBackend, SearchPage
from .state import StateStore
from .upload_queue import UploadQueue


class Outcome(str, Enum):
    DRAINED = "drained"
    CAPPED = "capped"
    FAILED = "failed"
    SKIPPED = "skipped"
    ABORTED = "aborted"


class _Frame(str, Enum):
    ENTER = "enter"
    FINISH = "finish"


@dataclass(slots=True)
class EnumerationStats:
    keys_completed: int = 0
    keys_drilled: int = 0
    keys_skipped: int = 0
    keys_failed: int = 0
    pages: int = 0
    records_queued: int = 0
    duplicates: int = 0
    missing_identity: int = 0
    failed_keys: list[str] = field(default_factory=list)


class Enumerator:
    """Enumerate every record reachable from a key, expanding capped prefixes."""

    def __init__(
        self,
        search: SearchBackend,
        state_store: StateStore,
        deduplicator: Deduplicator,
        queue: UploadQueue,
        normalizer: Normalizer,
        key_space: KeySpace,
        page_size: int = 500,
        result_cap: int = 1000,
        max_drill_length: int = 3,
        page_delay: float = 0.2,
        abort_event: Event | None = None,
        logger: structlog.BoundLogger | None = None,
    ) -> None:
        self.search = search
        self.state_store = state_store
        self.deduplicator = deduplicator
        self.queue = queue
        self.normalizer = normalizer
        self.key_space = key_space
        self.page_size = page_size
        self.result_cap = result_cap
        self.max_drill_length = max_drill_length
        self.page_delay = page_delay
        self.abort_event = abort_event or Event()
        self.logger = logger or structlog.get_logger("catalog_crawler.enumerator")
        self.resume_key = ""
        self.stats = EnumerationStats()

    def resume_from(self, checkpoint: str) -> None:
        self.resume_key = checkpoint
        if checkpoint:
            self.logger.info("resuming", checkpoint=checkpoint)

    def enumerate(self, key: str, *, replay: bool = False) -> Outcome:
        """Walk ``key`` and its expanded subtree.

        In replay mode the resume checkpoint is neither consulted nor
        written: a replayed key lies outside the walk order.
        """

        stack: list[tuple[_Frame, str]] = [(_Frame.ENTER, key)]
        outcome = Outcome.DRAINED
        while stack:
            if self.abort_event.is_set():
                self.logger.warning("enumeration_aborted", key=key, pending_frames=len(stack))
                return Outcome.ABORTED
            frame, current = stack.pop()
            if frame is _Frame.FINISH:
                self._complete(current, replay)
                continue
            if not replay and self.key_space.is_completed(current, self.resume_key):
                self.stats.keys_skipped += 1
                self.logger.debug("key_skipped", key=current, checkpoint=self.resume_key)
                if current == key:
                    outcome = Outcome.SKIPPED
                continue
            result = self._drain(current)
            if current == key:
                outcome = result
            if result is Outcome.CAPPED:
                self.stats.keys_drilled += 1
                stack.append((_Frame.FINISH, current))
                children = self.key_space.children(current)
                stack.extend((_Frame.ENTER, child) for child in reversed(children))
            elif result is Outcome.DRAINED:
                self._complete(current, replay)
            elif result is Outcome.ABORTED:
                return Outcome.ABORTED
        return outcome

    # ------------------------------------------------------------------
    def _drain(self, key: str) -> Outcome:
        self.logger.info("key_started", key=key)
        cursor: str | None = None
        while True:
            if self.abort_event.is_set():
                return Outcome.ABORTED
            try:
                page = self.search.search(key, self.page_size, cursor)
            except SearchError as exc:
                self._fail(key, exc)
                return Outcome.FAILED
            self.stats.pages += 1
            if cursor is None and page.result_count >= self.result_cap:
                if len(key) < self.max_drill_length:
                    self.logger.warning("key_capped", key=key, result_count=page.result_count)
                    return Outcome.CAPPED
                self.logger.warning(
                    "key_cap_exceeded", key=key, result_count=page.result_count, cap=self.result_cap
                )
            self._consume(key, page)
            self.queue.flush()
            if not page.has_next_page:
                return Outcome.DRAINED
            if not page.end_cursor:
                self.logger.warning("page_cursor_missing", key=key)
                return Outcome.DRAINED
            cursor = page.end_cursor
            if self.page_delay:
                time.sleep(self.page_delay)

    def _consume(self, key: str, page: SearchPage) -> None:
        for node in page.nodes:
            identity = extract_identity(node)
            if identity is None:
                self.stats.missing_identity += 1
                self.logger.warning("record_missing_identity", key=key)
                continue
            if self.deduplicator.check_and_add(identity):
                self.stats.duplicates += 1
                continue
            self.queue.enqueue(self.normalizer.normalize(node, identity))
            self.stats.records_queued += 1

    def _complete(self, key: str, replay: bool) -> None:
        self.stats.keys_completed += 1
        if not replay:
            self.state_store.save_checkpoint(key)
        self.logger.info("key_completed", key=key, queued=len(self.queue), replay=replay)

    def _fail(self, key: str, exc: SearchError) -> None:
        self.stats.keys_failed += 1
        self.stats.failed_keys.append(key)
        self.state_store.append_failure(key)
        self.logger.error("key_failed", key=key, error=str(exc))


__all__ = ["EnumerationStats", "Enumerator", "Outcome"]
