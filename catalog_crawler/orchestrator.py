"""Run orchestrator wiring together search, dedup, upload queue and resumption state."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from threading import Event

import structlog

from .config import ConfigRepository, CrawlerConfig, DestinationKind
from .engine import (
    Deduplicator,
    EnumerationStats,
    Enumerator,
    KeySpace,
    Normalizer,
    Outcome,
    SearchBackend,
    SearchClient,
    StateStore,
    UploadQueue,
    UploadStats,
)
from .engine.exporter import BaseExporter, PocketBaseExporter, SQLiteExporter
from .errors import UploadAborted
from .logging_conf import configure_logging


@dataclass(slots=True)
class RunSummary:
    """Outcome of one ``Orchestrator.run`` call."""

    enumeration: EnumerationStats
    upload: UploadStats
    replayed_keys: list[str] = field(default_factory=list)
    aborted: bool = False
    pending_records: int = 0
    elapsed: float = 0.0

    def as_dict(self) -> dict[str, object]:
        return {
            "keys_completed": self.enumeration.keys_completed,
            "keys_drilled": self.enumeration.keys_drilled,
            "keys_skipped": self.enumeration.keys_skipped,
            "keys_failed": self.enumeration.keys_failed,
            "pages": self.enumeration.pages,
            "records_queued": self.enumeration.records_queued,
            "duplicates": self.enumeration.duplicates,
            "missing_identity": self.enumeration.missing_identity,
            "batches": self.upload.batches,
            "uploaded": self.upload.uploaded,
            "failed_uploads": self.upload.failed_attempts,
            "replayed": len(self.replayed_keys),
            "pending_records": self.pending_records,
            "aborted": self.aborted,
            "elapsed": round(self.elapsed, 1),
        }


class Orchestrator:
    """Drive a full crawl: replay failed keys, walk the key space, flush the queue.

    All per-run state (dedup set, upload buffer, abort event) is owned by the
    instance and built once in the constructor.
    """

    def __init__(
        self,
        config: CrawlerConfig,
        state_store: StateStore,
        search: SearchBackend,
        exporter: BaseExporter,
        abort_event: Event | None = None,
        logger: structlog.BoundLogger | None = None,
    ) -> None:
        self.config = config
        self.state_store = state_store
        self.search = search
        self.exporter = exporter
        self.abort_event = abort_event or Event()
        # Second stop request: interrupts the upload drain that follows a stop
        self.drain_event = Event()
        self.logger = logger or configure_logging(config.verbose).bind(component="orchestrator")
        self.key_space = KeySpace(config.search.alphabet)
        self.deduplicator = Deduplicator()
        self.queue = UploadQueue(
            exporter,
            batch_size=config.destination.batch_size,
            backoff=config.destination.retry_backoff,
            abort_event=self.abort_event,
            logger=self.logger.bind(component="upload"),
        )
        self.enumerator = Enumerator(
            search,
            state_store,
            self.deduplicator,
            self.queue,
            Normalizer(config.entity_type),
            self.key_space,
            page_size=config.search.page_size,
            result_cap=config.search.result_cap,
            max_drill_length=config.search.max_drill_length,
            page_delay=config.search.page_delay,
            abort_event=self.abort_event,
            logger=self.logger.bind(component="enumerator"),
        )

    # ------------------------------------------------------------------
    def authenticate(self) -> None:
        """Open the destination session; AuthenticationError is fatal to the run."""

        self.exporter.authenticate()

    def request_stop(self) -> None:
        if self.abort_event.is_set():
            self.logger.warning("stop_forced", pending=len(self.queue))
            self.drain_event.set()
            return
        self.logger.warning("stop_requested")
        self.abort_event.set()

    def run(self) -> RunSummary:
        """Replay failed keys, walk the key space and upload everything queued.

        A stop request ends enumeration early but the buffered records are
        still uploaded: their keys are already checkpointed and a later run
        would not revisit them. Only a second stop request, or an upload
        retry interrupted before the stop, leaves records behind.
        """

        started = time.monotonic()
        summary = RunSummary(enumeration=self.enumerator.stats, upload=self.queue.stats)
        self.enumerator.resume_from(self.state_store.load_checkpoint())
        try:
            summary.replayed_keys = self._replay_failures()
            if not self.abort_event.is_set():
                self._walk()
            self._drain()
        except UploadAborted as exc:
            self.logger.error("upload_aborted", pending=exc.pending)
        summary.aborted = self.abort_event.is_set()
        summary.pending_records = len(self.queue)
        summary.elapsed = time.monotonic() - started
        event = "run_aborted" if summary.aborted else "run_complete"
        self.logger.info(event, **summary.as_dict())
        return summary

    def close(self) -> None:
        self.exporter.close()
        close = getattr(self.search, "close", None)
        if callable(close):
            close()

    # ------------------------------------------------------------------
    def _replay_failures(self) -> list[str]:
        failed = self.state_store.take_failures()
        if not failed:
            return []
        self.logger.info("replaying_failed_keys", count=len(failed))
        replayed: list[str] = []
        try:
            for key in failed:
                if self.enumerator.enumerate(key, replay=True) is Outcome.ABORTED:
                    break
                replayed.append(key)
        finally:
            if self.abort_event.is_set():
                # Keys not yet replayed go back to the log for the next run
                for remaining in failed[len(replayed):]:
                    self.state_store.append_failure(remaining)
        return replayed

    def _drain(self) -> None:
        if not self.abort_event.is_set():
            self.queue.flush(force=True)
            return
        if len(self.queue):
            self.logger.info("draining_after_stop", pending=len(self.queue))
        self.queue.flush(force=True, abort_event=self.drain_event)

    def _walk(self) -> None:
        for root in self.key_space.roots():
            if self.enumerator.enumerate(root) is Outcome.ABORTED:
                return


def build_orchestrator(repository: ConfigRepository | None = None) -> Orchestrator:
    """Assemble an orchestrator from the configured repository."""

    repository = repository or ConfigRepository()
    config = repository.load_config()
    logger = configure_logging(config.verbose)
    key_space = KeySpace(config.search.alphabet)
    state_store = StateStore(
        repository.state_file(),
        repository.failed_log(),
        key_space=key_space,
        logger=logger.bind(component="state"),
    )
    exporter: BaseExporter
    if config.destination.kind is DestinationKind.SQLITE:
        exporter = SQLiteExporter(repository.sqlite_path(), table=config.destination.collection)
    else:
        exporter = PocketBaseExporter(config.destination, logger=logger.bind(component="exporter"))
    search = SearchClient(config.search, logger=logger.bind(component="search"))
    return Orchestrator(
        config,
        state_store,
        search,
        exporter,
        logger=logger.bind(component="orchestrator"),
    )


__all__ = ["Orchestrator", "RunSummary", "build_orchestrator"]
