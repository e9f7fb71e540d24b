"""Batched upload pipeline with retry-until-success semantics."""

from __future__ import annotations

from dataclasses import dataclass
from threading import Event

import structlog

from ..errors import UploadAborted, UploadError
from .exporter import BaseExporter
from .normalizer import NormalizedRecord


@dataclass(slots=True)
class UploadStats:
    batches: int = 0
    uploaded: int = 0
    failed_attempts: int = 0


class UploadQueue:
    """Buffer records in memory and flush them to the destination in fixed-size chunks.

    A failed chunk is never dropped: it stays at the head of the queue and is
    resent after ``backoff`` seconds until the destination accepts it. Setting
    ``abort_event`` interrupts the wait and raises ``UploadAborted``.
    """

    def __init__(
        self,
        exporter: BaseExporter,
        batch_size: int = 500,
        backoff: float = 15.0,
        abort_event: Event | None = None,
        logger: structlog.BoundLogger | None = None,
    ) -> None:
        if batch_size < 1:
            raise ValueError("batch_size must be >= 1")
        self.exporter = exporter
        self.batch_size = batch_size
        self.backoff = backoff
        self.abort_event = abort_event or Event()
        self.logger = logger or structlog.get_logger("catalog_crawler.upload")
        self.stats = UploadStats()
        self._buffer: list[NormalizedRecord] = []

    def __len__(self) -> int:
        return len(self._buffer)

    @property
    def pending(self) -> list[NormalizedRecord]:
        return list(self._buffer)

    def enqueue(self, record: NormalizedRecord) -> None:
        self._buffer.append(record)

    def flush(self, force: bool = False, abort_event: Event | None = None) -> int:
        """Send full batches (or everything when ``force``); return records uploaded.

        ``abort_event`` replaces the queue's own event for this call only.
        """

        abort_event = abort_event or self.abort_event
        uploaded = 0
        while len(self._buffer) >= self.batch_size or (force and self._buffer):
            chunk = self._buffer[: self.batch_size]
            try:
                self.exporter.upsert_batch(chunk)
            except UploadError as exc:
                self.stats.failed_attempts += 1
                self.logger.error(
                    "batch_retry",
                    size=len(chunk),
                    queued=len(self._buffer),
                    backoff=self.backoff,
                    error=str(exc),
                )
                if abort_event.wait(self.backoff):
                    raise UploadAborted(len(self._buffer)) from exc
                continue
            del self._buffer[: len(chunk)]
            uploaded += len(chunk)
            self.stats.batches += 1
            self.stats.uploaded += len(chunk)
            self.logger.info("batch_uploaded", size=len(chunk), queued=len(self._buffer))
        return uploaded


__all__ = ["UploadQueue", "UploadStats"]
