from __future__ import annotations

from threading import Event

import pytest
from conftest import RecordingExporter, make_node

from catalog_crawler.engine import Normalizer, UploadQueue
from catalog_crawler.errors import UploadAborted


def _records(count: int):
    normalizer = Normalizer()
    return [normalizer.normalize(make_node(index)) for index in range(1, count + 1)]


class RecordingEvent(Event):
    def __init__(self, stop_after: int | None = None) -> None:
        super().__init__()
        self.waits: list[float | None] = []
        self.stop_after = stop_after

    def wait(self, timeout: float | None = None) -> bool:
        self.waits.append(timeout)
        if self.stop_after is not None and len(self.waits) >= self.stop_after:
            self.set()
        return self.is_set()


def test_flush_sends_only_full_batches_unless_forced() -> None:
    exporter = RecordingExporter()
    queue = UploadQueue(exporter, batch_size=3, backoff=0)
    for record in _records(7):
        queue.enqueue(record)

    assert queue.flush() == 6
    assert [len(batch) for batch in exporter.batches] == [3, 3]
    assert len(queue) == 1

    assert queue.flush(force=True) == 1
    assert exporter.stored_ids == list(range(1, 8))
    assert len(queue) == 0
    assert queue.stats.batches == 3
    assert queue.stats.uploaded == 7


def test_flush_below_threshold_is_noop() -> None:
    exporter = RecordingExporter()
    queue = UploadQueue(exporter, batch_size=5, backoff=0)
    for record in _records(4):
        queue.enqueue(record)

    assert queue.flush() == 0
    assert exporter.attempts == 0
    assert queue.flush(force=True) == 4
    assert queue.flush(force=True) == 0
    assert exporter.attempts == 1


def test_failed_chunk_is_retried_until_accepted() -> None:
    exporter = RecordingExporter(failures=2)
    event = RecordingEvent()
    queue = UploadQueue(exporter, batch_size=2, backoff=15.0, abort_event=event)
    for record in _records(2):
        queue.enqueue(record)

    queue.flush()

    assert exporter.attempts == 3
    assert event.waits == [15.0, 15.0]
    assert exporter.stored_ids == [1, 2]
    assert queue.stats.failed_attempts == 2
    assert len(queue) == 0


def test_abort_during_backoff_keeps_records_queued() -> None:
    exporter = RecordingExporter(failures=100)
    event = RecordingEvent(stop_after=3)
    queue = UploadQueue(exporter, batch_size=2, backoff=1.0, abort_event=event)
    for record in _records(3):
        queue.enqueue(record)

    with pytest.raises(UploadAborted) as excinfo:
        queue.flush(force=True)

    assert excinfo.value.pending == 3
    assert exporter.attempts == 3
    assert [record.legacyId for record in queue.pending] == [1, 2, 3]


def test_batch_size_must_be_positive() -> None:
    with pytest.raises(ValueError):
        UploadQueue(RecordingExporter(), batch_size=0)


def test_flush_can_wait_on_a_separate_event() -> None:
    exporter = RecordingExporter(failures=100)
    stopped = Event()
    stopped.set()
    drain = RecordingEvent(stop_after=2)
    queue = UploadQueue(exporter, batch_size=2, backoff=0.5, abort_event=stopped)
    for record in _records(2):
        queue.enqueue(record)

    with pytest.raises(UploadAborted):
        queue.flush(force=True, abort_event=drain)

    assert drain.waits == [0.5, 0.5]
    assert exporter.attempts == 2
    assert len(queue) == 2
