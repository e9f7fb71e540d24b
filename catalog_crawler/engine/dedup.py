"""In-memory identity deduplication for a single run."""

from __future__ import annotations


class Deduplicator:
    """Track numeric identities already queued during this process run.

    Nothing is persisted: records stored by an earlier run are upserted
    again, which the destination absorbs idempotently.
    """

    def __init__(self) -> None:
        self._seen: set[int] = set()

    def __contains__(self, identity: int) -> bool:
        return identity in self._seen

    def __len__(self) -> int:
        return len(self._seen)

    def check_and_add(self, identity: int) -> bool:
        """Mark ``identity`` seen; return True when it had already been seen."""

        if identity in self._seen:
            return True
        self._seen.add(identity)
        return False

    def clear(self) -> None:
        self._seen.clear()


__all__ = ["Deduplicator"]
