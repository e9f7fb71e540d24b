"""Exporter Service Provider Interface."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Sequence

from ..normalizer import NormalizedRecord


class BaseExporter(ABC):
    """Uniform destination contract: one session, idempotent bulk upserts."""

    def authenticate(self) -> None:
        """Open a session with the destination; raise AuthenticationError on refusal."""

    @abstractmethod
    def upsert_batch(self, records: Sequence[NormalizedRecord]) -> None:
        """Insert-or-update ``records`` keyed by ``id``; raise UploadError on failure."""

    @abstractmethod
    def close(self) -> None:
        """Release underlying resources."""


__all__ = ["BaseExporter"]
