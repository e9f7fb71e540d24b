"""Resumption state: the checkpoint file and the failed-key log."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path

import structlog

from ..errors import StateError
from .keys import KeySpace


@dataclass(slots=True)
class RunState:
    """Snapshot of persisted resumption state."""

    last_key: str = ""
    failed_keys: list[str] = field(default_factory=list)


class StateStore:
    """Persist the last fully processed key and keys that failed outright.

    The checkpoint file holds ``{"lastPrefix": "<key>"}``; the failed-key
    log holds one key per line. Both are rewritten synchronously in place.
    """

    def __init__(
        self,
        state_file: Path,
        failed_log: Path,
        key_space: KeySpace | None = None,
        logger: structlog.BoundLogger | None = None,
    ) -> None:
        self.state_file = state_file
        self.failed_log = failed_log
        self.key_space = key_space or KeySpace()
        self.logger = logger or structlog.get_logger("catalog_crawler.state")
        for path in (self.state_file, self.failed_log):
            path.parent.mkdir(parents=True, exist_ok=True)

    def load(self) -> RunState:
        return RunState(last_key=self.load_checkpoint(), failed_keys=self.read_failures())

    def load_checkpoint(self) -> str:
        if not self.state_file.exists():
            return ""
        try:
            payload = json.loads(self.state_file.read_text(encoding="utf-8") or "{}")
        except json.JSONDecodeError as exc:
            raise StateError(f"Checkpoint file is not valid JSON: {self.state_file}") from exc
        if not isinstance(payload, dict):
            raise StateError(f"Checkpoint file must contain an object: {self.state_file}")
        last_key = payload.get("lastPrefix") or ""
        if not isinstance(last_key, str):
            raise StateError(f"Checkpoint lastPrefix must be a string: {self.state_file}")
        return last_key

    def save_checkpoint(self, key: str) -> None:
        self.state_file.write_text(json.dumps({"lastPrefix": key}), encoding="utf-8")

    def read_failures(self) -> list[str]:
        if not self.failed_log.exists():
            return []
        keys: list[str] = []
        for line in self.failed_log.read_text(encoding="utf-8").splitlines():
            key = line.strip()
            if not key:
                continue
            if not self.key_space.is_valid(key):
                self.logger.warning("failed_key_invalid", key=key, path=str(self.failed_log))
                continue
            keys.append(key)
        return keys

    def append_failure(self, key: str) -> None:
        with self.failed_log.open("a", encoding="utf-8") as stream:
            stream.write(f"{key}\n")

    def clear_failures(self) -> None:
        self.failed_log.write_text("", encoding="utf-8")

    def take_failures(self) -> list[str]:
        """Read pending failed keys and truncate the log before returning them."""

        keys = self.read_failures()
        if self.failed_log.exists():
            self.clear_failures()
        return keys


__all__ = ["RunState", "StateStore"]
