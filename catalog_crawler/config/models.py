"""Pydantic models used across Catalog-Crawler configuration flow."""

from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, field_validator, model_validator

DEFAULT_ALPHABET = "abcdefghijklmnopqrstuvwxyz0123456789"
DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)


class DestinationKind(str, Enum):
    """Supported destination stores."""

    POCKETBASE = "pocketbase"
    SQLITE = "sqlite"


class SearchConfig(BaseModel):
    """Search API endpoint and enumeration limits."""

    endpoint: str = "https://www.ratemyprofessors.com/graphql"
    username: str = "test"
    password: str = "test"
    user_agent: str = DEFAULT_USER_AGENT
    page_size: int = 500
    timeout: float = 60.0
    page_delay: float = 0.2
    result_cap: int = 1000
    max_drill_length: int = 3
    alphabet: str = DEFAULT_ALPHABET

    @field_validator("alphabet")
    @classmethod
    def _validate_alphabet(cls, value: str) -> str:
        if not value:
            raise ValueError("alphabet cannot be empty")
        if len(set(value)) != len(value):
            raise ValueError("alphabet characters must be unique")
        if any(not (ch.isdigit() or ch.islower()) or not ch.isascii() for ch in value):
            raise ValueError("alphabet accepts lowercase ASCII letters and digits only")
        return value

    @model_validator(mode="after")
    def _validate_limits(self) -> "SearchConfig":
        if self.page_size < 1:
            raise ValueError("page_size must be >= 1")
        if self.result_cap < 1:
            raise ValueError("result_cap must be >= 1")
        if self.max_drill_length < 1:
            raise ValueError("max_drill_length must be >= 1")
        if self.timeout <= 0:
            raise ValueError("timeout must be > 0")
        if self.page_delay < 0:
            raise ValueError("page_delay must be >= 0")
        return self


class DestinationConfig(BaseModel):
    """Destination store connection and batching options."""

    kind: DestinationKind = DestinationKind.POCKETBASE
    base_url: str = "https://rankmyprof.pockethost.io"
    auth_collection: str = "users"
    email: str = ""
    password: str = ""
    collection: str = "teachers"
    batch_size: int = 500
    retry_backoff: float = 15.0
    timeout: float = 60.0
    sqlite_path: Path = Field(default=Path("outputs/catalog.db"))

    @field_validator("sqlite_path", mode="before")
    @classmethod
    def _coerce_path(cls, value: Any) -> Path:
        return Path(value)

    @model_validator(mode="after")
    def _validate_batching(self) -> "DestinationConfig":
        if self.batch_size < 1:
            raise ValueError("batch_size must be >= 1")
        if self.retry_backoff < 0:
            raise ValueError("retry_backoff must be >= 0")
        return self


class StateConfig(BaseModel):
    """Locations of resumption files, relative to the state directory."""

    state_file: Path = Field(default=Path("scrape_state.json"))
    failed_log: Path = Field(default=Path("failed_prefixes.txt"))

    @field_validator("state_file", "failed_log", mode="before")
    @classmethod
    def _coerce_paths(cls, value: Any) -> Path:
        return Path(value)


class CrawlerConfig(BaseModel):
    """Top-level configuration for a crawl run."""

    entity_type: str = "Teacher"
    verbose: bool = False
    search: SearchConfig = Field(default_factory=SearchConfig)
    destination: DestinationConfig = Field(default_factory=DestinationConfig)
    state: StateConfig = Field(default_factory=StateConfig)

    @field_validator("entity_type")
    @classmethod
    def _validate_entity_type(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("entity_type cannot be empty")
        return value.strip()

    def resolve(self, base_dir: Path, path: Path) -> Path:
        """Return ``path`` anchored at ``base_dir`` unless already absolute."""

        if not path.is_absolute():
            return (base_dir / path).resolve()
        return path


__all__ = [
    "CrawlerConfig",
    "DEFAULT_ALPHABET",
    "DestinationConfig",
    "DestinationKind",
    "SearchConfig",
    "StateConfig",
]
