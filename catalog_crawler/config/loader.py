"""Configuration loading helpers for Catalog-Crawler."""

from __future__ import annotations

import json
import os
from dataclasses import dataclass
from pathlib import Path

import yaml

from .models import CrawlerConfig

CONFIG_EXTENSIONS = (".yaml", ".yml", ".json")
CONFIG_FILENAME = "crawler_config.yaml"
HOME_ENV = "CATALOG_CRAWLER_HOME"
# Destination credentials may be supplied through the environment instead of the file.
CREDENTIAL_ENV = {"email": "PB_EMAIL", "password": "PB_PASS"}


def _read_file(path: Path) -> dict:
    text = path.read_text(encoding="utf-8")
    if path.suffix in (".yaml", ".yml"):
        data = yaml.safe_load(text) or {}
    else:
        data = json.loads(text)
    if not isinstance(data, dict):
        raise ValueError(f"Configuration file must contain a mapping: {path}")
    return data


def _write_file(path: Path, payload: dict) -> None:
    with path.open("w", encoding="utf-8") as stream:
        if path.suffix in (".yaml", ".yml"):
            yaml.safe_dump(payload, stream, allow_unicode=True, sort_keys=False)
        else:
            json.dump(payload, stream, indent=2, ensure_ascii=False)


def project_home(default: Path | None = None) -> Path:
    """Return the project home directory, honouring ``CATALOG_CRAWLER_HOME``."""

    env_root = os.environ.get(HOME_ENV)
    if env_root:
        return Path(env_root).expanduser().resolve()
    return (default or Path(__file__).resolve().parents[2]).resolve()


@dataclass(slots=True)
class ConfigLocator:
    """Resolve important paths from project root."""

    project_root: Path | None = None
    data_dir: Path | None = None
    state_dir: Path | None = None
    logs_dir: Path | None = None

    def __post_init__(self) -> None:
        root = project_home(self.project_root)
        self.project_root = root
        self.data_dir = (root / "data").resolve()
        self.state_dir = (self.data_dir / "state").resolve()
        self.logs_dir = (root / "logs").resolve()
        self.ensure_directories()

    def ensure_directories(self) -> None:
        for directory in (self.data_dir, self.state_dir, self.logs_dir):
            directory.mkdir(parents=True, exist_ok=True)

    def config_path(self) -> Path:
        return self.data_dir / CONFIG_FILENAME


class ConfigRepository:
    """Repository encapsulating config IO and schema validation."""

    def __init__(self, locator: ConfigLocator | None = None) -> None:
        self.locator = locator or ConfigLocator()
        self._cache: CrawlerConfig | None = None
        # Credential values as stored in the file, before environment overrides
        self._stored_credentials: dict[str, str] = {}

    def load_config(self) -> CrawlerConfig:
        if self._cache is not None:
            return self._cache
        path = self.locator.config_path()
        if path.exists():
            payload = _read_file(path)
            config = CrawlerConfig.model_validate(payload)
        else:
            config = CrawlerConfig()
            self.save_config(config)
        self._stored_credentials = {
            field: getattr(config.destination, field) for field in CREDENTIAL_ENV
        }
        config = self._apply_environment(config)
        self._cache = config
        return config

    def save_config(self, config: CrawlerConfig) -> None:
        """Write ``config`` to disk; environment-supplied credentials are never persisted."""

        path = self.locator.config_path()
        payload = config.model_dump(mode="json")
        destination = payload["destination"]
        for field, env in CREDENTIAL_ENV.items():
            env_value = os.environ.get(env)
            if env_value and destination.get(field) == env_value:
                destination[field] = self._stored_credentials.get(field, "")
        _write_file(path, payload)
        self._cache = config

    # ------------------------------------------------------------------
    # Path helpers
    # ------------------------------------------------------------------
    def state_file(self) -> Path:
        config = self.load_config()
        return config.resolve(self.locator.state_dir, config.state.state_file)

    def failed_log(self) -> Path:
        config = self.load_config()
        return config.resolve(self.locator.state_dir, config.state.failed_log)

    def sqlite_path(self) -> Path:
        config = self.load_config()
        return config.resolve(self.locator.data_dir, config.destination.sqlite_path)

    @staticmethod
    def _apply_environment(config: CrawlerConfig) -> CrawlerConfig:
        overrides = {
            field: os.environ[env]
            for field, env in CREDENTIAL_ENV.items()
            if os.environ.get(env)
        }
        if not overrides:
            return config
        destination = config.destination.model_copy(update=overrides)
        return config.model_copy(update={"destination": destination})


__all__ = ["ConfigLocator", "ConfigRepository", "CONFIG_EXTENSIONS", "project_home"]
