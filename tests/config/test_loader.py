from __future__ import annotations

from pathlib import Path

import pytest
import yaml

from catalog_crawler.config.loader import ConfigLocator, ConfigRepository
from catalog_crawler.config.models import CrawlerConfig, SearchConfig


def test_config_locator_uses_env_and_creates_directories(tmp_path: Path) -> None:
    locator = ConfigLocator()
    assert locator.project_root == tmp_path.resolve()
    for path in (locator.data_dir, locator.state_dir, locator.logs_dir):
        assert path.exists()
    assert locator.config_path() == tmp_path.resolve() / "data" / "crawler_config.yaml"


def test_missing_config_is_created_with_defaults(tmp_path: Path) -> None:
    repo = ConfigRepository(ConfigLocator(project_root=tmp_path))
    config = repo.load_config()
    assert config == CrawlerConfig()
    written = yaml.safe_load(repo.locator.config_path().read_text(encoding="utf-8"))
    assert written["search"]["result_cap"] == 1000
    assert written["destination"]["batch_size"] == 500


def test_config_roundtrip(tmp_path: Path) -> None:
    repo = ConfigRepository(ConfigLocator(project_root=tmp_path))
    config = CrawlerConfig(search=SearchConfig(page_size=100, page_delay=0.5))
    repo.save_config(config)

    fresh = ConfigRepository(ConfigLocator(project_root=tmp_path))
    assert fresh.load_config() == config


def test_json_config_is_rejected_when_not_mapping(tmp_path: Path) -> None:
    from catalog_crawler.config.loader import _read_file

    path = tmp_path / "config.json"
    path.write_text("[1, 2]", encoding="utf-8")
    with pytest.raises(ValueError):
        _read_file(path)


def test_credentials_come_from_environment(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("PB_EMAIL", "env@example.com")
    monkeypatch.setenv("PB_PASS", "env-secret")
    repo = ConfigRepository(ConfigLocator(project_root=tmp_path))
    config = repo.load_config()
    assert config.destination.email == "env@example.com"
    assert config.destination.password == "env-secret"
    written = yaml.safe_load(repo.locator.config_path().read_text(encoding="utf-8"))
    assert written["destination"]["password"] == ""


def test_state_paths_resolve_under_state_dir(tmp_path: Path) -> None:
    repo = ConfigRepository(ConfigLocator(project_root=tmp_path))
    assert repo.state_file() == repo.locator.state_dir / "scrape_state.json"
    assert repo.failed_log() == repo.locator.state_dir / "failed_prefixes.txt"
    assert repo.sqlite_path() == repo.locator.data_dir / "outputs" / "catalog.db"


def test_saving_keeps_environment_credentials_out_of_file(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    config_path = ConfigLocator(project_root=tmp_path).config_path()
    config_path.write_text(
        yaml.safe_dump({"destination": {"email": "file@example.com", "password": "file-secret"}}),
        encoding="utf-8",
    )
    monkeypatch.setenv("PB_EMAIL", "env@example.com")
    monkeypatch.setenv("PB_PASS", "env-secret")
    repo = ConfigRepository(ConfigLocator(project_root=tmp_path))
    config = repo.load_config()
    assert config.destination.password == "env-secret"

    destination = config.destination.model_copy(update={"batch_size": 50})
    repo.save_config(config.model_copy(update={"destination": destination}))

    written = yaml.safe_load(config_path.read_text(encoding="utf-8"))
    assert written["destination"]["email"] == "file@example.com"
    assert written["destination"]["password"] == "file-secret"
    assert written["destination"]["batch_size"] == 50
    reloaded = ConfigRepository(ConfigLocator(project_root=tmp_path)).load_config()
    assert reloaded.destination.password == "env-secret"
    assert reloaded.destination.batch_size == 50
