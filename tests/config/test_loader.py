from __future__ import annotations

from pathlib import Path

import pytest
import yaml

from adlib_sync.config import (
    ConfigLocator,
    ConfigRepository,
    GlobalConfig,
    ScheduleConfig,
    ScheduleType,
    TrackedPage,
)


def test_config_locator_uses_env_and_creates_directories(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.setenv("ADLIB_SYNC_HOME", str(tmp_path))
    locator = ConfigLocator()
    root = tmp_path.resolve()
    assert locator.project_root == root
    assert locator.pages_dir == root / "data" / "pages"
    assert locator.global_config_path() == root / "data" / "global_config.yaml"
    for path in (locator.data_dir, locator.pages_dir, locator.logs_dir):
        assert path.exists()


def test_global_config_created_on_first_load(temp_config_repository: ConfigRepository) -> None:
    config = temp_config_repository.load_global_config()
    assert config == GlobalConfig()
    assert temp_config_repository.locator.global_config_path().exists()


def test_global_config_roundtrip(tmp_path: Path) -> None:
    repo = ConfigRepository(ConfigLocator(project_root=tmp_path))
    config = GlobalConfig(storage_backend="sqlite", enable_progress=False)
    repo.save_global_config(config)

    fresh = ConfigRepository(ConfigLocator(project_root=tmp_path))
    loaded = fresh.load_global_config()
    assert loaded == config
    raw = yaml.safe_load(fresh.locator.global_config_path().read_text(encoding="utf-8"))
    assert raw["storage_backend"] == "sqlite"
    assert raw["pagination"]["stall_threshold"] == 5


def test_tracked_page_cycle(temp_config_repository: ConfigRepository) -> None:
    page = TrackedPage(
        page_id="123456",
        page_name="Acme",
        schedule=ScheduleConfig(type=ScheduleType.CRON, value="0 3 * * *"),
    )
    path = temp_config_repository.save_page(page)
    assert path.name == "123456.yaml"
    assert temp_config_repository.load_page("123456") == page
    assert [p.page_id for p in temp_config_repository.list_pages()] == ["123456"]

    assert temp_config_repository.delete_page("123456") is True
    assert temp_config_repository.delete_page("123456") is False
    assert temp_config_repository.list_pages() == []


def test_missing_page_raises(temp_config_repository: ConfigRepository) -> None:
    with pytest.raises(FileNotFoundError):
        temp_config_repository.load_page("999")


def test_non_mapping_config_file_rejected(temp_config_repository: ConfigRepository) -> None:
    path = temp_config_repository.page_path("42")
    path.write_text("- just\n- a list\n", encoding="utf-8")
    with pytest.raises(ValueError):
        temp_config_repository.load_page("42")
