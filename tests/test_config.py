from __future__ import annotations

from dataclasses import replace
from pathlib import Path

from staffplan.utils.config import Settings, get_settings
from staffplan.utils.logger import build_log_format


def test_settings_read_from_environment(monkeypatch, tmp_path) -> None:
    monkeypatch.setenv("STAFFPLAN_DATABASE_PATH", str(tmp_path / "env.db"))
    monkeypatch.setenv("STAFFPLAN_DEFAULT_OVERALLOCATION_CAP", "150")
    monkeypatch.setenv("STAFFPLAN_COMPARISON_WORKERS", "3")
    monkeypatch.setenv("STAFFPLAN_SEED_DEMO_DATA", "no")
    get_settings.cache_clear()
    try:
        settings = get_settings()
    finally:
        get_settings.cache_clear()

    assert settings.database_path == tmp_path / "env.db"
    assert settings.default_overallocation_cap_percent == 150
    assert settings.comparison_workers == 3
    assert settings.seed_demo_data is False


def test_settings_defaults() -> None:
    settings = Settings()
    assert settings.database_path == Path("data") / "staffplan.db"
    assert settings.default_optimization_mode == "max_feasibility"
    assert (settings.overallocation_cap_min_percent, settings.overallocation_cap_max_percent) == (100, 200)


def test_log_format_names_threads_only_for_parallel_comparisons() -> None:
    assert build_log_format(Settings()) == "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
    assert "%(threadName)s | %(message)s" in build_log_format(replace(Settings(), comparison_workers=4))
