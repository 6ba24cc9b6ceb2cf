"""Environment-driven application settings."""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return int(raw)


@dataclass(frozen=True)
class Settings:
    """Immutable runtime configuration.

    Tests derive variants with ``dataclasses.replace`` instead of mutating
    environment variables.
    """

    app_name: str = "Staffing Feasibility Planner"
    app_version: str = "1.0.0"
    log_level: str = "INFO"
    host: str = "127.0.0.1"
    port: int = 8000
    reload: bool = False
    database_path: Path = Path("data") / "staffplan.db"

    default_optimization_mode: str = "max_feasibility"
    default_overallocation_cap_percent: int = 120
    overallocation_cap_min_percent: int = 100
    overallocation_cap_max_percent: int = 200
    comparison_workers: int = 1

    seed_demo_data: bool = True
    demo_tenant_id: str = "demo"
    demo_random_seed: int = 42


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Build settings once per process from ``STAFFPLAN_*`` variables."""
    defaults = Settings()
    return Settings(
        app_name=os.getenv("STAFFPLAN_APP_NAME", defaults.app_name),
        app_version=os.getenv("STAFFPLAN_APP_VERSION", defaults.app_version),
        log_level=os.getenv("STAFFPLAN_LOG_LEVEL", defaults.log_level),
        host=os.getenv("STAFFPLAN_HOST", defaults.host),
        port=_env_int("STAFFPLAN_PORT", defaults.port),
        reload=_env_bool("STAFFPLAN_RELOAD", defaults.reload),
        database_path=Path(
            os.getenv("STAFFPLAN_DATABASE_PATH", str(defaults.database_path))
        ),
        default_optimization_mode=os.getenv(
            "STAFFPLAN_DEFAULT_OPTIMIZATION_MODE",
            defaults.default_optimization_mode,
        ),
        default_overallocation_cap_percent=_env_int(
            "STAFFPLAN_DEFAULT_OVERALLOCATION_CAP",
            defaults.default_overallocation_cap_percent,
        ),
        comparison_workers=_env_int(
            "STAFFPLAN_COMPARISON_WORKERS",
            defaults.comparison_workers,
        ),
        seed_demo_data=_env_bool("STAFFPLAN_SEED_DEMO_DATA", defaults.seed_demo_data),
        demo_tenant_id=os.getenv("STAFFPLAN_DEMO_TENANT_ID", defaults.demo_tenant_id),
        demo_random_seed=_env_int("STAFFPLAN_DEMO_RANDOM_SEED", defaults.demo_random_seed),
    )
