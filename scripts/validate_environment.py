#!/usr/bin/env python3
"""Check that this machine can run the staffing feasibility planner.

Runs against a throwaway SQLite file: schema creation, demo seeding and one
full feasibility report with mode comparisons.
"""

from __future__ import annotations

import importlib
import sys
import tempfile
from dataclasses import replace
from datetime import date
from importlib.metadata import PackageNotFoundError, version
from pathlib import Path
from typing import Callable

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from staffplan.repository.data_repository import DataRepository
from staffplan.services.feasibility_service import FeasibilityService
from staffplan.utils.config import Settings, get_settings

MIN_PYTHON = (3, 11)
REQUIRED_DISTRIBUTIONS = {
    "fastapi": "fastapi",
    "uvicorn": "uvicorn",
    "pydantic": "pydantic",
    "pandas": "pandas",
    "httpx": "httpx",
    "pytest": "pytest",
}
DEMO_ANCHOR = date(2026, 3, 2)
DEMO_STAFF_COUNT = 10
RULE = "=" * 52

Check = Callable[[], str]


def check_python() -> str:
    found = sys.version.split()[0]
    if sys.version_info < MIN_PYTHON:
        raise RuntimeError(f"need Python >= {MIN_PYTHON[0]}.{MIN_PYTHON[1]}, found {found}")
    return found


def check_packages() -> str:
    missing: list[str] = []
    versions: list[str] = []
    for module_name, dist_name in REQUIRED_DISTRIBUTIONS.items():
        try:
            importlib.import_module(module_name)
            versions.append(f"{dist_name} {version(dist_name)}")
        except (ImportError, PackageNotFoundError) as exc:
            missing.append(f"{module_name} ({exc})")
    if missing:
        raise RuntimeError("missing -> " + "; ".join(missing))
    return ", ".join(versions)


def build_checks(settings: Settings) -> list[tuple[str, Check]]:
    repository = DataRepository(settings)

    def check_schema() -> str:
        repository.initialize_database()
        return str(repository.database_path)

    def check_demo_seed() -> str:
        repository.seed_demo_data(today=DEMO_ANCHOR)
        staff = repository.list_staff(settings.demo_tenant_id)
        if len(staff) != DEMO_STAFF_COUNT:
            raise RuntimeError(f"expected {DEMO_STAFF_COUNT} staff, got {len(staff)}")
        offices = sorted({member.office_name for member in staff if member.office_name})
        return f"{len(staff)} staff in {', '.join(offices)}"

    def check_feasibility() -> str:
        service = FeasibilityService(repository=repository, settings=settings)
        result = service.analyze_proposal(
            tenant_id=settings.demo_tenant_id,
            proposal_id="proposal-01",
            include_comparisons=True,
        )
        if not 0.0 <= result.feasibility_percent <= 100.0:
            raise RuntimeError(f"feasibility percent out of bounds: {result.feasibility_percent}")
        return (
            f"{len(result.weeks)} weeks, {result.feasibility_percent:.1f}% feasible, "
            f"{len(result.comparisons)} comparisons"
        )

    return [
        ("Python", check_python),
        ("Packages", check_packages),
        ("Database schema", check_schema),
        ("Demo tenant", check_demo_seed),
        ("Feasibility run", check_feasibility),
    ]


def main() -> int:
    with tempfile.TemporaryDirectory(prefix="staffplan-env-") as temp_dir:
        settings = replace(
            get_settings(),
            database_path=Path(temp_dir) / "validation.db",
            comparison_workers=2,
        )
        lines: list[str] = []
        failures = 0
        for name, check in build_checks(settings):
            try:
                detail = check()
                lines.append(f"[PASS] {name}: {detail}")
            except Exception as exc:
                failures += 1
                lines.append(f"[FAIL] {name}: {exc}")

    print(RULE)
    print(" Staffing feasibility planner: environment check")
    print(RULE)
    for line in lines:
        print(f" {line}")
    print(RULE)
    if failures:
        print(f" {failures} check(s) failed.")
        print(RULE)
        return 1
    print(" All checks passed.")
    print(RULE)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
