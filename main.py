"""
main.py: uvicorn launcher for the feasibility API.

    python main.py

Host, port and auto-reload come from STAFFPLAN_HOST, STAFFPLAN_PORT and
STAFFPLAN_RELOAD. Application wiring lives in app.py; equivalent direct call:

    uvicorn app:app --reload
"""

from __future__ import annotations

import uvicorn

from staffplan.utils.config import get_settings


def main() -> None:
    settings = get_settings()
    base_url = f"http://{settings.host}:{settings.port}"
    print("=" * 60)
    print(f"  {settings.app_name} v{settings.app_version}")
    print("=" * 60)
    print(f"  Database : {settings.database_path}")
    print(f"  API docs : {base_url}/docs")
    print(f"  Modes    : {base_url}/optimization_modes")
    if settings.seed_demo_data:
        print(f"  Demo     : {base_url}/tenants/{settings.demo_tenant_id}/proposals/proposal-01/feasibility")
    print("=" * 60)
    print("  Press CTRL+C to stop\n")

    uvicorn.run(
        "app:app",
        host=settings.host,
        port=settings.port,
        reload=settings.reload,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
