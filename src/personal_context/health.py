"""Health and readiness endpoints for container orchestration.

Provides two top-level routes:

- ``GET /health`` -- Liveness probe.  Returns 200 if the process is alive.
- ``GET /ready``  -- Readiness probe.  Returns 200 only when the profile DB
  connection is functional **and** the learning coordinator is initialized.
  Returns 503 with per-check details otherwise.
"""

from __future__ import annotations

import asyncio
from typing import Any

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse


def register_health_routes(app: FastAPI) -> None:
    """Register ``/health`` and ``/ready`` endpoints on *app*.

    Args:
        app: The FastAPI application instance.
    """

    @app.get("/health")
    async def health() -> dict[str, str]:
        """Liveness probe -- always returns 200 if the process is running."""
        return {"status": "healthy"}

    @app.get("/ready")
    async def ready(request: Request) -> JSONResponse:
        """Readiness probe -- checks the profile DB and coordinator."""
        services: dict[str, Any] = request.app.state.services
        checks: dict[str, str] = {}

        profile_conn = services.get("profile_conn")
        if profile_conn is not None:
            try:
                await asyncio.to_thread(profile_conn.execute, "SELECT 1")
                checks["profile_db"] = "ok"
            except Exception:
                checks["profile_db"] = "fail"
        else:
            checks["profile_db"] = "fail"

        checks["coordinator"] = "ok" if services.get("coordinator") is not None else "fail"

        all_ok = all(v == "ok" for v in checks.values())
        status = "ready" if all_ok else "not_ready"
        code = 200 if all_ok else 503

        return JSONResponse(content={"status": status, "checks": checks}, status_code=code)
