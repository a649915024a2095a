"""FastAPI application exposing the buildit setup status locally.

This module exposes a class-based server wrapper (no global mutable state).

- `app` is exported for `uvicorn server.app:app` and the tests.
- Preferred entrypoint: `src.app:app` (see `src/app.py`).
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any, Optional

from fastapi import BackgroundTasks, FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field
from starlette.requests import Request

from core import Provisioner


def configure_logging(level: int = logging.INFO) -> None:
    """Configure logging for the server."""
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
        force=True,
    )
    logging.getLogger("core").setLevel(level)
    logging.getLogger("server").setLevel(level)


logger = logging.getLogger(__name__)


# ============================================================================
# Request/Response Models
# ============================================================================


class SetupRequest(BaseModel):
    """Request model for starting a setup run."""

    only: Optional[list[str]] = Field(None, description="Run just these steps")
    skip: Optional[list[str]] = Field(None, description="Leave these steps out")


class SetupAcceptedResponse(BaseModel):
    """Response model for an accepted setup run."""

    accepted: bool = Field(..., description="Whether the run was scheduled")
    steps: list[str] = Field(..., description="Steps that will run, in order")
    dry_run: bool = Field(..., description="Whether the run is a dry run")


class StatusResponse(BaseModel):
    """Response model for system status."""

    running: bool = Field(..., description="Whether a setup run is in progress")
    dry_run: bool = Field(..., description="Whether runs are dry runs")
    dev_root: str = Field(..., description="Root directory for the repositories")
    ibah_repo: str = Field(..., description="Path to the ibah repository")
    buildit_repo: str = Field(..., description="Path to the buildit repository")
    last_run: Optional[dict] = Field(None, description="Summary of the last run")


class HealthResponse(BaseModel):
    """Response model for health check."""

    status: str = Field(..., description="Server health status")
    system_ready: bool = Field(..., description="Whether the provisioner is ready")


class StepInfo(BaseModel):
    name: str
    title: str
    optional: bool


class StepListResponse(BaseModel):
    """Response model for listing setup steps."""

    steps: list[StepInfo] = Field(..., description="Setup steps in execution order")
    count: int = Field(..., description="Total number of steps")


class VerifyResponse(BaseModel):
    """Response model for verification results."""

    ok: bool = Field(..., description="Whether every check passed")
    passed: int = Field(..., description="Number of passing checks")
    checks: list[dict] = Field(..., description="Individual check results")


class ConfigsResponse(BaseModel):
    """Response model for rendered configuration files."""

    files: dict[str, str] = Field(..., description="Target path to rendered content")


class ServicesResponse(BaseModel):
    """Response model for service endpoints."""

    services: dict[str, str] = Field(..., description="Service name to address")
    next_steps: list[str] = Field(..., description="What to do after setup")


class BuilditSetupServer:
    """Encapsulates FastAPI app + Provisioner lifecycle."""

    def __init__(self, *, log_level: int = logging.INFO, dry_run: bool = False) -> None:
        configure_logging(log_level)
        self.dry_run = dry_run
        self.system: Optional[Provisioner] = None
        # Set from scheduling until the background run finishes
        self.setup_pending = False

    @asynccontextmanager
    async def lifespan(self, app: FastAPI) -> AsyncIterator[None]:
        """Lifespan event handler for startup and shutdown."""
        logger.info("=" * 70)
        logger.info("🚀 BUILDIT SETUP SERVER STARTING")
        logger.info("=" * 70)

        try:
            self.system = Provisioner(dry_run=self.dry_run)
            logger.info("✅ Server ready!")
        except Exception as e:
            logger.error(f"❌ Failed to initialize provisioner: {e}")
            # Continue anyway - API will return 503.

        yield

        logger.info("👋 Server shutting down...")

    def create_app(self) -> FastAPI:
        """Create and configure a FastAPI application instance."""
        app = FastAPI(
            title="buildit Setup API",
            description="Local API for provisioning and verifying the buildit + ibah development machine",
            version="1.0.0",
            lifespan=self.lifespan,
        )

        app.add_middleware(
            CORSMiddleware,
            allow_origins=["*"],
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

        def require_system() -> Provisioner:
            if self.system is None:
                raise HTTPException(
                    status_code=503,
                    detail="Provisioner not initialized. Check the server logs.",
                )
            return self.system

        @app.get("/", tags=["General"])
        async def root() -> dict[str, Any]:
            return {
                "name": "buildit Setup API",
                "version": "1.0.0",
                "docs": "/docs",
                "health": "/health",
                "validEndpoints": [
                    "GET /health",
                    "GET /status",
                    "GET /steps",
                    "POST /setup",
                    "GET /report",
                    "GET /verify",
                    "GET /configs",
                    "GET /services",
                ],
            }

        @app.get("/health", response_model=HealthResponse, tags=["General"])
        async def health_check() -> HealthResponse:
            return HealthResponse(status="healthy", system_ready=self.system is not None)

        @app.get("/status", response_model=StatusResponse, tags=["General"])
        async def get_status() -> StatusResponse:
            system = require_system()
            settings = system.settings
            last = system.last_report
            return StatusResponse(
                running=system.is_running() or self.setup_pending,
                dry_run=system.dry_run,
                dev_root=str(settings.dev_root),
                ibah_repo=str(settings.ibah_repo),
                buildit_repo=str(settings.buildit_repo),
                last_run=None if last is None else {
                    "started_at": last.started_at.isoformat(),
                    "halted": last.halted,
                    "counts": last.counts(),
                },
            )

        @app.get("/steps", response_model=StepListResponse, tags=["Setup"])
        async def list_steps() -> StepListResponse:
            system = require_system()
            steps = [
                StepInfo(name=s.name, title=s.title, optional=s.optional)
                for s in system.list_steps()
            ]
            return StepListResponse(steps=steps, count=len(steps))

        @app.post("/setup", response_model=SetupAcceptedResponse, status_code=202, tags=["Setup"])
        async def start_setup(
            background_tasks: BackgroundTasks,
            request: Optional[SetupRequest] = None,
        ) -> SetupAcceptedResponse:
            system = require_system()
            request = request or SetupRequest()
            if system.is_running() or self.setup_pending:
                raise HTTPException(status_code=409, detail="A setup run is already in progress")
            try:
                selected = system.select_steps(request.only, request.skip)
            except ValueError as e:
                raise HTTPException(status_code=400, detail=str(e))

            async def run_setup() -> None:
                try:
                    report = await system.run(only=request.only, skip=request.skip)
                    logger.info("✅ Background setup finished (halted=%s)", report.halted)
                except Exception as e:
                    logger.error(f"❌ Background setup failed: {e}")
                finally:
                    self.setup_pending = False

            self.setup_pending = True
            background_tasks.add_task(run_setup)
            return SetupAcceptedResponse(
                accepted=True,
                steps=[s.name for s in selected],
                dry_run=system.dry_run,
            )

        @app.get("/report", tags=["Setup"])
        async def get_report() -> dict[str, Any]:
            system = require_system()
            if system.last_report is None:
                raise HTTPException(status_code=404, detail="No setup run has been started yet")
            return system.last_report.to_serializable()

        @app.get("/verify", response_model=VerifyResponse, tags=["Verification"])
        async def verify(mcp: bool = False) -> VerifyResponse:
            system = require_system()
            try:
                checks = await system.verify(include_mcp=mcp)
            except Exception as e:
                logger.error(f"❌ Verification failed: {e}")
                raise HTTPException(status_code=500, detail=f"Verification failed: {str(e)}")
            passed = sum(1 for c in checks if c.ok)
            return VerifyResponse(
                ok=passed == len(checks),
                passed=passed,
                checks=[c.to_serializable() for c in checks],
            )

        @app.get("/configs", response_model=ConfigsResponse, tags=["Configuration"])
        async def get_configs() -> ConfigsResponse:
            system = require_system()
            return ConfigsResponse(files=await system.render_configs())

        @app.get("/services", response_model=ServicesResponse, tags=["General"])
        async def get_services() -> ServicesResponse:
            system = require_system()
            return ServicesResponse(
                services=system.service_endpoints(),
                next_steps=system.next_steps(),
            )

        @app.exception_handler(404)
        async def not_found_handler(request: Request, exc: Exception) -> JSONResponse:
            detail = getattr(exc, "detail", None) or "The requested endpoint does not exist"
            return JSONResponse(
                status_code=404,
                content={"error": "Not Found", "detail": detail, "docs": "/docs"},
            )

        @app.exception_handler(500)
        async def internal_error_handler(request: Request, exc: Exception) -> JSONResponse:
            logger.exception("Internal server error")
            return JSONResponse(
                status_code=500,
                content={"error": "Internal Server Error", "detail": "An unexpected error occurred"},
            )

        return app


def create_app(dry_run: bool = False) -> FastAPI:
    """Factory for creating an app instance (useful for tests/uvicorn)."""
    return BuilditSetupServer(dry_run=dry_run).create_app()


app = create_app()
