"""FastAPI application entrypoint for the Lazuk skin concierge backend."""
from __future__ import annotations

import logging
import time
import uuid

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from concierge.api.gating import GateDenied, client_address, gate_denied_handler
from concierge.api.routes import api_router
from concierge.core.config import Settings, get_settings
from concierge.deps import get_audit_logger
from concierge.services.access_gate import ReasonCode
from concierge.services.audit import AuditRecord
from concierge.services.cooldown import ReportCooldownStore
from concierge.services.rate_limit import FixedWindowCounter

logger = logging.getLogger(__name__)


class HealthResponse(BaseModel):
    status: str = "ok"


def _resolve_settings(request: Request) -> Settings:
    # Respect dependency override for get_settings in tests
    override = request.app.dependency_overrides.get(get_settings)
    return override() if callable(override) else get_settings()


async def _validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    request.state.gate_reason = ReasonCode.INVALID_INPUT.value
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={
            "ok": False,
            "error": ReasonCode.INVALID_INPUT.value,
            "details": {"errors": jsonable_encoder(exc.errors())},
        },
    )


def create_app(settings: Settings | None = None) -> FastAPI:
    """Build the application; explicit settings replace `get_settings` for every request."""

    explicit = settings is not None
    settings = settings or get_settings()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )

    app = FastAPI(title="Lazuk Skin Concierge API", version="0.1.0")
    if explicit:
        app.dependency_overrides[get_settings] = lambda: settings
    app.state.rate_counter = FixedWindowCounter()
    app.state.report_cooldown = ReportCooldownStore.for_days(settings.report_cooldown_days)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(RequestValidationError, _validation_error_handler)
    app.add_exception_handler(GateDenied, gate_denied_handler)
    app.include_router(api_router, prefix="/api")

    @app.get("/health", response_model=HealthResponse, tags=["health"])
    async def health_check() -> HealthResponse:
        """Return service health information for monitoring and load-balancers."""
        return HealthResponse()

    @app.middleware("http")
    async def audit_middleware(request: Request, call_next):
        request_id = request.headers.get("x-request-id") or uuid.uuid4().hex
        started = time.perf_counter()
        response = await call_next(request)
        elapsed_ms = (time.perf_counter() - started) * 1000.0

        audit_logger = get_audit_logger(request.app, _resolve_settings(request))
        if audit_logger is not None:
            record = AuditRecord(
                request_id=request_id,
                method=request.method,
                path=str(request.url.path),
                status_code=response.status_code,
                client_address=client_address(request),
                reason_code=getattr(request.state, "gate_reason", None),
                user_agent=request.headers.get("user-agent"),
                duration_ms=elapsed_ms,
            )
            try:
                await audit_logger.log(record)
            except OSError:
                logger.exception("Failed to write audit record", extra={"request_id": request_id})

        response.headers["X-Request-Id"] = request_id
        return response

    return app


app = create_app()
