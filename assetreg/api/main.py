"""Asset registry FastAPI application."""

import logging
import sys
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from assetreg import __version__
from assetreg.api.auth import request_logging_middleware
from assetreg.config import get_config
from assetreg.errors import (
    AlreadyRecorded,
    AssetRegError,
    InsufficientData,
    LedgerRejected,
    LedgerTransportError,
    NotAuthorized,
    RecordNotFound,
    SourceError,
    ValidationError,
)
from assetreg.services.audit import AuditService, build_audit_service

logger = logging.getLogger(__name__)

# Checked in order; the first matching class wins.
_STATUS_CODES: list[tuple[type[AssetRegError], int]] = [
    (ValidationError, 400),
    (InsufficientData, 422),
    (RecordNotFound, 404),
    (AlreadyRecorded, 409),
    (NotAuthorized, 500),
    (LedgerTransportError, 504),
    (LedgerRejected, 502),
    (SourceError, 502),
]


def status_code_for(exc: AssetRegError) -> int:
    if isinstance(exc, SourceError) and exc.reason == "not_found":
        return 404
    for cls, code in _STATUS_CODES:
        if isinstance(exc, cls):
            return code
    return 500


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup / shutdown lifecycle handler."""
    config = get_config()

    if not config.demo_mode and not config.api_key:
        logger.critical("ASSETREG_API_KEY is not set. Set it in .env or export it. Use ASSETREG_DEMO_MODE=true to skip.")
        sys.exit(1)

    if config.ledger_backend == "http":
        if not config.authority_signing_key.get_secret_value():
            logger.critical("ASSETREG_AUTHORITY_SIGNING_KEY is not set. Set it in .env or export it.")
            sys.exit(1)
        if not config.contract_address:
            logger.critical("ASSETREG_CONTRACT_ADDRESS is not set. Set it in .env or export it.")
            sys.exit(1)

    if app.state.audit_service is None:
        app.state.audit_service = build_audit_service(config)

    logger.info(
        "Asset registry API starting - ledger=%s contract=%s authority=%s",
        config.ledger_backend, config.contract_id, app.state.audit_service.recorder.authority,
    )
    yield
    logger.info("Asset registry API shutdown")


async def _asset_reg_error_handler(request: Request, exc: AssetRegError) -> JSONResponse:
    status = status_code_for(exc)
    log = logger.error if status >= 500 else logger.info
    log(
        "request_id=%s %s %s failed: %s (%s)",
        getattr(request.state, "request_id", "-"), request.method, request.url.path, exc.kind, exc.reason,
    )
    return JSONResponse(status_code=status, content=exc.to_dict())


async def _request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    messages = []
    for err in exc.errors():
        location = ".".join(str(part) for part in err.get("loc", ()) if part != "body")
        messages.append(f"{location}: {err.get('msg', 'invalid')}" if location else err.get("msg", "invalid"))
    return JSONResponse(
        status_code=400,
        content=ValidationError("; ".join(messages) or "Invalid request.").to_dict(),
    )


def create_app(service: AuditService | None = None) -> FastAPI:
    """Build and configure the FastAPI application."""
    app = FastAPI(
        title="Asset Registry API",
        description="Records tamper-evident digests of spreadsheet data on a write-once ledger",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.audit_service = service

    config = get_config()

    # CORS - restricted to configured origins
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.cors_origins_list,
        allow_credentials=True,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Authorization", "Content-Type"],
    )

    # Request logging and X-Request-ID middleware
    app.add_middleware(BaseHTTPMiddleware, dispatch=request_logging_middleware)

    app.add_exception_handler(AssetRegError, _asset_reg_error_handler)
    app.add_exception_handler(RequestValidationError, _request_validation_handler)

    # Import and include routers
    from assetreg.api.routes.audit import router as audit_router
    from assetreg.api.routes.assets import router as assets_router
    from assetreg.api.routes.health import router as health_router

    app.include_router(audit_router)
    app.include_router(assets_router)
    app.include_router(health_router)

    return app


app = create_app()
