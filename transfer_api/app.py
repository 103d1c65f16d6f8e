"""
transfer_api.app -- FastAPI application factory.

Responsibility:
    Assembles the HTTP surface: routers, the request-id middleware, and the
    exception handlers that turn typed kernel errors into JSON responses
    carrying ``kind``, ``code``, ``message`` and ``details``.

Architecture position:
    Outermost layer.  Handlers stay thin: parse, resolve the tenant, call
    one engine or service operation, serialize.

Status mapping:
    validation -> 400, authentication -> 401, authorization -> 403,
    not_found -> 404, conflict -> 409, internal -> 500.  Request-body
    validation failures are reported as 400 ``kind=validation``.
"""

from __future__ import annotations

import time
from collections.abc import Callable
from contextlib import asynccontextmanager
from uuid import uuid4

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from transfer_api.routers import banks, notifications, roles, transfers, users
from transfer_kernel import __version__
from transfer_kernel.domain.clock import Clock, SystemClock
from transfer_kernel.domain.events import EventSink
from transfer_kernel.domain.policy import OnboardingTemplate, WorkflowPolicy
from transfer_kernel.exceptions import ErrorKind, TransferKernelError
from transfer_kernel.logging_config import LogContext, get_logger
from transfer_services.approval_engine import ApprovalEngine
from transfer_services.settlement_scheduler import SettlementScheduler

logger = get_logger("api")

STATUS_BY_KIND: dict[ErrorKind, int] = {
    ErrorKind.VALIDATION: 400,
    ErrorKind.AUTHENTICATION: 401,
    ErrorKind.AUTHORIZATION: 403,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.CONFLICT: 409,
    ErrorKind.INTERNAL: 500,
}


async def handle_kernel_error(request: Request, exc: TransferKernelError) -> JSONResponse:
    status_code = STATUS_BY_KIND.get(exc.kind, 500)
    extra = {"code": exc.code, "kind": exc.kind.value, "path": request.url.path}
    if status_code >= 500:
        logger.error("request_failed", extra=extra, exc_info=exc)
    else:
        logger.info("request_rejected", extra=extra)
    return JSONResponse(status_code=status_code, content=jsonable_encoder(exc.to_dict()))


async def handle_request_validation_error(
    request: Request, exc: RequestValidationError,
) -> JSONResponse:
    errors = [
        {"loc": list(e.get("loc", ())), "msg": e.get("msg"), "type": e.get("type")}
        for e in exc.errors()
    ]
    return JSONResponse(
        status_code=400,
        content={
            "kind": ErrorKind.VALIDATION.value,
            "code": "REQUEST_VALIDATION_FAILED",
            "message": "Request validation failed",
            "details": {"errors": jsonable_encoder(errors)},
        },
    )


async def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
    logger.error("unhandled_exception", extra={"path": request.url.path}, exc_info=exc)
    return JSONResponse(
        status_code=500,
        content={
            "kind": ErrorKind.INTERNAL.value,
            "code": "INTERNAL_ERROR",
            "message": "Internal server error",
            "details": {},
        },
    )


async def request_context(request: Request, call_next):
    """Bind a request id into the log context and echo it back."""
    request_id = request.headers.get("x-request-id") or str(uuid4())
    started = time.perf_counter()
    with LogContext.bind(request_id=request_id):
        response = await call_next(request)
        logger.info(
            "http_request",
            extra={
                "method": request.method,
                "path": request.url.path,
                "status_code": response.status_code,
                "duration_ms": round((time.perf_counter() - started) * 1000, 2),
            },
        )
    response.headers["X-Request-ID"] = request_id
    return response


def create_app(
    session_factory: Callable[[], Session],
    clock: Clock | None = None,
    policy: WorkflowPolicy | None = None,
    onboarding: OnboardingTemplate | None = None,
    event_sink: EventSink | None = None,
    scheduler: SettlementScheduler | None = None,
) -> FastAPI:
    """Build the application around an initialized session factory.

    When ``scheduler`` is given it is started with the application and
    stopped on shutdown.
    """
    clock = clock or SystemClock()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if scheduler is not None:
            scheduler.start()
        try:
            yield
        finally:
            if scheduler is not None:
                scheduler.stop()

    app = FastAPI(
        title="Transfer Approval Engine",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.session_factory = session_factory
    app.state.clock = clock
    app.state.onboarding = onboarding or OnboardingTemplate()
    app.state.approval_engine = ApprovalEngine(
        session_factory, clock=clock, policy=policy, event_sink=event_sink,
    )

    app.add_exception_handler(TransferKernelError, handle_kernel_error)
    app.add_exception_handler(RequestValidationError, handle_request_validation_error)
    app.add_exception_handler(Exception, handle_unexpected_error)
    app.middleware("http")(request_context)

    app.include_router(banks.router)
    app.include_router(transfers.router)
    app.include_router(users.router)
    app.include_router(roles.router)
    app.include_router(notifications.router)

    @app.get("/health", tags=["health"])
    def health():
        return {"status": "ok", "version": __version__}

    return app
