# deps.py
# Dependency injections for routes: tenant authentication and shared state.

from __future__ import annotations

from collections.abc import Callable
from typing import Annotated

from fastapi import Depends, Header, Request
from fastapi.concurrency import run_in_threadpool
from sqlalchemy.orm import Session

from transfer_kernel.db.engine import session_scope
from transfer_kernel.domain.clock import Clock
from transfer_kernel.domain.policy import OnboardingTemplate
from transfer_kernel.domain.tenancy import Tenant
from transfer_kernel.logging_config import LogContext
from transfer_kernel.services.tenant_service import TenantService
from transfer_services.approval_engine import ApprovalEngine


def get_session_factory(request: Request) -> Callable[[], Session]:
    return request.app.state.session_factory


def get_approval_engine(request: Request) -> ApprovalEngine:
    return request.app.state.approval_engine


def get_clock(request: Request) -> Clock:
    return request.app.state.clock


def get_onboarding_template(request: Request) -> OnboardingTemplate:
    return request.app.state.onboarding


SessionFactoryDep = Annotated[Callable[[], Session], Depends(get_session_factory)]
ApprovalEngineDep = Annotated[ApprovalEngine, Depends(get_approval_engine)]
ClockDep = Annotated[Clock, Depends(get_clock)]
OnboardingDep = Annotated[OnboardingTemplate, Depends(get_onboarding_template)]


def extract_api_key(x_api_key: str | None, authorization: str | None) -> str | None:
    """The tenant credential from ``X-API-Key`` or an ``Authorization: Bearer`` header."""
    if x_api_key:
        return x_api_key.strip()
    if authorization and authorization.lower().startswith("bearer "):
        return authorization.split(" ", 1)[1].strip()
    return None


def authenticate_tenant(session_factory: Callable[[], Session], api_key: str | None) -> Tenant:
    """Blocking credential lookup; must run off the event loop."""
    with session_scope(session_factory) as session:
        return TenantService(session).authenticate(api_key)


async def get_current_tenant(
    session_factory: SessionFactoryDep,
    x_api_key: Annotated[str | None, Header()] = None,
    authorization: Annotated[str | None, Header()] = None,
) -> Tenant:
    """Resolve the calling tenant before any core call.  401 when unresolved.

    The lookup runs in the threadpool.  The tenant is bound to the log
    context on the request's own context so the route thread inherits it.
    """
    api_key = extract_api_key(x_api_key, authorization)
    tenant = await run_in_threadpool(authenticate_tenant, session_factory, api_key)
    LogContext.set(tenant_id=str(tenant.tenant_id))
    return tenant


CurrentTenantDep = Annotated[Tenant, Depends(get_current_tenant)]
