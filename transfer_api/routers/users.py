"""API routes for managing a bank's users."""

from uuid import UUID

from fastapi import APIRouter, status

from transfer_api.deps import ClockDep, CurrentTenantDep, SessionFactoryDep
from transfer_api.schemas import CreateUserRequest, UpdateUserRequest, UserOut
from transfer_kernel.db.engine import session_scope
from transfer_kernel.selectors.tenant_selector import TenantSelector
from transfer_kernel.services.user_service import UserService

router = APIRouter(prefix="/api/users", tags=["users"])


@router.post("/create", status_code=status.HTTP_201_CREATED, response_model=UserOut)
def create_user(
    body: CreateUserRequest,
    tenant: CurrentTenantDep,
    session_factory: SessionFactoryDep,
    clock: ClockDep,
):
    with session_scope(session_factory) as session:
        user = UserService(session, clock).create_user(
            tenant.tenant_id,
            username=body.username,
            email=body.email,
            full_name=body.full_name,
            role_name=body.role_name,
            department=body.department,
            employee_id=body.employee_id,
        )
    return UserOut.from_domain(user)


@router.get("/list", response_model=list[UserOut])
def list_users(tenant: CurrentTenantDep, session_factory: SessionFactoryDep):
    with session_scope(session_factory) as session:
        users = TenantSelector(session).list_users(tenant.tenant_id)
    return [UserOut.from_domain(u) for u in users]


@router.put("/{user_id}/update", response_model=UserOut)
def update_user(
    user_id: UUID,
    body: UpdateUserRequest,
    tenant: CurrentTenantDep,
    session_factory: SessionFactoryDep,
    clock: ClockDep,
):
    with session_scope(session_factory) as session:
        user = UserService(session, clock).update_user(
            tenant.tenant_id,
            user_id,
            full_name=body.full_name,
            email=body.email,
            role_name=body.role_name,
            department=body.department,
            employee_id=body.employee_id,
            status=body.status,
        )
    return UserOut.from_domain(user)


@router.post("/{user_id}/deactivate", response_model=UserOut)
def deactivate_user(
    user_id: UUID,
    tenant: CurrentTenantDep,
    session_factory: SessionFactoryDep,
    clock: ClockDep,
):
    with session_scope(session_factory) as session:
        user = UserService(session, clock).deactivate_user(tenant.tenant_id, user_id)
    return UserOut.from_domain(user)
