"""
UserService -- manages the members of a tenant.

Responsibility:
    Create, update and deactivate users.  Each user holds exactly one of the
    tenant's roles; authority is read from that role at the moment it is
    needed, never cached on the user.

Architecture position:
    Kernel > Services.  May import from domain/, models/, selectors/, db/.

Failure modes:
    - RoleNotFoundError (with the tenant's available role names) when the
      requested role is not defined.
    - DuplicateUserError on a username or email already used in the tenant.
    - UserNotFoundError for an unknown user within the tenant.
    - InvalidUserStatusError for a status other than active/inactive.
"""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import or_, select

from transfer_kernel.domain.tenancy import User, UserStatus
from transfer_kernel.exceptions import (
    DuplicateUserError,
    InvalidUserStatusError,
    RoleNotFoundError,
    UserNotFoundError,
)
from transfer_kernel.logging_config import get_logger
from transfer_kernel.models.tenant import RoleModel, UserModel
from transfer_kernel.services.base import BaseService

logger = get_logger("services.user")


class UserService(BaseService):
    def create_user(
        self,
        tenant_id: UUID,
        username: str,
        email: str,
        full_name: str,
        role_name: str,
        department: str | None = None,
        employee_id: str | None = None,
    ) -> User:
        role = self._load_role(tenant_id, role_name)
        self._ensure_unique(tenant_id, username, email)

        model = UserModel(
            tenant_id=tenant_id,
            username=username,
            email=email,
            full_name=full_name,
            role_id=role.id,
            department=department,
            employee_id=employee_id,
            status=UserStatus.ACTIVE.value,
            created_at=self.clock.now(),
        )
        model.role = role
        self.session.add(model)
        self.session.flush()

        logger.info(
            "user_created",
            extra={
                "tenant_id": str(tenant_id),
                "user_id": str(model.id),
                "role": role.name,
                "role_level": role.level,
            },
        )
        return model.to_dto()

    def update_user(
        self,
        tenant_id: UUID,
        user_id: UUID,
        *,
        full_name: str | None = None,
        email: str | None = None,
        role_name: str | None = None,
        department: str | None = None,
        employee_id: str | None = None,
        status: str | UserStatus | None = None,
    ) -> User:
        """Apply every non-None field; unspecified fields keep their value."""
        model = self._load(tenant_id, user_id)

        if status is not None:
            try:
                model.status = UserStatus(status).value
            except ValueError:
                raise InvalidUserStatusError(str(status)) from None
        if role_name is not None:
            role = self._load_role(tenant_id, role_name)
            model.role_id = role.id
            model.role = role
        if email is not None and email != model.email:
            self._ensure_unique(tenant_id, None, email)
            model.email = email
        if full_name is not None:
            model.full_name = full_name
        if department is not None:
            model.department = department
        if employee_id is not None:
            model.employee_id = employee_id

        model.updated_at = self.clock.now()
        self.session.flush()

        logger.info(
            "user_updated",
            extra={
                "tenant_id": str(tenant_id),
                "user_id": str(user_id),
                "role": model.role.name,
                "status": model.status,
            },
        )
        return model.to_dto()

    def deactivate_user(self, tenant_id: UUID, user_id: UUID) -> User:
        return self.update_user(tenant_id, user_id, status=UserStatus.INACTIVE)

    # -------------------------------------------------------------------------
    # Internal
    # -------------------------------------------------------------------------

    def _load(self, tenant_id: UUID, user_id: UUID) -> UserModel:
        model = self.session.execute(
            select(UserModel).where(
                UserModel.id == user_id,
                UserModel.tenant_id == tenant_id,
            )
        ).scalar_one_or_none()
        if model is None:
            raise UserNotFoundError(str(user_id))
        return model

    def _load_role(self, tenant_id: UUID, role_name: str) -> RoleModel:
        roles = self.session.execute(
            select(RoleModel)
            .where(RoleModel.tenant_id == tenant_id)
            .order_by(RoleModel.level)
        ).scalars().all()
        for role in roles:
            if role.name == role_name:
                return role
        raise RoleNotFoundError(role_name, [r.name for r in roles])

    def _ensure_unique(self, tenant_id: UUID, username: str | None, email: str) -> None:
        clauses = [UserModel.email == email]
        if username is not None:
            clauses.append(UserModel.username == username)
        existing = self.session.execute(
            select(UserModel.id).where(
                UserModel.tenant_id == tenant_id,
                or_(*clauses),
            )
        ).first()
        if existing is not None:
            raise DuplicateUserError(username or "", email)
