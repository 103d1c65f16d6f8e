"""Read access to tenants, their roles and their users."""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import func, select

from transfer_kernel.domain.tenancy import Role, Tenant, User
from transfer_kernel.models.tenant import RoleModel, TenantModel, UserModel
from transfer_kernel.selectors.base import BaseSelector


class TenantSelector(BaseSelector):
    def get_tenant(self, tenant_id: UUID) -> Tenant | None:
        model = self.session.get(TenantModel, tenant_id)
        return model.to_dto() if model is not None else None

    def get_by_api_key_hash(self, api_key_hash: str) -> Tenant | None:
        model = self.session.execute(
            select(TenantModel).where(TenantModel.api_key_hash == api_key_hash)
        ).scalar_one_or_none()
        return model.to_dto() if model is not None else None

    def list_roles(self, tenant_id: UUID) -> list[Role]:
        """Roles ordered by level, lowest first."""
        rows = self.session.execute(
            select(RoleModel)
            .where(RoleModel.tenant_id == tenant_id)
            .order_by(RoleModel.level, RoleModel.name)
        ).scalars().all()
        return [r.to_dto() for r in rows]

    def get_role(self, tenant_id: UUID, name: str) -> Role | None:
        model = self.session.execute(
            select(RoleModel).where(
                RoleModel.tenant_id == tenant_id,
                RoleModel.name == name,
            )
        ).scalar_one_or_none()
        return model.to_dto() if model is not None else None

    def role_levels(self, tenant_id: UUID) -> frozenset[int]:
        levels = self.session.execute(
            select(RoleModel.level).where(RoleModel.tenant_id == tenant_id)
        ).scalars().all()
        return frozenset(levels)

    def lowest_role_level(self, tenant_id: UUID) -> int | None:
        return self.session.execute(
            select(func.min(RoleModel.level)).where(RoleModel.tenant_id == tenant_id)
        ).scalar_one_or_none()

    def get_user(self, tenant_id: UUID, user_id: UUID) -> User | None:
        """The user with their CURRENT role level, or None outside the tenant."""
        model = self.session.execute(
            select(UserModel).where(
                UserModel.id == user_id,
                UserModel.tenant_id == tenant_id,
            )
        ).scalar_one_or_none()
        return model.to_dto() if model is not None else None

    def list_users(self, tenant_id: UUID) -> list[User]:
        rows = self.session.execute(
            select(UserModel)
            .where(UserModel.tenant_id == tenant_id)
            .order_by(UserModel.created_at, UserModel.username)
        ).scalars().all()
        return [u.to_dto() for u in rows]
