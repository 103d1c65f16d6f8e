"""
Module: transfer_kernel.models.tenant
Responsibility: ORM persistence for tenants, their roles and their users.

Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - Tenant name, code and API key digest are globally unique.
    - Role names are unique within a tenant; levels are >= 1.
    - Usernames and emails are unique within a tenant.
    - A user's role is a foreign key, so the role level is always read from
      the current role definition.

Failure modes:
    - IntegrityError on duplicate name/code/username/email (translated to
      typed errors by the services).
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import (
    JSON,
    CheckConstraint,
    ForeignKey,
    Index,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from transfer_kernel.db.base import Base, UUIDString

if TYPE_CHECKING:
    from transfer_kernel.domain.tenancy import Role, Tenant, User


class TenantModel(Base):
    """An isolated organization (a bank in the public API)."""

    __tablename__ = "tenants"

    __table_args__ = (
        CheckConstraint(
            "status IN ('active', 'suspended')",
            name="ck_tenants_valid_status",
        ),
    )

    name: Mapped[str] = mapped_column(String(200), nullable=False, unique=True)
    code: Mapped[str] = mapped_column(String(50), nullable=False, unique=True)
    contact_email: Mapped[str] = mapped_column(String(320), nullable=False)
    country: Mapped[str | None] = mapped_column(String(100), nullable=True)

    # SHA-256 hex digest; the plaintext key is shown once at registration
    api_key_hash: Mapped[str] = mapped_column(String(64), nullable=False, unique=True)
    api_key_prefix: Mapped[str] = mapped_column(String(16), nullable=False)

    status: Mapped[str] = mapped_column(String(20), nullable=False, default="active")
    created_at: Mapped[datetime] = mapped_column(nullable=False)

    roles: Mapped[list[RoleModel]] = relationship(
        back_populates="tenant", order_by="RoleModel.level",
    )

    def to_dto(self) -> Tenant:
        from transfer_kernel.domain.tenancy import Tenant, TenantStatus

        return Tenant(
            tenant_id=self.id,
            name=self.name,
            code=self.code,
            contact_email=self.contact_email,
            country=self.country,
            status=TenantStatus(self.status),
            created_at=self.created_at,
        )

    def __repr__(self) -> str:
        return f"<Tenant {self.code} {self.status}>"


class RoleModel(Base):
    __tablename__ = "roles"

    __table_args__ = (
        UniqueConstraint("tenant_id", "name", name="uq_roles_tenant_name"),
        CheckConstraint("level >= 1", name="ck_roles_positive_level"),
    )

    tenant_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("tenants.id"), nullable=False, index=True,
    )
    name: Mapped[str] = mapped_column(String(50), nullable=False)
    level: Mapped[int] = mapped_column(nullable=False)
    capabilities: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    max_transfer_amount: Mapped[Decimal | None] = mapped_column(nullable=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    tenant: Mapped[TenantModel] = relationship(back_populates="roles")

    def to_dto(self) -> Role:
        from transfer_kernel.domain.tenancy import Capability, Role

        return Role(
            role_id=self.id,
            tenant_id=self.tenant_id,
            name=self.name,
            level=self.level,
            capabilities=frozenset(Capability(c) for c in self.capabilities or ()),
            max_transfer_amount=self.max_transfer_amount,
            description=self.description,
        )

    def __repr__(self) -> str:
        return f"<Role {self.name} level={self.level}>"


class UserModel(Base):
    __tablename__ = "users"

    __table_args__ = (
        UniqueConstraint("tenant_id", "username", name="uq_users_tenant_username"),
        UniqueConstraint("tenant_id", "email", name="uq_users_tenant_email"),
        CheckConstraint(
            "status IN ('active', 'inactive')",
            name="ck_users_valid_status",
        ),
        Index("idx_users_tenant_status", "tenant_id", "status"),
    )

    tenant_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("tenants.id"), nullable=False,
    )
    username: Mapped[str] = mapped_column(String(100), nullable=False)
    email: Mapped[str] = mapped_column(String(320), nullable=False)
    full_name: Mapped[str] = mapped_column(String(200), nullable=False)
    role_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("roles.id"), nullable=False,
    )
    department: Mapped[str | None] = mapped_column(String(100), nullable=True)
    employee_id: Mapped[str | None] = mapped_column(String(100), nullable=True)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="active")
    created_at: Mapped[datetime] = mapped_column(nullable=False)
    updated_at: Mapped[datetime | None] = mapped_column(nullable=True)

    role: Mapped[RoleModel] = relationship(lazy="joined", innerjoin=True)

    def to_dto(self) -> User:
        from transfer_kernel.domain.tenancy import User, UserStatus

        return User(
            user_id=self.id,
            tenant_id=self.tenant_id,
            username=self.username,
            email=self.email,
            full_name=self.full_name,
            role_name=self.role.name,
            role_level=self.role.level,
            status=UserStatus(self.status),
            department=self.department,
            employee_id=self.employee_id,
            created_at=self.created_at,
        )

    def __repr__(self) -> str:
        return f"<User {self.username} {self.status}>"
