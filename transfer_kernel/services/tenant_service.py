"""
TenantService -- tenant onboarding and credential resolution.

Responsibility:
    Registers a tenant together with its starting role tiers and approval
    rule table, issues its API key, and resolves an API key back to an
    active tenant.

Architecture position:
    Kernel > Services.  Composes RoleService and ApprovalRuleService inside
    the caller's transaction so a tenant never exists half-onboarded.

Invariants enforced:
    - Tenant name and code are globally unique.
    - Only a SHA-256 digest of the API key is stored; the plaintext key is
      returned exactly once, from ``register``.
    - Onboarding rules are validated against the roles created in the same
      transaction.

Failure modes:
    - DuplicateTenantError on a reused name or code.
    - InvalidApiKeyError on a missing/unknown key or a suspended tenant.
    - TenantNotFoundError from ``get_tenant``.
"""

from __future__ import annotations

import hashlib
import secrets
from uuid import UUID

from sqlalchemy import or_, select

from transfer_kernel.domain.policy import OnboardingTemplate
from transfer_kernel.domain.tenancy import Tenant, TenantStatus
from transfer_kernel.exceptions import (
    DuplicateTenantError,
    InvalidApiKeyError,
    TenantNotFoundError,
)
from transfer_kernel.logging_config import get_logger
from transfer_kernel.models.tenant import TenantModel
from transfer_kernel.selectors.tenant_selector import TenantSelector
from transfer_kernel.services.base import BaseService
from transfer_kernel.services.role_service import RoleService
from transfer_kernel.services.rule_service import ApprovalRuleService

logger = get_logger("services.tenant")

API_KEY_PREFIX = "sk_"


def hash_api_key(api_key: str) -> str:
    return hashlib.sha256(api_key.encode("utf-8")).hexdigest()


def generate_api_key() -> str:
    return f"{API_KEY_PREFIX}{secrets.token_hex(24)}"


class TenantService(BaseService):
    def register(
        self,
        name: str,
        code: str,
        contact_email: str,
        country: str | None = None,
        template: OnboardingTemplate | None = None,
    ) -> tuple[Tenant, str]:
        """
        Create a tenant with its default roles and rules.

        Returns:
            The tenant and its plaintext API key.
        """
        existing = self.session.execute(
            select(TenantModel.id).where(
                or_(TenantModel.name == name, TenantModel.code == code)
            )
        ).first()
        if existing is not None:
            raise DuplicateTenantError(name, code)

        api_key = generate_api_key()
        model = TenantModel(
            name=name,
            code=code,
            contact_email=contact_email,
            country=country,
            api_key_hash=hash_api_key(api_key),
            api_key_prefix=api_key[:12],
            status=TenantStatus.ACTIVE.value,
            created_at=self.clock.now(),
        )
        self.session.add(model)
        self.session.flush()

        template = template or OnboardingTemplate()
        roles = RoleService(self.session, self.clock)
        for role in template.roles:
            roles.define_role(
                model.id,
                role.name,
                role.level,
                role.capabilities,
                max_transfer_amount=role.max_transfer_amount,
                description=role.description,
            )
        rules = ApprovalRuleService(self.session, self.clock)
        for rule in template.rules:
            rules.create_rule(
                model.id,
                rule_name=rule.rule_name,
                min_amount=rule.min_amount,
                max_amount=rule.max_amount,
                required_approvals=rule.required_approvals,
                required_role_level=rule.required_role_level,
                auto_approve=rule.auto_approve,
            )

        logger.info(
            "tenant_registered",
            extra={
                "tenant_id": str(model.id),
                "tenant_code": code,
                "roles": len(template.roles),
                "rules": len(template.rules),
            },
        )
        return model.to_dto(), api_key

    def authenticate(self, api_key: str | None) -> Tenant:
        """Resolve an API key to its active tenant."""
        if not api_key:
            raise InvalidApiKeyError("API key required")
        tenant = TenantSelector(self.session).get_by_api_key_hash(hash_api_key(api_key))
        if tenant is None:
            raise InvalidApiKeyError()
        if not tenant.is_active:
            raise InvalidApiKeyError("Tenant is not active")
        return tenant

    def get_tenant(self, tenant_id: UUID) -> Tenant:
        tenant = TenantSelector(self.session).get_tenant(tenant_id)
        if tenant is None:
            raise TenantNotFoundError(str(tenant_id))
        return tenant
