"""
RoleService -- defines authority tiers within a tenant.

Responsibility:
    Validates and persists role definitions: a name unique within the
    tenant, an integer level >= 1, and a set of typed capabilities.

Architecture position:
    Kernel > Services.  May import from domain/, models/, selectors/, db/.

Failure modes:
    - InvalidRoleDefinitionError on an empty name, a level below 1, or an
      unknown capability.
    - DuplicateRoleError when the tenant already defines the name.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Iterable
from uuid import UUID

from transfer_kernel.domain.tenancy import Capability, Role
from transfer_kernel.exceptions import DuplicateRoleError, InvalidRoleDefinitionError
from transfer_kernel.logging_config import get_logger
from transfer_kernel.models.tenant import RoleModel
from transfer_kernel.selectors.tenant_selector import TenantSelector
from transfer_kernel.services.base import BaseService

logger = get_logger("services.role")


def parse_capabilities(
    role_name: str, capabilities: Iterable[str | Capability],
) -> frozenset[Capability]:
    parsed = set()
    for cap in capabilities:
        try:
            parsed.add(Capability(cap))
        except ValueError:
            raise InvalidRoleDefinitionError(
                role_name, f"unknown capability {cap!r}",
            ) from None
    return frozenset(parsed)


class RoleService(BaseService):
    def define_role(
        self,
        tenant_id: UUID,
        name: str,
        level: int,
        capabilities: Iterable[str | Capability] = (),
        max_transfer_amount: Decimal | None = None,
        description: str | None = None,
    ) -> Role:
        name = (name or "").strip()
        if not name:
            raise InvalidRoleDefinitionError(name, "name is required")
        if isinstance(level, bool) or not isinstance(level, int) or level < 1:
            raise InvalidRoleDefinitionError(name, f"level must be an integer >= 1, got {level!r}")
        if max_transfer_amount is not None and max_transfer_amount < 0:
            raise InvalidRoleDefinitionError(name, "max_transfer_amount must be >= 0")
        caps = parse_capabilities(name, capabilities)

        if TenantSelector(self.session).get_role(tenant_id, name) is not None:
            raise DuplicateRoleError(name)

        model = RoleModel(
            tenant_id=tenant_id,
            name=name,
            level=level,
            capabilities=sorted(c.value for c in caps),
            max_transfer_amount=max_transfer_amount,
            description=description,
        )
        self.session.add(model)
        self.session.flush()

        logger.info(
            "role_defined",
            extra={"tenant_id": str(tenant_id), "role": name, "level": level},
        )
        return model.to_dto()
