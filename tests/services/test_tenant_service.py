"""
Tests for TenantService: registration with onboarding defaults, API key
resolution, and tenant isolation of the onboarding data.
"""

from decimal import Decimal
from uuid import uuid4

import pytest

from transfer_kernel.domain.policy import OnboardingTemplate, RoleTemplate, RuleTemplate
from transfer_kernel.domain.tenancy import Capability, TenantStatus
from transfer_kernel.exceptions import (
    DuplicateTenantError,
    InvalidApiKeyError,
    InvalidApprovalRuleError,
    TenantNotFoundError,
)
from transfer_kernel.models.tenant import TenantModel
from transfer_kernel.selectors.rule_selector import RuleSelector
from transfer_kernel.selectors.tenant_selector import TenantSelector
from transfer_kernel.services.tenant_service import TenantService, hash_api_key


class TestRegister:
    def test_registers_with_default_roles_and_rules(self, session, create_tenant):
        tenant, api_key = create_tenant(session, name="First Bank", code="FB")

        assert tenant.name == "First Bank"
        assert tenant.status == TenantStatus.ACTIVE
        assert api_key.startswith("sk_")

        roles = TenantSelector(session).list_roles(tenant.tenant_id)
        assert [(r.name, r.level) for r in roles] == [
            ("Viewer", 1), ("Operator", 5), ("Manager", 7), ("Admin", 10),
        ]
        assert roles[-1].capabilities == frozenset(Capability)

        rules = RuleSelector(session).list_rules(tenant.tenant_id)
        assert [r.rule_name for r in rules] == [
            "Small Transfers", "Medium Transfers", "Large Transfers", "Very Large Transfers",
        ]

    def test_only_key_digest_is_stored(self, session, create_tenant):
        tenant, api_key = create_tenant(session)
        model = session.get(TenantModel, tenant.tenant_id)
        assert model.api_key_hash == hash_api_key(api_key)
        assert api_key not in (model.api_key_hash, model.api_key_prefix)
        assert model.api_key_prefix == api_key[:12]

    def test_each_registration_issues_distinct_key(self, session, create_tenant):
        _, first = create_tenant(session)
        _, second = create_tenant(session)
        assert first != second

    @pytest.mark.parametrize("clash", ["name", "code"])
    def test_duplicate_name_or_code_rejected(self, session, create_tenant, clash):
        create_tenant(session, name="Dup Bank", code="DUP")
        kwargs = {"name": "Other Bank", "code": "OTH"}
        kwargs[clash] = "Dup Bank" if clash == "name" else "DUP"
        with pytest.raises(DuplicateTenantError):
            create_tenant(session, **kwargs)

    def test_custom_template(self, session, deterministic_clock):
        template = OnboardingTemplate(
            roles=(
                RoleTemplate("Clerk", 2),
                RoleTemplate("Director", 9, frozenset({Capability.APPROVE_TRANSFERS})),
            ),
            rules=(RuleTemplate("All", Decimal("0"), None, 1, 9, False),),
        )
        tenant, _ = TenantService(session, deterministic_clock).register(
            "Tiny Bank", "TINY", "ops@tiny.test", template=template,
        )
        assert TenantSelector(session).lowest_role_level(tenant.tenant_id) == 2
        assert len(RuleSelector(session).list_rules(tenant.tenant_id)) == 1

    def test_template_rule_must_match_template_role(self, session, deterministic_clock):
        template = OnboardingTemplate(
            roles=(RoleTemplate("Clerk", 2),),
            rules=(RuleTemplate("All", Decimal("0"), None, 1, 9, False),),
        )
        with pytest.raises(InvalidApprovalRuleError):
            TenantService(session, deterministic_clock).register(
                "Broken Bank", "BRK", "ops@broken.test", template=template,
            )


class TestAuthenticate:
    def test_resolves_key_to_tenant(self, session, create_tenant):
        tenant, api_key = create_tenant(session)
        assert TenantService(session).authenticate(api_key).tenant_id == tenant.tenant_id

    @pytest.mark.parametrize("api_key", [None, "", "sk_unknown"])
    def test_missing_or_unknown_key_rejected(self, session, create_tenant, api_key):
        create_tenant(session)
        with pytest.raises(InvalidApiKeyError) as exc_info:
            TenantService(session).authenticate(api_key)
        assert exc_info.value.kind.value == "authentication"

    def test_suspended_tenant_rejected(self, session, create_tenant):
        tenant, api_key = create_tenant(session)
        session.get(TenantModel, tenant.tenant_id).status = TenantStatus.SUSPENDED.value
        session.flush()
        with pytest.raises(InvalidApiKeyError, match="not active"):
            TenantService(session).authenticate(api_key)


class TestGetTenant:
    def test_get_existing(self, session, create_tenant):
        tenant, _ = create_tenant(session)
        assert TenantService(session).get_tenant(tenant.tenant_id) == tenant

    def test_get_missing(self, session):
        with pytest.raises(TenantNotFoundError):
            TenantService(session).get_tenant(uuid4())
