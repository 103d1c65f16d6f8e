"""API routes for role tiers and the approval rule table."""

from uuid import UUID

from fastapi import APIRouter, status

from transfer_api.deps import ClockDep, CurrentTenantDep, SessionFactoryDep
from transfer_api.schemas import CreateRuleRequest, RoleOut, RuleOut, UpdateRuleRequest
from transfer_kernel.db.engine import session_scope
from transfer_kernel.selectors.rule_selector import RuleSelector
from transfer_kernel.selectors.tenant_selector import TenantSelector
from transfer_kernel.services.rule_service import ApprovalRuleService

router = APIRouter(prefix="/api/roles", tags=["roles"])


@router.get("/list", response_model=list[RoleOut])
def list_roles(tenant: CurrentTenantDep, session_factory: SessionFactoryDep):
    with session_scope(session_factory) as session:
        roles = TenantSelector(session).list_roles(tenant.tenant_id)
    return [RoleOut.from_domain(r) for r in roles]


@router.get("/approval-rules", response_model=list[RuleOut])
def list_approval_rules(tenant: CurrentTenantDep, session_factory: SessionFactoryDep):
    with session_scope(session_factory) as session:
        rules = RuleSelector(session).list_rules(tenant.tenant_id)
    return [RuleOut.from_domain(r) for r in rules]


@router.post(
    "/approval-rules/create",
    status_code=status.HTTP_201_CREATED,
    response_model=RuleOut,
)
def create_approval_rule(
    body: CreateRuleRequest,
    tenant: CurrentTenantDep,
    session_factory: SessionFactoryDep,
    clock: ClockDep,
):
    with session_scope(session_factory) as session:
        rule = ApprovalRuleService(session, clock).create_rule(
            tenant.tenant_id,
            rule_name=body.rule_name,
            min_amount=body.min_amount,
            max_amount=body.max_amount,
            required_approvals=body.required_approvals,
            required_role_level=body.required_role_level,
            auto_approve=body.auto_approve,
        )
    return RuleOut.from_domain(rule)


@router.put("/approval-rules/{rule_id}/update", response_model=RuleOut)
def update_approval_rule(
    rule_id: UUID,
    body: UpdateRuleRequest,
    tenant: CurrentTenantDep,
    session_factory: SessionFactoryDep,
    clock: ClockDep,
):
    """Only fields present in the body change; an explicit null ``max_amount`` removes the cap."""
    changes = body.model_dump(exclude_unset=True)
    with session_scope(session_factory) as session:
        rule = ApprovalRuleService(session, clock).update_rule(
            tenant.tenant_id, rule_id, **changes,
        )
    return RuleOut.from_domain(rule)


@router.delete("/approval-rules/{rule_id}/delete")
def delete_approval_rule(
    rule_id: UUID,
    tenant: CurrentTenantDep,
    session_factory: SessionFactoryDep,
):
    with session_scope(session_factory) as session:
        ApprovalRuleService(session).delete_rule(tenant.tenant_id, rule_id)
    return {"message": "Approval rule deleted successfully", "rule_id": str(rule_id)}
