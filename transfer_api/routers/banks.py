"""API routes for bank (tenant) onboarding and profile."""

from fastapi import APIRouter, status

from transfer_api.deps import ClockDep, CurrentTenantDep, OnboardingDep, SessionFactoryDep
from transfer_api.schemas import BankOut, RegisterBankRequest, RegisterBankResponse
from transfer_kernel.db.engine import session_scope
from transfer_kernel.services.tenant_service import TenantService

router = APIRouter(prefix="/api/banks", tags=["banks"])


@router.post(
    "/register",
    status_code=status.HTTP_201_CREATED,
    response_model=RegisterBankResponse,
)
def register_bank(
    body: RegisterBankRequest,
    session_factory: SessionFactoryDep,
    clock: ClockDep,
    onboarding: OnboardingDep,
):
    """
    Onboard a bank with the default roles and approval rules.

    The API key is returned only in this response.
    """
    with session_scope(session_factory) as session:
        tenant, api_key = TenantService(session, clock).register(
            name=body.bank_name,
            code=body.bank_code,
            contact_email=body.contact_email,
            country=body.country,
            template=onboarding,
        )
    return RegisterBankResponse(
        message="Bank registered successfully",
        bank=BankOut.from_domain(tenant),
        api_key=api_key,
    )


@router.get("/profile", response_model=BankOut)
def get_bank_profile(tenant: CurrentTenantDep):
    return BankOut.from_domain(tenant)
