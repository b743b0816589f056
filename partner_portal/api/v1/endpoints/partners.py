from typing import Optional
import uuid
import logging

from fastapi import APIRouter, Query, status

from partner_portal.api.deps import DB, AdminPartner
from partner_portal.models.partner import ApprovalStatus
from partner_portal.schemas.ledger import PartnerLedgerResponse
from partner_portal.schemas.partner import (
    PartnerOnboard,
    PartnerResponse,
    PartnerProfileResponse,
    PartnerListResponse,
    ApprovalUpdate,
)
from partner_portal.services.ledger_service import LedgerService
from partner_portal.services.partner_service import PartnerService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Partners"])


@router.get("", response_model=PartnerListResponse)
async def list_partners(
    db: DB,
    admin: AdminPartner,
    page: int = Query(1, ge=1),
    size: int = Query(20, ge=1, le=100),
    role: Optional[str] = Query(None),
    approval_status: Optional[ApprovalStatus] = Query(None),
    search: Optional[str] = Query(None, description="Email, company, name or phone"),
):
    """Partner accounts with filters (admin)."""
    service = PartnerService(db)
    partners, total, pages = await service.list_partners(
        role=role,
        approval_status=approval_status,
        search=search,
        page=page,
        size=size,
    )

    return PartnerListResponse(
        items=[PartnerResponse.model_validate(p) for p in partners],
        total=total,
        page=page,
        size=size,
        pages=pages,
    )


@router.post("", response_model=PartnerResponse, status_code=status.HTTP_201_CREATED)
async def onboard_partner(data: PartnerOnboard, db: DB, admin: AdminPartner):
    """Create a partner account that is approved from the start."""
    service = PartnerService(db)
    partner = await service.onboard(data.model_dump(), admin)
    return PartnerResponse.model_validate(partner)


@router.get("/{partner_id}", response_model=PartnerProfileResponse)
async def get_partner(partner_id: uuid.UUID, db: DB, admin: AdminPartner):
    service = PartnerService(db)
    profile = await service.get_profile(partner_id)

    response = PartnerProfileResponse.model_validate(profile["partner"])
    response.total_orders = profile["total_orders"]
    response.total_spent = profile["total_spent"]
    return response


@router.put("/{partner_id}/approval", response_model=PartnerResponse)
async def update_approval(
    partner_id: uuid.UUID,
    data: ApprovalUpdate,
    db: DB,
    admin: AdminPartner,
):
    """Approve, reject or return a partner to pending."""
    service = PartnerService(db)
    partner = await service.update_approval(partner_id, data.status, admin)
    return PartnerResponse.model_validate(partner)


@router.get("/{partner_id}/ledger", response_model=PartnerLedgerResponse)
async def get_partner_ledger(partner_id: uuid.UUID, db: DB, admin: AdminPartner):
    """Orders (debits) and payments (credits) of a partner, newest first."""
    service = LedgerService(db)
    partner, ledger = await service.get_partner_ledger(partner_id)

    return PartnerLedgerResponse(
        partner_id=partner.id,
        partner_name=partner.display_name or partner.company_name,
        entries=[entry.model_dump() for entry in ledger.entries],
        total_invoiced=ledger.total_invoiced,
        total_paid=ledger.total_paid,
        outstanding_balance=ledger.outstanding_balance,
    )
