from typing import Annotated
import uuid
import logging

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from partner_portal.database import get_db
from partner_portal.core.security import verify_access_token
from partner_portal.models.partner import Partner
from partner_portal.services.email_service import EmailService
from partner_portal.services.partner_service import can_authenticate
from partner_portal.services.payment_service import PaymentService


logger = logging.getLogger(__name__)

# HTTP Bearer security scheme
security = HTTPBearer()

DB = Annotated[AsyncSession, Depends(get_db)]


async def get_current_partner(
    db: DB,
    credentials: Annotated[HTTPAuthorizationCredentials, Depends(security)],
) -> Partner:
    """
    Dependency to get the current authenticated partner.
    Validates the JWT token and re-checks approval on every request,
    so a partner rejected after login loses access immediately.
    """
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    partner_id = verify_access_token(credentials.credentials)
    if partner_id is None:
        logger.warning("Token verification failed - invalid or expired token")
        raise credentials_exception

    try:
        partner_uuid = uuid.UUID(partner_id)
    except ValueError:
        logger.warning(f"Invalid partner_id in token: {partner_id}")
        raise credentials_exception

    result = await db.execute(select(Partner).where(Partner.id == partner_uuid))
    partner = result.scalar_one_or_none()

    if partner is None:
        logger.warning(f"Partner {partner_id} not found")
        raise credentials_exception

    if not can_authenticate(partner.approval_status):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=f"Account is {partner.approval_status}"
        )

    return partner


CurrentPartner = Annotated[Partner, Depends(get_current_partner)]


async def require_admin(partner: CurrentPartner) -> Partner:
    """Dependency that only lets admin (supplier) accounts through."""
    if not partner.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin access required"
        )
    return partner


AdminPartner = Annotated[Partner, Depends(require_admin)]


def get_payment_service() -> PaymentService:
    return PaymentService()


def get_email_service() -> EmailService:
    return EmailService()


Payments = Annotated[PaymentService, Depends(get_payment_service)]
Mailer = Annotated[EmailService, Depends(get_email_service)]
