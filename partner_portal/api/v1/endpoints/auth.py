import logging

from fastapi import APIRouter, status

from partner_portal.api.deps import DB, CurrentPartner
from partner_portal.schemas.partner import (
    PartnerRegister,
    RegisterResponse,
    LoginRequest,
    TokenResponse,
    PartnerResponse,
    PartnerProfileResponse,
    PartnerUpdate,
    ShippingAddressCreate,
    ShippingAddressResponse,
)
from partner_portal.services.partner_service import PartnerService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Authentication"])


@router.post("/register", response_model=RegisterResponse, status_code=status.HTTP_201_CREATED)
async def register(data: PartnerRegister, db: DB):
    """
    Register a partner account.
    The account cannot log in until an admin approves it.
    """
    service = PartnerService(db)
    partner = await service.register(data.model_dump())

    return RegisterResponse(
        message="Registration successful. Your account is pending approval.",
        partner=PartnerResponse.model_validate(partner),
    )


@router.post("/login", response_model=TokenResponse)
async def login(data: LoginRequest, db: DB):
    """
    Authenticate a partner and return an access token.
    Pending and rejected accounts get 403 and no token.
    """
    service = PartnerService(db)
    partner = await service.authenticate(data.email, data.password)
    access_token, expires_in = service.create_token(partner)

    logger.info(f"Partner logged in: {partner.email}")
    return TokenResponse(
        access_token=access_token,
        token_type="bearer",
        expires_in=expires_in,
        partner=PartnerResponse.model_validate(partner),
    )


@router.get("/me", response_model=PartnerProfileResponse)
async def get_me(partner: CurrentPartner, db: DB):
    """Current partner's profile with order totals."""
    service = PartnerService(db)
    profile = await service.get_profile(partner.id)

    response = PartnerProfileResponse.model_validate(profile["partner"])
    response.total_orders = profile["total_orders"]
    response.total_spent = profile["total_spent"]
    return response


@router.patch("/me", response_model=PartnerResponse)
async def update_me(data: PartnerUpdate, partner: CurrentPartner, db: DB):
    """Update display name or addresses."""
    service = PartnerService(db)
    updated = await service.update_profile(partner.id, data.model_dump(exclude_unset=True))
    return PartnerResponse.model_validate(updated)


@router.get("/me/shipping-address", response_model=ShippingAddressResponse | None)
async def get_shipping_address(partner: CurrentPartner, db: DB):
    """Saved shipping address used to prefill checkout."""
    service = PartnerService(db)
    address = await service.get_shipping_address(partner.id)
    return ShippingAddressResponse.model_validate(address) if address else None


@router.put("/me/shipping-address", response_model=ShippingAddressResponse)
async def save_shipping_address(data: ShippingAddressCreate, partner: CurrentPartner, db: DB):
    service = PartnerService(db)
    address = await service.save_shipping_address(partner.id, data.model_dump())
    return ShippingAddressResponse.model_validate(address)
