# Services module
from partner_portal.services.pricing_service import PricingService, PriceQuote, resolve_price, tier_for_role
from partner_portal.services.cart_service import CartService, CartTotals, aggregate
from partner_portal.services.order_service import (
    OrderService, OrderDraft, PaymentLogDraft, build_order, build_payment_log_entry,
)
from partner_portal.services.ledger_service import LedgerService, PartnerLedger, build_ledger
from partner_portal.services.partner_service import PartnerService, can_authenticate, transition
from partner_portal.services.checkout_service import CheckoutService
from partner_portal.services.payment_service import PaymentService
from partner_portal.services.email_service import EmailService
from partner_portal.services.product_service import ProductService

__all__ = [
    "PricingService",
    "PriceQuote",
    "resolve_price",
    "tier_for_role",
    "CartService",
    "CartTotals",
    "aggregate",
    "OrderService",
    "OrderDraft",
    "PaymentLogDraft",
    "build_order",
    "build_payment_log_entry",
    "LedgerService",
    "PartnerLedger",
    "build_ledger",
    "PartnerService",
    "can_authenticate",
    "transition",
    "CheckoutService",
    "PaymentService",
    "EmailService",
    "ProductService",
]
