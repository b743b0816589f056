# Importing this package registers every table with Base.metadata
from partner_portal.models.partner import (
    Partner, PartnerRole, ApprovalStatus, ShippingAddress, SupplierSettings,
)
from partner_portal.models.product import (
    Category, Product, ProductVariant, VariantTierPrice, PriceTier,
)
from partner_portal.models.cart import CartLine
from partner_portal.models.order import (
    Order, PaymentLog, CheckoutIntent, OrderSequence,
    PaymentMethod, PaymentStatus, DeliveryStatus, CheckoutStatus,
)

__all__ = [
    "Partner",
    "PartnerRole",
    "ApprovalStatus",
    "ShippingAddress",
    "SupplierSettings",
    "Category",
    "Product",
    "ProductVariant",
    "VariantTierPrice",
    "PriceTier",
    "CartLine",
    "Order",
    "PaymentLog",
    "CheckoutIntent",
    "OrderSequence",
    "PaymentMethod",
    "PaymentStatus",
    "DeliveryStatus",
    "CheckoutStatus",
]
