"""
Payment Service - Razorpay Integration

Handles payment processing for partner checkout:
- Create Razorpay orders (amount in paise)
- Verify payment signatures
"""

import logging
import hmac
import hashlib
import time
from typing import Optional, Dict, Any
from decimal import ROUND_FLOOR

import razorpay

from partner_portal.config import settings
from partner_portal.core.exceptions import ExternalServiceError, ValidationError
from partner_portal.services.pricing_service import to_decimal

logger = logging.getLogger(__name__)


def amount_to_paise(amount: Any) -> int:
    """
    Convert rupees to paise, dropping fractional paise.

    Razorpay rejects amounts with decimals: 500.00 -> 50000, 10.999 -> 1099.
    """
    value = to_decimal(amount) * 100
    return int(value.to_integral_value(rounding=ROUND_FLOOR))


class PaymentService:
    """
    Service for handling Razorpay payments.
    """

    def __init__(
        self,
        key_id: Optional[str] = None,
        key_secret: Optional[str] = None,
    ):
        """Initialize Razorpay client."""
        self.key_id = (key_id if key_id is not None else settings.RAZORPAY_KEY_ID).strip()
        self.key_secret = (key_secret if key_secret is not None else settings.RAZORPAY_KEY_SECRET).strip()
        self.client = razorpay.Client(auth=(self.key_id, self.key_secret))

    def create_order(self, amount: Any, receipt: Optional[str] = None, notes: Optional[Dict[str, str]] = None) -> Dict[str, Any]:
        """
        Create a Razorpay order for payment.

        Args:
            amount: Amount in rupees
            receipt: Receipt reference (defaults to a timestamp)
            notes: Optional notes attached to the gateway order

        Returns:
            Razorpay order dict (id, amount in paise, currency, ...)

        Raises:
            ValidationError: amount rounds to zero paise
            ExternalServiceError: keys missing or Razorpay rejected the request
        """
        if not self.key_id or not self.key_secret:
            logger.error("Razorpay keys missing")
            raise ExternalServiceError("Keys missing")

        amount_in_paise = amount_to_paise(amount)
        if amount_in_paise <= 0:
            raise ValidationError("Amount must be greater than zero", {"amount": str(amount)})

        order_data = {
            "amount": amount_in_paise,
            "currency": settings.CURRENCY,
            "receipt": receipt or f"rcpt_{int(time.time() * 1000)}",
        }
        if notes:
            order_data["notes"] = notes

        try:
            razorpay_order = self.client.order.create(data=order_data)
        except Exception as e:
            # The client raises BadRequestError/ServerError or plain requests errors
            description = getattr(e, "description", None) or str(e) or "Order creation failed"
            logger.error(f"Failed to create Razorpay order: {description}")
            raise ExternalServiceError(description) from e

        logger.info(f"Created Razorpay order {razorpay_order['id']} for {amount_in_paise} paise")
        return razorpay_order

    def verify_signature(
        self,
        razorpay_order_id: str,
        razorpay_payment_id: str,
        razorpay_signature: str,
    ) -> bool:
        """
        Verify payment signature from Razorpay.

        The signature is HMAC-SHA256 of "order_id|payment_id" keyed with the secret.
        """
        payload = f"{razorpay_order_id}|{razorpay_payment_id}"

        expected_signature = hmac.new(
            self.key_secret.encode(),
            payload.encode(),
            hashlib.sha256
        ).hexdigest()

        signature_valid = hmac.compare_digest(expected_signature, razorpay_signature)
        if not signature_valid:
            logger.warning(f"Invalid payment signature for Razorpay order {razorpay_order_id}")
        return signature_valid
