"""
Checkout Service - checkout saga.

Each checkout is tracked by a CheckoutIntent written before any money moves:

    initiated --(online payment confirmed)--> paid --(order written)--> finalized
    initiated --(cod)----------------------------------------------------> finalized
    initiated --(gateway modal dismissed)--> cancelled
    initiated --(order could not be written)--> failed
    paid --(order could not be written)--> paid, error recorded, confirm retries

Finalizing runs these steps in order:
1. persist order (and decrement stock, same transaction)
2. persist payment log entry (online only)
3. clear the partner's cart
4. notify cart listeners

If step 1 fails nothing else runs; a paid intent stays paid so the partner
can confirm again once the problem is fixed. Failures after step 1 are recorded on the
intent but never undo the order; the payment has already been taken.
"""
from typing import Optional, Tuple, Dict, Any
import uuid
import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.concurrency import run_in_threadpool

from partner_portal.core.exceptions import PortalError, ValidationError, NotFoundError
from partner_portal.models.order import (
    CheckoutIntent, CheckoutStatus, Order, PaymentMethod,
)
from partner_portal.models.partner import Partner
from partner_portal.schemas.payment import PaymentConfirmation
from partner_portal.services.cart_service import CartService, aggregate, ensure_stock
from partner_portal.services.order_service import (
    OrderService, build_order, build_payment_log_entry, ensure_minimum_order,
)
from partner_portal.services.partner_service import PartnerService
from partner_portal.services.payment_service import PaymentService
from partner_portal.services.pricing_service import round_currency

logger = logging.getLogger(__name__)

SHIPPING_SNAPSHOT_FIELDS = (
    "name", "phone", "alt_phone", "house_no", "area", "city", "state", "pincode",
)


class CheckoutService:
    """Runs a partner's checkout from cart to order."""

    def __init__(
        self,
        db: AsyncSession,
        payment_service: Optional[PaymentService] = None,
        order_service: Optional[OrderService] = None,
    ):
        self.db = db
        self.payment_service = payment_service or PaymentService()
        self.order_service = order_service or OrderService(db)
        self.cart_service = CartService(db)
        self.partner_service = PartnerService(db)

    # ==================== START ====================

    async def start_checkout(
        self,
        partner: Partner,
        payment_method: PaymentMethod,
        shipping_address: Dict[str, Any],
    ) -> Tuple[CheckoutIntent, Optional[Dict[str, Any]]]:
        """
        Validate the cart and open a checkout intent.

        For online payment a Razorpay order is created for the cart total.

        Returns:
            (intent, razorpay_order or None)
        """
        lines = await self.cart_service.get_lines(partner.id)
        if not lines:
            raise ValidationError("Cart is empty")

        totals = aggregate(lines)
        ensure_minimum_order(totals)
        for line in lines:
            ensure_stock(line.variant, line.quantity)

        await self.partner_service.save_shipping_address(partner.id, shipping_address)

        method = PaymentMethod(payment_method)
        intent = CheckoutIntent(
            partner_id=partner.id,
            payment_method=method.value,
            amount=round_currency(totals.net_total),
            status=CheckoutStatus.INITIATED.value,
        )
        self.db.add(intent)
        await self.db.commit()
        logger.info(f"Checkout {intent.id} started by partner {partner.id}: ₹{intent.amount} ({method.value})")

        if method != PaymentMethod.ONLINE:
            return intent, None

        try:
            razorpay_order = await run_in_threadpool(
                self.payment_service.create_order,
                intent.amount,
                f"chk_{intent.id.hex[:32]}",
                {"checkout_id": str(intent.id), "partner_id": str(partner.id)},
            )
        except PortalError as e:
            await self._fail(intent, e.message)
            raise

        intent.gateway_order_id = razorpay_order["id"]
        await self.db.commit()
        return intent, razorpay_order

    # ==================== CONFIRM ====================

    async def confirm_checkout(
        self,
        partner: Partner,
        intent_id: uuid.UUID,
        payment: Optional[PaymentConfirmation] = None,
    ) -> Tuple[CheckoutIntent, Order]:
        """
        Record the payment confirmation (online) and finalize the order.

        Raises:
            ValidationError: intent already finalized/cancelled, missing or
                invalid payment confirmation, or the cart changed
        """
        intent = await self.get_intent(partner.id, intent_id)

        if intent.status == CheckoutStatus.FINALIZED.value:
            raise ValidationError(
                "Checkout already completed",
                {"checkout_id": str(intent.id), "order_id": str(intent.order_id)},
            )
        if intent.status in (CheckoutStatus.CANCELLED.value, CheckoutStatus.FAILED.value):
            raise ValidationError(
                f"Checkout is {intent.status}",
                {"checkout_id": str(intent.id), "error": intent.error},
            )

        if intent.payment_method == PaymentMethod.ONLINE.value and intent.status == CheckoutStatus.INITIATED.value:
            await self._record_payment(intent, payment)

        return intent, await self._finalize(partner, intent)

    async def _record_payment(
        self,
        intent: CheckoutIntent,
        payment: Optional[PaymentConfirmation],
    ) -> None:
        """
        Accept the widget's success payload only when Razorpay signed it for
        this checkout's gateway order.
        """
        if payment is None or not payment.razorpay_payment_id:
            raise ValidationError("Payment confirmation is required for online payment")
        if not payment.razorpay_signature:
            raise ValidationError("Payment signature is required", {"checkout_id": str(intent.id)})
        if payment.razorpay_order_id and payment.razorpay_order_id != intent.gateway_order_id:
            raise ValidationError(
                "Payment does not belong to this checkout",
                {"checkout_id": str(intent.id), "razorpay_order_id": payment.razorpay_order_id},
            )

        if not intent.gateway_order_id or not self.payment_service.verify_signature(
            intent.gateway_order_id, payment.razorpay_payment_id, payment.razorpay_signature
        ):
            await self._fail(intent, "Invalid payment signature")
            raise ValidationError("Invalid payment signature", {"checkout_id": str(intent.id)})

        intent.payment_id = payment.razorpay_payment_id
        intent.status = CheckoutStatus.PAID.value
        await self.db.commit()
        logger.info(f"Checkout {intent.id} paid: {intent.payment_id}")

    async def _finalize(self, partner: Partner, intent: CheckoutIntent) -> Order:
        partner_id = partner.id
        paid = intent.payment_id is not None
        lines = await self.cart_service.get_lines(partner_id)

        try:
            if not lines:
                raise ValidationError("Cart is empty")

            totals = aggregate(lines)
            ensure_minimum_order(totals)
            if round_currency(totals.net_total) != round_currency(intent.amount):
                raise ValidationError(
                    "Cart changed after checkout started",
                    {"checkout_amount": str(intent.amount),
                     "cart_amount": str(round_currency(totals.net_total))},
                )

            address = await self.partner_service.get_shipping_address(partner.id)
            shipping_snapshot = (
                {key: getattr(address, key) for key in SHIPPING_SNAPSHOT_FIELDS}
                if address else None
            )

            draft = build_order(
                partner_id=partner.id,
                cart_lines=lines,
                payment_method=intent.payment_method,
                payment_confirmation=intent.payment_id,
                shipping_address=shipping_snapshot,
                partner_role=partner.role,
            )
            order = await self.order_service.persist_order(draft)
        except PortalError as e:
            if paid:
                await self._hold(intent, e.message)
            else:
                await self._fail(intent, e.message)
            raise

        intent.order_id = order.id
        intent.status = CheckoutStatus.FINALIZED.value
        intent.error = None
        await self.db.commit()
        # A retried order insert rolls back and expires the intent
        await self.db.refresh(intent)

        order_number = order.order_number
        follow_up_errors = []

        entry = build_payment_log_entry(order)
        if entry is not None:
            try:
                await self.order_service.persist_payment_log(entry)
            except Exception as e:
                await self.db.rollback()
                logger.error(f"Payment log for order {order_number} not written: {e}")
                follow_up_errors.append(f"payment log: {e}")

        try:
            await self.cart_service.clear(partner_id)
        except Exception as e:
            await self.db.rollback()
            logger.error(f"Cart of partner {partner_id} not cleared after order {order_number}: {e}")
            follow_up_errors.append(f"cart clear: {e}")

        if follow_up_errors:
            await self.db.refresh(intent)
            intent.error = "; ".join(follow_up_errors)
            await self.db.commit()
            await self.db.refresh(order)

        logger.info(f"Checkout {intent.id} finalized as order {order_number}")
        return order

    # ==================== CANCEL ====================

    async def cancel_checkout(self, partner: Partner, intent_id: uuid.UUID) -> CheckoutIntent:
        """
        Payment modal dismissed. No order or payment log is written.

        Raises:
            ValidationError: payment already recorded or checkout finalized
        """
        intent = await self.get_intent(partner.id, intent_id)

        if intent.status == CheckoutStatus.CANCELLED.value:
            return intent
        if intent.status != CheckoutStatus.INITIATED.value:
            raise ValidationError(
                f"Cannot cancel a checkout that is {intent.status}",
                {"checkout_id": str(intent.id)},
            )

        intent.status = CheckoutStatus.CANCELLED.value
        await self.db.commit()
        logger.info(f"Checkout {intent.id} cancelled by partner {partner.id}")
        return intent

    # ==================== QUERIES ====================

    async def get_intent(self, partner_id: uuid.UUID, intent_id: uuid.UUID) -> CheckoutIntent:
        result = await self.db.execute(
            select(CheckoutIntent).where(
                CheckoutIntent.id == intent_id,
                CheckoutIntent.partner_id == partner_id,
            )
        )
        intent = result.scalar_one_or_none()
        if not intent:
            raise NotFoundError("Checkout not found", {"checkout_id": str(intent_id)})
        return intent

    async def _fail(self, intent: CheckoutIntent, error: str) -> None:
        # A failed commit rolls the session back and expires the intent
        await self.db.refresh(intent)
        intent.status = CheckoutStatus.FAILED.value
        intent.error = error
        await self.db.commit()
        logger.warning(f"Checkout {intent.id} failed: {error}")

    async def _hold(self, intent: CheckoutIntent, error: str) -> None:
        # Money already taken: stay paid so confirm can finalize again
        await self.db.refresh(intent)
        intent.error = error
        await self.db.commit()
        logger.warning(f"Checkout {intent.id} paid but not finalized: {error}")
