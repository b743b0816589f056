"""Partner account ledger.

Orders are debits, payment log entries are credits. The ledger is rebuilt
from those two tables every time; nothing here is persisted.
"""
from typing import List, Iterable, Any
from datetime import datetime, timezone
from decimal import Decimal
import uuid
import logging

from pydantic import BaseModel, ConfigDict
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from partner_portal.core.exceptions import NotFoundError
from partner_portal.models.order import Order, PaymentLog
from partner_portal.models.partner import Partner
from partner_portal.schemas.ledger import LedgerEntryType
from partner_portal.services.pricing_service import to_decimal

logger = logging.getLogger(__name__)

ORDER_LABEL = "Order Purchase"
PAYMENT_LABEL = "Payment Received"
OFFLINE_PAYMENT_REFERENCE = "Cash/UPI"


class LedgerEntry(BaseModel):
    model_config = ConfigDict(frozen=True)

    entry_type: LedgerEntryType
    label: str
    amount: Decimal
    reference: str
    timestamp: datetime


class PartnerLedger(BaseModel):
    model_config = ConfigDict(frozen=True)

    entries: List[LedgerEntry]
    total_invoiced: Decimal
    total_paid: Decimal
    outstanding_balance: Decimal


def _as_utc(value: datetime) -> datetime:
    # SQLite returns naive datetimes
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def build_ledger(orders: Iterable[Any], payment_logs: Iterable[Any]) -> PartnerLedger:
    """
    Merge orders and payment logs into one ledger, newest first.

    Entries with equal timestamps keep their input order: orders before
    payment logs, each in the order given. Outstanding balance may be
    negative when a partner has overpaid.
    """
    entries: List[LedgerEntry] = []
    total_invoiced = Decimal("0")
    total_paid = Decimal("0")

    for order in orders:
        amount = to_decimal(order.total_amount)
        total_invoiced += amount
        entries.append(LedgerEntry(
            entry_type=LedgerEntryType.DEBIT,
            label=ORDER_LABEL,
            amount=amount,
            reference=str(order.id),
            timestamp=_as_utc(order.created_at),
        ))

    for log in payment_logs:
        amount = to_decimal(log.amount_paid)
        total_paid += amount
        entries.append(LedgerEntry(
            entry_type=LedgerEntryType.CREDIT,
            label=PAYMENT_LABEL,
            amount=amount,
            reference=log.transaction_id or OFFLINE_PAYMENT_REFERENCE,
            timestamp=_as_utc(log.created_at),
        ))

    # sorted() is stable, so ties keep insertion order
    entries = sorted(entries, key=lambda e: e.timestamp, reverse=True)

    return PartnerLedger(
        entries=entries,
        total_invoiced=total_invoiced,
        total_paid=total_paid,
        outstanding_balance=total_invoiced - total_paid,
    )


class LedgerService:
    """Loads a partner's orders and payments and builds the ledger."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_partner_ledger(self, partner_id: uuid.UUID) -> tuple[Partner, PartnerLedger]:
        partner = await self.db.get(Partner, partner_id)
        if not partner:
            raise NotFoundError("Partner not found", {"partner_id": str(partner_id)})

        orders = (await self.db.execute(
            select(Order).where(Order.partner_id == partner_id).order_by(Order.created_at)
        )).scalars().all()
        logs = (await self.db.execute(
            select(PaymentLog).where(PaymentLog.partner_id == partner_id).order_by(PaymentLog.created_at)
        )).scalars().all()

        ledger = build_ledger(orders, logs)
        logger.info(
            f"Ledger for partner {partner_id}: {len(ledger.entries)} entries, "
            f"outstanding ₹{ledger.outstanding_balance}"
        )
        return partner, ledger
