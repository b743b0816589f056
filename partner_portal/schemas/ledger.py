from pydantic import BaseModel
from typing import List, Optional
from datetime import datetime
from decimal import Decimal
from enum import Enum
import uuid


class LedgerEntryType(str, Enum):
    DEBIT = "DEBIT"
    CREDIT = "CREDIT"


class LedgerEntryResponse(BaseModel):
    """One line of the partner account ledger."""
    entry_type: LedgerEntryType
    label: str
    amount: Decimal
    reference: str
    timestamp: datetime


class PartnerLedgerResponse(BaseModel):
    """Account ledger of a partner."""
    partner_id: uuid.UUID
    partner_name: Optional[str] = None
    entries: List[LedgerEntryResponse]
    total_invoiced: Decimal
    total_paid: Decimal
    outstanding_balance: Decimal
