"""
Schemas Pydantic per la contabilità
Progetto: Gestionale Studio Legale
"""

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from app.models.transaction import TransactionStatus, TransactionType


class TransactionCreate(BaseModel):
    """Movimento inserito manualmente."""

    model_config = ConfigDict(use_enum_values=True)

    type: TransactionType = Field(..., description="revenue o expense")
    category: str = Field(..., min_length=1, max_length=100)
    description: str = Field(..., min_length=1)
    amount: Decimal = Field(..., gt=0, max_digits=12, decimal_places=2)
    date: datetime = Field(..., description="Data competenza")
    status: TransactionStatus = TransactionStatus.PAID


class TransactionRead(BaseModel):
    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    id: uuid.UUID
    type: str = Field(..., validation_alias=AliasChoices("transaction_type", "type"))
    category: str
    description: str
    amount: Decimal
    date: datetime
    status: str
    invoice_id: Optional[uuid.UUID] = None
    created_at: datetime


class FinanceDashboard(BaseModel):
    """Riepilogo del mese corrente."""

    period_start: datetime
    period_end: datetime
    revenue: Decimal
    expense: Decimal
    balance: Decimal
    recent_transactions: list[TransactionRead] = Field(default_factory=list)
