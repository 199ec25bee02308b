"""
Schemas Pydantic per le ore lavorate
Progetto: Gestionale Studio Legale
"""

import uuid
import datetime as dt
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from app.schemas.client import ClientSummary
from app.schemas.matter import MatterSummary


class TimeEntryCreate(BaseModel):
    """
    Nuova registrazione di ore.

    Se client_id manca viene ricavato dalla pratica.
    """

    description: str = Field(..., min_length=1, description="Descrizione del lavoro")
    hours: Decimal = Field(..., ge=Decimal("0.1"), max_digits=6, decimal_places=2, description="Ore")
    date: dt.date = Field(..., description="Giorno di lavoro (YYYY-MM-DD)")
    matter_id: Optional[uuid.UUID] = Field(None, description="Pratica")
    client_id: Optional[uuid.UUID] = Field(None, description="Cliente")
    billable: bool = Field(True, description="Ore fatturabili")


class TimeEntryUpdate(BaseModel):
    """Modifica di ore non ancora fatturate."""

    description: Optional[str] = Field(None, min_length=1)
    hours: Optional[Decimal] = Field(None, ge=Decimal("0.1"), max_digits=6, decimal_places=2)
    date: Optional[dt.date] = None
    matter_id: Optional[uuid.UUID] = None
    client_id: Optional[uuid.UUID] = None
    billable: Optional[bool] = None


class TimeEntryRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    user_id: uuid.UUID
    matter_id: Optional[uuid.UUID] = None
    client_id: Optional[uuid.UUID] = None
    description: str
    hours: Decimal
    date: dt.date
    billable: bool
    invoice_id: Optional[uuid.UUID] = None
    matter: Optional[MatterSummary] = None
    client: Optional[ClientSummary] = None
    created_at: dt.datetime
