"""
Schemas Pydantic per la Fatturazione
Progetto: Gestionale Studio Legale

Contiene:
- Schemas per la creazione fattura da ore lavorate
- Schemas per InvoiceItem e Payment
- Schemas per Invoice (lettura, dettaglio, lista, aggiornamento stato)
- Risposta della registrazione incasso
"""

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator

from app.core.config import settings
from app.models.invoice import InvoiceStatus
from app.schemas.client import ClientSummary
from app.schemas.finance import TransactionRead
from app.schemas.time_entry import TimeEntryRead


# -------------------------------------------------------------------
# Creazione fattura
# -------------------------------------------------------------------

class InvoiceCreate(BaseModel):
    """
    Richiesta di emissione fattura.

    Tutte le ore indicate devono appartenere al cliente, allo studio
    corrente e non essere già fatturate; altrimenti nessuna riga viene scritta.
    """

    client_id: uuid.UUID = Field(..., description="UUID del cliente")
    time_entry_ids: list[uuid.UUID] = Field(
        ...,
        min_length=1,
        description="Ore da fatturare",
    )
    hourly_rate: Decimal = Field(
        default_factory=lambda: settings.default_hourly_rate,
        gt=0,
        max_digits=12,
        decimal_places=2,
        description="Tariffa oraria",
    )
    due_date: Optional[datetime] = Field(
        None,
        description="Scadenza (default: emissione + giorni configurati)",
    )
    notes: Optional[str] = None


class InvoiceStatusUpdate(BaseModel):
    """Aggiornamento manuale di stato, scadenza o note."""

    model_config = ConfigDict(use_enum_values=True)

    status: Optional[InvoiceStatus] = None
    due_date: Optional[datetime] = None
    notes: Optional[str] = None


# -------------------------------------------------------------------
# Schemas per InvoiceItem
# -------------------------------------------------------------------

class InvoiceItemRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    invoice_id: uuid.UUID
    description: str
    quantity: Decimal
    unit_price: Decimal
    total_price: Decimal


# -------------------------------------------------------------------
# Schemas per Payment
# -------------------------------------------------------------------

class PaymentCreate(BaseModel):
    """Registrazione di un incasso. Non c'è tetto sull'importo complessivo."""

    amount: Decimal = Field(..., gt=0, max_digits=12, decimal_places=2, description="Importo")
    payment_method: str = Field(..., min_length=1, max_length=50, description="Metodo")
    payment_date: Optional[datetime] = Field(None, description="Data incasso (default: ora)")
    notes: Optional[str] = None

    @field_validator("payment_method")
    @classmethod
    def strip_method(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Il metodo di pagamento è obbligatorio")
        return v


class PaymentRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    invoice_id: uuid.UUID
    amount: Decimal
    payment_method: str
    payment_date: datetime
    notes: Optional[str] = None
    transaction_id: Optional[uuid.UUID] = None
    created_at: datetime


# -------------------------------------------------------------------
# Schemas per Invoice
# -------------------------------------------------------------------

class InvoiceRead(BaseModel):
    """Fattura senza collezioni."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    tenant_id: uuid.UUID
    client_id: uuid.UUID
    invoice_number: str
    issue_date: datetime
    due_date: datetime
    subtotal: Decimal
    tax_amount: Decimal
    total_amount: Decimal
    status: str
    paid_at: Optional[datetime] = None
    payment_method: Optional[str] = None
    notes: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class InvoiceListItem(InvoiceRead):
    """Riga dell'elenco fatture."""

    client: Optional[ClientSummary] = None
    items_count: int = 0


class InvoiceDetail(InvoiceRead):
    """Fattura con cliente, righe, ore consumate e incassi."""

    client: Optional[ClientSummary] = None
    items: list[InvoiceItemRead] = Field(default_factory=list)
    time_entries: list[TimeEntryRead] = Field(default_factory=list)
    payments: list[PaymentRead] = Field(default_factory=list)

    @computed_field
    @property
    def paid_amount(self) -> Decimal:
        """Somma degli incassi."""
        return sum((p.amount for p in self.payments), Decimal("0"))

    @computed_field
    @property
    def remaining_amount(self) -> Decimal:
        """Residuo da incassare (negativo in caso di sovrapagamento)."""
        return self.total_amount - self.paid_amount


class InvoiceList(BaseModel):
    """Lista paginata delle fatture."""

    items: list[InvoiceListItem] = Field(default_factory=list)
    total: int = Field(..., ge=0)
    page: int = Field(..., ge=1)
    per_page: int = Field(..., ge=1)

    @computed_field
    def total_pages(self) -> int:
        if self.per_page > 0:
            return (self.total + self.per_page - 1) // self.per_page
        return 0


class PaymentResult(BaseModel):
    """Esito della registrazione di un incasso."""

    payment: PaymentRead
    transaction: TransactionRead
    invoice: InvoiceRead
    total_paid: Decimal
