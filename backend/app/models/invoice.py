"""
Modelli SQLAlchemy per la Fatturazione
Progetto: Gestionale Studio Legale

Contiene:
- Invoice: Fattura emessa a un cliente a partire dalle ore lavorate
- InvoiceItem: Righe della fattura (una per ogni TimeEntry fatturata)
- Payment: Incassi registrati sulla fattura
"""

from __future__ import annotations

import datetime
import uuid
from decimal import Decimal
from enum import Enum
from typing import TYPE_CHECKING, List, Optional

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Numeric,
    String,
    Text,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.models import Base
from app.models.mixins import TenantMixin, TimestampMixin, UUIDMixin

# Import per type hinting relazioni (evita circular import)
if TYPE_CHECKING:
    from app.models.client import Client
    from app.models.time_entry import TimeEntry


class InvoiceStatus(str, Enum):
    """Stato memorizzato della fattura."""
    DRAFT = "draft"
    PENDING = "pending"
    PAID = "paid"
    OVERDUE = "overdue"
    CANCELLED = "cancelled"


class Invoice(Base, UUIDMixin, TenantMixin, TimestampMixin):
    """
    Modello per le fatture.

    total_amount è l'importo autorevole. Lo stato è memorizzato: passa a
    'paid' quando la somma dei pagamenti raggiunge il totale oppure con
    aggiornamento manuale; 'overdue' non viene calcolato dalle scadenze.

    Attributes:
        client_id: Cliente fatturato
        invoice_number: Numero progressivo per studio (es. 0001)
        issue_date: Data emissione
        due_date: Data scadenza
        subtotal: Imponibile
        tax_amount: Imposte
        total_amount: Totale dovuto
        status: draft | pending | paid | overdue | cancelled
        paid_at: Data/ora saldo
        payment_method: Metodo dell'ultimo incasso che ha saldato la fattura
        notes: Note

    Relationships:
        client: Cliente fatturato
        items: Righe della fattura
        payments: Incassi registrati
        time_entries: Ore consumate dalla fattura
    """

    __tablename__ = "invoices"

    # ------------------------------------------------------------
    # Colonne Relazioni
    # ------------------------------------------------------------
    client_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("clients.id", ondelete="RESTRICT"),
        nullable=False,
        doc="UUID del cliente fatturato",
    )

    # ------------------------------------------------------------
    # Colonne Identificazione
    # ------------------------------------------------------------
    invoice_number: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        doc="Numero fattura progressivo per studio (formato: NNNN)",
    )

    issue_date: Mapped[datetime.datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        doc="Data emissione fattura",
    )

    due_date: Mapped[datetime.datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        doc="Data scadenza pagamento",
    )

    # ------------------------------------------------------------
    # Colonne Importi
    # ------------------------------------------------------------
    subtotal: Mapped[Decimal] = mapped_column(
        Numeric(12, 2),
        nullable=False,
        doc="Imponibile (somma delle righe)",
    )

    tax_amount: Mapped[Decimal] = mapped_column(
        Numeric(12, 2),
        nullable=False,
        default=Decimal("0"),
        doc="Imposte",
    )

    total_amount: Mapped[Decimal] = mapped_column(
        Numeric(12, 2),
        nullable=False,
        doc="Totale dovuto",
    )

    # ------------------------------------------------------------
    # Colonne Stato
    # ------------------------------------------------------------
    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=InvoiceStatus.PENDING.value,
        doc="Stato: draft, pending, paid, overdue, cancelled",
    )

    paid_at: Mapped[Optional[datetime.datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
        doc="Data/ora saldo",
    )

    payment_method: Mapped[Optional[str]] = mapped_column(
        String(50),
        nullable=True,
        doc="Metodo di pagamento del saldo",
    )

    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True, doc="Note")

    # ------------------------------------------------------------
    # Relationships
    # ------------------------------------------------------------
    client: Mapped["Client"] = relationship(
        "Client",
        lazy="selectin",
        doc="Cliente fatturato",
    )

    items: Mapped[List["InvoiceItem"]] = relationship(
        "InvoiceItem",
        back_populates="invoice",
        cascade="all, delete-orphan",
        order_by="InvoiceItem.created_at",
        doc="Righe della fattura",
    )

    payments: Mapped[List["Payment"]] = relationship(
        "Payment",
        back_populates="invoice",
        order_by="Payment.payment_date",
        doc="Incassi registrati",
    )

    time_entries: Mapped[List["TimeEntry"]] = relationship(
        "TimeEntry",
        back_populates="invoice",
        passive_deletes=True,
        doc="Ore consumate dalla fattura",
    )

    # ------------------------------------------------------------
    # Properties Calcolate
    # ------------------------------------------------------------
    @property
    def paid_amount(self) -> Decimal:
        """Somma degli incassi registrati (richiede payments caricati)."""
        return sum((p.amount for p in self.payments), Decimal("0"))

    @property
    def remaining_amount(self) -> Decimal:
        """Importo residuo da incassare."""
        return self.total_amount - self.paid_amount

    # ------------------------------------------------------------
    # Indici e Vincoli
    # ------------------------------------------------------------
    __table_args__ = (
        # Una corsa sulla numerazione fallisce qui invece di duplicare il numero
        UniqueConstraint("tenant_id", "invoice_number", name="uq_invoices_tenant_number"),
        Index("ix_invoices_tenant_status", "tenant_id", "status"),
        Index("ix_invoices_tenant_created", "tenant_id", "created_at"),
        Index("ix_invoices_client_id", "client_id"),
        CheckConstraint(
            "status IN ('draft', 'pending', 'paid', 'overdue', 'cancelled')",
            name="ck_invoices_status",
        ),
        CheckConstraint("subtotal >= 0", name="ck_invoices_subtotal_positive"),
        CheckConstraint("total_amount >= 0", name="ck_invoices_total_positive"),
    )

    def __repr__(self) -> str:
        return f"<Invoice(id={self.id}, number={self.invoice_number}, total={self.total_amount})>"


class InvoiceItem(Base, UUIDMixin, TimestampMixin):
    """
    Riga della fattura.

    Creata 1:1 da una TimeEntry al momento dell'emissione; non viene
    più modificata (quantity = ore, unit_price = tariffa oraria).
    """

    __tablename__ = "invoice_items"

    invoice_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("invoices.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
        doc="UUID della fattura padre",
    )

    description: Mapped[str] = mapped_column(Text, nullable=False)

    quantity: Mapped[Decimal] = mapped_column(
        Numeric(10, 2),
        nullable=False,
        doc="Quantità (ore)",
    )

    unit_price: Mapped[Decimal] = mapped_column(
        Numeric(12, 2),
        nullable=False,
        doc="Prezzo unitario (tariffa oraria)",
    )

    total_price: Mapped[Decimal] = mapped_column(
        Numeric(12, 2),
        nullable=False,
        doc="Totale riga (quantity x unit_price)",
    )

    invoice: Mapped["Invoice"] = relationship("Invoice", back_populates="items")

    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_invoice_items_quantity_positive"),
        CheckConstraint("unit_price >= 0", name="ck_invoice_items_unit_price_positive"),
    )

    def __repr__(self) -> str:
        return f"<InvoiceItem(id={self.id}, quantity={self.quantity}, total={self.total_price})>"


class Payment(Base, UUIDMixin, TenantMixin, TimestampMixin):
    """
    Incasso registrato su una fattura.

    I pagamenti sono append-only e ognuno ha esattamente una
    Transaction di tipo revenue collegata (transaction_id).
    Non esiste un tetto: la somma può superare il totale fattura.
    """

    __tablename__ = "payments"

    invoice_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("invoices.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
        doc="UUID della fattura",
    )

    amount: Mapped[Decimal] = mapped_column(
        Numeric(12, 2),
        nullable=False,
        doc="Importo incassato",
    )

    payment_method: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        doc="Metodo di pagamento (pix, bonifico, contanti, ...)",
    )

    payment_date: Mapped[datetime.datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        doc="Data incasso",
    )

    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    transaction_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid,
        ForeignKey("transactions.id", ondelete="SET NULL"),
        nullable=True,
        doc="Movimento contabile generato dall'incasso",
    )

    invoice: Mapped["Invoice"] = relationship("Invoice", back_populates="payments")

    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_payments_amount_positive"),
    )

    def __repr__(self) -> str:
        return f"<Payment(id={self.id}, amount={self.amount}, invoice_id={self.invoice_id})>"
