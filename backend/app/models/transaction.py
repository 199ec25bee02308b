"""
Modello SQLAlchemy per i movimenti contabili
Progetto: Gestionale Studio Legale
"""

from __future__ import annotations

import datetime
import uuid
from decimal import Decimal
from enum import Enum
from typing import Optional

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, Index, Numeric, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from app.models import Base
from app.models.mixins import TenantMixin, TimestampMixin, UUIDMixin


class TransactionType(str, Enum):
    """Tipo movimento."""
    REVENUE = "revenue"
    EXPENSE = "expense"


class TransactionStatus(str, Enum):
    """Stato movimento."""
    PAID = "paid"
    PENDING = "pending"


# Categorie dei movimenti generati automaticamente dalla fatturazione
CATEGORY_INVOICE_PAYMENT = "Receita - Faturas"
CATEGORY_FEES = "Honorários"


class Transaction(Base, UUIDMixin, TenantMixin, TimestampMixin):
    """
    Movimento del registro contabile (entrate/uscite).

    I movimenti revenue legati a una fattura sono generati dagli incassi
    (categoria "Receita - Faturas") o dal saldo manuale
    (categoria "Honorários").
    """

    __tablename__ = "transactions"

    transaction_type: Mapped[str] = mapped_column(
        "type",
        String(10),
        nullable=False,
        doc="Tipo: revenue, expense",
    )

    category: Mapped[str] = mapped_column(String(100), nullable=False)

    description: Mapped[str] = mapped_column(Text, nullable=False)

    amount: Mapped[Decimal] = mapped_column(
        Numeric(12, 2),
        nullable=False,
        doc="Importo (sempre positivo)",
    )

    date: Mapped[datetime.datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        doc="Data competenza",
    )

    status: Mapped[str] = mapped_column(
        String(10),
        nullable=False,
        default=TransactionStatus.PAID.value,
    )

    invoice_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid,
        ForeignKey("invoices.id", ondelete="SET NULL"),
        nullable=True,
        doc="Fattura collegata",
    )

    __table_args__ = (
        Index("ix_transactions_tenant_date", "tenant_id", "date"),
        Index("ix_transactions_invoice_id", "invoice_id"),
        CheckConstraint("type IN ('revenue', 'expense')", name="ck_transactions_type"),
        CheckConstraint("status IN ('paid', 'pending')", name="ck_transactions_status"),
        CheckConstraint("amount > 0", name="ck_transactions_amount_positive"),
    )

    def __repr__(self) -> str:
        return f"<Transaction(id={self.id}, type={self.transaction_type}, amount={self.amount})>"
