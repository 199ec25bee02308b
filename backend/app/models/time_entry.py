"""
Modello SQLAlchemy per le ore lavorate
Progetto: Gestionale Studio Legale

Una TimeEntry è modificabile finché invoice_id è NULL; una volta
fatturata sparisce dagli elenchi "da fatturare" e diventa immutabile.
"""

from __future__ import annotations

import datetime
import uuid
from decimal import Decimal
from typing import TYPE_CHECKING, Optional

from sqlalchemy import Boolean, CheckConstraint, Date, ForeignKey, Index, Numeric, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.models import Base
from app.models.mixins import TenantMixin, TimestampMixin, UUIDMixin

if TYPE_CHECKING:
    from app.models.client import Client
    from app.models.invoice import Invoice
    from app.models.matter import Matter
    from app.models.user import User


class TimeEntry(Base, UUIDMixin, TenantMixin, TimestampMixin):
    """
    Ore lavorate da un utente, opzionalmente su una pratica.

    Attributes:
        user_id: Utente che ha registrato le ore
        matter_id: Pratica (opzionale)
        client_id: Cliente (derivato dalla pratica se non indicato)
        description: Descrizione del lavoro
        hours: Ore (>= 0.1)
        date: Giorno di lavoro
        billable: Se False, le ore non compaiono tra quelle da fatturare
        invoice_id: Fattura che ha consumato le ore (NULL = non fatturate)
    """

    __tablename__ = "time_entries"

    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="RESTRICT"),
        nullable=False,
        doc="Utente che ha registrato le ore",
    )

    matter_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid,
        ForeignKey("matters.id", ondelete="SET NULL"),
        nullable=True,
        doc="Pratica collegata",
    )

    client_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid,
        ForeignKey("clients.id", ondelete="SET NULL"),
        nullable=True,
        doc="Cliente da fatturare",
    )

    description: Mapped[str] = mapped_column(Text, nullable=False)

    hours: Mapped[Decimal] = mapped_column(
        Numeric(6, 2),
        nullable=False,
        doc="Ore lavorate",
    )

    date: Mapped[datetime.date] = mapped_column(Date, nullable=False, doc="Giorno di lavoro")

    billable: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    invoice_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid,
        ForeignKey("invoices.id", ondelete="SET NULL"),
        nullable=True,
        doc="Fattura che ha consumato le ore",
    )

    # ------------------------------------------------------------
    # Relationships
    # ------------------------------------------------------------
    user: Mapped["User"] = relationship("User", lazy="selectin")
    matter: Mapped[Optional["Matter"]] = relationship("Matter", lazy="selectin")
    client: Mapped[Optional["Client"]] = relationship("Client", lazy="selectin")
    invoice: Mapped[Optional["Invoice"]] = relationship("Invoice", back_populates="time_entries")

    @property
    def is_billed(self) -> bool:
        """True se le ore sono già state fatturate."""
        return self.invoice_id is not None

    __table_args__ = (
        Index("ix_time_entries_unbilled", "tenant_id", "client_id", "invoice_id"),
        Index("ix_time_entries_user_date", "user_id", "date"),
        CheckConstraint("hours >= 0.1", name="ck_time_entries_hours_min"),
    )

    def __repr__(self) -> str:
        return f"<TimeEntry(id={self.id}, hours={self.hours}, invoice_id={self.invoice_id})>"
