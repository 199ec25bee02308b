"""
Modelli SQLAlchemy per Tenant e Role
Progetto: Gestionale Studio Legale

Contiene:
- Tenant: studio legale (organizzazione isolata)
- Role: override per-tenant dei permessi di un ruolo
"""

from __future__ import annotations

import uuid
from typing import TYPE_CHECKING, Any, List, Optional

from sqlalchemy import JSON, ForeignKey, Index, String, Text, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.models import Base
from app.models.mixins import SoftDeleteMixin, TimestampMixin, UUIDMixin

if TYPE_CHECKING:
    from app.models.user import User


class Tenant(Base, UUIDMixin, TimestampMixin, SoftDeleteMixin):
    """
    Modello per gli studi legali.

    Tutti i dati applicativi sono partizionati per tenant_id.
    La colonna settings contiene la configurazione dello studio
    (SMTP, notifiche, token calendario) ed è letta e scritta solo
    attraverso lo schema TenantSettings.
    """

    __tablename__ = "tenants"

    name: Mapped[str] = mapped_column(
        String(200),
        nullable=False,
        doc="Ragione sociale dello studio",
    )

    tax_id: Mapped[Optional[str]] = mapped_column(
        String(20),
        nullable=True,
        doc="CNPJ / partita IVA dello studio",
    )

    email: Mapped[Optional[str]] = mapped_column(
        String(255),
        nullable=True,
        doc="Email dello studio",
    )

    phone: Mapped[Optional[str]] = mapped_column(
        String(30),
        nullable=True,
        doc="Telefono dello studio",
    )

    settings: Mapped[dict[str, Any]] = mapped_column(
        JSON,
        nullable=False,
        default=dict,
        doc="Configurazione dello studio (vedi schemas.tenant.TenantSettings)",
    )

    users: Mapped[List["User"]] = relationship(
        "User",
        back_populates="tenant",
        doc="Utenti dello studio",
    )

    def __repr__(self) -> str:
        return f"<Tenant(id={self.id}, name={self.name})>"


class Role(Base, UUIDMixin, TimestampMixin):
    """
    Override per-tenant dei permessi di un ruolo.

    Se esiste una riga con (tenant_id, name) uguale al ruolo dell'utente,
    i suoi permessi vengono consultati prima della tabella statica.
    La colonna permissions accetta storicamente sia una lista sia
    un oggetto {"allowed": [...]}: la normalizzazione avviene in core.rbac.
    """

    __tablename__ = "roles"

    tenant_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("tenants.id", ondelete="CASCADE"),
        nullable=False,
        doc="UUID dello studio",
    )

    name: Mapped[str] = mapped_column(
        String(30),
        nullable=False,
        doc="Nome del ruolo (admin, partner, lawyer, ...)",
    )

    description: Mapped[Optional[str]] = mapped_column(
        Text,
        nullable=True,
        doc="Descrizione del ruolo",
    )

    permissions: Mapped[Any] = mapped_column(
        JSON,
        nullable=False,
        default=list,
        doc="Permessi concessi: lista o {'allowed': [...]}",
    )

    __table_args__ = (
        UniqueConstraint("tenant_id", "name", name="uq_roles_tenant_name"),
        Index("ix_roles_tenant_id", "tenant_id"),
    )

    def __repr__(self) -> str:
        return f"<Role(tenant_id={self.tenant_id}, name={self.name})>"
