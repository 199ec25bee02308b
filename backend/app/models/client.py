"""
Modelli SQLAlchemy per il CRM
Progetto: Gestionale Studio Legale

Contiene:
- Client: anagrafica clienti e lead (persone fisiche e giuridiche)
- Contact: referenti di un cliente
- Interaction: storico contatti (telefonate, email, riunioni, note)
"""


from __future__ import annotations
import uuid
from enum import Enum
from typing import Any, Optional, TYPE_CHECKING, List

from sqlalchemy import JSON, Boolean, CheckConstraint, ForeignKey, Index, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.models import Base
from app.models.mixins import TenantMixin, TimestampMixin, UUIDMixin

# Import per type hinting relazioni (evita circular import)
if TYPE_CHECKING:
    from app.models.matter import Matter
    from app.models.user import User


class ClientType(str, Enum):
    """Tipo cliente: persona fisica (pf) o giuridica (pj)."""
    PF = "pf"
    PJ = "pj"


class ClientStatus(str, Enum):
    """Stato del cliente nel ciclo commerciale."""
    LEAD = "lead"
    ACTIVE = "active"
    INACTIVE = "inactive"
    ARCHIVED = "archived"


class LeadStage(str, Enum):
    """Fase della pipeline commerciale."""
    NEW = "new"
    QUALIFIED = "qualified"
    PROPOSAL = "proposal"
    NEGOTIATION = "negotiation"
    WON = "won"
    LOST = "lost"


class InteractionType(str, Enum):
    """Tipo di interazione registrata."""
    CALL = "call"
    EMAIL = "email"
    MEETING = "meeting"
    NOTE = "note"


class Client(Base, UUIDMixin, TenantMixin, TimestampMixin):
    """
    Modello per l'anagrafica clienti.

    Un cliente può essere un lead (status='lead', con lead_stage) o un
    cliente attivo con pratiche, ore e fatture associate. L'eliminazione
    è logica: il cliente passa a status 'archived'.

    Attributes:
        client_type: 'pf' (persona fisica) o 'pj' (persona giuridica)
        name: Nome o ragione sociale
        tax_id: CPF/CNPJ, univoco all'interno dello studio
        responsible_lawyer_id: Avvocato responsabile
        status: lead | active | inactive | archived
        lead_stage: fase pipeline commerciale
        tags: Etichette libere
    """

    __tablename__ = "clients"

    # ------------------------------------------------------------
    # Colonne Dati Anagrafici
    # ------------------------------------------------------------
    client_type: Mapped[str] = mapped_column(
        String(2),
        nullable=False,
        default=ClientType.PF.value,
        doc="Tipo cliente: pf (persona fisica), pj (persona giuridica)",
    )

    name: Mapped[str] = mapped_column(
        String(200),
        nullable=False,
        doc="Nome o ragione sociale",
    )

    tax_id: Mapped[Optional[str]] = mapped_column(
        String(20),
        nullable=True,
        doc="CPF/CNPJ del cliente",
    )

    email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True, doc="Email")

    phone: Mapped[Optional[str]] = mapped_column(String(30), nullable=True, doc="Telefono")

    # ------------------------------------------------------------
    # Colonne Indirizzo
    # ------------------------------------------------------------
    street: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    number: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    complement: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    neighborhood: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    city: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    state: Mapped[Optional[str]] = mapped_column(String(2), nullable=True)
    zip_code: Mapped[Optional[str]] = mapped_column(String(10), nullable=True)

    # ------------------------------------------------------------
    # Colonne CRM
    # ------------------------------------------------------------
    responsible_lawyer_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        doc="Avvocato responsabile del cliente",
    )

    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=ClientStatus.ACTIVE.value,
        doc="Stato: lead, active, inactive, archived",
    )

    lead_stage: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=LeadStage.NEW.value,
        doc="Fase pipeline: new, qualified, proposal, negotiation, won, lost",
    )

    tags: Mapped[List[str]] = mapped_column(
        JSON,
        nullable=False,
        default=list,
        doc="Etichette libere",
    )

    # ------------------------------------------------------------
    # Relationships
    # ------------------------------------------------------------
    responsible_lawyer: Mapped[Optional["User"]] = relationship(
        "User",
        lazy="selectin",
        doc="Avvocato responsabile",
    )

    contacts: Mapped[List["Contact"]] = relationship(
        "Contact",
        back_populates="client",
        cascade="all, delete-orphan",
        order_by="Contact.name",
        doc="Referenti del cliente",
    )

    interactions: Mapped[List["Interaction"]] = relationship(
        "Interaction",
        back_populates="client",
        cascade="all, delete-orphan",
        doc="Storico interazioni",
    )

    matters: Mapped[List["Matter"]] = relationship(
        "Matter",
        back_populates="client",
        doc="Pratiche del cliente",
    )

    __table_args__ = (
        Index("ix_clients_tenant_status", "tenant_id", "status"),
        Index("ix_clients_tenant_tax_id", "tenant_id", "tax_id"),
        Index("ix_clients_name", "name"),
        CheckConstraint("client_type IN ('pf', 'pj')", name="ck_clients_client_type"),
        CheckConstraint(
            "status IN ('lead', 'active', 'inactive', 'archived')",
            name="ck_clients_status",
        ),
        CheckConstraint(
            "lead_stage IN ('new', 'qualified', 'proposal', 'negotiation', 'won', 'lost')",
            name="ck_clients_lead_stage",
        ),
    )

    def __repr__(self) -> str:
        return f"<Client(id={self.id}, name={self.name}, status={self.status})>"


class Contact(Base, UUIDMixin, TenantMixin, TimestampMixin):
    """Referente di un cliente (al più uno primario per cliente)."""

    __tablename__ = "contacts"

    client_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("clients.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
        doc="UUID del cliente",
    )

    name: Mapped[str] = mapped_column(String(200), nullable=False, doc="Nome referente")
    role: Mapped[Optional[str]] = mapped_column(String(100), nullable=True, doc="Ruolo/qualifica")
    email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    phone: Mapped[Optional[str]] = mapped_column(String(30), nullable=True)

    is_primary: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
        doc="Referente principale del cliente",
    )

    client: Mapped["Client"] = relationship("Client", back_populates="contacts")

    def __repr__(self) -> str:
        return f"<Contact(id={self.id}, name={self.name}, primary={self.is_primary})>"


class Interaction(Base, UUIDMixin, TenantMixin, TimestampMixin):
    """Interazione con un cliente (telefonata, email, riunione, nota)."""

    __tablename__ = "interactions"

    client_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("clients.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
        doc="UUID del cliente",
    )

    user_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        doc="Utente che ha registrato l'interazione",
    )

    interaction_type: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        doc="Tipo: call, email, meeting, note",
    )

    subject: Mapped[str] = mapped_column(String(200), nullable=False, doc="Oggetto")

    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # "metadata" è riservato da SQLAlchemy: attributo meta, colonna metadata
    meta: Mapped[dict[str, Any]] = mapped_column(
        "metadata",
        JSON,
        nullable=False,
        default=dict,
        doc="Dati aggiuntivi (durata chiamata, partecipanti, ...)",
    )

    client: Mapped["Client"] = relationship("Client", back_populates="interactions")

    __table_args__ = (
        CheckConstraint(
            "interaction_type IN ('call', 'email', 'meeting', 'note')",
            name="ck_interactions_type",
        ),
    )

    def __repr__(self) -> str:
        return f"<Interaction(id={self.id}, type={self.interaction_type})>"
