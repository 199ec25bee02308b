"""
Modello SQLAlchemy per l'entità User
Progetto: Gestionale Studio Legale

Modello per l'autenticazione e gestione utenti dello studio.
"""

from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING

from sqlalchemy import CheckConstraint, Index, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.models import Base
from app.models.mixins import SoftDeleteMixin, TenantMixin, TimestampMixin, UUIDMixin

if TYPE_CHECKING:
    from app.models.tenant import Tenant


class UserRole(str, Enum):
    """Ruoli utente nel sistema."""
    ADMIN = "admin"
    PARTNER = "partner"
    LAWYER = "lawyer"
    FINANCIAL = "financial"
    SECRETARY = "secretary"
    INTERN = "intern"
    CLIENT = "client"
    SUPPORT = "support"


class User(Base, UUIDMixin, TenantMixin, TimestampMixin, SoftDeleteMixin):
    """
    Modello per gli utenti del sistema.

    Ogni utente appartiene a un solo studio; il ruolo determina i permessi
    tramite la tabella statica di core.rbac, eventualmente sovrascritta
    da una riga Role del tenant.

    Attributes:
        id: UUID primary key
        tenant_id: UUID dello studio
        email: Email univoca dell'utente
        hashed_password: Password hashata
        full_name: Nome completo dell'utente
        role: Ruolo dell'utente
        is_active: Indica se l'utente è attivo
    """

    __tablename__ = "users"

    email: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        nullable=False,
        doc="Email univoca dell'utente",
    )

    hashed_password: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        doc="Password hashata",
    )

    full_name: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
        doc="Nome completo dell'utente",
    )

    role: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=UserRole.LAWYER.value,
        doc="Ruolo dell'utente",
    )

    tenant: Mapped["Tenant"] = relationship(
        "Tenant",
        back_populates="users",
        doc="Studio di appartenenza",
    )

    __table_args__ = (
        Index("ix_users_email", "email"),
        Index("ix_users_tenant_role", "tenant_id", "role"),
        CheckConstraint(
            "role IN ('admin', 'partner', 'lawyer', 'financial', 'secretary', "
            "'intern', 'client', 'support')",
            name="ck_users_role",
        ),
    )

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email={self.email}, role={self.role})>"
