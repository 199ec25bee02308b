"""
Modello SQLAlchemy per il registro attività (audit log)
Progetto: Gestionale Studio Legale
"""

from __future__ import annotations

import uuid
from typing import Any, Optional

from sqlalchemy import JSON, ForeignKey, Index, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from app.models import Base
from app.models.mixins import TenantMixin, TimestampMixin, UUIDMixin


class AuditLog(Base, UUIDMixin, TenantMixin, TimestampMixin):
    """Traccia le operazioni rilevanti (upload, modifiche impostazioni, attività)."""

    __tablename__ = "audit_logs"

    user_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        doc="Utente che ha eseguito l'operazione",
    )

    action: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        doc="Azione (create, update, upload, generate, ...)",
    )

    entity_type: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        doc="Tipo entità coinvolta",
    )

    entity_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid,
        nullable=True,
        doc="UUID entità coinvolta",
    )

    old_data: Mapped[Optional[dict[str, Any]]] = mapped_column(
        JSON,
        nullable=True,
        doc="Stato precedente",
    )

    new_data: Mapped[Optional[dict[str, Any]]] = mapped_column(
        JSON,
        nullable=True,
        doc="Stato successivo",
    )

    __table_args__ = (
        Index("ix_audit_logs_entity", "entity_type", "entity_id"),
    )

    def __repr__(self) -> str:
        return f"<AuditLog(action={self.action}, entity={self.entity_type}:{self.entity_id})>"
