"""
Modelli SQLAlchemy per i Documenti
Progetto: Gestionale Studio Legale

Contiene:
- Document: metadati di un file caricato (il file vive in public/uploads)
- DocumentVersion: storico versioni di un documento
- DocumentTemplate: modelli testuali con segnaposto {{ chiave }}
"""

from __future__ import annotations

import uuid
from typing import TYPE_CHECKING, Any, List, Optional

from sqlalchemy import JSON, ForeignKey, Index, Integer, String, Text, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.models import Base
from app.models.mixins import TenantMixin, TimestampMixin, UUIDMixin

if TYPE_CHECKING:
    from app.models.matter import Matter
    from app.models.client import Client


class Document(Base, UUIDMixin, TenantMixin, TimestampMixin):
    """
    Documento caricato o generato.

    storage_path contiene l'URL pubblico del file corrente; version parte
    da 1 e viene incrementata a ogni nuova versione caricata.
    """

    __tablename__ = "documents"

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
        doc="Cliente collegato",
    )

    name: Mapped[str] = mapped_column(String(255), nullable=False, doc="Nome documento")
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    document_type: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        default="other",
        doc="Categoria (petition, contract, power_of_attorney, generated, ...)",
    )

    storage_path: Mapped[str] = mapped_column(
        String(500),
        nullable=False,
        doc="URL pubblico del file corrente",
    )

    file_size: Mapped[int] = mapped_column(Integer, nullable=False, default=0, doc="Byte")

    mime_type: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
        default="application/octet-stream",
    )

    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    uploaded_by_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )

    matter: Mapped[Optional["Matter"]] = relationship("Matter", lazy="selectin")
    client: Mapped[Optional["Client"]] = relationship("Client", lazy="selectin")

    versions: Mapped[List["DocumentVersion"]] = relationship(
        "DocumentVersion",
        back_populates="document",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="DocumentVersion.version.desc()",
    )

    __table_args__ = (
        Index("ix_documents_tenant_matter", "tenant_id", "matter_id"),
        Index("ix_documents_tenant_client", "tenant_id", "client_id"),
    )

    def __repr__(self) -> str:
        return f"<Document(id={self.id}, name={self.name}, version={self.version})>"


class DocumentVersion(Base, UUIDMixin, TimestampMixin):
    """Versione storica di un documento."""

    __tablename__ = "document_versions"

    document_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("documents.id", ondelete="CASCADE"),
        nullable=False,
    )

    version: Mapped[int] = mapped_column(Integer, nullable=False)
    storage_path: Mapped[str] = mapped_column(String(500), nullable=False)
    file_size: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    uploaded_by_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )

    changes_description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    document: Mapped["Document"] = relationship("Document", back_populates="versions")

    __table_args__ = (
        UniqueConstraint("document_id", "version", name="uq_document_versions_number"),
    )

    def __repr__(self) -> str:
        return f"<DocumentVersion(document_id={self.document_id}, version={self.version})>"


class DocumentTemplate(Base, UUIDMixin, TenantMixin, TimestampMixin):
    """Modello di documento con segnaposto {{ chiave }} (es. {{ client.name }})."""

    __tablename__ = "document_templates"

    name: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    category: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    content: Mapped[str] = mapped_column(Text, nullable=False)

    variables: Mapped[List[Any]] = mapped_column(
        JSON,
        nullable=False,
        default=list,
        doc="Variabili documentate del modello",
    )

    created_by_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )

    def __repr__(self) -> str:
        return f"<DocumentTemplate(id={self.id}, name={self.name})>"
