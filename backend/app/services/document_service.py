"""
Service Layer per i Documenti
Progetto: Gestionale Studio Legale

Gestisce:
- Caricamento file in <storage_root>/uploads/YYYY/MM/<uuid>.<ext>
- Versioni successive di un documento
- Modelli di documento con segnaposto {{ chiave }} e generazione
"""

import logging
import re
import uuid
from datetime import date
from pathlib import Path
from typing import Any, Optional

from fastapi.concurrency import run_in_threadpool
from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.core.config import settings
from app.core.exceptions import BusinessValidationError, NotFoundError
from app.models.client import Client
from app.models.document import Document, DocumentTemplate, DocumentVersion
from app.models.matter import Matter
from app.models.mixins import utcnow
from app.models.user import User
from app.schemas.document import (
    DocumentRead,
    GeneratedDocument,
    TemplateCreate,
    TemplateGenerate,
)
from app.services.audit_service import record_audit

# Logger per questo modulo
logger = logging.getLogger(__name__)

PLACEHOLDER_RE = re.compile(r"\{\{\s*([\w.\-]+)\s*\}\}")
SAFE_NAME_RE = re.compile(r"[^a-zA-Z0-9\-_. ]")


# ------------------------------------------------------------
# Rendering modelli
# ------------------------------------------------------------
def resolve_path(context: dict[str, Any], path: str) -> Any:
    """Segue un percorso puntato (es. client.name) dentro dizionari annidati."""
    value: Any = context
    for key in path.split("."):
        if not isinstance(value, dict):
            return None
        value = value.get(key)
    return value


def render_template_content(
    content: str,
    context: dict[str, Any],
    overrides: Optional[dict[str, Any]] = None,
    today: Optional[date] = None,
) -> str:
    """
    Sostituisce i segnaposto {{ chiave }} del modello.

    Ordine di risoluzione: variabili esplicite, poi `today` (gg/mm/aaaa),
    poi il percorso puntato nel contesto. Chiavi assenti diventano "".
    """
    overrides = overrides or {}
    today = today or date.today()

    def replace(match: re.Match) -> str:
        key = match.group(1)
        if overrides.get(key) is not None:
            return str(overrides[key])
        if key == "today":
            return today.strftime("%d/%m/%Y")
        value = resolve_path(context, key)
        return "" if value is None else str(value)

    return PLACEHOLDER_RE.sub(replace, content)


def client_context(client: Optional[Client]) -> Optional[dict[str, Any]]:
    if client is None:
        return None
    return {
        "id": str(client.id),
        "name": client.name,
        "email": client.email,
        "tax_id": client.tax_id,
        "phone": client.phone,
        "city": client.city,
        "state": client.state,
    }


def matter_context(matter: Optional[Matter]) -> Optional[dict[str, Any]]:
    if matter is None:
        return None
    return {
        "id": str(matter.id),
        "title": matter.title,
        "process_number": matter.process_number,
        "court": matter.court,
        "practice_area": matter.practice_area,
        "status": matter.status,
        "client": client_context(matter.client),
    }


# ------------------------------------------------------------
# Storage
# ------------------------------------------------------------
def _write_file(path: Path, content: bytes) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(content)


def _remove_file(path: Path) -> None:
    path.unlink(missing_ok=True)


async def store_file(content: bytes, extension: str) -> str:
    """
    Salva il contenuto e restituisce il percorso pubblico
    /uploads/YYYY/MM/<uuid>.<ext>.
    """
    now = utcnow()
    relative = f"{settings.uploads_dir}/{now.year}/{now.month:02d}/{uuid.uuid4()}.{extension}"
    await run_in_threadpool(_write_file, Path(settings.storage_root) / relative, content)
    return f"/{relative}"


def public_path_to_file(storage_path: str) -> Path:
    return Path(settings.storage_root) / storage_path.lstrip("/")


def file_extension(filename: Optional[str]) -> str:
    if filename and "." in filename:
        ext = filename.rsplit(".", 1)[1].lower()
        if ext.isalnum():
            return ext
    return "bin"


class DocumentService:
    """Service per documenti, versioni e modelli."""

    def _check_size(self, content: bytes) -> None:
        if not content:
            raise BusinessValidationError("Nessun file inviato")
        if len(content) > settings.max_upload_size_mb * 1024 * 1024:
            raise BusinessValidationError(
                f"Il file supera la dimensione massima di {settings.max_upload_size_mb} MB"
            )

    async def _check_links(
        self,
        db: AsyncSession,
        tenant_id: uuid.UUID,
        matter_id: Optional[uuid.UUID],
        client_id: Optional[uuid.UUID],
    ) -> None:
        if matter_id is not None:
            matter = await db.get(Matter, matter_id)
            if matter is None or matter.tenant_id != tenant_id:
                raise NotFoundError(f"Pratica {matter_id} non trovata")
        if client_id is not None:
            client = await db.get(Client, client_id)
            if client is None or client.tenant_id != tenant_id:
                raise NotFoundError(f"Cliente {client_id} non trovato")

    # ------------------------------------------------------------
    # Documenti
    # ------------------------------------------------------------
    async def get_all(
        self,
        db: AsyncSession,
        tenant_id: uuid.UUID,
        matter_id: Optional[uuid.UUID] = None,
        client_id: Optional[uuid.UUID] = None,
        exclude_matters: bool = False,
    ) -> list[Document]:
        """
        Documenti dello studio, più recenti prima.

        exclude_matters=True restituisce solo i documenti non collegati
        a una pratica (utile nella scheda cliente).
        """
        stmt = select(Document).where(Document.tenant_id == tenant_id)
        if matter_id:
            stmt = stmt.where(Document.matter_id == matter_id)
        if client_id:
            stmt = stmt.where(Document.client_id == client_id)
        if exclude_matters:
            stmt = stmt.where(Document.matter_id.is_(None))

        result = await db.execute(stmt.order_by(Document.created_at.desc()))
        return list(result.scalars().all())

    async def get_by_id(self, db: AsyncSession, tenant_id: uuid.UUID, document_id: uuid.UUID) -> Document:
        result = await db.execute(
            select(Document)
            .where(Document.id == document_id, Document.tenant_id == tenant_id)
            .execution_options(populate_existing=True)
        )
        document = result.scalar_one_or_none()
        if document is None:
            raise NotFoundError(f"Documento {document_id} non trovato")
        return document

    async def upload(
        self,
        db: AsyncSession,
        user: User,
        filename: Optional[str],
        content: bytes,
        mime_type: Optional[str],
        matter_id: Optional[uuid.UUID] = None,
        client_id: Optional[uuid.UUID] = None,
        description: Optional[str] = None,
    ) -> Document:
        """
        Salva un nuovo documento (versione 1) con la riga di versione e l'audit.

        Raises:
            BusinessValidationError: File assente o troppo grande
            NotFoundError: Pratica o cliente non appartengono allo studio
        """
        self._check_size(content)
        await self._check_links(db, user.tenant_id, matter_id, client_id)

        storage_path = await store_file(content, file_extension(filename))

        document = Document(
            tenant_id=user.tenant_id,
            matter_id=matter_id,
            client_id=client_id,
            name=filename or "documento",
            description=description,
            storage_path=storage_path,
            file_size=len(content),
            mime_type=mime_type or "application/octet-stream",
            version=1,
            uploaded_by_id=user.id,
        )
        db.add(document)
        await db.flush()

        db.add(
            DocumentVersion(
                document_id=document.id,
                version=1,
                storage_path=storage_path,
                file_size=len(content),
                uploaded_by_id=user.id,
                changes_description="Versione iniziale (upload)",
            )
        )
        record_audit(
            db,
            tenant_id=user.tenant_id,
            user_id=user.id,
            action="upload",
            entity_type="document",
            entity_id=document.id,
            new_data={"name": document.name, "storage_path": storage_path},
        )
        await db.commit()

        logger.info("Caricato documento %s (%d byte) in %s", document.name, len(content), storage_path)
        return await self.get_by_id(db, user.tenant_id, document.id)

    async def delete(self, db: AsyncSession, user: User, document_id: uuid.UUID) -> None:
        """Elimina documento e versioni; i file vengono rimossi dopo il commit."""
        document = await self.get_by_id(db, user.tenant_id, document_id)
        versions = await self.list_versions(db, user.tenant_id, document_id)
        paths = {document.storage_path, *(v.storage_path for v in versions)}

        record_audit(
            db,
            tenant_id=user.tenant_id,
            user_id=user.id,
            action="delete",
            entity_type="document",
            entity_id=document.id,
            old_data={"name": document.name, "version": document.version},
        )
        await db.execute(delete(DocumentVersion).where(DocumentVersion.document_id == document.id))
        await db.delete(document)
        await db.commit()

        for path in paths:
            try:
                await run_in_threadpool(_remove_file, public_path_to_file(path))
            except OSError as e:
                logger.warning("Impossibile rimuovere il file %s: %s", path, e)

    # ------------------------------------------------------------
    # Versioni
    # ------------------------------------------------------------
    async def list_versions(
        self,
        db: AsyncSession,
        tenant_id: uuid.UUID,
        document_id: uuid.UUID,
    ) -> list[DocumentVersion]:
        await self.get_by_id(db, tenant_id, document_id)
        result = await db.execute(
            select(DocumentVersion)
            .where(DocumentVersion.document_id == document_id)
            .order_by(DocumentVersion.version.desc())
        )
        return list(result.scalars().all())

    async def add_version(
        self,
        db: AsyncSession,
        user: User,
        document_id: uuid.UUID,
        filename: Optional[str],
        content: bytes,
        mime_type: Optional[str],
        changes_description: Optional[str] = None,
    ) -> DocumentVersion:
        """Carica una nuova versione: incrementa il numero e aggiorna il documento."""
        self._check_size(content)
        document = await self.get_by_id(db, user.tenant_id, document_id)

        storage_path = await store_file(content, file_extension(filename))
        document.version += 1
        document.storage_path = storage_path
        document.file_size = len(content)
        if mime_type:
            document.mime_type = mime_type

        version = DocumentVersion(
            document_id=document.id,
            version=document.version,
            storage_path=storage_path,
            file_size=len(content),
            uploaded_by_id=user.id,
            changes_description=changes_description,
        )
        db.add(version)
        record_audit(
            db,
            tenant_id=user.tenant_id,
            user_id=user.id,
            action="version",
            entity_type="document",
            entity_id=document.id,
            new_data={"version": document.version, "storage_path": storage_path},
        )
        await db.commit()
        return version

    # ------------------------------------------------------------
    # Modelli
    # ------------------------------------------------------------
    async def list_templates(self, db: AsyncSession, tenant_id: uuid.UUID) -> list[DocumentTemplate]:
        result = await db.execute(
            select(DocumentTemplate)
            .where(DocumentTemplate.tenant_id == tenant_id)
            .order_by(DocumentTemplate.name)
        )
        return list(result.scalars().all())

    async def create_template(self, db: AsyncSession, user: User, data: TemplateCreate) -> DocumentTemplate:
        template = DocumentTemplate(
            tenant_id=user.tenant_id,
            created_by_id=user.id,
            **data.model_dump(),
        )
        db.add(template)
        await db.commit()
        return template

    async def generate(
        self,
        db: AsyncSession,
        user: User,
        template_id: uuid.UUID,
        data: TemplateGenerate,
    ) -> GeneratedDocument:
        """
        Genera un documento di testo da un modello.

        Il contesto contiene `matter`, `client` (quello della pratica se
        indicata) e `user`; le variabili esplicite hanno la precedenza.
        """
        result = await db.execute(
            select(DocumentTemplate).where(
                DocumentTemplate.id == template_id,
                DocumentTemplate.tenant_id == user.tenant_id,
            )
        )
        template = result.scalar_one_or_none()
        if template is None:
            raise NotFoundError(f"Modello {template_id} non trovato")

        matter: Optional[Matter] = None
        client: Optional[Client] = None
        if data.matter_id:
            result = await db.execute(
                select(Matter)
                .where(Matter.id == data.matter_id, Matter.tenant_id == user.tenant_id)
                .options(selectinload(Matter.client))
                .execution_options(populate_existing=True)
            )
            matter = result.scalar_one_or_none()
            if matter is None:
                raise NotFoundError(f"Pratica {data.matter_id} non trovata")
            client = matter.client
        elif data.client_id:
            client = await db.get(Client, data.client_id)
            if client is None or client.tenant_id != user.tenant_id:
                raise NotFoundError(f"Cliente {data.client_id} non trovato")

        context = {
            "matter": matter_context(matter),
            "client": client_context(client),
            "user": {"name": user.full_name, "email": user.email},
        }
        rendered = render_template_content(template.content, context, data.variables)
        payload = rendered.encode("utf-8")

        now = utcnow()
        safe_name = SAFE_NAME_RE.sub("", template.name)
        subject = (client.name if client else None) or (matter.title if matter else None) or "Documento"
        name = data.name or f"{safe_name} - {subject} - {now.year}{now.month:02d}"

        storage_path = await store_file(payload, "txt")
        document = Document(
            tenant_id=user.tenant_id,
            matter_id=matter.id if matter else None,
            client_id=client.id if client else None,
            name=name,
            description=template.description,
            document_type="template",
            storage_path=storage_path,
            file_size=len(payload),
            mime_type="text/plain",
            version=1,
            uploaded_by_id=user.id,
        )
        db.add(document)
        await db.flush()

        db.add(
            DocumentVersion(
                document_id=document.id,
                version=1,
                storage_path=storage_path,
                file_size=len(payload),
                uploaded_by_id=user.id,
                changes_description="Versione iniziale generata da modello",
            )
        )
        record_audit(
            db,
            tenant_id=user.tenant_id,
            user_id=user.id,
            action="create",
            entity_type="document",
            entity_id=document.id,
            new_data={
                "template_id": str(template.id),
                "matter_id": str(matter.id) if matter else None,
                "client_id": str(client.id) if client else None,
            },
        )
        await db.commit()

        logger.info("Generato documento '%s' dal modello %s", name, template.name)
        document = await self.get_by_id(db, user.tenant_id, document.id)
        return GeneratedDocument(document=DocumentRead.model_validate(document), content=rendered)


document_service = DocumentService()
