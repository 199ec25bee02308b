"""
Router FastAPI per i documenti
Progetto: Gestionale Studio Legale

Upload multipart, versioni e modelli di documento con generazione
da segnaposto {{ chiave }}.
"""

import logging
import uuid
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core import rbac
from app.core.database import get_db
from app.core.deps import require_permission
from app.models.user import User
from app.schemas.document import (
    DocumentRead,
    DocumentVersionRead,
    GeneratedDocument,
    TemplateCreate,
    TemplateGenerate,
    TemplateRead,
)
from app.services.document_service import document_service

# Logger per questo modulo
logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/documents",
    tags=["Documenti"],
)

DocumentsViewer = require_permission(rbac.DOCUMENTS_VIEW)
DocumentsManager = require_permission(rbac.DOCUMENTS_MANAGE)
TemplatesViewer = require_permission(rbac.TEMPLATES_VIEW)
TemplatesManager = require_permission(rbac.TEMPLATES_MANAGE)


# -------------------------------------------------------------------
# Modelli (prima delle rotte /{document_id})
# -------------------------------------------------------------------

@router.get(
    "/templates",
    name="modelli_lista",
    summary="Lista modelli",
    response_model=list[TemplateRead],
)
async def get_templates(
    current_user: User = Depends(TemplatesViewer),
    db: AsyncSession = Depends(get_db),
) -> list[TemplateRead]:
    templates = await document_service.list_templates(db, current_user.tenant_id)
    return [TemplateRead.model_validate(t) for t in templates]


@router.post(
    "/templates",
    name="modello_crea",
    summary="Crea modello",
    response_model=TemplateRead,
    status_code=status.HTTP_201_CREATED,
)
async def create_template(
    template_data: TemplateCreate,
    current_user: User = Depends(TemplatesManager),
    db: AsyncSession = Depends(get_db),
) -> TemplateRead:
    template = await document_service.create_template(db, current_user, template_data)
    return TemplateRead.model_validate(template)


@router.post(
    "/templates/{template_id}/generate",
    name="modello_genera",
    summary="Genera documento da modello",
    response_model=GeneratedDocument,
    status_code=status.HTTP_201_CREATED,
)
async def generate_from_template(
    template_id: uuid.UUID,
    generate_data: TemplateGenerate,
    current_user: User = Depends(TemplatesManager),
    db: AsyncSession = Depends(get_db),
) -> GeneratedDocument:
    """
    Sostituisce i segnaposto con i dati di pratica, cliente e utente
    e salva il risultato come documento di testo.

    Segnaposto supportati: percorsi puntati (es. {{ client.name }}),
    {{ today }} e le variabili esplicite, che hanno la precedenza.
    """
    return await document_service.generate(db, current_user, template_id, generate_data)


# -------------------------------------------------------------------
# Documenti
# -------------------------------------------------------------------

@router.get(
    "",
    name="documenti_lista",
    summary="Lista documenti",
    response_model=list[DocumentRead],
)
async def get_documents(
    matter_id: Optional[uuid.UUID] = Query(None, description="Filtro per pratica"),
    client_id: Optional[uuid.UUID] = Query(None, description="Filtro per cliente"),
    exclude_matters: bool = Query(False, description="Solo documenti non collegati a pratiche"),
    current_user: User = Depends(DocumentsViewer),
    db: AsyncSession = Depends(get_db),
) -> list[DocumentRead]:
    documents = await document_service.get_all(
        db,
        current_user.tenant_id,
        matter_id=matter_id,
        client_id=client_id,
        exclude_matters=exclude_matters,
    )
    return [DocumentRead.model_validate(d) for d in documents]


@router.post(
    "",
    name="documento_carica",
    summary="Carica documento",
    response_model=DocumentRead,
    status_code=status.HTTP_201_CREATED,
)
async def upload_document(
    file: Optional[UploadFile] = File(None, description="File da caricare"),
    matter_id: Optional[uuid.UUID] = Form(None),
    client_id: Optional[uuid.UUID] = Form(None),
    description: Optional[str] = Form(None),
    current_user: User = Depends(DocumentsManager),
    db: AsyncSession = Depends(get_db),
) -> DocumentRead:
    """
    Salva il file in uploads/YYYY/MM e crea il documento alla versione 1.

    Raises:
        BusinessValidationError: Nessun file inviato o file troppo grande
    """
    content = await file.read() if file is not None else b""
    document = await document_service.upload(
        db,
        current_user,
        filename=file.filename if file is not None else None,
        content=content,
        mime_type=file.content_type if file is not None else None,
        matter_id=matter_id,
        client_id=client_id,
        description=description,
    )
    return DocumentRead.model_validate(document)


@router.delete(
    "/{document_id}",
    name="documento_elimina",
    summary="Elimina documento",
    description="Elimina il documento con tutte le versioni e i file.",
    status_code=status.HTTP_204_NO_CONTENT,
)
async def delete_document(
    document_id: uuid.UUID,
    current_user: User = Depends(DocumentsManager),
    db: AsyncSession = Depends(get_db),
) -> None:
    await document_service.delete(db, current_user, document_id)


@router.get(
    "/{document_id}/versions",
    name="versioni_lista",
    summary="Versioni del documento",
    response_model=list[DocumentVersionRead],
)
async def get_versions(
    document_id: uuid.UUID,
    current_user: User = Depends(DocumentsViewer),
    db: AsyncSession = Depends(get_db),
) -> list[DocumentVersionRead]:
    versions = await document_service.list_versions(db, current_user.tenant_id, document_id)
    return [DocumentVersionRead.model_validate(v) for v in versions]


@router.post(
    "/{document_id}/versions",
    name="versione_carica",
    summary="Carica nuova versione",
    response_model=DocumentVersionRead,
    status_code=status.HTTP_201_CREATED,
)
async def upload_version(
    document_id: uuid.UUID,
    file: Optional[UploadFile] = File(None, description="Nuova versione del file"),
    changes_description: Optional[str] = Form(None),
    current_user: User = Depends(DocumentsManager),
    db: AsyncSession = Depends(get_db),
) -> DocumentVersionRead:
    content = await file.read() if file is not None else b""
    version = await document_service.add_version(
        db,
        current_user,
        document_id,
        filename=file.filename if file is not None else None,
        content=content,
        mime_type=file.content_type if file is not None else None,
        changes_description=changes_description,
    )
    return DocumentVersionRead.model_validate(version)
