"""
Schemas Pydantic per documenti e modelli di documento
Progetto: Gestionale Studio Legale
"""

import uuid
from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

from app.schemas.client import ClientSummary
from app.schemas.matter import MatterSummary


class DocumentVersionRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    document_id: uuid.UUID
    version: int
    storage_path: str
    file_size: int
    uploaded_by_id: Optional[uuid.UUID] = None
    changes_description: Optional[str] = None
    created_at: datetime


class DocumentRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    tenant_id: uuid.UUID
    matter_id: Optional[uuid.UUID] = None
    client_id: Optional[uuid.UUID] = None
    name: str
    description: Optional[str] = None
    document_type: str
    storage_path: str
    file_size: int
    mime_type: str
    version: int
    uploaded_by_id: Optional[uuid.UUID] = None
    matter: Optional[MatterSummary] = None
    client: Optional[ClientSummary] = None
    created_at: datetime
    updated_at: datetime


class TemplateCreate(BaseModel):
    name: str = Field(..., min_length=2, max_length=200)
    description: Optional[str] = None
    category: Optional[str] = Field(None, max_length=50)
    content: str = Field(..., min_length=1, description="Testo con segnaposto {{ chiave }}")
    variables: list[Any] = Field(default_factory=list)


class TemplateRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    name: str
    description: Optional[str] = None
    category: Optional[str] = None
    content: str
    variables: list[Any] = Field(default_factory=list)
    created_at: datetime


class TemplateGenerate(BaseModel):
    """
    Generazione di un documento da modello.

    variables ha la precedenza su qualunque valore ricavato da
    pratica, cliente o utente.
    """

    matter_id: Optional[uuid.UUID] = None
    client_id: Optional[uuid.UUID] = None
    name: Optional[str] = Field(None, max_length=255, description="Nome del documento generato")
    variables: dict[str, Any] = Field(default_factory=dict)


class GeneratedDocument(BaseModel):
    document: DocumentRead
    content: str
