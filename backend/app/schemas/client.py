"""
Schemas Pydantic per il CRM
Progetto: Gestionale Studio Legale

Contiene:
- Normalizzatori condivisi (telefono, CPF/CNPJ)
- Schemas per Client (creazione, aggiornamento, lettura, lista paginata)
- Schemas per Contact e Interaction
"""

import re
import uuid
from datetime import datetime
from typing import Any, Optional

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    EmailStr,
    Field,
    computed_field,
    field_validator,
)

from app.models.client import ClientStatus, ClientType, InteractionType, LeadStage


# -------------------------------------------------------------------
# Normalizzatori
# -------------------------------------------------------------------

def normalize_phone(phone: Optional[str]) -> Optional[str]:
    """
    Normalizza il numero di telefono.

    Rimuove spazi, trattini e parentesi; accetta solo + iniziale e cifre.

    Raises:
        ValueError: Se il formato non è valido
    """
    if phone is None:
        return None
    normalized = re.sub(r"[\s\-()]", "", phone.strip())
    if not normalized:
        return None
    if not re.match(r"^\+?\d{8,15}$", normalized):
        raise ValueError("Numero di telefono non valido")
    return normalized


def normalize_tax_id(tax_id: Optional[str]) -> Optional[str]:
    """
    Normalizza CPF (11 cifre) o CNPJ (14 cifre) rimuovendo la punteggiatura.

    Raises:
        ValueError: Se dopo la pulizia non restano 11 o 14 cifre
    """
    if tax_id is None:
        return None
    digits = re.sub(r"[.\-/\s]", "", tax_id.strip())
    if not digits:
        return None
    if not digits.isdigit() or len(digits) not in (11, 14):
        raise ValueError("CPF/CNPJ non valido: attese 11 o 14 cifre")
    return digits


class _ClientValidators(BaseModel):
    """Validatori condivisi tra creazione e aggiornamento cliente."""

    @field_validator("phone", check_fields=False)
    @classmethod
    def check_phone(cls, v: Optional[str]) -> Optional[str]:
        return normalize_phone(v)

    @field_validator("tax_id", check_fields=False)
    @classmethod
    def check_tax_id(cls, v: Optional[str]) -> Optional[str]:
        return normalize_tax_id(v)

    @field_validator("state", check_fields=False)
    @classmethod
    def upper_state(cls, v: Optional[str]) -> Optional[str]:
        return v.strip().upper() if v else v

    @field_validator("tags", check_fields=False)
    @classmethod
    def clean_tags(cls, v: Optional[list[str]]) -> Optional[list[str]]:
        if v is None:
            return v
        seen: list[str] = []
        for tag in v:
            tag = tag.strip()
            if tag and tag not in seen:
                seen.append(tag)
        return seen


# -------------------------------------------------------------------
# Schemas per Client
# -------------------------------------------------------------------

class ClientBase(_ClientValidators):
    """
    Schema base per i dati del cliente.

    Configurazione:
    - from_attributes=True: supporta conversione ORM → Pydantic
    - use_enum_values=True: l'ORM riceve stringhe invece di oggetti Enum
    """

    model_config = ConfigDict(from_attributes=True, use_enum_values=True)

    client_type: ClientType = Field(
        ClientType.PF,
        description="Tipo cliente: pf (persona fisica), pj (persona giuridica)",
    )
    name: str = Field(..., min_length=3, max_length=200, description="Nome o ragione sociale")
    tax_id: Optional[str] = Field(None, description="CPF/CNPJ")
    email: Optional[EmailStr] = Field(None, description="Email")
    phone: Optional[str] = Field(None, description="Telefono")
    street: Optional[str] = Field(None, max_length=200)
    number: Optional[str] = Field(None, max_length=20)
    complement: Optional[str] = Field(None, max_length=100)
    neighborhood: Optional[str] = Field(None, max_length=100)
    city: Optional[str] = Field(None, max_length=100)
    state: Optional[str] = Field(None, max_length=2)
    zip_code: Optional[str] = Field(None, max_length=10)
    responsible_lawyer_id: Optional[uuid.UUID] = Field(None, description="Avvocato responsabile")
    status: ClientStatus = Field(ClientStatus.ACTIVE, description="Stato cliente")
    lead_stage: LeadStage = Field(LeadStage.NEW, description="Fase pipeline commerciale")
    tags: list[str] = Field(default_factory=list, description="Etichette")


class ClientCreate(ClientBase):
    """Schema per la creazione di un cliente o lead."""
    pass


class ClientUpdate(_ClientValidators):
    """Aggiornamento parziale di un cliente: solo i campi presenti vengono modificati."""

    model_config = ConfigDict(use_enum_values=True)

    client_type: Optional[ClientType] = None
    name: Optional[str] = Field(None, min_length=3, max_length=200)
    tax_id: Optional[str] = None
    email: Optional[EmailStr] = None
    phone: Optional[str] = None
    street: Optional[str] = Field(None, max_length=200)
    number: Optional[str] = Field(None, max_length=20)
    complement: Optional[str] = Field(None, max_length=100)
    neighborhood: Optional[str] = Field(None, max_length=100)
    city: Optional[str] = Field(None, max_length=100)
    state: Optional[str] = Field(None, max_length=2)
    zip_code: Optional[str] = Field(None, max_length=10)
    responsible_lawyer_id: Optional[uuid.UUID] = None
    status: Optional[ClientStatus] = None
    lead_stage: Optional[LeadStage] = None
    tags: Optional[list[str]] = None


class ClientRead(ClientBase):
    """Schema per la lettura di un cliente."""

    id: uuid.UUID
    tenant_id: uuid.UUID
    email: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class ClientSummary(BaseModel):
    """Riferimento compatto a un cliente (usato in fatture, pratiche, ore)."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    name: str
    email: Optional[str] = None
    tax_id: Optional[str] = None


class ClientList(BaseModel):
    """Lista paginata dei clienti."""

    items: list[ClientRead] = Field(default_factory=list, description="Lista dei clienti")
    total: int = Field(..., ge=0, description="Numero totale di clienti")
    page: int = Field(..., ge=1, description="Numero pagina corrente")
    per_page: int = Field(..., ge=1, description="Numero elementi per pagina")

    @computed_field
    def total_pages(self) -> int:
        """Numero totale di pagine: ceil(total / per_page)."""
        if self.per_page > 0:
            return (self.total + self.per_page - 1) // self.per_page
        return 0


# -------------------------------------------------------------------
# Schemas per Contact
# -------------------------------------------------------------------

class ContactCreate(BaseModel):
    """Nuovo referente; is_primary=True declassa gli altri referenti primari."""

    name: str = Field(..., min_length=2, max_length=200)
    role: Optional[str] = Field(None, max_length=100)
    email: Optional[EmailStr] = None
    phone: Optional[str] = None
    is_primary: bool = False

    @field_validator("phone")
    @classmethod
    def check_phone(cls, v: Optional[str]) -> Optional[str]:
        return normalize_phone(v)


class ContactRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    client_id: uuid.UUID
    name: str
    role: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    is_primary: bool
    created_at: datetime


# -------------------------------------------------------------------
# Schemas per Interaction
# -------------------------------------------------------------------

class InteractionCreate(BaseModel):
    model_config = ConfigDict(use_enum_values=True)

    interaction_type: InteractionType = Field(..., description="call, email, meeting, note")
    subject: str = Field(..., min_length=3, max_length=200)
    description: Optional[str] = None
    metadata: dict[str, Any] = Field(default_factory=dict)


class InteractionRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    client_id: uuid.UUID
    user_id: Optional[uuid.UUID] = None
    interaction_type: str
    subject: str
    description: Optional[str] = None
    metadata: dict[str, Any] = Field(
        default_factory=dict,
        validation_alias=AliasChoices("meta", "metadata"),
    )
    created_at: datetime


class ClientDetail(ClientRead):
    """Cliente con referenti e contatori."""

    contacts: list[ContactRead] = Field(default_factory=list)
    matters_count: int = 0
    open_invoices_count: int = 0
