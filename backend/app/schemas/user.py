"""
Schemas Pydantic per l'entità User
Progetto: Gestionale Studio Legale

Schemas per registrazione studio, login, invito e gestione utenti.
"""

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from app.models.user import UserRole


class TenantRegistration(BaseModel):
    """
    Registrazione di un nuovo studio con il suo primo utente (admin).

    Attributes:
        tenant_name: Ragione sociale dello studio
        email: Email dell'amministratore (univoca)
        password: Password in chiaro (min 8, max 72 caratteri)
        full_name: Nome completo dell'amministratore
    """

    tenant_name: str = Field(..., min_length=2, max_length=200, description="Nome dello studio")
    email: EmailStr = Field(..., description="Email univoca dell'utente")
    password: str = Field(
        min_length=8,
        max_length=72,
        description="Password in chiaro (min 8 caratteri)",
    )
    full_name: str = Field(
        min_length=1,
        max_length=100,
        description="Nome completo dell'utente",
    )


class UserLogin(BaseModel):
    """Schema per il login utente."""

    email: EmailStr = Field(..., description="Email dell'utente")
    password: str = Field(..., description="Password in chiaro")


class UserInvite(BaseModel):
    """Invito di un nuovo utente nello studio corrente."""

    email: EmailStr = Field(..., description="Email dell'utente invitato")
    role: UserRole = Field(..., description="Ruolo assegnato")
    full_name: Optional[str] = Field(None, max_length=100, description="Nome completo")


class UserUpdate(BaseModel):
    """
    Schema per l'aggiornamento di un utente.

    Tutti i campi sono opzionali per permettere aggiornamenti parziali.
    """

    full_name: Optional[str] = Field(
        None,
        min_length=1,
        max_length=100,
        description="Nome completo dell'utente",
    )
    role: Optional[UserRole] = Field(
        None,
        description="Ruolo dell'utente",
    )
    is_active: Optional[bool] = Field(
        None,
        description="Indica se l'utente è attivo",
    )


class UserResponse(BaseModel):
    """Dati utente esposti dalle API."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID = Field(..., description="UUID dell'utente")
    tenant_id: UUID = Field(..., description="UUID dello studio")
    email: str = Field(..., description="Email dell'utente")
    full_name: str = Field(..., description="Nome completo dell'utente")
    role: UserRole = Field(..., description="Ruolo dell'utente")
    is_active: bool = Field(..., description="Indica se l'utente è attivo")
    created_at: datetime = Field(..., description="Data/ora di creazione")


class UserInviteResponse(BaseModel):
    """Utente invitato con la password temporanea da comunicare."""

    user: UserResponse
    temporary_password: str


class UserWithPermissions(UserResponse):
    """Profilo dell'utente corrente con i permessi effettivi."""

    permissions: list[str] = Field(default_factory=list)


__all__ = [
    "TenantRegistration",
    "UserLogin",
    "UserInvite",
    "UserUpdate",
    "UserResponse",
    "UserInviteResponse",
    "UserWithPermissions",
]
