"""
Schemas Pydantic per il progetto Gestionale Studio Legale

Questo modulo contiene tutti gli schemi Pydantic utilizzati per la validazione
dell'input e la serializzazione delle risposte API.
"""

# Import degli schemi per renderli disponibili tramite import diretto
# es: from app.schemas import ClientRead, InvoiceDetail, etc.

from app.schemas.token import TokenPayload, TokenRefresh, TokenResponse
from app.schemas.user import TenantRegistration, UserLogin, UserResponse, UserUpdate
from app.schemas.tenant import RolePermissions, TenantSettings
from app.schemas.client import ClientCreate, ClientRead, ClientUpdate
from app.schemas.matter import MatterCreate, MatterRead, MatterUpdate
from app.schemas.time_entry import TimeEntryCreate, TimeEntryRead
from app.schemas.invoice import (
    InvoiceCreate,
    InvoiceDetail,
    InvoiceRead,
    PaymentCreate,
    PaymentResult,
)
from app.schemas.finance import TransactionCreate, TransactionRead

__all__ = [
    "TokenPayload",
    "TokenRefresh",
    "TokenResponse",
    "TenantRegistration",
    "UserLogin",
    "UserResponse",
    "UserUpdate",
    "RolePermissions",
    "TenantSettings",
    "ClientCreate",
    "ClientRead",
    "ClientUpdate",
    "MatterCreate",
    "MatterRead",
    "MatterUpdate",
    "TimeEntryCreate",
    "TimeEntryRead",
    "InvoiceCreate",
    "InvoiceDetail",
    "InvoiceRead",
    "PaymentCreate",
    "PaymentResult",
    "TransactionCreate",
    "TransactionRead",
]
