"""
Modelli Database SQLAlchemy
Progetto: Gestionale Studio Legale

Import centralizzato di tutti i modelli per create_all e usage generico.

Modelli:
- Tenant, Role, User, AuditLog: studi, utenti e permessi
- Client, Contact, Interaction: CRM
- Matter, Task, Deadline, Hearing, Activity: pratiche
- Document, DocumentVersion, DocumentTemplate: documenti
- TimeEntry, Invoice, InvoiceItem, Payment, Transaction: ore, fatturazione e contabilità
"""

# SQLAlchemy 2.0 Base declarativa
# Importato qui per essere disponibile per tutti i modelli
from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """Base class per tutti i modelli SQLAlchemy."""
    pass


from app.models.tenant import Role, Tenant
from app.models.user import User
from app.models.audit_log import AuditLog
from app.models.client import Client, Contact, Interaction
from app.models.matter import Activity, Deadline, Hearing, Matter, Task
from app.models.document import Document, DocumentTemplate, DocumentVersion
from app.models.time_entry import TimeEntry
from app.models.invoice import Invoice, InvoiceItem, Payment
from app.models.transaction import Transaction

__all__ = [
    "Base",
    "Tenant",
    "Role",
    "User",
    "AuditLog",
    "Client",
    "Contact",
    "Interaction",
    "Matter",
    "Task",
    "Deadline",
    "Hearing",
    "Activity",
    "Document",
    "DocumentVersion",
    "DocumentTemplate",
    "TimeEntry",
    "Invoice",
    "InvoiceItem",
    "Payment",
    "Transaction",
]
