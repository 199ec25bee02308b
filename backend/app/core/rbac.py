"""
Controllo accessi basato sui ruoli (RBAC)
Progetto: Gestionale Studio Legale

Tabella statica ruolo → permessi, con override opzionale per studio
tramite la tabella roles. Nessuna cache: l'override viene letto
a ogni controllo.
"""

import logging
import uuid
from typing import Optional

from pydantic import ValidationError
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.tenant import Role
from app.models.user import User
from app.schemas.tenant import RolePermissions

# Logger per questo modulo
logger = logging.getLogger(__name__)

ALL_PERMISSIONS = "*"

# ------------------------------------------------------------
# Permessi
# ------------------------------------------------------------
SETTINGS_VIEW = "settings.view"
SETTINGS_MANAGE_NOTIFICATIONS = "settings.manage.notifications"
ALERTS_VIEW = "alerts.view"
ALERTS_SEND_EMAIL = "alerts.send.email"
CALENDAR_VIEW = "calendar.view"
CASES_VIEW = "cases.view"
CASES_MANAGE = "cases.manage"
DOCUMENTS_VIEW = "documents.view"
DOCUMENTS_MANAGE = "documents.manage"
TEMPLATES_VIEW = "documents.templates.view"
TEMPLATES_MANAGE = "documents.templates.manage"
FINANCE_VIEW = "finance.view"
FINANCE_MANAGE = "finance.manage"

ROLE_PERMISSIONS: dict[str, list[str]] = {
    "admin": [ALL_PERMISSIONS],
    "partner": [
        SETTINGS_VIEW,
        SETTINGS_MANAGE_NOTIFICATIONS,
        ALERTS_VIEW,
        ALERTS_SEND_EMAIL,
        CALENDAR_VIEW,
        CASES_VIEW,
        CASES_MANAGE,
        DOCUMENTS_VIEW,
        DOCUMENTS_MANAGE,
        TEMPLATES_VIEW,
        TEMPLATES_MANAGE,
        FINANCE_VIEW,
        FINANCE_MANAGE,
    ],
    "lawyer": [ALERTS_VIEW, CALENDAR_VIEW, CASES_VIEW, DOCUMENTS_VIEW, FINANCE_VIEW],
    "financial": [CALENDAR_VIEW, FINANCE_VIEW, FINANCE_MANAGE],
    "secretary": [ALERTS_VIEW, ALERTS_SEND_EMAIL, CALENDAR_VIEW, CASES_VIEW, DOCUMENTS_VIEW],
    "intern": [CALENDAR_VIEW, CASES_VIEW, DOCUMENTS_VIEW],
    "client": [],
    "support": [],
}


def can(user: Optional[User], permission: str) -> bool:
    """
    Verifica sincrona sulla tabella statica.

    Args:
        user: Utente (None = nessuna sessione)
        permission: Permesso richiesto (es. "finance.view")

    Returns:
        True se il ruolo concede il permesso
    """
    if user is None:
        return False
    allowed = ROLE_PERMISSIONS.get(user.role, [])
    return ALL_PERMISSIONS in allowed or permission in allowed


async def get_role_override(
    db: AsyncSession,
    tenant_id: uuid.UUID,
    role_name: str,
) -> Optional[RolePermissions]:
    """
    Legge l'override dei permessi di un ruolo per lo studio.

    Returns:
        I permessi normalizzati, oppure None se non esiste una riga
        o se il contenuto non è interpretabile
    """
    result = await db.execute(
        select(Role.permissions).where(
            Role.tenant_id == tenant_id,
            Role.name == role_name,
        )
    )
    row = result.first()
    if row is None:
        return None
    try:
        return RolePermissions.model_validate(row[0])
    except ValidationError as e:
        logger.warning(
            "Permessi del ruolo '%s' (tenant %s) non interpretabili: %s",
            role_name,
            tenant_id,
            e,
        )
        return None


async def can_async(
    db: AsyncSession,
    user: Optional[User],
    tenant_id: uuid.UUID,
    permission: str,
) -> bool:
    """
    Verifica con override per studio.

    Se esiste un Role (tenant_id, user.role) i suoi permessi vengono
    consultati per primi; se non concedono il permesso, o la riga non
    esiste, si ricade sulla tabella statica.
    """
    if user is None:
        return False
    try:
        override = await get_role_override(db, tenant_id, user.role)
    except SQLAlchemyError as e:
        logger.error("Lettura override ruolo fallita, uso la tabella statica: %s", e)
        return can(user, permission)
    if override is not None and override.grants(permission):
        return True
    return can(user, permission)


async def effective_permissions(db: AsyncSession, user: User) -> list[str]:
    """Unione ordinata dei permessi statici e dell'override dello studio."""
    permissions = set(ROLE_PERMISSIONS.get(user.role, []))
    override = await get_role_override(db, user.tenant_id, user.role)
    if override is not None:
        permissions.update(override.allowed)
    return sorted(permissions)


__all__ = [
    "ROLE_PERMISSIONS",
    "can",
    "can_async",
    "get_role_override",
    "effective_permissions",
]
