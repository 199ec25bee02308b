"""
Dependency Injection per autenticazione
Progetto: Gestionale Studio Legale

Funzioni di dependency injection per autenticazione e autorizzazione.
Il token JWT può arrivare dall'header Authorization oppure dal cookie
di sessione impostato al login.
"""

from typing import Annotated, Optional
from uuid import UUID

from fastapi import Depends, Request
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core import rbac
from app.core.config import settings
from app.core.database import get_db
from app.core.exceptions import AuthenticationError, AuthorizationError
from app.core.security import decode_token
from app.models.user import User

# OAuth2 scheme - estrae il token dall'header Authorization
oauth2_scheme = OAuth2PasswordBearer(
    tokenUrl="/api/auth/login",
    auto_error=False,
)


async def _resolve_user(token: str, db: AsyncSession) -> User:
    token_data = decode_token(token)

    if token_data.type != "access":
        raise AuthenticationError("Token di refresh non valido per questa operazione")

    try:
        user_id = UUID(token_data.sub)
    except ValueError:
        raise AuthenticationError("ID utente invalido nel token")

    result = await db.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()

    if not user:
        raise AuthenticationError("Utente non trovato")

    if not user.is_active:
        raise AuthenticationError("Utente disattivato")

    return user


def _extract_token(request: Request, bearer: Optional[str]) -> Optional[str]:
    return bearer or request.cookies.get(settings.session_cookie_name)


async def get_current_user(
    request: Request,
    token: Optional[str] = Depends(oauth2_scheme),
    db: AsyncSession = Depends(get_db),
) -> User:
    """
    Dependency per ottenere l'utente corrente dal token JWT.

    Raises:
        AuthenticationError (401): token assente, invalido o scaduto,
            utente inesistente o disattivato
    """
    raw_token = _extract_token(request, token)
    if not raw_token:
        raise AuthenticationError("Token di autenticazione non fornito")
    return await _resolve_user(raw_token, db)


async def get_optional_user(
    request: Request,
    token: Optional[str] = Depends(oauth2_scheme),
    db: AsyncSession = Depends(get_db),
) -> Optional[User]:
    """Come get_current_user, ma restituisce None senza sessione valida."""
    raw_token = _extract_token(request, token)
    if not raw_token:
        return None
    try:
        return await _resolve_user(raw_token, db)
    except AuthenticationError:
        return None


def require_permission(permission: str):
    """
    Factory per una dependency che verifica un permesso RBAC.

    Prima la tabella statica, poi l'eventuale override del ruolo
    per lo studio dell'utente.

    Example:
        @router.get("/transactions")
        async def list_transactions(
            user: User = Depends(require_permission("finance.view")),
        ):
            ...
    """
    async def permission_checker(
        current_user: Annotated[User, Depends(get_current_user)],
        db: AsyncSession = Depends(get_db),
    ) -> User:
        if rbac.can(current_user, permission):
            return current_user
        if await rbac.can_async(db, current_user, current_user.tenant_id, permission):
            return current_user
        raise AuthorizationError(f"Permesso richiesto: {permission}")

    return permission_checker


def require_role(*allowed_roles: str):
    """
    Factory function per creare una dependency che verifica il ruolo.

    Example:
        @router.get("/users")
        async def list_users(user: User = Depends(require_role("admin", "partner"))):
            ...
    """
    async def role_checker(
        current_user: Annotated[User, Depends(get_current_user)]
    ) -> User:
        if current_user.role not in allowed_roles:
            raise AuthorizationError(
                f"Accesso negato. Ruolo richiesto: {', '.join(allowed_roles)}"
            )
        return current_user

    return role_checker


# Type aliases per uso comune
CurrentUser = Annotated[User, Depends(get_current_user)]
AdminUser = Annotated[User, Depends(require_role("admin"))]
ManagerUser = Annotated[User, Depends(require_role("admin", "partner"))]


__all__ = [
    "get_current_user",
    "get_optional_user",
    "require_permission",
    "require_role",
    "oauth2_scheme",
    "CurrentUser",
    "AdminUser",
    "ManagerUser",
]
