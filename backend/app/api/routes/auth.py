"""
Router per l'autenticazione
Progetto: Gestionale Studio Legale

Endpoints per registrazione studio, login, refresh token, logout e profilo.
Il login imposta anche un cookie HttpOnly con l'access token, così i
client browser possono autenticarsi senza header Authorization.
"""

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core import rbac
from app.core.config import settings
from app.core.database import get_db
from app.core.deps import get_current_user
from app.models.user import User
from app.schemas.token import TokenRefresh, TokenResponse
from app.schemas.user import TenantRegistration, UserLogin, UserResponse, UserWithPermissions
from app.services.auth_service import AuthService, get_auth_service

router = APIRouter(
    prefix="/auth",
    tags=["Authentication"],
)


async def get_service() -> AuthService:
    """Dependency per ottenere il servizio di autenticazione."""
    return get_auth_service()


def _set_session_cookie(response: Response, access_token: str) -> None:
    response.set_cookie(
        key=settings.session_cookie_name,
        value=access_token,
        max_age=settings.access_token_expire_minutes * 60,
        httponly=True,
        secure=settings.session_cookie_secure,
        samesite="lax",
        path="/",
    )


@router.post(
    "/register",
    response_model=UserResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Registra un nuovo studio",
)
async def register(
    data: TenantRegistration,
    db: AsyncSession = Depends(get_db),
    service: AuthService = Depends(get_service),
):
    """
    Crea un nuovo studio (tenant) con il suo primo utente.

    Il primo utente è sempre admin; gli altri utenti dello studio
    vengono aggiunti tramite invito da /api/settings/users/invite.
    """
    return await service.register(db, data)


@router.post(
    "/login",
    response_model=TokenResponse,
    summary="Effettua il login",
)
async def login(
    data: UserLogin,
    response: Response,
    db: AsyncSession = Depends(get_db),
    service: AuthService = Depends(get_service),
):
    """
    Effettua il login e restituisce i token JWT.

    Returns:
        TokenResponse con access_token e refresh_token
    """
    tokens = await service.login(db, data)
    _set_session_cookie(response, tokens.access_token)
    return tokens


@router.post(
    "/refresh",
    response_model=TokenResponse,
    summary="Aggiorna i token",
)
async def refresh(
    data: TokenRefresh,
    response: Response,
    db: AsyncSession = Depends(get_db),
    service: AuthService = Depends(get_service),
):
    """Aggiorna i token JWT usando un refresh token."""
    tokens = await service.refresh(db, data.refresh_token)
    _set_session_cookie(response, tokens.access_token)
    return tokens


@router.post(
    "/logout",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Chiude la sessione",
)
async def logout() -> Response:
    response = Response(status_code=status.HTTP_204_NO_CONTENT)
    response.delete_cookie(settings.session_cookie_name, path="/")
    return response


@router.get(
    "/me",
    response_model=UserWithPermissions,
    summary="Ottieni il profilo utente corrente",
)
async def get_me(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """
    Restituisce i dati dell'utente corrente con i permessi effettivi
    (tabella statica più eventuale override dello studio).
    """
    permissions = await rbac.effective_permissions(db, current_user)
    return UserWithPermissions(
        **UserResponse.model_validate(current_user).model_dump(),
        permissions=permissions,
    )


# Export
__all__ = ["router"]
