"""
Router FastAPI per gli avvisi
Progetto: Gestionale Studio Legale
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core import rbac
from app.core.database import get_db
from app.core.deps import require_permission
from app.models.user import User
from app.schemas.alert import AlertEmailResult, AlertList
from app.services.alert_service import alert_service

router = APIRouter(
    prefix="/alerts",
    tags=["Avvisi"],
)


@router.get(
    "",
    name="avvisi_lista",
    summary="Avvisi di scadenze e udienze",
    response_model=AlertList,
)
async def get_alerts(
    current_user: User = Depends(require_permission(rbac.ALERTS_VIEW)),
    db: AsyncSession = Depends(get_db),
) -> AlertList:
    """
    Scadenze non completate (in arrivo o già scadute) e udienze
    programmate entro i giorni di preavviso dello studio.
    """
    return await alert_service.get_alerts(db, current_user.tenant_id)


@router.post(
    "/send-email",
    name="avvisi_invia_email",
    summary="Invia riepilogo avvisi via email",
    response_model=AlertEmailResult,
)
async def send_alerts_email(
    current_user: User = Depends(require_permission(rbac.ALERTS_SEND_EMAIL)),
    db: AsyncSession = Depends(get_db),
) -> AlertEmailResult:
    return await alert_service.send_email_digest(db, current_user.tenant_id)
