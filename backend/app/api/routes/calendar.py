"""
Router FastAPI per il calendario
Progetto: Gestionale Studio Legale

Eventi (scadenze e udienze) e feed ICS. Il feed accetta la sessione
oppure i parametri tid + token, per l'abbonamento da client esterni.
"""

import logging
import uuid
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.ext.asyncio import AsyncSession

from app.core import rbac
from app.core.database import get_db
from app.core.deps import get_optional_user, require_permission
from app.core.exceptions import AuthenticationError
from app.models.user import User
from app.schemas.alert import CalendarEvent
from app.services.calendar_service import calendar_service
from app.services.tenant_service import tenant_service

# Logger per questo modulo
logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/calendar",
    tags=["Calendario"],
)


@router.get(
    "/events",
    name="calendario_eventi",
    summary="Eventi nell'intervallo",
    response_model=list[CalendarEvent],
)
async def get_events(
    start: Optional[datetime] = Query(None, description="Inizio intervallo (ISO 8601)"),
    end: Optional[datetime] = Query(None, description="Fine intervallo (ISO 8601)"),
    current_user: User = Depends(require_permission(rbac.CALENDAR_VIEW)),
    db: AsyncSession = Depends(get_db),
) -> list[CalendarEvent]:
    return await calendar_service.list_events(db, current_user.tenant_id, start, end)


@router.get(
    "/ics",
    name="calendario_ics",
    summary="Feed ICS",
    response_class=Response,
)
async def get_ics(
    tid: Optional[uuid.UUID] = Query(None, description="UUID dello studio"),
    token: Optional[str] = Query(None, description="Token calendario dello studio"),
    current_user: Optional[User] = Depends(get_optional_user),
    db: AsyncSession = Depends(get_db),
) -> Response:
    """
    Calendario iCalendar da -30 a +180 giorni.

    Raises:
        AuthenticationError: Né sessione né coppia tid/token valida
    """
    if current_user is not None:
        tenant_id = current_user.tenant_id
    elif tid is not None and token and await tenant_service.verify_calendar_token(db, tid, token):
        tenant_id = tid
    else:
        raise AuthenticationError("Sessione o token calendario non valido")

    body = await calendar_service.export_ics(db, tenant_id)
    return Response(
        content=body,
        media_type="text/calendar; charset=utf-8",
        headers={"Content-Disposition": 'inline; filename="calendar.ics"'},
    )
