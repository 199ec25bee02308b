"""
Router FastAPI per le pratiche
Progetto: Gestionale Studio Legale

Definisce gli endpoint API per pratiche (cases) e relativi task,
scadenze, udienze e attività. Lettura con cases.view, scrittura con
cases.manage.
"""

import logging
import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core import rbac
from app.core.database import get_db
from app.core.deps import require_permission
from app.models.matter import MatterStatus
from app.models.user import User
from app.schemas.matter import (
    ActivityCreate,
    ActivityRead,
    DeadlineCreate,
    DeadlineRead,
    DeadlineWithMatter,
    HearingCreate,
    HearingRead,
    MatterCreate,
    MatterList,
    MatterRead,
    MatterUpdate,
    TaskCreate,
    TaskRead,
    TaskUpdate,
)
from app.services.matter_service import matter_service

# Logger per questo modulo
logger = logging.getLogger(__name__)

# Router con prefix e tag
router = APIRouter(
    prefix="/cases",
    tags=["Pratiche"],
)

# Router separati per le rotte indirizzate per id del figlio
tasks_router = APIRouter(
    prefix="/tasks",
    tags=["Pratiche"],
)

deadlines_router = APIRouter(
    prefix="/deadlines",
    tags=["Scadenze"],
)

CasesViewer = require_permission(rbac.CASES_VIEW)
CasesManager = require_permission(rbac.CASES_MANAGE)


# -------------------------------------------------------------------
# Udienze per id (dichiarata prima delle rotte /{matter_id})
# -------------------------------------------------------------------

@router.delete(
    "/hearings/{hearing_id}",
    name="udienza_elimina",
    summary="Elimina udienza",
    status_code=status.HTTP_204_NO_CONTENT,
)
async def delete_hearing(
    hearing_id: uuid.UUID,
    current_user: User = Depends(CasesManager),
    db: AsyncSession = Depends(get_db),
) -> None:
    await matter_service.delete_hearing(db, current_user.tenant_id, hearing_id)


# -------------------------------------------------------------------
# Pratiche
# -------------------------------------------------------------------

@router.get(
    "",
    name="pratiche_lista",
    summary="Lista pratiche",
    description="Recupera la lista paginata delle pratiche con filtri opzionali.",
    response_model=MatterList,
)
async def get_matters(
    page: int = Query(1, ge=1, description="Numero pagina"),
    per_page: int = Query(20, ge=1, le=100, description="Elementi per pagina"),
    status_filter: Optional[MatterStatus] = Query(None, alias="status", description="Stato pratica"),
    client_id: Optional[uuid.UUID] = Query(None, description="Filtro per UUID cliente"),
    lawyer_id: Optional[uuid.UUID] = Query(None, description="Filtro per avvocato responsabile"),
    search: Optional[str] = Query(None, description="Ricerca su titolo, numero processo e descrizione"),
    current_user: User = Depends(CasesViewer),
    db: AsyncSession = Depends(get_db),
) -> MatterList:
    matters, total = await matter_service.get_all(
        db=db,
        tenant_id=current_user.tenant_id,
        page=page,
        per_page=per_page,
        status_filter=status_filter.value if status_filter else None,
        client_id=client_id,
        lawyer_id=lawyer_id,
        search=search,
    )
    return MatterList(
        items=[MatterRead.model_validate(m) for m in matters],
        total=total,
        page=page,
        per_page=per_page,
    )


@router.post(
    "",
    name="pratica_crea",
    summary="Crea pratica",
    response_model=MatterRead,
    status_code=status.HTTP_201_CREATED,
)
async def create_matter(
    matter_data: MatterCreate,
    current_user: User = Depends(CasesManager),
    db: AsyncSession = Depends(get_db),
) -> MatterRead:
    """
    Crea una nuova pratica.

    Raises:
        NotFoundError: Il cliente o l'avvocato non appartengono allo studio
    """
    matter = await matter_service.create(db, current_user, matter_data)
    return MatterRead.model_validate(matter)


@router.get(
    "/{matter_id}",
    name="pratica_dettaglio",
    summary="Dettaglio pratica",
    response_model=MatterRead,
)
async def get_matter(
    matter_id: uuid.UUID,
    current_user: User = Depends(CasesViewer),
    db: AsyncSession = Depends(get_db),
) -> MatterRead:
    matter = await matter_service.get_by_id(db, current_user.tenant_id, matter_id)
    return MatterRead.model_validate(matter)


@router.patch(
    "/{matter_id}",
    name="pratica_aggiorna",
    summary="Aggiorna pratica",
    response_model=MatterRead,
)
async def update_matter(
    matter_id: uuid.UUID,
    matter_data: MatterUpdate,
    current_user: User = Depends(CasesManager),
    db: AsyncSession = Depends(get_db),
) -> MatterRead:
    matter = await matter_service.update(db, current_user, matter_id, matter_data)
    return MatterRead.model_validate(matter)


@router.delete(
    "/{matter_id}",
    name="pratica_elimina",
    summary="Elimina pratica",
    description="Elimina la pratica con task, scadenze, udienze e attività.",
    status_code=status.HTTP_204_NO_CONTENT,
)
async def delete_matter(
    matter_id: uuid.UUID,
    current_user: User = Depends(CasesManager),
    db: AsyncSession = Depends(get_db),
) -> None:
    await matter_service.delete(db, current_user, matter_id)


# -------------------------------------------------------------------
# Task
# -------------------------------------------------------------------

@router.get(
    "/{matter_id}/tasks",
    name="task_lista",
    summary="Task della pratica",
    response_model=list[TaskRead],
)
async def get_tasks(
    matter_id: uuid.UUID,
    current_user: User = Depends(CasesViewer),
    db: AsyncSession = Depends(get_db),
) -> list[TaskRead]:
    tasks = await matter_service.list_tasks(db, current_user.tenant_id, matter_id)
    return [TaskRead.model_validate(t) for t in tasks]


@router.post(
    "/{matter_id}/tasks",
    name="task_crea",
    summary="Crea task",
    response_model=TaskRead,
    status_code=status.HTTP_201_CREATED,
)
async def create_task(
    matter_id: uuid.UUID,
    task_data: TaskCreate,
    current_user: User = Depends(CasesManager),
    db: AsyncSession = Depends(get_db),
) -> TaskRead:
    task = await matter_service.create_task(db, current_user.tenant_id, matter_id, task_data)
    return TaskRead.model_validate(task)


@tasks_router.patch(
    "/{task_id}",
    name="task_aggiorna",
    summary="Aggiorna task",
    response_model=TaskRead,
)
async def update_task(
    task_id: uuid.UUID,
    task_data: TaskUpdate,
    current_user: User = Depends(CasesManager),
    db: AsyncSession = Depends(get_db),
) -> TaskRead:
    """Il passaggio a 'completed' registra completed_at, gli altri stati lo azzerano."""
    task = await matter_service.update_task(db, current_user.tenant_id, task_id, task_data)
    return TaskRead.model_validate(task)


@tasks_router.delete(
    "/{task_id}",
    name="task_elimina",
    summary="Elimina task",
    status_code=status.HTTP_204_NO_CONTENT,
)
async def delete_task(
    task_id: uuid.UUID,
    current_user: User = Depends(CasesManager),
    db: AsyncSession = Depends(get_db),
) -> None:
    await matter_service.delete_task(db, current_user.tenant_id, task_id)


# -------------------------------------------------------------------
# Scadenze
# -------------------------------------------------------------------

@router.get(
    "/{matter_id}/deadlines",
    name="scadenze_pratica",
    summary="Scadenze della pratica",
    response_model=list[DeadlineRead],
)
async def get_matter_deadlines(
    matter_id: uuid.UUID,
    current_user: User = Depends(CasesViewer),
    db: AsyncSession = Depends(get_db),
) -> list[DeadlineRead]:
    deadlines = await matter_service.list_matter_deadlines(db, current_user.tenant_id, matter_id)
    return [DeadlineRead.model_validate(d) for d in deadlines]


@router.post(
    "/{matter_id}/deadlines",
    name="scadenza_crea",
    summary="Crea scadenza",
    response_model=DeadlineRead,
    status_code=status.HTTP_201_CREATED,
)
async def create_deadline(
    matter_id: uuid.UUID,
    deadline_data: DeadlineCreate,
    current_user: User = Depends(CasesManager),
    db: AsyncSession = Depends(get_db),
) -> DeadlineRead:
    deadline = await matter_service.create_deadline(db, current_user.tenant_id, matter_id, deadline_data)
    return DeadlineRead.model_validate(deadline)


@deadlines_router.get(
    "",
    name="scadenze_lista",
    summary="Scadenze dello studio",
    response_model=list[DeadlineWithMatter],
)
async def get_deadlines(
    status_filter: Optional[str] = Query(
        None,
        alias="status",
        description="Filtro: pending, completed, overdue, upcoming",
    ),
    days: int = Query(7, ge=1, le=365, description="Finestra in giorni per 'upcoming'"),
    current_user: User = Depends(CasesViewer),
    db: AsyncSession = Depends(get_db),
) -> list[DeadlineWithMatter]:
    """
    Scadenze di tutte le pratiche dello studio, ordinate per data.

    Raises:
        BusinessValidationError: Filtro di stato sconosciuto
    """
    deadlines = await matter_service.list_deadlines(
        db,
        current_user.tenant_id,
        status_filter=status_filter,
        days=days,
    )
    return [DeadlineWithMatter.model_validate(d) for d in deadlines]


@deadlines_router.patch(
    "/{deadline_id}/complete",
    name="scadenza_completa",
    summary="Completa / riapre scadenza",
    response_model=DeadlineRead,
)
async def toggle_deadline(
    deadline_id: uuid.UUID,
    current_user: User = Depends(CasesManager),
    db: AsyncSession = Depends(get_db),
) -> DeadlineRead:
    deadline = await matter_service.toggle_deadline(db, current_user.tenant_id, deadline_id)
    return DeadlineRead.model_validate(deadline)


# -------------------------------------------------------------------
# Udienze
# -------------------------------------------------------------------

@router.get(
    "/{matter_id}/hearings",
    name="udienze_lista",
    summary="Udienze della pratica",
    response_model=list[HearingRead],
)
async def get_hearings(
    matter_id: uuid.UUID,
    current_user: User = Depends(CasesViewer),
    db: AsyncSession = Depends(get_db),
) -> list[HearingRead]:
    hearings = await matter_service.list_hearings(db, current_user.tenant_id, matter_id)
    return [HearingRead.model_validate(h) for h in hearings]


@router.post(
    "/{matter_id}/hearings",
    name="udienza_crea",
    summary="Crea udienza",
    response_model=HearingRead,
    status_code=status.HTTP_201_CREATED,
)
async def create_hearing(
    matter_id: uuid.UUID,
    hearing_data: HearingCreate,
    current_user: User = Depends(CasesManager),
    db: AsyncSession = Depends(get_db),
) -> HearingRead:
    hearing = await matter_service.create_hearing(db, current_user.tenant_id, matter_id, hearing_data)
    return HearingRead.model_validate(hearing)


# -------------------------------------------------------------------
# Attività
# -------------------------------------------------------------------

@router.get(
    "/{matter_id}/activities",
    name="attivita_lista",
    summary="Attività della pratica",
    response_model=list[ActivityRead],
)
async def get_activities(
    matter_id: uuid.UUID,
    current_user: User = Depends(CasesViewer),
    db: AsyncSession = Depends(get_db),
) -> list[ActivityRead]:
    activities = await matter_service.list_activities(db, current_user.tenant_id, matter_id)
    return [ActivityRead.model_validate(a) for a in activities]


@router.post(
    "/{matter_id}/activities",
    name="attivita_crea",
    summary="Registra attività",
    description="Registra un'attività sulla pratica e la riga di audit corrispondente.",
    response_model=ActivityRead,
    status_code=status.HTTP_201_CREATED,
)
async def create_activity(
    matter_id: uuid.UUID,
    activity_data: ActivityCreate,
    current_user: User = Depends(CasesManager),
    db: AsyncSession = Depends(get_db),
) -> ActivityRead:
    activity = await matter_service.create_activity(db, current_user, matter_id, activity_data)
    return ActivityRead.model_validate(activity)
