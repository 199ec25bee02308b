"""
Service Layer per le Pratiche
Progetto: Gestionale Studio Legale

Gestisce pratiche, attività (task), scadenze, udienze e
cronologia delle attività di ogni pratica.
"""

import logging
import uuid
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy import delete, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.core.exceptions import BusinessValidationError, NotFoundError
from app.models.client import Client
from app.models.matter import (
    Activity,
    Deadline,
    Hearing,
    Matter,
    Task,
    TaskStatus,
)
from app.models.mixins import utcnow
from app.models.user import User
from app.schemas.matter import (
    ActivityCreate,
    DeadlineCreate,
    HearingCreate,
    MatterCreate,
    MatterUpdate,
    TaskCreate,
    TaskUpdate,
)
from app.services.audit_service import record_audit

# Logger per questo modulo
logger = logging.getLogger(__name__)

DEADLINE_FILTERS = ("pending", "completed", "overdue", "upcoming")


class MatterService:
    """
    Service per le pratiche e le entità collegate.

    Le entità figlie (task, scadenze, udienze, attività) sono sempre
    raggiunte passando per una pratica dello studio corrente.
    """

    # ------------------------------------------------------------
    # Pratiche
    # ------------------------------------------------------------
    async def get_all(
        self,
        db: AsyncSession,
        tenant_id: uuid.UUID,
        page: int = 1,
        per_page: int = 20,
        status_filter: Optional[str] = None,
        client_id: Optional[uuid.UUID] = None,
        lawyer_id: Optional[uuid.UUID] = None,
        search: Optional[str] = None,
    ) -> tuple[list[Matter], int]:
        """
        Recupera la lista paginata delle pratiche, più recenti prima.

        Returns:
            Tuple di (lista pratiche, totale count)
        """
        conditions = [Matter.tenant_id == tenant_id]
        if status_filter:
            conditions.append(Matter.status == status_filter)
        if client_id:
            conditions.append(Matter.client_id == client_id)
        if lawyer_id:
            conditions.append(Matter.responsible_lawyer_id == lawyer_id)
        if search:
            search_term = f"%{search}%"
            conditions.append(
                or_(
                    Matter.title.ilike(search_term),
                    Matter.process_number.ilike(search_term),
                    Matter.description.ilike(search_term),
                )
            )

        result = await db.execute(
            select(Matter)
            .where(*conditions)
            .order_by(Matter.created_at.desc())
            .offset((page - 1) * per_page)
            .limit(per_page)
        )
        matters = list(result.scalars().all())

        total = await db.scalar(select(func.count()).select_from(Matter).where(*conditions))
        return matters, total or 0

    async def get_by_id(
        self,
        db: AsyncSession,
        tenant_id: uuid.UUID,
        matter_id: uuid.UUID,
    ) -> Matter:
        """
        Recupera una pratica dello studio.

        Raises:
            NotFoundError: Pratica non trovata
        """
        result = await db.execute(
            select(Matter)
            .where(Matter.id == matter_id, Matter.tenant_id == tenant_id)
            .execution_options(populate_existing=True)
        )
        matter = result.scalar_one_or_none()
        if not matter:
            raise NotFoundError(f"Pratica {matter_id} non trovata")
        return matter

    async def _check_client(self, db: AsyncSession, tenant_id: uuid.UUID, client_id: uuid.UUID) -> None:
        client = await db.get(Client, client_id)
        if client is None or client.tenant_id != tenant_id:
            raise NotFoundError(f"Cliente {client_id} non trovato")

    async def _check_user(self, db: AsyncSession, tenant_id: uuid.UUID, user_id: uuid.UUID) -> None:
        user = await db.get(User, user_id)
        if user is None or user.tenant_id != tenant_id:
            raise NotFoundError(f"Utente {user_id} non trovato")

    async def create(
        self,
        db: AsyncSession,
        user: User,
        data: MatterCreate,
    ) -> Matter:
        """
        Crea una pratica per un cliente dello studio.

        Raises:
            NotFoundError: Cliente o avvocato non appartengono allo studio
        """
        await self._check_client(db, user.tenant_id, data.client_id)
        if data.responsible_lawyer_id:
            await self._check_user(db, user.tenant_id, data.responsible_lawyer_id)

        matter = Matter(tenant_id=user.tenant_id, **data.model_dump())
        db.add(matter)
        await db.flush()

        record_audit(
            db,
            tenant_id=user.tenant_id,
            user_id=user.id,
            action="create",
            entity_type="matter",
            entity_id=matter.id,
            new_data=data.model_dump(mode="json"),
        )
        await db.commit()

        logger.info("Creata pratica '%s' (%s)", matter.title, matter.id)
        return await self.get_by_id(db, user.tenant_id, matter.id)

    async def update(
        self,
        db: AsyncSession,
        user: User,
        matter_id: uuid.UUID,
        data: MatterUpdate,
    ) -> Matter:
        """Aggiorna parzialmente una pratica."""
        matter = await self.get_by_id(db, user.tenant_id, matter_id)
        changes = data.model_dump(exclude_unset=True)

        if changes.get("client_id"):
            await self._check_client(db, user.tenant_id, changes["client_id"])
        if changes.get("responsible_lawyer_id"):
            await self._check_user(db, user.tenant_id, changes["responsible_lawyer_id"])

        for key, value in changes.items():
            setattr(matter, key, value)

        record_audit(
            db,
            tenant_id=user.tenant_id,
            user_id=user.id,
            action="update",
            entity_type="matter",
            entity_id=matter.id,
            new_data=data.model_dump(mode="json", exclude_unset=True),
        )
        await db.commit()
        return await self.get_by_id(db, user.tenant_id, matter_id)

    async def delete(
        self,
        db: AsyncSession,
        user: User,
        matter_id: uuid.UUID,
    ) -> None:
        """Elimina la pratica con task, scadenze, udienze e attività."""
        matter = await self.get_by_id(db, user.tenant_id, matter_id)

        record_audit(
            db,
            tenant_id=user.tenant_id,
            user_id=user.id,
            action="delete",
            entity_type="matter",
            entity_id=matter.id,
            old_data={"title": matter.title, "process_number": matter.process_number},
        )
        for child in (Task, Deadline, Hearing, Activity):
            await db.execute(delete(child).where(child.matter_id == matter.id))
        await db.delete(matter)
        await db.commit()
        logger.info("Eliminata pratica %s", matter_id)

    # ------------------------------------------------------------
    # Task
    # ------------------------------------------------------------
    async def list_tasks(self, db: AsyncSession, tenant_id: uuid.UUID, matter_id: uuid.UUID) -> list[Task]:
        await self.get_by_id(db, tenant_id, matter_id)
        result = await db.execute(
            select(Task)
            .where(Task.matter_id == matter_id, Task.tenant_id == tenant_id)
            .order_by(Task.due_date.asc().nulls_last(), Task.created_at)
        )
        return list(result.scalars().all())

    async def create_task(
        self,
        db: AsyncSession,
        tenant_id: uuid.UUID,
        matter_id: uuid.UUID,
        data: TaskCreate,
    ) -> Task:
        await self.get_by_id(db, tenant_id, matter_id)
        if data.assigned_to_id:
            await self._check_user(db, tenant_id, data.assigned_to_id)

        task = Task(tenant_id=tenant_id, matter_id=matter_id, **data.model_dump())
        if task.status == TaskStatus.COMPLETED.value:
            task.completed_at = utcnow()
        db.add(task)
        await db.commit()
        return task

    async def _get_task(self, db: AsyncSession, tenant_id: uuid.UUID, task_id: uuid.UUID) -> Task:
        task = await db.get(Task, task_id)
        if task is None or task.tenant_id != tenant_id:
            raise NotFoundError(f"Attività {task_id} non trovata")
        return task

    async def update_task(
        self,
        db: AsyncSession,
        tenant_id: uuid.UUID,
        task_id: uuid.UUID,
        data: TaskUpdate,
    ) -> Task:
        """Aggiorna un task; il passaggio a 'completed' registra completed_at."""
        task = await self._get_task(db, tenant_id, task_id)
        changes = data.model_dump(exclude_unset=True)
        if changes.get("assigned_to_id"):
            await self._check_user(db, tenant_id, changes["assigned_to_id"])

        for key, value in changes.items():
            setattr(task, key, value)

        if "status" in changes:
            if task.status == TaskStatus.COMPLETED.value:
                task.completed_at = task.completed_at or utcnow()
            else:
                task.completed_at = None

        await db.commit()
        return task

    async def delete_task(self, db: AsyncSession, tenant_id: uuid.UUID, task_id: uuid.UUID) -> None:
        task = await self._get_task(db, tenant_id, task_id)
        await db.delete(task)
        await db.commit()

    # ------------------------------------------------------------
    # Scadenze
    # ------------------------------------------------------------
    async def list_matter_deadlines(
        self,
        db: AsyncSession,
        tenant_id: uuid.UUID,
        matter_id: uuid.UUID,
    ) -> list[Deadline]:
        await self.get_by_id(db, tenant_id, matter_id)
        result = await db.execute(
            select(Deadline)
            .where(Deadline.matter_id == matter_id, Deadline.tenant_id == tenant_id)
            .order_by(Deadline.deadline_date)
        )
        return list(result.scalars().all())

    async def list_deadlines(
        self,
        db: AsyncSession,
        tenant_id: uuid.UUID,
        status_filter: Optional[str] = None,
        days: int = 7,
        now: Optional[datetime] = None,
    ) -> list[Deadline]:
        """
        Scadenze dello studio con la pratica di riferimento.

        Filtri:
        - pending: non completate
        - completed: completate
        - overdue: non completate con data passata
        - upcoming: non completate entro i prossimi `days` giorni

        Raises:
            BusinessValidationError: Filtro sconosciuto
        """
        now = now or utcnow()
        stmt = (
            select(Deadline)
            .where(Deadline.tenant_id == tenant_id)
            .options(selectinload(Deadline.matter))
        )

        if status_filter is None:
            pass
        elif status_filter == "pending":
            stmt = stmt.where(Deadline.is_completed.is_(False))
        elif status_filter == "completed":
            stmt = stmt.where(Deadline.is_completed.is_(True))
        elif status_filter == "overdue":
            stmt = stmt.where(Deadline.is_completed.is_(False), Deadline.deadline_date < now)
        elif status_filter == "upcoming":
            stmt = stmt.where(
                Deadline.is_completed.is_(False),
                Deadline.deadline_date >= now,
                Deadline.deadline_date <= now + timedelta(days=days),
            )
        else:
            raise BusinessValidationError(
                f"Filtro '{status_filter}' non valido. Valori ammessi: {', '.join(DEADLINE_FILTERS)}"
            )

        result = await db.execute(stmt.order_by(Deadline.deadline_date))
        return list(result.scalars().all())

    async def create_deadline(
        self,
        db: AsyncSession,
        tenant_id: uuid.UUID,
        matter_id: uuid.UUID,
        data: DeadlineCreate,
    ) -> Deadline:
        await self.get_by_id(db, tenant_id, matter_id)
        deadline = Deadline(tenant_id=tenant_id, matter_id=matter_id, **data.model_dump())
        db.add(deadline)
        await db.commit()
        return deadline

    async def toggle_deadline(
        self,
        db: AsyncSession,
        tenant_id: uuid.UUID,
        deadline_id: uuid.UUID,
    ) -> Deadline:
        """Inverte lo stato di completamento, impostando o azzerando completed_at."""
        deadline = await db.get(Deadline, deadline_id)
        if deadline is None or deadline.tenant_id != tenant_id:
            raise NotFoundError(f"Scadenza {deadline_id} non trovata")

        deadline.is_completed = not deadline.is_completed
        deadline.completed_at = utcnow() if deadline.is_completed else None
        await db.commit()
        return deadline

    # ------------------------------------------------------------
    # Udienze
    # ------------------------------------------------------------
    async def list_hearings(
        self,
        db: AsyncSession,
        tenant_id: uuid.UUID,
        matter_id: uuid.UUID,
    ) -> list[Hearing]:
        await self.get_by_id(db, tenant_id, matter_id)
        result = await db.execute(
            select(Hearing)
            .where(Hearing.matter_id == matter_id, Hearing.tenant_id == tenant_id)
            .order_by(Hearing.hearing_date)
        )
        return list(result.scalars().all())

    async def create_hearing(
        self,
        db: AsyncSession,
        tenant_id: uuid.UUID,
        matter_id: uuid.UUID,
        data: HearingCreate,
    ) -> Hearing:
        await self.get_by_id(db, tenant_id, matter_id)
        hearing = Hearing(tenant_id=tenant_id, matter_id=matter_id, **data.model_dump())
        db.add(hearing)
        await db.commit()
        return hearing

    async def delete_hearing(
        self,
        db: AsyncSession,
        tenant_id: uuid.UUID,
        hearing_id: uuid.UUID,
    ) -> None:
        hearing = await db.get(Hearing, hearing_id)
        if hearing is None or hearing.tenant_id != tenant_id:
            raise NotFoundError(f"Udienza {hearing_id} non trovata")
        await db.delete(hearing)
        await db.commit()

    # ------------------------------------------------------------
    # Attività
    # ------------------------------------------------------------
    async def list_activities(
        self,
        db: AsyncSession,
        tenant_id: uuid.UUID,
        matter_id: uuid.UUID,
    ) -> list[Activity]:
        await self.get_by_id(db, tenant_id, matter_id)
        result = await db.execute(
            select(Activity)
            .where(Activity.matter_id == matter_id, Activity.tenant_id == tenant_id)
            .order_by(Activity.created_at.desc())
        )
        return list(result.scalars().all())

    async def create_activity(
        self,
        db: AsyncSession,
        user: User,
        matter_id: uuid.UUID,
        data: ActivityCreate,
    ) -> Activity:
        """Registra un'attività sulla pratica insieme alla riga di audit."""
        await self.get_by_id(db, user.tenant_id, matter_id)

        activity = Activity(
            tenant_id=user.tenant_id,
            matter_id=matter_id,
            user_id=user.id,
            action=data.action,
            description=data.description,
            meta=data.metadata,
        )
        db.add(activity)
        record_audit(
            db,
            tenant_id=user.tenant_id,
            user_id=user.id,
            action=data.action,
            entity_type="matter",
            entity_id=matter_id,
            new_data={"description": data.description, **data.metadata},
        )
        await db.commit()
        return activity


matter_service = MatterService()
