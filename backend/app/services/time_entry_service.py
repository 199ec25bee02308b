"""
Service Layer per le ore lavorate
Progetto: Gestionale Studio Legale

Registrazione, modifica ed elenco delle ore. Le ore già fatturate
(invoice_id valorizzato) non sono più modificabili né eliminabili.
"""

import datetime
import logging
import uuid
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import BusinessValidationError, NotFoundError
from app.models.client import Client
from app.models.matter import Matter
from app.models.time_entry import TimeEntry
from app.models.user import User
from app.schemas.time_entry import TimeEntryCreate, TimeEntryUpdate

# Logger per questo modulo
logger = logging.getLogger(__name__)


class TimeEntryService:
    """
    Service per le ore lavorate.

    L'elenco "da fatturare" è la sorgente della creazione fatture:
    ore fatturabili, del cliente indicato, con invoice_id NULL.
    """

    async def _check_links(
        self,
        db: AsyncSession,
        tenant_id: uuid.UUID,
        matter_id: Optional[uuid.UUID],
        client_id: Optional[uuid.UUID],
    ) -> Optional[uuid.UUID]:
        """
        Verifica che pratica e cliente appartengano allo studio.

        Returns:
            Il client_id effettivo (quello della pratica se non indicato)
        """
        if matter_id is not None:
            matter = await db.get(Matter, matter_id)
            if matter is None or matter.tenant_id != tenant_id:
                raise NotFoundError(f"Pratica {matter_id} non trovata")
            if client_id is None:
                client_id = matter.client_id

        if client_id is not None:
            client = await db.get(Client, client_id)
            if client is None or client.tenant_id != tenant_id:
                raise NotFoundError(f"Cliente {client_id} non trovato")

        return client_id

    async def get_by_id(
        self,
        db: AsyncSession,
        tenant_id: uuid.UUID,
        entry_id: uuid.UUID,
    ) -> TimeEntry:
        """
        Recupera una registrazione dello studio.

        Raises:
            NotFoundError: Registrazione inesistente o di un altro studio
        """
        result = await db.execute(
            select(TimeEntry)
            .where(TimeEntry.id == entry_id, TimeEntry.tenant_id == tenant_id)
            .execution_options(populate_existing=True)
        )
        entry = result.scalar_one_or_none()
        if entry is None:
            raise NotFoundError(f"Registrazione ore {entry_id} non trovata")
        return entry

    async def list_own(
        self,
        db: AsyncSession,
        user: User,
        day: Optional[datetime.date] = None,
    ) -> list[TimeEntry]:
        """Ore dell'utente corrente, più recenti prima; filtro opzionale sul giorno."""
        stmt = select(TimeEntry).where(
            TimeEntry.tenant_id == user.tenant_id,
            TimeEntry.user_id == user.id,
        )
        if day is not None:
            stmt = stmt.where(TimeEntry.date == day)

        result = await db.execute(stmt.order_by(TimeEntry.date.desc(), TimeEntry.created_at.desc()))
        return list(result.scalars().all())

    async def list_unbilled(
        self,
        db: AsyncSession,
        tenant_id: uuid.UUID,
        client_id: Optional[uuid.UUID],
    ) -> list[TimeEntry]:
        """
        Ore fatturabili non ancora fatturate di un cliente, ordinate per data.

        Raises:
            BusinessValidationError: Se client_id non è indicato
        """
        if client_id is None:
            raise BusinessValidationError("client_id è obbligatorio")

        result = await db.execute(
            select(TimeEntry)
            .where(
                TimeEntry.tenant_id == tenant_id,
                TimeEntry.client_id == client_id,
                TimeEntry.billable.is_(True),
                TimeEntry.invoice_id.is_(None),
            )
            .order_by(TimeEntry.date, TimeEntry.created_at)
        )
        return list(result.scalars().all())

    async def create(
        self,
        db: AsyncSession,
        user: User,
        data: TimeEntryCreate,
    ) -> TimeEntry:
        """
        Registra ore per l'utente corrente.

        Raises:
            NotFoundError: Pratica o cliente non appartengono allo studio
        """
        client_id = await self._check_links(db, user.tenant_id, data.matter_id, data.client_id)

        entry = TimeEntry(
            tenant_id=user.tenant_id,
            user_id=user.id,
            matter_id=data.matter_id,
            client_id=client_id,
            description=data.description,
            hours=data.hours,
            date=data.date,
            billable=data.billable,
        )
        db.add(entry)
        await db.commit()

        logger.info("Registrate %s ore da %s (id %s)", entry.hours, user.email, entry.id)
        return await self.get_by_id(db, user.tenant_id, entry.id)

    async def update(
        self,
        db: AsyncSession,
        tenant_id: uuid.UUID,
        entry_id: uuid.UUID,
        data: TimeEntryUpdate,
    ) -> TimeEntry:
        """
        Modifica ore non ancora fatturate.

        Raises:
            NotFoundError: Registrazione non trovata
            BusinessValidationError: Ore già fatturate
        """
        entry = await self.get_by_id(db, tenant_id, entry_id)
        if entry.is_billed:
            raise BusinessValidationError("Le ore già fatturate non sono modificabili")

        changes = data.model_dump(exclude_unset=True)
        if "matter_id" in changes or "client_id" in changes:
            matter_id = changes.get("matter_id", entry.matter_id)
            client_id = changes.get("client_id", entry.client_id if "matter_id" not in changes else None)
            changes["client_id"] = await self._check_links(db, tenant_id, matter_id, client_id)

        for key, value in changes.items():
            setattr(entry, key, value)

        await db.commit()
        return await self.get_by_id(db, tenant_id, entry_id)

    async def delete(
        self,
        db: AsyncSession,
        tenant_id: uuid.UUID,
        entry_id: uuid.UUID,
    ) -> None:
        """
        Elimina ore non ancora fatturate.

        Raises:
            NotFoundError: Registrazione non trovata
            BusinessValidationError: Ore già fatturate
        """
        entry = await self.get_by_id(db, tenant_id, entry_id)
        if entry.is_billed:
            raise BusinessValidationError("Le ore già fatturate non sono eliminabili")

        await db.delete(entry)
        await db.commit()


time_entry_service = TimeEntryService()
