"""
Service Layer per il CRM
Progetto: Gestionale Studio Legale

Gestisce clienti e lead dello studio con i relativi referenti
e lo storico delle interazioni.
"""

import logging
import uuid
from typing import Optional

from sqlalchemy import func, or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import DuplicateError, NotFoundError
from app.models.client import Client, ClientStatus, Contact, Interaction
from app.models.invoice import Invoice, InvoiceStatus
from app.models.matter import Matter
from app.models.user import User
from app.schemas.client import (
    ClientCreate,
    ClientDetail,
    ClientRead,
    ClientUpdate,
    ContactCreate,
    ContactRead,
    InteractionCreate,
)

# Logger per questo modulo
logger = logging.getLogger(__name__)

OPEN_INVOICE_STATUSES = (InvoiceStatus.PENDING.value, InvoiceStatus.OVERDUE.value)


class ClientService:
    """
    Service per la gestione delle operazioni CRUD sui clienti.

    Tutte le query sono filtrate sullo studio corrente.
    L'eliminazione è logica: il cliente passa allo stato 'archived'.
    """

    async def get_all(
        self,
        db: AsyncSession,
        tenant_id: uuid.UUID,
        page: int = 1,
        per_page: int = 20,
        search: Optional[str] = None,
        status_filter: Optional[str] = None,
        lead_stage: Optional[str] = None,
        client_type: Optional[str] = None,
    ) -> tuple[list[Client], int]:
        """
        Recupera la lista paginata dei clienti.

        Args:
            db: Sessione database
            tenant_id: Studio corrente
            page: Numero pagina (default 1)
            per_page: Elementi per pagina
            search: Ricerca su nome, email e CPF/CNPJ
            status_filter: Filtro per stato
            lead_stage: Filtro per fase della pipeline
            client_type: Filtro pf/pj

        Returns:
            Tuple di (lista clienti, totale count)
        """
        conditions = [Client.tenant_id == tenant_id]

        if status_filter:
            conditions.append(Client.status == status_filter)
        if lead_stage:
            conditions.append(Client.lead_stage == lead_stage)
        if client_type:
            conditions.append(Client.client_type == client_type)

        if search:
            search_term = f"%{search}%"
            conditions.append(
                or_(
                    Client.name.ilike(search_term),
                    Client.email.ilike(search_term),
                    Client.tax_id.ilike(search_term),
                )
            )

        query = (
            select(Client)
            .where(*conditions)
            .order_by(Client.name.asc())
            .offset((page - 1) * per_page)
            .limit(per_page)
        )
        result = await db.execute(query)
        clients = list(result.scalars().all())

        count_result = await db.execute(select(func.count()).select_from(Client).where(*conditions))
        total = count_result.scalar() or 0

        logger.info("Recuperati %s clienti su %s totali (pagina %s)", len(clients), total, page)
        return clients, total

    async def get_by_id(
        self,
        db: AsyncSession,
        tenant_id: uuid.UUID,
        client_id: uuid.UUID,
    ) -> Client:
        """
        Recupera un cliente dello studio.

        Raises:
            NotFoundError: Se il cliente non esiste
        """
        result = await db.execute(
            select(Client).where(Client.id == client_id, Client.tenant_id == tenant_id)
        )
        client = result.scalar_one_or_none()
        if not client:
            raise NotFoundError(f"Cliente con ID {client_id} non trovato")
        return client

    async def get_detail(
        self,
        db: AsyncSession,
        tenant_id: uuid.UUID,
        client_id: uuid.UUID,
    ) -> ClientDetail:
        """Cliente con referenti, numero pratiche e fatture aperte."""
        client = await self.get_by_id(db, tenant_id, client_id)

        contacts = await self.list_contacts(db, tenant_id, client_id)
        matters_count = await db.scalar(
            select(func.count(Matter.id)).where(Matter.client_id == client_id)
        )
        open_invoices_count = await db.scalar(
            select(func.count(Invoice.id)).where(
                Invoice.client_id == client_id,
                Invoice.status.in_(OPEN_INVOICE_STATUSES),
            )
        )

        return ClientDetail(
            **ClientRead.model_validate(client).model_dump(),
            contacts=[ContactRead.model_validate(c) for c in contacts],
            matters_count=matters_count or 0,
            open_invoices_count=open_invoices_count or 0,
        )

    async def create(
        self,
        db: AsyncSession,
        tenant_id: uuid.UUID,
        data: ClientCreate,
    ) -> Client:
        """
        Crea un nuovo cliente o lead.

        Raises:
            DuplicateError: CPF/CNPJ già presente nello studio
        """
        if data.tax_id:
            await self._check_tax_id_exists(db, tenant_id, data.tax_id)
        if data.responsible_lawyer_id:
            await self._check_lawyer(db, tenant_id, data.responsible_lawyer_id)

        client = Client(tenant_id=tenant_id, **data.model_dump())
        db.add(client)

        try:
            await db.commit()
        except IntegrityError as e:
            await db.rollback()
            logger.error("Errore di integrità durante la creazione cliente: %s", e)
            raise DuplicateError("Cliente già esistente con questi dati")

        logger.info("Creato cliente %s (%s)", client.name, client.id)
        return await self.get_by_id(db, tenant_id, client.id)

    async def update(
        self,
        db: AsyncSession,
        tenant_id: uuid.UUID,
        client_id: uuid.UUID,
        data: ClientUpdate,
    ) -> Client:
        """
        Aggiorna parzialmente un cliente.

        Raises:
            NotFoundError: Cliente non trovato
            DuplicateError: CPF/CNPJ già usato da un altro cliente
        """
        client = await self.get_by_id(db, tenant_id, client_id)
        changes = data.model_dump(exclude_unset=True)

        if changes.get("tax_id") and changes["tax_id"] != client.tax_id:
            await self._check_tax_id_exists(db, tenant_id, changes["tax_id"], exclude_id=client_id)
        if changes.get("responsible_lawyer_id"):
            await self._check_lawyer(db, tenant_id, changes["responsible_lawyer_id"])

        for key, value in changes.items():
            setattr(client, key, value)

        try:
            await db.commit()
        except IntegrityError as e:
            await db.rollback()
            logger.error("Errore di integrità durante l'aggiornamento cliente: %s", e)
            raise DuplicateError("Cliente già esistente con questi dati")

        return await self.get_by_id(db, tenant_id, client_id)

    async def archive(
        self,
        db: AsyncSession,
        tenant_id: uuid.UUID,
        client_id: uuid.UUID,
    ) -> None:
        """Eliminazione logica: il cliente passa allo stato 'archived'."""
        client = await self.get_by_id(db, tenant_id, client_id)
        client.status = ClientStatus.ARCHIVED.value
        await db.commit()
        logger.info("Cliente %s archiviato", client_id)

    # ------------------------------------------------------------
    # Referenti
    # ------------------------------------------------------------
    async def list_contacts(
        self,
        db: AsyncSession,
        tenant_id: uuid.UUID,
        client_id: uuid.UUID,
    ) -> list[Contact]:
        result = await db.execute(
            select(Contact)
            .where(Contact.client_id == client_id, Contact.tenant_id == tenant_id)
            .order_by(Contact.is_primary.desc(), Contact.name)
        )
        return list(result.scalars().all())

    async def add_contact(
        self,
        db: AsyncSession,
        tenant_id: uuid.UUID,
        client_id: uuid.UUID,
        data: ContactCreate,
    ) -> Contact:
        """Aggiunge un referente; se primario, gli altri perdono il flag."""
        await self.get_by_id(db, tenant_id, client_id)

        if data.is_primary:
            await db.execute(
                update(Contact)
                .where(Contact.client_id == client_id, Contact.is_primary.is_(True))
                .values(is_primary=False)
                .execution_options(synchronize_session=False)
            )

        contact = Contact(tenant_id=tenant_id, client_id=client_id, **data.model_dump())
        db.add(contact)
        await db.commit()
        return contact

    # ------------------------------------------------------------
    # Interazioni
    # ------------------------------------------------------------
    async def list_interactions(
        self,
        db: AsyncSession,
        tenant_id: uuid.UUID,
        client_id: uuid.UUID,
    ) -> list[Interaction]:
        await self.get_by_id(db, tenant_id, client_id)
        result = await db.execute(
            select(Interaction)
            .where(Interaction.client_id == client_id, Interaction.tenant_id == tenant_id)
            .order_by(Interaction.created_at.desc())
        )
        return list(result.scalars().all())

    async def add_interaction(
        self,
        db: AsyncSession,
        user: User,
        client_id: uuid.UUID,
        data: InteractionCreate,
    ) -> Interaction:
        await self.get_by_id(db, user.tenant_id, client_id)

        interaction = Interaction(
            tenant_id=user.tenant_id,
            client_id=client_id,
            user_id=user.id,
            interaction_type=data.interaction_type,
            subject=data.subject,
            description=data.description,
            meta=data.metadata,
        )
        db.add(interaction)
        await db.commit()
        return interaction

    # ------------------------------------------------------------
    # Controlli
    # ------------------------------------------------------------
    async def _check_tax_id_exists(
        self,
        db: AsyncSession,
        tenant_id: uuid.UUID,
        tax_id: str,
        exclude_id: Optional[uuid.UUID] = None,
    ) -> None:
        """
        Verifica che il CPF/CNPJ non sia già registrato nello studio.

        Raises:
            DuplicateError: Se esiste già
        """
        query = select(Client.id).where(Client.tenant_id == tenant_id, Client.tax_id == tax_id)
        if exclude_id:
            query = query.where(Client.id != exclude_id)

        result = await db.execute(query)
        if result.first() is not None:
            raise DuplicateError(f"Un cliente con CPF/CNPJ {tax_id} è già presente")

    async def _check_lawyer(
        self,
        db: AsyncSession,
        tenant_id: uuid.UUID,
        user_id: uuid.UUID,
    ) -> None:
        lawyer = await db.get(User, user_id)
        if lawyer is None or lawyer.tenant_id != tenant_id:
            raise NotFoundError(f"Avvocato {user_id} non trovato")


client_service = ClientService()
