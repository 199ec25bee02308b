"""
Router FastAPI per il CRM
Progetto: Gestionale Studio Legale

Endpoint per clienti/lead, referenti e storico interazioni.
Tutte le rotte richiedono una sessione valida; i dati sono sempre
limitati allo studio dell'utente.
"""

import logging
import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.core.deps import CurrentUser
from app.models.client import ClientStatus, ClientType, LeadStage
from app.schemas.client import (
    ClientCreate,
    ClientDetail,
    ClientList,
    ClientRead,
    ClientUpdate,
    ContactCreate,
    ContactRead,
    InteractionCreate,
    InteractionRead,
)
from app.services.client_service import client_service

# Logger per questo modulo
logger = logging.getLogger(__name__)

# Router con prefix e tag
router = APIRouter(
    prefix="/crm/clients",
    tags=["CRM"],
)


@router.get(
    "",
    name="clienti_lista",
    summary="Lista clienti",
    description="Recupera la lista paginata dei clienti con filtri opzionali.",
    response_model=ClientList,
    status_code=status.HTTP_200_OK,
)
async def get_clients(
    current_user: CurrentUser,
    page: int = Query(1, ge=1, description="Numero pagina"),
    per_page: int = Query(20, ge=1, le=100, description="Elementi per pagina"),
    search: Optional[str] = Query(None, description="Ricerca su nome, email e CPF/CNPJ"),
    status_filter: Optional[ClientStatus] = Query(None, alias="status", description="Stato cliente"),
    lead_stage: Optional[LeadStage] = Query(None, description="Fase della pipeline"),
    client_type: Optional[ClientType] = Query(None, description="Persona fisica o giuridica"),
    db: AsyncSession = Depends(get_db),
) -> ClientList:
    """
    Recupera la lista paginata dei clienti dello studio.

    Args:
        page: Numero pagina (default 1)
        per_page: Elementi per pagina (default 20, max 100)
        search: Termine di ricerca opzionale
        status_filter: Filtro per stato (active, inactive, lead, archived)

    Returns:
        ClientList: Lista paginata con metadati
    """
    clients, total = await client_service.get_all(
        db=db,
        tenant_id=current_user.tenant_id,
        page=page,
        per_page=per_page,
        search=search,
        status_filter=status_filter.value if status_filter else None,
        lead_stage=lead_stage.value if lead_stage else None,
        client_type=client_type.value if client_type else None,
    )

    return ClientList(
        items=[ClientRead.model_validate(c) for c in clients],
        total=total,
        page=page,
        per_page=per_page,
    )


@router.post(
    "",
    name="cliente_crea",
    summary="Crea cliente",
    response_model=ClientRead,
    status_code=status.HTTP_201_CREATED,
)
async def create_client(
    client_data: ClientCreate,
    current_user: CurrentUser,
    db: AsyncSession = Depends(get_db),
) -> ClientRead:
    """
    Crea un nuovo cliente o lead.

    Raises:
        DuplicateError: CPF/CNPJ già registrato nello studio
    """
    client = await client_service.create(db, current_user.tenant_id, client_data)
    return ClientRead.model_validate(client)


@router.get(
    "/{client_id}",
    name="cliente_dettaglio",
    summary="Dettaglio cliente",
    description="Cliente con referenti, numero di pratiche e fatture aperte.",
    response_model=ClientDetail,
)
async def get_client(
    client_id: uuid.UUID,
    current_user: CurrentUser,
    db: AsyncSession = Depends(get_db),
) -> ClientDetail:
    return await client_service.get_detail(db, current_user.tenant_id, client_id)


@router.patch(
    "/{client_id}",
    name="cliente_aggiorna",
    summary="Aggiorna cliente",
    response_model=ClientRead,
)
async def update_client(
    client_id: uuid.UUID,
    client_data: ClientUpdate,
    current_user: CurrentUser,
    db: AsyncSession = Depends(get_db),
) -> ClientRead:
    """Aggiornamento parziale: vengono modificati solo i campi inviati."""
    client = await client_service.update(db, current_user.tenant_id, client_id, client_data)
    return ClientRead.model_validate(client)


@router.delete(
    "/{client_id}",
    name="cliente_archivia",
    summary="Archivia cliente",
    description="Eliminazione logica: il cliente passa allo stato archived.",
    status_code=status.HTTP_204_NO_CONTENT,
)
async def archive_client(
    client_id: uuid.UUID,
    current_user: CurrentUser,
    db: AsyncSession = Depends(get_db),
) -> None:
    await client_service.archive(db, current_user.tenant_id, client_id)


# -------------------------------------------------------------------
# Referenti
# -------------------------------------------------------------------

@router.get(
    "/{client_id}/contacts",
    name="referenti_lista",
    summary="Referenti del cliente",
    response_model=list[ContactRead],
)
async def get_contacts(
    client_id: uuid.UUID,
    current_user: CurrentUser,
    db: AsyncSession = Depends(get_db),
) -> list[ContactRead]:
    contacts = await client_service.list_contacts(db, current_user.tenant_id, client_id)
    return [ContactRead.model_validate(c) for c in contacts]


@router.post(
    "/{client_id}/contacts",
    name="referente_crea",
    summary="Aggiungi referente",
    response_model=ContactRead,
    status_code=status.HTTP_201_CREATED,
)
async def create_contact(
    client_id: uuid.UUID,
    contact_data: ContactCreate,
    current_user: CurrentUser,
    db: AsyncSession = Depends(get_db),
) -> ContactRead:
    """Se il nuovo referente è primario, gli altri referenti perdono il flag."""
    contact = await client_service.add_contact(db, current_user.tenant_id, client_id, contact_data)
    return ContactRead.model_validate(contact)


# -------------------------------------------------------------------
# Interazioni
# -------------------------------------------------------------------

@router.get(
    "/{client_id}/interactions",
    name="interazioni_lista",
    summary="Storico interazioni",
    response_model=list[InteractionRead],
)
async def get_interactions(
    client_id: uuid.UUID,
    current_user: CurrentUser,
    db: AsyncSession = Depends(get_db),
) -> list[InteractionRead]:
    interactions = await client_service.list_interactions(db, current_user.tenant_id, client_id)
    return [InteractionRead.model_validate(i) for i in interactions]


@router.post(
    "/{client_id}/interactions",
    name="interazione_crea",
    summary="Registra interazione",
    response_model=InteractionRead,
    status_code=status.HTTP_201_CREATED,
)
async def create_interaction(
    client_id: uuid.UUID,
    interaction_data: InteractionCreate,
    current_user: CurrentUser,
    db: AsyncSession = Depends(get_db),
) -> InteractionRead:
    interaction = await client_service.add_interaction(db, current_user, client_id, interaction_data)
    return InteractionRead.model_validate(interaction)
