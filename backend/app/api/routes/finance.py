"""
Router FastAPI per la contabilità
Progetto: Gestionale Studio Legale

Movimenti di entrata/uscita e riepilogo del mese corrente.
"""

import logging
import uuid
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core import rbac
from app.core.database import get_db
from app.core.deps import require_permission
from app.models.transaction import TransactionType
from app.models.user import User
from app.schemas.finance import FinanceDashboard, TransactionCreate, TransactionRead
from app.services.finance_service import finance_service

# Logger per questo modulo
logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/finance",
    tags=["Contabilità"],
)

FinanceViewer = require_permission(rbac.FINANCE_VIEW)
FinanceManager = require_permission(rbac.FINANCE_MANAGE)


@router.get(
    "/transactions",
    name="movimenti_lista",
    summary="Lista movimenti",
    response_model=list[TransactionRead],
)
async def get_transactions(
    transaction_type: Optional[TransactionType] = Query(None, alias="type", description="revenue o expense"),
    start_date: Optional[datetime] = Query(None, description="Data iniziale (inclusa)"),
    end_date: Optional[datetime] = Query(None, description="Data finale (inclusa)"),
    current_user: User = Depends(FinanceViewer),
    db: AsyncSession = Depends(get_db),
) -> list[TransactionRead]:
    transactions = await finance_service.list_transactions(
        db,
        current_user.tenant_id,
        transaction_type=transaction_type,
        start_date=start_date,
        end_date=end_date,
    )
    return [TransactionRead.model_validate(t) for t in transactions]


@router.post(
    "/transactions",
    name="movimento_crea",
    summary="Registra movimento",
    response_model=TransactionRead,
    status_code=status.HTTP_201_CREATED,
)
async def create_transaction(
    transaction_data: TransactionCreate,
    current_user: User = Depends(FinanceManager),
    db: AsyncSession = Depends(get_db),
) -> TransactionRead:
    transaction = await finance_service.create_transaction(db, current_user.tenant_id, transaction_data)
    return TransactionRead.model_validate(transaction)


@router.delete(
    "/transactions/{transaction_id}",
    name="movimento_elimina",
    summary="Elimina movimento",
    description="I movimenti generati da incassi o fatture non sono eliminabili.",
    status_code=status.HTTP_204_NO_CONTENT,
)
async def delete_transaction(
    transaction_id: uuid.UUID,
    current_user: User = Depends(FinanceManager),
    db: AsyncSession = Depends(get_db),
) -> None:
    await finance_service.delete_transaction(db, current_user.tenant_id, transaction_id)


@router.get(
    "/dashboard",
    name="contabilita_riepilogo",
    summary="Riepilogo del mese",
    response_model=FinanceDashboard,
)
async def get_dashboard(
    current_user: User = Depends(FinanceViewer),
    db: AsyncSession = Depends(get_db),
) -> FinanceDashboard:
    """Entrate, uscite e saldo del mese corrente con gli ultimi 5 movimenti."""
    return await finance_service.dashboard(db, current_user.tenant_id)
