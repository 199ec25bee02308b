"""
Router FastAPI per la Fatturazione
Progetto: Gestionale Studio Legale

Definisce gli endpoint API per registrazione ore, fatture, incassi
e stampa PDF di fatture e ricevute.
"""

import datetime
import logging
import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query, Response, status
from fastapi.concurrency import run_in_threadpool
from sqlalchemy.ext.asyncio import AsyncSession

from app.core import rbac
from app.core.database import get_db
from app.core.deps import CurrentUser, require_permission
from app.models.invoice import InvoiceStatus
from app.models.user import User
from app.schemas.invoice import (
    InvoiceCreate,
    InvoiceDetail,
    InvoiceList,
    InvoiceStatusUpdate,
    PaymentCreate,
    PaymentResult,
)
from app.schemas.time_entry import TimeEntryCreate, TimeEntryRead, TimeEntryUpdate
from app.services.invoice_service import invoice_service
from app.services.pdf_service import pdf_service
from app.services.tenant_service import tenant_service
from app.services.time_entry_service import time_entry_service

# Logger per questo modulo
logger = logging.getLogger(__name__)

# Router con prefix e tag
router = APIRouter(
    prefix="/billing",
    tags=["Fatturazione"],
)

FinanceViewer = require_permission(rbac.FINANCE_VIEW)
FinanceManager = require_permission(rbac.FINANCE_MANAGE)


# -------------------------------------------------------------------
# Registrazione ore
# -------------------------------------------------------------------

@router.get(
    "/time-entries",
    name="ore_lista",
    summary="Ore dell'utente corrente",
    response_model=list[TimeEntryRead],
)
async def get_time_entries(
    current_user: CurrentUser,
    day: Optional[datetime.date] = Query(None, alias="date", description="Giorno (YYYY-MM-DD)"),
    db: AsyncSession = Depends(get_db),
) -> list[TimeEntryRead]:
    entries = await time_entry_service.list_own(db, current_user, day)
    return [TimeEntryRead.model_validate(e) for e in entries]


@router.post(
    "/time-entries",
    name="ore_crea",
    summary="Registra ore",
    response_model=TimeEntryRead,
    status_code=status.HTTP_201_CREATED,
)
async def create_time_entry(
    entry_data: TimeEntryCreate,
    current_user: CurrentUser,
    db: AsyncSession = Depends(get_db),
) -> TimeEntryRead:
    """
    Registra ore di lavoro per l'utente corrente.

    Se è indicata una pratica e non un cliente, il cliente viene
    ricavato dalla pratica.
    """
    entry = await time_entry_service.create(db, current_user, entry_data)
    return TimeEntryRead.model_validate(entry)


@router.patch(
    "/time-entries/{entry_id}",
    name="ore_aggiorna",
    summary="Aggiorna ore",
    description="Modifica ammessa solo per ore non ancora fatturate.",
    response_model=TimeEntryRead,
)
async def update_time_entry(
    entry_id: uuid.UUID,
    entry_data: TimeEntryUpdate,
    current_user: CurrentUser,
    db: AsyncSession = Depends(get_db),
) -> TimeEntryRead:
    entry = await time_entry_service.update(db, current_user.tenant_id, entry_id, entry_data)
    return TimeEntryRead.model_validate(entry)


@router.delete(
    "/time-entries/{entry_id}",
    name="ore_elimina",
    summary="Elimina ore",
    description="Eliminazione ammessa solo per ore non ancora fatturate.",
    status_code=status.HTTP_204_NO_CONTENT,
)
async def delete_time_entry(
    entry_id: uuid.UUID,
    current_user: CurrentUser,
    db: AsyncSession = Depends(get_db),
) -> None:
    await time_entry_service.delete(db, current_user.tenant_id, entry_id)


@router.get(
    "/unbilled",
    name="ore_da_fatturare",
    summary="Ore da fatturare",
    description="Ore fatturabili non ancora fatturate di un cliente, ordinate per data.",
    response_model=list[TimeEntryRead],
)
async def get_unbilled(
    client_id: Optional[uuid.UUID] = Query(None, description="UUID cliente (obbligatorio)"),
    current_user: User = Depends(FinanceViewer),
    db: AsyncSession = Depends(get_db),
) -> list[TimeEntryRead]:
    entries = await time_entry_service.list_unbilled(db, current_user.tenant_id, client_id)
    return [TimeEntryRead.model_validate(e) for e in entries]


# -------------------------------------------------------------------
# Fatture
# -------------------------------------------------------------------

@router.get(
    "/invoices",
    name="fatture_lista",
    summary="Lista fatture",
    description="Recupera la lista paginata delle fatture, più recenti prima.",
    response_model=InvoiceList,
)
async def get_invoices(
    status_filter: Optional[InvoiceStatus] = Query(
        None,
        alias="status",
        description="Filtro per stato (draft, pending, paid, overdue, cancelled)",
    ),
    client_id: Optional[uuid.UUID] = Query(None, description="Filtro per UUID cliente"),
    page: int = Query(1, ge=1, description="Numero pagina"),
    per_page: int = Query(50, ge=1, le=200, description="Elementi per pagina"),
    current_user: User = Depends(FinanceViewer),
    db: AsyncSession = Depends(get_db),
) -> InvoiceList:
    return await invoice_service.get_all(
        db,
        current_user.tenant_id,
        status_filter=status_filter.value if status_filter else None,
        client_id=client_id,
        page=page,
        per_page=per_page,
    )


@router.post(
    "/invoices",
    name="fattura_crea",
    summary="Crea fattura da ore",
    response_model=InvoiceDetail,
    status_code=status.HTTP_201_CREATED,
)
async def create_invoice(
    invoice_data: InvoiceCreate,
    current_user: User = Depends(FinanceManager),
    db: AsyncSession = Depends(get_db),
) -> InvoiceDetail:
    """
    Crea una fattura a partire dalle ore selezionate di un cliente.

    Tutte le ore devono appartenere allo studio e al cliente e non essere
    già fatturate; in caso contrario nessuna riga viene scritta.

    Raises:
        BusinessValidationError: Ore invalide o già fatturate
        ConflictError: Numero fattura già assegnato da una richiesta concorrente
    """
    invoice = await invoice_service.create(db, current_user.tenant_id, invoice_data)
    return InvoiceDetail.model_validate(invoice)


@router.get(
    "/invoices/{invoice_id}",
    name="fattura_dettaglio",
    summary="Dettaglio fattura",
    description="Fattura con cliente, righe, ore collegate e incassi.",
    response_model=InvoiceDetail,
)
async def get_invoice(
    invoice_id: uuid.UUID,
    current_user: User = Depends(FinanceViewer),
    db: AsyncSession = Depends(get_db),
) -> InvoiceDetail:
    invoice = await invoice_service.get_by_id(db, current_user.tenant_id, invoice_id)
    return InvoiceDetail.model_validate(invoice)


@router.patch(
    "/invoices/{invoice_id}",
    name="fattura_aggiorna",
    summary="Aggiorna stato fattura",
    response_model=InvoiceDetail,
)
async def update_invoice(
    invoice_id: uuid.UUID,
    invoice_data: InvoiceStatusUpdate,
    current_user: User = Depends(FinanceManager),
    db: AsyncSession = Depends(get_db),
) -> InvoiceDetail:
    """
    Aggiorna stato, scadenza o note.

    Il passaggio manuale a 'paid' registra come ricavo solo il residuo
    non ancora incassato.
    """
    invoice = await invoice_service.update_status(db, current_user.tenant_id, invoice_id, invoice_data)
    return InvoiceDetail.model_validate(invoice)


@router.delete(
    "/invoices/{invoice_id}",
    name="fattura_elimina",
    summary="Elimina fattura",
    description="Ammessa solo senza incassi; le ore tornano da fatturare.",
    status_code=status.HTTP_204_NO_CONTENT,
)
async def delete_invoice(
    invoice_id: uuid.UUID,
    current_user: User = Depends(FinanceManager),
    db: AsyncSession = Depends(get_db),
) -> None:
    await invoice_service.delete(db, current_user.tenant_id, invoice_id)


@router.post(
    "/invoices/{invoice_id}/payment",
    name="fattura_incasso",
    summary="Registra incasso",
    response_model=PaymentResult,
    status_code=status.HTTP_201_CREATED,
)
async def create_payment(
    invoice_id: uuid.UUID,
    payment_data: PaymentCreate,
    current_user: User = Depends(FinanceManager),
    db: AsyncSession = Depends(get_db),
) -> PaymentResult:
    """
    Registra un incasso e il relativo movimento di cassa.

    Quando il totale incassato copre l'importo della fattura, questa
    passa allo stato 'paid'.
    """
    return await invoice_service.record_payment(db, current_user.tenant_id, invoice_id, payment_data)


# -------------------------------------------------------------------
# PDF
# -------------------------------------------------------------------

@router.get(
    "/invoices/{invoice_id}/pdf",
    name="fattura_pdf",
    summary="Scarica PDF fattura",
    response_class=Response,
)
async def get_invoice_pdf(
    invoice_id: uuid.UUID,
    current_user: User = Depends(FinanceViewer),
    db: AsyncSession = Depends(get_db),
) -> Response:
    invoice = await invoice_service.get_by_id(db, current_user.tenant_id, invoice_id)
    tenant = await tenant_service.get_tenant(db, current_user.tenant_id)

    pdf_bytes = await run_in_threadpool(pdf_service.generate_invoice_pdf, invoice, tenant.name)
    filename = f"invoice-{invoice.invoice_number}.pdf"
    return Response(
        content=pdf_bytes,
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.get(
    "/payments/{payment_id}/receipt",
    name="ricevuta_pdf",
    summary="Scarica ricevuta di pagamento",
    response_class=Response,
)
async def get_payment_receipt(
    payment_id: uuid.UUID,
    current_user: User = Depends(FinanceViewer),
    db: AsyncSession = Depends(get_db),
) -> Response:
    payment = await invoice_service.get_payment(db, current_user.tenant_id, payment_id)
    tenant = await tenant_service.get_tenant(db, current_user.tenant_id)

    pdf_bytes = await run_in_threadpool(pdf_service.generate_receipt_pdf, payment, tenant.name)
    filename = f"receipt-{payment.id}.pdf"
    return Response(
        content=pdf_bytes,
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
