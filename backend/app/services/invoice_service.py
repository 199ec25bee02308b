"""
Service Layer per la Fatturazione
Progetto: Gestionale Studio Legale

Definisce la logica di business per la gestione delle fatture:
emissione dalle ore lavorate, registrazione incassi con movimento
contabile collegato, cambi di stato manuali ed eliminazione.
"""

import logging
import uuid
from datetime import datetime, timedelta
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional

from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.core.config import settings
from app.core.exceptions import (
    BusinessValidationError,
    ConflictError,
    NotFoundError,
)
from app.models.client import Client
from app.models.invoice import Invoice, InvoiceItem, InvoiceStatus, Payment
from app.models.mixins import utcnow
from app.models.time_entry import TimeEntry
from app.models.transaction import (
    CATEGORY_FEES,
    CATEGORY_INVOICE_PAYMENT,
    Transaction,
    TransactionStatus,
    TransactionType,
)
from app.schemas.finance import TransactionRead
from app.schemas.invoice import (
    InvoiceCreate,
    InvoiceList,
    InvoiceListItem,
    InvoiceRead,
    InvoiceStatusUpdate,
    PaymentCreate,
    PaymentRead,
    PaymentResult,
)

# Logger per questo modulo
logger = logging.getLogger(__name__)

CENT = Decimal("0.01")


def _money(value: Decimal) -> Decimal:
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


class InvoiceService:
    """
    Service per la gestione delle operazioni sulle fatture.

    Fornisce metodi asincroni per interagire con il database
    in modo centralizzato, senza dipendenze da FastAPI.

    Implementa:
    - Emissione fattura dalle ore non fatturate di un cliente
    - Numerazione progressiva per studio
    - Incassi parziali con movimento contabile per ogni incasso
    - Saldo manuale con riconoscimento del solo residuo
    - Eliminazione con rilascio delle ore consumate
    """

    async def create(
        self,
        db: AsyncSession,
        tenant_id: uuid.UUID,
        data: InvoiceCreate,
    ) -> Invoice:
        """
        Emette una fattura a partire dalle ore lavorate.

        Steps:
        1. Verifica che il cliente appartenga allo studio
        2. Carica le ore richieste: dello studio, del cliente, non fatturate
        3. Se il conteggio non coincide con gli ID distinti richiesti → 400
        4. Calcola importo = Σ ore × tariffa
        5. Genera il numero progressivo
        6. Crea Invoice, una InvoiceItem per ora registrata e collega le ore
        7. Commit unico: qualsiasi errore annulla tutto

        Args:
            db: Sessione database
            tenant_id: Studio corrente
            data: Dati per la creazione della fattura

        Returns:
            Invoice: La fattura creata con relazioni caricate

        Raises:
            NotFoundError: Cliente non trovato
            BusinessValidationError: Ore non valide, di altri o già fatturate
            ConflictError: Numero fattura già assegnato da una richiesta concorrente
        """
        # Step 1: Cliente
        client = await db.get(Client, data.client_id)
        if client is None or client.tenant_id != tenant_id:
            raise NotFoundError(f"Cliente {data.client_id} non trovato")

        # Step 2-3: Ore da fatturare (tutte o nessuna)
        requested_ids = set(data.time_entry_ids)
        result = await db.execute(
            select(TimeEntry)
            .where(
                TimeEntry.id.in_(list(requested_ids)),
                TimeEntry.tenant_id == tenant_id,
                TimeEntry.client_id == data.client_id,
                TimeEntry.invoice_id.is_(None),
            )
            .order_by(TimeEntry.date, TimeEntry.created_at)
        )
        entries = list(result.scalars().all())

        if len(entries) != len(requested_ids):
            raise BusinessValidationError(
                "Alcune ore non sono valide, appartengono a un altro cliente "
                "o sono già state fatturate"
            )

        # Step 4: Importi
        rate = _money(data.hourly_rate)
        lines = [(entry, _money(entry.hours * rate)) for entry in entries]
        amount = sum((total for _, total in lines), Decimal("0"))

        # Step 5: Numerazione
        invoice_number = await self._generate_invoice_number(db, tenant_id)

        # Step 6: Fattura, righe e collegamento ore
        issue_date = utcnow()
        invoice = Invoice(
            tenant_id=tenant_id,
            client_id=client.id,
            invoice_number=invoice_number,
            issue_date=issue_date,
            due_date=data.due_date or issue_date + timedelta(days=settings.invoice_due_days),
            subtotal=amount,
            tax_amount=Decimal("0"),
            total_amount=amount,
            status=InvoiceStatus.PENDING.value,
            notes=data.notes,
        )
        db.add(invoice)
        await db.flush()

        for entry, total in lines:
            db.add(
                InvoiceItem(
                    invoice_id=invoice.id,
                    description=entry.description,
                    quantity=entry.hours,
                    unit_price=rate,
                    total_price=total,
                )
            )
            entry.invoice_id = invoice.id

        # Step 7: Commit
        try:
            await db.commit()
        except IntegrityError as e:
            await db.rollback()
            logger.warning("Collisione numero fattura %s (studio %s): %s", invoice_number, tenant_id, e)
            raise ConflictError(
                f"Il numero fattura {invoice_number} è stato appena assegnato. Riprovare."
            )

        logger.info(
            "Emessa fattura %s per %s (%d righe, totale %s)",
            invoice_number,
            client.name,
            len(lines),
            amount,
        )
        return await self.get_by_id(db, tenant_id, invoice.id)

    async def _generate_invoice_number(
        self,
        db: AsyncSession,
        tenant_id: uuid.UUID,
    ) -> str:
        """
        Genera il numero fattura progressivo dello studio.

        Formato: NNNN (es. 0001). Legge l'ultima fattura creata e
        incrementa; il vincolo univoco (tenant_id, invoice_number)
        intercetta le richieste concorrenti.

        Raises:
            ConflictError: Se l'ultimo numero non è numerico
        """
        stmt = (
            select(Invoice.invoice_number)
            .where(Invoice.tenant_id == tenant_id)
            .order_by(Invoice.created_at.desc(), Invoice.invoice_number.desc())
            .limit(1)
        )
        result = await db.execute(stmt)
        last_number = result.scalar_one_or_none()

        if last_number is None:
            next_number = 1
        else:
            try:
                next_number = int(last_number) + 1
            except ValueError:
                raise ConflictError(
                    f"Impossibile proseguire la numerazione dopo '{last_number}'"
                )

        return str(next_number).zfill(settings.invoice_number_digits)

    async def get_all(
        self,
        db: AsyncSession,
        tenant_id: uuid.UUID,
        status_filter: Optional[str] = None,
        client_id: Optional[uuid.UUID] = None,
        page: int = 1,
        per_page: int = 50,
    ) -> InvoiceList:
        """
        Recupera la lista paginata delle fatture, più recenti prima.

        Args:
            db: Sessione database
            tenant_id: Studio corrente
            status_filter: Filtro per stato memorizzato
            client_id: Filtro per cliente
            page: Numero pagina
            per_page: Elementi per pagina
        """
        conditions = [Invoice.tenant_id == tenant_id]
        if status_filter:
            conditions.append(Invoice.status == status_filter)
        if client_id:
            conditions.append(Invoice.client_id == client_id)

        count_result = await db.execute(select(func.count(Invoice.id)).where(*conditions))
        total = count_result.scalar() or 0

        stmt = (
            select(Invoice)
            .where(*conditions)
            .options(selectinload(Invoice.items))
            .order_by(Invoice.created_at.desc())
            .offset((page - 1) * per_page)
            .limit(per_page)
        )
        result = await db.execute(stmt)
        invoices = result.scalars().all()

        items = [
            InvoiceListItem.model_validate(inv).model_copy(update={"items_count": len(inv.items)})
            for inv in invoices
        ]
        return InvoiceList(items=items, total=total, page=page, per_page=per_page)

    async def get_by_id(
        self,
        db: AsyncSession,
        tenant_id: uuid.UUID,
        invoice_id: uuid.UUID,
    ) -> Invoice:
        """
        Recupera una fattura dello studio con tutte le relazioni caricate.

        Raises:
            NotFoundError: Fattura non trovata
        """
        stmt = (
            select(Invoice)
            .where(Invoice.id == invoice_id, Invoice.tenant_id == tenant_id)
            .options(
                selectinload(Invoice.items),
                selectinload(Invoice.payments),
                selectinload(Invoice.time_entries),
            )
            .execution_options(populate_existing=True)
        )
        result = await db.execute(stmt)
        invoice = result.scalar_one_or_none()

        if not invoice:
            raise NotFoundError(f"Fattura {invoice_id} non trovata")

        return invoice

    async def _booked_revenue(self, db: AsyncSession, invoice_id: uuid.UUID) -> Decimal:
        """Somma dei movimenti di ricavo già collegati alla fattura."""
        result = await db.execute(
            select(func.coalesce(func.sum(Transaction.amount), 0)).where(
                Transaction.invoice_id == invoice_id,
                Transaction.transaction_type == TransactionType.REVENUE.value,
            )
        )
        return Decimal(str(result.scalar_one()))

    async def update_status(
        self,
        db: AsyncSession,
        tenant_id: uuid.UUID,
        invoice_id: uuid.UUID,
        data: InvoiceStatusUpdate,
    ) -> Invoice:
        """
        Aggiorna stato, scadenza o note di una fattura.

        Il passaggio manuale a 'paid' registra paid_at e un movimento
        "Honorários" pari al residuo non ancora contabilizzato (totale meno
        i ricavi già collegati alla fattura, incassi e saldi manuali
        precedenti); nessun movimento se la fattura era già saldata o non
        resta nulla.
        Ogni altro stato azzera paid_at.

        Raises:
            NotFoundError: Fattura non trovata
        """
        invoice = await self.get_by_id(db, tenant_id, invoice_id)

        if data.due_date is not None:
            invoice.due_date = data.due_date
        if data.notes is not None:
            invoice.notes = data.notes

        if data.status is not None:
            new_status = InvoiceStatus(data.status).value
            was_paid = invoice.status == InvoiceStatus.PAID.value

            if new_status == InvoiceStatus.PAID.value:
                if not was_paid:
                    invoice.paid_at = utcnow()
                    outstanding = invoice.total_amount - await self._booked_revenue(db, invoice.id)
                    if outstanding > 0:
                        db.add(
                            Transaction(
                                tenant_id=tenant_id,
                                transaction_type=TransactionType.REVENUE.value,
                                category=CATEGORY_FEES,
                                description=f"Fatura #{invoice.invoice_number} - {invoice.client.name}",
                                amount=outstanding,
                                date=invoice.paid_at,
                                status=TransactionStatus.PAID.value,
                                invoice_id=invoice.id,
                            )
                        )
                        logger.info(
                            "Saldo manuale fattura %s: riconosciuti %s",
                            invoice.invoice_number,
                            outstanding,
                        )
            else:
                invoice.paid_at = None

            invoice.status = new_status

        await db.commit()
        return await self.get_by_id(db, tenant_id, invoice_id)

    async def delete(
        self,
        db: AsyncSession,
        tenant_id: uuid.UUID,
        invoice_id: uuid.UUID,
    ) -> None:
        """
        Elimina una fattura.

        Solo se non ha incassi registrati. Nella stessa transazione le ore
        consumate tornano non fatturate e i movimenti "Honorários" di un
        saldo manuale vengono eliminati.

        Raises:
            NotFoundError: Fattura non trovata
            BusinessValidationError: La fattura ha pagamenti registrati
        """
        invoice = await self.get_by_id(db, tenant_id, invoice_id)

        if invoice.payments:
            raise BusinessValidationError(
                "Impossibile eliminare una fattura con pagamenti registrati."
            )

        released = len(invoice.time_entries)
        await db.execute(
            update(TimeEntry)
            .where(TimeEntry.invoice_id == invoice.id, TimeEntry.tenant_id == tenant_id)
            .values(invoice_id=None)
            .execution_options(synchronize_session=False)
        )
        # Senza incassi restano solo i ricavi registrati dal saldo manuale
        await db.execute(
            delete(Transaction)
            .where(Transaction.invoice_id == invoice.id, Transaction.tenant_id == tenant_id)
            .execution_options(synchronize_session=False)
        )

        # Elimina fattura (cascade elimina anche items)
        await db.delete(invoice)
        await db.commit()

        logger.info("Eliminata fattura %s, rilasciate %d registrazioni ore", invoice.invoice_number, released)

    # ------------------------------------------------------------
    # Incassi
    # ------------------------------------------------------------
    async def record_payment(
        self,
        db: AsyncSession,
        tenant_id: uuid.UUID,
        invoice_id: uuid.UUID,
        data: PaymentCreate,
    ) -> PaymentResult:
        """
        Registra un incasso su una fattura.

        Steps:
        1. Verifica che la fattura appartenga allo studio
        2. Crea Payment e Transaction revenue "Receita - Faturas"
        3. Collega il Payment alla Transaction
        4. Se Σ incassi ≥ totale: stato 'paid', paid_at e metodo
        5. Commit unico

        Gli importi eccedenti il totale sono accettati.

        Raises:
            NotFoundError: Fattura non trovata
        """
        invoice = await self.get_by_id(db, tenant_id, invoice_id)

        prior_paid = invoice.paid_amount
        payment_date = data.payment_date or utcnow()

        payment = Payment(
            tenant_id=tenant_id,
            invoice_id=invoice.id,
            amount=data.amount,
            payment_method=data.payment_method,
            payment_date=payment_date,
            notes=data.notes,
        )
        transaction = Transaction(
            tenant_id=tenant_id,
            transaction_type=TransactionType.REVENUE.value,
            category=CATEGORY_INVOICE_PAYMENT,
            description=f"Pagamento fatura #{invoice.invoice_number}",
            amount=data.amount,
            date=payment_date,
            status=TransactionStatus.PAID.value,
            invoice_id=invoice.id,
        )
        db.add_all([payment, transaction])
        await db.flush()
        payment.transaction_id = transaction.id

        total_paid = prior_paid + data.amount
        if total_paid >= invoice.total_amount and invoice.status != InvoiceStatus.PAID.value:
            invoice.status = InvoiceStatus.PAID.value
            invoice.paid_at = payment_date
            invoice.payment_method = data.payment_method

        await db.commit()

        logger.info(
            "Incasso di %s su fattura %s (totale incassato %s su %s)",
            data.amount,
            invoice.invoice_number,
            total_paid,
            invoice.total_amount,
        )
        return PaymentResult(
            payment=PaymentRead.model_validate(payment),
            transaction=TransactionRead.model_validate(transaction),
            invoice=InvoiceRead.model_validate(invoice),
            total_paid=total_paid,
        )

    async def get_payment(
        self,
        db: AsyncSession,
        tenant_id: uuid.UUID,
        payment_id: uuid.UUID,
    ) -> Payment:
        """
        Recupera un incasso con la sua fattura (per la ricevuta).

        Raises:
            NotFoundError: Incasso non trovato
        """
        stmt = (
            select(Payment)
            .where(Payment.id == payment_id, Payment.tenant_id == tenant_id)
            .options(selectinload(Payment.invoice))
        )
        result = await db.execute(stmt)
        payment = result.scalar_one_or_none()
        if payment is None:
            raise NotFoundError(f"Pagamento {payment_id} non trovato")
        return payment


invoice_service = InvoiceService()
