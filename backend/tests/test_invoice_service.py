"""
Unit tests for InvoiceService.

Emissione da ore, numerazione, incassi, saldo manuale ed eliminazione,
verificati su un database SQLite reale.
"""

import datetime
import uuid
from decimal import Decimal

import pytest
from pydantic import ValidationError
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from app.core.exceptions import BusinessValidationError, ConflictError, NotFoundError
from app.models.invoice import Invoice, InvoiceItem, Payment
from app.models.time_entry import TimeEntry
from app.models.transaction import Transaction
from app.schemas.invoice import InvoiceCreate, InvoiceStatusUpdate, PaymentCreate
from app.services.invoice_service import (
    CATEGORY_FEES,
    CATEGORY_INVOICE_PAYMENT,
    invoice_service,
)
from app.services.time_entry_service import time_entry_service

from tests.conftest import make_client, make_entry, make_user

UTC = datetime.timezone.utc


async def _create(db, tenant, client, entries, rate="100") -> Invoice:
    return await invoice_service.create(
        db,
        tenant.id,
        InvoiceCreate(
            client_id=client.id,
            time_entry_ids=[e.id for e in entries],
            hourly_rate=Decimal(rate),
        ),
    )


# ============================================================
# Emissione fattura
# ============================================================


class TestInvoiceCreation:
    """Tests per la creazione fattura da ore lavorate."""

    async def test_totals_and_items(self, db, tenant, client_record, entries):
        """Test 2.0h + 1.5h a 100 → subtotale e totale 350, righe 200 e 150."""
        invoice = await _create(db, tenant, client_record, entries)

        assert invoice.subtotal == Decimal("350.00")
        assert invoice.total_amount == Decimal("350.00")
        assert invoice.tax_amount == Decimal("0")
        assert invoice.status == "pending"
        assert sorted(item.total_price for item in invoice.items) == [Decimal("150.00"), Decimal("200.00")]
        assert {item.unit_price for item in invoice.items} == {Decimal("100.00")}

    @pytest.mark.parametrize("rate", ["100.004", "0.001", "0"])
    def test_rate_precision_rejected(self, rate):
        """Test tariffa con più di due decimali o non positiva: rifiutata, non arrotondata."""
        with pytest.raises(ValidationError):
            InvoiceCreate(client_id=uuid.uuid4(), time_entry_ids=[uuid.uuid4()], hourly_rate=Decimal(rate))

    async def test_rate_with_cents(self, db, tenant, client_record, entries):
        """Test tariffa 100.20: 3.5h → 350.70."""
        invoice = await _create(db, tenant, client_record, entries, rate="100.20")
        assert invoice.total_amount == Decimal("350.70")

    async def test_first_number_is_0001(self, db, tenant, client_record, entries):
        """Test prima fattura dello studio numerata 0001."""
        invoice = await _create(db, tenant, client_record, entries)
        assert invoice.invoice_number == "0001"

    async def test_number_increments(self, db, tenant, admin, client_record, entries):
        """Test numero successivo = precedente + 1."""
        await _create(db, tenant, client_record, entries[:1])
        second = await _create(db, tenant, client_record, entries[1:])
        assert second.invoice_number == "0002"

    async def test_numbering_is_per_tenant(self, db, tenant, other_tenant, client_record, entries):
        """Test la numerazione di uno studio non influenza l'altro."""
        await _create(db, tenant, client_record, entries)

        other_user = await make_user(db, other_tenant)
        other_client = await make_client(db, other_tenant, "Outro Cliente")
        other_entry = await make_entry(db, other_user, other_client, "1.0")
        invoice = await _create(db, other_tenant, other_client, [other_entry])

        assert invoice.invoice_number == "0001"

    async def test_default_due_date(self, db, tenant, client_record, entries):
        """Test scadenza di default a 14 giorni dall'emissione."""
        invoice = await _create(db, tenant, client_record, entries)
        delta = invoice.due_date - invoice.issue_date
        assert delta == datetime.timedelta(days=14)

    async def test_entries_linked_and_not_unbilled(self, db, tenant, client_record, entries):
        """Test tutte le ore collegate e assenti dall'elenco da fatturare."""
        invoice = await _create(db, tenant, client_record, entries)

        assert {e.id for e in invoice.time_entries} == {e.id for e in entries}
        unbilled = await time_entry_service.list_unbilled(db, tenant.id, client_record.id)
        assert unbilled == []

    async def test_already_billed_entry_rejected(self, db, tenant, admin, client_record, entries):
        """Test ore già fatturate → 400 e nessuna nuova fattura."""
        await _create(db, tenant, client_record, entries[:1])
        fresh = await make_entry(db, admin, client_record, "3.0")

        with pytest.raises(BusinessValidationError):
            await _create(db, tenant, client_record, [entries[0], fresh])

        count = len((await db.execute(select(Invoice))).scalars().all())
        assert count == 1
        unbilled = await time_entry_service.list_unbilled(db, tenant.id, client_record.id)
        assert {e.id for e in unbilled} == {entries[1].id, fresh.id}

    async def test_unknown_entry_rejected(self, db, tenant, client_record, entries):
        """Test ID inesistente → 400, ore invariate."""
        with pytest.raises(BusinessValidationError):
            await invoice_service.create(
                db,
                tenant.id,
                InvoiceCreate(
                    client_id=client_record.id,
                    time_entry_ids=[entries[0].id, uuid.uuid4()],
                    hourly_rate=Decimal("100"),
                ),
            )

        unbilled = await time_entry_service.list_unbilled(db, tenant.id, client_record.id)
        assert len(unbilled) == 2

    async def test_entry_of_other_client_rejected(self, db, tenant, admin, client_record, entries):
        """Test ore di un altro cliente → 400."""
        other_client = await make_client(db, tenant, "Outro Cliente")
        foreign = await make_entry(db, admin, other_client, "1.0")

        with pytest.raises(BusinessValidationError):
            await _create(db, tenant, client_record, [entries[0], foreign])

    async def test_client_of_other_tenant_not_found(self, db, tenant, other_tenant, entries):
        """Test cliente di un altro studio → 404."""
        foreign_client = await make_client(db, other_tenant, "Cliente Beta")
        with pytest.raises(NotFoundError):
            await _create(db, tenant, foreign_client, entries)

    async def test_non_numeric_previous_number(self, db, tenant, client_record, entries):
        """Test numerazione bloccata se l'ultimo numero non è numerico."""
        db.add(
            Invoice(
                tenant_id=tenant.id,
                client_id=client_record.id,
                invoice_number="2024/A",
                issue_date=datetime.datetime(2024, 12, 1, tzinfo=UTC),
                due_date=datetime.datetime(2024, 12, 15, tzinfo=UTC),
                subtotal=Decimal("10"),
                tax_amount=Decimal("0"),
                total_amount=Decimal("10"),
                status="pending",
            )
        )
        await db.commit()

        with pytest.raises(ConflictError):
            await _create(db, tenant, client_record, entries)


# ============================================================
# Incassi
# ============================================================


class TestPayments:
    """Tests per la registrazione degli incassi."""

    async def test_partial_payment_keeps_status(self, db, tenant, client_record, entries):
        """Test incasso parziale: stato invariato, un movimento revenue collegato."""
        invoice = await _create(db, tenant, client_record, entries)

        result = await invoice_service.record_payment(
            db, tenant.id, invoice.id, PaymentCreate(amount=Decimal("100"), payment_method="pix")
        )

        assert result.invoice.status == "pending"
        assert result.invoice.paid_at is None
        assert result.total_paid == Decimal("100")
        assert result.payment.transaction_id == result.transaction.id
        assert result.transaction.type == "revenue"
        assert result.transaction.category == CATEGORY_INVOICE_PAYMENT
        assert result.transaction.description == "Pagamento fatura #0001"
        assert result.transaction.invoice_id == invoice.id

    async def test_full_payment_marks_paid(self, db, tenant, client_record, entries):
        """Test incassi che coprono il totale → paid con paid_at = data incasso."""
        invoice = await _create(db, tenant, client_record, entries)
        paid_on = datetime.datetime(2025, 2, 1, 10, 0, tzinfo=UTC)

        await invoice_service.record_payment(
            db, tenant.id, invoice.id, PaymentCreate(amount=Decimal("150"), payment_method="pix")
        )
        result = await invoice_service.record_payment(
            db,
            tenant.id,
            invoice.id,
            PaymentCreate(amount=Decimal("200"), payment_method="boleto", payment_date=paid_on),
        )

        assert result.total_paid == Decimal("350")
        assert result.invoice.status == "paid"
        assert result.invoice.paid_at.replace(tzinfo=UTC) == paid_on
        assert result.invoice.payment_method == "boleto"

        transactions = (
            await db.execute(select(Transaction).where(Transaction.invoice_id == invoice.id))
        ).scalars().all()
        assert len(transactions) == 2

    async def test_overpayment_accepted(self, db, tenant, client_record, entries):
        """Test importo eccedente accettato senza errori."""
        invoice = await _create(db, tenant, client_record, entries)
        result = await invoice_service.record_payment(
            db, tenant.id, invoice.id, PaymentCreate(amount=Decimal("500"), payment_method="ted")
        )
        assert result.invoice.status == "paid"
        assert result.total_paid == Decimal("500")

    async def test_payment_on_foreign_invoice(self, db, tenant, other_tenant, client_record, entries):
        """Test fattura di un altro studio → 404."""
        invoice = await _create(db, tenant, client_record, entries)
        with pytest.raises(NotFoundError):
            await invoice_service.record_payment(
                db, other_tenant.id, invoice.id, PaymentCreate(amount=Decimal("10"), payment_method="pix")
            )


# ============================================================
# Saldo manuale
# ============================================================


class TestStatusUpdate:
    """Tests per il PATCH di stato."""

    async def test_manual_paid_records_outstanding_only(self, db, tenant, client_record, entries):
        """Test saldo manuale dopo incasso parziale: movimento solo per il residuo."""
        invoice = await _create(db, tenant, client_record, entries)
        await invoice_service.record_payment(
            db, tenant.id, invoice.id, PaymentCreate(amount=Decimal("100"), payment_method="pix")
        )

        updated = await invoice_service.update_status(
            db, tenant.id, invoice.id, InvoiceStatusUpdate(status="paid")
        )

        assert updated.status == "paid"
        assert updated.paid_at is not None
        fees = (
            await db.execute(select(Transaction).where(Transaction.category == CATEGORY_FEES))
        ).scalars().all()
        assert len(fees) == 1
        assert fees[0].amount == Decimal("250.00")
        assert fees[0].description == "Fatura #0001 - Cliente Teste Ltda"

    async def test_manual_paid_twice_records_once(self, db, tenant, client_record, entries):
        """Test un secondo PATCH a paid non crea altri movimenti."""
        invoice = await _create(db, tenant, client_record, entries)
        await invoice_service.update_status(db, tenant.id, invoice.id, InvoiceStatusUpdate(status="paid"))
        await invoice_service.update_status(db, tenant.id, invoice.id, InvoiceStatusUpdate(status="paid"))

        fees = (
            await db.execute(select(Transaction).where(Transaction.category == CATEGORY_FEES))
        ).scalars().all()
        assert len(fees) == 1
        assert fees[0].amount == Decimal("350.00")

    async def test_other_status_clears_paid_at(self, db, tenant, client_record, entries):
        """Test uno stato diverso da paid azzera paid_at."""
        invoice = await _create(db, tenant, client_record, entries)
        await invoice_service.update_status(db, tenant.id, invoice.id, InvoiceStatusUpdate(status="paid"))

        updated = await invoice_service.update_status(
            db, tenant.id, invoice.id, InvoiceStatusUpdate(status="overdue", notes="Cobrar")
        )
        assert updated.status == "overdue"
        assert updated.paid_at is None
        assert updated.notes == "Cobrar"

    async def test_reopen_and_pay_again_records_once(self, db, tenant, client_record, entries):
        """Test paid → pending → paid: il ricavo resta pari al totale."""
        invoice = await _create(db, tenant, client_record, entries)
        for status in ("paid", "pending", "paid"):
            await invoice_service.update_status(db, tenant.id, invoice.id, InvoiceStatusUpdate(status=status))

        fees = (
            await db.execute(select(Transaction.amount).where(Transaction.category == CATEGORY_FEES))
        ).scalars().all()
        assert fees == [Decimal("350.00")]

    async def test_reopen_after_partial_payment(self, db, tenant, client_record, entries):
        """Test incasso 100, saldo manuale, riapertura e nuovo saldo: ricavi totali 350."""
        invoice = await _create(db, tenant, client_record, entries)
        await invoice_service.record_payment(
            db, tenant.id, invoice.id, PaymentCreate(amount=Decimal("100"), payment_method="pix")
        )
        for status in ("paid", "overdue", "paid"):
            await invoice_service.update_status(db, tenant.id, invoice.id, InvoiceStatusUpdate(status=status))

        rows = (
            await db.execute(
                select(Transaction.category, Transaction.amount).where(Transaction.invoice_id == invoice.id)
            )
        ).all()
        assert sorted(rows) == [(CATEGORY_FEES, Decimal("250.00")), (CATEGORY_INVOICE_PAYMENT, Decimal("100.00"))]


# ============================================================
# Eliminazione
# ============================================================


class TestInvoiceDeletion:
    """Tests per l'eliminazione fattura."""

    async def test_delete_with_payment_rejected(self, db, tenant, client_record, entries):
        """Test fattura con incassi → 400, fattura, righe e incassi intatti."""
        invoice = await _create(db, tenant, client_record, entries)
        await invoice_service.record_payment(
            db, tenant.id, invoice.id, PaymentCreate(amount=Decimal("50"), payment_method="pix")
        )

        with pytest.raises(BusinessValidationError):
            await invoice_service.delete(db, tenant.id, invoice.id)

        reloaded = await invoice_service.get_by_id(db, tenant.id, invoice.id)
        assert len(reloaded.items) == 2
        assert len(reloaded.payments) == 1

    async def test_delete_releases_entries(self, db, tenant, client_record, entries):
        """Test eliminazione: righe rimosse e ore di nuovo da fatturare."""
        invoice = await _create(db, tenant, client_record, entries)

        await invoice_service.delete(db, tenant.id, invoice.id)

        assert (await db.execute(select(Invoice))).scalars().all() == []
        assert (await db.execute(select(InvoiceItem))).scalars().all() == []
        unbilled = await time_entry_service.list_unbilled(db, tenant.id, client_record.id)
        assert {e.id for e in unbilled} == {e.id for e in entries}

    async def test_delete_manually_paid_removes_fee(self, db, tenant, client_record, entries):
        """Test fattura saldata a mano ed eliminata: nessun ricavo resta nel registro."""
        invoice = await _create(db, tenant, client_record, entries)
        await invoice_service.update_status(db, tenant.id, invoice.id, InvoiceStatusUpdate(status="paid"))

        await invoice_service.delete(db, tenant.id, invoice.id)

        assert (await db.execute(select(Transaction))).scalars().all() == []
        assert (await db.execute(select(Invoice))).scalars().all() == []

    async def test_entry_cannot_reference_missing_invoice(self, db, entries):
        """Test vincolo FK: un'ora non può puntare a una fattura inesistente."""
        entries[0].invoice_id = uuid.uuid4()
        with pytest.raises(IntegrityError):
            await db.commit()
        await db.rollback()

    async def test_delete_foreign_invoice(self, db, tenant, other_tenant, client_record, entries):
        """Test fattura di un altro studio → 404."""
        invoice = await _create(db, tenant, client_record, entries)
        with pytest.raises(NotFoundError):
            await invoice_service.delete(db, other_tenant.id, invoice.id)
        assert (await db.execute(select(Payment))).scalars().all() == []
