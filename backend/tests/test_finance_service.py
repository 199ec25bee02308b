"""
Unit tests per FinanceService e per l'HTML delle fatture.
"""

import datetime
from decimal import Decimal

import pytest

from app.core.exceptions import BusinessValidationError, NotFoundError
from app.schemas.finance import TransactionCreate
from app.schemas.invoice import InvoiceCreate, PaymentCreate
from app.services.finance_service import finance_service, month_bounds
from app.services.invoice_service import invoice_service
from app.services.pdf_service import format_currency, pdf_service

UTC = datetime.timezone.utc
NOW = datetime.datetime(2025, 1, 20, 10, 0, tzinfo=UTC)


def _movement(kind, amount, day, category="Custas"):
    return TransactionCreate(
        type=kind,
        category=category,
        description=f"{category} {amount}",
        amount=Decimal(amount),
        date=datetime.datetime(2025, 1, day, 12, 0, tzinfo=UTC) if day else NOW - datetime.timedelta(days=40),
    )


# ============================================================
# Movimenti e riepilogo
# ============================================================


class TestFinance:
    """Tests per movimenti manuali e dashboard mensile."""

    def test_month_bounds_december(self):
        start, end = month_bounds(datetime.datetime(2024, 12, 15, tzinfo=UTC))
        assert start == datetime.datetime(2024, 12, 1, tzinfo=UTC)
        assert end == datetime.datetime(2025, 1, 1, tzinfo=UTC)

    async def test_dashboard_current_month(self, db, tenant, other_tenant):
        """Test entrate, uscite e saldo del solo mese corrente dello studio."""
        await finance_service.create_transaction(db, tenant.id, _movement("revenue", "1000", 5, "Honorários"))
        await finance_service.create_transaction(db, tenant.id, _movement("expense", "250.50", 10))
        await finance_service.create_transaction(db, tenant.id, _movement("expense", "999", None))
        await finance_service.create_transaction(db, other_tenant.id, _movement("revenue", "5000", 6))

        dashboard = await finance_service.dashboard(db, tenant.id, NOW)

        assert dashboard.revenue == Decimal("1000")
        assert dashboard.expense == Decimal("250.50")
        assert dashboard.balance == Decimal("749.50")
        assert len(dashboard.recent_transactions) == 3
        assert dashboard.recent_transactions[0].type == "expense"

    async def test_list_filters(self, db, tenant):
        await finance_service.create_transaction(db, tenant.id, _movement("revenue", "100", 5))
        await finance_service.create_transaction(db, tenant.id, _movement("expense", "40", 8))

        expenses = await finance_service.list_transactions(db, tenant.id, transaction_type="expense")
        assert [t.amount for t in expenses] == [Decimal("40")]

        window = await finance_service.list_transactions(
            db,
            tenant.id,
            start_date=datetime.datetime(2025, 1, 6, tzinfo=UTC),
            end_date=datetime.datetime(2025, 1, 31, tzinfo=UTC),
        )
        assert len(window) == 1

    async def test_delete_manual_transaction(self, db, tenant, other_tenant):
        transaction = await finance_service.create_transaction(db, tenant.id, _movement("expense", "10", 3))

        with pytest.raises(NotFoundError):
            await finance_service.delete_transaction(db, other_tenant.id, transaction.id)

        await finance_service.delete_transaction(db, tenant.id, transaction.id)
        assert await finance_service.list_transactions(db, tenant.id) == []

    async def test_invoice_transaction_protected(self, db, tenant, client_record, entries):
        """Test i movimenti generati da un incasso non sono eliminabili."""
        invoice = await invoice_service.create(
            db,
            tenant.id,
            InvoiceCreate(client_id=client_record.id, time_entry_ids=[e.id for e in entries], hourly_rate=Decimal("100")),
        )
        result = await invoice_service.record_payment(
            db, tenant.id, invoice.id, PaymentCreate(amount=Decimal("100"), payment_method="pix")
        )

        with pytest.raises(BusinessValidationError):
            await finance_service.delete_transaction(db, tenant.id, result.transaction.id)


# ============================================================
# HTML fattura
# ============================================================


class TestInvoiceHtml:
    """Tests per il rendering Jinja2 (senza conversione PDF)."""

    @pytest.mark.parametrize(
        "value, expected",
        [(Decimal("1234.5"), "R$ 1.234,50"), (Decimal("0"), "R$ 0,00"), (None, "R$ 0,00"), (Decimal("1000000"), "R$ 1.000.000,00")],
    )
    def test_format_currency(self, value, expected):
        assert format_currency(value) == expected

    async def test_invoice_html(self, db, tenant, client_record, entries):
        invoice = await invoice_service.create(
            db,
            tenant.id,
            InvoiceCreate(client_id=client_record.id, time_entry_ids=[e.id for e in entries], hourly_rate=Decimal("100")),
        )
        await invoice_service.record_payment(
            db, tenant.id, invoice.id, PaymentCreate(amount=Decimal("100"), payment_method="pix")
        )
        invoice = await invoice_service.get_by_id(db, tenant.id, invoice.id)

        html = pdf_service.render_invoice_html(invoice, tenant.name)

        assert "Studio Alfa" in html
        assert "0001" in html
        assert "Cliente Teste Ltda" in html
        assert "Redazione petição inicial" in html
        assert "R$ 350,00" in html
        assert "R$ 250,00" in html
