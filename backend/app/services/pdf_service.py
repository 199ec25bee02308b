"""
Service per la generazione di PDF con WeasyPrint + Jinja2.
Progetto: Gestionale Studio Legale

Fattura e ricevuta di pagamento. L'HTML è prodotto da Jinja2;
WeasyPrint viene importato solo al momento della conversione.
"""

import logging
import os
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Optional

from jinja2 import Environment, FileSystemLoader, select_autoescape

from app.core.config import settings
from app.core.exceptions import ServiceUnavailableError
from app.models.invoice import Invoice, Payment
from app.models.mixins import as_utc

logger = logging.getLogger(__name__)

# Path alle cartelle templates
BASE_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
TEMPLATES_DIR = os.path.join(BASE_DIR, "templates")


def _get_weasyprint():
    """Lazy import of weasyprint to handle missing system libraries gracefully."""
    try:
        from weasyprint import CSS, HTML
        return HTML, CSS
    except OSError as e:
        logger.error("WeasyPrint non disponibile: %s", e)
        raise ServiceUnavailableError(
            "Generazione PDF non disponibile: librerie di sistema di WeasyPrint mancanti"
        ) from e


def format_currency(value: Optional[Decimal]) -> str:
    """Importo in formato brasiliano (R$ 1.234,56)."""
    amount = Decimal(value or 0)
    text = f"{amount:,.2f}".replace(",", "X").replace(".", ",").replace("X", ".")
    return f"R$ {text}"


def format_day(value: Optional[datetime]) -> str:
    if value is None:
        return ""
    if isinstance(value, datetime):
        value = as_utc(value)
    return value.strftime("%d/%m/%Y")


class PdfService:
    """
    Genera PDF da template HTML/CSS usando WeasyPrint + Jinja2.
    Il chiamante passa una fattura con client, items e payments caricati.
    """

    def __init__(self):
        self.env = Environment(
            loader=FileSystemLoader(TEMPLATES_DIR),
            autoescape=select_autoescape(["html"]),
        )
        self.env.filters["currency"] = format_currency
        self.env.filters["day"] = format_day

    def _firm(self, firm_name: Optional[str]) -> dict[str, Any]:
        return {
            "name": firm_name or settings.invoice_firm_name,
            "tax_id": settings.invoice_firm_tax_id,
            "address": settings.invoice_firm_address,
            "email": settings.invoice_firm_email,
            "logo_path": settings.invoice_logo_path,
        }

    def render_invoice_html(self, invoice: Invoice, firm_name: Optional[str] = None) -> str:
        template = self.env.get_template("invoice_template.html")
        return template.render(
            firm=self._firm(firm_name),
            invoice=invoice,
            client=invoice.client,
            items=invoice.items,
            payments=invoice.payments,
            paid_amount=invoice.paid_amount,
            remaining_amount=invoice.remaining_amount,
            oggi=date.today().strftime("%d/%m/%Y"),
        )

    def render_receipt_html(self, payment: Payment, firm_name: Optional[str] = None) -> str:
        template = self.env.get_template("receipt_template.html")
        return template.render(
            firm=self._firm(firm_name),
            payment=payment,
            invoice=payment.invoice,
            client=payment.invoice.client if payment.invoice else None,
            oggi=date.today().strftime("%d/%m/%Y"),
        )

    def _to_pdf(self, html_out: str) -> bytes:
        HTML, CSS = _get_weasyprint()
        css = CSS(filename=os.path.join(TEMPLATES_DIR, "invoice_style.css"))
        return HTML(string=html_out, base_url=TEMPLATES_DIR).write_pdf(stylesheets=[css])

    def generate_invoice_pdf(self, invoice: Invoice, firm_name: Optional[str] = None) -> bytes:
        """
        Genera il PDF di una fattura.

        Returns:
            bytes: PDF binario pronto per il download
        """
        return self._to_pdf(self.render_invoice_html(invoice, firm_name))

    def generate_receipt_pdf(self, payment: Payment, firm_name: Optional[str] = None) -> bytes:
        """Genera la ricevuta di un singolo incasso."""
        return self._to_pdf(self.render_receipt_html(payment, firm_name))


pdf_service = PdfService()
