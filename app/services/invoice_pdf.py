"""PDF rendering for tenant invoices (fpdf2)."""
import logging
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Optional, List, Dict, Any

from fpdf import FPDF
from fpdf.enums import XPos, YPos

logger = logging.getLogger(__name__)


@dataclass
class InvoicePDFData:
    """Everything printed on an invoice PDF."""
    invoice_number: str
    invoice_date: date
    due_date: date
    client_name: str
    subtotal: Decimal
    tax_rate: Decimal
    tax_amount: Decimal
    total_amount: Decimal
    items: List[Dict[str, Any]] = field(default_factory=list)
    client_email: Optional[str] = None
    client_phone: Optional[str] = None
    client_address: Optional[str] = None
    property_address: Optional[str] = None
    property_unit: Optional[str] = None
    property_type: Optional[str] = None
    payment_terms: Optional[str] = None
    notes: Optional[str] = None
    company_name: str = "AXIS CRM"
    company_tagline: str = "Real Estate Management"

    @classmethod
    def from_invoice(cls, invoice, prop=None) -> "InvoicePDFData":
        """Build PDF data from an Invoice row (and optionally its Property)."""
        return cls(
            invoice_number=invoice.invoice_number,
            invoice_date=invoice.invoice_date,
            due_date=invoice.due_date,
            client_name=invoice.client_name,
            client_email=invoice.client_email,
            client_phone=invoice.client_phone,
            client_address=invoice.client_address,
            property_address=invoice.property_address,
            property_unit=invoice.property_unit,
            property_type=prop.property_type if prop else None,
            items=list(invoice.items or []),
            subtotal=invoice.subtotal,
            tax_rate=invoice.tax_rate,
            tax_amount=invoice.tax_amount,
            total_amount=invoice.total_amount,
            payment_terms=invoice.payment_terms,
            notes=invoice.notes,
            company_name=invoice.company_name or "AXIS CRM",
            company_tagline=invoice.company_tagline or "Real Estate Management",
        )


def _latin1(value: Any) -> str:
    """Core PDF fonts only cover latin-1."""
    return str(value).encode("latin-1", "replace").decode("latin-1")


def _money(value: Any) -> str:
    return f"${Decimal(str(value or 0)):,.2f}"


class InvoicePDFRenderer:
    """Renders invoices as single-document PDFs."""

    def render(self, data: InvoicePDFData) -> bytes:
        """
        Render an invoice.

        Returns:
            PDF file content
        """
        pdf = FPDF()
        pdf.set_auto_page_break(auto=True, margin=15)
        pdf.add_page()

        # Header
        pdf.set_font("Helvetica", "B", 18)
        pdf.cell(0, 10, _latin1(data.company_name), new_x=XPos.LMARGIN, new_y=YPos.NEXT)
        pdf.set_font("Helvetica", "", 10)
        pdf.cell(0, 6, _latin1(data.company_tagline), new_x=XPos.LMARGIN, new_y=YPos.NEXT)
        pdf.ln(6)

        pdf.set_font("Helvetica", "B", 14)
        pdf.cell(0, 8, _latin1(f"INVOICE {data.invoice_number}"), new_x=XPos.LMARGIN, new_y=YPos.NEXT)
        pdf.set_font("Helvetica", "", 10)
        pdf.cell(0, 6, f"Invoice Date: {data.invoice_date.isoformat()}", new_x=XPos.LMARGIN, new_y=YPos.NEXT)
        pdf.cell(0, 6, f"Due Date: {data.due_date.isoformat()}", new_x=XPos.LMARGIN, new_y=YPos.NEXT)
        pdf.ln(4)

        # Property
        if data.property_address:
            pdf.set_font("Helvetica", "B", 11)
            pdf.cell(0, 7, "Property", new_x=XPos.LMARGIN, new_y=YPos.NEXT)
            pdf.set_font("Helvetica", "", 10)
            address = data.property_address
            if data.property_unit:
                address = f"{address}, Unit {data.property_unit}"
            pdf.cell(0, 6, _latin1(address), new_x=XPos.LMARGIN, new_y=YPos.NEXT)
            if data.property_type:
                pdf.cell(0, 6, _latin1(data.property_type.replace("_", " ").title()),
                         new_x=XPos.LMARGIN, new_y=YPos.NEXT)
            pdf.ln(2)

        # Bill to
        pdf.set_font("Helvetica", "B", 11)
        pdf.cell(0, 7, "Bill To", new_x=XPos.LMARGIN, new_y=YPos.NEXT)
        pdf.set_font("Helvetica", "", 10)
        for line in (data.client_name, data.client_address, data.client_email, data.client_phone):
            if line:
                pdf.cell(0, 6, _latin1(line), new_x=XPos.LMARGIN, new_y=YPos.NEXT)
        pdf.ln(4)

        # Items
        pdf.set_font("Helvetica", "B", 10)
        pdf.cell(140, 8, "Description", border=1)
        pdf.cell(0, 8, "Amount", border=1, align="R", new_x=XPos.LMARGIN, new_y=YPos.NEXT)
        pdf.set_font("Helvetica", "", 10)
        for item in data.items:
            pdf.cell(140, 7, _latin1(item.get("description") or "-"), border=1)
            pdf.cell(0, 7, _money(item.get("amount")), border=1, align="R",
                     new_x=XPos.LMARGIN, new_y=YPos.NEXT)
        pdf.ln(2)

        # Totals
        totals = [
            ("Subtotal", _money(data.subtotal)),
            (f"Tax ({Decimal(str(data.tax_rate)).normalize():f}%)", _money(data.tax_amount)),
            ("Total", _money(data.total_amount)),
        ]
        for label, amount in totals:
            pdf.set_font("Helvetica", "B" if label == "Total" else "", 10)
            pdf.cell(140, 7, label, align="R")
            pdf.cell(0, 7, amount, align="R", new_x=XPos.LMARGIN, new_y=YPos.NEXT)

        if data.payment_terms:
            pdf.ln(4)
            pdf.set_font("Helvetica", "B", 10)
            pdf.cell(0, 6, "Payment Terms", new_x=XPos.LMARGIN, new_y=YPos.NEXT)
            pdf.set_font("Helvetica", "", 10)
            pdf.multi_cell(0, 5, _latin1(data.payment_terms))

        if data.notes:
            pdf.ln(2)
            pdf.set_font("Helvetica", "B", 10)
            pdf.cell(0, 6, "Notes", new_x=XPos.LMARGIN, new_y=YPos.NEXT)
            pdf.set_font("Helvetica", "", 10)
            pdf.multi_cell(0, 5, _latin1(data.notes))

        content = bytes(pdf.output())
        logger.debug(f"Rendered invoice PDF {data.invoice_number} ({len(content)} bytes)")
        return content
