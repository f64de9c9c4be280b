"""
PDF Invoice Generation Service
Renders a saved invoice as an A4 GST tax invoice.
"""
from io import BytesIO
from datetime import datetime
from decimal import Decimal
from reportlab.lib.pagesizes import A4
from reportlab.lib.units import inch
from reportlab.lib import colors
from reportlab.platypus import SimpleDocTemplate, Table, TableStyle, Paragraph, Spacer
from reportlab.lib.styles import getSampleStyleSheet, ParagraphStyle
from reportlab.lib.enums import TA_CENTER
from xml.sax.saxutils import escape

from app.core.config import settings
from app.models.invoice import Invoice


def _money(value) -> str:
    # Base-14 fonts have no rupee glyph
    return f"Rs. {Decimal(str(value)):,.2f}"


def render_invoice_pdf(invoice: Invoice) -> BytesIO:
    """
    Lay out an invoice as PDF.

    Args:
        invoice: Invoice with its items loaded

    Returns:
        BytesIO buffer positioned at the start of the PDF data
    """
    buffer = BytesIO()
    doc = SimpleDocTemplate(
        buffer,
        pagesize=A4,
        topMargin=0.5*inch,
        bottomMargin=0.5*inch,
        title=invoice.invoice_number,
    )

    elements = []
    styles = getSampleStyleSheet()

    title_style = ParagraphStyle(
        'InvoiceTitle',
        parent=styles['Heading1'],
        fontSize=20,
        textColor=colors.HexColor('#1a56db'),
        alignment=TA_CENTER,
        spaceAfter=12
    )
    heading_style = ParagraphStyle(
        'InvoiceHeading',
        parent=styles['Heading2'],
        fontSize=12,
        textColor=colors.HexColor('#1f2937'),
        spaceAfter=6
    )
    normal_style = ParagraphStyle(
        'InvoiceNormal',
        parent=styles['Normal'],
        fontSize=9,
        textColor=colors.HexColor('#374151')
    )

    elements.append(Paragraph("TAX INVOICE", title_style))

    pharmacy = f"<b>{escape(settings.PHARMACY_NAME)}</b>"
    if settings.PHARMACY_ADDRESS:
        pharmacy += f"<br/>{escape(settings.PHARMACY_ADDRESS)}"
    if settings.PHARMACY_GSTIN:
        pharmacy += f"<br/>GSTIN: {escape(settings.PHARMACY_GSTIN)}"

    meta = (
        f"<b>Invoice #:</b> {escape(invoice.invoice_number)}<br/>"
        f"<b>Date:</b> {invoice.invoice_date.strftime('%d %b %Y, %I:%M %p')}<br/>"
        f"<b>Payment:</b> {escape(invoice.payment_mode)}"
    )
    info_table = Table(
        [[Paragraph(pharmacy, normal_style), Paragraph(meta, normal_style)]],
        colWidths=[3.8*inch, 3.2*inch],
    )
    info_table.setStyle(TableStyle([
        ('VALIGN', (0, 0), (-1, -1), 'TOP'),
        ('TOPPADDING', (0, 0), (-1, -1), 6),
        ('BOTTOMPADDING', (0, 0), (-1, -1), 6),
    ]))
    elements.append(info_table)
    elements.append(Spacer(1, 0.2*inch))

    if invoice.customer_name or invoice.doctor_name:
        elements.append(Paragraph("<b>Bill To:</b>", heading_style))
        lines = []
        if invoice.customer_name:
            lines.append(f"<b>{escape(invoice.customer_name)}</b>")
        if invoice.doctor_name:
            lines.append(f"Prescribed by: Dr. {escape(invoice.doctor_name)}")
        elements.append(Paragraph("<br/>".join(lines), normal_style))
        elements.append(Spacer(1, 0.2*inch))

    header = ["#", "Item", "HSN", "Batch", "Expiry", "Qty", "Rate", "GST %", "Amount"]
    items_data = [header]
    for item in invoice.items:
        items_data.append([
            str(item.position),
            Paragraph(escape(f"{item.brand_name} {item.dosage}"), normal_style),
            item.hsn_code,
            item.batch_number,
            item.expiry_date.strftime('%m/%y'),
            str(item.quantity),
            f"{Decimal(str(item.selling_price)):.2f}",
            str(item.gst_rate),
            f"{Decimal(str(item.line_total)):.2f}",
        ])

    items_table = Table(
        items_data,
        colWidths=[0.3*inch, 2.1*inch, 0.6*inch, 0.8*inch, 0.6*inch, 0.5*inch, 0.7*inch, 0.5*inch, 0.9*inch],
        repeatRows=1,
    )
    items_table.setStyle(TableStyle([
        ('BACKGROUND', (0, 0), (-1, 0), colors.HexColor('#f3f4f6')),
        ('TEXTCOLOR', (0, 0), (-1, 0), colors.HexColor('#1f2937')),
        ('ALIGN', (5, 0), (-1, -1), 'RIGHT'),
        ('FONTNAME', (0, 0), (-1, 0), 'Helvetica-Bold'),
        ('FONTSIZE', (0, 0), (-1, -1), 8),
        ('GRID', (0, 0), (-1, -1), 0.5, colors.grey),
        ('ROWBACKGROUNDS', (0, 1), (-1, -1), [colors.white, colors.HexColor('#fafafa')]),
        ('VALIGN', (0, 0), (-1, -1), 'MIDDLE'),
    ]))
    elements.append(items_table)
    elements.append(Spacer(1, 0.2*inch))

    total_rows = [
        ("Subtotal:", invoice.sub_total),
        ("Discount:", invoice.discount_amount),
        ("Taxable Value:", invoice.taxable_amount),
        ("CGST:", invoice.cgst),
        ("SGST:", invoice.sgst),
    ]
    total_data = [['', Paragraph(f"<b>{label}</b>", normal_style), _money(value)] for label, value in total_rows]
    total_data.append(['', Paragraph("<b>GRAND TOTAL:</b>", heading_style), _money(invoice.total_amount)])

    total_table = Table(total_data, colWidths=[3.8*inch, 1.6*inch, 1.6*inch])
    total_table.setStyle(TableStyle([
        ('ALIGN', (2, 0), (-1, -1), 'RIGHT'),
        ('LINEABOVE', (1, -1), (-1, -1), 1, colors.black),
        ('FONTNAME', (2, -1), (2, -1), 'Helvetica-Bold'),
        ('TOPPADDING', (0, 0), (-1, -1), 3),
        ('BOTTOMPADDING', (0, 0), (-1, -1), 3),
    ]))
    elements.append(total_table)

    footer_style = ParagraphStyle(
        'Footer',
        parent=styles['Normal'],
        fontSize=8,
        textColor=colors.grey,
        alignment=TA_CENTER
    )
    elements.append(Spacer(1, 0.4*inch))
    elements.append(Paragraph("Prices are inclusive of GST. Thank you, get well soon!", footer_style))
    elements.append(Paragraph(f"Generated on {datetime.now().strftime('%d %b %Y at %I:%M %p')}", footer_style))

    doc.build(elements)
    buffer.seek(0)
    return buffer
