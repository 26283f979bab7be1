"""
Invoice service - GST tax invoices for online and POS orders.

Item prices are GST-inclusive, so every line is split back into its
taxable value and the GST it contains. Intra-state supplies (or walk-in
POS sales with no buyer state) show CGST + SGST, inter-state ones IGST.
"""
import logging
from dataclasses import dataclass, field, asdict, fields
from decimal import Decimal, ROUND_HALF_UP
from datetime import datetime
from io import BytesIO
from typing import Dict, Any, List, Optional, Tuple

from reportlab.lib.pagesizes import A4
from reportlab.lib import colors
from reportlab.lib.units import inch
from reportlab.platypus import SimpleDocTemplate, Table, TableStyle, Paragraph, Spacer
from reportlab.lib.styles import getSampleStyleSheet, ParagraphStyle
from reportlab.lib.enums import TA_CENTER, TA_RIGHT

from sqlalchemy.orm import Session
from storefront.models import Order, Setting
from storefront.exceptions import BusinessLogicError, NotFoundError
from storefront.services.pricing_service import to_money, CENT, ZERO

logger = logging.getLogger(__name__)

INVOICE_SETTINGS_KEY = 'invoice_settings'


@dataclass
class InvoiceSettings:
    seller_name: str = 'Your Store'
    seller_address: str = ''
    seller_city: str = ''
    seller_state: str = ''
    seller_postal_code: str = ''
    seller_country: str = 'India'
    seller_phone: str = ''
    seller_email: str = ''

    gst_number: str = ''
    gst_percentage: Decimal = Decimal('18')
    allowed_gst_rates: List[Decimal] = field(
        default_factory=lambda: [Decimal('0'), Decimal('5'), Decimal('12'), Decimal('18'), Decimal('28')]
    )

    buyer_label_name: str = 'Customer Name'
    buyer_label_address: str = 'Address'
    buyer_label_phone: str = 'Phone'
    buyer_label_email: str = 'Email'

    show_discount_line: bool = True
    show_tax_breakdown: bool = True
    show_shipping_cost: bool = True
    show_payment_method: bool = True
    show_sku: bool = True

    logo_url: str = ''
    footer_note: str = 'Thank you for your business!'
    terms_and_conditions: str = ''

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> 'InvoiceSettings':
        known = {f.name for f in fields(cls)}
        settings = cls(**{k: v for k, v in (data or {}).items() if k in known})
        settings.gst_percentage = Decimal(str(settings.gst_percentage))
        settings.allowed_gst_rates = sorted({Decimal(str(r)) for r in settings.allowed_gst_rates})
        return settings

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def get_invoice_settings(session: Session) -> InvoiceSettings:
    row = session.query(Setting).filter(Setting.key == INVOICE_SETTINGS_KEY).first()
    return InvoiceSettings.from_dict(row.value if row else None)


def save_invoice_settings(session: Session, data: Dict[str, Any]) -> InvoiceSettings:
    """Merge `data` over the current settings and persist them."""
    current = get_invoice_settings(session).to_dict()
    current.update(data)
    settings = InvoiceSettings.from_dict(current)

    if not (0 <= settings.gst_percentage <= 100):
        raise BusinessLogicError('GST percentage must be between 0 and 100')
    if not settings.allowed_gst_rates:
        raise BusinessLogicError('At least one GST rate is required')
    if any(r < 0 or r > 100 for r in settings.allowed_gst_rates):
        raise BusinessLogicError('GST rates must be between 0 and 100')

    stored = settings.to_dict()
    stored['gst_percentage'] = str(settings.gst_percentage)
    stored['allowed_gst_rates'] = [str(r) for r in settings.allowed_gst_rates]

    try:
        row = session.query(Setting).filter(Setting.key == INVOICE_SETTINGS_KEY).first()
        if row:
            row.value = stored
        else:
            session.add(Setting(key=INVOICE_SETTINGS_KEY, value=stored))
        session.commit()
    except Exception:
        session.rollback()
        raise
    return settings


def split_inclusive_amount(gross, rate) -> Tuple[Decimal, Decimal]:
    """
    Split a GST-inclusive amount into (taxable value, GST).

    taxable = gross * 100 / (100 + rate), gst = gross - taxable
    """
    gross = to_money(gross)
    rate = Decimal(str(rate or 0))
    if rate <= 0:
        return gross, ZERO
    taxable = (gross * 100 / (100 + rate)).quantize(CENT, rounding=ROUND_HALF_UP)
    return taxable, gross - taxable


def allocate_discount(amounts: List[Decimal], discount) -> List[Decimal]:
    """
    Spread an order level discount over line amounts in proportion to
    each amount. The last non-zero line takes the rounding remainder so
    the shares always add up to the discount.
    """
    amounts = [to_money(a) for a in amounts]
    discount = min(to_money(discount or 0), sum(amounts, ZERO))
    total = sum(amounts, ZERO)
    if discount <= 0 or total <= 0:
        return [ZERO for _ in amounts]

    last = max(i for i, a in enumerate(amounts) if a > 0)
    shares = []
    allocated = ZERO
    for index, amount in enumerate(amounts):
        if index == last:
            share = discount - allocated
        else:
            share = (discount * amount / total).quantize(CENT, rounding=ROUND_HALF_UP)
        shares.append(share)
        allocated += share
    return shares


def _same_state(buyer_state: Optional[str], seller_state: Optional[str]) -> bool:
    """Unknown buyer state (walk-in POS) is treated as intra-state."""
    if not buyer_state or not seller_state:
        return True
    return buyer_state.strip().casefold() == seller_state.strip().casefold()


def _half(amount: Decimal) -> Tuple[Decimal, Decimal]:
    first = (amount / 2).quantize(CENT, rounding=ROUND_HALF_UP)
    return first, amount - first


def build_invoice(order: Order, settings: InvoiceSettings, seller_state: Optional[str] = None) -> Dict[str, Any]:
    """Invoice dict for an order with per line and per rate GST figures."""
    seller_state = settings.seller_state or seller_state
    address = order.billing_address or order.shipping_address or {}
    buyer_state = address.get('state')
    intra_state = _same_state(buyer_state, seller_state)

    items = list(order.items)
    grosses = [to_money(Decimal(str(item.price)) * item.quantity) for item in items]
    # GST is charged on what the customer actually pays for each line
    shares = allocate_discount(grosses, order.discount)

    lines = []
    summary: Dict[Decimal, Dict[str, Decimal]] = {}
    for item, gross, share in zip(items, grosses, shares):
        rate = Decimal(str(item.gst_rate if item.gst_rate is not None else settings.gst_percentage))
        taxable, gst = split_inclusive_amount(gross - share, rate)
        lines.append({
            'title': item.title,
            'sku': item.sku,
            'quantity': item.quantity,
            'unit_price': to_money(item.price),
            'gst_rate': rate,
            'discount': share,
            'taxable_value': taxable,
            'gst_amount': gst,
            'line_total': gross,
        })
        bucket = summary.setdefault(rate, {'taxable_value': ZERO, 'gst_amount': ZERO})
        bucket['taxable_value'] += taxable
        bucket['gst_amount'] += gst

    rate_summary = []
    for rate in sorted(summary):
        entry = {'rate': rate, **summary[rate]}
        if intra_state:
            entry['cgst'], entry['sgst'] = _half(entry['gst_amount'])
            entry['igst'] = ZERO
        else:
            entry['cgst'] = entry['sgst'] = ZERO
            entry['igst'] = entry['gst_amount']
        rate_summary.append(entry)

    gst_total = sum((line['gst_amount'] for line in lines), ZERO)
    taxable_total = sum((line['taxable_value'] for line in lines), ZERO)
    if intra_state:
        cgst, sgst = _half(gst_total)
        igst = ZERO
    else:
        cgst = sgst = ZERO
        igst = gst_total

    return {
        'invoice_number': order.order_number,
        'invoice_date': order.created_at or datetime.now(),
        'order_id': order.id,
        'source': order.source,
        'payment_method': order.pos_payment_type or order.payment_method,
        'payment_status': order.payment_status,
        'seller': {
            'name': settings.seller_name,
            'address': settings.seller_address,
            'city': settings.seller_city,
            'state': seller_state,
            'postal_code': settings.seller_postal_code,
            'country': settings.seller_country,
            'phone': settings.seller_phone,
            'email': settings.seller_email,
            'gst_number': settings.gst_number,
        },
        'buyer': {
            'name': order.customer_name,
            'email': order.customer_email,
            'phone': order.pos_customer_phone or address.get('phone'),
            'address': address,
            'state': buyer_state,
            'gst_number': address.get('gst_number'),
        },
        'intra_state': intra_state,
        'lines': lines,
        'rate_summary': rate_summary,
        'taxable_total': taxable_total,
        'gst_total': gst_total,
        'cgst': cgst,
        'sgst': sgst,
        'igst': igst,
        'subtotal': to_money(order.subtotal),
        'discount': to_money(order.discount),
        'shipping': to_money(order.shipping_cost),
        'grand_total': to_money(order.total),
    }


def get_order_invoice(session: Session, order_id: int, seller_state: Optional[str] = None) -> Dict[str, Any]:
    order = session.get(Order, order_id)
    if not order:
        raise NotFoundError('Order not found')
    return build_invoice(order, get_invoice_settings(session), seller_state)


def _money(value: Decimal) -> str:
    return f"Rs. {to_money(value):,.2f}"


def _rate_label(rate: Decimal) -> str:
    return str(int(rate)) if rate == int(rate) else str(rate)


def render_invoice_pdf(invoice: Dict[str, Any], settings: InvoiceSettings) -> bytes:
    """Render an invoice dict as an A4 PDF."""
    buffer = BytesIO()
    doc = SimpleDocTemplate(
        buffer,
        pagesize=A4,
        rightMargin=0.6*inch,
        leftMargin=0.6*inch,
        topMargin=0.6*inch,
        bottomMargin=0.6*inch
    )

    elements = []
    styles = getSampleStyleSheet()
    title_style = ParagraphStyle(
        'InvoiceTitle',
        parent=styles['Heading1'],
        fontSize=20,
        textColor=colors.HexColor('#1F2937'),
        alignment=TA_CENTER,
        spaceAfter=10,
        fontName='Helvetica-Bold'
    )
    small_style = ParagraphStyle('Small', parent=styles['Normal'], fontSize=9, textColor=colors.HexColor('#4B5563'))
    right_style = ParagraphStyle('Right', parent=small_style, alignment=TA_RIGHT)

    # 1. Header
    elements.append(Paragraph("TAX INVOICE", title_style))
    seller = invoice['seller']
    seller_lines = [f"<b>{seller['name']}</b>"]
    for part in (seller['address'], ', '.join(p for p in (seller['city'], seller['state'], seller['postal_code']) if p)):
        if part:
            seller_lines.append(part)
    if seller['phone'] or seller['email']:
        seller_lines.append(' | '.join(p for p in (seller['phone'], seller['email']) if p))
    if seller['gst_number']:
        seller_lines.append(f"GSTIN: {seller['gst_number']}")

    invoice_date = invoice['invoice_date']
    if isinstance(invoice_date, datetime):
        invoice_date = invoice_date.strftime('%d/%m/%Y')
    meta_lines = [f"<b>Invoice #:</b> {invoice['invoice_number']}", f"<b>Date:</b> {invoice_date}"]
    if settings.show_payment_method and invoice.get('payment_method'):
        meta_lines.append(f"<b>Payment:</b> {str(invoice['payment_method']).upper()}")

    header = Table(
        [[Paragraph('<br/>'.join(seller_lines), small_style), Paragraph('<br/>'.join(meta_lines), right_style)]],
        colWidths=[3.6*inch, 3.3*inch]
    )
    header.setStyle(TableStyle([('VALIGN', (0, 0), (-1, -1), 'TOP')]))
    elements.append(header)
    elements.append(Spacer(1, 0.2*inch))

    # 2. Buyer
    buyer = invoice['buyer']
    address = buyer.get('address') or {}
    buyer_lines = []
    if buyer.get('name'):
        buyer_lines.append(f"<b>{settings.buyer_label_name}:</b> {buyer['name']}")
    address_text = ', '.join(
        str(address[k]) for k in ('line1', 'line2', 'city', 'state', 'postal_code') if address.get(k)
    )
    if address_text:
        buyer_lines.append(f"<b>{settings.buyer_label_address}:</b> {address_text}")
    if buyer.get('phone'):
        buyer_lines.append(f"<b>{settings.buyer_label_phone}:</b> {buyer['phone']}")
    if buyer.get('email'):
        buyer_lines.append(f"<b>{settings.buyer_label_email}:</b> {buyer['email']}")
    if buyer.get('gst_number'):
        buyer_lines.append(f"<b>GSTIN:</b> {buyer['gst_number']}")
    if buyer_lines:
        elements.append(Paragraph('<br/>'.join(buyer_lines), small_style))
        elements.append(Spacer(1, 0.2*inch))

    # 3. Items
    head = ['Item']
    if settings.show_sku:
        head.append('SKU')
    head += ['Qty', 'Rate', 'Taxable', 'GST %', 'GST', 'Amount']
    table_data = [head]
    for line in invoice['lines']:
        row = [Paragraph(line['title'], small_style)]
        if settings.show_sku:
            row.append(line['sku'] or '-')
        row += [
            str(line['quantity']),
            _money(line['unit_price']),
            _money(line['taxable_value']),
            f"{_rate_label(line['gst_rate'])}%",
            _money(line['gst_amount']),
            _money(line['line_total']),
        ]
        table_data.append(row)

    items_table = Table(table_data, repeatRows=1)
    items_table.setStyle(TableStyle([
        ('BACKGROUND', (0, 0), (-1, 0), colors.HexColor('#1F2937')),
        ('TEXTCOLOR', (0, 0), (-1, 0), colors.whitesmoke),
        ('FONTNAME', (0, 0), (-1, 0), 'Helvetica-Bold'),
        ('FONTSIZE', (0, 0), (-1, -1), 8),
        ('ALIGN', (1, 1), (-1, -1), 'RIGHT'),
        ('GRID', (0, 0), (-1, -1), 0.5, colors.HexColor('#D1D5DB')),
        ('ROWBACKGROUNDS', (0, 1), (-1, -1), [colors.white, colors.HexColor('#F3F4F6')]),
    ]))
    elements.append(items_table)
    elements.append(Spacer(1, 0.2*inch))

    # 4. Totals
    totals = [['Subtotal', _money(invoice['subtotal'])]]
    if settings.show_discount_line and invoice['discount'] > 0:
        totals.append(['Discount', f"- {_money(invoice['discount'])}"])
    if settings.show_shipping_cost:
        totals.append(['Shipping', _money(invoice['shipping'])])
    if settings.show_tax_breakdown:
        totals.append(['Taxable value', _money(invoice['taxable_total'])])
        if invoice['intra_state']:
            totals.append(['CGST (incl.)', _money(invoice['cgst'])])
            totals.append(['SGST (incl.)', _money(invoice['sgst'])])
        else:
            totals.append(['IGST (incl.)', _money(invoice['igst'])])
    totals.append(['GRAND TOTAL', _money(invoice['grand_total'])])

    totals_table = Table(totals, colWidths=[5.4*inch, 1.5*inch])
    totals_table.setStyle(TableStyle([
        ('ALIGN', (0, 0), (-1, -1), 'RIGHT'),
        ('FONTSIZE', (0, 0), (-1, -1), 9),
        ('FONTNAME', (0, -1), (-1, -1), 'Helvetica-Bold'),
        ('LINEABOVE', (0, -1), (-1, -1), 1, colors.HexColor('#1F2937')),
    ]))
    elements.append(totals_table)
    elements.append(Spacer(1, 0.3*inch))

    # 5. Footer
    footer_style = ParagraphStyle('Footer', parent=small_style, alignment=TA_CENTER)
    if settings.show_tax_breakdown:
        elements.append(Paragraph('All prices are inclusive of GST. This is a computer-generated invoice.', footer_style))
    if settings.terms_and_conditions:
        elements.append(Paragraph(f"<b>Terms:</b> {settings.terms_and_conditions}", small_style))
    if settings.footer_note:
        elements.append(Spacer(1, 0.1*inch))
        elements.append(Paragraph(settings.footer_note, footer_style))

    doc.build(elements)
    logger.info(f"[INVOICE] Rendered PDF for {invoice['invoice_number']}")
    return buffer.getvalue()
