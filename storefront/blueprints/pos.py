"""
Point of sale blueprint.
Counter sales for staff: product and customer lookup, live totals, checkout
and the GST receipt.
"""
import io
from flask import Blueprint, request, g, jsonify, send_file, current_app
from storefront.database import get_session
from storefront.forms import parse_form, get_json_body
from storefront.forms.customer_forms import QuickCustomerForm
from storefront.forms.order_forms import PosSaleForm
from storefront.middleware import require_role
from storefront.models import Order, OrderSource
from storefront.blueprints.metrics import record_order
from storefront.services import pos_service
from storefront.services.invoice_service import get_order_invoice, get_invoice_settings, render_invoice_pdf
from storefront.exceptions import BusinessLogicError, NotFoundError

pos_bp = Blueprint('pos', __name__, url_prefix='/pos')

require_staff = require_role('admin', 'manager', 'support')


def _items_from(data):
    items = data.get('items')
    if not isinstance(items, list) or not items:
        raise BusinessLogicError('The POS cart is empty')
    return items


@pos_bp.route('/products')
@require_staff
def search_products():
    results = pos_service.search_pos_products(get_session(), request.args.get('q', ''))
    return {'results': results}


@pos_bp.route('/customers')
@require_staff
def search_customers():
    customers = pos_service.search_pos_customers(get_session(), request.args.get('q', ''))
    return {
        'results': [
            {
                'id': c.id,
                'name': c.full_name,
                'email': c.email,
                'phone': c.phone,
                'customer_type': c.customer_type,
            }
            for c in customers
        ]
    }


@pos_bp.route('/customers', methods=['POST'])
@require_staff
def quick_create_customer():
    data = parse_form(QuickCustomerForm)
    customer = pos_service.quick_create_customer(get_session(), data)
    return jsonify({'status': 'success', 'customer': customer.to_dict()}), 201


@pos_bp.route('/totals', methods=['POST'])
@require_staff
def totals():
    """Running totals for the counter screen."""
    return pos_service.preview_pos_sale(get_session(), _items_from(get_json_body()))


@pos_bp.route('/orders', methods=['POST'])
@require_staff
def create_sale():
    data = parse_form(PosSaleForm)
    order = pos_service.create_pos_order(
        get_session(),
        _items_from(data),
        data['payment_type'],
        created_by=g.user,
        customer_id=data.get('customer_id'),
        customer_name=data.get('customer_name'),
        customer_phone=data.get('customer_phone'),
        notes=data.get('notes'),
    )
    record_order(order)
    return jsonify({'status': 'success', 'order': order.to_dict()}), 201


@pos_bp.route('/orders/<int:order_id>/receipt.pdf')
@require_staff
def receipt(order_id):
    db_session = get_session()
    order = db_session.get(Order, order_id)
    if not order or order.source != OrderSource.POS.value:
        raise NotFoundError('POS order not found')
    invoice = get_order_invoice(db_session, order_id, current_app.config.get('SELLER_STATE'))
    pdf = render_invoice_pdf(invoice, get_invoice_settings(db_session))
    return send_file(
        io.BytesIO(pdf),
        mimetype='application/pdf',
        as_attachment=False,
        download_name=f"receipt_{order.order_number}.pdf"
    )
