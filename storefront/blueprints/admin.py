"""
Admin back-office blueprint.

Catalog, orders and invoices, coupons, customers on subscription pricing,
delivery tiers, invoice settings and the dashboard. Admin or manager only.
"""
import io
import logging
from datetime import datetime
from flask import Blueprint, request, jsonify, send_file, current_app
from storefront.database import get_session
from storefront.forms import parse_form, get_json_body
from storefront.forms.catalog_forms import CategoryForm, ProductForm, CouponForm
from storefront.forms.customer_forms import SubscriptionCustomerForm, CategoryDiscountForm, DeliveryTierForm
from storefront.forms.order_forms import OrderStatusForm
from storefront.middleware import require_admin
from storefront.models import Category, Order
from storefront.services import catalog_service, coupon_service, subscription_service
from storefront.services.dashboard_service import get_dashboard_data
from storefront.services.invoice_service import (
    get_invoice_settings, save_invoice_settings, get_order_invoice, render_invoice_pdf
)
from storefront.services.order_service import list_orders, update_order_status
from storefront.exceptions import BusinessLogicError, NotFoundError

logger = logging.getLogger(__name__)

admin_bp = Blueprint('admin', __name__, url_prefix='/admin')


def _parse_date_arg(name):
    value = request.args.get(name)
    if not value:
        return None
    try:
        return datetime.strptime(value, '%Y-%m-%d')
    except ValueError:
        raise BusinessLogicError(f'{name} must be YYYY-MM-DD')


# ---------------------------------------------------------------------------
# Dashboard
# ---------------------------------------------------------------------------

@admin_bp.route('/dashboard')
@require_admin
def dashboard():
    return get_dashboard_data(get_session())


# ---------------------------------------------------------------------------
# Categories and products
# ---------------------------------------------------------------------------

@admin_bp.route('/categories')
@require_admin
def list_categories():
    categories = get_session().query(Category).order_by(Category.position, Category.name).all()
    return {'categories': [c.to_dict() for c in categories]}


@admin_bp.route('/categories', methods=['POST'])
@require_admin
def create_category():
    data = parse_form(CategoryForm)
    category = catalog_service.save_category(get_session(), data)
    return jsonify({'status': 'success', 'category': category.to_dict()}), 201


@admin_bp.route('/categories/<int:category_id>', methods=['PUT', 'PATCH'])
@require_admin
def update_category(category_id):
    data = parse_form(CategoryForm, partial=True)
    category = catalog_service.save_category(get_session(), data, category_id)
    return {'status': 'success', 'category': category.to_dict()}


@admin_bp.route('/products')
@require_admin
def list_products():
    filters = {k: v for k, v in request.args.items() if k not in ('page', 'per_page')}
    filters.setdefault('include_inactive', True)
    return catalog_service.list_products(
        get_session(), filters,
        page=request.args.get('page', 1, type=int),
        per_page=request.args.get('per_page', 50, type=int)
    )


@admin_bp.route('/products', methods=['POST'])
@require_admin
def create_product():
    data = parse_form(ProductForm)
    product = catalog_service.save_product(get_session(), data)
    return jsonify({'status': 'success', 'product': product.to_dict()}), 201


@admin_bp.route('/products/<int:product_id>', methods=['PUT', 'PATCH'])
@require_admin
def update_product(product_id):
    data = parse_form(ProductForm, partial=True)
    product = catalog_service.save_product(get_session(), data, product_id)
    return {'status': 'success', 'product': product.to_dict()}


@admin_bp.route('/products/<int:product_id>', methods=['DELETE'])
@require_admin
def delete_product(product_id):
    product = catalog_service.deactivate_product(get_session(), product_id)
    return {'status': 'success', 'product': product.to_dict()}


@admin_bp.route('/products/low-stock')
@require_admin
def low_stock():
    products = catalog_service.get_low_stock_products(get_session())
    return {'products': [p.to_dict() for p in products]}


# ---------------------------------------------------------------------------
# Orders and invoices
# ---------------------------------------------------------------------------

@admin_bp.route('/orders')
@require_admin
def orders():
    filters = {
        'status': request.args.get('status'),
        'source': request.args.get('source'),
        'payment_status': request.args.get('payment_status'),
        'search': request.args.get('search'),
        'date_from': _parse_date_arg('date_from'),
        'date_to': _parse_date_arg('date_to'),
    }
    result = list_orders(
        get_session(), filters,
        page=request.args.get('page', 1, type=int),
        per_page=request.args.get('per_page', 50, type=int)
    )
    result['items'] = [o.to_dict(include_items=False) for o in result['items']]
    return result


@admin_bp.route('/orders/<int:order_id>')
@require_admin
def order_detail(order_id):
    order = get_session().get(Order, order_id)
    if not order:
        raise NotFoundError('Order not found')
    return {'order': order.to_dict()}


@admin_bp.route('/orders/<int:order_id>/status', methods=['POST'])
@require_admin
def change_order_status(order_id):
    data = parse_form(OrderStatusForm)
    order = update_order_status(get_session(), order_id, data['status'], data.get('tracking_number'))
    return {'status': 'success', 'order': order.to_dict()}


@admin_bp.route('/orders/<int:order_id>/invoice')
@require_admin
def order_invoice(order_id):
    invoice = get_order_invoice(get_session(), order_id, current_app.config.get('SELLER_STATE'))
    return {'invoice': invoice}


@admin_bp.route('/orders/<int:order_id>/invoice.pdf')
@require_admin
def order_invoice_pdf(order_id):
    db_session = get_session()
    invoice = get_order_invoice(db_session, order_id, current_app.config.get('SELLER_STATE'))
    pdf = render_invoice_pdf(invoice, get_invoice_settings(db_session))
    return send_file(
        io.BytesIO(pdf),
        mimetype='application/pdf',
        as_attachment=True,
        download_name=f"invoice_{invoice['invoice_number']}.pdf"
    )


@admin_bp.route('/settings/invoice')
@require_admin
def invoice_settings():
    return {'settings': get_invoice_settings(get_session()).to_dict()}


@admin_bp.route('/settings/invoice', methods=['PUT'])
@require_admin
def update_invoice_settings():
    settings = save_invoice_settings(get_session(), get_json_body())
    return {'status': 'success', 'settings': settings.to_dict()}


# ---------------------------------------------------------------------------
# Coupons
# ---------------------------------------------------------------------------

@admin_bp.route('/coupons')
@require_admin
def coupons():
    return {'coupons': [c.to_dict() for c in coupon_service.list_coupons(get_session())]}


@admin_bp.route('/coupons', methods=['POST'])
@require_admin
def create_coupon():
    data = parse_form(CouponForm)
    coupon = coupon_service.create_coupon(get_session(), data)
    return jsonify({'status': 'success', 'coupon': coupon.to_dict()}), 201


@admin_bp.route('/coupons/<int:coupon_id>', methods=['PUT', 'PATCH'])
@require_admin
def update_coupon(coupon_id):
    data = parse_form(CouponForm, partial=True)
    coupon = coupon_service.update_coupon(get_session(), coupon_id, data)
    return {'status': 'success', 'coupon': coupon.to_dict()}


@admin_bp.route('/coupons/<int:coupon_id>', methods=['DELETE'])
@require_admin
def delete_coupon(coupon_id):
    coupon_service.delete_coupon(get_session(), coupon_id)
    return {'status': 'success'}


# ---------------------------------------------------------------------------
# Customers and subscriptions
# ---------------------------------------------------------------------------

@admin_bp.route('/customers')
@require_admin
def customers():
    result = subscription_service.list_customers(
        get_session(),
        customer_type=request.args.get('customer_type'),
        search=request.args.get('search')
    )
    return {'customers': result}


@admin_bp.route('/customers/subscription', methods=['POST'])
@require_admin
def create_subscription_customer():
    data = parse_form(SubscriptionCustomerForm)
    user = subscription_service.create_subscription_customer(get_session(), data)
    return jsonify({'status': 'success', 'customer': user.to_dict()}), 201


@admin_bp.route('/customers/<int:user_id>', methods=['PUT', 'PATCH'])
@require_admin
def update_customer(user_id):
    data = parse_form(SubscriptionCustomerForm, partial=True)
    user = subscription_service.update_subscription_customer(get_session(), user_id, data)
    return {'status': 'success', 'customer': user.to_dict()}


@admin_bp.route('/customers/<int:user_id>/category-discounts')
@require_admin
def category_discounts(user_id):
    rows = subscription_service.list_category_discounts(get_session(), user_id)
    return {'category_discounts': [r.to_dict() for r in rows]}


@admin_bp.route('/customers/<int:user_id>/category-discounts/<int:category_id>', methods=['PUT'])
@require_admin
def upsert_category_discount(user_id, category_id):
    data = parse_form(CategoryDiscountForm)
    row = subscription_service.upsert_category_discount(get_session(), user_id, category_id, data)
    return {'status': 'success', 'category_discount': row.to_dict()}


@admin_bp.route('/customers/<int:user_id>/category-discounts/<int:override_id>', methods=['DELETE'])
@require_admin
def delete_category_discount(user_id, override_id):
    subscription_service.delete_category_discount(get_session(), user_id, override_id)
    return {'status': 'success'}


@admin_bp.route('/delivery-tiers')
@require_admin
def delivery_tiers():
    tiers = subscription_service.list_delivery_tiers(get_session())
    return {'delivery_tiers': [t.to_dict() for t in tiers]}


@admin_bp.route('/delivery-tiers', methods=['POST'])
@require_admin
def create_delivery_tier():
    data = parse_form(DeliveryTierForm)
    tier = subscription_service.save_delivery_tier(get_session(), data)
    return jsonify({'status': 'success', 'delivery_tier': tier.to_dict()}), 201


@admin_bp.route('/delivery-tiers/<int:tier_id>', methods=['PUT', 'PATCH'])
@require_admin
def update_delivery_tier(tier_id):
    data = parse_form(DeliveryTierForm, partial=True)
    tier = subscription_service.save_delivery_tier(get_session(), data, tier_id)
    return {'status': 'success', 'delivery_tier': tier.to_dict()}


@admin_bp.route('/delivery-tiers/<int:tier_id>', methods=['DELETE'])
@require_admin
def delete_delivery_tier(tier_id):
    subscription_service.delete_delivery_tier(get_session(), tier_id)
    return {'status': 'success'}
