"""
Dashboard service for the admin back-office.
Provides aggregated metrics for the dashboard view.
"""

from decimal import Decimal
from sqlalchemy import func, case
from sqlalchemy.orm import Session
from storefront.models import Order, Product, User, OrderStatus, OrderSource, UserRole
from storefront.services.catalog_service import get_low_stock_products
from storefront.services.pricing_service import to_money


def get_dashboard_data(session: Session, recent_limit: int = 5, low_stock_limit: int = 10) -> dict:
    """
    Get all dashboard data.

    Revenue only counts orders that were not cancelled.

    Returns:
        dict with keys:
            - product_count: int (active products)
            - order_count: int
            - customer_count: int
            - revenue: Decimal
            - sales_by_source: {'online': {...}, 'pos': {...}}
            - recent_orders: list of order dicts
            - low_stock_products: list of product dicts
    """
    product_count = session.query(func.count(Product.id)).filter(
        Product.is_active.is_(True)
    ).scalar() or 0

    order_count = session.query(func.count(Order.id)).scalar() or 0

    customer_count = session.query(func.count(User.id)).filter(
        User.role == UserRole.CUSTOMER.value
    ).scalar() or 0

    # Revenue and order split by source, cancelled orders excluded
    rows = session.query(
        Order.source,
        func.count(Order.id).label('orders'),
        func.coalesce(func.sum(Order.total), 0).label('revenue'),
        func.coalesce(
            func.sum(case((Order.payment_status == 'pending', Order.total), else_=0)),
            0
        ).label('outstanding')
    ).filter(
        Order.status != OrderStatus.CANCELLED.value
    ).group_by(Order.source).all()

    sales_by_source = {
        source.value: {'orders': 0, 'revenue': Decimal('0.00'), 'outstanding': Decimal('0.00')}
        for source in OrderSource
    }
    for row in rows:
        sales_by_source[row.source] = {
            'orders': row.orders,
            'revenue': to_money(row.revenue),
            'outstanding': to_money(row.outstanding),
        }
    revenue = to_money(sum(v['revenue'] for v in sales_by_source.values()))

    recent_orders = session.query(Order).order_by(
        Order.created_at.desc(), Order.id.desc()
    ).limit(recent_limit).all()

    low_stock = get_low_stock_products(session)[:low_stock_limit]

    return {
        'product_count': product_count,
        'order_count': order_count,
        'customer_count': customer_count,
        'revenue': revenue,
        'sales_by_source': sales_by_source,
        'recent_orders': [o.to_dict(include_items=False) for o in recent_orders],
        'low_stock_products': [
            {
                'id': p.id,
                'title': p.title,
                'sku': p.sku,
                'stock': p.stock,
                'low_stock_threshold': p.low_stock_threshold,
            }
            for p in low_stock
        ],
    }
