"""
Catalog service - categories and products.
Storefront reads resolve each product's price for the current customer.
"""
import logging
import math
import re
from decimal import Decimal
from datetime import datetime
from typing import List, Dict, Any, Optional
from flask import current_app
from sqlalchemy import or_, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from storefront.models import Category, Product, User
from storefront.exceptions import BusinessLogicError, NotFoundError
from storefront.services.cache_service import get_cache, invalidate_catalog_cache
from storefront.services.pricing_service import load_category_overrides, resolve_price

logger = logging.getLogger(__name__)

SORT_OPTIONS = ('newest', 'price_asc', 'price_desc', 'title')


def slugify(value: str) -> str:
    value = re.sub(r'[^\w\s-]', '', (value or '').lower()).strip()
    return re.sub(r'[-\s_]+', '-', value)


# ---------------------------------------------------------------------------
# Categories
# ---------------------------------------------------------------------------

def _load_category_tree(session: Session) -> List[Dict[str, Any]]:
    roots = session.query(Category).filter(
        Category.parent_id.is_(None),
        Category.is_active.is_(True)
    ).order_by(Category.position, Category.name).all()
    return [c.to_dict(include_children=True) for c in roots]


def get_category_tree(session: Session) -> List[Dict[str, Any]]:
    """Active categories as a nested tree (cached)."""
    ttl = current_app.config.get('CACHE_CATEGORIES_TTL', 300)
    return get_cache().memoize('catalog', 'category_tree', lambda: _load_category_tree(session), ttl)


def get_category_by_slug(session: Session, slug: str) -> Category:
    category = session.query(Category).filter(Category.slug == slug).first()
    if not category or not category.is_active:
        raise NotFoundError('Category not found')
    return category


def get_descendant_ids(session: Session, category_id: int) -> List[int]:
    """Category id plus every descendant id."""
    ids = [category_id]
    frontier = [category_id]
    while frontier:
        children = session.query(Category.id).filter(Category.parent_id.in_(frontier)).all()
        frontier = [c.id for c in children if c.id not in ids]
        ids.extend(frontier)
    return ids


def save_category(session: Session, data: Dict[str, Any], category_id: Optional[int] = None) -> Category:
    """Create or update a category."""
    if category_id:
        category = session.get(Category, category_id)
        if not category:
            raise NotFoundError('Category not found')
    else:
        category = Category()
        session.add(category)

    try:
        for field in ('name', 'description', 'image_url', 'banner_url', 'position', 'is_active', 'parent_id'):
            if field in data:
                setattr(category, field, data[field])
        if not category.name:
            raise BusinessLogicError('Category name is required')
        category.slug = slugify(data.get('slug') or category.slug or category.name)
        if category.parent_id and category.id and category.parent_id in get_descendant_ids(session, category.id):
            raise BusinessLogicError('A category cannot be nested under itself')
        if category.position is None:
            category.position = 0
        session.commit()
    except IntegrityError:
        session.rollback()
        raise BusinessLogicError(f'Category slug "{category.slug}" already exists')
    except Exception:
        session.rollback()
        raise

    invalidate_catalog_cache()
    return category


# ---------------------------------------------------------------------------
# Products
# ---------------------------------------------------------------------------

def _truthy(value) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).lower() in ('1', 'true', 'yes', 'on')


def build_product_query(session: Session, filters: Dict[str, Any], at: Optional[datetime] = None):
    at = at or datetime.now()
    query = session.query(Product)

    if not filters.get('include_inactive'):
        query = query.filter(Product.is_active.is_(True))

    search = (filters.get('search') or '').strip()
    if search:
        pattern = f'%{search.lower()}%'
        query = query.filter(or_(
            func.lower(Product.title).like(pattern),
            func.lower(Product.sku).like(pattern),
            func.lower(Product.short_desc).like(pattern)
        ))

    if filters.get('category_id'):
        ids = get_descendant_ids(session, int(filters['category_id']))
        query = query.filter(Product.category_id.in_(ids))

    for flag in ('is_featured', 'is_trending', 'is_new_arrival'):
        if filters.get(flag) is not None:
            query = query.filter(getattr(Product, flag).is_(_truthy(filters[flag])))

    if filters.get('is_on_sale') is not None:
        on_sale = _truthy(filters['is_on_sale'])
        query = query.filter(Product.is_on_sale.is_(on_sale))
        if on_sale:
            query = query.filter(
                or_(Product.sale_price_start.is_(None), Product.sale_price_start <= at),
                or_(Product.sale_price_end.is_(None), Product.sale_price_end >= at)
            )

    if filters.get('min_price') not in (None, ''):
        query = query.filter(Product.price >= Decimal(str(filters['min_price'])))
    if filters.get('max_price') not in (None, ''):
        query = query.filter(Product.price <= Decimal(str(filters['max_price'])))
    if filters.get('in_stock') is not None and _truthy(filters['in_stock']):
        query = query.filter(Product.stock > 0)

    sort = filters.get('sort') or 'newest'
    if sort == 'price_asc':
        query = query.order_by(Product.price.asc(), Product.id)
    elif sort == 'price_desc':
        query = query.order_by(Product.price.desc(), Product.id)
    elif sort == 'title':
        query = query.order_by(Product.title.asc())
    else:
        query = query.order_by(Product.created_at.desc(), Product.id.desc())
    return query


def serialize_products(session: Session, products: List[Product], user: Optional[User] = None,
                       at: Optional[datetime] = None) -> List[Dict[str, Any]]:
    """Product dicts with the customer's resolved price attached."""
    overrides = load_category_overrides(session, user)
    result = []
    for product in products:
        data = product.to_dict()
        data['pricing'] = resolve_price(product, user, at, overrides.get(product.category_id)).to_dict()
        result.append(data)
    return result


def list_products(
    session: Session,
    filters: Optional[Dict[str, Any]] = None,
    user: Optional[User] = None,
    page: int = 1,
    per_page: Optional[int] = None,
    at: Optional[datetime] = None
) -> Dict[str, Any]:
    """Paginated product listing."""
    filters = filters or {}
    per_page = per_page or current_app.config.get('PRODUCTS_PER_PAGE', 24)
    page = max(int(page or 1), 1)

    query = build_product_query(session, filters, at)
    total = query.count()
    products = query.offset((page - 1) * per_page).limit(per_page).all()

    return {
        'items': serialize_products(session, products, user, at),
        'total': total,
        'page': page,
        'per_page': per_page,
        'pages': math.ceil(total / per_page) if total else 0,
    }


def get_product_by_slug(session: Session, slug: str) -> Product:
    product = session.query(Product).filter(Product.slug == slug).first()
    if not product or not product.is_active:
        raise NotFoundError('Product not found')
    return product


def _validate_gst_rate(session: Session, rate) -> Decimal:
    from storefront.services.invoice_service import get_invoice_settings

    rate = Decimal(str(rate))
    allowed = [Decimal(str(r)) for r in get_invoice_settings(session).allowed_gst_rates]
    if rate not in allowed:
        raise BusinessLogicError(
            f'GST rate {rate}% is not allowed. Use one of: {", ".join(str(r) for r in allowed)}'
        )
    return rate


PRODUCT_FIELDS = (
    'sku', 'title', 'category_id', 'short_desc', 'long_desc', 'image_url',
    'price', 'sale_price', 'sale_price_start', 'sale_price_end',
    'stock', 'low_stock_threshold', 'allow_backorder', 'weight',
    'is_featured', 'is_trending', 'is_new_arrival', 'is_on_sale', 'is_active',
)


def save_product(session: Session, data: Dict[str, Any], product_id: Optional[int] = None) -> Product:
    """Create or update a product."""
    if product_id:
        product = session.get(Product, product_id)
        if not product:
            raise NotFoundError('Product not found')
    else:
        product = Product(gst_rate=Decimal(current_app.config.get('DEFAULT_GST_RATE', '18')))
        session.add(product)

    try:
        for field in PRODUCT_FIELDS:
            if field in data:
                setattr(product, field, data[field])
        if data.get('gst_rate') is not None:
            product.gst_rate = _validate_gst_rate(session, data['gst_rate'])

        if not product.title or not product.sku:
            raise BusinessLogicError('Product title and SKU are required')
        if product.price is None or Decimal(str(product.price)) <= 0:
            raise BusinessLogicError('Price must be greater than 0')
        if product.sale_price is not None and Decimal(str(product.sale_price)) >= Decimal(str(product.price)):
            raise BusinessLogicError('Sale price must be lower than the regular price')
        if product.sale_price_start and product.sale_price_end and product.sale_price_end < product.sale_price_start:
            raise BusinessLogicError('Sale end date must be after the start date')
        if product.stock is not None and product.stock < 0:
            raise BusinessLogicError('Stock cannot be negative')
        if product.category_id and not session.get(Category, product.category_id):
            raise NotFoundError('Category not found')

        product.slug = slugify(data.get('slug') or product.slug or product.title)
        if product.low_stock_threshold is None:
            product.low_stock_threshold = current_app.config.get('LOW_STOCK_THRESHOLD', 10)
        session.commit()
    except IntegrityError:
        session.rollback()
        raise BusinessLogicError('A product with this SKU or slug already exists')
    except Exception:
        session.rollback()
        raise

    logger.info(f"[CATALOG] Saved product {product.sku} (id={product.id})")
    invalidate_catalog_cache()
    return product


def deactivate_product(session: Session, product_id: int) -> Product:
    """Products referenced by orders are never deleted, only hidden."""
    product = session.get(Product, product_id)
    if not product:
        raise NotFoundError('Product not found')
    product.is_active = False
    session.commit()
    invalidate_catalog_cache()
    return product


def get_low_stock_products(session: Session, limit: Optional[int] = None) -> List[Product]:
    query = session.query(Product).filter(
        Product.is_active.is_(True),
        Product.stock <= Product.low_stock_threshold
    ).order_by(Product.stock.asc(), Product.title)
    if limit:
        query = query.limit(limit)
    return query.all()
