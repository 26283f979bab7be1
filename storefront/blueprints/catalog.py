"""Storefront catalog blueprint - categories, products, home page and combos."""
from flask import Blueprint, request, g
from storefront.database import get_session
from storefront.services import catalog_service
from storefront.services.combo_service import list_combo_offers, get_combo_by_slug
from storefront.services.marketing_service import build_home_layout
from storefront.services.pricing_service import quote_for

catalog_bp = Blueprint('catalog', __name__)

LISTING_FILTERS = (
    'search', 'category_id', 'is_featured', 'is_trending', 'is_new_arrival',
    'is_on_sale', 'min_price', 'max_price', 'in_stock', 'sort',
)


@catalog_bp.route('/')
@catalog_bp.route('/home')
def home():
    """Home page layout: hero, blocks with their banners, category tiles."""
    return build_home_layout(get_session(), g.user)


@catalog_bp.route('/categories')
def categories():
    return {'categories': catalog_service.get_category_tree(get_session())}


@catalog_bp.route('/categories/<slug>')
def category_detail(slug):
    """Category with its paginated products (children included)."""
    db_session = get_session()
    category = catalog_service.get_category_by_slug(db_session, slug)

    filters = {k: request.args.get(k) for k in LISTING_FILTERS if request.args.get(k) is not None}
    filters['category_id'] = category.id
    listing = catalog_service.list_products(
        db_session, filters, g.user,
        page=request.args.get('page', 1, type=int),
        per_page=request.args.get('per_page', type=int)
    )
    return {'category': category.to_dict(include_children=True), 'products': listing}


@catalog_bp.route('/products')
def products():
    """
    Product listing.

    Query params: search, category_id, is_featured, is_trending, is_new_arrival,
    is_on_sale, min_price, max_price, in_stock, sort (newest, price_asc,
    price_desc, title), page, per_page.
    """
    filters = {k: request.args.get(k) for k in LISTING_FILTERS if request.args.get(k) is not None}
    if filters.get('sort') and filters['sort'] not in catalog_service.SORT_OPTIONS:
        filters.pop('sort')
    return catalog_service.list_products(
        get_session(), filters, g.user,
        page=request.args.get('page', 1, type=int),
        per_page=request.args.get('per_page', type=int)
    )


@catalog_bp.route('/products/<slug>')
def product_detail(slug):
    db_session = get_session()
    product = catalog_service.get_product_by_slug(db_session, slug)
    data = product.to_dict()
    data['pricing'] = quote_for(db_session, product, g.user).to_dict()
    if product.category:
        data['category'] = {'id': product.category.id, 'name': product.category.name, 'slug': product.category.slug}
    return {'product': data}


@catalog_bp.route('/combos')
def combos():
    return {'combos': list_combo_offers(get_session(), active_only=True)}


@catalog_bp.route('/combos/<slug>')
def combo_detail(slug):
    return {'combo': get_combo_by_slug(get_session(), slug)}
