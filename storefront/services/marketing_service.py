"""
Marketing service - banners, home blocks, the "shop by category" section
and the assembled home page layout.
"""
import logging
import uuid
from datetime import datetime
from typing import List, Dict, Any, Optional
from flask import current_app
from sqlalchemy.orm import Session
from storefront.models import (
    Banner, HomeBlock, Category, Product, Setting, User,
    BannerType, BannerPlacement, HomeBlockType
)
from storefront.exceptions import BusinessLogicError, NotFoundError
from storefront.services.cache_service import get_cache, invalidate_catalog_cache
from storefront.services.catalog_service import serialize_products, get_descendant_ids
from storefront.services.layout_service import (
    layout_rows, normalize_width, normalize_alignment, ALLOWED_WIDTHS, ALIGNMENTS, DEFAULT_ALIGNMENT, FULL_WIDTH
)

logger = logging.getLogger(__name__)

CATEGORY_SECTION_KEY = 'home_category_section'
DEFAULT_BLOCK_LIMIT = 8

BLOCK_TYPES = [t.value for t in HomeBlockType]


# ---------------------------------------------------------------------------
# Banners
# ---------------------------------------------------------------------------

def list_banners(session: Session, banner_type: Optional[str] = None, active_only: bool = False) -> List[Banner]:
    query = session.query(Banner)
    if banner_type:
        query = query.filter(Banner.type == banner_type)
    if active_only:
        query = query.filter(Banner.is_active.is_(True))
    return query.order_by(Banner.position, Banner.id).all()


def save_banner(session: Session, data: Dict[str, Any], banner_id: Optional[int] = None) -> Banner:
    if banner_id:
        banner = session.get(Banner, banner_id)
        if not banner:
            raise NotFoundError('Banner not found')
    else:
        banner = Banner(
            type=BannerType.HERO.value,
            relative_placement=BannerPlacement.BELOW.value,
            display_width=FULL_WIDTH,
            alignment=DEFAULT_ALIGNMENT,
            position=0,
            is_active=True,
        )
        session.add(banner)

    try:
        for field in ('type', 'title', 'subtitle', 'image_url', 'mobile_image_url', 'link_url',
                      'button_text', 'target_block_id', 'relative_placement', 'position', 'is_active'):
            if field in data:
                setattr(banner, field, data[field])

        if banner.type not in (BannerType.HERO.value, BannerType.SECTION.value):
            raise BusinessLogicError('Banner type must be hero or section')
        if not banner.image_url:
            raise BusinessLogicError('Banner image is required')
        if 'display_width' in data:
            if data['display_width'] is not None and int(data['display_width']) not in ALLOWED_WIDTHS:
                raise BusinessLogicError('Display width must be 25, 50, 75 or 100')
            banner.display_width = normalize_width(data['display_width'])
        if 'alignment' in data:
            if data['alignment'] and data['alignment'] not in ALIGNMENTS:
                raise BusinessLogicError('Alignment must be left, center or right')
            banner.alignment = normalize_alignment(data['alignment'])
        if banner.relative_placement not in (None, BannerPlacement.ABOVE.value, BannerPlacement.BELOW.value):
            raise BusinessLogicError('Placement must be above or below')
        if banner.target_block_id and not session.get(HomeBlock, banner.target_block_id):
            raise NotFoundError('Target home block not found')
        if banner.type == BannerType.HERO.value:
            banner.target_block_id = None
        session.commit()
    except Exception:
        session.rollback()
        raise

    invalidate_catalog_cache()
    return banner


def delete_banner(session: Session, banner_id: int) -> None:
    banner = session.get(Banner, banner_id)
    if not banner:
        raise NotFoundError('Banner not found')
    session.delete(banner)
    session.commit()
    invalidate_catalog_cache()


# ---------------------------------------------------------------------------
# Home blocks
# ---------------------------------------------------------------------------

def list_home_blocks(session: Session, active_only: bool = False) -> List[HomeBlock]:
    query = session.query(HomeBlock)
    if active_only:
        query = query.filter(HomeBlock.is_active.is_(True))
    return query.order_by(HomeBlock.position, HomeBlock.id).all()


def save_home_block(session: Session, data: Dict[str, Any], block_id: Optional[int] = None) -> HomeBlock:
    if block_id:
        block = session.get(HomeBlock, block_id)
        if not block:
            raise NotFoundError('Home block not found')
    else:
        block = HomeBlock(position=0, is_active=True)
        session.add(block)

    try:
        for field in ('type', 'title', 'payload', 'position', 'is_active'):
            if field in data:
                setattr(block, field, data[field])
        if block.type not in BLOCK_TYPES:
            raise BusinessLogicError(f'Block type must be one of: {", ".join(BLOCK_TYPES)}')
        payload = block.payload or {}
        if block.type == HomeBlockType.CATEGORY_PRODUCTS.value:
            if not payload.get('category_id') or not session.get(Category, int(payload['category_id'])):
                raise BusinessLogicError('A valid category is required for category blocks')
        session.commit()
    except Exception:
        session.rollback()
        raise

    invalidate_catalog_cache()
    return block


def delete_home_block(session: Session, block_id: int) -> None:
    """Delete a block; banners pointing at it become orphans."""
    block = session.get(HomeBlock, block_id)
    if not block:
        raise NotFoundError('Home block not found')
    try:
        session.query(Banner).filter(Banner.target_block_id == block_id).update(
            {Banner.target_block_id: None}, synchronize_session=False
        )
        session.delete(block)
        session.commit()
    except Exception:
        session.rollback()
        raise
    invalidate_catalog_cache()


def reorder_home_blocks(session: Session, ordered_ids: List[int]) -> List[HomeBlock]:
    blocks = {b.id: b for b in list_home_blocks(session)}
    try:
        for position, block_id in enumerate(ordered_ids):
            block = blocks.get(int(block_id))
            if not block:
                raise NotFoundError(f'Home block {block_id} not found')
            block.position = position
        session.commit()
    except Exception:
        session.rollback()
        raise
    invalidate_catalog_cache()
    return list_home_blocks(session)


# ---------------------------------------------------------------------------
# Home layout
# ---------------------------------------------------------------------------

def _banner_rows(banners: List[Banner]) -> List[Dict[str, Any]]:
    return layout_rows(
        banners,
        lambda b: b.display_width,
        lambda b: b.alignment,
        lambda b: b.to_dict()
    )


def _block_content(session: Session, block: HomeBlock, user: Optional[User],
                   at: datetime) -> Dict[str, Any]:
    payload = block.payload or {}
    limit = int(payload.get('limit') or DEFAULT_BLOCK_LIMIT)
    query = session.query(Product).filter(Product.is_active.is_(True))

    if block.type == HomeBlockType.FEATURED_PRODUCTS.value:
        products = query.filter(Product.is_featured.is_(True)).order_by(
            Product.created_at.desc(), Product.id.desc()
        ).limit(limit).all()
        return {'products': serialize_products(session, products, user, at)}

    if block.type == HomeBlockType.CATEGORY_PRODUCTS.value:
        category_id = payload.get('category_id')
        if not category_id:
            return {'products': []}
        ids = get_descendant_ids(session, int(category_id))
        products = query.filter(Product.category_id.in_(ids)).order_by(
            Product.created_at.desc(), Product.id.desc()
        ).limit(limit).all()
        return {'products': serialize_products(session, products, user, at)}

    return dict(payload)


def _build_home_layout(session: Session, user: Optional[User], at: datetime) -> Dict[str, Any]:
    blocks = list_home_blocks(session, active_only=True)
    banners = list_banners(session, active_only=True)
    block_ids = {b.id for b in blocks}

    hero = [b.to_dict() for b in banners if b.type == BannerType.HERO.value]
    attached: Dict[tuple, List[Banner]] = {}
    orphans: List[Banner] = []
    for banner in banners:
        if banner.type != BannerType.SECTION.value:
            continue
        if banner.target_block_id in block_ids:
            placement = banner.relative_placement or BannerPlacement.BELOW.value
            attached.setdefault((banner.target_block_id, placement), []).append(banner)
        else:
            orphans.append(banner)

    sections = []
    for block in blocks:
        sections.append({
            'block': block.to_dict(),
            'above': _banner_rows(attached.get((block.id, BannerPlacement.ABOVE.value), [])),
            'content': _block_content(session, block, user, at),
            'below': _banner_rows(attached.get((block.id, BannerPlacement.BELOW.value), [])),
        })

    return {
        'hero': hero,
        'sections': sections,
        'trailing_banners': _banner_rows(orphans),
        'category_section': build_category_section(session),
    }


def build_home_layout(session: Session, user: Optional[User] = None,
                      at: Optional[datetime] = None) -> Dict[str, Any]:
    """
    Assemble the home page: hero banners, active blocks in position order
    with their section banners row-packed above and below, and banners
    whose target block is gone in a trailing slot.

    Anonymous layouts are cached; product prices depend on the customer.
    """
    at = at or datetime.now()
    if user is not None:
        return _build_home_layout(session, user, at)
    ttl = current_app.config.get('CACHE_HOME_TTL', 120)
    return get_cache().memoize('home', 'layout', lambda: _build_home_layout(session, None, at), ttl)


# ---------------------------------------------------------------------------
# Shop by category section
# ---------------------------------------------------------------------------

def default_category_section() -> Dict[str, Any]:
    return {
        'title': 'Shop by Category',
        'subtitle': '',
        'is_visible': True,
        'position': 0,
        'categories': [],
    }


def get_category_section(session: Session) -> Dict[str, Any]:
    row = session.query(Setting).filter(Setting.key == CATEGORY_SECTION_KEY).first()
    section = default_category_section()
    if row and row.value:
        section.update(row.value)
    return section


def save_category_section(session: Session, data: Dict[str, Any]) -> Dict[str, Any]:
    section = get_category_section(session)
    for field in ('title', 'subtitle', 'is_visible', 'position'):
        if field in data:
            section[field] = data[field]

    if 'categories' in data:
        entries = []
        for index, item in enumerate(data['categories'] or []):
            category_id = item.get('category_id')
            if not category_id or not session.get(Category, int(category_id)):
                raise NotFoundError(f'Category {category_id} not found')
            if item.get('display_width') is not None and int(item['display_width']) not in ALLOWED_WIDTHS:
                raise BusinessLogicError('Display width must be 25, 50, 75 or 100')
            entries.append({
                'id': item.get('id') or uuid.uuid4().hex,
                'category_id': int(category_id),
                'custom_label': item.get('custom_label') or None,
                'image_url': item.get('image_url') or None,
                'position': index if item.get('position') is None else int(item['position']),
                'is_visible': bool(item.get('is_visible', True)),
                'display_width': str(normalize_width(item.get('display_width'))),
                'alignment': normalize_alignment(item.get('alignment')),
            })
        section['categories'] = entries

    try:
        row = session.query(Setting).filter(Setting.key == CATEGORY_SECTION_KEY).first()
        if row:
            row.value = section
        else:
            session.add(Setting(key=CATEGORY_SECTION_KEY, value=section))
        session.commit()
    except Exception:
        session.rollback()
        raise

    invalidate_catalog_cache()
    return section


def build_category_section(session: Session) -> Optional[Dict[str, Any]]:
    """Visible category tiles in position order, packed into rows."""
    section = get_category_section(session)
    if not section.get('is_visible'):
        return None

    items = sorted(
        (c for c in section.get('categories', []) if c.get('is_visible', True)),
        key=lambda c: c.get('position', 0)
    )
    categories = {
        c.id: c for c in session.query(Category).filter(
            Category.id.in_([int(i['category_id']) for i in items])
        ).all()
    } if items else {}

    tiles = []
    for item in items:
        category = categories.get(int(item['category_id']))
        if not category or not category.is_active:
            continue
        tiles.append({
            **item,
            'label': item.get('custom_label') or category.name,
            'slug': category.slug,
            'image': item.get('image_url') or category.image_url or category.banner_url,
        })

    return {
        'title': section.get('title'),
        'subtitle': section.get('subtitle'),
        'position': section.get('position', 0),
        'rows': layout_rows(
            tiles,
            lambda t: t.get('display_width'),
            lambda t: t.get('alignment'),
            lambda t: t
        ),
    }
