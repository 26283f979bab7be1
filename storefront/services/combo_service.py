"""Combo offers - several products sold together at one price."""
import logging
from decimal import Decimal, ROUND_HALF_UP
from datetime import datetime
from typing import List, Dict, Any, Optional
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from storefront.models import ComboOffer, Product
from storefront.exceptions import BusinessLogicError, NotFoundError
from storefront.services.catalog_service import slugify
from storefront.services.pricing_service import to_money, ZERO

logger = logging.getLogger(__name__)


def calculate_combo_pricing(products: List[Product], combo_price) -> Dict[str, Decimal]:
    """
    Original price (sum of regular prices) and discount percentage of a combo.

    Raises:
        BusinessLogicError: fewer than two distinct products, or a combo
            price that is not positive or exceeds the original price
    """
    if len({p.id for p in products}) < 2:
        raise BusinessLogicError('A combo needs at least two different products')

    combo_price = to_money(combo_price)
    original_price = to_money(sum((Decimal(str(p.price)) for p in products), ZERO))

    if combo_price <= 0:
        raise BusinessLogicError('Combo price must be greater than 0')
    if combo_price > original_price:
        raise BusinessLogicError('Combo price cannot exceed the original price')

    discount = ((original_price - combo_price) / original_price * 100).quantize(
        Decimal('0.01'), rounding=ROUND_HALF_UP
    )
    return {'original_price': original_price, 'combo_price': combo_price, 'discount_percentage': discount}


def _load_products(session: Session, product_ids: List[int]) -> List[Product]:
    ids = []
    for pid in product_ids or []:
        pid = int(pid)
        if pid not in ids:
            ids.append(pid)
    products = {p.id: p for p in session.query(Product).filter(Product.id.in_(ids)).all()} if ids else {}
    missing = [pid for pid in ids if pid not in products]
    if missing:
        raise NotFoundError(f'Products not found: {", ".join(str(m) for m in missing)}')
    return [products[pid] for pid in ids]


def save_combo_offer(session: Session, data: Dict[str, Any], combo_id: Optional[int] = None) -> ComboOffer:
    """Create or update a combo, recomputing its pricing."""
    if combo_id:
        combo = session.get(ComboOffer, combo_id)
        if not combo:
            raise NotFoundError('Combo offer not found')
    else:
        combo = ComboOffer(position=0, is_active=True)
        session.add(combo)

    try:
        for field in ('title', 'description', 'image_url', 'position', 'is_active', 'start_date', 'end_date'):
            if field in data:
                setattr(combo, field, data[field])
        if not combo.title:
            raise BusinessLogicError('Combo title is required')
        if combo.start_date and combo.end_date and combo.end_date < combo.start_date:
            raise BusinessLogicError('End date must be after the start date')

        products = _load_products(session, data.get('product_ids', combo.product_ids))
        pricing = calculate_combo_pricing(products, data.get('combo_price', combo.combo_price))

        combo.product_ids = [p.id for p in products]
        combo.combo_price = pricing['combo_price']
        combo.original_price = pricing['original_price']
        combo.discount_percentage = pricing['discount_percentage']
        combo.slug = slugify(data.get('slug') or combo.slug or combo.title)
        session.commit()
    except IntegrityError:
        session.rollback()
        raise BusinessLogicError(f'A combo with slug "{combo.slug}" already exists')
    except Exception:
        session.rollback()
        raise

    logger.info(f"[COMBO] Saved {combo.slug} ({combo.discount_percentage}% off)")
    return combo


def delete_combo_offer(session: Session, combo_id: int) -> None:
    combo = session.get(ComboOffer, combo_id)
    if not combo:
        raise NotFoundError('Combo offer not found')
    session.delete(combo)
    session.commit()


def serialize_combo(session: Session, combo: ComboOffer) -> Dict[str, Any]:
    data = combo.to_dict()
    ids = list(combo.product_ids or [])
    products = {p.id: p for p in session.query(Product).filter(Product.id.in_(ids)).all()} if ids else {}
    data['products'] = [products[pid].to_dict() for pid in ids if pid in products]
    return data


def list_combo_offers(session: Session, active_only: bool = False,
                      at: Optional[datetime] = None) -> List[Dict[str, Any]]:
    """Combos by position with their products; `active_only` also honours the date window."""
    at = at or datetime.now()
    combos = session.query(ComboOffer).order_by(ComboOffer.position, ComboOffer.id).all()
    if active_only:
        combos = [c for c in combos if c.is_live(at)]
    return [serialize_combo(session, c) for c in combos]


def get_combo_by_slug(session: Session, slug: str, at: Optional[datetime] = None) -> Dict[str, Any]:
    combo = session.query(ComboOffer).filter(ComboOffer.slug == slug).first()
    if not combo or not combo.is_live(at or datetime.now()):
        raise NotFoundError('Combo offer not found')
    return serialize_combo(session, combo)
