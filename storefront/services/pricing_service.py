"""
Pricing service.

Resolves the price a customer pays for a product: sale window first, then
the subscription discount (customer level, replaced by a per category
override when one exists). All prices are GST-inclusive.
"""
from dataclasses import dataclass, asdict
from decimal import Decimal, ROUND_HALF_UP
from datetime import datetime
from typing import Dict, Optional
from sqlalchemy.orm import Session
from storefront.models import User, Product, SubscriptionCategoryDiscount, CustomerType, DiscountType

CENT = Decimal('0.01')
ZERO = Decimal('0.00')


def to_money(value) -> Decimal:
    """Coerce a value to a 2-dp Decimal (half-up)."""
    if value is None:
        return ZERO
    return Decimal(str(value)).quantize(CENT, rounding=ROUND_HALF_UP)


@dataclass
class PriceQuote:
    """Resolved unit price for one product and one customer."""
    list_price: Decimal
    base_price: Decimal
    unit_price: Decimal
    on_sale: bool = False
    discount_percent: int = 0
    subscription_discount: Decimal = ZERO
    discount_source: Optional[str] = None  # 'customer' or 'category'

    def to_dict(self):
        return asdict(self)


def is_sale_active(product: Product, at: Optional[datetime] = None) -> bool:
    """Sale price applies when set, lower than the price and inside its window."""
    if product.sale_price is None:
        return False
    if Decimal(str(product.sale_price)) >= Decimal(str(product.price)):
        return False
    at = at or datetime.now()
    if product.sale_price_start and at < product.sale_price_start:
        return False
    if product.sale_price_end and at > product.sale_price_end:
        return False
    return True


def get_base_price(product: Product, at: Optional[datetime] = None) -> Decimal:
    if is_sale_active(product, at):
        return to_money(product.sale_price)
    return to_money(product.price)


def get_discount_percent(product: Product, at: Optional[datetime] = None) -> int:
    """Whole percent saved by the sale price, 0 when no sale applies."""
    if not is_sale_active(product, at):
        return 0
    price = Decimal(str(product.price))
    if price <= 0:
        return 0
    saved = (1 - Decimal(str(product.sale_price)) / price) * 100
    return int(saved.quantize(Decimal('1'), rounding=ROUND_HALF_UP))


def apply_discount(amount, discount_type: Optional[str], value) -> Decimal:
    """
    Apply a percentage or fixed discount to an amount.

    Percentages are capped at 100 and fixed amounts at the amount itself, so
    the result is never negative.
    """
    amount = to_money(amount)
    if not discount_type or value is None:
        return amount
    value = Decimal(str(value))
    if value <= 0:
        return amount

    if discount_type == DiscountType.PERCENTAGE.value:
        pct = min(value, Decimal('100'))
        reduced = amount - (amount * pct / 100)
    elif discount_type == DiscountType.FIXED.value:
        reduced = amount - min(value, amount)
    else:
        return amount

    return max(reduced, ZERO).quantize(CENT, rounding=ROUND_HALF_UP)


def is_subscription_active(user: Optional[User], at: Optional[datetime] = None) -> bool:
    if user is None or user.customer_type != CustomerType.SUBSCRIPTION.value:
        return False
    at = at or datetime.now()
    if user.subscription_start_date and at < user.subscription_start_date:
        return False
    if user.subscription_end_date and at > user.subscription_end_date:
        return False
    return True


def _select_discount(source, on_sale: bool):
    """Pick the (type, value) pair used for the current price mode."""
    if on_sale:
        return source.sale_discount_type, source.sale_discount_value
    return source.discount_type, source.discount_value


def resolve_price(
    product: Product,
    user: Optional[User] = None,
    at: Optional[datetime] = None,
    category_override: Optional[SubscriptionCategoryDiscount] = None
) -> PriceQuote:
    """Resolve the unit price a customer pays for a product."""
    at = at or datetime.now()
    on_sale = is_sale_active(product, at)
    base_price = get_base_price(product, at)
    quote = PriceQuote(
        list_price=to_money(product.price),
        base_price=base_price,
        unit_price=base_price,
        on_sale=on_sale,
        discount_percent=get_discount_percent(product, at),
    )

    if not is_subscription_active(user, at):
        return quote

    if on_sale:
        discount_type = user.subscription_sale_discount_type
        discount_value = user.subscription_sale_discount_value
    else:
        discount_type = user.subscription_discount_type
        discount_value = user.subscription_discount_value
    source = 'customer'

    if category_override is not None:
        override_type, override_value = _select_discount(category_override, on_sale)
        if override_value is not None:
            discount_type = override_type or discount_type
            discount_value = override_value
            source = 'category'

    if discount_value is None or Decimal(str(discount_value)) <= 0:
        return quote

    unit_price = apply_discount(base_price, discount_type, discount_value)
    if unit_price == base_price:
        return quote

    quote.unit_price = unit_price
    quote.subscription_discount = (base_price - unit_price).quantize(CENT)
    quote.discount_source = source
    return quote


def load_category_overrides(session: Session, user: Optional[User]) -> Dict[int, SubscriptionCategoryDiscount]:
    """Map category id to the customer's override row."""
    if user is None or user.customer_type != CustomerType.SUBSCRIPTION.value:
        return {}
    rows = session.query(SubscriptionCategoryDiscount).filter(
        SubscriptionCategoryDiscount.customer_id == user.id
    ).all()
    return {row.category_id: row for row in rows}


def quote_for(session: Session, product: Product, user: Optional[User] = None,
              at: Optional[datetime] = None, overrides: Optional[Dict] = None) -> PriceQuote:
    """Resolve a price loading the customer's category overrides when not supplied."""
    if overrides is None:
        overrides = load_category_overrides(session, user)
    return resolve_price(product, user, at, overrides.get(product.category_id))
