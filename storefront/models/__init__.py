"""Models package."""
from storefront.models.user import User, UserRole, CustomerType, DiscountType, DeliverySchedule, STAFF_ROLES
from storefront.models.address import Address
from storefront.models.category import Category
from storefront.models.product import Product
from storefront.models.subscription_category_discount import SubscriptionCategoryDiscount
from storefront.models.coupon import Coupon
from storefront.models.order import Order, OrderStatus, PaymentStatus, OrderSource, PosPaymentType
from storefront.models.order_item import OrderItem
from storefront.models.cart_item import CartItem
from storefront.models.home_block import HomeBlock, HomeBlockType
from storefront.models.banner import Banner, BannerType, BannerPlacement, BannerAlignment
from storefront.models.setting import Setting
from storefront.models.combo_offer import ComboOffer
from storefront.models.delivery_tier import SubscriptionDeliveryTier
from storefront.models.location import Country, State, City, Locality
from storefront.models.service_provider import ServiceOffering, ServiceProvider, provider_services
from storefront.models.service_slot import ServiceSlot, SlotStatus
from storefront.models.service_booking import ServiceBooking, BookingStatus

__all__ = [
    'User', 'UserRole', 'CustomerType', 'DiscountType', 'DeliverySchedule', 'STAFF_ROLES',
    'Address',
    'Category',
    'Product',
    'SubscriptionCategoryDiscount',
    'Coupon',
    'Order', 'OrderStatus', 'PaymentStatus', 'OrderSource', 'PosPaymentType',
    'OrderItem',
    'CartItem',
    'HomeBlock', 'HomeBlockType',
    'Banner', 'BannerType', 'BannerPlacement', 'BannerAlignment',
    'Setting',
    'ComboOffer',
    'SubscriptionDeliveryTier',
    'Country', 'State', 'City', 'Locality',
    'ServiceOffering', 'ServiceProvider', 'provider_services',
    'ServiceSlot', 'SlotStatus',
    'ServiceBooking', 'BookingStatus',
]
