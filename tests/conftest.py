import pytest
import uuid
from datetime import datetime, timedelta
from decimal import Decimal

from storefront import create_app
from storefront import database
from storefront.database import db_session, get_session
from storefront.models import (
    User, Category, Product, UserRole, CustomerType,
    ServiceOffering, ServiceProvider, ServiceSlot, SlotStatus,
    Country, State, City, Locality
)


@pytest.fixture(scope='session')
def app():
    """Create application instance for testing."""
    return create_app('config.TestConfig')


@pytest.fixture(scope='function')
def db(app):
    """Fresh schema per test, inside an application context."""
    with app.app_context():
        database.create_all()
        yield
        db_session.remove()
        database.drop_all()


@pytest.fixture(scope='function')
def client(app, db):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def session(db):
    """Create database session for testing."""
    session = get_session()
    yield session
    session.rollback()


@pytest.fixture(scope='function')
def suffix():
    return str(uuid.uuid4())[:8]


def login(client, email, password='password123'):
    return client.post('/auth/login', json={'email': email, 'password': password})


@pytest.fixture(scope='function')
def admin_user(session, suffix):
    """Back-office admin."""
    user = User(
        email=f'admin-{suffix}@test.com',
        first_name='Admin',
        role=UserRole.ADMIN.value,
        is_active=True
    )
    user.set_password('password123')
    session.add(user)
    session.commit()
    return user


@pytest.fixture(scope='function')
def admin_client(client, admin_user):
    """Test client logged in as an admin."""
    response = login(client, admin_user.email)
    assert response.status_code == 200
    return client


@pytest.fixture(scope='function')
def customer(session, suffix):
    """Regular customer."""
    user = User(
        email=f'customer-{suffix}@test.com',
        first_name='Asha',
        last_name='Kumar',
        phone='9876543210',
        role=UserRole.CUSTOMER.value,
        customer_type=CustomerType.REGULAR.value,
        is_active=True
    )
    user.set_password('password123')
    session.add(user)
    session.commit()
    return user


@pytest.fixture(scope='function')
def customer_client(client, customer):
    response = login(client, customer.email)
    assert response.status_code == 200
    return client


@pytest.fixture(scope='function')
def subscription_customer(session, suffix):
    """Subscriber with 10% off regular prices and 5% off sale prices."""
    user = User(
        email=f'subscriber-{suffix}@test.com',
        first_name='Ravi',
        role=UserRole.CUSTOMER.value,
        customer_type=CustomerType.SUBSCRIPTION.value,
        subscription_discount_type='percentage',
        subscription_discount_value=Decimal('10'),
        subscription_sale_discount_type='percentage',
        subscription_sale_discount_value=Decimal('5'),
        subscription_start_date=datetime.now() - timedelta(days=30),
        subscription_end_date=datetime.now() + timedelta(days=30),
        is_active=True
    )
    user.set_password('password123')
    session.add(user)
    session.commit()
    return user


@pytest.fixture(scope='function')
def category(session, suffix):
    category = Category(name='Groceries', slug=f'groceries-{suffix}', position=0, is_active=True)
    session.add(category)
    session.commit()
    return category


def make_product(session, category=None, **overrides):
    """Persist a product with sensible defaults."""
    token = uuid.uuid4().hex[:8]
    values = {
        'sku': f'SKU-{token}',
        'title': f'Product {token}',
        'slug': f'product-{token}',
        'category_id': category.id if category else None,
        'price': Decimal('100.00'),
        'gst_rate': Decimal('18'),
        'stock': 50,
        'low_stock_threshold': 5,
        'is_active': True,
    }
    values.update(overrides)
    product = Product(**values)
    session.add(product)
    session.commit()
    return product


@pytest.fixture(scope='function')
def product_factory(session, category):
    return lambda **overrides: make_product(session, category, **overrides)


@pytest.fixture(scope='function')
def product(session, category):
    return make_product(session, category, title='Basmati Rice 1kg', price=Decimal('250.00'), weight=Decimal('1.00'))


@pytest.fixture(scope='function')
def cheap_product(session, category):
    return make_product(session, category, title='Salt 1kg', price=Decimal('40.00'), gst_rate=Decimal('5'))


@pytest.fixture(scope='function')
def shipping_address():
    return {
        'full_name': 'Asha Kumar',
        'line1': '12 Anna Salai',
        'city': 'Chennai',
        'state': 'Tamil Nadu',
        'postal_code': '600002',
        'phone': '9876543210',
    }


@pytest.fixture(scope='function')
def locations(session, suffix):
    """Country > State > City > two localities."""
    country = Country(name=f'India {suffix}', code='IN')
    session.add(country)
    session.flush()
    state = State(name='Tamil Nadu', country_id=country.id)
    session.add(state)
    session.flush()
    city = City(name='Chennai', state_id=state.id)
    session.add(city)
    session.flush()
    adyar = Locality(name='Adyar', city_id=city.id, postal_code='600020')
    tnagar = Locality(name='T Nagar', city_id=city.id, postal_code='600017')
    session.add_all([adyar, tnagar])
    session.commit()
    return {'country': country, 'state': state, 'city': city, 'adyar': adyar, 'tnagar': tnagar}


@pytest.fixture(scope='function')
def service(session, suffix):
    service = ServiceOffering(name=f'Plumbing {suffix}', duration_minutes=60, base_price=Decimal('300'))
    session.add(service)
    session.commit()
    return service


@pytest.fixture(scope='function')
def provider(session, service, locations, suffix):
    """Approved provider offering the plumbing service in Adyar."""
    provider = ServiceProvider(
        name='Kannan Plumbing',
        email=f'provider-{suffix}@test.com',
        phone='9000000001',
        city_id=locations['city'].id,
        locality_id=locations['adyar'].id,
        is_active=True,
        is_approved=True
    )
    provider.set_password('password123')
    provider.services = [service]
    session.add(provider)
    session.commit()
    return provider


@pytest.fixture(scope='function')
def provider_client(client, provider):
    response = client.post('/provider/login', json={'email': provider.email, 'password': 'password123'})
    assert response.status_code == 200
    return client


@pytest.fixture(scope='function')
def tomorrow():
    return (datetime.now() + timedelta(days=1)).date()


@pytest.fixture(scope='function')
def slot(session, provider, service, tomorrow):
    """Tomorrow 10:00-11:00, two places."""
    slot = ServiceSlot(
        provider_id=provider.id,
        service_id=service.id,
        slot_date=tomorrow,
        start_time=datetime.strptime('10:00', '%H:%M').time(),
        end_time=datetime.strptime('11:00', '%H:%M').time(),
        capacity=2,
        booked_count=0,
        status=SlotStatus.AVAILABLE.value
    )
    session.add(slot)
    session.commit()
    return slot
