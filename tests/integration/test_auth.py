"""
Integration tests for authentication and authorization.
"""

from storefront.models import User, CartItem


class TestRegistration:
    """Test customer registration flow."""

    def test_register_new_customer(self, client, session, suffix):
        """Registration creates a regular customer and logs them in."""
        email = f'new-{suffix}@test.com'
        response = client.post('/auth/register', json={
            'email': email,
            'password': 'securepass123',
            'first_name': 'Meena',
        })

        assert response.status_code == 201
        body = response.get_json()
        assert body['user']['customer_type'] == 'regular'
        assert body['user']['role'] == 'customer'

        user = session.query(User).filter_by(email=email).first()
        assert user is not None
        assert user.check_password('securepass123')

        me = client.get('/auth/me')
        assert me.status_code == 200
        assert me.get_json()['user']['email'] == email

    def test_register_with_existing_email_fails(self, client, customer):
        """Test registering an email that is already taken."""
        response = client.post('/auth/register', json={
            'email': customer.email.upper(),
            'password': 'password123',
            'first_name': 'Duplicate',
        })
        assert response.status_code == 400
        assert 'already exists' in response.get_json()['message']

    def test_register_validates_fields(self, client):
        """Test registration field validation."""
        response = client.post('/auth/register', json={'email': 'not-an-email', 'password': '123'})
        assert response.status_code == 400
        errors = response.get_json()['errors']
        assert 'email' in errors
        assert 'password' in errors
        assert 'first_name' in errors


class TestLogin:
    """Test login, logout and role checks."""

    def test_login_and_logout(self, client, customer):
        """Test logging in and out."""
        response = client.post('/auth/login', json={'email': customer.email, 'password': 'password123'})
        assert response.status_code == 200

        assert client.post('/auth/logout').status_code == 200
        assert client.get('/auth/me').status_code == 401

    def test_wrong_password(self, client, customer):
        """Test logging in with a wrong password."""
        response = client.post('/auth/login', json={'email': customer.email, 'password': 'wrong-password'})
        assert response.status_code == 401
        assert response.get_json()['status'] == 'error'

    def test_inactive_user_cannot_log_in(self, client, session, customer):
        """Test that an inactive user cannot log in."""
        customer.is_active = False
        session.commit()
        response = client.post('/auth/login', json={'email': customer.email, 'password': 'password123'})
        assert response.status_code == 401

    def test_admin_area_requires_login(self, client):
        """Test that the admin area needs a login."""
        assert client.get('/admin/dashboard').status_code == 401

    def test_customer_cannot_reach_admin(self, customer_client):
        """Test that a customer cannot reach the admin area."""
        assert customer_client.get('/admin/dashboard').status_code == 403

    def test_support_role_can_use_pos_but_not_admin(self, client, session, suffix):
        """Test that support staff can use the POS only."""
        staff = User(email=f'support-{suffix}@test.com', role='support', is_active=True)
        staff.set_password('password123')
        session.add(staff)
        session.commit()

        client.post('/auth/login', json={'email': staff.email, 'password': 'password123'})
        assert client.get('/pos/products').status_code == 200
        assert client.get('/admin/dashboard').status_code == 403

    def test_guest_cart_is_merged_on_login(self, client, session, customer, product):
        """Test that the guest cart is merged at login."""
        customer_id = customer.id
        product_id = product.id
        response = client.post('/cart/items', json={'product_id': product_id, 'quantity': 2})
        assert response.status_code == 201

        client.post('/auth/login', json={'email': customer.email, 'password': 'password123'})

        items = session.query(CartItem).filter_by(user_id=customer_id).all()
        assert len(items) == 1
        assert items[0].quantity == 2
        assert items[0].session_id is None
        assert client.get('/cart').get_json()['item_count'] == 2


def test_csrf_token_endpoint(client):
    response = client.get('/auth/csrf')
    assert response.status_code == 200
    assert 'csrf_token' in response.get_json()
