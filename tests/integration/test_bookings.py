"""
Integration tests for the service booking vertical and the provider portal.
"""

from datetime import time

from storefront.models import ServiceBooking, ServiceOffering, ServiceProvider, ServiceSlot


def _book(client, slot_id, name='Meena', phone='9000011111'):
    return client.post(f'/bookings/slots/{slot_id}/book', json={'customer_name': name, 'customer_phone': phone})


class TestLocations:

    def test_hierarchy(self, admin_client, suffix):
        """Test creating and listing the location hierarchy."""
        country = admin_client.post('/bookings/admin/locations/country',
                                    json={'name': f'Bharat {suffix}', 'code': 'in'}).get_json()['location']
        assert country['code'] == 'IN'

        state = admin_client.post('/bookings/admin/locations/state',
                                  json={'name': 'Kerala', 'country_id': country['id']}).get_json()['location']
        city = admin_client.post('/bookings/admin/locations/city',
                                 json={'name': 'Kochi', 'state_id': state['id']}).get_json()['location']

        cities = admin_client.get(f"/bookings/locations/city?state_id={state['id']}").get_json()['locations']
        assert [c['id'] for c in cities] == [city['id']]

    def test_parent_is_required(self, admin_client):
        """Test that a location needs an existing parent."""
        response = admin_client.post('/bookings/admin/locations/city', json={'name': 'Nowhere', 'state_id': 999})
        assert response.status_code == 404

    def test_duplicate_name_under_same_parent(self, admin_client, locations):
        """Test that names are unique under one parent."""
        response = admin_client.post('/bookings/admin/locations/locality',
                                     json={'name': 'Adyar', 'city_id': locations['city'].id})
        assert response.status_code == 400

    def test_unknown_level(self, client):
        """Test listing an unknown location level."""
        assert client.get('/bookings/locations/planet').status_code == 400


class TestProviderSearch:

    def test_filters(self, client, session, provider, service, locations, suffix):
        """Test provider search filters."""
        unapproved = ServiceProvider(name='Pending Plumbing', email=f'pending-{suffix}@test.com',
                                     city_id=locations['city'].id, is_active=True, is_approved=False)
        unapproved.set_password('password123')
        unapproved.services = [service]
        session.add(unapproved)
        session.commit()

        found = client.get(f"/bookings/providers?service_id={service.id}&city_id={locations['city'].id}").get_json()
        assert [p['id'] for p in found['providers']] == [provider.id]

        by_locality = client.get(f"/bookings/providers?locality_id={locations['tnagar'].id}").get_json()
        assert by_locality['providers'] == []

    def test_open_slots(self, client, slot, provider):
        """Test listing a provider's open slots."""
        body = client.get(f'/bookings/providers/{provider.id}/slots').get_json()
        assert [s['id'] for s in body['slots']] == [slot.id]
        assert body['slots'][0]['start_time'] == '10:00'
        assert body['slots'][0]['remaining'] == 2


class TestProviderPortal:

    def test_register_is_unapproved(self, client, suffix):
        """Test that a self registered provider waits for approval."""
        response = client.post('/provider/register', json={
            'name': 'New Electricals', 'email': f'electric-{suffix}@test.com', 'password': 'password123'
        })
        assert response.status_code == 201
        assert response.get_json()['provider']['is_approved'] is False

        response = client.post('/provider/login', json={
            'email': f'electric-{suffix}@test.com', 'password': 'password123'
        })
        assert response.status_code == 403

    def test_wrong_password(self, client, provider):
        """Test provider login with a wrong password."""
        response = client.post('/provider/login', json={'email': provider.email, 'password': 'nope-nope'})
        assert response.status_code == 401

    def test_portal_requires_login(self, client):
        """Test that the provider portal needs a login."""
        assert client.get('/provider/slots').status_code == 401

    def test_create_slot(self, provider_client, service, tomorrow):
        """Test creating a slot."""
        response = provider_client.post('/provider/slots', json={
            'service_id': service.id,
            'slot_date': tomorrow.isoformat(),
            'start_time': '14:00',
            'end_time': '15:30',
            'capacity': 3,
        })
        assert response.status_code == 201, response.get_json()
        slot = response.get_json()['slot']
        assert slot['status'] == 'available'
        assert slot['remaining'] == 3

        slots = provider_client.get('/provider/slots').get_json()['slots']
        assert [s['id'] for s in slots] == [slot['id']]

    def test_overlapping_slot_is_rejected(self, provider_client, slot, service, tomorrow):
        """Test that overlapping slots are rejected."""
        response = provider_client.post('/provider/slots', json={
            'service_id': service.id,
            'slot_date': tomorrow.isoformat(),
            'start_time': '10:30',
            'end_time': '11:30',
        })
        assert response.status_code == 400
        assert 'overlaps' in response.get_json()['message']

    def test_back_to_back_slots_are_fine(self, provider_client, slot, service, tomorrow):
        """Test that back to back slots are allowed."""
        response = provider_client.post('/provider/slots', json={
            'service_id': service.id,
            'slot_date': tomorrow.isoformat(),
            'start_time': '11:00',
            'end_time': '12:00',
        })
        assert response.status_code == 201

    def test_end_before_start(self, provider_client, service, tomorrow):
        """Test that a slot must end after it starts."""
        response = provider_client.post('/provider/slots', json={
            'service_id': service.id,
            'slot_date': tomorrow.isoformat(),
            'start_time': '12:00',
            'end_time': '11:00',
        })
        assert response.status_code == 400

    def test_service_must_be_offered(self, provider_client, session, tomorrow, suffix):
        """Test that a slot must be for an offered service."""
        other = ServiceOffering(name=f'Painting {suffix}', duration_minutes=120)
        session.add(other)
        session.commit()
        response = provider_client.post('/provider/slots', json={
            'service_id': other.id,
            'slot_date': tomorrow.isoformat(),
            'start_time': '16:00',
            'end_time': '17:00',
        })
        assert response.status_code == 400

    def test_bad_time_format(self, provider_client, service, tomorrow):
        """Test a malformed slot time."""
        response = provider_client.post('/provider/slots', json={
            'service_id': service.id,
            'slot_date': tomorrow.isoformat(),
            'start_time': '9am',
            'end_time': '10:00',
        })
        assert response.status_code == 400
        assert 'start_time' in response.get_json()['errors']


class TestBookings:

    def test_booking_fills_slot(self, client, session, slot):
        """Test that bookings fill a slot up to capacity."""
        slot_id = slot.id
        first = _book(client, slot_id)
        assert first.status_code == 201, first.get_json()
        booking = first.get_json()['booking']
        assert booking['status'] == 'confirmed'
        assert booking['booking_number'].startswith('BK-')

        assert _book(client, slot_id, name='Ravi').status_code == 201
        assert session.get(ServiceSlot, slot_id).status == 'full'

        third = _book(client, slot_id, name='Late')
        assert third.status_code == 400

    def test_name_and_phone_required(self, client, slot):
        """Test that a guest booking needs a name and phone."""
        response = client.post(f'/bookings/slots/{slot.id}/book', json={'customer_name': 'Meena'})
        assert response.status_code == 400

    def test_logged_in_customer_details_are_used(self, customer_client, slot, customer):
        """Test that a logged-in customer's details are used."""
        response = customer_client.post(f'/bookings/slots/{slot.id}/book', json={})
        assert response.status_code == 201
        booking = response.get_json()['booking']
        assert booking['customer_name'] == 'Asha Kumar'
        assert booking['customer_phone'] == '9876543210'
        assert booking['user_id'] == customer.id

    def test_customer_cancel_reopens_slot(self, customer_client, session, slot):
        """Test that a customer cancellation reopens the slot."""
        slot_id = slot.id
        slot.capacity = 1
        session.commit()

        booking = customer_client.post(f'/bookings/slots/{slot_id}/book', json={}).get_json()['booking']
        assert session.get(ServiceSlot, slot_id).status == 'full'

        response = customer_client.post(f"/account/bookings/{booking['id']}/cancel")
        assert response.status_code == 200
        assert response.get_json()['booking']['status'] == 'cancelled'

        refreshed = session.get(ServiceSlot, slot_id)
        assert refreshed.status == 'available'
        assert refreshed.booked_count == 0

        assert customer_client.post(f"/account/bookings/{booking['id']}/cancel").status_code == 400

    def test_customer_sees_own_bookings(self, customer_client, slot):
        """Test listing a customer's bookings."""
        customer_client.post(f'/bookings/slots/{slot.id}/book', json={})
        bookings = customer_client.get('/account/bookings').get_json()['bookings']
        assert len(bookings) == 1

    def test_provider_cancels_slot(self, provider_client, session, slot):
        """Test that cancelling a slot cancels its bookings."""
        slot_id = slot.id
        booking_id = _book(provider_client, slot_id).get_json()['booking']['id']

        response = provider_client.post(f'/provider/slots/{slot_id}/cancel')
        assert response.status_code == 200
        assert response.get_json()['slot']['status'] == 'cancelled'
        assert session.get(ServiceBooking, booking_id).status == 'cancelled'

        # cancelled slots are closed for edits and bookings
        response = provider_client.patch(f'/provider/slots/{slot_id}', json={'capacity': 5})
        assert response.status_code == 400
        assert _book(provider_client, slot_id).status_code == 400

    def test_capacity_cannot_drop_below_bookings(self, provider_client, slot):
        """Test that capacity cannot drop below the bookings taken."""
        _book(provider_client, slot.id)
        _book(provider_client, slot.id, name='Ravi')
        response = provider_client.patch(f'/provider/slots/{slot.id}', json={'capacity': 1})
        assert response.status_code == 400

    def test_raising_capacity_reopens_full_slot(self, provider_client, slot):
        """Test that raising capacity reopens a full slot."""
        _book(provider_client, slot.id)
        _book(provider_client, slot.id, name='Ravi')
        response = provider_client.patch(f'/provider/slots/{slot.id}', json={'capacity': 3})
        assert response.status_code == 200
        assert response.get_json()['slot']['status'] == 'available'

    def test_provider_completes_booking(self, provider_client, slot):
        """Test completing a booking."""
        booking_id = _book(provider_client, slot.id).get_json()['booking']['id']
        response = provider_client.post(f'/provider/bookings/{booking_id}/status', json={'status': 'completed'})
        assert response.status_code == 200
        assert response.get_json()['booking']['status'] == 'completed'

        response = provider_client.post(f'/provider/bookings/{booking_id}/status', json={'status': 'cancelled'})
        assert response.status_code == 400

    def test_provider_cannot_touch_other_bookings(self, provider_client, session, slot, service,
                                                  tomorrow, suffix):
        """Test that a provider cannot change another provider's booking."""
        other = ServiceProvider(name='Other', email=f'other-{suffix}@test.com', is_active=True, is_approved=True)
        other.set_password('password123')
        other.services = [service]
        session.add(other)
        session.flush()
        other_slot = ServiceSlot(provider_id=other.id, service_id=service.id, slot_date=tomorrow,
                                 start_time=time(9, 0), end_time=time(10, 0), capacity=1, booked_count=0,
                                 status='available')
        session.add(other_slot)
        session.commit()

        booking_id = _book(provider_client, other_slot.id).get_json()['booking']['id']
        response = provider_client.post(f'/provider/bookings/{booking_id}/status', json={'status': 'completed'})
        assert response.status_code == 404
