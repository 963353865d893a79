from extensions import db
from models import AdminNotification, Booking, User, BOOKING_CANCELLED, BOOKING_CONFIRMED

from conftest import ADMIN_EMAIL, PASSWORD, login, make_user


def book(client, room_id, start='09:00', end='10:00', day='2024-06-01', **extra):
    data = {
        'roomId': room_id,
        'date': day,
        'startTime': start,
        'endTime': end,
        'purpose': 'Design review',
        'bookingType': 'personal',
    }
    data.update(extra)
    return client.post('/api/bookings/create', json=data)


def check(client, room_id, start, end, day='2024-06-01'):
    return client.post('/api/bookings/check-availability', json={
        'roomId': room_id, 'date': day, 'startTime': start, 'endTime': end,
    })


# ---- Auth ----

def test_register_login_me_logout(app):
    client = app.test_client()
    response = client.post('/api/register', json={
        'email': 'Carol@Example.com', 'password': PASSWORD,
        'firstName': 'Carol', 'lastName': 'Chen',
    })
    assert response.status_code == 201

    response = login(client, 'carol@example.com')
    body = response.get_json()
    assert body['user']['role'] == 'employee'
    assert body['token']

    assert client.get('/api/me').get_json()['user']['email'] == 'carol@example.com'
    assert client.post('/api/logout').status_code == 200
    assert client.get('/api/me').status_code == 401


def test_register_rejects_missing_fields_and_duplicates(app, employee_id):
    client = app.test_client()
    response = client.post('/api/register', json={'email': 'x@example.com'})
    assert response.status_code == 400
    assert response.get_json()['success'] is False

    response = client.post('/api/register', json={
        'email': 'alice@example.com', 'password': PASSWORD,
        'firstName': 'Alice', 'lastName': 'Again',
    })
    assert response.status_code == 400
    assert response.get_json()['message'] == 'User already exists'


def test_registration_notifies_admins_except_for_admin_email(app):
    client = app.test_client()
    client.post('/api/register', json={
        'email': 'dan@example.com', 'password': PASSWORD, 'firstName': 'Dan', 'lastName': 'Diaz'})
    client.post('/api/register', json={
        'email': ADMIN_EMAIL, 'password': PASSWORD, 'firstName': 'Ada', 'lastName': 'Admin'})

    with app.app_context():
        notifications = AdminNotification.query.all()
        assert [n.type for n in notifications] == ['new_user']
        assert 'dan@example.com' in notifications[0].message
        assert User.query.filter_by(email=ADMIN_EMAIL).one().is_admin


def test_bad_credentials_and_deactivated_account(app):
    make_user(app, 'eve@example.com', is_active=False)
    client = app.test_client()
    response = client.post('/api/login', json={'email': 'eve@example.com', 'password': 'wrong'})
    assert response.status_code == 401
    response = client.post('/api/login', json={'email': 'eve@example.com', 'password': PASSWORD})
    assert response.status_code == 401
    assert response.get_json()['message'] == 'Account is deactivated'


def test_bearer_token_authenticates(app, employee_id):
    token = login(app.test_client(), 'alice@example.com').get_json()['token']
    client = app.test_client()
    assert client.get('/api/rooms').status_code == 401
    response = client.get('/api/rooms', headers={'Authorization': f'Bearer {token}'})
    assert response.status_code == 200
    assert client.get('/api/rooms', headers={'Authorization': 'Bearer junk'}).status_code == 401


def test_rooms_and_teams_list_active_entries(employee_client):
    rooms = employee_client.get('/api/rooms').get_json()
    assert [r['name'] for r in rooms] == ['Conference Room 1', 'Cabin 1']
    teams = employee_client.get('/api/teams').get_json()
    assert {t['name'] for t in teams} == {'Engineering', 'Marketing', 'Sales', 'HR', 'Finance'}


# ---- Booking scenarios ----

def test_overlapping_request_reports_conflict(employee_client, other_client, room_id):
    booking_a = book(employee_client, room_id, '09:00', '10:00').get_json()

    body = check(other_client, room_id, '09:30', '10:30').get_json()
    assert body['available'] is False
    assert body['conflict'] == {
        'id': booking_a['id'],
        'room': 'Conference Room 1',
        'bookedBy': 'Alice Anders',
        'startTime': '09:00',
        'endTime': '10:00',
        'date': '2024-06-01',
    }
    assert len(body['conflictingBookings']) == 1


def test_back_to_back_request_is_available(employee_client, other_client, room_id):
    book(employee_client, room_id, '09:00', '10:00')
    assert check(other_client, room_id, '10:00', '11:00').get_json() == {'available': True}


def test_priority_request_approval_transfers_booking(app, employee_client, other_client, admin_client, room_id, other_id):
    booking_a = book(employee_client, room_id).get_json()

    response = other_client.post('/api/priority-requests', json={
        'conflictBookingId': booking_a['id'], 'reason': 'Customer visit'})
    assert response.status_code == 201
    request_id = response.get_json()['id']
    assert response.get_json()['status'] == 'pending'

    response = admin_client.post(f'/api/admin/priority-requests/{request_id}/approve', json={
        'newBookingData': {'date': '2024-06-01', 'startTime': '09:00', 'endTime': '10:00',
                           'purpose': 'Customer visit', 'bookingType': 'personal'}})
    assert response.status_code == 200
    new_booking = response.get_json()['booking']
    assert new_booking['userId'] == other_id

    with app.app_context():
        assert db.session.get(Booking, booking_a['id']).status == BOOKING_CANCELLED
        confirmed = Booking.query.filter_by(status=BOOKING_CONFIRMED).all()
        assert [(b.user_id, b.start_time, b.end_time) for b in confirmed] == [(other_id, '09:00', '10:00')]

    response = admin_client.post(f'/api/admin/priority-requests/{request_id}/approve', json={})
    assert response.status_code == 409


def test_second_create_for_same_slot_gets_409(employee_client, other_client, room_id, mailer):
    first = book(employee_client, room_id)
    second = book(other_client, room_id)
    assert first.status_code == 201
    assert second.status_code == 409
    body = second.get_json()
    assert body['message'] == 'Room is no longer available'
    assert body['conflicts'][0]['id'] == first.get_json()['id']
    assert [m[0] for m in mailer.sent] == ['confirmation']


def test_create_validation_and_unknown_room(employee_client, room_id):
    assert book(employee_client, room_id, '10:00', '09:00').status_code == 400
    assert book(employee_client, room_id, purpose='').status_code == 400
    assert book(employee_client, 9999).status_code == 404


def test_confirmation_email_failure_does_not_fail_booking(app, employee_client, room_id):
    class BrokenMailer:
        def send_booking_confirmation(self, *args):
            raise RuntimeError('mail down')

    app.extensions['email_dispatcher'] = BrokenMailer()
    assert book(employee_client, room_id).status_code == 201


def test_cancel_own_booking_twice_and_not_others(employee_client, other_client, room_id):
    booking_id = book(employee_client, room_id).get_json()['id']

    assert other_client.post(f'/api/bookings/cancel/{booking_id}').status_code == 404
    assert employee_client.post(f'/api/bookings/cancel/{booking_id}').status_code == 200
    assert employee_client.post(f'/api/bookings/cancel/{booking_id}').status_code == 200

    bookings = employee_client.get('/api/bookings').get_json()
    assert bookings[0]['status'] == 'cancelled'
    assert bookings[0]['room'] == 'Conference Room 1'


def test_schedule_lists_confirmed_bookings(employee_client, other_client, room_id):
    book(employee_client, room_id, '09:00', '10:00')
    book(other_client, room_id, '11:00', '12:00', day='2024-06-02')
    book(other_client, room_id, '11:00', '12:00', day='2024-06-05')

    schedule = employee_client.get('/api/bookings/schedule?start=2024-06-01&end=2024-06-02').get_json()
    assert [(s['date'], s['bookedBy']) for s in schedule] == [
        ('2024-06-01', 'Alice Anders'), ('2024-06-02', 'Bob Brown')]
    assert employee_client.get('/api/bookings/schedule?start=bad').status_code == 400


def test_anonymous_requests_are_rejected(app):
    client = app.test_client()
    assert client.get('/api/bookings').status_code == 401
    assert client.post('/api/bookings/create', json={}).status_code == 401


# ---- Admin ----

def test_admin_endpoints_forbid_employees(employee_client):
    for method, url in [
        ('get', '/api/admin/priority-requests'),
        ('post', '/api/admin/priority-requests/1/approve'),
        ('post', '/api/admin/priority-requests/1/reject'),
        ('get', '/api/admin/users'),
        ('get', '/api/admin/notifications'),
        ('post', '/api/admin/rooms'),
        ('delete', '/api/admin/teams/1'),
    ]:
        response = getattr(employee_client, method)(url, json={})
        assert response.status_code == 403, url
        assert response.get_json() == {'success': False, 'message': 'Admin access required'}


def test_admin_lists_and_rejects_priority_requests(employee_client, other_client, admin_client, room_id):
    booking_id = book(employee_client, room_id).get_json()['id']
    request_id = other_client.post('/api/priority-requests', json={
        'conflictBookingId': booking_id, 'reason': 'Board meeting'}).get_json()['id']

    listing = admin_client.get('/api/admin/priority-requests').get_json()
    assert listing[0]['requester']['email'] == 'bob@example.com'
    assert listing[0]['conflictBooking']['owner']['email'] == 'alice@example.com'
    assert listing[0]['conflictBooking']['room'] == 'Conference Room 1'

    response = admin_client.post(f'/api/admin/priority-requests/{request_id}/reject')
    assert response.status_code == 200
    assert response.get_json()['request']['status'] == 'rejected'
    assert admin_client.post(f'/api/admin/priority-requests/{request_id}/reject').status_code == 409
    assert admin_client.post('/api/admin/priority-requests/999/reject').status_code == 404


def test_admin_manages_users(app, admin_client, employee_id):
    users = admin_client.get('/api/admin/users').get_json()
    assert {u['email'] for u in users} == {ADMIN_EMAIL, 'alice@example.com'}

    assert admin_client.post(f'/api/admin/users/{employee_id}/role', json={'role': 'boss'}).status_code == 400
    assert admin_client.post(f'/api/admin/users/{employee_id}/role', json={'role': 'admin'}).status_code == 200
    assert admin_client.post(f'/api/admin/users/{employee_id}/status', json={'isActive': 'no'}).status_code == 400
    assert admin_client.post(f'/api/admin/users/{employee_id}/status', json={'isActive': False}).status_code == 200
    assert admin_client.post('/api/admin/users/999/status', json={'isActive': False}).status_code == 404

    with app.app_context():
        user = db.session.get(User, employee_id)
        assert user.is_admin
        assert user.is_active is False


def test_deactivated_user_loses_session(app, employee_client, admin_client, employee_id):
    assert employee_client.get('/api/rooms').status_code == 200
    admin_client.post(f'/api/admin/users/{employee_id}/status', json={'isActive': False})
    assert employee_client.get('/api/rooms').status_code == 401


def test_admin_notifications_read_and_unread(admin_client, other_client, employee_client, room_id):
    booking_id = book(employee_client, room_id).get_json()['id']
    other_client.post('/api/priority-requests', json={'conflictBookingId': booking_id, 'reason': 'Demo'})

    notifications = admin_client.get('/api/admin/notifications').get_json()
    assert [n['type'] for n in notifications] == ['priority_request']
    notification_id = notifications[0]['id']
    assert notifications[0]['isRead'] is False

    admin_client.post(f'/api/admin/notifications/{notification_id}/read')
    assert admin_client.get('/api/admin/notifications').get_json()[0]['isRead'] is True
    admin_client.post(f'/api/admin/notifications/{notification_id}/unread')
    assert admin_client.get('/api/admin/notifications').get_json()[0]['isRead'] is False
    assert admin_client.post('/api/admin/notifications/999/read').status_code == 404


def test_admin_room_lifecycle(admin_client, employee_client):
    response = admin_client.post('/api/admin/rooms', json={'name': 'Huddle', 'capacity': 3})
    assert response.status_code == 201
    new_room_id = response.get_json()['id']
    assert admin_client.post('/api/admin/rooms', json={'name': ''}).status_code == 400
    assert admin_client.post('/api/admin/rooms', json={'name': 'X', 'capacity': 0}).status_code == 400

    response = admin_client.put(f'/api/admin/rooms/{new_room_id}', json={'capacity': 6})
    assert response.get_json()['room']['capacity'] == 6

    assert book(employee_client, new_room_id).status_code == 201
    assert admin_client.delete(f'/api/admin/rooms/{new_room_id}').status_code == 200
    names = [r['name'] for r in employee_client.get('/api/rooms').get_json()]
    assert 'Huddle' not in names
    assert book(employee_client, new_room_id, '11:00', '12:00').status_code == 404
    assert admin_client.delete('/api/admin/rooms/999').status_code == 404


def test_admin_team_lifecycle(admin_client, employee_client):
    response = admin_client.post('/api/admin/teams', json={'name': 'Design'})
    assert response.status_code == 201
    team_id = response.get_json()['id']

    admin_client.put(f'/api/admin/teams/{team_id}', json={'name': 'Product Design'})
    assert 'Product Design' in [t['name'] for t in employee_client.get('/api/teams').get_json()]

    admin_client.delete(f'/api/admin/teams/{team_id}')
    assert 'Product Design' not in [t['name'] for t in employee_client.get('/api/teams').get_json()]
    assert admin_client.post('/api/admin/teams', json={}).status_code == 400


def test_health(app):
    client = app.test_client()
    assert client.get('/health').get_json() == {'status': 'healthy'}
    assert client.get('/').get_json()['status'] == 'success'
