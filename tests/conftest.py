import pytest

from app import create_app
from extensions import db
from models import User, Room, ROLE_ADMIN, ROLE_EMPLOYEE

PASSWORD = 'secret123'
ADMIN_EMAIL = 'admin@example.com'


class FakeMailer:
    """Records outgoing mail instead of sending it."""

    def __init__(self):
        self.sent = []

    def send_booking_confirmation(self, user, booking, room):
        self.sent.append(('confirmation', user.email, booking.id))
        return True

    def send_priority_request(self, owner, requester, booking, room, reason):
        self.sent.append(('priority', owner.email, booking.id))
        return True


@pytest.fixture
def app():
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite://',
        'SECRET_KEY': 'test-secret',
        'JWT_SECRET_KEY': 'test-jwt-secret',
        'ADMIN_EMAIL': ADMIN_EMAIL,
        'SENDGRID_API_KEY': None,
        'SEED_DATA': True,
        'APP_TIMEZONE': 'UTC',
    })
    app.extensions['email_dispatcher'] = FakeMailer()
    yield app
    with app.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture
def mailer(app):
    return app.extensions['email_dispatcher']


def make_user(app, email, first_name='Test', last_name='User', role=ROLE_EMPLOYEE, is_active=True):
    with app.app_context():
        user = User(email=email, first_name=first_name, last_name=last_name,
                    role=role, is_active=is_active)
        user.set_password(PASSWORD)
        db.session.add(user)
        db.session.commit()
        return user.id


def login(client, email, password=PASSWORD):
    response = client.post('/api/login', json={'email': email, 'password': password})
    assert response.status_code == 200, response.get_json()
    return response


@pytest.fixture
def employee_id(app):
    return make_user(app, 'alice@example.com', 'Alice', 'Anders')


@pytest.fixture
def other_id(app):
    return make_user(app, 'bob@example.com', 'Bob', 'Brown')


@pytest.fixture
def admin_id(app):
    return make_user(app, ADMIN_EMAIL, 'Ada', 'Admin', role=ROLE_ADMIN)


@pytest.fixture
def room_id(app):
    with app.app_context():
        return Room.query.filter_by(name='Conference Room 1').first().id


@pytest.fixture
def employee_client(app, employee_id):
    client = app.test_client()
    login(client, 'alice@example.com')
    return client


@pytest.fixture
def other_client(app, other_id):
    client = app.test_client()
    login(client, 'bob@example.com')
    return client


@pytest.fixture
def admin_client(app, admin_id):
    client = app.test_client()
    login(client, ADMIN_EMAIL)
    return client
