import pytest

from first_timers import create_app
from first_timers.auth import issue_token
from first_timers.models import User, db


@pytest.fixture
def app():
    app = create_app({
        'TESTING': True,
        'SECRET_KEY': 'test-secret',
        'JWT_SECRET': 'test-jwt-secret',
        'SQLALCHEMY_DATABASE_URI': 'sqlite://',
        'MAIL_SUPPRESS_SEND': True,
        'MAIL_DEFAULT_SENDER': 'no-reply@church.org',
        'ADMIN_EMAIL': 'pastor@church.org',
        'ITEMS_PER_PAGE': 2,
    })
    with app.app_context():
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


def make_user(email, role='user', password='secret123'):
    user = User(email=email, first_name='Test', last_name=role.title(), role=role)
    user.set_password(password)
    db.session.add(user)
    db.session.commit()
    return user


@pytest.fixture
def admin(app):
    return make_user('admin@church.org', role='admin')


@pytest.fixture
def staff(app):
    return make_user('staff@church.org', role='staff')


@pytest.fixture
def admin_headers(admin):
    return {'Authorization': f'Bearer {issue_token(admin)}'}


@pytest.fixture
def staff_headers(staff):
    return {'Authorization': f'Bearer {issue_token(staff)}'}


def first_timer_payload(**overrides):
    data = {
        'firstName': 'John',
        'lastName': 'Doe',
        'email': 'john@example.com',
        'phoneNumber': '123-456-7890',
        'serviceDate': '2024-03-17',
        'visitingMember': False,
        'isStudent': True,
        'school': 'State University',
        'prayerRequest': 'Prayer for family',
    }
    data.update(overrides)
    return data


@pytest.fixture
def payload():
    return first_timer_payload


@pytest.fixture
def create_first_timer(client, staff_headers):
    def create(**overrides):
        resp = client.post('/api/first-timers', json=first_timer_payload(**overrides), headers=staff_headers)
        assert resp.status_code == 201, resp.get_json()
        return resp.get_json()
    return create
