from datetime import date

import pytest

from first_timers.models import FirstTimer, FollowUpTask, db


@pytest.fixture
def logged_in(client, staff):
    resp = client.post('/login', data={'email': 'staff@church.org', 'password': 'secret123'})
    assert resp.status_code == 302
    return client


def test_pages_redirect_to_login(client):
    resp = client.get('/first-timers')

    assert resp.status_code == 302
    assert '/login' in resp.headers['Location']
    assert 'next=' in resp.headers['Location']


def test_login_rejects_bad_password(client, staff):
    resp = client.post('/login', data={'email': 'staff@church.org', 'password': 'nope'})

    assert resp.status_code == 302
    assert resp.headers['Location'].endswith('/login')


def test_login_follows_local_next_only(client, staff):
    ok = client.post('/login?next=/follow-ups', data={'email': 'staff@church.org', 'password': 'secret123'})
    assert ok.headers['Location'].endswith('/follow-ups')

    evil = client.post('/login?next=//evil.example', data={'email': 'staff@church.org', 'password': 'secret123'})
    assert 'evil.example' not in evil.headers['Location']


def test_dashboard(logged_in, create_first_timer):
    create_first_timer()
    resp = logged_in.get('/')

    assert resp.status_code == 200
    assert b'John Doe' in resp.data


def test_register_form_creates_first_timer_and_task(logged_in):
    resp = logged_in.post('/first-timers/new', data={
        'firstName': 'Grace',
        'lastName': 'Adeyemi',
        'email': 'grace@example.com',
        'phoneNumber': '0803',
        'serviceDate': '2024-03-17',
        'isStudent': 'on',
    })

    assert resp.status_code == 302
    ft = FirstTimer.query.filter_by(email='grace@example.com').one()
    assert ft.is_student is True
    assert ft.visiting_member is False
    assert [t.status for t in ft.follow_up_tasks] == ['pending']
    assert resp.headers['Location'].endswith(f'/first-timers/{ft.id}')


def test_register_form_duplicate_email(logged_in, create_first_timer):
    create_first_timer()
    resp = logged_in.post('/first-timers/new', data={
        'firstName': 'John', 'lastName': 'Again', 'email': 'john@example.com',
        'phoneNumber': '1', 'serviceDate': '2024-03-17',
    })

    assert resp.status_code == 400
    assert b'already exists' in resp.data


def test_register_form_reports_invalid_fields(logged_in):
    resp = logged_in.post('/first-timers/new', data={
        'firstName': 'Grace', 'lastName': 'Adeyemi', 'email': 'grace@example.com',
        'phoneNumber': '0803', 'serviceDate': '',
    })

    assert resp.status_code == 400
    assert b'valid date' in resp.data
    assert FirstTimer.query.count() == 0


def test_list_filters_and_paginates(logged_in, create_first_timer):
    create_first_timer(email='a@example.com', firstName='Alpha', serviceDate=date.today().isoformat())
    create_first_timer(email='b@example.com', firstName='Bravo', visitingMember=True)
    create_first_timer(email='c@example.com', firstName='Charlie')

    everyone = logged_in.get('/first-timers').data
    assert b'Page 1 of 2' in everyone

    today = logged_in.get('/first-timers?date_range=today').data
    assert b'Alpha' in today and b'Bravo' not in today

    visitors = logged_in.get('/first-timers?status=visitor').data
    assert b'Bravo' in visitors and b'Charlie' not in visitors

    page2 = logged_in.get('/first-timers?page=2').data
    assert b'Alpha' in page2


def test_detail_shows_tasks(logged_in, create_first_timer):
    created = create_first_timer()
    resp = logged_in.get(f"/first-timers/{created['id']}")

    assert resp.status_code == 200
    assert b'Initial follow-up required' in resp.data
    assert b'State University' in resp.data


def test_detail_404(logged_in):
    assert logged_in.get('/first-timers/12345').status_code == 404


def test_status_form_updates_task(logged_in, create_first_timer):
    created = create_first_timer()
    task_id = created['followUpTasks'][0]['id']

    resp = logged_in.post(f'/follow-ups/{task_id}/status', data={'status': 'completed', 'next': '/follow-ups'})

    assert resp.status_code == 302
    assert db.session.get(FollowUpTask, task_id).status == 'completed'
    assert b'completed' in logged_in.get('/follow-ups?status=completed').data


def test_status_form_rejects_bad_status(logged_in, create_first_timer):
    created = create_first_timer()
    task_id = created['followUpTasks'][0]['id']

    logged_in.post(f'/follow-ups/{task_id}/status', data={'status': 'bogus'})

    assert db.session.get(FollowUpTask, task_id).status == 'pending'


def test_logout(logged_in):
    logged_in.get('/logout')
    assert logged_in.get('/').status_code == 302
