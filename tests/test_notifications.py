from datetime import date, timedelta
from types import SimpleNamespace

from first_timers.models import FirstTimer, db, utcnow
from first_timers.notifications import mail, new_first_timer, send_email, send_weekly_report, weekly_report, weekly_summary


def test_new_first_timer_template():
    ft = SimpleNamespace(full_name='John <b>Doe</b>', email='john@example.com', phone_number='123',
                         service_date=date(2024, 3, 17))

    subject, text, html = new_first_timer(ft)

    assert subject == 'New First Timer Registration'
    assert 'Name: John <b>Doe</b>' in text
    assert '17 Mar 2024' in text
    assert '&lt;b&gt;' in html


def test_weekly_report_template():
    subject, text, html = weekly_report({'totalNew': 4, 'visitingMembers': 1, 'students': 2})

    assert subject == 'Weekly First Timers Report'
    assert 'Total New First Timers: 4' in text
    assert '<strong>Students:</strong> 2' in html


def test_send_email_without_recipient_is_skipped(app):
    with mail.record_messages() as outbox:
        assert send_email('', 'Hello', 'body') is False
    assert outbox == []


def test_weekly_summary_counts_recent_only(app, create_first_timer):
    create_first_timer(email='a@example.com', visitingMember=True)
    create_first_timer(email='b@example.com', isStudent=True)
    old = create_first_timer(email='c@example.com', isStudent=True, visitingMember=True)
    row = db.session.get(FirstTimer, old['id'])
    row.created_at = utcnow() - timedelta(days=30)
    db.session.commit()

    assert weekly_summary() == {'totalNew': 2, 'visitingMembers': 1, 'students': 2}


def test_send_weekly_report(app, create_first_timer):
    create_first_timer()

    with mail.record_messages() as outbox:
        stats, sent = send_weekly_report()

    assert sent is True
    assert stats['totalNew'] == 1
    assert outbox[0].recipients == ['pastor@church.org']
    assert outbox[0].subject == 'Weekly First Timers Report'


def test_weekly_report_cli(app, create_first_timer):
    create_first_timer()
    result = app.test_cli_runner().invoke(args=['weekly-report'])

    assert result.exit_code == 0
    assert 'New: 1' in result.output


def test_create_user_cli(app):
    runner = app.test_cli_runner()
    result = runner.invoke(args=['create-user', 'boss@church.org', 'pw', '--role', 'admin'])

    assert result.exit_code == 0
    again = runner.invoke(args=['create-user', 'boss@church.org', 'pw'])
    assert again.exit_code != 0
    assert 'already exists' in again.output
