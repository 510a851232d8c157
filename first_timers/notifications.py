"""Outgoing email: registration notices and the weekly summary."""
import logging
from datetime import timedelta

from flask import current_app
from flask_mail import Mail, Message
from markupsafe import escape

from .models import FirstTimer, db, utcnow

logger = logging.getLogger(__name__)

mail = Mail()


def send_email(to, subject, body, html=None):
    """Send one message. Failures are logged, never raised; returns True when handed to the mailer."""
    if not to:
        logger.info('no recipient for %r; skipping email', subject)
        return False
    recipients = [to] if isinstance(to, str) else list(to)
    try:
        mail.send(Message(subject=subject, recipients=recipients, body=body, html=html))
    except Exception:
        logger.exception('error sending email %r to %s', subject, ', '.join(recipients))
        return False
    logger.info('email %r sent to %s', subject, ', '.join(recipients))
    return True


def new_first_timer(ft):
    """(subject, text, html) for the registration notice."""
    service_date = ft.service_date.strftime('%d %b %Y') if ft.service_date else ''
    subject = 'New First Timer Registration'
    text = (
        'A new first timer has registered:\n\n'
        f'Name: {ft.full_name}\n'
        f'Email: {ft.email}\n'
        f'Phone: {ft.phone_number}\n'
        f'Service Date: {service_date}\n'
    )
    html = (
        '<h2>New First Timer Registration</h2>'
        '<p>A new first timer has registered:</p>'
        '<ul>'
        f'<li><strong>Name:</strong> {escape(ft.full_name)}</li>'
        f'<li><strong>Email:</strong> {escape(ft.email)}</li>'
        f'<li><strong>Phone:</strong> {escape(ft.phone_number)}</li>'
        f'<li><strong>Service Date:</strong> {service_date}</li>'
        '</ul>'
    )
    return subject, text, html


def weekly_report(stats):
    subject = 'Weekly First Timers Report'
    text = (
        "Here's your weekly summary:\n\n"
        f"Total New First Timers: {stats['totalNew']}\n"
        f"Visiting Members: {stats['visitingMembers']}\n"
        f"Students: {stats['students']}\n\n"
        'View detailed report in the dashboard.\n'
    )
    html = (
        '<h2>Weekly First Timers Report</h2>'
        "<p>Here's your weekly summary:</p>"
        '<ul>'
        f"<li><strong>Total New First Timers:</strong> {stats['totalNew']}</li>"
        f"<li><strong>Visiting Members:</strong> {stats['visitingMembers']}</li>"
        f"<li><strong>Students:</strong> {stats['students']}</li>"
        '</ul>'
        '<p>View detailed report in the dashboard.</p>'
    )
    return subject, text, html


def weekly_summary(since=None):
    """Counts of first-timers registered since `since` (default: the last 7 days)."""
    if since is None:
        since = utcnow() - timedelta(days=7)
    q = db.session.query(FirstTimer).filter(FirstTimer.created_at >= since)
    return {
        'totalNew': q.count(),
        'visitingMembers': q.filter(FirstTimer.visiting_member.is_(True)).count(),
        'students': q.filter(FirstTimer.is_student.is_(True)).count(),
    }


def notify_new_first_timer(ft):
    subject, text, html = new_first_timer(ft)
    return send_email(current_app.config.get('ADMIN_EMAIL'), subject, text, html)


def send_weekly_report(since=None):
    stats = weekly_summary(since)
    subject, text, html = weekly_report(stats)
    sent = send_email(current_app.config.get('ADMIN_EMAIL'), subject, text, html)
    return stats, sent
