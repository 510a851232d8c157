"""In-memory filtering and page slicing for the first-timer list page.

Works over the full result set the way the list screen always has: substring
search, a service-date window, and the visiting-member / student toggles.
"""
import calendar
import math
from datetime import date, timedelta

DATE_RANGES = ('all', 'today', 'week', 'month')
STATUS_FILTERS = ('all', 'visitor', 'firstTimer')
STUDENT_FILTERS = ('all', 'yes', 'no')


def one_month_before(day):
    year, month = (day.year, day.month - 1) if day.month > 1 else (day.year - 1, 12)
    last = calendar.monthrange(year, month)[1]
    return day.replace(year=year, month=month, day=min(day.day, last))


def matches_search(ft, query):
    if not query:
        return True
    q = query.lower()
    return (
        q in (ft.first_name or '').lower()
        or q in (ft.last_name or '').lower()
        or q in (ft.email or '').lower()
        or query in (ft.phone_number or '')
    )


def in_date_range(service_date, date_range, today=None):
    if date_range in (None, '', 'all'):
        return True
    if service_date is None:
        return False
    today = today or date.today()
    if date_range == 'today':
        return service_date == today
    if date_range == 'week':
        return service_date >= today - timedelta(days=7)
    if date_range == 'month':
        return service_date >= one_month_before(today)
    raise ValueError(f'Unknown date range: {date_range!r}')


def filter_first_timers(items, search='', date_range='all', status='all', is_student='all', today=None):
    search = (search or '').strip()
    out = []
    for ft in items:
        if not matches_search(ft, search):
            continue
        if not in_date_range(ft.service_date, date_range, today):
            continue
        if status == 'visitor' and not ft.visiting_member:
            continue
        if status == 'firstTimer' and ft.visiting_member:
            continue
        if is_student == 'yes' and not ft.is_student:
            continue
        if is_student == 'no' and ft.is_student:
            continue
        out.append(ft)
    return out


def paginate(items, page=1, per_page=10):
    """Return (page_items, page, total_pages); page is clamped into range."""
    per_page = max(int(per_page), 1)
    total_pages = math.ceil(len(items) / per_page)
    page = min(max(int(page), 1), max(total_pages, 1))
    start = (page - 1) * per_page
    return items[start:start + per_page], page, total_pages
