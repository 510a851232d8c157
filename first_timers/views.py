import logging

from flask import Blueprint, abort, current_app, flash, redirect, render_template, request, url_for
from pydantic import ValidationError
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import joinedload

from .auth import login_required
from .dashboard_api import dashboard_stats
from .filters import DATE_RANGES, STATUS_FILTERS, STUDENT_FILTERS, filter_first_timers, paginate
from .first_timers_api import register_first_timer
from .models import TASK_STATUSES, FirstTimer, FollowUpTask, db
from .schemas import validation_message

logger = logging.getLogger(__name__)

views_bp = Blueprint('views', __name__)


def _choice(name, allowed):
    value = request.args.get(name) or 'all'
    return value if value in allowed else 'all'


@views_bp.route('/')
@login_required
def dashboard():
    return render_template('dashboard.html', stats=dashboard_stats(), statuses=TASK_STATUSES)


@views_bp.route('/first-timers')
@login_required
def first_timers():
    filters = {
        'search': (request.args.get('search') or '').strip(),
        'date_range': _choice('date_range', DATE_RANGES),
        'status': _choice('status', STATUS_FILTERS),
        'is_student': _choice('is_student', STUDENT_FILTERS),
    }
    rows = FirstTimer.query.order_by(FirstTimer.created_at.desc(), FirstTimer.id.desc()).all()
    matched = filter_first_timers(rows, **filters)
    items, page, total_pages = paginate(
        matched,
        request.args.get('page', 1, type=int) or 1,
        current_app.config['ITEMS_PER_PAGE'],
    )
    return render_template(
        'first_timers.html',
        first_timers=items,
        total=len(matched),
        page=page,
        total_pages=total_pages,
        filters=filters,
    )


@views_bp.route('/first-timers/new', methods=['GET', 'POST'])
@login_required
def new_first_timer():
    if request.method == 'GET':
        return render_template('first_timer_form.html', form={})
    form = request.form.to_dict()
    # unchecked boxes are simply absent from the form
    form['visitingMember'] = 'visitingMember' in request.form
    form['isStudent'] = 'isStudent' in request.form
    try:
        ft = register_first_timer(form)
    except ValidationError as e:
        flash(validation_message(e), 'error')
        return render_template('first_timer_form.html', form=form), 400
    except IntegrityError:
        flash('A first-timer with that email already exists.', 'error')
        return render_template('first_timer_form.html', form=form), 400
    flash(f'{ft.full_name} registered.', 'success')
    return redirect(url_for('views.first_timer_detail', ft_id=ft.id))


@views_bp.route('/first-timers/<int:ft_id>')
@login_required
def first_timer_detail(ft_id):
    ft = db.session.get(FirstTimer, ft_id)
    if ft is None:
        abort(404)
    return render_template('first_timer_detail.html', ft=ft, statuses=TASK_STATUSES)


@views_bp.route('/follow-ups')
@login_required
def follow_ups():
    status = request.args.get('status') or ''
    query = FollowUpTask.query.options(joinedload(FollowUpTask.first_timer))
    if status in TASK_STATUSES:
        query = query.filter(FollowUpTask.status == status)
    else:
        status = ''
    tasks = query.order_by(FollowUpTask.due_date.is_(None), FollowUpTask.due_date, FollowUpTask.id).all()
    return render_template('follow_ups.html', tasks=tasks, status=status, statuses=TASK_STATUSES)


@views_bp.route('/follow-ups/<int:task_id>/status', methods=['POST'])
@login_required
def set_task_status(task_id):
    task = db.session.get(FollowUpTask, task_id)
    if task is None:
        abort(404)
    try:
        task.status = request.form.get('status')
        db.session.commit()
    except ValueError as e:
        db.session.rollback()
        flash(str(e), 'error')
    else:
        flash('Status updated.', 'success')
    nxt = request.form.get('next') or ''
    if not nxt.startswith('/') or nxt.startswith('//'):
        nxt = url_for('views.follow_ups')
    return redirect(nxt)
