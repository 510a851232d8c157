import logging
import math
from datetime import date, timedelta

from flask import Blueprint, current_app, g, jsonify, request
from pydantic import ValidationError
from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import selectinload

from .auth import role_required, token_required
from .models import FirstTimer, FollowUpTask, db
from .notifications import notify_new_first_timer
from .schemas import FirstTimerIn, FirstTimerUpdate, FollowUpTaskFields, changes, load, validation_message

logger = logging.getLogger(__name__)

first_timers_bp = Blueprint('first_timers_api', __name__, url_prefix='/api/first-timers')


def register_first_timer(data):
    """Create a first-timer plus its initial pending follow-up task, then notify the admin.

    Raises ValidationError for bad input and IntegrityError for a duplicate
    email; the session is rolled back on the latter.
    """
    fields = changes(load(FirstTimerIn, data))
    try:
        ft = FirstTimer().update_from(fields)
        ft.follow_up_tasks.append(FollowUpTask(
            status='pending',
            notes='Initial follow-up required',
            due_date=date.today() + timedelta(days=current_app.config['FOLLOW_UP_DUE_DAYS']),
        ))
        db.session.add(ft)
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
    logger.info('registered first-timer %s', ft.id)
    notify_new_first_timer(ft)
    return ft


def _page_args():
    page = request.args.get('page', 1, type=int) or 1
    limit = request.args.get('limit', 10, type=int) or 10
    # limit is clamped to 1..100
    return max(page, 1), min(max(limit, 1), 100)


@first_timers_bp.route('', methods=['GET'])
@token_required
def list_first_timers():
    """Paginated first-timers, newest first, with optional search"""
    page, limit = _page_args()
    search = (request.args.get('search') or '').strip()
    try:
        query = FirstTimer.query.options(selectinload(FirstTimer.follow_up_tasks))
        if search:
            like = f'%{search}%'
            query = query.filter(or_(
                FirstTimer.first_name.ilike(like),
                FirstTimer.last_name.ilike(like),
                FirstTimer.email.ilike(like),
                FirstTimer.phone_number.like(like),
            ))
        total = query.count()
        rows = (query.order_by(FirstTimer.created_at.desc(), FirstTimer.id.desc())
                .limit(limit).offset((page - 1) * limit).all())
        return jsonify({
            'firstTimers': [ft.to_dict() for ft in rows],
            'total': total,
            'currentPage': page,
            'totalPages': math.ceil(total / limit),
        })
    except Exception:
        logger.exception('listing first-timers failed')
        return jsonify({'error': 'Failed to fetch first-timers'}), 500


@first_timers_bp.route('/<int:ft_id>', methods=['GET'])
@token_required
def get_first_timer(ft_id):
    try:
        ft = db.session.get(FirstTimer, ft_id)
    except Exception:
        logger.exception('fetching first-timer %s failed', ft_id)
        return jsonify({'error': 'Failed to fetch first-timer'}), 500
    if ft is None:
        return jsonify({'error': 'First-timer not found'}), 404
    return jsonify(ft.to_dict())


@first_timers_bp.route('', methods=['POST'])
@token_required
def create_first_timer():
    try:
        ft = register_first_timer(request.get_json(silent=True))
    except ValidationError as e:
        return jsonify({'error': validation_message(e)}), 400
    except IntegrityError:
        return jsonify({'error': 'Failed to create first-timer'}), 400
    except Exception:
        logger.exception('creating first-timer failed')
        return jsonify({'error': 'Failed to create first-timer'}), 500
    return jsonify(ft.to_dict()), 201


@first_timers_bp.route('/<int:ft_id>', methods=['PUT'])
@token_required
def update_first_timer(ft_id):
    ft = db.session.get(FirstTimer, ft_id)
    if ft is None:
        return jsonify({'error': 'First-timer not found'}), 404
    try:
        fields = changes(load(FirstTimerUpdate, request.get_json(silent=True)))
    except ValidationError as e:
        return jsonify({'error': validation_message(e)}), 400
    try:
        ft.update_from(fields)
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        return jsonify({'error': 'Failed to update first-timer'}), 400
    except Exception:
        db.session.rollback()
        logger.exception('updating first-timer %s failed', ft_id)
        return jsonify({'error': 'Failed to update first-timer'}), 500
    return jsonify(ft.to_dict())


@first_timers_bp.route('/<int:ft_id>', methods=['DELETE'])
@token_required
@role_required('admin')
def delete_first_timer(ft_id):
    ft = db.session.get(FirstTimer, ft_id)
    if ft is None:
        return jsonify({'error': 'First-timer not found'}), 404
    try:
        db.session.delete(ft)
        db.session.commit()
    except Exception:
        db.session.rollback()
        logger.exception('deleting first-timer %s failed', ft_id)
        return jsonify({'error': 'Failed to delete first-timer'}), 500
    logger.info('first-timer %s deleted by user %s', ft_id, g.current_user.id)
    return jsonify({'message': 'First-timer deleted successfully'})


@first_timers_bp.route('/<int:ft_id>/follow-up', methods=['POST'])
@token_required
def add_follow_up(ft_id):
    ft = db.session.get(FirstTimer, ft_id)
    if ft is None:
        return jsonify({'error': 'First-timer not found'}), 404
    try:
        fields = load(FollowUpTaskFields, request.get_json(silent=True)).model_dump()
    except ValidationError as e:
        return jsonify({'error': validation_message(e)}), 400
    try:
        task = FollowUpTask(first_timer_id=ft.id).update_from(fields)
        db.session.add(task)
        db.session.commit()
    except Exception:
        db.session.rollback()
        logger.exception('creating follow-up for first-timer %s failed', ft_id)
        return jsonify({'error': 'Failed to create follow-up task'}), 400
    return jsonify(task.to_dict()), 201
