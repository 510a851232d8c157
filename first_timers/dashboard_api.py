import logging

from flask import Blueprint, jsonify
from sqlalchemy import func
from sqlalchemy.orm import joinedload

from .auth import token_required
from .models import FirstTimer, FollowUpTask, db

logger = logging.getLogger(__name__)

dashboard_bp = Blueprint('dashboard_api', __name__, url_prefix='/api/dashboard')


def dashboard_stats(recent=5, upcoming=5):
    counts = dict(
        db.session.query(FollowUpTask.status, func.count(FollowUpTask.id))
        .group_by(FollowUpTask.status)
        .all()
    )
    recent_rows = (FirstTimer.query
                   .order_by(FirstTimer.created_at.desc(), FirstTimer.id.desc())
                   .limit(recent).all())
    upcoming_rows = (FollowUpTask.query
                     .options(joinedload(FollowUpTask.first_timer))
                     .filter(FollowUpTask.status != 'completed')
                     .filter(FollowUpTask.due_date.isnot(None))
                     .order_by(FollowUpTask.due_date, FollowUpTask.id)
                     .limit(upcoming).all())
    return {
        'totalFirstTimers': FirstTimer.query.count(),
        'recentFirstTimers': [ft.summary() for ft in recent_rows],
        'followUpStats': {
            'pending': counts.get('pending', 0),
            'inProgress': counts.get('in_progress', 0),
            'completed': counts.get('completed', 0),
        },
        'upcomingTasks': [t.to_dict() for t in upcoming_rows],
    }


@dashboard_bp.route('/stats')
@token_required
def stats():
    try:
        return jsonify(dashboard_stats())
    except Exception:
        logger.exception('dashboard stats failed')
        return jsonify({'error': 'Internal server error'}), 500
