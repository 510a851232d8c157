import logging

from flask import Blueprint, jsonify, request
from pydantic import ValidationError
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import joinedload

from .auth import token_required
from .models import TASK_STATUSES, FirstTimer, FollowUpTask, db
from .schemas import FollowUpTaskIn, FollowUpTaskUpdate, changes, load, validation_message

logger = logging.getLogger(__name__)

follow_ups_bp = Blueprint('follow_ups_api', __name__, url_prefix='/api/follow-up-tasks')


@follow_ups_bp.route('', methods=['GET'])
@token_required
def list_tasks():
    """All follow-up tasks, soonest due first; filter by ?status= and ?firstTimerId="""
    status = request.args.get('status')
    ft_id = request.args.get('firstTimerId', type=int)
    if status and status not in TASK_STATUSES:
        return jsonify({'error': f'status must be one of: {", ".join(TASK_STATUSES)}'}), 400
    try:
        query = FollowUpTask.query.options(joinedload(FollowUpTask.first_timer))
        if status:
            query = query.filter(FollowUpTask.status == status)
        if ft_id is not None:
            query = query.filter(FollowUpTask.first_timer_id == ft_id)
        # undated tasks last
        tasks = query.order_by(FollowUpTask.due_date.is_(None), FollowUpTask.due_date, FollowUpTask.id).all()
        return jsonify([t.to_dict() for t in tasks])
    except Exception:
        logger.exception('listing follow-up tasks failed')
        return jsonify({'error': 'Failed to fetch follow-up tasks'}), 500


@follow_ups_bp.route('/<int:task_id>', methods=['GET'])
@token_required
def get_task(task_id):
    task = db.session.get(FollowUpTask, task_id)
    if task is None:
        return jsonify({'error': 'Follow-up task not found'}), 404
    return jsonify(task.to_dict())


@follow_ups_bp.route('', methods=['POST'])
@token_required
def create_task():
    try:
        fields = load(FollowUpTaskIn, request.get_json(silent=True)).model_dump()
    except ValidationError as e:
        return jsonify({'error': validation_message(e)}), 400
    if db.session.get(FirstTimer, fields['first_timer_id']) is None:
        return jsonify({'error': 'Failed to create follow-up task'}), 400
    try:
        task = FollowUpTask().update_from(fields)
        db.session.add(task)
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        return jsonify({'error': 'Failed to create follow-up task'}), 400
    except Exception:
        db.session.rollback()
        logger.exception('creating follow-up task failed')
        return jsonify({'error': 'Failed to create follow-up task'}), 500
    return jsonify(task.to_dict()), 201


@follow_ups_bp.route('/<int:task_id>', methods=['PUT'])
@token_required
def update_task(task_id):
    """Plain update; any status may be set from any other status."""
    task = db.session.get(FollowUpTask, task_id)
    if task is None:
        return jsonify({'error': 'Follow-up task not found'}), 404
    try:
        fields = changes(load(FollowUpTaskUpdate, request.get_json(silent=True)))
    except ValidationError as e:
        return jsonify({'error': validation_message(e)}), 400
    if 'first_timer_id' in fields and db.session.get(FirstTimer, fields['first_timer_id']) is None:
        return jsonify({'error': 'Failed to update follow-up task'}), 400
    previous = task.status
    try:
        task.update_from(fields)
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        return jsonify({'error': 'Failed to update follow-up task'}), 400
    except Exception:
        db.session.rollback()
        logger.exception('updating follow-up task %s failed', task_id)
        return jsonify({'error': 'Failed to update follow-up task'}), 500
    if previous != task.status:
        logger.info('follow-up task %s: %s -> %s', task_id, previous, task.status)
    return jsonify(task.to_dict())


@follow_ups_bp.route('/<int:task_id>', methods=['DELETE'])
@token_required
def delete_task(task_id):
    task = db.session.get(FollowUpTask, task_id)
    if task is None:
        return jsonify({'error': 'Follow-up task not found'}), 404
    try:
        db.session.delete(task)
        db.session.commit()
    except Exception:
        db.session.rollback()
        logger.exception('deleting follow-up task %s failed', task_id)
        return jsonify({'error': 'Failed to delete follow-up task'}), 500
    return '', 204
