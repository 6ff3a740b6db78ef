from flask import Blueprint, jsonify, request
from flask_jwt_extended import jwt_required, get_jwt_identity
from pydantic import ValidationError

from schemas import parse_event
from services.core_services import (
    ProgressService,
    BadgeService,
    ProgressStoreError,
    InvalidEventError,
)

progress_bp = Blueprint('progress', __name__)


def _validation_messages(error):
    return [
        f"{'.'.join(str(part) for part in err['loc']) or 'body'}: {err['msg']}"
        for err in error.errors()
    ]


@progress_bp.route('/stats', methods=['GET'])
@jwt_required()
def get_stats():
    """Get the caller's XP, level, streak and badge flags"""
    user_id = get_jwt_identity()
    try:
        return jsonify(ProgressService.get_stats(user_id)), 200
    except ProgressStoreError as e:
        return jsonify({"error": f"Failed to load progress: {str(e)}"}), 503


@progress_bp.route('/badges', methods=['GET'])
@jwt_required()
def get_badge_progress():
    """Get the caller's progress toward each badge"""
    user_id = get_jwt_identity()
    try:
        badges = BadgeService.get_user_badge_progress(user_id)
    except ProgressStoreError as e:
        return jsonify({"error": f"Failed to load badges: {str(e)}"}), 503

    return jsonify({
        "badges": badges,
        "unlocked_count": sum(1 for badge in badges if badge["unlocked"]),
        "total": len(badges)
    }), 200


@progress_bp.route('/events', methods=['POST'])
@jwt_required()
def record_event():
    """Record one learning event (video progress, completions, daily login, pathway opened)"""
    user_id = get_jwt_identity()
    data = request.get_json(silent=True)
    if not data:
        return jsonify({"error": "No data provided"}), 400

    try:
        event = parse_event(data)
    except ValidationError as e:
        return jsonify({"error": "Invalid event", "details": _validation_messages(e)}), 400

    try:
        result = ProgressService.handle_event(user_id, event)
    except InvalidEventError as e:
        return jsonify({"error": str(e)}), 400
    except ProgressStoreError as e:
        return jsonify({"error": f"Failed to record event: {str(e)}"}), 503

    return jsonify({"event": event.type, **result}), 200
