from flask import Blueprint, jsonify

from services.core_services import BadgeService

badges_bp = Blueprint('badges', __name__)


@badges_bp.route('/', methods=['GET'])
def list_badges():
    """Static badge catalogue, no login needed."""
    return jsonify(BadgeService.definitions()), 200
