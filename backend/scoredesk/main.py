from flask import Blueprint, current_app, jsonify, request

from scoredesk.api.rooms import payload, room_service
from scoredesk.errors import ScoreDeskError
from scoredesk.services.rooms import SqlRoomStore

main = Blueprint('main', __name__)


@main.app_errorhandler(ScoreDeskError)
def handle_score_desk_error(exc: ScoreDeskError):
    if exc.status_code >= 500:
        current_app.logger.error(f"[error] {request.method} {request.path}: {exc.message}")
    else:
        current_app.logger.info(f"[rejected] {request.method} {request.path}: {exc.message}")
    return jsonify({'success': False, 'error': exc.message}), exc.status_code


@main.route('/')
def index():
    return jsonify({'message': 'Welcome to the score desk server!'})


@main.route('/api/user', methods=['POST'])
def upsert_user():
    """Create the profile for ``externalId`` or update its supplied fields."""
    data = payload()
    user = room_service().upsert_user(
        data.get('externalId'),
        nickname=data.get('nickname'),
        avatar=data.get('avatar'),
    )
    return jsonify({'success': True, 'data': user})


@main.route('/api/user/<string:external_id>', methods=['GET'])
def get_user(external_id):
    user = SqlRoomStore().get_user(external_id)
    if not user:
        return jsonify({'success': False, 'error': 'User not found'}), 404
    return jsonify({'success': True, 'data': user})
