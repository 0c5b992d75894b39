from flask import Blueprint, current_app, jsonify, request

from scoredesk import socketio
from scoredesk.errors import ValidationError
from scoredesk.services.rooms import BroadcastGateway, MutationSerializer, SqlRoomStore
from scoredesk.services.rooms.service import RoomService, build_room_service

rooms = Blueprint('rooms', __name__)

# One serializer per process; every request thread queues its room mutations here.
_serializer = MutationSerializer()


def room_service() -> RoomService:
    app = current_app._get_current_object()
    gateway = BroadcastGateway(socketio, namespace=app.config.get('SOCKETIO_NAMESPACE', '/'))
    return build_room_service(app, SqlRoomStore(), gateway, _serializer)


def payload() -> dict:
    """Parsed JSON body; a missing body reads as empty."""
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError('request body must be a JSON object')
    return data


def _ok(data, status=200):
    return jsonify({'success': True, 'data': data}), status


@rooms.route('', methods=['POST'])
def create_room():
    data = payload()
    room = room_service().create_room(
        data.get('ownerId'),
        owner_name=data.get('ownerName'),
        owner_avatar=data.get('ownerAvatar'),
        room_name=data.get('roomName'),
    )
    return _ok(room.to_dict(), 201)


@rooms.route('/join', methods=['POST'])
def join_room():
    data = payload()
    room = room_service().join_room(
        data.get('roomCode'),
        data.get('externalId'),
        nickname=data.get('nickname'),
        avatar=data.get('avatar'),
    )
    return _ok(room.to_dict())


@rooms.route('/<string:room_code>', methods=['GET'])
def get_room(room_code):
    return _ok(room_service().get_room(room_code).to_dict())


@rooms.route('/<int:room_id>/updateMember', methods=['POST'])
def update_member(room_id):
    data = payload()
    room = room_service().update_member(
        room_id,
        data.get('externalId'),
        nickname=data.get('nickname'),
        avatar=data.get('avatar'),
    )
    return _ok(room.to_dict())


@rooms.route('/<int:room_id>/spend', methods=['POST'])
def spend(room_id):
    data = payload()
    room = room_service().spend(room_id, data.get('externalId'), data.get('nickname'), data.get('amount'))
    return _ok(room.to_dict())


@rooms.route('/<int:room_id>/reclaim', methods=['POST'])
def reclaim(room_id):
    data = payload()
    room = room_service().reclaim(room_id, data.get('externalId'), data.get('nickname'), data.get('amount'))
    return _ok(room.to_dict())
