from flask import current_app, request
from flask_socketio import join_room, leave_room, emit

from scoredesk import socketio


def _get_sid() -> str:
    # request.sid exists in Socket.IO context
    return request.sid  # type: ignore


def _room_code(data):
    """Accept either a bare room code or ``{'roomCode': ...}``."""
    if isinstance(data, dict):
        data = data.get('roomCode')
    if isinstance(data, (int, str)) and str(data).strip():
        return str(data).strip()
    return None


def handle_connect():
    current_app.logger.info(f"[socket-connect] sid={_get_sid()}")
    emit('connected', {'message': 'Connected'})


def handle_disconnect(*_args):
    # Flask-SocketIO drops the socket from all of its rooms
    current_app.logger.info(f"[socket-disconnect] sid={_get_sid()}")


def handle_join_room(data):
    room_code = _room_code(data)
    if not room_code:
        emit('error', {'message': 'roomCode is required'})
        return
    join_room(room_code)
    current_app.logger.info(f"[socket-join] sid={_get_sid()} room={room_code}")
    emit('joined', {'room': room_code})


def handle_leave_room(data):
    room_code = _room_code(data)
    if not room_code:
        emit('error', {'message': 'roomCode is required'})
        return
    leave_room(room_code)
    current_app.logger.info(f"[socket-leave] sid={_get_sid()} room={room_code}")
    emit('left', {'room': room_code})


def register_socketio_handlers(namespace: str = '/') -> None:
    """Register Socket.IO event handlers on ``namespace``.

    Clients subscribe to a room's broadcasts with ``joinRoom`` and stop with
    ``leaveRoom``; the Socket.IO room name is the room code.
    """
    socketio.on_event('connect', handle_connect, namespace=namespace)
    socketio.on_event('disconnect', handle_disconnect, namespace=namespace)
    socketio.on_event('joinRoom', handle_join_room, namespace=namespace)
    socketio.on_event('leaveRoom', handle_leave_room, namespace=namespace)
