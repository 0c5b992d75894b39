import os
import sys
import threading
import time
from dataclasses import replace

import pytest

# Ensure the backend root (containing the `scoredesk` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
BACKEND_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if BACKEND_ROOT not in sys.path:
    sys.path.insert(0, BACKEND_ROOT)

from scoredesk import create_app, db, socketio
from scoredesk.errors import PersistenceError


class TestConfig:
    TESTING = True
    SECRET_KEY = os.environ.get('SECRET_KEY', 'test-secret')
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    CORS_ORIGINS = '*'
    SOCKETIO_NAMESPACE = '/'
    ROOM_CAPACITY = 20
    ROOM_TTL_DAYS = 7
    ROOM_CODE_ATTEMPTS = 10


class InMemoryRoomStore:
    """Dict-backed room store. ``delay`` sleeps between reading and returning a
    room so unserialized read-modify-write cycles would visibly lose updates."""

    def __init__(self, delay=0.0):
        self.delay = delay
        self.rooms = {}
        self.users = {}
        self.saves = 0
        self.fail_saves = False
        self._next_id = 1
        self._lock = threading.Lock()

    def load(self, room_id):
        with self._lock:
            room = self.rooms.get(room_id)
        if self.delay:
            time.sleep(self.delay)
        return room

    def save(self, room):
        if self.fail_saves:
            raise PersistenceError('disk on fire')
        with self._lock:
            self.rooms[room.id] = room
            self.saves += 1
        return room

    def add(self, room):
        with self._lock:
            room = replace(room, id=self._next_id)
            self._next_id += 1
            self.rooms[room.id] = room
        return room

    def find_by_code(self, room_code, now):
        with self._lock:
            matches = [r for r in self.rooms.values() if r.room_code == room_code and not r.is_expired(now)]
        return max(matches, key=lambda r: (r.created_at, r.id)) if matches else None

    def upsert_user(self, external_id, nickname=None, avatar=None):
        user = self.users.setdefault(external_id, {'externalId': external_id, 'nickname': None, 'avatar': None})
        if nickname:
            user['nickname'] = nickname
        if avatar:
            user['avatar'] = avatar
        return dict(user)


class RecordingGateway:
    def __init__(self):
        self.events = []
        self._lock = threading.Lock()

    def room_update(self, room):
        with self._lock:
            self.events.append(('roomUpdate', room))

    def member_update(self, room_code, member):
        with self._lock:
            self.events.append(('memberUpdate', room_code, member))


@pytest.fixture()
def memory_store():
    return InMemoryRoomStore()


@pytest.fixture()
def slow_store():
    return InMemoryRoomStore(delay=0.01)


@pytest.fixture()
def gateway():
    return RecordingGateway()


@pytest.fixture()
def flask_app():
    application = create_app(TestConfig)
    with application.app_context():
        # Ensure models are imported so tables are created
        import scoredesk.models  # noqa: F401
        db.create_all()
        yield application
        db.session.remove()
        db.drop_all()


@pytest.fixture()
def client(flask_app):
    return flask_app.test_client()


@pytest.fixture()
def sio_client(flask_app):
    test_client = socketio.test_client(
        flask_app,
        flask_test_client=flask_app.test_client(),
        namespace='/'
    )
    yield test_client
    if test_client.is_connected('/'):
        test_client.disconnect(namespace='/')


@pytest.fixture()
def file_app(tmp_path):
    """App on a SQLite file, so every request thread opens its own connection."""

    class FileConfig(TestConfig):
        SQLALCHEMY_DATABASE_URI = f"sqlite:///{tmp_path / 'desk.db'}"
        SQLALCHEMY_ENGINE_OPTIONS = {'connect_args': {'check_same_thread': False, 'timeout': 30}}

    application = create_app(FileConfig)
    with application.app_context():
        import scoredesk.models  # noqa: F401
        db.create_all()
        yield application
        db.session.remove()
        db.drop_all()
