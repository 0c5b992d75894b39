import random
from datetime import timedelta

import pytest

from scoredesk import db, ledger
from scoredesk.errors import PersistenceError, RoomNotFound
from scoredesk.models import User
from scoredesk.services.rooms import SqlRoomStore, generate_code, issue_code, resolve


class ScriptedRng:
    def __init__(self, *values):
        self.values = list(values)

    def randint(self, low, high):
        assert (low, high) == (100000, 999999)
        return self.values.pop(0)


def test_generated_codes_are_six_digits():
    rng = random.Random(3)
    for _ in range(200):
        code = generate_code(rng)
        assert len(code) == 6 and code.isdigit()
        assert 100000 <= int(code) <= 999999


def test_issue_code_skips_codes_held_by_active_rooms(memory_store):
    memory_store.add(ledger.create_room('o', 'O', None, '111111'))
    memory_store.add(ledger.create_room('o', 'O', None, '222222'))
    assert issue_code(memory_store, rng=ScriptedRng(111111, 222222, 333333)) == '333333'


def test_issue_code_accepts_last_draw_when_attempts_run_out(memory_store):
    memory_store.add(ledger.create_room('o', 'O', None, '111111'))
    assert issue_code(memory_store, attempts=2, rng=ScriptedRng(111111, 111111)) == '111111'


def test_resolve_picks_newest_active_room(memory_store):
    now = ledger.utcnow()
    old = memory_store.add(ledger.create_room('o', 'O', None, '424242', now=now - timedelta(days=1)))
    new = memory_store.add(ledger.create_room('p', 'P', None, '424242', now=now))
    assert resolve(memory_store, '424242') == new.id != old.id


@pytest.mark.parametrize('code', ['', None, '999999'])
def test_resolve_unknown_code(memory_store, code):
    with pytest.raises(RoomNotFound):
        resolve(memory_store, code)


def test_expired_rooms_resolve_as_not_found_and_are_pruned(flask_app):
    store = SqlRoomStore()
    now = ledger.utcnow()
    stale = store.add(ledger.create_room('o', 'O', None, '515151', now=now - timedelta(days=8)))
    fresh = store.add(ledger.create_room('o', 'O', None, '525252', now=now))

    with pytest.raises(RoomNotFound):
        resolve(store, '515151')
    assert resolve(store, '525252') == fresh.id

    assert store.prune_expired(now) == 1
    assert store.load(stale.id) is None
    assert store.load(fresh.id) is not None


def test_prune_rooms_command(flask_app):
    store = SqlRoomStore()
    store.add(ledger.create_room('o', 'O', None, '616161', now=ledger.utcnow() - timedelta(days=30)))
    result = flask_app.test_cli_runner().invoke(args=['prune-rooms'])
    assert result.exit_code == 0
    assert 'Removed 1 expired room(s).' in result.output


def test_user_lookup_failure_is_reported_as_storage_error(flask_app):
    User.__table__.drop(db.engine)
    with pytest.raises(PersistenceError, match='Could not load user'):
        SqlRoomStore().get_user('u1')

    res = flask_app.test_client().get('/api/user/u1')
    assert res.status_code == 500
    assert res.get_json() == {'success': False, 'error': 'Could not load user: OperationalError'}
