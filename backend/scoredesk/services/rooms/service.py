import logging
from datetime import timedelta
from typing import Callable, Optional, Tuple

from scoredesk import ledger
from scoredesk.errors import RoomNotFound, ValidationError
from scoredesk.ledger import Room

from .directory import find_active, issue_code, resolve


class RoomService:
    """Load, apply, save and broadcast for every room action.

    Mutations on one room go through the serializer, so the load/apply/save
    sequence and the broadcast that follows it happen in submission order and
    never interleave with another mutation of the same room.
    """

    def __init__(self, store, gateway, serializer, capacity: int = ledger.MAX_MEMBERS,
                 ttl: timedelta = ledger.ROOM_TTL, code_attempts: int = 10, logger=None):
        self.store = store
        self.gateway = gateway
        self.serializer = serializer
        self.capacity = capacity
        self.ttl = ttl
        self.code_attempts = code_attempts
        self.logger = logger or logging.getLogger(__name__)

    def upsert_user(self, external_id, nickname=None, avatar=None) -> dict:
        if not isinstance(external_id, str) or not external_id.strip():
            raise ValidationError('externalId is required')
        return self.store.upsert_user(external_id, nickname, avatar)

    def create_room(self, owner_id, owner_name=None, owner_avatar=None, room_name=None) -> Room:
        if not isinstance(owner_id, str) or not owner_id.strip():
            raise ValidationError('ownerId is required')
        code = issue_code(self.store, attempts=self.code_attempts)
        room = ledger.create_room(owner_id, owner_name, owner_avatar, code, room_name=room_name, ttl=self.ttl)
        room = self.store.add(room)
        self.logger.info(f"[create] room={room.id} code={room.room_code} owner={owner_id}")
        return room

    def get_room(self, room_code) -> Room:
        return find_active(self.store, room_code)

    def join_room(self, room_code, external_id, nickname=None, avatar=None) -> Room:
        room_id = resolve(self.store, room_code)

        def apply(room: Room):
            return ledger.join(room, external_id, nickname, avatar, capacity=self.capacity)

        return self._mutate(room_id, 'join', apply, self._announce_room)

    def update_member(self, room_id, external_id, nickname=None, avatar=None) -> Room:
        def apply(room: Room):
            return ledger.update_member(room, external_id, nickname, avatar)

        def announce(room: Room, member):
            self.gateway.member_update(room.room_code, member)

        return self._mutate(room_id, 'update_member', apply, announce)

    def spend(self, room_id, external_id, nickname, amount) -> Room:
        def apply(room: Room):
            return ledger.spend(room, external_id, nickname, amount)

        return self._mutate(room_id, 'spend', apply, self._announce_room)

    def reclaim(self, room_id, external_id, nickname, amount) -> Room:
        def apply(room: Room):
            return ledger.reclaim(room, external_id, nickname, amount)

        return self._mutate(room_id, 'reclaim', apply, self._announce_room)

    def _announce_room(self, room: Room, _entry) -> None:
        self.gateway.room_update(room)

    def _mutate(self, room_id, action: str, apply: Callable[[Room], Tuple[Room, object]],
                announce: Callable[[Room, object], None]) -> Room:
        def task() -> Room:
            current = self.store.load(room_id)
            if current is None:
                raise RoomNotFound()
            updated, detail = apply(current)
            saved = self.store.save(updated)
            self.logger.info(
                f"[{action}] room={saved.id} desk={saved.desk_score} members={len(saved.members)} logs={len(saved.logs)}"
            )
            # The mutation is committed; a failed emit must not turn it into an error.
            try:
                announce(saved, detail)
            except Exception:
                self.logger.exception(f"[broadcast-failed] room={saved.id} action={action}")
            return saved

        return self.serializer.enqueue(room_id, task)


def build_room_service(app, store, gateway, serializer, logger: Optional[logging.Logger] = None) -> RoomService:
    """RoomService configured from a Flask app's config."""
    cfg = app.config
    return RoomService(
        store=store,
        gateway=gateway,
        serializer=serializer,
        capacity=int(cfg.get('ROOM_CAPACITY', ledger.MAX_MEMBERS)),
        ttl=timedelta(days=int(cfg.get('ROOM_TTL_DAYS', 7))),
        code_attempts=int(cfg.get('ROOM_CODE_ATTEMPTS', 10)),
        logger=logger or app.logger,
    )
