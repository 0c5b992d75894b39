from datetime import datetime
from typing import Optional, Protocol

from sqlalchemy.exc import SQLAlchemyError

from scoredesk import db
from scoredesk.errors import PersistenceError
from scoredesk.ledger import Room as RoomState
from scoredesk.models import Room, RoomLog, RoomMember, User


class RoomStore(Protocol):
    """Persistence contract for room aggregates and user profiles.

    A ``save`` must be visible to the next ``load`` of the same room; the
    serializer relies on that to hand each mutation the latest state.
    """

    def load(self, room_id: int) -> Optional[RoomState]:
        ...

    def save(self, room: RoomState) -> RoomState:
        ...

    def add(self, room: RoomState) -> RoomState:
        """Insert a new room and return it with its id assigned."""
        ...

    def find_by_code(self, room_code: str, now: datetime) -> Optional[RoomState]:
        """Newest room carrying ``room_code`` that has not expired at ``now``."""
        ...

    def upsert_user(self, external_id: str, nickname: Optional[str] = None,
                    avatar: Optional[str] = None) -> dict:
        ...


def _failed(exc: Exception, action: str) -> PersistenceError:
    db.session.rollback()
    return PersistenceError(f'Could not {action}: {exc.__class__.__name__}')


class SqlRoomStore:
    """``RoomStore`` backed by the Flask-SQLAlchemy session."""

    def load(self, room_id: int) -> Optional[RoomState]:
        try:
            # Drop anything cached by this session so the last committed save wins.
            db.session.expire_all()
            record = db.session.get(Room, room_id)
            return record.to_state() if record else None
        except SQLAlchemyError as exc:
            raise _failed(exc, 'load room') from exc

    def find_by_code(self, room_code: str, now: datetime) -> Optional[RoomState]:
        try:
            db.session.expire_all()
            record = (
                Room.query.filter(Room.room_code == room_code, Room.expire_at > now)
                .order_by(Room.created_at.desc(), Room.id.desc())
                .first()
            )
            return record.to_state() if record else None
        except SQLAlchemyError as exc:
            raise _failed(exc, 'look up room code') from exc

    def add(self, room: RoomState) -> RoomState:
        record = Room(
            room_code=room.room_code,
            room_name=room.room_name,
            owner_id=room.owner_id,
            desk_score=room.desk_score,
            created_at=room.created_at,
            expire_at=room.expire_at,
        )
        for position, member in enumerate(room.members):
            record.members.append(RoomMember(
                position=position,
                external_id=member.external_id,
                nickname=member.nickname,
                avatar=member.avatar,
                personal_score=member.personal_score,
            ))
        try:
            db.session.add(record)
            db.session.commit()
            return record.to_state()
        except SQLAlchemyError as exc:
            raise _failed(exc, 'create room') from exc

    def save(self, room: RoomState) -> RoomState:
        try:
            record = db.session.get(Room, room.id)
            if record is None:
                raise PersistenceError('Room vanished before it could be saved')

            record.room_name = room.room_name
            record.desk_score = room.desk_score

            rows = {m.external_id: m for m in record.members}
            for position, member in enumerate(room.members):
                row = rows.get(member.external_id)
                if row is None:
                    row = RoomMember(room_id=record.id, position=position, external_id=member.external_id)
                    db.session.add(row)
                row.nickname = member.nickname
                row.avatar = member.avatar
                row.personal_score = member.personal_score

            fresh = len(room.logs) - len(record.logs)
            if fresh < 0:
                raise PersistenceError('Room log is append-only')
            # Oldest first so the autoincrement id follows prepend order.
            for entry in reversed(room.logs[:fresh]):
                db.session.add(RoomLog(
                    room_id=record.id,
                    action=entry.action.value,
                    external_id=entry.external_id,
                    nickname=entry.nickname,
                    amount=entry.amount,
                    timestamp=entry.timestamp,
                ))
            db.session.commit()
            return room
        except PersistenceError:
            db.session.rollback()
            raise
        except SQLAlchemyError as exc:
            raise _failed(exc, 'save room') from exc

    def upsert_user(self, external_id: str, nickname: Optional[str] = None,
                    avatar: Optional[str] = None) -> dict:
        try:
            user = User.query.filter_by(external_id=external_id).first()
            if user:
                if nickname:
                    user.nickname = nickname
                if avatar:
                    user.avatar = avatar
            else:
                user = User(external_id=external_id, nickname=nickname, avatar=avatar)
                db.session.add(user)
            db.session.commit()
            return user.to_dict()
        except SQLAlchemyError as exc:
            raise _failed(exc, 'save user') from exc

    def get_user(self, external_id: str) -> Optional[dict]:
        try:
            user = User.query.filter_by(external_id=external_id).first()
            return user.to_dict() if user else None
        except SQLAlchemyError as exc:
            raise _failed(exc, 'load user') from exc

    def prune_expired(self, now: datetime) -> int:
        """Delete rooms whose expiry has passed, with their members and logs."""
        try:
            expired = Room.query.filter(Room.expire_at <= now).all()
            for record in expired:
                db.session.delete(record)
            db.session.commit()
            return len(expired)
        except SQLAlchemyError as exc:
            raise _failed(exc, 'prune rooms') from exc
