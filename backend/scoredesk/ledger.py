"""Room score ledger.

Every operation here is a pure function of (room state, request). It returns a
fresh ``Room`` (plus the ``LogEntry`` it prepended, where one is written) or
raises a ``ScoreDeskError`` subclass without touching the input. Storage,
locking and broadcasting live in ``scoredesk.services.rooms``.

The desk and the members always sum to zero: score only ever moves between a
member and the desk.
"""
import enum
from dataclasses import dataclass, replace
from datetime import datetime, timedelta, timezone
from typing import Optional, Tuple

from scoredesk.errors import (
    InsufficientDeskPool,
    MemberNotFound,
    RoomFull,
    ValidationError,
)

MAX_MEMBERS = 20
# Scores are stored as signed 64-bit BIGINT columns.
SCORE_MIN = -(2 ** 63)
SCORE_MAX = 2 ** 63 - 1
ROOM_TTL = timedelta(days=7)


class LogAction(str, enum.Enum):
    JOIN = 'Join'
    RETURN = 'Return'
    SPEND = 'Spend'
    RECLAIM = 'Reclaim'


@dataclass(frozen=True)
class Member:
    external_id: str
    nickname: Optional[str] = None
    avatar: Optional[str] = None
    personal_score: int = 0

    def to_dict(self):
        return {
            'externalId': self.external_id,
            'nickname': self.nickname,
            'avatar': self.avatar,
            'personalScore': self.personal_score,
        }


@dataclass(frozen=True)
class LogEntry:
    action: LogAction
    external_id: str
    nickname: Optional[str]
    amount: int
    timestamp: datetime

    def to_dict(self):
        return {
            'action': self.action.value,
            'externalId': self.external_id,
            'nickname': self.nickname,
            'amount': self.amount,
            'timestamp': _isoformat(self.timestamp),
        }


@dataclass(frozen=True)
class Room:
    """Snapshot of one room. ``members`` are in join order, ``logs`` newest first."""

    room_code: str
    room_name: str
    owner_id: str
    created_at: datetime
    expire_at: datetime
    desk_score: int = 0
    members: Tuple[Member, ...] = ()
    logs: Tuple[LogEntry, ...] = ()
    id: Optional[int] = None

    def find_member(self, external_id: str) -> Optional[Member]:
        for member in self.members:
            if member.external_id == external_id:
                return member
        return None

    def total_score(self) -> int:
        return self.desk_score + sum(m.personal_score for m in self.members)

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        now = now or utcnow()
        return _aware(self.expire_at) <= _aware(now)

    def to_dict(self):
        return {
            'id': self.id,
            'roomCode': self.room_code,
            'roomName': self.room_name,
            'ownerId': self.owner_id,
            'deskScore': self.desk_score,
            'members': [m.to_dict() for m in self.members],
            'logs': [entry.to_dict() for entry in self.logs],
            'createdAt': _isoformat(self.created_at),
            'expireAt': _isoformat(self.expire_at),
        }


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _aware(value: datetime) -> datetime:
    # SQLite hands naive datetimes back; they are stored as UTC.
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _isoformat(value: Optional[datetime]) -> Optional[str]:
    if value is None:
        return None
    return _aware(value).isoformat()


def _require_id(value, what: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f'{what} is required')
    return value


def _require_amount(amount) -> int:
    # bool is an int subclass; a JSON true is not a score.
    if isinstance(amount, bool) or not isinstance(amount, int):
        raise ValidationError('amount must be an integer')
    if not SCORE_MIN <= amount <= SCORE_MAX:
        raise ValidationError('amount is out of range')
    return amount


def _require_in_range(*scores: int) -> None:
    if any(not SCORE_MIN <= score <= SCORE_MAX for score in scores):
        raise ValidationError('resulting score is out of range')


def _replace_member(room: Room, updated: Member) -> Tuple[Member, ...]:
    return tuple(updated if m.external_id == updated.external_id else m for m in room.members)


def _member_or_raise(room: Room, external_id: str) -> Member:
    member = room.find_member(external_id)
    if member is None:
        raise MemberNotFound()
    return member


def create_room(owner_id: str, owner_name: Optional[str], owner_avatar: Optional[str], room_code: str,
                room_name: Optional[str] = None, now: Optional[datetime] = None,
                ttl: timedelta = ROOM_TTL) -> Room:
    _require_id(owner_id, 'ownerId')
    now = now or utcnow()
    owner = Member(external_id=owner_id, nickname=owner_name, avatar=owner_avatar, personal_score=0)
    return Room(
        room_code=room_code,
        room_name=room_name or f'Room {room_code}',
        owner_id=owner_id,
        created_at=now,
        expire_at=now + ttl,
        desk_score=0,
        members=(owner,),
        logs=(),
    )


def join(room: Room, external_id: str, nickname: Optional[str] = None, avatar: Optional[str] = None,
         now: Optional[datetime] = None, capacity: int = MAX_MEMBERS) -> Tuple[Room, LogEntry]:
    """Admit ``external_id`` to the room.

    A returning member gets its profile refreshed and a ``Return`` entry; the
    capacity limit only gates brand-new members.
    """
    _require_id(external_id, 'externalId')
    now = now or utcnow()
    existing = room.find_member(external_id)
    if existing is not None:
        refreshed = replace(
            existing,
            nickname=nickname or existing.nickname,
            avatar=avatar or existing.avatar,
        )
        entry = LogEntry(LogAction.RETURN, external_id, refreshed.nickname, 0, now)
        members = _replace_member(room, refreshed)
    else:
        if len(room.members) >= capacity:
            raise RoomFull()
        newcomer = Member(external_id=external_id, nickname=nickname, avatar=avatar, personal_score=0)
        entry = LogEntry(LogAction.JOIN, external_id, nickname, 0, now)
        members = room.members + (newcomer,)
    return replace(room, members=members, logs=(entry,) + room.logs), entry


def update_member(room: Room, external_id: str, nickname: Optional[str] = None,
                  avatar: Optional[str] = None) -> Tuple[Room, Member]:
    """Change a member's profile. Writes no log entry."""
    member = _member_or_raise(room, external_id)
    updated = replace(
        member,
        nickname=nickname or member.nickname,
        avatar=avatar or member.avatar,
    )
    return replace(room, members=_replace_member(room, updated)), updated


def spend(room: Room, external_id: str, nickname: Optional[str], amount,
          now: Optional[datetime] = None) -> Tuple[Room, LogEntry]:
    """Move ``amount`` from the member to the desk.

    The member's balance has no floor: spending without prior balance is how a
    player takes markers on credit.
    """
    amount = _require_amount(amount)
    member = _member_or_raise(room, external_id)
    now = now or utcnow()
    updated = replace(member, personal_score=member.personal_score - amount)
    _require_in_range(updated.personal_score, room.desk_score + amount)
    entry = LogEntry(LogAction.SPEND, external_id, nickname or member.nickname, amount, now)
    new_room = replace(
        room,
        desk_score=room.desk_score + amount,
        members=_replace_member(room, updated),
        logs=(entry,) + room.logs,
    )
    return new_room, entry


def reclaim(room: Room, external_id: str, nickname: Optional[str], amount,
            now: Optional[datetime] = None) -> Tuple[Room, LogEntry]:
    """Move ``amount`` from the desk to the member. The desk never goes negative."""
    amount = _require_amount(amount)
    member = _member_or_raise(room, external_id)
    if amount > room.desk_score:
        raise InsufficientDeskPool()
    now = now or utcnow()
    updated = replace(member, personal_score=member.personal_score + amount)
    _require_in_range(updated.personal_score, room.desk_score - amount)
    entry = LogEntry(LogAction.RECLAIM, external_id, nickname or member.nickname, amount, now)
    new_room = replace(
        room,
        desk_score=room.desk_score - amount,
        members=_replace_member(room, updated),
        logs=(entry,) + room.logs,
    )
    return new_room, entry
