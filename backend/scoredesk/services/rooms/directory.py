import random
from datetime import datetime
from typing import Optional

from scoredesk.errors import RoomNotFound
from scoredesk.ledger import Room, utcnow


def generate_code(rng=random) -> str:
    """Six-digit room code drawn uniformly from 100000..999999."""
    return str(rng.randint(100000, 999999))


def issue_code(store, attempts: int = 10, now: Optional[datetime] = None, rng=random) -> str:
    """Draw codes until one is not carried by an active room.

    Gives up after ``attempts`` draws and returns the last one; an expired or
    colliding code is then shared, and ``resolve`` picks the newest room.
    """
    now = now or utcnow()
    code = generate_code(rng)
    for _ in range(max(0, attempts - 1)):
        if store.find_by_code(code, now) is None:
            break
        code = generate_code(rng)
    return code


def find_active(store, room_code, now: Optional[datetime] = None) -> Room:
    """Newest unexpired room carrying ``room_code``."""
    if not isinstance(room_code, str) or not room_code.strip():
        raise RoomNotFound()
    room = store.find_by_code(room_code.strip(), now or utcnow())
    if room is None:
        raise RoomNotFound()
    return room


def resolve(store, room_code, now: Optional[datetime] = None) -> int:
    """Map a room code to the id of the newest unexpired room carrying it."""
    return find_active(store, room_code, now).id
