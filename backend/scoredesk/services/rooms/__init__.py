"""Room services: storage, code issuance, per-room serialization and broadcasts.

HTTP routes and socket handlers go through ``RoomService``; the score rules
themselves stay in ``scoredesk.ledger`` so they can be exercised without a
database or a socket server.
"""

from .broadcast import BroadcastGateway
from .directory import find_active, generate_code, issue_code, resolve
from .serializer import MutationSerializer
from .service import RoomService
from .store import RoomStore, SqlRoomStore

__all__ = [
    'BroadcastGateway',
    'MutationSerializer',
    'RoomService',
    'RoomStore',
    'SqlRoomStore',
    'find_active',
    'generate_code',
    'issue_code',
    'resolve',
]
