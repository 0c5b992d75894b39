from scoredesk.ledger import Member, Room

ROOM_UPDATE = 'roomUpdate'
MEMBER_UPDATE = 'memberUpdate'


class BroadcastGateway:
    """Publishes room changes to the Socket.IO room named by the room code.

    Delivery is whatever Socket.IO gives currently subscribed sockets; there is
    no replay for a client that subscribes later.
    """

    def __init__(self, socketio, namespace='/'):
        self.socketio = socketio
        self.namespace = namespace

    def room_update(self, room: Room) -> None:
        """Full snapshot, enough for any subscriber to resynchronize."""
        self.socketio.emit(ROOM_UPDATE, room.to_dict(), to=room.room_code, namespace=self.namespace)

    def member_update(self, room_code: str, member: Member) -> None:
        self.socketio.emit(MEMBER_UPDATE, {
            'externalId': member.external_id,
            'nickname': member.nickname,
            'avatar': member.avatar,
        }, to=room_code, namespace=self.namespace)
