from scoredesk import db
from scoredesk.ledger import LogAction, LogEntry, Member, Room as RoomState, utcnow


class User(db.Model):
    __tablename__ = 'user'
    id = db.Column(db.Integer, primary_key=True)
    external_id = db.Column(db.String(128), unique=True, nullable=False, index=True)
    nickname = db.Column(db.String(64), nullable=True)
    avatar = db.Column(db.String(512), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), default=utcnow, nullable=False)

    def to_dict(self):
        return {
            'id': self.id,
            'externalId': self.external_id,
            'nickname': self.nickname,
            'avatar': self.avatar,
            'createdAt': self.created_at.isoformat() if self.created_at else None,
        }


class RoomMember(db.Model):
    __tablename__ = 'room_member'
    __table_args__ = (db.UniqueConstraint('room_id', 'external_id', name='uq_room_member_external_id'),)
    id = db.Column(db.Integer, primary_key=True)
    room_id = db.Column(db.Integer, db.ForeignKey('room.id'), nullable=False, index=True)
    position = db.Column(db.Integer, nullable=False)  # join order
    external_id = db.Column(db.String(128), nullable=False)
    nickname = db.Column(db.String(64), nullable=True)
    avatar = db.Column(db.String(512), nullable=True)
    personal_score = db.Column(db.BigInteger, default=0, nullable=False)
    room = db.relationship('Room', back_populates='members')

    def to_state(self) -> Member:
        return Member(
            external_id=self.external_id,
            nickname=self.nickname,
            avatar=self.avatar,
            personal_score=self.personal_score or 0,
        )


class RoomLog(db.Model):
    __tablename__ = 'room_log'
    # Autoincrement id is the prepend sequence; newest entry has the highest id.
    id = db.Column(db.Integer, primary_key=True)
    room_id = db.Column(db.Integer, db.ForeignKey('room.id'), nullable=False, index=True)
    action = db.Column(db.String(16), nullable=False)
    external_id = db.Column(db.String(128), nullable=False)
    nickname = db.Column(db.String(64), nullable=True)
    amount = db.Column(db.BigInteger, default=0, nullable=False)
    timestamp = db.Column(db.DateTime(timezone=True), nullable=False)
    room = db.relationship('Room', back_populates='logs')

    def to_state(self) -> LogEntry:
        return LogEntry(
            action=LogAction(self.action),
            external_id=self.external_id,
            nickname=self.nickname,
            amount=self.amount or 0,
            timestamp=self.timestamp,
        )


class Room(db.Model):
    __tablename__ = 'room'
    id = db.Column(db.Integer, primary_key=True)
    # Six digits, not unique across time: a code may be reissued once its room expires.
    room_code = db.Column(db.String(6), nullable=False, index=True)
    room_name = db.Column(db.String(64), nullable=False)
    owner_id = db.Column(db.String(128), nullable=False)
    desk_score = db.Column(db.BigInteger, default=0, nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), default=utcnow, nullable=False)
    expire_at = db.Column(db.DateTime(timezone=True), nullable=False, index=True)
    members = db.relationship(
        'RoomMember', back_populates='room', order_by='RoomMember.position',
        cascade='all, delete-orphan',
    )
    logs = db.relationship(
        'RoomLog', back_populates='room', order_by='RoomLog.id.desc()',
        cascade='all, delete-orphan',
    )

    def to_state(self) -> RoomState:
        return RoomState(
            id=self.id,
            room_code=self.room_code,
            room_name=self.room_name,
            owner_id=self.owner_id,
            desk_score=self.desk_score or 0,
            created_at=self.created_at,
            expire_at=self.expire_at,
            members=tuple(m.to_state() for m in self.members),
            logs=tuple(entry.to_state() for entry in self.logs),
        )

    def to_dict(self):
        return self.to_state().to_dict()
