class ScoreDeskError(Exception):
    """Base for every rejection the room ledger surfaces to a caller.

    ``status_code`` is the HTTP status the REST layer answers with.
    """

    status_code = 400
    default_message = 'Request failed'

    def __init__(self, message=None):
        super().__init__(message or self.default_message)
        self.message = message or self.default_message


class ValidationError(ScoreDeskError):
    default_message = 'Invalid request'


class RoomNotFound(ScoreDeskError):
    status_code = 404
    default_message = 'Room not found'


class MemberNotFound(ScoreDeskError):
    default_message = 'Member not found in room'


class RoomFull(ScoreDeskError):
    default_message = 'Room is full'


class InsufficientDeskPool(ScoreDeskError):
    default_message = 'Not enough score on the desk'


class PersistenceError(ScoreDeskError):
    status_code = 500
    default_message = 'Storage failure'
