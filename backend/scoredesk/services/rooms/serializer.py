import logging
import threading
from typing import Any, Callable, Dict, Hashable

logger = logging.getLogger(__name__)


class _RoomQueue:
    __slots__ = ('condition', 'issued', 'serving', 'waiting')

    def __init__(self, lock):
        self.condition = threading.Condition(lock)
        self.issued = 0
        self.serving = 0
        self.waiting = 0


class MutationSerializer:
    """Runs mutations for the same room one at a time, in submission order.

    Each room gets a ticket queue: a caller takes the next ticket and waits
    until that ticket is being served, runs its task, then hands over to the
    next ticket. Rooms never wait on each other; the shared guard lock is only
    held while tickets are issued or advanced, never while a task runs.
    """

    def __init__(self):
        self._guard = threading.Lock()
        self._queues: Dict[Hashable, _RoomQueue] = {}

    def enqueue(self, room_id: Hashable, task: Callable[[], Any]) -> Any:
        """Run ``task`` once every earlier task for ``room_id`` has finished.

        Returns the task's result or re-raises its exception to this caller.
        """
        queue = self._acquire(room_id)
        try:
            return task()
        finally:
            self._release(room_id, queue)

    def pending(self, room_id: Hashable) -> int:
        """Tasks for ``room_id`` that are running or waiting."""
        with self._guard:
            queue = self._queues.get(room_id)
            return queue.waiting if queue else 0

    def _acquire(self, room_id: Hashable) -> _RoomQueue:
        with self._guard:
            queue = self._queues.get(room_id)
            if queue is None:
                queue = self._queues[room_id] = _RoomQueue(self._guard)
            ticket = queue.issued
            queue.issued += 1
            queue.waiting += 1
            if queue.serving != ticket:
                logger.debug('room %s: ticket %d waits behind %d', room_id, ticket, ticket - queue.serving)
            while queue.serving != ticket:
                queue.condition.wait()
            return queue

    def _release(self, room_id: Hashable, queue: _RoomQueue) -> None:
        with self._guard:
            queue.serving += 1
            queue.waiting -= 1
            if queue.waiting == 0:
                self._queues.pop(room_id, None)
            else:
                queue.condition.notify_all()
