from __future__ import annotations
import asyncio, logging
from collections import deque
from enum import Enum
from typing import Deque, Set

from relay.core.messages import Message

logger = logging.getLogger("relay.mailbox")

_CLOSED = object()


class HandoffPolicy(str, Enum):
    SYNC = "sync"
    TIMEOUT = "timeout"
    DROP_OLDEST = "drop_oldest"
    DROP_NEWEST = "drop_newest"

    @property
    def buffered(self) -> bool:
        return self in (HandoffPolicy.DROP_OLDEST, HandoffPolicy.DROP_NEWEST)


class MailboxClosed(Exception):
    def __init__(self, owner: str):
        self.owner = owner
        super().__init__(f"Mailbox for {owner!r} is closed")


class Mailbox:
    """Handoff channel for one participant's inbound messages.

    With ``sync`` and ``timeout`` policies every ``deliver`` is a rendezvous:
    the caller waits until the owning session has taken that message. Several
    publishers may wait on the same mailbox at once; each one holds exactly
    one message in flight. The buffered policies never block and keep at most
    ``capacity`` messages.
    """

    def __init__(
        self,
        owner: str,
        policy: HandoffPolicy = HandoffPolicy.TIMEOUT,
        timeout: float = 5.0,
        capacity: int = 1,
    ) -> None:
        self.owner = owner
        self.policy = HandoffPolicy(policy)
        self.timeout = timeout
        self.capacity = capacity
        self._items: Deque = deque()
        self._ready = asyncio.Event()
        self._pending: Set[asyncio.Future] = set()
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def queued(self) -> int:
        return sum(1 for item in self._items if item is not _CLOSED)

    def _put(self, item) -> None:
        self._items.append(item)
        self._ready.set()

    async def deliver(self, message: Message) -> bool:
        if self._closed:
            return False
        if self.policy.buffered:
            return self._enqueue(message)

        taken: asyncio.Future = asyncio.get_running_loop().create_future()
        item = (message, taken)
        self._pending.add(taken)
        self._put(item)
        wait = self.timeout if self.policy is HandoffPolicy.TIMEOUT else None
        try:
            # shield so a timeout leaves the future for us to withdraw below
            return await asyncio.wait_for(asyncio.shield(taken), timeout=wait)
        except asyncio.TimeoutError:
            # taken in the same tick the timer fired
            if taken.done() and not taken.cancelled() and taken.result():
                return True
            logger.warning(
                "delivery to %s stalled after %.2fs",
                self.owner,
                self.timeout,
                extra={"participant_id": self.owner, "event": "delivery_stalled"},
            )
            return False
        finally:
            if not taken.done():
                taken.cancel()
                try:
                    self._items.remove(item)
                except ValueError:
                    pass
            self._pending.discard(taken)

    def _enqueue(self, message: Message) -> bool:
        if len(self._items) < self.capacity:
            self._put((message, None))
            return True
        if self.policy is HandoffPolicy.DROP_NEWEST:
            logger.warning(
                "mailbox %s full, dropping newest message",
                self.owner,
                extra={"participant_id": self.owner, "event": "message_dropped"},
            )
            return False
        self._items.popleft()
        self._put((message, None))
        logger.warning(
            "mailbox %s full, dropped oldest message",
            self.owner,
            extra={"participant_id": self.owner, "event": "message_dropped"},
        )
        return True

    async def receive(self) -> Message:
        while True:
            while not self._items:
                self._ready.clear()
                await self._ready.wait()
            if self._items[0] is _CLOSED:
                # left in place for any other session sharing this mailbox
                raise MailboxClosed(self.owner)
            message, taken = self._items.popleft()
            if taken is None:
                return message
            if not taken.done():
                taken.set_result(True)
                return message

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        for taken in list(self._pending):
            if not taken.done():
                taken.set_result(False)
        self._pending.clear()
        self._items.clear()
        self._put(_CLOSED)
