from __future__ import annotations
import asyncio, logging
from typing import AsyncIterator, Awaitable, Callable, Optional

from relay.infra.mailbox import Mailbox, MailboxClosed
from relay.infra.registry import Registry, RegistryFull
from relay.infra.sse import OPEN_COMMENT, PING_FRAME, message_frame

logger = logging.getLogger("relay.session")


class StreamSession:
    """Control loop of one long-lived stream connection.

    ``frames()`` registers the participant (unless ``open()`` already did),
    then yields one frame per iteration: a delivery frame when a message is
    taken from the mailbox, a ping frame when the keepalive interval passes
    first. ``release()`` gives the registration back exactly once, whichever
    way the stream ends.
    """

    def __init__(
        self,
        registry: Registry,
        participant_id: str,
        keepalive_interval: float = 1.0,
        is_disconnected: Optional[Callable[[], Awaitable[bool]]] = None,
    ) -> None:
        self.registry = registry
        self.participant_id = participant_id
        self.keepalive_interval = keepalive_interval
        self._is_disconnected = is_disconnected
        self.delivered = 0
        self.pings = 0
        self._mailbox: Optional[Mailbox] = None
        self._released = False

    async def _peer_gone(self) -> bool:
        if self._is_disconnected is None:
            return False
        return await self._is_disconnected()

    def open(self) -> Mailbox:
        """Register the participant; raises RegistryFull when there is no room."""
        if self._mailbox is None:
            self._mailbox = self.registry.register(self.participant_id)
            logger.info(
                "stream opened",
                extra={"participant_id": self.participant_id, "event": "stream_open"},
            )
        return self._mailbox

    def release(self) -> None:
        # at most once per open()
        if self._mailbox is None or self._released:
            return
        self._released = True
        self.registry.deregister(self.participant_id)
        logger.info(
            "stream closed",
            extra={
                "participant_id": self.participant_id,
                "event": "stream_closed",
                "delivered": self.delivered,
                "pings": self.pings,
            },
        )

    async def frames(self) -> AsyncIterator[str]:
        try:
            mailbox = self.open()
        except RegistryFull as e:
            logger.warning(
                "stream refused: %s",
                e,
                extra={"participant_id": self.participant_id, "event": "registry_full"},
            )
            return
        try:
            # Send an initial comment to promptly open the stream
            yield OPEN_COMMENT
            while True:
                if await self._peer_gone():
                    break
                try:
                    message = await asyncio.wait_for(
                        mailbox.receive(), timeout=self.keepalive_interval
                    )
                except asyncio.TimeoutError:
                    self.pings += 1
                    yield PING_FRAME
                    continue
                except MailboxClosed:
                    break
                self.delivered += 1
                yield message_frame(message)
        finally:
            self.release()
