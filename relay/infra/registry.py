from __future__ import annotations
import asyncio, logging, threading
from dataclasses import dataclass
from typing import Dict, List

from relay.core.messages import Message
from relay.infra.mailbox import HandoffPolicy, Mailbox

logger = logging.getLogger("relay.registry")


class RegistryFull(Exception):
    def __init__(self, limit: int):
        self.limit = limit
        super().__init__(f"Registry is full ({limit} participants)")


@dataclass(frozen=True)
class BroadcastResult:
    recipients: int
    delivered: int

    @property
    def dropped(self) -> int:
        return self.recipients - self.delivered


class _Entry:
    __slots__ = ("mailbox", "holders")

    def __init__(self, mailbox: Mailbox) -> None:
        self.mailbox = mailbox
        self.holders = 1


class Registry:
    """Directory of participant id -> Mailbox, shared by every session and publish.

    One coarse lock guards insertion, removal and the snapshot taken by
    ``broadcast``. The lock is never held across an await, so ``register``
    and ``deregister`` are plain calls and safe in cleanup paths.
    """

    def __init__(
        self,
        policy: HandoffPolicy | str = HandoffPolicy.TIMEOUT,
        delivery_timeout: float = 5.0,
        mailbox_capacity: int = 1,
        max_sessions: int = 0,
    ) -> None:
        self.policy = HandoffPolicy(policy)
        self.delivery_timeout = delivery_timeout
        self.mailbox_capacity = mailbox_capacity
        self.max_sessions = max_sessions
        self._entries: Dict[str, _Entry] = {}
        self._lock = threading.Lock()

    @classmethod
    def from_settings(cls, settings) -> "Registry":
        return cls(
            policy=settings.HANDOFF_POLICY,
            delivery_timeout=settings.DELIVERY_TIMEOUT_SECONDS,
            mailbox_capacity=settings.MAILBOX_CAPACITY,
            max_sessions=settings.MAX_SESSIONS,
        )

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, participant_id: str) -> bool:
        with self._lock:
            return participant_id in self._entries

    def participants(self) -> List[str]:
        with self._lock:
            return list(self._entries)

    def register(self, participant_id: str) -> Mailbox:
        with self._lock:
            entry = self._entries.get(participant_id)
            if entry is not None:
                entry.holders += 1
                holders = entry.holders
            else:
                if self.max_sessions and len(self._entries) >= self.max_sessions:
                    raise RegistryFull(self.max_sessions)
                entry = _Entry(
                    Mailbox(
                        participant_id,
                        policy=self.policy,
                        timeout=self.delivery_timeout,
                        capacity=self.mailbox_capacity,
                    )
                )
                self._entries[participant_id] = entry
                holders = 1
        if holders > 1:
            logger.warning(
                "participant %s already streaming, sharing its mailbox (%d sessions)",
                participant_id,
                holders,
                extra={"participant_id": participant_id, "event": "id_collision"},
            )
        return entry.mailbox

    def deregister(self, participant_id: str) -> None:
        with self._lock:
            entry = self._entries.get(participant_id)
            if entry is None:
                return
            entry.holders -= 1
            if entry.holders > 0:
                return
            del self._entries[participant_id]
        entry.mailbox.close()

    async def broadcast(self, message: Message) -> BroadcastResult:
        with self._lock:
            mailboxes = [e.mailbox for e in self._entries.values()]
        if not mailboxes:
            return BroadcastResult(recipients=0, delivered=0)
        results = await asyncio.gather(*(mb.deliver(message) for mb in mailboxes))
        result = BroadcastResult(recipients=len(mailboxes), delivered=sum(results))
        logger.info(
            "broadcast from %s",
            message.sender,
            extra={
                "event": "broadcast",
                "recipients": result.recipients,
                "delivered": result.delivered,
                "dropped": result.dropped,
            },
        )
        return result

    def close_all(self) -> None:
        with self._lock:
            entries = list(self._entries.values())
            self._entries.clear()
        for entry in entries:
            entry.mailbox.close()
        if entries:
            logger.info("closed %d mailboxes", len(entries), extra={"event": "shutdown"})
