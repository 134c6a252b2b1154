import asyncio
import logging
import pytest
from relay.infra import mailbox as mailbox_module
from relay.core.messages import Message
from relay.infra.mailbox import HandoffPolicy, Mailbox, MailboxClosed


def test_sync_delivery_waits_until_taken():
    async def run():
        mb = Mailbox("alice", policy=HandoffPolicy.SYNC)
        deliver = asyncio.create_task(mb.deliver(Message("bob", "hi")))
        await asyncio.sleep(0.05)
        assert not deliver.done()
        msg = await mb.receive()
        return msg, await asyncio.wait_for(deliver, timeout=1.0)

    msg, ok = asyncio.run(run())
    assert msg == Message("bob", "hi")
    assert ok is True


def test_timeout_delivery_is_withdrawn():
    async def run():
        mb = Mailbox("alice", policy=HandoffPolicy.TIMEOUT, timeout=0.05)
        ok = await mb.deliver(Message("bob", "stale"))
        # a later delivery is still handed over, the stale one is skipped
        deliver = asyncio.create_task(mb.deliver(Message("bob", "fresh")))
        msg = await asyncio.wait_for(mb.receive(), timeout=1.0)
        return ok, msg, await deliver

    ok, msg, second = asyncio.run(run())
    assert ok is False
    assert msg.content == "fresh"
    assert second is True


def test_drop_oldest_keeps_newest():
    async def run():
        mb = Mailbox("alice", policy=HandoffPolicy.DROP_OLDEST, capacity=2)
        for i in range(3):
            assert await mb.deliver(Message("bob", str(i))) is True
        return [(await mb.receive()).content for _ in range(2)]

    assert asyncio.run(run()) == ["1", "2"]


def test_drop_newest_rejects_overflow():
    async def run():
        mb = Mailbox("alice", policy=HandoffPolicy.DROP_NEWEST, capacity=1)
        first = await mb.deliver(Message("bob", "0"))
        second = await mb.deliver(Message("bob", "1"))
        return first, second, (await mb.receive()).content

    assert asyncio.run(run()) == (True, False, "0")


def test_close_wakes_receiver_and_rejects_delivery():
    async def run():
        mb = Mailbox("alice", policy=HandoffPolicy.SYNC)
        pending = asyncio.create_task(mb.deliver(Message("bob", "hi")))
        await asyncio.sleep(0)
        mb.close()
        mb.close()
        assert await asyncio.wait_for(pending, timeout=1.0) is False
        assert await mb.deliver(Message("bob", "late")) is False
        with pytest.raises(MailboxClosed):
            await asyncio.wait_for(mb.receive(), timeout=1.0)

    asyncio.run(run())


def test_stalled_deliveries_do_not_pile_up():
    async def run():
        mb = Mailbox("stalled", policy=HandoffPolicy.TIMEOUT, timeout=0.001)
        results = [await mb.deliver(Message("bob", str(i))) for i in range(50)]
        return results, mb.queued

    results, queued = asyncio.run(run())
    assert not any(results)
    assert queued == 0


def test_cancelled_publisher_withdraws_its_message():
    async def run():
        mb = Mailbox("alice", policy=HandoffPolicy.SYNC)
        deliver = asyncio.create_task(mb.deliver(Message("bob", "hi")))
        await asyncio.sleep(0.01)
        assert mb.queued == 1
        deliver.cancel()
        try:
            await deliver
        except asyncio.CancelledError:
            pass
        return mb.queued

    assert asyncio.run(run()) == 0


def test_message_taken_as_timer_fires_counts_as_delivered(monkeypatch, caplog):
    mb = Mailbox("alice", policy=HandoffPolicy.TIMEOUT, timeout=1.0)
    taken = []

    async def wait_for_then_expire(aw, timeout=None):
        # the receiver wins the race, then the timer reports expiry anyway
        taken.append(await mb.receive())
        aw.cancel()
        raise asyncio.TimeoutError()

    monkeypatch.setattr(mailbox_module.asyncio, "wait_for", wait_for_then_expire)

    async def run():
        return await mb.deliver(Message("bob", "hi"))

    with caplog.at_level(logging.WARNING, logger="relay.mailbox"):
        ok = asyncio.run(run())
    assert ok is True
    assert taken == [Message("bob", "hi")]
    assert "stalled" not in caplog.text
