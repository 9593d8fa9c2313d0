"""
Unit tests for the location broadcast hub.
"""

import asyncio

import pytest

from backend.app.services.tracking_hub import LocationBroadcastHub


class FakeConnection:
    def __init__(self, fail=False):
        self.sent = []
        self.fail = fail

    async def send_json(self, data):
        if self.fail:
            raise ConnectionError("socket closed")
        self.sent.append(data)


class StalledConnection:
    """A subscriber that stopped reading: send_json never completes."""

    def __init__(self):
        self.released = asyncio.Event()

    async def send_json(self, data):
        await self.released.wait()


async def test_publish_reaches_only_subscribers_of_request():
    hub = LocationBroadcastHub()
    watcher, bystander = FakeConnection(), FakeConnection()
    await hub.subscribe(watcher, 1)
    await hub.subscribe(bystander, 2)

    delivered = await hub.publish(1, {"type": "location_update", "requestId": 1})

    assert delivered == 1
    assert watcher.sent == [{"type": "location_update", "requestId": 1}]
    assert bystander.sent == []


async def test_connection_can_watch_several_requests():
    hub = LocationBroadcastHub()
    conn = FakeConnection()
    await hub.subscribe(conn, 1)
    await hub.subscribe(conn, 2)
    await hub.subscribe(conn, 2)

    await hub.publish(1, {"n": 1})
    await hub.publish(2, {"n": 2})

    assert conn.sent == [{"n": 1}, {"n": 2}]
    assert hub.connection_count == 1
    assert hub.subscriber_count(2) == 1


async def test_publish_without_subscribers():
    hub = LocationBroadcastHub()
    assert await hub.publish(99, {"n": 1}) == 0


async def test_failed_send_drops_connection():
    hub = LocationBroadcastHub()
    healthy, dead = FakeConnection(), FakeConnection(fail=True)
    await hub.subscribe(healthy, 1)
    await hub.subscribe(dead, 1)
    await hub.subscribe(dead, 2)

    delivered = await hub.publish(1, {"n": 1})

    assert delivered == 1
    assert healthy.sent == [{"n": 1}]
    assert hub.subscriber_count(1) == 1
    assert hub.subscriber_count(2) == 0
    assert hub.connection_count == 1


async def test_disconnect_unsubscribes_everything():
    hub = LocationBroadcastHub()
    conn = FakeConnection()
    await hub.subscribe(conn, 1)
    await hub.subscribe(conn, 2)

    await hub.disconnect(conn)

    assert hub.connection_count == 0
    assert await hub.publish(1, {"n": 1}) == 0
    assert conn.sent == []


async def test_unsubscribe_single_request():
    hub = LocationBroadcastHub()
    conn = FakeConnection()
    await hub.subscribe(conn, 1)
    await hub.subscribe(conn, 2)

    await hub.unsubscribe(conn, 1)

    assert hub.subscriber_count(1) == 0
    assert hub.subscriber_count(2) == 1
    assert hub.connection_count == 1

    await hub.unsubscribe(conn, 2)
    assert hub.connection_count == 0


async def test_concurrent_subscribe_and_disconnect():
    hub = LocationBroadcastHub()
    conns = [FakeConnection() for _ in range(50)]

    await asyncio.gather(*(hub.subscribe(c, i % 5) for i, c in enumerate(conns)))
    assert hub.connection_count == 50

    await asyncio.gather(*(hub.disconnect(c) for c in conns[::2]))
    assert hub.connection_count == 25
    assert sum(hub.subscriber_count(i) for i in range(5)) == 25


async def test_closed_hub_rejects_subscribers():
    hub = LocationBroadcastHub()
    conn = FakeConnection()
    await hub.subscribe(conn, 1)

    await hub.close()

    assert hub.connection_count == 0
    with pytest.raises(RuntimeError):
        await hub.subscribe(conn, 1)


async def test_stalled_send_times_out_and_drops_connection():
    hub = LocationBroadcastHub(send_timeout=0.05)
    healthy, stalled = FakeConnection(), StalledConnection()
    await hub.subscribe(healthy, 1)
    await hub.subscribe(stalled, 1)

    delivered = await asyncio.wait_for(hub.publish(1, {"n": 1}), 2)

    assert delivered == 1
    assert healthy.sent == [{"n": 1}]
    assert hub.subscriber_count(1) == 1
    assert hub.connection_count == 1
