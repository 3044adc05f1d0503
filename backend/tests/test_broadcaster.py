import asyncio

from lcu_relay.lcu import GAMEFLOW_PHASE_URI
from lcu_relay.models import EventKind, NormalizedEvent
from lcu_relay.services import Broadcaster

from conftest import BrokenConsumer, FakeConsumer


def test_new_consumer_first_receives_disconnected_status():
    async def scenario():
        broadcaster = Broadcaster()
        consumer = FakeConsumer()
        broadcaster.attach(consumer)
        await broadcaster.flush()
        await broadcaster.close()
        return consumer

    consumer = asyncio.run(scenario())

    assert consumer.messages == [{"type": "LcuDisconnect"}]


def test_late_consumer_first_receives_connected_status():
    async def scenario():
        broadcaster = Broadcaster()
        early, late = FakeConsumer(), FakeConsumer()
        broadcaster.attach(early)
        broadcaster.on_connect("12345")
        broadcaster.attach(late)
        await broadcaster.flush()
        await broadcaster.close()
        return early, late

    early, late = asyncio.run(scenario())

    connected = {"type": "LcuConnect", "data": {"port": "12345"}}
    assert early.messages == [{"type": "LcuDisconnect"}, connected]
    assert late.messages == [connected]


def test_messages_arrive_in_publish_order():
    async def scenario():
        broadcaster = Broadcaster()
        consumer = FakeConsumer()
        broadcaster.attach(consumer)
        broadcaster.on_connect("12345")
        for phase in ("Lobby", "Matchmaking", "ReadyCheck", "ChampSelect"):
            broadcaster.on_event(NormalizedEvent(topic=GAMEFLOW_PHASE_URI, kind=EventKind.UPDATE, payload=phase))
        broadcaster.on_disconnect(None)
        await broadcaster.flush()
        await broadcaster.close()
        return consumer

    consumer = asyncio.run(scenario())

    assert consumer.types() == ["LcuDisconnect", "LcuConnect"] + ["LcuEvent"] * 4 + ["LcuDisconnect"]
    assert [m["data"]["data"] for m in consumer.messages[2:6]] == ["Lobby", "Matchmaking", "ReadyCheck", "ChampSelect"]
    assert consumer.messages[2]["data"] == {"uri": GAMEFLOW_PHASE_URI, "eventType": "Update", "data": "Lobby"}


def test_delete_event_keeps_null_data():
    async def scenario():
        broadcaster = Broadcaster()
        consumer = FakeConsumer()
        broadcaster.attach(consumer)
        broadcaster.on_event(NormalizedEvent(topic=GAMEFLOW_PHASE_URI, kind=EventKind.DELETE))
        await broadcaster.flush()
        await broadcaster.close()
        return consumer

    consumer = asyncio.run(scenario())

    assert consumer.messages[-1] == {
        "type": "LcuEvent",
        "data": {"uri": GAMEFLOW_PHASE_URI, "eventType": "Delete", "data": None},
    }


def test_disconnect_error_is_relayed():
    async def scenario():
        broadcaster = Broadcaster()
        consumer = FakeConsumer()
        broadcaster.attach(consumer)
        broadcaster.on_connect("12345")
        broadcaster.on_disconnect("reset by peer")
        await broadcaster.flush()
        await broadcaster.close()
        return broadcaster, consumer

    broadcaster, consumer = asyncio.run(scenario())

    assert consumer.messages[-1] == {"type": "LcuDisconnect", "error": "reset by peer"}
    assert broadcaster.status == {"type": "LcuDisconnect", "error": "reset by peer"}


def test_connect_error_is_published_and_status_stays_disconnected():
    async def scenario():
        broadcaster = Broadcaster()
        consumer = FakeConsumer()
        broadcaster.attach(consumer)
        broadcaster.on_connect_error("connection refused")
        await broadcaster.flush()
        await broadcaster.close()
        return broadcaster, consumer

    broadcaster, consumer = asyncio.run(scenario())

    assert consumer.messages[-1] == {"type": "LcuConnectError", "error": "connection refused"}
    assert broadcaster.status["type"] == "LcuDisconnect"


def test_failing_consumer_is_dropped_without_affecting_others():
    async def scenario():
        broadcaster = Broadcaster()
        broken, healthy = BrokenConsumer(), FakeConsumer()
        broadcaster.attach(broken)
        broadcaster.attach(healthy)
        await broadcaster.flush()
        count_after_failure = broadcaster.consumer_count

        broadcaster.on_connect("12345")
        await broadcaster.flush()
        await broadcaster.close()
        return broken, healthy, count_after_failure

    broken, healthy, count_after_failure = asyncio.run(scenario())

    assert count_after_failure == 1
    assert broken.attempts == 1
    assert healthy.types() == ["LcuDisconnect", "LcuConnect"]


def test_detached_consumer_receives_nothing_more():
    async def scenario():
        broadcaster = Broadcaster()
        consumer = FakeConsumer()
        broadcaster.attach(consumer)
        await broadcaster.flush()
        broadcaster.detach(consumer)
        broadcaster.on_connect("12345")
        await broadcaster.flush()
        await broadcaster.close()
        return broadcaster, consumer

    broadcaster, consumer = asyncio.run(scenario())

    assert broadcaster.consumer_count == 0
    assert consumer.types() == ["LcuDisconnect"]


def test_attaching_twice_is_a_no_op():
    async def scenario():
        broadcaster = Broadcaster()
        consumer = FakeConsumer()
        broadcaster.attach(consumer)
        broadcaster.attach(consumer)
        await broadcaster.flush()
        await broadcaster.close()
        return broadcaster, consumer

    broadcaster, consumer = asyncio.run(scenario())

    assert consumer.types() == ["LcuDisconnect"]
