import asyncio
import json

import aiohttp
import pytest
from websockets.exceptions import ConnectionClosedError
from websockets.frames import Close

from lcu_relay.consumer import ConsumerSession, ConsumerState
from lcu_relay.consumer.session import _http_base_for
from lcu_relay.errors import NotConnected, ProxyError, ProxyTransportFailure

from conftest import FakeRelaySocket, spin

CONNECTED = {"type": "LcuConnect", "data": {"port": "12345"}}


class SocketFactory:
    def __init__(self, *sockets):
        self.sockets = list(sockets)
        self.urls = []

    async def __call__(self, url):
        self.urls.append(url)
        socket = self.sockets.pop(0)
        if isinstance(socket, BaseException):
            raise socket
        return socket


class FakeGetResponse:
    def __init__(self, status, data):
        self.status = status
        self._data = data

    async def text(self):
        return self._data if isinstance(self._data, str) else json.dumps(self._data)

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        return False


class FakeGetSession:
    def __init__(self, response):
        self.response = response
        self.urls = []

    def get(self, url, timeout=None):
        self.urls.append(url)
        if isinstance(self.response, BaseException):
            raise self.response
        return self.response


def test_session_tracks_relay_messages():
    socket = FakeRelaySocket()
    fired = []

    async def scenario():
        session = ConsumerSession(
            connector=SocketFactory(socket),
            on_lcu_connect=lambda: fired.append("connect"),
            on_lcu_disconnect=lambda: fired.append("disconnect"),
        )
        assert session.connect()
        assert session.state == ConsumerState.WS_CONNECTING

        await spin()
        assert session.state == ConsumerState.WS_OPEN_LCU_UNKNOWN

        socket.push(CONNECTED)
        socket.push({"type": "LcuEvent", "data": {"uri": "/lol-gameflow/v1/gameflow-phase",
                                                  "eventType": "Update", "data": "Lobby"}})
        await spin()
        assert session.state == ConsumerState.WS_OPEN_LCU_CONNECTED
        assert session.is_connected_to_lcu
        assert session.gameflow_phase == "Lobby"

        socket.finish(1000)
        await session.wait_closed()
        return session

    session = asyncio.run(scenario())

    assert session.state == ConsumerState.WS_DISCONNECTED
    assert session.status.error is None
    assert fired == ["connect", "disconnect"]


def test_connect_is_a_no_op_while_socket_is_alive():
    async def scenario():
        factory = SocketFactory(FakeRelaySocket())
        session = ConsumerSession(connector=factory)
        first = session.connect()
        second = session.connect()
        await spin()
        third = session.connect()
        await session.close()
        return factory, first, second, third

    factory, first, second, third = asyncio.run(scenario())

    assert (first, second, third) == (True, False, False)
    assert len(factory.urls) == 1


def test_unclean_close_reports_close_code():
    socket = FakeRelaySocket(CONNECTED)
    socket.crash(ConnectionClosedError(Close(1011, "boom"), None))

    async def scenario():
        session = ConsumerSession(connector=SocketFactory(socket))
        session.connect()
        await session.wait_closed()
        return session

    session = asyncio.run(scenario())

    assert session.state == ConsumerState.WS_DISCONNECTED
    assert session.status.error == "WebSocket closed unexpectedly (Code: 1011)"


def test_connect_failure_leaves_session_disconnected():
    async def scenario():
        session = ConsumerSession(connector=SocketFactory(OSError("refused")))
        session.connect()
        await session.wait_closed()
        return session

    session = asyncio.run(scenario())

    assert session.state == ConsumerState.WS_DISCONNECTED
    assert session.status.error == "WebSocket closed unexpectedly (Code: 1006)"


def test_reconnect_after_close_uses_fresh_state():
    first, second = FakeRelaySocket(CONNECTED), FakeRelaySocket()
    first.finish(1000)

    async def scenario():
        factory = SocketFactory(first, second)
        session = ConsumerSession(connector=factory)
        session.connect()
        await session.wait_closed()
        closed_state = session.state

        assert session.connect()
        await spin()
        reopened_state = session.state
        await session.close()
        return factory, closed_state, reopened_state

    factory, closed_state, reopened_state = asyncio.run(scenario())

    assert closed_state == ConsumerState.WS_DISCONNECTED
    assert reopened_state == ConsumerState.WS_OPEN_LCU_UNKNOWN
    assert len(factory.urls) == 2


def test_close_closes_the_socket():
    socket = FakeRelaySocket()

    async def scenario():
        session = ConsumerSession(connector=SocketFactory(socket))
        session.connect()
        await spin()
        await session.close()
        await spin()

    asyncio.run(scenario())

    assert socket.closed


def test_close_waits_for_superseded_socket():
    first = FakeRelaySocket()
    first.crash(asyncio.CancelledError())

    async def scenario():
        session = ConsumerSession(connector=SocketFactory(first, FakeRelaySocket()))
        session.connect()
        await spin()
        reconnected = session.connect()
        await session.close()
        return reconnected

    assert asyncio.run(scenario())
    assert first.closed


def test_fetch_current_summoner():
    http = FakeGetSession(FakeGetResponse(200, {"gameName": "Faker", "tagLine": "KR1", "summonerLevel": 500}))
    session = ConsumerSession("ws://127.0.0.1:3001/ws")

    summoner = asyncio.run(session.fetch_current_summoner(http))

    assert http.urls == ["http://127.0.0.1:3001/api/lcu/summoner/current"]
    assert summoner.name == "Faker#KR1"
    assert summoner.summonerLevel == 500


def test_fetch_current_summoner_not_connected():
    http = FakeGetSession(FakeGetResponse(404, {"error": "LCU not connected"}))

    with pytest.raises(NotConnected):
        asyncio.run(ConsumerSession().fetch_current_summoner(http))


def test_fetch_current_summoner_relays_lcu_error():
    body = {"error": "LCU request failed", "lcuStatus": 500, "lcuData": {"message": "oops"}}
    http = FakeGetSession(FakeGetResponse(500, body))

    with pytest.raises(ProxyError) as excinfo:
        asyncio.run(ConsumerSession().fetch_current_summoner(http))

    assert excinfo.value.status == 500
    assert excinfo.value.data == {"message": "oops"}


def test_fetch_current_summoner_relay_unreachable():
    http = FakeGetSession(aiohttp.ClientConnectionError("refused"))

    with pytest.raises(ProxyTransportFailure):
        asyncio.run(ConsumerSession().fetch_current_summoner(http))


def test_fetch_current_summoner_non_json_body():
    http = FakeGetSession(FakeGetResponse(502, "Bad Gateway"))

    with pytest.raises(ProxyError) as excinfo:
        asyncio.run(ConsumerSession().fetch_current_summoner(http))

    assert excinfo.value.status == 502
    assert excinfo.value.data == "Bad Gateway"


def test_fetch_current_summoner_rejects_non_object_body():
    http = FakeGetSession(FakeGetResponse(200, "en_US"))

    with pytest.raises(ProxyError) as excinfo:
        asyncio.run(ConsumerSession().fetch_current_summoner(http))

    assert excinfo.value.status == 200


@pytest.mark.parametrize(
    "url, expected",
    [
        ("ws://127.0.0.1:3001/ws", "http://127.0.0.1:3001"),
        ("wss://relay.local/ws", "https://relay.local"),
        ("ws://localhost:3001/", "http://localhost:3001"),
    ],
)
def test_http_base_for(url, expected):
    assert _http_base_for(url) == expected
