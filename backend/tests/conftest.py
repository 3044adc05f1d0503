"""
Shared fakes for relay tests
Stand-ins for the client's event socket, the LCU REST API and downstream consumers
"""

import asyncio
import json
from types import SimpleNamespace
from typing import Any, List, Optional

import aiohttp
import pytest

from lcu_relay.credentials import CredentialLocator
from lcu_relay.models import Credentials

LOCKFILE_CONTENT = "LeagueClient:4242:12345:abcxyz:https"


async def spin(times: int = 10):
    """Let other tasks run"""
    for _ in range(times):
        await asyncio.sleep(0)


class FakeUpstreamSocket:
    """Mimics aiohttp.ClientWebSocketResponse"""

    def __init__(self):
        self.sent: List[Any] = []
        self.closed = False
        self.close_code: Optional[int] = None
        self._error: Optional[BaseException] = None
        self._inbox: asyncio.Queue = asyncio.Queue()

    async def send_json(self, data: Any):
        if self.closed:
            raise ConnectionResetError("socket closed")
        self.sent.append(data)

    async def close(self):
        if not self.closed:
            self.closed = True
            self.close_code = 1000
            self._inbox.put_nowait(None)

    def exception(self) -> Optional[BaseException]:
        return self._error

    def feed(self, frame: Any):
        data = frame if isinstance(frame, str) else json.dumps(frame)
        self._inbox.put_nowait(SimpleNamespace(type=aiohttp.WSMsgType.TEXT, data=data))

    def drop(self, code: int = 1006):
        """Remote side goes away"""
        self.closed = True
        self.close_code = code
        self._inbox.put_nowait(None)

    def fail(self, error: BaseException):
        self._error = error
        self._inbox.put_nowait(SimpleNamespace(type=aiohttp.WSMsgType.ERROR, data=None))

    def __aiter__(self):
        return self

    async def __anext__(self):
        msg = await self._inbox.get()
        if msg is None:
            raise StopAsyncIteration
        return msg


class FakeConnector:
    """Connector handing out FakeUpstreamSockets"""

    def __init__(self):
        self.calls: List[Credentials] = []
        self.sockets: List[FakeUpstreamSocket] = []
        self.fail_with: Optional[BaseException] = None
        self.hang = False

    async def __call__(self, credentials: Credentials) -> FakeUpstreamSocket:
        self.calls.append(credentials)
        if self.fail_with is not None:
            raise self.fail_with
        if self.hang:
            await asyncio.Event().wait()
        socket = FakeUpstreamSocket()
        self.sockets.append(socket)
        return socket

    @property
    def open_sockets(self) -> List[FakeUpstreamSocket]:
        return [s for s in self.sockets if not s.closed]

    @property
    def latest(self) -> FakeUpstreamSocket:
        return self.sockets[-1]


class RecordingListener:
    """UpstreamListener that keeps every notification"""

    def __init__(self):
        self.calls: List[tuple] = []

    def on_connect(self, port: str):
        self.calls.append(("connect", port))

    def on_disconnect(self, error: Optional[str]):
        self.calls.append(("disconnect", error))

    def on_connect_error(self, error: str):
        self.calls.append(("connect_error", error))

    def on_event(self, event):
        self.calls.append(("event", event))

    def kinds(self) -> List[str]:
        return [c[0] for c in self.calls]


class FakeConsumer:
    """Downstream consumer collecting JSON messages"""

    def __init__(self):
        self.messages: List[dict] = []

    async def send_json(self, data: Any):
        self.messages.append(data)

    def types(self) -> List[str]:
        return [m["type"] for m in self.messages]


class BrokenConsumer:
    """Consumer whose transport is already closed"""

    def __init__(self):
        self.attempts = 0

    async def send_json(self, data: Any):
        self.attempts += 1
        raise RuntimeError("Cannot call send once a close message has been sent")


class FakeResponse:
    def __init__(self, status: int, body: Any = None, content_type: str = "application/json"):
        self.status = status
        if body is None:
            self._text = ""
        elif isinstance(body, str):
            self._text = body
        else:
            self._text = json.dumps(body)
        self.headers = {"Content-Type": content_type}

    async def text(self) -> str:
        return self._text

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        return False


class FakeHttpSession:
    """Mimics aiohttp.ClientSession.request for the proxy"""

    def __init__(self, *responses: Any):
        self.responses = list(responses)
        self.requests: List[dict] = []

    def queue(self, *responses: Any):
        self.responses.extend(responses)

    def request(self, method: str, url: str, headers=None, json=None, timeout=None):
        self.requests.append({"method": method, "url": url, "headers": headers or {}, "json": json})
        response = self.responses.pop(0)
        if isinstance(response, BaseException):
            raise response
        return response

    async def close(self):
        pass


class CountingLocator(CredentialLocator):
    """Locator that counts lockfile reads"""

    def __init__(self, lockfile_path):
        super().__init__(lockfile_path)
        self.reads = 0

    async def locate(self):
        self.reads += 1
        return await super().locate()


@pytest.fixture
def lockfile(tmp_path):
    return tmp_path / "lockfile"


@pytest.fixture
def credentials() -> Credentials:
    return Credentials(port="12345", token="abcxyz")


@pytest.fixture
def rotated_credentials() -> Credentials:
    return Credentials(port="23456", token="defuvw")


class FakeRelaySocket:
    """Mimics a websockets client connection to the relay"""

    def __init__(self, *messages: Any):
        self.closed = False
        self.close_code: Optional[int] = None
        self._inbox: asyncio.Queue = asyncio.Queue()
        for message in messages:
            self.push(message)

    def push(self, message: Any):
        self._inbox.put_nowait(message if isinstance(message, str) else json.dumps(message))

    def finish(self, code: int = 1000):
        self.close_code = code
        self._inbox.put_nowait(None)

    def crash(self, error: BaseException):
        self._inbox.put_nowait(error)

    async def close(self):
        self.closed = True
        self._inbox.put_nowait(None)

    def __aiter__(self):
        return self

    async def __anext__(self):
        item = await self._inbox.get()
        if item is None:
            raise StopAsyncIteration
        if isinstance(item, BaseException):
            raise item
        return item


def write_lockfile(path, port: str = "12345", token: str = "abcxyz"):
    """Replace the lockfile in one step so pollers never see a partial write"""
    staging = path.with_suffix(".tmp")
    staging.write_text(f"LeagueClient:4242:{port}:{token}:https", encoding="utf-8")
    staging.replace(path)


async def wait_for(predicate, timeout: float = 2.0):
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not met in time")
        await asyncio.sleep(0.01)
