"""
Upstream session with the League client's event socket
Keeps exactly one socket per set of credentials and turns socket
lifecycle into connect/disconnect notifications

Events are processed one at a time by a single runner task:
  Tick / CredentialsChanged -> reconcile socket with the latest credentials
  SocketOpened              -> subscribe, announce connect
  FrameReceived             -> decode and forward
  SocketClosed / Errored    -> tear down, announce disconnect
  Invalidate                -> drop credentials (auth rejected upstream)
"""

import asyncio
import itertools
from contextlib import suppress
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional, Protocol, Union

import aiohttp
from loguru import logger

from ..errors import UpstreamConnectFailure
from ..models import Credentials, NormalizedEvent, UpstreamState
from .protocol import SUBSCRIBED_TOPICS, parse_frame, subscribe_frame

Connector = Callable[[Credentials], Awaitable[Any]]


class UpstreamListener(Protocol):
    """Receives upstream notifications (implemented by the Broadcaster)"""

    def on_connect(self, port: str) -> None: ...

    def on_disconnect(self, error: Optional[str]) -> None: ...

    def on_connect_error(self, error: str) -> None: ...

    def on_event(self, event: NormalizedEvent) -> None: ...


class UpstreamSocket:
    """One connection attempt and, once open, its reader task"""

    _ids = itertools.count(1)

    def __init__(self, credentials: Credentials):
        self.id = next(self._ids)
        self.credentials = credentials
        self.ws: Any = None
        self.reader: Optional[asyncio.Task] = None
        self.detached = False

    @property
    def healthy(self) -> bool:
        return self.ws is not None and not self.ws.closed

    def detach(self):
        """Stop reacting to this socket's callbacks"""
        self.detached = True
        if self.reader is not None and not self.reader.done():
            self.reader.cancel()

    async def close(self):
        if self.ws is not None and not self.ws.closed:
            try:
                await self.ws.close()
            except Exception as e:
                logger.debug(f"Error closing upstream socket #{self.id}: {e}")

    def __repr__(self) -> str:
        return f"UpstreamSocket(#{self.id}, port={self.credentials.port})"


@dataclass(frozen=True)
class Tick:
    credentials: Optional[Credentials]


@dataclass(frozen=True)
class CredentialsChanged:
    credentials: Optional[Credentials]


@dataclass(frozen=True)
class SocketOpened:
    socket: UpstreamSocket


@dataclass(frozen=True)
class FrameReceived:
    socket: UpstreamSocket
    data: str


@dataclass(frozen=True)
class SocketClosed:
    socket: UpstreamSocket
    code: Optional[int] = None


@dataclass(frozen=True)
class SocketErrored:
    socket: UpstreamSocket
    error: BaseException


@dataclass(frozen=True)
class Invalidate:
    reason: str


UpstreamEvent = Union[Tick, CredentialsChanged, SocketOpened, FrameReceived, SocketClosed, SocketErrored, Invalidate]


class UpstreamSession:
    """Owns the single upstream socket, its credentials and its state"""

    def __init__(self, connector: Connector, listener: Optional[UpstreamListener] = None):
        """
        Args:
            connector: coroutine opening an event socket for given credentials
            listener: receives connect/disconnect/event notifications
        """
        self.connector = connector
        self.listener = listener

        self._state = UpstreamState.DISCONNECTED
        self._credentials: Optional[Credentials] = None
        self._socket: Optional[UpstreamSocket] = None

        # Guards against overlapping connection attempts
        self._connecting = False
        self._connect_task: Optional[asyncio.Task] = None

        # Last status announced to the listener
        self._announced_connected = False

        self._queue: Optional[asyncio.Queue] = None
        self._runner: Optional[asyncio.Task] = None

    # ------------------------------------------------------------------
    # Read-only snapshots
    # ------------------------------------------------------------------

    @property
    def state(self) -> UpstreamState:
        return self._state

    @property
    def credentials(self) -> Optional[Credentials]:
        return self._credentials

    @property
    def socket(self) -> Optional[UpstreamSocket]:
        return self._socket

    @property
    def connecting(self) -> bool:
        return self._connecting

    @property
    def is_connected(self) -> bool:
        return self._state == UpstreamState.OPEN

    @property
    def port(self) -> Optional[str]:
        if self._state == UpstreamState.OPEN and self._credentials:
            return self._credentials.port
        return None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self):
        if self._runner is not None and not self._runner.done():
            return
        self._queue = asyncio.Queue()
        self._runner = asyncio.create_task(self._run(), name="lcu-upstream")
        logger.debug("Upstream session started")

    async def stop(self):
        if self._runner is not None:
            self._runner.cancel()
            with suppress(asyncio.CancelledError):
                await self._runner
            self._runner = None
        await self._cancel_connect()
        await self._teardown()
        logger.debug("Upstream session stopped")

    def post(self, event: UpstreamEvent):
        """Queue an event for the runner task"""
        if self._queue is None:
            raise RuntimeError("UpstreamSession is not started")
        self._queue.put_nowait(event)

    async def drain(self):
        """Wait until every queued event has been processed"""
        await asyncio.sleep(0)
        if self._queue is not None:
            await self._queue.join()

    async def settle(self):
        """Wait until queued events and any in-flight connect are processed"""
        while True:
            await self.drain()
            task = self._connect_task
            if task is not None and not task.done():
                await asyncio.wait({task})
                continue
            await asyncio.sleep(0)
            if self._queue is None or self._queue.empty():
                return

    async def invalidate(self, reason: str = "credentials rejected"):
        """Drop cached credentials and close the socket, once queued events ahead of it are handled"""
        self.post(Invalidate(reason))
        await self.drain()

    async def _run(self):
        while True:
            event = await self._queue.get()
            try:
                await self.dispatch(event)
            except Exception:
                logger.exception(f"Error handling upstream event {type(event).__name__}")
            finally:
                self._queue.task_done()

    # ------------------------------------------------------------------
    # State machine
    # ------------------------------------------------------------------

    async def dispatch(self, event: UpstreamEvent):
        if isinstance(event, (Tick, CredentialsChanged)):
            await self._reconcile(event.credentials)

        elif isinstance(event, SocketOpened):
            await self._on_opened(event.socket)

        elif isinstance(event, FrameReceived):
            self._on_frame(event.socket, event.data)

        elif isinstance(event, SocketErrored):
            await self._on_lost(event.socket, event.error)

        elif isinstance(event, SocketClosed):
            await self._on_lost(event.socket, None, event.code)

        elif isinstance(event, Invalidate):
            await self._on_invalidate(event.reason)

        else:
            logger.error(f"Unknown upstream event: {event!r}")

    async def _reconcile(self, credentials: Optional[Credentials]):
        if self._connecting:
            if credentials is not None and credentials == self._credentials:
                logger.debug("Upstream connect already in flight")
                return
            logger.info("Credentials changed during connect, abandoning attempt")
            await self._cancel_connect()

        if credentials is None:
            if self._socket is not None or self._credentials is not None:
                logger.info("LCU credentials gone, closing upstream socket")
                await self._teardown()
            self._state = UpstreamState.DISCONNECTED
            self._announce_disconnect(None)
            return

        current = self._socket
        if current is not None and credentials == self._credentials and current.healthy:
            return

        if current is not None:
            if credentials != self._credentials:
                logger.info(f"LCU credentials changed, replacing {current!r}")
            else:
                logger.info(f"Upstream socket {current!r} no longer open, reconnecting")
            await self._teardown()
            self._announce_disconnect(None)

        self._begin_connect(credentials)

    def _begin_connect(self, credentials: Credentials):
        socket = UpstreamSocket(credentials)
        self._socket = socket
        self._credentials = credentials
        self._state = UpstreamState.CONNECTING
        self._connecting = True
        logger.info(f"Connecting to LCU event socket on port {credentials.port}")
        self._connect_task = asyncio.create_task(self._connect(socket), name=f"lcu-connect-{socket.id}")

    async def _connect(self, socket: UpstreamSocket):
        try:
            ws = await self.connector(socket.credentials)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            if not socket.detached:
                self.post(SocketErrored(socket, UpstreamConnectFailure(str(e) or type(e).__name__)))
            return

        socket.ws = ws
        if socket.detached:
            await socket.close()
            return
        self.post(SocketOpened(socket))

    async def _cancel_connect(self):
        task = self._connect_task
        self._connect_task = None
        self._connecting = False
        if task is not None and not task.done() and task is not asyncio.current_task():
            task.cancel()
            with suppress(asyncio.CancelledError):
                await task

    async def _teardown(self):
        """Forget the tracked socket; detach its handlers before closing it"""
        socket = self._socket
        self._socket = None
        self._credentials = None
        self._state = UpstreamState.DISCONNECTED
        if socket is not None:
            socket.detach()
            await socket.close()

    async def _on_opened(self, socket: UpstreamSocket):
        if socket is not self._socket:
            logger.debug(f"Discarding superseded {socket!r}")
            socket.detach()
            await socket.close()
            return

        self._connecting = False
        self._connect_task = None

        try:
            for topic in SUBSCRIBED_TOPICS:
                await socket.ws.send_json(subscribe_frame(topic))
        except Exception as e:
            logger.error(f"Failed to subscribe on {socket!r}: {e}")
            await self._on_lost(socket, UpstreamConnectFailure(f"subscribe failed: {e}"))
            return

        socket.reader = asyncio.create_task(self._read(socket), name=f"lcu-reader-{socket.id}")
        self._state = UpstreamState.OPEN
        logger.info(f"LCU event socket open on port {socket.credentials.port}")
        self._announce_connect(socket.credentials.port)

    async def _read(self, socket: UpstreamSocket):
        error: Optional[BaseException] = None
        try:
            async for msg in socket.ws:
                if socket.detached:
                    return
                if msg.type == aiohttp.WSMsgType.TEXT:
                    self.post(FrameReceived(socket, msg.data))
                elif msg.type == aiohttp.WSMsgType.ERROR:
                    error = socket.ws.exception() or UpstreamConnectFailure("socket error")
                    break
        except asyncio.CancelledError:
            raise
        except Exception as e:
            error = e

        if socket.detached:
            return
        if error is not None:
            self.post(SocketErrored(socket, error))
        self.post(SocketClosed(socket, getattr(socket.ws, "close_code", None)))

    def _on_frame(self, socket: UpstreamSocket, data: str):
        if socket is not self._socket or socket.detached:
            return
        event = parse_frame(data)
        if event is None:
            return
        logger.debug(f"LCU event: {event.kind.value} {event.topic}")
        if self.listener:
            self.listener.on_event(event)

    async def _on_lost(self, socket: UpstreamSocket, error: Optional[BaseException], code: Optional[int] = None):
        if socket is not self._socket:
            logger.debug(f"Ignoring stale callback from {socket!r}")
            return

        was_open = self._state == UpstreamState.OPEN
        self._connecting = False
        self._connect_task = None
        await self._teardown()

        if error is not None:
            logger.warning(f"Upstream socket {socket!r} error: {error}")
        else:
            logger.info(f"Upstream socket {socket!r} closed (code: {code})")

        if was_open:
            self._announce_disconnect(str(error) if error is not None else None)
        elif error is not None:
            self._announce_connect_error(str(error))

    async def _on_invalidate(self, reason: str):
        logger.warning(f"Invalidating LCU credentials: {reason}")
        await self._cancel_connect()
        await self._teardown()
        self._announce_disconnect(reason)

    # ------------------------------------------------------------------
    # Notifications
    # ------------------------------------------------------------------

    def _announce_connect(self, port: str):
        self._announced_connected = True
        if self.listener:
            self.listener.on_connect(port)

    def _announce_disconnect(self, error: Optional[str]):
        if not self._announced_connected:
            return
        self._announced_connected = False
        if self.listener:
            self.listener.on_disconnect(error)

    def _announce_connect_error(self, error: str):
        self._announced_connected = False
        if self.listener:
            self.listener.on_connect_error(error)
