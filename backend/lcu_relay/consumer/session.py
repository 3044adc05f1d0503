"""
Consumer WebSocket session
Connects to the relay's /ws endpoint and keeps an LcuStateStore current.
Reconnection is manual: callers decide when to call connect() again.
"""

import asyncio
import json
from typing import Any, Awaitable, Callable, Optional, Set

import aiohttp
import websockets
from websockets.exceptions import ConnectionClosedError
from loguru import logger

from ..errors import NotConnected, ProxyError, ProxyTransportFailure
from ..models import ChampSelectSession, LcuStatus, SummonerInfo
from .state import Callback, ConsumerState, LcuStateStore

DEFAULT_RELAY_URL = "ws://127.0.0.1:3001/ws"

SocketConnector = Callable[[str], Awaitable[Any]]


class _TrackedSocket:
    """One connection attempt; detached once superseded"""

    def __init__(self):
        self.ws: Any = None
        self.task: Optional[asyncio.Task] = None
        self.detached = False

    @property
    def alive(self) -> bool:
        """Connecting or open"""
        return self.task is not None and not self.task.done() and not self.detached

    def detach(self):
        self.detached = True
        if self.task is not None and not self.task.done() and self.task is not asyncio.current_task():
            self.task.cancel()

    async def close(self):
        if self.ws is not None:
            try:
                await self.ws.close()
            except Exception as e:
                logger.debug(f"Error closing relay socket: {e}")


class ConsumerSession:
    """Client of the relay's downstream WebSocket"""

    def __init__(
        self,
        url: str = DEFAULT_RELAY_URL,
        connector: Optional[SocketConnector] = None,
        on_lcu_connect: Optional[Callback] = None,
        on_lcu_disconnect: Optional[Callback] = None,
        http_base: Optional[str] = None,
    ):
        """
        Args:
            url: relay WebSocket endpoint
            connector: opens a socket for a url (defaults to websockets.connect)
            on_lcu_connect: called when the relay reports the LCU connected
            on_lcu_disconnect: called when the LCU or the relay socket goes away
            http_base: relay HTTP base url (derived from url when omitted)
        """
        self.url = url
        self.connector = connector or websockets.connect
        self.store = LcuStateStore(on_lcu_connect=on_lcu_connect, on_lcu_disconnect=on_lcu_disconnect)
        self.http_base = http_base or _http_base_for(url)
        self._socket: Optional[_TrackedSocket] = None
        # Closes of superseded sockets still in flight
        self._closing: Set[asyncio.Task] = set()

    @property
    def state(self) -> ConsumerState:
        return self.store.state

    @property
    def status(self) -> LcuStatus:
        return self.store.status

    @property
    def gameflow_phase(self) -> Optional[str]:
        return self.store.gameflow_phase

    @property
    def champ_select(self) -> Optional[ChampSelectSession]:
        return self.store.champ_select

    @property
    def is_connected_to_lcu(self) -> bool:
        return self.store.is_connected_to_lcu

    def connect(self) -> bool:
        """
        Open a socket to the relay unless one is already connecting or open

        Returns:
            True if a new connection attempt was started
        """
        previous = self._socket
        if previous is not None and previous.alive:
            logger.info("Relay WebSocket already connecting or open")
            return False

        if previous is not None:
            logger.info("Closing previous relay WebSocket before reconnecting")
            previous.detach()
            closing = asyncio.create_task(previous.close())
            self._closing.add(closing)
            closing.add_done_callback(self._closing.discard)
            self._socket = None

        logger.info(f"Connecting to relay at {self.url}")
        self.store.begin_connect()

        tracked = _TrackedSocket()
        self._socket = tracked
        tracked.task = asyncio.create_task(self._run(tracked), name="relay-consumer")
        return True

    async def close(self):
        """Close the current socket without touching derived state"""
        tracked = self._socket
        self._socket = None
        if tracked is not None:
            tracked.detach()
            await tracked.close()
        if self._closing:
            await asyncio.gather(*self._closing)

    async def wait_closed(self):
        """Wait for the current socket's reader to finish"""
        tracked = self._socket
        if tracked is not None and tracked.task is not None:
            await asyncio.wait({tracked.task})

    async def _run(self, tracked: _TrackedSocket):
        try:
            ws = await self.connector(self.url)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.error(f"Relay WebSocket error: {e}")
            if not tracked.detached:
                self.store.socket_errored(str(e))
                self._finish(tracked, clean=False, code=1006)
            return

        tracked.ws = ws
        if tracked.detached:
            await tracked.close()
            return

        logger.info("Relay WebSocket opened")
        self.store.socket_opened()

        clean, code = True, None
        try:
            async for raw in ws:
                if tracked.detached:
                    return
                self.store.handle_raw(raw)
            code = getattr(ws, "close_code", None)
        except ConnectionClosedError as e:
            clean = False
            code = e.rcvd.code if e.rcvd is not None else 1006
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.error(f"Relay WebSocket error: {e}")
            if tracked.detached:
                return
            self.store.socket_errored(str(e))
            clean, code = False, 1006

        if not tracked.detached:
            self._finish(tracked, clean=clean, code=code)

    def _finish(self, tracked: _TrackedSocket, clean: bool, code: Optional[int]):
        logger.info(f"Relay WebSocket closed. Code: {code}, Clean: {clean}")
        if self._socket is tracked:
            self._socket = None
        self.store.socket_closed(clean=clean, code=code)

    async def fetch_current_summoner(self, session: Optional[aiohttp.ClientSession] = None) -> SummonerInfo:
        """
        GET /api/lcu/summoner/current on the relay

        Raises:
            NotConnected: relay reports no LCU
            ProxyError: relay relayed an LCU error status
            ProxyTransportFailure: relay unreachable
        """
        url = f"{self.http_base}/api/lcu/summoner/current"
        owns_session = session is None
        session = session or aiohttp.ClientSession()
        try:
            async with session.get(url, timeout=aiohttp.ClientTimeout(total=10)) as response:
                text = await response.text()
                status = response.status
        except aiohttp.ClientError as e:
            raise ProxyTransportFailure(str(e)) from e
        finally:
            if owns_session:
                await session.close()

        try:
            data = json.loads(text) if text else None
        except ValueError:
            raise ProxyError(status, text, message="Relay returned a non-JSON body")

        if status == 200:
            if not isinstance(data, dict):
                raise ProxyError(status, data, message="Unexpected summoner response")
            return SummonerInfo.model_validate(data)

        error = data.get("error") if isinstance(data, dict) else None
        if status == 404:
            raise NotConnected(error or "LCU not connected")
        lcu_data = data.get("lcuData") if isinstance(data, dict) else data
        raise ProxyError(status, lcu_data, message=error)


def _http_base_for(url: str) -> str:
    base = url.replace("wss://", "https://", 1).replace("ws://", "http://", 1)
    if base.endswith("/ws"):
        base = base[: -len("/ws")]
    return base.rstrip("/")
