"""
Relay session
Wires credential discovery, the upstream event socket, downstream fan-out
and the REST proxy together, and drives them with a periodic tick
"""

import asyncio
from contextlib import suppress
from typing import Any, Dict, Optional

import aiohttp
from loguru import logger

from ..config import RelaySettings
from ..credentials import CredentialChange, CredentialLocator, CredentialWatcher
from ..lcu import CredentialsChanged, ProxyGateway, Tick, UpstreamSession, create_session, open_event_socket
from ..lcu.upstream import Connector
from ..models import Credentials
from .broadcaster import Broadcaster


class RelaySession:
    """Owns every piece of relay state for the lifetime of the process"""

    def __init__(
        self,
        settings: Optional[RelaySettings] = None,
        locator: Optional[CredentialLocator] = None,
        connector: Optional[Connector] = None,
        http_session: Optional[aiohttp.ClientSession] = None,
    ):
        """
        Initialize relay session

        Args:
            settings: relay settings (defaults used when omitted)
            locator: lockfile reader (defaults to the platform lockfile)
            connector: opens the upstream event socket (defaults to aiohttp ws_connect)
            http_session: shared client session for upstream HTTP/WebSocket traffic
        """
        self.settings = settings or RelaySettings()
        self.locator = locator or CredentialLocator(self.settings.lockfile_path)
        self.watcher = CredentialWatcher(self.locator, interval=self.settings.poll_interval)
        self.broadcaster = Broadcaster()
        self.upstream = UpstreamSession(connector or self._open_event_socket, listener=self.broadcaster)

        self._http = http_session
        self._owns_http = http_session is None
        self.gateway: Optional[ProxyGateway] = None

        self._tick_task: Optional[asyncio.Task] = None
        self.running = False

    async def start(self):
        if self.running:
            return

        if self._http is None:
            self._http = create_session()
        self.gateway = ProxyGateway(
            self._http,
            self.locator,
            upstream=self.upstream,
            timeout=self.settings.proxy_timeout,
        )

        self.upstream.start()
        self._start_ticks()
        self.running = True
        logger.info(f"Relay session started (lockfile: {self.locator.lockfile_path}, "
                    f"interval: {self.settings.poll_interval}s)")

    async def stop(self):
        if not self.running:
            return

        await self._stop_ticks()
        await self.upstream.stop()
        await self.broadcaster.close()

        if self._owns_http and self._http is not None:
            await self._http.close()
            self._http = None

        self.running = False
        logger.info("Relay session stopped")

    async def restart_ticks(self):
        """Recreate the periodic tick task"""
        await self._stop_ticks()
        self._start_ticks()

    async def tick(self) -> CredentialChange:
        """One credential poll, handed to the upstream session"""
        change = await self.watcher.poll()
        self._post_credentials(change, self.watcher.current)
        return change

    def _post_credentials(self, change: CredentialChange, credentials: Optional[Credentials]):
        if change == CredentialChange.UNCHANGED:
            self.upstream.post(Tick(credentials))
        else:
            self.upstream.post(CredentialsChanged(credentials))

    def _start_ticks(self):
        self._tick_task = asyncio.create_task(self._tick_loop(), name="lcu-ticks")

    async def _stop_ticks(self):
        if self._tick_task is not None:
            self._tick_task.cancel()
            with suppress(asyncio.CancelledError):
                await self._tick_task
            self._tick_task = None

    async def _tick_loop(self):
        async for change, credentials in self.watcher.watch():
            try:
                self._post_credentials(change, credentials)
            except Exception:
                logger.exception("Error during credential tick")

    async def _open_event_socket(self, credentials: Credentials) -> aiohttp.ClientWebSocketResponse:
        return await open_event_socket(self._http, credentials)

    def status(self) -> Dict[str, Any]:
        return {
            "running": self.running,
            "upstream": self.upstream.state.value,
            "port": self.upstream.port,
            "consumers": self.broadcaster.consumer_count,
        }


async def create_relay(settings: Optional[RelaySettings] = None, **kwargs) -> RelaySession:
    """Factory function to create and start a relay session"""
    relay = RelaySession(settings=settings, **kwargs)
    await relay.start()
    return relay
