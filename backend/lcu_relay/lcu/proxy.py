"""
REST proxy to the League client's HTTPS API
One-shot calls, no retries: upstream errors are relayed to the caller
"""

import asyncio
import json
from typing import Any, Optional

import aiohttp
from loguru import logger

from ..credentials import CredentialLocator
from ..errors import NotConnected, ProxyError, ProxyTransportFailure, UpstreamAuthRejected
from ..models import Credentials, ProxyResponse
from .transport import auth_headers
from .upstream import UpstreamSession

AUTH_REJECTED_STATUSES = (401, 403)


class ProxyGateway:
    """Forwards requests to https://127.0.0.1:{port} with the client's credentials"""

    def __init__(
        self,
        session: aiohttp.ClientSession,
        locator: CredentialLocator,
        upstream: Optional[UpstreamSession] = None,
        timeout: float = 10.0,
    ):
        self.session = session
        self.locator = locator
        self.upstream = upstream
        self.timeout = timeout

    async def resolve_credentials(self) -> Credentials:
        """
        Cached upstream credentials, else a fresh lockfile read

        Raises:
            NotConnected: client not running
        """
        if self.upstream is not None and self.upstream.credentials is not None:
            return self.upstream.credentials

        credentials = await self.locator.locate()
        if credentials is None:
            raise NotConnected("LCU not connected")
        return credentials

    async def forward(self, method: str, path: str, body: Any = None) -> ProxyResponse:
        """
        Forward one request and return the upstream response

        Raises:
            NotConnected: no credentials
            UpstreamAuthRejected: upstream answered 401/403 (credentials dropped)
            ProxyError: any other upstream error status
            ProxyTransportFailure: no response at all
        """
        credentials = await self.resolve_credentials()

        if not path.startswith("/"):
            path = "/" + path
        url = f"{credentials.base_url}{path}"

        logger.debug(f"LCU proxy {method.upper()} {path}")

        try:
            async with self.session.request(
                method.upper(),
                url,
                headers=auth_headers(credentials),
                json=body,
                timeout=aiohttp.ClientTimeout(total=self.timeout),
            ) as response:
                status = response.status
                text = await response.text()
                content_type = response.headers.get("Content-Type", "")
        except aiohttp.ClientError as e:
            logger.error(f"LCU proxy transport error for {path}: {e}")
            raise ProxyTransportFailure(str(e)) from e
        except asyncio.TimeoutError as e:
            logger.error(f"LCU proxy timed out for {path}")
            raise ProxyTransportFailure("LCU request timed out") from e

        data = _decode_body(text)

        if status in AUTH_REJECTED_STATUSES:
            logger.warning(f"LCU rejected credentials ({status}) for {path}")
            if self.upstream is not None:
                await self.upstream.invalidate(f"LCU rejected credentials ({status})")
            raise UpstreamAuthRejected(status, data)

        if status >= 400:
            logger.warning(f"LCU returned {status} for {path}")
            raise ProxyError(status, data)

        headers = {"Content-Type": content_type} if content_type else {}
        return ProxyResponse(status=status, body=data, headers=headers)


def _decode_body(text: str) -> Any:
    if not text:
        return None
    try:
        return json.loads(text)
    except ValueError:
        return text
