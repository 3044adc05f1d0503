"""
Transport helpers for the League client's local API
The client uses a self-signed certificate, so verification is disabled
"""

import ssl
from typing import Dict

import aiohttp

from ..models import Credentials


def insecure_ssl_context() -> ssl.SSLContext:
    """SSL context that accepts the client's self-signed certificate"""
    ssl_context = ssl.create_default_context()
    ssl_context.check_hostname = False
    ssl_context.verify_mode = ssl.CERT_NONE
    return ssl_context


def auth_headers(credentials: Credentials) -> Dict[str, str]:
    return {
        "Authorization": credentials.auth_header,
        "Accept": "application/json",
    }


def create_session() -> aiohttp.ClientSession:
    """Client session bound to the insecure SSL context"""
    connector = aiohttp.TCPConnector(ssl=insecure_ssl_context())
    return aiohttp.ClientSession(connector=connector)


async def open_event_socket(session: aiohttp.ClientSession, credentials: Credentials) -> aiohttp.ClientWebSocketResponse:
    """Open the client's event WebSocket (wss://127.0.0.1:{port})"""
    return await session.ws_connect(
        credentials.websocket_url,
        headers=auth_headers(credentials),
        heartbeat=None,
        max_msg_size=0,
    )
