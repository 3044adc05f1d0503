"""
League client (LCU) connectivity: event socket session, REST proxy, wire protocol
"""

from .protocol import (
    CHAMP_SELECT_SESSION_URI,
    CURRENT_SUMMONER_PATH,
    GAMEFLOW_PHASE_URI,
    SUBSCRIBED_TOPICS,
    decode_frame,
    parse_frame,
)
from .proxy import ProxyGateway
from .transport import create_session, insecure_ssl_context, open_event_socket
from .upstream import (
    CredentialsChanged,
    FrameReceived,
    Invalidate,
    SocketClosed,
    SocketErrored,
    SocketOpened,
    Tick,
    UpstreamListener,
    UpstreamSession,
    UpstreamSocket,
)

__all__ = [
    "CHAMP_SELECT_SESSION_URI",
    "CURRENT_SUMMONER_PATH",
    "GAMEFLOW_PHASE_URI",
    "SUBSCRIBED_TOPICS",
    "CredentialsChanged",
    "FrameReceived",
    "Invalidate",
    "ProxyGateway",
    "SocketClosed",
    "SocketErrored",
    "SocketOpened",
    "Tick",
    "UpstreamListener",
    "UpstreamSession",
    "UpstreamSocket",
    "create_session",
    "decode_frame",
    "insecure_ssl_context",
    "open_event_socket",
    "parse_frame",
]
