"""
Error taxonomy for the LCU relay
Discovery and frame parsing errors are recovered inside their components;
the rest surface as disconnect notifications or HTTP error responses
"""

from typing import Any, Optional


class RelayError(Exception):
    """Base class for all relay errors"""


class CredentialsNotFound(RelayError):
    """Lockfile is absent (the game client is simply not running)"""


class CredentialsMalformed(RelayError):
    """Lockfile exists but its contents cannot be parsed"""


class UpstreamConnectFailure(RelayError):
    """Opening the upstream event socket failed"""


class MalformedUpstreamFrame(RelayError):
    """An inbound upstream frame did not match the event shape"""


class DownstreamDeliveryFailure(RelayError):
    """Sending to one downstream consumer failed"""


class NotConnected(RelayError):
    """No credentials are available for a proxy call"""


class ProxyError(RelayError):
    """Upstream REST call returned an error status"""

    def __init__(self, status: int, data: Any = None, message: Optional[str] = None):
        self.status = status
        self.data = data
        super().__init__(message or f"LCU request failed with status {status}")


class UpstreamAuthRejected(ProxyError):
    """Upstream answered 401/403; cached credentials are stale"""


class ProxyTransportFailure(RelayError):
    """Upstream REST call produced no response at all"""
