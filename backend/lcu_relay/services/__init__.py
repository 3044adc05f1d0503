from .broadcaster import Broadcaster, Consumer
from .relay import RelaySession, create_relay

__all__ = ["Broadcaster", "Consumer", "RelaySession", "create_relay"]
