from .session import DEFAULT_RELAY_URL, ConsumerSession
from .state import ConsumerState, LcuStateStore

__all__ = ["DEFAULT_RELAY_URL", "ConsumerSession", "ConsumerState", "LcuStateStore"]
