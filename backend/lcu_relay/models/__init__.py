from .lcu import (
    Bans,
    ChampSelectAction,
    ChampSelectSession,
    ChampSelectTimer,
    Credentials,
    EventKind,
    GameflowPhase,
    LcuStatus,
    NormalizedEvent,
    ProxyResponse,
    SummonerInfo,
    TeamMember,
    UpstreamState,
)
from .messages import (
    DownstreamMessage,
    LcuConnect,
    LcuConnectError,
    LcuDisconnect,
    LcuEvent,
    dump_message,
    parse_message,
)

__all__ = [
    "Bans",
    "ChampSelectAction",
    "ChampSelectSession",
    "ChampSelectTimer",
    "Credentials",
    "DownstreamMessage",
    "EventKind",
    "GameflowPhase",
    "LcuConnect",
    "LcuConnectError",
    "LcuDisconnect",
    "LcuEvent",
    "LcuStatus",
    "NormalizedEvent",
    "ProxyResponse",
    "SummonerInfo",
    "TeamMember",
    "UpstreamState",
    "dump_message",
    "parse_message",
]
