"""
Pydantic models for LCU credentials, events and client state
Represents everything the relay and its consumers pass around
"""

import base64
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, computed_field

LCU_HOST = "127.0.0.1"
LCU_USERNAME = "riot"


class Credentials(BaseModel):
    """Connection credentials parsed from the lockfile"""

    model_config = ConfigDict(frozen=True)

    port: str
    token: str

    @computed_field
    @property
    def base_url(self) -> str:
        return f"https://{LCU_HOST}:{self.port}"

    @computed_field
    @property
    def auth_header(self) -> str:
        raw = f"{LCU_USERNAME}:{self.token}".encode("utf-8")
        return "Basic " + base64.b64encode(raw).decode("ascii")

    @property
    def websocket_url(self) -> str:
        return f"wss://{LCU_HOST}:{self.port}"

    def __repr__(self) -> str:
        # Token stays out of logs
        return f"Credentials(port={self.port!r})"

    __str__ = __repr__


class EventKind(str, Enum):
    """LCU event types"""
    CREATE = "Create"
    UPDATE = "Update"
    DELETE = "Delete"


class NormalizedEvent(BaseModel):
    """One LCU event, stripped of the WAMP envelope"""

    model_config = ConfigDict(frozen=True)

    topic: str = Field(..., description="LCU resource uri, e.g. /lol-gameflow/v1/gameflow-phase")
    kind: EventKind
    payload: Any = None


class UpstreamState(str, Enum):
    """Upstream socket lifecycle"""
    DISCONNECTED = "Disconnected"
    CONNECTING = "Connecting"
    OPEN = "Open"


class GameflowPhase(str, Enum):
    """Known gameflow phases (the client may report others)"""
    NONE = "None"
    LOBBY = "Lobby"
    MATCHMAKING = "Matchmaking"
    CHECKED_INTO_TOURNAMENT = "CheckedIntoTournament"
    READY_CHECK = "ReadyCheck"
    CHAMP_SELECT = "ChampSelect"
    GAME_START = "GameStart"
    FAILED_TO_LAUNCH = "FailedToLaunch"
    IN_PROGRESS = "InProgress"
    RECONNECT = "Reconnect"
    WAITING_FOR_STATS = "WaitingForStats"
    PRE_END_OF_GAME = "PreEndOfGame"
    END_OF_GAME = "EndOfGame"
    TERMINATED_IN_ERROR = "TerminatedInError"


class _LcuPayload(BaseModel):
    """LCU payloads keep whatever fields the client sends"""
    model_config = ConfigDict(extra="allow", populate_by_name=True)


class ChampSelectAction(_LcuPayload):
    id: int = 0
    actorCellId: int = -1
    championId: int = 0
    completed: bool = False
    isAllyAction: bool = False
    isInProgress: bool = False
    pickTurn: int = 0
    type: str = ""


class ChampSelectTimer(_LcuPayload):
    adjustedTimeLeftInPhase: float = 0
    internalNowInEpochMs: Optional[int] = None
    isInfinite: bool = False
    phase: str = ""
    totalTimeInPhase: float = 0


class TeamMember(_LcuPayload):
    cellId: int = -1
    assignedPosition: str = ""
    championId: int = 0
    championPickIntent: int = 0
    summonerId: int = 0
    spell1Id: int = 0
    spell2Id: int = 0
    team: int = 0


class Bans(_LcuPayload):
    myTeamBans: List[int] = []
    theirTeamBans: List[int] = []
    numBans: int = 0


class ChampSelectSession(_LcuPayload):
    """Snapshot of /lol-champ-select/v1/session"""
    actions: List[List[ChampSelectAction]] = []
    bans: Bans = Field(default_factory=Bans)
    localPlayerCellId: int = -1
    myTeam: List[TeamMember] = []
    theirTeam: List[TeamMember] = []
    timer: ChampSelectTimer = Field(default_factory=ChampSelectTimer)
    isSpectating: bool = False
    isCustomGame: bool = False

    def in_progress_actions(self) -> List[ChampSelectAction]:
        """Actions currently waiting on a player"""
        return [a for turn in self.actions for a in turn if a.isInProgress]


class SummonerInfo(_LcuPayload):
    """Subset of /lol-summoner/v1/current-summoner"""
    summonerId: int = 0
    summonerLevel: int = 0
    profileIconId: int = 0
    displayName: str = ""
    gameName: str = ""
    tagLine: str = ""
    puuid: str = ""

    @property
    def name(self) -> str:
        if self.gameName:
            return f"{self.gameName}#{self.tagLine}" if self.tagLine else self.gameName
        return self.displayName


class LcuStatus(BaseModel):
    """Consumer-side view of relay and LCU connectivity"""
    ws_connected: bool = False
    connected: bool = False
    loading: bool = False
    error: Optional[str] = None
    port: Optional[str] = None


class ProxyResponse(BaseModel):
    """Upstream REST response relayed verbatim"""
    status: int
    body: Any = None
    headers: Dict[str, str] = {}
