"""
Consumer-side state reconciliation
Folds the relay's message stream into connection status, gameflow phase
and the champion select snapshot
"""

from enum import Enum
from typing import Any, Callable, Optional, Union

from loguru import logger
from pydantic import ValidationError

from ..lcu.protocol import CHAMP_SELECT_SESSION_URI, GAMEFLOW_PHASE_URI
from ..models import (
    ChampSelectSession,
    DownstreamMessage,
    EventKind,
    GameflowPhase,
    LcuConnect,
    LcuConnectError,
    LcuDisconnect,
    LcuEvent,
    LcuStatus,
    NormalizedEvent,
    parse_message,
)

Callback = Callable[[], Any]


class ConsumerState(str, Enum):
    """Where a consumer stands with the relay and, through it, the LCU"""
    WS_DISCONNECTED = "wsDisconnected"
    WS_CONNECTING = "wsConnecting"
    WS_OPEN_LCU_UNKNOWN = "wsOpen-lcuUnknown"
    WS_OPEN_LCU_CONNECTED = "wsOpen-lcuConnected"
    WS_OPEN_LCU_DISCONNECTED = "wsOpen-lcuDisconnected"


class LcuStateStore:
    """State a consumer derives from relay messages"""

    def __init__(self, on_lcu_connect: Optional[Callback] = None, on_lcu_disconnect: Optional[Callback] = None):
        self.on_lcu_connect = on_lcu_connect
        self.on_lcu_disconnect = on_lcu_disconnect

        self.status = LcuStatus()
        self.gameflow_phase: Optional[str] = None
        self.champ_select: Optional[ChampSelectSession] = None
        self._lcu_known = False

    @property
    def state(self) -> ConsumerState:
        if not self.status.ws_connected:
            return ConsumerState.WS_CONNECTING if self.status.loading else ConsumerState.WS_DISCONNECTED
        if not self._lcu_known:
            return ConsumerState.WS_OPEN_LCU_UNKNOWN
        if self.status.connected:
            return ConsumerState.WS_OPEN_LCU_CONNECTED
        return ConsumerState.WS_OPEN_LCU_DISCONNECTED

    @property
    def is_connected_to_lcu(self) -> bool:
        return self.status.ws_connected and self.status.connected

    # ------------------------------------------------------------------
    # Socket lifecycle
    # ------------------------------------------------------------------

    def begin_connect(self):
        self.status = LcuStatus(loading=True)
        self._lcu_known = False
        self._clear_game_state()

    def socket_opened(self):
        # LCU status stays unknown until the relay's first status message
        self.status = self.status.model_copy(update={"ws_connected": True, "loading": True, "error": None})

    def socket_errored(self, error: str):
        self.status = self.status.model_copy(update={
            "error": self.status.error or f"WebSocket connection error: {error}",
            "loading": False,
        })

    def socket_closed(self, clean: bool, code: Optional[int] = None):
        error = None if clean else f"WebSocket closed unexpectedly (Code: {code})"
        self.status = LcuStatus(error=error)
        self._lcu_known = False
        self._clear_game_state()
        self._fire(self.on_lcu_disconnect)

    # ------------------------------------------------------------------
    # Messages
    # ------------------------------------------------------------------

    def handle_raw(self, raw: Union[str, bytes]):
        """Parse and apply one raw message; unknown or malformed ones are ignored"""
        try:
            message = parse_message(raw)
        except ValidationError:
            logger.warning(f"Ignoring unrecognized relay message: {str(raw)[:200]}")
            return
        self.apply(message)

    def apply(self, message: DownstreamMessage):
        if isinstance(message, LcuConnect):
            self._lcu_known = True
            self.status = self.status.model_copy(update={
                "connected": True,
                "ws_connected": True,
                "loading": False,
                "error": None,
                "port": message.data.port,
            })
            logger.info(f"LCU connected (port: {message.data.port})")
            self._fire(self.on_lcu_connect)

        elif isinstance(message, LcuDisconnect):
            error = f"LCU Error: {message.error}" if message.error else "LCU Disconnected"
            self._mark_lcu_disconnected(error)
            logger.info(f"LCU disconnected{f' ({message.error})' if message.error else ''}")

        elif isinstance(message, LcuConnectError):
            self._mark_lcu_disconnected(message.error)
            logger.warning(f"Relay could not reach LCU: {message.error}")

        elif isinstance(message, LcuEvent):
            self.apply_event(message.to_event())

        else:
            logger.warning(f"Unhandled relay message: {message!r}")

    def apply_event(self, event: NormalizedEvent):
        if event.topic == GAMEFLOW_PHASE_URI:
            phase = None if event.kind == EventKind.DELETE else event.payload
            self._set_phase(phase if phase is None else str(phase))

        elif event.topic == CHAMP_SELECT_SESSION_URI:
            self._set_champ_select(event)

        else:
            logger.debug(f"Ignoring event for {event.topic}")

    def _set_phase(self, phase: Optional[str]):
        if phase == self.gameflow_phase:
            return
        logger.info(f"Gameflow phase updated: {phase}")
        self.gameflow_phase = phase
        if phase != GameflowPhase.CHAMP_SELECT.value:
            self.champ_select = None

    def _set_champ_select(self, event: NormalizedEvent):
        if event.kind == EventKind.DELETE or event.payload is None:
            self.champ_select = None
            return

        phase = self.gameflow_phase
        if phase is not None and phase != GameflowPhase.CHAMP_SELECT.value:
            logger.debug(f"Ignoring champ select snapshot during phase {phase}")
            return

        try:
            self.champ_select = ChampSelectSession.model_validate(event.payload)
        except ValidationError as e:
            logger.warning(f"Ignoring malformed champ select session: {e}")

    def _mark_lcu_disconnected(self, error: Optional[str]):
        self._lcu_known = True
        self.status = self.status.model_copy(update={
            "connected": False,
            "ws_connected": True,
            "loading": False,
            "error": error,
            "port": None,
        })
        self._clear_game_state()
        self._fire(self.on_lcu_disconnect)

    def _clear_game_state(self):
        self.gameflow_phase = None
        self.champ_select = None

    @staticmethod
    def _fire(callback: Optional[Callback]):
        if callback is None:
            return
        try:
            callback()
        except Exception as e:
            logger.error(f"Error in consumer callback: {e}")
