"""
LCU event socket protocol (WAMP 1.0 subset)
  - subscribe: [5, "OnJsonApiEvent_<resource>"]
  - event:     [8, "<eventName>", {"uri": ..., "eventType": ..., "data": ...}]
"""

import json
from typing import Any, List, Optional

from loguru import logger

from ..errors import MalformedUpstreamFrame
from ..models import EventKind, NormalizedEvent

OPCODE_SUBSCRIBE = 5
OPCODE_EVENT = 8

GAMEFLOW_PHASE_URI = "/lol-gameflow/v1/gameflow-phase"
CHAMP_SELECT_SESSION_URI = "/lol-champ-select/v1/session"
CURRENT_SUMMONER_PATH = "/lol-summoner/v1/current-summoner"


def topic_for(uri: str) -> str:
    """Event topic name for a resource uri"""
    return "OnJsonApiEvent" + uri.replace("/", "_")


SUBSCRIBED_TOPICS = (
    topic_for(GAMEFLOW_PHASE_URI),
    topic_for(CHAMP_SELECT_SESSION_URI),
)


def subscribe_frame(topic: str) -> List[Any]:
    return [OPCODE_SUBSCRIBE, topic]


def decode_frame(raw: str) -> NormalizedEvent:
    """
    Decode one inbound frame

    Raises:
        MalformedUpstreamFrame: not JSON, not an event, or missing fields
    """
    try:
        frame = json.loads(raw)
    except (TypeError, ValueError) as e:
        raise MalformedUpstreamFrame(f"not JSON: {e}") from e

    if not isinstance(frame, list) or len(frame) != 3:
        raise MalformedUpstreamFrame("expected [opcode, eventName, payload]")

    opcode, _, payload = frame
    if opcode != OPCODE_EVENT:
        raise MalformedUpstreamFrame(f"unhandled opcode {opcode!r}")

    if not isinstance(payload, dict):
        raise MalformedUpstreamFrame("payload is not an object")

    uri = payload.get("uri")
    if not isinstance(uri, str) or not uri:
        raise MalformedUpstreamFrame("payload has no uri")

    try:
        kind = EventKind(payload.get("eventType"))
    except ValueError as e:
        raise MalformedUpstreamFrame(f"unknown eventType {payload.get('eventType')!r}") from e

    return NormalizedEvent(topic=uri, kind=kind, payload=payload.get("data"))


def parse_frame(raw: str) -> Optional[NormalizedEvent]:
    """Decode a frame, logging and dropping anything malformed"""
    if not raw:
        # Subscribe acknowledgements arrive as empty frames
        return None
    try:
        return decode_frame(raw)
    except MalformedUpstreamFrame as e:
        logger.warning(f"Dropping upstream frame: {e}")
        return None
