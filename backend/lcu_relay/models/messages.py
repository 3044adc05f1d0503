"""
Downstream wire format (relay -> consumer)
Client receives:
  - {"type": "LcuConnect", "data": {"port": "..."}}
  - {"type": "LcuDisconnect", "error": "..."?}
  - {"type": "LcuConnectError", "error": "..."}
  - {"type": "LcuEvent", "data": {"uri": "...", "eventType": "...", "data": ...}}
"""

from typing import Annotated, Any, Dict, Literal, Optional, Union

from pydantic import BaseModel, Field, TypeAdapter

from .lcu import EventKind, NormalizedEvent


class ConnectData(BaseModel):
    port: Optional[str] = None


class LcuConnect(BaseModel):
    type: Literal["LcuConnect"] = "LcuConnect"
    data: ConnectData = Field(default_factory=ConnectData)


class LcuDisconnect(BaseModel):
    type: Literal["LcuDisconnect"] = "LcuDisconnect"
    error: Optional[str] = None


class LcuConnectError(BaseModel):
    type: Literal["LcuConnectError"] = "LcuConnectError"
    error: str


class EventData(BaseModel):
    uri: str
    eventType: EventKind
    data: Any = None


class LcuEvent(BaseModel):
    type: Literal["LcuEvent"] = "LcuEvent"
    data: EventData

    @classmethod
    def from_event(cls, event: NormalizedEvent) -> "LcuEvent":
        return cls(data=EventData(uri=event.topic, eventType=event.kind, data=event.payload))

    def to_event(self) -> NormalizedEvent:
        return NormalizedEvent(topic=self.data.uri, kind=self.data.eventType, payload=self.data.data)


DownstreamMessage = Annotated[
    Union[LcuConnect, LcuDisconnect, LcuConnectError, LcuEvent],
    Field(discriminator="type"),
]

_adapter: TypeAdapter = TypeAdapter(DownstreamMessage)


def parse_message(raw: Union[str, bytes, Dict[str, Any]]) -> DownstreamMessage:
    """
    Parse one downstream message

    Raises:
        pydantic.ValidationError: unknown type or malformed body
    """
    if isinstance(raw, dict):
        return _adapter.validate_python(raw)
    return _adapter.validate_json(raw)


def dump_message(message: BaseModel) -> Dict[str, Any]:
    """JSON-ready dict, optional error omitted when absent"""
    data = message.model_dump(mode="json")
    if "error" in data and data["error"] is None:
        del data["error"]
    return data
