from pydantic import BaseModel, ConfigDict, Field
from typing import Any, List, Literal


class HelloMessage(BaseModel):
    type: Literal["hello"] = "hello"
    peer_id: str = Field(serialization_alias="peerId")
    peers: List[str]


class PeerJoinMessage(BaseModel):
    type: Literal["peer-join"] = "peer-join"
    peer_id: str = Field(serialization_alias="peerId")


class PeerLeaveMessage(BaseModel):
    type: Literal["peer-leave"] = "peer-leave"
    peer_id: str = Field(serialization_alias="peerId")


class InboundSignal(BaseModel):
    """{"type": "signal", "target": <peerId>, "data": <opaque>} from a client."""

    model_config = ConfigDict(extra="ignore")

    type: Literal["signal"]
    target: str = Field(min_length=1)
    data: Any = None


class OutboundSignal(BaseModel):
    type: Literal["signal"] = "signal"
    sender: str = Field(serialization_alias="from")
    data: Any = None
