from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from typing import Optional

from registry import Meeting


def to_millis(seconds: float) -> int:
    return int(seconds * 1000)


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class CreateMeetingRequest(CamelModel):
    ttl_seconds: Optional[int] = Field(None, gt=0)
    max_participants: Optional[int] = Field(None, gt=0)


class CreateMeetingResponse(CamelModel):
    meeting_id: str
    room: str
    created_at: int
    expires_at: int
    max_participants: int

    @classmethod
    def from_meeting(cls, meeting: Meeting) -> "CreateMeetingResponse":
        return cls(
            meeting_id=meeting.meeting_id,
            room=meeting.room,
            created_at=to_millis(meeting.created_at),
            expires_at=to_millis(meeting.expires_at),
            max_participants=meeting.max_participants,
        )


class InviteResponse(CamelModel):
    token: str
    url: str
    meeting_id: str
    meeting_expires_at: int


class MeetingStatusResponse(CreateMeetingResponse):
    joins: int
    online_peers: int
    is_full: bool
