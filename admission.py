from dataclasses import dataclass
from typing import Optional

from exceptions import MeetingExpired, TokenNotFound, TokenWindowExpired
from logging_config import get_logger
from registry import Meeting, MeetingRegistry, Token, TokenRegistry, TokenStatus

logger = get_logger(__name__)


@dataclass
class Admission:
    token: Token
    meeting: Meeting


class AdmissionGate:
    """Join check behind GET /r/{token}.

    Token lookup, meeting lookup, meeting TTL and window activation are done by
    TokenRegistry.validate; the capacity check-and-increment is
    MeetingRegistry.record_join. Each step raises its own exception.
    """

    def __init__(self, meetings: MeetingRegistry, tokens: TokenRegistry):
        self.meetings = meetings
        self.tokens = tokens

    def admit(self, value: str, now: Optional[float] = None) -> Admission:
        now = self.meetings.clock() if now is None else now
        validation = self.tokens.validate(value, now)

        if validation.status is TokenStatus.NOT_FOUND:
            raise TokenNotFound(value)
        if validation.status is TokenStatus.MEETING_EXPIRED:
            raise MeetingExpired(validation.token.meeting_id)
        if validation.status is TokenStatus.WINDOW_EXPIRED:
            raise TokenWindowExpired(validation.token.meeting_id)

        # raises CapacityExceeded without evicting anything
        meeting = self.meetings.record_join(validation.meeting.meeting_id, now)
        logger.info(f"Admitted token holder to meeting {meeting.meeting_id} ({meeting.joins}/{meeting.max_participants})")
        return Admission(token=validation.token, meeting=meeting)
