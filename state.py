import time
from typing import Callable, Optional

from admission import AdmissionGate
from constants import MAX_PARTICIPANTS, MEETING_TTL_SECONDS, TOKEN_WINDOW_SECONDS
from logging_config import get_logger
from registry import Meeting, MeetingRegistry, Token, TokenRegistry
from signaling import SignalingRelay

logger = get_logger(__name__)


class CallState:
    """Everything the service keeps in memory, built once at startup.

    Handlers receive it through the get_call_state dependency instead of
    reaching for module globals.
    """

    def __init__(
        self,
        meeting_ttl: float = MEETING_TTL_SECONDS,
        token_window: float = TOKEN_WINDOW_SECONDS,
        max_participants: int = MAX_PARTICIPANTS,
        clock: Callable[[], float] = time.time,
    ):
        self.clock = clock
        self.meetings = MeetingRegistry(ttl=meeting_ttl, max_participants=max_participants, clock=clock)
        self.tokens = TokenRegistry(self.meetings, window=token_window)
        self.gate = AdmissionGate(self.meetings, self.tokens)
        self.relay = SignalingRelay(self.tokens)
        logger.info(
            f"Call state initialized: meeting_ttl={meeting_ttl}s, token_window={token_window}s, "
            f"max_participants={max_participants}"
        )

    def snapshot(self) -> dict:
        """Meetings and tokens as plain dicts. Live rooms are not included."""
        return {
            "taken_at": self.clock(),
            "meetings": [m.to_dict() for m in self.meetings.all()],
            "tokens": [t.to_dict() for t in self.tokens.all()],
        }

    def restore(self, snapshot: dict, now: Optional[float] = None) -> int:
        """Replace the registries with a snapshot, skipping expired meetings.

        Returns the number of meetings restored.
        """
        now = self.clock() if now is None else now
        self.meetings.clear()
        self.tokens.clear()

        for data in snapshot.get("meetings", []):
            meeting = Meeting.from_dict(data)
            if not meeting.is_expired(now):
                self.meetings.restore(meeting)
        for data in snapshot.get("tokens", []):
            token = Token.from_dict(data)
            if token.meeting_id in self.meetings:
                self.tokens.restore(token)

        logger.info(f"Restored {len(self.meetings)} meetings and {len(self.tokens)} tokens from snapshot")
        return len(self.meetings)
