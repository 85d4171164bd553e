import secrets
import threading
import time
from dataclasses import asdict, dataclass
from enum import Enum
from typing import Callable, Dict, List, Optional

from constants import MAX_PARTICIPANTS, MEETING_TTL_SECONDS, TOKEN_WINDOW_SECONDS
from exceptions import CapacityExceeded, MeetingExpired, MeetingNotFound
from logging_config import get_logger

logger = get_logger(__name__)


def generate_meeting_id() -> str:
    # 12 random bytes -> 96 bits
    return secrets.token_urlsafe(12)


def generate_room_id() -> str:
    return "r-" + secrets.token_hex(8)


def generate_token() -> str:
    return secrets.token_urlsafe(18)


@dataclass
class Meeting:
    meeting_id: str
    room: str
    created_at: float
    expires_at: float
    max_participants: int
    joins: int = 0

    def is_expired(self, now: float) -> bool:
        return now > self.expires_at

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> "Meeting":
        return cls(
            meeting_id=data["meeting_id"],
            room=data["room"],
            created_at=float(data["created_at"]),
            expires_at=float(data["expires_at"]),
            max_participants=int(data["max_participants"]),
            joins=int(data.get("joins", 0)),
        )


@dataclass
class Token:
    value: str
    meeting_id: str
    first_seen_at: Optional[float] = None
    expires_at: Optional[float] = None

    @property
    def activated(self) -> bool:
        return self.first_seen_at is not None

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> "Token":
        first_seen_at = data.get("first_seen_at")
        expires_at = data.get("expires_at")
        return cls(
            value=data["value"],
            meeting_id=data["meeting_id"],
            first_seen_at=float(first_seen_at) if first_seen_at is not None else None,
            expires_at=float(expires_at) if expires_at is not None else None,
        )


class TokenStatus(str, Enum):
    VALID = "valid"
    NOT_FOUND = "not_found"
    MEETING_EXPIRED = "meeting_expired"
    WINDOW_EXPIRED = "window_expired"


@dataclass
class Validation:
    status: TokenStatus
    token: Optional[Token] = None
    meeting: Optional[Meeting] = None

    @property
    def ok(self) -> bool:
        return self.status is TokenStatus.VALID


class MeetingRegistry:
    """In-memory meeting records with lazy, access-triggered expiry.

    There is no sweep: an expired meeting stays in memory until some lookup
    touches it, at which point it is evicted before absence is reported.
    """

    def __init__(
        self,
        ttl: float = MEETING_TTL_SECONDS,
        max_participants: int = MAX_PARTICIPANTS,
        clock: Callable[[], float] = time.time,
    ):
        self.ttl = ttl
        self.max_participants = max_participants
        self.clock = clock
        self._meetings: Dict[str, Meeting] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._meetings)

    def __contains__(self, meeting_id: str) -> bool:
        return meeting_id in self._meetings

    def create(self, ttl: Optional[float] = None, max_participants: Optional[int] = None, now: Optional[float] = None) -> Meeting:
        now = self.clock() if now is None else now
        ttl = self.ttl if ttl is None else ttl
        max_participants = self.max_participants if max_participants is None else max_participants

        with self._lock:
            meeting_id = generate_meeting_id()
            while meeting_id in self._meetings:
                meeting_id = generate_meeting_id()
            meeting = Meeting(
                meeting_id=meeting_id,
                room=generate_room_id(),
                created_at=now,
                expires_at=now + ttl,
                max_participants=max_participants,
            )
            self._meetings[meeting_id] = meeting

        logger.info(f"Meeting {meeting_id} created: ttl={ttl}s, max_participants={max_participants}")
        return meeting

    def _lookup_locked(self, meeting_id: str, now: float) -> Meeting:
        meeting = self._meetings.get(meeting_id)
        if meeting is None:
            raise MeetingNotFound(meeting_id)
        if meeting.is_expired(now):
            del self._meetings[meeting_id]
            logger.info(f"Meeting {meeting_id} expired, evicted")
            raise MeetingExpired(meeting_id)
        return meeting

    def lookup(self, meeting_id: str, now: Optional[float] = None) -> Meeting:
        """Return a live meeting or raise MeetingNotFound / MeetingExpired."""
        now = self.clock() if now is None else now
        with self._lock:
            return self._lookup_locked(meeting_id, now)

    def get(self, meeting_id: str, now: Optional[float] = None) -> Optional[Meeting]:
        try:
            return self.lookup(meeting_id, now)
        except (MeetingNotFound, MeetingExpired):
            return None

    def record_join(self, meeting_id: str, now: Optional[float] = None) -> Meeting:
        """Consume one capacity unit; the check and the increment share one lock."""
        now = self.clock() if now is None else now
        with self._lock:
            meeting = self._lookup_locked(meeting_id, now)
            if meeting.joins >= meeting.max_participants:
                logger.warning(f"Meeting {meeting_id} is full ({meeting.joins}/{meeting.max_participants})")
                raise CapacityExceeded(meeting_id)
            meeting.joins += 1

        logger.info(f"Join recorded for meeting {meeting_id}: {meeting.joins}/{meeting.max_participants}")
        return meeting

    def evict(self, meeting_id: str):
        with self._lock:
            self._meetings.pop(meeting_id, None)

    def delete(self, meeting_id: str) -> bool:
        with self._lock:
            deleted = self._meetings.pop(meeting_id, None) is not None
        if deleted:
            logger.info(f"Meeting {meeting_id} deleted")
        return deleted

    def restore(self, meeting: Meeting):
        with self._lock:
            self._meetings[meeting.meeting_id] = meeting

    def clear(self):
        with self._lock:
            self._meetings.clear()

    def all(self) -> List[Meeting]:
        with self._lock:
            return list(self._meetings.values())


class TokenRegistry:
    """Invite tokens bound to meetings, activated lazily on first use.

    The activation window starts at the first successful validation, so the
    time between issuing a link and the first click does not count.
    """

    def __init__(
        self,
        meetings: MeetingRegistry,
        window: float = TOKEN_WINDOW_SECONDS,
        clock: Optional[Callable[[], float]] = None,
    ):
        self.meetings = meetings
        self.window = window
        self.clock = clock or meetings.clock
        self._tokens: Dict[str, Token] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._tokens)

    def __contains__(self, value: str) -> bool:
        return value in self._tokens

    def issue(self, meeting_id: str, now: Optional[float] = None) -> Token:
        now = self.clock() if now is None else now
        self.meetings.lookup(meeting_id, now)

        with self._lock:
            value = generate_token()
            while value in self._tokens:
                value = generate_token()
            token = Token(value=value, meeting_id=meeting_id)
            self._tokens[value] = token

        logger.info(f"Token issued for meeting {meeting_id}")
        return token

    def get(self, value: str) -> Optional[Token]:
        return self._tokens.get(value)

    def validate(self, value: str, now: Optional[float] = None) -> Validation:
        now = self.clock() if now is None else now

        with self._lock:
            token = self._tokens.get(value) if value else None
            if token is None:
                return Validation(TokenStatus.NOT_FOUND)

            try:
                meeting = self.meetings.lookup(token.meeting_id, now)
            except (MeetingNotFound, MeetingExpired):
                # lookup already evicted an expired meeting
                del self._tokens[value]
                logger.info(f"Token for meeting {token.meeting_id} dropped: meeting gone or expired")
                return Validation(TokenStatus.MEETING_EXPIRED, token)

            if not token.activated:
                token.first_seen_at = now
                token.expires_at = now + self.window
                logger.info(f"Token for meeting {token.meeting_id} activated until {token.expires_at}")

            if now > token.expires_at:
                del self._tokens[value]
                logger.info(f"Token for meeting {token.meeting_id} window expired, evicted")
                return Validation(TokenStatus.WINDOW_EXPIRED, token, meeting)

        return Validation(TokenStatus.VALID, token, meeting)

    def restore(self, token: Token):
        with self._lock:
            self._tokens[token.value] = token

    def clear(self):
        with self._lock:
            self._tokens.clear()

    def all(self) -> List[Token]:
        with self._lock:
            return list(self._tokens.values())
