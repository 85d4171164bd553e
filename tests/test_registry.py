import threading

import pytest

from exceptions import CapacityExceeded, MeetingExpired, MeetingNotFound
from registry import MeetingRegistry, TokenRegistry, TokenStatus

MINUTE = 60


@pytest.fixture
def meetings(clock):
    return MeetingRegistry(ttl=2 * 60 * MINUTE, max_participants=3, clock=clock)


@pytest.fixture
def tokens(meetings):
    return TokenRegistry(meetings, window=5 * MINUTE)


def test_create_meeting_sets_fixed_expiry(meetings, clock):
    meeting = meetings.create()

    assert meeting.created_at == clock.now
    assert meeting.expires_at == clock.now + 2 * 60 * MINUTE
    assert meeting.max_participants == 3
    assert meeting.joins == 0
    assert meeting.room.startswith("r-")
    assert meeting.room != meeting.meeting_id
    # 12 random bytes encode to 16 url-safe characters
    assert len(meeting.meeting_id) == 16


def test_create_meeting_ids_are_unique(meetings):
    ids = {meetings.create().meeting_id for _ in range(200)}
    assert len(ids) == 200


def test_get_evicts_expired_meeting(meetings, clock):
    meeting = meetings.create(ttl=10)
    clock.advance(11)

    assert meetings.get(meeting.meeting_id) is None
    assert meeting.meeting_id not in meetings


def test_meeting_alive_at_exact_expiry(meetings, clock):
    meeting = meetings.create(ttl=10)
    clock.advance(10)

    assert meetings.get(meeting.meeting_id) is meeting


def test_lookup_distinguishes_missing_and_expired(meetings, clock):
    meeting = meetings.create(ttl=10)
    clock.advance(11)

    with pytest.raises(MeetingExpired):
        meetings.lookup(meeting.meeting_id)
    with pytest.raises(MeetingNotFound):
        meetings.lookup(meeting.meeting_id)


def test_record_join_stops_at_capacity(meetings):
    meeting = meetings.create(max_participants=2)
    meetings.record_join(meeting.meeting_id)
    meetings.record_join(meeting.meeting_id)

    with pytest.raises(CapacityExceeded):
        meetings.record_join(meeting.meeting_id)
    assert meeting.joins == 2
    # a full meeting is not evicted
    assert meetings.get(meeting.meeting_id) is meeting


def test_record_join_is_atomic_under_threads(meetings):
    meeting = meetings.create(max_participants=5)
    results = []
    barrier = threading.Barrier(20)

    def worker():
        barrier.wait()
        try:
            meetings.record_join(meeting.meeting_id)
            results.append(True)
        except CapacityExceeded:
            results.append(False)

    threads = [threading.Thread(target=worker) for _ in range(20)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert results.count(True) == 5
    assert meeting.joins == 5


def test_delete_meeting(meetings):
    meeting = meetings.create()

    assert meetings.delete(meeting.meeting_id) is True
    assert meetings.delete(meeting.meeting_id) is False
    assert meetings.get(meeting.meeting_id) is None


def test_issue_requires_live_meeting(meetings, tokens, clock):
    with pytest.raises(MeetingNotFound):
        tokens.issue("missing")

    meeting = meetings.create(ttl=10)
    clock.advance(11)
    with pytest.raises(MeetingExpired):
        tokens.issue(meeting.meeting_id)


def test_issued_token_is_not_activated(meetings, tokens):
    meeting = meetings.create()
    token = tokens.issue(meeting.meeting_id)

    assert token.meeting_id == meeting.meeting_id
    assert token.first_seen_at is None
    assert token.expires_at is None


def test_validate_unknown_token(tokens):
    assert tokens.validate("nope").status is TokenStatus.NOT_FOUND
    assert tokens.validate("").status is TokenStatus.NOT_FOUND


def test_activation_starts_at_first_use_not_issue(meetings, tokens, clock):
    meeting = meetings.create()
    token = tokens.issue(meeting.meeting_id)
    clock.advance(30 * MINUTE)

    result = tokens.validate(token.value)

    assert result.status is TokenStatus.VALID
    assert token.first_seen_at == clock.now
    assert token.expires_at == clock.now + 5 * MINUTE


def test_activation_is_idempotent(meetings, tokens, clock):
    meeting = meetings.create()
    token = tokens.issue(meeting.meeting_id)
    tokens.validate(token.value)
    first_expiry = token.expires_at

    clock.advance(4 * MINUTE)
    result = tokens.validate(token.value)

    assert result.status is TokenStatus.VALID
    assert token.expires_at == first_expiry


def test_window_expires_after_first_use(meetings, tokens, clock):
    meeting = meetings.create()
    token = tokens.issue(meeting.meeting_id)
    tokens.validate(token.value)

    clock.advance(6 * MINUTE)
    result = tokens.validate(token.value)

    assert result.status is TokenStatus.WINDOW_EXPIRED
    assert token.value not in tokens
    assert tokens.validate(token.value).status is TokenStatus.NOT_FOUND


def test_token_used_after_meeting_ttl(meetings, tokens, clock):
    meeting = meetings.create()
    token = tokens.issue(meeting.meeting_id)

    clock.advance(2 * 60 * MINUTE + 1)
    result = tokens.validate(token.value)

    assert result.status is TokenStatus.MEETING_EXPIRED
    assert meetings.get(meeting.meeting_id) is None
    assert token.value not in tokens


def test_token_of_deleted_meeting(meetings, tokens):
    meeting = meetings.create()
    token = tokens.issue(meeting.meeting_id)
    meetings.delete(meeting.meeting_id)

    assert tokens.validate(token.value).status is TokenStatus.MEETING_EXPIRED
    assert token.value not in tokens


def test_meeting_expiry_wins_inside_token_window(meetings, tokens, clock):
    meeting = meetings.create(ttl=2 * MINUTE)
    token = tokens.issue(meeting.meeting_id)
    tokens.validate(token.value)

    clock.advance(3 * MINUTE)

    assert tokens.validate(token.value).status is TokenStatus.MEETING_EXPIRED
