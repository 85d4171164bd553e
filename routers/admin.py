from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request, status

from deps import get_call_state, get_public_host, require_admin
from exceptions import MeetingExpired, MeetingNotFound
from logging_config import get_logger
from schemas.meetings import (
    CreateMeetingRequest,
    CreateMeetingResponse,
    InviteResponse,
    MeetingStatusResponse,
    to_millis,
)
from state import CallState

logger = get_logger(__name__)

admin_router = APIRouter(prefix="/admin/meetings", tags=["admin"], dependencies=[Depends(require_admin)])


@admin_router.post("", response_model=CreateMeetingResponse)
async def create_meeting(
    request: Request,
    payload: Optional[CreateMeetingRequest] = None,
    state: CallState = Depends(get_call_state),
):
    payload = payload or CreateMeetingRequest()
    client_host = request.client.host if request.client else "unknown"
    logger.info(f"Meeting creation request from {client_host}")

    meeting = state.meetings.create(ttl=payload.ttl_seconds, max_participants=payload.max_participants)
    return CreateMeetingResponse.from_meeting(meeting)


@admin_router.post("/{meeting_id}/invite", response_model=InviteResponse)
async def invite(
    meeting_id: str,
    state: CallState = Depends(get_call_state),
    host: str = Depends(get_public_host),
):
    try:
        meeting = state.meetings.lookup(meeting_id)
        token = state.tokens.issue(meeting_id)
    except MeetingNotFound:
        logger.warning(f"Invite failed: meeting {meeting_id} not found")
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="meeting not found")
    except MeetingExpired:
        logger.warning(f"Invite failed: meeting {meeting_id} expired")
        raise HTTPException(status_code=status.HTTP_410_GONE, detail="meeting expired")

    return InviteResponse(
        token=token.value,
        url=f"{host.rstrip('/')}/r/{token.value}",
        meeting_id=meeting_id,
        meeting_expires_at=to_millis(meeting.expires_at),
    )


@admin_router.get("/{meeting_id}", response_model=MeetingStatusResponse)
async def get_meeting(meeting_id: str, state: CallState = Depends(get_call_state)):
    try:
        meeting = state.meetings.lookup(meeting_id)
    except MeetingNotFound:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="meeting not found")
    except MeetingExpired:
        raise HTTPException(status_code=status.HTTP_410_GONE, detail="meeting expired")

    base = CreateMeetingResponse.from_meeting(meeting)
    return MeetingStatusResponse(
        **base.model_dump(),
        joins=meeting.joins,
        online_peers=len(state.relay.peers(meeting_id)),
        is_full=meeting.joins >= meeting.max_participants,
    )


@admin_router.delete("/{meeting_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_meeting(meeting_id: str, state: CallState = Depends(get_call_state)):
    # tokens of a deleted meeting are dropped lazily on their next validation
    if not state.meetings.delete(meeting_id):
        logger.warning(f"Delete failed: meeting {meeting_id} not found")
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="meeting not found")
