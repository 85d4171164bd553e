from urllib.parse import quote

from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.responses import HTMLResponse, RedirectResponse

from constants import JITSI_BASE_URL
from deps import get_call_provider, get_call_state
from exceptions import CapacityExceeded, MeetingExpired, MeetingNotFound, TokenNotFound, TokenWindowExpired
from logging_config import get_logger
from registry import Meeting
from state import CallState

logger = get_logger(__name__)

join_router = APIRouter(tags=["join"])

JITSI_OPTIONS = (
    "#config.prejoinPageEnabled=true"
    "&config.startWithAudioMuted=false"
    "&config.startWithVideoMuted=true"
    "&interfaceConfig.DISABLE_VIDEO_BACKGROUND=true"
)


def jitsi_handoff(meeting: Meeting) -> HTMLResponse:
    url = f"{JITSI_BASE_URL}/{meeting.room}{JITSI_OPTIONS}"
    return HTMLResponse(
        "<!DOCTYPE html><html><body><h1>Redirecting...</h1>"
        f'<a href="{url}">Join meeting</a>'
        f"<script>location='{url}'</script></body></html>"
    )


@join_router.get("/r/{token}")
async def join(
    token: str,
    request: Request,
    state: CallState = Depends(get_call_state),
    provider: str = Depends(get_call_provider),
):
    client_host = request.client.host if request.client else "unknown"
    logger.info(f"Join request from {client_host}")

    try:
        admission = state.gate.admit(token)
    except TokenNotFound:
        logger.warning("Join failed: token not found")
        raise HTTPException(status_code=status.HTTP_410_GONE, detail="Link expired or invalid")
    except (MeetingExpired, MeetingNotFound):
        logger.warning("Join failed: meeting expired")
        raise HTTPException(status_code=status.HTTP_410_GONE, detail="Meeting expired")
    except TokenWindowExpired:
        logger.warning("Join failed: personal link window expired")
        raise HTTPException(status_code=status.HTTP_410_GONE, detail="Personal link expired")
    except CapacityExceeded:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Room is full")

    if provider == "jitsi":
        return jitsi_handoff(admission.meeting)
    return RedirectResponse(f"/call.html?t={quote(token, safe='')}", status_code=status.HTTP_302_FOUND)
