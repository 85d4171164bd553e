from contextlib import asynccontextmanager
from pathlib import Path
from typing import Optional

from fastapi import Depends, FastAPI, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from backend import RedisBackend
from constants import SNAPSHOT_ENABLED
from deps import get_call_state
from exceptions import RelayRejected
from logging_config import get_logger, setup_logging
from routers.admin import admin_router
from routers.join import join_router
from routers.pages import pages_router
from state import CallState
import os

# Setup logging
log_level = os.getenv("LOG_LEVEL", "INFO")
log_file = os.getenv("LOG_FILE", None)
setup_logging(log_level=log_level, log_file=log_file)
logger = get_logger(__name__)

PUBLIC_DIR = Path(__file__).resolve().parent / "public"


@asynccontextmanager
async def lifespan(app: FastAPI):
    app.state.call_state = CallState()
    backend = None
    if SNAPSHOT_ENABLED:
        backend = RedisBackend()
        backend.load_snapshot(app.state.call_state)
    try:
        yield
    finally:
        if backend is not None:
            backend.save_snapshot(app.state.call_state)


app = FastAPI(title="Call Gate", lifespan=lifespan)

# Configure CORS to allow all origins
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(pages_router)
app.include_router(admin_router)
app.include_router(join_router)

logger.info("FastAPI application initialized")


@app.websocket("/ws")
async def signaling_endpoint(
    websocket: WebSocket,
    token: Optional[str] = None,
    state: CallState = Depends(get_call_state),
):
    """Signaling channel for one peer.

    Query parameters:
    - token: the invite token the peer was redirected with

    Rejected tokens get a close code after the handshake: 4401 token invalid,
    4402 meeting expired, 4403 token window expired.
    """
    # accept first so the application close code reaches the client
    await websocket.accept()

    try:
        peer = await state.relay.admit(token, websocket)
    except RelayRejected as e:
        await websocket.close(code=e.code, reason=e.reason)
        return

    try:
        while True:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                logger.info(f"WebSocket closed by peer {peer.peer_id} in meeting {peer.meeting_id}")
                break
            # binary frames are decoded like text; anything unparsable is dropped by the relay
            data = message.get("text")
            if data is None:
                data = (message.get("bytes") or b"").decode("utf-8", errors="replace")
            await state.relay.route(peer, data)
    except WebSocketDisconnect:
        logger.info(f"WebSocket disconnected for peer {peer.peer_id} in meeting {peer.meeting_id}")
    except Exception as e:
        logger.error(f"WebSocket error for peer {peer.peer_id} in meeting {peer.meeting_id}: {e}", exc_info=True)
    finally:
        await state.relay.leave(peer)


# Static client (call.html); mounted last so the routes above win
app.mount("/", StaticFiles(directory=PUBLIC_DIR, check_dir=False), name="public")
