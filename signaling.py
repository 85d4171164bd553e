import json
import secrets
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Protocol

from pydantic import BaseModel, ValidationError
from starlette.websockets import WebSocketState

from constants import CLOSE_MEETING_EXPIRED, CLOSE_TOKEN_INVALID, CLOSE_TOKEN_WINDOW_EXPIRED
from exceptions import ProtocolError, RelayRejected
from logging_config import get_logger
from registry import TokenRegistry, TokenStatus
from schemas.signaling import HelloMessage, InboundSignal, OutboundSignal, PeerJoinMessage, PeerLeaveMessage

logger = get_logger(__name__)

REJECTIONS = {
    TokenStatus.NOT_FOUND: (CLOSE_TOKEN_INVALID, "token invalid"),
    TokenStatus.MEETING_EXPIRED: (CLOSE_MEETING_EXPIRED, "meeting expired"),
    TokenStatus.WINDOW_EXPIRED: (CLOSE_TOKEN_WINDOW_EXPIRED, "token window expired"),
}


class Connection(Protocol):
    """The part of starlette's WebSocket the relay needs."""

    client_state: WebSocketState
    application_state: WebSocketState

    async def send_text(self, data: str) -> None: ...


def generate_peer_id() -> str:
    return secrets.token_urlsafe(8)


@dataclass
class Peer:
    """Context carried alongside one admitted connection until it closes."""

    peer_id: str
    meeting_id: str
    token: str
    connection: Connection = field(repr=False)


def is_writable(connection: Connection) -> bool:
    return (
        connection.client_state == WebSocketState.CONNECTED
        and connection.application_state == WebSocketState.CONNECTED
    )


def encode(payload: Any) -> str:
    if isinstance(payload, BaseModel):
        payload = payload.model_dump(by_alias=True)
    return json.dumps(payload)


def parse_signal(raw: str) -> InboundSignal:
    try:
        message = json.loads(raw)
    except (json.JSONDecodeError, TypeError) as e:
        raise ProtocolError(f"not JSON: {e}")
    if not isinstance(message, dict):
        raise ProtocolError("message is not an object")
    if message.get("type") != "signal":
        raise ProtocolError(f"unsupported message type: {message.get('type')!r}")
    try:
        return InboundSignal.model_validate(message)
    except ValidationError as e:
        raise ProtocolError(f"invalid signal: {e.error_count()} error(s)")


class SignalingRelay:
    """Rooms of connected peers, one per meeting, and the routing between them.

    Admission here only re-checks the token and its meeting. The HTTP join
    counter is neither consulted nor incremented, so a valid token can open
    more sockets than the meeting's capacity.
    """

    def __init__(self, tokens: TokenRegistry):
        self.tokens = tokens
        # {meeting_id: {peer_id: Peer}}
        self._rooms: Dict[str, Dict[str, Peer]] = {}

    def peers(self, meeting_id: str) -> List[str]:
        return list(self._rooms.get(meeting_id, {}).keys())

    def room_count(self) -> int:
        return len(self._rooms)

    def get_peer(self, meeting_id: str, peer_id: str) -> Optional[Peer]:
        return self._rooms.get(meeting_id, {}).get(peer_id)

    async def admit(self, token: Optional[str], connection: Connection, now: Optional[float] = None) -> Peer:
        validation = self.tokens.validate(token or "", now)
        if not validation.ok:
            code, reason = REJECTIONS[validation.status]
            logger.info(f"Relay connection rejected with {code}: {reason}")
            raise RelayRejected(code, reason)

        meeting_id = validation.meeting.meeting_id
        # id minting and insertion must not be separated by an await
        room = self._rooms.setdefault(meeting_id, {})
        peer_id = generate_peer_id()
        while peer_id in room:
            peer_id = generate_peer_id()
        peer = Peer(peer_id=peer_id, meeting_id=meeting_id, token=token, connection=connection)
        room[peer_id] = peer
        others = [pid for pid in room if pid != peer_id]
        logger.info(f"Peer {peer_id} joined room of meeting {meeting_id} ({len(room)} connected)")

        await self._deliver(peer, encode(HelloMessage(peer_id=peer_id, peers=others)))
        await self.broadcast(meeting_id, PeerJoinMessage(peer_id=peer_id), exclude=peer_id)
        return peer

    async def route(self, peer: Peer, raw: str) -> bool:
        """Forward a signal to its target. Returns False when it was dropped."""
        try:
            signal = parse_signal(raw)
        except ProtocolError as e:
            logger.debug(f"Dropped message from peer {peer.peer_id}: {e}")
            return False

        target = self.get_peer(peer.meeting_id, signal.target)
        if target is None:
            logger.debug(f"Dropped signal from {peer.peer_id}: target {signal.target} not in room")
            return False

        delivered = await self._deliver(target, encode(OutboundSignal(sender=peer.peer_id, data=signal.data)))
        if delivered:
            logger.debug(f"Relayed signal {peer.peer_id} -> {target.peer_id} in meeting {peer.meeting_id}")
        return delivered

    async def leave(self, peer: Peer):
        room = self._rooms.get(peer.meeting_id)
        if room is None or room.get(peer.peer_id) is not peer:
            return
        del room[peer.peer_id]
        logger.info(f"Peer {peer.peer_id} left room of meeting {peer.meeting_id} ({len(room)} remaining)")

        if not room:
            del self._rooms[peer.meeting_id]
            logger.info(f"Room of meeting {peer.meeting_id} is empty")
            return
        await self.broadcast(peer.meeting_id, PeerLeaveMessage(peer_id=peer.peer_id))

    async def broadcast(self, meeting_id: str, payload: Any, exclude: Optional[str] = None) -> int:
        """Send to every peer in the room except `exclude`; returns deliveries."""
        room = self._rooms.get(meeting_id)
        if not room:
            return 0
        data = encode(payload)
        delivered = 0
        for peer_id, peer in list(room.items()):
            if peer_id == exclude:
                continue
            if await self._deliver(peer, data):
                delivered += 1
        return delivered

    async def _deliver(self, peer: Peer, data: str) -> bool:
        if not is_writable(peer.connection):
            logger.debug(f"Skipping peer {peer.peer_id}: connection not writable")
            return False
        try:
            await peer.connection.send_text(data)
        except Exception as e:
            logger.debug(f"Send to peer {peer.peer_id} failed: {e}")
            return False
        return True
