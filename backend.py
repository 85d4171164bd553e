import math

import redis

from constants import REDIS_HOST, REDIS_PORT, REDIS_PASSWORD
from redis_keys import REDIS_MEETING_KEY, REDIS_MEETING_INDEX, REDIS_MEETING_TOKENS_KEY, REDIS_TOKEN_KEY
from logging_config import get_logger
from state import CallState

logger = get_logger(__name__)


def _to_hash(data: dict) -> dict:
    # Redis hashes hold strings only; None fields are left out
    return {k: str(v) for k, v in data.items() if v is not None}


class RedisBackend:
    """Optional snapshot store for CallState.

    Used only when SNAPSHOT_ENABLED is set: loaded at startup, saved at
    shutdown. Live rooms and their sockets are never written.
    """

    def __init__(self, client: redis.Redis = None):
        if client is None:
            client = redis.Redis(host=REDIS_HOST, port=REDIS_PORT, password=REDIS_PASSWORD, decode_responses=True)
            logger.info(f"Initializing RedisBackend with connection to {REDIS_HOST}:{REDIS_PORT}")
        self.redis_client = client

    def ping(self) -> bool:
        return bool(self.redis_client.ping())

    def save_snapshot(self, state: CallState) -> int:
        snapshot = state.snapshot()
        tokens_by_meeting = {}
        for token in snapshot["tokens"]:
            tokens_by_meeting.setdefault(token["meeting_id"], []).append(token)

        pipe = self.redis_client.pipeline()
        pipe.delete(REDIS_MEETING_INDEX)
        for meeting in snapshot["meetings"]:
            meeting_id = meeting["meeting_id"]
            expire_at = math.ceil(meeting["expires_at"])

            key = REDIS_MEETING_KEY.format(meeting_id=meeting_id)
            pipe.hset(key, mapping=_to_hash(meeting))
            pipe.expireat(key, expire_at)
            pipe.sadd(REDIS_MEETING_INDEX, meeting_id)

            tokens_key = REDIS_MEETING_TOKENS_KEY.format(meeting_id=meeting_id)
            pipe.delete(tokens_key)
            for token in tokens_by_meeting.get(meeting_id, []):
                token_key = REDIS_TOKEN_KEY.format(token=token["value"])
                pipe.hset(token_key, mapping=_to_hash(token))
                pipe.expireat(token_key, expire_at)
                pipe.sadd(tokens_key, token["value"])
            pipe.expireat(tokens_key, expire_at)
        pipe.execute()

        logger.info(f"Saved snapshot of {len(snapshot['meetings'])} meetings and {len(snapshot['tokens'])} tokens to Redis")
        return len(snapshot["meetings"])

    def load_snapshot(self, state: CallState) -> int:
        meetings = []
        tokens = []
        for meeting_id in self.redis_client.smembers(REDIS_MEETING_INDEX):
            meeting = self.redis_client.hgetall(REDIS_MEETING_KEY.format(meeting_id=meeting_id))
            if not meeting:
                logger.debug(f"Meeting {meeting_id} already expired in Redis, skipping")
                continue
            meetings.append(meeting)

            for value in self.redis_client.smembers(REDIS_MEETING_TOKENS_KEY.format(meeting_id=meeting_id)):
                token = self.redis_client.hgetall(REDIS_TOKEN_KEY.format(token=value))
                if token:
                    tokens.append(token)

        logger.debug(f"Loaded {len(meetings)} meetings and {len(tokens)} tokens from Redis")
        return state.restore({"meetings": meetings, "tokens": tokens})
