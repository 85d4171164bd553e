import os

HOST = os.getenv("HOST", "")  # base URL used to build invite links
PORT = int(os.getenv("PORT", 3000))
MAX_PARTICIPANTS = int(os.getenv("MAX_PARTICIPANTS", 3))
ADMIN_SECRET = os.getenv("ADMIN_SECRET", "")
CALL_PROVIDER = os.getenv("CALL_PROVIDER", "relay")  # "relay" or "jitsi"

REDIS_HOST = os.getenv("REDIS_HOST", "localhost")
REDIS_PORT = int(os.getenv("REDIS_PORT", 6379))
REDIS_PASSWORD = os.getenv("REDIS_PASSWORD", None)
SNAPSHOT_ENABLED = os.getenv("SNAPSHOT_ENABLED", "false").lower() in ("1", "true", "yes")

TOKEN_WINDOW_SECONDS = 5 * 60
MEETING_TTL_SECONDS = 2 * 60 * 60

# WebSocket close codes sent before a peer is admitted
CLOSE_TOKEN_INVALID = 4401
CLOSE_MEETING_EXPIRED = 4402
CLOSE_TOKEN_WINDOW_EXPIRED = 4403

JITSI_BASE_URL = "https://meet.jit.si"
