REDIS_MEETING_KEY = "meeting:meta:{meeting_id}" # meeting id - hash of meeting fields
REDIS_MEETING_INDEX = "meeting:index" # set of meeting ids in the last snapshot
REDIS_MEETING_TOKENS_KEY = "meeting:tokens:{meeting_id}" # meeting id - set of token values
REDIS_TOKEN_KEY = "token:{token}" # token value - hash of token fields

# **Example `meeting:meta:{id}` hash fields**
# - `meeting_id`, `room`
# - `created_at`, `expires_at` = POSIX seconds
# - `max_participants`, `joins` = integers
# Every key gets EXPIREAT = meeting expires_at, so Redis drops dead meetings on its own.
