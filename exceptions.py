class CallGateError(Exception):
    """Base class for every failure raised by the meeting/token core."""


class AuthError(CallGateError):
    pass


class CapabilityDisabled(AuthError):
    """ADMIN_SECRET is not configured, so admin endpoints are switched off."""


class Unauthorized(AuthError):
    pass


class NotFound(CallGateError):
    pass


class MeetingNotFound(NotFound):
    pass


class TokenNotFound(NotFound):
    pass


class Expired(CallGateError):
    pass


class MeetingExpired(Expired):
    pass


class TokenWindowExpired(Expired):
    pass


class CapacityExceeded(CallGateError):
    pass


class ProtocolError(CallGateError):
    """Malformed relay message. Dropped by the relay, never sent back."""


class RelayRejected(CallGateError):
    """A WebSocket was refused before admission; carries the close code."""

    def __init__(self, code: int, reason: str):
        super().__init__(reason)
        self.code = code
        self.reason = reason
