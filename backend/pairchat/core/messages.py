"""User-facing message strings shared by the chat services."""


class GatewayMessages:
    MISSING_TOKEN = "Authentication failed"
    INVALID_TOKEN = "Authentication failed"
    BANNED = "Your account has been banned"
    NOT_APPROVED = "Your account is not approved yet"


class SessionMessages:
    PEER_ENDED = "The other user ended the chat"
    PEER_SKIPPED = "The other user skipped to the next chat"
    PEER_LEFT = "The other user left the chat"
    ENDED_ELSEWHERE = "Your chat was ended from another connection"


class ProtocolMessages:
    INVALID_FRAME = "Frames must be JSON objects with a 'type' field"
    UNKNOWN_EVENT = "Unknown event type"
    INVALID_PAYLOAD = "Invalid event payload"
