"""Admission of new chat connections.

A connection is authenticated exactly once, before any event is read from
it. Failures are raised as ``GatewayError`` subclasses so the WebSocket
endpoint can refuse the socket without touching shared state.
"""

import logging
import uuid
from dataclasses import dataclass, field
from typing import Optional

from pairchat.core.messages import GatewayMessages
from pairchat.services.identity import IdentityResolver

logger = logging.getLogger(__name__)


class GatewayError(Exception):
    """Base class for connections refused at entry."""


class Unauthenticated(GatewayError):
    pass


class Unauthorized(GatewayError):
    pass


def new_connection_id() -> str:
    return uuid.uuid4().hex


@dataclass(frozen=True)
class ConnectionContext:
    user_id: str
    alias: str
    institution: str
    connection_id: str = field(default_factory=new_connection_id)


class ConnectionGateway:
    def __init__(self, resolver: IdentityResolver) -> None:
        self._resolver = resolver

    async def authenticate(
        self,
        token: Optional[str],
        connection_id: Optional[str] = None,
    ) -> ConnectionContext:
        if not token:
            raise Unauthenticated(GatewayMessages.MISSING_TOKEN)

        identity = await self._resolver.resolve(token)
        if identity is None:
            raise Unauthenticated(GatewayMessages.INVALID_TOKEN)
        if identity.is_banned:
            logger.info("Refusing banned user %s", identity.user_id)
            raise Unauthorized(GatewayMessages.BANNED)
        if not identity.is_approved:
            logger.info("Refusing unapproved user %s", identity.user_id)
            raise Unauthorized(GatewayMessages.NOT_APPROVED)

        return ConnectionContext(
            user_id=identity.user_id,
            alias=identity.alias,
            institution=identity.institution,
            connection_id=connection_id or new_connection_id(),
        )
