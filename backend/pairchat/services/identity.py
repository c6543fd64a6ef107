"""Identity collaborator for the chat gateway.

Accounts live in the external auth service; this module only turns a
credential token into the identity fields the real-time core needs.
"""

from dataclasses import dataclass
from typing import Optional, Protocol

from jose import JWTError
from pydantic import ValidationError

from pairchat.core.security import decode_access_token
from pairchat.schemas.token import TokenPayload


@dataclass(frozen=True)
class Identity:
    user_id: str
    alias: str
    institution: str
    is_approved: bool
    is_banned: bool


class IdentityResolver(Protocol):
    async def resolve(self, token: str) -> Optional[Identity]:
        """Return the identity behind *token*, or ``None`` when it is not valid."""
        ...


class TokenIdentityResolver:
    """Resolves identities from the signed claims of an access token."""

    async def resolve(self, token: str) -> Optional[Identity]:
        try:
            payload = decode_access_token(token)
            token_data = TokenPayload(**payload)
        except (JWTError, ValidationError):
            return None

        if not token_data.sub:
            return None

        return Identity(
            user_id=token_data.sub,
            alias=token_data.alias or f"Anonymous{token_data.sub[-4:]}",
            institution=token_data.institution or "",
            is_approved=token_data.approved,
            is_banned=token_data.banned,
        )
