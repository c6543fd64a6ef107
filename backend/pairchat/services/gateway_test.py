"""Tests for connection admission."""

from datetime import timedelta

import pytest

from pairchat.core.security import create_access_token
from pairchat.services.gateway import ConnectionGateway, Unauthenticated, Unauthorized
from pairchat.services.identity import TokenIdentityResolver
from pairchat.testing import create_chat_token


@pytest.fixture
def gateway() -> ConnectionGateway:
    return ConnectionGateway(TokenIdentityResolver())


async def test_valid_token_binds_identity(gateway: ConnectionGateway) -> None:
    token = create_chat_token("alice", alias="BlueFox12", institution="MIT")

    context = await gateway.authenticate(token, connection_id="conn-1")

    assert context.user_id == "alice"
    assert context.alias == "BlueFox12"
    assert context.institution == "MIT"
    assert context.connection_id == "conn-1"


async def test_connection_id_is_generated_when_absent(gateway: ConnectionGateway) -> None:
    first = await gateway.authenticate(create_chat_token("alice"))
    second = await gateway.authenticate(create_chat_token("alice"))

    assert first.connection_id
    assert first.connection_id != second.connection_id


@pytest.mark.parametrize("token", [None, ""])
async def test_missing_token_is_unauthenticated(gateway: ConnectionGateway, token) -> None:
    with pytest.raises(Unauthenticated):
        await gateway.authenticate(token)


async def test_garbage_token_is_unauthenticated(gateway: ConnectionGateway) -> None:
    with pytest.raises(Unauthenticated):
        await gateway.authenticate("not-a-jwt")


async def test_expired_token_is_unauthenticated(gateway: ConnectionGateway) -> None:
    token = create_access_token("alice", expires_delta=timedelta(minutes=-5), approved=True)
    with pytest.raises(Unauthenticated):
        await gateway.authenticate(token)


async def test_banned_user_is_unauthorized(gateway: ConnectionGateway) -> None:
    with pytest.raises(Unauthorized):
        await gateway.authenticate(create_chat_token("alice", banned=True))


async def test_unapproved_user_is_unauthorized(gateway: ConnectionGateway) -> None:
    with pytest.raises(Unauthorized):
        await gateway.authenticate(create_chat_token("alice", approved=False))


async def test_missing_alias_gets_anonymous_fallback(gateway: ConnectionGateway) -> None:
    token = create_access_token("user-1234", approved=True)

    context = await gateway.authenticate(token)

    assert context.alias == "Anonymous1234"
    assert context.institution == ""
