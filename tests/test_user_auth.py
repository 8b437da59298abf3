"""Tests for websocket session token verification against the Clerk JWKS."""

from unittest.mock import MagicMock

import jwt
import pytest
from app.utils.user_auth import SessionTokenError, verify_clerk_session_token
from cryptography.hazmat.primitives.asymmetric import rsa
from jwt import PyJWKClientConnectionError, PyJWKClientError


@pytest.fixture
def signing_key():
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture
def jwks_client(monkeypatch, signing_key):
    client = MagicMock()
    client.get_signing_key_from_jwt.return_value = MagicMock(key=signing_key.public_key())
    monkeypatch.setattr("app.utils.user_auth._jwks_client", client)
    return client


@pytest.mark.asyncio
async def test_valid_token_returns_clerk_user_id(jwks_client, signing_key):
    token = jwt.encode({"sub": "clerk_alice"}, signing_key, algorithm="RS256")

    assert await verify_clerk_session_token(token) == "clerk_alice"


@pytest.mark.asyncio
async def test_missing_token_is_rejected():
    with pytest.raises(SessionTokenError) as exc_info:
        await verify_clerk_session_token(None)

    assert str(exc_info.value) == "Authentication error: No token provided"


@pytest.mark.asyncio
async def test_token_signed_by_another_key_is_rejected(jwks_client):
    other_key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    token = jwt.encode({"sub": "clerk_alice"}, other_key, algorithm="RS256")

    with pytest.raises(SessionTokenError) as exc_info:
        await verify_clerk_session_token(token)

    assert str(exc_info.value) == "Authentication error: Invalid token"


@pytest.mark.asyncio
async def test_token_without_subject_is_rejected(jwks_client, signing_key):
    token = jwt.encode({"sid": "sess_1"}, signing_key, algorithm="RS256")

    with pytest.raises(SessionTokenError) as exc_info:
        await verify_clerk_session_token(token)

    assert str(exc_info.value) == "Authentication error: user ID not found"


@pytest.mark.asyncio
async def test_unknown_signing_key_is_rejected(jwks_client):
    jwks_client.get_signing_key_from_jwt.side_effect = PyJWKClientError('Unable to find a signing key that matches: "kid_1"')

    with pytest.raises(SessionTokenError):
        await verify_clerk_session_token("header.payload.signature")


@pytest.mark.asyncio
async def test_unreachable_jwks_endpoint_is_not_a_token_error(jwks_client):
    jwks_client.get_signing_key_from_jwt.side_effect = PyJWKClientConnectionError("Fail to fetch data from the url, err: timed out")

    with pytest.raises(PyJWKClientConnectionError):
        await verify_clerk_session_token("header.payload.signature")
