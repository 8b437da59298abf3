from fastapi import Depends
from fastapi_clerk_auth import ClerkConfig, ClerkHTTPBearer, HTTPAuthorizationCredentials
from jwt import PyJWKClient, InvalidTokenError, PyJWKClientConnectionError, PyJWKClientError
from app.configs.app_settings import settings
from app.custom_error import ValidationError
from typing import Optional
import asyncio
import jwt
import logging

logger = logging.getLogger(__name__)

# HTTP requests: "clerk_auth_guard" reads the Authorization: Bearer <JWT> header, validates the token against the
# Clerk JWKS and hands back the decoded credentials. Clerk puts its user id in the "sub" claim.
#
# Websocket handshakes cannot carry that header from a browser, so the token arrives as a query parameter and is
# verified against the same JWKS with PyJWT (the library fastapi-clerk-auth itself verifies with).

clerk_config = ClerkConfig(jwks_url=settings.CLERK_JWKS_URL)
clerk_auth_guard = ClerkHTTPBearer(config=clerk_config)

_jwks_client = PyJWKClient(settings.CLERK_JWKS_URL)


class SessionTokenError(Exception):
    pass


async def get_current_clerk_user_id(credentials: Optional[HTTPAuthorizationCredentials] = Depends(clerk_auth_guard)) -> str:
    """Extract clerk user ID from JWT token"""
    if not credentials:
        raise ValidationError("Authentication required")

    clerk_user_id = credentials.decoded.get("sub")
    if not clerk_user_id:
        raise ValidationError("Invalid token: user ID not found")

    return clerk_user_id


async def verify_clerk_session_token(token: Optional[str]) -> str:
    """Verify a Clerk session JWT outside of an HTTP request and return its clerk user ID"""
    if not token:
        raise SessionTokenError("Authentication error: No token provided")

    try:
        # JWKS fetch is blocking network I/O, keep it off the event loop
        signing_key = await asyncio.to_thread(_jwks_client.get_signing_key_from_jwt, token)
        decoded = jwt.decode(token, signing_key.key, algorithms=["RS256"], options={"verify_aud": False})
    except PyJWKClientConnectionError:
        # an unreachable JWKS endpoint is a server fault, not a bad token
        raise
    except (InvalidTokenError, PyJWKClientError) as e:
        logger.error(f"Session token rejected - {str(e)}")
        raise SessionTokenError("Authentication error: Invalid token") from e

    clerk_user_id = decoded.get("sub")
    if not clerk_user_id:
        raise SessionTokenError("Authentication error: user ID not found")

    return clerk_user_id
