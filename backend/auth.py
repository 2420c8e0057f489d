"""
Authentication module for API key and JWT validation.
Provides FastAPI dependencies for securing endpoints.

Supports two JWT types:
- Service JWTs: HS256, validated via the shared jwt_secret
- Clerk JWTs: RS256, validated via JWKS

The returned user id is recorded as the actor of clinician overrides and
as the resolver of flags.
"""
import jwt
from fastapi import HTTPException, Header
from typing import Optional
import logging

from backend.settings import get_settings

logger = logging.getLogger(__name__)

SERVICE_JWT_ALGORITHM = "HS256"

_jwks_clients: dict[str, jwt.PyJWKClient] = {}


def get_jwks_client() -> Optional[jwt.PyJWKClient]:
    """Get or create the JWKS client for Clerk JWT validation."""
    domain = get_settings().clerk_domain
    if not domain:
        return None
    if domain not in _jwks_clients:
        _jwks_clients[domain] = jwt.PyJWKClient(f"https://{domain}/.well-known/jwks.json")
    return _jwks_clients[domain]


async def get_current_user(
    authorization: Optional[str] = Header(None),
    x_api_key: Optional[str] = Header(None, alias="X-API-Key")
) -> str:
    """
    Authenticate via API key OR bearer JWT.
    Returns user_id string.

    Usage:
        @router.patch("/{program_id}/override")
        async def override(user_id: str = Depends(get_current_user)):
            ...
    """
    # Option 1: API Key authentication
    if x_api_key:
        return validate_api_key(x_api_key)

    # Option 2: JWT authentication
    if authorization:
        return validate_jwt(authorization)

    raise HTTPException(
        status_code=401,
        detail="Missing authentication. Provide Authorization header or X-API-Key."
    )


def validate_api_key(api_key: str) -> str:
    """
    Validate API key and return user_id.

    API key format options:
    - Simple: "sk_test_abc123" -> returns "admin"
    - With user: "sk_test_abc123:clinician_12345" -> returns "clinician_12345"
    """
    valid_keys = get_settings().api_keys_list

    if not valid_keys:
        logger.warning("No API keys configured (API_KEYS env var empty)")
        raise HTTPException(status_code=401, detail="API key authentication not configured")

    key_part = api_key.split(":")[0]
    if key_part not in valid_keys:
        raise HTTPException(status_code=401, detail="Invalid API key")

    # Extract user_id if provided (format: "key:user_id")
    if ":" in api_key:
        return api_key.split(":", 1)[1]

    return "admin"


def validate_jwt(authorization: str) -> str:
    """
    Validate JWT and return user_id.

    HS256 tokens are checked against jwt_secret; anything else is treated
    as a Clerk RS256 token.
    """
    if not authorization.startswith("Bearer "):
        raise HTTPException(status_code=401, detail="Invalid authorization header format")

    token = authorization.split(" ", 1)[1]

    try:
        header = jwt.get_unverified_header(token)
    except jwt.InvalidTokenError:
        raise HTTPException(status_code=401, detail="Invalid token format")

    if header.get("alg") == SERVICE_JWT_ALGORITHM:
        return validate_service_jwt(token)
    return validate_clerk_jwt(token)


def _subject(payload: dict) -> str:
    user_id = payload.get("sub")
    if not user_id:
        raise HTTPException(status_code=401, detail="Token missing user ID")
    return user_id


def validate_service_jwt(token: str) -> str:
    """Validate an HS256 JWT signed with jwt_secret and return user_id."""
    try:
        payload = jwt.decode(
            token,
            get_settings().jwt_secret,
            algorithms=[SERVICE_JWT_ALGORITHM],
            options={"verify_aud": False},
        )
    except jwt.ExpiredSignatureError:
        raise HTTPException(status_code=401, detail="Token expired")
    except jwt.InvalidTokenError as e:
        logger.warning(f"Invalid service JWT: {e}")
        raise HTTPException(status_code=401, detail=f"Invalid token: {str(e)}")
    return _subject(payload)


def validate_clerk_jwt(token: str) -> str:
    """Validate Clerk JWT (RS256 via JWKS) and return user_id."""
    jwks_client = get_jwks_client()

    if not jwks_client:
        raise HTTPException(
            status_code=500,
            detail="JWT validation not configured (missing CLERK_DOMAIN)"
        )

    try:
        signing_key = jwks_client.get_signing_key_from_jwt(token)
        payload = jwt.decode(
            token,
            signing_key.key,
            algorithms=["RS256"],
            options={"verify_aud": False}
        )
    except jwt.ExpiredSignatureError:
        raise HTTPException(status_code=401, detail="Token expired")
    except jwt.InvalidTokenError as e:
        raise HTTPException(status_code=401, detail=f"Invalid token: {str(e)}")
    return _subject(payload)
