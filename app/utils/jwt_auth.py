"""
JWT verification for CMS requests.
Tokens are issued by the authentication service; this module only checks them
and resolves the acting admin. create_access_token exists for operational
scripts and tests.
"""
from datetime import datetime, timedelta, timezone
from typing import Optional
from jose import JWTError, jwt
from fastapi import HTTPException, status, Header, Request
from app.config import settings


ALGORITHM = "HS256"
ACCESS_TOKEN_EXPIRE_MINUTES = 60
CMS_TOKEN_COOKIE = "cms_token"


def _unauthorized(error: str, message: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail={"error": error, "message": message},
        headers={"WWW-Authenticate": "Bearer"},
    )


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """
    Sign an access token.

    Args:
        data: Claims to embed; "sub" must hold the admin id
        expires_delta: Lifetime, ACCESS_TOKEN_EXPIRE_MINUTES by default
    """
    now = datetime.now(timezone.utc)
    claims = dict(data)
    claims.update({
        "exp": now + (expires_delta or timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES)),
        "iat": now,
        "type": "access",
    })
    return jwt.encode(claims, settings.JWT_SECRET_KEY, algorithm=ALGORITHM)


def verify_token(token: str) -> dict:
    """
    Decode an access token and check its type and subject.

    Raises:
        HTTPException: 401 for bad signatures, expiry, wrong type or missing subject
    """
    try:
        payload = jwt.decode(token, settings.JWT_SECRET_KEY, algorithms=[ALGORITHM])
    except JWTError:
        raise _unauthorized("Invalid token", "Authentication token is invalid or expired")

    if payload.get("type") != "access":
        raise _unauthorized("Invalid token type", "Token is not an access token")
    if not payload.get("sub"):
        raise _unauthorized("Invalid token", "Token has no subject")
    return payload


def _bearer_token(authorization: Optional[str]) -> Optional[str]:
    if not authorization:
        return None
    scheme, _, credentials = authorization.partition(" ")
    if scheme.lower() != "bearer" or not credentials.strip():
        return None
    return credentials.strip()


def verify_cms_token(
    request: Request,
    authorization: Optional[str] = Header(None, description="Bearer token (the cms_token cookie takes precedence)")
) -> dict:
    """
    FastAPI dependency guarding every CMS route.
    Reads the httpOnly cms_token cookie first, then the Authorization header.
    """
    token = request.cookies.get(CMS_TOKEN_COOKIE) or _bearer_token(authorization)
    if not token:
        raise _unauthorized("Missing token", "Authentication required")
    return verify_token(token)


def actor_id_from_token(payload: dict) -> str:
    """Identifier of the authenticated admin (the token subject)."""
    return str(payload["sub"])
