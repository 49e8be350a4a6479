"""
Bearer JWT verification.
Expect Authorization: Bearer <token>, signed HS256 with AUTH_JWT_SECRET.
The `sub` claim identifies the user recorded as having generated a PDF; the raw
token is forwarded to the render service.
"""
from __future__ import annotations

import os
from typing import Annotated, Optional

import jwt
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from pydantic import BaseModel

security = HTTPBearer(auto_error=False)

JWT_ALGORITHM = "HS256"


class AuthClaims(BaseModel):
    sub: str
    email: Optional[str] = None
    org_id: Optional[str] = None
    token: str = ""


def _secret() -> str:
    secret = (os.environ.get("AUTH_JWT_SECRET") or "").strip()
    if not secret:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="AUTH_JWT_SECRET not set")
    return secret


def verify_token(token: str) -> AuthClaims:
    """Verify the session JWT and return claims."""
    try:
        payload = jwt.decode(
            token,
            _secret(),
            algorithms=[JWT_ALGORITHM],
            options={"verify_aud": False, "require": ["sub"]},
        )
    except jwt.InvalidTokenError as e:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=f"Invalid token: {e}")
    sub = str(payload.get("sub") or "").strip()
    if not sub:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token: empty subject")
    return AuthClaims(sub=sub, email=payload.get("email"), org_id=payload.get("org_id"), token=token)


def get_optional_claims(
    creds: Annotated[Optional[HTTPAuthorizationCredentials], Depends(security)],
) -> Optional[AuthClaims]:
    if not creds or not creds.credentials:
        return None
    return verify_token(creds.credentials)


def require_auth(
    claims: Annotated[Optional[AuthClaims], Depends(get_optional_claims)],
) -> AuthClaims:
    if not claims:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated")
    return claims
