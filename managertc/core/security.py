"""
Bearer token verification.

Tokens are issued by an external identity provider; this module only checks
the signature against the provider's JWKS and lifts the identity claims the
backend needs (user id, role, company).
"""

from typing import Annotated, Any, Optional

import jwt
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jwt import PyJWKClient
from pydantic import BaseModel, Field

from managertc.core.config import settings
from managertc.core.logging import get_logger
from managertc.core.rbac import get_highest_role

logger = get_logger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


class TokenData(BaseModel):
    sub: str
    email: Optional[str] = None
    roles: list[str] = Field(default_factory=list)
    company_id: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    avatar: Optional[str] = None

    @property
    def role(self) -> str:
        return get_highest_role(self.roles)

    def user_metadata(self) -> dict:
        """Identity as socket sessions carry it."""
        return {"companyId": self.company_id, "role": self.role}

    def snapshot(self) -> dict:
        """Creator/updater snapshot stored on records."""
        return {
            "_id": self.sub,
            "firstName": self.first_name or "",
            "lastName": self.last_name or "",
            "email": self.email or "",
            "avatar": self.avatar or "assets/img/profiles/avatar-01.jpg",
        }


_jwks_client: Optional[PyJWKClient] = None


def _get_jwks_client() -> PyJWKClient:
    global _jwks_client
    if _jwks_client is None:
        _jwks_client = PyJWKClient(settings.AUTH_JWKS_URL)
    return _jwks_client


def _claims_to_token_data(claims: dict[str, Any]) -> TokenData:
    metadata = claims.get("metadata") or claims.get("public_metadata") or {}
    roles = claims.get("roles") or metadata.get("roles") or []
    role = claims.get("role") or metadata.get("role")
    if isinstance(roles, str):
        roles = [roles]
    if role:
        roles = [*roles, role]
    return TokenData(
        sub=str(claims["sub"]),
        email=claims.get("email"),
        roles=roles,
        company_id=claims.get("company_id")
        or claims.get("companyId")
        or metadata.get("companyId"),
        first_name=claims.get("given_name") or claims.get("first_name"),
        last_name=claims.get("family_name") or claims.get("last_name"),
        avatar=claims.get("picture") or claims.get("image_url"),
    )


def decode_token(token: str) -> TokenData:
    """
    Verify a JWT and return the identity it carries.

    Raises:
        jwt.PyJWTError: signature, expiry or audience problems
        KeyError: token without a subject
    """
    signing_key = _get_jwks_client().get_signing_key_from_jwt(token)
    options = {"verify_aud": settings.JWT_AUDIENCE is not None}
    claims = jwt.decode(
        token,
        signing_key.key,
        algorithms=["RS256"],
        audience=settings.JWT_AUDIENCE,
        issuer=settings.AUTH_ISSUER_URL or None,
        options=options,
    )
    return _claims_to_token_data(claims)


async def get_current_user(
    credentials: Annotated[
        Optional[HTTPAuthorizationCredentials], Depends(bearer_scheme)
    ],
) -> TokenData:
    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    try:
        return decode_token(credentials.credentials)
    except (jwt.PyJWTError, KeyError) as e:
        logger.warning(f"Token rejected: {e}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid authentication credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )
