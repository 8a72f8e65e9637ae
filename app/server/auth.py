"""
Request authentication.

Users sign in with the hosted identity provider, which issues HS256 JWTs
signed with the project's JWT secret. This module only verifies those tokens
and exposes the caller as a FastAPI dependency.
"""

import logging
from traceback import format_exc
from typing import Annotated, Optional

import jwt
from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from jwt.exceptions import InvalidTokenError
from pydantic import BaseModel

from config import AUTH_JWT_KEY

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

# JWT configuration
ALGORITHM = "HS256"
AUDIENCE = "authenticated"


class User(BaseModel):
    user_id: str
    email: Optional[str] = None
    role: Optional[str] = None


# Tokens are issued by the identity provider, never by this server
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="token")


def decode_access_token(token: str) -> User:
    """Verify a bearer token and return the user it was issued to."""
    payload = jwt.decode(token, AUTH_JWT_KEY, algorithms=[ALGORITHM], audience=AUDIENCE)
    user_id = payload.get("sub")
    if not user_id:
        raise InvalidTokenError("Token has no subject")
    return User(user_id=user_id, email=payload.get("email"), role=payload.get("role"))


async def get_current_user(token: Annotated[str, Depends(oauth2_scheme)]) -> User:
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )
    try:
        return decode_access_token(token)
    except InvalidTokenError:
        logger.error(f"Invalid token error\n{format_exc()}")
        raise credentials_exception
