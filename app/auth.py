import logging
from typing import Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from .config import TOKEN_COOKIE_NAME
from .database import get_db
from .errors import AuthenticationError
from .models import User
from .security_utils import TokenError, verify_jwt_token

logger = logging.getLogger(__name__)

# auto_error is off so the cookie fallback gets a chance
security = HTTPBearer(auto_error=False)


def extract_token(request: Request, credentials: Optional[HTTPAuthorizationCredentials]) -> Optional[str]:
    """Bearer header first, then the httpOnly token cookie"""
    if credentials and credentials.credentials:
        return credentials.credentials
    return request.cookies.get(TOKEN_COOKIE_NAME)


async def get_current_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: Session = Depends(get_db),
) -> User:
    """Resolve the authenticated user from the access token"""
    token = extract_token(request, credentials)
    if not token:
        raise AuthenticationError("Access token is required")

    try:
        payload = verify_jwt_token(token)
    except TokenError as e:
        raise AuthenticationError(str(e)) from e

    user_id = payload.get("sub")
    if not user_id:
        logger.warning(f"Token missing subject claim. Available claims: {list(payload.keys())}")
        raise AuthenticationError("Invalid token claims")

    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise AuthenticationError("User associated with token no longer exists")

    return user
