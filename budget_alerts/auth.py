# auth.py
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import jwt, JWTError

from .config import get_jwt_audience, get_jwt_secret

# Security scheme
security = HTTPBearer()


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def get_current_user(credentials: HTTPAuthorizationCredentials = Depends(security)) -> str:
    """
    Verifies the bearer JWT and returns the user_id (sub).
    The user id doubles as the personal budget scope.
    """
    secret = get_jwt_secret()
    if not secret:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="JWT Secret not configured"
        )

    try:
        # HS256 with the shared secret; audience comes from JWT_AUDIENCE
        claims = jwt.decode(
            credentials.credentials,
            secret,
            algorithms=["HS256"],
            audience=get_jwt_audience(),
        )
    except JWTError:
        raise _unauthorized("Invalid authentication credentials")

    user_id = claims.get("sub")
    if not user_id:
        raise _unauthorized("Could not validate credentials")
    return user_id
