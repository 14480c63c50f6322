# User_DB_Handling.py
# Description: Identifies the calling user based on application mode.
#
# Imports
from typing import Optional
#
# 3rd-Party Libraries
from fastapi import Header, HTTPException, status
from loguru import logger
from pydantic import BaseModel
#
# Local Imports
from scheduler_Server_API.app.core.config import settings
#
#######################################################################################################################

# --- User Model ---
class User(BaseModel):
    username: str
    # Bearer token forwarded to the row store in multi-user mode
    token: Optional[str] = None
    is_active: bool = True


_single_user_instance = User(username="single_user")


def _bearer_token(authorization: Optional[str]) -> Optional[str]:
    if not authorization:
        return None
    scheme, _, credentials = authorization.partition(" ")
    if scheme.lower() == "bearer" and credentials:
        return credentials.strip()
    # Appwrite functions pass the raw JWT without a scheme
    return authorization.strip() if not credentials else None


async def get_request_user(
    api_key: Optional[str] = Header(None, alias="X-API-KEY"),
    authorization: Optional[str] = Header(None),
) -> User:
    """
    Determines the current user based on the application mode.

    - Single-User Mode: Verifies X-API-KEY against settings["SINGLE_USER_API_KEY"].
    - Multi-User Mode: Requires a bearer token. The token is not validated here; it is
      handed to the row store, which authenticates every request made with it.
    """
    if settings["SINGLE_USER_MODE"]:
        if api_key is None:
            logger.warning("Single-User Mode: X-API-KEY header is missing.")
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="X-API-KEY header required for single-user mode"
            )
        if api_key != settings["SINGLE_USER_API_KEY"]:
            logger.warning(f"Single-User Mode: Invalid X-API-KEY '{api_key[:5]}...'")
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid X-API-KEY")
        return _single_user_instance

    token = _bearer_token(authorization)
    if not token:
        logger.warning("Multi-User Mode: Authorization header is missing or malformed.")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return User(username="jwt_user", token=token)

#
# End of User_DB_Handling.py
#######################################################################################################################
