import secrets
from typing import Optional

from fastapi import Depends, Header, HTTPException, status
from starlette.requests import HTTPConnection

import constants
from exceptions import CapabilityDisabled, Unauthorized
from state import CallState


def get_call_state(connection: HTTPConnection) -> CallState:
    return connection.app.state.call_state


def get_admin_secret() -> str:
    return constants.ADMIN_SECRET


def get_public_host() -> str:
    return constants.HOST


def get_call_provider() -> str:
    return constants.CALL_PROVIDER


def check_admin(authorization: Optional[str], admin_secret: str):
    if not admin_secret:
        raise CapabilityDisabled("ADMIN_SECRET not configured")
    scheme, _, supplied = (authorization or "").partition(" ")
    if scheme != "Bearer" or not secrets.compare_digest(supplied.encode(), admin_secret.encode()):
        raise Unauthorized("Unauthorized")


def require_admin(
    authorization: Optional[str] = Header(None),
    admin_secret: str = Depends(get_admin_secret),
):
    """
    No secret configured -> 501, the admin API is switched off.
    Wrong or missing bearer token -> 401.
    """
    try:
        check_admin(authorization, admin_secret)
    except CapabilityDisabled as e:
        raise HTTPException(status_code=status.HTTP_501_NOT_IMPLEMENTED, detail=str(e))
    except Unauthorized as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=str(e),
            headers={"WWW-Authenticate": "Bearer"},
        )
