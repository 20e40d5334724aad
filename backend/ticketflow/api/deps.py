"""API Dependencies - Correlation id and authenticated actor"""
from typing import Optional
from fastapi import Header, HTTPException, status

from ..domain.models import ActorContext
from ..domain.errors import AuthenticationError
from ..utils.jwt import get_current_user
from ..utils.logger import set_correlation_id, set_tenant_id
from ..utils.idgen import generate_correlation_id


async def get_correlation_id_dep(
    x_correlation_id: Optional[str] = Header(None, alias="X-Correlation-Id")
) -> str:
    """Reuse the caller's X-Correlation-Id or mint a new one"""
    correlation_id = x_correlation_id or generate_correlation_id()
    set_correlation_id(correlation_id)
    return correlation_id


def _unauthorized(error: AuthenticationError) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=error.to_dict(),
        headers={"WWW-Authenticate": "Bearer"}
    )


async def get_current_user_dep(
    authorization: Optional[str] = Header(None)
) -> ActorContext:
    """
    Resolve the bearer token into the acting user
    
    The actor's tenant is bound to the request's log lines.
    
    Raises:
        HTTPException: 401 if the header is missing or the token is invalid
    """
    if not authorization:
        raise _unauthorized(AuthenticationError("Authorization header is missing"))
    
    try:
        actor = get_current_user(authorization)
    except AuthenticationError as e:
        raise _unauthorized(e)
    
    set_tenant_id(actor.tenant_id)
    return actor
