"""Shared API dependencies for authentication and service lookup."""

import logging
from typing import Annotated

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from fono_chat.core.errors import FonoError, UnauthenticatedError
from fono_chat.core.security import AuthContext, decode_access_token
from fono_chat.core.settings import Settings
from fono_chat.services.message_service import MessageService

logger = logging.getLogger(__name__)

# Missing credentials are not rejected here; operations decide with a 401.
bearer_scheme = HTTPBearer(auto_error=False)


def get_app_settings(request: Request) -> Settings:
    """Return the settings the running application was built with."""
    return request.app.state.settings


SettingsDep = Annotated[Settings, Depends(get_app_settings)]


def get_auth_context(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(bearer_scheme)],
    settings: SettingsDep,
) -> AuthContext | None:
    """Return the verified principal, or None when no token was sent.

    Raises:
        HTTPException: If a token was sent but does not verify.
    """
    if credentials is None:
        return None
    try:
        return decode_access_token(credentials.credentials, settings)
    except UnauthenticatedError as err:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=err.detail,
            headers={"WWW-Authenticate": "Bearer"},
        ) from err


def get_message_service(request: Request) -> MessageService:
    """Return the service built at application startup."""
    return request.app.state.message_service


def to_http_exception(err: FonoError) -> HTTPException:
    """Map a domain failure to its public status and message."""
    if err.status_code >= status.HTTP_500_INTERNAL_SERVER_ERROR:
        logger.error("Request failed: %s", err, exc_info=err)
    return HTTPException(status_code=err.status_code, detail=err.detail)


AuthContextDep = Annotated[AuthContext | None, Depends(get_auth_context)]
MessageServiceDep = Annotated[MessageService, Depends(get_message_service)]
