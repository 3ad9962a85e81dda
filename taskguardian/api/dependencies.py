"""
FastAPI dependencies — service container and bearer-token authentication.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from fastapi import Request, Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from taskguardian.engine.context import RequestContext
from taskguardian.engine.errors import TaskGuardianSessionError
from taskguardian.engine.logging import log, log_security_event
from taskguardian.engine.security import SessionManager
from taskguardian.services.auth import AuthService
from taskguardian.services.tasks import TaskService
from taskguardian.services.users import UserService

# Documents the scheme in OpenAPI; the raw header is parsed below so that a
# token sent without the "Bearer " prefix is accepted too.
bearer_scheme = HTTPBearer(auto_error=False, bearerFormat="JWT")


@dataclass(frozen=True)
class Services:
    sessions: SessionManager
    auth: AuthService
    tasks: TaskService
    users: UserService


def get_services(request: Request) -> Services:
    return request.app.state.services


async def get_request_context(
    request: Request,
    _credentials: Optional[HTTPAuthorizationCredentials] = Security(bearer_scheme),
) -> RequestContext:
    """
    Validate the Authorization header and expose the caller.

    Raises:
        MissingTokenError / InvalidTokenError (401).
    """
    services: Services = request.app.state.services
    try:
        identity = services.sessions.validate_header(request.headers.get("Authorization"))
    except TaskGuardianSessionError as e:
        log(log_security_event(
            event="token_rejected",
            area="auth",
            reason=e.context.get("reason", e.message),
            operation=f"{request.method} {request.url.path}",
        ))
        raise

    ctx = RequestContext(user_id=identity.user_id, role=identity.role, username=identity.username)
    request.state.request_context = ctx
    return ctx
