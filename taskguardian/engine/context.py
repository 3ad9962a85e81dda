"""
Task Guardian Request Context — Identity of the authenticated caller.

Built by the bearer-token dependency once the session token validates, then
passed explicitly to services and policy checks, and kept on request.state
for the request-logging middleware.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field


@dataclass(frozen=True)
class RequestContext:
    """Authenticated caller of the current request."""

    user_id: str
    role: str
    username: str = ""
    request_id: str = field(default_factory=lambda: f"req_{uuid.uuid4().hex[:12]}")
