"""Per-request CSP nonce generation."""

from __future__ import annotations

import secrets
from typing import Any

import structlog
from starlette.requests import Request
from starlette.responses import Response

from cspguard.errors import ContentSecurityPolicyError
from cspguard.middleware.pipeline import Middleware, RequestContext

logger = structlog.get_logger()

_NONCE_BYTES = 16


class NonceInjector(Middleware):
    """Generate a fresh nonce for each request.

    Must run before ContentSecurityPolicy so ``nonce_source`` can read it
    when the header is rendered.
    """

    async def process_request(self, request: Request, context: RequestContext) -> Request | Response | None:
        nonce = secrets.token_urlsafe(_NONCE_BYTES)
        request.state.csp_nonce = nonce
        context.extra["csp_nonce"] = nonce
        logger.debug("csp_nonce_generated", request_id=context.request_id)
        return None


def get_csp_nonce(request: Any) -> str:
    """Get the CSP nonce from request state, or "" if none was generated."""
    state = getattr(request, "state", None)
    return getattr(state, "csp_nonce", "") if state is not None else ""


def nonce_source(request: Any, response: Any) -> str:
    """Dynamic directive value rendering the request nonce as a source expression.

    Raises ContentSecurityPolicyError when NonceInjector did not run for this
    request; an empty nonce token would be sent otherwise.
    """
    nonce = get_csp_nonce(request)
    if not nonce:
        raise ContentSecurityPolicyError(
            "Content-Security-Policy nonce requested but none was generated for this request"
        )
    return f"'nonce-{nonce}'"
