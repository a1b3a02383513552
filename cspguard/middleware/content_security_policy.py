"""Content-Security-Policy header middleware."""

from __future__ import annotations

from typing import Any, Callable, Mapping

import structlog
from starlette.requests import Request
from starlette.responses import Response

from cspguard.config.directive_defaults import (
    DANGEROUSLY_DISABLE_DEFAULT_SRC,
    get_default_directives,
)
from cspguard.middleware.csp_builder import NormalizedPolicy, normalize_directives
from cspguard.middleware.pipeline import Middleware, RequestContext

logger = structlog.get_logger()

HEADER_NAME = "Content-Security-Policy"
REPORT_ONLY_HEADER_NAME = "Content-Security-Policy-Report-Only"

NextFunction = Callable[..., None]
Handler = Callable[[Any, Any, NextFunction], None]

# Options older configurations may still carry; accepted and ignored.
_DEPRECATED_OPTIONS: dict[str, str] = {
    "loose": "no longer needs the `loose` parameter. You should remove it.",
    "setAllHeaders": (
        "no longer supports the `setAllHeaders` parameter. Legacy CSP header "
        "names are not sent."
    ),
    "disableAndroid": (
        "no longer does browser sniffing, so you can remove the `disableAndroid` option."
    ),
    "browserSniff": (
        "no longer does browser sniffing, so you can remove the `browserSniff` option."
    ),
}
_OPTION_ALIASES: dict[str, str] = {
    "set_all_headers": "setAllHeaders",
    "disable_android": "disableAndroid",
    "browser_sniff": "browserSniff",
}


def get_header_name(report_only: bool) -> str:
    return REPORT_ONLY_HEADER_NAME if report_only else HEADER_NAME


def _warn_deprecated_options(options: Mapping[str, Any], log: Any) -> None:
    for key in options:
        canonical = _OPTION_ALIASES.get(key, key)
        message = _DEPRECATED_OPTIONS.get(canonical)
        if message is not None:
            log.warning(
                "csp_deprecated_option",
                option=key,
                detail=f"Content-Security-Policy middleware {message}",
            )


def _is_report_only(options: Mapping[str, Any]) -> bool:
    if "report_only" in options:
        return bool(options["report_only"])
    return bool(options.get("reportOnly", False))


def content_security_policy(
    options: Mapping[str, Any] | None = None,
    *,
    logger: Any = None,
) -> Handler:
    """Validate ``options`` once and return a per-request header handler.

    The handler is called as ``handler(request, response, next_)``. On success
    it sets the policy header on ``response.headers`` and calls ``next_()``;
    otherwise it calls ``next_(error)`` and leaves the response untouched.

    Invalid options raise a ContentSecurityPolicyError here, before any
    request is handled. ``logger`` receives deprecation notices and defaults
    to this module's structlog logger.
    """
    options = options or {}
    log = logger if logger is not None else structlog.get_logger()

    _warn_deprecated_options(options, log)

    header_name = get_header_name(_is_report_only(options))
    policy = normalize_directives(options)

    def content_security_policy_handler(request: Any, response: Any, next_: NextFunction) -> None:
        try:
            value = policy.render(request, response)
        except Exception as exc:
            next_(exc)
            return
        response.headers[header_name] = value
        next_()

    content_security_policy_handler.header_name = header_name  # type: ignore[attr-defined]
    content_security_policy_handler.policy = policy  # type: ignore[attr-defined]
    return content_security_policy_handler


content_security_policy.get_default_directives = get_default_directives  # type: ignore[attr-defined]
content_security_policy.dangerously_disable_default_src = DANGEROUSLY_DISABLE_DEFAULT_SRC  # type: ignore[attr-defined]


class ContentSecurityPolicy(Middleware):
    """Set the Content-Security-Policy header on every response.

    - Policy is normalized once, at construction; bad options fail fast
    - Dynamic directive values are resolved per request from ``context.request``
    - A render failure is raised into the pipeline, which refuses the response
    """

    def __init__(self, options: Mapping[str, Any] | None = None, *, logger: Any = None) -> None:
        self._handler = content_security_policy(options, logger=logger)

    @property
    def header_name(self) -> str:
        return self._handler.header_name  # type: ignore[attr-defined]

    @property
    def policy(self) -> NormalizedPolicy:
        return self._handler.policy  # type: ignore[attr-defined]

    async def process_request(self, request: Request, context: RequestContext) -> Request | Response | None:
        return None

    async def process_response(self, response: Response, context: RequestContext) -> Response:
        errors: list[Exception] = []

        def _next(error: Exception | None = None) -> None:
            if error is not None:
                errors.append(error)

        self._handler(context.request, response, _next)
        if errors:
            error = errors[0]
            logger.warning(
                "csp_render_failed",
                directive=getattr(error, "directive", None),
                error=str(error),
            )
            raise error
        return response
