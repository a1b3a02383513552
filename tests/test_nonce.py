"""Tests for per-request nonce generation."""

from __future__ import annotations

import pytest
from starlette.responses import Response

from cspguard.errors import ContentSecurityPolicyError
from cspguard.middleware.content_security_policy import (
    HEADER_NAME,
    ContentSecurityPolicy,
    content_security_policy,
)
from cspguard.middleware.nonce import NonceInjector, get_csp_nonce, nonce_source
from cspguard.middleware.pipeline import MiddlewarePipeline, RequestContext
from tests.helpers.asgi import make_request


class TestNonceInjector:
    @pytest.mark.asyncio
    async def test_sets_nonce_on_request_and_context(self):
        request = make_request()
        ctx = RequestContext(request=request)

        result = await NonceInjector().process_request(request, ctx)

        assert result is None
        assert request.state.csp_nonce == ctx.extra["csp_nonce"]
        assert len(request.state.csp_nonce) >= 16

    @pytest.mark.asyncio
    async def test_fresh_nonce_per_request(self):
        first, second = make_request(), make_request()
        mw = NonceInjector()
        await mw.process_request(first, RequestContext(request=first))
        await mw.process_request(second, RequestContext(request=second))

        assert get_csp_nonce(first) != get_csp_nonce(second)


class TestNonceSource:
    def test_renders_nonce_expression(self):
        request = make_request()
        request.state.csp_nonce = "abc123"
        assert nonce_source(request, None) == "'nonce-abc123'"

    def test_missing_state(self):
        assert get_csp_nonce(object()) == ""
        assert get_csp_nonce(make_request()) == ""

    def test_without_injector_raises(self):
        with pytest.raises(ContentSecurityPolicyError, match="none was generated"):
            nonce_source(make_request(), None)

    def test_without_injector_handler_fails_request(self):
        handler = content_security_policy({
            "directives": {"defaultSrc": ["'self'"], "scriptSrc": [nonce_source]},
        })
        response = Response(content="ok")
        calls: list[tuple] = []

        handler(make_request(), response, lambda *args: calls.append(args))

        assert HEADER_NAME not in response.headers
        assert isinstance(calls[0][0], ContentSecurityPolicyError)

    @pytest.mark.asyncio
    async def test_pipeline_embeds_request_nonce(self):
        pipeline = MiddlewarePipeline()
        pipeline.add(ContentSecurityPolicy({
            "directives": {"defaultSrc": ["'self'"], "scriptSrc": ["'self'", nonce_source]},
        }))
        pipeline.add(NonceInjector())

        request = make_request()
        ctx = RequestContext(request=request)
        await pipeline.process_request(request, ctx)
        response = await pipeline.process_response(Response(content="ok"), ctx)

        nonce = ctx.extra["csp_nonce"]
        assert response.headers[HEADER_NAME] == (
            f"default-src 'self';script-src 'self' 'nonce-{nonce}'"
        )
