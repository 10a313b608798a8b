"""Unit tests for OAuth2Auth token acquisition and caching.

The HTTP transport is replaced with an AsyncMock so each test controls
exactly what the token endpoint returns and can count requests.
"""

from __future__ import annotations

import asyncio
import gc
import json
from unittest.mock import AsyncMock, MagicMock

import aiohttp
import pytest

from d365.odata.auth import AuthConfig, CachedToken, OAuth2Auth, resource_from_endpoint
from d365.odata.core import (
    AuthTransportError,
    AuthType,
    MissingCredentialsError,
    TokenParseError,
    TokenRequestError,
)
from d365.odata.runtime import HTTPResponse

RESOURCE = "https://org.crm.dynamics.com"


def token_response(token: str = "token-1", expires_in: int = 3600) -> HTTPResponse:
    body = json.dumps({"access_token": token, "token_type": "Bearer", "expires_in": expires_in})
    return HTTPResponse(status=200, body=body)


def make_auth(*responses: HTTPResponse, **config) -> tuple[OAuth2Auth, MagicMock]:
    values = {"tenant_id": "tenant", "client_id": "client", "client_secret": "secret"}
    values.update(config)
    http = MagicMock()
    http.post_form = AsyncMock(side_effect=list(responses))
    http.close = AsyncMock()
    return OAuth2Auth(AuthConfig(**values), http=http), http


class TestResourceFromEndpoint:
    def test_dataverse_endpoint(self):
        assert (
            resource_from_endpoint("https://org.crm.dynamics.com/api/data/v9.2/")
            == "https://org.crm.dynamics.com"
        )

    def test_finops_endpoint(self):
        assert (
            resource_from_endpoint("https://org.operations.dynamics.com/data/")
            == "https://org.operations.dynamics.com"
        )

    def test_available_as_static_method(self):
        assert OAuth2Auth.resource_from_endpoint("https://a.example.com/x") == "https://a.example.com"

    def test_unparseable_falls_back_to_first_segments(self):
        assert resource_from_endpoint("not-a-url/with/path") == "not-a-url/with/path"


class TestConstruction:
    def test_azure_constructor(self):
        auth = OAuth2Auth.azure("my-tenant", "client-id", "secret")
        assert auth.config.auth_type is AuthType.AZURE_AD
        assert auth.config.tenant_id == "my-tenant"
        assert auth.token_endpoint == (
            "https://login.microsoftonline.com/my-tenant/oauth2/v2.0/token"
        )

    def test_adfs_token_endpoint_override(self):
        auth, _ = make_auth(
            auth_type=AuthType.ADFS,
            tenant_id="adfs",
            token_url="https://fs.example.com/adfs/oauth2/token",
            resource="https://d365.example.com",
        )
        assert auth.token_endpoint == "https://fs.example.com/adfs/oauth2/token"


class TestGetToken:
    """Test acquisition and cache behaviour."""

    @pytest.mark.asyncio
    async def test_acquires_and_caches(self):
        """Test the second call is served from cache without a request."""
        auth, http = make_auth(token_response("abc"))

        assert await auth.get_token(RESOURCE) == "abc"
        assert await auth.get_token(RESOURCE) == "abc"
        assert http.post_form.await_count == 1

    @pytest.mark.asyncio
    async def test_posts_form_to_token_endpoint(self):
        auth, http = make_auth(token_response())

        await auth.get_token(RESOURCE)

        url, form = http.post_form.await_args.args
        assert url == "https://login.microsoftonline.com/tenant/oauth2/v2.0/token"
        assert form["scope"] == "https://org.crm.dynamics.com/.default"
        assert form["grant_type"] == "client_credentials"

    @pytest.mark.asyncio
    async def test_expired_token_reacquired(self):
        auth, http = make_auth(token_response("old"), token_response("new"))
        await auth.get_token(RESOURCE)
        # Force the cached token inside the safety margin
        auth._tokens[RESOURCE] = CachedToken(access_token="old", expires_at=0.0)

        assert await auth.get_token(RESOURCE) == "new"
        assert http.post_form.await_count == 2

    @pytest.mark.asyncio
    async def test_short_lived_token_not_reused(self):
        """Test a token living less than the margin is re-acquired every call."""
        auth, http = make_auth(token_response("a", expires_in=30), token_response("b"))

        assert await auth.get_token(RESOURCE) == "a"
        assert await auth.get_token(RESOURCE) == "b"
        assert http.post_form.await_count == 2

    @pytest.mark.asyncio
    async def test_clear_cache_forces_reacquire(self):
        auth, http = make_auth(token_response("a"), token_response("b"))
        await auth.get_token(RESOURCE)

        await auth.clear_cache()

        assert auth.cached_token(RESOURCE) is None
        assert await auth.get_token(RESOURCE) == "b"

    @pytest.mark.asyncio
    async def test_cache_keyed_by_resource(self):
        """Test tokens for different audiences do not evict each other."""
        auth, http = make_auth(token_response("crm"), token_response("fno"))

        assert await auth.get_token(RESOURCE) == "crm"
        assert await auth.get_token("https://org.operations.dynamics.com") == "fno"
        assert await auth.get_token(RESOURCE) == "crm"
        assert http.post_form.await_count == 2

    @pytest.mark.asyncio
    async def test_concurrent_callers_share_one_request(self):
        """Test single-flight: parallel callers trigger one token request."""
        auth, http = make_auth()

        async def slow_post(url, form):
            await asyncio.sleep(0.01)
            return token_response("shared")

        http.post_form = AsyncMock(side_effect=slow_post)

        tokens = await asyncio.gather(*(auth.get_token(RESOURCE) for _ in range(5)))

        assert tokens == ["shared"] * 5
        assert http.post_form.await_count == 1
        assert auth._inflight == {}

    @pytest.mark.asyncio
    async def test_concurrent_failure_reaches_every_caller(self):
        auth, http = make_auth()

        async def failing_post(url, form):
            await asyncio.sleep(0.01)
            return HTTPResponse(status=401, body="invalid_client")

        http.post_form = AsyncMock(side_effect=failing_post)

        results = await asyncio.gather(
            auth.get_token(RESOURCE), auth.get_token(RESOURCE), return_exceptions=True
        )

        assert all(isinstance(r, TokenRequestError) for r in results)
        assert http.post_form.await_count == 1


class TestClearCacheDuringAcquisition:
    """Test clear_cache() against a token request already on the wire."""

    @staticmethod
    def blocking_auth(
        first: HTTPResponse,
    ) -> tuple[OAuth2Auth, MagicMock, asyncio.Event, asyncio.Event]:
        auth, http = make_auth()
        started = asyncio.Event()
        release = asyncio.Event()

        async def post(url, form):
            if http.post_form.await_count == 1:
                started.set()
                await release.wait()
                return first
            return token_response("fresh")

        http.post_form = AsyncMock(side_effect=post)
        return auth, http, started, release

    @pytest.mark.asyncio
    async def test_earlier_acquisition_not_cached(self):
        auth, http, started, release = self.blocking_auth(token_response("stale"))

        pending = asyncio.create_task(auth.get_token(RESOURCE))
        await started.wait()
        await auth.clear_cache()
        release.set()

        assert await pending == "stale"
        assert auth.cached_token(RESOURCE) is None
        assert await auth.get_token(RESOURCE) == "fresh"
        assert http.post_form.await_count == 2

    @pytest.mark.asyncio
    async def test_next_call_does_not_join_earlier_acquisition(self):
        auth, http, started, release = self.blocking_auth(token_response("stale"))

        pending = asyncio.create_task(auth.get_token(RESOURCE))
        await started.wait()
        await auth.clear_cache()

        assert await auth.get_token(RESOURCE) == "fresh"

        release.set()
        assert await pending == "stale"
        assert auth.cached_token(RESOURCE).access_token == "fresh"

    @pytest.mark.asyncio
    async def test_failure_after_all_waiters_cancelled_is_not_reported(self):
        auth, _, started, release = self.blocking_auth(
            HTTPResponse(status=401, body="invalid_client")
        )
        loop = asyncio.get_running_loop()
        reported = []
        previous = loop.get_exception_handler()
        loop.set_exception_handler(lambda _loop, context: reported.append(context))

        try:
            waiter = asyncio.create_task(auth.get_token(RESOURCE))
            await started.wait()
            task = auth._inflight[RESOURCE]

            waiter.cancel()
            with pytest.raises(asyncio.CancelledError):
                await waiter
            release.set()
            await asyncio.wait([task])

            del task, waiter
            gc.collect()
        finally:
            loop.set_exception_handler(previous)

        assert not [c for c in reported if "never retrieved" in c.get("message", "")]


class TestGetTokenErrors:
    """Test failure mapping."""

    @pytest.mark.asyncio
    async def test_non_success_status(self):
        auth, _ = make_auth(HTTPResponse(status=400, body='{"error":"invalid_scope"}'))

        with pytest.raises(TokenRequestError) as exc_info:
            await auth.get_token(RESOURCE)

        assert exc_info.value.status_code == 400
        assert "invalid_scope" in exc_info.value.body
        assert auth.cached_token(RESOURCE) is None

    @pytest.mark.asyncio
    async def test_invalid_json(self):
        auth, _ = make_auth(HTTPResponse(status=200, body="<html>oops</html>"))

        with pytest.raises(TokenParseError):
            await auth.get_token(RESOURCE)

    @pytest.mark.asyncio
    async def test_missing_fields_in_body(self):
        auth, _ = make_auth(HTTPResponse(status=200, body='{"token_type": "Bearer"}'))

        with pytest.raises(TokenParseError):
            await auth.get_token(RESOURCE)

    @pytest.mark.asyncio
    async def test_transport_failure(self):
        auth, http = make_auth()
        http.post_form = AsyncMock(side_effect=aiohttp.ClientConnectionError("refused"))

        with pytest.raises(AuthTransportError):
            await auth.get_token(RESOURCE)

    @pytest.mark.asyncio
    async def test_missing_credentials_never_hits_network(self):
        auth, http = make_auth(client_secret="")

        with pytest.raises(MissingCredentialsError, match="client_secret"):
            await auth.get_token(RESOURCE)

        http.post_form.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_failure_not_cached(self):
        """Test a failed acquisition leaves no in-flight entry behind."""
        auth, http = make_auth(HTTPResponse(status=500, body="down"), token_response("ok"))

        with pytest.raises(TokenRequestError):
            await auth.get_token(RESOURCE)

        assert await auth.get_token(RESOURCE) == "ok"


@pytest.mark.asyncio
async def test_close_closes_transport():
    auth, http = make_auth()
    await auth.close()
    http.close.assert_awaited_once()
