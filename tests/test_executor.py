"""Tests for the REST executor and the httpx transport."""

import json

import httpx
import pytest

from restql.core.errors import ConfigurationError, MissingEndpointError, NetworkError
from restql.core.executor import RestExecutor
from restql.core.ir import Endpoint, HttpMethod, ParsedQuery, SchemaResource
from restql.core.transport import HttpxTransport, Transport


class Recorder:
    """httpx.MockTransport handler that records requests and replays responses."""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.requests = []

    def __call__(self, request):
        self.requests.append(request)
        response = self.responses.pop(0) if len(self.responses) > 1 else self.responses[0]
        if isinstance(response, Exception):
            raise response
        return response


def make_transport(recorder):
    return HttpxTransport(httpx.AsyncClient(transport=httpx.MockTransport(recorder)))


@pytest.fixture
def user_resource():
    return SchemaResource(
        name="User",
        endpoints={
            "GET": Endpoint(method="GET", path="/users/{id}"),
            "POST": Endpoint(method="POST", path="/users"),
        },
    )


def query(name="user", /, **args):
    return ParsedQuery(query_name=name, args=args)


# =============================================================================
# URL building
# =============================================================================


class TestBuildUrl:
    """Tests for RestExecutor.build_url."""

    def test_default_base_url(self):
        executor = RestExecutor({"default": "https://api.example.com"})
        assert executor.build_url("/users/{id}", {"id": 42}) == "https://api.example.com/users/42"

    def test_path_specific_base_url(self):
        executor = RestExecutor({
            "default": "https://api.example.com",
            "/posts": "https://posts.example.com/v2",
        })
        assert executor.build_url("/posts", {}) == "https://posts.example.com/v2/posts"

    def test_joins_without_slash(self):
        executor = RestExecutor({"default": "https://api.example.com"})
        assert executor.build_url("users", {}) == "https://api.example.com/users"

    def test_placeholders_are_encoded(self):
        executor = RestExecutor({"default": "https://api.example.com"})
        assert executor.build_url("/files/{name}", {"name": "a b/c"}) == (
            "https://api.example.com/files/a%20b%2Fc"
        )

    def test_missing_placeholder_and_trailing_slash(self):
        executor = RestExecutor({"default": "https://api.example.com/"})
        assert executor.build_url("users/{id}", {}) == "https://api.example.com/users"

    def test_boolean_placeholder(self):
        executor = RestExecutor({"default": "https://api.example.com"})
        assert executor.build_url("/flags/{on}", {"on": True}) == "https://api.example.com/flags/true"

    def test_no_base_url(self):
        executor = RestExecutor({"/posts": "https://posts.example.com"})
        with pytest.raises(ConfigurationError, match="No base URL found for path: /users"):
            executor.build_url("/users", {})


# =============================================================================
# Requests
# =============================================================================


class TestExecute:
    """Tests for RestExecutor.execute."""

    async def test_get_with_query_string(self, user_resource):
        recorder = Recorder(httpx.Response(200, json={"id": 1}))
        executor = RestExecutor(
            {"default": "https://api.example.com"},
            {"Authorization": "Bearer t"},
            make_transport(recorder),
        )
        result = await executor.execute(
            query(id="$id", active="true"), user_resource, {"id": 1}, HttpMethod.GET
        )

        assert result == {"id": 1}
        request = recorder.requests[0]
        assert request.method == "GET"
        assert str(request.url) == "https://api.example.com/users/1?id=1&active=true"
        assert request.headers["Authorization"] == "Bearer t"
        assert request.headers["Content-Type"] == "application/json"
        assert request.content == b""

    async def test_unsupplied_variable_dropped(self, user_resource):
        recorder = Recorder(httpx.Response(200, json=[]))
        executor = RestExecutor({"default": "https://api.example.com"}, transport=make_transport(recorder))
        await executor.execute(query(id="$id", q="x"), user_resource, {}, HttpMethod.GET)
        assert str(recorder.requests[0].url) == "https://api.example.com/users?q=x"

    async def test_preresolved_args(self, user_resource):
        recorder = Recorder(httpx.Response(200, json={}))
        executor = RestExecutor({"default": "https://api.example.com"}, transport=make_transport(recorder))
        await executor.execute(
            query(id="$id"), user_resource, {}, HttpMethod.GET, args={"id": 5, "skip": None}
        )
        assert str(recorder.requests[0].url) == "https://api.example.com/users/5?id=5"

    async def test_post_sends_json_body(self, user_resource):
        recorder = Recorder(httpx.Response(201, json={"id": 9, "name": "Ann"}))
        executor = RestExecutor({"default": "https://api.example.com"}, transport=make_transport(recorder))
        result = await executor.execute(
            query("createUser", name="$name"), user_resource, {"name": "Ann"}, HttpMethod.POST
        )

        assert result == {"id": 9, "name": "Ann"}
        request = recorder.requests[0]
        assert request.method == "POST"
        assert str(request.url) == "https://api.example.com/users"
        assert json.loads(request.content) == {"name": "Ann"}

    async def test_post_keeps_null_in_body(self, user_resource):
        recorder = Recorder(httpx.Response(200, json={"id": 9}))
        executor = RestExecutor({"default": "https://api.example.com"}, transport=make_transport(recorder))
        await executor.execute(
            query("createUser", name="$name", nickname="$nick"),
            user_resource,
            {"name": "Ann", "nick": None},
            HttpMethod.POST,
        )
        assert json.loads(recorder.requests[0].content) == {"name": "Ann", "nickname": None}

    async def test_missing_endpoint(self, user_resource):
        executor = RestExecutor({"default": "https://api.example.com"})
        with pytest.raises(MissingEndpointError, match='DELETE endpoint not found for resource "user"'):
            await executor.execute(query(), user_resource, {}, HttpMethod.DELETE)

    async def test_empty_body_returns_none(self, user_resource):
        recorder = Recorder(httpx.Response(204))
        executor = RestExecutor({"default": "https://api.example.com"}, transport=make_transport(recorder))
        assert await executor.execute(query(), user_resource, {}, HttpMethod.GET) is None


class TestRetries:
    """Tests for retry behaviour."""

    @pytest.fixture
    def sleeps(self):
        return []

    @pytest.fixture
    def fake_sleep(self, sleeps):
        async def sleep(delay):
            sleeps.append(delay)
        return sleep

    async def test_retries_server_errors_with_backoff(self, user_resource, sleeps, fake_sleep):
        recorder = Recorder(
            httpx.Response(503),
            httpx.Response(500),
            httpx.Response(200, json={"ok": True}),
        )
        executor = RestExecutor(
            {"default": "https://api.example.com"},
            transport=make_transport(recorder),
            max_retries=3,
            retry_delay=0.5,
            sleep=fake_sleep,
        )
        assert await executor.execute(query(), user_resource, {}, HttpMethod.GET) == {"ok": True}
        assert len(recorder.requests) == 3
        assert sleeps == [0.5, 1.0]

    async def test_gives_up_after_max_retries(self, user_resource, sleeps, fake_sleep):
        recorder = Recorder(httpx.Response(502))
        executor = RestExecutor(
            {"default": "https://api.example.com"},
            transport=make_transport(recorder),
            max_retries=2,
            retry_delay=1,
            sleep=fake_sleep,
        )
        with pytest.raises(NetworkError) as exc_info:
            await executor.execute(query(), user_resource, {}, HttpMethod.GET)
        assert exc_info.value.status_code == 502
        assert len(recorder.requests) == 3
        assert sleeps == [1, 2]

    async def test_client_errors_not_retried(self, user_resource, sleeps, fake_sleep):
        recorder = Recorder(httpx.Response(404))
        executor = RestExecutor(
            {"default": "https://api.example.com"},
            transport=make_transport(recorder),
            max_retries=3,
            sleep=fake_sleep,
        )
        with pytest.raises(NetworkError) as exc_info:
            await executor.execute(query(), user_resource, {}, HttpMethod.GET)
        assert exc_info.value.status_code == 404
        assert exc_info.value.url == "https://api.example.com/users"
        assert len(recorder.requests) == 1
        assert sleeps == []

    async def test_connection_errors_retried(self, user_resource, sleeps, fake_sleep):
        recorder = Recorder(
            httpx.ConnectError("refused"),
            httpx.Response(200, json={"ok": True}),
        )
        executor = RestExecutor(
            {"default": "https://api.example.com"},
            transport=make_transport(recorder),
            max_retries=1,
            retry_delay=0.1,
            sleep=fake_sleep,
        )
        assert await executor.execute(query(), user_resource, {}, HttpMethod.GET) == {"ok": True}
        assert sleeps == [0.1]


# =============================================================================
# Transport
# =============================================================================


class TestHttpxTransport:
    """Tests for HttpxTransport."""

    async def test_connection_error_has_status_zero(self):
        transport = make_transport(Recorder(httpx.ConnectError("refused")))
        with pytest.raises(NetworkError) as exc_info:
            await transport.request("GET", "https://api.example.com/x", {})
        assert exc_info.value.status_code == 0
        assert exc_info.value.is_retryable

    async def test_invalid_json(self):
        transport = make_transport(Recorder(httpx.Response(200, content=b"<html>")))
        with pytest.raises(NetworkError, match="not valid JSON"):
            await transport.request("GET", "https://api.example.com/x", {})

    async def test_does_not_close_borrowed_client(self):
        client = httpx.AsyncClient(transport=httpx.MockTransport(Recorder(httpx.Response(200))))
        transport = HttpxTransport(client)
        await transport.aclose()
        assert not client.is_closed
        await client.aclose()

    async def test_closes_own_client(self):
        transport = HttpxTransport(timeout=5)
        client = await transport._get_client()
        await transport.aclose()
        assert client.is_closed

    def test_follows_protocol(self):
        assert isinstance(HttpxTransport(), Transport)
