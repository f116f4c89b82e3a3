import asyncio
import time

import pytest
import pytest_asyncio
from aiohttp import web
from aiohttp import test_utils

from ghstargazers.api import Aborted, CancellationToken, MaxRetriesExceeded, Transport


@pytest_asyncio.fixture
async def server():
    hits = {"slow": 0, "echo": 0, "boom": 0, "broken": 0}

    async def echo(request):
        hits["echo"] += 1
        return web.json_response(
            {
                "accept": request.headers.get("Accept"),
                "authorization": request.headers.get("Authorization"),
                "user_agent": request.headers.get("User-Agent"),
                "query": dict(request.query),
            },
            headers={"X-RateLimit-Remaining": "42"},
        )

    async def slow(request):
        hits["slow"] += 1
        await asyncio.sleep(0.5)
        return web.json_response([])

    async def boom(request):
        hits["boom"] += 1
        return web.json_response({"message": "Server Error"}, status=500)

    async def broken(request):
        hits["broken"] += 1
        return web.Response(text="{not json", content_type="application/json")

    app = web.Application()
    app.router.add_get("/echo", echo)
    app.router.add_get("/slow", slow)
    app.router.add_get("/boom", boom)
    app.router.add_get("/broken", broken)
    async with test_utils.TestServer(app) as srv:
        srv.hits = hits
        yield srv


@pytest.mark.asyncio
async def test_headers_and_params_are_sent(server, settings):
    async with Transport("s3cret", CancellationToken(), settings=settings) as transport:
        resp = await transport.get(str(server.make_url("/echo")), params={"page": 2})

    assert resp.ok
    assert resp.payload["accept"] == "application/vnd.github.star+json"
    assert resp.payload["authorization"] == "Bearer s3cret"
    assert resp.payload["user_agent"] == "GitHub-Stargazers-Analyzer"
    assert resp.payload["query"] == {"page": "2"}
    assert resp.headers["x-ratelimit-remaining"] == "42"


@pytest.mark.asyncio
async def test_error_status_is_returned_not_retried(server, settings):
    async with Transport("t", CancellationToken(), settings=settings) as transport:
        resp = await transport.get(str(server.make_url("/boom")), max_attempts=3)

    assert resp.status == 500
    assert not resp.ok
    assert resp.payload == {"message": "Server Error"}
    assert server.hits["boom"] == 1


@pytest.mark.asyncio
async def test_timeouts_are_retried_then_exhausted(server, settings):
    async with Transport("t", CancellationToken(), settings=settings) as transport:
        with pytest.raises(MaxRetriesExceeded) as exc_info:
            await transport.get(str(server.make_url("/slow")), timeout=0.2, max_attempts=2)

    assert exc_info.value.attempts == 2
    assert server.hits["slow"] == 2


@pytest.mark.asyncio
async def test_undecodable_success_body_is_retried(server, settings):
    async with Transport("t", CancellationToken(), settings=settings) as transport:
        with pytest.raises(MaxRetriesExceeded):
            await transport.get(str(server.make_url("/broken")), max_attempts=3)

    assert server.hits["broken"] == 3


@pytest.mark.asyncio
async def test_cancel_aborts_in_flight_request_without_retry(server, settings):
    cancel = CancellationToken()
    async with Transport("t", cancel, settings=settings) as transport:
        request = asyncio.create_task(
            transport.get(str(server.make_url("/slow")), timeout=5, max_attempts=3)
        )
        while server.hits["slow"] == 0:
            await asyncio.sleep(0.01)
        started = time.monotonic()
        cancel.cancel()
        with pytest.raises(Aborted):
            await request

    assert time.monotonic() - started < 0.4
    assert server.hits["slow"] == 1


@pytest.mark.asyncio
async def test_cancelled_token_blocks_new_requests(server, settings):
    cancel = CancellationToken()
    cancel.cancel()
    async with Transport("t", cancel, settings=settings) as transport:
        with pytest.raises(Aborted):
            await transport.get(str(server.make_url("/echo")))

    assert server.hits["echo"] == 0
