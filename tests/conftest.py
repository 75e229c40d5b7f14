"""
Shared fixtures: an in-process aiohttp server factory and a recording sleep.
"""
import asyncio
from typing import Awaitable, Callable, Dict, List

import pytest
import pytest_asyncio
from aiohttp import web
from aiohttp.test_utils import TestServer

from jobvet.config import Settings
from jobvet.fetchers.http import FetchOptions, ResilientFetcher

Handler = Callable[[web.Request], Awaitable[web.StreamResponse]]


class RecordingSleep:
    """Stand-in for asyncio.sleep that records requested delays and returns at once."""

    def __init__(self):
        self.delays: List[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)
        await asyncio.sleep(0)


@pytest.fixture
def sleeper() -> RecordingSleep:
    return RecordingSleep()


@pytest_asyncio.fixture
async def make_server():
    """Start an aiohttp app serving {path: handler}; returns the TestServer."""
    servers: List[TestServer] = []

    async def _make(routes: Dict[str, Handler]) -> TestServer:
        app = web.Application()
        for path, handler in routes.items():
            app.router.add_get(path, handler)
        server = TestServer(app)
        await server.start_server()
        servers.append(server)
        return server

    yield _make

    for server in servers:
        await server.close()


@pytest_asyncio.fixture
async def fetcher(sleeper):
    f = ResilientFetcher(
        user_agent="JobVetTest/1.0",
        options=FetchOptions(retries=2, base_delay_s=0.01, max_backoff_s=1.0, timeout_s=5.0),
        sleep=sleeper,
    )
    await f.start()
    yield f
    await f.close()


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        _env_file=None,
        user_agent="JobVetTest/1.0",
        openai_api_key=None,
        db_path=str(tmp_path / "jobs.db"),
    )

