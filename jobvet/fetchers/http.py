"""
HTTP fetcher with bounded retries, exponential backoff, Retry-After handling,
per-attempt timeouts and caller cancellation.
"""

from __future__ import annotations

import asyncio
import json
import logging
import time
from dataclasses import dataclass, field, replace
from datetime import datetime
from email.utils import parsedate_to_datetime
from typing import Any, Awaitable, Callable, Dict, List, Optional, TypeVar

import aiohttp

from jobvet.config import Settings
from jobvet.errors import FetchCancelled, NetworkError, NetworkErrorKind, ParseError
from jobvet.models import FetchDiagnostics, now_utc

logger = logging.getLogger(__name__)

T = TypeVar("T")
SleepFn = Callable[[float], Awaitable[None]]


def is_retryable_status(status: int) -> bool:
    return status == 429 or 500 <= status <= 599


@dataclass(frozen=True)
class FetchOptions:
    """Per-call retry and timeout policy."""
    retries: int = 2
    base_delay_s: float = 0.25
    max_backoff_s: float = 10.0
    timeout_s: float = 15.0
    headers: Dict[str, str] = field(default_factory=dict)

    def with_headers(self, **headers: str) -> "FetchOptions":
        merged = dict(self.headers)
        merged.update(headers)
        return replace(self, headers=merged)


@dataclass
class FetchResult:
    """Result of a fetch operation. Non-2xx responses are returned, not raised."""
    url: str
    status: int = 0
    text: str = ""
    headers: Dict[str, str] = field(default_factory=dict)
    final_url: str = ""
    redirect_chain: List[str] = field(default_factory=list)
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None
    elapsed_ms: float = 0
    attempts: int = 1

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300

    def raise_for_status(self) -> None:
        """Raise NetworkError for a non-2xx final response."""
        if not self.ok:
            raise NetworkError.for_status(self.status, url=self.url, attempts=self.attempts)

    def json(self) -> Any:
        """Decode the body as JSON."""
        try:
            return json.loads(self.text)
        except ValueError as e:
            raise ParseError(f"Response from {self.url} is not valid JSON.", hint=str(e)) from e

    def diagnostics(self) -> FetchDiagnostics:
        return FetchDiagnostics(
            status=self.status,
            ok=self.ok,
            started_at=self.started_at,
            finished_at=self.finished_at,
            elapsed_ms=self.elapsed_ms,
            final_url=self.final_url or self.url,
            redirect_chain=tuple(self.redirect_chain),
        )


def backoff_delay(attempt: int, options: FetchOptions) -> float:
    """Exponential backoff in seconds, capped at max_backoff_s."""
    return min(options.max_backoff_s, options.base_delay_s * (2 ** attempt))


def parse_retry_after(header: Optional[str], now: Optional[datetime] = None) -> Optional[float]:
    """
    Parse a Retry-After header (delta-seconds or HTTP-date) into seconds.
    Returns None when absent or unparsable.
    """
    if not header:
        return None
    header = header.strip()
    try:
        return max(0.0, float(header))
    except ValueError:
        pass
    try:
        when = parsedate_to_datetime(header)
    except (TypeError, ValueError):
        return None
    if when is None:
        return None
    return max(0.0, (when - (now or now_utc())).total_seconds())


class ResilientFetcher:
    """
    Async HTTP fetcher.

    Retries 429/5xx responses and transport failures up to `retries` times.
    A final 429/5xx response is returned to the caller as-is; a final transport
    failure raises NetworkError. Setting the `cancel` event aborts the current
    attempt or backoff sleep and raises FetchCancelled.
    """

    def __init__(
        self,
        user_agent: str = "JobVetBot/1.0 (+https://example.com/bot)",
        options: Optional[FetchOptions] = None,
        sleep: SleepFn = asyncio.sleep,
        session: Optional[aiohttp.ClientSession] = None,
    ):
        self.user_agent = user_agent
        self.options = options or FetchOptions()
        self._sleep = sleep
        self._session = session
        self._owns_session = session is None

    @classmethod
    def from_settings(cls, settings: Settings, **kwargs: Any) -> "ResilientFetcher":
        options = FetchOptions(
            retries=settings.max_retries,
            base_delay_s=settings.base_delay_s,
            max_backoff_s=settings.max_backoff_s,
            timeout_s=settings.request_timeout_s,
        )
        return cls(user_agent=settings.user_agent, options=options, **kwargs)

    async def __aenter__(self) -> "ResilientFetcher":
        await self.start()
        return self

    async def __aexit__(self, *args) -> None:
        await self.close()

    async def start(self) -> None:
        """Initialize the HTTP session."""
        if self._session is None or self._session.closed:
            headers = {
                "User-Agent": self.user_agent,
                "Accept": "text/html,application/json,application/xml;q=0.9,*/*;q=0.8",
                "Accept-Language": "en-US,en;q=0.9",
            }
            self._session = aiohttp.ClientSession(headers=headers)
            self._owns_session = True

    async def close(self) -> None:
        """Close the HTTP session if this fetcher opened it."""
        if self._owns_session and self._session and not self._session.closed:
            await self._session.close()
            self._session = None

    async def fetch(
        self,
        url: str,
        options: Optional[FetchOptions] = None,
        cancel: Optional[asyncio.Event] = None,
    ) -> FetchResult:
        """Fetch a URL with retries and backoff."""
        opts = options or self.options
        if self._session is None:
            await self.start()

        for attempt in range(opts.retries + 1):
            if cancel is not None and cancel.is_set():
                raise FetchCancelled(url)
            try:
                result = await self._race(self._attempt(url, opts), cancel, url)
            except asyncio.TimeoutError as e:
                kind, detail = NetworkErrorKind.TIMEOUT, str(e) or None
            except aiohttp.ClientConnectionError as e:
                kind, detail = NetworkErrorKind.CONNECTIVITY, str(e)
            except aiohttp.ClientError as e:
                kind, detail = NetworkErrorKind.GENERIC, str(e)
            else:
                result.attempts = attempt + 1
                if not is_retryable_status(result.status) or attempt >= opts.retries:
                    return result
                delay = max(backoff_delay(attempt, opts), parse_retry_after(result.headers.get("retry-after")) or 0.0)
                logger.debug(
                    "HTTP %s from %s (attempt %d/%d), retrying in %.2fs",
                    result.status, url, attempt + 1, opts.retries + 1, delay,
                )
                await self._race(self._sleep(delay), cancel, url)
                continue

            if attempt >= opts.retries:
                logger.warning("Giving up on %s after %d attempts: %s", url, attempt + 1, kind.value)
                raise NetworkError(kind, url=url, attempts=attempt + 1, detail=detail)
            delay = backoff_delay(attempt, opts)
            logger.debug(
                "%s fetching %s (attempt %d/%d), retrying in %.2fs",
                kind.value, url, attempt + 1, opts.retries + 1, delay,
            )
            await self._race(self._sleep(delay), cancel, url)

        # Unreachable: the loop either returns or raises on its last attempt.
        raise NetworkError(NetworkErrorKind.GENERIC, url=url, attempts=opts.retries + 1)

    async def fetch_json(
        self,
        url: str,
        options: Optional[FetchOptions] = None,
        cancel: Optional[asyncio.Event] = None,
    ) -> FetchResult:
        """Fetch a URL asking for a JSON response."""
        opts = (options or self.options).with_headers(Accept="application/json")
        return await self.fetch(url, options=opts, cancel=cancel)

    async def _attempt(self, url: str, opts: FetchOptions) -> FetchResult:
        started_at = now_utc()
        t0 = time.monotonic()
        timeout = aiohttp.ClientTimeout(total=opts.timeout_s)
        logger.debug("GET %s", url)
        async with self._session.get(
            url,
            headers=opts.headers or None,
            timeout=timeout,
            allow_redirects=True,
        ) as resp:
            text = await resp.text(errors="replace")
            return FetchResult(
                url=url,
                status=resp.status,
                text=text,
                headers={k.lower(): v for k, v in resp.headers.items()},
                final_url=str(resp.url),
                redirect_chain=[str(r.url) for r in resp.history],
                started_at=started_at,
                finished_at=now_utc(),
                elapsed_ms=(time.monotonic() - t0) * 1000,
            )

    async def _race(self, aw: Awaitable[T], cancel: Optional[asyncio.Event], url: str) -> T:
        """Await `aw`, aborting it if `cancel` is set first."""
        if cancel is None:
            return await aw
        task = asyncio.ensure_future(aw)
        waiter = asyncio.ensure_future(cancel.wait())
        try:
            done, _ = await asyncio.wait({task, waiter}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            waiter.cancel()
            if not task.done():
                task.cancel()
        if task in done:
            return task.result()
        await asyncio.wait({task})
        raise FetchCancelled(url)
