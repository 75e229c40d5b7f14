"""
Error taxonomy for JobVet.

Every error carries a user-facing message plus an optional remediation hint,
so callers can surface failures without inspecting internals.
"""

from __future__ import annotations

from enum import Enum
from typing import Optional


class JobVetError(Exception):
    """Base class for all JobVet failures."""

    def __init__(self, message: str, hint: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.hint = hint

    @property
    def user_message(self) -> str:
        if self.hint:
            return f"{self.message} {self.hint}"
        return self.message


class NetworkErrorKind(str, Enum):
    TIMEOUT = "timeout"
    CONNECTIVITY = "connectivity"
    RATE_LIMITED = "rate_limited"
    SERVER_ERROR = "server_error"
    GENERIC = "generic"


_NETWORK_MESSAGES = {
    NetworkErrorKind.TIMEOUT: "The request timed out. The site may be slow or blocking automated requests.",
    NetworkErrorKind.CONNECTIVITY: "Could not connect to the site. Check the URL or try again later.",
    NetworkErrorKind.RATE_LIMITED: "The site is rate limiting requests. Please wait a moment and try again.",
    NetworkErrorKind.SERVER_ERROR: "The site returned a server error. Please try again later.",
    NetworkErrorKind.GENERIC: "The request failed.",
}


class NetworkError(JobVetError):
    """Transport failure after the retry budget was spent."""

    def __init__(
        self,
        kind: NetworkErrorKind,
        url: str = "",
        attempts: int = 0,
        detail: Optional[str] = None,
    ):
        super().__init__(_NETWORK_MESSAGES[kind], hint=detail)
        self.kind = kind
        self.url = url
        self.attempts = attempts

    @classmethod
    def for_status(cls, status: int, url: str = "", attempts: int = 0) -> "NetworkError":
        if status == 429:
            kind = NetworkErrorKind.RATE_LIMITED
        elif status >= 500:
            kind = NetworkErrorKind.SERVER_ERROR
        else:
            kind = NetworkErrorKind.GENERIC
        return cls(kind, url=url, attempts=attempts, detail=f"HTTP {status}")


class FetchCancelled(JobVetError):
    """The caller cancelled an in-flight fetch. Never retried."""

    def __init__(self, url: str = ""):
        super().__init__("The request was cancelled.")
        self.url = url


class PolicyDenied(JobVetError):
    """A URL was refused before any content fetch (denylist or robots.txt)."""

    DENYLISTED = "denylisted"
    ROBOTS = "robots"

    def __init__(self, reason: str, host: str, message: str):
        super().__init__(message)
        self.reason = reason
        self.host = host

    @classmethod
    def denylisted(cls, host: str) -> "PolicyDenied":
        return cls(
            cls.DENYLISTED,
            host,
            "This site is a job aggregator/marketing page we don't fetch directly. "
            "For best results, click “Apply” on that site and paste the direct job link here.",
        )

    @classmethod
    def robots(cls, host: str) -> "PolicyDenied":
        return cls(
            cls.ROBOTS,
            host,
            f"robots.txt for {host} disallows fetching this path. If the job has an "
            "“Apply” button, open it and paste the direct job link instead.",
        )


class ParseError(JobVetError):
    """Input could not be parsed (bad URL, malformed payload)."""


class SourceUnavailable(JobVetError):
    """No adapter could produce a record for the URL."""

    def __init__(self, url: str = ""):
        super().__init__(
            "Unable to access this job posting.",
            hint="Please try using the 'Apply Now' link from the company's careers page instead.",
        )
        self.url = url


class EnrichmentFailure(JobVetError):
    """The language-model oracle failed twice or returned invalid output."""
