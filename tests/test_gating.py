"""
Unit tests for pre-fetch gating (host denylist, robots.txt) and URL routing.
"""
import pytest

from jobvet.config import DEFAULT_DENYLIST
from jobvet.errors import ParseError, PolicyDenied
from jobvet.fetchers.http import ResilientFetcher
from jobvet.fetchers.robots import RobotsGate, parse_robots
from jobvet.gating import HostDenylist, check_url
from jobvet.providers.routing import parse_greenhouse_url, route_url, validate_url, web_key


class ExplodingGate:
    """Robots gate that must never be consulted."""

    async def is_allowed(self, *args, **kwargs):
        raise AssertionError("robots.txt should not be fetched for denylisted hosts")


def test_denylist_matches_host_and_parent_domains():
    deny = HostDenylist(DEFAULT_DENYLIST)
    assert "indeed.com" in deny
    assert "www.indeed.com" in deny
    assert "uk.jobs.indeed.com" in deny
    assert "INDEED.COM." in deny
    assert "notindeed.com" not in deny
    assert "indeed.com.example.org" not in deny
    assert "" not in deny
    assert len(deny) == len(DEFAULT_DENYLIST)


@pytest.mark.asyncio
async def test_denylisted_host_fails_before_robots():
    """Test that aggregator hosts are refused without any network call."""
    with pytest.raises(PolicyDenied) as exc_info:
        await check_url("https://www.linkedin.com/jobs/view/1", HostDenylist(DEFAULT_DENYLIST), ExplodingGate())

    err = exc_info.value
    assert err.reason == PolicyDenied.DENYLISTED
    assert err.host == "www.linkedin.com"
    assert "aggregator" in err.user_message
    assert "direct job link" in err.user_message


@pytest.mark.asyncio
async def test_robots_disallow_is_distinguished():
    origin = "https://careers.example.com"
    gate = RobotsGate(
        ResilientFetcher(),
        user_agent="JobVetTest/1.0",
        cache={origin: parse_robots("User-agent: *\nDisallow: /jobs\n", origin=origin)},
    )
    with pytest.raises(PolicyDenied) as exc_info:
        await check_url(f"{origin}/jobs/42", HostDenylist(), gate)

    err = exc_info.value
    assert err.reason == PolicyDenied.ROBOTS
    assert "robots.txt for careers.example.com" in err.user_message

    # Allowed paths pass silently
    await check_url(f"{origin}/about", HostDenylist(), gate)


def test_validate_url_rejects_non_http():
    """Test that unusable links raise ParseError with a hint."""
    for bad in ("", "not a url", "ftp://example.com/job", "https://"):
        with pytest.raises(ParseError) as exc_info:
            validate_url(bad)
        assert exc_info.value.hint
    assert validate_url("  https://example.com/job  ") == "https://example.com/job"


def test_greenhouse_board_and_api_urls():
    assert parse_greenhouse_url("https://boards.greenhouse.io/acme/jobs/12345") == ("acme", "12345")
    assert parse_greenhouse_url("https://job-boards.greenhouse.io/acme/jobs/12345?gh_src=x") == ("acme", "12345")
    assert parse_greenhouse_url("https://boards-api.greenhouse.io/v1/boards/acme/jobs/99") == ("acme", "99")
    # Unparsable Greenhouse paths and other hosts fall through
    assert parse_greenhouse_url("https://boards.greenhouse.io/acme") is None
    assert parse_greenhouse_url("https://example.com/acme/jobs/1") is None


def test_route_url_dispatch():
    """Test that Greenhouse URLs route to the API adapter and the rest to the web adapter."""
    gh = route_url("https://boards.greenhouse.io/acme/jobs/12345")
    assert gh.provider == "greenhouse"
    assert gh.key == ("greenhouse", "acme", "12345")

    url = "https://Careers.Example.com/jobs/42"
    web = route_url(url)
    assert web.provider == "web"
    assert web.tenant == "careers.example.com"
    assert len(web.external_id) == 16
    assert web.key == web_key(url)
    # Stable across calls
    assert route_url(url).key == web.key
