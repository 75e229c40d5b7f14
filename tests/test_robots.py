"""
Unit tests for robots.txt parsing, evaluation and the per-origin gate.
"""
import pytest
from aiohttp import web

from jobvet.config import Settings
from jobvet.fetchers.http import ResilientFetcher
from jobvet.fetchers.robots import (
    CrawlPolicy,
    RobotsGate,
    RobotsGroup,
    evaluate,
    origin_of,
    parse_robots,
    product_token,
)


def test_longest_match_wins():
    """Test Google-style longest-prefix precedence."""
    group = RobotsGroup(agents=["*"], allows=["/a"], disallows=["/a/b"])
    assert evaluate("/a/b/c", group) is False
    assert evaluate("/a/x", group) is True


def test_tie_goes_to_allow():
    group = RobotsGroup(agents=["*"], allows=["/a"], disallows=["/a"])
    assert evaluate("/a", group) is True
    assert evaluate("/a/deeper", group) is True


def test_no_match_allows():
    group = RobotsGroup(agents=["*"], disallows=["/private"])
    assert evaluate("/jobs/1", group) is True
    assert evaluate("/private/x", group) is False


def test_exact_agent_group_beats_wildcard():
    """Test that an exact agent group is used even when the wildcard is more permissive."""
    policy = parse_robots(
        "User-agent: *\n"
        "Allow: /\n"
        "\n"
        "User-agent: Jobbot\n"
        "Disallow: /jobs\n"
    )
    assert policy.is_allowed("/jobs/1", "Jobbot") is False
    assert policy.is_allowed("/jobs/1", "jobbot") is False
    assert policy.is_allowed("/jobs/1", "OtherBot") is True


def test_no_applicable_group_allows():
    policy = parse_robots("User-agent: Googlebot\nDisallow: /\n")
    assert policy.is_allowed("/anything", "Jobbot") is True


def test_parse_normalization():
    """Test comment stripping, case-insensitive directives and prefix rooting."""
    policy = parse_robots(
        "# leading comment\n"
        "USER-AGENT: *   # trailing comment\n"
        "allow:\n"
        "Disallow:\n"
        "Disallow: private\n"
        "Crawl-delay: 10\n"
        "Sitemap: https://example.com/sitemap.xml\n"
    )
    assert len(policy.groups) == 1
    group = policy.groups[0]
    assert group.agents == ["*"]
    # Empty Allow is allow-all; empty Disallow adds nothing
    assert group.allows == ["/"]
    assert group.disallows == ["/private"]
    assert group.sitemaps == ["https://example.com/sitemap.xml"]


def test_rules_before_user_agent_form_wildcard_group():
    policy = parse_robots("Disallow: /admin\nUser-agent: Jobbot\nDisallow: /x\n")
    assert policy.groups[0].agents == ["*"]
    assert policy.is_allowed("/admin", "Someone") is False
    assert policy.is_allowed("/admin", "Jobbot") is True


def test_consecutive_user_agents_open_separate_groups():
    """Test that each User-agent line after an agent opens a new group."""
    policy = parse_robots("User-agent: A\nUser-agent: B\nDisallow: /x\n")
    assert [g.agents for g in policy.groups] == [["A"], ["B"]]
    assert policy.is_allowed("/x", "A") is True
    assert policy.is_allowed("/x", "B") is False


def test_origin_of():
    assert origin_of("HTTPS://Example.COM/jobs/1?x=1") == "https://example.com"


@pytest.mark.asyncio
async def test_gate_fetches_once_per_origin(make_server, fetcher):
    hits = 0

    async def robots(request):
        nonlocal hits
        hits += 1
        return web.Response(text="User-agent: *\nDisallow: /private\n")

    server = await make_server({"/robots.txt": robots})
    gate = RobotsGate(fetcher, user_agent="JobVetTest/1.0")

    assert await gate.is_allowed(str(server.make_url("/jobs/1"))) is True
    assert await gate.is_allowed(str(server.make_url("/private/2"))) is False
    assert hits == 1
    assert len(gate.cache) == 1


@pytest.mark.asyncio
async def test_gate_fails_open_on_500(make_server, fetcher):
    """Test that an HTTP 500 from robots.txt yields an allow-all policy, not an error."""
    async def robots(request):
        return web.Response(status=500)

    server = await make_server({"/robots.txt": robots})
    gate = RobotsGate(fetcher, user_agent="JobVetTest/1.0")

    assert await gate.is_allowed(str(server.make_url("/private"))) is True
    policy = gate.cache[origin_of(str(server.make_url("/")))]
    assert policy.groups == []


@pytest.mark.asyncio
async def test_gate_fails_open_when_unreachable(sleeper):
    async with ResilientFetcher(sleep=sleeper) as f:
        gate = RobotsGate(f, user_agent="JobVetTest/1.0", timeout_s=1.0)
        assert await gate.is_allowed("http://127.0.0.1:1/jobs") is True
    # robots.txt is fetched without retries
    assert sleeper.delays == []


@pytest.mark.asyncio
async def test_gate_uses_seeded_cache_without_network():
    policy = parse_robots("User-agent: *\nDisallow: /\n", origin="https://example.com")
    gate = RobotsGate(ResilientFetcher(), user_agent="x", cache={"https://example.com": policy})
    assert await gate.is_allowed("https://example.com/jobs/1") is False
    assert isinstance(gate.cache["https://example.com"], CrawlPolicy)


def test_product_token():
    assert product_token("JobVetBot/1.0 (+https://example.com/bot)") == "JobVetBot"
    assert product_token("Jobbot") == "Jobbot"
    assert product_token("  ") == ""


def test_default_user_agent_matches_its_named_group():
    """Test that the configured User-Agent header selects a group named after its product token."""
    ua = Settings(_env_file=None).user_agent
    policy = parse_robots("User-agent: JobVetBot\nDisallow: /\n\nUser-agent: *\nAllow: /\n")
    assert policy.is_allowed("/jobs/1", ua) is False
    assert policy.is_allowed("/jobs/1", "OtherBot/2.0") is True


@pytest.mark.asyncio
async def test_robots_request_sends_plain_user_agent(make_server, sleeper):
    seen = []

    async def robots(request):
        seen.append(request.headers.get("User-Agent"))
        return web.Response(text="User-agent: JobVetBot\nDisallow: /private\n")

    server = await make_server({"/robots.txt": robots})
    ua = "JobVetBot/1.0 (+https://example.com/bot)"
    async with ResilientFetcher(user_agent=ua, sleep=sleeper) as f:
        gate = RobotsGate(f, user_agent=ua)
        assert await gate.is_allowed(str(server.make_url("/private/1"))) is False
        assert await gate.is_allowed(str(server.make_url("/jobs/1"))) is True

    assert seen == [ua]
