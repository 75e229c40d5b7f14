"""
Unit tests for the JobAnalyzer pipeline against an in-process HTTP server.
"""
import json

import pytest
import pytest_asyncio
from aiohttp import web

from jobvet.errors import EnrichmentFailure, PolicyDenied, SourceUnavailable
from jobvet.fetchers.robots import CrawlPolicy, RobotsGate
from jobvet.gating import HostDenylist
from jobvet.llm.enrichment import EnrichmentClient
from jobvet.llm.provider import LLMClient, LLMConfig, LLMResponse
from jobvet.models import SalarySource
from jobvet.orchestrator import JobAnalyzer
from jobvet.providers import build_registry
from jobvet.storage.sqlite import JobStore

GH_URL = "https://boards.greenhouse.io/acme/jobs/4242"

GH_JOB = {
    "id": 4242,
    "title": "Platform Engineer",
    "company_name": "Acme",
    "absolute_url": GH_URL,
    "first_published": "2024-05-01T12:00:00-04:00",
    "updated_at": "2024-05-02T12:00:00-04:00",
    "requisition_id": "See Opening ID.",
    "location": {"name": "Remote"},
    "content": "&lt;p&gt;Build and run our deployment platform.&lt;/p&gt;",
    "metadata": [],
}

WEB_PAGE = """
<html><head><title>Data Analyst | Example Co</title>
<script type="application/ld+json">
{"@type": "JobPosting", "title": "Data Analyst",
 "hiringOrganization": {"@type": "Organization", "name": "Example Co"},
 "datePosted": "2024-05-20",
 "employmentType": "FULL_TIME",
 "baseSalary": {"@type": "MonetaryAmount", "currency": "USD",
   "value": {"@type": "QuantitativeValue", "minValue": 70000, "maxValue": 90000, "unitText": "YEAR"}}}
</script></head>
<body><p>Analyze data for Example Co.</p></body></html>
"""


class FailingLLM(LLMClient):
    def __init__(self):
        super().__init__(LLMConfig(api_key="test"))
        self.calls = 0

    async def complete(self, prompt, system_prompt=None, json_schema=None, schema_name="result"):
        self.calls += 1
        return LLMResponse(error="HTTP 503")


@pytest.fixture
def store(tmp_path):
    s = JobStore(str(tmp_path / "jobs.db"))
    yield s
    s.close()


@pytest_asyncio.fixture
async def site(make_server):
    """Greenhouse API stand-in plus a couple of plain web pages."""
    hits = {"api": 0}

    async def gh_job(request):
        hits["api"] += 1
        if request.match_info["job_id"] != "4242":
            return web.Response(status=404)
        return web.json_response(GH_JOB)

    async def robots(request):
        return web.Response(text="User-agent: *\nDisallow: /private\n")

    async def page(request):
        return web.Response(text=WEB_PAGE, content_type="text/html")

    server = await make_server({
        "/v1/boards/{tenant}/jobs/{job_id}": gh_job,
        "/robots.txt": robots,
        "/jobs/analyst": page,
        "/private/job": page,
    })
    return server, hits


def make_analyzer(settings, fetcher, server, store=None, enrichment=None, denylist=None):
    robots = RobotsGate(
        fetcher,
        settings.user_agent,
        cache={"https://boards.greenhouse.io": CrawlPolicy.allow_all("https://boards.greenhouse.io")},
    )
    return JobAnalyzer(
        settings=settings,
        fetcher=fetcher,
        denylist=denylist if denylist is not None else HostDenylist(),
        robots=robots,
        registry=build_registry(fetcher, greenhouse_api_base=str(server.make_url(""))),
        store=store,
        enrichment=enrichment,
        use_llm=enrichment is not None,
    )


@pytest.mark.asyncio
async def test_greenhouse_posting_without_salary(settings, fetcher, site, store):
    """Test that a placeholder requisition id is dropped and missing pay is flagged."""
    server, hits = site
    analyzer = make_analyzer(settings, fetcher, server, store=store)

    report = await analyzer.analyze(GH_URL)

    assert report.record.requisition_id is None
    assert report.record.title == "Platform Engineer"
    assert report.identity.company == "Acme"
    assert report.features.has_salary is False
    assert report.result.breakdown["salary_disclosure"] == 0.0
    assert "salary_disclosure" in report.result.red_flags
    assert report.job_id is not None
    assert report.cached is False
    assert hits["api"] == 1
    assert store.get_by_key(("greenhouse", "acme", "4242")).features is not None

    d = report.to_dict()
    assert "content" not in d["record"]
    assert d["risk"]["tier"] in ("Low", "Medium", "High")
    json.dumps(d, default=str)


@pytest.mark.asyncio
async def test_fresh_store_entry_skips_refetch(settings, fetcher, site, store):
    server, hits = site
    analyzer = make_analyzer(settings, fetcher, server, store=store)

    first = await analyzer.analyze(GH_URL)
    second = await analyzer.analyze(GH_URL)

    assert second.cached is True
    assert second.job_id == first.job_id
    assert second.features == first.features
    assert hits["api"] == 1


@pytest.mark.asyncio
async def test_stale_entry_is_refetched(settings, fetcher, site, store):
    server, hits = site
    analyzer = make_analyzer(settings.model_copy(update={"fresh_hours": 0}), fetcher, server, store=store)

    await analyzer.analyze(GH_URL)
    again = await analyzer.analyze(GH_URL)

    assert again.cached is False
    assert hits["api"] == 2
    assert store.count() == 1


@pytest.mark.asyncio
async def test_denylisted_host_is_refused(settings, fetcher, site):
    server, hits = site
    analyzer = make_analyzer(settings, fetcher, server, denylist=HostDenylist(["indeed.com"]))

    with pytest.raises(PolicyDenied) as exc_info:
        await analyzer.analyze("https://www.indeed.com/viewjob?jk=123")

    assert exc_info.value.reason == PolicyDenied.DENYLISTED
    assert hits["api"] == 0


@pytest.mark.asyncio
async def test_robots_disallow_is_refused(settings, fetcher, site):
    server, _ = site
    analyzer = make_analyzer(settings, fetcher, server)

    with pytest.raises(PolicyDenied) as exc_info:
        await analyzer.analyze(str(server.make_url("/private/job")))

    assert exc_info.value.reason == PolicyDenied.ROBOTS


@pytest.mark.asyncio
async def test_missing_posting_is_source_unavailable(settings, fetcher, site, store):
    server, _ = site
    analyzer = make_analyzer(settings, fetcher, server, store=store)

    with pytest.raises(SourceUnavailable):
        await analyzer.analyze("https://boards.greenhouse.io/acme/jobs/1")

    assert store.count() == 0


@pytest.mark.asyncio
async def test_web_page_is_scored_but_not_persisted(settings, fetcher, site, store):
    server, _ = site
    analyzer = make_analyzer(settings, fetcher, server, store=store)

    report = await analyzer.analyze(str(server.make_url("/jobs/analyst")))

    assert report.record.provider == "web"
    assert report.job_id is None
    assert store.count() == 0
    assert report.identity.title == "Data Analyst"
    assert report.identity.company == "Example Co"
    assert report.features.salary_min == 70000
    assert report.features.salary_max == 90000
    assert report.features.salary_source == SalarySource.STRUCTURED_DATA
    assert report.result.breakdown["salary_disclosure"] == 1.0
    assert report.result.breakdown["link_integrity"] == 1.0


@pytest.mark.asyncio
async def test_enrichment_failure_degrades_with_warning(settings, fetcher, site, store):
    """Test that an unavailable oracle leaves deterministic features and a warning."""
    server, _ = site
    llm = FailingLLM()
    analyzer = make_analyzer(settings, fetcher, server, store=store, enrichment=EnrichmentClient(llm))

    report = await analyzer.analyze(GH_URL)

    assert report.enrichment is None
    assert report.warnings
    assert report.analysis.skills == []
    assert report.job_id is not None
    # two attempts for enrichment, two for the analysis call
    assert llm.calls == 4


@pytest.mark.asyncio
async def test_required_enrichment_failure_raises(settings, fetcher, site, store):
    server, _ = site
    strict = settings.model_copy(update={"require_enrichment": True})
    analyzer = make_analyzer(strict, fetcher, server, store=store, enrichment=EnrichmentClient(FailingLLM()))

    with pytest.raises(EnrichmentFailure):
        await analyzer.analyze(GH_URL)

    assert store.count() == 0
