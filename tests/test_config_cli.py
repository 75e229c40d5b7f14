"""
Unit tests for settings parsing and the command-line entry point.
"""
import pytest

from jobvet.cli import async_main, parse_args
from jobvet.config import DEFAULT_DENYLIST, Settings


def test_denylist_defaults():
    s = Settings(_env_file=None)
    assert s.denylist_hosts == DEFAULT_DENYLIST
    assert s.fresh_hours == 24.0
    assert s.require_enrichment is False


@pytest.mark.parametrize("raw, expected", [
    ("indeed.com, Monster.com", ["indeed.com", "monster.com"]),
    ('["indeed.com", " glassdoor.com "]', ["indeed.com", "glassdoor.com"]),
    ("", []),
])
def test_denylist_from_environment(monkeypatch, raw, expected):
    """Test that JOBVET_DENYLIST_HOSTS accepts comma-separated and JSON lists."""
    monkeypatch.setenv("JOBVET_DENYLIST_HOSTS", raw)
    assert Settings(_env_file=None).denylist_hosts == expected


def test_numeric_settings_from_environment(monkeypatch):
    monkeypatch.setenv("JOBVET_FRESH_HOURS", "6")
    monkeypatch.setenv("JOBVET_REQUIRE_ENRICHMENT", "true")
    s = Settings(_env_file=None)
    assert s.fresh_hours == 6.0
    assert s.require_enrichment is True


def test_parse_args():
    args = parse_args(["https://example.com/jobs/1", "--no-ai", "--json", "--db", "none"])
    assert args.url == "https://example.com/jobs/1"
    assert args.no_ai is True
    assert args.json is True
    assert args.db == "none"
    assert args.verbose is False


@pytest.mark.asyncio
async def test_cli_reports_user_errors(settings, capsys):
    """Test that a bad URL prints the user-facing message and exits with 1."""
    args = parse_args(["not a url", "--no-ai", "--db", "none"])
    code = await async_main(args, settings=settings)

    assert code == 1
    assert "valid job link" in capsys.readouterr().err


@pytest.mark.asyncio
async def test_cli_refuses_denylisted_host(settings, capsys):
    settings = settings.model_copy(update={"denylist_hosts": ["indeed.com"]})
    args = parse_args(["https://www.indeed.com/viewjob?jk=1", "--no-ai"])
    code = await async_main(args, settings=settings)

    assert code == 1
    assert "aggregator" in capsys.readouterr().err
