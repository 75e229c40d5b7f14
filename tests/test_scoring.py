"""
Unit tests for deterministic risk scoring.
"""
from datetime import datetime, timedelta, timezone

import pytest

from jobvet.llm.enrichment import AnalysisResult, BuzzwordHits
from jobvet.models import FeatureSet, SalarySource
from jobvet.scoring import (
    DEFAULT_WEIGHTS,
    RiskTier,
    ScoreInput,
    finalize_score,
    freshness_score,
    score,
    source_credibility_score,
)

NOW = datetime(2024, 6, 1, tzinfo=timezone.utc)


def analysis(skills=0, buzzwords=0, period="year"):
    return AnalysisResult(
        skills=[f"s{i}" for i in range(skills)],
        buzzwords=BuzzwordHits(hits=[], count=buzzwords),
        comp_period_detected=period,
    )


def test_zero_weights_fall_back_to_simple_mean():
    """Test that a breakdown with all weights zero still yields a non-zero score."""
    zero = {k: 0.0 for k in DEFAULT_WEIGHTS}
    assert finalize_score({"freshness": 0.8}, zero) == pytest.approx(0.8)
    assert finalize_score({"a": 0.2, "b": 0.6}, zero) == pytest.approx(0.4)


def test_weighted_average_over_present_keys_only():
    weights = {"freshness": 3.0, "link_integrity": 1.0}
    assert finalize_score({"freshness": 1.0, "link_integrity": 0.0}, weights) == pytest.approx(0.75)
    # Unknown keys carry no weight when others do
    assert finalize_score({"freshness": 1.0, "mystery": 0.0}) == pytest.approx(1.0)
    assert finalize_score({}) == 0.0


def test_values_are_clamped():
    assert finalize_score({"freshness": 5.0}) == 1.0
    assert finalize_score({"freshness": -1.0, "link_integrity": float("nan")}) == 0.0


def test_freshness_decay():
    assert freshness_score(NOW, NOW) == 1.0
    assert freshness_score(NOW - timedelta(days=45), NOW) == pytest.approx(0.5)
    assert freshness_score(NOW - timedelta(days=90), NOW) == 0.0
    assert freshness_score(NOW - timedelta(days=400), NOW) == 0.0
    assert freshness_score(None, NOW) == 0.5


@pytest.mark.parametrize("host, source, expected", [
    ("boards.greenhouse.io", None, 0.9),
    ("acme.wd5.myworkdayjobs.com", None, 0.9),
    ("jobs.lever.co", SalarySource.METADATA, 1.0),
    ("careers.example.com", None, 0.7),
    ("example.jobs", SalarySource.TEXT, 0.6),
    ("example.com", SalarySource.STRUCTURED_DATA, 0.7),
    ("example.com", SalarySource.MIXED, 0.6),
    ("notgreenhouse.io", None, 0.6),
    (None, SalarySource.TEXT, 0.4),
])
def test_source_credibility(host, source, expected):
    assert source_credibility_score(host, source) == pytest.approx(expected)


def test_missing_salary_scores_zero_disclosure():
    """Test that a record with no salary fields gets salary_disclosure=0."""
    result = score(ScoreInput(features=FeatureSet(), host="example.com", link_ok=True, now=NOW))
    assert "salary_disclosure" in result.breakdown
    assert result.breakdown["salary_disclosure"] == 0.0
    assert result.breakdown["salary_min_present"] == 0.0
    assert "salary_disclosure" in result.red_flags


def test_max_only_salary_is_half_disclosed():
    result = score(ScoreInput(features=FeatureSet(salary_max=100.0), now=NOW))
    assert result.breakdown["salary_disclosure"] == 0.5
    assert result.breakdown["salary_min_present"] == 0.0


def test_analysis_subscores_omitted_without_analysis():
    result = score(ScoreInput(now=NOW))
    assert set(result.breakdown) == {
        "freshness", "link_integrity", "salary_disclosure", "salary_min_present", "source_credibility",
    }


def test_analysis_subscores():
    result = score(ScoreInput(analysis=analysis(skills=6, buzzwords=2, period=None), now=NOW))
    assert result.breakdown["skills_present"] == 1.0
    assert result.breakdown["buzzword_penalty"] == pytest.approx(0.6)
    assert result.breakdown["comp_period_clarity"] == 0.0

    few = score(ScoreInput(analysis=analysis(skills=2, buzzwords=9), now=NOW))
    assert few.breakdown["skills_present"] == 0.5
    assert few.breakdown["buzzword_penalty"] == 0.0
    assert few.breakdown["comp_period_clarity"] == 1.0


def test_link_integrity_requires_ok_and_no_loop():
    assert score(ScoreInput(link_ok=True, now=NOW)).breakdown["link_integrity"] == 1.0
    assert score(ScoreInput(link_ok=True, link_loop=True, now=NOW)).breakdown["link_integrity"] == 0.0
    assert score(ScoreInput(link_ok=False, now=NOW)).breakdown["link_integrity"] == 0.0


def test_well_formed_posting_is_low_risk():
    result = score(ScoreInput(
        features=FeatureSet(salary_min=100000.0, salary_max=130000.0, salary_source=SalarySource.METADATA),
        first_published=NOW - timedelta(days=3),
        host="boards.greenhouse.io",
        link_ok=True,
        analysis=analysis(skills=8, buzzwords=0),
        now=NOW,
    ))
    assert result.score > 0.9
    assert result.tier == RiskTier.LOW
    assert result.red_flags == []
    d = result.to_dict()
    assert d["tier"] == "Low"
    assert set(d) == {"score", "tier", "breakdown", "red_flags"}


def test_freshness_falls_back_to_updated_at():
    result = score(ScoreInput(updated_at=NOW - timedelta(days=9), now=NOW))
    assert result.breakdown["freshness"] == pytest.approx(0.9)


def test_tier_thresholds():
    assert RiskTier.for_score(0.0) == RiskTier.HIGH
    assert RiskTier.for_score(0.39) == RiskTier.HIGH
    assert RiskTier.for_score(0.4) == RiskTier.MEDIUM
    assert RiskTier.for_score(0.69) == RiskTier.MEDIUM
    assert RiskTier.for_score(0.7) == RiskTier.LOW
