"""
JobVet: vet a job posting before you apply.

Fetches a posting politely (denylist + robots.txt), normalizes it from the
Greenhouse API or any careers page, extracts salary and hiring signals through
a deterministic cascade, optionally enriches them with a language model, and
scores the result with an explainable breakdown.
"""

__version__ = "1.0.0"

from jobvet.models import CanonicalJobRecord, FeatureSet, ProvenanceTag, SalarySource
from jobvet.orchestrator import AnalysisReport, JobAnalyzer, analyze_url

__all__ = [
    "AnalysisReport",
    "CanonicalJobRecord",
    "FeatureSet",
    "JobAnalyzer",
    "ProvenanceTag",
    "SalarySource",
    "analyze_url",
]
