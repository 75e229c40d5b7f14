"""
Extraction utilities for JobVet.

Provides:
- HTML to text conversion
- JSON-LD capture and identity resolution
- The three deterministic salary tiers (metadata, structured data, free text)
- Priority merge and salary reconciliation
"""

from jobvet.extract.features import extract_features, record_text
from jobvet.extract.html import html_to_text
from jobvet.extract.jsonld import capture_jsonld_blocks, resolve_identity
from jobvet.extract.merge import finalize_salary, merge_features, priority_merge

__all__ = [
    "extract_features",
    "record_text",
    "html_to_text",
    "capture_jsonld_blocks",
    "resolve_identity",
    "finalize_salary",
    "merge_features",
    "priority_merge",
]
