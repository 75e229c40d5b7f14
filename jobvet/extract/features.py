"""
Deterministic feature extraction for one canonical record.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Mapping, Optional, Tuple

from jobvet.extract.html import html_to_text
from jobvet.extract.jsonld import extract_jsonld_features
from jobvet.extract.metadata import extract_metadata_features
from jobvet.extract.merge import merge_features
from jobvet.extract.salary_text import extract_text_features
from jobvet.models import CanonicalJobRecord, FeatureSet, SalarySource

logger = logging.getLogger(__name__)

DEFAULT_TEXT_LIMIT = 20000


def record_text(record: CanonicalJobRecord, limit: int = DEFAULT_TEXT_LIMIT) -> str:
    """Plain text of the record's content, truncated to `limit` characters."""
    return html_to_text(record.content or "", max_len=limit)


def tier_partials(
    record: CanonicalJobRecord,
    text: str,
) -> List[Tuple[SalarySource, Mapping[str, Any]]]:
    """Partial features per tier, highest priority first."""
    metadata: Dict[str, Any] = {}
    if record.raw_payload:
        metadata = extract_metadata_features(record.raw_payload.get("metadata"))
    return [
        (SalarySource.METADATA, metadata),
        (SalarySource.STRUCTURED_DATA, extract_jsonld_features(record.jsonld)),
        (SalarySource.TEXT, extract_text_features(text)),
    ]


def extract_features(
    record: CanonicalJobRecord,
    text_limit: int = DEFAULT_TEXT_LIMIT,
    text: Optional[str] = None,
) -> FeatureSet:
    """Run metadata -> structured data -> free text and merge by priority."""
    if text is None:
        text = record_text(record, text_limit)
    tiers = tier_partials(record, text)
    features = merge_features(tiers)
    logger.debug(
        "Features for %s: tiers=%s source=%s",
        record.key,
        [tag.value for tag, partial in tiers if partial],
        features.salary_source.value if features.salary_source else None,
    )
    return features
