"""
Free-text salary tier.

A regex cascade over plain text, tried in priority order; the first
pattern that matches wins:

    1. "120,000 - 150,000 per year"   explicit annual range
    2. "$120,000 - $150,000"          dollar range
    3. "120k - 150k"                  k range
    4. "$45.50"                       single dollar figure
"""

from __future__ import annotations

import re
from typing import Any, Dict, Optional, Tuple

from jobvet.models import CompPeriod, SalarySource

_NUM = r"(?<![\d.,])((?:\d{1,3}(?:,\d{3})+|\d+)(?:\.\d{1,2})?)(?!,?\d|\.\d)"
_DASH = r"\s*(?:-|–|—|&mdash;|to)\s*"

ANNUAL_RANGE_RE = re.compile(
    r"\$?\s?" + _NUM + _DASH + r"\$?\s?" + _NUM + r"\s*(?:/\s*|a\s+|per\s+)?(?:year|yr|annum|annually|annual)\b",
    re.I,
)
DOLLAR_RANGE_RE = re.compile(r"\$\s?" + _NUM + _DASH + r"\$?\s?" + _NUM, re.I)
K_RANGE_RE = re.compile(
    r"\$?\s?(?<![\d.])(\d{1,3}(?:\.\d+)?)\s*k" + r"\s*(?:-|–|—|to)\s*" + r"\$?\s?(\d{1,3}(?:\.\d+)?)\s*k\b",
    re.I,
)
SINGLE_DOLLAR_RE = re.compile(r"\$\s?" + _NUM)

HOURLY_RE = re.compile(r"(?:\b(?:hourly|hrly|per\s*hour)\b|/\s*(?:hr|hour)\b)", re.I)
USD_RE = re.compile(r"\b(?:u\.?s\.?\s*\$|usd|us\s*dollars)\b", re.I)


def _num(s: str) -> float:
    return float(s.replace(",", ""))


def has_hourly_language(text: str) -> bool:
    return bool(HOURLY_RE.search(text or ""))


def _match_cascade(text: str) -> Optional[Tuple[float, float, str, Optional[CompPeriod]]]:
    m = ANNUAL_RANGE_RE.search(text)
    if m:
        return _num(m.group(1)), _num(m.group(2)), m.group(0), CompPeriod.YEAR

    m = DOLLAR_RANGE_RE.search(text)
    if m:
        return _num(m.group(1)), _num(m.group(2)), m.group(0), None

    m = K_RANGE_RE.search(text)
    if m:
        return float(m.group(1)) * 1000, float(m.group(2)) * 1000, m.group(0), CompPeriod.YEAR

    m = SINGLE_DOLLAR_RE.search(text)
    if m:
        v = _num(m.group(1))
        return v, v, m.group(0), None

    return None


def extract_text_features(text: str) -> Dict[str, Any]:
    """
    Partial salary features from plain text.

    A range whose max is <= 100 with no hourly wording in the text is
    discarded as noise (years of experience, team sizes, ...).
    """
    if not text:
        return {}

    found = _match_cascade(text)
    if found is None:
        return {}
    lo, hi, matched, period = found

    hourly = has_hourly_language(text)
    if max(lo, hi) <= 100 and not hourly:
        return {}

    if period is None:
        if hourly and max(lo, hi) < 1000:
            period = CompPeriod.HOUR
        else:
            period = CompPeriod.YEAR if min(lo, hi) >= 10000 else CompPeriod.from_amount(min(lo, hi))

    out: Dict[str, Any] = {
        "salary_min": lo,
        "comp_period": period,
        "salary_source": SalarySource.TEXT,
    }
    if hi != lo:
        out["salary_max"] = hi
    if "$" in matched or USD_RE.search(text):
        out["currency"] = "USD"
    return out
