"""
Structured-metadata tier: ATS key/value custom fields.

Greenhouse exposes custom fields as a `metadata` list of
{name, value_type, value} entries where currency values look like
{"unit": "USD", "amount": "120000.0"}.
"""

from __future__ import annotations

import logging
import re
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, ValidationError

from jobvet.models import CompPeriod, SalarySource, normalize_time_type

logger = logging.getLogger(__name__)

_EQUITY_RE = re.compile(r"equity|stock|rsu")
_OTE_RE = re.compile(r"\bote\b|on[-\s]?target")
_BASE_RE = re.compile(r"salary|pay|compensation|base")
_MIN_RE = re.compile(r"minimum|min\b")
_MAX_RE = re.compile(r"maximum|max\b")
_MID_RE = re.compile(r"midpoint|median")

TIME_TYPE_LABELS = ("Time Type",)
DEPARTMENT_LABELS = ("Job Family", "Careers Page Sorting: Department")


class CurrencyAmount(BaseModel):
    model_config = ConfigDict(extra="forbid")

    unit: Optional[str] = None
    amount: str


class MetadataItem(BaseModel):
    model_config = ConfigDict(extra="allow")

    name: Optional[str] = None
    value_type: Optional[str] = None
    value: Union[CurrencyAmount, str, None] = None


def as_metadata_items(raw: Any) -> List[MetadataItem]:
    """Validate a metadata list entry by entry, dropping malformed entries."""
    if isinstance(raw, dict):
        raw = raw.get("metadata")
    if not isinstance(raw, list):
        return []
    items: List[MetadataItem] = []
    for entry in raw:
        try:
            items.append(MetadataItem.model_validate(entry))
        except ValidationError as e:
            logger.debug("Skipping malformed metadata entry: %s", e.errors()[:1])
    return items


def _salary_field(label: str) -> Optional[str]:
    if _MIN_RE.search(label):
        return "salary_min"
    if _MAX_RE.search(label):
        return "salary_max"
    if _MID_RE.search(label):
        return "salary_mid"
    return None


def extract_metadata_features(raw: Any) -> Dict[str, Any]:
    """
    Partial features from an ATS metadata list.

    Rules:
      - equity/stock/RSU and on-target-earnings labels are ignored
      - only currency-typed base salary labels set salary bounds
      - comp period: amount <= 300 is hourly, otherwise yearly
    """
    out: Dict[str, Any] = {}

    for item in as_metadata_items(raw):
        name = item.name or ""
        label = name.lower()
        value_type = (item.value_type or "").lower()

        if _EQUITY_RE.search(label):
            continue

        is_ote = bool(_OTE_RE.search(label))
        looks_like_base = bool(_BASE_RE.search(label)) and not is_ote

        if value_type == "currency" and looks_like_base and isinstance(item.value, CurrencyAmount):
            key = _salary_field(label)
            try:
                amount = float(item.value.amount.replace(",", ""))
            except ValueError:
                amount = None
            if key and amount is not None:
                out[key] = amount
                unit = (item.value.unit or "").upper()
                if unit:
                    out.setdefault("currency", unit)
                out.setdefault("comp_period", CompPeriod.from_amount(amount))
                out["salary_source"] = SalarySource.METADATA

        if isinstance(item.value, str) and item.value.strip():
            if name in TIME_TYPE_LABELS:
                out["time_type"] = normalize_time_type(item.value) or item.value.strip()
            elif name in DEPARTMENT_LABELS:
                out["department"] = item.value.strip()

    return out
