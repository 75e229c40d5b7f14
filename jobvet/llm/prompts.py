"""
Prompt templates and JSON schemas for the oracle calls.
"""

from __future__ import annotations

from typing import Any, Dict, Optional


# ===================== System Prompts =====================

ENRICH_SYSTEM = """You are a structured information extractor for job postings.
Return ONLY valid JSON that matches the provided JSON Schema.
If a value is not explicitly stated, return null. Never invent values.
location must be a human-readable geography (city + state/province + country if present).
Ignore suites, floors, building codes and internal IDs. If multiple, choose the primary city.
Known facts are given as hints; never contradict them."""


ANALYSIS_SYSTEM = """You are a job posting analyst.
Return ONLY valid JSON that matches the provided JSON Schema.
- skills: concrete skills, tools or technologies the posting asks for (at most 20, short names)
- buzzwords: vague hype phrases such as "rockstar", "ninja", "fast-paced", "wear many hats";
  hits lists the phrases found, count is the number of occurrences
- comp_period_detected: "hour" or "year" if the posting states how pay is quoted, else null
Never invent values."""


# ===================== JSON Schemas =====================

def _nullable(type_name: str, enum: Optional[list] = None) -> Dict[str, Any]:
    schema: Dict[str, Any] = {"type": [type_name, "null"]}
    if enum is not None:
        schema["enum"] = list(enum) + [None]
    return schema


REMOTE_POLICIES = ("onsite", "hybrid", "remote")
SENIORITIES = ("intern", "junior", "mid", "senior", "lead", "manager")
TIME_TYPES = ("full-time", "part-time", "contract")
COMP_PERIODS = ("hour", "year")

ENRICH_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "additionalProperties": False,
    "properties": {
        "location": _nullable("string"),
        "salary_min": _nullable("number"),
        "salary_max": _nullable("number"),
        "salary_mid": _nullable("number"),
        "remote_policy": _nullable("string", REMOTE_POLICIES),
        "seniority": _nullable("string", SENIORITIES),
        "time_type": _nullable("string", TIME_TYPES),
        "currency": _nullable("string"),
        "department": _nullable("string"),
        "timezone_requirement": _nullable("string"),
    },
    "required": [
        "location", "salary_min", "salary_max", "salary_mid", "remote_policy",
        "seniority", "time_type", "currency", "department", "timezone_requirement",
    ],
}

ANALYSIS_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "additionalProperties": False,
    "properties": {
        "skills": {"type": "array", "items": {"type": "string"}},
        "buzzwords": {
            "type": "object",
            "additionalProperties": False,
            "properties": {
                "hits": {"type": "array", "items": {"type": "string"}},
                "count": {"type": "integer"},
            },
            "required": ["hits", "count"],
        },
        "comp_period_detected": _nullable("string", COMP_PERIODS),
    },
    "required": ["skills", "buzzwords", "comp_period_detected"],
}


# ===================== Prompt Builders =====================

def build_enrich_prompt(text: str, hints: Optional[Dict[str, Any]] = None) -> str:
    """Build the extraction prompt, listing known facts first."""
    lines = []
    known = {k: v for k, v in (hints or {}).items() if v}
    if known:
        lines.append("Known facts (do not contradict):")
        for k, v in known.items():
            lines.append(f"- {k}: {v}")
        lines.append("")
    lines.append("Full job text:")
    lines.append(text)
    return "\n".join(lines)


def build_analysis_prompt(text: str) -> str:
    return f"Job posting text:\n{text}"
