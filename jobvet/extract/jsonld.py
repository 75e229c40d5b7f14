"""
JSON-LD capture and the embedded-structured-data tier.

Handles:
- Multiple script tags with different JSON-LD objects
- @graph containers and top-level lists
- Entity-escaped and mildly malformed JSON (trailing commas, JS comments)
- MonetaryAmount / QuantitativeValue salary shapes
"""

from __future__ import annotations

import json
import logging
import re
from typing import Any, Dict, List, Optional

from bs4 import BeautifulSoup

from jobvet.extract.html import decode_basic_entities, extract_page_title
from jobvet.models import (
    CanonicalJobRecord,
    CompPeriod,
    JobIdentity,
    SalarySource,
    normalize_requisition_id,
    normalize_text,
    normalize_time_type,
    parse_date,
)

logger = logging.getLogger(__name__)


# ----------------------------- Capture -----------------------------

def extract_jsonld_scripts(html: str) -> List[str]:
    """Extract all JSON-LD script contents from HTML."""
    if not html:
        return []

    scripts = []
    soup = BeautifulSoup(html, "lxml")

    for script in soup.find_all("script", attrs={"type": re.compile(r"^\s*application/ld\+json\s*$", re.I)}):
        content = script.string
        if content and content.strip():
            scripts.append(content.strip())

    return scripts


def clean_jsonld_string(s: str) -> str:
    """Strip JS artifacts that break json.loads."""
    s = re.sub(r"^\s*//.*?$", "", s, flags=re.MULTILINE)
    s = re.sub(r"/\*.*?\*/", "", s, flags=re.DOTALL)
    s = re.sub(r",\s*([\]}])", r"\1", s)
    return s


def parse_jsonld_tolerant(script_content: str) -> Any:
    """Parse one JSON-LD block, decoding basic entities first. Returns None on failure."""
    text = decode_basic_entities(script_content)
    for candidate in (text, clean_jsonld_string(text)):
        try:
            return json.loads(candidate)
        except json.JSONDecodeError:
            continue
    logger.debug("Skipping unparsable JSON-LD block (%d chars)", len(script_content))
    return None


def flatten_jsonld(data: Any) -> List[Dict[str, Any]]:
    """Flatten list and @graph wrappers into a flat list of objects."""
    out: List[Dict[str, Any]] = []
    if isinstance(data, list):
        for item in data:
            out.extend(flatten_jsonld(item))
    elif isinstance(data, dict):
        graph = data.get("@graph")
        if isinstance(graph, list):
            out.extend(flatten_jsonld(graph))
        else:
            out.append(data)
    return out


def capture_jsonld_blocks(html: str) -> List[Dict[str, Any]]:
    """All parsed linked-data objects on a page, kept verbatim."""
    blocks: List[Dict[str, Any]] = []
    for script in extract_jsonld_scripts(html):
        parsed = parse_jsonld_tolerant(script)
        if parsed is not None:
            blocks.extend(flatten_jsonld(parsed))
    return blocks


def is_job_posting(obj: Dict[str, Any]) -> bool:
    obj_type = obj.get("@type", "")
    types = obj_type if isinstance(obj_type, list) else [obj_type]
    return any(str(t).lower() == "jobposting" for t in types)


def job_postings(blocks: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    return [b for b in blocks if isinstance(b, dict) and is_job_posting(b)]


# ----------------------------- Salary tier -----------------------------

def as_num(value: Any) -> Optional[float]:
    """Coerce numbers or number-ish strings ("100,000.00") to float."""
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        cleaned = re.sub(r"[,\s]", "", value)
        try:
            return float(cleaned)
        except ValueError:
            return None
    return None


def salary_from_base_salary(base_salary: Any) -> Dict[str, Any]:
    """
    Read one MonetaryAmount.

    A QuantitativeValue contributes min/max, and a lone `value` becomes the
    midpoint; a flat numeric value is treated as the midpoint too.
    """
    if not isinstance(base_salary, dict):
        return {}

    out: Dict[str, Any] = {}
    currency = str(base_salary.get("currency") or "").strip().upper()
    if currency:
        out["currency"] = currency

    value = base_salary.get("value")
    period: Optional[CompPeriod] = None
    if isinstance(value, dict):
        lo = as_num(value.get("minValue"))
        hi = as_num(value.get("maxValue"))
        single = as_num(value.get("value"))
        period = CompPeriod.from_unit_text(value.get("unitText"))
        if lo is not None:
            out["salary_min"] = lo
        if hi is not None:
            out["salary_max"] = hi
        if single is not None:
            out["salary_mid"] = single
    else:
        flat = as_num(value)
        if flat is not None:
            out["salary_mid"] = flat

    if period is None:
        period = CompPeriod.from_unit_text(base_salary.get("unitText"))

    probe = next((out[k] for k in ("salary_min", "salary_mid", "salary_max") if k in out), None)
    if probe is None:
        return {"currency": out["currency"]} if "currency" in out else {}

    out["comp_period"] = period or CompPeriod.from_amount(probe)
    out["salary_source"] = SalarySource.STRUCTURED_DATA
    return out


def extract_jsonld_features(blocks: List[Dict[str, Any]]) -> Dict[str, Any]:
    """
    Embedded-structured-data tier: partial features from JobPosting objects.

    The first posting with a usable baseSalary supplies the salary fields;
    employmentType maps to time-type.
    """
    out: Dict[str, Any] = {}
    for jp in job_postings(blocks):
        if "salary_source" not in out:
            salary = salary_from_base_salary(jp.get("baseSalary"))
            if "salary_source" in salary:
                out.update(salary)
        if "time_type" not in out:
            tt = normalize_time_type(jp.get("employmentType"))
            if tt:
                out["time_type"] = tt
        if "department" not in out:
            dept = jp.get("department") or jp.get("occupationalCategory")
            if isinstance(dept, str) and dept.strip():
                out["department"] = normalize_text(dept)
    return out


# ----------------------------- Identity -----------------------------

def _org_name(org: Any) -> str:
    if isinstance(org, str):
        return normalize_text(org)
    if isinstance(org, dict):
        return normalize_text(str(org.get("name") or ""))
    return ""


def location_from_job_posting(jp: Dict[str, Any]) -> str:
    """Human-readable location from jobLocation(s), joining distinct addresses."""
    job_loc = jp.get("jobLocation")
    if isinstance(job_loc, str):
        return normalize_text(job_loc)
    locations = job_loc if isinstance(job_loc, list) else [job_loc] if job_loc else []

    seen: List[str] = []
    for loc in locations:
        if not isinstance(loc, dict):
            continue
        address = loc.get("address")
        if isinstance(address, str):
            parts = [address]
        elif isinstance(address, dict):
            country = address.get("addressCountry")
            if isinstance(country, dict):
                country = country.get("name")
            parts = [address.get("addressLocality"), address.get("addressRegion"), country]
        else:
            parts = [loc.get("name")]
        joined = ", ".join(normalize_text(str(p)) for p in parts if isinstance(p, str) and p.strip())
        if joined and joined not in seen:
            seen.append(joined)

    if not seen and "telecommute" in str(jp.get("jobLocationType") or "").lower():
        return "Remote"
    return " • ".join(seen)


def requisition_id_from_job_posting(jp: Dict[str, Any]) -> Optional[str]:
    """JobPosting identifier: a plain string, or a PropertyValue's value (or name)."""
    ident = jp.get("identifier")
    if isinstance(ident, list):
        ident = ident[0] if ident else None
    if isinstance(ident, dict):
        ident = ident.get("value") or ident.get("name")
    if isinstance(ident, bool) or not isinstance(ident, (str, int)):
        return None
    return normalize_requisition_id(ident)


def company_from_host(host: str) -> str:
    """'www.acme-corp.com' -> 'acme corp'."""
    h = re.sub(r"^www\.", "", host or "")
    return h.split(".")[0].replace("-", " ") if h else ""


def resolve_identity(record: CanonicalJobRecord) -> JobIdentity:
    """
    Title/company/location/date for a record.

    ATS records carry their own identity. Web records resolve it from the first
    JobPosting block, falling back to the page title and the host name.
    """
    if record.provider != "web":
        return JobIdentity(
            title=record.title,
            company=record.company,
            location=record.location,
            date_posted=record.first_published or record.updated_at,
        )

    postings = job_postings(record.jsonld)
    jp = postings[0] if postings else {}

    title = normalize_text(str(jp.get("title") or jp.get("name") or ""))
    if not title:
        title = normalize_text(extract_page_title(record.content or "")) or "Job"

    company = _org_name(jp.get("hiringOrganization")) or company_from_host(record.tenant)

    return JobIdentity(
        title=title,
        company=company,
        location=location_from_job_posting(jp) if jp else "",
        date_posted=parse_date(jp.get("datePosted") or jp.get("datePublished")) if jp else None,
    )
