"""
Core data models for JobVet.

Provides:
- CanonicalJobRecord: source-agnostic representation of one fetched posting
- FetchDiagnostics / ContentFingerprint: the provenance envelope
- FeatureSet: nullable structured hiring signals
- JobIdentity: title/company/location resolved during extraction
- ProvenanceTag / SalarySource / CompPeriod enums
"""

from __future__ import annotations

import hashlib
import re
import urllib.parse
from dataclasses import dataclass, field, asdict, fields, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple


# ----------------------------- Enums -----------------------------

class ProvenanceTag(str, Enum):
    """How a record's content was derived."""
    API = "api"
    JSONLD = "jsonld"
    TEXT_ONLY = "text_only"
    MIXED = "mixed"


class SalarySource(str, Enum):
    """Which extraction tier produced the salary group."""
    METADATA = "metadata"
    STRUCTURED_DATA = "structured_data"
    TEXT = "text"
    ORACLE = "oracle"
    MIXED = "mixed"


class CompPeriod(str, Enum):
    """Compensation period."""
    HOUR = "hour"
    YEAR = "year"

    @classmethod
    def from_amount(cls, amount: float) -> "CompPeriod":
        """Small figures are hourly rates, large ones annual salaries."""
        return cls.HOUR if amount <= 300 else cls.YEAR

    @classmethod
    def from_unit_text(cls, unit: Any) -> Optional["CompPeriod"]:
        """Map schema.org unitText (HOUR, YEAR, ANNUAL...) to a period."""
        u = str(unit or "").upper()
        if "HOUR" in u:
            return cls.HOUR
        if "YEAR" in u or "ANNUAL" in u:
            return cls.YEAR
        return None


# ----------------------------- Utilities -----------------------------

def normalize_text(s: str) -> str:
    """Collapse whitespace and strip."""
    return re.sub(r"\s+", " ", (s or "")).strip()


# Tenants sometimes put placeholder text in requisition ids.
REQUISITION_PLACEHOLDERS = frozenset({
    "see opening id",
    "see job id",
    "see req id",
    "n/a",
    "na",
    "none",
    "null",
    "tbd",
    "not applicable",
})


def normalize_requisition_id(value: Any) -> Optional[str]:
    """Strip a requisition id, mapping empty or placeholder values to None."""
    if value is None:
        return None
    s = str(value).strip()
    if not s:
        return None
    if s.lower().rstrip(".:").strip() in REQUISITION_PLACEHOLDERS:
        return None
    return s


def canonicalize_url(url: str) -> str:
    """
    Canonicalize URL by lowercasing scheme/host and dropping the fragment.
    """
    if not url:
        return ""
    try:
        u = urllib.parse.urlsplit(url.strip())
        scheme = u.scheme.lower() or "https"
        netloc = u.netloc.lower()
        return urllib.parse.urlunsplit(u._replace(scheme=scheme, netloc=netloc, fragment=""))
    except ValueError:
        return url.strip()


def host_of(url: Optional[str]) -> str:
    """Lowercase hostname of a URL without a trailing dot ("" when unparsable)."""
    if not url:
        return ""
    try:
        host = urllib.parse.urlsplit(url).hostname or ""
    except ValueError:
        return ""
    return host.lower().rstrip(".")


def parse_date(value: Any) -> Optional[datetime]:
    """
    Parse various date formats into an aware datetime.
    Returns None if parsing fails.
    """
    if not value:
        return None
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    date_str = normalize_text(str(value))

    try:
        dt = datetime.fromisoformat(date_str.replace("Z", "+00:00"))
        return dt if dt.tzinfo else dt.replace(tzinfo=timezone.utc)
    except ValueError:
        pass

    formats = [
        "%Y-%m-%dT%H:%M:%S.%fZ",
        "%Y-%m-%dT%H:%M:%SZ",
        "%Y-%m-%d",
        "%m/%d/%Y",
        "%B %d, %Y",
        "%b %d, %Y",
        "%d %B %Y",
        "%d %b %Y",
    ]
    for fmt in formats:
        try:
            return datetime.strptime(date_str, fmt).replace(tzinfo=timezone.utc)
        except ValueError:
            continue
    return None


def now_utc() -> datetime:
    """Current UTC datetime."""
    return datetime.now(timezone.utc)


def iso_or_none(dt: Optional[datetime]) -> Optional[str]:
    return dt.isoformat() if dt else None


# ----------------------------- Provenance -----------------------------

@dataclass(frozen=True)
class FetchDiagnostics:
    """HTTP diagnostics captured when a record was fetched."""
    status: int = 0
    ok: bool = False
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None
    elapsed_ms: float = 0.0
    final_url: str = ""
    redirect_chain: Tuple[str, ...] = ()

    @property
    def redirect_loop(self) -> bool:
        """True when the redirect chain visits the same URL twice."""
        chain = list(self.redirect_chain)
        if self.final_url:
            chain.append(self.final_url)
        return len(set(chain)) < len(chain)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": self.status,
            "ok": self.ok,
            "started_at": iso_or_none(self.started_at),
            "finished_at": iso_or_none(self.finished_at),
            "elapsed_ms": self.elapsed_ms,
            "final_url": self.final_url,
            "redirect_chain": list(self.redirect_chain),
        }

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "FetchDiagnostics":
        return cls(
            status=int(d.get("status") or 0),
            ok=bool(d.get("ok")),
            started_at=parse_date(d.get("started_at")),
            finished_at=parse_date(d.get("finished_at")),
            elapsed_ms=float(d.get("elapsed_ms") or 0.0),
            final_url=d.get("final_url") or "",
            redirect_chain=tuple(d.get("redirect_chain") or ()),
        )


@dataclass(frozen=True)
class ContentFingerprint:
    """Byte length + SHA-1 of a raw content blob, for change detection."""
    length_bytes: int = 0
    sha1: str = ""

    @classmethod
    def of(cls, content: Optional[str]) -> "ContentFingerprint":
        data = (content or "").encode("utf-8")
        return cls(length_bytes=len(data), sha1=hashlib.sha1(data).hexdigest())


# ----------------------------- CanonicalJobRecord -----------------------------

CompositeKey = Tuple[str, str, str]


@dataclass(frozen=True)
class CanonicalJobRecord:
    """
    Normalized representation of one fetched job posting.

    Records are immutable: a re-fetch produces a new record, which a store
    may upsert under `key`.
    """

    # Composite natural key
    provider: str
    tenant: str
    external_id: str

    title: str = ""
    company: str = ""
    location: str = ""
    url: str = ""

    first_published: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    requisition_id: Optional[str] = None

    # Raw markup (web) or raw HTML field (API)
    content: Optional[str] = None
    # Full API payload (ATS) or {} (web)
    raw_payload: Dict[str, Any] = field(default_factory=dict)
    # Parsed linked-data blocks, kept verbatim
    jsonld: List[Dict[str, Any]] = field(default_factory=list)

    # Provenance envelope
    fetch: FetchDiagnostics = field(default_factory=FetchDiagnostics)
    fingerprint: ContentFingerprint = field(default_factory=ContentFingerprint)
    provenance: ProvenanceTag = ProvenanceTag.TEXT_ONLY

    @property
    def key(self) -> CompositeKey:
        return (self.provider, self.tenant, self.external_id)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a JSON-friendly dictionary for storage/output."""
        return {
            "provider": self.provider,
            "tenant": self.tenant,
            "external_id": self.external_id,
            "title": self.title,
            "company": self.company,
            "location": self.location,
            "url": self.url,
            "first_published": iso_or_none(self.first_published),
            "updated_at": iso_or_none(self.updated_at),
            "requisition_id": self.requisition_id,
            "content": self.content,
            "raw_payload": self.raw_payload,
            "jsonld": self.jsonld,
            "fetch": self.fetch.to_dict(),
            "fingerprint": asdict(self.fingerprint),
            "provenance": self.provenance.value,
        }

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "CanonicalJobRecord":
        fp = d.get("fingerprint") or {}
        return cls(
            provider=d["provider"],
            tenant=d["tenant"],
            external_id=d["external_id"],
            title=d.get("title") or "",
            company=d.get("company") or "",
            location=d.get("location") or "",
            url=d.get("url") or "",
            first_published=parse_date(d.get("first_published")),
            updated_at=parse_date(d.get("updated_at")),
            requisition_id=d.get("requisition_id"),
            content=d.get("content"),
            raw_payload=d.get("raw_payload") or {},
            jsonld=d.get("jsonld") or [],
            fetch=FetchDiagnostics.from_dict(d.get("fetch") or {}),
            fingerprint=ContentFingerprint(
                length_bytes=int(fp.get("length_bytes") or 0),
                sha1=fp.get("sha1") or "",
            ),
            provenance=ProvenanceTag(d.get("provenance") or ProvenanceTag.TEXT_ONLY.value),
        )


# ----------------------------- FeatureSet -----------------------------

SALARY_GROUP = ("salary_min", "salary_mid", "salary_max")


@dataclass(frozen=True)
class FeatureSet:
    """
    Nullable structured hiring signals.

    A None field means "not found", never "zero".
    """
    salary_min: Optional[float] = None
    salary_mid: Optional[float] = None
    salary_max: Optional[float] = None
    currency: Optional[str] = None
    comp_period: Optional[CompPeriod] = None
    time_type: Optional[str] = None
    department: Optional[str] = None
    salary_source: Optional[SalarySource] = None

    @property
    def has_salary(self) -> bool:
        return any(getattr(self, k) is not None for k in SALARY_GROUP)

    def as_partial(self) -> Dict[str, Any]:
        """Non-null fields only."""
        return {f.name: getattr(self, f.name) for f in fields(self) if getattr(self, f.name) is not None}

    def evolve(self, **changes: Any) -> "FeatureSet":
        return replace(self, **changes)

    @classmethod
    def from_partial(cls, partial: Dict[str, Any]) -> "FeatureSet":
        names = {f.name for f in fields(cls)}
        data = {k: v for k, v in partial.items() if k in names}
        if data.get("comp_period") is not None:
            data["comp_period"] = CompPeriod(data["comp_period"])
        if data.get("salary_source") is not None:
            data["salary_source"] = SalarySource(data["salary_source"])
        return cls(**data)

    def to_dict(self) -> Dict[str, Any]:
        d = asdict(self)
        d["comp_period"] = self.comp_period.value if self.comp_period else None
        d["salary_source"] = self.salary_source.value if self.salary_source else None
        return d


# ----------------------------- JobIdentity -----------------------------

@dataclass(frozen=True)
class JobIdentity:
    """Human-facing identity of a posting, resolved during extraction."""
    title: str = ""
    company: str = ""
    location: str = ""
    date_posted: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "title": self.title,
            "company": self.company,
            "location": self.location,
            "date_posted": iso_or_none(self.date_posted),
        }


def normalize_time_type(value: Any) -> Optional[str]:
    """
    Map free-form employment type strings (or schema.org lists) to
    full-time / part-time / contract.
    """
    if isinstance(value, (list, tuple)):
        for v in value:
            mapped = normalize_time_type(v)
            if mapped:
                return mapped
        return None
    s = str(value or "").lower()
    if re.search(r"full[-_\s]?time", s):
        return "full-time"
    if re.search(r"part[-_\s]?time", s):
        return "part-time"
    if re.search(r"contract|temp", s):
        return "contract"
    return None
