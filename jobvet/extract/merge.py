"""
Priority merge of partial feature dicts.

Used twice: across the deterministic extraction tiers, and between the
deterministic result and the language-model oracle. Earlier partials win.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional, Sequence, Tuple

from jobvet.models import SALARY_GROUP, FeatureSet, SalarySource


@dataclass
class Merged:
    values: Dict[str, Any] = field(default_factory=dict)
    # field name -> index of the partial that supplied it
    origin: Dict[str, int] = field(default_factory=dict)


def priority_merge(
    partials: Sequence[Mapping[str, Any]],
    groups: Sequence[Sequence[str]] = (),
) -> Merged:
    """
    Merge `partials`, highest priority first.

    A field keeps the first non-null value seen. Fields in a group move
    together: the whole group comes from the first partial that sets any of
    its members, so a lower partial can never complete a group a higher one
    started.
    """
    merged = Merged()
    grouped = {k for g in groups for k in g}

    for group in groups:
        for idx, partial in enumerate(partials):
            if any(partial.get(k) is not None for k in group):
                for k in group:
                    if partial.get(k) is not None:
                        merged.values[k] = partial[k]
                        merged.origin[k] = idx
                break

    for idx, partial in enumerate(partials):
        for k, v in partial.items():
            if v is None or k in grouped or k in merged.values:
                continue
            merged.values[k] = v
            merged.origin[k] = idx

    return merged


def finalize_salary(values: Dict[str, Any]) -> Dict[str, Any]:
    """
    Reconcile salary bounds in place (idempotent).

    Swaps inverted bounds and computes the midpoint only when both bounds are
    present and no midpoint was supplied. A lone bound is never mirrored and
    a missing bound is never derived from the midpoint.
    """
    lo = values.get("salary_min")
    hi = values.get("salary_max")
    if lo is not None and hi is not None:
        if lo > hi:
            lo, hi = hi, lo
            values["salary_min"], values["salary_max"] = lo, hi
        if values.get("salary_mid") is None:
            values["salary_mid"] = (lo + hi) / 2
    return values


def merge_features(
    tiers: Sequence[Tuple[SalarySource, Mapping[str, Any]]],
    base: Optional[FeatureSet] = None,
) -> FeatureSet:
    """
    Merge tagged tier partials (highest priority first) into one FeatureSet.

    `base`, when given, outranks every tier. The salary source is the tier that
    supplied the salary bounds, or `mixed` when currency or comp period came
    from a different deterministic tier. Oracle fills never change the tag.
    """
    tags = []
    partials = []
    if base is not None:
        tags.append(base.salary_source)
        partials.append({k: v for k, v in base.as_partial().items() if k != "salary_source"})
    for tag, partial in tiers:
        tags.append(tag)
        partials.append({k: v for k, v in partial.items() if k != "salary_source"})

    merged = priority_merge(partials, groups=[SALARY_GROUP])
    values = finalize_salary(merged.values)

    salary_idx = next((merged.origin[k] for k in SALARY_GROUP if k in merged.origin), None)
    if salary_idx is not None:
        source = tags[salary_idx]
        for k in ("currency", "comp_period"):
            origin = merged.origin.get(k)
            if origin is not None and origin != salary_idx and tags[origin] != SalarySource.ORACLE:
                source = SalarySource.MIXED
        values["salary_source"] = source

    return FeatureSet.from_partial(values)
