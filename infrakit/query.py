"""Read-side helpers used by the CLI and the HTTP server."""

from __future__ import annotations

from collections import OrderedDict
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from rapidfuzz import fuzz, process

from .models import Resource, ResourceKind

# Minimum WRatio score for a fuzzy candidate
FUZZY_MIN_SCORE = 50


def group_children(resources: Iterable[Resource], parent: str) -> Dict[str, List[Resource]]:
    """Group the children of project ``parent`` by service, in snapshot order."""
    grouped: Dict[str, List[Resource]] = OrderedDict()
    for res in resources:
        if res.project_id == parent:
            grouped.setdefault(res.service, []).append(res)
    return grouped


def group_by_project(resources: Iterable[Resource]) -> Dict[str, Dict[str, List[Resource]]]:
    """Group every parented record by project id, then by service.

    Records without a ``project_id`` attribute (project records themselves,
    AWS resources) are not included. Children whose project record is gone
    are still grouped under their ``project_id``.
    """
    grouped: Dict[str, Dict[str, List[Resource]]] = OrderedDict()
    for res in resources:
        parent = res.project_id
        if not parent:
            continue
        grouped.setdefault(parent, OrderedDict()).setdefault(res.service, []).append(res)
    return grouped


def search(resources: Iterable[Resource], query: str, services: Optional[Sequence[str]] = None) -> List[Resource]:
    """Case-insensitive substring search over "<name> <id>".

    Only records whose service is in ``services`` are considered when it is
    given. An empty query matches nothing.
    """
    if not query:
        return []
    needle = query.lower()
    allowed = set(services) if services is not None else None
    results: List[Resource] = []
    for res in resources:
        if allowed is not None and res.service not in allowed:
            continue
        if needle in f"{res.name} {res.id}".lower():
            results.append(res)
    return results


def identities(resources: Iterable[Resource], project: Optional[str] = None) -> List[Resource]:
    """Service accounts and IAM roles, in snapshot order.

    With ``project`` only that project's service accounts are returned;
    AWS roles carry no project and are left out.
    """
    kinds = (ResourceKind.SERVICEACCOUNT, ResourceKind.IAM)
    return [
        res for res in resources
        if res.kind in kinds and (project is None or res.project_id == project)
    ]


def display_label(res: Resource) -> str:
    return f"{res.name} :: {res.id}"


def preview(res: Resource) -> str:
    """Multi-line detail block shown next to a search candidate."""
    lines = [
        f"Name: {res.name}",
        f"ID: {res.id}",
        f"Service: {res.service}",
        f"Region: {res.region}",
        f"Provider: {res.provider}",
    ]
    for key in sorted(res.attributes):
        lines.append(f"  {key}: {res.attributes[key]}")
    return "\n".join(lines)


def fuzzy_rank(resources: Sequence[Resource], query: str, limit: int = 20) -> List[Tuple[Resource, float]]:
    """Rank resources against ``query`` by rapidfuzz WRatio.

    Ties keep snapshot order. An empty query returns the first ``limit``
    resources with a score of 0.
    """
    if not query:
        return [(res, 0.0) for res in resources[:limit]]
    labels = [display_label(res) for res in resources]
    matches = process.extract(
        query,
        labels,
        scorer=fuzz.WRatio,
        processor=str.lower,
        score_cutoff=FUZZY_MIN_SCORE,
        limit=None,
    )
    ranked = sorted(matches, key=lambda m: (-m[1], m[2]))
    return [(resources[idx], float(score)) for _label, score, idx in ranked[:limit]]
