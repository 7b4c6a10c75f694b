"""Drive fetchers and concatenate their output.

Fetchers run one after another in the order given. Strict aggregation stops
at the first failure; partial aggregation keeps going and reports each
failure as a warning next to whatever did succeed.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, List, Sequence

from ..errors import UpstreamFetchError
from ..models import Resource

logger = logging.getLogger(__name__)

FetchFn = Callable[[], List[Resource]]
ScopedFetchFn = Callable[[str], List[Resource]]


@dataclass
class NamedFetcher:
    """A zero-argument fetch function and the label used in logs and errors."""

    name: str
    fetch: FetchFn

    def __call__(self) -> List[Resource]:
        return self.fetch()


@dataclass
class FetchWarning:
    fetcher: str
    error: str


@dataclass
class AggregationResult:
    resources: List[Resource] = field(default_factory=list)
    warnings: List[FetchWarning] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.warnings


def _run(fetcher: NamedFetcher) -> List[Resource]:
    try:
        resources = list(fetcher() or [])
    except UpstreamFetchError:
        raise
    except Exception as exc:
        raise UpstreamFetchError(fetcher.name, cause=exc) from exc
    logger.info("Fetcher %s returned %d resources", fetcher.name, len(resources))
    return resources


def aggregate_all(fetchers: Sequence[NamedFetcher]) -> List[Resource]:
    """Run every fetcher in order and concatenate their results.

    Raises:
        UpstreamFetchError: the first fetcher that fails aborts the whole run
    """
    resources: List[Resource] = []
    for fetcher in fetchers:
        resources.extend(_run(fetcher))
    return resources


def aggregate_partial(fetchers: Sequence[NamedFetcher]) -> AggregationResult:
    """Run every fetcher in order, collecting failures instead of raising."""
    result = AggregationResult()
    for fetcher in fetchers:
        try:
            result.resources.extend(_run(fetcher))
        except UpstreamFetchError as exc:
            logger.warning("Fetcher %s failed, continuing: %s", fetcher.name, exc)
            result.warnings.append(FetchWarning(fetcher=fetcher.name, error=str(exc)))
    return result


def aggregate_scope(fetcher: ScopedFetchFn, scope_id: str, name: str = "scope") -> List[Resource]:
    """Run one fetcher bound to ``scope_id``.

    Raises:
        UpstreamFetchError: the fetcher failed
    """
    return _run(NamedFetcher(name=f"{name}:{scope_id}", fetch=lambda: fetcher(scope_id)))
