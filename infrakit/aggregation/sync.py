"""The sync use case: fetch from providers and update the snapshot.

``infrakit sync``                 all providers, full replacement
``infrakit sync aws``             AWS only, full replacement
``infrakit sync gcp``             GCP only, full replacement
``infrakit sync gcp <project>``   one project, scoped merge
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, List, Optional

from google.api_core.exceptions import GoogleAPICallError
from google.auth.exceptions import GoogleAuthError

from ..cache.store import MergeResult, SnapshotStore
from ..constants import PROVIDER_AWS, PROVIDER_GCP, PROVIDERS
from ..errors import InvalidProviderError
from ..fetchers import aws
from ..fetchers.gcp import (
    GcpClients,
    discover_organization,
    fetch_org_resources,
    fetch_projects_no_org,
    fetch_single_project,
)
from ..models import Resource
from .orchestrator import (
    AggregationResult,
    FetchWarning,
    NamedFetcher,
    aggregate_all,
    aggregate_partial,
    aggregate_scope,
)

logger = logging.getLogger(__name__)


@dataclass
class SyncOutcome:
    """What a sync did.

    ``mode`` is "full" (snapshot replaced), "scoped" (one scope merged) or
    "empty" (full sync found nothing; snapshot left untouched).
    """

    mode: str
    resource_count: int
    provider: Optional[str] = None
    scope_id: Optional[str] = None
    merge: Optional[MergeResult] = None
    warnings: List[FetchWarning] = field(default_factory=list)


def validate_target(provider: Optional[str], project_id: Optional[str]) -> None:
    """Reject unknown providers and project scopes outside GCP before fetching."""
    if provider and provider not in PROVIDERS:
        raise InvalidProviderError(provider)
    if project_id and provider != PROVIDER_GCP:
        raise InvalidProviderError(
            provider or "",
            reason="a project id can only be given together with the 'gcp' provider",
        )


def fetch_gcp(clients: Optional[GcpClients] = None) -> List[Resource]:
    """Fetch all GCP resources, choosing the strategy by organization visibility."""
    clients = clients or GcpClients()
    try:
        organization_id = discover_organization(clients)
    except (GoogleAPICallError, GoogleAuthError) as exc:
        logger.warning("Could not discover GCP organization: %s", exc)
        organization_id = ""

    if organization_id:
        return fetch_org_resources(organization_id, clients)
    return fetch_projects_no_org(clients)


def build_fetchers(
    provider: Optional[str] = None,
    aws_session: Optional[Any] = None,
    gcp_clients: Optional[GcpClients] = None,
) -> List[NamedFetcher]:
    """Fetchers for a full sync, in their fixed order: AWS EC2, AWS IAM, GCP."""
    fetchers: List[NamedFetcher] = []
    if not provider or provider == PROVIDER_AWS:
        fetchers.append(NamedFetcher("aws:ec2", lambda: aws.fetch_ec2_instances(aws_session)))
        fetchers.append(NamedFetcher("aws:iam", lambda: aws.fetch_iam_roles(aws_session)))
    if not provider or provider == PROVIDER_GCP:
        fetchers.append(NamedFetcher("gcp", lambda: fetch_gcp(gcp_clients)))
    return fetchers


def sync(
    store: SnapshotStore,
    provider: Optional[str] = None,
    project_id: Optional[str] = None,
    partial: bool = False,
    fetchers: Optional[List[NamedFetcher]] = None,
    aws_session: Optional[Any] = None,
    gcp_clients: Optional[GcpClients] = None,
) -> SyncOutcome:
    """Fetch resources and write them to ``store``.

    Args:
        store: Snapshot store to update
        provider: "aws", "gcp" or None for every provider
        project_id: GCP project to sync on its own with a scoped merge
        partial: keep going past failing fetchers during a full sync
        fetchers: override the full-sync fetcher list (mainly for tests)
        aws_session: boto3 session for the AWS fetchers
        gcp_clients: client holder for the GCP fetchers

    Raises:
        InvalidProviderError: unknown provider, or a project id outside GCP
        UpstreamFetchError: a fetcher failed (strict mode, or the scoped fetch)
        CacheError: the snapshot could not be written
    """
    validate_target(provider, project_id)
    logger.info("Starting resource sync...")

    if project_id:
        logger.info("--- Syncing specific GCP project: %s ---", project_id)
        clients = gcp_clients or GcpClients()
        resources = aggregate_scope(
            lambda pid: fetch_single_project(pid, clients), project_id, name="gcp-project"
        )
        logger.info("Found %d resources for project %s", len(resources), project_id)
        merge = store.merge_scope(resources, project_id)
        logger.info("Successfully synced project %s and merged with cache!", project_id)
        return SyncOutcome(
            mode="scoped",
            resource_count=len(resources),
            provider=PROVIDER_GCP,
            scope_id=project_id,
            merge=merge,
        )

    if fetchers is None:
        fetchers = build_fetchers(provider, aws_session=aws_session, gcp_clients=gcp_clients)
    if partial:
        result = aggregate_partial(fetchers)
    else:
        result = AggregationResult(resources=aggregate_all(fetchers))

    if not result.resources:
        logger.info("Sync finished. No new resources found.")
        return SyncOutcome(mode="empty", resource_count=0, provider=provider, warnings=result.warnings)

    store.save(result.resources)
    logger.info("Sync completed successfully! Found %d total resources.", len(result.resources))
    return SyncOutcome(
        mode="full",
        resource_count=len(result.resources),
        provider=provider,
        warnings=result.warnings,
    )
