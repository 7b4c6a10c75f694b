"""Service account fetcher with project-level role bindings."""

from __future__ import annotations

import logging
from typing import Any, List, Optional

from google.api_core.exceptions import GoogleAPICallError

from ...constants import GLOBAL_REGION, NOT_AVAILABLE, PROVIDER_GCP
from ...models import Resource, ResourceKind
from .clients import GcpClients

logger = logging.getLogger(__name__)


def roles_for_member(policy: Any, member: str) -> List[str]:
    """Return the roles whose binding lists ``member``, in binding order."""
    roles: List[str] = []
    for binding in getattr(policy, "bindings", None) or []:
        if member in binding.members:
            roles.append(binding.role)
    return roles


def _display_name(account: Any) -> str:
    if account.display_name:
        return account.display_name
    local = account.email.split("@")[0] if account.email else ""
    return local or NOT_AVAILABLE


def fetch_service_accounts(project_id: str, clients: Optional[GcpClients] = None) -> List[Resource]:
    """Fetch service accounts and the roles granted to them on the project.

    Without the project IAM policy no roles can be determined, so a failure
    to read it, like a failure to list accounts, yields an empty list.
    """
    clients = clients or GcpClients()
    logger.info("   -> Fetching Service Accounts and Project Roles for project: %s", project_id)

    try:
        policy = clients.projects.get_iam_policy(resource=f"projects/{project_id}")
    except GoogleAPICallError as exc:
        logger.warning("could not get project IAM policy for project %s (permissions issue?): %s", project_id, exc)
        return []

    try:
        accounts = list(clients.iam.list_service_accounts(name=f"projects/{project_id}"))
    except GoogleAPICallError as exc:
        logger.warning("could not list service accounts for project %s: %s", project_id, exc)
        return []

    if not accounts:
        logger.info("   -> No service accounts found for project %s", project_id)
        return []

    resources: List[Resource] = []
    for account in accounts:
        roles = roles_for_member(policy, f"serviceAccount:{account.email}")
        resources.append(
            Resource(
                provider=PROVIDER_GCP,
                service=ResourceKind.SERVICEACCOUNT.value,
                region=GLOBAL_REGION,
                id=account.email,
                name=_display_name(account),
                attributes={
                    "project_id": project_id,
                    "email": account.email,
                    "unique_id": account.unique_id,
                    "disabled": "true" if account.disabled else "false",
                    "description": account.description,
                    "roles": ", ".join(roles),
                },
            )
        )
    logger.info("   -> Fetched %d service accounts for project %s", len(resources), project_id)
    return resources
