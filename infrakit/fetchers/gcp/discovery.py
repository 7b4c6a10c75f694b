"""GCP organization discovery and project-level fetch strategies.

With an organization visible, folders and projects come from a Cloud Asset
search over the organization. Without one, every project the caller can
see is listed through Resource Manager. Either way each project is then
expanded into its network, Cloud Run, load-balancer and IAM resources.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, List, Optional, Tuple

from google.api_core.exceptions import GoogleAPICallError

from ...constants import (
    ASSET_TYPE_FOLDER,
    ASSET_TYPE_PROJECT,
    GLOBAL_REGION,
    NOT_AVAILABLE,
    PROVIDER_GCP,
)
from ...models import Resource, ResourceKind
from .clients import GcpClients
from .compute import fetch_app_infra, fetch_network_resources
from .iam import fetch_service_accounts
from .run import fetch_cloud_run_services

logger = logging.getLogger(__name__)

ProjectFetcher = Callable[[str, GcpClients], List[Resource]]

# Order in which a project's children are appended to the snapshot
PROJECT_CHILD_FETCHERS: List[Tuple[str, ProjectFetcher]] = [
    ("network resources", fetch_network_resources),
    ("cloud run services", fetch_cloud_run_services),
    ("app infrastructure", fetch_app_infra),
    ("service accounts", fetch_service_accounts),
]


def _state_name(state: Any) -> str:
    if state is None:
        return ""
    return state.name if hasattr(state, "name") else str(state)


def _number(value: Any) -> str:
    if value is None or value == "":
        return NOT_AVAILABLE
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def project_resource(project_id: str, display_name: str, state: str, project_number: str) -> Resource:
    return Resource(
        provider=PROVIDER_GCP,
        service=ResourceKind.PROJECT.value,
        region=GLOBAL_REGION,
        id=project_id,
        name=display_name or project_id,
        attributes={"state": state, "project_number": project_number},
    )


def discover_organization(clients: Optional[GcpClients] = None) -> str:
    """Return the first organization the caller can see, or "" if none.

    Raises:
        GoogleAPICallError: the search itself failed
    """
    clients = clients or GcpClients()
    logger.info("Checking for a GCP Organization...")
    for org in clients.organizations.search_organizations(query=""):
        logger.info("Found GCP Organization: %s", org.display_name)
        return org.name
    logger.info("No GCP Organization found.")
    return ""


def fetch_project_children(project_id: str, clients: GcpClients) -> List[Resource]:
    """Fetch everything that hangs off one project.

    A child fetcher that raises is logged and skipped so one broken API
    does not hide the rest of the project.
    """
    resources: List[Resource] = []
    for label, fetch in PROJECT_CHILD_FETCHERS:
        try:
            resources.extend(fetch(project_id, clients))
        except GoogleAPICallError as exc:
            logger.warning("could not fetch %s for project %s: %s", label, project_id, exc)
    return resources


def fetch_org_resources(organization_id: str, clients: Optional[GcpClients] = None) -> List[Resource]:
    """Fetch folders, projects and project children below an organization."""
    clients = clients or GcpClients()
    resources: List[Resource] = []
    logger.info("Fetching all GCP resources for organization %s", organization_id)

    results = clients.assets.search_all_resources(
        request={"scope": organization_id, "asset_types": [ASSET_TYPE_PROJECT, ASSET_TYPE_FOLDER]}
    )
    for result in results:
        if result.asset_type == ASSET_TYPE_PROJECT:
            attrs: Dict[str, Any] = dict(result.additional_attributes or {})
            project_id = str(attrs.get("projectId") or "")
            resources.append(
                project_resource(
                    project_id,
                    result.display_name,
                    _state_name(result.state),
                    _number(attrs.get("projectNumber")),
                )
            )
            if project_id and project_id != NOT_AVAILABLE:
                resources.extend(fetch_project_children(project_id, clients))
        elif result.asset_type == ASSET_TYPE_FOLDER:
            resources.append(
                Resource(
                    provider=PROVIDER_GCP,
                    service=ResourceKind.FOLDER.value,
                    region=GLOBAL_REGION,
                    id=result.name,
                    name=result.display_name,
                    attributes={"state": _state_name(result.state)},
                )
            )
    return resources


def _project_number(project: Any) -> str:
    # Resource Manager v3 names projects "projects/<number>"
    name = getattr(project, "name", "") or ""
    return _number(name.split("/")[-1] if name else None)


def fetch_projects_no_org(clients: Optional[GcpClients] = None) -> List[Resource]:
    """List every accessible project and fetch its children."""
    clients = clients or GcpClients()
    resources: List[Resource] = []
    logger.info("No GCP Organization found. Fetching all accessible projects...")

    for project in clients.projects.search_projects(query=""):
        resources.append(
            project_resource(
                project.project_id,
                project.display_name,
                _state_name(project.state),
                _project_number(project),
            )
        )
        resources.extend(fetch_project_children(project.project_id, clients))
    return resources


def fetch_single_project(project_id: str, clients: Optional[GcpClients] = None) -> List[Resource]:
    """Fetch one project record and its children.

    Raises:
        GoogleAPICallError: the project itself could not be read
    """
    clients = clients or GcpClients()
    logger.info("Fetching GCP project %s", project_id)
    project = clients.projects.get_project(name=f"projects/{project_id}")
    resources = [
        project_resource(
            project.project_id or project_id,
            project.display_name,
            _state_name(project.state),
            _project_number(project),
        )
    ]
    resources.extend(fetch_project_children(project_id, clients))
    return resources
