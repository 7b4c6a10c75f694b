"""Google Cloud fetchers."""

from .clients import GcpClients
from .compute import fetch_app_infra, fetch_network_resources
from .discovery import (
    discover_organization,
    fetch_org_resources,
    fetch_project_children,
    fetch_projects_no_org,
    fetch_single_project,
)
from .iam import fetch_service_accounts
from .run import fetch_cloud_run_services

__all__ = [
    "GcpClients",
    "discover_organization",
    "fetch_app_infra",
    "fetch_cloud_run_services",
    "fetch_network_resources",
    "fetch_org_resources",
    "fetch_project_children",
    "fetch_projects_no_org",
    "fetch_service_accounts",
    "fetch_single_project",
]
