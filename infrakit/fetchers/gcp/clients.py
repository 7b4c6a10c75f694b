"""Lazily constructed google-cloud clients shared across one sync run."""

from __future__ import annotations

from functools import cached_property
from typing import Any, Optional

from google.cloud import asset_v1, compute_v1, iam_admin_v1, resourcemanager_v3, run_v2


class GcpClients:
    """Builds each API client on first use with the same credentials.

    Passing ``credentials=None`` uses Application Default Credentials.
    """

    def __init__(self, credentials: Optional[Any] = None) -> None:
        self.credentials = credentials

    # Resource Manager / Asset

    @cached_property
    def organizations(self) -> resourcemanager_v3.OrganizationsClient:
        return resourcemanager_v3.OrganizationsClient(credentials=self.credentials)

    @cached_property
    def projects(self) -> resourcemanager_v3.ProjectsClient:
        return resourcemanager_v3.ProjectsClient(credentials=self.credentials)

    @cached_property
    def assets(self) -> asset_v1.AssetServiceClient:
        return asset_v1.AssetServiceClient(credentials=self.credentials)

    # Compute: networking

    @cached_property
    def networks(self) -> compute_v1.NetworksClient:
        return compute_v1.NetworksClient(credentials=self.credentials)

    @cached_property
    def subnetworks(self) -> compute_v1.SubnetworksClient:
        return compute_v1.SubnetworksClient(credentials=self.credentials)

    @cached_property
    def firewalls(self) -> compute_v1.FirewallsClient:
        return compute_v1.FirewallsClient(credentials=self.credentials)

    # Compute: load balancing

    @cached_property
    def backend_services(self) -> compute_v1.BackendServicesClient:
        return compute_v1.BackendServicesClient(credentials=self.credentials)

    @cached_property
    def url_maps(self) -> compute_v1.UrlMapsClient:
        return compute_v1.UrlMapsClient(credentials=self.credentials)

    @cached_property
    def target_https_proxies(self) -> compute_v1.TargetHttpsProxiesClient:
        return compute_v1.TargetHttpsProxiesClient(credentials=self.credentials)

    @cached_property
    def global_forwarding_rules(self) -> compute_v1.GlobalForwardingRulesClient:
        return compute_v1.GlobalForwardingRulesClient(credentials=self.credentials)

    @cached_property
    def security_policies(self) -> compute_v1.SecurityPoliciesClient:
        return compute_v1.SecurityPoliciesClient(credentials=self.credentials)

    # Serverless / IAM

    @cached_property
    def run_services(self) -> run_v2.ServicesClient:
        return run_v2.ServicesClient(credentials=self.credentials)

    @cached_property
    def iam(self) -> iam_admin_v1.IAMClient:
        return iam_admin_v1.IAMClient(credentials=self.credentials)
