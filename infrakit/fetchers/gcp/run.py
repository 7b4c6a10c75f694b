"""Cloud Run service fetcher."""

from __future__ import annotations

import json
import logging
from typing import Any, List, Optional, Tuple

from google.api_core.exceptions import GoogleAPICallError

from ...constants import NOT_AVAILABLE, PROVIDER_GCP
from ...models import Resource, ResourceKind, ResourceRef
from .clients import GcpClients

logger = logging.getLogger(__name__)

VPC_CONNECTOR_ANNOTATION = "run.googleapis.com/vpc-access-connector"
NETWORK_INTERFACES_ANNOTATION = "run.googleapis.com/network-interfaces"


def extract_resource_name(resource_path: Optional[str]) -> str:
    """Return the last segment of a resource path, or "N/A" when empty.

    >>> extract_resource_name("projects/p/locations/us-central1/connectors/c1")
    'c1'
    """
    ref = ResourceRef.parse(resource_path)
    return ref.name if ref else NOT_AVAILABLE


def parse_network_interfaces(value: str) -> Tuple[str, str]:
    """Parse the network-interfaces annotation into (vpc, subnet) short names.

    The annotation holds a JSON list like
    ``[{"network": "vpc-name", "subnetwork": "subnet-name"}]``; only the
    first interface is used. Unparseable or empty input gives ("", "").
    """
    try:
        interfaces = json.loads(value)
    except (TypeError, ValueError) as exc:
        logger.warning("could not parse network-interfaces annotation: %s", exc)
        return "", ""
    if not isinstance(interfaces, list) or not interfaces or not isinstance(interfaces[0], dict):
        return "", ""
    iface = interfaces[0]
    network = iface.get("network")
    subnetwork = iface.get("subnetwork")
    vpc = extract_resource_name(network) if isinstance(network, str) and network else ""
    subnet = extract_resource_name(subnetwork) if isinstance(subnetwork, str) and subnetwork else ""
    return vpc, subnet


def _location(service_name: str) -> str:
    parts = service_name.split("/")
    if "locations" in parts:
        idx = parts.index("locations")
        if idx + 1 < len(parts):
            return parts[idx + 1]
    return ""


def _network_attributes(service: Any) -> Tuple[str, str]:
    vpc, subnet = NOT_AVAILABLE, NOT_AVAILABLE
    template = service.template

    # Annotations written by older deployments
    annotations = dict(template.annotations or {})
    connector = annotations.get(VPC_CONNECTOR_ANNOTATION)
    if connector:
        vpc, subnet = "via-connector", extract_resource_name(connector)
    interfaces = annotations.get(NETWORK_INTERFACES_ANNOTATION)
    if interfaces:
        parsed_vpc, parsed_subnet = parse_network_interfaces(interfaces)
        vpc = parsed_vpc or vpc
        subnet = parsed_subnet or subnet

    # Structured VPC access wins over annotations
    access = template.vpc_access
    if access.connector:
        vpc, subnet = "via-connector", extract_resource_name(access.connector)
    if len(access.network_interfaces) > 0:
        iface = access.network_interfaces[0]
        if iface.network:
            vpc = extract_resource_name(iface.network)
        if iface.subnetwork:
            subnet = extract_resource_name(iface.subnetwork)
    return vpc, subnet


def fetch_cloud_run_services(project_id: str, clients: Optional[GcpClients] = None) -> List[Resource]:
    """Fetch Cloud Run services in every location of one project.

    A failed list call is logged and yields no resources. Services without
    a container in their template are skipped.
    """
    clients = clients or GcpClients()
    resources: List[Resource] = []
    logger.info("   -> Fetching Cloud Run services for project: %s", project_id)

    parent = f"projects/{project_id}/locations/-"
    try:
        services = list(clients.run_services.list_services(parent=parent))
    except GoogleAPICallError as exc:
        logger.warning("could not list Cloud Run services for project %s: %s", project_id, exc)
        return []

    for service in services:
        containers = service.template.containers
        if len(containers) == 0:
            continue
        short_name = extract_resource_name(service.name)
        vpc, subnet = _network_attributes(service)
        resources.append(
            Resource(
                provider=PROVIDER_GCP,
                service=ResourceKind.CLOUDRUN.value,
                region=_location(service.name),
                id=short_name,
                name=short_name,
                attributes={
                    "project_id": project_id,
                    "url": service.uri,
                    "image": containers[0].image,
                    "vpc": vpc,
                    "subnet": subnet,
                },
            )
        )
    return resources
