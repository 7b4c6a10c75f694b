"""Compute Engine fetchers: networking and load-balancer infrastructure."""

from __future__ import annotations

import json
import logging
from typing import Any, Iterable, List, Optional

from google.api_core.exceptions import GoogleAPICallError

from ...constants import GLOBAL_REGION, PROVIDER_GCP
from ...models import Resource, ResourceKind, ResourceRef
from .clients import GcpClients

logger = logging.getLogger(__name__)


def _gcp(service: ResourceKind, project_id: str, name: str, region: str = GLOBAL_REGION, **attrs: str) -> Resource:
    return Resource(
        provider=PROVIDER_GCP,
        service=service.value,
        region=region,
        id=name,
        name=name,
        attributes={"project_id": project_id, **attrs},
    )


def _short(link: Optional[str], default: str = "") -> str:
    ref = ResourceRef.parse(link)
    return ref.name if ref else default


def _scope_region(scope: str) -> str:
    """Map an aggregated-list key ("global", "regions/us-central1") to a region."""
    if not scope or scope == GLOBAL_REGION:
        return GLOBAL_REGION
    return _short(scope, GLOBAL_REGION)


def _bool(value: Any) -> str:
    return "true" if value else "false"


def format_firewall_entries(entries: Iterable[Any]) -> str:
    """Render allowed/denied entries as ``tcp:80,443; udp``."""
    parts: List[str] = []
    for entry in entries:
        part = entry.I_p_protocol
        if entry.ports:
            part += ":" + ",".join(entry.ports)
        parts.append(part)
    return "; ".join(parts)


def fetch_network_resources(project_id: str, clients: Optional[GcpClients] = None) -> List[Resource]:
    """Fetch VPC networks, subnets and firewall rules for one project.

    Each list call fails independently; a failed call is logged and the
    others still run.
    """
    clients = clients or GcpClients()
    resources: List[Resource] = []
    logger.info("   -> Fetching network resources for project: %s", project_id)

    try:
        for network in clients.networks.list(project=project_id):
            resources.append(
                _gcp(ResourceKind.VPC, project_id, network.name, mode=_bool(network.auto_create_subnetworks))
            )
    except GoogleAPICallError as exc:
        logger.warning("could not list networks for project %s: %s", project_id, exc)

    try:
        for _scope, scoped in clients.subnetworks.aggregated_list(project=project_id):
            for subnet in scoped.subnetworks:
                resources.append(
                    _gcp(
                        ResourceKind.SUBNET,
                        project_id,
                        subnet.name,
                        region=_short(subnet.region, GLOBAL_REGION),
                        vpc=subnet.network,
                        cidr_range=subnet.ip_cidr_range,
                    )
                )
    except GoogleAPICallError as exc:
        logger.warning("could not list subnets for project %s: %s", project_id, exc)

    try:
        for rule in clients.firewalls.list(project=project_id):
            resources.append(
                _gcp(
                    ResourceKind.FIREWALL,
                    project_id,
                    rule.name,
                    action="ALLOW" if len(rule.allowed) > 0 else "DENY",
                    direction=rule.direction,
                    priority=str(rule.priority),
                    disabled=_bool(rule.disabled),
                    source_ranges=", ".join(rule.source_ranges),
                    destination_ranges=", ".join(rule.destination_ranges),
                    target_tags=", ".join(rule.target_tags),
                    allowed=format_firewall_entries(rule.allowed),
                    denied=format_firewall_entries(rule.denied),
                )
            )
    except GoogleAPICallError as exc:
        logger.warning("could not list firewall rules for project %s: %s", project_id, exc)

    return resources


def format_rule_match(match: Any) -> str:
    """Summarize a security policy rule match as one string."""
    if match is None:
        return ""
    expression = getattr(getattr(match, "expr", None), "expression", "")
    if expression:
        return expression
    ranges = list(getattr(getattr(match, "config", None), "src_ip_ranges", []) or [])
    if ranges:
        return "srcIpRanges=" + ",".join(ranges)
    return getattr(match, "versioned_expr", "") or ""


def encode_policy_rules(rules: Iterable[Any]) -> str:
    """Encode security policy rules as the JSON list stored in ``rules``."""
    return json.dumps(
        [
            {
                "priority": int(rule.priority),
                "action": rule.action,
                "description": rule.description,
                "match": format_rule_match(rule.match),
            }
            for rule in rules
        ]
    )


def fetch_app_infra(project_id: str, clients: Optional[GcpClients] = None) -> List[Resource]:
    """Fetch the load-balancer chain for one project.

    Backend services, URL maps, HTTPS target proxies, global forwarding
    rules and Cloud Armor security policies, each carrying the link
    attributes the flow reconstructor follows.
    """
    clients = clients or GcpClients()
    resources: List[Resource] = []
    logger.info("   -> Fetching App infrastructure for project: %s", project_id)

    try:
        for scope, scoped in clients.backend_services.aggregated_list(project=project_id):
            for bs in scoped.backend_services:
                resources.append(
                    _gcp(
                        ResourceKind.BACKENDSERVICE,
                        project_id,
                        bs.name,
                        region=_scope_region(scope),
                        load_balancing_scheme=bs.load_balancing_scheme,
                        cloud_armor_policy=bs.security_policy,
                    )
                )
    except GoogleAPICallError as exc:
        logger.warning("could not list backend services for project %s: %s", project_id, exc)

    try:
        for scope, scoped in clients.url_maps.aggregated_list(project=project_id):
            for um in scoped.url_maps:
                resources.append(
                    _gcp(
                        ResourceKind.URLMAP,
                        project_id,
                        um.name,
                        region=_scope_region(scope),
                        default_service=um.default_service,
                    )
                )
    except GoogleAPICallError as exc:
        logger.warning("could not list URL maps for project %s: %s", project_id, exc)

    try:
        for scope, scoped in clients.target_https_proxies.aggregated_list(project=project_id):
            for proxy in scoped.target_https_proxies:
                resources.append(
                    _gcp(
                        ResourceKind.TARGETHTTPSPROXY,
                        project_id,
                        proxy.name,
                        region=_scope_region(scope),
                        url_map=proxy.url_map,
                        ssl_certificates=",".join(proxy.ssl_certificates),
                        ssl_policy=proxy.ssl_policy,
                    )
                )
    except GoogleAPICallError as exc:
        logger.warning("could not list target HTTPS proxies for project %s: %s", project_id, exc)

    try:
        for fr in clients.global_forwarding_rules.list(project=project_id):
            resources.append(
                _gcp(
                    ResourceKind.FORWARDINGRULE,
                    project_id,
                    fr.name,
                    ip_address=fr.I_p_address,
                    port_range=fr.port_range,
                    protocol=fr.I_p_protocol,
                    load_balancing_scheme=fr.load_balancing_scheme,
                    target=fr.target,
                )
            )
    except GoogleAPICallError as exc:
        logger.warning("could not list forwarding rules for project %s: %s", project_id, exc)

    try:
        for policy in clients.security_policies.list(project=project_id):
            resources.append(
                _gcp(
                    ResourceKind.SECURITYPOLICY,
                    project_id,
                    policy.name,
                    rules=encode_policy_rules(policy.rules),
                )
            )
    except GoogleAPICallError as exc:
        logger.warning("could not list security policies for project %s: %s", project_id, exc)

    return resources
