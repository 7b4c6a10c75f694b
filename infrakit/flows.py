"""Rebuild load-balancer flows from the flat snapshot.

Each flow follows string links between records of one scope:

    forwardingrule.target -> targethttpsproxy.url_map -> urlmap.default_service
        -> backendservice (-> cloudrun by name, -> securitypolicy)

A forwarding rule whose chain breaks before the backend service is dropped
without error. Nothing here does I/O.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional

from .cache.store import belongs_to_scope
from .constants import (
    ATTR_CLOUD_ARMOR_POLICY,
    ATTR_DEFAULT_SERVICE,
    ATTR_IP_ADDRESS,
    ATTR_LB_SCHEME,
    ATTR_PORT_RANGE,
    ATTR_PROTOCOL,
    ATTR_RULES,
    ATTR_SSL_CERTIFICATES,
    ATTR_SSL_POLICY,
    ATTR_TARGET,
    ATTR_URL_MAP,
    BACKEND_TYPE_CLOUD_RUN,
    DEFAULT_PATH_MATCHER,
    DEFAULT_ROUTE_HOSTS,
)
from .models import (
    BackendConfig,
    CloudArmorPolicy,
    CloudArmorRule,
    FrontendConfig,
    LoadBalancerFlow,
    Resource,
    ResourceKind,
    ResourceRef,
    RoutingRule,
)

logger = logging.getLogger(__name__)

_INDEXED_KINDS = (
    ResourceKind.BACKENDSERVICE,
    ResourceKind.URLMAP,
    ResourceKind.TARGETHTTPSPROXY,
    ResourceKind.CLOUDRUN,
    ResourceKind.SECURITYPOLICY,
)


@dataclass
class ScopeIndex:
    """Name-keyed lookups for the record kinds a flow passes through.

    When two records of one kind share a name the first one seen wins, and
    iteration follows snapshot order.
    """

    by_kind: Dict[ResourceKind, Dict[str, Resource]] = field(
        default_factory=lambda: {kind: {} for kind in _INDEXED_KINDS}
    )
    forwarding_rules: List[Resource] = field(default_factory=list)

    @classmethod
    def build(cls, resources: Iterable[Resource]) -> "ScopeIndex":
        index = cls()
        for res in resources:
            kind = res.kind
            if kind is ResourceKind.FORWARDINGRULE:
                index.forwarding_rules.append(res)
            elif kind in index.by_kind:
                index.by_kind[kind].setdefault(res.name, res)
        return index

    def resolve(self, kind: ResourceKind, ref: Optional[ResourceRef]) -> Optional[Resource]:
        if ref is None:
            return None
        return self.by_kind[kind].get(ref.name)

    @property
    def cloud_run_services(self) -> List[Resource]:
        return list(self.by_kind[ResourceKind.CLOUDRUN].values())


def split_certificates(value: Optional[str]) -> List[str]:
    if not value:
        return []
    return [c.strip() for c in value.split(",") if c.strip()]


def match_cloud_run(backend_name: str, services: Iterable[Resource]) -> Optional[Resource]:
    """Return the first Cloud Run service whose name overlaps ``backend_name``.

    A service matches when its name occurs in the backend name ("api" for
    "bs-api") or the backend name occurs in its name ("bs1" for "svc-bs1").
    This is a containment test, not an exact match: with services "api" and
    "api-v2", a backend "bs-api-v2" links to whichever comes first in
    snapshot order. Empty names never match.
    """
    if not backend_name:
        return None
    for svc in services:
        if svc.name and (svc.name in backend_name or backend_name in svc.name):
            return svc
    return None


def decode_policy_rules(policy: Optional[Resource]) -> List[CloudArmorRule]:
    """Decode the JSON ``rules`` attribute captured at fetch time, if any."""
    if policy is None:
        return []
    raw = policy.attributes.get(ATTR_RULES)
    if not raw:
        return []
    try:
        data = json.loads(raw)
        if not isinstance(data, list):
            raise TypeError("rules is not a list")
        return [CloudArmorRule.from_dict(item) for item in data]
    except (TypeError, ValueError, AttributeError, OverflowError) as exc:
        logger.debug("Ignoring undecodable rules on policy %s: %s", policy.name, exc)
        return []


def trace_flow(rule: Resource, index: ScopeIndex, scope_id: str) -> Optional[LoadBalancerFlow]:
    """Trace one forwarding rule; None if the chain breaks before a backend."""
    attrs = rule.attributes

    proxy = index.resolve(ResourceKind.TARGETHTTPSPROXY, rule.ref(ATTR_TARGET))
    if proxy is None:
        return None
    url_map = index.resolve(ResourceKind.URLMAP, proxy.ref(ATTR_URL_MAP))
    if url_map is None:
        return None
    backend_service = index.resolve(ResourceKind.BACKENDSERVICE, url_map.ref(ATTR_DEFAULT_SERVICE))
    if backend_service is None:
        return None

    flow = LoadBalancerFlow(
        name=rule.name,
        project_id=scope_id,
        frontend=FrontendConfig(
            ip_address=attrs.get(ATTR_IP_ADDRESS, ""),
            port_range=attrs.get(ATTR_PORT_RANGE, ""),
            protocol=attrs.get(ATTR_PROTOCOL, ""),
            certificates=split_certificates(proxy.attributes.get(ATTR_SSL_CERTIFICATES)),
            ssl_policy=proxy.attributes.get(ATTR_SSL_POLICY, ""),
            load_balancing_scheme=attrs.get(ATTR_LB_SCHEME, ""),
        ),
        # Only the default route is recorded; host rules are not decoded.
        routing_rules=[RoutingRule(hosts=list(DEFAULT_ROUTE_HOSTS), path_matcher=DEFAULT_PATH_MATCHER)],
        backend=BackendConfig(name=backend_service.name),
    )

    cloud_run = match_cloud_run(backend_service.name, index.cloud_run_services)
    if cloud_run is not None:
        flow.backend.type = BACKEND_TYPE_CLOUD_RUN
        flow.backend.service_name = cloud_run.name
        flow.backend.region = cloud_run.region

    policy_ref = backend_service.ref(ATTR_CLOUD_ARMOR_POLICY)
    if policy_ref is not None:
        flow.cloud_armor = CloudArmorPolicy(
            name=policy_ref.name,
            rules=decode_policy_rules(index.resolve(ResourceKind.SECURITYPOLICY, policy_ref)),
        )
    return flow


def trace_flows(snapshot: Iterable[Resource], scope_id: str) -> List[LoadBalancerFlow]:
    """Rebuild every load-balancer flow of ``scope_id`` from ``snapshot``.

    Flows come out in the snapshot order of their forwarding rules. Rules
    that share a name each produce a flow.
    """
    index = ScopeIndex.build(r for r in snapshot if belongs_to_scope(r, scope_id))
    flows: List[LoadBalancerFlow] = []
    for rule in index.forwarding_rules:
        flow = trace_flow(rule, index, scope_id)
        if flow is None:
            logger.debug("Forwarding rule %s does not resolve to a backend; skipped", rule.name)
            continue
        flows.append(flow)
    return flows
