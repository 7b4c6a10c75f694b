"""Normalized record types shared by fetchers, the snapshot store and the
flow reconstructor.

A ``Resource`` is the only thing that is persisted. ``LoadBalancerFlow`` and
its parts are derived on demand and serialized straight back to the caller.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from .constants import ATTR_PROJECT_ID


class ResourceKind(str, Enum):
    """Known values of ``Resource.service``.

    The persisted tag stays an open string; anything not listed here parses
    to ``OTHER`` so newer resource kinds survive a load/save cycle.
    """

    PROJECT = "project"
    FOLDER = "folder"
    VPC = "vpc"
    SUBNET = "subnet"
    FIREWALL = "firewall"
    CLOUDRUN = "cloudrun"
    SERVICEACCOUNT = "serviceaccount"
    BACKENDSERVICE = "backendservice"
    URLMAP = "urlmap"
    TARGETHTTPSPROXY = "targethttpsproxy"
    FORWARDINGRULE = "forwardingrule"
    SECURITYPOLICY = "securitypolicy"
    EC2 = "ec2"
    IAM = "iam"
    OTHER = "other"

    @classmethod
    def parse(cls, tag: Optional[str]) -> "ResourceKind":
        try:
            return cls(tag)
        except ValueError:
            return cls.OTHER

    @classmethod
    def values(cls) -> List[str]:
        return [k.value for k in cls if k is not cls.OTHER]


@dataclass(frozen=True)
class ResourceRef:
    """Structured form of a slash-delimited cross-reference.

    GCP stores links as self-links such as
    ``https://www.googleapis.com/compute/v1/projects/p1/global/targetHttpsProxies/proxy1``.
    Only the trailing name is needed to resolve a link inside one scope; the
    collection and project are kept for display and debugging.
    """

    name: str
    collection: Optional[str] = None
    project: Optional[str] = None

    @classmethod
    def parse(cls, link: Optional[str]) -> Optional["ResourceRef"]:
        """Parse ``link`` into a reference.

        Returns None for a missing or blank link. A bare name (no slash) is a
        valid reference to itself.
        """
        if not link or not link.strip():
            return None
        parts = [p for p in link.strip().split("/") if p]
        if not parts:
            return None
        name = parts[-1]
        collection = parts[-2] if len(parts) > 1 else None
        project = None
        if "projects" in parts:
            idx = parts.index("projects")
            if idx + 1 < len(parts) - 1:
                project = parts[idx + 1]
        return cls(name=name, collection=collection, project=project)

    def __str__(self) -> str:
        if self.collection:
            return f"{self.collection}/{self.name}"
        return self.name


@dataclass
class Resource:
    """Common shape every provider fetch is converted into."""

    provider: str
    service: str
    region: str
    id: str
    name: str
    attributes: Dict[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        # A JSON null decodes to None; callers never null-check attributes.
        if self.attributes is None:
            self.attributes = {}

    @property
    def kind(self) -> ResourceKind:
        return ResourceKind.parse(self.service)

    @property
    def project_id(self) -> Optional[str]:
        return self.attributes.get(ATTR_PROJECT_ID)

    def ref(self, key: str) -> Optional[ResourceRef]:
        """Parse the link stored under attribute ``key``."""
        return ResourceRef.parse(self.attributes.get(key))

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Resource":
        """Build a Resource from its JSON form.

        Raises:
            KeyError: if an identity field is missing
            TypeError: if ``data`` is not a mapping or attributes is not one
        """
        if not isinstance(data, dict):
            raise TypeError(f"expected an object, got {type(data).__name__}")
        attrs = data.get("attributes") or {}
        if not isinstance(attrs, dict):
            raise TypeError("attributes must be an object")
        return cls(
            provider=str(data["provider"]),
            service=str(data["service"]),
            region=str(data.get("region") or ""),
            id=str(data["id"]),
            name=str(data.get("name") or ""),
            attributes={str(k): "" if v is None else str(v) for k, v in attrs.items()},
        )


# Flow records use the camelCase field names the browser UI consumes.


@dataclass
class FrontendConfig:
    ip_address: str = ""
    port_range: str = ""
    protocol: str = ""
    certificates: List[str] = field(default_factory=list)
    ssl_policy: str = ""
    load_balancing_scheme: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "ipAddress": self.ip_address,
            "portRange": self.port_range,
            "protocol": self.protocol,
            "certificates": list(self.certificates),
            "sslPolicy": self.ssl_policy,
            "loadBalancingScheme": self.load_balancing_scheme,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FrontendConfig":
        return cls(
            ip_address=data.get("ipAddress", ""),
            port_range=data.get("portRange", ""),
            protocol=data.get("protocol", ""),
            certificates=list(data.get("certificates") or []),
            ssl_policy=data.get("sslPolicy", ""),
            load_balancing_scheme=data.get("loadBalancingScheme", ""),
        )


@dataclass
class RoutingRule:
    hosts: List[str] = field(default_factory=list)
    path_matcher: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {"hosts": list(self.hosts), "pathMatcher": self.path_matcher}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RoutingRule":
        return cls(hosts=list(data.get("hosts") or []), path_matcher=data.get("pathMatcher", ""))


@dataclass
class BackendConfig:
    name: str = ""
    type: str = ""
    service_name: str = ""
    region: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "type": self.type,
            "serviceName": self.service_name,
            "region": self.region,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "BackendConfig":
        return cls(
            name=data.get("name", ""),
            type=data.get("type", ""),
            service_name=data.get("serviceName", ""),
            region=data.get("region", ""),
        )


@dataclass
class CloudArmorRule:
    priority: int = 0
    action: str = ""
    description: str = ""
    match: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CloudArmorRule":
        return cls(
            priority=int(data.get("priority") or 0),
            action=str(data.get("action") or ""),
            description=str(data.get("description") or ""),
            match=str(data.get("match") or ""),
        )


@dataclass
class CloudArmorPolicy:
    name: str = ""
    rules: List[CloudArmorRule] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name, "rules": [r.to_dict() for r in self.rules]}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CloudArmorPolicy":
        return cls(
            name=data.get("name", ""),
            rules=[CloudArmorRule.from_dict(r) for r in data.get("rules") or []],
        )


@dataclass
class LoadBalancerFlow:
    """One traced path: forwarding rule -> proxy -> URL map -> backend."""

    name: str
    project_id: str
    frontend: FrontendConfig = field(default_factory=FrontendConfig)
    routing_rules: List[RoutingRule] = field(default_factory=list)
    backend: BackendConfig = field(default_factory=BackendConfig)
    cloud_armor: CloudArmorPolicy = field(default_factory=CloudArmorPolicy)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "projectId": self.project_id,
            "frontend": self.frontend.to_dict(),
            "routingRules": [r.to_dict() for r in self.routing_rules],
            "backend": self.backend.to_dict(),
            "cloudArmor": self.cloud_armor.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "LoadBalancerFlow":
        return cls(
            name=data["name"],
            project_id=data.get("projectId", ""),
            frontend=FrontendConfig.from_dict(data.get("frontend") or {}),
            routing_rules=[RoutingRule.from_dict(r) for r in data.get("routingRules") or []],
            backend=BackendConfig.from_dict(data.get("backend") or {}),
            cloud_armor=CloudArmorPolicy.from_dict(data.get("cloudArmor") or {}),
        )
