"""AWS fetchers: EC2 instances and IAM roles."""

from __future__ import annotations

import logging
from typing import List, Optional

import boto3
from botocore.exceptions import ClientError

from ..constants import GLOBAL_REGION, NOT_AVAILABLE, PROVIDER_AWS
from ..models import Resource, ResourceKind

logger = logging.getLogger(__name__)


def _session(session: Optional[boto3.Session]) -> boto3.Session:
    return session or boto3.Session()


def _instance_name(instance: dict) -> str:
    for tag in instance.get("Tags") or []:
        if tag.get("Key") == "Name":
            return tag.get("Value") or NOT_AVAILABLE
    return NOT_AVAILABLE


def fetch_ec2_instances(session: Optional[boto3.Session] = None) -> List[Resource]:
    """Fetch every EC2 instance visible in the session's region."""
    session = _session(session)
    ec2 = session.client("ec2")
    region = session.region_name or ""
    resources: List[Resource] = []

    logger.info("Fetching EC2 instances...")
    paginator = ec2.get_paginator("describe_instances")
    for page in paginator.paginate():
        for reservation in page.get("Reservations", []):
            for instance in reservation.get("Instances", []):
                resources.append(
                    Resource(
                        provider=PROVIDER_AWS,
                        service=ResourceKind.EC2.value,
                        region=region,
                        id=instance["InstanceId"],
                        name=_instance_name(instance),
                        attributes={
                            "instance_type": str(instance.get("InstanceType", "")),
                            "state": str((instance.get("State") or {}).get("Name", "")),
                        },
                    )
                )
    logger.info("Successfully fetched %d EC2 instances.", len(resources))
    return resources


def _role_policy_names(iam, role_name: str) -> List[str]:
    names: List[str] = []
    try:
        for page in iam.get_paginator("list_attached_role_policies").paginate(RoleName=role_name):
            names.extend(p["PolicyName"] for p in page.get("AttachedPolicies", []))
    except ClientError as exc:
        logger.warning("could not list attached policies for role %s: %s", role_name, exc)
    try:
        for page in iam.get_paginator("list_role_policies").paginate(RoleName=role_name):
            names.extend(page.get("PolicyNames", []))
    except ClientError as exc:
        logger.warning("could not list inline policies for role %s: %s", role_name, exc)
    return names


def fetch_iam_roles(session: Optional[boto3.Session] = None) -> List[Resource]:
    """Fetch IAM roles with their attached and inline policy names."""
    session = _session(session)
    iam = session.client("iam")
    resources: List[Resource] = []

    logger.info("Fetching IAM roles...")
    for page in iam.get_paginator("list_roles").paginate():
        for role in page.get("Roles", []):
            role_name = role["RoleName"]
            resources.append(
                Resource(
                    provider=PROVIDER_AWS,
                    service=ResourceKind.IAM.value,
                    region=GLOBAL_REGION,
                    id=role["Arn"],
                    name=role_name,
                    attributes={"policies": ", ".join(_role_policy_names(iam, role_name))},
                )
            )
    logger.info("Successfully fetched %d IAM roles.", len(resources))
    return resources
