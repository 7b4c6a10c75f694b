"""Pytest configuration and shared fixtures for infrakit tests.

This module provides common fixtures used across multiple test modules,
including a temporary snapshot store, settings bound to a temp directory,
and sample resource sets.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Generator, List, Optional

import pytest

from infrakit.cache.store import SnapshotStore
from infrakit.config import Settings, get_settings
from infrakit.models import Resource


# ============================================================================
# Custom Pytest Markers
# ============================================================================

def pytest_configure(config):
    """Register custom markers for test categorization."""
    config.addinivalue_line(
        "markers", "aws: marks tests that exercise the AWS fetchers against mocks"
    )
    config.addinivalue_line(
        "markers", "gcp: marks tests that exercise the GCP fetchers against mocks"
    )
    config.addinivalue_line(
        "markers", "slow: marks tests that take a long time to run"
    )


# ============================================================================
# Helpers
# ============================================================================

def _make_resource(
    service: str,
    id: str,
    name: Optional[str] = None,
    provider: str = "gcp",
    region: str = "global",
    **attributes: str,
) -> Resource:
    """Build a Resource with keyword attributes."""
    return Resource(
        provider=provider,
        service=service,
        region=region,
        id=id,
        name=name if name is not None else id,
        attributes=dict(attributes),
    )


@pytest.fixture
def make_resource():
    """Factory fixture: ``make_resource("vpc", "v1", project_id="p1")``."""
    return _make_resource


# ============================================================================
# Environment / Settings Fixtures
# ============================================================================

@pytest.fixture
def clean_environment() -> Generator[None, None, None]:
    """Remove INFRAKIT_* env vars for the test and restore them after."""
    saved = {k: v for k, v in os.environ.items() if k.startswith("INFRAKIT_")}
    for key in saved:
        del os.environ[key]
    get_settings.cache_clear()

    yield

    for key in [k for k in os.environ if k.startswith("INFRAKIT_")]:
        del os.environ[key]
    os.environ.update(saved)
    get_settings.cache_clear()


@pytest.fixture
def settings(tmp_path: Path, clean_environment) -> Settings:
    """Settings whose snapshot lives in a temp directory."""
    return Settings(cache_dir=tmp_path / "infrakit", lock_timeout=0.2)


@pytest.fixture
def store(settings: Settings) -> SnapshotStore:
    """Empty snapshot store in a temp directory."""
    return SnapshotStore.from_settings(settings)


# ============================================================================
# Sample Data Fixtures
# ============================================================================

@pytest.fixture
def sample_resources() -> List[Resource]:
    """Two GCP projects with children plus one AWS instance."""
    return [
        _make_resource("project", "test-project-1", "Test Project 1", state="ACTIVE", project_number="123456789"),
        _make_resource("vpc", "test-vpc-1", "Test VPC", project_id="test-project-1", mode="true"),
        _make_resource(
            "cloudrun", "test-service-1", "Test Service", region="us-central1",
            project_id="test-project-1", url="https://test-service.run.app",
        ),
        _make_resource("project", "test-project-2", "Test Project 2", state="ACTIVE", project_number="987654321"),
        _make_resource("vpc", "test-vpc-2", "Test VPC 2", project_id="test-project-2", mode="false"),
        _make_resource("ec2", "i-1234567890", "Test EC2 Instance", provider="aws", region="us-east-1", state="running"),
    ]


@pytest.fixture
def lb_resources() -> List[Resource]:
    """One complete load-balancer chain in project p1."""
    base = "https://www.googleapis.com/compute/v1/projects/p1/global"
    return [
        _make_resource("project", "p1", "Project One", state="ACTIVE"),
        _make_resource(
            "forwardingrule", "fr1", project_id="p1",
            ip_address="34.1.2.3", port_range="443-443", protocol="TCP",
            load_balancing_scheme="EXTERNAL_MANAGED", target=f"{base}/targetHttpsProxies/proxy1",
        ),
        _make_resource(
            "targethttpsproxy", "proxy1", project_id="p1",
            url_map=f"{base}/urlMaps/map1",
            ssl_certificates=f"{base}/sslCertificates/cert-a,{base}/sslCertificates/cert-b",
            ssl_policy=f"{base}/sslPolicies/modern",
        ),
        _make_resource("urlmap", "map1", project_id="p1", default_service=f"{base}/backendServices/bs1"),
        _make_resource(
            "backendservice", "bs1", project_id="p1",
            load_balancing_scheme="EXTERNAL_MANAGED", cloud_armor_policy=f"{base}/securityPolicies/policy1",
        ),
        _make_resource("cloudrun", "svc-bs1", region="us-central1", project_id="p1", url="https://svc-bs1.run.app"),
    ]
