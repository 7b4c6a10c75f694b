"""Tests for the sync use case."""

from __future__ import annotations

from unittest.mock import MagicMock, patch

import pytest
from google.api_core.exceptions import PermissionDenied

from infrakit.aggregation.orchestrator import NamedFetcher
from infrakit.aggregation.sync import build_fetchers, fetch_gcp, sync, validate_target
from infrakit.errors import InvalidProviderError, UpstreamFetchError


def _fixed(name, resources):
    return NamedFetcher(name, MagicMock(return_value=resources))


def _failing(name, message="boom"):
    return NamedFetcher(name, MagicMock(side_effect=RuntimeError(message)))


class TestValidateTarget:
    """Tests for provider and scope validation."""

    @pytest.mark.parametrize("provider", [None, "", "aws", "gcp"])
    def test_valid_providers(self, provider):
        validate_target(provider, None)

    def test_unknown_provider(self):
        with pytest.raises(InvalidProviderError) as exc_info:
            validate_target("azure", None)
        assert "azure" in str(exc_info.value)

    def test_project_requires_gcp(self):
        with pytest.raises(InvalidProviderError):
            validate_target("aws", "my-project")
        with pytest.raises(InvalidProviderError):
            validate_target(None, "my-project")

    def test_project_with_gcp(self):
        validate_target("gcp", "my-project")


class TestBuildFetchers:
    """Tests for full-sync fetcher selection."""

    def test_all_providers_in_order(self):
        assert [f.name for f in build_fetchers()] == ["aws:ec2", "aws:iam", "gcp"]

    def test_aws_only(self):
        assert [f.name for f in build_fetchers("aws")] == ["aws:ec2", "aws:iam"]

    def test_gcp_only(self):
        assert [f.name for f in build_fetchers("gcp")] == ["gcp"]

    def test_aws_fetchers_use_session(self):
        session = MagicMock()
        with patch("infrakit.fetchers.aws.fetch_ec2_instances", return_value=[]) as ec2:
            build_fetchers("aws", aws_session=session)[0]()
        ec2.assert_called_once_with(session)


class TestFetchGcp:
    """Tests for choosing the GCP fetch strategy."""

    def test_uses_organization_when_found(self, make_resource):
        clients = MagicMock()
        org_result = [make_resource("project", "p1")]
        with patch("infrakit.aggregation.sync.discover_organization", return_value="organizations/42"), \
                patch("infrakit.aggregation.sync.fetch_org_resources", return_value=org_result) as org, \
                patch("infrakit.aggregation.sync.fetch_projects_no_org") as no_org:
            assert fetch_gcp(clients) == org_result
        org.assert_called_once_with("organizations/42", clients)
        no_org.assert_not_called()

    def test_lists_projects_without_organization(self):
        clients = MagicMock()
        with patch("infrakit.aggregation.sync.discover_organization", return_value=""), \
                patch("infrakit.aggregation.sync.fetch_org_resources") as org, \
                patch("infrakit.aggregation.sync.fetch_projects_no_org", return_value=[]) as no_org:
            fetch_gcp(clients)
        org.assert_not_called()
        no_org.assert_called_once_with(clients)

    def test_discovery_error_falls_back(self):
        clients = MagicMock()
        with patch("infrakit.aggregation.sync.discover_organization", side_effect=PermissionDenied("denied")), \
                patch("infrakit.aggregation.sync.fetch_projects_no_org", return_value=[]) as no_org:
            fetch_gcp(clients)
        no_org.assert_called_once_with(clients)


class TestFullSync:
    """Tests for full replacement syncs."""

    def test_saves_everything(self, store, sample_resources):
        outcome = sync(store, fetchers=[_fixed("all", sample_resources)])

        assert outcome.mode == "full"
        assert outcome.resource_count == len(sample_resources)
        assert store.load() == sample_resources

    def test_replaces_previous_snapshot(self, store, sample_resources, make_resource):
        store.save(sample_resources)
        new = [make_resource("ec2", "i-9", provider="aws")]

        sync(store, provider="aws", fetchers=[_fixed("aws:ec2", new)])

        assert store.load() == new

    def test_empty_result_leaves_snapshot(self, store, sample_resources):
        store.save(sample_resources)

        outcome = sync(store, fetchers=[_fixed("all", [])])

        assert outcome.mode == "empty"
        assert store.load() == sample_resources

    def test_empty_result_does_not_create_snapshot(self, store):
        sync(store, fetchers=[_fixed("all", [])])
        assert not store.exists()

    def test_strict_failure_saves_nothing(self, store, sample_resources, make_resource):
        store.save(sample_resources)
        fetchers = [_fixed("aws:ec2", [make_resource("ec2", "i-9", provider="aws")]), _failing("gcp")]

        with pytest.raises(UpstreamFetchError):
            sync(store, fetchers=fetchers)

        assert store.load() == sample_resources

    def test_partial_saves_successes(self, store, make_resource):
        fetchers = [_failing("aws:ec2"), _fixed("gcp", [make_resource("project", "p1")])]

        outcome = sync(store, partial=True, fetchers=fetchers)

        assert outcome.mode == "full"
        assert [w.fetcher for w in outcome.warnings] == ["aws:ec2"]
        assert [r.id for r in store.load()] == ["p1"]

    def test_invalid_provider_fetches_nothing(self, store):
        fetcher = _fixed("all", [])
        with pytest.raises(InvalidProviderError):
            sync(store, provider="azure", fetchers=[fetcher])
        fetcher.fetch.assert_not_called()


class TestScopedSync:
    """Tests for single-project syncs."""

    def test_merges_project(self, store, sample_resources, make_resource):
        store.save(sample_resources)
        fresh = [
            make_resource("project", "test-project-1", "Test Project 1"),
            make_resource("subnet", "sub-1", project_id="test-project-1"),
        ]
        clients = MagicMock()

        with patch("infrakit.aggregation.sync.fetch_single_project", return_value=fresh) as fetch:
            outcome = sync(store, provider="gcp", project_id="test-project-1", gcp_clients=clients)

        fetch.assert_called_once_with("test-project-1", clients)
        assert outcome.mode == "scoped"
        assert outcome.merge.removed == 3
        assert outcome.merge.added == 2
        ids = [r.id for r in store.load()]
        assert ids == ["test-project-2", "test-vpc-2", "i-1234567890", "test-project-1", "sub-1"]

    def test_scoped_failure_leaves_snapshot(self, store, sample_resources):
        store.save(sample_resources)
        with patch("infrakit.aggregation.sync.fetch_single_project", side_effect=PermissionDenied("denied")):
            with pytest.raises(UpstreamFetchError) as exc_info:
                sync(store, provider="gcp", project_id="test-project-1", gcp_clients=MagicMock())
        assert exc_info.value.fetcher == "gcp-project:test-project-1"
        assert store.load() == sample_resources
