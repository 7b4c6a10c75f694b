"""Tests for infrakit.cli.main module."""

from __future__ import annotations

import json
from unittest.mock import MagicMock, patch

import pytest

from infrakit.aggregation.sync import SyncOutcome
from infrakit.aggregation.orchestrator import FetchWarning
from infrakit.cli.main import main, parse_args


@pytest.fixture
def cli_settings(settings):
    """Route the CLI's get_settings() to the temp settings."""
    with patch("infrakit.cli.main.get_settings", return_value=settings):
        yield settings


class TestParseArgs:
    """Tests for CLI argument parsing."""

    def test_help_output(self):
        """Test that --help exits gracefully."""
        with pytest.raises(SystemExit) as exc_info:
            parse_args(["--help"])
        assert exc_info.value.code == 0

    def test_version_output(self, capsys):
        """Test that --version shows version and exits."""
        with pytest.raises(SystemExit) as exc_info:
            parse_args(["--version"])
        assert exc_info.value.code == 0
        assert "infrakit" in capsys.readouterr().out

    def test_no_command(self):
        """Test parsing with no command."""
        args = parse_args([])
        assert args.command is None

    def test_sync_defaults(self):
        """Test sync with no provider syncs everything."""
        args = parse_args(["sync"])
        assert args.command == "sync"
        assert args.provider is None
        assert args.project_id is None
        assert args.partial is None

    def test_sync_project(self):
        args = parse_args(["sync", "gcp", "my-project", "--partial"])
        assert (args.provider, args.project_id, args.partial) == ("gcp", "my-project", True)

    def test_search_options(self):
        args = parse_args(["search", "api", "--limit", "5", "--no-interactive"])
        assert args.query == "api"
        assert args.limit == 5
        assert args.no_interactive is True

    def test_flows_requires_project(self):
        with pytest.raises(SystemExit):
            parse_args(["flows"])

    def test_serve_options(self):
        args = parse_args(["serve", "--host", "0.0.0.0", "--port", "9000"])
        assert (args.host, args.port) == ("0.0.0.0", 9000)


class TestMain:
    """Tests for the main entry point."""

    def test_no_command_prints_help(self, cli_settings, capsys):
        assert main([]) == 2
        assert "usage" in capsys.readouterr().out

    def test_sync_invalid_provider(self, cli_settings):
        """Test an unknown provider fails without fetching."""
        assert main(["sync", "azure"]) == 1

    def test_sync_project_without_gcp(self, cli_settings):
        assert main(["sync", "aws", "my-project"]) == 1

    def test_sync_calls_use_case(self, cli_settings):
        """Test sync passes arguments and the configured partial mode."""
        outcome = SyncOutcome(mode="full", resource_count=3, warnings=[FetchWarning("aws:iam", "denied")])
        with patch("infrakit.cli.main.sync", return_value=outcome) as sync:
            assert main(["sync", "gcp"]) == 0

        _store, = sync.call_args.args
        assert sync.call_args.kwargs == {"provider": "gcp", "project_id": None, "partial": False}

    def test_sync_partial_flag(self, cli_settings):
        outcome = SyncOutcome(mode="full", resource_count=1)
        with patch("infrakit.cli.main.sync", return_value=outcome) as sync:
            main(["sync", "--partial"])
        assert sync.call_args.kwargs["partial"] is True

    def test_search_without_snapshot(self, cli_settings):
        """Test search before any sync reports an error."""
        assert main(["search", "api", "--no-interactive"]) == 1

    def test_search_non_interactive(self, cli_settings, sample_resources, capsys):
        """Test ranked matches are printed without a picker."""
        from infrakit.cache.store import SnapshotStore

        SnapshotStore.from_settings(cli_settings).save(sample_resources)

        assert main(["search", "Test EC2 Instance", "--no-interactive"]) == 0

        first_line = capsys.readouterr().out.splitlines()[0]
        assert "Test EC2 Instance :: i-1234567890" in first_line
        assert "[aws/ec2]" in first_line

    def test_search_no_matches(self, cli_settings, sample_resources, capsys):
        from infrakit.cache.store import SnapshotStore

        SnapshotStore.from_settings(cli_settings).save(sample_resources)

        assert main(["search", "zzzzqqqq", "--no-interactive"]) == 1
        assert "No matching resources." in capsys.readouterr().out

    def test_search_interactive_selection(self, cli_settings, sample_resources, capsys):
        """Test the picker result is previewed."""
        from infrakit.cache.store import SnapshotStore

        SnapshotStore.from_settings(cli_settings).save(sample_resources)
        picker = MagicMock()
        picker.ask.return_value = 0

        with patch("infrakit.cli.main.sys.stdin") as stdin, \
                patch("infrakit.cli.main.questionary.select", return_value=picker) as select:
            stdin.isatty.return_value = True
            assert main(["search", "Test EC2 Instance"]) == 0

        select.assert_called_once()
        assert "ID: i-1234567890" in capsys.readouterr().out

    def test_flows_prints_json(self, cli_settings, lb_resources, capsys):
        """Test flows are printed as a JSON list."""
        from infrakit.cache.store import SnapshotStore

        SnapshotStore.from_settings(cli_settings).save(lb_resources)

        assert main(["flows", "p1"]) == 0

        flows = json.loads(capsys.readouterr().out)
        assert [f["name"] for f in flows] == ["fr1"]

    def test_serve_uses_settings(self, cli_settings):
        with patch("infrakit.api.server.run_server") as run_server:
            assert main(["serve", "--port", "9000"]) == 0
        run_server.assert_called_once_with(cli_settings, host=None, port=9000)

    def test_keyboard_interrupt(self, cli_settings):
        with patch("infrakit.cli.main.sync", side_effect=KeyboardInterrupt):
            assert main(["sync"]) == 130
