#!/usr/bin/env python3
"""Tests for the command line entry point."""

from unittest.mock import MagicMock, patch

import pytest

from virtconsole import __version__
from virtconsole.cli import build_parser, main
from virtconsole.errors import InventoryError, NoInventoryError


class TestParser:
    """Test build_parser."""

    def test_defaults(self):
        args = build_parser().parse_args([])

        assert args.uri is None
        assert args.filter == ""
        assert args.log_json is None

    def test_flags(self):
        args = build_parser().parse_args(
            ["-u", "qemu+ssh://hv01/system", "-d", "lab", "-f", "web", "--log-level", "DEBUG"]
        )

        assert args.uri == "qemu+ssh://hv01/system"
        assert args.datacenter == "lab"
        assert args.filter == "web"
        assert args.log_level == "DEBUG"

    def test_version(self, capsys):
        with pytest.raises(SystemExit) as exc_info:
            build_parser().parse_args(["--version"])

        assert exc_info.value.code == 0
        assert __version__ in capsys.readouterr().out


class TestMain:
    """Test main."""

    @pytest.fixture(autouse=True)
    def no_config_file(self, tmp_path, monkeypatch):
        monkeypatch.setattr("virtconsole.config.DEFAULT_CONFIG_FILE", tmp_path / "none.yaml")

    @pytest.fixture(autouse=True)
    def mock_logging(self):
        with patch("virtconsole.cli.configure_logging") as configure:
            yield configure

    @pytest.fixture
    def mock_client(self):
        with patch("virtconsole.backends.libvirt_backend.LibvirtClient") as client_cls:
            yield client_cls

    @patch("virtconsole.cli.run_session")
    @patch("virtconsole.cli.vm_inventory")
    @patch("virtconsole.cli.console")
    def test_runs_session(self, mock_console, mock_inventory, mock_run, mock_client, mock_logging):
        vms = [MagicMock()]
        mock_inventory.return_value = vms

        assert main(["-u", "qemu+ssh://hv01/system", "-f", "web"]) == 0

        client = mock_client.return_value
        client.connect.assert_called_once()
        mock_inventory.assert_called_once_with(client, "hv01")
        args, kwargs = mock_run.call_args
        assert args == (vms, "hv01", client)
        assert kwargs["initial_filter"] == "web"
        client.close.assert_called_once()
        assert mock_logging.call_args.kwargs["console_output"] is False

    @patch("virtconsole.cli.run_session")
    @patch("virtconsole.cli.vm_inventory")
    @patch("virtconsole.cli.console")
    def test_empty_inventory_fails(self, mock_console, mock_inventory, mock_run, mock_client):
        mock_inventory.return_value = []
        mock_run.side_effect = NoInventoryError("No VMs")

        assert main([]) == 1
        assert "No VMs" in mock_console.print.call_args.args[0]
        mock_client.return_value.close.assert_called_once()

    @patch("virtconsole.cli.vm_inventory")
    @patch("virtconsole.cli.console")
    def test_inventory_failure(self, mock_console, mock_inventory, mock_client):
        mock_inventory.side_effect = InventoryError("Failed to list VMs")

        assert main([]) == 1
        mock_client.return_value.close.assert_called_once()

    @patch("virtconsole.cli.console")
    def test_connection_failure(self, mock_console, mock_client):
        mock_client.return_value.connect.side_effect = ConnectionError("refused")

        assert main([]) == 1

    @patch("virtconsole.cli.console")
    def test_bad_config_file(self, mock_console, tmp_path, mock_client):
        assert main(["--config", str(tmp_path / "missing.yaml")]) == 1
        mock_client.assert_not_called()
