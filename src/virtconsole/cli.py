#!/usr/bin/env python3
"""
Command line entry point for VirtConsole.
"""

import argparse
from pathlib import Path
from typing import List, Optional

from virtconsole import __version__
from virtconsole.app import run_session
from virtconsole.config import ConsoleConfig
from virtconsole.errors import ConsoleError
from virtconsole.inventory import vm_inventory
from virtconsole.logging import configure_logging, get_logger
from virtconsole.ui.style import console

log = get_logger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="virtconsole",
        description="Browse a libvirt inventory as a tree and manage VMs from the keyboard",
    )
    parser.add_argument("--version", action="version", version=f"virtconsole {__version__}")
    parser.add_argument("--uri", "-u", help="libvirt connection URI (default: qemu:///system)")
    parser.add_argument("--datacenter", "-d", help="Inventory label (default: URI host)")
    parser.add_argument("--config", "-c", type=Path, help="Path to config.yaml")
    parser.add_argument("--filter", "-f", default="", help="Initial VM filter")
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Log level (default: INFO)",
    )
    parser.add_argument("--log-file", type=Path, help="Write JSON logs to this file")
    parser.add_argument(
        "--log-json", action="store_true", default=None, help="JSON output on stderr"
    )
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    args = build_parser().parse_args(argv)

    try:
        config = ConsoleConfig.load(
            args.config,
            uri=args.uri,
            datacenter=args.datacenter,
            log_level=args.log_level,
            log_file=args.log_file,
            log_json=args.log_json,
        )
    except ConsoleError as e:
        console.print(f"[red]❌ {e}[/]")
        return 1

    # Log lines on stderr would tear the full-screen view.
    configure_logging(
        level=config.log_level,
        json_output=config.log_json,
        log_file=config.log_file,
        console_output=False,
    )

    from virtconsole.backends.libvirt_backend import LibvirtClient

    client = LibvirtClient(
        uri=config.uri,
        template_prefix=config.template_prefix,
        storage_dir=config.storage_dir,
    )
    datacenter = config.datacenter_name

    try:
        client.connect()
        vms = vm_inventory(client, datacenter)
        run_session(vms, datacenter, client, config=config, initial_filter=args.filter)
    except (ConsoleError, ConnectionError, RuntimeError) as e:
        log.error("session.aborted", error=str(e), error_type=type(e).__name__)
        console.print(f"[red]❌ {e}[/]")
        return 1
    finally:
        client.close()

    return 0
