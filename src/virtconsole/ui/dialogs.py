#!/usr/bin/env python3
"""
Blocking sub-dialogs run while the tree view is suspended.
"""

from pathlib import Path
from typing import List, Optional, Sequence, Tuple

import questionary
import yaml
from pydantic import ValidationError
from rich.panel import Panel
from rich.table import Table

from virtconsole.config import ConsoleConfig
from virtconsole.errors import ConsoleError, FilterError, RemoteOperationError
from virtconsole.interfaces.hypervisor import InventoryClient, VirtualMachine
from virtconsole.logging import get_logger
from virtconsole.models import CloneSettings, Deployment, NewVMSettings
from virtconsole.power import PowerAction
from virtconsole.search import apply_filter
from virtconsole.ui.style import console, custom_style

log = get_logger(__name__)


def _is_int(minimum: int):
    return lambda x: (x.isdigit() and int(x) >= minimum) or f"Enter a number >= {minimum}"


def _show_validation_error(e: ValidationError) -> None:
    for error in e.errors():
        field = ".".join(str(part) for part in error["loc"]) or "value"
        console.print(f"[red]❌ {field}: {error['msg']}[/]")


class Dialogs:
    """questionary forms for every sub-dialog of the console."""

    def __init__(self, client: InventoryClient, config: Optional[ConsoleConfig] = None):
        self.client = client
        self.config = config or ConsoleConfig()

    def search(
        self, vms: Sequence[VirtualMachine], current: str = ""
    ) -> Optional[Tuple[str, List[VirtualMachine]]]:
        """Ask for a filter; None when cancelled."""
        console.print("\n[bold cyan]Find Virtual Machines[/]")
        console.print("[dim]name text, mac:<addr>, host:<name> or re:<pattern>; empty clears[/]\n")

        while True:
            filter_string = questionary.text(
                "Filter:",
                default=current,
                style=custom_style,
            ).ask()

            if filter_string is None:
                return None

            try:
                subset = apply_filter(filter_string, vms)
            except FilterError as e:
                console.print(f"[red]❌ {e}[/]")
                current = filter_string
                continue

            return filter_string.strip(), subset

    def power(self) -> PowerAction:
        """Ask which power action to run; NONE when cancelled."""
        choice = questionary.select(
            "Power action:",
            choices=[questionary.Choice(action.label, value=action) for action in PowerAction],
            style=custom_style,
        ).ask()
        return choice or PowerAction.NONE

    def error(self, err: BaseException) -> None:
        """Show an error and wait for acknowledgement."""
        title = type(err).__name__
        if isinstance(err, RemoteOperationError):
            title = f"{err.operation} failed"
        console.print(Panel(str(err), title=f"[bold red]{title}[/]", border_style="red"))
        questionary.press_any_key_to_continue(style=custom_style).ask()

    def deploy(self, address: str, hostname: str) -> Optional[Path]:
        """Write a network-boot deployment manifest for one NIC."""
        console.print(f"\n[bold cyan]Deploy {hostname}[/] [dim]({address})[/]\n")

        image = questionary.text("Boot image or kickstart URL:", style=custom_style).ask()
        if image is None:
            return None
        ip = questionary.text("Static address (CIDR, empty for DHCP):", style=custom_style).ask()
        if ip is None:
            return None
        gateway = ""
        nameservers = ""
        if ip:
            gateway = questionary.text("Gateway:", style=custom_style).ask() or ""
            nameservers = (
                questionary.text("DNS servers (comma separated):", style=custom_style).ask() or ""
            )

        try:
            deployment = Deployment(
                mac=address,
                hostname=hostname,
                image=image,
                address=ip or None,
                gateway=gateway or None,
                nameservers=[s.strip() for s in nameservers.split(",") if s.strip()],
            )
        except ValidationError as e:
            _show_validation_error(e)
            questionary.press_any_key_to_continue(style=custom_style).ask()
            return None

        table = Table(show_header=False)
        table.add_column("Field", style="cyan")
        table.add_column("Value", style="green")
        for key, value in deployment.model_dump(exclude_none=True).items():
            table.add_row(key, ", ".join(value) if isinstance(value, list) else str(value))
        console.print(table)

        if not questionary.confirm("Write deployment?", default=True, style=custom_style).ask():
            return None

        manifest = self.config.deployments_dir / deployment.manifest_name
        try:
            manifest.parent.mkdir(parents=True, exist_ok=True)
            manifest.write_text(
                yaml.dump(
                    deployment.model_dump(exclude_none=True),
                    default_flow_style=False,
                    sort_keys=False,
                )
            )
        except OSError as e:
            console.print(f"[red]❌ Error: {e}[/]")
            questionary.press_any_key_to_continue(style=custom_style).ask()
            return None

        log.info("deployment.written", mac=deployment.mac, hostname=hostname, path=str(manifest))
        console.print(f"[green]✅ Deployment written to {manifest}[/]")
        return manifest

    def new_vm(self, client: InventoryClient, datacenter: str) -> Optional[VirtualMachine]:
        """Define a VM from scratch."""
        console.print(f"\n[bold cyan]Create a New VM[/] [dim]in {datacenter}[/]\n")

        name = questionary.text("VM name:", style=custom_style).ask()
        if name is None:
            return None
        memory = questionary.text(
            "RAM in MiB:", default="2048", validate=_is_int(256), style=custom_style
        ).ask()
        vcpus = questionary.text(
            "Number of vCPUs:", default="2", validate=_is_int(1), style=custom_style
        ).ask()
        disk_size = questionary.text(
            "Disk size in GiB:", default="20", validate=_is_int(1), style=custom_style
        ).ask()
        network = questionary.text("Network:", default="default", style=custom_style).ask()
        if None in (memory, vcpus, disk_size, network):
            return None

        try:
            settings = NewVMSettings(
                name=name,
                memory_mb=int(memory),
                vcpus=int(vcpus),
                disk_size_gb=int(disk_size),
                network=network,
            )
        except ValidationError as e:
            _show_validation_error(e)
            questionary.press_any_key_to_continue(style=custom_style).ask()
            return None

        confirmed = questionary.confirm(
            f"Create VM '{settings.name}'?", default=True, style=custom_style
        ).ask()
        if not confirmed:
            return None

        return self._create(lambda: client.create_vm(settings), settings.name)

    def new_vm_from_template(self, template: str) -> Optional[VirtualMachine]:
        """Clone a VM from the template named ``template``."""
        console.print(f"\n[bold cyan]New VM from template[/] [dim]{template}[/]\n")

        default = template
        prefix = self.config.template_prefix
        if prefix and default.startswith(prefix):
            default = default[len(prefix):]
        name = questionary.text("VM name:", default=f"{default}-clone", style=custom_style).ask()
        if name is None:
            return None

        try:
            settings = CloneSettings(template=template, name=name)
        except ValidationError as e:
            _show_validation_error(e)
            questionary.press_any_key_to_continue(style=custom_style).ask()
            return None

        return self._create(
            lambda: self.client.clone_template(settings.template, settings.name), settings.name
        )

    def _create(self, create, name: str) -> Optional[VirtualMachine]:
        console.print(f"\n[cyan]Creating VM '{name}'...[/]")
        try:
            with console.status("Working..."):
                vm = create()
        except ConsoleError as e:
            console.print(f"[red]❌ Error: {e}[/]")
            questionary.press_any_key_to_continue(style=custom_style).ask()
            return None
        console.print(f"[bold green]🎉 VM '{name}' created[/]")
        return vm
