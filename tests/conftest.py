"""
Pytest fixtures and fakes for VirtConsole tests.
"""
from typing import Dict, List, Optional

import pytest

from virtconsole.errors import RemoteOperationError
from virtconsole.interfaces.hypervisor import (
    DISK,
    ETHERNET,
    Device,
    DeviceList,
    Disk,
    InventoryClient,
    NetworkInterface,
    SnapshotInfo,
    VirtualMachine,
)
from virtconsole.inventory import clear_cache
from virtconsole.power import PowerAction


class FakeVM(VirtualMachine):
    """In-memory VM handle that records every call."""

    def __init__(
        self,
        name: str,
        template: bool = False,
        host: Optional[str] = None,
        disks: Optional[List[Disk]] = None,
        nics: Optional[List[NetworkInterface]] = None,
        snapshots: Optional[List[str]] = None,
        devices: Optional[DeviceList] = None,
        state: str = "shutoff",
    ):
        self._name = name
        self._template = template
        self._host = host
        self._disks = disks or []
        self._nics = nics or []
        self._snapshots = [SnapshotInfo(s) for s in snapshots or []]
        self._devices = devices
        self._state = state
        self.calls: List[tuple] = []
        self.failures: Dict[str, str] = {}

    def __repr__(self):
        return f"FakeVM({self._name!r})"

    def _record(self, operation: str, *args):
        self.calls.append((operation,) + args)
        if operation in self.failures:
            raise RemoteOperationError(
                operation, self._name, RuntimeError(self.failures[operation])
            )

    @property
    def operations(self) -> List[str]:
        return [call[0] for call in self.calls]

    def name(self) -> str:
        return self._name

    @property
    def is_template(self) -> bool:
        return self._template

    @property
    def host(self) -> Optional[str]:
        return self._host

    @property
    def power_state(self) -> str:
        return self._state

    def disks(self):
        return list(self._disks)

    def network_interfaces(self):
        return list(self._nics)

    def snapshots(self):
        return list(self._snapshots)

    def power_on(self):
        self._record("power_on")

    def power_off(self):
        self._record("power_off")

    def shutdown_guest(self):
        self._record("shutdown_guest")

    def reboot_guest(self):
        self._record("reboot_guest")

    def suspend(self):
        self._record("suspend")

    def reset(self):
        self._record("reset")

    def destroy(self):
        self._record("destroy")

    def devices(self):
        self._record("devices")
        if self._devices is not None:
            return self._devices
        devices = [Device(DISK, d.label) for d in self._disks]
        devices += [Device(ETHERNET, n.address) for n in self._nics]
        return DeviceList(devices)

    def set_boot_options(self, boot_order):
        self._record("set_boot_options", [d.kind for d in boot_order])

    def revert_to_snapshot(self, name, suppress_power_on=True):
        self._record("revert_to_snapshot", name, suppress_power_on)


class FakeClient(InventoryClient):
    """Inventory client serving a mutable list of FakeVMs."""

    name = "fake"

    def __init__(self, vms: Optional[List[FakeVM]] = None):
        self.vms = list(vms or [])
        self.list_calls = 0
        self.fail_listing: Optional[Exception] = None
        self.created: List = []

    def list_vms(self, datacenter):
        self.list_calls += 1
        if self.fail_listing is not None:
            raise self.fail_listing
        return list(self.vms)

    def create_vm(self, settings):
        vm = FakeVM(settings.name)
        self.created.append(vm)
        return vm

    def clone_template(self, template, name):
        vm = FakeVM(name)
        self.created.append(vm)
        return vm


class RecordingView:
    """Stands in for the tree view in suspension and session tests."""

    def __init__(self, commands=None, node_for=None):
        self.events: List[str] = []
        self.commands = list(commands or [])
        self.node_for = node_for
        self.current_node = None
        self.interrupts = 0

    def pause(self, draw):
        self.events.append(f"pause:{draw}")

    def repair(self):
        self.events.append("repair")

    def interrupt(self):
        self.interrupts += 1

    def run(self):
        command = self.commands.pop(0) if self.commands else None
        if callable(command):
            command = command(self)
        if self.node_for is not None:
            self.current_node = self.node_for(command)
        return command


class FakeDialogs:
    """Sub-dialogs returning canned answers and recording their calls."""

    def __init__(self):
        self.calls: List[tuple] = []
        self.search_result = None
        self.power_action = PowerAction.NONE
        self.created = None
        self.errors: List[BaseException] = []

    def search(self, vms, current=""):
        self.calls.append(("search", list(vms), current))
        return self.search_result

    def power(self):
        self.calls.append(("power",))
        return self.power_action

    def error(self, err):
        self.calls.append(("error", err))
        self.errors.append(err)

    def deploy(self, address, hostname):
        self.calls.append(("deploy", address, hostname))

    def new_vm(self, client, datacenter):
        self.calls.append(("new_vm", client, datacenter))
        return self.created

    def new_vm_from_template(self, template):
        self.calls.append(("new_vm_from_template", template))
        return self.created

    @property
    def names(self) -> List[str]:
        return [call[0] for call in self.calls]


@pytest.fixture(autouse=True)
def _clear_inventory_cache():
    clear_cache()
    yield
    clear_cache()


@pytest.fixture
def web_vm():
    return FakeVM(
        "web-01",
        host="hv01",
        disks=[Disk("vda", "/var/lib/libvirt/images/web-01.qcow2", 20 * 1024 ** 3)],
        nics=[NetworkInterface("52:54:00:aa:bb:01", "default")],
        snapshots=["clean-install", "before-upgrade"],
    )


@pytest.fixture
def db_vm():
    return FakeVM(
        "db-01",
        host="hv02",
        disks=[Disk("vda"), Disk("vdb")],
        nics=[NetworkInterface("52:54:00:cc:dd:02")],
    )


@pytest.fixture
def template_vm():
    return FakeVM("template-ubuntu", template=True, disks=[Disk("vda")])


@pytest.fixture
def inventory(web_vm, db_vm, template_vm):
    return [web_vm, db_vm, template_vm]


@pytest.fixture
def client(inventory):
    return FakeClient(inventory)


@pytest.fixture
def dialogs():
    return FakeDialogs()


@pytest.fixture
def view():
    return RecordingView()
