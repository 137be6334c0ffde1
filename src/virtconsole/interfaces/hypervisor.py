"""Interfaces for the virtualization control plane."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Iterable, List, Optional, Sequence

# Device kinds understood by DeviceList.boot_order
ETHERNET = "ethernet"
DISK = "disk"
CDROM = "cdrom"
FLOPPY = "floppy"


@dataclass(frozen=True)
class Disk:
    """A virtual disk attached to a VM."""

    label: str
    source: Optional[str] = None
    capacity_bytes: Optional[int] = None

    @property
    def display_name(self) -> str:
        text = self.label
        if self.capacity_bytes:
            text += f" ({self.capacity_bytes / (1024 ** 3):.1f} GiB)"
        return text


@dataclass(frozen=True)
class NetworkInterface:
    """A virtual NIC; ``address`` is its MAC address."""

    address: str
    network: Optional[str] = None


@dataclass(frozen=True)
class SnapshotInfo:
    """A snapshot as listed on its VM, oldest first."""

    name: str
    description: Optional[str] = None


@dataclass(frozen=True)
class Device:
    """A bootable device as reported by the control plane."""

    kind: str
    key: str
    detail: Any = None


@dataclass
class DeviceList:
    """Device inventory of a VM, captured at one point in time."""

    devices: List[Device] = field(default_factory=list)

    def __iter__(self):
        return iter(self.devices)

    def __len__(self) -> int:
        return len(self.devices)

    def select(self, kind: str) -> List[Device]:
        return [d for d in self.devices if d.kind == kind]

    def boot_order(self, kinds: Sequence[str]) -> List[Device]:
        """Return bootable devices ranked by ``kinds``.

        Devices of the same kind keep their inventory order; kinds not named
        are left out of the boot order.
        """
        order: List[Device] = []
        for kind in kinds:
            order.extend(self.select(kind))
        return order


class VirtualMachine(ABC):
    """Handle to a remote VM.

    Every state-changing call returns once the control plane accepted the
    request; it does not wait for the guest to reach the new state. Failures
    raise.
    """

    @abstractmethod
    def name(self) -> str:
        pass

    @property
    @abstractmethod
    def is_template(self) -> bool:
        pass

    @property
    def host(self) -> Optional[str]:
        """Name of the host running the VM, when known."""
        return None

    @property
    def power_state(self) -> str:
        return "unknown"

    @abstractmethod
    def disks(self) -> List[Disk]:
        pass

    @abstractmethod
    def network_interfaces(self) -> List[NetworkInterface]:
        pass

    @abstractmethod
    def snapshots(self) -> List[SnapshotInfo]:
        pass

    @abstractmethod
    def power_on(self) -> None:
        pass

    @abstractmethod
    def power_off(self) -> None:
        pass

    @abstractmethod
    def shutdown_guest(self) -> None:
        pass

    @abstractmethod
    def reboot_guest(self) -> None:
        pass

    @abstractmethod
    def suspend(self) -> None:
        pass

    @abstractmethod
    def reset(self) -> None:
        pass

    @abstractmethod
    def destroy(self) -> None:
        """Remove the VM from the inventory."""
        pass

    @abstractmethod
    def devices(self) -> DeviceList:
        pass

    @abstractmethod
    def set_boot_options(self, boot_order: Iterable[Device]) -> None:
        pass

    @abstractmethod
    def revert_to_snapshot(self, name: str, suppress_power_on: bool = True) -> None:
        pass


class InventoryClient(ABC):
    """Connection to the control plane that can list and create VMs."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Backend name (e.g., 'libvirt')."""
        pass

    @abstractmethod
    def list_vms(self, datacenter: str) -> List[VirtualMachine]:
        """List every VM and template in ``datacenter``."""
        pass

    @abstractmethod
    def create_vm(self, settings: Any) -> VirtualMachine:
        """Define a new VM from a ``NewVMSettings`` form."""
        pass

    @abstractmethod
    def clone_template(self, template: str, name: str) -> VirtualMachine:
        """Create a VM named ``name`` from ``template``."""
        pass

    def close(self) -> None:
        """Release the connection."""
