"""Abstract collaborators the console drives."""

from .hypervisor import (
    Device,
    DeviceList,
    Disk,
    InventoryClient,
    NetworkInterface,
    SnapshotInfo,
    VirtualMachine,
)
from .process import ProcessResult, ProcessRunner

__all__ = [
    "Device",
    "DeviceList",
    "Disk",
    "InventoryClient",
    "NetworkInterface",
    "SnapshotInfo",
    "VirtualMachine",
    "ProcessResult",
    "ProcessRunner",
]
