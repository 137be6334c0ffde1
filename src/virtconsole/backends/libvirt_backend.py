"""libvirt control-plane backend."""

import functools
import uuid
import xml.etree.ElementTree as ET
from pathlib import Path
from typing import Dict, Iterable, List, Optional

try:
    import libvirt
except ImportError:
    libvirt = None

from ..errors import RemoteOperationError
from ..interfaces.hypervisor import (
    CDROM,
    DISK,
    ETHERNET,
    FLOPPY,
    Device,
    DeviceList,
    Disk,
    InventoryClient,
    NetworkInterface,
    SnapshotInfo,
    VirtualMachine,
)
from ..interfaces.process import ProcessRunner
from ..logging import get_logger
from .domain_xml import generate_domain_xml
from .qemu_disk import QemuDiskManager
from .subprocess_runner import SubprocessRunner

log = get_logger(__name__)

_DISK_DEVICE_KINDS = {"disk": DISK, "cdrom": CDROM, "floppy": FLOPPY}


def _remote(operation: str):
    """Translate libvirt failures into RemoteOperationError."""

    def decorator(func):
        @functools.wraps(func)
        def wrapper(self, *args, **kwargs):
            try:
                return func(self, *args, **kwargs)
            except libvirt.libvirtError as e:
                raise RemoteOperationError(operation, self.name(), e) from e

        return wrapper

    return decorator


def _require_libvirt() -> None:
    if libvirt is None:
        raise RuntimeError("libvirt-python not installed")


class LibvirtVirtualMachine(VirtualMachine):
    """A libvirt domain.

    The inventory view (domain XML, snapshots, host, disk capacities) is
    captured when the handle is created, so building a tree from handles
    never calls libvirt. Actions always go to the live domain.
    """

    def __init__(self, domain, conn, template_prefix: str = "template-"):
        self._domain = domain
        self._conn = conn
        self._template_prefix = template_prefix
        self._name = domain.name()
        self._inventory_xml = ET.fromstring(domain.XMLDesc(0))
        self._snapshots = self._load_snapshots()
        self._capacities = self._load_capacities()
        try:
            self._host = conn.getHostname()
        except libvirt.libvirtError:
            self._host = None

    def _load_snapshots(self) -> List[SnapshotInfo]:
        entries = []
        for snap in self._domain.listAllSnapshots():
            root = ET.fromstring(snap.getXMLDesc())
            created = int(root.findtext("creationTime") or 0)
            entries.append((created, SnapshotInfo(snap.getName(), root.findtext("description"))))
        entries.sort(key=lambda entry: entry[0])
        return [info for _created, info in entries]

    def _load_capacities(self) -> Dict[str, int]:
        capacities = {}
        for target in self._inventory_xml.findall("./devices/disk[@device='disk']/target"):
            dev = target.get("dev")
            try:
                capacities[dev] = self._domain.blockInfo(dev)[0]
            except libvirt.libvirtError:
                pass
        return capacities

    def __repr__(self) -> str:
        return f"LibvirtVirtualMachine({self._name!r})"

    def name(self) -> str:
        return self._name

    @property
    def is_template(self) -> bool:
        if self._template_prefix and self._name.startswith(self._template_prefix):
            return True
        title = self._inventory_xml.findtext("title") or ""
        return "template" in title.lower()

    @property
    def host(self) -> Optional[str]:
        return self._host

    @property
    def power_state(self) -> str:
        state_map = {
            libvirt.VIR_DOMAIN_RUNNING: "running",
            libvirt.VIR_DOMAIN_BLOCKED: "blocked",
            libvirt.VIR_DOMAIN_PAUSED: "paused",
            libvirt.VIR_DOMAIN_SHUTDOWN: "shutdown",
            libvirt.VIR_DOMAIN_SHUTOFF: "shutoff",
            libvirt.VIR_DOMAIN_CRASHED: "crashed",
            libvirt.VIR_DOMAIN_PMSUSPENDED: "pmsuspended",
        }
        try:
            state, _reason = self._domain.state()
        except libvirt.libvirtError:
            return "unknown"
        return state_map.get(state, "unknown")

    def _xml(self, flags: int = 0) -> ET.Element:
        return ET.fromstring(self._domain.XMLDesc(flags))

    def disks(self) -> List[Disk]:
        disks = []
        for elem in self._inventory_xml.findall("./devices/disk[@device='disk']"):
            target = elem.find("target")
            if target is None:
                continue
            dev = target.get("dev")
            source = elem.find("source")
            source_path = None
            if source is not None:
                source_path = source.get("file") or source.get("dev") or source.get("volume")
            disks.append(
                Disk(label=dev, source=source_path, capacity_bytes=self._capacities.get(dev))
            )
        return disks

    def network_interfaces(self) -> List[NetworkInterface]:
        nics = []
        for elem in self._inventory_xml.findall("./devices/interface"):
            mac = elem.find("mac")
            if mac is None or not mac.get("address"):
                continue
            source = elem.find("source")
            network = None
            if source is not None:
                network = source.get("network") or source.get("bridge")
            nics.append(NetworkInterface(address=mac.get("address"), network=network))
        return nics

    def snapshots(self) -> List[SnapshotInfo]:
        return list(self._snapshots)

    @_remote("power on")
    def power_on(self) -> None:
        self._domain.create()

    @_remote("power off")
    def power_off(self) -> None:
        self._domain.destroy()

    @_remote("guest shutdown")
    def shutdown_guest(self) -> None:
        self._domain.shutdown()

    @_remote("guest reboot")
    def reboot_guest(self) -> None:
        self._domain.reboot(0)

    @_remote("suspend")
    def suspend(self) -> None:
        self._domain.suspend()

    @_remote("reset")
    def reset(self) -> None:
        self._domain.reset(0)

    @_remote("destroy")
    def destroy(self) -> None:
        if self._domain.isActive():
            self._domain.destroy()
        self._domain.undefineFlags(
            libvirt.VIR_DOMAIN_UNDEFINE_SNAPSHOTS_METADATA
            | libvirt.VIR_DOMAIN_UNDEFINE_MANAGED_SAVE
            | libvirt.VIR_DOMAIN_UNDEFINE_NVRAM
        )

    @_remote("read devices")
    def devices(self) -> DeviceList:
        devices = []
        devices_elem = self._xml(libvirt.VIR_DOMAIN_XML_INACTIVE).find("devices")
        if devices_elem is None:
            return DeviceList()
        for elem in devices_elem:
            if elem.tag == "interface":
                mac = elem.find("mac")
                if mac is not None and mac.get("address"):
                    devices.append(Device(ETHERNET, mac.get("address")))
            elif elem.tag == "disk":
                kind = _DISK_DEVICE_KINDS.get(elem.get("device", "disk"))
                target = elem.find("target")
                if kind and target is not None:
                    devices.append(Device(kind, target.get("dev")))
        return DeviceList(devices)

    @_remote("set boot options")
    def set_boot_options(self, boot_order: Iterable[Device]) -> None:
        root = self._xml(libvirt.VIR_DOMAIN_XML_INACTIVE)
        os_elem = root.find("os")
        if os_elem is not None:
            for boot in os_elem.findall("boot"):
                os_elem.remove(boot)

        devices_elem = root.find("devices")
        if devices_elem is None:
            raise RemoteOperationError(
                "set boot options", self._name, ValueError("domain has no devices")
            )
        for elem in devices_elem:
            for boot in elem.findall("boot"):
                elem.remove(boot)

        for index, device in enumerate(boot_order, start=1):
            elem = self._find_device_element(devices_elem, device)
            if elem is None:
                log.warning("boot_device.missing", vm=self._name, device=device.key)
                continue
            ET.SubElement(elem, "boot", order=str(index))

        self._conn.defineXML(ET.tostring(root, encoding="unicode"))

    @staticmethod
    def _find_device_element(devices_elem: ET.Element, device: Device) -> Optional[ET.Element]:
        if device.kind == ETHERNET:
            for elem in devices_elem.findall("interface"):
                mac = elem.find("mac")
                if mac is not None and mac.get("address") == device.key:
                    return elem
            return None
        for elem in devices_elem.findall("disk"):
            target = elem.find("target")
            if target is not None and target.get("dev") == device.key:
                return elem
        return None

    @_remote("revert snapshot")
    def revert_to_snapshot(self, name: str, suppress_power_on: bool = True) -> None:
        snap = self._domain.snapshotLookupByName(name)
        flags = libvirt.VIR_DOMAIN_SNAPSHOT_REVERT_PAUSED if suppress_power_on else 0
        self._domain.revertToSnapshot(snap, flags)


class LibvirtClient(InventoryClient):
    """libvirt connection used as the inventory source."""

    name = "libvirt"

    def __init__(
        self,
        uri: str = "qemu:///system",
        template_prefix: str = "template-",
        storage_dir: Path = Path("/var/lib/libvirt/images"),
        runner: Optional[ProcessRunner] = None,
    ):
        self.uri = uri
        self.template_prefix = template_prefix
        self.storage_dir = storage_dir
        self.runner = runner or SubprocessRunner()
        self._conn = None

    def __repr__(self) -> str:
        return f"LibvirtClient({self.uri!r})"

    def connect(self) -> None:
        """Establish connection to libvirt."""
        _require_libvirt()
        if self._conn is not None:
            try:
                if self._conn.isAlive():
                    return
            except libvirt.libvirtError:
                pass

        try:
            self._conn = libvirt.open(self.uri)
        except libvirt.libvirtError as e:
            raise ConnectionError(f"Failed to connect to libvirt at {self.uri}: {e}")

    def close(self) -> None:
        if self._conn:
            try:
                self._conn.close()
            except libvirt.libvirtError:
                pass
            self._conn = None

    @property
    def conn(self):
        """Get active libvirt connection."""
        if self._conn is None:
            self.connect()
        return self._conn

    def _wrap(self, domain) -> LibvirtVirtualMachine:
        return LibvirtVirtualMachine(domain, self.conn, template_prefix=self.template_prefix)

    def list_vms(self, datacenter: str) -> List[VirtualMachine]:
        # A libvirt connection is a single datacenter; the name is only a label.
        try:
            domains = sorted(self.conn.listAllDomains(), key=lambda d: d.name())
            return [self._wrap(domain) for domain in domains]
        except libvirt.libvirtError as e:
            raise RemoteOperationError("list domains", None, e) from e

    def create_vm(self, settings) -> VirtualMachine:
        disk_path = self.storage_dir / f"{settings.name}.qcow2"
        disks = QemuDiskManager(self.runner)
        try:
            disks.create_disk(disk_path, settings.disk_size_gb)
        except (RuntimeError, OSError) as e:
            raise RemoteOperationError("create disk", settings.name, e) from e

        xml = generate_domain_xml(settings, str(uuid.uuid4()), str(disk_path))
        try:
            vm = self._wrap(self.conn.defineXML(xml))
        except libvirt.libvirtError as e:
            disks.delete_disk(disk_path)
            raise RemoteOperationError("create vm", settings.name, e) from e
        log.info("vm.defined", vm=settings.name, disk=str(disk_path))
        return vm

    def clone_template(self, template: str, name: str) -> VirtualMachine:
        try:
            self.runner.run(
                [
                    "virt-clone",
                    "--connect",
                    self.uri,
                    "--original",
                    template,
                    "--name",
                    name,
                    "--auto-clone",
                ],
                timeout=3600,
            )
            vm = self._wrap(self.conn.lookupByName(name))
        except (RuntimeError, libvirt.libvirtError) as e:
            raise RemoteOperationError("clone template", template, e) from e
        log.info("vm.cloned", vm=name, template=template)
        return vm
