#!/usr/bin/env python3
"""Data models for the inventory tree."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Iterator, List, Optional

from virtconsole.interfaces.hypervisor import VirtualMachine


class ReferenceKind(Enum):
    """What kind of inventory object a tree node represents."""

    DATACENTER = "datacenter"
    HOST = "host"
    VIRTUAL_MACHINE = "vm"
    DISK = "disk"
    NETWORK_INTERFACE = "nic"
    SNAPSHOT = "snapshot"
    TEMPLATE = "template"


@dataclass(frozen=True)
class NodeReference:
    """Typed payload of a tree node.

    ``vm`` points at the nearest VM (or template) above the node. It is a
    lookup handle for dispatching actions and does not own anything.
    ``details`` carries the variant's value: the MAC address of a NIC, the
    snapshot name, the disk label or the host name. Category branches
    ("Disks", "Network", "Snapshots") carry their children's kind and no
    details.
    """

    kind: ReferenceKind
    vm: Optional[VirtualMachine] = field(default=None, compare=False)
    details: Optional[str] = None

    @classmethod
    def datacenter(cls, name: str) -> "NodeReference":
        return cls(ReferenceKind.DATACENTER, details=name)

    @classmethod
    def host(cls, name: str, vm: Optional[VirtualMachine] = None) -> "NodeReference":
        return cls(ReferenceKind.HOST, vm=vm, details=name)

    @classmethod
    def virtual_machine(cls, vm: VirtualMachine) -> "NodeReference":
        return cls(ReferenceKind.VIRTUAL_MACHINE, vm=vm)

    @classmethod
    def template(cls, vm: VirtualMachine) -> "NodeReference":
        return cls(ReferenceKind.TEMPLATE, vm=vm)

    @classmethod
    def disk(cls, vm: VirtualMachine, label: Optional[str] = None) -> "NodeReference":
        return cls(ReferenceKind.DISK, vm=vm, details=label)

    @classmethod
    def network_interface(
        cls, vm: VirtualMachine, address: Optional[str] = None
    ) -> "NodeReference":
        return cls(ReferenceKind.NETWORK_INTERFACE, vm=vm, details=address)

    @classmethod
    def snapshot(cls, vm: VirtualMachine, name: Optional[str] = None) -> "NodeReference":
        return cls(ReferenceKind.SNAPSHOT, vm=vm, details=name)

    @property
    def address(self) -> Optional[str]:
        """MAC address of a NIC leaf; None for anything else."""
        if self.kind is ReferenceKind.NETWORK_INTERFACE:
            return self.details
        return None

    @property
    def snapshot_name(self) -> Optional[str]:
        """Snapshot name of a snapshot leaf; None for anything else."""
        if self.kind is ReferenceKind.SNAPSHOT:
            return self.details
        return None


@dataclass
class InventoryNode:
    """A node of the displayed tree. A parent owns its children."""

    text: str
    reference: Optional[NodeReference] = None
    expanded: bool = True
    children: List["InventoryNode"] = field(default_factory=list)

    def add_child(self, child: "InventoryNode") -> "InventoryNode":
        self.children.append(child)
        return self

    def clear_children(self) -> "InventoryNode":
        self.children = []
        return self

    def replace_children(self, children: List["InventoryNode"]) -> "InventoryNode":
        """Swap in a complete list of children in one assignment."""
        self.children = list(children)
        return self

    def toggle(self) -> None:
        if self.children:
            self.expanded = not self.expanded

    def walk(
        self,
        visitor: Callable[["InventoryNode", Optional["InventoryNode"]], bool],
        parent: Optional["InventoryNode"] = None,
    ) -> None:
        """Depth-first, pre-order walk.

        ``visitor(node, parent)`` returns False to skip the node's children.
        """
        if not visitor(self, parent):
            return
        for child in self.children:
            child.walk(visitor, self)

    def iter_depth_first(self) -> Iterator["InventoryNode"]:
        yield self
        for child in self.children:
            yield from child.iter_depth_first()

    def find_path(self, target: "InventoryNode") -> Optional[List[int]]:
        """Child indexes leading from this node to ``target``."""
        if target is self:
            return []
        for index, child in enumerate(self.children):
            path = child.find_path(target)
            if path is not None:
                return [index] + path
        return None

    def shape(self) -> tuple:
        """Structural fingerprint: text, reference kind and children, recursively."""
        kind = self.reference.kind if self.reference else None
        return (self.text, kind, tuple(child.shape() for child in self.children))
