#!/usr/bin/env python3
"""
Build the inventory tree from a flat list of VM handles.
"""

from typing import Iterable

from virtconsole.interfaces.hypervisor import VirtualMachine

from .models import InventoryNode, NodeReference

DEFAULT_ROOT_LABEL = "Virtual Machines"

DISKS_BRANCH = "Disks"
NETWORK_BRANCH = "Network"
SNAPSHOTS_BRANCH = "Snapshots"


def build_tree(
    vms: Iterable[VirtualMachine],
    label: str = DEFAULT_ROOT_LABEL,
) -> InventoryNode:
    """Build a root node holding one subtree per VM, in input order.

    Each VM node carries a ``VirtualMachine`` reference, or ``Template`` for
    templates, and is collapsed. Under it come an optional host leaf and the
    "Disks", "Network" and "Snapshots" branches, each present only when the
    VM has something to list. No remote state is changed; the handles only
    answer inventory queries.
    """
    root = InventoryNode(text=label)
    for vm in vms or []:
        root.add_child(_vm_node(vm))
    return root


def _vm_node(vm: VirtualMachine) -> InventoryNode:
    if vm.is_template:
        reference = NodeReference.template(vm)
    else:
        reference = NodeReference.virtual_machine(vm)
    node = InventoryNode(text=vm.name(), reference=reference, expanded=False)

    host = vm.host
    if host:
        node.add_child(InventoryNode(text=f"Host: {host}", reference=NodeReference.host(host, vm)))

    disks = vm.disks()
    if disks:
        branch = InventoryNode(DISKS_BRANCH, NodeReference.disk(vm), expanded=False)
        for disk in disks:
            branch.add_child(InventoryNode(disk.display_name, NodeReference.disk(vm, disk.label)))
        node.add_child(branch)

    nics = vm.network_interfaces()
    if nics:
        branch = InventoryNode(NETWORK_BRANCH, NodeReference.network_interface(vm), expanded=False)
        for nic in nics:
            branch.add_child(
                InventoryNode(nic.address, NodeReference.network_interface(vm, nic.address))
            )
        node.add_child(branch)

    snapshots = vm.snapshots()
    if snapshots:
        branch = InventoryNode(SNAPSHOTS_BRANCH, NodeReference.snapshot(vm), expanded=False)
        for snapshot in snapshots:
            branch.add_child(
                InventoryNode(snapshot.name, NodeReference.snapshot(vm, snapshot.name))
            )
        node.add_child(branch)

    return node
