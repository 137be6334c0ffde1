#!/usr/bin/env python3
"""
State shared by the dispatcher and the sub-dialogs for one console session.
"""

from dataclasses import dataclass, field
from typing import List, Optional

from virtconsole.interfaces.hypervisor import InventoryClient, VirtualMachine
from virtconsole.inventory import vm_inventory
from virtconsole.logging import get_logger
from virtconsole.search import apply_filter
from virtconsole.tree.builder import DEFAULT_ROOT_LABEL, build_tree
from virtconsole.tree.models import InventoryNode

log = get_logger(__name__)


@dataclass
class SessionState:
    """One console session.

    Only the search flow (``apply_search``) and the refresh flow
    (``refresh``) write to it, both from the dispatcher's thread. The root
    node lives as long as the session; its children are replaced as a whole
    on every rebuild, so node objects held across a rebuild are stale.
    """

    client: InventoryClient
    datacenter: str
    vms: List[VirtualMachine] = field(default_factory=list)
    label: str = DEFAULT_ROOT_LABEL
    filter_string: str = ""
    root: Optional[InventoryNode] = None

    def __post_init__(self):
        if self.root is None:
            self.root = build_tree(self.visible_vms(), label=self.label)
        self.root.text = self.root_label()

    def root_label(self) -> str:
        if self.filter_string:
            return f"{self.label} (filter: {self.filter_string})"
        return self.label

    def visible_vms(self) -> List[VirtualMachine]:
        """Inventory narrowed by the active filter."""
        return apply_filter(self.filter_string, self.vms)

    def rebuild(self, vms: List[VirtualMachine]) -> InventoryNode:
        """Replace the root's children with a tree built from ``vms``.

        The new subtree is complete before it is swapped in.
        """
        fresh = build_tree(vms, label=self.label)
        self.root.replace_children(fresh.children)
        self.root.text = self.root_label()
        log.debug("tree.rebuilt", vms=len(vms), filter=self.filter_string)
        return self.root

    def apply_search(self, filter_string: str, subset: List[VirtualMachine]) -> None:
        self.filter_string = (filter_string or "").strip()
        self.rebuild(subset)

    def refresh(self) -> None:
        """Re-fetch the inventory, re-apply the filter and rebuild.

        Raises InventoryError or FilterError before anything is changed, so
        a failed refresh leaves the current tree in place.
        """
        vms = vm_inventory(self.client, self.datacenter, force_refresh=True)
        subset = apply_filter(self.filter_string, vms)
        self.vms = vms
        self.rebuild(subset)
