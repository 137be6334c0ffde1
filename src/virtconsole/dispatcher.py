#!/usr/bin/env python3
"""
Route command keys to lifecycle operations on the selected tree node.
"""

import queue
from enum import Enum
from typing import Callable, List, Optional

from virtconsole.errors import ConsoleError, RemoteOperationError
from virtconsole.interfaces.hypervisor import VirtualMachine
from virtconsole.logging import get_logger, log_operation
from virtconsole.power import PowerAction, PowerController
from virtconsole.session import SessionState
from virtconsole.tree.models import InventoryNode, NodeReference, ReferenceKind
from virtconsole.ui.suspend import Suspender

log = get_logger(__name__)


class Command(Enum):
    """Commands the tree view hands to the dispatcher."""

    DELETE = "delete"
    FIND = "find"
    DEPLOY = "deploy"
    NEW = "new"
    POWER = "power"
    REFRESH = "refresh"
    REVERT_SNAPSHOT = "revert"
    WAKE = "wake"
    QUIT = "quit"


def owning_vm(reference: Optional[NodeReference]) -> Optional[VirtualMachine]:
    """The VM a lifecycle action on this reference applies to, if any."""
    if reference is None:
        return None
    kind = reference.kind
    if kind is ReferenceKind.DATACENTER:
        return None
    elif kind in (
        ReferenceKind.HOST,
        ReferenceKind.VIRTUAL_MACHINE,
        ReferenceKind.TEMPLATE,
        ReferenceKind.DISK,
        ReferenceKind.NETWORK_INTERFACE,
        ReferenceKind.SNAPSHOT,
    ):
        return reference.vm
    raise ValueError(f"Unhandled reference kind: {kind}")


class ErrorReporter:
    """Shows failures to the operator without ending the session."""

    def __init__(self, suspender: Suspender, show: Callable[[BaseException], None]):
        self.suspender = suspender
        self.show = show
        self.on_deferred: Optional[Callable[[], None]] = None
        self._pending: "queue.Queue[BaseException]" = queue.Queue()

    def report(self, err: BaseException) -> None:
        context = {}
        if isinstance(err, RemoteOperationError):
            context = {"vm": err.vm_name, "operation": err.operation}
        log.error("operation.failed", error=str(err), error_type=type(err).__name__, **context)
        try:
            self.suspender.suspend(lambda: self.show(err))
        except Exception:
            log.exception("error_dialog.failed", error=str(err))

    def report_deferred(self, err: BaseException) -> None:
        """Queue an error raised off the dispatcher's thread.

        It is shown by ``flush`` on the dispatcher's thread.
        """
        self._pending.put(err)
        if self.on_deferred is not None:
            self.on_deferred()

    def flush(self) -> int:
        shown = 0
        while True:
            try:
                err = self._pending.get_nowait()
            except queue.Empty:
                return shown
            self.report(err)
            shown += 1


class CommandDispatcher:
    """Handles one command at a time against the node under the cursor.

    Commands whose precondition does not hold for the node are ignored.
    Failures go to the error reporter and never escape ``dispatch``.
    """

    def __init__(
        self,
        session: SessionState,
        suspender: Suspender,
        dialogs,
        reporter: ErrorReporter,
        power: Optional[PowerController] = None,
    ):
        self.session = session
        self.suspender = suspender
        self.dialogs = dialogs
        self.reporter = reporter
        self.power = power or PowerController(reporter.report)

    def dispatch(self, command: Command, node: Optional[InventoryNode]) -> bool:
        """Run ``command`` for ``node``; returns False when it was not handled."""
        handlers = {
            Command.DELETE: self.delete,
            Command.FIND: self.find,
            Command.DEPLOY: self.deploy,
            Command.NEW: self.new,
            Command.POWER: self.power_menu,
            Command.REFRESH: self.refresh,
            Command.REVERT_SNAPSHOT: self.revert_snapshot,
        }
        handler = handlers.get(command)
        if handler is None:
            return False

        node_text = node.text if node else None
        try:
            with log_operation(log, "dispatch", command=command.value, node=node_text):
                handler(node)
        except Exception as e:
            # Logged by log_operation above.
            self.reporter.report(e)
        return True

    def delete(self, node: Optional[InventoryNode]) -> None:
        vm = owning_vm(node.reference if node else None)
        if vm is None:
            return
        try:
            vm.destroy()
        except ConsoleError as e:
            self.reporter.report(e)
            return
        log.info("vm.destroyed", vm=vm.name())
        self.refresh(node)

    def find(self, node: Optional[InventoryNode]) -> None:
        result = self.suspender.suspend(
            lambda: self.dialogs.search(self.session.vms, self.session.filter_string)
        )
        if result is None:
            return
        filter_string, subset = result
        self.session.apply_search(filter_string, subset)
        log.info("filter.applied", filter=self.session.filter_string, matches=len(subset))

    def deploy(self, node: Optional[InventoryNode]) -> None:
        if node is None:
            return
        found: List[NodeReference] = []

        def visit(current: InventoryNode, parent: Optional[InventoryNode]) -> bool:
            if found or current.reference is None:
                return False
            if current.reference.address and current.reference.vm is not None:
                found.append(current.reference)
                return False
            return True

        node.walk(visit)
        if not found:
            return
        reference = found[0]
        self.suspender.suspend(
            lambda: self.dialogs.deploy(reference.address, reference.vm.name())
        )

    def new(self, node: Optional[InventoryNode]) -> None:
        if node is None or node.reference is None:
            return
        if node.reference.kind is ReferenceKind.TEMPLATE:
            created = self.suspender.suspend(lambda: self.dialogs.new_vm_from_template(node.text))
        else:
            created = self.suspender.suspend(
                lambda: self.dialogs.new_vm(self.session.client, self.session.datacenter)
            )
        if created is not None:
            self.refresh(node)

    def power_menu(self, node: Optional[InventoryNode]) -> None:
        vm = owning_vm(node.reference if node else None)
        if vm is None:
            return
        action = self.suspender.suspend(self.dialogs.power)
        self.power.apply(vm, action or PowerAction.NONE)

    def refresh(self, node: Optional[InventoryNode] = None) -> None:
        try:
            self.session.refresh()
        except ConsoleError as e:
            self.reporter.report(e)

    def revert_snapshot(self, node: Optional[InventoryNode]) -> None:
        if node is None or node.reference is None:
            return
        reference = node.reference
        if reference.kind is not ReferenceKind.SNAPSHOT:
            return
        if reference.vm is None or not reference.snapshot_name:
            return
        try:
            reference.vm.revert_to_snapshot(reference.snapshot_name, suppress_power_on=True)
        except ConsoleError as e:
            self.reporter.report(e)
            return
        log.info("snapshot.reverted", vm=reference.vm.name(), snapshot=reference.snapshot_name)
