#!/usr/bin/env python3
"""
Session entry point: wire the view, dialogs and dispatcher together and
run the key loop.
"""

from typing import Optional, Sequence

from virtconsole.config import ConsoleConfig
from virtconsole.dispatcher import Command, CommandDispatcher, ErrorReporter
from virtconsole.errors import NoInventoryError
from virtconsole.interfaces.hypervisor import InventoryClient, VirtualMachine
from virtconsole.logging import get_logger, session_context
from virtconsole.power import DeferredBootRevert, PowerController
from virtconsole.search import apply_filter
from virtconsole.session import SessionState
from virtconsole.ui.suspend import Suspender

log = get_logger(__name__)


def run_session(
    vms: Optional[Sequence[VirtualMachine]],
    datacenter: str,
    client: InventoryClient,
    config: Optional[ConsoleConfig] = None,
    initial_filter: str = "",
    view=None,
    dialogs=None,
) -> None:
    """Run the interactive console until the operator quits.

    Raises:
        NoInventoryError: ``vms`` is None or empty; the session never starts.
    """
    if not vms:
        raise NoInventoryError("No VMs")

    config = config or ConsoleConfig()
    session = SessionState(
        client=client, datacenter=datacenter, vms=list(vms), label=config.root_label
    )
    if initial_filter:
        session.apply_search(initial_filter, apply_filter(initial_filter, session.vms))

    if view is None:
        from virtconsole.ui.view import TreeView

        view = TreeView(session)
    if dialogs is None:
        from virtconsole.ui.dialogs import Dialogs

        dialogs = Dialogs(client, config)

    suspender = Suspender(view)
    reporter = ErrorReporter(suspender, dialogs.error)
    reporter.on_deferred = view.interrupt
    power = PowerController(
        reporter.report,
        DeferredBootRevert(reporter.report_deferred, delay=config.boot_revert_delay),
    )
    dispatcher = CommandDispatcher(session, suspender, dialogs, reporter, power)

    with session_context(datacenter=datacenter, client=client.name):
        log.info("session.started", vms=len(session.vms))
        while True:
            reporter.flush()
            command = view.run()
            if command is None or command is Command.QUIT:
                break
            dispatcher.dispatch(command, view.current_node)
        log.info("session.ended")
