#!/usr/bin/env python3
"""
Hand the terminal from the tree view to a blocking sub-dialog and back.
"""

import threading
from contextlib import contextmanager
from typing import Callable, Optional, Protocol, TypeVar

from virtconsole.logging import get_logger

log = get_logger(__name__)

T = TypeVar("T")


class Suspendable(Protocol):
    def pause(self, draw: bool) -> None:
        """Stop reading input and drawing; leave the last frame if ``draw``."""

    def repair(self) -> None:
        """Make the view safe to resume after a sub-dialog ran."""


class Suspender:
    """Runs sub-dialogs while the main view is paused.

    Only the dispatcher's thread may suspend. Suspensions nest (a dialog may
    report an error through another suspension); the view is paused once on
    the way in and repaired after every call, including when the action
    raises.
    """

    def __init__(self, view: Optional[Suspendable] = None):
        self.view = view
        self._depth = 0
        self._owner: Optional[int] = None

    @property
    def active(self) -> bool:
        return self._depth > 0

    def suspend(self, action: Callable[[], T], draw: bool = False) -> T:
        with self.suspended(draw=draw):
            return action()

    @contextmanager
    def suspended(self, draw: bool = False):
        thread_id = threading.get_ident()
        if self._depth and self._owner != thread_id:
            raise RuntimeError("Suspend called from a second thread while a dialog is running")

        self._owner = thread_id
        self._depth += 1
        try:
            if self._depth == 1 and self.view is not None:
                self.view.pause(draw)
            yield
        finally:
            self._depth -= 1
            if not self._depth:
                self._owner = None
            self.repair()

    def repair(self) -> None:
        if self.view is not None:
            self.view.repair()
        log.debug("view.repaired", depth=self._depth)
