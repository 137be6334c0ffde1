#!/usr/bin/env python3
"""
Full-screen tree view of the inventory.

The view owns the terminal only while ``run`` is executing. Navigation keys
are handled inside the view; a command key ends ``run`` with the matching
``Command`` so the dispatcher can act, open dialogs and then run the view
again.
"""

import threading
from typing import List, Optional, Tuple

from prompt_toolkit.application import Application
from prompt_toolkit.data_structures import Point
from prompt_toolkit.input.typeahead import clear_typeahead
from prompt_toolkit.key_binding import KeyBindings
from prompt_toolkit.layout import HSplit, Layout, Window
from prompt_toolkit.layout.controls import FormattedTextControl
from prompt_toolkit.layout.margins import ScrollbarMargin
from prompt_toolkit.styles import Style

from virtconsole.dispatcher import Command
from virtconsole.logging import get_logger
from virtconsole.session import SessionState
from virtconsole.tree.models import InventoryNode, ReferenceKind
from virtconsole.ui.style import console

log = get_logger(__name__)

COMMAND_KEYS = {
    "c-d": Command.DELETE,
    "c-f": Command.FIND,
    "c-i": Command.DEPLOY,
    "c-n": Command.NEW,
    "c-p": Command.POWER,
    "c-r": Command.REFRESH,
    "c-s": Command.REVERT_SNAPSHOT,
}

QUIT_KEYS = ("c-q", "c-c")

HELP_TEXT = (
    " ^F find  ^P power  ^D delete  ^S revert snapshot  "
    "^I deploy  ^N new  ^R refresh  ^Q quit"
)

_KIND_STYLES = {
    ReferenceKind.DATACENTER: "class:tree.datacenter",
    ReferenceKind.HOST: "class:tree.host",
    ReferenceKind.VIRTUAL_MACHINE: "class:tree.vm",
    ReferenceKind.TEMPLATE: "class:tree.template",
    ReferenceKind.DISK: "class:tree.disk",
    ReferenceKind.NETWORK_INTERFACE: "class:tree.nic",
    ReferenceKind.SNAPSHOT: "class:tree.snapshot",
}

tree_style = Style.from_dict(
    {
        "tree.root": "bold",
        "tree.datacenter": "bold",
        "tree.host": "ansigray",
        "tree.vm": "ansicyan",
        "tree.template": "ansimagenta",
        "tree.disk": "",
        "tree.nic": "ansigreen",
        "tree.snapshot": "ansiyellow",
        "tree.selected": "reverse",
        "status": "reverse",
    }
)


def visible_lines(root: InventoryNode) -> List[Tuple[int, InventoryNode]]:
    """(depth, node) for the root and every node under an expanded parent."""
    lines: List[Tuple[int, InventoryNode]] = []

    def add(node: InventoryNode, depth: int) -> None:
        lines.append((depth, node))
        if node.expanded:
            for child in node.children:
                add(child, depth + 1)

    add(root, 0)
    return lines


class TreeCursor:
    """Tracks the selected line of the tree.

    After a rebuild the selected node may no longer be part of the tree; the
    cursor then keeps its line number, clamped to the new tree.
    """

    def __init__(self, root: InventoryNode):
        self.root = root
        self.index = 0
        self._node: Optional[InventoryNode] = root

    @property
    def lines(self) -> List[Tuple[int, InventoryNode]]:
        return visible_lines(self.root)

    @property
    def current(self) -> InventoryNode:
        lines = self.lines
        self.index = max(0, min(self.index, len(lines) - 1))
        self._node = lines[self.index][1]
        return self._node

    def move(self, delta: int) -> InventoryNode:
        self.index += delta
        return self.current

    def home(self) -> InventoryNode:
        self.index = 0
        return self.current

    def end(self) -> InventoryNode:
        self.index = len(self.lines) - 1
        return self.current

    def select(self, node: InventoryNode) -> bool:
        for index, (_depth, candidate) in enumerate(self.lines):
            if candidate is node:
                self.index = index
                self._node = node
                return True
        return False

    def toggle(self) -> None:
        self.current.toggle()

    def expand(self) -> None:
        node = self.current
        if node.children and not node.expanded:
            node.expanded = True
        elif node.children:
            self.move(1)

    def collapse(self) -> None:
        node = self.current
        if node.children and node.expanded and node is not self.root:
            node.expanded = False
            return
        parent = self.parent_of(node)
        if parent is not None:
            self.select(parent)

    def parent_of(self, node: InventoryNode) -> Optional[InventoryNode]:
        path = self.root.find_path(node)
        if not path:
            return None
        parent = self.root
        for index in path[:-1]:
            parent = parent.children[index]
        return parent

    def resync(self) -> InventoryNode:
        """Re-resolve the selection after the tree was rebuilt."""
        if self._node is not None and self.select(self._node):
            return self._node
        return self.current


class TreeView:
    """prompt_toolkit application showing the session's tree."""

    def __init__(self, session: SessionState):
        self.session = session
        self.cursor = TreeCursor(session.root)
        self._wake_requested = threading.Event()
        self._app = self._build_application()

    @property
    def current_node(self) -> InventoryNode:
        return self.cursor.current

    def _fragments(self):
        fragments = []
        for index, (depth, node) in enumerate(self.cursor.lines):
            if node.children:
                marker = "▾ " if node.expanded else "▸ "
            else:
                marker = "  "
            if node.reference is None:
                style = "class:tree.root"
            else:
                style = _KIND_STYLES[node.reference.kind]
            if index == self.cursor.index:
                style += " class:tree.selected"
            fragments.append(("", "  " * depth + marker))
            fragments.append((style, node.text))
            fragments.append(("", "\n"))
        return fragments

    def _status(self):
        text = HELP_TEXT
        if self.session.filter_string:
            text += f"   [filter: {self.session.filter_string}]"
        return [("class:status", text)]

    def _key_bindings(self) -> KeyBindings:
        kb = KeyBindings()
        cursor = self.cursor

        @kb.add("up")
        @kb.add("k")
        def _up(event):
            cursor.move(-1)

        @kb.add("down")
        @kb.add("j")
        def _down(event):
            cursor.move(1)

        @kb.add("pageup")
        def _page_up(event):
            cursor.move(-self._page_size(event))

        @kb.add("pagedown")
        def _page_down(event):
            cursor.move(self._page_size(event))

        @kb.add("home")
        def _home(event):
            cursor.home()

        @kb.add("end")
        def _end(event):
            cursor.end()

        @kb.add("enter")
        @kb.add(" ")
        def _toggle(event):
            node = cursor.current
            if node.reference is not None:
                cursor.toggle()

        @kb.add("right")
        @kb.add("l")
        def _expand(event):
            cursor.expand()

        @kb.add("left")
        @kb.add("h")
        def _collapse(event):
            cursor.collapse()

        for key, command in COMMAND_KEYS.items():
            kb.add(key)(self._exit_with(command))

        for key in QUIT_KEYS:
            kb.add(key)(self._exit_with(Command.QUIT))

        return kb

    @staticmethod
    def _exit_with(command: Command):
        def handler(event):
            event.app.exit(result=command)

        return handler

    @staticmethod
    def _page_size(event) -> int:
        return max(1, event.app.output.get_size().rows - 2)

    def _build_application(self) -> Application:
        body = Window(
            FormattedTextControl(
                self._fragments,
                focusable=True,
                show_cursor=False,
                get_cursor_position=lambda: Point(x=0, y=self.cursor.index),
            ),
            wrap_lines=False,
            right_margins=[ScrollbarMargin(display_arrows=True)],
        )
        status = Window(FormattedTextControl(self._status), height=1, style="class:status")
        return Application(
            layout=Layout(HSplit([body, status]), focused_element=body),
            key_bindings=self._key_bindings(),
            style=tree_style,
            full_screen=True,
        )

    def run(self) -> Command:
        """Show the tree until a command key is pressed."""
        self.cursor.resync()
        return self._app.run(pre_run=self._wake_if_requested)

    def pause(self, draw: bool) -> None:
        if not draw:
            console.clear()

    def repair(self) -> None:
        # Keys typed into a dialog must not leak into the tree view.
        clear_typeahead(self._app.input)
        self.cursor.resync()
        self._app.invalidate()

    def interrupt(self) -> None:
        """Wake the view from another thread.

        A request made while the view is not running is kept and ends the
        next ``run`` as soon as it starts.
        """
        self._wake_requested.set()
        app = self._app
        loop = app.loop
        if app.is_running and loop is not None:
            loop.call_soon_threadsafe(self._wake_if_requested)

    def _wake_if_requested(self) -> None:
        if not self._wake_requested.is_set():
            return
        if self._app.is_running and not self._app.is_done:
            self._wake_requested.clear()
            self._app.exit(result=Command.WAKE)
