#!/usr/bin/env python3
"""Tests for tree view navigation (no terminal needed)."""

import pytest

from virtconsole.dispatcher import Command
from virtconsole.session import SessionState
from virtconsole.tree.builder import build_tree
from virtconsole.ui.view import COMMAND_KEYS, QUIT_KEYS, TreeCursor, visible_lines


@pytest.fixture
def root(inventory):
    return build_tree(inventory, label="Lab")


class TestVisibleLines:
    """Test visible_lines."""

    def test_collapsed_vms_hide_their_subtrees(self, root):
        lines = visible_lines(root)

        assert [(depth, node.text) for depth, node in lines] == [
            (0, "Lab"),
            (1, "web-01"),
            (1, "db-01"),
            (1, "template-ubuntu"),
        ]

    def test_expanded_vm_shows_branches(self, root):
        root.children[0].expanded = True

        texts = [node.text for _depth, node in visible_lines(root)]

        assert texts[:6] == ["Lab", "web-01", "Host: hv01", "Disks", "Network", "Snapshots"]


class TestTreeCursor:
    """Test TreeCursor."""

    def test_starts_on_root(self, root):
        assert TreeCursor(root).current is root

    def test_move_is_clamped(self, root):
        cursor = TreeCursor(root)

        assert cursor.move(-5) is root
        assert cursor.move(100).text == "template-ubuntu"

    def test_home_and_end(self, root):
        cursor = TreeCursor(root)

        assert cursor.end().text == "template-ubuntu"
        assert cursor.home() is root

    def test_expand_then_step_into(self, root):
        cursor = TreeCursor(root)
        cursor.move(1)

        cursor.expand()
        assert root.children[0].expanded is True

        cursor.expand()
        assert cursor.current.text == "Host: hv01"

    def test_collapse_goes_to_parent_from_leaf(self, root):
        cursor = TreeCursor(root)
        cursor.move(1)
        cursor.expand()
        cursor.move(1)

        cursor.collapse()

        assert cursor.current.text == "web-01"

    def test_collapse_folds_expanded_node(self, root):
        cursor = TreeCursor(root)
        cursor.move(1)
        cursor.expand()

        cursor.collapse()

        assert root.children[0].expanded is False
        assert cursor.current.text == "web-01"

    def test_root_is_never_collapsed(self, root):
        cursor = TreeCursor(root)

        cursor.collapse()

        assert root.expanded is True

    def test_resync_follows_node_after_rebuild(self, client, inventory, db_vm):
        session = SessionState(client, "dc1", list(inventory), "Lab")
        cursor = TreeCursor(session.root)
        cursor.move(2)
        selected = cursor.current

        session.rebuild([db_vm])

        # The old node is gone; the line number is kept and clamped.
        assert cursor.resync() is not selected
        assert cursor.current.text == "db-01"

    def test_resync_keeps_surviving_node(self, root):
        cursor = TreeCursor(root)
        cursor.move(3)
        node = cursor.current
        root.children.insert(0, root.children.pop())

        assert cursor.resync() is node
        assert cursor.index == 1

    def test_parent_of(self, root):
        cursor = TreeCursor(root)
        vm = root.children[1]

        assert cursor.parent_of(vm) is root
        assert cursor.parent_of(vm.children[0]) is vm
        assert cursor.parent_of(root) is None


def test_key_map_covers_every_command():
    assert set(COMMAND_KEYS.values()) == {
        Command.DELETE,
        Command.FIND,
        Command.DEPLOY,
        Command.NEW,
        Command.POWER,
        Command.REFRESH,
        Command.REVERT_SNAPSHOT,
    }
    assert "c-q" in QUIT_KEYS


class TestTreeViewRun:
    """Run the real application against a pipe input and a dummy output."""

    @pytest.fixture
    def tree_view(self, client, inventory):
        from prompt_toolkit.application import create_app_session
        from prompt_toolkit.input import create_pipe_input
        from prompt_toolkit.output import DummyOutput

        from virtconsole.ui.view import TreeView

        with create_pipe_input() as pipe_input:
            with create_app_session(input=pipe_input, output=DummyOutput()):
                session = SessionState(client, "dc1", list(inventory), "Lab")
                yield TreeView(session), pipe_input

    def test_command_key_ends_run(self, tree_view):
        view, pipe_input = tree_view
        pipe_input.send_text("\x06")

        assert view.run() is Command.FIND

    def test_wake_requested_between_runs_is_kept(self, tree_view):
        view, pipe_input = tree_view

        view.interrupt()

        assert view.run() is Command.WAKE

    def test_wake_request_is_consumed_once(self, tree_view):
        view, pipe_input = tree_view
        view.interrupt()
        view.run()
        pipe_input.send_text("\x11")

        assert view.run() is Command.QUIT
