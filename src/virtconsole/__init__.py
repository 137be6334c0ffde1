"""
VirtConsole - browse a virtualization inventory as a tree and drive VM
lifecycle operations from the keyboard.
"""

__version__ = "0.3.0"
__author__ = "VirtConsole Team"

from virtconsole.app import run_session
from virtconsole.tree.builder import build_tree

__all__ = ["run_session", "build_tree", "__version__"]
