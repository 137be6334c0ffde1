"""Terminal surfaces: the tree view, the sub-dialogs and the suspension protocol."""

from .suspend import Suspender

__all__ = ["Suspender"]
