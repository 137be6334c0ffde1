"""Inventory tree model and builder."""

from .builder import build_tree
from .models import InventoryNode, NodeReference, ReferenceKind

__all__ = ["build_tree", "InventoryNode", "NodeReference", "ReferenceKind"]
