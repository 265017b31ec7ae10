"""Reconcilers for top-level blocks and their property children."""

from .blocks import BlockReconciler, ReconcilerConfig, ReconcilerOptions
from .children import ChildReconcilerConfig, ChildrenReconciler

__all__ = [
    "BlockReconciler",
    "ReconcilerConfig",
    "ReconcilerOptions",
    "ChildReconcilerConfig",
    "ChildrenReconciler",
]
