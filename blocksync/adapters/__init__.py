"""Backends the reconcilers can write to."""

from .base import Order, TreeAdapter
from .callable import CallableTreeAdapter, create_callable_adapter
from .http import HTTPTreeAdapter
from .memory import InMemoryTreeAdapter

__all__ = [
    "Order",
    "TreeAdapter",
    "CallableTreeAdapter",
    "create_callable_adapter",
    "HTTPTreeAdapter",
    "InMemoryTreeAdapter",
]
