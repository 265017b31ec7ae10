"""Data model shared by the reconcilers and the tree adapters."""

from dataclasses import asdict, dataclass
from typing import Any


@dataclass(frozen=True)
class BlockPayload:
    """Desired state of a block, built from a source item.

    A payload carries no identity of its own; the reconciler recovers one
    from ``text`` through the caller's extraction functions.
    """

    text: str
    children: list["BlockPayload"] | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to the nested ``{"text", "children"}`` form used by backends."""
        data: dict[str, Any] = {"text": self.text}
        if self.children is not None:
            data["children"] = [child.to_dict() for child in self.children]
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "BlockPayload":
        children = data.get("children")
        return cls(
            text=data.get("text", ""),
            children=[cls.from_dict(c) for c in children] if children is not None else None,
        )


@dataclass
class TreeNode:
    """An existing block as returned by a tree fetch.

    ``uid`` is the only handle used for mutations and is never rewritten.
    """

    text: str
    uid: str
    children: list["TreeNode"] | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "TreeNode":
        """Build a node from a raw backend mapping; missing text becomes ``""``."""
        children = data.get("children")
        return cls(
            text=data.get("text") or "",
            uid=data["uid"],
            children=[cls.from_dict(c) for c in children] if children is not None else None,
        )

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"uid": self.uid, "text": self.text}
        if self.children is not None:
            data["children"] = [child.to_dict() for child in self.children]
        return data


@dataclass
class SyncStats:
    """Counters for one top-level reconciliation pass."""

    total: int = 0
    skipped: int = 0
    created: int = 0
    updated: int = 0
    deleted: int = 0

    def to_dict(self) -> dict[str, int]:
        return asdict(self)


@dataclass
class ChildSyncStats:
    """Counters for one property-reconciliation pass."""

    skipped: int = 0
    updated: int = 0
    created: int = 0
    deleted: int = 0

    def to_dict(self) -> dict[str, int]:
        return asdict(self)


def is_unchanged(existing: TreeNode, desired: BlockPayload) -> bool:
    """Structural equality between an existing node and a desired payload.

    Equal iff the texts match and both child sequences have the same length
    with every pair recursively equal. ``None`` children count as empty.
    """
    if existing.text != desired.text:
        return False

    existing_children = existing.children or []
    desired_children = desired.children or []

    if len(existing_children) != len(desired_children):
        return False

    return all(
        is_unchanged(node, payload)
        for node, payload in zip(existing_children, desired_children)
    )


@dataclass
class Operation:
    """A single mutation recorded by an adapter that keeps a log."""

    kind: str  # "create", "update", "delete"
    uid: str
    parent_uid: str | None = None
    text: str | None = None
