"""In-process block tree for tests, headless embedding and dry runs."""

import copy
import logging
import uuid

from ..models import BlockPayload, Operation, TreeNode
from .base import Order, TreeAdapter

logger = logging.getLogger(__name__)


class InMemoryTreeAdapter(TreeAdapter):
    """Block tree held in a dict, with a log of every mutation.

    Parents that were never seeded behave as empty pages. Reads return deep
    copies so callers can't reach into the stored tree.
    """

    def __init__(self, uid_prefix: str = "mem"):
        self.uid_prefix = uid_prefix
        self._children: dict[str, list[TreeNode]] = {}
        self._parents: dict[str, str] = {}
        self.operations: list[Operation] = []

    def _new_uid(self) -> str:
        return f"{self.uid_prefix}-{uuid.uuid4().hex[:9]}"

    def seed(self, parent_uid: str, nodes: list[TreeNode]) -> None:
        """Replace the children of ``parent_uid`` without logging operations."""
        self._children[parent_uid] = []
        for node in nodes:
            self._attach(parent_uid, copy.deepcopy(node))

    def _attach(self, parent_uid: str, node: TreeNode, order: Order = "last") -> None:
        siblings = self._children.setdefault(parent_uid, [])
        if order == "last" or order >= len(siblings):
            siblings.append(node)
        else:
            siblings.insert(max(order, 0), node)
        self._parents[node.uid] = parent_uid
        self._index(node)

    def _index(self, node: TreeNode) -> None:
        # Nested children live on the node itself; record their parents so
        # lookups by uid work at any depth.
        for child in node.children or []:
            self._parents[child.uid] = node.uid
            self._index(child)

    def _find(self, uid: str) -> tuple[list[TreeNode], TreeNode]:
        parent_uid = self._parents.get(uid)
        if parent_uid is None:
            raise KeyError(f"Unknown block uid: {uid}")

        if parent_uid in self._children:
            siblings = self._children[parent_uid]
        else:
            _, parent = self._find(parent_uid)
            siblings = parent.children or []

        for node in siblings:
            if node.uid == uid:
                return siblings, node
        raise KeyError(f"Unknown block uid: {uid}")

    def _build(self, block: BlockPayload) -> TreeNode:
        return TreeNode(
            text=block.text,
            uid=self._new_uid(),
            children=(
                [self._build(child) for child in block.children]
                if block.children is not None
                else None
            ),
        )

    def get_children(self, parent_uid: str) -> list[TreeNode]:
        if parent_uid in self._children:
            return copy.deepcopy(self._children[parent_uid])
        if parent_uid in self._parents:
            _, node = self._find(parent_uid)
            return copy.deepcopy(node.children or [])
        return []

    async def create_block(
        self,
        parent_uid: str,
        block: BlockPayload,
        order: Order = "last",
    ) -> str:
        node = self._build(block)
        if parent_uid in self._parents and parent_uid not in self._children:
            _, parent = self._find(parent_uid)
            if parent.children is None:
                parent.children = []
            if order == "last" or order >= len(parent.children):
                parent.children.append(node)
            else:
                parent.children.insert(max(order, 0), node)
            self._parents[node.uid] = parent_uid
            self._index(node)
        else:
            self._attach(parent_uid, node, order)

        self.operations.append(
            Operation(kind="create", uid=node.uid, parent_uid=parent_uid, text=block.text)
        )
        logger.debug(f"Created {node.uid} under {parent_uid}")
        return node.uid

    async def update_block(self, uid: str, text: str) -> None:
        _, node = self._find(uid)
        node.text = text
        self.operations.append(Operation(kind="update", uid=uid, text=text))

    async def delete_block(self, uid: str) -> None:
        siblings, node = self._find(uid)
        siblings.remove(node)
        self._forget(node)
        self._children.pop(uid, None)
        self.operations.append(Operation(kind="delete", uid=uid, text=node.text))

    def _forget(self, node: TreeNode) -> None:
        self._parents.pop(node.uid, None)
        for child in node.children or []:
            self._forget(child)

    def snapshot(self, parent_uid: str) -> list[dict]:
        """Current children of ``parent_uid`` as plain dicts."""
        return [node.to_dict() for node in self.get_children(parent_uid)]

    def clear_operations(self) -> None:
        self.operations.clear()
