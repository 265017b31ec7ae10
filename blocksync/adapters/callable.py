"""Adapter built from four plain backend functions.

Handy when the backend is already exposed as functions (an SDK module, a
plugin host API) rather than as an object implementing ``TreeAdapter``.
"""

import inspect
from typing import Any, Awaitable, Callable

from ..models import BlockPayload, TreeNode
from .base import Order, TreeAdapter

RawNode = dict[str, Any]


def to_tree_node(node: RawNode) -> TreeNode:
    """Convert a raw backend node (``text`` optional, ``uid`` required)."""
    return TreeNode.from_dict(node)


def to_input_node(payload: BlockPayload) -> dict[str, Any]:
    """Convert a payload into the ``{"text", "children"}`` shape backends accept."""
    return {
        "text": payload.text,
        "children": (
            [to_input_node(child) for child in payload.children]
            if payload.children is not None
            else None
        ),
    }


class CallableTreeAdapter(TreeAdapter):
    """``TreeAdapter`` that delegates to caller-supplied functions.

    Args:
        get_basic_tree_by_parent_uid: Returns the raw child nodes of a parent.
        create_block: Called as ``create_block(parent_uid=..., order=...,
            node=...)``; returns the new uid.
        update_block: Called as ``update_block(uid=..., text=...)``.
        delete_block: Called as ``delete_block(uid)``.

    Mutation functions may be sync or async.
    """

    def __init__(
        self,
        get_basic_tree_by_parent_uid: Callable[[str], list[RawNode]],
        create_block: Callable[..., Awaitable[str] | str],
        update_block: Callable[..., Awaitable[None] | None],
        delete_block: Callable[[str], Awaitable[None] | None],
    ):
        self._get_tree = get_basic_tree_by_parent_uid
        self._create = create_block
        self._update = update_block
        self._delete = delete_block

    def get_children(self, parent_uid: str) -> list[TreeNode]:
        return [to_tree_node(node) for node in self._get_tree(parent_uid)]

    async def create_block(
        self,
        parent_uid: str,
        block: BlockPayload,
        order: Order = "last",
    ) -> str:
        return await _resolve(
            self._create(parent_uid=parent_uid, order=order, node=to_input_node(block))
        )

    async def update_block(self, uid: str, text: str) -> None:
        await _resolve(self._update(uid=uid, text=text))

    async def delete_block(self, uid: str) -> None:
        await _resolve(self._delete(uid))


async def _resolve(result: Any) -> Any:
    if inspect.isawaitable(result):
        return await result
    return result


def create_callable_adapter(
    get_basic_tree_by_parent_uid: Callable[[str], list[RawNode]],
    create_block: Callable[..., Awaitable[str] | str],
    update_block: Callable[..., Awaitable[None] | None],
    delete_block: Callable[[str], Awaitable[None] | None],
) -> CallableTreeAdapter:
    """Create an adapter from backend functions.

    Example:
        adapter = create_callable_adapter(
            get_basic_tree_by_parent_uid=api.children,
            create_block=api.create_block,
            update_block=api.update_block,
            delete_block=api.delete_block,
        )
    """
    return CallableTreeAdapter(
        get_basic_tree_by_parent_uid=get_basic_tree_by_parent_uid,
        create_block=create_block,
        update_block=update_block,
        delete_block=delete_block,
    )
