"""Abstract contract between the reconcilers and a block-tree backend."""

from abc import ABC, abstractmethod
from typing import Awaitable, Literal

from ..models import BlockPayload, TreeNode

Order = int | Literal["last"]


class TreeAdapter(ABC):
    """Backend operations the reconcilers rely on.

    Mutations are coroutines and are awaited one at a time. ``get_children``
    is a plain read for backends that hold the tree locally; remote
    backends may implement it as a coroutine instead and the reconcilers
    will await the result.
    """

    @abstractmethod
    def get_children(self, parent_uid: str) -> list[TreeNode] | Awaitable[list[TreeNode]]:
        """Read one level of children under ``parent_uid``.

        Each returned node carries its own descendants eagerly.
        """
        pass

    @abstractmethod
    async def create_block(
        self,
        parent_uid: str,
        block: BlockPayload,
        order: Order = "last",
    ) -> str:
        """Create ``block`` and all of its descendants under ``parent_uid``.

        Returns:
            The uid of the new top-level block.
        """
        pass

    @abstractmethod
    async def update_block(self, uid: str, text: str) -> None:
        """Replace the text of an existing block. Children are untouched."""
        pass

    @abstractmethod
    async def delete_block(self, uid: str) -> None:
        """Delete a block together with its descendants."""
        pass
