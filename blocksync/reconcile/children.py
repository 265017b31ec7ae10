"""Reconciliation of property children under a single block."""

import logging
from dataclasses import dataclass, replace
from typing import Callable

from ..adapters.base import TreeAdapter
from ..events import EventLogger
from ..models import BlockPayload, ChildSyncStats, TreeNode
from ..pacing import (
    DEFAULT_MUTATION_DELAY_MS,
    DEFAULT_YIELD_BATCH_SIZE,
    YieldFn,
    delay,
    maybe_yield,
    yield_to_host,
)

logger = logging.getLogger(__name__)


@dataclass
class ChildReconcilerConfig:
    """Strategy for matching property children.

    Attributes:
        extract_key: Returns the property key of a child's text
            (``"priority"`` for ``"priority:: high"``), or None when the text
            is not property-shaped.
        is_special_block: Marks non-property children that are replaced
            wholesale instead of diffed, such as a comments container.
        mutation_delay_ms: Pause after each backend mutation.
        logger: Optional sink for lifecycle events.
        yield_fn: Cooperative yield used between operations.
    """

    extract_key: Callable[[str], str | None]
    is_special_block: Callable[[str], bool] | None = None
    mutation_delay_ms: float = DEFAULT_MUTATION_DELAY_MS
    logger: EventLogger | None = None
    yield_fn: YieldFn = yield_to_host

    def __post_init__(self) -> None:
        if self.mutation_delay_ms < 0:
            raise ValueError("mutation_delay_ms must be >= 0")

    def with_defaults(
        self,
        logger: EventLogger | None = None,
        yield_fn: YieldFn | None = None,
    ) -> "ChildReconcilerConfig":
        """Copy with ``logger`` and ``yield_fn`` filled in where this config has none.

        A ``yield_fn`` other than the default ``yield_to_host`` is kept.
        """
        if yield_fn is None or self.yield_fn is not yield_to_host:
            yield_fn = self.yield_fn
        return replace(self, logger=self.logger or logger, yield_fn=yield_fn)


class ChildrenReconciler:
    """Sync the property children of one parent block.

    Children are matched by key rather than position. Existing children
    that have no key and are not special are left alone.
    """

    def __init__(self, config: ChildReconcilerConfig, adapter: TreeAdapter):
        self.config = config
        self.adapter = adapter
        self.mutation_delay_ms = config.mutation_delay_ms
        self.logger = config.logger

    def _emit(self, event: str, **data) -> None:
        if self.logger is not None:
            self.logger.debug(event, data)

    def _is_special(self, text: str) -> bool:
        return self.config.is_special_block is not None and self.config.is_special_block(text)

    async def sync_children(
        self,
        parent_uid: str,
        existing_children: list[TreeNode],
        new_children: list[BlockPayload],
    ) -> ChildSyncStats:
        """Bring the children of ``parent_uid`` in line with ``new_children``.

        Args:
            parent_uid: UID of the parent block.
            existing_children: Current child nodes as read from the backend.
            new_children: Desired child payloads.

        Returns:
            ChildSyncStats for this pass.
        """
        stats = ChildSyncStats()

        # Last child wins when two share a key.
        existing_props: dict[str, TreeNode] = {}
        existing_special: list[TreeNode] = []

        for child in existing_children:
            key = self.config.extract_key(child.text)
            if key:
                existing_props[key] = child
            elif self._is_special(child.text):
                existing_special.append(child)

        self._emit(
            "children_reconciler_start",
            parentUid=parent_uid,
            existingPropsCount=len(existing_props),
            existingSpecialCount=len(existing_special),
            newChildrenCount=len(new_children),
        )

        operation_count = 0

        for new_child in new_children:
            key = self.config.extract_key(new_child.text)

            if key:
                existing = existing_props.get(key)

                if existing is not None:
                    if existing.text == new_child.text:
                        stats.skipped += 1
                        self._emit("children_reconciler_skip", key=key, reason="unchanged")
                    else:
                        await self.adapter.update_block(existing.uid, new_child.text)
                        await delay(self.mutation_delay_ms)
                        stats.updated += 1
                        self._emit("children_reconciler_update", key=key, uid=existing.uid)
                    # Consumed; a repeated desired key will now create a new block.
                    del existing_props[key]
                else:
                    await self.adapter.create_block(parent_uid, new_child, "last")
                    await delay(self.mutation_delay_ms)
                    stats.created += 1
                    self._emit("children_reconciler_create", key=key)

            elif self._is_special(new_child.text):
                for special in existing_special:
                    await self.adapter.delete_block(special.uid)
                    await delay(self.mutation_delay_ms)
                    stats.deleted += 1
                    self._emit("children_reconciler_delete_special", uid=special.uid)
                existing_special.clear()

                await self.adapter.create_block(parent_uid, new_child, "last")
                await delay(self.mutation_delay_ms)
                stats.created += 1
                self._emit("children_reconciler_create_special", text=new_child.text[:30])

            operation_count += 1
            await maybe_yield(operation_count, DEFAULT_YIELD_BATCH_SIZE, self.config.yield_fn)

        for key, orphan in existing_props.items():
            await delay(self.mutation_delay_ms)
            await self.adapter.delete_block(orphan.uid)
            stats.deleted += 1
            self._emit("children_reconciler_delete_orphan", key=key, uid=orphan.uid)

            operation_count += 1
            await maybe_yield(operation_count, DEFAULT_YIELD_BATCH_SIZE, self.config.yield_fn)

        self._emit("children_reconciler_complete", **stats.to_dict())
        logger.debug(
            f"Children of {parent_uid}: skipped={stats.skipped} updated={stats.updated} "
            f"created={stats.created} deleted={stats.deleted}"
        )
        return stats
