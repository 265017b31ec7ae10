"""Reconciliation of a list of source items against the blocks under a parent."""

import inspect
import logging
from dataclasses import dataclass, field
from typing import Callable, Generic, Sequence, TypeVar

from ..adapters.base import TreeAdapter
from ..events import EventLogger
from ..models import BlockPayload, SyncStats, TreeNode, is_unchanged
from ..pacing import (
    DEFAULT_MUTATION_DELAY_MS,
    DEFAULT_YIELD_BATCH_SIZE,
    YieldFn,
    delay,
    maybe_yield,
    yield_to_host,
)
from .children import ChildReconcilerConfig, ChildrenReconciler

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class ReconcilerOptions:
    """Optional behaviour for ``BlockReconciler``.

    Attributes:
        preserve_when: Keeps an orphaned block when it returns True, e.g.
            completed tasks that dropped out of an active list.
        on_progress: Called after every item with the live ``SyncStats``
            object of the running pass. The same object keeps changing after
            the callback returns; copy it if a snapshot is needed.
        mutation_delay_ms: Pause after each update and delete.
        yield_batch_size: Item-level operations between cooperative yields.
        logger: Optional sink for lifecycle events.
        yield_fn: Cooperative yield implementation.
    """

    preserve_when: Callable[[TreeNode], bool] | None = None
    on_progress: Callable[[SyncStats], None] | None = None
    mutation_delay_ms: float = DEFAULT_MUTATION_DELAY_MS
    yield_batch_size: int = DEFAULT_YIELD_BATCH_SIZE
    logger: EventLogger | None = None
    yield_fn: YieldFn = yield_to_host

    def __post_init__(self) -> None:
        if self.yield_batch_size < 1:
            raise ValueError("yield_batch_size must be >= 1")
        if self.mutation_delay_ms < 0:
            raise ValueError("mutation_delay_ms must be >= 0")


@dataclass
class ReconcilerConfig(Generic[T]):
    """Strategy tying source items to blocks.

    Attributes:
        extract_id: Stable identifier of a source item.
        build_block: Desired payload for a source item.
        extract_id_from_block: Identifier carried by an existing block, or
            None for blocks this reconciler does not manage.
        options: Optional behaviour.
    """

    extract_id: Callable[[T], str]
    build_block: Callable[[T], BlockPayload]
    extract_id_from_block: Callable[[TreeNode], str | None]
    options: ReconcilerOptions = field(default_factory=ReconcilerOptions)


class BlockReconciler(Generic[T]):
    """Create, update or delete blocks only where the source list requires it.

    Example:
        reconciler = BlockReconciler(
            ReconcilerConfig(
                extract_id=lambda task: str(task.id),
                build_block=lambda task: BlockPayload(text=task.content),
                extract_id_from_block=lambda node: parse_id(node.text),
            ),
            adapter,
        )
        stats = await reconciler.reconcile(page_uid, tasks)
    """

    def __init__(self, config: ReconcilerConfig[T], adapter: TreeAdapter):
        self.config = config
        self.adapter = adapter
        self.options = config.options
        self.mutation_delay_ms = self.options.mutation_delay_ms
        self.yield_batch_size = self.options.yield_batch_size
        self.logger = self.options.logger
        self.children_reconciler: ChildrenReconciler | None = None

    def with_children_reconciler(self, config: ChildReconcilerConfig) -> "BlockReconciler[T]":
        """Attach a reconciler for the property children of updated blocks.

        The child config inherits this reconciler's logger when it has none,
        and its yield function when it still uses ``yield_to_host``.
        """
        self.children_reconciler = ChildrenReconciler(
            config.with_defaults(logger=self.logger, yield_fn=self.options.yield_fn),
            self.adapter,
        )
        return self

    def _emit(self, event: str, **data) -> None:
        if self.logger is not None:
            self.logger.debug(event, data)

    async def _fetch_children(self, parent_uid: str) -> list[TreeNode]:
        children = self.adapter.get_children(parent_uid)
        if inspect.isawaitable(children):
            children = await children
        return list(children)

    async def reconcile(self, parent_uid: str, items: Sequence[T]) -> SyncStats:
        """Reconcile ``items`` with the blocks under ``parent_uid``.

        The children are read once; that read stays authoritative for the
        whole pass. The first backend failure aborts the pass and propagates
        unchanged, leaving earlier mutations in place.

        Args:
            parent_uid: UID of the parent block or page.
            items: Source items, in the order new blocks should be created.

        Returns:
            SyncStats for the pass.
        """
        stats = SyncStats(total=len(items))

        existing_nodes = await self._fetch_children(parent_uid)
        existing_map = self._build_existing_map(existing_nodes)

        self._emit(
            "reconciler_start",
            parentUid=parent_uid,
            itemCount=len(items),
            existingBlockCount=len(existing_nodes),
            mappedBlockCount=len(existing_map),
        )

        seen_ids: set[str] = set()
        operation_count = 0

        for item in items:
            item_id = self.config.extract_id(item)
            seen_ids.add(item_id)

            new_block = self.config.build_block(item)
            existing_node = existing_map.get(item_id)

            if existing_node is not None:
                if is_unchanged(existing_node, new_block):
                    stats.skipped += 1
                    self._emit("reconciler_skip", id=item_id, reason="unchanged")
                else:
                    await self._update_existing_block(existing_node, new_block)
                    stats.updated += 1
                    self._emit("reconciler_update", id=item_id, uid=existing_node.uid)
            else:
                await self._create_new_block(parent_uid, new_block)
                stats.created += 1
                self._emit("reconciler_create", id=item_id)

            operation_count += 1
            await maybe_yield(operation_count, self.yield_batch_size, self.options.yield_fn)

            # The callback sees this very object, not a copy.
            if self.options.on_progress is not None:
                self.options.on_progress(stats)

        stats.deleted = await self._remove_obsolete(existing_map, seen_ids)

        self._emit("reconciler_complete", **stats.to_dict())
        logger.info(
            f"Reconciled {parent_uid}: total={stats.total} skipped={stats.skipped} "
            f"created={stats.created} updated={stats.updated} deleted={stats.deleted}"
        )
        return stats

    def _build_existing_map(self, nodes: list[TreeNode]) -> dict[str, TreeNode]:
        """Index existing blocks by extracted identifier.

        Blocks without an identifier are left out. On duplicates the last
        block in fetch order wins.
        """
        existing_map: dict[str, TreeNode] = {}

        for node in nodes:
            node_id = self.config.extract_id_from_block(node)
            if node_id:
                existing_map[node_id] = node
                self._emit("reconciler_map_entry", id=node_id, uid=node.uid)

        return existing_map

    async def _update_existing_block(self, existing: TreeNode, new_block: BlockPayload) -> None:
        if existing.text != new_block.text:
            await self.adapter.update_block(existing.uid, new_block.text)
            await delay(self.mutation_delay_ms)

        if self.children_reconciler is not None and new_block.children is not None:
            await self.children_reconciler.sync_children(
                existing.uid,
                existing.children or [],
                new_block.children,
            )

    async def _create_new_block(self, parent_uid: str, block: BlockPayload) -> None:
        # The adapter creates the payload's descendants in the same call.
        await self.adapter.create_block(parent_uid, block, "last")

    async def _remove_obsolete(
        self,
        existing_map: dict[str, TreeNode],
        seen_ids: set[str],
    ) -> int:
        """Delete mapped blocks whose identifier is no longer in the source.

        Returns:
            Number of blocks deleted.
        """
        deleted_count = 0
        operation_count = 0

        for node_id, node in existing_map.items():
            if node_id in seen_ids:
                continue

            if self.options.preserve_when is not None and self.options.preserve_when(node):
                self._emit("reconciler_preserve", id=node_id, uid=node.uid)
                continue

            await self.adapter.delete_block(node.uid)
            await delay(self.mutation_delay_ms)
            deleted_count += 1
            self._emit("reconciler_delete", id=node_id, uid=node.uid)

            operation_count += 1
            await maybe_yield(operation_count, self.yield_batch_size, self.options.yield_fn)

        return deleted_count
