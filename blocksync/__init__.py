"""blocksync - keep a block tree in step with an external item feed.

Only creates, updates or deletes blocks when the source actually changed.

Example:
    adapter = create_callable_adapter(
        get_basic_tree_by_parent_uid=api.children,
        create_block=api.create_block,
        update_block=api.update_block,
        delete_block=api.delete_block,
    )
    reconciler = BlockReconciler(
        ReconcilerConfig(
            extract_id=lambda task: str(task.id),
            build_block=lambda task: BlockPayload(text=task.content),
            extract_id_from_block=lambda node: parse_id(node.text),
            options=ReconcilerOptions(preserve_when=is_completed),
        ),
        adapter,
    )
    stats = await reconciler.reconcile(page_uid, tasks)
"""

from .adapters import (
    CallableTreeAdapter,
    HTTPTreeAdapter,
    InMemoryTreeAdapter,
    TreeAdapter,
    create_callable_adapter,
)
from .events import EventLogger, LoggingEventSink, RecordingEventSink
from .models import BlockPayload, ChildSyncStats, SyncStats, TreeNode, is_unchanged
from .pacing import (
    DEFAULT_MUTATION_DELAY_MS,
    DEFAULT_YIELD_BATCH_SIZE,
    delay,
    immediate_yield,
    maybe_yield,
    yield_to_host,
)
from .reconcile import (
    BlockReconciler,
    ChildReconcilerConfig,
    ChildrenReconciler,
    ReconcilerConfig,
    ReconcilerOptions,
)

__version__ = "0.1.0"

__all__ = [
    "BlockPayload",
    "TreeNode",
    "SyncStats",
    "ChildSyncStats",
    "is_unchanged",
    "TreeAdapter",
    "CallableTreeAdapter",
    "HTTPTreeAdapter",
    "InMemoryTreeAdapter",
    "create_callable_adapter",
    "EventLogger",
    "LoggingEventSink",
    "RecordingEventSink",
    "BlockReconciler",
    "ReconcilerConfig",
    "ReconcilerOptions",
    "ChildrenReconciler",
    "ChildReconcilerConfig",
    "DEFAULT_MUTATION_DELAY_MS",
    "DEFAULT_YIELD_BATCH_SIZE",
    "delay",
    "yield_to_host",
    "immediate_yield",
    "maybe_yield",
]
