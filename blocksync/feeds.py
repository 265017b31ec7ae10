"""Ready-made strategy for syncing a feed of items into tagged blocks.

A feed item becomes a block like::

    {{[[DONE]]}} {{[[todoist]]:123}} Water the plants
        priority:: high
        due:: 2026-01-15
        [[comments]]
            Use the rain barrel

The ``{{[[tag]]:id}}`` marker carries the item identity, property children
use the ``key:: value`` convention, and the comments container is a special
block that is replaced whole on every change.
"""

import json
import re
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any

import yaml

from .events import EventLogger
from .models import BlockPayload, TreeNode
from .pacing import DEFAULT_MUTATION_DELAY_MS
from .reconcile import ChildReconcilerConfig, ReconcilerConfig, ReconcilerOptions

PROPERTY_PATTERN = re.compile(r"^\s*([\w-]+)::")


def extract_property_key(text: str) -> str | None:
    """Key of a ``key:: value`` block, or None for other text."""
    match = PROPERTY_PATTERN.match(text)
    return match.group(1) if match else None


@dataclass
class FeedItem:
    """One source item from an external feed."""

    id: str
    text: str
    properties: dict[str, Any] = field(default_factory=dict)
    comments: list[str] = field(default_factory=list)
    completed: bool = False

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "FeedItem":
        return cls(
            id=str(data["id"]),
            text=data.get("text", ""),
            properties=dict(data.get("properties") or {}),
            comments=[str(c) for c in data.get("comments") or []],
            completed=bool(data.get("completed", False)),
        )


class TaggedItemStrategy:
    """Builds reconciler configs for ``FeedItem`` blocks tagged with an id marker."""

    def __init__(
        self,
        id_tag: str = "blocksync",
        preserve_marker: str = "{{[[DONE]]}}",
        special_marker: str = "[[comments]]",
    ):
        self.id_tag = id_tag
        self.preserve_marker = preserve_marker
        self.special_marker = special_marker
        self._id_pattern = re.compile(r"\{\{\[\[" + re.escape(id_tag) + r"\]\]:([^}]+)\}\}")

    def id_marker(self, item_id: str) -> str:
        return f"{{{{[[{self.id_tag}]]:{item_id}}}}}"

    def extract_id(self, item: FeedItem) -> str:
        return item.id

    def build_block(self, item: FeedItem) -> BlockPayload:
        text = f"{self.id_marker(item.id)} {item.text}"
        if item.completed:
            text = f"{self.preserve_marker} {text}"

        children = [
            BlockPayload(text=f"{key}:: {value}") for key, value in item.properties.items()
        ]
        if item.comments:
            children.append(
                BlockPayload(
                    text=self.special_marker,
                    children=[BlockPayload(text=comment) for comment in item.comments],
                )
            )

        return BlockPayload(text=text, children=children or None)

    def extract_id_from_block(self, node: TreeNode) -> str | None:
        match = self._id_pattern.search(node.text)
        return match.group(1) if match else None

    def preserve_when(self, node: TreeNode) -> bool:
        return self.preserve_marker in node.text

    def is_special_block(self, text: str) -> bool:
        return text.strip() == self.special_marker

    def reconciler_config(
        self,
        options: ReconcilerOptions | None = None,
    ) -> ReconcilerConfig[FeedItem]:
        """Reconciler config for this strategy.

        ``preserve_when`` is filled in unless ``options`` already sets one.
        """
        options = options or ReconcilerOptions()
        if options.preserve_when is None:
            options = replace(options, preserve_when=self.preserve_when)
        return ReconcilerConfig(
            extract_id=self.extract_id,
            build_block=self.build_block,
            extract_id_from_block=self.extract_id_from_block,
            options=options,
        )

    def child_config(
        self,
        mutation_delay_ms: float = DEFAULT_MUTATION_DELAY_MS,
        logger: EventLogger | None = None,
    ) -> ChildReconcilerConfig:
        return ChildReconcilerConfig(
            extract_key=extract_property_key,
            is_special_block=self.is_special_block,
            mutation_delay_ms=mutation_delay_ms,
            logger=logger,
        )


def load_items(path: str | Path) -> list[FeedItem]:
    """Load feed items from a JSON or YAML file.

    The file holds either a list of items or a mapping with an ``items`` list.
    """
    path = Path(path)
    with open(path) as f:
        if path.suffix.lower() == ".json":
            data = json.load(f)
        else:
            data = yaml.safe_load(f)

    if isinstance(data, dict):
        data = data.get("items", [])
    if not isinstance(data, list):
        raise ValueError(f"Expected a list of items in {path}")

    return [FeedItem.from_dict(entry) for entry in data]
