"""Configuration loading for blocksync."""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from .pacing import DEFAULT_MUTATION_DELAY_MS, DEFAULT_YIELD_BATCH_SIZE


@dataclass
class BackendConfig:
    """Connection settings for the HTTP block store."""

    base_url: str = "http://localhost:8080/api"
    token: str | None = None
    timeout_seconds: float = 30.0
    max_retries: int = 3


@dataclass
class ReconcilerSettings:
    """Pacing for reconciliation passes."""

    mutation_delay_ms: float = DEFAULT_MUTATION_DELAY_MS
    yield_batch_size: int = DEFAULT_YIELD_BATCH_SIZE
    yield_mode: str = "defer"  # "defer" or "immediate"


@dataclass
class FeedConfig:
    """How feed items are rendered into blocks."""

    id_tag: str = "blocksync"
    preserve_marker: str = "{{[[DONE]]}}"
    special_marker: str = "[[comments]]"


@dataclass
class Config:
    backend: BackendConfig = field(default_factory=BackendConfig)
    reconciler: ReconcilerSettings = field(default_factory=ReconcilerSettings)
    feed: FeedConfig = field(default_factory=FeedConfig)


def _get_env(key: str, default: Any = None) -> Any:
    """Get environment variable with BLOCKSYNC_ prefix."""
    return os.environ.get(f"BLOCKSYNC_{key}", default)


def _apply_env_overrides(config: Config) -> Config:
    """Apply environment variable overrides to config."""
    # Backend overrides
    if base_url := _get_env("BACKEND_URL"):
        config.backend.base_url = base_url
    if token := _get_env("BACKEND_TOKEN"):
        config.backend.token = token
    if timeout := _get_env("BACKEND_TIMEOUT"):
        config.backend.timeout_seconds = float(timeout)
    if retries := _get_env("BACKEND_MAX_RETRIES"):
        config.backend.max_retries = int(retries)

    # Reconciler overrides
    if delay_ms := _get_env("MUTATION_DELAY_MS"):
        config.reconciler.mutation_delay_ms = float(delay_ms)
    if batch_size := _get_env("YIELD_BATCH_SIZE"):
        config.reconciler.yield_batch_size = int(batch_size)
    if yield_mode := _get_env("YIELD_MODE"):
        config.reconciler.yield_mode = yield_mode.lower()

    # Feed overrides
    if id_tag := _get_env("FEED_ID_TAG"):
        config.feed.id_tag = id_tag

    return config


def load_config(config_path: str | Path | None = None) -> Config:
    """Load configuration from YAML file with environment variable overrides.

    Args:
        config_path: Path to YAML config file. If None or missing, defaults
            are used.

    Returns:
        Loaded Config object.
    """
    config = Config()

    if config_path:
        path = Path(config_path)
        if path.exists():
            with open(path) as f:
                data = yaml.safe_load(f) or {}

            # Parse backend config
            if "backend" in data:
                backend_data = data["backend"]
                config.backend = BackendConfig(
                    base_url=backend_data.get("base_url", config.backend.base_url),
                    token=backend_data.get("token", config.backend.token),
                    timeout_seconds=backend_data.get(
                        "timeout_seconds", config.backend.timeout_seconds
                    ),
                    max_retries=backend_data.get("max_retries", config.backend.max_retries),
                )

            # Parse reconciler config
            if "reconciler" in data:
                rec_data = data["reconciler"]
                config.reconciler = ReconcilerSettings(
                    mutation_delay_ms=rec_data.get(
                        "mutation_delay_ms", config.reconciler.mutation_delay_ms
                    ),
                    yield_batch_size=rec_data.get(
                        "yield_batch_size", config.reconciler.yield_batch_size
                    ),
                    yield_mode=rec_data.get("yield_mode", config.reconciler.yield_mode),
                )

            # Parse feed config
            if "feed" in data:
                feed_data = data["feed"]
                config.feed = FeedConfig(
                    id_tag=feed_data.get("id_tag", config.feed.id_tag),
                    preserve_marker=feed_data.get(
                        "preserve_marker", config.feed.preserve_marker
                    ),
                    special_marker=feed_data.get(
                        "special_marker", config.feed.special_marker
                    ),
                )

    return _apply_env_overrides(config)
