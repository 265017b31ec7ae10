"""CLI entry point for blocksync."""

import argparse
import asyncio
import json
import logging
import sys
import traceback
from datetime import datetime
from pathlib import Path

import yaml

from .adapters import HTTPTreeAdapter, InMemoryTreeAdapter
from .config import Config, load_config
from .events import LoggingEventSink
from .feeds import TaggedItemStrategy, load_items
from .models import SyncStats
from .pacing import get_yield_fn
from .reconcile import BlockReconciler, ReconcilerOptions

logger = logging.getLogger("blocksync")


class JSONFormatter(logging.Formatter):
    """JSON formatter for structured logging."""

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON."""
        log_data = {
            "timestamp": datetime.fromtimestamp(record.created).isoformat(),
            "level": record.levelname,
            "component": record.name,
            "message": record.getMessage(),
        }

        # Reconciler events carry their own name and payload
        if event := getattr(record, "event", None):
            log_data["event"] = event
            log_data["data"] = getattr(record, "data", {})

        # Add exception info if present
        if record.exc_info:
            log_data["exception"] = "".join(traceback.format_exception(*record.exc_info))

        # Safe JSON serialization
        try:
            return json.dumps(log_data)
        except (TypeError, ValueError):
            # Fallback for non-serializable objects
            log_data["message"] = str(log_data["message"])
            if "data" in log_data:
                log_data["data"] = str(log_data["data"])
            if "exception" in log_data:
                log_data["exception"] = str(log_data["exception"])
            return json.dumps(log_data)


def setup_logging(verbose: bool = False, log_level: str | None = None, json_output: bool = False) -> None:
    """Configure logging.

    Args:
        verbose: Enable debug logging (ignored if log_level is set).
        log_level: Explicit log level (warning, info, debug).
        json_output: Output logs as JSON lines for machine parsing.
    """
    if log_level:
        level_map = {
            "warning": logging.WARNING,
            "info": logging.INFO,
            "debug": logging.DEBUG,
        }
        level = level_map.get(log_level, logging.INFO)
    else:
        level = logging.DEBUG if verbose else logging.INFO

    handler = logging.StreamHandler()
    if json_output:
        handler.setFormatter(JSONFormatter())
    else:
        formatter = logging.Formatter(
            fmt="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
        handler.setFormatter(formatter)

    logging.basicConfig(
        level=level,
        handlers=[handler],
    )


def build_adapter(config: Config) -> HTTPTreeAdapter:
    return HTTPTreeAdapter(
        base_url=config.backend.base_url,
        token=config.backend.token,
        timeout=config.backend.timeout_seconds,
        max_retries=config.backend.max_retries,
    )


def _log_progress(stats: SyncStats) -> None:
    done = stats.skipped + stats.created + stats.updated
    logger.debug(f"Progress: {done}/{stats.total}")


async def cmd_sync(args: argparse.Namespace) -> int:
    """Reconcile a feed file into the blocks under a parent."""
    try:
        config = load_config(args.config)
        items = load_items(args.items)
        delay_ms = 0 if args.dry_run else config.reconciler.mutation_delay_ms
        options = ReconcilerOptions(
            on_progress=_log_progress,
            mutation_delay_ms=delay_ms,
            yield_batch_size=config.reconciler.yield_batch_size,
            logger=LoggingEventSink(),
            yield_fn=get_yield_fn(config.reconciler.yield_mode),
        )
    except (OSError, ValueError, KeyError, yaml.YAMLError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    strategy = TaggedItemStrategy(
        id_tag=config.feed.id_tag,
        preserve_marker=config.feed.preserve_marker,
        special_marker=config.feed.special_marker,
    )

    dry_run_target: InMemoryTreeAdapter | None = None

    try:
        async with build_adapter(config) as backend:
            target = backend
            if args.dry_run:
                dry_run_target = InMemoryTreeAdapter(uid_prefix="new")
                dry_run_target.seed(args.parent, await backend.get_children(args.parent))
                target = dry_run_target

            reconciler = BlockReconciler(
                strategy.reconciler_config(options), target
            ).with_children_reconciler(strategy.child_config(mutation_delay_ms=delay_ms))

            stats = await reconciler.reconcile(args.parent, items)
    except Exception as e:
        logger.debug("Sync failed", exc_info=True)
        print(f"Error: {e}", file=sys.stderr)
        return 1

    if args.json_output:
        result = {"stats": stats.to_dict(), "dry_run": args.dry_run}
        if dry_run_target is not None:
            result["operations"] = [
                {"kind": op.kind, "uid": op.uid, "parent_uid": op.parent_uid, "text": op.text}
                for op in dry_run_target.operations
            ]
        print(json.dumps(result, indent=2))
        return 0

    prefix = "Dry run" if args.dry_run else "Synced"
    print(
        f"{prefix}: {stats.total} items, {stats.created} created, {stats.updated} updated, "
        f"{stats.skipped} unchanged, {stats.deleted} deleted"
    )
    if dry_run_target is not None:
        for op in dry_run_target.operations:
            text = f"  {op.text}" if op.text is not None else ""
            print(f"  {op.kind:<6} {op.uid}{text}")

    return 0


async def cmd_status(args: argparse.Namespace) -> int:
    """Check backend connectivity."""
    try:
        config = load_config(args.config)
    except (OSError, ValueError, yaml.YAMLError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    async with build_adapter(config) as backend:
        healthy = await backend.health_check(args.parent)

    status = {
        "backend": config.backend.base_url,
        "healthy": healthy,
        "mutation_delay_ms": config.reconciler.mutation_delay_ms,
        "yield_batch_size": config.reconciler.yield_batch_size,
        "yield_mode": config.reconciler.yield_mode,
    }

    if args.json_output:
        print(json.dumps(status, indent=2))
    else:
        print("blocksync status")
        print("=" * 40)
        state = "OK" if healthy else "UNREACHABLE"
        print(f"Backend: {status['backend']} ... {state}")
        print(
            f"Pacing: {status['mutation_delay_ms']}ms delay, "
            f"yield every {status['yield_batch_size']} ops ({status['yield_mode']})"
        )

    return 0 if healthy else 1


def main() -> int:
    """Main entry point."""
    parser = argparse.ArgumentParser(
        prog="blocksync",
        description="Keep a block tree in step with an external item feed",
    )
    parser.add_argument(
        "-c", "--config",
        type=Path,
        default=None,
        help="Path to config file (default: built-in defaults)",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose logging",
    )
    parser.add_argument(
        "--log-level",
        type=str,
        choices=["warning", "info", "debug"],
        default=None,
        help="Set log level explicitly (overrides -v/--verbose)",
    )
    parser.add_argument(
        "--json",
        action="store_true",
        help="Output logs as JSON for machine parsing",
    )

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # Sync command
    sync_parser = subparsers.add_parser("sync", help="Reconcile a feed file into a block tree")
    sync_parser.add_argument(
        "items",
        type=Path,
        help="JSON or YAML file with feed items",
    )
    sync_parser.add_argument(
        "-p", "--parent",
        required=True,
        help="UID of the parent block or page",
    )
    sync_parser.add_argument(
        "-n", "--dry-run",
        action="store_true",
        help="Plan against a copy of the fetched tree without writing",
    )
    sync_parser.add_argument(
        "--json-output",
        action="store_true",
        help="Print the result as JSON",
    )
    sync_parser.set_defaults(func=cmd_sync)

    # Status command
    status_parser = subparsers.add_parser("status", help="Check backend connectivity")
    status_parser.add_argument(
        "-p", "--parent",
        default=None,
        help="Read this block's children instead of /health",
    )
    status_parser.add_argument(
        "--json-output",
        action="store_true",
        help="Output status as JSON",
    )
    status_parser.set_defaults(func=cmd_status)

    args = parser.parse_args()

    setup_logging(args.verbose, args.log_level, args.json)

    if not args.command:
        parser.print_help()
        return 1

    return asyncio.run(args.func(args))


if __name__ == "__main__":
    sys.exit(main())
