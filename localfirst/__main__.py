"""CLI entry point for localfirst."""

import argparse
import asyncio
import json
import logging
import sys
from dataclasses import asdict
from datetime import datetime
from pathlib import Path

from .config import Config, load_config
from .database import Database, SQLiteEntityDao
from .datastore import VersionStore
from .errors import SyncError
from .kinds import ALL_KINDS, get_kind
from .network import HttpRemoteSource, JsonFileRemoteSource, RemoteSource
from .sync import OfflineFirstRepository, SyncResult, SyncScheduler
from .utils import first


LOG_LEVELS = {
    "warning": logging.WARNING,
    "info": logging.INFO,
    "debug": logging.DEBUG,
}

# Chatty per-request loggers of the HTTP stack.
QUIET_LOGGERS = ("httpx", "httpcore")


class JSONFormatter(logging.Formatter):
    """One JSON object per record, tagged with the node name.

    Records logged with ``extra={"kind": ...}`` also carry the entity kind.
    """

    def __init__(self, node: str | None = None):
        super().__init__()
        self.node = node

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "time": datetime.fromtimestamp(record.created).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if self.node:
            entry["node"] = self.node
        kind = getattr(record, "kind", None)
        if kind:
            entry["kind"] = kind
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(entry, default=str)


def setup_logging(
    verbose: bool = False,
    log_level: str | None = None,
    json_output: bool = False,
    node: str | None = None,
) -> None:
    """Configure root logging for the CLI.

    Args:
        verbose: Enable debug logging (ignored if log_level is set).
        log_level: Explicit log level (warning, info, debug).
        json_output: Output logs as JSON lines for machine parsing.
        node: Node name added to every line.
    """
    if log_level:
        level = LOG_LEVELS.get(log_level, logging.INFO)
    else:
        level = logging.DEBUG if verbose else logging.INFO

    handler = logging.StreamHandler()
    if json_output:
        handler.setFormatter(JSONFormatter(node))
    else:
        prefix = f"[{node}] " if node else ""
        handler.setFormatter(
            logging.Formatter(
                fmt=f"%(asctime)s {prefix}%(levelname)s %(name)s: %(message)s",
                datefmt="%H:%M:%S",
            )
        )

    logging.basicConfig(level=level, handlers=[handler])

    # Request lines only show up when debugging.
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(
            logging.DEBUG if level <= logging.DEBUG else logging.WARNING
        )


def build_remote(config: Config) -> RemoteSource:
    """Create the remote source selected by the config."""
    if config.remote.fixture_path:
        return JsonFileRemoteSource(config.remote.fixture_path)
    return HttpRemoteSource(
        config.remote.base_url,
        timeout=config.remote.timeout_seconds,
    )


def build_repositories(
    config: Config,
    database: Database,
    remote: RemoteSource,
    kinds: list[str] | None = None,
) -> list[OfflineFirstRepository]:
    """Create one repository per configured kind, sharing one VersionStore."""
    versions = VersionStore(config.preferences.path)
    return [
        OfflineFirstRepository(
            kind=kind,
            dao=SQLiteEntityDao(database, kind.entity_type),
            network=remote,
            versions=versions,
        )
        for kind in (get_kind(name) for name in (kinds or config.sync.kinds))
    ]


def _print_outcomes(outcomes: dict[str, SyncResult | SyncError]) -> None:
    for kind, outcome in outcomes.items():
        if isinstance(outcome, SyncError):
            print(f"{kind}: FAILED ({type(outcome).__name__}: {outcome})")
        elif outcome.changed:
            print(
                f"{kind}: applied {outcome.applied}, "
                f"version {outcome.previous_version} -> {outcome.version}"
            )
        else:
            print(f"{kind}: up to date at version {outcome.version}")


async def cmd_sync(args: argparse.Namespace) -> int:
    """Run one sync round."""
    config = load_config(args.config)
    database = Database(config.database.db_path)
    remote = build_remote(config)

    try:
        scheduler = SyncScheduler(build_repositories(config, database, remote, args.kind))
        outcomes = await scheduler.sync_all()
    finally:
        await remote.close()
        database.close()

    _print_outcomes(outcomes)
    return 1 if any(isinstance(o, SyncError) for o in outcomes.values()) else 0


async def cmd_watch(args: argparse.Namespace) -> int:
    """Sync periodically until interrupted."""
    config = load_config(args.config)

    if not config.sync.enabled:
        print("Sync is disabled in config", file=sys.stderr)
        return 1

    database = Database(config.database.db_path)
    remote = build_remote(config)
    scheduler = SyncScheduler(
        build_repositories(config, database, remote),
        interval_seconds=config.sync.interval_minutes * 60,
        max_backoff_seconds=config.sync.max_backoff_seconds,
    )

    print(f"Starting localfirst node: {config.node.name}")
    print(f"Syncing {', '.join(config.sync.kinds)} every {config.sync.interval_minutes} min")

    try:
        await scheduler.run()
    except (KeyboardInterrupt, asyncio.CancelledError):
        print("\nShutting down...")
    finally:
        await remote.close()
        database.close()

    return 0


async def cmd_status(args: argparse.Namespace) -> int:
    """Show change list versions and local counts."""
    config = load_config(args.config)
    database = Database(config.database.db_path)
    versions = VersionStore(config.preferences.path)

    try:
        current = versions.get_versions()
        stats = database.get_stats()
        status_data = {
            "timestamp": datetime.now().isoformat(),
            "node": {"name": config.node.name},
            "database": str(database.db_path),
            "preferences": str(versions.path),
            "kinds": {
                name: {
                    "version": current.get(name),
                    "local_count": stats["counts"][kind.entity_type.TABLE],
                }
                for name, kind in ALL_KINDS.items()
            },
        }
        if "db_size_mb" in stats:
            status_data["db_size_mb"] = stats["db_size_mb"]
    except SyncError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    finally:
        database.close()

    if args.json:
        print(json.dumps(status_data, indent=2))
    else:
        print(f"Node: {config.node.name}")
        print(f"Database: {status_data['database']}")
        if "db_size_mb" in status_data:
            print(f"Database size: {status_data['db_size_mb']} MB")
        print(f"Preferences: {status_data['preferences']}")
        for name, info in status_data["kinds"].items():
            print(f"  {name}: version={info['version']} local={info['local_count']}")

    return 0


async def cmd_show(args: argparse.Namespace) -> int:
    """Print the local collection of one kind."""
    config = load_config(args.config)
    database = Database(config.database.db_path)

    try:
        kind = get_kind(args.kind)
    except KeyError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    repository = OfflineFirstRepository(
        kind=kind,
        dao=SQLiteEntityDao(database, kind.entity_type),
        network=build_remote(config),
        versions=VersionStore(config.preferences.path),
    )

    try:
        items = await first(repository.stream())
    except SyncError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    finally:
        database.close()

    if args.limit is not None:
        items = items[: args.limit]

    for item in items:
        print(json.dumps(asdict(item)))

    return 0


def main() -> int:
    """Main entry point."""
    parser = argparse.ArgumentParser(
        prog="localfirst",
        description="Local-first collections kept in sync with a remote source",
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
        "--json-logs",
        action="store_true",
        help="Output logs as JSON for machine parsing",
    )

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # Sync command
    sync_parser = subparsers.add_parser("sync", help="Run one sync round")
    sync_parser.add_argument(
        "-k", "--kind",
        action="append",
        choices=sorted(ALL_KINDS),
        default=None,
        help="Kind to sync (repeatable, default: all configured kinds)",
    )
    sync_parser.set_defaults(func=cmd_sync)

    # Watch command
    watch_parser = subparsers.add_parser("watch", help="Sync periodically")
    watch_parser.set_defaults(func=cmd_watch)

    # Status command
    status_parser = subparsers.add_parser("status", help="Show versions and local counts")
    status_parser.add_argument(
        "--json",
        action="store_true",
        help="Output status as JSON",
    )
    status_parser.set_defaults(func=cmd_status)

    # Show command
    show_parser = subparsers.add_parser("show", help="Print a local collection")
    show_parser.add_argument(
        "kind",
        help="Kind to print (author, topic)",
    )
    show_parser.add_argument(
        "-n", "--limit",
        type=int,
        default=None,
        help="Print at most this many items",
    )
    show_parser.set_defaults(func=cmd_show)

    args = parser.parse_args()

    config = load_config(args.config)
    setup_logging(args.verbose, args.log_level, args.json_logs, node=config.node.name)

    if not args.command:
        parser.print_help()
        return 1

    try:
        return asyncio.run(args.func(args))
    except KeyboardInterrupt:
        return 130


if __name__ == "__main__":
    sys.exit(main())
