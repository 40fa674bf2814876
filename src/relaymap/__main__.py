"""relaymap entrypoint. Inspects and queries a persisted message map snapshot."""

from __future__ import annotations

import argparse
import logging
import os
import sys
from pathlib import Path
from typing import Any

from loguru import logger

from relaymap import __version__
from relaymap.config import Config, cfg, load_config_with_env
from relaymap.core.constants import DIRECTIONS
from relaymap.core.errors import RelayMapConfigurationError
from relaymap.message_map import MessageMap
from relaymap.snapshot import SnapshotStore


class InterceptHandler(logging.Handler):
    """Route standard logging records through loguru."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            level: str | int = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno
        msg = record.getMessage().replace("{", "{{").replace("}", "}}")
        logger.patch(
            lambda r: r.update(
                name=record.name,
                function=record.funcName,
                line=record.lineno,
            ),
        ).opt(exception=record.exc_info).log(level, msg)


def _safe_message_filter(record: Any) -> bool:
    """Escape braces/angles in log messages to prevent format/tag errors."""
    if isinstance(record.get("message"), str):
        msg = record["message"]
        msg = msg.replace("{", "{{").replace("}", "}}").replace("<", "\\<")
        record["message"] = msg
    return True


def setup_logging(verbose: bool = False) -> None:
    """Configure loguru on stderr and intercept stdlib logging.
    Level: verbose=True or LOG_LEVEL=DEBUG enables DEBUG; otherwise INFO."""
    level = "INFO"
    if verbose:
        level = "DEBUG"
    else:
        env_level = (os.environ.get("LOG_LEVEL") or "").upper()
        if env_level in ("DEBUG", "INFO", "WARNING", "ERROR"):
            level = env_level

    logger.remove()
    logger.add(
        sys.stderr,
        level=level,
        format="<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | <cyan>{name}</cyan> | {message}",
        filter=_safe_message_filter,
    )
    logging.basicConfig(handlers=[InterceptHandler()], level=0, force=True)


def reload_config(config_path: Path) -> Config:
    """Load config from path and update global cfg."""
    data = load_config_with_env(config_path)
    cfg.reload(data)
    return cfg


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Inspect a persisted relay message map")
    parser.add_argument(
        "--config",
        "-c",
        type=Path,
        default=None,
        help="Path to config file (default: settings from environment only)",
    )
    parser.add_argument(
        "--data-dir",
        type=Path,
        default=None,
        help="Directory holding persistentMessageMap.db (overrides config)",
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")

    sub = parser.add_subparsers(dest="command", required=True)
    sub.add_parser("stats", help="Show bridges and key counts")
    lookup = sub.add_parser("lookup", help="Relayed IDs for a received message ID")
    lookup.add_argument("bridge")
    lookup.add_argument("direction", choices=DIRECTIONS)
    lookup.add_argument("from_id")
    reverse = sub.add_parser("reverse", help="Received message ID for a relayed message ID")
    reverse.add_argument("bridge")
    reverse.add_argument("to_id")
    return parser


def run(args: argparse.Namespace) -> int:
    """Execute a parsed command; returns the exit status."""
    if args.config is not None:
        if not args.config.exists():
            logger.error("Config file not found: {}", args.config)
            return 1
        try:
            config = reload_config(args.config)
        except RelayMapConfigurationError as exc:
            logger.error("Invalid config {}: {}", args.config, exc)
            return 1
        logger.info("Config loaded from {}", args.config)
    else:
        config = Config()

    data_dir = args.data_dir if args.data_dir is not None else config.data_dir
    store = SnapshotStore(data_dir)
    if not store.path.is_file():
        logger.error("Message map snapshot not found: {}", store.path)
        return 1
    message_map = MessageMap(config, persistent=False)
    message_map.restore(store.load())

    if args.command == "stats":
        for bridge in message_map.bridges():
            keys = message_map.bridge_keys(bridge)
            print(f"{bridge}\t{len(keys)}")
        print(f"total\t{len(message_map)}")
    elif args.command == "lookup":
        for to_id in sorted(message_map.get_corresponding(args.direction, args.bridge, args.from_id)):
            print(to_id)
    elif args.command == "reverse":
        for from_id in message_map.get_corresponding_reverse(args.bridge, args.to_id):
            print(from_id)
    return 0


def main(argv: list[str] | None = None) -> None:
    """Main entrypoint."""
    args = build_parser().parse_args(argv)
    setup_logging(args.verbose)
    sys.exit(run(args))


if __name__ == "__main__":
    main()
