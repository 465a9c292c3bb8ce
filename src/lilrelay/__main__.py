"""CLI entry point for the relay.

Examples:
    ```bash
    python -m lilrelay
    python -m lilrelay --config config/relay.yaml --log-level DEBUG
    python -m lilrelay --log-dir logs
    ```
"""

import argparse
import asyncio
import logging
import signal
import sys
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from lilrelay.core.exceptions import ConfigurationError
from lilrelay.core.logger import Logger, StructuredFormatter
from lilrelay.core.yaml import load_yaml
from lilrelay.services.relay import Relay


DEFAULT_CONFIG = Path("config") / "relay.yaml"

# Dedicated log files written when --log-dir is given: (file name, logger name)
LOG_FILES: tuple[tuple[str, str], ...] = (
    ("server.log", ""),
    ("access.log", "lilrelay.access"),
    ("events.log", "lilrelay.events"),
)

logger = Logger("cli")


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments for the relay."""
    parser = argparse.ArgumentParser(
        prog="lilrelay",
        description="In-memory Nostr relay",
    )

    parser.add_argument(
        "--config",
        type=Path,
        default=DEFAULT_CONFIG,
        help=f"Relay config path (default: {DEFAULT_CONFIG})",
    )

    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default="INFO",
        help="Log level (default: INFO)",
    )

    parser.add_argument(
        "--log-dir",
        type=Path,
        default=None,
        help="Also write server.log, access.log and events.log to this directory",
    )

    return parser.parse_args(argv)


def setup_logging(level: str, log_dir: Path | None = None) -> None:
    """Configure structured logging on the root logger.

    A stream handler always receives every record. With *log_dir*, each
    entry of ``LOG_FILES`` adds an append-mode file handler on its logger
    (the root logger for ``server.log``), creating the directory if needed.
    """
    formatter = StructuredFormatter()
    handler = logging.StreamHandler()
    handler.setFormatter(formatter)
    logging.root.addHandler(handler)
    logging.root.setLevel(getattr(logging, level))

    if log_dir is None:
        return
    log_dir.mkdir(parents=True, exist_ok=True)
    for filename, logger_name in LOG_FILES:
        file_handler = logging.FileHandler(log_dir / filename, mode="a", encoding="utf-8")
        file_handler.setFormatter(formatter)
        logging.getLogger(logger_name).addHandler(file_handler)


def _load_yaml_dict(path: Path) -> dict[str, Any]:
    """Load a YAML file as a dict, returning ``{}`` if the file does not exist."""
    if not path.exists():
        logger.warning("config_not_found", path=str(path))
        return {}
    return load_yaml(path)


async def run_relay(relay: Relay) -> int:
    """Run *relay* until a shutdown signal or a fatal failure streak.

    Returns:
        Exit code: 0 for a clean shutdown, 1 for failure.
    """

    def handle_signal(sig: signal.Signals) -> None:
        logger.info("shutdown_signal", signal=sig.name)
        relay.request_shutdown()

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, handle_signal, sig)

    try:
        async with relay:
            await relay.run_forever()
        return 0
    except Exception as e:  # Intentionally broad: CLI error boundary
        logger.error("relay_failed", error=str(e))
        return 1


async def main(argv: list[str] | None = None) -> int:
    """Main entry point: parse args, load config, and run the relay."""
    args = parse_args(argv)
    setup_logging(args.log_level, args.log_dir)

    try:
        config_dict = _load_yaml_dict(args.config)
        relay = Relay.from_dict(config_dict) if config_dict else Relay()
    except (ConfigurationError, ValidationError) as e:
        logger.error("config_invalid", path=str(args.config), error=str(e))
        return 1

    try:
        return await run_relay(relay)
    except KeyboardInterrupt:
        logger.info("interrupted")
        return 130


def cli() -> None:
    """Synchronous entry point for console_scripts."""
    try:
        sys.exit(asyncio.run(main()))
    except KeyboardInterrupt:
        sys.exit(130)


if __name__ == "__main__":
    cli()
