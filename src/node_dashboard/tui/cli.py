"""CLI entry point for the node dashboard.

This module handles command-line argument parsing, logging setup,
signal handling, and the main entry point.
"""

from __future__ import annotations

import argparse
import json
import logging
import logging.handlers
import signal
import sys
from datetime import UTC, datetime
from pathlib import Path

from rich.console import Console

from ..utils import Config, load_config
from .action_log import ActionLogPersister, replay_log
from .app import DashboardApp
from .exceptions import ConfigError

logger = logging.getLogger(__name__)

DEFAULT_LOG_FILE = Path.home() / ".cache" / "node-dashboard" / "dashboard.log"


class JSONFormatter(logging.Formatter):
    """Custom JSON formatter for structured logging."""

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON.

        Args:
            record: Log record to format

        Returns:
            JSON-formatted log line
        """
        log_data = {
            "timestamp": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "event": record.getMessage(),
            "context": {
                "module": record.module,
                "function": record.funcName,
                "line": record.lineno,
            },
        }

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        if hasattr(record, "extra_context"):
            log_data["context"].update(record.extra_context)

        return json.dumps(log_data, default=str)


def _setup_logging(log_file: Path, debug: bool) -> None:
    """Setup structured JSON logging to file.

    Args:
        log_file: Path to log file
        debug: Enable debug level logging
    """
    log_file.parent.mkdir(parents=True, exist_ok=True)

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG if debug else logging.INFO)

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    # 10MB per file, 3 backups
    file_handler = logging.handlers.RotatingFileHandler(
        log_file,
        maxBytes=10 * 1024 * 1024,
        backupCount=3,
        encoding="utf-8",
    )
    file_handler.setFormatter(JSONFormatter())
    file_handler.setLevel(logging.DEBUG if debug else logging.INFO)

    root_logger.addHandler(file_handler)

    logger.info(
        "Logging initialized",
        extra={"extra_context": {"log_file": str(log_file), "debug": debug}},
    )


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command line arguments.

    Returns:
        Parsed arguments
    """
    parser = argparse.ArgumentParser(
        prog="node-dashboard",
        description="Terminal dashboard for a blockchain node",
    )

    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to a JSON config file (default: built-in defaults)",
    )
    parser.add_argument("--node", type=str, help="Node RPC base URL")
    parser.add_argument("--websocket", type=str, help="Node WebSocket URL")
    parser.add_argument("--baker-address", type=str, help="Baker address to follow")
    parser.add_argument(
        "--record-actions",
        action="store_true",
        default=None,
        help="Record dispatched actions and write them to the action log on exit",
    )
    parser.add_argument(
        "--action-log",
        type=Path,
        metavar="PATH",
        help="Where the recorded action log is written",
    )
    parser.add_argument(
        "--replay",
        type=Path,
        metavar="PATH",
        help="Replay an action log offline and print the resulting state",
    )
    parser.add_argument(
        "--log-file",
        type=Path,
        default=DEFAULT_LOG_FILE,
        help=f"Log file (default: {DEFAULT_LOG_FILE})",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging",
    )

    return parser.parse_args(argv)


def _build_config(args: argparse.Namespace) -> Config:
    """Merge defaults, the optional config file, and command line flags.

    Raises:
        ConfigError: The file is missing or a value is invalid
    """
    try:
        if args.config is not None:
            config_path = args.config.expanduser().resolve()
            if not config_path.exists():
                raise ConfigError(f"Config file not found: {config_path}")
            config = load_config(config_path)
        else:
            config = Config()
        return config.with_overrides(
            node_url=args.node,
            websocket_url=args.websocket,
            baker_address=args.baker_address,
            record_actions=args.record_actions,
            action_log_path=str(args.action_log) if args.action_log else None,
        )
    except (OSError, ValueError, TypeError) as err:
        raise ConfigError(str(err)) from err


def _run_replay(path: Path, console: Console) -> int:
    """Replay an action log and print a short summary of the final state."""
    try:
        log = ActionLogPersister(path.expanduser()).load()
    except (OSError, ValueError) as err:
        console.print(f"[red]Error loading action log: {err}[/red]")
        logger.error(
            "Action log load failed",
            extra={"extra_context": {"path": str(path), "error": str(err)}},
        )
        return 1

    store = replay_log(log)
    state = store.state
    header = state.synchronization.current_head_header
    console.print(f"[green]Replayed {len(log.actions)} action(s)[/green]")
    console.print(f"Head level: {header.level}  hash: {header.hash or '-'}")
    console.print(f"Cycle: {state.synchronization.current_cycle}")
    console.print(f"Active page: {state.ui.active_page.value}")
    console.print(f"RPC calls issued: {len(store.service.rpc.calls)}")
    logger.info(
        "Replay finished",
        extra={"extra_context": {"path": str(path), "actions": len(log.actions)}},
    )
    return 0


# Global app instance for signal handlers
_app_instance: DashboardApp | None = None


def _signal_handler(signum: int, frame) -> None:
    """Handle SIGTERM by asking the loop to dispatch Shutdown.

    Args:
        signum: Signal number
        frame: Current stack frame
    """
    if _app_instance is None:
        sys.exit(1)

    logger.info("Received SIGTERM, requesting shutdown")
    _app_instance.request_shutdown()


def main(argv: list[str] | None = None) -> int:
    """Main entry point for the dashboard.

    Returns:
        Exit code (0=success, 1=error, 130=SIGINT)
    """
    global _app_instance

    args = _parse_args(argv)
    _setup_logging(args.log_file.expanduser(), args.debug)
    console = Console()

    if args.replay is not None:
        return _run_replay(args.replay, console)

    logger.info(
        "Dashboard starting",
        extra={
            "extra_context": {
                "config_path": str(args.config) if args.config else None,
                "debug": args.debug,
            }
        },
    )

    try:
        config = _build_config(args)
    except ConfigError as err:
        console.print(f"[red]Error loading config: {err}[/red]")
        logger.error(
            "Failed to load config",
            extra={"extra_context": {"error": str(err)}},
        )
        return 1

    logger.info(
        "Config loaded successfully",
        extra={
            "extra_context": {
                "node_url": config.node_url,
                "websocket_url": config.websocket_url,
                "record_actions": config.record_actions,
            }
        },
    )

    try:
        _app_instance = DashboardApp(config)
        signal.signal(signal.SIGTERM, _signal_handler)

        exit_code = _app_instance.run()

        logger.info(
            "Dashboard exited",
            extra={"extra_context": {"exit_code": exit_code}},
        )
        return exit_code

    except KeyboardInterrupt:
        logger.info("Dashboard interrupted by user (KeyboardInterrupt)")
        return 130

    except Exception as err:
        logger.error(
            "Dashboard crashed with unhandled exception",
            extra={"extra_context": {"error": str(err)}},
            exc_info=True,
        )
        console.print(f"[red]Fatal error: {err}[/red]")
        console.print(f"[dim]Check logs at: {args.log_file}[/dim]")
        return 1

    finally:
        _app_instance = None


if __name__ == "__main__":
    sys.exit(main())
