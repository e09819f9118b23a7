from __future__ import annotations

import argparse
import logging
import signal
from typing import List

from .config.config_parser import load_config
from .config.logging_config import init_logging
from .errors import ConfigurationError, WatchError
from .hosts_generator import HostsGenerator
from .watcher import ChangeWatcher, WatcherState


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="hostsync",
        description="Keep a dnsmasq hosts file in sync with a hostname registry database",
    )
    parser.add_argument(
        "--config",
        default=None,
        help="Optional YAML config; environment variables override its values",
    )
    parser.add_argument(
        "-v",
        "--var",
        action="append",
        default=[],
        metavar="KEY=VALUE",
        help="Override a setting by variable name (e.g. -v DEBOUNCE_SECONDS=2)",
    )
    parser.add_argument(
        "--once",
        action="store_true",
        help="Generate the hosts file once and exit without watching",
    )
    return parser


def main(argv: List[str] | None = None) -> int:
    """
    Main entry point for the hosts sync service.

    Args:
        argv: Command-line arguments.

    Returns:
        An exit code: 0 after a clean run, 1 on configuration, initial
        generation or watch failures, 2 after SIGTERM/SIGINT.

    Example use:
        CLI:
            TARGET_IP=192.168.1.100 DOMAIN_NAME=hackerspace.lan \\
            EXTERNAL_DOMAIN=example.org DB_PATH=/data/database.sqlite \\
            DNSMASQ_PATH=/etc/dnsmasq.hosts/proxy python -m hostsync
    """
    args = build_parser().parse_args(argv)

    try:
        config = load_config(args.config, cli_vars=args.var)
    except ConfigurationError as exc:
        print(str(exc))
        return 1

    init_logging(config.logging)
    logger = logging.getLogger("hostsync.main")
    if args.config:
        logger.info("Loaded config from %s", args.config)

    generator = HostsGenerator(config)
    if not generator.generate():
        logger.error("Initial generation failed, exiting")
        return 1
    if args.once:
        return 0

    state = WatcherState()
    exit_code = 0

    def _request_shutdown(reason: str, code: int) -> None:
        nonlocal exit_code
        if state.shutdown.is_set():
            return
        exit_code = code
        logger.info("Received %s, shutting down gracefully", reason)
        state.shutdown.set()

    def _sighup_handler(_signum, _frame):
        _request_shutdown("SIGHUP", 0)

    def _sigterm_handler(_signum, _frame):
        _request_shutdown("SIGTERM", 2)

    def _sigint_handler(_signum, _frame):
        _request_shutdown("SIGINT", 2)

    for name, handler in (
        ("SIGHUP", _sighup_handler),
        ("SIGTERM", _sigterm_handler),
        ("SIGINT", _sigint_handler),
    ):
        sig = getattr(signal, name, None)
        if sig is None:
            continue
        try:
            signal.signal(sig, handler)
            logger.debug("Installed %s handler for clean shutdown", name)
        except ValueError:
            # Not the main thread (e.g. embedded in tests).
            logger.warning("Could not install %s handler", name)

    watcher = ChangeWatcher(config, generator, state=state)
    try:
        clean = watcher.start()
    except WatchError as exc:
        logger.error("%s", exc)
        return 1

    if not clean:
        return 1
    return exit_code


if __name__ == "__main__":
    raise SystemExit(main())  # pragma: no cover
