"""Command line entry point: ``mcp-localbridge --config config/config.yaml``."""

import argparse
import asyncio
import sys
from pathlib import Path
from typing import List, Optional

from localbridge.__version__ import __version__
from localbridge.common.exceptions import LocalBridgeError
from localbridge.logging import get_logger, set_service_name, setup_logging
from localbridge.server import LocalBridgeServer
from localbridge.settings import get_settings

logger = get_logger(__name__)

DEFAULT_CONFIG_PATH = "config/config.yaml"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="mcp-localbridge",
        description="Expose local MySQL, PostgreSQL and Redis instances as MCP tools.",
    )
    parser.add_argument(
        "--config",
        default=None,
        help=f"Path to the YAML configuration file (default: {DEFAULT_CONFIG_PATH} when present)",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def resolve_config_path(config: Optional[str]) -> Optional[str]:
    """An explicit path must exist; the default path is optional."""
    if config is not None:
        return config
    return DEFAULT_CONFIG_PATH if Path(DEFAULT_CONFIG_PATH).is_file() else None


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        settings = get_settings(resolve_config_path(args.config), force_reload=True)
    except LocalBridgeError as exc:
        print(f"mcp-localbridge: {exc}", file=sys.stderr)
        return 1

    setup_logging(settings.logging.level, settings.logging.format, settings.log_output)
    set_service_name(settings.server.name)
    logger.info(
        "Starting mcp-localbridge",
        extra={"config_path": args.config, "server_version": settings.server.version},
    )

    try:
        asyncio.run(LocalBridgeServer(settings).run())
    except KeyboardInterrupt:
        logger.info("Interrupted, shutting down")
    except LocalBridgeError as exc:
        logger.error("mcp-localbridge stopped", extra={"error": str(exc)})
        return 1

    logger.info("mcp-localbridge stopped")
    return 0


if __name__ == "__main__":
    sys.exit(main())
