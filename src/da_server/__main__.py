"""
DA server CLI entry point.

Usage::

    python -m da_server start --config config.json
    python -m da_server download --rpc http://localhost:8888 --blob-hash 0x01ab...,0x01cd...

Commands:
    start       Run the blob storage server
    download    Fetch blobs from a server and verify them against their hashes

Options:
    --config         Path to the JSON or YAML server config (start)
    --rpc            Base URL of the server to fetch from (download)
    --blob-hash      Comma-separated versioned hashes (download)
    --trusted-setup  KZG trusted setup file used for verification (download)
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from da_server.config import ServerConfig
from da_server.errors import DAServerError
from da_server.node import DAServer
from da_server.relay import RelayClient, RelayConfig

logger = logging.getLogger(__name__)


class ColoredFormatter(logging.Formatter):
    """Logging formatter with ANSI colors for better readability."""

    # ANSI color codes
    GREY = "\x1b[38;5;244m"
    BLUE = "\x1b[38;5;39m"
    GREEN = "\x1b[38;5;40m"
    YELLOW = "\x1b[38;5;220m"
    RED = "\x1b[38;5;196m"
    BOLD_RED = "\x1b[38;5;196;1m"
    CYAN = "\x1b[38;5;51m"
    RESET = "\x1b[0m"

    LEVEL_COLORS = {
        logging.DEBUG: GREY,
        logging.INFO: GREEN,
        logging.WARNING: YELLOW,
        logging.ERROR: RED,
        logging.CRITICAL: BOLD_RED,
    }

    def format(self, record: logging.LogRecord) -> str:
        """Format log record with colors."""
        color = self.LEVEL_COLORS.get(record.levelno, self.RESET)

        timestamp = f"{self.CYAN}{self.formatTime(record, self.datefmt)}{self.RESET}"
        levelname = f"{color}{record.levelname:8}{self.RESET}"
        name = f"{self.BLUE}{record.name}{self.RESET}"

        return f"{timestamp} {levelname} {name}: {record.getMessage()}"


def setup_logging(verbose: bool = False, no_color: bool = False) -> None:
    """Configure logging for the server with optional colors."""
    level = logging.DEBUG if verbose else logging.INFO

    handler = logging.StreamHandler()
    handler.setLevel(level)

    if no_color:
        formatter = logging.Formatter(
            "%(asctime)s %(levelname)-8s %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    else:
        formatter = ColoredFormatter(datefmt="%Y-%m-%d %H:%M:%S")

    handler.setFormatter(formatter)

    root = logging.getLogger()
    root.setLevel(level)
    root.addHandler(handler)

    # aiohttp logs every request at INFO.
    if not verbose:
        logging.getLogger("aiohttp.access").setLevel(logging.WARNING)


async def run_server(config_path: Path) -> None:
    """
    Load the config and serve until SIGINT/SIGTERM.

    Args:
        config_path: Path to the JSON or YAML config file.
    """
    config = ServerConfig.from_file(config_path)
    logger.info("Loaded config from %s", config_path)

    server = DAServer(config)
    await server.run()


async def download_blobs(rpc: str, blob_hashes: list[str], trusted_setup: Path | None) -> None:
    """
    Fetch blobs by hash, verify each one, and print them as hex.

    Args:
        rpc: Base URL of the server to read from.
        blob_hashes: Versioned hashes as 0x-prefixed hex.
        trusted_setup: KZG trusted setup file for verification.
    """
    config = RelayConfig(targets=(rpc,), trusted_setup_path=trusted_setup)
    async with RelayClient(config) as client:
        blobs = await client.get_blobs(blob_hashes)

    for blob_hash, blob in zip(blob_hashes, blobs, strict=True):
        logger.info("Fetched %s (%d bytes)", blob_hash, len(blob))
        print(f"0x{blob.hex()}")


def _split_hashes(value: str) -> list[str]:
    """Parse a comma-separated list of hashes, ignoring blanks."""
    return [part.strip() for part in value.split(",") if part.strip()]


def main() -> None:
    """CLI entry point."""
    parser = argparse.ArgumentParser(
        prog="da-server",
        description="Data availability blob storage server",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable debug logging",
    )
    parser.add_argument(
        "--no-color",
        action="store_true",
        help="Disable colored logging output",
    )
    commands = parser.add_subparsers(dest="command", required=True)

    start = commands.add_parser("start", help="Run the blob storage server")
    start.add_argument(
        "--config",
        required=True,
        type=Path,
        help="Path to JSON or YAML config file",
    )

    download = commands.add_parser("download", help="Fetch and verify blobs")
    download.add_argument(
        "--rpc",
        required=True,
        help="Base URL of the server (e.g., http://localhost:8888)",
    )
    download.add_argument(
        "--blob-hash",
        required=True,
        type=_split_hashes,
        dest="blob_hashes",
        help="Comma-separated versioned hashes to fetch",
    )
    download.add_argument(
        "--trusted-setup",
        type=Path,
        default=None,
        help="Path to KZG trusted setup file",
    )

    args = parser.parse_args()

    setup_logging(args.verbose, args.no_color)

    try:
        if args.command == "start":
            asyncio.run(run_server(args.config))
        else:
            asyncio.run(download_blobs(args.rpc, args.blob_hashes, args.trusted_setup))
    except KeyboardInterrupt:
        logger.info("Shutting down...")
    except (DAServerError, OSError, ValueError) as e:
        logger.error("%s failed: %s", args.command, e)
        sys.exit(1)


if __name__ == "__main__":
    main()
