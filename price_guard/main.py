#!/usr/bin/env python3
"""Price Guard.

Reads a token price from on-chain sources, validates it against configured
bounds and historical deviations, and prints it.

Configure via environment variables or CLI options. CLI options take
precedence.
"""

import argparse
import asyncio
import json
import logging
import os
import sys

from .src.errors import PriceGuardError, PriceValidationError
from .src.feeds import get_available_feeds
from .src.JsonRpcHandler import build_handler
from .src.OracleConfig import OracleConfig
from .src.PriceFeedService import PriceFeedService

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
    stream=sys.stderr,
)
logger = logging.getLogger(__name__)


def parse_int_list(value: str) -> list[int]:
    """Parse a JSON list or comma-separated string of integers.

    :param value: e.g. "[44800, 6400, 250]" or "44800,6400,250".
    :returns: List of integers.
    :raises ValueError: If an item is not an integer.
    """
    value = value.strip()
    if value.startswith("["):
        return [int(item) for item in json.loads(value)]
    return [int(item) for item in value.split(",") if item.strip()]


def parse_url_list(value: str) -> list[str]:
    """Parse a JSON list or comma-separated string of URLs."""
    value = value.strip()
    if value.startswith("["):
        return [str(item) for item in json.loads(value)]
    return [item.strip() for item in value.split(",") if item.strip()]


async def run(config: OracleConfig, request: str | None) -> int:
    """Serve one request and print the outcome.

    :param config: Service configuration.
    :param request: Raw JSON-RPC body, or None to print the price directly.
    :returns: Process exit code.
    """
    service = PriceFeedService(config)
    try:
        if request is not None:
            response = await build_handler(service).handle(request)
            print(json.dumps(response))
            return 1 if "error" in response else 0

        try:
            price = await service.current_safe_price()
        except PriceValidationError as e:
            logger.error(f"{e.message} (code {e.code}): {json.dumps(e.data)}")
            return 1
        except PriceGuardError as e:
            logger.error(f"Price unavailable: {e}")
            return 1
        print(price)
        return 0
    finally:
        await service.rpc_client.aclose()


def main() -> None:
    """Main entry point for the Price Guard CLI."""
    available_feeds = get_available_feeds()

    parser = argparse.ArgumentParser(
        description="Price Guard: validated on-chain token prices",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=f"""
Available feeds:
  {', '.join(available_feeds)}

Examples:
  # bATOM price with two fallback nodes
  python -m price_guard.main --feed batom \\
      --rpcs https://node-a.example,https://node-b.example

  # Answer a raw JSON-RPC request
  python -m price_guard.main \\
      --request '{{"jsonrpc": "2.0", "method": "currentPrice", "id": 1}}'

Environment variables (CLI args take precedence):
  ETH_RPCS, PRICE_FEED, DEVIATION_BLOCK_OFFSETS, REQUEST_TIMEOUT,
  CONTRACT_ADDRESSES, and per-field limits such as ATOM_PRICE_LIMITS,
  BATOM_PRICE_LIMITS ('{{"maxValue": 36, "minValue": 25, "maxDeviations": [2, 1]}}').
""",
    )

    parser.add_argument(
        "--feed",
        type=str,
        help=f"Price feed to serve. Available: {', '.join(available_feeds)}",
        default=None,
    )

    parser.add_argument(
        "--rpcs",
        type=str,
        help="RPC endpoint URLs in fallback order (comma-separated or JSON list)",
        default=None,
    )

    parser.add_argument(
        "--deviation-offsets",
        dest="deviation_offsets",
        type=str,
        help="Block offsets of reference prices (e.g., 44800,6400,250)",
        default=None,
    )

    parser.add_argument(
        "--timeout",
        type=int,
        help="Per-endpoint request timeout in milliseconds (default: 10000)",
        default=None,
    )

    parser.add_argument(
        "--request",
        type=str,
        help="Raw JSON-RPC request to answer instead of printing the price",
        default=None,
    )

    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose (DEBUG) logging",
    )

    args = parser.parse_args()

    # Configure logging level
    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    environ = dict(os.environ)
    if args.feed:
        environ["PRICE_FEED"] = args.feed
    if args.timeout is not None:
        if args.timeout < 1:
            parser.error("--timeout must be at least 1 millisecond")
        environ["REQUEST_TIMEOUT"] = str(args.timeout)
    try:
        if args.rpcs:
            environ["ETH_RPCS"] = json.dumps(parse_url_list(args.rpcs))
        if args.deviation_offsets:
            environ["DEVIATION_BLOCK_OFFSETS"] = json.dumps(
                parse_int_list(args.deviation_offsets)
            )
        config = OracleConfig.from_env(environ)
    except ValueError as e:
        parser.error(str(e))

    if not config.endpoints:
        parser.error("At least one RPC endpoint must be specified (--rpcs or ETH_RPCS)")

    # Log configuration
    logger.info("=" * 60)
    logger.info("Price Guard")
    logger.info("=" * 60)
    for line in config.describe():
        logger.info(line)
    logger.info("=" * 60)

    try:
        sys.exit(asyncio.run(run(config, args.request)))
    except KeyboardInterrupt:
        logger.info("Shutting down...")
    except Exception as e:
        logger.error(f"Fatal error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
