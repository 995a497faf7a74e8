"""PriceFeedService: Fetches, validates and reports the safe price.

Flow of ``current_safe_price()``:
    1. Start reading the current snapshot and fetch the current block number
    2. Read a snapshot at ``current_block - offset`` for every configured
       offset, concurrently with each other and with the current snapshot
    3. Validate the current snapshot against the historical ones
    4. Return the feed's price field formatted to 8 fractional digits

Reference snapshots keep the configured offset order regardless of which
read completes first. Any failed read fails the whole call.

The active configuration is held as one immutable state object. Calling
``configure()`` builds a complete new state and swaps it in with a single
assignment, so a running call always sees one consistent configuration.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass

from .ChainReader import ChainReader
from .CompositePriceValidator import CompositePriceValidator, ReferenceEntry
from .feeds import BasePriceFeed, get_feed
from .OracleConfig import OracleConfig
from .ResilientRpcClient import ResilientRpcClient

logger = logging.getLogger(__name__)

# Number of fractional digits in the reported price.
PRICE_DECIMALS = 8


@dataclass(frozen=True)
class ServiceState:
    """Everything derived from one configuration.

    :ivar config: Source configuration.
    :ivar reader: Chain reader bound to the configured endpoints.
    :ivar feed: Snapshot producer.
    :ivar validator: Snapshot validator built from the configured limits.
    """

    config: OracleConfig
    reader: ChainReader
    feed: BasePriceFeed
    validator: CompositePriceValidator


class PriceFeedService:
    """Serves validated prices for one feed.

    .. code-block:: python

        service = PriceFeedService(OracleConfig.from_env())
        price = await service.current_safe_price()  # e.g. "11.52316800"
    """

    def __init__(
        self, config: OracleConfig, rpc_client: ResilientRpcClient | None = None
    ) -> None:
        """Initialize the service.

        :param config: Initial configuration.
        :param rpc_client: Transport shared by all configurations.
        :raises ValueError: If the configuration is invalid.
        """
        self.rpc_client = rpc_client or ResilientRpcClient()
        self._state = self._build_state(config)

    def _build_state(self, config: OracleConfig) -> ServiceState:
        reader = ChainReader(self.rpc_client, config.endpoints, config.request_timeout_ms)
        feed = get_feed(config.feed, reader, config.contract_addresses)
        validator = CompositePriceValidator(feed.fields, config.limits)
        return ServiceState(config=config, reader=reader, feed=feed, validator=validator)

    @property
    def config(self) -> OracleConfig:
        return self._state.config

    def configure(self, config: OracleConfig) -> None:
        """Replace the active configuration.

        :param config: New configuration; replaces the previous one entirely.
        :raises ValueError: If the configuration is invalid. The previous
            configuration stays active in that case.
        """
        state = self._build_state(config)
        self._state = state
        logger.info(f"Configuration replaced (feed={config.feed})")

    async def current_safe_price(self) -> str:
        """Fetch and validate the current price.

        :returns: Price with 8 fractional digits.
        :raises PriceValidationError: If the price violates a limit.
        :raises RpcError: If chain reads fail on every endpoint.
        """
        state = self._state
        block_number, snapshot, references = await self._fetch(state)

        state.validator.validate(block_number, snapshot, references)

        price = snapshot[state.feed.price_field]
        logger.debug(f"{state.feed.price_field}={price} at block {block_number}")
        return price.to_fixed(PRICE_DECIMALS)

    async def _fetch(
        self, state: ServiceState
    ) -> tuple[int, dict, list[ReferenceEntry]]:
        """Read the current snapshot, block number and reference snapshots."""
        current = asyncio.ensure_future(state.feed.snapshot("latest"))
        try:
            block_number = await state.reader.block_number()
            blocks = [
                block_number - offset for offset in state.config.deviation_block_offsets
            ]
            snapshot, *historical = await asyncio.gather(
                current, *(state.feed.snapshot(block) for block in blocks)
            )
        finally:
            if not current.done():
                current.cancel()
            elif not current.cancelled():
                # Mark a failure as retrieved when gather was never reached
                current.exception()

        references = [
            ReferenceEntry(block, reference)
            for block, reference in zip(blocks, historical, strict=True)
        ]
        return block_number, snapshot, references
