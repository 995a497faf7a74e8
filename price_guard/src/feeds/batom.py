"""bATOM price feed.

bATOM is priced one-to-one with ATOM, read from the Chainlink ATOM/USD
aggregator (8 decimals).
"""

from __future__ import annotations

from typing import Mapping

from ..ChainReader import BlockTag, ChainReader
from ..DecimalValue import DecimalValue
from .base import LATEST_ANSWER, BasePriceFeed, register_feed

# Chainlink answers carry 8 decimals.
CHAINLINK_DECIMALS = 8


@register_feed
class BAtomPriceFeed(BasePriceFeed):
    """Snapshot producer for bATOM.

    Fields:
        - atomPrice: ATOM price in USD
        - bAtomPrice: bATOM price in USD (equal to atomPrice)
    """

    name = "batom"
    fields = ("atomPrice", "bAtomPrice")
    price_field = "bAtomPrice"
    contracts = {
        "chainLinkAtomUsdPriceFeed": "0x736E09DE064A2a461F197643A26bC1ab7Dc4D5D3",
    }
    limit_env = {
        "atomPrice": "ATOM_PRICE_LIMITS",
        "bAtomPrice": "BATOM_PRICE_LIMITS",
    }

    def __init__(
        self, reader: ChainReader, addresses: Mapping[str, str] | None = None
    ) -> None:
        super().__init__(reader, addresses)
        self.atom_usd_feed = self.contract("chainLinkAtomUsdPriceFeed", LATEST_ANSWER)

    async def snapshot(self, block: BlockTag = "latest") -> dict[str, DecimalValue]:
        atom_price = await self.get_atom_price(block)
        return {"atomPrice": atom_price, "bAtomPrice": atom_price}

    async def get_atom_price(self, block: BlockTag = "latest") -> DecimalValue:
        """Read the ATOM/USD price at a block."""
        (latest_answer,) = await self.atom_usd_feed.make_call(
            self.reader, "latestAnswer", block=block
        )
        return DecimalValue(latest_answer) / 10**CHAINLINK_DECIMALS
