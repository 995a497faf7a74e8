"""bETH price feed.

bETH price in USD is derived from three reads made concurrently:
    - ETH/USD from the Chainlink aggregator (8 decimals)
    - stETH/ETH from the Curve stETH pool, ``get_dy(1, 0, 1e18)``
    - stETH/bETH from the AnchorVault ``get_rate()`` (always >= 1)

    bEthPrice = ethPrice * stEthRate / bEthRate
"""

from __future__ import annotations

import asyncio
from typing import Mapping

from ..ChainReader import BlockTag, ChainReader
from ..Contract import ContractFunction
from ..DecimalValue import DecimalValue
from .base import LATEST_ANSWER, BasePriceFeed, register_feed

CHAINLINK_DECIMALS = 8
WEI = 10**18

# Curve pool coin indices: 0 is ETH, 1 is stETH.
CURVE_STETH_INDEX = 1
CURVE_ETH_INDEX = 0

GET_DY = ContractFunction("get_dy", ("int128", "int128", "uint256"), ("uint256",))
GET_RATE = ContractFunction("get_rate", (), ("uint256",))


@register_feed
class BEthPriceFeed(BasePriceFeed):
    """Snapshot producer for bETH.

    The AnchorVault address has no default and must be configured.
    """

    name = "beth"
    fields = ("ethPrice", "stEthRate", "bEthRate", "bEthPrice")
    price_field = "bEthPrice"
    contracts = {
        "chainLinkEthUsdPriceFeed": "0x5f4eC3Df9cbd43714FE2740f5E3616155c5b8419",
        "curvePool": "0xDC24316b9AE028F1497c275EB9192a3Ea0f67022",
        "anchorVault": None,
    }
    limit_env = {
        "ethPrice": "ETH_PRICE_LIMITS",
        "stEthRate": "STETH_RATE_LIMITS",
        "bEthRate": "BETH_RATE_LIMITS",
        "bEthPrice": "BETH_PRICE_LIMITS",
    }

    def __init__(
        self, reader: ChainReader, addresses: Mapping[str, str] | None = None
    ) -> None:
        super().__init__(reader, addresses)
        self.eth_usd_feed = self.contract("chainLinkEthUsdPriceFeed", LATEST_ANSWER)
        self.curve_pool = self.contract("curvePool", GET_DY)
        self.anchor_vault = self.contract("anchorVault", GET_RATE)

    async def snapshot(self, block: BlockTag = "latest") -> dict[str, DecimalValue]:
        eth_price, st_eth_rate, b_eth_rate = await asyncio.gather(
            self.get_eth_price(block),
            self.get_st_eth_rate(block),
            self.get_b_eth_rate(block),
        )
        return {
            "ethPrice": eth_price,
            "stEthRate": st_eth_rate,
            "bEthRate": b_eth_rate,
            "bEthPrice": eth_price * st_eth_rate / b_eth_rate,
        }

    async def get_eth_price(self, block: BlockTag = "latest") -> DecimalValue:
        (latest_answer,) = await self.eth_usd_feed.make_call(
            self.reader, "latestAnswer", block=block
        )
        return DecimalValue(latest_answer) / 10**CHAINLINK_DECIMALS

    async def get_st_eth_rate(self, block: BlockTag = "latest") -> DecimalValue:
        """Price of one stETH in ETH."""
        (dy,) = await self.curve_pool.make_call(
            self.reader, "get_dy", [CURVE_STETH_INDEX, CURVE_ETH_INDEX, WEI], block
        )
        return DecimalValue(dy) / WEI

    async def get_b_eth_rate(self, block: BlockTag = "latest") -> DecimalValue:
        """stETH per bETH."""
        (rate,) = await self.anchor_vault.make_call(self.reader, "get_rate", block=block)
        return DecimalValue(rate) / WEI
