"""
Price Guard - Validated On-Chain Price Module

This module derives token prices from on-chain reads and validates them
before release:
- DecimalValue: Arbitrary-precision decimal arithmetic
- ResilientRpcClient: JSON-RPC transport with ordered endpoint fallback
- ChainReader: eth_call / eth_blockNumber façade
- AssetLimitValidator: Bounds and historical deviation checks for one value
- CompositePriceValidator: Per-field validation of price snapshots
- PriceFeedService: Orchestrates reads and validation
- feeds: Snapshot producers (bATOM, bETH)
"""

from .AssetLimitValidator import AssetLimitConfig, AssetLimitValidator
from .ChainReader import ChainReader
from .CompositePriceValidator import CompositePriceValidator, ReferenceEntry
from .DecimalValue import DecimalValue
from .JsonRpcHandler import JsonRpcHandler, build_handler
from .OracleConfig import OracleConfig
from .PriceFeedService import PRICE_DECIMALS, PriceFeedService
from .ResilientRpcClient import ResilientRpcClient, RpcRequest

__all__ = [
    "AssetLimitConfig",
    "AssetLimitValidator",
    "ChainReader",
    "CompositePriceValidator",
    "DecimalValue",
    "JsonRpcHandler",
    "OracleConfig",
    "PRICE_DECIMALS",
    "PriceFeedService",
    "ReferenceEntry",
    "ResilientRpcClient",
    "RpcRequest",
    "build_handler",
]
