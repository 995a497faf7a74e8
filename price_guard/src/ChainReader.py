"""ChainReader: Read-only Ethereum node access over ResilientRpcClient."""

from __future__ import annotations

from typing import Sequence

from .ResilientRpcClient import ResilientRpcClient, RpcRequest

NAMED_BLOCK_TAGS = frozenset({"latest", "earliest", "pending", "safe", "finalized"})

BlockTag = int | str


def to_block_tag(block: BlockTag) -> str:
    """Convert a block number or tag into a JSON-RPC block parameter.

    :param block: Block number, ``0x``-prefixed hex string or named tag.
    :returns: Block parameter string (e.g., "latest", "0x1b4").
    :raises ValueError: If the block is negative or not a recognised tag.

    .. code-block:: python

        >>> to_block_tag(436)
        '0x1b4'
        >>> to_block_tag("latest")
        'latest'
    """
    if isinstance(block, bool):
        raise ValueError(f"Invalid block: {block!r}")
    if isinstance(block, int):
        if block < 0:
            raise ValueError(f"Block number must not be negative: {block}")
        return hex(block)
    if block in NAMED_BLOCK_TAGS:
        return block
    if isinstance(block, str) and block.lower().startswith("0x"):
        int(block, 16)
        return block
    raise ValueError(f"Invalid block tag: {block!r}")


def parse_hex_int(value: str) -> int:
    """Parse a ``0x``-prefixed hex quantity.

    :raises ValueError: If the value is not a hex string.
    """
    if not isinstance(value, str) or not value.lower().startswith("0x"):
        raise ValueError(f"Expected hex quantity, got {value!r}")
    return int(value, 16)


class ChainReader:
    """Façade exposing ``eth_call`` and ``eth_blockNumber``.

    Every method is one logical read, sent through the RPC client with the
    configured endpoint list and timeout.

    :ivar rpc_client: Transport used for all reads.
    :ivar endpoints: Endpoint URLs in priority order.
    :ivar timeout_ms: Per-attempt timeout in milliseconds.
    """

    def __init__(
        self,
        rpc_client: ResilientRpcClient,
        endpoints: Sequence[str],
        timeout_ms: float,
    ) -> None:
        self.rpc_client = rpc_client
        self.endpoints = tuple(endpoints)
        self.timeout_ms = timeout_ms

    async def call(
        self, contract_address: str, encoded_data: str, block: BlockTag = "latest"
    ) -> str:
        """Execute a read-only contract call.

        :param contract_address: Target contract address.
        :param encoded_data: ABI-encoded call data (``0x``-prefixed).
        :param block: Block number or tag to execute against.
        :returns: Raw hex return data.
        """
        request = RpcRequest(
            "eth_call",
            [{"to": contract_address, "data": encoded_data}, to_block_tag(block)],
        )
        return await self.rpc_client.send(request, self.endpoints, self.timeout_ms)

    async def block_number_hex(self) -> str:
        """Fetch the latest block number as the node returns it."""
        request = RpcRequest("eth_blockNumber", [])
        return await self.rpc_client.send(request, self.endpoints, self.timeout_ms)

    async def block_number(self) -> int:
        """Fetch the latest block number.

        :raises ValueError: If the node returned a malformed quantity.
        """
        return parse_hex_int(await self.block_number_hex())
