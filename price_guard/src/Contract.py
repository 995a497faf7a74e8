"""Contract: Minimal ABI encoding for read-only contract calls."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Sequence

from eth_abi import decode, encode
from web3 import Web3

if TYPE_CHECKING:
    from .ChainReader import BlockTag, ChainReader


@dataclass(frozen=True)
class ContractFunction:
    """ABI description of one view function.

    :ivar name: Function name (e.g., "latestAnswer").
    :ivar input_types: Solidity types of the arguments.
    :ivar output_types: Solidity types of the return values.
    """

    name: str
    input_types: tuple[str, ...] = ()
    output_types: tuple[str, ...] = ()

    @property
    def signature(self) -> str:
        return f"{self.name}({','.join(self.input_types)})"

    @property
    def selector(self) -> bytes:
        """First four bytes of the keccak256 hash of the signature."""
        return bytes(Web3.keccak(text=self.signature)[:4])

    def encode_call(self, args: Sequence[Any] = ()) -> str:
        """ABI-encode a call to this function.

        :param args: Positional arguments.
        :returns: ``0x``-prefixed call data.
        """
        data = self.selector + encode(list(self.input_types), list(args))
        return "0x" + data.hex()

    def decode_result(self, result: str) -> tuple[Any, ...]:
        """Decode raw return data.

        :param result: ``0x``-prefixed hex return data.
        :returns: Tuple of decoded values.
        """
        raw = bytes.fromhex(result[2:] if result.startswith("0x") else result)
        return tuple(decode(list(self.output_types), raw))


class Contract:
    """A deployed contract with a known set of view functions.

    .. code-block:: python

        feed = Contract(
            "0x736E09DE064A2a461F197643A26bC1ab7Dc4D5D3",
            [ContractFunction("latestAnswer", (), ("int256",))],
        )
        (answer,) = await feed.make_call(reader, "latestAnswer", block=19_000_000)
    """

    def __init__(self, address: str, functions: Sequence[ContractFunction]) -> None:
        """Initialize the contract.

        :param address: Contract address.
        :param functions: View functions exposed by the contract.
        :raises ValueError: If the address is not a valid Ethereum address.
        """
        if not Web3.is_address(address):
            raise ValueError(f"Invalid contract address: {address!r}")
        self.address = Web3.to_checksum_address(address)
        self.functions = {function.name: function for function in functions}

    def __repr__(self) -> str:
        return f"Contract({self.address!r})"

    async def make_call(
        self,
        reader: ChainReader,
        method: str,
        args: Sequence[Any] = (),
        block: BlockTag = "latest",
    ) -> tuple[Any, ...]:
        """Call a view function and decode its outputs.

        :param reader: Chain reader to send the call through.
        :param method: Function name.
        :param args: Positional arguments.
        :param block: Block number or tag to read at.
        :returns: Decoded return values.
        :raises KeyError: If the function is unknown.
        """
        function = self.functions[method]
        result = await reader.call(self.address, function.encode_call(args), block)
        return function.decode_result(result)
