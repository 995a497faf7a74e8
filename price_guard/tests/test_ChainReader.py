"""Unit tests for ChainReader and Contract."""

from unittest.mock import AsyncMock

import pytest
from eth_abi import encode
from web3 import Web3

from price_guard.src.ChainReader import ChainReader, parse_hex_int, to_block_tag
from price_guard.src.Contract import Contract, ContractFunction
from price_guard.src.ResilientRpcClient import RpcRequest

ATOM_USD_FEED = "0x736E09DE064A2a461F197643A26bC1ab7Dc4D5D3"
LATEST_ANSWER = ContractFunction("latestAnswer", (), ("int256",))


def make_reader(result: str) -> tuple[ChainReader, AsyncMock]:
    """Create a reader whose transport always returns ``result``."""
    rpc_client = AsyncMock()
    rpc_client.send.return_value = result
    return ChainReader(rpc_client, ["https://node-a.example", "https://node-b.example"], 2500), rpc_client


class TestBlockTags:
    """Test block parameter conversion."""

    def test_int_to_hex(self) -> None:
        """Block numbers become hex quantities."""
        assert to_block_tag(436) == "0x1b4"
        assert to_block_tag(0) == "0x0"

    @pytest.mark.parametrize("tag", ["latest", "earliest", "pending", "safe", "finalized", "0x1b4"])
    def test_tags_pass_through(self, tag: str) -> None:
        """Named tags and hex strings are sent unchanged."""
        assert to_block_tag(tag) == tag

    @pytest.mark.parametrize("block", [-1, True, "newest", "0xzz", 1.5])
    def test_invalid_blocks(self, block: object) -> None:
        """Negative, boolean and unknown blocks should raise ValueError."""
        with pytest.raises(ValueError):
            to_block_tag(block)

    def test_parse_hex_int(self) -> None:
        """Hex quantities parse; decimal strings are rejected."""
        assert parse_hex_int("0x1b4") == 436
        with pytest.raises(ValueError):
            parse_hex_int("436")


class TestChainReader:
    """Test eth_call and eth_blockNumber requests."""

    @pytest.mark.asyncio
    async def test_call_builds_eth_call(self) -> None:
        """call() sends eth_call with the call object and block tag."""
        reader, rpc_client = make_reader("0x01")

        result = await reader.call(ATOM_USD_FEED, "0x50d25bcd", 19_000_000)

        assert result == "0x01"
        request, endpoints, timeout_ms = rpc_client.send.call_args.args
        assert isinstance(request, RpcRequest)
        assert request.method == "eth_call"
        assert request.params == [{"to": ATOM_USD_FEED, "data": "0x50d25bcd"}, "0x121eac0"]
        assert endpoints == ("https://node-a.example", "https://node-b.example")
        assert timeout_ms == 2500

    @pytest.mark.asyncio
    async def test_call_defaults_to_latest(self) -> None:
        """call() reads at the latest block by default."""
        reader, rpc_client = make_reader("0x")
        await reader.call(ATOM_USD_FEED, "0x50d25bcd")
        assert rpc_client.send.call_args.args[0].params[1] == "latest"

    @pytest.mark.asyncio
    async def test_block_number(self) -> None:
        """block_number() parses the eth_blockNumber result."""
        reader, rpc_client = make_reader("0x121eac0")

        assert await reader.block_number() == 19_000_000
        assert rpc_client.send.call_args.args[0].method == "eth_blockNumber"

    @pytest.mark.asyncio
    async def test_block_number_malformed(self) -> None:
        """A non-hex block number should raise ValueError."""
        reader, _ = make_reader("12345")
        with pytest.raises(ValueError):
            await reader.block_number()

    @pytest.mark.asyncio
    async def test_errors_propagate(self) -> None:
        """Transport errors reach the caller unchanged."""
        reader, rpc_client = make_reader("0x")
        rpc_client.send.side_effect = RuntimeError("down")
        with pytest.raises(RuntimeError):
            await reader.block_number()


class TestContract:
    """Test ABI encoding and decoding."""

    def test_selector(self) -> None:
        """Selectors match the well-known 4-byte ids."""
        assert LATEST_ANSWER.signature == "latestAnswer()"
        assert LATEST_ANSWER.encode_call() == "0x50d25bcd"
        assert ContractFunction("decimals", (), ("uint8",)).encode_call() == "0x313ce567"

    def test_encode_arguments(self) -> None:
        """Arguments are ABI-encoded after the selector."""
        get_dy = ContractFunction("get_dy", ("int128", "int128", "uint256"), ("uint256",))
        data = get_dy.encode_call([1, 0, 10**18])

        assert get_dy.signature == "get_dy(int128,int128,uint256)"
        assert data.startswith("0x" + get_dy.selector.hex())
        assert len(data) == 2 + 2 * (4 + 3 * 32)
        assert data.endswith(hex(10**18)[2:].rjust(64, "0"))

    def test_decode_result(self) -> None:
        """Return data decodes into a tuple."""
        raw = "0x" + encode(["int256"], [1152316800]).hex()
        assert LATEST_ANSWER.decode_result(raw) == (1152316800,)

    def test_decode_negative(self) -> None:
        """Signed return values decode without a 0x prefix."""
        raw = encode(["int256"], [-5]).hex()
        assert LATEST_ANSWER.decode_result(raw) == (-5,)

    def test_address_is_checksummed(self) -> None:
        """Lowercase addresses are stored checksummed."""
        contract = Contract(ATOM_USD_FEED.lower(), [LATEST_ANSWER])
        assert contract.address.lower() == ATOM_USD_FEED.lower()
        assert Web3.is_checksum_address(contract.address)

    @pytest.mark.parametrize("address", ["", "0x1234", "not an address"])
    def test_invalid_address(self, address: str) -> None:
        """Malformed addresses should raise ValueError."""
        with pytest.raises(ValueError, match="Invalid contract address"):
            Contract(address, [LATEST_ANSWER])

    @pytest.mark.asyncio
    async def test_make_call(self) -> None:
        """make_call() encodes, sends and decodes at the given block."""
        reader, rpc_client = make_reader("0x" + encode(["int256"], [1152316800]).hex())
        contract = Contract(ATOM_USD_FEED, [LATEST_ANSWER])

        assert await contract.make_call(reader, "latestAnswer", block=100) == (1152316800,)
        request = rpc_client.send.call_args.args[0]
        assert request.params == [{"to": ATOM_USD_FEED, "data": "0x50d25bcd"}, "0x64"]

    @pytest.mark.asyncio
    async def test_make_call_unknown_method(self) -> None:
        """Unknown functions should raise KeyError."""
        reader, _ = make_reader("0x")
        contract = Contract(ATOM_USD_FEED, [LATEST_ANSWER])
        with pytest.raises(KeyError):
            await contract.make_call(reader, "latestRoundData")
