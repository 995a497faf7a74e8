"""Base price feed interface and feed registry.

A price feed turns one or more contract reads into a snapshot: an ordered
mapping of field name to DecimalValue. The same computation is used for the
latest block and for historical blocks.

.. code-block:: python

    @register_feed
    class MyFeed(BasePriceFeed):
        name = "mytoken"
        fields = ("underlyingPrice", "myTokenPrice")
        price_field = "myTokenPrice"
        contracts = {"oracle": "0x..."}

        async def snapshot(self, block="latest"):
            ...
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, ClassVar, Mapping

from ..Contract import Contract, ContractFunction

if TYPE_CHECKING:
    from ..ChainReader import BlockTag, ChainReader
    from ..DecimalValue import DecimalValue

# Chainlink aggregator interface shared by the USD price feeds.
LATEST_ANSWER = ContractFunction("latestAnswer", (), ("int256",))


class BasePriceFeed(ABC):
    """Abstract base class for snapshot producers.

    Subclasses must define:
        - name: Registry identifier
        - fields: Ordered field names produced by snapshot()
        - price_field: Field reported as the final price
        - contracts: Contract role to default address (None if no default)
        - limit_env: Field name to limits environment variable

    :ivar reader: Chain reader used for all calls.
    :ivar addresses: Contract role to address, defaults merged with overrides.
    """

    name: ClassVar[str] = ""
    fields: ClassVar[tuple[str, ...]] = ()
    price_field: ClassVar[str] = ""
    contracts: ClassVar[dict[str, str | None]] = {}
    limit_env: ClassVar[dict[str, str]] = {}

    def __init__(
        self, reader: ChainReader, addresses: Mapping[str, str] | None = None
    ) -> None:
        """Initialize the feed.

        :param reader: Chain reader to use.
        :param addresses: Overrides for contract addresses by role.
        :raises ValueError: On unknown roles or missing addresses.
        """
        overrides = dict(addresses or {})
        unknown = set(overrides) - set(self.contracts)
        if unknown:
            raise ValueError(
                f"Unknown contracts for feed '{self.name}': {sorted(unknown)}"
            )
        merged = {**self.contracts, **overrides}
        missing = [role for role, address in merged.items() if not address]
        if missing:
            raise ValueError(f"No address configured for {missing} ({self.name})")

        self.reader = reader
        self.addresses: dict[str, str] = {k: v for k, v in merged.items() if v}

    def contract(self, role: str, *functions: ContractFunction) -> Contract:
        """Build a contract for a configured role."""
        return Contract(self.addresses[role], functions)

    @abstractmethod
    async def snapshot(self, block: BlockTag = "latest") -> dict[str, DecimalValue]:
        """Read all fields at a block.

        :param block: Block number or tag.
        :returns: Field values in ``fields`` order.
        """
        pass


# Registry of available feeds (populated by subclass imports)
FEED_REGISTRY: dict[str, type[BasePriceFeed]] = {}


def register_feed(cls: type[BasePriceFeed]) -> type[BasePriceFeed]:
    """Decorator to register a feed class in the global registry.

    :raises ValueError: If the feed has no name or its price field is not
        one of its fields.
    """
    if not cls.name:
        raise ValueError(f"Feed {cls.__name__} must define a 'name' class variable")
    if cls.price_field not in cls.fields:
        raise ValueError(f"Feed {cls.__name__} price_field must be one of its fields")
    FEED_REGISTRY[cls.name] = cls
    return cls


def get_feed_class(name: str) -> type[BasePriceFeed]:
    """Look up a feed class by name.

    :raises ValueError: If the feed name is unknown.
    """
    if name not in FEED_REGISTRY:
        available = ", ".join(sorted(FEED_REGISTRY.keys()))
        raise ValueError(f"Unknown feed '{name}'. Available: {available}")
    return FEED_REGISTRY[name]


def get_feed(
    name: str, reader: ChainReader, addresses: Mapping[str, str] | None = None
) -> BasePriceFeed:
    """Get a feed instance by name."""
    return get_feed_class(name)(reader, addresses)


def get_available_feeds() -> list[str]:
    """Get sorted list of registered feed names."""
    return sorted(FEED_REGISTRY.keys())
