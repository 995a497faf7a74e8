"""OracleConfig: Immutable configuration for the price feed service.

A configuration is never modified after creation. Reconfiguring the
service means building a new OracleConfig and passing it to
``PriceFeedService.configure()``.

.. code-block:: python

    >>> config = OracleConfig.from_dict({
    ...     "endpoints": ["https://rpc.example"],
    ...     "deviationBlockOffsets": [44800, 6400, 250],
    ...     "limits": {"bAtomPrice": {"maxValue": 36, "maxDeviations": [2, 1.5, 0.5]}},
    ... })
    >>> config.feed
    'batom'
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Mapping

from .AssetLimitValidator import AssetLimitConfig
from .feeds import get_feed_class

DEFAULT_FEED = "batom"
DEFAULT_REQUEST_TIMEOUT_MS = 10_000


def _load_json_env(environ: Mapping[str, str], key: str) -> Any:
    """Parse a JSON-encoded environment variable.

    :returns: Decoded value, or None if unset or empty.
    :raises ValueError: If the value is not valid JSON.
    """
    raw = environ.get(key)
    if not raw:
        return None
    try:
        return json.loads(raw)
    except json.JSONDecodeError as e:
        raise ValueError(f"{key} is not valid JSON: {e}") from e


@dataclass(frozen=True)
class OracleConfig:
    """Service configuration.

    :ivar endpoints: RPC endpoint URLs in fallback order.
    :ivar feed: Registered feed name producing the snapshots.
    :ivar deviation_block_offsets: Block offsets of reference snapshots,
        positionally aligned with each field's max_deviations.
    :ivar limits: Field name to limits.
    :ivar request_timeout_ms: Per-attempt RPC timeout in milliseconds.
    :ivar contract_addresses: Contract role to address overrides.
    """

    endpoints: tuple[str, ...] = ()
    feed: str = DEFAULT_FEED
    deviation_block_offsets: tuple[int, ...] = ()
    limits: Mapping[str, AssetLimitConfig] = field(default_factory=dict)
    request_timeout_ms: int = DEFAULT_REQUEST_TIMEOUT_MS
    contract_addresses: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        """Freeze collections and validate.

        :raises ValueError: If any setting is invalid.
        """
        if isinstance(self.endpoints, str):
            raise ValueError("endpoints must be a list of URLs")
        endpoints = tuple(self.endpoints)
        if not all(isinstance(url, str) and url for url in endpoints):
            raise ValueError("endpoints must be non-empty URL strings")

        offsets = tuple(self.deviation_block_offsets)
        for offset in offsets:
            if isinstance(offset, bool) or not isinstance(offset, int) or offset < 0:
                raise ValueError(
                    f"deviation block offsets must be non-negative integers: {offset!r}"
                )

        if (
            isinstance(self.request_timeout_ms, bool)
            or not isinstance(self.request_timeout_ms, (int, float))
            or self.request_timeout_ms <= 0
        ):
            raise ValueError("request_timeout_ms must be positive")

        feed_class = get_feed_class(self.feed)
        unknown = [name for name in self.limits if name not in feed_class.fields]
        if unknown:
            raise ValueError(
                f"Limits configured for fields not produced by feed "
                f"'{self.feed}': {unknown}"
            )
        limits = {
            name: limit if isinstance(limit, AssetLimitConfig)
            else AssetLimitConfig.from_dict(limit)
            for name, limit in self.limits.items()
        }

        object.__setattr__(self, "endpoints", endpoints)
        object.__setattr__(self, "deviation_block_offsets", offsets)
        object.__setattr__(self, "limits", MappingProxyType(limits))
        object.__setattr__(
            self, "contract_addresses", MappingProxyType(dict(self.contract_addresses))
        )

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> OracleConfig:
        """Build a configuration from camelCase keys.

        Recognised keys: endpoints, feed, deviationBlockOffsets, limits,
        requestTimeout, contractAddresses.

        :raises ValueError: On unknown keys or invalid values.
        """
        known = {
            "endpoints": "endpoints",
            "feed": "feed",
            "deviationBlockOffsets": "deviation_block_offsets",
            "limits": "limits",
            "requestTimeout": "request_timeout_ms",
            "contractAddresses": "contract_addresses",
        }
        unknown = set(data) - set(known)
        if unknown:
            raise ValueError(f"Unknown configuration keys: {sorted(unknown)}")
        kwargs = {known[key]: value for key, value in data.items() if value is not None}
        return cls(**kwargs)

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> OracleConfig:
        """Build a configuration from environment variables.

        Variables:
            - ETH_RPCS: JSON list of endpoint URLs
            - PRICE_FEED: feed name (default: batom)
            - DEVIATION_BLOCK_OFFSETS: JSON list of block offsets
            - REQUEST_TIMEOUT: per-attempt timeout in milliseconds
            - CONTRACT_ADDRESSES: JSON object of contract address overrides
            - <FIELD>_LIMITS: JSON limits per field, named by the feed
              (e.g. BATOM_PRICE_LIMITS)

        :param environ: Environment mapping (default: os.environ).
        :raises ValueError: If a variable is malformed.
        """
        environ = os.environ if environ is None else environ
        feed = environ.get("PRICE_FEED") or DEFAULT_FEED
        feed_class = get_feed_class(feed)

        limits = {}
        for name, env_key in feed_class.limit_env.items():
            value = _load_json_env(environ, env_key)
            if value is not None:
                limits[name] = value

        timeout = environ.get("REQUEST_TIMEOUT")
        try:
            request_timeout_ms = int(timeout) if timeout else DEFAULT_REQUEST_TIMEOUT_MS
        except ValueError as e:
            raise ValueError(f"REQUEST_TIMEOUT must be an integer: {timeout!r}") from e

        endpoints = _load_json_env(environ, "ETH_RPCS") or []
        offsets = _load_json_env(environ, "DEVIATION_BLOCK_OFFSETS") or []
        if not isinstance(endpoints, list):
            raise ValueError("ETH_RPCS must be a JSON list")
        if not isinstance(offsets, list):
            raise ValueError("DEVIATION_BLOCK_OFFSETS must be a JSON list")

        return cls(
            endpoints=tuple(endpoints),
            feed=feed,
            deviation_block_offsets=tuple(offsets),
            limits=limits,
            request_timeout_ms=request_timeout_ms,
            contract_addresses=_load_json_env(environ, "CONTRACT_ADDRESSES") or {},
        )

    def describe(self) -> list[str]:
        """Human readable summary lines, safe to log (endpoint URLs omitted)."""
        lines = [
            f"Feed:              {self.feed}",
            f"RPC Endpoints:     {len(self.endpoints)}",
            f"Deviation Offsets: {', '.join(map(str, self.deviation_block_offsets)) or 'none'}",
            f"Request Timeout:   {self.request_timeout_ms}ms",
        ]
        for name, limit in self.limits.items():
            deviations = ", ".join(str(d) for d in limit.max_deviations) or "none"
            lines.append(
                f"Limits {name}: [{limit.min_value}, {limit.max_value}], "
                f"max deviations: {deviations}"
            )
        return lines
