"""AssetLimitValidator: Bounds and historical-deviation checks for one value.

Validation steps, each fatal on failure:
    1. Parse the value (ValueIsNaNError if unparseable)
    2. Upper bound: max_value >= value (ValueTooHighError)
    3. Lower bound: min_value <= value (ValueTooLowError)
    4. Deviation: for i < min(len(references), len(max_deviations)),
       |value - reference[i]| / value * 100 <= max_deviations[i]
       (MaxDeviationError at the first failing index)

The deviation is relative to the *current* value, not the reference. With a
current value of zero any differing reference gives an infinite deviation.

.. code-block:: python

    >>> validator = AssetLimitValidator(
    ...     "bAtomPrice", AssetLimitConfig(max_value=30, max_deviations=[2])
    ... )
    >>> validator.validate(1000, "29.5", [(900, "29.4")])
    >>> validator.validate(1000, "30.0001")
    Traceback (most recent call last):
        ...
    ValueTooHighError: Unsafe Price: value of "bAtomPrice" too high
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping, Sequence

from .DecimalValue import NEGATIVE_INFINITY, POSITIVE_INFINITY, DecimalLike, DecimalValue
from .errors import (
    MaxDeviationError,
    NotANumberError,
    ValueIsNaNError,
    ValueTooHighError,
    ValueTooLowError,
)

_CONFIG_KEYS = {"maxValue", "minValue", "maxDeviations"}


def percentage_deviation(value: DecimalValue, reference: DecimalValue) -> DecimalValue:
    """Deviation of ``reference`` from ``value`` in percent of ``value``."""
    return abs(value - reference) / value * 100


def _parse_limit(name: str, raw: DecimalLike) -> DecimalValue:
    try:
        return DecimalValue(raw)
    except NotANumberError as e:
        raise ValueError(f"{name} is NaN") from e


@dataclass(frozen=True)
class AssetLimitConfig:
    """Safety limits for one field.

    Values given as numbers or strings are converted to DecimalValue.

    :ivar max_value: Upper bound (default: +Infinity).
    :ivar min_value: Lower bound (default: -Infinity).
    :ivar max_deviations: Max deviation in percent per reference offset.
    """

    max_value: DecimalValue = POSITIVE_INFINITY
    min_value: DecimalValue = NEGATIVE_INFINITY
    max_deviations: tuple[DecimalValue, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        """Normalize and check the limits.

        :raises ValueError: If a limit is NaN, min_value > max_value or a
            deviation is negative.
        """
        max_value = _parse_limit("maxValue", self.max_value)
        min_value = _parse_limit("minValue", self.min_value)
        deviations = tuple(
            _parse_limit("maxDeviations", d) for d in self.max_deviations
        )
        if not min_value <= max_value:
            raise ValueError("minValue > maxValue")
        if any(d < 0 for d in deviations):
            raise ValueError("maxDeviations contains negative values")

        object.__setattr__(self, "max_value", max_value)
        object.__setattr__(self, "min_value", min_value)
        object.__setattr__(self, "max_deviations", deviations)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any] | None) -> AssetLimitConfig:
        """Build limits from a ``{maxValue, minValue, maxDeviations}`` mapping.

        Missing keys take their defaults.

        :raises ValueError: On unknown keys or invalid limits.
        """
        if not data:
            return cls()
        unknown = set(data) - _CONFIG_KEYS
        if unknown:
            raise ValueError(f"Unknown limit keys: {sorted(unknown)}")

        kwargs: dict[str, Any] = {}
        if data.get("maxValue") is not None:
            kwargs["max_value"] = data["maxValue"]
        elif "maxValue" in data:
            raise ValueError("maxValue is NaN")
        if data.get("minValue") is not None:
            kwargs["min_value"] = data["minValue"]
        elif "minValue" in data:
            raise ValueError("minValue is NaN")
        deviations = data.get("maxDeviations")
        if deviations is not None:
            if isinstance(deviations, (str, bytes)) or not isinstance(
                deviations, Iterable
            ):
                raise ValueError("maxDeviations must be a list")
            kwargs["max_deviations"] = tuple(deviations)
        return cls(**kwargs)


class AssetLimitValidator:
    """Validates a single named value against its limits.

    :ivar name: Field name, reported in errors.
    :ivar config: Limits applied to the field.
    """

    def __init__(self, name: str, config: AssetLimitConfig | None = None) -> None:
        self.name = name
        self.config = config or AssetLimitConfig()

    @property
    def max_value(self) -> DecimalValue:
        return self.config.max_value

    @property
    def min_value(self) -> DecimalValue:
        return self.config.min_value

    @property
    def max_deviations(self) -> tuple[DecimalValue, ...]:
        return self.config.max_deviations

    def validate(
        self,
        block_number: int,
        value: DecimalLike,
        reference_values: Sequence[tuple[int, DecimalLike]] = (),
    ) -> None:
        """Validate a value read at ``block_number``.

        :param block_number: Block the value was read at.
        :param value: Current value.
        :param reference_values: ``(block_number, value)`` pairs, positionally
            aligned with ``max_deviations``.
        :raises ValueIsNaNError: If the value or a reference is not a number.
        :raises ValueTooHighError: If the value exceeds max_value.
        :raises ValueTooLowError: If the value is below min_value.
        :raises MaxDeviationError: If a deviation limit is exceeded.
        """
        current = self._parse(value)
        self._validate_upper_bound(current)
        self._validate_lower_bound(current)
        self._validate_deviations(block_number, current, reference_values)

    def _parse(self, value: DecimalLike) -> DecimalValue:
        try:
            return DecimalValue(value)
        except NotANumberError as e:
            raise ValueIsNaNError(self.name, value) from e

    def _validate_upper_bound(self, value: DecimalValue) -> None:
        if not self.max_value >= value:
            raise ValueTooHighError(self.name, self.max_value, value)

    def _validate_lower_bound(self, value: DecimalValue) -> None:
        if not self.min_value <= value:
            raise ValueTooLowError(self.name, self.min_value, value)

    def _validate_deviations(
        self,
        block_number: int,
        value: DecimalValue,
        reference_values: Sequence[tuple[int, DecimalLike]],
    ) -> None:
        checks = min(len(reference_values), len(self.max_deviations))
        for i in range(checks):
            reference_block, raw_reference = reference_values[i]
            reference = self._parse(raw_reference)
            max_deviation = self.max_deviations[i]
            deviation = percentage_deviation(value, reference)
            if not deviation <= max_deviation:
                raise MaxDeviationError(
                    self.name,
                    deviation,
                    max_deviation,
                    block_number,
                    value,
                    reference_block,
                    reference,
                )
