"""CompositePriceValidator: Validates every field of a price snapshot.

One AssetLimitValidator is owned per field name. For each field of the
current snapshot, in insertion order, a per-field reference list is built
from the reference snapshots. A reference snapshot that lacks the field
contributes the current value instead, so that entry has zero deviation.
The first failing field aborts validation.
"""

from __future__ import annotations

import logging
from typing import Mapping, NamedTuple, Sequence

from .AssetLimitValidator import AssetLimitConfig, AssetLimitValidator
from .DecimalValue import DecimalLike
from .errors import MissingReferenceValueError

logger = logging.getLogger(__name__)

PriceSnapshot = Mapping[str, DecimalLike]


class ReferenceEntry(NamedTuple):
    """A snapshot read at a historical block.

    :ivar block_number: Block the snapshot was read at.
    :ivar snapshot: Field values at that block.
    """

    block_number: int
    snapshot: PriceSnapshot


class CompositePriceValidator:
    """Validates multi-field price snapshots.

    :ivar validators: Field name to validator mapping.

    .. code-block:: python

        >>> validator = CompositePriceValidator(
        ...     ["atomPrice", "bAtomPrice"],
        ...     {"bAtomPrice": AssetLimitConfig(max_value=36, min_value=25)},
        ... )
        >>> validator.validate(1000, {"atomPrice": "30", "bAtomPrice": "30"}, [])
    """

    def __init__(
        self,
        fields: Sequence[str],
        limits: Mapping[str, AssetLimitConfig] | None = None,
    ) -> None:
        """Initialize with one validator per field.

        :param fields: Field names snapshots may contain.
        :param limits: Limits per field; fields without limits are unbounded.
        :raises ValueError: If limits name a field not in ``fields``.
        """
        limits = limits or {}
        unknown = [name for name in limits if name not in fields]
        if unknown:
            raise ValueError(f"Limits configured for unknown fields: {unknown}")

        self.validators: dict[str, AssetLimitValidator] = {
            name: AssetLimitValidator(name, limits.get(name)) for name in fields
        }

    @property
    def fields(self) -> list[str]:
        return list(self.validators)

    def validate(
        self,
        block_number: int,
        snapshot: PriceSnapshot,
        reference_entries: Sequence[tuple[int, PriceSnapshot]],
    ) -> None:
        """Validate a snapshot against reference snapshots.

        :param block_number: Block the current snapshot was read at.
        :param snapshot: Current field values.
        :param reference_entries: ``(block_number, snapshot)`` pairs in
            configured offset order.
        :raises ValueError: If the snapshot contains an unknown field.
        :raises MissingReferenceValueError: If neither a reference nor the
            current snapshot provides a value for a field.
        :raises PriceValidationError: On the first violated limit.
        """
        for name, value in snapshot.items():
            validator = self.validators.get(name)
            if validator is None:
                raise ValueError(f"No validator configured for field {name!r}")

            references: list[tuple[int, DecimalLike]] = []
            for reference_block, reference_snapshot in reference_entries:
                reference = reference_snapshot.get(name)
                if reference is None:
                    reference = value
                if reference is None:
                    raise MissingReferenceValueError(name, reference_block)
                references.append((reference_block, reference))

            validator.validate(block_number, value, references)
            logger.debug(f"{name}={value} passed validation at block {block_number}")
