"""DecimalValue: Arbitrary-precision decimal used for all price arithmetic.

Wraps :class:`decimal.Decimal` with a private context so that results do not
depend on the thread's decimal context. Division by zero does not raise:
a non-zero dividend yields a signed infinity and ``0 / 0`` yields NaN.
NaN can only arise from arithmetic, never from parsing.

.. code-block:: python

    >>> value = DecimalValue("1.021")
    >>> abs(DecimalValue(1) - value) / DecimalValue(1) * 100
    DecimalValue('2.1')
    >>> DecimalValue(1) / 0
    DecimalValue('Infinity')
    >>> DecimalValue("30.123456785").to_fixed(8)
    '30.12345679'
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Context, Decimal, InvalidOperation
from typing import Union

from .errors import NotANumberError

# Enough precision for uint256 on-chain values scaled by 1e18.
_CONTEXT = Context(prec=100, rounding=ROUND_HALF_UP, traps=[])

DecimalLike = Union["DecimalValue", Decimal, int, float, str]


def _exact_context(digits: int) -> Context:
    """Context holding at least ``digits`` significant digits.

    Formatting must never round away integer digits, so an operation that
    still does not fit raises InvalidOperation instead of yielding NaN.
    """
    return Context(
        prec=max(_CONTEXT.prec, digits),
        rounding=ROUND_HALF_UP,
        traps=[InvalidOperation],
    )


def _parse(value: object) -> Decimal:
    """Convert a supported input into a non-NaN Decimal.

    :param value: Input value.
    :returns: Parsed Decimal.
    :raises NotANumberError: If the input is not parseable or is NaN.
    """
    if isinstance(value, DecimalValue):
        return value._value
    if value is None or isinstance(value, bool):
        raise NotANumberError(value)
    if isinstance(value, Decimal):
        parsed = value
    elif isinstance(value, int):
        parsed = Decimal(value)
    elif isinstance(value, float):
        # repr() keeps the shortest round-tripping form, so 1.021 stays 1.021
        parsed = Decimal(repr(value))
    elif isinstance(value, str):
        text = value.strip()
        if not text:
            raise NotANumberError(value)
        try:
            parsed = Decimal(text)
        except InvalidOperation as e:
            raise NotANumberError(value) from e
    else:
        raise NotANumberError(value)

    if parsed.is_nan():
        raise NotANumberError(value)
    return parsed


class DecimalValue:
    """Immutable arbitrary-precision decimal number.

    Comparisons involving NaN are always False, matching IEEE semantics
    without raising.
    """

    __slots__ = ("_value",)

    def __init__(self, value: DecimalLike) -> None:
        """Parse a value.

        :param value: String, int, float, Decimal or DecimalValue.
        :raises NotANumberError: If the value is None, empty, unparseable or NaN.
        """
        self._value = _parse(value)

    @classmethod
    def _wrap(cls, raw: Decimal) -> DecimalValue:
        instance = cls.__new__(cls)
        instance._value = raw
        return instance

    def to_decimal(self) -> Decimal:
        """Return the underlying Decimal."""
        return self._value

    def is_nan(self) -> bool:
        return self._value.is_nan()

    def is_finite(self) -> bool:
        return self._value.is_finite()

    def is_zero(self) -> bool:
        return self._value.is_zero()

    def __add__(self, other: DecimalLike) -> DecimalValue:
        return DecimalValue._wrap(_CONTEXT.add(self._value, _parse(other)))

    def __radd__(self, other: DecimalLike) -> DecimalValue:
        return DecimalValue(other) + self

    def __sub__(self, other: DecimalLike) -> DecimalValue:
        return DecimalValue._wrap(_CONTEXT.subtract(self._value, _parse(other)))

    def __rsub__(self, other: DecimalLike) -> DecimalValue:
        return DecimalValue(other) - self

    def __mul__(self, other: DecimalLike) -> DecimalValue:
        return DecimalValue._wrap(_CONTEXT.multiply(self._value, _parse(other)))

    def __rmul__(self, other: DecimalLike) -> DecimalValue:
        return DecimalValue(other) * self

    def __truediv__(self, other: DecimalLike) -> DecimalValue:
        divisor = _parse(other)
        if divisor.is_zero():
            if self.is_zero() or self.is_nan():
                return NAN
            return POSITIVE_INFINITY if self._value > 0 else NEGATIVE_INFINITY
        return DecimalValue._wrap(_CONTEXT.divide(self._value, divisor))

    def __rtruediv__(self, other: DecimalLike) -> DecimalValue:
        return DecimalValue(other) / self

    def __abs__(self) -> DecimalValue:
        return DecimalValue._wrap(_CONTEXT.abs(self._value))

    def __neg__(self) -> DecimalValue:
        return DecimalValue._wrap(_CONTEXT.minus(self._value))

    def _compare(self, other: object) -> int | None:
        """Return -1, 0 or 1, or None if either side is NaN."""
        try:
            right = _parse(other)
        except NotANumberError:
            return None
        if self._value.is_nan() or right.is_nan():
            return None
        return int(_CONTEXT.compare(self._value, right))

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, (DecimalValue, Decimal, int, float, str)):
            return NotImplemented
        return self._compare(other) == 0

    def __hash__(self) -> int:
        return hash(self._value)

    def __lt__(self, other: DecimalLike) -> bool:
        return self._compare(other) == -1

    def __le__(self, other: DecimalLike) -> bool:
        return self._compare(other) in (-1, 0)

    def __gt__(self, other: DecimalLike) -> bool:
        return self._compare(other) == 1

    def __ge__(self, other: DecimalLike) -> bool:
        return self._compare(other) in (0, 1)

    def to_fixed(self, digits: int = 8) -> str:
        """Format with a fixed number of fractional digits, rounding half up.

        :param digits: Number of fractional digits.
        :returns: Fixed-point string; non-finite values render as
            ``"Infinity"``, ``"-Infinity"`` or ``"NaN"``.
        """
        if not self.is_finite():
            return str(self)
        quantum = Decimal(1).scaleb(-digits)
        context = _exact_context(self._value.adjusted() + digits + 2)
        return format(self._value.quantize(quantum, context=context), "f")

    def __str__(self) -> str:
        if self.is_nan():
            return "NaN"
        if self._value.is_infinite():
            return "-Infinity" if self._value.is_signed() else "Infinity"
        if self.is_zero():
            return "0"
        context = _exact_context(len(self._value.as_tuple().digits))
        return format(self._value.normalize(context), "f")

    def __repr__(self) -> str:
        return f"DecimalValue('{self}')"


NAN = DecimalValue._wrap(Decimal("NaN"))
POSITIVE_INFINITY = DecimalValue._wrap(Decimal("Infinity"))
NEGATIVE_INFINITY = DecimalValue._wrap(Decimal("-Infinity"))
