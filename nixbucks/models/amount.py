"""
Exact Money Amounts

An Amount is an integer count of minor units (cents). All arithmetic stays
in integers, so sums and comparisons are exact and a balance computed over
thirty years of monthly subscriptions never drifts by a cent.

DESIGN DECISION: Input is never rounded. "10.005" is rejected rather than
quietly turned into 10.00 or 10.01; the user has to fix the value.
"""

from decimal import ROUND_HALF_EVEN, Decimal, InvalidOperation
from functools import total_ordering
from typing import Any, Union

from pydantic import GetCoreSchemaHandler
from pydantic_core import core_schema

from nixbucks.errors import InvalidAmountError


DECIMAL_PLACES = 2
MINOR_PER_UNIT = 10 ** DECIMAL_PLACES

# Largest magnitude (exclusive) accepted as input, in whole currency units.
# Sums and products computed from valid amounts are not bounded.
MAX_UNITS = 10 ** 13


AmountInput = Union["Amount", str, int, Decimal]


@total_ordering
class Amount:
    """
    Signed money value with fixed two-decimal precision.

    Construct from minor units (``Amount(1500)`` is 15.00) or parse a
    human value with ``Amount.parse("15.00")``.
    """

    __slots__ = ("_minor",)

    def __init__(self, minor_units: int = 0):
        if isinstance(minor_units, bool) or not isinstance(minor_units, int):
            raise InvalidAmountError(
                f"Amount must be built from integer minor units, got {minor_units!r}"
            )
        self._minor = minor_units

    @classmethod
    def zero(cls) -> "Amount":
        return cls(0)

    @classmethod
    def parse(cls, value: Any) -> "Amount":
        """
        Build an Amount from user or file input.

        Accepts an Amount, a decimal string, a Decimal, or an int meaning
        whole units. Floats are refused because they cannot represent most
        cent values exactly.

        Raises:
            InvalidAmountError: On anything else, on non-finite values,
                on more than two decimal places, or when out of range.
        """
        if isinstance(value, Amount):
            return value
        if isinstance(value, bool):
            raise InvalidAmountError(f"Not an amount: {value!r}")
        if isinstance(value, int):
            if abs(value) >= MAX_UNITS:
                raise InvalidAmountError(f"Amount out of range: {value}")
            return cls(value * MINOR_PER_UNIT)
        if isinstance(value, float):
            raise InvalidAmountError(
                f"Refusing binary float {value!r}; pass a string or Decimal"
            )
        if isinstance(value, str):
            text = value.strip().replace("_", "")
            if not text:
                raise InvalidAmountError("Amount is empty")
            try:
                value = Decimal(text)
            except InvalidOperation:
                raise InvalidAmountError(f"Not a number: {text!r}")
        if not isinstance(value, Decimal):
            raise InvalidAmountError(f"Not an amount: {value!r}")

        if not value.is_finite():
            raise InvalidAmountError(f"Amount must be finite, got {value}")
        if abs(value) >= MAX_UNITS:
            raise InvalidAmountError(f"Amount out of range: {value}")

        scaled = value * MINOR_PER_UNIT
        if scaled != scaled.to_integral_value():
            raise InvalidAmountError(
                f"Amount {value} has more than {DECIMAL_PLACES} decimal places"
            )
        return cls(int(scaled))

    @property
    def minor_units(self) -> int:
        return self._minor

    def to_decimal(self) -> Decimal:
        return Decimal(self._minor).scaleb(-DECIMAL_PLACES)

    def is_negative(self) -> bool:
        return self._minor < 0

    def format(self, places: int = DECIMAL_PLACES) -> str:
        """Render with a fixed number of decimal places."""
        quantum = Decimal(1).scaleb(-places)
        return str(self.to_decimal().quantize(quantum, rounding=ROUND_HALF_EVEN))

    # Arithmetic

    def __add__(self, other: "Amount") -> "Amount":
        if not isinstance(other, Amount):
            return NotImplemented
        return Amount(self._minor + other._minor)

    def __radd__(self, other: Any) -> "Amount":
        # sum() starts from int 0
        if isinstance(other, int) and not isinstance(other, bool) and other == 0:
            return self
        return NotImplemented

    def __sub__(self, other: "Amount") -> "Amount":
        if not isinstance(other, Amount):
            return NotImplemented
        return Amount(self._minor - other._minor)

    def __neg__(self) -> "Amount":
        return Amount(-self._minor)

    def __abs__(self) -> "Amount":
        return Amount(abs(self._minor))

    def __mul__(self, count: int) -> "Amount":
        if isinstance(count, bool) or not isinstance(count, int):
            return NotImplemented
        return Amount(self._minor * count)

    __rmul__ = __mul__

    # Comparison

    def __eq__(self, other: Any) -> bool:
        if not isinstance(other, Amount):
            return NotImplemented
        return self._minor == other._minor

    def __lt__(self, other: "Amount") -> bool:
        if not isinstance(other, Amount):
            return NotImplemented
        return self._minor < other._minor

    def __hash__(self) -> int:
        return hash(self._minor)

    def __bool__(self) -> bool:
        return self._minor != 0

    # Immutable, so copies can share the instance
    def __copy__(self) -> "Amount":
        return self

    def __deepcopy__(self, memo: dict) -> "Amount":
        return self

    def __str__(self) -> str:
        return self.format()

    def __repr__(self) -> str:
        return f"Amount('{self.format()}')"

    @classmethod
    def __get_pydantic_core_schema__(
        cls,
        source_type: Any,
        handler: GetCoreSchemaHandler,
    ) -> core_schema.CoreSchema:
        # Stored as a decimal string so files stay exact and hand-editable
        return core_schema.no_info_plain_validator_function(
            cls.parse,
            serialization=core_schema.plain_serializer_function_ser_schema(
                str, when_used="json"
            ),
        )
