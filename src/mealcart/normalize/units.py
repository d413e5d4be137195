"""Units, exact amounts, and unit-aware quantity arithmetic."""

import re
from dataclasses import dataclass
from enum import Enum
from fractions import Fraction

from mealcart.errors import MissingQuantity, ParseError, UnitConflict, UnknownUnit
from mealcart.logging_config import get_logger

logger = get_logger(__name__)

# An amount is either a whole count (int) or a reduced Fraction. Fractions with
# denominator 1 are always folded back into int.
Amount = int | Fraction


class UnitFamily(str, Enum):
    """Partition of units that may be summed directly."""

    VOLUME = "volume"
    WEIGHT = "weight"
    COUNT = "count"
    PACKAGE = "package"


class Unit(str, Enum):
    """Closed unit vocabulary. Values are the canonical display symbols."""

    # US customary volume
    TSP = "tsp"
    TBSP = "tbsp"
    FLOZ = "floz"
    CUP = "cup"
    PINT = "pint"
    QUART = "quart"
    GALLON = "gallon"
    # Metric volume
    ML = "ml"
    LITER = "ltr"
    # Weight
    MILLIGRAM = "mg"
    GRAM = "g"
    KILOGRAM = "kg"
    OUNCE = "oz"
    POUND = "lb"
    # Unitless
    COUNT = "count"
    # Packages, only summable with themselves
    CAN = "can"
    JAR = "jar"
    PACKAGE = "package"
    BAG = "bag"
    BOX = "box"
    BOTTLE = "bottle"
    BUNCH = "bunch"

    @property
    def family(self) -> UnitFamily:
        return UNIT_FAMILIES[self]

    @property
    def metric(self) -> bool:
        return self in METRIC_UNITS


# =============================================================================
# Unit Conversion Tables
# =============================================================================

UNIT_FAMILIES: dict[Unit, UnitFamily] = {
    Unit.TSP: UnitFamily.VOLUME,
    Unit.TBSP: UnitFamily.VOLUME,
    Unit.FLOZ: UnitFamily.VOLUME,
    Unit.CUP: UnitFamily.VOLUME,
    Unit.PINT: UnitFamily.VOLUME,
    Unit.QUART: UnitFamily.VOLUME,
    Unit.GALLON: UnitFamily.VOLUME,
    Unit.ML: UnitFamily.VOLUME,
    Unit.LITER: UnitFamily.VOLUME,
    Unit.MILLIGRAM: UnitFamily.WEIGHT,
    Unit.GRAM: UnitFamily.WEIGHT,
    Unit.KILOGRAM: UnitFamily.WEIGHT,
    Unit.OUNCE: UnitFamily.WEIGHT,
    Unit.POUND: UnitFamily.WEIGHT,
    Unit.COUNT: UnitFamily.COUNT,
    Unit.CAN: UnitFamily.PACKAGE,
    Unit.JAR: UnitFamily.PACKAGE,
    Unit.PACKAGE: UnitFamily.PACKAGE,
    Unit.BAG: UnitFamily.PACKAGE,
    Unit.BOX: UnitFamily.PACKAGE,
    Unit.BOTTLE: UnitFamily.PACKAGE,
    Unit.BUNCH: UnitFamily.PACKAGE,
}

BASE_UNITS: dict[UnitFamily, Unit | None] = {
    UnitFamily.VOLUME: Unit.TSP,
    UnitFamily.WEIGHT: Unit.GRAM,
    UnitFamily.COUNT: Unit.COUNT,
    # Each package unit is its own base
    UnitFamily.PACKAGE: None,
}

# Volume in teaspoons (1 tsp = 5 ml), weight in grams.
BASE_FACTORS: dict[Unit, Fraction] = {
    Unit.TSP: Fraction(1),
    Unit.TBSP: Fraction(3),
    Unit.FLOZ: Fraction(6),
    Unit.CUP: Fraction(48),
    Unit.PINT: Fraction(96),
    Unit.QUART: Fraction(192),
    Unit.GALLON: Fraction(768),
    Unit.ML: Fraction(1, 5),
    Unit.LITER: Fraction(200),
    Unit.MILLIGRAM: Fraction(1, 1000),
    Unit.GRAM: Fraction(1),
    Unit.KILOGRAM: Fraction(1000),
    # Approximations, kept exact so sums stay reproducible
    Unit.OUNCE: Fraction(2834952, 100000),
    Unit.POUND: Fraction(4535924, 10000),
    Unit.COUNT: Fraction(1),
    Unit.CAN: Fraction(1),
    Unit.JAR: Fraction(1),
    Unit.PACKAGE: Fraction(1),
    Unit.BAG: Fraction(1),
    Unit.BOX: Fraction(1),
    Unit.BOTTLE: Fraction(1),
    Unit.BUNCH: Fraction(1),
}

METRIC_UNITS = frozenset({Unit.ML, Unit.LITER, Unit.MILLIGRAM, Unit.GRAM, Unit.KILOGRAM})

# Candidate display units, largest first.
NORMALIZE_LADDERS: dict[tuple[UnitFamily, bool], tuple[Unit, ...]] = {
    (UnitFamily.VOLUME, True): (Unit.LITER, Unit.ML),
    (UnitFamily.VOLUME, False): (
        Unit.GALLON,
        Unit.QUART,
        Unit.PINT,
        Unit.CUP,
        Unit.TBSP,
        Unit.TSP,
    ),
    (UnitFamily.WEIGHT, True): (Unit.KILOGRAM, Unit.GRAM, Unit.MILLIGRAM),
    (UnitFamily.WEIGHT, False): (Unit.POUND, Unit.OUNCE),
}

# Accepted spellings, matched case-insensitively.
UNIT_TOKENS: dict[str, Unit] = {
    "tsp": Unit.TSP,
    "tsps": Unit.TSP,
    "teaspoon": Unit.TSP,
    "teaspoons": Unit.TSP,
    "tbsp": Unit.TBSP,
    "tbsps": Unit.TBSP,
    "tbs": Unit.TBSP,
    "tablespoon": Unit.TBSP,
    "tablespoons": Unit.TBSP,
    "floz": Unit.FLOZ,
    "cup": Unit.CUP,
    "cups": Unit.CUP,
    "pint": Unit.PINT,
    "pints": Unit.PINT,
    "pt": Unit.PINT,
    "pnt": Unit.PINT,
    "quart": Unit.QUART,
    "quarts": Unit.QUART,
    "qt": Unit.QUART,
    "qrt": Unit.QUART,
    "qrts": Unit.QUART,
    "gallon": Unit.GALLON,
    "gallons": Unit.GALLON,
    "gal": Unit.GALLON,
    "gals": Unit.GALLON,
    "ml": Unit.ML,
    "milliliter": Unit.ML,
    "milliliters": Unit.ML,
    "millilitre": Unit.ML,
    "millilitres": Unit.ML,
    "l": Unit.LITER,
    "ltr": Unit.LITER,
    "liter": Unit.LITER,
    "liters": Unit.LITER,
    "litre": Unit.LITER,
    "litres": Unit.LITER,
    "mg": Unit.MILLIGRAM,
    "milligram": Unit.MILLIGRAM,
    "milligrams": Unit.MILLIGRAM,
    "g": Unit.GRAM,
    "gram": Unit.GRAM,
    "grams": Unit.GRAM,
    "kg": Unit.KILOGRAM,
    "kilogram": Unit.KILOGRAM,
    "kilograms": Unit.KILOGRAM,
    "oz": Unit.OUNCE,
    "ounce": Unit.OUNCE,
    "ounces": Unit.OUNCE,
    "lb": Unit.POUND,
    "lbs": Unit.POUND,
    "pound": Unit.POUND,
    "pounds": Unit.POUND,
    "count": Unit.COUNT,
    "cnt": Unit.COUNT,
    "can": Unit.CAN,
    "cans": Unit.CAN,
    "jar": Unit.JAR,
    "jars": Unit.JAR,
    "package": Unit.PACKAGE,
    "packages": Unit.PACKAGE,
    "pkg": Unit.PACKAGE,
    "pkgs": Unit.PACKAGE,
    "bag": Unit.BAG,
    "bags": Unit.BAG,
    "box": Unit.BOX,
    "boxes": Unit.BOX,
    "bottle": Unit.BOTTLE,
    "bottles": Unit.BOTTLE,
    "bunch": Unit.BUNCH,
    "bunches": Unit.BUNCH,
}


def identify_unit(token: str) -> Unit | None:
    """Look up a unit token, ignoring case and a trailing period."""
    return UNIT_TOKENS.get(token.strip().lower().rstrip("."))


def can_aggregate(unit_a: Unit, unit_b: Unit) -> bool:
    """
    Check if two units can be summed.

    Units of the same family can be summed, except package units which only
    sum with the very same package unit.
    """
    if unit_a.family != unit_b.family:
        return False
    if unit_a.family == UnitFamily.PACKAGE:
        return unit_a == unit_b
    return True


# =============================================================================
# Amounts
# =============================================================================


def normalize_amount(amount: Amount) -> Amount:
    """Reduce an amount, folding whole fractions back into int."""
    if isinstance(amount, bool) or not isinstance(amount, (int, Fraction)):
        raise TypeError(f"amount must be int or Fraction, not {type(amount).__name__}")
    if amount < 0:
        raise ValueError(f"amount must not be negative: {amount}")
    if isinstance(amount, Fraction) and amount.denominator == 1:
        return amount.numerator
    return amount


def format_amount(amount: Amount) -> str:
    """
    Format an amount for display.

    Examples:
        3 -> "3"
        Fraction(1, 2) -> "1/2"
        Fraction(5, 2) -> "2 1/2"
    """
    if isinstance(amount, int):
        return str(amount)
    whole, numerator = divmod(amount.numerator, amount.denominator)
    if whole == 0:
        return f"{numerator}/{amount.denominator}"
    return f"{whole} {numerator}/{amount.denominator}"


_AMOUNT_RE = re.compile(
    r"""
    (?P<whole>\d+)\s+(?P<mixed_num>\d+)\s*/\s*(?P<mixed_den>\d+)   # 1 1/2
    | (?P<num>\d+)\s*/\s*(?P<den>\d+)                             # 1/2
    | (?P<decimal>\d+\.\d+)                                       # 1.5
    | (?P<integer>\d+)                                            # 2
    """,
    re.VERBOSE,
)

_UNIT_TOKEN_RE = re.compile(r"\s*([^\W\d_]+)\.?")


def _amount_from_match(match: re.Match[str]) -> Amount:
    try:
        return _convert_amount(match)
    except ValueError:
        # int() refuses digit runs beyond sys.get_int_max_str_digits()
        raise ParseError(f"amount too large ({len(match.group(0))} characters)") from None


def _convert_amount(match: re.Match[str]) -> Amount:
    if match.group("integer") is not None:
        return int(match.group("integer"))
    if match.group("decimal") is not None:
        return normalize_amount(Fraction(match.group("decimal")))
    if match.group("num") is not None:
        whole, num, den = 0, int(match.group("num")), int(match.group("den"))
    else:
        whole = int(match.group("whole"))
        num, den = int(match.group("mixed_num")), int(match.group("mixed_den"))
    if den == 0:
        raise ParseError(f"zero denominator in {match.group(0)!r}")
    return normalize_amount(whole + Fraction(num, den))


def split_measure(text: str) -> tuple[Amount, Unit | None, str]:
    """
    Split a leading measure off a piece of text.

    Returns:
        Tuple of (amount, unit or None, remaining text).

    Examples:
        "2 cups flour" -> (2, Unit.CUP, " flour")
        "500g butter" -> (500, Unit.GRAM, " butter")
        "3 eggs" -> (3, None, " eggs")
    """
    stripped = text.lstrip()
    match = _AMOUNT_RE.match(stripped)
    if not match:
        raise MissingQuantity()

    amount = _amount_from_match(match)
    rest = stripped[match.end() :]
    if rest and not (rest[0].isspace() or rest[0].isalpha()):
        raise ParseError(f"unsupported quantity expression {stripped[: match.end() + 1]!r}")
    if rest[:1].isspace() and rest.lstrip()[:1].isdigit():
        # "2 3 eggs" is most likely a mangled "2 3/4"
        raise ParseError(f"ambiguous quantity expression {stripped[: match.end() + 2].strip()!r}")

    glued = bool(rest) and rest[0].isalpha()
    token_match = _UNIT_TOKEN_RE.match(rest)
    unit = None
    if token_match:
        token = token_match.group(1)
        unit = identify_unit(token)
        if unit is None and glued:
            # A letter run stuck to the number can only be meant as a unit
            raise UnknownUnit(token)
        if unit is not None:
            rest = rest[token_match.end() :]
            if rest and not rest[0].isspace():
                if glued:
                    raise UnknownUnit(token + rest.split()[0])
                # "2 g(rated)"-style text is not a unit after all
                unit, rest = None, stripped[match.end() :]
    return amount, unit, rest


# =============================================================================
# Quantity
# =============================================================================


@dataclass(frozen=True)
class Quantity:
    """An exact amount paired with a unit."""

    amount: Amount
    unit: Unit = Unit.COUNT

    def __post_init__(self) -> None:
        if not isinstance(self.unit, Unit):
            raise TypeError(f"unit must be a Unit, not {type(self.unit).__name__}")
        object.__setattr__(self, "amount", normalize_amount(self.amount))

    @property
    def family(self) -> UnitFamily:
        return self.unit.family

    def to_base(self) -> Fraction:
        """Get the amount expressed in the family's base unit."""
        return Fraction(self.amount) * BASE_FACTORS[self.unit]

    def convert(self, unit: Unit) -> "Quantity":
        """Re-express this quantity in another unit of the same family."""
        if not can_aggregate(self.unit, unit):
            raise UnitConflict(self.unit, unit)
        return Quantity(self.to_base() / BASE_FACTORS[unit], unit)

    def add(self, other: "Quantity") -> "Quantity":
        """
        Add two quantities of the same unit family.

        Both operands are converted to the base unit and summed exactly. The
        sum is expressed in the unit of the larger operand (the left one on a
        tie).

        Raises:
            UnitConflict: If the units cannot be combined.
        """
        if not can_aggregate(self.unit, other.unit):
            raise UnitConflict(self.unit, other.unit)
        left, right = self.to_base(), other.to_base()
        unit = self.unit if left >= right else other.unit
        return Quantity((left + right) / BASE_FACTORS[unit], unit)

    def scale(self, factor: int) -> "Quantity":
        """Multiply the amount by a positive integer factor."""
        if isinstance(factor, bool) or not isinstance(factor, int) or factor < 1:
            raise ValueError(f"scale factor must be a positive integer, not {factor!r}")
        return Quantity(self.amount * factor, self.unit)

    def compare(self, other: "Quantity") -> int:
        """
        Compare two quantities of the same family by their base amounts.

        Returns:
            -1, 0 or 1.

        Raises:
            UnitConflict: If the quantities belong to different families.
        """
        if not can_aggregate(self.unit, other.unit):
            raise UnitConflict(self.unit, other.unit)
        left, right = self.to_base(), other.to_base()
        return (left > right) - (left < right)

    def normalized(self) -> "Quantity":
        """
        Re-express in the largest unit whose amount is at least one.

        Metric quantities stay metric and US customary quantities stay
        customary. Count and package quantities are returned unchanged.
        """
        ladder = NORMALIZE_LADDERS.get((self.family, self.unit.metric))
        if ladder is None:
            return self
        base = self.to_base()
        for unit in ladder:
            if base / BASE_FACTORS[unit] >= 1:
                return Quantity(base / BASE_FACTORS[unit], unit)
        return self

    def format(self) -> str:
        """Format as text that ``Quantity.parse`` reads back."""
        amount = format_amount(self.amount)
        if self.unit == Unit.COUNT:
            return amount
        return f"{amount} {self.unit.value}"

    @classmethod
    def parse(cls, text: str) -> "Quantity":
        """
        Parse a measure such as "2", "1/2 cup" or "1 1/2 tbsp".

        Raises:
            MissingQuantity: If the text has no leading amount.
            UnknownUnit: If the unit token is not in the vocabulary.
            ParseError: For any other malformed text.
        """
        amount, unit, rest = split_measure(text)
        leftover = rest.split()
        if leftover:
            if unit is None:
                raise UnknownUnit(leftover[0])
            raise ParseError(f"unexpected text after unit: {' '.join(leftover)!r}")
        return cls(amount, unit or Unit.COUNT)

    def __add__(self, other: "Quantity") -> "Quantity":
        if not isinstance(other, Quantity):
            return NotImplemented
        return self.add(other)

    def __mul__(self, factor: int) -> "Quantity":
        if not isinstance(factor, int):
            return NotImplemented
        return self.scale(factor)

    __rmul__ = __mul__

    def __lt__(self, other: "Quantity") -> bool:
        return self.compare(other) < 0

    def __le__(self, other: "Quantity") -> bool:
        return self.compare(other) <= 0

    def __gt__(self, other: "Quantity") -> bool:
        return self.compare(other) > 0

    def __ge__(self, other: "Quantity") -> bool:
        return self.compare(other) >= 0

    def __str__(self) -> str:
        return self.format()


# =============================================================================
# Functional API
# =============================================================================


def add_quantities(a: Quantity, b: Quantity) -> Quantity:
    """Add two quantities. Raises UnitConflict across families."""
    return a.add(b)


def scale_quantity(quantity: Quantity, factor: int) -> Quantity:
    """Scale a quantity by a positive integer factor."""
    return quantity.scale(factor)


def compare_quantities(a: Quantity, b: Quantity) -> int:
    """Compare two quantities of the same family."""
    return a.compare(b)


def format_quantity(quantity: Quantity) -> str:
    """Format a quantity as text."""
    return quantity.format()


def parse_quantity(text: str) -> Quantity:
    """Parse a quantity from text."""
    return Quantity.parse(text)
