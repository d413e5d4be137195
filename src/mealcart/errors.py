"""Exception hierarchy for the shopping-list engine.

Parse errors and unit conflicts are recoverable: the engine collects them and
returns them next to its best-effort result. ``UnknownRecipeError`` is a caller
error and is raised.
"""

from typing import Any


class MealcartError(Exception):
    """Base exception for mealcart errors."""


class ParseError(MealcartError):
    """A recipe or ingredient line that does not match the grammar."""

    def __init__(
        self,
        reason: str,
        line_number: int | None = None,
        raw_text: str = "",
        recipe_id: str | None = None,
    ):
        super().__init__(reason)
        self.reason = reason
        self.line_number = line_number
        self.raw_text = raw_text
        self.recipe_id = recipe_id

    def at(self, line_number: int, raw_text: str) -> "ParseError":
        """Attach the position of the offending line."""
        self.line_number = line_number
        self.raw_text = raw_text
        return self

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for API responses."""
        return {
            "kind": type(self).__name__,
            "recipe_id": self.recipe_id,
            "line_number": self.line_number,
            "raw_text": self.raw_text,
            "reason": self.reason,
        }

    def __str__(self) -> str:
        if self.line_number is None:
            return self.reason
        return f"line {self.line_number}: {self.reason} ({self.raw_text!r})"


class UnknownUnit(ParseError):
    """A unit token outside the unit vocabulary."""

    def __init__(self, token: str, line_number: int | None = None, raw_text: str = ""):
        super().__init__(f"unknown unit {token!r}", line_number, raw_text)
        self.token = token


class MissingQuantity(ParseError):
    """An ingredient line without a parsable leading amount."""

    def __init__(self, line_number: int | None = None, raw_text: str = ""):
        super().__init__("missing leading quantity", line_number, raw_text)


class UnitConflict(MealcartError):
    """Attempted addition of quantities whose units cannot be combined."""

    def __init__(self, unit_a: Any, unit_b: Any, key: Any = None):
        self.unit_a = unit_a
        self.unit_b = unit_b
        self.key = key
        super().__init__(self._message())

    def _message(self) -> str:
        units = f"{self.unit_a.value!s} and {self.unit_b.value!s}"
        if self.key is None:
            return f"cannot add {units}"
        return f"cannot add {units} for {self.key}"

    def with_key(self, key: Any) -> "UnitConflict":
        """Return a copy of this conflict bound to an ingredient key."""
        return UnitConflict(self.unit_a, self.unit_b, key)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for API responses."""
        return {
            "kind": "UnitConflict",
            "key": str(self.key) if self.key is not None else None,
            "unit_a": self.unit_a.value,
            "unit_b": self.unit_b.value,
        }


class UnknownRecipeError(MealcartError, KeyError):
    """A meal plan references a recipe id that was not supplied."""

    def __init__(self, recipe_id: str):
        super().__init__(f"meal plan references unknown recipe {recipe_id!r}")
        self.recipe_id = recipe_id

    def __str__(self) -> str:
        return self.args[0]
