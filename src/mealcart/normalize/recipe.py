"""Immutable recipe value types produced by the recipe parser."""

import re
from dataclasses import dataclass, field
from datetime import timedelta

from mealcart.normalize.units import Quantity, UnitFamily


def normalize_name(name: str | None) -> str:
    """
    Normalize an ingredient name or form for matching.

    - Lowercase
    - Trim and collapse internal whitespace
    """
    if not name:
        return ""
    return " ".join(name.lower().split())


def slugify(text: str) -> str:
    """Derive a stable identifier from a recipe title."""
    return re.sub(r"[^a-z0-9]+", "-", text.lower()).strip("-")


@dataclass(frozen=True)
class IngredientKey:
    """Identity of an ingredient for merge purposes: (name, form, measure type)."""

    name: str
    form: str | None = None
    measure_type: UnitFamily = UnitFamily.COUNT

    def __post_init__(self) -> None:
        object.__setattr__(self, "name", normalize_name(self.name))
        object.__setattr__(self, "form", normalize_name(self.form) or None)
        object.__setattr__(self, "measure_type", UnitFamily(self.measure_type))

    def sort_key(self) -> tuple[str, str, str]:
        return (self.name, self.form or "", self.measure_type.value)

    def __str__(self) -> str:
        form = f" ({self.form})" if self.form else ""
        return f"{self.name}{form} [{self.measure_type.value}]"


@dataclass(frozen=True)
class IngredientLine:
    """A single ingredient with its quantity, owned by one recipe."""

    key: IngredientKey
    quantity: Quantity

    def __post_init__(self) -> None:
        if self.key.measure_type != self.quantity.family:
            raise ValueError(
                f"measure type {self.key.measure_type.value} does not match "
                f"quantity {self.quantity}"
            )

    @classmethod
    def create(cls, name: str, quantity: Quantity, form: str | None = None) -> "IngredientLine":
        """Build a line, deriving the key's measure type from the quantity."""
        return cls(IngredientKey(name, form, quantity.family), quantity)

    @property
    def name(self) -> str:
        return self.key.name

    @property
    def form(self) -> str | None:
        return self.key.form

    def __str__(self) -> str:
        form = f" ({self.form})" if self.form else ""
        return f"{self.quantity} {self.name}{form}"


@dataclass(frozen=True)
class Step:
    """A recipe step: optional prep time, instructions and its ingredients."""

    instructions: str = ""
    ingredient_lines: tuple[IngredientLine, ...] = ()
    prep_time: timedelta | None = None


@dataclass(frozen=True)
class Recipe:
    """A parsed recipe. Re-parsing an edited recipe produces a new value."""

    id: str
    title: str
    steps: tuple[Step, ...] = ()
    description: str | None = None
    source_text: str | None = field(default=None, repr=False, compare=False)

    @classmethod
    def from_lines(cls, id: str, title: str, lines: list[IngredientLine]) -> "Recipe":
        """Build a single-step recipe from ingredient lines."""
        return cls(id=id, title=title, steps=(Step(ingredient_lines=tuple(lines)),))

    @property
    def ingredient_lines(self) -> tuple[IngredientLine, ...]:
        """All ingredient lines across steps, in recipe order."""
        return tuple(line for step in self.steps for line in step.ingredient_lines)
