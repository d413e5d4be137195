"""Meal plan, user override and shopping list value types."""

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from datetime import date
from enum import Enum

from mealcart.normalize.recipe import IngredientKey, normalize_name
from mealcart.normalize.units import Quantity, UnitFamily


@dataclass(frozen=True)
class PlannedRecipe:
    """A recipe scheduled at a multiplier."""

    recipe_id: str
    count: int = 1

    def __post_init__(self) -> None:
        if isinstance(self.count, bool) or not isinstance(self.count, int) or self.count < 1:
            raise ValueError(f"planned count must be a positive integer, not {self.count!r}")


@dataclass(frozen=True)
class MealPlan:
    """The recipes a user scheduled for one date."""

    user: str
    plan_date: date
    planned_recipes: frozenset[PlannedRecipe] = frozenset()

    def __post_init__(self) -> None:
        object.__setattr__(self, "planned_recipes", frozenset(self.planned_recipes))

    @classmethod
    def from_counts(cls, user: str, plan_date: date, counts: Mapping[str, int]) -> "MealPlan":
        """Build a plan from a recipe id -> count mapping, skipping zero counts."""
        return cls(
            user=user,
            plan_date=plan_date,
            planned_recipes=frozenset(
                PlannedRecipe(recipe_id, count) for recipe_id, count in counts.items() if count
            ),
        )

    @property
    def recipe_ids(self) -> list[str]:
        return sorted(planned.recipe_id for planned in self.planned_recipes)

    def counts(self) -> dict[str, int]:
        return {p.recipe_id: p.count for p in sorted(self.planned_recipes, key=lambda p: p.recipe_id)}


def latest_plan(plans: Iterable[MealPlan], user: str) -> MealPlan | None:
    """Select the plan with the most recent date for a user."""
    candidates = [plan for plan in plans if plan.user == user]
    if not candidates:
        return None
    return max(candidates, key=lambda plan: plan.plan_date)


# =============================================================================
# User Overrides
# =============================================================================


@dataclass(frozen=True)
class FilteredIngredient:
    """Excludes an ingredient key from the final list."""

    user: str
    plan_date: date
    key: IngredientKey


@dataclass(frozen=True)
class ModifiedAmount:
    """Replaces the computed quantity of an ingredient key."""

    user: str
    plan_date: date
    key: IngredientKey
    quantity: Quantity


@dataclass(frozen=True)
class ExtraItem:
    """A manually added item with no backing recipe, keyed by name only."""

    user: str
    plan_date: date
    name: str
    quantity: Quantity

    def __post_init__(self) -> None:
        object.__setattr__(self, "name", normalize_name(self.name))
        if not self.name:
            raise ValueError("extra item name must not be empty")


@dataclass(frozen=True)
class CategoryMapping:
    """Maps an ingredient name to a display category for a user."""

    user: str
    ingredient_name: str
    category_name: str

    def __post_init__(self) -> None:
        object.__setattr__(self, "ingredient_name", normalize_name(self.ingredient_name))
        object.__setattr__(self, "category_name", self.category_name.strip())


# =============================================================================
# Shopping List Output
# =============================================================================


class ItemOrigin(str, Enum):
    """Where the quantity of a shopping list entry comes from."""

    DERIVED = "derived"
    MODIFIED = "modified"
    EXTRA = "extra"

    @property
    def user_asserted(self) -> bool:
        return self is not ItemOrigin.DERIVED


ORIGIN_ORDER = {ItemOrigin.DERIVED: 0, ItemOrigin.MODIFIED: 1, ItemOrigin.EXTRA: 2}


@dataclass(frozen=True)
class ShoppingListEntry:
    """A single line of the final shopping list."""

    name: str
    form: str | None
    quantity: Quantity
    category: str
    origin: ItemOrigin = ItemOrigin.DERIVED
    measure_type: UnitFamily | None = None
    recipe_sources: tuple[str, ...] = field(default=(), compare=False)

    def sort_key(self) -> tuple[str, str, str, str, int]:
        return (
            self.category,
            self.name,
            self.form or "",
            self.measure_type.value if self.measure_type else "",
            ORIGIN_ORDER[self.origin],
        )
