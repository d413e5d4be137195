"""Merge ingredient lines of scaled recipes into per-ingredient totals."""

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field

from mealcart.errors import UnitConflict, UnknownRecipeError
from mealcart.logging_config import get_logger
from mealcart.normalize.recipe import IngredientKey, IngredientLine, Recipe
from mealcart.normalize.units import Quantity, can_aggregate
from mealcart.plan.models import PlannedRecipe

logger = get_logger(__name__)

STAPLES_SOURCE = "staples"


@dataclass(frozen=True)
class Unresolved:
    """
    A total whose merge hit a unit conflict.

    ``parts`` keeps one running total per group of compatible units, so lines
    merged after the conflict still add up where they can.
    """

    key: IngredientKey
    parts: tuple[Quantity, ...]

    def absorb(self, quantity: Quantity) -> tuple["Unresolved", UnitConflict | None]:
        """Add a quantity to its compatible part, or open a new part."""
        for idx, part in enumerate(self.parts):
            if can_aggregate(part.unit, quantity.unit):
                parts = self.parts[:idx] + (part + quantity,) + self.parts[idx + 1 :]
                return Unresolved(self.key, parts), None
        conflict = UnitConflict(self.parts[0].unit, quantity.unit, self.key)
        return Unresolved(self.key, self.parts + (quantity,)), conflict

    def __str__(self) -> str:
        return " + ".join(str(part) for part in self.parts)


@dataclass
class Aggregate:
    """Per-ingredient totals for a plan."""

    totals: dict[IngredientKey, Quantity | Unresolved] = field(default_factory=dict)
    sources: dict[IngredientKey, tuple[str, ...]] = field(default_factory=dict)
    conflicts: list[UnitConflict] = field(default_factory=list)

    @property
    def unresolved(self) -> list[Unresolved]:
        return [value for value in self.totals.values() if isinstance(value, Unresolved)]

    def get(self, key: IngredientKey) -> Quantity | Unresolved | None:
        return self.totals.get(key)

    def __len__(self) -> int:
        return len(self.totals)


class IngredientAccumulator:
    """Accumulates scaled ingredient lines into an Aggregate."""

    def __init__(self) -> None:
        self._aggregate = Aggregate()

    def add_line(self, line: IngredientLine, count: int = 1, source: str | None = None) -> None:
        """Scale a line by ``count`` and merge it into the running totals."""
        key = line.key
        quantity = line.quantity.scale(count)
        totals = self._aggregate.totals

        current = totals.get(key)
        if current is None:
            totals[key] = quantity
        elif isinstance(current, Unresolved):
            totals[key], conflict = current.absorb(quantity)
            if conflict is not None:
                self._record(conflict)
        else:
            try:
                totals[key] = current + quantity
            except UnitConflict as e:
                totals[key] = Unresolved(key, (current, quantity))
                self._record(e.with_key(key))

        if source is not None:
            known = self._aggregate.sources.get(key, ())
            if source not in known:
                self._aggregate.sources[key] = known + (source,)

    def add_recipe(self, recipe: Recipe, count: int = 1, source: str | None = None) -> None:
        """Merge every ingredient line of a recipe, scaled by ``count``."""
        for line in recipe.ingredient_lines:
            self.add_line(line, count, source or recipe.id)

    def result(self) -> Aggregate:
        return self._aggregate

    def _record(self, conflict: UnitConflict) -> None:
        logger.warning(f"Unit conflict: {conflict}")
        self._aggregate.conflicts.append(conflict)


def aggregate(
    planned_recipes: Iterable[PlannedRecipe],
    recipes: Mapping[str, Recipe],
    *,
    staples: Recipe | None = None,
) -> Aggregate:
    """
    Aggregate ingredients across all planned recipes.

    Args:
        planned_recipes: Recipes scheduled with their counts.
        recipes: Parsed recipes keyed by recipe id.
        staples: Optional staples recipe, merged once.

    Returns:
        Aggregate mapping each ingredient key to its total or an Unresolved.

    Raises:
        UnknownRecipeError: If a planned recipe id is missing from ``recipes``.
    """
    planned = sorted(planned_recipes, key=lambda p: p.recipe_id)
    for entry in planned:
        if entry.recipe_id not in recipes:
            raise UnknownRecipeError(entry.recipe_id)

    accumulator = IngredientAccumulator()
    for entry in planned:
        accumulator.add_recipe(recipes[entry.recipe_id], entry.count, entry.recipe_id)

    if staples is not None:
        accumulator.add_recipe(staples, 1, STAPLES_SOURCE)

    result = accumulator.result()
    logger.info(
        f"Aggregated {len(planned)} recipes into {len(result)} ingredients, "
        f"{len(result.conflicts)} conflicts"
    )
    return result
