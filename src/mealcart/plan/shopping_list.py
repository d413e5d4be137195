"""Shopping list generation from meal plans."""

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from datetime import date
from typing import Any

from mealcart.errors import ParseError, UnitConflict
from mealcart.logging_config import LoggingContext, get_logger
from mealcart.normalize.parser import parse_recipe
from mealcart.normalize.recipe import Recipe
from mealcart.plan.aggregate import STAPLES_SOURCE, Unresolved, aggregate
from mealcart.plan.categories import DEFAULT_CATEGORY, CategoryResolver
from mealcart.plan.models import (
    CategoryMapping,
    ExtraItem,
    FilteredIngredient,
    MealPlan,
    ModifiedAmount,
    ShoppingListEntry,
)
from mealcart.plan.overrides import OverrideLayer

logger = get_logger(__name__)


@dataclass
class Diagnostics:
    """Problems found while building a list. None of them stop the build."""

    parse_errors: list[ParseError] = field(default_factory=list)
    conflicts: list[UnitConflict] = field(default_factory=list)
    unresolved: list[Unresolved] = field(default_factory=list)

    @property
    def has_issues(self) -> bool:
        return bool(self.parse_errors or self.conflicts or self.unresolved)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for API responses."""
        return {
            "parse_errors": [e.to_dict() for e in self.parse_errors],
            "conflicts": [c.to_dict() for c in self.conflicts],
            "unresolved": [
                {
                    "name": u.key.name,
                    "form": u.key.form,
                    "measure_type": u.key.measure_type.value,
                    "parts": [str(part) for part in u.parts],
                }
                for u in self.unresolved
            ],
        }


@dataclass
class ShoppingList:
    """Complete, ordered shopping list for a meal plan."""

    user: str
    plan_date: date
    entries: list[ShoppingListEntry] = field(default_factory=list)
    diagnostics: Diagnostics = field(default_factory=Diagnostics)

    def by_category(self) -> dict[str, list[ShoppingListEntry]]:
        """Group entries by category, keeping the list order."""
        grouped: dict[str, list[ShoppingListEntry]] = {}
        for entry in self.entries:
            grouped.setdefault(entry.category, []).append(entry)
        return grouped

    def find(self, name: str) -> list[ShoppingListEntry]:
        """Get all entries with the given ingredient name."""
        return [entry for entry in self.entries if entry.name == name]

    def __len__(self) -> int:
        return len(self.entries)


class ShoppingListBuilder:
    """
    Builds shopping lists from meal plans:
    - Recipe parsing with line-level error collection
    - Exact, unit-aware aggregation across scaled recipes
    - User overrides (filters, modified amounts, extra items)
    - Category resolution and stable ordering

    The builder performs no I/O; callers fetch everything beforehand.
    """

    def __init__(self, default_category: str = DEFAULT_CATEGORY):
        self.default_category = default_category

    def build(
        self,
        plan: MealPlan,
        recipes: Mapping[str, Recipe | str],
        *,
        filtered: Iterable[FilteredIngredient] = (),
        modified: Iterable[ModifiedAmount] = (),
        extras: Iterable[ExtraItem] = (),
        category_mappings: Iterable[CategoryMapping] = (),
        staples: Recipe | str | None = None,
    ) -> ShoppingList:
        """
        Generate the shopping list for a meal plan.

        Args:
            plan: The meal plan to shop for.
            recipes: Recipes keyed by id, parsed or as raw text.
            filtered: Ingredient keys the user removed.
            modified: Quantities the user corrected.
            extras: Items the user added by hand.
            category_mappings: The user's ingredient categories.
            staples: Optional staples recipe, merged once.

        Returns:
            ShoppingList ordered by category then name, with diagnostics.

        Raises:
            UnknownRecipeError: If the plan references a recipe not in ``recipes``.
        """
        with LoggingContext(user_id=plan.user, plan_date=plan.plan_date):
            logger.info(f"Building shopping list for {len(plan.planned_recipes)} planned recipes")
            diagnostics = Diagnostics()

            # Step 1: Parse any raw recipe text
            parsed = self._parse_recipes(recipes, plan.recipe_ids, diagnostics)
            staples_recipe = None
            if staples is not None:
                staples_recipe = self._parse_one(STAPLES_SOURCE, staples, diagnostics)

            # Step 2: Aggregate all ingredients across recipes
            totals = aggregate(plan.planned_recipes, parsed, staples=staples_recipe)

            # Step 3: Layer the user's overrides on top
            layer = OverrideLayer(
                plan.user,
                plan.plan_date,
                filtered=filtered,
                modified=modified,
                extras=extras,
            )
            overridden = layer.apply(totals)
            diagnostics.unresolved = overridden.unresolved
            unresolved_keys = {u.key for u in overridden.unresolved}
            diagnostics.conflicts = [c for c in totals.conflicts if c.key in unresolved_keys]

            # Step 4: Categorize and order
            resolver = CategoryResolver(category_mappings, self.default_category)
            entries = [
                ShoppingListEntry(
                    name=item.name,
                    form=item.form,
                    quantity=item.quantity,
                    category=resolver.resolve(plan.user, item.name),
                    origin=item.origin,
                    measure_type=item.measure_type,
                    recipe_sources=item.recipe_sources,
                )
                for item in overridden.items
            ]
            entries.sort(key=ShoppingListEntry.sort_key)

            shopping_list = ShoppingList(
                user=plan.user,
                plan_date=plan.plan_date,
                entries=entries,
                diagnostics=diagnostics,
            )
            logger.info(
                f"Generated shopping list: {len(entries)} items, "
                f"{len(diagnostics.parse_errors)} parse errors, "
                f"{len(diagnostics.unresolved)} unresolved"
            )
            return shopping_list

    def _parse_recipes(
        self,
        recipes: Mapping[str, Recipe | str],
        recipe_ids: list[str],
        diagnostics: Diagnostics,
    ) -> dict[str, Recipe]:
        """Parse the planned recipes that were supplied as text."""
        return {
            recipe_id: self._parse_one(recipe_id, recipes[recipe_id], diagnostics)
            for recipe_id in recipe_ids
            if recipe_id in recipes
        }

    def _parse_one(self, recipe_id: str, recipe: Recipe | str, diagnostics: Diagnostics) -> Recipe:
        if isinstance(recipe, Recipe):
            return recipe
        try:
            parsed = parse_recipe(recipe, recipe_id)
        except ParseError as e:
            # Untitled text contributes no ingredients
            diagnostics.parse_errors.append(e)
            return Recipe(id=recipe_id, title=recipe_id)
        diagnostics.parse_errors.extend(parsed.errors)
        return parsed.recipe


def build_shopping_list(
    plan: MealPlan,
    recipes: Mapping[str, Recipe | str],
    **overrides: Any,
) -> ShoppingList:
    """Build a shopping list with the default category."""
    return ShoppingListBuilder().build(plan, recipes, **overrides)
