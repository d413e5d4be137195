"""Meal plans, aggregation, overrides and shopping list building."""

from mealcart.plan.aggregate import Aggregate, IngredientAccumulator, Unresolved, aggregate
from mealcart.plan.categories import CategoryResolver, parse_categories
from mealcart.plan.models import (
    CategoryMapping,
    ExtraItem,
    FilteredIngredient,
    ItemOrigin,
    MealPlan,
    ModifiedAmount,
    PlannedRecipe,
    ShoppingListEntry,
    latest_plan,
)
from mealcart.plan.overrides import OverrideLayer, apply_overrides
from mealcart.plan.shopping_list import (
    Diagnostics,
    ShoppingList,
    ShoppingListBuilder,
    build_shopping_list,
)

__all__ = [
    "Aggregate",
    "CategoryMapping",
    "CategoryResolver",
    "Diagnostics",
    "ExtraItem",
    "FilteredIngredient",
    "IngredientAccumulator",
    "ItemOrigin",
    "MealPlan",
    "ModifiedAmount",
    "OverrideLayer",
    "PlannedRecipe",
    "ShoppingList",
    "ShoppingListBuilder",
    "ShoppingListEntry",
    "Unresolved",
    "aggregate",
    "apply_overrides",
    "build_shopping_list",
    "latest_plan",
    "parse_categories",
]
