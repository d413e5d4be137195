"""Quantity model and recipe parsing."""

from mealcart.normalize.parser import ParsedRecipe, parse_ingredient_line, parse_recipe
from mealcart.normalize.recipe import (
    IngredientKey,
    IngredientLine,
    Recipe,
    Step,
    normalize_name,
)
from mealcart.normalize.units import (
    Quantity,
    Unit,
    UnitFamily,
    add_quantities,
    can_aggregate,
    compare_quantities,
    format_quantity,
    parse_quantity,
    scale_quantity,
)

__all__ = [
    "IngredientKey",
    "IngredientLine",
    "ParsedRecipe",
    "Quantity",
    "Recipe",
    "Step",
    "Unit",
    "UnitFamily",
    "add_quantities",
    "can_aggregate",
    "compare_quantities",
    "format_quantity",
    "normalize_name",
    "parse_ingredient_line",
    "parse_quantity",
    "parse_recipe",
    "scale_quantity",
]
