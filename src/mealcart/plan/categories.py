"""Ingredient to display category lookup."""

from collections.abc import Iterable

from mealcart.errors import ParseError
from mealcart.normalize.recipe import normalize_name
from mealcart.plan.models import CategoryMapping

DEFAULT_CATEGORY = "Misc"


class CategoryResolver:
    """Resolves ingredient names to categories from a user's mappings."""

    def __init__(
        self,
        mappings: Iterable[CategoryMapping] = (),
        default_category: str = DEFAULT_CATEGORY,
    ):
        self.default_category = default_category
        self._mappings: dict[tuple[str, str], str] = {
            (mapping.user, mapping.ingredient_name): mapping.category_name
            for mapping in mappings
        }

    def resolve(self, user: str, ingredient_name: str) -> str:
        """Get the category for an ingredient, or the default when unmapped."""
        return self._mappings.get((user, normalize_name(ingredient_name)), self.default_category)

    def __len__(self) -> int:
        return len(self._mappings)


def parse_categories(text: str, user: str) -> list[CategoryMapping]:
    """
    Parse a category file into mappings.

    Each line is ``Category: ingredient|ingredient|...``; blank lines are
    skipped. A later line wins when an ingredient is listed twice.

    Raises:
        ParseError: If a line has no category or no ingredients.
    """
    mappings: dict[str, CategoryMapping] = {}
    for line_number, line in enumerate(text.splitlines(), start=1):
        if not line.strip():
            continue
        category, sep, ingredients = line.partition(":")
        if not sep or not category.strip():
            raise ParseError("expected 'Category: ingredient|...'", line_number, line.strip())
        names = [normalize_name(name) for name in ingredients.split("|")]
        names = [name for name in names if name]
        if not names:
            raise ParseError("category has no ingredients", line_number, line.strip())
        for name in names:
            mappings[name] = CategoryMapping(user, name, category.strip())
    return list(mappings.values())
