"""
Recipe text parser.

Recipe text starts with a title line (the ``title:`` prefix is optional). In
the simple layout every following non-blank line is an ingredient line. When
any line starts with ``step:`` the recipe is read as a description followed by
steps::

    title: Pancakes

    Fluffy breakfast pancakes.

    step: 5 min
    1 1/2 cup flour (sifted)
    2 tbsp sugar

    Whisk everything together.

Each ingredient line is ``<amount> [<unit>] <name> [(<form>)]``. A malformed
line is reported as a ``ParseError`` and skipped; the rest of the recipe is
still parsed. Lines starting with ``#`` are comments.
"""

import re
from dataclasses import dataclass, field
from datetime import timedelta

from mealcart.errors import ParseError
from mealcart.logging_config import get_logger
from mealcart.normalize.recipe import IngredientLine, Recipe, Step, normalize_name, slugify
from mealcart.normalize.units import Quantity, Unit, split_measure

logger = get_logger(__name__)

_STEP_PREFIX = "step:"
_TITLE_PREFIX = "title:"

_DURATION_RE = re.compile(r"^(\d+)\s*(ms|sec|s|min|m|hrs|hr|h)$", re.IGNORECASE)

_DURATION_UNITS: dict[str, str] = {
    "ms": "milliseconds",
    "s": "seconds",
    "sec": "seconds",
    "m": "minutes",
    "min": "minutes",
    "h": "hours",
    "hr": "hours",
    "hrs": "hours",
}


@dataclass
class ParsedRecipe:
    """A recipe holding only the valid lines, plus the errors for the rest."""

    recipe: Recipe
    errors: list[ParseError] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors


# =============================================================================
# Ingredient Lines
# =============================================================================


def _split_name_and_form(text: str) -> tuple[str, str | None]:
    """Split "<name> (<form>)" into its parts."""
    open_idx = text.find("(")
    if open_idx == -1:
        name, form = text, None
    else:
        close_idx = text.find(")", open_idx)
        if close_idx == -1:
            raise ParseError("unclosed form descriptor")
        if text[close_idx + 1 :].strip():
            raise ParseError("unexpected text after form descriptor")
        name, form = text[:open_idx], text[open_idx + 1 : close_idx]
        if not form.strip():
            raise ParseError("empty form descriptor")

    if ")" in name:
        raise ParseError("unbalanced parenthesis")
    name = normalize_name(name)
    if not name:
        raise ParseError("missing ingredient name")
    return name, form


def parse_ingredient_line(text: str, line_number: int | None = None) -> IngredientLine:
    """
    Parse one ingredient line.

    Examples:
        "1 cup flour" -> 1 cup of flour
        "1 1/2 tbsp butter (melted)" -> 3/2 tbsp of butter, form "melted"
        "3 eggs" -> 3 eggs (count)

    Raises:
        ParseError: With the line number and raw text attached. Missing
            amounts raise ``MissingQuantity`` and unrecognized units glued to
            the amount raise ``UnknownUnit``.
    """
    try:
        amount, unit, rest = split_measure(text)
        name, form = _split_name_and_form(rest)
        return IngredientLine.create(name, Quantity(amount, unit or Unit.COUNT), form)
    except ParseError as e:
        raise e.at(line_number, text.strip()) from None


# =============================================================================
# Recipes
# =============================================================================


def parse_step_time(text: str) -> timedelta:
    """Parse a step duration such as "10 min" or "1h"."""
    match = _DURATION_RE.match(text.strip())
    if not match:
        raise ParseError(f"invalid step duration {text.strip()!r}")
    unit = _DURATION_UNITS[match.group(2).lower()]
    try:
        return timedelta(**{unit: int(match.group(1))})
    except (OverflowError, ValueError):
        raise ParseError(f"step duration out of range {text.strip()[:40]!r}") from None


def _is_step_header(line: str) -> bool:
    return line.strip().lower().startswith(_STEP_PREFIX)


def _parse_ingredients(
    numbered_lines: list[tuple[int, str]],
    errors: list[ParseError],
) -> tuple[IngredientLine, ...]:
    parsed = []
    for line_number, line in numbered_lines:
        try:
            parsed.append(parse_ingredient_line(line, line_number))
        except ParseError as e:
            logger.debug(f"Skipping ingredient line {line_number}: {e.reason}")
            errors.append(e)
    return tuple(parsed)


def _join_paragraphs(numbered_lines: list[tuple[int, str]]) -> str:
    return "\n".join(line.strip() for _, line in numbered_lines).strip()


def _parse_step(
    header: tuple[int, str],
    body: list[tuple[int, str]],
    errors: list[ParseError],
) -> Step:
    line_number, header_text = header
    prep_time = None
    duration = header_text.strip()[len(_STEP_PREFIX) :].strip()
    if duration:
        try:
            prep_time = parse_step_time(duration)
        except ParseError as e:
            errors.append(e.at(line_number, header_text.strip()))

    # Ingredients are the first run of non-blank lines, the rest is instructions
    idx = 0
    while idx < len(body) and not body[idx][1].strip():
        idx += 1
    start = idx
    while idx < len(body) and body[idx][1].strip():
        idx += 1

    return Step(
        instructions=_join_paragraphs(body[idx:]),
        ingredient_lines=_parse_ingredients(body[start:idx], errors),
        prep_time=prep_time,
    )


def parse_recipe(text: str, recipe_id: str | None = None) -> ParsedRecipe:
    """
    Parse recipe text into a Recipe and the list of line errors.

    Args:
        text: Raw recipe text.
        recipe_id: Identifier for the recipe. Derived from the title if omitted.

    Returns:
        ParsedRecipe with only the valid ingredient lines.

    Raises:
        ParseError: If the recipe has no title.
    """
    numbered = [
        (number, line)
        for number, line in enumerate(text.splitlines(), start=1)
        if not line.lstrip().startswith("#")
    ]

    title_idx = next((i for i, (_, line) in enumerate(numbered) if line.strip()), None)
    if title_idx is None:
        raise ParseError("missing recipe title", line_number=1, raw_text="", recipe_id=recipe_id)

    title_number, title_line = numbered[title_idx]
    title = title_line.strip()
    if title.lower().startswith(_TITLE_PREFIX):
        title = title[len(_TITLE_PREFIX) :].strip()
    if not title:
        raise ParseError(
            "missing recipe title",
            line_number=title_number,
            raw_text=title_line.strip(),
            recipe_id=recipe_id,
        )

    recipe_id = recipe_id or slugify(title) or "recipe"
    body = numbered[title_idx + 1 :]
    errors: list[ParseError] = []
    description = None

    header_indexes = [i for i, (_, line) in enumerate(body) if _is_step_header(line)]
    if header_indexes:
        description = _join_paragraphs(body[: header_indexes[0]]) or None
        bounds = header_indexes + [len(body)]
        steps = tuple(
            _parse_step(body[start], body[start + 1 : end], errors)
            for start, end in zip(bounds, bounds[1:])
        )
    else:
        lines = [(number, line) for number, line in body if line.strip()]
        steps = (Step(ingredient_lines=_parse_ingredients(lines, errors)),)

    for error in errors:
        error.recipe_id = recipe_id

    recipe = Recipe(
        id=recipe_id,
        title=title,
        steps=steps,
        description=description,
        source_text=text,
    )
    if errors:
        logger.warning(f"Parsed recipe {recipe_id!r} with {len(errors)} invalid line(s)")
    else:
        logger.debug(f"Parsed recipe {recipe_id!r}: {len(recipe.ingredient_lines)} ingredients")
    return ParsedRecipe(recipe=recipe, errors=errors)
