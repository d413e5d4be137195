"""
User overrides layered on top of the computed aggregate.

The stages run in a fixed order and later stages win:

1. filter:  drop every filtered ingredient key
2. replace: swap in user-asserted amounts for the remaining keys
3. append:  add manually entered extra items as separate entries
"""

from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import date
from typing import TypeVar

from mealcart.logging_config import get_logger
from mealcart.normalize.recipe import IngredientKey
from mealcart.normalize.units import Quantity, UnitFamily
from mealcart.plan.aggregate import Aggregate, Unresolved
from mealcart.plan.models import ExtraItem, FilteredIngredient, ItemOrigin, ModifiedAmount

logger = get_logger(__name__)

_Override = TypeVar("_Override", FilteredIngredient, ModifiedAmount, ExtraItem)


@dataclass(frozen=True)
class ListItem:
    """An uncategorized shopping list item."""

    name: str
    form: str | None
    quantity: Quantity
    origin: ItemOrigin
    measure_type: UnitFamily | None = None
    key: IngredientKey | None = None
    recipe_sources: tuple[str, ...] = ()


@dataclass
class OverrideResult:
    """Items that survived the override pipeline and keys still unresolved."""

    items: list[ListItem] = field(default_factory=list)
    unresolved: list[Unresolved] = field(default_factory=list)


class OverrideLayer:
    """Applies the overrides of one user and plan date to an aggregate."""

    def __init__(
        self,
        user: str,
        plan_date: date,
        *,
        filtered: Iterable[FilteredIngredient] = (),
        modified: Iterable[ModifiedAmount] = (),
        extras: Iterable[ExtraItem] = (),
    ):
        self.user = user
        self.plan_date = plan_date
        self.filtered = self._scoped(filtered)
        self.modified = self._scoped(modified)
        self.extras = self._scoped(extras)

    def _scoped(self, overrides: Iterable[_Override]) -> list[_Override]:
        scoped = []
        for override in overrides:
            if override.user == self.user and override.plan_date == self.plan_date:
                scoped.append(override)
            else:
                logger.debug(
                    f"Ignoring {type(override).__name__} for "
                    f"{override.user}/{override.plan_date}"
                )
        return scoped

    def apply(self, aggregate: Aggregate) -> OverrideResult:
        """Run filter, replace and append in that order."""
        totals = self.filter_stage(dict(aggregate.totals))
        totals, modified_keys = self.replace_stage(totals)

        result = OverrideResult()
        for key, value in totals.items():
            if isinstance(value, Unresolved):
                logger.warning(f"Ingredient {key} needs manual resolution: {value}")
                result.unresolved.append(value)
                continue
            result.items.append(
                ListItem(
                    name=key.name,
                    form=key.form,
                    quantity=value,
                    origin=ItemOrigin.MODIFIED if key in modified_keys else ItemOrigin.DERIVED,
                    measure_type=key.measure_type,
                    key=key,
                    recipe_sources=aggregate.sources.get(key, ()),
                )
            )

        result.items.extend(self.append_stage())
        return result

    def filter_stage(
        self, totals: dict[IngredientKey, Quantity | Unresolved]
    ) -> dict[IngredientKey, Quantity | Unresolved]:
        """Remove every filtered key, whatever its computed value."""
        for override in self.filtered:
            if totals.pop(override.key, None) is not None:
                logger.debug(f"Filtered {override.key}")
        return totals

    def replace_stage(
        self, totals: dict[IngredientKey, Quantity | Unresolved]
    ) -> tuple[dict[IngredientKey, Quantity | Unresolved], set[IngredientKey]]:
        """Replace quantities of remaining keys with the user-asserted amounts."""
        modified_keys = set()
        for override in self.modified:
            if override.key not in totals:
                logger.debug(f"Ignoring modified amount for absent key {override.key}")
                continue
            totals[override.key] = override.quantity
            modified_keys.add(override.key)
        return totals, modified_keys

    def append_stage(self) -> list[ListItem]:
        """Extra items are never merged with recipe-derived entries."""
        return [
            ListItem(
                name=extra.name,
                form=None,
                quantity=extra.quantity,
                origin=ItemOrigin.EXTRA,
                measure_type=extra.quantity.family,
            )
            for extra in self.extras
        ]


def apply_overrides(
    aggregate: Aggregate,
    user: str,
    plan_date: date,
    *,
    filtered: Iterable[FilteredIngredient] = (),
    modified: Iterable[ModifiedAmount] = (),
    extras: Iterable[ExtraItem] = (),
) -> OverrideResult:
    """Apply a user's overrides for a plan date to an aggregate."""
    layer = OverrideLayer(
        user,
        plan_date,
        filtered=filtered,
        modified=modified,
        extras=extras,
    )
    return layer.apply(aggregate)
