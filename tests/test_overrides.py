"""Unit tests for the filter, replace and append override stages."""

from datetime import date, timedelta
from fractions import Fraction

import pytest

from mealcart.normalize.recipe import IngredientKey
from mealcart.normalize.units import Quantity, Unit, UnitFamily
from mealcart.plan.aggregate import Aggregate, Unresolved
from mealcart.plan.models import ExtraItem, FilteredIngredient, ItemOrigin, ModifiedAmount
from mealcart.plan.overrides import OverrideLayer, apply_overrides

USER = "alice"
DAY = date(2024, 3, 4)

FLOUR = IngredientKey("flour", None, UnitFamily.VOLUME)
SUGAR = IngredientKey("sugar", None, UnitFamily.VOLUME)
TOMATOES = IngredientKey("tomatoes", None, UnitFamily.PACKAGE)


@pytest.fixture
def computed():
    """Aggregate with two resolved totals and one unresolved key."""
    return Aggregate(
        totals={
            FLOUR: Quantity(Fraction(5, 2), Unit.CUP),
            SUGAR: Quantity(4, Unit.TBSP),
            TOMATOES: Unresolved(TOMATOES, (Quantity(1, Unit.CAN), Quantity(1, Unit.JAR))),
        },
        sources={FLOUR: ("pancakes", "scones"), SUGAR: ("pancakes",)},
    )


def by_name(result):
    return {item.name: item for item in result.items}


class TestFilterStage:
    """Tests for filtered ingredients."""

    def test_filtered_key_is_absent(self, computed):
        result = apply_overrides(computed, USER, DAY, filtered=[FilteredIngredient(USER, DAY, SUGAR)])

        items = by_name(result)
        assert "sugar" not in items
        assert items["flour"].quantity == Quantity(Fraction(5, 2), Unit.CUP)

    def test_filtered_unresolved_key_is_absent(self, computed):
        result = apply_overrides(
            computed, USER, DAY, filtered=[FilteredIngredient(USER, DAY, TOMATOES)]
        )
        assert "tomatoes" not in by_name(result)
        assert result.unresolved == []

    def test_filter_only_matches_full_key(self, computed):
        other_form = IngredientKey("flour", "sifted", UnitFamily.VOLUME)
        result = apply_overrides(
            computed, USER, DAY, filtered=[FilteredIngredient(USER, DAY, other_form)]
        )
        assert "flour" in by_name(result)

    def test_input_aggregate_is_not_mutated(self, computed):
        apply_overrides(computed, USER, DAY, filtered=[FilteredIngredient(USER, DAY, FLOUR)])
        assert FLOUR in computed.totals


class TestReplaceStage:
    """Tests for modified amounts."""

    def test_modified_amount_replaces_total(self, computed):
        result = apply_overrides(
            computed,
            USER,
            DAY,
            modified=[ModifiedAmount(USER, DAY, FLOUR, Quantity(3, Unit.CUP))],
        )

        flour = by_name(result)["flour"]
        assert flour.quantity == Quantity(3, Unit.CUP)
        assert flour.origin is ItemOrigin.MODIFIED
        assert flour.recipe_sources == ("pancakes", "scones")
        assert by_name(result)["sugar"].origin is ItemOrigin.DERIVED

    def test_modified_amount_resolves_conflict(self, computed):
        result = apply_overrides(
            computed,
            USER,
            DAY,
            modified=[ModifiedAmount(USER, DAY, TOMATOES, Quantity(2, Unit.CAN))],
        )

        assert by_name(result)["tomatoes"].quantity == Quantity(2, Unit.CAN)
        assert result.unresolved == []

    def test_modified_amount_for_absent_key_is_ignored(self, computed):
        rice = IngredientKey("rice", None, UnitFamily.WEIGHT)
        result = apply_overrides(
            computed,
            USER,
            DAY,
            modified=[ModifiedAmount(USER, DAY, rice, Quantity(1, Unit.KILOGRAM))],
        )
        assert "rice" not in by_name(result)

    def test_filter_wins_over_modified(self, computed):
        result = apply_overrides(
            computed,
            USER,
            DAY,
            filtered=[FilteredIngredient(USER, DAY, FLOUR)],
            modified=[ModifiedAmount(USER, DAY, FLOUR, Quantity(3, Unit.CUP))],
        )
        assert "flour" not in by_name(result)


class TestAppendStage:
    """Tests for extra items."""

    def test_extra_item_appended(self, computed):
        result = apply_overrides(
            computed, USER, DAY, extras=[ExtraItem(USER, DAY, "Paper Towels", Quantity(1))]
        )

        towels = by_name(result)["paper towels"]
        assert towels.origin is ItemOrigin.EXTRA
        assert towels.quantity == Quantity(1)
        assert towels.form is None
        assert towels.recipe_sources == ()

    def test_extra_never_merges_with_derived(self, computed):
        result = apply_overrides(
            computed, USER, DAY, extras=[ExtraItem(USER, DAY, "flour", Quantity(1, Unit.CUP))]
        )

        flour_items = [item for item in result.items if item.name == "flour"]
        assert len(flour_items) == 2
        assert {item.origin for item in flour_items} == {ItemOrigin.DERIVED, ItemOrigin.EXTRA}

    def test_filtered_name_can_be_added_back_as_extra(self, computed):
        result = apply_overrides(
            computed,
            USER,
            DAY,
            filtered=[FilteredIngredient(USER, DAY, SUGAR)],
            extras=[ExtraItem(USER, DAY, "sugar", Quantity(1, Unit.POUND))],
        )

        sugar = [item for item in result.items if item.name == "sugar"]
        assert len(sugar) == 1
        assert sugar[0].origin is ItemOrigin.EXTRA

    def test_extra_requires_name(self):
        with pytest.raises(ValueError):
            ExtraItem(USER, DAY, "   ", Quantity(1))


class TestOverrideScope:
    """Tests that overrides only apply to their own user and date."""

    def test_other_users_and_dates_are_ignored(self, computed):
        layer = OverrideLayer(
            USER,
            DAY,
            filtered=[
                FilteredIngredient("bob", DAY, SUGAR),
                FilteredIngredient(USER, DAY - timedelta(days=7), SUGAR),
            ],
            extras=[ExtraItem("bob", DAY, "milk", Quantity(1))],
        )

        items = by_name(layer.apply(computed))
        assert "sugar" in items
        assert "milk" not in items

    def test_unresolved_keys_are_reported(self, computed):
        result = OverrideLayer(USER, DAY).apply(computed)
        assert [u.key for u in result.unresolved] == [TOMATOES]
        assert "tomatoes" not in by_name(result)
