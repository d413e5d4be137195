"""Unit tests for shopping list building."""

from datetime import timedelta
from fractions import Fraction

import pytest

from mealcart.errors import MissingQuantity, ParseError, UnknownRecipeError
from mealcart.normalize.recipe import IngredientKey
from mealcart.normalize.units import Quantity, Unit, UnitFamily
from mealcart.plan.models import (
    CategoryMapping,
    ExtraItem,
    FilteredIngredient,
    ItemOrigin,
    MealPlan,
    ModifiedAmount,
    latest_plan,
)
from mealcart.plan.shopping_list import (
    ShoppingList,
    ShoppingListBuilder,
    build_shopping_list,
)

USER = "alice"

FLOUR = IngredientKey("flour", None, UnitFamily.VOLUME)
SUGAR = IngredientKey("sugar", None, UnitFamily.VOLUME)


@pytest.fixture
def plan(plan_date):
    """Pancakes twice and scones once."""
    return MealPlan.from_counts(USER, plan_date, {"pancakes": 2, "scones": 1})


@pytest.fixture
def recipes(pancakes_text, scones_text):
    return {"pancakes": pancakes_text, "scones": scones_text}


def entry_for(shopping_list: ShoppingList, name: str):
    matches = shopping_list.find(name)
    assert len(matches) == 1, f"expected one {name} entry, got {matches}"
    return matches[0]


# =============================================================================
# End-to-end Scenarios
# =============================================================================


class TestShoppingListScenarios:
    """Tests for the plan of pancakes twice and scones once."""

    def test_aggregated_totals(self, plan, recipes):
        shopping_list = ShoppingListBuilder().build(plan, recipes)

        assert entry_for(shopping_list, "flour").quantity == Quantity(Fraction(5, 2), Unit.CUP)
        assert entry_for(shopping_list, "sugar").quantity == Quantity(4, Unit.TBSP)
        assert entry_for(shopping_list, "eggs").quantity == Quantity(4)
        assert not shopping_list.diagnostics.has_issues

    def test_filtered_sugar(self, plan, plan_date, recipes):
        shopping_list = ShoppingListBuilder().build(
            plan, recipes, filtered=[FilteredIngredient(USER, plan_date, SUGAR)]
        )

        assert shopping_list.find("sugar") == []
        assert entry_for(shopping_list, "flour").quantity == Quantity(Fraction(5, 2), Unit.CUP)

    def test_modified_flour(self, plan, plan_date, recipes):
        shopping_list = ShoppingListBuilder().build(
            plan,
            recipes,
            filtered=[FilteredIngredient(USER, plan_date, SUGAR)],
            modified=[ModifiedAmount(USER, plan_date, FLOUR, Quantity.parse("3 cup"))],
        )

        flour = entry_for(shopping_list, "flour")
        assert flour.quantity == Quantity(3, Unit.CUP)
        assert flour.origin is ItemOrigin.MODIFIED
        assert flour.origin.user_asserted

    def test_extra_item_without_category(self, plan, plan_date, recipes):
        shopping_list = ShoppingListBuilder().build(
            plan,
            recipes,
            extras=[ExtraItem(USER, plan_date, "paper towels", Quantity.parse("1 count"))],
        )

        towels = entry_for(shopping_list, "paper towels")
        assert towels.quantity == Quantity(1)
        assert towels.category == "Misc"
        assert towels.origin is ItemOrigin.EXTRA


# =============================================================================
# Builder Behaviour
# =============================================================================


class TestShoppingListBuilder:
    """Tests for ShoppingListBuilder."""

    def test_accepts_parsed_recipes(self, plan, pancakes, scones):
        shopping_list = ShoppingListBuilder().build(plan, {"pancakes": pancakes, "scones": scones})
        assert len(shopping_list) == 3

    def test_entries_sorted_by_category_then_name(self, plan, recipes):
        shopping_list = ShoppingListBuilder().build(
            plan,
            recipes,
            category_mappings=[
                CategoryMapping(USER, "sugar", "Baking"),
                CategoryMapping(USER, "flour", "Baking"),
                CategoryMapping(USER, "eggs", "Dairy"),
            ],
        )

        assert [(e.category, e.name) for e in shopping_list.entries] == [
            ("Baking", "flour"),
            ("Baking", "sugar"),
            ("Dairy", "eggs"),
        ]
        assert list(shopping_list.by_category()) == ["Baking", "Dairy"]

    def test_default_category(self, plan, recipes):
        shopping_list = ShoppingListBuilder(default_category="Other").build(plan, recipes)
        assert {entry.category for entry in shopping_list.entries} == {"Other"}

    def test_parse_errors_are_collected(self, plan_date):
        plan = MealPlan.from_counts(USER, plan_date, {"soup": 1})
        shopping_list = build_shopping_list(
            plan, {"soup": "title: Soup\n1 cup broth\nsalt to taste\n"}
        )

        assert [e.name for e in shopping_list.entries] == ["broth"]
        errors = shopping_list.diagnostics.parse_errors
        assert len(errors) == 1
        assert isinstance(errors[0], MissingQuantity)
        assert errors[0].recipe_id == "soup"

    def test_untitled_recipe_is_reported(self, plan_date):
        plan = MealPlan.from_counts(USER, plan_date, {"blank": 1})
        shopping_list = build_shopping_list(plan, {"blank": "\n"})

        assert shopping_list.entries == []
        assert isinstance(shopping_list.diagnostics.parse_errors[0], ParseError)

    def test_unknown_recipe_is_raised(self, plan):
        with pytest.raises(UnknownRecipeError):
            ShoppingListBuilder().build(plan, {"pancakes": "title: Pancakes\n1 cup flour\n"})

    def test_unresolved_conflict_is_reported(self, plan_date):
        plan = MealPlan.from_counts(USER, plan_date, {"a": 1, "b": 1})
        recipes = {"a": "title: A\n1 can tomatoes\n", "b": "title: B\n1 jar tomatoes\n"}

        shopping_list = build_shopping_list(plan, recipes)

        assert shopping_list.find("tomatoes") == []
        diagnostics = shopping_list.diagnostics
        assert [u.key.name for u in diagnostics.unresolved] == ["tomatoes"]
        assert len(diagnostics.conflicts) == 1
        assert diagnostics.to_dict()["unresolved"][0]["parts"] == ["1 can", "1 jar"]

    def test_modified_amount_clears_conflict(self, plan_date):
        plan = MealPlan.from_counts(USER, plan_date, {"a": 1, "b": 1})
        recipes = {"a": "title: A\n1 can tomatoes\n", "b": "title: B\n1 jar tomatoes\n"}
        tomatoes = IngredientKey("tomatoes", None, UnitFamily.PACKAGE)

        shopping_list = build_shopping_list(
            plan,
            recipes,
            modified=[ModifiedAmount(USER, plan_date, tomatoes, Quantity(2, Unit.CAN))],
        )

        assert entry_for(shopping_list, "tomatoes").quantity == Quantity(2, Unit.CAN)
        assert not shopping_list.diagnostics.has_issues

    def test_staples_text(self, plan, recipes):
        shopping_list = ShoppingListBuilder().build(
            plan, recipes, staples="title: Staples\n1 cup flour\n1 salt\n"
        )

        flour = entry_for(shopping_list, "flour")
        assert flour.quantity == Quantity(Fraction(7, 2), Unit.CUP)
        assert "staples" in flour.recipe_sources
        assert entry_for(shopping_list, "salt").quantity == Quantity(1)

    def test_build_is_deterministic(self, plan, recipes):
        builder = ShoppingListBuilder()
        assert builder.build(plan, recipes).entries == builder.build(plan, recipes).entries


class TestLatestPlan:
    """Tests for latest_plan selection."""

    def test_most_recent_date_wins(self, plan, plan_date):
        later = MealPlan.from_counts(USER, plan_date + timedelta(days=7), {"scones": 1})
        other_user = MealPlan.from_counts("bob", plan_date + timedelta(days=14), {"soup": 1})

        assert latest_plan([later, plan, other_user], USER) is later

    def test_no_plans_for_user(self, plan):
        assert latest_plan([plan], "bob") is None
