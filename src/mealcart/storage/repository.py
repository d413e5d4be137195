"""Repository for recipes, meal plans and shopping list overrides."""

from collections.abc import Iterable
from datetime import date

from sqlalchemy import delete, func, insert, select
from sqlalchemy.orm import Session

from mealcart.logging_config import get_logger
from mealcart.models import (
    CategoryMappingRow,
    ExtraItemRow,
    FilteredIngredientRow,
    ModifiedAmountRow,
    PlanRecipeRow,
    PlanRow,
    RecipeRow,
    StaplesRow,
)
from mealcart.normalize.parser import parse_recipe
from mealcart.normalize.recipe import IngredientKey, Recipe
from mealcart.normalize.units import Quantity, UnitFamily
from mealcart.plan.categories import parse_categories
from mealcart.plan.models import (
    CategoryMapping,
    ExtraItem,
    FilteredIngredient,
    MealPlan,
    ModifiedAmount,
    PlannedRecipe,
)

logger = get_logger(__name__)


def _key_from_row(row: FilteredIngredientRow | ModifiedAmountRow) -> IngredientKey:
    return IngredientKey(row.name, row.form or None, UnitFamily(row.measure_type))


class PlanRepository:
    """SQL storage for everything the shopping list builder consumes."""

    def __init__(self, session: Session):
        self.session = session

    # =========================================================================
    # Recipes
    # =========================================================================

    def save_recipe(self, user: str, recipe_id: str, recipe_text: str) -> None:
        """Insert or replace the text of a recipe."""
        self.session.merge(RecipeRow(user_id=user, recipe_id=recipe_id, recipe_text=recipe_text))
        self.session.commit()
        logger.debug(f"Saved recipe {recipe_id} for {user}")

    def delete_recipes(self, user: str, recipe_ids: Iterable[str]) -> int:
        """Delete recipes by id. Returns the number of deleted rows."""
        result = self.session.execute(
            delete(RecipeRow).where(
                RecipeRow.user_id == user, RecipeRow.recipe_id.in_(list(recipe_ids))
            )
        )
        self.session.commit()
        return result.rowcount

    def fetch_recipe_texts(
        self, user: str, recipe_ids: Iterable[str] | None = None
    ) -> dict[str, str]:
        """Get raw recipe texts keyed by recipe id, all of them if no ids are given."""
        query = select(RecipeRow).where(RecipeRow.user_id == user)
        if recipe_ids is not None:
            query = query.where(RecipeRow.recipe_id.in_(list(recipe_ids)))
        rows = self.session.execute(query.order_by(RecipeRow.recipe_id)).scalars()
        return {row.recipe_id: row.recipe_text or "" for row in rows}

    def fetch_recipes(self, user: str, recipe_ids: Iterable[str]) -> list[Recipe]:
        """
        Get parsed recipes.

        Invalid ingredient lines are dropped and logged. Unknown ids are
        simply absent from the result.

        Raises:
            ParseError: If a stored recipe has no title.
        """
        recipes = []
        for recipe_id, text in self.fetch_recipe_texts(user, recipe_ids).items():
            parsed = parse_recipe(text, recipe_id)
            for error in parsed.errors:
                logger.warning(f"Recipe {recipe_id}: {error}")
            recipes.append(parsed.recipe)
        return recipes

    # =========================================================================
    # Meal Plans
    # =========================================================================

    def save_meal_plan(self, plan: MealPlan) -> None:
        """Store a plan, replacing any recipes saved earlier for the same date."""
        self.session.merge(PlanRow(user_id=plan.user, plan_date=plan.plan_date))
        self.session.execute(
            delete(PlanRecipeRow).where(
                PlanRecipeRow.user_id == plan.user,
                PlanRecipeRow.plan_date == plan.plan_date,
            )
        )
        if plan.planned_recipes:
            self.session.execute(
                insert(PlanRecipeRow),
                [
                    {
                        "user_id": plan.user,
                        "plan_date": plan.plan_date,
                        "recipe_id": planned.recipe_id,
                        "count": planned.count,
                    }
                    for planned in plan.planned_recipes
                ],
            )
        self.session.commit()
        logger.info(
            f"Saved meal plan for {plan.user} on {plan.plan_date}: "
            f"{len(plan.planned_recipes)} recipes"
        )

    def fetch_plan_for_date(self, user: str, plan_date: date) -> MealPlan | None:
        """Get the plan of a user for a date, or None if there is none."""
        if self.session.get(PlanRow, (user, plan_date)) is None:
            return None
        rows = self.session.execute(
            select(PlanRecipeRow).where(
                PlanRecipeRow.user_id == user, PlanRecipeRow.plan_date == plan_date
            )
        ).scalars()
        return MealPlan(
            user=user,
            plan_date=plan_date,
            planned_recipes=frozenset(PlannedRecipe(row.recipe_id, row.count) for row in rows),
        )

    def fetch_latest_plan(self, user: str) -> MealPlan | None:
        """Get the plan with the most recent date for a user."""
        latest = self.session.execute(
            select(func.max(PlanRow.plan_date)).where(PlanRow.user_id == user)
        ).scalar()
        if latest is None:
            return None
        return self.fetch_plan_for_date(user, latest)

    def fetch_plans_since(self, user: str, since: date) -> list[MealPlan]:
        """Get all plans dated after ``since``, oldest first."""
        plan_dates = self.session.execute(
            select(PlanRow.plan_date)
            .where(PlanRow.user_id == user, PlanRow.plan_date > since)
            .order_by(PlanRow.plan_date)
        ).scalars()
        plans = [self.fetch_plan_for_date(user, plan_date) for plan_date in plan_dates]
        return [plan for plan in plans if plan is not None]

    def delete_meal_plan_for_date(self, user: str, plan_date: date) -> None:
        """Delete a plan together with all overrides recorded for its date."""
        for model in (
            PlanRecipeRow,
            PlanRow,
            FilteredIngredientRow,
            ModifiedAmountRow,
            ExtraItemRow,
        ):
            self.session.execute(
                delete(model).where(model.user_id == user, model.plan_date == plan_date)
            )
        self.session.commit()
        logger.info(f"Deleted meal plan for {user} on {plan_date}")

    # =========================================================================
    # Overrides
    # =========================================================================

    def save_filtered_ingredient(self, filtered: FilteredIngredient) -> None:
        self.session.merge(
            FilteredIngredientRow(
                user_id=filtered.user,
                name=filtered.key.name,
                form=filtered.key.form or "",
                measure_type=filtered.key.measure_type.value,
                plan_date=filtered.plan_date,
            )
        )
        self.session.commit()

    def fetch_filtered_ingredients(self, user: str, plan_date: date) -> list[FilteredIngredient]:
        rows = self.session.execute(
            select(FilteredIngredientRow).where(
                FilteredIngredientRow.user_id == user,
                FilteredIngredientRow.plan_date == plan_date,
            )
        ).scalars()
        return [FilteredIngredient(user, plan_date, _key_from_row(row)) for row in rows]

    def save_modified_amount(self, modified: ModifiedAmount) -> None:
        self.session.merge(
            ModifiedAmountRow(
                user_id=modified.user,
                name=modified.key.name,
                form=modified.key.form or "",
                measure_type=modified.key.measure_type.value,
                plan_date=modified.plan_date,
                amt=modified.quantity.format(),
            )
        )
        self.session.commit()

    def fetch_modified_amounts(self, user: str, plan_date: date) -> list[ModifiedAmount]:
        rows = self.session.execute(
            select(ModifiedAmountRow).where(
                ModifiedAmountRow.user_id == user,
                ModifiedAmountRow.plan_date == plan_date,
            )
        ).scalars()
        return [
            ModifiedAmount(user, plan_date, _key_from_row(row), Quantity.parse(row.amt))
            for row in rows
        ]

    def save_extra_item(self, extra: ExtraItem) -> None:
        self.session.merge(
            ExtraItemRow(
                user_id=extra.user,
                name=extra.name,
                plan_date=extra.plan_date,
                amt=extra.quantity.format(),
            )
        )
        self.session.commit()

    def fetch_extra_items(self, user: str, plan_date: date) -> list[ExtraItem]:
        rows = self.session.execute(
            select(ExtraItemRow)
            .where(ExtraItemRow.user_id == user, ExtraItemRow.plan_date == plan_date)
            .order_by(ExtraItemRow.name)
        ).scalars()
        return [ExtraItem(user, plan_date, row.name, Quantity.parse(row.amt)) for row in rows]

    # =========================================================================
    # Categories and Staples
    # =========================================================================

    def save_category_mapping(self, mapping: CategoryMapping) -> None:
        self.session.merge(
            CategoryMappingRow(
                user_id=mapping.user,
                ingredient_name=mapping.ingredient_name,
                category_name=mapping.category_name,
            )
        )
        self.session.commit()

    def save_categories(self, user: str, text: str) -> list[CategoryMapping]:
        """
        Parse a category file and store every mapping in it.

        Raises:
            ParseError: If the file is malformed. Nothing is stored then.
        """
        mappings = parse_categories(text, user)
        for mapping in mappings:
            self.session.merge(
                CategoryMappingRow(
                    user_id=mapping.user,
                    ingredient_name=mapping.ingredient_name,
                    category_name=mapping.category_name,
                )
            )
        self.session.commit()
        logger.info(f"Saved {len(mappings)} category mappings for {user}")
        return mappings

    def fetch_category_mappings(self, user: str) -> list[CategoryMapping]:
        rows = self.session.execute(
            select(CategoryMappingRow)
            .where(CategoryMappingRow.user_id == user)
            .order_by(CategoryMappingRow.ingredient_name)
        ).scalars()
        return [CategoryMapping(user, row.ingredient_name, row.category_name) for row in rows]

    def save_staples(self, user: str, content: str) -> None:
        self.session.merge(StaplesRow(user_id=user, content=content))
        self.session.commit()

    def fetch_staples(self, user: str) -> str | None:
        row = self.session.get(StaplesRow, user)
        return row.content if row is not None else None
