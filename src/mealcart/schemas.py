"""Serialized forms of engine values for the API."""

from datetime import date
from typing import Any

from pydantic import BaseModel, Field

from mealcart.normalize.units import Quantity, format_amount
from mealcart.plan.models import MealPlan, ShoppingListEntry
from mealcart.plan.shopping_list import ShoppingList


class QuantitySchema(BaseModel):
    """An exact amount and its unit."""

    amount: str = Field(description='Exact amount, e.g. "2 1/2"')
    unit: str
    display: str = ""

    @classmethod
    def from_quantity(cls, quantity: Quantity) -> "QuantitySchema":
        return cls(
            amount=format_amount(quantity.amount),
            unit=quantity.unit.value,
            display=quantity.format(),
        )


class ShoppingListEntrySchema(BaseModel):
    """Single item in the shopping list."""

    name: str
    form: str | None = None
    quantity: QuantitySchema
    category: str
    origin: str = Field(description="derived, modified, or extra")
    measure_type: str | None = None
    recipe_sources: list[str] = Field(default_factory=list)

    @classmethod
    def from_entry(cls, entry: ShoppingListEntry) -> "ShoppingListEntrySchema":
        return cls(
            name=entry.name,
            form=entry.form,
            quantity=QuantitySchema.from_quantity(entry.quantity),
            category=entry.category,
            origin=entry.origin.value,
            measure_type=entry.measure_type.value if entry.measure_type else None,
            recipe_sources=list(entry.recipe_sources),
        )


class DiagnosticsSchema(BaseModel):
    """Problems found while building a shopping list."""

    parse_errors: list[dict[str, Any]] = Field(default_factory=list)
    conflicts: list[dict[str, Any]] = Field(default_factory=list)
    unresolved: list[dict[str, Any]] = Field(default_factory=list)


class ShoppingListResponse(BaseModel):
    """Shopping list for a meal plan."""

    user: str
    plan_date: date
    items: list[ShoppingListEntrySchema]
    items_by_category: dict[str, list[ShoppingListEntrySchema]]
    diagnostics: DiagnosticsSchema

    @classmethod
    def from_shopping_list(cls, shopping_list: ShoppingList) -> "ShoppingListResponse":
        grouped = {
            category: [ShoppingListEntrySchema.from_entry(entry) for entry in entries]
            for category, entries in shopping_list.by_category().items()
        }
        return cls(
            user=shopping_list.user,
            plan_date=shopping_list.plan_date,
            items=[ShoppingListEntrySchema.from_entry(entry) for entry in shopping_list.entries],
            items_by_category=grouped,
            diagnostics=DiagnosticsSchema(**shopping_list.diagnostics.to_dict()),
        )


class MealPlanSchema(BaseModel):
    """Recipes scheduled for one date, with their multipliers."""

    plan_date: date
    recipes: dict[str, int] = Field(default_factory=dict)

    @classmethod
    def from_plan(cls, plan: MealPlan) -> "MealPlanSchema":
        return cls(plan_date=plan.plan_date, recipes=plan.counts())
