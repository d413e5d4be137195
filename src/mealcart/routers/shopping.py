"""API routes for shopping lists and the user overrides applied to them."""

from datetime import date
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, Field

from mealcart.config import Settings, get_settings
from mealcart.errors import ParseError, UnknownRecipeError
from mealcart.logging_config import LoggingContext, get_logger
from mealcart.normalize.recipe import IngredientKey
from mealcart.normalize.units import Quantity, UnitFamily
from mealcart.plan.models import ExtraItem, FilteredIngredient, MealPlan, ModifiedAmount
from mealcart.plan.shopping_list import ShoppingList, ShoppingListBuilder
from mealcart.routers.dependencies import CurrentUser, Repository
from mealcart.schemas import QuantitySchema, ShoppingListResponse
from mealcart.storage import PlanRepository

logger = get_logger(__name__)

router = APIRouter(prefix="/api/v1/shopping-list", tags=["shopping-list"])


# =============================================================================
# Request/Response Schemas
# =============================================================================


class IngredientKeyRequest(BaseModel):
    """Identifies an aggregated ingredient."""

    name: str = Field(min_length=1)
    form: str | None = None
    measure_type: UnitFamily = UnitFamily.COUNT


class ModifiedAmountRequest(IngredientKeyRequest):
    """Replace the computed amount of an ingredient."""

    quantity: str = Field(description='Measure text, e.g. "3 cup"')


class ExtraItemRequest(BaseModel):
    """Add an item that no recipe needs."""

    name: str = Field(min_length=1)
    quantity: str = Field(default="1", description='Measure text, e.g. "2" or "1 bag"')


class OverrideResponse(BaseModel):
    """Acknowledges a stored override."""

    name: str
    plan_date: date
    quantity: QuantitySchema | None = None


class StaplesRequest(BaseModel):
    """Staples recipe text merged into every list."""

    text: str


# =============================================================================
# Helper Functions
# =============================================================================


def _parse_quantity(text: str) -> Quantity:
    try:
        return Quantity.parse(text)
    except ParseError as e:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=e.to_dict(),
        )


def _resolve_plan(repository: PlanRepository, user: str, plan_date: date | None) -> MealPlan:
    if plan_date is None:
        plan = repository.fetch_latest_plan(user)
    else:
        plan = repository.fetch_plan_for_date(user, plan_date)
    if plan is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"No meal plan for {plan_date or user}",
        )
    return plan


def build_for_plan(repository: PlanRepository, plan: MealPlan, settings: Settings) -> ShoppingList:
    """Fetch everything the builder needs for a plan and build its list."""
    user, plan_date = plan.user, plan.plan_date
    staples = repository.fetch_staples(user) if settings.include_staples else None
    builder = ShoppingListBuilder(settings.default_category)
    return builder.build(
        plan,
        repository.fetch_recipe_texts(user, plan.recipe_ids),
        filtered=repository.fetch_filtered_ingredients(user, plan_date),
        modified=repository.fetch_modified_amounts(user, plan_date),
        extras=repository.fetch_extra_items(user, plan_date),
        category_mappings=repository.fetch_category_mappings(user),
        staples=staples,
    )


# =============================================================================
# Shopping List Endpoints
# =============================================================================


@router.get("", response_model=ShoppingListResponse)
def get_shopping_list(
    user: CurrentUser,
    repository: Repository,
    plan_date: Annotated[date | None, Query(description="Defaults to the latest plan")] = None,
    settings: Settings = Depends(get_settings),
) -> ShoppingListResponse:
    """
    Generate the shopping list for a meal plan.

    Aggregates all ingredients across the plan's recipes, applies the
    user's filters, modified amounts and extra items, and groups the result
    by category.
    """
    plan = _resolve_plan(repository, user, plan_date)
    with LoggingContext(user_id=user, plan_date=plan.plan_date):
        logger.info("Generating shopping list")
        try:
            shopping_list = build_for_plan(repository, plan, settings)
        except UnknownRecipeError as e:
            raise HTTPException(
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                detail=str(e),
            )
    return ShoppingListResponse.from_shopping_list(shopping_list)


@router.post(
    "/{plan_date}/filtered",
    response_model=OverrideResponse,
    status_code=status.HTTP_201_CREATED,
)
def filter_ingredient(
    plan_date: date,
    request: IngredientKeyRequest,
    user: CurrentUser,
    repository: Repository,
) -> OverrideResponse:
    """Remove an ingredient from the list for a plan date."""
    _resolve_plan(repository, user, plan_date)
    key = IngredientKey(request.name, request.form, request.measure_type)
    repository.save_filtered_ingredient(FilteredIngredient(user, plan_date, key))
    logger.info(f"Filtered {key} on {plan_date}")
    return OverrideResponse(name=key.name, plan_date=plan_date)


@router.post(
    "/{plan_date}/modified",
    response_model=OverrideResponse,
    status_code=status.HTTP_201_CREATED,
)
def modify_amount(
    plan_date: date,
    request: ModifiedAmountRequest,
    user: CurrentUser,
    repository: Repository,
) -> OverrideResponse:
    """Replace the computed amount of an ingredient for a plan date."""
    _resolve_plan(repository, user, plan_date)
    key = IngredientKey(request.name, request.form, request.measure_type)
    quantity = _parse_quantity(request.quantity)
    repository.save_modified_amount(ModifiedAmount(user, plan_date, key, quantity))
    logger.info(f"Modified {key} on {plan_date} to {quantity}")
    return OverrideResponse(
        name=key.name,
        plan_date=plan_date,
        quantity=QuantitySchema.from_quantity(quantity),
    )


@router.post(
    "/{plan_date}/extras",
    response_model=OverrideResponse,
    status_code=status.HTTP_201_CREATED,
)
def add_extra_item(
    plan_date: date,
    request: ExtraItemRequest,
    user: CurrentUser,
    repository: Repository,
) -> OverrideResponse:
    """Add a manual item to the list for a plan date."""
    _resolve_plan(repository, user, plan_date)
    quantity = _parse_quantity(request.quantity)
    try:
        extra = ExtraItem(user, plan_date, request.name, quantity)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e))
    repository.save_extra_item(extra)
    logger.info(f"Added extra item {extra.name} on {plan_date}")
    return OverrideResponse(
        name=extra.name,
        plan_date=plan_date,
        quantity=QuantitySchema.from_quantity(quantity),
    )


@router.get("/staples", response_model=StaplesRequest)
def get_staples(user: CurrentUser, repository: Repository) -> StaplesRequest:
    """Get the staples recipe text."""
    text = repository.fetch_staples(user)
    if text is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="No staples stored",
        )
    return StaplesRequest(text=text)


@router.put("/staples", response_model=StaplesRequest)
def save_staples(request: StaplesRequest, user: CurrentUser, repository: Repository) -> StaplesRequest:
    """Store the staples recipe text."""
    repository.save_staples(user, request.text)
    return request
