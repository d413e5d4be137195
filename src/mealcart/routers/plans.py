"""API routes for dated meal plans."""

from datetime import date
from typing import Annotated

from fastapi import APIRouter, HTTPException, Query, status
from pydantic import BaseModel, Field

from mealcart.logging_config import get_logger
from mealcart.plan.models import MealPlan
from mealcart.routers.dependencies import CurrentUser, Repository
from mealcart.schemas import MealPlanSchema

logger = get_logger(__name__)

router = APIRouter(prefix="/api/v1/plans", tags=["plans"])


class MealPlanRequest(BaseModel):
    """Recipe counts to schedule. Zero counts are dropped."""

    recipes: dict[str, Annotated[int, Field(ge=0)]] = Field(default_factory=dict)


class MealPlanListResponse(BaseModel):
    """Plans of a user, oldest first."""

    plans: list[MealPlanSchema]
    total: int


def _not_found(detail: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=detail)


@router.get("", response_model=MealPlanListResponse)
def list_plans(
    user: CurrentUser,
    repository: Repository,
    since: Annotated[date, Query(description="Only plans after this date")] = date.min,
) -> MealPlanListResponse:
    """List meal plans dated after ``since``."""
    logger.info(f"Listing meal plans for {user} since {since}")
    plans = [MealPlanSchema.from_plan(plan) for plan in repository.fetch_plans_since(user, since)]
    return MealPlanListResponse(plans=plans, total=len(plans))


@router.get("/latest", response_model=MealPlanSchema)
def get_latest_plan(user: CurrentUser, repository: Repository) -> MealPlanSchema:
    """Get the most recent meal plan."""
    plan = repository.fetch_latest_plan(user)
    if plan is None:
        raise _not_found(f"No meal plans for {user}")
    return MealPlanSchema.from_plan(plan)


@router.get("/{plan_date}", response_model=MealPlanSchema)
def get_plan(plan_date: date, user: CurrentUser, repository: Repository) -> MealPlanSchema:
    """Get the meal plan for a date."""
    plan = repository.fetch_plan_for_date(user, plan_date)
    if plan is None:
        raise _not_found(f"No meal plan for {plan_date}")
    return MealPlanSchema.from_plan(plan)


@router.put("/{plan_date}", response_model=MealPlanSchema)
def save_plan(
    plan_date: date,
    request: MealPlanRequest,
    user: CurrentUser,
    repository: Repository,
) -> MealPlanSchema:
    """Create or replace the meal plan for a date."""
    plan = MealPlan.from_counts(user, plan_date, request.recipes)
    repository.save_meal_plan(plan)
    return MealPlanSchema.from_plan(plan)


@router.delete("/{plan_date}", status_code=status.HTTP_204_NO_CONTENT)
def delete_plan(plan_date: date, user: CurrentUser, repository: Repository) -> None:
    """Delete the meal plan for a date along with its overrides."""
    if repository.fetch_plan_for_date(user, plan_date) is None:
        raise _not_found(f"No meal plan for {plan_date}")
    repository.delete_meal_plan_for_date(user, plan_date)
