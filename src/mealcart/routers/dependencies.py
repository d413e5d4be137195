"""Shared FastAPI dependencies."""

from typing import Annotated

from fastapi import Depends, Header
from sqlalchemy.orm import Session

from mealcart.database import get_db
from mealcart.storage import PlanRepository

DEFAULT_USER = "default-user"


def get_current_user(
    x_user_id: Annotated[str, Header(description="User the request acts for")] = DEFAULT_USER,
) -> str:
    """Identify the user from the X-User-Id header."""
    return x_user_id


def get_repository(db: Session = Depends(get_db)) -> PlanRepository:
    return PlanRepository(db)


CurrentUser = Annotated[str, Depends(get_current_user)]
Repository = Annotated[PlanRepository, Depends(get_repository)]
