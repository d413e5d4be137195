"""API routers for the mealcart application."""

from mealcart.routers.categories import router as categories_router
from mealcart.routers.plans import router as plans_router
from mealcart.routers.recipes import router as recipes_router
from mealcart.routers.shopping import router as shopping_router

__all__ = [
    "categories_router",
    "plans_router",
    "recipes_router",
    "shopping_router",
]
