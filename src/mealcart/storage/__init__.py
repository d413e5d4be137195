"""Persistence for recipes, plans and overrides."""

from mealcart.storage.repository import PlanRepository

__all__ = ["PlanRepository"]
