"""SQLAlchemy database models."""

from datetime import date

from sqlalchemy import (
    Date,
    ForeignKeyConstraint,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import Mapped, mapped_column

from mealcart.database import Base


class RecipeRow(Base):
    """Recipe source text stored per user."""

    __tablename__ = "recipes"

    user_id: Mapped[str] = mapped_column(String, primary_key=True)
    recipe_id: Mapped[str] = mapped_column(String, primary_key=True)
    recipe_text: Mapped[str | None] = mapped_column(Text, nullable=True)


class PlanRow(Base):
    """A dated meal plan for a user."""

    __tablename__ = "plan_table"

    user_id: Mapped[str] = mapped_column(String, primary_key=True)
    plan_date: Mapped[date] = mapped_column(Date, primary_key=True)


class PlanRecipeRow(Base):
    """A recipe and its multiplier within a plan."""

    __tablename__ = "plan_recipes"

    user_id: Mapped[str] = mapped_column(String, primary_key=True)
    plan_date: Mapped[date] = mapped_column(Date, primary_key=True)
    recipe_id: Mapped[str] = mapped_column(String, primary_key=True)
    count: Mapped[int] = mapped_column(Integer, nullable=False)

    __table_args__ = (
        ForeignKeyConstraint(
            ["user_id", "plan_date"],
            ["plan_table.user_id", "plan_table.plan_date"],
        ),
    )


class FilteredIngredientRow(Base):
    """Ingredient key removed from a plan's shopping list."""

    __tablename__ = "filtered_ingredients"

    user_id: Mapped[str] = mapped_column(String, primary_key=True)
    name: Mapped[str] = mapped_column(String, primary_key=True)
    form: Mapped[str] = mapped_column(String, primary_key=True)  # "" when no form
    measure_type: Mapped[str] = mapped_column(String, primary_key=True)
    plan_date: Mapped[date] = mapped_column(Date, primary_key=True)


class ModifiedAmountRow(Base):
    """User-asserted quantity for an ingredient key."""

    __tablename__ = "modified_amts"

    user_id: Mapped[str] = mapped_column(String, primary_key=True)
    name: Mapped[str] = mapped_column(String, primary_key=True)
    form: Mapped[str] = mapped_column(String, primary_key=True)  # "" when no form
    measure_type: Mapped[str] = mapped_column(String, primary_key=True)
    plan_date: Mapped[date] = mapped_column(Date, primary_key=True)
    amt: Mapped[str] = mapped_column(String, nullable=False)


class ExtraItemRow(Base):
    """Manually added shopping list item."""

    __tablename__ = "extra_items"

    user_id: Mapped[str] = mapped_column(String, primary_key=True)
    name: Mapped[str] = mapped_column(String, primary_key=True)
    plan_date: Mapped[date] = mapped_column(Date, primary_key=True)
    amt: Mapped[str] = mapped_column(String, nullable=False)


class CategoryMappingRow(Base):
    """Ingredient name to display category for a user."""

    __tablename__ = "category_mappings"

    user_id: Mapped[str] = mapped_column(String, primary_key=True)
    ingredient_name: Mapped[str] = mapped_column(String, primary_key=True)
    category_name: Mapped[str] = mapped_column(String, nullable=False, default="Misc")

    __table_args__ = (Index("idx_category_mappings_user_category", "user_id", "category_name"),)


class StaplesRow(Base):
    """Staples recipe text merged into every shopping list."""

    __tablename__ = "staples"

    user_id: Mapped[str] = mapped_column(String, primary_key=True)
    content: Mapped[str] = mapped_column(Text, nullable=False)
