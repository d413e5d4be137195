"""API routes for storing and parsing recipe text."""

from fastapi import APIRouter, HTTPException, status
from pydantic import BaseModel, Field

from mealcart.errors import ParseError
from mealcart.logging_config import get_logger
from mealcart.normalize.parser import ParsedRecipe, parse_recipe
from mealcart.routers.dependencies import CurrentUser, Repository
from mealcart.schemas import QuantitySchema

logger = get_logger(__name__)

router = APIRouter(prefix="/api/v1", tags=["recipes"])


# =============================================================================
# Request/Response Schemas
# =============================================================================


class RecipeTextRequest(BaseModel):
    """Raw recipe text to store."""

    text: str = Field(min_length=1)


class IngredientSchema(BaseModel):
    """A parsed ingredient line."""

    name: str
    form: str | None = None
    quantity: QuantitySchema


class RecipeResponse(BaseModel):
    """A stored recipe with its parsed ingredients and line errors."""

    id: str
    title: str
    description: str | None = None
    step_count: int
    ingredients: list[IngredientSchema]
    errors: list[dict] = Field(default_factory=list)
    text: str


class RecipeSummary(BaseModel):
    """Recipe id and title."""

    id: str
    title: str | None = None


class RecipeListResponse(BaseModel):
    """All recipes of a user."""

    recipes: list[RecipeSummary]
    total: int


# =============================================================================
# Helper Functions
# =============================================================================


def _parse_or_422(text: str, recipe_id: str) -> ParsedRecipe:
    try:
        return parse_recipe(text, recipe_id)
    except ParseError as e:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=e.to_dict(),
        )


def _to_response(parsed: ParsedRecipe, text: str) -> RecipeResponse:
    recipe = parsed.recipe
    return RecipeResponse(
        id=recipe.id,
        title=recipe.title,
        description=recipe.description,
        step_count=len(recipe.steps),
        ingredients=[
            IngredientSchema(
                name=line.name,
                form=line.form,
                quantity=QuantitySchema.from_quantity(line.quantity),
            )
            for line in recipe.ingredient_lines
        ],
        errors=[error.to_dict() for error in parsed.errors],
        text=text,
    )


# =============================================================================
# Recipe Endpoints
# =============================================================================


@router.get("/recipes", response_model=RecipeListResponse)
def list_recipes(user: CurrentUser, repository: Repository) -> RecipeListResponse:
    """List the recipes of the current user."""
    logger.info(f"Listing recipes for {user}")

    summaries = []
    for recipe_id, text in repository.fetch_recipe_texts(user).items():
        try:
            title = parse_recipe(text, recipe_id).recipe.title
        except ParseError:
            title = None
        summaries.append(RecipeSummary(id=recipe_id, title=title))

    return RecipeListResponse(recipes=summaries, total=len(summaries))


@router.get("/recipes/{recipe_id}", response_model=RecipeResponse)
def get_recipe(recipe_id: str, user: CurrentUser, repository: Repository) -> RecipeResponse:
    """Get a recipe with its parsed ingredients."""
    texts = repository.fetch_recipe_texts(user, [recipe_id])
    if recipe_id not in texts:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Recipe {recipe_id} not found",
        )
    text = texts[recipe_id]
    return _to_response(_parse_or_422(text, recipe_id), text)


@router.put("/recipes/{recipe_id}", response_model=RecipeResponse)
def save_recipe(
    recipe_id: str,
    request: RecipeTextRequest,
    user: CurrentUser,
    repository: Repository,
) -> RecipeResponse:
    """
    Store recipe text.

    Text without a title is rejected. Invalid ingredient lines are stored
    as written and reported in ``errors``.
    """
    parsed = _parse_or_422(request.text, recipe_id)
    repository.save_recipe(user, recipe_id, request.text)
    logger.info(f"Saved recipe {recipe_id} with {len(parsed.errors)} invalid lines")
    return _to_response(parsed, request.text)


@router.delete("/recipes/{recipe_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_recipe(recipe_id: str, user: CurrentUser, repository: Repository) -> None:
    """Delete a recipe."""
    logger.info(f"Deleting recipe: {recipe_id}")

    if not repository.delete_recipes(user, [recipe_id]):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Recipe {recipe_id} not found",
        )
