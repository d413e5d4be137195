"""API routes for ingredient category mappings."""

from fastapi import APIRouter, HTTPException, status
from pydantic import BaseModel, Field

from mealcart.errors import ParseError
from mealcart.logging_config import get_logger
from mealcart.plan.models import CategoryMapping
from mealcart.routers.dependencies import CurrentUser, Repository

logger = get_logger(__name__)

router = APIRouter(prefix="/api/v1/categories", tags=["categories"])


class CategoryMappingSchema(BaseModel):
    """Maps an ingredient name to a display category."""

    ingredient_name: str = Field(min_length=1)
    category_name: str = Field(min_length=1)


class CategoryFileRequest(BaseModel):
    """Category file text, one ``Category: a|b|c`` line per category."""

    text: str


class CategoryListResponse(BaseModel):
    """All category mappings of a user."""

    mappings: list[CategoryMappingSchema]
    total: int


def _to_response(mappings: list[CategoryMapping]) -> CategoryListResponse:
    return CategoryListResponse(
        mappings=[
            CategoryMappingSchema(
                ingredient_name=mapping.ingredient_name,
                category_name=mapping.category_name,
            )
            for mapping in mappings
        ],
        total=len(mappings),
    )


@router.get("", response_model=CategoryListResponse)
def list_categories(user: CurrentUser, repository: Repository) -> CategoryListResponse:
    """List the category mappings of the current user."""
    return _to_response(repository.fetch_category_mappings(user))


@router.put("", response_model=CategoryListResponse)
def save_category_file(
    request: CategoryFileRequest,
    user: CurrentUser,
    repository: Repository,
) -> CategoryListResponse:
    """Store every mapping of a category file."""
    try:
        mappings = repository.save_categories(user, request.text)
    except ParseError as e:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=e.to_dict(),
        )
    return _to_response(mappings)


@router.post("", response_model=CategoryMappingSchema, status_code=status.HTTP_201_CREATED)
def save_category_mapping(
    request: CategoryMappingSchema,
    user: CurrentUser,
    repository: Repository,
) -> CategoryMappingSchema:
    """Assign one ingredient to a category."""
    mapping = CategoryMapping(user, request.ingredient_name, request.category_name)
    repository.save_category_mapping(mapping)
    logger.info(f"Mapped {mapping.ingredient_name} to {mapping.category_name}")
    return CategoryMappingSchema(
        ingredient_name=mapping.ingredient_name,
        category_name=mapping.category_name,
    )
