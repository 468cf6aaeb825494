"""
Expense category endpoints.

Anyone signed in may read categories; owners and admins maintain them.
"""

from typing import List, Tuple

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from expense_tracker.core.database import get_db
from expense_tracker.models.expense import ExpenseCategory
from expense_tracker.schemas.category import CategoryCreate, CategoryResponse, CategoryUpdate
from expense_tracker.schemas.common import SuccessResponse
from expense_tracker.services.categories import CategoryService

router = APIRouter()


def get_category_service(db: AsyncSession = Depends(get_db)) -> CategoryService:
    return CategoryService(db)


def category_to_response(row: Tuple[ExpenseCategory, int]) -> CategoryResponse:
    category, expense_count = row
    return CategoryResponse(
        id=category.id,
        name=category.name,
        description=category.description,
        expense_count=expense_count,
        created_at=category.created_at,
        updated_at=category.updated_at,
    )


@router.get("", name="categories:list", response_model=SuccessResponse[List[CategoryResponse]])
async def list_categories(service: CategoryService = Depends(get_category_service)):
    rows = await service.list_categories()
    return SuccessResponse(data=[category_to_response(row) for row in rows])


@router.get("/{category_id}", name="categories:get", response_model=SuccessResponse[CategoryResponse])
async def get_category(category_id: int, service: CategoryService = Depends(get_category_service)):
    return SuccessResponse(data=category_to_response(await service.get(category_id)))


@router.post(
    "",
    name="categories:create",
    status_code=201,
    response_model=SuccessResponse[CategoryResponse],
)
async def create_category(body: CategoryCreate, service: CategoryService = Depends(get_category_service)):
    row = await service.create(body.name, body.description)
    return SuccessResponse(message="Category created successfully", data=category_to_response(row))


@router.patch("/{category_id}", name="categories:update", response_model=SuccessResponse[CategoryResponse])
async def update_category(
    category_id: int,
    body: CategoryUpdate,
    service: CategoryService = Depends(get_category_service),
):
    row = await service.update(category_id, body.model_dump(exclude_unset=True))
    return SuccessResponse(message="Category updated successfully", data=category_to_response(row))


@router.delete("/{category_id}", name="categories:delete", status_code=status.HTTP_204_NO_CONTENT)
async def delete_category(category_id: int, service: CategoryService = Depends(get_category_service)):
    """Refused with 409 while any expense still uses the category."""
    await service.delete(category_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
