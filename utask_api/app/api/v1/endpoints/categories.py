"""Category listing for API v1."""

from fastapi import APIRouter

from utask_api.app.api.deps import CategoryServiceDep
from utask_api.app.schemas.category import CategoryList


router = APIRouter()


@router.get("", response_model=CategoryList)
async def list_categories(categories: CategoryServiceDep) -> CategoryList:
    return CategoryList(categories=await categories.list_categories())
