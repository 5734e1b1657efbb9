"""Pydantic models for service categories."""

from typing import List, Optional

from pydantic import BaseModel


class CategoryRef(BaseModel):
    id: int
    name: str


class CategoryRead(CategoryRef):
    icon: Optional[str] = None
    description: Optional[str] = None

    model_config = {
        "from_attributes": True,
    }


class CategoryList(BaseModel):
    categories: List[CategoryRead]
