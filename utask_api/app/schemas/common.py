"""
Shared response envelopes.

Listing endpoints wrap their items together with a ``Pagination``
block, and action endpoints that do not return a record answer with
``SuccessResponse``.
"""

from pydantic import BaseModel, Field

# Largest value SQLite stores in an INTEGER column.
MAX_ID = 2**63 - 1


class Pagination(BaseModel):
    limit: int = Field(..., example=20)
    offset: int = Field(..., example=0)
    # Number of rows matching the filters, not the size of this page.
    total: int = Field(..., example=42)


class SuccessResponse(BaseModel):
    success: bool = Field(True, example=True)
    message: str = Field(..., example="Notification marked as read")
