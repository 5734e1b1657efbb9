"""
Pydantic models for service requests.

A "service" is a job posted by a user who is looking for a provider.
The scheduled date is exposed to clients as ``date``; internally the
field is called ``scheduled_date`` to avoid shadowing the ``date``
type.
"""

from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, Field

from .category import CategoryRef
from .common import MAX_ID, Pagination
from .proposal import ProposalRead
from .user import UserSummary


ServiceStatus = Literal["pending", "in_progress", "completed", "cancelled"]


class ServiceBase(BaseModel):
    title: str = Field(..., min_length=1, example="Limpeza de apartamento")
    description: str = Field(..., min_length=1, example="Apartamento de 2 quartos, 60 m²")
    price: float = Field(..., gt=0, example=200.0)
    scheduled_date: str = Field(..., alias="date", min_length=1, example="2024-07-15")
    location: Optional[str] = Field(None, example="Pinheiros, São Paulo")
    category_id: Optional[int] = Field(None, ge=1, le=MAX_ID, example=1)
    latitude: Optional[float] = Field(None, ge=-90, le=90, example=-23.5614)
    longitude: Optional[float] = Field(None, ge=-180, le=180, example=-46.6912)

    model_config = {
        "populate_by_name": True,
    }


class ServiceCreate(ServiceBase):
    """Schema for posting a new service; it always starts as ``pending``."""
    pass


class ServiceUpdate(BaseModel):
    """Partial update sent by the owner.

    Only the fields present in the request body are changed.  ``status``
    may move a service to ``cancelled`` or ``completed``; moving it to
    ``in_progress`` happens only when a proposal is accepted.
    """

    title: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = Field(None, min_length=1)
    price: Optional[float] = Field(None, gt=0)
    scheduled_date: Optional[str] = Field(None, alias="date", min_length=1)
    location: Optional[str] = None
    category_id: Optional[int] = Field(None, ge=1, le=MAX_ID)
    latitude: Optional[float] = Field(None, ge=-90, le=90)
    longitude: Optional[float] = Field(None, ge=-180, le=180)
    status: Optional[ServiceStatus] = None

    model_config = {
        "populate_by_name": True,
    }


class ServiceRead(BaseModel):
    id: int
    title: str
    description: str
    price: float
    scheduled_date: str = Field(..., alias="date")
    location: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    status: ServiceStatus
    created_at: Optional[datetime] = None
    category: Optional[CategoryRef] = None
    user: Optional[UserSummary] = None

    model_config = {
        "from_attributes": True,
        "populate_by_name": True,
    }


class ServiceDetail(ServiceRead):
    proposals: List[ProposalRead] = []


class NearbyServiceRead(ServiceRead):
    # Kilometres from the searched point, rounded to two decimals.
    distance: float
    distance_label: str


class ServiceEnvelope(BaseModel):
    service: ServiceRead


class ServiceDetailEnvelope(BaseModel):
    service: ServiceDetail


class ServiceList(BaseModel):
    services: List[ServiceRead]
    pagination: Pagination


class NearbyServiceList(BaseModel):
    services: List[NearbyServiceRead]


class FavoriteCreate(BaseModel):
    # Web clients send ``serviceId``; ``service_id`` is accepted as well.
    service_id: int = Field(..., alias="serviceId", ge=1, le=MAX_ID, example=1)

    model_config = {
        "populate_by_name": True,
    }


class FavoriteRead(BaseModel):
    id: int
    service_id: int
    created_at: Optional[datetime] = None
    service: Optional[ServiceRead] = None


class FavoriteEnvelope(BaseModel):
    favorite: FavoriteRead


class FavoriteList(BaseModel):
    favorites: List[FavoriteRead]
