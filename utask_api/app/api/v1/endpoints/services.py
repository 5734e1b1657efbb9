"""
Service endpoints for API v1.

Listing, detail and the nearby search are public; posting, editing,
deleting and favourites require authentication.  The fixed paths
(``/nearby``, ``/favorites``) are declared before ``/{service_id}``.
"""

from typing import Optional

from fastapi import APIRouter, Path, Query, status

from utask_api.app.api.deps import CurrentUser, ProposalServiceDep, ServiceRequestServiceDep
from utask_api.app.schemas.common import MAX_ID, SuccessResponse
from utask_api.app.schemas.proposal import ProposalCreate, ProposalEnvelope, ProposalList
from utask_api.app.schemas.service import (
    FavoriteCreate,
    FavoriteEnvelope,
    FavoriteList,
    NearbyServiceList,
    ServiceCreate,
    ServiceDetailEnvelope,
    ServiceEnvelope,
    ServiceList,
    ServiceUpdate,
)


router = APIRouter()


@router.get("", response_model=ServiceList)
async def list_services(
    services: ServiceRequestServiceDep,
    category: Optional[int] = Query(None, ge=1, le=MAX_ID, description="Category id"),
    q: Optional[str] = Query(None, description="Text searched in title and description"),
    location: Optional[str] = Query(None, description="Substring of the location"),
    status_filter: Optional[str] = Query("pending", alias="status", description="Service status; empty for all"),
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0, le=MAX_ID),
) -> ServiceList:
    """List services, newest first.  Only ``pending`` services by default."""
    return await services.list_services(
        category=category,
        q=q,
        location=location,
        status=status_filter,
        limit=limit,
        offset=offset,
    )


@router.post("", response_model=ServiceEnvelope, status_code=status.HTTP_201_CREATED)
async def create_service(
    payload: ServiceCreate,
    current_user: CurrentUser,
    services: ServiceRequestServiceDep,
) -> ServiceEnvelope:
    service = await services.create_service(current_user["user_id"], payload)
    return ServiceEnvelope(service=service)


@router.get("/nearby", response_model=NearbyServiceList)
async def nearby_services(
    services: ServiceRequestServiceDep,
    lat: Optional[float] = Query(None, ge=-90, le=90),
    lng: Optional[float] = Query(None, ge=-180, le=180),
    radius: float = Query(10, gt=0, description="Search radius in km"),
) -> NearbyServiceList:
    """Pending services around a point, closest first, with their distance in km."""
    return NearbyServiceList(services=await services.nearby_services(lat, lng, radius))


@router.get("/favorites", response_model=FavoriteList)
async def list_favorites(current_user: CurrentUser, services: ServiceRequestServiceDep) -> FavoriteList:
    return FavoriteList(favorites=await services.list_favorites(current_user["user_id"]))


@router.post("/favorites", response_model=FavoriteEnvelope, status_code=status.HTTP_201_CREATED)
async def add_favorite(
    payload: FavoriteCreate,
    current_user: CurrentUser,
    services: ServiceRequestServiceDep,
) -> FavoriteEnvelope:
    favorite = await services.add_favorite(current_user["user_id"], payload.service_id)
    return FavoriteEnvelope(favorite=favorite)


@router.get("/{service_id}", response_model=ServiceDetailEnvelope)
async def get_service(
    services: ServiceRequestServiceDep,
    service_id: int = Path(..., ge=1, le=MAX_ID, description="ID of the service"),
) -> ServiceDetailEnvelope:
    """Return a service with its category, owner and proposals."""
    return ServiceDetailEnvelope(service=await services.get_service(service_id))


@router.put("/{service_id}", response_model=ServiceEnvelope)
async def update_service(
    payload: ServiceUpdate,
    current_user: CurrentUser,
    services: ServiceRequestServiceDep,
    service_id: int = Path(..., ge=1, le=MAX_ID, description="ID of the service"),
) -> ServiceEnvelope:
    """Partially update a service.  Owner only.

    ``status`` may close a pending service (``cancelled``) or finish one
    in progress (``completed`` or ``cancelled``).
    """
    service = await services.update_service(service_id, current_user["user_id"], payload)
    return ServiceEnvelope(service=service)


@router.delete("/{service_id}", response_model=SuccessResponse)
async def delete_service(
    current_user: CurrentUser,
    services: ServiceRequestServiceDep,
    service_id: int = Path(..., ge=1, le=MAX_ID, description="ID of the service"),
) -> SuccessResponse:
    await services.delete_service(service_id, current_user["user_id"])
    return SuccessResponse(message="Service deleted")


@router.post(
    "/{service_id}/proposals",
    response_model=ProposalEnvelope,
    status_code=status.HTTP_201_CREATED,
)
async def create_proposal(
    payload: ProposalCreate,
    current_user: CurrentUser,
    proposals: ProposalServiceDep,
    service_id: int = Path(..., ge=1, le=MAX_ID, description="ID of the service"),
) -> ProposalEnvelope:
    """Send a proposal for a pending service owned by someone else."""
    proposal = await proposals.create_proposal(service_id, current_user["user_id"], payload)
    return ProposalEnvelope(proposal=proposal)


@router.get("/{service_id}/proposals", response_model=ProposalList)
async def list_service_proposals(
    current_user: CurrentUser,
    proposals: ProposalServiceDep,
    service_id: int = Path(..., ge=1, le=MAX_ID, description="ID of the service"),
) -> ProposalList:
    """The owner sees every proposal; other users only their own."""
    return ProposalList(proposals=await proposals.list_service_proposals(service_id, current_user["user_id"]))
