from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel, Field
from typing import List, Optional
from datetime import datetime
import logging

from travel_planner.api.dependencies import get_lifecycle, get_resolver, get_store
from travel_planner.auth.middleware import get_current_user, user_has_permission, CurrentUser
from travel_planner.core.config import settings
from travel_planner.core.errors import BadRequest, DuplicateConflict, Forbidden, NotFound
from travel_planner.models import Destination, TripDestination, User
from travel_planner.services.duplicates import DestinationDraft, DuplicateResolver
from travel_planner.services.lifecycle import LifecycleManager
from travel_planner.services.lookups import require_country, require_destination_type, resolve_traveller_types
from travel_planner.store.entity_store import EntityStore

logger = logging.getLogger(__name__)

router = APIRouter(tags=["destinations"])


class LookupResponse(BaseModel):
    id: int
    name: str

    class Config:
        from_attributes = True


class CountryResponse(LookupResponse):
    iso_code: Optional[str] = None


class DestinationCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255, description="Destination name")
    type_id: int = Field(..., description="Destination type")
    country_id: int = Field(..., description="Country")
    district: Optional[str] = Field(None, max_length=255, description="District")
    latitude: Optional[float] = Field(None, ge=-90, le=90, description="Latitude")
    longitude: Optional[float] = Field(None, ge=-180, le=180, description="Longitude")
    is_public: bool = False
    traveller_type_ids: List[int] = Field(default_factory=list, description="Traveller types")


class DestinationUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    type_id: Optional[int] = None
    country_id: Optional[int] = None
    district: Optional[str] = Field(None, max_length=255)
    latitude: Optional[float] = Field(None, ge=-90, le=90)
    longitude: Optional[float] = Field(None, ge=-180, le=180)
    is_public: Optional[bool] = None
    traveller_type_ids: Optional[List[int]] = None


class DestinationResponse(BaseModel):
    id: int
    name: str
    district: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    is_public: bool
    owner_id: Optional[int] = None
    type_id: int
    country_id: int
    destination_type: LookupResponse
    country: CountryResponse
    traveller_types: List[LookupResponse]
    is_deleted: bool
    deleted_expiry: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


def to_response(destination: Destination) -> DestinationResponse:
    return DestinationResponse.model_validate(destination)


def can_view(destination: Destination, current_user: CurrentUser) -> bool:
    return destination.is_public or user_has_permission(current_user, destination.owner_id)


def get_visible_destination(store: EntityStore, destination_id: int, current_user: CurrentUser) -> Destination:
    """Fetch an active destination the current user is allowed to see."""
    destination = store.find_by_id(Destination, destination_id)
    if destination is None:
        raise NotFound("No destination exists with the specified ID")
    if not can_view(destination, current_user):
        raise Forbidden("You are not permitted to view this destination")
    return destination


@router.get("/destinations", response_model=List[DestinationResponse])
async def get_destinations(
    search: Optional[str] = None,
    offset: Optional[str] = None,
    store: EntityStore = Depends(get_store),
    current_user: CurrentUser = Depends(get_current_user)
):
    """Get a page of public destinations, ordered by name."""
    try:
        start = int(offset) if offset else 0
    except ValueError:
        raise BadRequest("Offset must be a number")
    if start < 0:
        raise BadRequest("Offset must not be negative")

    criteria = [Destination.is_public == True]  # noqa: E712
    if search:
        criteria.append(Destination.name.istartswith(search, autoescape=True))

    destinations = store.find_by(
        Destination,
        *criteria,
        order_by=Destination.name,
        offset=start,
        limit=settings.destinations_page_size,
    )
    return [to_response(destination) for destination in destinations]


@router.get("/destinations/{destination_id}", response_model=DestinationResponse)
async def get_destination(
    destination_id: int,
    include_deleted: bool = Query(False, description="Also return a soft-deleted destination"),
    store: EntityStore = Depends(get_store),
    current_user: CurrentUser = Depends(get_current_user)
):
    """Get a specific destination by ID."""
    destination = store.find_by_id(Destination, destination_id, include_deleted=include_deleted)
    if destination is None:
        raise NotFound("No destination exists with the specified ID")

    if destination.is_deleted and not user_has_permission(current_user, destination.owner_id):
        # Deleted rows are only shown to whoever can undo the delete
        raise NotFound("No destination exists with the specified ID")
    if not can_view(destination, current_user):
        raise Forbidden("You are not permitted to view this destination")

    return to_response(destination)


@router.get("/destinations/{destination_id}/used")
async def is_destination_used(
    destination_id: int,
    store: EntityStore = Depends(get_store),
    current_user: CurrentUser = Depends(get_current_user)
) -> bool:
    """Whether any trip references the destination."""
    destination = get_visible_destination(store, destination_id, current_user)
    references = store.find_by(TripDestination, TripDestination.destination_id == destination.id, limit=1)
    return bool(references)


@router.get("/users/{user_id}/destinations", response_model=List[DestinationResponse])
async def get_user_destinations(
    user_id: int,
    store: EntityStore = Depends(get_store),
    current_user: CurrentUser = Depends(get_current_user)
):
    """Destinations owned by a user. Other users only see the public ones."""
    criteria = [Destination.owner_id == user_id]
    if not user_has_permission(current_user, user_id):
        criteria.append(Destination.is_public == True)  # noqa: E712

    destinations = store.find_by(Destination, *criteria, order_by=Destination.name)
    return [to_response(destination) for destination in destinations]


@router.post(
    "/users/{user_id}/destinations",
    response_model=DestinationResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_destination(
    user_id: int,
    destination_data: DestinationCreate,
    store: EntityStore = Depends(get_store),
    resolver: DuplicateResolver = Depends(get_resolver),
    current_user: CurrentUser = Depends(get_current_user)
):
    """Create a new destination owned by ``user_id``."""
    if not user_has_permission(current_user, user_id):
        raise Forbidden("You are not permitted to create destinations for this user")
    if store.find_by_id(User, user_id) is None:
        raise NotFound("User not found")

    require_destination_type(store, destination_data.type_id)
    require_country(store, destination_data.country_id)
    traveller_types = resolve_traveller_types(store, destination_data.traveller_type_ids)

    draft = DestinationDraft(
        name=destination_data.name,
        type_id=destination_data.type_id,
        country_id=destination_data.country_id,
        owner_id=user_id,
        is_public=destination_data.is_public,
    )
    resolver.check_create(draft, current_user.user_id)

    destination = Destination(
        name=destination_data.name,
        type_id=destination_data.type_id,
        country_id=destination_data.country_id,
        district=destination_data.district,
        latitude=destination_data.latitude,
        longitude=destination_data.longitude,
        is_public=destination_data.is_public,
        owner_id=user_id,
    )
    destination.traveller_types = traveller_types
    store.save(destination)

    logger.info(f"User {current_user.user_id} created destination {destination.id} for user {user_id}")
    return to_response(destination)


@router.put("/destinations/{destination_id}", response_model=DestinationResponse)
async def update_destination(
    destination_id: int,
    destination_data: DestinationUpdate,
    store: EntityStore = Depends(get_store),
    resolver: DuplicateResolver = Depends(get_resolver),
    lifecycle: LifecycleManager = Depends(get_lifecycle),
    current_user: CurrentUser = Depends(get_current_user)
):
    """Update a destination, absorbing any private duplicates it now matches."""
    destination = store.find_by_id(Destination, destination_id)
    if destination is None:
        raise NotFound("There is no destination with the given ID found")
    if not lifecycle.can_manage(destination, current_user):
        raise Forbidden("You are unauthorised to update this destination")

    update_data = destination_data.model_dump(exclude_unset=True)
    if update_data.get("type_id") is not None:
        require_destination_type(store, update_data["type_id"])
    if update_data.get("country_id") is not None:
        require_country(store, update_data["country_id"])
    traveller_type_ids = update_data.pop("traveller_type_ids", None)
    traveller_types = (
        resolve_traveller_types(store, traveller_type_ids) if traveller_type_ids is not None else None
    )

    # Update fields
    for field, value in update_data.items():
        if value is None and field in ("name", "type_id", "country_id", "is_public"):
            raise BadRequest(f"{field} cannot be null")
        setattr(destination, field, value)
    if traveller_types is not None:
        destination.traveller_types = traveller_types

    try:
        with store.transaction():
            duplicate_ids = resolver.resolve_update(destination, current_user.user_id)
            resolver.merge(destination, duplicate_ids)
            store.save(destination)
    except DuplicateConflict as e:
        raise BadRequest(e.detail)

    return to_response(destination)


@router.delete("/destinations/{destination_id}")
async def delete_destination(
    destination_id: int,
    store: EntityStore = Depends(get_store),
    lifecycle: LifecycleManager = Depends(get_lifecycle),
    current_user: CurrentUser = Depends(get_current_user)
):
    """Soft delete a destination along with its photo links and proposals."""
    destination = store.find_by_id(Destination, destination_id)
    if destination is None:
        raise NotFound("The given destination id is not found")

    lifecycle.delete(destination, current_user)
    return {"message": "Successfully deleted the given destination id"}


@router.put("/destinations/{destination_id}/undodelete", response_model=DestinationResponse)
async def undo_delete_destination(
    destination_id: int,
    store: EntityStore = Depends(get_store),
    resolver: DuplicateResolver = Depends(get_resolver),
    lifecycle: LifecycleManager = Depends(get_lifecycle),
    current_user: CurrentUser = Depends(get_current_user)
):
    """Restore a soft-deleted destination within its undo window."""
    destination = store.find_by_id(Destination, destination_id, include_deleted=True)
    lifecycle.undo(
        destination,
        current_user,
        label="destination",
        before_restore=lambda deleted: resolver.check_restore(deleted, current_user.user_id),
    )
    return to_response(destination)
