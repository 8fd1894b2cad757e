from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field
from typing import Dict, List, Optional
from datetime import datetime
import logging

from travel_planner.api.dependencies import get_store
from travel_planner.auth.middleware import get_current_user, user_has_permission, CurrentUser
from travel_planner.core.errors import BadRequest, Forbidden, NotFound
from travel_planner.models import Destination, Trip, TripDestination, User
from travel_planner.services.ownership import destination_needs_save, maybe_clear_owner
from travel_planner.store.entity_store import EntityStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/users/{user_id}/trips", tags=["trips"])


class TripDestinationRequest(BaseModel):
    destination_id: int
    arrival: Optional[datetime] = None
    departure: Optional[datetime] = None


class TripRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=255, description="Trip name")
    destinations: List[TripDestinationRequest] = Field(..., description="Ordered stops")


class TripDestinationResponse(BaseModel):
    id: int
    position: int
    destination_id: int
    arrival: Optional[datetime] = None
    departure: Optional[datetime] = None

    class Config:
        from_attributes = True


class TripResponse(BaseModel):
    id: int
    name: str
    user_id: int
    trip_destinations: List[TripDestinationResponse]
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


def check_user(store: EntityStore, current_user: CurrentUser, user_id: int) -> None:
    if not user_has_permission(current_user, user_id):
        raise Forbidden("You are not permitted to manage trips for this user")
    if store.find_by_id(User, user_id) is None:
        raise NotFound("User does not exist")


def validate_stops(store: EntityStore, user_id: int, stops: List[TripDestinationRequest]) -> Dict[int, Destination]:
    """Check the ordered stops of a trip and load their destinations."""
    if not stops or len(stops) < 2:
        raise BadRequest("A trip needs at least two destinations")

    for previous, current in zip(stops, stops[1:]):
        if previous.destination_id == current.destination_id:
            raise BadRequest("A trip cannot visit the same destination twice in a row")

    destinations = {}
    for stop in stops:
        if stop.arrival and stop.departure and stop.arrival > stop.departure:
            raise BadRequest("Arrival must not be after departure")
        destination = store.find_by_id(Destination, stop.destination_id)
        # A private destination of someone else is as good as missing
        if destination is None or not (destination.is_public or destination.owner_id == user_id):
            raise BadRequest(f"Destination {stop.destination_id} does not exist")
        destinations[destination.id] = destination
    return destinations


def save_trip(store: EntityStore, trip: Trip, user_id: int, request: TripRequest) -> Trip:
    """Replace the stops of a trip and clear owners of public destinations it now uses."""
    destinations = validate_stops(store, user_id, request.destinations)

    with store.transaction():
        trip.name = request.name
        trip.trip_destinations = [
            TripDestination(
                position=position,
                destination_id=stop.destination_id,
                arrival=stop.arrival,
                departure=stop.departure,
            )
            for position, stop in enumerate(request.destinations)
        ]
        store.save(trip)
        for destination in destinations.values():
            if destination_needs_save(destination, user_id):
                store.save(maybe_clear_owner(destination, user_id))
    return trip


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_trip(
    user_id: int,
    request: TripRequest,
    store: EntityStore = Depends(get_store),
    current_user: CurrentUser = Depends(get_current_user)
):
    check_user(store, current_user, user_id)

    trip = save_trip(store, Trip(user_id=user_id), user_id, request)
    logger.info(f"Created trip {trip.id} for user {user_id}")
    return {"trip_id": trip.id}


@router.get("", response_model=List[TripResponse])
async def get_trips(
    user_id: int,
    store: EntityStore = Depends(get_store),
    current_user: CurrentUser = Depends(get_current_user)
):
    check_user(store, current_user, user_id)
    trips = store.find_by(Trip, Trip.user_id == user_id, order_by=Trip.id)
    return [TripResponse.model_validate(trip) for trip in trips]


@router.get("/{trip_id}", response_model=TripResponse)
async def get_trip(
    user_id: int,
    trip_id: int,
    store: EntityStore = Depends(get_store),
    current_user: CurrentUser = Depends(get_current_user)
):
    check_user(store, current_user, user_id)
    trips = store.find_by(Trip, Trip.id == trip_id, Trip.user_id == user_id)
    if not trips:
        raise NotFound("Trip not found")
    return TripResponse.model_validate(trips[0])


@router.put("/{trip_id}", response_model=TripResponse)
async def update_trip(
    user_id: int,
    trip_id: int,
    request: TripRequest,
    store: EntityStore = Depends(get_store),
    current_user: CurrentUser = Depends(get_current_user)
):
    check_user(store, current_user, user_id)
    trips = store.find_by(Trip, Trip.id == trip_id, Trip.user_id == user_id)
    if not trips:
        raise NotFound("Trip not found")

    trip = save_trip(store, trips[0], user_id, request)
    return TripResponse.model_validate(trip)


@router.delete("/{trip_id}")
async def delete_trip(
    user_id: int,
    trip_id: int,
    store: EntityStore = Depends(get_store),
    current_user: CurrentUser = Depends(get_current_user)
):
    check_user(store, current_user, user_id)
    trips = store.find_by(Trip, Trip.id == trip_id, Trip.user_id == user_id)
    if not trips:
        raise NotFound("Trip not found")

    store.purge(trips[0])
    logger.info(f"Deleted trip {trip_id} of user {user_id}")
    return {"message": "Trip deleted successfully"}
