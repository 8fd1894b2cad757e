from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field
from typing import List, Optional
from datetime import date, datetime
import logging

from travel_planner.api.dependencies import get_store
from travel_planner.auth.middleware import get_current_user, user_has_permission, CurrentUser
from travel_planner.core.errors import BadRequest, Forbidden, NotFound
from travel_planner.models import Destination, TreasureHunt, User
from travel_planner.store.entity_store import EntityStore

logger = logging.getLogger(__name__)

router = APIRouter(tags=["treasure hunts"])


class TreasureHuntCreate(BaseModel):
    name: str = Field(..., max_length=255)
    riddle: str
    destination_id: int
    start_date: date
    end_date: date


class TreasureHuntUpdate(BaseModel):
    name: Optional[str] = Field(None, max_length=255)
    riddle: Optional[str] = None
    destination_id: Optional[int] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None


class TreasureHuntResponse(BaseModel):
    id: int
    name: str
    riddle: str
    destination_id: int
    owner_id: int
    start_date: date
    end_date: date
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


def validate_hunt(store: EntityStore, hunt: TreasureHunt) -> None:
    """Check a treasure hunt as it would be saved."""
    if not hunt.name or not hunt.name.strip():
        raise BadRequest("A treasure hunt needs a name")
    if not hunt.riddle or not hunt.riddle.strip():
        raise BadRequest("A treasure hunt needs a riddle")
    if hunt.start_date > hunt.end_date:
        raise BadRequest("The start date must not be after the end date")

    destination = store.find_by_id(Destination, hunt.destination_id)
    if destination is None:
        raise BadRequest("Destination does not exist")
    if not destination.is_public and destination.owner_id != hunt.owner_id:
        raise Forbidden("The destination of a treasure hunt must be public or your own")


def get_manageable_hunt(store: EntityStore, hunt_id: int, current_user: CurrentUser) -> TreasureHunt:
    hunt = store.find_by_id(TreasureHunt, hunt_id)
    if hunt is None:
        raise NotFound("Treasure hunt not found")
    if not user_has_permission(current_user, hunt.owner_id):
        raise Forbidden("You are not permitted to change this treasure hunt")
    return hunt


@router.post(
    "/users/{user_id}/treasurehunts",
    response_model=TreasureHuntResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_treasure_hunt(
    user_id: int,
    request: TreasureHuntCreate,
    store: EntityStore = Depends(get_store),
    current_user: CurrentUser = Depends(get_current_user)
):
    if not user_has_permission(current_user, user_id):
        raise Forbidden("You are not permitted to create treasure hunts for this user")
    if store.find_by_id(User, user_id) is None:
        raise NotFound("User not found")

    hunt = TreasureHunt(owner_id=user_id, **request.model_dump())
    validate_hunt(store, hunt)
    store.save(hunt)

    logger.info(f"Created treasure hunt {hunt.id} for user {user_id}")
    return TreasureHuntResponse.model_validate(hunt)


@router.get("/treasurehunts", response_model=List[TreasureHuntResponse])
async def get_active_treasure_hunts(
    store: EntityStore = Depends(get_store),
    current_user: CurrentUser = Depends(get_current_user)
):
    """Treasure hunts running today."""
    today = date.today()
    hunts = store.find_by(
        TreasureHunt,
        TreasureHunt.start_date <= today,
        TreasureHunt.end_date >= today,
        order_by=TreasureHunt.end_date,
    )
    return [TreasureHuntResponse.model_validate(hunt) for hunt in hunts]


@router.get("/users/{user_id}/treasurehunts", response_model=List[TreasureHuntResponse])
async def get_user_treasure_hunts(
    user_id: int,
    store: EntityStore = Depends(get_store),
    current_user: CurrentUser = Depends(get_current_user)
):
    hunts = store.find_by(TreasureHunt, TreasureHunt.owner_id == user_id, order_by=TreasureHunt.id)
    return [TreasureHuntResponse.model_validate(hunt) for hunt in hunts]


@router.put("/treasurehunts/{hunt_id}", response_model=TreasureHuntResponse)
async def update_treasure_hunt(
    hunt_id: int,
    request: TreasureHuntUpdate,
    store: EntityStore = Depends(get_store),
    current_user: CurrentUser = Depends(get_current_user)
):
    hunt = get_manageable_hunt(store, hunt_id, current_user)

    for field, value in request.model_dump(exclude_unset=True).items():
        if value is None:
            raise BadRequest(f"{field} cannot be null")
        setattr(hunt, field, value)

    validate_hunt(store, hunt)
    store.save(hunt)
    return TreasureHuntResponse.model_validate(hunt)


@router.delete("/treasurehunts/{hunt_id}")
async def delete_treasure_hunt(
    hunt_id: int,
    store: EntityStore = Depends(get_store),
    current_user: CurrentUser = Depends(get_current_user)
):
    hunt = get_manageable_hunt(store, hunt_id, current_user)
    store.purge(hunt)
    return {"message": "Treasure hunt deleted successfully"}
