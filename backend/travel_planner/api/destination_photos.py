from fastapi import APIRouter, Depends, status
from pydantic import BaseModel
from typing import List, Optional
from datetime import datetime
import logging

from travel_planner.api.destinations import get_visible_destination
from travel_planner.api.dependencies import get_lifecycle, get_store
from travel_planner.api.photos import PersonalPhotoResponse
from travel_planner.auth.middleware import get_current_user, user_has_permission, CurrentUser
from travel_planner.core.errors import DuplicateConflict, Forbidden, NotFound
from travel_planner.models import DestinationPhoto, PersonalPhoto
from travel_planner.services.lifecycle import LifecycleManager
from travel_planner.services.ownership import destination_needs_save, maybe_clear_owner
from travel_planner.store.entity_store import EntityStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/destinations/{destination_id}/photos", tags=["destination photos"])


class DestinationPhotoCreate(BaseModel):
    photo_id: int


class DestinationPhotoResponse(BaseModel):
    id: int
    destination_id: int
    personal_photo_id: int
    personal_photo: PersonalPhotoResponse
    is_deleted: bool
    deleted_expiry: Optional[datetime] = None

    class Config:
        from_attributes = True


def get_link(store: EntityStore, destination_id: int, link_id: int, include_deleted: bool = False) -> Optional[DestinationPhoto]:
    link = store.find_by_id(DestinationPhoto, link_id, include_deleted=include_deleted)
    if link is None or link.destination_id != destination_id:
        return None
    return link


@router.post("", response_model=DestinationPhotoResponse, status_code=status.HTTP_201_CREATED)
async def add_destination_photo(
    destination_id: int,
    request: DestinationPhotoCreate,
    store: EntityStore = Depends(get_store),
    current_user: CurrentUser = Depends(get_current_user)
):
    """Attach one of the caller's photos to a destination."""
    destination = get_visible_destination(store, destination_id, current_user)

    photo = store.find_by_id(PersonalPhoto, request.photo_id)
    if photo is None:
        raise NotFound("Photo not found")
    if not user_has_permission(current_user, photo.owner_id):
        raise Forbidden("You can only link your own photos")

    existing = store.find_by(
        DestinationPhoto,
        DestinationPhoto.destination_id == destination.id,
        DestinationPhoto.personal_photo_id == photo.id,
    )
    if existing:
        raise DuplicateConflict("This photo is already linked to the destination")

    link = DestinationPhoto(destination_id=destination.id, personal_photo_id=photo.id)
    with store.transaction():
        store.save(link)
        # The photo's owner is the one building on the destination
        if destination_needs_save(destination, photo.owner_id):
            store.save(maybe_clear_owner(destination, photo.owner_id))

    logger.info(f"Linked photo {photo.id} to destination {destination.id}")
    return DestinationPhotoResponse.model_validate(link)


@router.get("", response_model=List[DestinationPhotoResponse])
async def get_destination_photos(
    destination_id: int,
    store: EntityStore = Depends(get_store),
    current_user: CurrentUser = Depends(get_current_user)
):
    """Photos of a destination that are public or belong to the caller."""
    destination = get_visible_destination(store, destination_id, current_user)

    links = store.find_by(
        DestinationPhoto,
        DestinationPhoto.destination_id == destination.id,
        order_by=DestinationPhoto.id,
    )
    visible = [
        link for link in links
        if not link.personal_photo.is_deleted
        and (link.personal_photo.is_public or user_has_permission(current_user, link.personal_photo.owner_id))
    ]
    return [DestinationPhotoResponse.model_validate(link) for link in visible]


@router.delete("/{photo_id}")
async def delete_destination_photo(
    destination_id: int,
    photo_id: int,
    store: EntityStore = Depends(get_store),
    lifecycle: LifecycleManager = Depends(get_lifecycle),
    current_user: CurrentUser = Depends(get_current_user)
):
    """Soft delete a photo link. The photo itself is untouched."""
    link = get_link(store, destination_id, photo_id)
    if link is None:
        raise NotFound("The destination photo you are deleting does not exist.")

    lifecycle.delete(link, current_user)
    return {"message": "Successfully deleted the destination photo"}


@router.put("/{photo_id}/undodelete", response_model=DestinationPhotoResponse)
async def undo_delete_destination_photo(
    destination_id: int,
    photo_id: int,
    store: EntityStore = Depends(get_store),
    lifecycle: LifecycleManager = Depends(get_lifecycle),
    current_user: CurrentUser = Depends(get_current_user)
):
    link = get_link(store, destination_id, photo_id, include_deleted=True)
    lifecycle.undo(link, current_user, label="destination photo")
    return DestinationPhotoResponse.model_validate(link)
