from fastapi import APIRouter, Depends, File, Form, UploadFile, status
from fastapi.responses import FileResponse
from pydantic import BaseModel
from typing import List, Optional
from datetime import datetime
import logging

from travel_planner.api.dependencies import get_lifecycle, get_photo_storage, get_store
from travel_planner.auth.middleware import get_current_user, user_has_permission, CurrentUser
from travel_planner.core.errors import BadRequest, Forbidden, NotFound
from travel_planner.models import PersonalPhoto, User
from travel_planner.services.lifecycle import LifecycleManager
from travel_planner.services.photo_storage import PhotoStorage
from travel_planner.store.entity_store import EntityStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/users/{user_id}/photos", tags=["photos"])

ALLOWED_CONTENT_TYPES = ("image/jpeg", "image/png", "image/gif", "image/webp")


class PersonalPhotoResponse(BaseModel):
    id: int
    filename_hash: str
    original_filename: Optional[str] = None
    content_type: Optional[str] = None
    is_public: bool
    owner_id: int
    is_deleted: bool
    deleted_expiry: Optional[datetime] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


def get_owned_photo(store: EntityStore, user_id: int, photo_id: int, include_deleted: bool = False) -> Optional[PersonalPhoto]:
    photo = store.find_by_id(PersonalPhoto, photo_id, include_deleted=include_deleted)
    if photo is None or photo.owner_id != user_id:
        return None
    return photo


@router.post("", response_model=PersonalPhotoResponse, status_code=status.HTTP_201_CREATED)
async def upload_photo(
    user_id: int,
    file: UploadFile = File(...),
    is_public: bool = Form(False),
    store: EntityStore = Depends(get_store),
    photo_storage: PhotoStorage = Depends(get_photo_storage),
    current_user: CurrentUser = Depends(get_current_user)
):
    """Upload a photo for ``user_id``."""
    if not user_has_permission(current_user, user_id):
        raise Forbidden("You are not permitted to upload photos for this user")
    if store.find_by_id(User, user_id) is None:
        raise NotFound("User not found")
    if file.content_type not in ALLOWED_CONTENT_TYPES:
        raise BadRequest(f"Unsupported photo type: {file.content_type}")

    content = await file.read()
    if not content:
        raise BadRequest("The uploaded photo is empty")

    filename_hash = photo_storage.save(content, file.filename)
    photo = PersonalPhoto(
        filename_hash=filename_hash,
        original_filename=file.filename,
        content_type=file.content_type,
        is_public=is_public,
        owner_id=user_id,
    )
    try:
        store.save(photo)
    except Exception:
        # No row points at the blob, so it would never be purged
        photo_storage.delete(filename_hash)
        raise

    logger.info(f"User {current_user.user_id} uploaded photo {photo.id} for user {user_id}")
    return PersonalPhotoResponse.model_validate(photo)


@router.get("", response_model=List[PersonalPhotoResponse])
async def get_photos(
    user_id: int,
    store: EntityStore = Depends(get_store),
    current_user: CurrentUser = Depends(get_current_user)
):
    """A user's photos. Other users only see the public ones."""
    criteria = [PersonalPhoto.owner_id == user_id]
    if not user_has_permission(current_user, user_id):
        criteria.append(PersonalPhoto.is_public == True)  # noqa: E712

    photos = store.find_by(PersonalPhoto, *criteria, order_by=PersonalPhoto.id)
    return [PersonalPhotoResponse.model_validate(photo) for photo in photos]


@router.get("/{photo_id}/file")
async def get_photo_file(
    user_id: int,
    photo_id: int,
    store: EntityStore = Depends(get_store),
    photo_storage: PhotoStorage = Depends(get_photo_storage),
    current_user: CurrentUser = Depends(get_current_user)
):
    photo = get_owned_photo(store, user_id, photo_id)
    if photo is None or not photo_storage.exists(photo.filename_hash):
        raise NotFound("Photo not found")
    if not photo.is_public and not user_has_permission(current_user, user_id):
        raise Forbidden("This photo is private")

    return FileResponse(photo_storage.path_for(photo.filename_hash), media_type=photo.content_type)


@router.delete("/{photo_id}")
async def delete_photo(
    user_id: int,
    photo_id: int,
    store: EntityStore = Depends(get_store),
    lifecycle: LifecycleManager = Depends(get_lifecycle),
    current_user: CurrentUser = Depends(get_current_user)
):
    """Soft delete a photo. The blob is removed when the row is purged."""
    photo = get_owned_photo(store, user_id, photo_id)
    if photo is None:
        raise NotFound("The photo you are deleting does not exist.")

    lifecycle.delete(photo, current_user)
    return {"message": "Successfully deleted the photo"}


@router.put("/{photo_id}/undodelete", response_model=PersonalPhotoResponse)
async def undo_delete_photo(
    user_id: int,
    photo_id: int,
    store: EntityStore = Depends(get_store),
    lifecycle: LifecycleManager = Depends(get_lifecycle),
    current_user: CurrentUser = Depends(get_current_user)
):
    photo = get_owned_photo(store, user_id, photo_id, include_deleted=True)
    lifecycle.undo(photo, current_user, label="photo")
    return PersonalPhotoResponse.model_validate(photo)
