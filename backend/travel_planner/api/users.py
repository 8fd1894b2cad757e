from fastapi import APIRouter, Depends
from pydantic import BaseModel
from typing import Optional
from datetime import datetime
import logging

from travel_planner.api.dependencies import get_store
from travel_planner.auth.jwt_manager import jwt_manager
from travel_planner.auth.middleware import get_current_user, require_admin, CurrentUser
from travel_planner.core.errors import BadRequest, NotFound
from travel_planner.models import User
from travel_planner.models.user import ROLE_ADMIN, ROLE_TRAVELLER
from travel_planner.store.entity_store import EntityStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/users", tags=["users"])


class UserResponse(BaseModel):
    id: int
    email: str
    first_name: str
    last_name: str
    role: str
    created_at: Optional[datetime] = None
    last_login_at: Optional[datetime] = None

    class Config:
        from_attributes = True


@router.get("/{user_id}", response_model=UserResponse)
async def get_user(
    user_id: int,
    store: EntityStore = Depends(get_store),
    current_user: CurrentUser = Depends(get_current_user)
):
    user = store.find_by_id(User, user_id)
    if user is None:
        raise NotFound("User not found")
    return UserResponse.model_validate(user)


@router.put("/{user_id}/admin", response_model=UserResponse)
async def toggle_admin(
    user_id: int,
    store: EntityStore = Depends(get_store),
    current_user: CurrentUser = Depends(require_admin)
):
    """Grant or revoke the admin role (admin only)."""
    if user_id == current_user.user_id:
        raise BadRequest("You cannot change your own role")

    user = store.find_by_id(User, user_id)
    if user is None:
        raise NotFound("User not found")

    user.role = ROLE_TRAVELLER if user.is_admin else ROLE_ADMIN
    store.save(user)

    # Tokens carry the role, so force the user to log in again
    jwt_manager.revoke_all_user_tokens(store.db, user.id)
    logger.info(f"User {current_user.user_id} set role of user {user_id} to {user.role}")
    return UserResponse.model_validate(user)
