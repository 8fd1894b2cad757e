from typing import Optional
from fastapi import HTTPException, Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from travel_planner.auth.jwt_manager import jwt_manager
from travel_planner.models.user import ROLE_ADMIN

# Missing credentials are a 401, not FastAPI's default 403
security = HTTPBearer(auto_error=False)


class CurrentUser:
    """Context class to hold current user information."""
    def __init__(self, user_id: int, role: str):
        self.user_id = user_id
        self.role = role

    @property
    def is_admin(self) -> bool:
        return self.role == ROLE_ADMIN


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> CurrentUser:
    """Dependency to get the current authenticated user."""
    if credentials is None:
        raise HTTPException(
            status_code=401,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )

    payload = jwt_manager.verify_access_token(credentials.credentials)
    if not payload:
        raise HTTPException(
            status_code=401,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        )

    return CurrentUser(
        user_id=int(payload["sub"]),
        role=payload["role"]
    )


def require_role(required_role: str):
    """Factory function to create a role requirement dependency."""
    async def role_dependency(current_user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
        if current_user.role != required_role:
            raise HTTPException(status_code=403, detail="Insufficient permissions")
        return current_user
    return role_dependency


require_admin = require_role(ROLE_ADMIN)


def user_has_permission(current_user: CurrentUser, user_id: int) -> bool:
    """True when the current user may act on behalf of ``user_id``."""
    return current_user.is_admin or current_user.user_id == user_id
