from fastapi import APIRouter, Depends, HTTPException, status
from app.modules.auth.schemas import CurrentUserResponse, LogoutResponse
from app.modules.auth.service import AuthService
from app.modules.rbac.service import RbacService
from app.core.dependencies import (
    get_auth_service,
    get_bearer_token,
    get_current_user,
    get_rbac_service,
)
from typing import Dict, Optional

router = APIRouter(prefix="/auth", tags=["auth"])


@router.get("/me", response_model=CurrentUserResponse)
async def get_me(
    current_user: Dict = Depends(get_current_user),
    rbac: RbacService = Depends(get_rbac_service)
):
    """Get current authenticated user with roles and permissions (for frontend UI)."""
    user_id = current_user["id"]
    return CurrentUserResponse(
        **current_user,
        roles=rbac.get_user_roles(user_id),
        permissions=rbac.get_user_permissions(user_id),
        is_super_admin=rbac.check_super_admin(user_id),
    )


@router.post("/logout", response_model=LogoutResponse)
async def logout(
    token: Optional[str] = Depends(get_bearer_token),
    service: AuthService = Depends(get_auth_service)
):
    """Sign out the current session"""
    if not token:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated")
    service.logout(token)
    return LogoutResponse(message="Logged out successfully")
