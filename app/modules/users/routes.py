from fastapi import APIRouter, Depends, HTTPException, Query, status
from app.database.supabase_client import get_rbac_supabase
from app.modules.auth.identity import SessionIdentityResolver
from app.modules.users.schemas import (
    PaginatedUsers, RoleAssign, RoleAssignment,
    UserStatus, UserSortColumn, SortOrder
)
from app.modules.users.service import UserAdminService
from app.core.dependencies import get_identity_resolver, require_permission, require_super_admin
from supabase import Client
from typing import List, Optional

router = APIRouter(prefix="/users", tags=["users"])


def get_user_admin_service(supabase: Client = Depends(get_rbac_supabase)) -> UserAdminService:
    return UserAdminService(supabase)


@router.get("", response_model=PaginatedUsers, dependencies=[Depends(require_permission("read", "users"))])
async def list_users(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    search: Optional[str] = None,
    status_filter: Optional[UserStatus] = Query(None, alias="status"),
    role_id: Optional[str] = None,
    sort_by: UserSortColumn = "created_at",
    sort_order: SortOrder = "desc",
    service: UserAdminService = Depends(get_user_admin_service)
):
    """Paginated user list with search and role/status filters"""
    return service.list_users(
        page=page,
        limit=limit,
        search=search,
        status_filter=status_filter,
        role_id=role_id,
        sort_by=sort_by,
        sort_order=sort_order,
    )


@router.get(
    "/{user_id}/roles",
    response_model=List[RoleAssignment],
    dependencies=[Depends(require_permission("read", "users"))],
)
async def get_user_roles(
    user_id: str,
    service: UserAdminService = Depends(get_user_admin_service)
):
    """Role assignments of a user with assignment metadata"""
    return service.get_user_roles(user_id)


@router.post(
    "/{user_id}/roles",
    response_model=RoleAssignment,
    status_code=201,
    dependencies=[Depends(require_super_admin)],
)
async def assign_role(
    user_id: str,
    body: RoleAssign,
    identity: SessionIdentityResolver = Depends(get_identity_resolver),
    service: UserAdminService = Depends(get_user_admin_service)
):
    """Grant a role to a user (super_admin only)"""
    return service.assign_role(user_id, body.role_id, assigned_by=identity())


@router.delete("/{user_id}/roles/{role_id}", status_code=204, dependencies=[Depends(require_super_admin)])
async def remove_role(
    user_id: str,
    role_id: str,
    service: UserAdminService = Depends(get_user_admin_service)
):
    """Revoke a role from a user (super_admin only)"""
    if not service.remove_role(user_id, role_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Role assignment not found")
    return None
