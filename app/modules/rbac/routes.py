from fastapi import APIRouter, Depends, HTTPException, Response, status
from app.config import settings
from app.modules.rbac.schemas import (
    Role, Permission, Module, RolesResponse, PermissionCheckResponse, ModuleAccessResponse
)
from app.modules.rbac.service import RbacService
from app.core.dependencies import (
    get_current_user,
    get_rbac_service,
    require_permission,
    require_super_admin,
)
from typing import List

router = APIRouter(prefix="/roles", tags=["roles"])


@router.get("", response_model=RolesResponse)
async def list_roles(
    response: Response,
    rbac: RbacService = Depends(get_rbac_service)
):
    """Full role catalog, highest priority first (super_admin only)"""
    if not rbac.check_super_admin():
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Unauthorized")
    response.headers["Cache-Control"] = settings.roles_cache_control
    return RolesResponse(roles=rbac.get_all_roles())


@router.get("/me", response_model=List[Role])
async def get_my_roles(rbac: RbacService = Depends(get_rbac_service)):
    """Roles held by the caller; empty for anonymous callers"""
    return rbac.get_user_roles()


@router.get("/check", response_model=PermissionCheckResponse)
async def check_permission(
    action: str,
    resource: str,
    rbac: RbacService = Depends(get_rbac_service)
):
    """Whether the caller holds (action, resource)"""
    return PermissionCheckResponse(
        action=action,
        resource=resource,
        allowed=rbac.has_permission(action, resource),
    )


@router.get("/modules", response_model=List[Module], dependencies=[Depends(get_current_user)])
async def list_modules(rbac: RbacService = Depends(get_rbac_service)):
    """Active modules (requires a signed-in caller)"""
    return rbac.get_modules()


@router.get("/modules/{module_name}/access", response_model=ModuleAccessResponse)
async def check_module_access(
    module_name: str,
    rbac: RbacService = Depends(get_rbac_service)
):
    """Whether the caller may open a module; anonymous callers are denied"""
    return ModuleAccessResponse(module=module_name, allowed=rbac.can_access_module(module_name))


@router.get("/users/{user_id}", response_model=List[Role], dependencies=[Depends(require_super_admin)])
async def get_user_roles(
    user_id: str,
    rbac: RbacService = Depends(get_rbac_service)
):
    """Roles held by another user (super_admin only, others are redirected)"""
    return rbac.get_user_roles(user_id)


@router.get(
    "/users/{user_id}/permissions",
    response_model=List[Permission],
    dependencies=[Depends(require_permission("read", "roles"))],
)
async def get_user_permissions(
    user_id: str,
    rbac: RbacService = Depends(get_rbac_service)
):
    """Effective permissions of a user (requires read on roles)"""
    return rbac.get_user_permissions(user_id)
