from fastapi import APIRouter, Depends
from app.database.supabase_client import get_rbac_supabase
from app.modules.rbac.schemas import Role
from app.modules.roles.schemas import (
    RoleCreate, RoleUpdate, RoleDuplicate, RoleDetail, PermissionDetail,
    RolePermissionsUpdate, RolePermissionsUpdateResponse, RoleUser
)
from app.modules.roles.service import RoleAdminService
from app.core.dependencies import require_super_admin
from supabase import Client
from typing import Dict, List

# Mounted after the rbac router, whose static /roles/... paths take precedence
router = APIRouter(
    prefix="/roles",
    tags=["role-admin"],
    dependencies=[Depends(require_super_admin)],
)


def get_role_admin_service(supabase: Client = Depends(get_rbac_supabase)) -> RoleAdminService:
    return RoleAdminService(supabase)


@router.get("/permissions", response_model=Dict[str, List[PermissionDetail]])
async def list_available_permissions(service: RoleAdminService = Depends(get_role_admin_service)):
    """All permissions grouped by module"""
    return service.get_available_permissions()


@router.post("", response_model=Role, status_code=201)
async def create_role(
    role_data: RoleCreate,
    service: RoleAdminService = Depends(get_role_admin_service)
):
    """Create a new role"""
    return service.create_role(role_data)


@router.get("/{role_id}", response_model=RoleDetail)
async def get_role(
    role_id: str,
    service: RoleAdminService = Depends(get_role_admin_service)
):
    return service.get_role(role_id)


@router.put("/{role_id}", response_model=Role)
async def update_role(
    role_id: str,
    role_data: RoleUpdate,
    service: RoleAdminService = Depends(get_role_admin_service)
):
    """Update role (system roles are read-only)"""
    return service.update_role(role_id, role_data)


@router.delete("/{role_id}", status_code=204)
async def delete_role(
    role_id: str,
    service: RoleAdminService = Depends(get_role_admin_service)
):
    """Delete role (only non-system roles nobody holds)"""
    service.delete_role(role_id)
    return None


@router.post("/{role_id}/duplicate", response_model=Role, status_code=201)
async def duplicate_role(
    role_id: str,
    body: RoleDuplicate,
    service: RoleAdminService = Depends(get_role_admin_service)
):
    return service.duplicate_role(role_id, body.name)


@router.get("/{role_id}/permissions", response_model=List[PermissionDetail])
async def get_role_permissions(
    role_id: str,
    service: RoleAdminService = Depends(get_role_admin_service)
):
    return service.get_role_permissions(role_id)


@router.put("/{role_id}/permissions", response_model=RolePermissionsUpdateResponse)
async def update_role_permissions(
    role_id: str,
    body: RolePermissionsUpdate,
    service: RoleAdminService = Depends(get_role_admin_service)
):
    """Replace all permissions of a role"""
    return service.update_role_permissions(role_id, body.permission_ids)


@router.get("/{role_id}/users", response_model=List[RoleUser])
async def get_role_users(
    role_id: str,
    service: RoleAdminService = Depends(get_role_admin_service)
):
    """Users holding a role"""
    return service.get_role_users(role_id)
