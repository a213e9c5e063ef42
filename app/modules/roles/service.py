from supabase import Client
from fastapi import HTTPException, status
from typing import Any, Dict, List, Optional

from app.core.logger import StructuredLogger, get_structured_logger
from app.modules.rbac.models import (
    PERMISSIONS_TABLE,
    ROLE_PERMISSIONS_TABLE,
    ROLES_TABLE,
    SUPER_ADMIN_ROLE,
    USER_ROLES_TABLE,
)
from app.modules.rbac.repository import parse_row, single_relation
from app.modules.rbac.schemas import Role
from app.modules.roles.schemas import (
    RoleCreate, RoleUpdate, RoleDetail, PermissionDetail,
    RolePermissionsUpdateResponse, RoleUser
)

LOG_MODULE = "user-management"

PERMISSION_DETAIL_COLUMNS = "id, module_id, resource, action, description"
ROLE_USER_COLUMNS = "user:profiles(id, email, display_name, first_name, last_name), assigned_at, expires_at"
GLOBAL_PERMISSION_GROUP = "Global"


class RoleAdminService:
    """
    Role administration for super admins.

    Writes go through the service-role client. Business rule violations
    raise 4xx HTTPExceptions; store errors are logged and raised as 500.
    """

    def __init__(self, supabase: Client, logger: Optional[StructuredLogger] = None):
        self.supabase = supabase
        self.logger = logger or get_structured_logger(__name__)

    def _store_error(self, message: str, error: Exception, action: str, role_id: Optional[str] = None) -> HTTPException:
        context: Dict[str, Any] = {"module": LOG_MODULE, "action": action}
        if role_id:
            context["metadata"] = {"roleId": role_id}
        self.logger.error(message, error, context)
        return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=message)

    def _find_role(self, role_id: str) -> Optional[Dict[str, Any]]:
        result = self.supabase.table(ROLES_TABLE)\
            .select("*")\
            .eq("id", role_id)\
            .limit(1)\
            .execute()
        return result.data[0] if result.data else None

    def _get_role_or_404(self, role_id: str) -> Dict[str, Any]:
        role = self._find_role(role_id)
        if not role:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Role not found")
        return role

    def _name_taken(self, name: str, module_id: Optional[str]) -> bool:
        """Role names are unique within a module scope (NULL module = global)"""
        query = self.supabase.table(ROLES_TABLE).select("id").eq("name", name)
        if module_id:
            query = query.eq("module_id", module_id)
        else:
            query = query.is_("module_id", "null")
        result = query.limit(1).execute()
        return bool(result.data)

    def _role_permissions(self, role_id: str) -> List[PermissionDetail]:
        result = self.supabase.table(ROLE_PERMISSIONS_TABLE)\
            .select(f"permission:permissions({PERMISSION_DETAIL_COLUMNS})")\
            .eq("role_id", role_id)\
            .execute()

        permissions = []
        for row in result.data or []:
            if not isinstance(row, dict):
                continue
            permission = parse_row(PermissionDetail, single_relation(row.get("permission")))
            if permission is not None:
                permissions.append(permission)
        return permissions

    def _permission_ids(self, role_id: str) -> List[str]:
        result = self.supabase.table(ROLE_PERMISSIONS_TABLE)\
            .select("permission_id")\
            .eq("role_id", role_id)\
            .execute()
        return [row["permission_id"] for row in result.data or []]

    def get_role(self, role_id: str) -> RoleDetail:
        """Get role by ID with its permissions"""
        try:
            role = self._get_role_or_404(role_id)
            role["permissions"] = self._role_permissions(role_id)
            return RoleDetail(**role)
        except HTTPException:
            raise
        except Exception as e:
            raise self._store_error("Failed to fetch role", e, "getRoleById", role_id)

    def get_role_permissions(self, role_id: str) -> List[PermissionDetail]:
        try:
            return self._role_permissions(role_id)
        except Exception as e:
            raise self._store_error("Error fetching role permissions", e, "getRolePermissions", role_id)

    def get_available_permissions(self) -> Dict[str, List[PermissionDetail]]:
        """All permissions grouped by module display name; global ones under "Global" """
        try:
            result = self.supabase.table(PERMISSIONS_TABLE)\
                .select(f"{PERMISSION_DETAIL_COLUMNS}, module:modules(id, name, display_name)")\
                .order("module_id")\
                .order("resource")\
                .order("action")\
                .execute()
        except Exception as e:
            raise self._store_error("Error fetching permissions", e, "getAvailablePermissions")

        grouped: Dict[str, List[PermissionDetail]] = {}
        for row in result.data or []:
            permission = parse_row(PermissionDetail, row)
            if permission is None:
                continue
            module = single_relation(row.get("module")) or {}
            group = module.get("display_name") or GLOBAL_PERMISSION_GROUP
            grouped.setdefault(group, []).append(permission)
        return grouped

    def get_role_users(self, role_id: str) -> List[RoleUser]:
        """Users holding a role, with assignment dates"""
        try:
            result = self.supabase.table(USER_ROLES_TABLE)\
                .select(ROLE_USER_COLUMNS)\
                .eq("role_id", role_id)\
                .execute()
        except Exception as e:
            raise self._store_error("Error fetching role users", e, "getRoleUsers", role_id)

        users = []
        for row in result.data or []:
            if not isinstance(row, dict):
                continue
            profile = single_relation(row.get("user"))
            if profile is None:
                continue
            user = parse_row(RoleUser, {
                **profile,
                "assigned_at": row.get("assigned_at"),
                "expires_at": row.get("expires_at"),
            })
            if user is not None:
                users.append(user)
        return users

    def create_role(self, role_data: RoleCreate) -> Role:
        """Create a new (non-system) role"""
        try:
            if self._name_taken(role_data.name, role_data.module_id):
                raise HTTPException(
                    status_code=status.HTTP_409_CONFLICT,
                    detail="Role with this name already exists in this scope"
                )

            result = self.supabase.table(ROLES_TABLE).insert({
                "name": role_data.name,
                "display_name": role_data.display_name,
                "description": role_data.description,
                "module_id": role_data.module_id,
                "priority": role_data.priority,
                "is_system": False,
            }).execute()

            if not result.data:
                raise HTTPException(status_code=500, detail="Failed to create role")

            return Role(**result.data[0])
        except HTTPException:
            raise
        except Exception as e:
            raise self._store_error("Error creating role", e, "createRole")

    def update_role(self, role_id: str, role_data: RoleUpdate) -> Role:
        """Update display name, description or priority of a non-system role"""
        try:
            role = self._get_role_or_404(role_id)
            if role.get("is_system"):
                raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Cannot modify system roles")

            update_data = {}
            if role_data.display_name is not None:
                update_data["display_name"] = role_data.display_name
            if role_data.description is not None:
                update_data["description"] = role_data.description
            if role_data.priority is not None:
                update_data["priority"] = role_data.priority
            if not update_data:
                return Role(**role)

            result = self.supabase.table(ROLES_TABLE)\
                .update(update_data)\
                .eq("id", role_id)\
                .execute()

            if not result.data:
                raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Role not found")

            return Role(**result.data[0])
        except HTTPException:
            raise
        except Exception as e:
            raise self._store_error("Error updating role", e, "updateRole", role_id)

    def delete_role(self, role_id: str) -> None:
        """Delete a non-system role nobody holds; role_permissions cascade"""
        try:
            role = self._get_role_or_404(role_id)
            if role.get("is_system"):
                raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Cannot delete system roles")

            holders = self.supabase.table(USER_ROLES_TABLE)\
                .select("user_id")\
                .eq("role_id", role_id)\
                .execute()
            if holders.data:
                raise HTTPException(
                    status_code=status.HTTP_409_CONFLICT,
                    detail=f"Cannot delete role. {len(holders.data)} user(s) have this role assigned."
                )

            self.supabase.table(ROLES_TABLE)\
                .delete()\
                .eq("id", role_id)\
                .execute()
        except HTTPException:
            raise
        except Exception as e:
            raise self._store_error("Error deleting role", e, "deleteRole", role_id)

    def duplicate_role(self, role_id: str, new_name: str) -> Role:
        """Copy a role and its permissions under a new name in the same scope"""
        try:
            original = self._get_role_or_404(role_id)
            if self._name_taken(new_name, original.get("module_id")):
                raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Role with this name already exists")

            result = self.supabase.table(ROLES_TABLE).insert({
                "name": new_name,
                "display_name": f"{original.get('display_name') or original['name']} (Copy)",
                "description": original.get("description"),
                "module_id": original.get("module_id"),
                "priority": original.get("priority") or 0,
                "is_system": False,
            }).execute()

            if not result.data:
                raise HTTPException(status_code=500, detail="Failed to duplicate role")
            new_role = Role(**result.data[0])
        except HTTPException:
            raise
        except Exception as e:
            raise self._store_error("Error duplicating role", e, "duplicateRole", role_id)

        # The copy exists at this point; a failed permission copy leaves it without grants
        try:
            permission_ids = self._permission_ids(role_id)
            if permission_ids:
                self.supabase.table(ROLE_PERMISSIONS_TABLE).insert([
                    {"role_id": new_role.id, "permission_id": pid}
                    for pid in permission_ids
                ]).execute()
        except Exception as e:
            self.logger.error("Error copying permissions", e, {
                "module": LOG_MODULE,
                "action": "duplicateRole",
                "metadata": {"roleId": role_id, "newRoleId": new_role.id},
            })

        return new_role

    def update_role_permissions(self, role_id: str, permission_ids: List[str]) -> RolePermissionsUpdateResponse:
        """Replace the permission set of a role with ``permission_ids``"""
        try:
            role = self._get_role_or_404(role_id)
            wanted = list(dict.fromkeys(permission_ids))
            if role.get("name") == SUPER_ADMIN_ROLE and not wanted:
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail="Cannot remove all permissions from super_admin role"
                )

            current = self._permission_ids(role_id)
            to_add = [pid for pid in wanted if pid not in current]
            to_remove = [pid for pid in current if pid not in wanted]

            if to_remove:
                self.supabase.table(ROLE_PERMISSIONS_TABLE)\
                    .delete()\
                    .eq("role_id", role_id)\
                    .in_("permission_id", to_remove)\
                    .execute()

            if to_add:
                self.supabase.table(ROLE_PERMISSIONS_TABLE).insert([
                    {"role_id": role_id, "permission_id": pid}
                    for pid in to_add
                ]).execute()

            return RolePermissionsUpdateResponse(
                role_id=role_id,
                added=len(to_add),
                removed=len(to_remove),
                total=len(wanted),
            )
        except HTTPException:
            raise
        except Exception as e:
            raise self._store_error("Error updating role permissions", e, "updateRolePermissions", role_id)
