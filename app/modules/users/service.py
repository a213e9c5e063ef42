import math
import re
from datetime import datetime, timezone
from supabase import Client
from fastapi import HTTPException, status
from typing import Any, Dict, List, Optional

from app.core.logger import StructuredLogger, get_structured_logger
from app.modules.rbac.models import PROFILES_TABLE, USER_ROLES_TABLE
from app.modules.rbac.repository import parse_row, parse_rows, single_relation
from app.modules.rbac.schemas import Role
from app.modules.users.schemas import PaginatedUsers, RoleAssignment, UserProfile

LOG_MODULE = "users"

SEARCH_COLUMNS = ("email", "first_name", "last_name", "employee_id")

# Characters with meaning inside a PostgREST or=(...) filter
UNSAFE_SEARCH_CHARS = re.compile(r"[,()]")

# Postgres error codes surfaced by PostgREST
UNIQUE_VIOLATION = "23505"
FOREIGN_KEY_VIOLATION = "23503"


def search_filter(search: str) -> Optional[str]:
    """``or`` filter matching ``search`` against every searchable profile column"""
    term = UNSAFE_SEARCH_CHARS.sub(" ", search).strip()
    if not term:
        return None
    return ",".join(f"{column}.ilike.%{term}%" for column in SEARCH_COLUMNS)


class UserAdminService:
    def __init__(self, supabase: Client, logger: Optional[StructuredLogger] = None):
        self.supabase = supabase
        self.logger = logger or get_structured_logger(__name__)

    def list_users(
        self,
        page: int = 1,
        limit: int = 20,
        search: Optional[str] = None,
        status_filter: Optional[str] = None,
        role_id: Optional[str] = None,
        sort_by: str = "created_at",
        sort_order: str = "desc"
    ) -> PaginatedUsers:
        """
        One page of user profiles with the exact total.

        ``role_id`` restricts to holders of that role through an inner join on
        user_roles. A store error is logged and yields an empty page.
        """
        try:
            # Inner join so the role filter drops profiles without that role
            select_clause = "*, user_roles!inner(role_id)" if role_id else "*"
            query = self.supabase.table(PROFILES_TABLE).select(select_clause, count="exact")

            if search:
                filters = search_filter(search)
                if filters:
                    query = query.or_(filters)
            if status_filter:
                query = query.eq("status", status_filter)
            if role_id:
                query = query.eq("user_roles.role_id", role_id)

            start = (page - 1) * limit
            result = query.order(sort_by, desc=sort_order != "asc")\
                .range(start, start + limit - 1)\
                .execute()
        except Exception as e:
            self.logger.error("Failed to fetch users", e, {
                "module": "user-management",
                "action": "getUsers",
                "metadata": {"page": page, "limit": limit, "search": search, "roleId": role_id},
            })
            return PaginatedUsers(data=[], total=0, page=page, limit=limit, total_pages=0)

        total = result.count or 0
        return PaginatedUsers(
            data=parse_rows(UserProfile, result.data),
            total=total,
            page=page,
            limit=limit,
            total_pages=math.ceil(total / limit),
        )

    def get_user_roles(self, user_id: str) -> List[RoleAssignment]:
        """Role assignments of a user, newest first, with the role attached"""
        try:
            result = self.supabase.table(USER_ROLES_TABLE)\
                .select("*, role:roles(*)")\
                .eq("user_id", user_id)\
                .order("assigned_at", desc=True)\
                .execute()
        except Exception as e:
            self.logger.error("Failed to fetch user roles", e, {
                "module": "user-management",
                "action": "getUserRoles",
                "userId": user_id,
            })
            raise HTTPException(status_code=500, detail="Failed to fetch user roles")

        assignments = []
        for row in result.data or []:
            if not isinstance(row, dict):
                continue
            assignment = parse_row(RoleAssignment, {
                **row,
                "role": parse_row(Role, single_relation(row.get("role"))),
            })
            if assignment is not None:
                assignments.append(assignment)
        return assignments

    def _assignment_error(self, message: str, error: Exception, action: str, user_id: str, role_id: str) -> HTTPException:
        self.logger.error(message, error, {
            "module": LOG_MODULE,
            "action": action,
            "userId": user_id,
            "metadata": {"roleId": role_id},
        })
        code = getattr(error, "code", None)
        if code == UNIQUE_VIOLATION:
            return HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Role already assigned to user")
        if code == FOREIGN_KEY_VIOLATION:
            return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User or role not found")
        return HTTPException(status_code=500, detail=message)

    def assign_role(self, user_id: str, role_id: str, assigned_by: Optional[str] = None) -> RoleAssignment:
        """Grant ``role_id`` to ``user_id``, recording who granted it"""
        row: Dict[str, Any] = {
            "user_id": user_id,
            "role_id": role_id,
            "assigned_by": assigned_by,
            "assigned_at": datetime.now(timezone.utc).isoformat(),
        }
        try:
            result = self.supabase.table(USER_ROLES_TABLE).insert(row).execute()
        except Exception as e:
            raise self._assignment_error("Error assigning role", e, "assignRole", user_id, role_id)

        if not result.data:
            raise HTTPException(status_code=500, detail="Failed to assign role")
        return RoleAssignment(**result.data[0])

    def remove_role(self, user_id: str, role_id: str) -> bool:
        """Revoke ``role_id`` from ``user_id``; False when it was not assigned"""
        try:
            result = self.supabase.table(USER_ROLES_TABLE)\
                .delete()\
                .eq("user_id", user_id)\
                .eq("role_id", role_id)\
                .execute()
        except Exception as e:
            raise self._assignment_error("Error removing role", e, "removeRole", user_id, role_id)

        return len(result.data or []) > 0
