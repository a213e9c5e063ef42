"""
Data-access boundary for the RBAC layer.

Queries never raise past this module: each method returns a QueryResult that
either carries the canonical value or the exception the store reported.
PostgREST nests joined rows as an object for to-one relations and as a list
for to-many ones; the helpers below decide that shape here so the service
only ever sees flat ``List[Role]`` / ``List[Permission]``. Rows are validated
one at a time: a row with the wrong shape is skipped, and only an exception
from the store itself fails the query.
"""

from dataclasses import dataclass
from typing import Any, Generic, List, Optional, Type, TypeVar

from pydantic import BaseModel, ValidationError
from supabase import Client

from app.modules.rbac.models import (
    CAN_ACCESS_MODULE_RPC,
    MODULES_TABLE,
    PERMISSION_JOIN,
    ROLES_TABLE,
    USER_ROLE_COLUMNS,
    USER_ROLES_TABLE,
)
from app.modules.rbac.schemas import Module, Permission, Role

T = TypeVar("T")
M = TypeVar("M", bound=BaseModel)


@dataclass(frozen=True)
class QueryResult(Generic[T]):
    value: Optional[T] = None
    error: Optional[Exception] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, value: T) -> "QueryResult[T]":
        return cls(value=value)

    @classmethod
    def failure(cls, error: Exception) -> "QueryResult[T]":
        return cls(error=error)


def single_relation(value: Any) -> Optional[dict]:
    """Return a to-one relation only when it came back as a single object."""
    # TODO: confirm with product whether user_roles -> roles can legitimately come
    # back as a list; until then a list-shaped role/permission counts as absent.
    if isinstance(value, dict):
        return value
    return None


def parse_row(model: Type[M], data: Any) -> Optional[M]:
    """Build ``model`` from one row; a row that does not validate counts as absent."""
    if not isinstance(data, dict):
        return None
    try:
        return model(**data)
    except ValidationError:
        return None


def parse_rows(model: Type[M], rows: Optional[List[Any]]) -> List[M]:
    parsed = (parse_row(model, row) for row in rows or [])
    return [item for item in parsed if item is not None]


def collapse_roles(rows: Optional[List[dict]]) -> List[Role]:
    roles = []
    for row in rows or []:
        if not isinstance(row, dict):
            continue
        role = parse_row(Role, single_relation(row.get("role")))
        if role is not None:
            roles.append(role)
    return roles


def collapse_permissions(rows: Optional[List[dict]]) -> List[Permission]:
    permissions = []
    for row in rows or []:
        if not isinstance(row, dict):
            continue
        role = single_relation(row.get("role"))
        if role is None:
            continue
        for role_permission in role.get("role_permissions") or []:
            if not isinstance(role_permission, dict):
                continue
            permission = parse_row(Permission, single_relation(role_permission.get("permission")))
            if permission is not None:
                permissions.append(permission)
    return permissions


class RoleRepository:
    def __init__(self, supabase: Client):
        self.supabase = supabase

    def fetch_user_roles(self, user_id: str, columns: str = USER_ROLE_COLUMNS) -> QueryResult[List[Role]]:
        """Roles held by ``user_id`` in store order, duplicates included"""
        try:
            result = self.supabase.table(USER_ROLES_TABLE)\
                .select(f"role:roles({columns})")\
                .eq("user_id", user_id)\
                .execute()
            return QueryResult.success(collapse_roles(result.data))
        except Exception as e:
            return QueryResult.failure(e)

    def fetch_user_permissions(self, user_id: str) -> QueryResult[List[Permission]]:
        """Union of permissions granted through every role held by ``user_id``"""
        try:
            result = self.supabase.table(USER_ROLES_TABLE)\
                .select(PERMISSION_JOIN)\
                .eq("user_id", user_id)\
                .execute()
            return QueryResult.success(collapse_permissions(result.data))
        except Exception as e:
            return QueryResult.failure(e)

    def fetch_all_roles(self) -> QueryResult[List[Role]]:
        """Full role catalog, highest priority first"""
        try:
            result = self.supabase.table(ROLES_TABLE)\
                .select("*")\
                .order("priority", desc=True)\
                .execute()
            return QueryResult.success(parse_rows(Role, result.data))
        except Exception as e:
            return QueryResult.failure(e)

    def fetch_modules(self) -> QueryResult[List[Module]]:
        """Active modules ordered by display name"""
        try:
            result = self.supabase.table(MODULES_TABLE)\
                .select("*")\
                .eq("is_active", True)\
                .order("display_name")\
                .execute()
            return QueryResult.success(parse_rows(Module, result.data))
        except Exception as e:
            return QueryResult.failure(e)

    def fetch_module_access(self, module_name: str, user_id: str) -> QueryResult[bool]:
        try:
            result = self.supabase.rpc(CAN_ACCESS_MODULE_RPC, {
                "p_module_name": module_name,
                "p_user_id": user_id,
            }).execute()
            # Anything but a literal true is a deny
            return QueryResult.success(result.data is True)
        except Exception as e:
            return QueryResult.failure(e)
