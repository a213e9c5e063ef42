from fastapi import HTTPException, status
from typing import Any, Callable, Dict, List, Optional, TypeVar

from app.core.logger import StructuredLogger, get_structured_logger
from app.modules.rbac.models import SUPER_ADMIN_ROLE, SUPER_ADMIN_ROLE_COLUMNS
from app.modules.rbac.repository import QueryResult, RoleRepository
from app.modules.rbac.schemas import Module, Permission, Role

T = TypeVar("T")

IdentityResolver = Callable[[], Optional[str]]

UNAUTHORIZED_REDIRECT = "/dashboard?error=unauthorized"

LOG_MODULE = "auth"


def anonymous() -> Optional[str]:
    return None


class UnauthorizedRedirect(HTTPException):
    """Aborts the request with a redirect to the unauthorized landing page"""

    def __init__(self, location: str = UNAUTHORIZED_REDIRECT):
        super().__init__(
            status_code=status.HTTP_303_SEE_OTHER,
            detail="Unauthorized",
            headers={"Location": location},
        )
        self.location = location


class RbacService:
    """
    Authorization decisions against user_roles/roles/permissions.

    Every decision takes an optional, already-resolved ``user_id``. When it is
    omitted the ``identity`` resolver supplied at the request boundary is
    consulted; no identity means deny/empty without touching the store.
    Store failures are logged once and fail closed.
    """

    def __init__(
        self,
        repository: RoleRepository,
        identity: IdentityResolver = anonymous,
        logger: Optional[StructuredLogger] = None,
    ):
        self.repository = repository
        self.identity = identity
        self.logger = logger or get_structured_logger(__name__)

    def _resolve_user_id(self, user_id: Optional[str]) -> Optional[str]:
        if user_id:
            return user_id
        return self.identity()

    def _fail_closed(self, result: QueryResult[T], default: T, message: str, context: Dict[str, Any]) -> T:
        if result.ok:
            return result.value
        self.logger.error(message, result.error, {"module": LOG_MODULE, **context})
        return default

    def check_super_admin(self, user_id: Optional[str] = None) -> bool:
        user_id = self._resolve_user_id(user_id)
        if not user_id:
            return False

        result = self.repository.fetch_user_roles(user_id, columns=SUPER_ADMIN_ROLE_COLUMNS)
        roles = self._fail_closed(
            result, [], "Error checking super admin role",
            {"action": "checkSuperAdmin", "userId": user_id},
        )
        return any(role.name == SUPER_ADMIN_ROLE for role in roles)

    def get_user_roles(self, user_id: Optional[str] = None) -> List[Role]:
        user_id = self._resolve_user_id(user_id)
        if not user_id:
            return []

        result = self.repository.fetch_user_roles(user_id)
        return self._fail_closed(
            result, [], "Error fetching user roles",
            {"action": "getUserRoles", "userId": user_id},
        )

    def get_user_permissions(self, user_id: Optional[str] = None) -> List[Permission]:
        user_id = self._resolve_user_id(user_id)
        if not user_id:
            return []

        result = self.repository.fetch_user_permissions(user_id)
        return self._fail_closed(
            result, [], "Error fetching user permissions",
            {"action": "getUserPermissions", "userId": user_id},
        )

    def has_permission(self, action: str, resource: str, user_id: Optional[str] = None) -> bool:
        user_id = self._resolve_user_id(user_id)
        if not user_id:
            return False

        result = self.repository.fetch_user_permissions(user_id)
        permissions = self._fail_closed(
            result, [], "Error checking permission",
            {
                "action": "hasPermission",
                "userId": user_id,
                "metadata": {"permission": action, "resource": resource},
            },
        )
        return any(permission.matches(action, resource) for permission in permissions)

    def require_super_admin(self, user_id: Optional[str] = None) -> None:
        if not self.check_super_admin(user_id):
            raise UnauthorizedRedirect()

    def get_all_roles(self) -> List[Role]:
        result = self.repository.fetch_all_roles()
        return self._fail_closed(
            result, [], "Error fetching roles",
            {"action": "getAllRoles"},
        )

    def get_modules(self) -> List[Module]:
        result = self.repository.fetch_modules()
        return self._fail_closed(
            result, [], "Error fetching modules",
            {"action": "getModules"},
        )

    def can_access_module(self, module_name: str, user_id: Optional[str] = None) -> bool:
        user_id = self._resolve_user_id(user_id)
        if not user_id:
            return False

        result = self.repository.fetch_module_access(module_name, user_id)
        return self._fail_closed(
            result, False, "Module access check failed",
            {"action": "canAccessModule", "userId": user_id, "metadata": {"moduleName": module_name}},
        )
