"""
Core dependencies for route protection and permission checking
"""

from fastapi import Depends, HTTPException, Request, Security, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from app.database.supabase_client import get_supabase, get_rbac_supabase
from app.modules.auth.identity import SessionIdentityResolver
from app.modules.auth.service import AuthService
from app.modules.rbac.repository import RoleRepository
from app.modules.rbac.service import RbacService
from app.core.logger import get_structured_logger
from supabase import Client
from typing import Dict, Any, Optional

logger = get_structured_logger(__name__)

# Anonymous callers are allowed through; decisions deny them downstream
security = HTTPBearer(auto_error=False)


def get_bearer_token(
    credentials: Optional[HTTPAuthorizationCredentials] = Security(security)
) -> Optional[str]:
    if credentials is None:
        return None
    return credentials.credentials


def get_auth_service(supabase: Client = Depends(get_supabase)) -> AuthService:
    return AuthService(supabase)


def get_current_user(
    request: Request,
    token: Optional[str] = Depends(get_bearer_token),
    auth_service: AuthService = Depends(get_auth_service)
) -> Dict[str, Any]:
    """Extract current user info from JWT token; 401 when absent or invalid"""
    if not token:
        logger.warning("Unauthorized access attempt", {
            "path": request.url.path,
            "statusCode": status.HTTP_401_UNAUTHORIZED,
        })
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return auth_service.get_current_user(token)


def get_identity_resolver(
    request: Request,
    token: Optional[str] = Depends(get_bearer_token),
    auth_service: AuthService = Depends(get_auth_service)
) -> SessionIdentityResolver:
    """One resolver per request so the session is looked up at most once."""
    resolver = getattr(request.state, "identity_resolver", None)
    if resolver is None:
        resolver = SessionIdentityResolver(auth_service, token)
        request.state.identity_resolver = resolver
    return resolver


def get_role_repository(supabase: Client = Depends(get_rbac_supabase)) -> RoleRepository:
    return RoleRepository(supabase)


def get_rbac_service(
    repository: RoleRepository = Depends(get_role_repository),
    identity: SessionIdentityResolver = Depends(get_identity_resolver)
) -> RbacService:
    return RbacService(repository, identity=identity)


def require_super_admin(rbac: RbacService = Depends(get_rbac_service)) -> None:
    """Page guard: redirects to the unauthorized landing page unless super_admin"""
    rbac.require_super_admin()


def require_permission(action: str, resource: str):
    """Factory function to create permission check dependency"""
    def check_permission(
        identity: SessionIdentityResolver = Depends(get_identity_resolver),
        rbac: RbacService = Depends(get_rbac_service)
    ) -> str:
        """Dependency to check if the caller holds (action, resource); returns the caller's id"""
        user_id = identity()
        if not user_id:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Not authenticated",
                headers={"WWW-Authenticate": "Bearer"},
            )
        if not rbac.has_permission(action, resource, user_id):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Insufficient permissions. Required: {resource}:{action}"
            )
        return user_id
    return check_permission
