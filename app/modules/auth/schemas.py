from pydantic import BaseModel
from typing import Optional, List, Any, Dict

from app.modules.rbac.schemas import Role, Permission


class CurrentUserResponse(BaseModel):
    id: str
    email: Optional[str] = None
    user_metadata: Dict[str, Any] = {}
    app_metadata: Dict[str, Any] = {}
    created_at: Optional[Any] = None
    updated_at: Optional[Any] = None
    roles: List[Role]
    permissions: List[Permission]
    is_super_admin: bool


class LogoutResponse(BaseModel):
    message: str
