from pydantic import BaseModel
from typing import Optional, List
from app.modules.rbac.schemas import Role


class RoleCreate(BaseModel):
    name: str
    display_name: str
    description: Optional[str] = None
    module_id: Optional[str] = None  # None for a global role
    priority: int = 0


class RoleUpdate(BaseModel):
    display_name: Optional[str] = None
    description: Optional[str] = None
    priority: Optional[int] = None


class RoleDuplicate(BaseModel):
    name: str


class PermissionDetail(BaseModel):
    id: str
    resource: str
    action: str
    module_id: Optional[str] = None
    description: Optional[str] = None

    class Config:
        extra = "allow"


class RoleDetail(Role):
    module_id: Optional[str] = None
    is_system: bool = False
    permissions: List[PermissionDetail] = []


class RolePermissionsUpdate(BaseModel):
    permission_ids: List[str]


class RolePermissionsUpdateResponse(BaseModel):
    role_id: str
    added: int
    removed: int
    total: int


class RoleUser(BaseModel):
    id: str
    email: Optional[str] = None
    display_name: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    assigned_at: Optional[str] = None
    expires_at: Optional[str] = None
