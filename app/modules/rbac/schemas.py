from pydantic import BaseModel
from typing import Optional, List, Tuple


class Role(BaseModel):
    id: str
    name: str
    display_name: Optional[str] = None
    description: Optional[str] = None
    priority: Optional[int] = None

    class Config:
        extra = "allow"  # select("*") returns every column


class Permission(BaseModel):
    action: str
    resource: str

    @property
    def key(self) -> Tuple[str, str]:
        return (self.action, self.resource)

    def matches(self, action: str, resource: str) -> bool:
        # Exact, case-sensitive; no wildcards or resource prefixes
        return self.action == action and self.resource == resource


class RolesResponse(BaseModel):
    roles: List[Role]


class PermissionCheckResponse(BaseModel):
    action: str
    resource: str
    allowed: bool


class Module(BaseModel):
    id: str
    name: str
    display_name: Optional[str] = None
    description: Optional[str] = None
    is_active: Optional[bool] = None
    required_employee: Optional[bool] = None

    class Config:
        extra = "allow"


class ModuleAccessResponse(BaseModel):
    module: str
    allowed: bool
