from pydantic import BaseModel
from typing import Optional, List, Literal
from app.modules.rbac.schemas import Role

UserStatus = Literal["active", "inactive", "suspended"]
UserSortColumn = Literal["created_at", "email", "first_name", "last_name", "display_name", "status"]
SortOrder = Literal["asc", "desc"]


class UserProfile(BaseModel):
    id: str
    email: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    display_name: Optional[str] = None
    employee_id: Optional[str] = None
    status: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    class Config:
        extra = "allow"  # select("*") returns every profile column


class PaginatedUsers(BaseModel):
    data: List[UserProfile]
    total: int
    page: int
    limit: int
    total_pages: int


class RoleAssign(BaseModel):
    role_id: str


class RoleAssignment(BaseModel):
    user_id: str
    role_id: str
    assigned_by: Optional[str] = None
    assigned_at: Optional[str] = None
    expires_at: Optional[str] = None
    role: Optional[Role] = None
