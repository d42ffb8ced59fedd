from pydantic import BaseModel, ConfigDict, Field
from datetime import datetime
from typing import List, Optional


class UserBase(BaseModel):
    """Base schema for a PTO tool user."""
    slack_id: str = Field(..., min_length=1, max_length=64)
    name: str = Field(..., min_length=1, max_length=200)
    country: Optional[str] = None
    is_admin: bool = False
    is_student: bool = False


class UserCreate(UserBase):
    """Schema for creating a user; the manager is referenced by chat id."""
    manager_slack_id: Optional[str] = None


class UserImport(BaseModel):
    """Bulk import. Managers may reference users earlier in the same batch."""
    users: List[UserCreate] = Field(..., min_length=1)


class UserAdminUpdate(BaseModel):
    """Admin patch. Sending manager_slack_id as null clears the manager."""
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    country: Optional[str] = None
    manager_slack_id: Optional[str] = None
    is_admin: Optional[bool] = None
    is_student: Optional[bool] = None

    model_config = ConfigDict(extra="forbid")


class UserResponse(UserBase):
    """Schema for user response."""
    model_config = ConfigDict(from_attributes=True)

    id: int
    manager_id: Optional[int] = None
    created_at: Optional[datetime] = None


class UserImportResponse(BaseModel):
    created: List[UserResponse]
    skipped: List[str]
