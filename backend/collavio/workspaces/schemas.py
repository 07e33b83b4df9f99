from pydantic import EmailStr, Field
from typing import Optional, Dict, Any

from collavio.utils.schemas import CamelModel


class WorkspaceCreate(CamelModel):
    name: str = Field(..., min_length=1, max_length=100)
    description: str = ""


class WorkspaceUpdate(CamelModel):
    name: Optional[str] = None
    description: Optional[str] = None
    integrations: Optional[Dict[str, Any]] = None


class AddMemberRequest(CamelModel):
    email: EmailStr


class MemberResponse(CamelModel):
    uid: str
    email: str = ""
    display_name: str = ""
    photo_url: str = ""
    role: str = "creator"
    is_owner: bool = False
    can_publish: bool = False
