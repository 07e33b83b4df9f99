from pydantic import Field
from typing import Optional
from enum import Enum

from collavio.utils.schemas import CamelModel


class NotificationType(str, Enum):
    COMMENT = "comment"
    UPLOAD = "upload"
    APPROVAL = "approval"
    STATUS = "status"


class NotificationCreate(CamelModel):
    type: str = Field(..., min_length=1)
    message: str = Field(..., min_length=1)
    user_id: Optional[str] = None
    workspace_id: Optional[str] = None
    video_id: Optional[str] = None
