from typing import Optional
from enum import Enum

from collavio.utils.schemas import CamelModel


class VideoStatus(str, Enum):
    IN_REVIEW = "in_review"
    APPROVED = "approved"
    REJECTED = "rejected"


class StatusUpdate(CamelModel):
    status: VideoStatus


class PublishRequest(CamelModel):
    title: Optional[str] = None
    description: Optional[str] = None
    thumbnail_url: Optional[str] = None
