from pydantic import Field
from typing import Optional

from collavio.utils.schemas import CamelModel


class CommentCreate(CamelModel):
    content: str = Field(..., min_length=1)
    timestamp: float = Field(..., ge=0)
    workspace_id: Optional[str] = None
