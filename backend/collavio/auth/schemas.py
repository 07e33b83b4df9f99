from typing import Optional

from collavio.utils.schemas import CamelModel


class RegisterRequest(CamelModel):
    display_name: Optional[str] = None
    photo_url: Optional[str] = None
    email: Optional[str] = None


class UserResponse(CamelModel):
    uid: str
    email: str = ""
    display_name: str = ""
    photo_url: str = ""
    role: str = "creator"

    @classmethod
    def from_doc(cls, doc: dict) -> "UserResponse":
        return cls(
            uid=doc["_id"],
            email=doc.get("email") or "",
            display_name=doc.get("display_name") or "",
            photo_url=doc.get("photo_url") or "",
            role=doc.get("role") or "creator",
        )


class AuthResponse(CamelModel):
    user: UserResponse
