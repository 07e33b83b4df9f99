"""Supabase Auth client used to verify bearer identity tokens."""

import logging
from dataclasses import dataclass
from typing import Optional

import httpx

from collavio.config import settings

logger = logging.getLogger(__name__)


@dataclass
class IdentityUser:
    uid: str
    email: str = ""
    display_name: str = ""
    photo_url: str = ""


class InvalidTokenError(Exception):
    pass


class SupabaseIdentityProvider:
    """Verifies access tokens against `GET /auth/v1/user`."""

    def __init__(self, http: httpx.AsyncClient, base_url: str = None, api_key: str = None):
        self.http = http
        self.base_url = (base_url or settings.SUPABASE_URL).rstrip("/")
        self.api_key = api_key or settings.SUPABASE_ANON_KEY

    async def verify_token(self, token: str) -> IdentityUser:
        try:
            resp = await self.http.get(
                f"{self.base_url}/auth/v1/user",
                headers={
                    "apikey": self.api_key,
                    "Authorization": f"Bearer {token}",
                },
            )
        except httpx.HTTPError as e:
            raise InvalidTokenError(f"Identity provider unreachable: {e}") from e

        if resp.status_code != 200:
            raise InvalidTokenError(f"Token rejected ({resp.status_code})")

        data = resp.json()
        if not data.get("id"):
            raise InvalidTokenError("Token payload has no subject")
        return _to_identity(data)


def _to_identity(data: dict) -> IdentityUser:
    meta: Optional[dict] = data.get("user_metadata") or {}
    return IdentityUser(
        uid=data["id"],
        email=data.get("email") or meta.get("email") or "",
        display_name=(meta.get("full_name") or meta.get("name") or "").strip(),
        photo_url=meta.get("avatar_url") or meta.get("picture") or "",
    )
