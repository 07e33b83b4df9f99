"""HTTP client for the YouTube Clone hosting platform."""

import re
import uuid
from typing import AsyncIterator, Dict, List, Optional

import httpx
from fastapi import Request


class YTCloneError(Exception):
    pass


def _error_message(resp: httpx.Response) -> str:
    try:
        data = resp.json()
    except ValueError:
        return resp.text or f"HTTP {resp.status_code}"
    if isinstance(data, dict):
        return data.get("error") or data.get("message") or f"HTTP {resp.status_code}"
    return str(data)


# HTML5 form encoding for names inside Content-Disposition parameters
_FORM_PARAM_ESCAPES = re.compile(r'["\\\x00-\x1f]')


def _form_param(value: str) -> str:
    return _FORM_PARAM_ESCAPES.sub(
        lambda m: "\\\\" if m.group(0) == "\\" else f"%{ord(m.group(0)):02X}", value
    )


async def multipart_stream(
    boundary: str,
    fields: Dict[str, str],
    file_field: str,
    filename: str,
    content_type: str,
    chunks: AsyncIterator[bytes],
) -> AsyncIterator[bytes]:
    """multipart/form-data body whose file part is relayed chunk by chunk.

    httpx's `files=` encoder needs a sync file object or the whole payload in
    memory, so the body is assembled here to keep the relay streaming.
    """
    for name, value in fields.items():
        yield (
            f"--{boundary}\r\n"
            f'Content-Disposition: form-data; name="{_form_param(name)}"\r\n\r\n'
            f"{value}\r\n"
        ).encode("utf-8")
    yield (
        f"--{boundary}\r\n"
        f'Content-Disposition: form-data; name="{_form_param(file_field)}"; filename="{_form_param(filename)}"\r\n'
        f"Content-Type: {content_type}\r\n\r\n"
    ).encode("utf-8")
    async for chunk in chunks:
        yield chunk
    yield f"\r\n--{boundary}--\r\n".encode("utf-8")


class YTCloneClient:
    def __init__(self, http: httpx.AsyncClient):
        self.http = http

    async def _request(self, method: str, url: str, **kwargs) -> httpx.Response:
        try:
            resp = await self.http.request(method, url, **kwargs)
        except httpx.HTTPError as e:
            raise YTCloneError(str(e)) from e
        if resp.status_code >= 400:
            raise YTCloneError(_error_message(resp))
        return resp

    @staticmethod
    def _auth(token: str) -> dict:
        return {"Authorization": f"Bearer {token}"}

    async def my_channels(self, base_url: str, token: str) -> List[dict]:
        resp = await self._request("GET", f"{base_url}/api/channels/my-channels", headers=self._auth(token))
        data = resp.json()
        return data if isinstance(data, list) else []

    async def create_channel(self, base_url: str, token: str, name: str, description: str, handle: str) -> dict:
        resp = await self._request(
            "POST",
            f"{base_url}/api/channels",
            json={"name": name, "description": description, "handle": handle},
            headers=self._auth(token),
        )
        data = resp.json() or {}
        return data.get("channel") or data

    async def regenerate_secret(self, base_url: str, token: str, channel_id: str) -> Optional[str]:
        resp = await self._request(
            "POST",
            f"{base_url}/api/channels/{channel_id}/regenerate-secret",
            json={},
            headers=self._auth(token),
        )
        data = resp.json() or {}
        return data.get("channelLinkSecret") or data.get("secret")

    async def upload_video(
        self,
        base_url: str,
        source_url: str,
        filename: str,
        fields: Dict[str, str],
        token: Optional[str] = None,
        by_secret: bool = False,
    ) -> dict:
        """Relay the file at `source_url` into the platform's upload endpoint.

        Secret uploads carry `channelId` and `secret` inside `fields`; token
        uploads authenticate with a bearer header instead.
        """
        boundary = uuid.uuid4().hex
        headers = {"Content-Type": f"multipart/form-data; boundary={boundary}"}
        if by_secret:
            url = f"{base_url}/api/videos/upload-by-secret"
        else:
            url = f"{base_url}/api/videos/upload"
            headers.update(self._auth(token))

        try:
            async with self.http.stream("GET", source_url) as source:
                if source.status_code >= 400:
                    raise YTCloneError(f"Could not read source video (HTTP {source.status_code})")
                body = multipart_stream(boundary, fields, "video", filename, "video/mp4", source.aiter_bytes())
                resp = await self.http.post(url, content=body, headers=headers)
        except httpx.HTTPError as e:
            raise YTCloneError(str(e)) from e

        if resp.status_code >= 400:
            raise YTCloneError(_error_message(resp))
        try:
            return resp.json()
        except ValueError:
            return {"raw": resp.text}


def get_ytclone_client(request: Request) -> YTCloneClient:
    return request.app.state.ytclone
