from dataclasses import dataclass
from pydantic import Field, field_validator, model_validator
from typing import Optional, Union

from collavio.utils.schemas import CamelModel


@dataclass(frozen=True)
class TokenConnect:
    """Connect by signing into the platform; the channel is looked up or created."""
    token: str
    channel_name: Optional[str] = None
    channel_description: str = ""


@dataclass(frozen=True)
class SecretConnect:
    """Connect with a channel id and its pre-shared link secret."""
    channel_id: str
    channel_link_secret: str


class ConnectRequest(CamelModel):
    workspace_id: str = Field(..., min_length=1)
    base_url: str = Field(..., min_length=1)
    token: Optional[str] = None
    channel_name: Optional[str] = None
    channel_description: str = ""
    channel_id: Optional[str] = None
    channel_link_secret: Optional[str] = None

    @field_validator("base_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")

    @model_validator(mode="after")
    def exactly_one_mode(self):
        has_token = bool(self.token)
        has_secret = bool(self.channel_id and self.channel_link_secret)
        if has_token == has_secret:
            raise ValueError("Provide either token or channelId+channelLinkSecret")
        return self

    def connection(self) -> Union[TokenConnect, SecretConnect]:
        if self.token:
            return TokenConnect(
                token=self.token,
                channel_name=self.channel_name,
                channel_description=self.channel_description,
            )
        return SecretConnect(channel_id=self.channel_id, channel_link_secret=self.channel_link_secret)


class YTClonePublishRequest(CamelModel):
    title: Optional[str] = None
    description: Optional[str] = None
