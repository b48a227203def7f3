from typing import Literal

from pydantic import BaseModel

ChannelType = Literal["text", "voice", "dm", "group_dm", "category", "unknown"]


class Channel(BaseModel):
    id: str
    name: str
    type: ChannelType = "text"
    is_private: bool = False
    topic: str | None = None


class User(BaseModel):
    id: str
    username: str
    display_name: str | None = None
    is_bot: bool = False
    avatar_url: str | None = None
