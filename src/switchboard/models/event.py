"""Normalized inbound events."""

from enum import Enum
from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field

from switchboard.models.message import UnifiedMessage


class EventType(str, Enum):
    MESSAGE = "message"
    REACTION = "reaction"
    USER_JOINED = "user_joined"
    USER_LEFT = "user_left"
    CHANNEL_CREATED = "channel_created"
    CHANNEL_DELETED = "channel_deleted"


class _Event(BaseModel):
    model_config = ConfigDict(frozen=True)


class MessageEvent(_Event):
    type: Literal["message"] = "message"
    message: UnifiedMessage


class ReactionEvent(_Event):
    type: Literal["reaction"] = "reaction"
    message_id: str
    user_id: str
    emoji: str
    action: Literal["added", "removed"]
    channel_id: str | None = None


class UserJoinedEvent(_Event):
    type: Literal["user_joined"] = "user_joined"
    channel_id: str
    user_id: str


class UserLeftEvent(_Event):
    type: Literal["user_left"] = "user_left"
    channel_id: str
    user_id: str


class ChannelCreatedEvent(_Event):
    type: Literal["channel_created"] = "channel_created"
    channel_id: str
    channel_name: str


class ChannelDeletedEvent(_Event):
    type: Literal["channel_deleted"] = "channel_deleted"
    channel_id: str


UnifiedEvent = Annotated[
    Union[
        MessageEvent,
        ReactionEvent,
        UserJoinedEvent,
        UserLeftEvent,
        ChannelCreatedEvent,
        ChannelDeletedEvent,
    ],
    Field(discriminator="type"),
]
