from switchboard.models.directory import Channel, ChannelType, User
from switchboard.models.event import (
    ChannelCreatedEvent,
    ChannelDeletedEvent,
    EventType,
    MessageEvent,
    ReactionEvent,
    UnifiedEvent,
    UserJoinedEvent,
    UserLeftEvent,
)
from switchboard.models.message import (
    Attachment,
    FullMessageRef,
    MessageIdRef,
    MessageRef,
    MessageRefLike,
    PlatformOptions,
    SendMessageOptions,
    UnifiedMessage,
    UploadOptions,
    as_message_ref,
)
from switchboard.models.result import Err, Ok, Result, err, is_err, is_ok, ok, unwrap, wrap_async

__all__ = [
    "Attachment",
    "Channel",
    "ChannelCreatedEvent",
    "ChannelDeletedEvent",
    "ChannelType",
    "Err",
    "EventType",
    "FullMessageRef",
    "MessageEvent",
    "MessageIdRef",
    "MessageRef",
    "MessageRefLike",
    "Ok",
    "PlatformOptions",
    "ReactionEvent",
    "Result",
    "SendMessageOptions",
    "UnifiedEvent",
    "UnifiedMessage",
    "UploadOptions",
    "User",
    "UserJoinedEvent",
    "UserLeftEvent",
    "as_message_ref",
    "err",
    "is_err",
    "is_ok",
    "ok",
    "unwrap",
    "wrap_async",
]
