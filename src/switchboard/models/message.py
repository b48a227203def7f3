"""Unified message model and message references."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, ClassVar, TypeVar, Union

from pydantic import BaseModel, ConfigDict, Field


class Attachment(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    filename: str
    url: str
    mime_type: str = "application/octet-stream"
    size: int = 0


class UnifiedMessage(BaseModel):
    """A message normalized from any platform.

    ``raw`` keeps the original platform payload for callers that need
    platform-specific fields; it is never serialized.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    id: str = Field(min_length=1)
    channel_id: str = Field(min_length=1)
    user_id: str
    text: str = ""
    timestamp: datetime
    thread_id: str | None = None
    attachments: list[Attachment] | None = None
    platform: str
    raw: Any = Field(default=None, exclude=True, repr=False)

    @property
    def ref(self) -> "FullMessageRef":
        return FullMessageRef(self)


# ── References ─────────────────────────────────────────────


@dataclass(frozen=True)
class MessageIdRef:
    """Reference by id only. Platforms that need more context resolve it via cache."""

    message_id: str


@dataclass(frozen=True)
class FullMessageRef:
    """Reference carrying the whole message; never needs a cache lookup."""

    message: UnifiedMessage

    @property
    def message_id(self) -> str:
        return self.message.id


MessageRef = Union[MessageIdRef, FullMessageRef]
MessageRefLike = Union[MessageIdRef, FullMessageRef, UnifiedMessage, str]


def as_message_ref(value: MessageRefLike) -> MessageRef:
    if isinstance(value, (MessageIdRef, FullMessageRef)):
        return value
    if isinstance(value, UnifiedMessage):
        return FullMessageRef(value)
    if isinstance(value, str):
        return MessageIdRef(value)
    raise TypeError(f"Expected a message id or UnifiedMessage, got {type(value).__name__}")


# ── Options ────────────────────────────────────────────────


@dataclass
class PlatformOptions:
    """Base for platform-specific option extensions.

    Subclasses set ``platform`` to the adapter platform they apply to.
    """

    platform: ClassVar[str] = ""


P = TypeVar("P", bound=PlatformOptions)


@dataclass
class SendMessageOptions:
    thread_id: str | None = None
    extensions: list[PlatformOptions] = field(default_factory=list)

    def extension(self, kind: type[P]) -> P | None:
        for ext in self.extensions:
            if isinstance(ext, kind):
                return ext
        return None


@dataclass
class UploadOptions:
    filename: str | None = None
    comment: str | None = None
    thread_id: str | None = None
