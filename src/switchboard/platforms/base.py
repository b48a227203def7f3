"""Base platform adapter interface."""

import inspect
import logging
import os
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable
from typing import IO, Any, Union

from switchboard.models.directory import Channel, User
from switchboard.models.event import UnifiedEvent
from switchboard.models.message import (
    MessageRefLike,
    SendMessageOptions,
    UnifiedMessage,
    UploadOptions,
)
from switchboard.models.result import Result

logger = logging.getLogger(__name__)

AdapterEventHandler = Callable[[UnifiedEvent], Awaitable[None] | None]
FileInput = Union[bytes, str, os.PathLike, IO[bytes]]


class PlatformAdapter(ABC):
    """Interface that all platform adapters must implement.

    ``connect`` raises on failure; every other operation reports failure via
    its returned ``Result``.
    """

    name: str = ""
    platform: str = ""

    def __init__(self) -> None:
        self._event_handlers: list[AdapterEventHandler] = []

    # ── Lifecycle ──────────────────────────────────────────

    @abstractmethod
    async def connect(self, credentials: Any) -> None:
        """Connect to the platform. Raises PlatformConnectionError."""

    @abstractmethod
    async def disconnect(self) -> None:
        """Disconnect; connect() may be called again afterwards."""

    @abstractmethod
    def is_connected(self) -> bool: ...

    # ── Messages ───────────────────────────────────────────

    @abstractmethod
    async def send_message(
        self, channel_id: str, text: str, options: SendMessageOptions | None = None
    ) -> Result[UnifiedMessage]: ...

    @abstractmethod
    async def edit_message(self, ref: MessageRefLike, text: str) -> Result[UnifiedMessage]: ...

    @abstractmethod
    async def delete_message(self, ref: MessageRefLike) -> Result[None]: ...

    @abstractmethod
    async def add_reaction(self, ref: MessageRefLike, emoji: str) -> Result[None]: ...

    @abstractmethod
    async def remove_reaction(self, ref: MessageRefLike, emoji: str) -> Result[None]: ...

    @abstractmethod
    async def create_thread(self, ref: MessageRefLike, text: str) -> Result[UnifiedMessage]:
        """Start (or continue) a thread rooted at the referenced message."""

    @abstractmethod
    async def upload_file(
        self, channel_id: str, file: FileInput, options: UploadOptions | None = None
    ) -> Result[UnifiedMessage]: ...

    # ── Directory ──────────────────────────────────────────

    @abstractmethod
    async def get_channels(self) -> Result[list[Channel]]: ...

    @abstractmethod
    async def get_users(self, channel_id: str | None = None) -> Result[list[User]]: ...

    # ── Normalization ──────────────────────────────────────

    @abstractmethod
    def normalize_message(self, raw: Any) -> UnifiedMessage: ...

    @abstractmethod
    def normalize_event(self, raw: Any) -> UnifiedEvent | None: ...

    # ── Events ─────────────────────────────────────────────

    def on_event(self, handler: AdapterEventHandler) -> None:
        """Register a listener for normalized events from this adapter."""
        self._event_handlers.append(handler)

    async def _emit(self, event: UnifiedEvent) -> None:
        for handler in list(self._event_handlers):
            try:
                result = handler(event)
                if inspect.isawaitable(result):
                    await result
            except Exception:
                logger.exception("Error in %s event listener", self.platform)
