"""Bot façade: one adapter plus an event dispatcher behind a single API."""

import inspect
import logging
from collections.abc import Awaitable, Callable
from dataclasses import replace
from typing import Any

from switchboard.errors import AdapterNotFoundError
from switchboard.models.directory import Channel, User
from switchboard.models.event import EventType, MessageEvent, ReactionEvent
from switchboard.models.message import (
    MessageRefLike,
    SendMessageOptions,
    UnifiedMessage,
    UploadOptions,
)
from switchboard.models.result import Result
from switchboard.platforms.base import FileInput, PlatformAdapter
from switchboard.services.adapter_registry import AdapterRegistry
from switchboard.services.adapter_registry import registry as default_registry
from switchboard.services.event_dispatcher import WILDCARD, EventDispatcher, EventHandler

logger = logging.getLogger(__name__)

MessageHandler = Callable[[UnifiedMessage], Awaitable[None] | None]
ReactionHandler = Callable[[ReactionEvent], Awaitable[None] | None]


class Bot:
    """Platform-independent bot.

    Operations are forwarded to the adapter and return its ``Result``.
    Inbound events from the adapter go through the dispatcher to handlers
    registered with ``on_message`` / ``on_reaction`` / ``on_event`` / ``on``.
    """

    def __init__(
        self,
        adapter: PlatformAdapter,
        platform: str | None = None,
        credentials: Any = None,
        dispatcher: EventDispatcher | None = None,
    ) -> None:
        self._adapter = adapter
        self._platform = platform or adapter.platform
        self._credentials = credentials
        self._dispatcher = dispatcher or EventDispatcher()
        # One wrapper per message handler, so re-registering is a no-op.
        self._message_wrappers: dict[MessageHandler, EventHandler] = {}
        adapter.on_event(self._dispatcher.dispatch)

    @property
    def platform(self) -> str:
        return self._platform

    @property
    def adapter(self) -> PlatformAdapter:
        """The underlying adapter, for platform-specific calls."""
        return self._adapter

    # ── Lifecycle ──────────────────────────────────────────

    async def start(self) -> None:
        if self._adapter.is_connected():
            return
        await self._adapter.connect(self._credentials)
        logger.info("Bot started on %s", self._platform)

    async def stop(self) -> None:
        await self._adapter.disconnect()
        logger.info("Bot stopped on %s", self._platform)

    def is_connected(self) -> bool:
        return self._adapter.is_connected()

    # ── Operations ─────────────────────────────────────────

    async def send_message(
        self, channel_id: str, text: str, options: SendMessageOptions | None = None
    ) -> Result[UnifiedMessage]:
        return await self._adapter.send_message(channel_id, text, options)

    async def reply(
        self, message: UnifiedMessage, text: str, options: SendMessageOptions | None = None
    ) -> Result[UnifiedMessage]:
        """Reply in the message's thread, or start one rooted at it."""
        thread_id = message.thread_id or message.id
        if options is None:
            options = SendMessageOptions(thread_id=thread_id)
        else:
            options = replace(options, thread_id=thread_id)
        return await self._adapter.send_message(message.channel_id, text, options)

    async def edit_message(self, ref: MessageRefLike, text: str) -> Result[UnifiedMessage]:
        return await self._adapter.edit_message(ref, text)

    async def delete_message(self, ref: MessageRefLike) -> Result[None]:
        return await self._adapter.delete_message(ref)

    async def add_reaction(self, ref: MessageRefLike, emoji: str) -> Result[None]:
        return await self._adapter.add_reaction(ref, emoji)

    async def remove_reaction(self, ref: MessageRefLike, emoji: str) -> Result[None]:
        return await self._adapter.remove_reaction(ref, emoji)

    async def create_thread(self, ref: MessageRefLike, text: str) -> Result[UnifiedMessage]:
        return await self._adapter.create_thread(ref, text)

    async def upload_file(
        self, channel_id: str, file: FileInput, options: UploadOptions | None = None
    ) -> Result[UnifiedMessage]:
        return await self._adapter.upload_file(channel_id, file, options)

    async def get_channels(self) -> Result[list[Channel]]:
        return await self._adapter.get_channels()

    async def get_users(self, channel_id: str | None = None) -> Result[list[User]]:
        return await self._adapter.get_users(channel_id)

    # ── Handlers ───────────────────────────────────────────

    def on_message(self, handler: MessageHandler) -> MessageHandler:
        """Call ``handler(message)`` for every inbound message.

        Returns ``handler`` so this works as a decorator.
        """

        wrapper = self._message_wrappers.get(handler)
        if wrapper is None:

            async def on_message_event(event: MessageEvent) -> None:
                result = handler(event.message)
                if inspect.isawaitable(result):
                    await result

            on_message_event.__qualname__ = getattr(handler, "__qualname__", "on_message")
            wrapper = self._message_wrappers[handler] = on_message_event
        self._dispatcher.subscribe(EventType.MESSAGE, wrapper)
        return handler

    def on_reaction(self, handler: ReactionHandler) -> ReactionHandler:
        self._dispatcher.subscribe(EventType.REACTION, handler)
        return handler

    def on_event(self, handler: EventHandler) -> EventHandler:
        """Call ``handler(event)`` for every event, after type-specific handlers."""
        self._dispatcher.subscribe(WILDCARD, handler)
        return handler

    def on(self, event_type: EventType | str, handler: EventHandler) -> EventHandler:
        self._dispatcher.subscribe(event_type, handler)
        return handler


def create_bot(
    platform: str,
    credentials: Any = None,
    *,
    adapter: PlatformAdapter | None = None,
    registry: AdapterRegistry | None = None,
) -> Bot:
    """Build a Bot for ``platform``.

    Uses ``adapter`` when given, otherwise the adapter registered for
    ``platform``. Raises ``AdapterNotFoundError`` when there is neither.
    """
    if adapter is None:
        adapter = (registry if registry is not None else default_registry).get(platform)
    if adapter is None:
        raise AdapterNotFoundError(platform)
    return Bot(adapter, platform, credentials)
