"""Slack adapter using slack-bolt async (Socket Mode or Events API over HTTP).

Slack addresses a message by ``(channel, ts)``; the ``ts`` alone is not enough
to edit, delete or react. Every message this adapter sends or receives is
remembered in a ReferenceCache so callers may still pass a bare id, within the
cache's capacity and TTL. Passing the full UnifiedMessage always works.
"""

import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

from aiohttp import web
from slack_bolt.adapter.socket_mode.async_handler import AsyncSocketModeHandler
from slack_bolt.app.async_server import AsyncSlackAppServer
from slack_bolt.async_app import AsyncApp

from switchboard.errors import (
    DirectoryError,
    MessageDeleteError,
    MessageEditError,
    MessageSendError,
    PlatformConnectionError,
    ReactionError,
)
from switchboard.models.directory import Channel, User
from switchboard.models.event import MessageEvent, UnifiedEvent
from switchboard.models.message import (
    MessageRefLike,
    PlatformOptions,
    SendMessageOptions,
    UnifiedMessage,
    UploadOptions,
    as_message_ref,
)
from switchboard.models.result import Err, Ok, Result
from switchboard.platforms.base import FileInput, PlatformAdapter
from switchboard.platforms.slack_normalizers import (
    PLATFORM,
    normalize_attachments,
    normalize_channel,
    normalize_event,
    normalize_message,
    normalize_user,
    to_slack_emoji,
)
from switchboard.services.adapter_registry import AdapterRegistry
from switchboard.services.adapter_registry import registry as default_registry
from switchboard.services.reference_cache import (
    DEFAULT_CACHE_SIZE,
    DEFAULT_CACHE_TTL_MS,
    DEFAULT_STATS_INTERVAL,
    ReferenceCache,
)

logger = logging.getLogger(__name__)

EVENTS_PATH = "/slack/events"

# Message subtypes that are still user-visible messages; the rest (edits,
# deletions, joins, bot echoes) are skipped to avoid loops.
_ACCEPTED_SUBTYPES = {None, "file_share", "thread_broadcast"}

_PASSTHROUGH_EVENTS = (
    "reaction_added",
    "reaction_removed",
    "member_joined_channel",
    "member_left_channel",
    "channel_created",
    "channel_deleted",
)


@dataclass
class SlackCredentials:
    bot_token: str
    app_token: str | None = None
    signing_secret: str | None = None

    @classmethod
    def coerce(cls, value: "SlackCredentials | Mapping[str, Any] | None") -> "SlackCredentials":
        if isinstance(value, cls):
            return value
        if isinstance(value, Mapping):
            return cls(
                bot_token=value.get("bot_token") or "",
                app_token=value.get("app_token") or None,
                signing_secret=value.get("signing_secret") or None,
            )
        if value is None:
            return cls(bot_token="")
        raise TypeError(f"Unsupported Slack credentials: {type(value).__name__}")


@dataclass
class SlackConfig:
    cache_size: int = DEFAULT_CACHE_SIZE
    cache_ttl_ms: int = DEFAULT_CACHE_TTL_MS
    cache_stats_interval: int = DEFAULT_STATS_INTERVAL
    # Force Socket Mode even when no app token is given (connect then fails).
    socket_mode: bool = False
    # Events API listening port
    port: int = 3000

    @classmethod
    def from_settings(cls, settings: Any) -> "SlackConfig":
        return cls(
            cache_size=settings.reference_cache_size,
            cache_ttl_ms=settings.reference_cache_ttl_ms,
            cache_stats_interval=settings.reference_cache_stats_interval,
            socket_mode=settings.slack_socket_mode,
            port=settings.slack_port,
        )


@dataclass
class SlackMessageOptions(PlatformOptions):
    platform = PLATFORM

    blocks: list[dict[str, Any]] | None = None
    unfurl_links: bool | None = None
    unfurl_media: bool | None = None
    metadata: dict[str, Any] | None = None


class SlackAdapter(PlatformAdapter):
    name = "slack-adapter"
    platform = PLATFORM

    def __init__(
        self, config: SlackConfig | None = None, cache: ReferenceCache | None = None
    ) -> None:
        super().__init__()
        self.config = config or SlackConfig()
        self._app: AsyncApp | None = None
        self._socket_handler: AsyncSocketModeHandler | None = None
        self._http_runner: web.AppRunner | None = None
        self._bot_user_id: str | None = None
        self._cache = cache or ReferenceCache(
            max_size=self.config.cache_size,
            ttl_ms=self.config.cache_ttl_ms,
            platform=PLATFORM,
            stats_interval=self.config.cache_stats_interval,
        )

    @property
    def reference_cache(self) -> ReferenceCache:
        return self._cache

    # ── Lifecycle ──────────────────────────────────────────

    async def connect(self, credentials: Any) -> None:
        try:
            creds = SlackCredentials.coerce(credentials)
        except TypeError as e:
            raise PlatformConnectionError(PLATFORM, e) from e

        if not creds.bot_token:
            raise PlatformConnectionError(PLATFORM, ValueError("Slack bot token is required"))

        use_socket_mode = bool(creds.app_token or self.config.socket_mode)
        if use_socket_mode and not creds.app_token:
            raise PlatformConnectionError(
                PLATFORM, ValueError("App token (app_token) is required for Socket Mode")
            )
        if not use_socket_mode and not creds.signing_secret:
            raise PlatformConnectionError(
                PLATFORM,
                ValueError(
                    "Either app_token (for Socket Mode) or signing_secret "
                    "(for the Events API) is required"
                ),
            )

        try:
            if use_socket_mode:
                app = AsyncApp(token=creds.bot_token)
            else:
                app = AsyncApp(token=creds.bot_token, signing_secret=creds.signing_secret)

            auth = await app.client.auth_test()
            self._bot_user_id = auth.get("user_id")
            self._app = app
            self._register_handlers()

            if use_socket_mode:
                self._socket_handler = AsyncSocketModeHandler(app, creds.app_token)
                await self._socket_handler.connect_async()
            else:
                server = AsyncSlackAppServer(port=self.config.port, path=EVENTS_PATH, app=app)
                runner = web.AppRunner(server.web_app)
                await runner.setup()
                await web.TCPSite(runner, port=self.config.port).start()
                self._http_runner = runner
        except Exception as e:
            await self._teardown()
            raise PlatformConnectionError(PLATFORM, e) from e

        if use_socket_mode:
            logger.info("Slack adapter connected (Socket Mode)")
        else:
            logger.info(
                "Slack adapter connected (Events API on :%d%s)", self.config.port, EVENTS_PATH
            )

    async def disconnect(self) -> None:
        await self._teardown()
        self._cache.clear()
        logger.info("Slack adapter disconnected")

    def is_connected(self) -> bool:
        return self._app is not None

    async def _teardown(self) -> None:
        if self._socket_handler:
            try:
                await self._socket_handler.close_async()
            except Exception:
                logger.exception("Failed to close Slack socket handler")
            self._socket_handler = None
        if self._http_runner:
            try:
                await self._http_runner.cleanup()
            except Exception:
                logger.exception("Failed to stop Slack HTTP server")
            self._http_runner = None
        self._app = None
        self._bot_user_id = None

    # ── Messages ───────────────────────────────────────────

    async def send_message(
        self, channel_id: str, text: str, options: SendMessageOptions | None = None
    ) -> Result[UnifiedMessage]:
        if self._app is None:
            return self._not_connected()

        options = options or SendMessageOptions()
        slack_options = options.extension(SlackMessageOptions) or SlackMessageOptions()
        kwargs: dict[str, Any] = {"channel": channel_id, "text": text}
        if options.thread_id:
            kwargs["thread_ts"] = options.thread_id
        for key in ("blocks", "unfurl_links", "unfurl_media", "metadata"):
            value = getattr(slack_options, key)
            if value is not None:
                kwargs[key] = value

        try:
            response = await self._app.client.chat_postMessage(**kwargs)
            if not response.get("ok"):
                error = _api_error(response, "Failed to send message")
                return Err(MessageSendError(PLATFORM, channel_id, error))
            message = self._message_from_response(response, channel_id)
        except Exception as e:
            return Err(MessageSendError(PLATFORM, channel_id, e))

        self._cache.remember(message)
        return Ok(message)

    async def edit_message(self, ref: MessageRefLike, text: str) -> Result[UnifiedMessage]:
        if self._app is None:
            return self._not_connected()

        message_ref = as_message_ref(ref)
        resolved = self._cache.resolve(message_ref, "edit_message")
        if isinstance(resolved, Err):
            return Err(MessageEditError(PLATFORM, message_ref.message_id, resolved.error))
        context = resolved.value

        try:
            response = await self._app.client.chat_update(
                channel=context.channel_id, ts=message_ref.message_id, text=text
            )
            if not response.get("ok"):
                error = _api_error(response, "Failed to edit message")
                return Err(MessageEditError(PLATFORM, message_ref.message_id, error))
            message = self._message_from_response(
                response,
                context.channel_id,
                ts=message_ref.message_id,
                thread_ts=context.thread_id,
            )
        except Exception as e:
            return Err(MessageEditError(PLATFORM, message_ref.message_id, e))

        self._cache.remember(message)
        return Ok(message)

    async def delete_message(self, ref: MessageRefLike) -> Result[None]:
        if self._app is None:
            return self._not_connected()

        message_ref = as_message_ref(ref)
        resolved = self._cache.resolve(message_ref, "delete_message")
        if isinstance(resolved, Err):
            return Err(MessageDeleteError(PLATFORM, message_ref.message_id, resolved.error))

        try:
            response = await self._app.client.chat_delete(
                channel=resolved.value.channel_id, ts=message_ref.message_id
            )
            if not response.get("ok"):
                error = _api_error(response, "Failed to delete message")
                if error == "message_not_found":
                    self._cache.forget(message_ref.message_id)
                return Err(MessageDeleteError(PLATFORM, message_ref.message_id, error))
        except Exception as e:
            return Err(MessageDeleteError(PLATFORM, message_ref.message_id, e))

        self._cache.forget(message_ref.message_id)
        return Ok(None)

    # ── Reactions ──────────────────────────────────────────

    async def add_reaction(self, ref: MessageRefLike, emoji: str) -> Result[None]:
        return await self._react("add_reaction", ref, emoji)

    async def remove_reaction(self, ref: MessageRefLike, emoji: str) -> Result[None]:
        return await self._react("remove_reaction", ref, emoji)

    async def _react(self, operation: str, ref: MessageRefLike, emoji: str) -> Result[None]:
        if self._app is None:
            return self._not_connected()

        message_ref = as_message_ref(ref)
        resolved = self._cache.resolve(message_ref, operation)
        if isinstance(resolved, Err):
            return Err(ReactionError(PLATFORM, message_ref.message_id, emoji, resolved.error))

        if operation == "add_reaction":
            call = self._app.client.reactions_add
        else:
            call = self._app.client.reactions_remove

        try:
            response = await call(
                channel=resolved.value.channel_id,
                timestamp=message_ref.message_id,
                name=to_slack_emoji(emoji),
            )
            if not response.get("ok"):
                error = _api_error(response, "Reaction failed")
                return Err(ReactionError(PLATFORM, message_ref.message_id, emoji, error))
        except Exception as e:
            return Err(ReactionError(PLATFORM, message_ref.message_id, emoji, e))
        return Ok(None)

    # ── Threads ────────────────────────────────────────────

    async def create_thread(self, ref: MessageRefLike, text: str) -> Result[UnifiedMessage]:
        if self._app is None:
            return self._not_connected()

        message_ref = as_message_ref(ref)
        resolved = self._cache.resolve(message_ref, "create_thread")
        if isinstance(resolved, Err):
            return Err(MessageSendError(PLATFORM, message_ref.message_id, resolved.error))
        context = resolved.value

        # Replies to a reply go to the parent thread.
        thread_ts = context.thread_id or message_ref.message_id
        return await self.send_message(
            context.channel_id, text, SendMessageOptions(thread_id=thread_ts)
        )

    # ── Files ──────────────────────────────────────────────

    async def upload_file(
        self, channel_id: str, file: FileInput, options: UploadOptions | None = None
    ) -> Result[UnifiedMessage]:
        if self._app is None:
            return self._not_connected()

        options = options or UploadOptions()
        kwargs: dict[str, Any] = {"channel": channel_id}
        if isinstance(file, os.PathLike):
            kwargs["file"] = os.fspath(file)
        else:
            kwargs["file"] = file
        filename = options.filename or _guess_filename(file)
        if filename:
            kwargs["filename"] = filename
        if options.comment:
            kwargs["initial_comment"] = options.comment
        if options.thread_id:
            kwargs["thread_ts"] = options.thread_id

        try:
            response = await self._app.client.files_upload_v2(**kwargs)
            if not response.get("ok"):
                error = _api_error(response, "Failed to upload file")
                return Err(MessageSendError(PLATFORM, channel_id, error))
            files = response.get("files") or ([response["file"]] if response.get("file") else [])
            if not files:
                return Err(MessageSendError(PLATFORM, channel_id, "Upload returned no file"))
            message = self._message_from_upload(files[0], channel_id, options)
        except Exception as e:
            return Err(MessageSendError(PLATFORM, channel_id, e))

        if message.id != files[0].get("id"):
            self._cache.remember(message)
        return Ok(message)

    # ── Directory ──────────────────────────────────────────

    async def get_channels(self) -> Result[list[Channel]]:
        if self._app is None:
            return self._not_connected()
        try:
            raw = await self._paginate(
                self._app.client.conversations_list,
                "channels",
                types="public_channel,private_channel",
            )
        except Exception as e:
            return Err(DirectoryError(PLATFORM, "channels", e))
        return Ok([normalize_channel(c) for c in raw])

    async def get_users(self, channel_id: str | None = None) -> Result[list[User]]:
        if self._app is None:
            return self._not_connected()

        target = f"members of {channel_id}" if channel_id else "users"
        try:
            if channel_id is None:
                members = await self._paginate(self._app.client.users_list, "members")
                return Ok([normalize_user(m) for m in members])

            member_ids = await self._paginate(
                self._app.client.conversations_members, "members", channel=channel_id
            )
            users: list[User] = []
            for user_id in member_ids:
                info = await self._app.client.users_info(user=user_id)
                if info.get("ok") and info.get("user"):
                    users.append(normalize_user(info["user"]))
            return Ok(users)
        except Exception as e:
            return Err(DirectoryError(PLATFORM, target, e))

    async def _paginate(self, method: Any, key: str, **kwargs: Any) -> list[Any]:
        items: list[Any] = []
        cursor: str | None = None
        while True:
            if cursor:
                kwargs["cursor"] = cursor
            response = await method(limit=200, **kwargs)
            if not response.get("ok"):
                raise RuntimeError(response.get("error") or f"Failed to fetch {key}")
            items.extend(response.get(key) or [])
            cursor = (response.get("response_metadata") or {}).get("next_cursor")
            if not cursor:
                return items

    # ── Normalization ──────────────────────────────────────

    def normalize_message(self, raw: Any) -> UnifiedMessage:
        return normalize_message(raw)

    def normalize_event(self, raw: Any) -> UnifiedEvent | None:
        return normalize_event(raw)

    # ── Inbound events ─────────────────────────────────────

    def _register_handlers(self) -> None:
        if not self._app:
            return

        @self._app.event("message")
        async def handle_message(event):
            await self._process_message(event)

        async def handle_event(event):
            await self._process_event(event)

        for event_name in _PASSTHROUGH_EVENTS:
            self._app.event(event_name)(handle_event)

    async def _process_message(self, event: dict) -> None:
        if event.get("subtype") == "message_deleted":
            deleted_ts = event.get("deleted_ts") or (event.get("previous_message") or {}).get("ts")
            if deleted_ts:
                self._cache.forget(deleted_ts)
            return
        if event.get("subtype") not in _ACCEPTED_SUBTYPES:
            return
        if self._bot_user_id and event.get("user") == self._bot_user_id:
            return

        try:
            message = normalize_message(event)
        except ValueError:
            logger.warning("Dropping Slack message without ts/channel: %s", event)
            return

        self._cache.remember(message)
        await self._emit(MessageEvent(message=message))

    async def _process_event(self, event: dict) -> None:
        try:
            unified = normalize_event(event)
        except (KeyError, ValueError):
            logger.warning("Dropping malformed Slack %s event", event.get("type"))
            return
        if unified is not None:
            await self._emit(unified)

    # ── Helpers ────────────────────────────────────────────

    def _not_connected(self) -> Err:
        return Err(PlatformConnectionError(PLATFORM, "Not connected"))

    @staticmethod
    def _message_from_response(
        response: Any,
        channel_id: str,
        *,
        ts: str | None = None,
        thread_ts: str | None = None,
    ) -> UnifiedMessage:
        # chat.update omits ts/channel inside "message"; fill from the envelope.
        payload = dict(response.get("message") or {})
        payload.setdefault("ts", response.get("ts") or ts)
        payload.setdefault("channel", response.get("channel") or channel_id)
        if thread_ts:
            payload.setdefault("thread_ts", thread_ts)
        return normalize_message(payload, channel_id=channel_id)

    @staticmethod
    def _message_from_upload(
        file_info: dict[str, Any], channel_id: str, options: UploadOptions
    ) -> UnifiedMessage:
        """The share message ts is only known once Slack has shared the file;
        until then the file id stands in as the message id."""
        ts = None
        shares = file_info.get("shares") or {}
        for scope in ("public", "private"):
            entries = (shares.get(scope) or {}).get(channel_id) or []
            if entries:
                ts = entries[0].get("ts")
                break

        if ts:
            return normalize_message(
                {
                    "ts": ts,
                    "channel": channel_id,
                    "user": file_info.get("user"),
                    "text": options.comment or "",
                    "thread_ts": options.thread_id,
                    "files": [file_info],
                },
                channel_id=channel_id,
            )
        return UnifiedMessage(
            id=file_info["id"],
            channel_id=channel_id,
            user_id=file_info.get("user") or "unknown",
            text=options.comment or "",
            timestamp=datetime.fromtimestamp(file_info.get("created") or 0, tz=timezone.utc),
            thread_id=options.thread_id,
            attachments=normalize_attachments([file_info]),
            platform=PLATFORM,
            raw=file_info,
        )


def _api_error(response: Any, fallback: str) -> str:
    return response.get("error") or fallback


def _guess_filename(file: FileInput) -> str | None:
    if isinstance(file, (str, os.PathLike)):
        return os.path.basename(os.fspath(file))
    return getattr(file, "name", None) if not isinstance(file, bytes) else None


def register(
    registry: AdapterRegistry | None = None, config: SlackConfig | None = None
) -> SlackAdapter:
    """Create a SlackAdapter and register it under ``"slack"``."""
    adapter = SlackAdapter(config)
    (registry if registry is not None else default_registry).register(PLATFORM, adapter)
    return adapter
