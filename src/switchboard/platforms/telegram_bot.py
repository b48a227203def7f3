"""Telegram adapter using python-telegram-bot (polling mode).

Telegram message ids are only unique inside a chat, so the unified message id
is ``"<chat_id>:<message_id>"``. Every id therefore carries its own channel
context and this adapter never needs a reference cache.
"""

import asyncio
import logging
import os
import re
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import timezone
from pathlib import Path
from typing import Any

from telegram import (
    Chat,
    Message,
    MessageReactionUpdated,
    ReactionTypeEmoji,
    ReplyParameters,
    Update,
)
from telegram import User as TelegramUser
from telegram.ext import Application, ContextTypes, TypeHandler

from switchboard.errors import (
    DirectoryError,
    MessageDeleteError,
    MessageEditError,
    MessageSendError,
    PlatformConnectionError,
    ReactionError,
)
from switchboard.models.directory import Channel, User
from switchboard.models.event import (
    ChannelCreatedEvent,
    ChannelDeletedEvent,
    MessageEvent,
    ReactionEvent,
    UnifiedEvent,
    UserJoinedEvent,
    UserLeftEvent,
)
from switchboard.models.message import (
    Attachment,
    MessageRefLike,
    PlatformOptions,
    SendMessageOptions,
    UnifiedMessage,
    UploadOptions,
    as_message_ref,
)
from switchboard.models.result import Err, Ok, Result
from switchboard.platforms.base import FileInput, PlatformAdapter
from switchboard.platforms.slack_normalizers import EMOJI_MAP
from switchboard.services.adapter_registry import AdapterRegistry
from switchboard.services.adapter_registry import registry as default_registry

logger = logging.getLogger(__name__)

PLATFORM = "telegram"

# Telegram rejects longer messages
TELEGRAM_MAX_LENGTH = 4096

# Pause between chunks of one long message so they arrive in order
CHUNK_SEND_DELAY = 0.3

_CODE_BLOCK = re.compile(r"(```[^\n]*\n.*?```)", re.DOTALL)
_PARAGRAPH_BREAK = re.compile(r"(\n\n+)")
_COLON_NAME = re.compile(r"^:(.+):$")
_NAME_TO_EMOJI = {name: emoji for emoji, name in EMOJI_MAP.items()}


# ── Message splitting ──────────────────────────────────────


def split_message(text: str, max_length: int = TELEGRAM_MAX_LENGTH) -> list[str]:
    """Split ``text`` into chunks of at most ``max_length`` characters.

    Fenced code blocks are kept whole where possible, then paragraphs, then
    lines. A code block that has to be cut is re-fenced in every piece so each
    chunk renders on its own.
    """
    if len(text) <= max_length:
        return [text]

    chunks: list[str] = []
    pending = ""

    for segment in _segments(text):
        joined = pending + segment
        if len(joined) <= max_length:
            pending = joined
            continue

        if pending:
            chunks.append(pending)
            pending = ""

        if len(segment) <= max_length:
            pending = segment
            continue

        pieces = _split_by_lines(segment, max_length)
        chunks.extend(pieces[:-1])
        # The tail may still share a chunk with what follows
        pending = pieces[-1]

    if pending:
        chunks.append(pending)
    return chunks


def _segments(text: str) -> list[str]:
    """Code blocks as single segments; prose split on blank lines.

    Blank-line separators are kept as their own segments so joining every
    segment gives back the input.
    """
    segments: list[str] = []
    for part in _CODE_BLOCK.split(text):
        if not part:
            continue
        if part.startswith("```"):
            segments.append(part)
        else:
            segments.extend(p for p in _PARAGRAPH_BREAK.split(part) if p)
    return segments


def _split_by_lines(segment: str, max_length: int) -> list[str]:
    fence = ""
    body = segment
    if segment.startswith("```"):
        header_end = segment.find("\n")
        if header_end == -1:
            header_end = len(segment)
        fence = segment[:header_end]
        body = segment[header_end + 1 :]
        if body.endswith("```"):
            body = body[:-3]

    def wrap(content: str) -> str:
        return f"{fence}\n{content}```" if fence else content

    # "```lang" + newline + closing "```"
    overhead = len(fence) + 4 if fence else 0
    room = max_length - overhead

    pieces: list[str] = []
    lines: list[str] = []
    size = 0

    def flush() -> None:
        nonlocal lines, size
        if lines:
            pieces.append(wrap("\n".join(lines)))
            lines = []
            size = 0

    for line in body.split("\n"):
        if len(line) > room:
            flush()
            pieces.extend(wrap(line[i : i + room]) for i in range(0, len(line), room))
            continue

        added = len(line) + (1 if lines else 0)
        if lines and size + added > room:
            flush()
            added = len(line)
        lines.append(line)
        size += added

    flush()
    return pieces or [segment]


# ── Ids ────────────────────────────────────────────────────


def make_message_id(chat_id: int | str, message_id: int | str) -> str:
    return f"{chat_id}:{message_id}"


def parse_message_id(value: str) -> tuple[int | str, int]:
    """``"-100123:42"`` -> ``(-100123, 42)``.

    Raises ``ValueError`` for ids that were not produced by this adapter.
    """
    chat, sep, message = value.rpartition(":")
    if not sep or not chat or not message.isdigit():
        raise ValueError(f"Not a Telegram message id: {value!r}")
    return _chat_id(chat), int(message)


def _chat_id(channel_id: str) -> int | str:
    # Numeric ids go over the wire as ints, "@channelname" stays a string
    return int(channel_id) if channel_id.lstrip("-").isdigit() else channel_id


def to_telegram_emoji(emoji: str) -> str:
    """Accept ``:thumbsup:`` style names as well as unicode emoji."""
    match = _COLON_NAME.match(emoji)
    name = match.group(1) if match else emoji
    return _NAME_TO_EMOJI.get(name, emoji)


# ── Normalization ──────────────────────────────────────────


def _attachments(message: Message) -> list[Attachment] | None:
    # Only file ids are known here; bot.get_file() resolves a download url.
    found: list[Attachment] = []
    if message.document:
        doc = message.document
        found.append(
            Attachment(
                id=doc.file_id,
                filename=doc.file_name or "document",
                url="",
                mime_type=doc.mime_type or "application/octet-stream",
                size=doc.file_size or 0,
            )
        )
    if message.photo:
        photo = message.photo[-1]
        found.append(
            Attachment(
                id=photo.file_id,
                filename=f"{photo.file_unique_id}.jpg",
                url="",
                mime_type="image/jpeg",
                size=photo.file_size or 0,
            )
        )
    for media, default_name in ((message.audio, "audio"), (message.video, "video")):
        if media:
            found.append(
                Attachment(
                    id=media.file_id,
                    filename=media.file_name or default_name,
                    url="",
                    mime_type=media.mime_type or "application/octet-stream",
                    size=media.file_size or 0,
                )
            )
    if message.voice:
        found.append(
            Attachment(
                id=message.voice.file_id,
                filename="voice.ogg",
                url="",
                mime_type=message.voice.mime_type or "audio/ogg",
                size=message.voice.file_size or 0,
            )
        )
    return found or None


def normalize_message(message: Message) -> UnifiedMessage:
    chat_id = message.chat.id
    if message.from_user:
        user_id = str(message.from_user.id)
    elif message.sender_chat:
        user_id = str(message.sender_chat.id)
    else:
        user_id = "unknown"

    thread_id = None
    if message.reply_to_message:
        thread_id = make_message_id(chat_id, message.reply_to_message.message_id)

    timestamp = message.edit_date or message.date
    if timestamp.tzinfo is None:
        timestamp = timestamp.replace(tzinfo=timezone.utc)

    return UnifiedMessage(
        id=make_message_id(chat_id, message.message_id),
        channel_id=str(chat_id),
        user_id=user_id,
        text=message.text or message.caption or "",
        timestamp=timestamp,
        thread_id=thread_id,
        attachments=_attachments(message),
        platform=PLATFORM,
        raw=message,
    )


def _reaction_emojis(reactions: Any) -> set[str]:
    emojis: set[str] = set()
    for reaction in reactions or ():
        if isinstance(reaction, ReactionTypeEmoji):
            emojis.add(reaction.emoji)
        elif getattr(reaction, "custom_emoji_id", None):
            emojis.add(reaction.custom_emoji_id)
    return emojis


def normalize_reaction(update: MessageReactionUpdated) -> list[ReactionEvent]:
    """One event per emoji added or removed by this update."""
    old = _reaction_emojis(update.old_reaction)
    new = _reaction_emojis(update.new_reaction)
    if update.user:
        user_id = str(update.user.id)
    elif update.actor_chat:
        user_id = str(update.actor_chat.id)
    else:
        user_id = "unknown"

    message_id = make_message_id(update.chat.id, update.message_id)
    channel_id = str(update.chat.id)
    events = [
        ReactionEvent(
            message_id=message_id,
            user_id=user_id,
            emoji=emoji,
            action="added",
            channel_id=channel_id,
        )
        for emoji in sorted(new - old)
    ]
    events.extend(
        ReactionEvent(
            message_id=message_id,
            user_id=user_id,
            emoji=emoji,
            action="removed",
            channel_id=channel_id,
        )
        for emoji in sorted(old - new)
    )
    return events


def normalize_events(update: Update) -> list[UnifiedEvent]:
    if update.message_reaction:
        return list(normalize_reaction(update.message_reaction))

    message = update.message or update.channel_post
    if message is None:
        return []

    channel_id = str(message.chat.id)
    if message.new_chat_members:
        return [
            UserJoinedEvent(channel_id=channel_id, user_id=str(member.id))
            for member in message.new_chat_members
        ]
    if message.left_chat_member:
        return [UserLeftEvent(channel_id=channel_id, user_id=str(message.left_chat_member.id))]
    if (
        message.group_chat_created
        or message.supergroup_chat_created
        or message.channel_chat_created
    ):
        return [ChannelCreatedEvent(channel_id=channel_id, channel_name=message.chat.title or "")]
    if message.migrate_to_chat_id:
        # The group became a supergroup under a new id; the old chat is gone.
        return [ChannelDeletedEvent(channel_id=channel_id)]
    if message.text is None and message.caption is None and _attachments(message) is None:
        return []
    return [MessageEvent(message=normalize_message(message))]


def normalize_event(update: Update) -> UnifiedEvent | None:
    events = normalize_events(update)
    return events[0] if events else None


def normalize_channel(chat: Chat) -> Channel:
    if chat.type == Chat.PRIVATE:
        name = chat.username or chat.full_name or str(chat.id)
        return Channel(id=str(chat.id), name=name, type="dm", is_private=True)
    return Channel(
        id=str(chat.id),
        name=chat.title or chat.username or str(chat.id),
        type="text",
        is_private=chat.username is None,
    )


def normalize_user(user: TelegramUser) -> User:
    return User(
        id=str(user.id),
        username=user.username or str(user.id),
        display_name=user.full_name or None,
        is_bot=user.is_bot,
    )


# ── Adapter ────────────────────────────────────────────────


@dataclass
class TelegramCredentials:
    token: str

    @classmethod
    def coerce(
        cls, value: "TelegramCredentials | Mapping[str, Any] | str | None"
    ) -> "TelegramCredentials":
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            return cls(token=value)
        if isinstance(value, Mapping):
            return cls(token=value.get("token") or value.get("bot_token") or "")
        if value is None:
            return cls(token="")
        raise TypeError(f"Unsupported Telegram credentials: {type(value).__name__}")


@dataclass
class TelegramConfig:
    chunk_delay: float = CHUNK_SEND_DELAY
    drop_pending_updates: bool = True


@dataclass
class TelegramMessageOptions(PlatformOptions):
    platform = PLATFORM

    parse_mode: str | None = None
    disable_notification: bool | None = None


class TelegramAdapter(PlatformAdapter):
    name = "telegram-adapter"
    platform = PLATFORM

    def __init__(self, config: TelegramConfig | None = None) -> None:
        super().__init__()
        self.config = config or TelegramConfig()
        self._app: Application | None = None
        self._bot_id: int | None = None
        # The Bot API cannot list chats; remember what we have seen.
        self._chats: dict[str, Channel] = {}
        self._users: dict[str, User] = {}

    # ── Lifecycle ──────────────────────────────────────────

    async def connect(self, credentials: Any) -> None:
        try:
            creds = TelegramCredentials.coerce(credentials)
        except TypeError as e:
            raise PlatformConnectionError(PLATFORM, e) from e
        if not creds.token:
            raise PlatformConnectionError(PLATFORM, ValueError("Telegram bot token is required"))

        try:
            self._app = Application.builder().token(creds.token).build()
            self._app.add_handler(TypeHandler(Update, self._handle_update))

            await self._app.initialize()
            self._bot_id = self._app.bot.id
            await self._app.start()
            await self._app.updater.start_polling(
                drop_pending_updates=self.config.drop_pending_updates,
                allowed_updates=Update.ALL_TYPES,
            )
        except Exception as e:
            await self._teardown()
            raise PlatformConnectionError(PLATFORM, e) from e

        logger.info("Telegram adapter connected (polling)")

    async def disconnect(self) -> None:
        await self._teardown()
        self._chats.clear()
        self._users.clear()
        logger.info("Telegram adapter disconnected")

    def is_connected(self) -> bool:
        return self._app is not None

    async def _teardown(self) -> None:
        app, self._app = self._app, None
        self._bot_id = None
        if app is None:
            return
        try:
            if app.updater and app.updater.running:
                await app.updater.stop()
            if app.running:
                await app.stop()
            await app.shutdown()
        except Exception:
            logger.exception("Failed to stop Telegram application")

    # ── Messages ───────────────────────────────────────────

    async def send_message(
        self, channel_id: str, text: str, options: SendMessageOptions | None = None
    ) -> Result[UnifiedMessage]:
        """Send ``text``, split into several messages when it is too long.

        The result carries the first message; replies and edits target it.
        """
        if self._app is None:
            return self._not_connected()

        options = options or SendMessageOptions()
        extra = options.extension(TelegramMessageOptions) or TelegramMessageOptions()
        kwargs: dict[str, Any] = {}
        if extra.parse_mode is not None:
            kwargs["parse_mode"] = extra.parse_mode
        if extra.disable_notification is not None:
            kwargs["disable_notification"] = extra.disable_notification

        first: Message | None = None
        chunks = split_message(text)
        try:
            reply_to = self._reply_parameters(options.thread_id)
            for i, chunk in enumerate(chunks):
                if i > 0:
                    await asyncio.sleep(self.config.chunk_delay)
                sent = await self._app.bot.send_message(
                    chat_id=_chat_id(channel_id),
                    text=chunk,
                    reply_parameters=reply_to if i == 0 else None,
                    **kwargs,
                )
                if first is None:
                    first = sent
        except Exception as e:
            if first is None:
                return Err(MessageSendError(PLATFORM, channel_id, e))
            delivered = normalize_message(first)
            logger.warning(
                "Partial delivery to %s: chunk %d of %d failed, first message %s was sent",
                channel_id,
                i + 1,
                len(chunks),
                delivered.id,
            )
            return Err(MessageSendError(PLATFORM, channel_id, e, delivered=delivered))

        return Ok(normalize_message(first))

    async def edit_message(self, ref: MessageRefLike, text: str) -> Result[UnifiedMessage]:
        if self._app is None:
            return self._not_connected()

        message_id = as_message_ref(ref).message_id
        try:
            chat_id, tg_message_id = parse_message_id(message_id)
            edited = await self._app.bot.edit_message_text(
                text=text, chat_id=chat_id, message_id=tg_message_id
            )
        except Exception as e:
            return Err(MessageEditError(PLATFORM, message_id, e))

        if not isinstance(edited, Message):
            return Err(MessageEditError(PLATFORM, message_id, "Telegram returned no message"))
        return Ok(normalize_message(edited))

    async def delete_message(self, ref: MessageRefLike) -> Result[None]:
        if self._app is None:
            return self._not_connected()

        message_id = as_message_ref(ref).message_id
        try:
            chat_id, tg_message_id = parse_message_id(message_id)
            deleted = await self._app.bot.delete_message(chat_id=chat_id, message_id=tg_message_id)
        except Exception as e:
            return Err(MessageDeleteError(PLATFORM, message_id, e))

        if not deleted:
            return Err(MessageDeleteError(PLATFORM, message_id, "Telegram refused the deletion"))
        return Ok(None)

    # ── Reactions ──────────────────────────────────────────

    async def add_reaction(self, ref: MessageRefLike, emoji: str) -> Result[None]:
        return await self._set_reaction(ref, emoji, [ReactionTypeEmoji(to_telegram_emoji(emoji))])

    async def remove_reaction(self, ref: MessageRefLike, emoji: str) -> Result[None]:
        # Bots hold at most one reaction per message; removing clears it.
        return await self._set_reaction(ref, emoji, None)

    async def _set_reaction(
        self, ref: MessageRefLike, emoji: str, reaction: list[ReactionTypeEmoji] | None
    ) -> Result[None]:
        if self._app is None:
            return self._not_connected()

        message_id = as_message_ref(ref).message_id
        try:
            chat_id, tg_message_id = parse_message_id(message_id)
            await self._app.bot.set_message_reaction(
                chat_id=chat_id, message_id=tg_message_id, reaction=reaction
            )
        except Exception as e:
            return Err(ReactionError(PLATFORM, message_id, emoji, e))
        return Ok(None)

    # ── Threads ────────────────────────────────────────────

    async def create_thread(self, ref: MessageRefLike, text: str) -> Result[UnifiedMessage]:
        message_id = as_message_ref(ref).message_id
        try:
            chat_id, _ = parse_message_id(message_id)
        except ValueError as e:
            return Err(MessageSendError(PLATFORM, message_id, e))
        return await self.send_message(
            str(chat_id), text, SendMessageOptions(thread_id=message_id)
        )

    # ── Files ──────────────────────────────────────────────

    async def upload_file(
        self, channel_id: str, file: FileInput, options: UploadOptions | None = None
    ) -> Result[UnifiedMessage]:
        if self._app is None:
            return self._not_connected()

        options = options or UploadOptions()
        document: Any = Path(file) if isinstance(file, os.PathLike) else file
        try:
            sent = await self._app.bot.send_document(
                chat_id=_chat_id(channel_id),
                document=document,
                filename=options.filename,
                caption=options.comment,
                reply_parameters=self._reply_parameters(options.thread_id),
            )
        except Exception as e:
            return Err(MessageSendError(PLATFORM, channel_id, e))
        return Ok(normalize_message(sent))

    # ── Directory ──────────────────────────────────────────

    async def get_channels(self) -> Result[list[Channel]]:
        if self._app is None:
            return self._not_connected()
        return Ok(list(self._chats.values()))

    async def get_users(self, channel_id: str | None = None) -> Result[list[User]]:
        if self._app is None:
            return self._not_connected()
        if channel_id is None:
            return Ok(list(self._users.values()))

        try:
            admins = await self._app.bot.get_chat_administrators(chat_id=_chat_id(channel_id))
        except Exception as e:
            return Err(DirectoryError(PLATFORM, f"administrators of {channel_id}", e))
        return Ok([normalize_user(member.user) for member in admins])

    # ── Normalization ──────────────────────────────────────

    def normalize_message(self, raw: Any) -> UnifiedMessage:
        return normalize_message(raw)

    def normalize_event(self, raw: Any) -> UnifiedEvent | None:
        return normalize_event(raw)

    # ── Inbound updates ────────────────────────────────────

    async def _handle_update(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        self._observe(update)

        user = update.effective_user
        if self._bot_id is not None and user is not None and user.id == self._bot_id:
            return

        for event in normalize_events(update):
            await self._emit(event)

    def _observe(self, update: Update) -> None:
        chat = update.effective_chat
        if chat is not None:
            self._chats[str(chat.id)] = normalize_channel(chat)
        user = update.effective_user
        if user is not None:
            self._users[str(user.id)] = normalize_user(user)

        message = update.message
        if message and message.migrate_to_chat_id:
            self._chats.pop(str(message.chat.id), None)

    # ── Helpers ────────────────────────────────────────────

    @staticmethod
    def _reply_parameters(thread_id: str | None) -> ReplyParameters | None:
        if not thread_id:
            return None
        chat_id, message_id = parse_message_id(thread_id)
        return ReplyParameters(message_id=message_id, chat_id=chat_id)

    def _not_connected(self) -> Err:
        return Err(PlatformConnectionError(PLATFORM, "Not connected"))


def register(
    registry: AdapterRegistry | None = None, config: TelegramConfig | None = None
) -> TelegramAdapter:
    """Create a TelegramAdapter and register it under ``"telegram"``."""
    adapter = TelegramAdapter(config)
    (registry if registry is not None else default_registry).register(PLATFORM, adapter)
    return adapter
