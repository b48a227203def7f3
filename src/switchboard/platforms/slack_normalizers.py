"""Slack payloads -> unified models, and emoji name mapping."""

import re
from datetime import datetime, timezone
from typing import Any, Literal

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
from switchboard.models.message import Attachment, UnifiedMessage

PLATFORM = "slack"

# Slack's reactions API only accepts names; map the common unicode ones.
EMOJI_MAP: dict[str, str] = {
    "👍": "thumbsup",
    "👎": "thumbsdown",
    "❤️": "heart",
    "😂": "joy",
    "😊": "blush",
    "😍": "heart_eyes",
    "🎉": "tada",
    "🔥": "fire",
    "✅": "white_check_mark",
    "❌": "x",
    "⭐": "star",
    "💯": "100",
    "🚀": "rocket",
    "👀": "eyes",
    "🤔": "thinking_face",
    "😭": "sob",
    "😱": "scream",
    "🙏": "pray",
    "💪": "muscle",
    "👏": "clap",
    "🎯": "dart",
    "✨": "sparkles",
    "🤝": "handshake",
    "💡": "bulb",
    "🐛": "bug",
    "⚡": "zap",
    "🔧": "wrench",
    "📝": "memo",
    "🎨": "art",
    "♻️": "recycle",
    "🔒": "lock",
    "🔓": "unlock",
    "✏️": "pencil2",
    "🗑️": "wastebasket",
}

_COLON_NAME = re.compile(r"^:(.+):$")
_PLAIN_NAME = re.compile(r"^[a-z0-9_+-]+$", re.IGNORECASE)
_VARIATION_SELECTORS = re.compile(r"[\uFE00-\uFE0F]")


def to_slack_emoji(emoji: str) -> str:
    """Convert an emoji to the bare name Slack's reactions API expects."""
    match = _COLON_NAME.match(emoji)
    if match:
        return match.group(1)
    if emoji in EMOJI_MAP:
        return EMOJI_MAP[emoji]
    if _PLAIN_NAME.match(emoji):
        return emoji
    stripped = _VARIATION_SELECTORS.sub("", emoji)
    for candidate, name in EMOJI_MAP.items():
        if _VARIATION_SELECTORS.sub("", candidate) == stripped:
            return name
    # Let Slack reject it
    return emoji


def normalize_emoji(slack_emoji: str) -> str:
    """``:tada:`` -> ``tada``; anything else is returned unchanged."""
    match = _COLON_NAME.match(slack_emoji)
    return match.group(1) if match else slack_emoji


def ts_to_datetime(ts: str | None) -> datetime:
    try:
        seconds = float(ts or 0)
    except ValueError:
        seconds = 0.0
    return datetime.fromtimestamp(seconds, tz=timezone.utc)


def extract_plain_text(message: dict[str, Any]) -> str:
    """Text from ``section``/``context`` blocks, falling back to ``text``."""
    texts: list[str] = []
    for block in message.get("blocks") or []:
        if block.get("type") == "section" and block.get("text"):
            texts.append(block["text"].get("text", ""))
        elif block.get("type") == "context":
            texts.extend(el["text"] for el in block.get("elements", []) if el.get("text"))
    if texts:
        return "\n".join(texts)
    return message.get("text") or ""


def normalize_attachments(files: list[dict[str, Any]] | None) -> list[Attachment] | None:
    attachments = [
        Attachment(
            id=f["id"],
            filename=f.get("name") or "unknown",
            url=f.get("url_private") or f.get("permalink") or "",
            mime_type=f.get("mimetype") or "application/octet-stream",
            size=f.get("size") or 0,
        )
        for f in files or []
    ]
    return attachments or None


def normalize_message(message: dict[str, Any], channel_id: str | None = None) -> UnifiedMessage:
    """Build a UnifiedMessage from a Slack message payload.

    ``chat.postMessage`` responses omit the channel inside ``message``, so
    callers pass it explicitly. Raises ``ValueError`` (pydantic) when no id or
    channel can be determined.
    """
    ts = message.get("ts") or message.get("message_ts") or message.get("event_ts")
    return UnifiedMessage(
        id=ts or "",
        channel_id=message.get("channel") or message.get("channel_id") or channel_id or "",
        user_id=message.get("user") or message.get("bot_id") or "unknown",
        text=extract_plain_text(message),
        timestamp=ts_to_datetime(ts),
        thread_id=message.get("thread_ts"),
        attachments=normalize_attachments(message.get("files")),
        platform=PLATFORM,
        raw=message,
    )


def normalize_reaction_event(
    event: dict[str, Any], action: Literal["added", "removed"]
) -> ReactionEvent:
    item = event.get("item") or {}
    return ReactionEvent(
        message_id=item.get("ts", ""),
        user_id=event.get("user", ""),
        emoji=normalize_emoji(event.get("reaction", "")),
        action=action,
        channel_id=item.get("channel"),
    )


def normalize_event(event: dict[str, Any]) -> UnifiedEvent | None:
    event_type = event.get("type")

    if event_type == "message":
        return MessageEvent(message=normalize_message(event))
    if event_type == "reaction_added":
        return normalize_reaction_event(event, "added")
    if event_type == "reaction_removed":
        return normalize_reaction_event(event, "removed")
    if event_type == "member_joined_channel":
        return UserJoinedEvent(channel_id=event["channel"], user_id=event["user"])
    if event_type == "member_left_channel":
        return UserLeftEvent(channel_id=event["channel"], user_id=event["user"])
    if event_type == "channel_created":
        channel = event.get("channel") or {}
        return ChannelCreatedEvent(channel_id=channel["id"], channel_name=channel.get("name", ""))
    if event_type == "channel_deleted":
        return ChannelDeletedEvent(channel_id=event["channel"])
    return None


def normalize_channel(channel: dict[str, Any]) -> Channel:
    if channel.get("is_im"):
        channel_type = "dm"
    elif channel.get("is_mpim"):
        channel_type = "group_dm"
    else:
        channel_type = "text"
    topic = (channel.get("topic") or {}).get("value") or None
    return Channel(
        id=channel["id"],
        name=channel.get("name") or "unknown",
        type=channel_type,
        is_private=bool(channel.get("is_private")),
        topic=topic,
    )


def normalize_user(user: dict[str, Any]) -> User:
    profile = user.get("profile") or {}
    return User(
        id=user["id"],
        username=user.get("name") or "unknown",
        display_name=user.get("real_name") or profile.get("display_name") or None,
        is_bot=bool(user.get("is_bot")),
        avatar_url=profile.get("image_512"),
    )
