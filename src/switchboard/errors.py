"""Error taxonomy.

Errors that make a bot unusable (no adapter, connection refused) are raised.
Everything that can go wrong once a bot is running is returned inside an
``Err`` result instead, carrying one of the operation errors below.
"""


def _describe(cause: object) -> str:
    if cause is None:
        return "unknown error"
    if isinstance(cause, BaseException):
        return str(cause) or cause.__class__.__name__
    return str(cause)


class SwitchboardError(Exception):
    """Base class for every error produced by switchboard."""

    code = "SWITCHBOARD_ERROR"

    def __init__(
        self,
        message: str,
        *,
        platform: str | None = None,
        target: str | None = None,
        cause: object = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.platform = platform
        self.target = target
        self.cause = cause
        if isinstance(cause, BaseException):
            self.__cause__ = cause


class AdapterNotFoundError(SwitchboardError):
    code = "ADAPTER_NOT_FOUND"

    def __init__(self, platform: str) -> None:
        super().__init__(
            f"No adapter found for platform: {platform}. "
            f"Register one first, e.g. switchboard.platforms.{platform}_bot.register().",
            platform=platform,
        )


class PlatformConnectionError(SwitchboardError, ConnectionError):
    """The platform is unreachable or rejected the credentials."""

    code = "CONNECTION_ERROR"

    def __init__(self, platform: str, cause: object) -> None:
        super().__init__(
            f"Failed to connect to {platform}: {_describe(cause)}",
            platform=platform,
            cause=cause,
        )


class MessageSendError(SwitchboardError):
    code = "MESSAGE_SEND_ERROR"

    def __init__(
        self, platform: str, channel_id: str, cause: object, delivered: object = None
    ) -> None:
        super().__init__(
            f"Failed to send message to channel {channel_id} on {platform}: {_describe(cause)}",
            platform=platform,
            target=channel_id,
            cause=cause,
        )
        self.channel_id = channel_id
        # Part of a split message that did reach the channel, if any.
        self.delivered = delivered


class MessageEditError(SwitchboardError):
    code = "MESSAGE_EDIT_ERROR"

    def __init__(self, platform: str, message_id: str, cause: object) -> None:
        super().__init__(
            f"Failed to edit message {message_id} on {platform}: {_describe(cause)}",
            platform=platform,
            target=message_id,
            cause=cause,
        )
        self.message_id = message_id


class MessageDeleteError(SwitchboardError):
    code = "MESSAGE_DELETE_ERROR"

    def __init__(self, platform: str, message_id: str, cause: object) -> None:
        super().__init__(
            f"Failed to delete message {message_id} on {platform}: {_describe(cause)}",
            platform=platform,
            target=message_id,
            cause=cause,
        )
        self.message_id = message_id


class ReactionError(SwitchboardError):
    code = "REACTION_ERROR"

    def __init__(self, platform: str, message_id: str, emoji: str, cause: object) -> None:
        super().__init__(
            f"Failed to add/remove reaction {emoji} on message {message_id} "
            f"({platform}): {_describe(cause)}",
            platform=platform,
            target=message_id,
            cause=cause,
        )
        self.message_id = message_id
        self.emoji = emoji


class DirectoryError(SwitchboardError):
    """Listing channels or users failed."""

    code = "DIRECTORY_ERROR"

    def __init__(self, platform: str, target: str, cause: object) -> None:
        super().__init__(
            f"Failed to list {target} on {platform}: {_describe(cause)}",
            platform=platform,
            target=target,
            cause=cause,
        )


class MessageContextNotFoundError(SwitchboardError, LookupError):
    """A message id could not be resolved to its channel context.

    Returned (never raised) by the reference cache; adapters wrap it as the
    cause of the operation error so callers see what to do about it.
    """

    code = "MESSAGE_CONTEXT_NOT_FOUND"

    def __init__(self, platform: str, message_id: str, operation: str) -> None:
        super().__init__(
            f"Cannot {operation.replace('_', ' ')} (message {message_id}): "
            "channel context not found.\n\n"
            "This happens when:\n"
            "1. The message is older than the cache TTL (cache expired)\n"
            "2. The bot restarted since the message was sent\n"
            "3. The message was sent or received by another bot instance\n\n"
            "Solution: pass the full message object instead of its id:\n"
            f"  bot.{operation}(message, ...)     # works reliably\n"
            f"  bot.{operation}(message.id, ...)  # may fail on {platform or 'this platform'}",
            platform=platform,
            target=message_id,
        )
        self.message_id = message_id
        self.operation = operation
