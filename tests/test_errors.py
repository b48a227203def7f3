"""Tests for the error taxonomy: codes, messages, causes."""

from switchboard.errors import (
    AdapterNotFoundError,
    DirectoryError,
    MessageContextNotFoundError,
    MessageDeleteError,
    MessageEditError,
    MessageSendError,
    PlatformConnectionError,
    ReactionError,
    SwitchboardError,
)


def test_adapter_not_found_suggests_registration():
    error = AdapterNotFoundError("teams")
    assert error.code == "ADAPTER_NOT_FOUND"
    assert error.platform == "teams"
    assert "No adapter found for platform: teams" in str(error)
    assert "switchboard.platforms.teams_bot.register()" in str(error)


def test_connection_error_is_builtin_connection_error():
    cause = OSError("refused")
    error = PlatformConnectionError("slack", cause)
    assert isinstance(error, ConnectionError)
    assert isinstance(error, SwitchboardError)
    assert error.__cause__ is cause
    assert str(error) == "Failed to connect to slack: refused"


def test_string_cause_is_not_chained():
    error = MessageSendError("slack", "C1", "channel_not_found")
    assert error.cause == "channel_not_found"
    assert error.__cause__ is None
    assert error.channel_id == "C1"
    assert "channel C1" in str(error)
    assert "channel_not_found" in str(error)


def test_operation_errors_carry_target_and_code():
    cause = RuntimeError("nope")
    cases = [
        (MessageEditError("slack", "1.2", cause), "MESSAGE_EDIT_ERROR"),
        (MessageDeleteError("slack", "1.2", cause), "MESSAGE_DELETE_ERROR"),
        (ReactionError("slack", "1.2", "tada", cause), "REACTION_ERROR"),
    ]
    for error, code in cases:
        assert error.code == code
        assert error.target == "1.2"
        assert error.message_id == "1.2"
        assert error.__cause__ is cause


def test_reaction_error_mentions_emoji():
    error = ReactionError("slack", "1.2", "tada", "invalid_name")
    assert error.emoji == "tada"
    assert "tada" in str(error)


def test_directory_error():
    error = DirectoryError("slack", "channels", "ratelimited")
    assert error.code == "DIRECTORY_ERROR"
    assert str(error) == "Failed to list channels on slack: ratelimited"


def test_none_cause_is_described():
    error = MessageSendError("slack", "C1", None)
    assert str(error).endswith("unknown error")


def test_context_not_found_explains_remediation():
    error = MessageContextNotFoundError("slack", "1700000000.000100", "edit_message")
    text = str(error)
    assert isinstance(error, LookupError)
    assert error.code == "MESSAGE_CONTEXT_NOT_FOUND"
    assert error.operation == "edit_message"
    assert "Cannot edit message (message 1700000000.000100)" in text
    assert "cache TTL" in text
    assert "restarted" in text
    assert "another bot instance" in text
    assert "bot.edit_message(message, ...)" in text
    assert "bot.edit_message(message.id, ...)" in text
