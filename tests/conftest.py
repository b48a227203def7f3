"""Shared fixtures: message factory, controllable clock, mocked Slack client."""

from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest

from switchboard.models.message import UnifiedMessage
from switchboard.platforms.slack_bot import SlackAdapter, SlackConfig
from switchboard.services.reference_cache import ReferenceCache


class FakeClock:
    """Monotonic clock in seconds that only moves when told to."""

    def __init__(self, start: float = 0.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance_ms(self, ms: float) -> None:
        self.now += ms / 1000

    def set_ms(self, ms: float) -> None:
        self.now = ms / 1000


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def make_message():
    """Build UnifiedMessages with sensible defaults."""

    def _make(
        id: str = "1700000000.000100",
        channel_id: str = "C123",
        *,
        thread_id: str | None = None,
        text: str = "hello",
        user_id: str = "U1",
        platform: str = "slack",
    ) -> UnifiedMessage:
        return UnifiedMessage(
            id=id,
            channel_id=channel_id,
            user_id=user_id,
            text=text,
            timestamp=datetime(2024, 1, 1, tzinfo=timezone.utc),
            thread_id=thread_id,
            platform=platform,
        )

    return _make


def _slack_client() -> MagicMock:
    client = MagicMock()
    for method in (
        "auth_test",
        "chat_postMessage",
        "chat_update",
        "chat_delete",
        "reactions_add",
        "reactions_remove",
        "files_upload_v2",
        "conversations_list",
        "conversations_members",
        "users_list",
        "users_info",
    ):
        setattr(client, method, AsyncMock(return_value={"ok": True}))
    return client


@pytest.fixture
def slack_adapter(clock):
    """A SlackAdapter that looks connected, backed by a mocked web client."""
    cache = ReferenceCache(max_size=100, ttl_ms=1000, platform="slack", clock=clock)
    adapter = SlackAdapter(SlackConfig(), cache=cache)
    adapter._app = MagicMock()
    adapter._app.client = _slack_client()
    adapter._bot_user_id = "UBOT"
    return adapter

