"""Tests for AdapterRegistry."""

import logging
from unittest.mock import MagicMock

from switchboard.services.adapter_registry import AdapterRegistry


def test_register_and_get():
    registry = AdapterRegistry()
    adapter = MagicMock()

    registry.register("slack", adapter)

    assert registry.get("slack") is adapter
    assert registry.has("slack")
    assert registry.registered_platforms() == ["slack"]


def test_get_unknown_returns_none():
    registry = AdapterRegistry()
    assert registry.get("discord") is None
    assert not registry.has("discord")


def test_second_registration_overwrites_with_warning(caplog):
    registry = AdapterRegistry()
    first, second = MagicMock(), MagicMock()
    registry.register("slack", first)

    with caplog.at_level(logging.WARNING, logger="switchboard.services.adapter_registry"):
        registry.register("slack", second)

    assert registry.get("slack") is second
    assert registry.registered_platforms() == ["slack"]
    assert "already registered" in caplog.text


def test_clear():
    registry = AdapterRegistry()
    registry.register("slack", MagicMock())
    registry.register("telegram", MagicMock())

    registry.clear()

    assert registry.registered_platforms() == []


def test_registries_are_independent():
    a, b = AdapterRegistry(), AdapterRegistry()
    a.register("slack", MagicMock())
    assert not b.has("slack")
