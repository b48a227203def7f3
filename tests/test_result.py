"""Tests for the Result helpers."""

import pytest

from switchboard.errors import MessageSendError
from switchboard.models.result import Err, Ok, err, is_err, is_ok, ok, unwrap, wrap_async


def test_ok_and_err_flags():
    assert ok(5).ok is True
    assert ok(5).value == 5
    assert err(ValueError("x")).ok is False


def test_ok_without_value_carries_none():
    result = ok()
    assert isinstance(result, Ok)
    assert result.value is None


def test_is_ok_is_err():
    assert is_ok(Ok(1))
    assert not is_err(Ok(1))
    assert is_err(Err(RuntimeError("boom")))
    assert not is_ok(Err(RuntimeError("boom")))


def test_unwrap_returns_value():
    assert unwrap(Ok("v")) == "v"


def test_unwrap_raises_contained_error():
    error = MessageSendError("slack", "C1", "channel_not_found")
    with pytest.raises(MessageSendError) as exc_info:
        unwrap(Err(error))
    assert exc_info.value is error


@pytest.mark.asyncio
async def test_wrap_async_success():
    async def fetch():
        return 42

    result = await wrap_async(fetch)
    assert result == Ok(42)


@pytest.mark.asyncio
async def test_wrap_async_captures_exception():
    async def fail():
        raise KeyError("missing")

    result = await wrap_async(fail)
    assert isinstance(result, Err)
    assert isinstance(result.error, KeyError)


def test_results_are_immutable():
    result = Ok(1)
    with pytest.raises(AttributeError):
        result.value = 2
