"""
Unit tests for irclib/connection.py
"""
import asyncio
from unittest.mock import AsyncMock, Mock

import pytest

from irclib.commands import ConnectParams
from irclib.connection import SharedConnection
from irclib.error import IRCError


PARAMS = ConnectParams('irc.example.org', 6667, 'meow', False)


@pytest.mark.asyncio
async def test_sends_are_serialised():
    """Only one outbound operation holds the connection at a time."""
    active = []
    overlaps = []

    async def send(*args):
        if active:
            overlaps.append(args)
        active.append(args)
        await asyncio.sleep(0)
        active.pop()

    inner = Mock()
    inner.send_privmsg = send
    inner.send_join = send
    shared = SharedConnection(inner, PARAMS)

    await asyncio.gather(
        shared.send_privmsg('#a', 'one'),
        shared.send_join('#b'),
        shared.send_privmsg('#a', 'two'),
    )
    assert overlaps == []


@pytest.mark.asyncio
async def test_reads_do_not_take_lock():
    inner = Mock()
    inner.next_event = AsyncMock(return_value='event')
    shared = SharedConnection(inner, PARAMS)

    async with shared.lock:
        assert await shared.next_event() == 'event'


@pytest.mark.asyncio
async def test_close_error_is_logged():
    inner = Mock()
    inner.close = AsyncMock(side_effect=IRCError('already gone'))
    shared = SharedConnection(inner, PARAMS)

    await shared.close()
    inner.close.assert_awaited_once()


@pytest.mark.asyncio
async def test_send_error_propagates():
    inner = Mock()
    inner.send_part = AsyncMock(side_effect=IRCError('write failed'))
    shared = SharedConnection(inner, PARAMS)

    with pytest.raises(IRCError):
        await shared.send_part('#a')
    assert not shared.lock.locked()


def test_repr():
    shared = SharedConnection(Mock(), PARAMS)
    assert repr(shared) == '<SharedConnection irc.example.org:6667 as meow>'
