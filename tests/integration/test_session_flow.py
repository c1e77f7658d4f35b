"""
Integration tests for the session controller loop.

Drives a running SessionController through the command bus only, the way
the terminal front end does:
- connect, join and chat
- server closes the stream, the client reconnects and rejoins
- reconnection keeps failing and is capped
"""
import asyncio

import pytest

from irclib.commands import (
    Connect, JoinChannel, Quit, SendMessage, SendPlainMessage
)
from irclib.error import ConnectionFailed
from irclib.session import SessionController

from fakes import FakeConnector, wait_for_line


pytestmark = pytest.mark.asyncio

CONNECT = Connect('irc.example.org', 6667, 'meow', False)
CONNECTED = 'Connected to irc.example.org:6667 as meow without TLS'


async def stop(controller, task):
    await controller.bus.send_command(Quit())
    await asyncio.wait_for(task, 1)


async def test_chat_session(bus, connector, controller):
    """Connect, join, talk to the channel and a user, then quit."""
    task = asyncio.ensure_future(controller.run())

    await bus.send_command(CONNECT)
    await bus.send_command(JoinChannel('#meow'))
    await bus.send_command(SendPlainMessage('hello'))
    await bus.send_command(SendMessage('alice', 'psst'))
    seen = await wait_for_line(bus, '<You->alice> psst')

    connection = connector.last
    connection.feed(':alice!a@h PRIVMSG #meow :welcome!')
    await wait_for_line(bus, '<alice> welcome!', seen)

    await stop(controller, task)

    assert seen[0] == CONNECTED
    assert '*** Joined #meow' in seen
    assert '<You (#meow):> hello' in seen
    assert connection.sent == [
        ('JOIN', '#meow'),
        ('PRIVMSG', '#meow', 'hello'),
        ('PRIVMSG', 'alice', 'psst'),
        ('QUIT', 'Bye!'),
    ]
    assert connection.closed


async def test_server_ping(bus, connector, controller):
    task = asyncio.ensure_future(controller.run())
    await bus.send_command(CONNECT)
    seen = await wait_for_line(bus, CONNECTED)

    connector.last.feed('PING :irc.example.org')
    await wait_for_line(bus, '*** Ping: irc.example.org', seen)
    await stop(controller, task)

    assert ('PONG', 'irc.example.org') in connector.connections[0].sent


async def test_reconnect_after_stream_end(bus, connector, controller, fake_sleep):
    """Stream end leads to a reconnect with the same parameters and a rejoin."""
    task = asyncio.ensure_future(controller.run())
    await bus.send_command(CONNECT)
    await bus.send_command(JoinChannel('#meow'))
    seen = await wait_for_line(bus, '*** Joined #meow')

    first = connector.last
    first.end()
    await wait_for_line(bus, '*** Joined #meow', seen, count=2)
    await stop(controller, task)

    tail = seen[seen.index('*** IRC stream closed.'):]
    assert tail == [
        '*** IRC stream closed.',
        '*** Disconnected from server. Attempting to reconnect...',
        'Attempting reconnection #1...',
        '*** Reconnected to irc.example.org:6667 as meow',
        '*** Joined #meow',
    ]
    fake_sleep.assert_awaited_once_with(5)
    assert len(connector.connections) == 2
    assert connector.configs[0].server == connector.configs[1].server
    assert connector.configs[0].nickname == connector.configs[1].nickname
    assert connector.last.sent[0] == ('JOIN', '#meow')
    assert first.closed


async def test_reconnect_gives_up(bus, fake_sleep):
    connector = FakeConnector([None] + [ConnectionFailed('refused')] * 3)
    controller = SessionController(
        bus, connect=connector, sleep=fake_sleep, max_reconnect_attempts=3
    )
    task = asyncio.ensure_future(controller.run())
    await bus.send_command(CONNECT)
    seen = await wait_for_line(bus, CONNECTED)

    connector.last.end()
    await wait_for_line(
        bus,
        '*** Giving up after 3 reconnection attempts. Use /connect to retry.',
        seen
    )

    assert [c.args[0] for c in fake_sleep.await_args_list] == [5, 10, 15]
    assert 'Reconnection attempt #3 failed: Error connecting: refused' in seen

    # still usable afterwards
    await bus.send_command(CONNECT)
    await wait_for_line(bus, CONNECTED, seen, count=2)
    await stop(controller, task)


async def test_commands_processed_in_order(bus, controller):
    """Guards reflect the state left by every earlier command."""
    task = asyncio.ensure_future(controller.run())
    await bus.send_command(SendPlainMessage('too early'))
    await bus.send_command(CONNECT)
    await bus.send_command(SendPlainMessage('no channel yet'))
    seen = await wait_for_line(bus, 'Not in a channel. Use /join.', count=2)
    await stop(controller, task)

    assert seen[:3] == [
        'Not in a channel. Use /join.',
        CONNECTED,
        'Not in a channel. Use /join.',
    ]
