"""
Integration tests for the terminal client.

Runs run_client with a scripted keyboard, a memory-backed terminal and fake
protocol connections:
- typed commands reach the server in order
- Escape during a reconnection backoff still ends the client
"""
import asyncio

import pytest
from blessed.keyboard import Keystroke

from common.config import UserConfig
from irclib.error import ConnectionFailed
from tui.app import TUIClient, run_client

from fakes import FakeConnector


pytestmark = pytest.mark.asyncio


def typed(text):
    return [Keystroke(ch) for ch in text] + [Keystroke('\n', code=1, name='KEY_ENTER')]


ESCAPE = Keystroke('\x1b', code=1, name='KEY_ESCAPE')


class Keyboard:
    """
    Scripted poll_key replacement.

    Script items are Keystrokes, or callables that hold the script back
    until they return True.
    """

    def __init__(self, script):
        self.script = list(script)
        self.client = None

    def install(self, monkeypatch):
        keyboard = self

        async def poll_key(client):
            keyboard.client = client
            await asyncio.sleep(0.01)
            while keyboard.script:
                item = keyboard.script[0]
                if isinstance(item, Keystroke):
                    return keyboard.script.pop(0)
                if not item(client):
                    return Keystroke('')
                keyboard.script.pop(0)
            return Keystroke('')

        monkeypatch.setattr(TUIClient, 'poll_key', poll_key)


def shown(text):
    def check(client):
        return any(text in row for row in client.scrollback.lines())
    return check


async def test_typed_session(monkeypatch, term):
    connector = FakeConnector()
    keyboard = Keyboard(
        typed('/connect irc.example.org 6667 meow no')
        + [shown('Connected to irc.example.org:6667 as meow without TLS')]
        + typed('/join #meow')
        + typed('hello :)')
        + [shown('<You (#meow):> hello :)')]
        + typed('/quit')
    )
    keyboard.install(monkeypatch)
    config = UserConfig.from_dict({'tui': {'welcome': False}})

    await asyncio.wait_for(
        run_client(config, {'connect': connector}, term=term), 5
    )

    assert connector.last.sent == [
        ('JOIN', '#meow'),
        ('PRIVMSG', '#meow', 'hello :)'),
        ('QUIT', 'Bye!'),
    ]
    assert connector.last.closed
    rows = keyboard.client.scrollback.lines()
    assert any('You: /join #meow' in row for row in rows)


async def test_escape_during_backoff(monkeypatch, term):
    connector = FakeConnector([None, ConnectionFailed('refused')])

    def drop(client):
        connector.last.end()
        return True

    keyboard = Keyboard(
        typed('/connect irc.example.org')
        + [shown('Connected to irc.example.org:6697 as meow with TLS'), drop,
           shown('Attempting to reconnect...'), ESCAPE]
    )
    keyboard.install(monkeypatch)
    config = UserConfig.from_dict(
        {'tui': {'welcome': False, 'shutdown_timeout': 0.1}}
    )

    await asyncio.wait_for(
        run_client(config, {'connect': connector}, term=term), 5
    )

    assert connector.connections[0].closed
    assert len(connector.configs) == 1
