#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""Input line editing, history browsing and slash command parsing."""
import logging
from typing import List, NamedTuple, Optional

import grapheme

from common.config import IrcConfig
from irclib.commands import (
    Command, Connect, SendMessage, SendPlainMessage,
    JoinChannel, PartChannel, Quit
)
from irclib.util import parse_bool, expand_emoji_aliases


logger = logging.getLogger(__name__)

HELP_LINES = [
    '╭───────────────────────────────────────────────╮',
    '│                   Help Menu                   │',
    '├───────────────────────────────────────────────┤',
    '│ /connect <server> [port] [nick] [tls]         │',
    '│ /join <channel>                               │',
    '│ /part <channel>                               │',
    '│ /msg <target> <message>                       │',
    '│ /quit                                         │',
    '│ /help                                         │',
    '╰───────────────────────────────────────────────╯',
]

USAGE = {
    'connect': 'Usage: /connect <server> [port] [nick] [tls]',
    'join': 'Usage: /join <channel>',
    'part': 'Usage: /part <channel>',
    'msg': 'Usage: /msg <target> <message>',
}


class InputHistory:
    """Submitted input, newest first, with a browsing cursor.

    Attributes
    ----------
    entries : `list` of `str`
        ``entries[0]`` is the most recent submission.
    cursor : `None` or `int`
        Index of the entry being shown, `None` when not browsing.
    """

    def __init__(self, entries=None):
        self.entries = list(entries or [])
        self.cursor = None

    def __len__(self):
        return len(self.entries)

    def add(self, text):
        self.entries.insert(0, text)
        self.cursor = None

    def reset(self):
        self.cursor = None

    def older(self):
        """Step toward older entries, stopping at the oldest.

        Returns
        -------
        `None` or `str`
            The entry now selected, `None` if the history is empty.
        """
        if not self.entries:
            return None
        if self.cursor is None:
            self.cursor = 0
        else:
            self.cursor = min(self.cursor + 1, len(self.entries) - 1)
        return self.entries[self.cursor]

    def newer(self):
        """Step toward newer entries.

        Returns
        -------
        `None` or `str`
            The entry now selected, an empty string once past the newest,
            or `None` if the history is empty.
        """
        if not self.entries:
            return None
        if not self.cursor:
            self.cursor = None
            return ''
        self.cursor -= 1
        return self.entries[self.cursor]


class InputLine:
    """Single line editor; text is only ever changed at its end."""

    def __init__(self, history=None):
        self.text = ''
        self.history = history if history is not None else InputHistory()

    def insert(self, chars):
        self.text += chars
        self.history.reset()

    def backspace(self):
        count = grapheme.length(self.text)
        if count:
            self.text = grapheme.slice(self.text, 0, count - 1)
        self.history.reset()

    def history_up(self):
        entry = self.history.older()
        if entry is not None:
            self.text = entry

    def history_down(self):
        entry = self.history.newer()
        if entry is not None:
            self.text = entry

    def submit(self):
        """Clear the line and return what it held.

        Non-blank text is added to the history.
        """
        text = self.text
        self.text = ''
        self.history.reset()
        if text.strip():
            self.history.add(text)
        return text


class ParsedInput(NamedTuple):
    """Outcome of one submitted line.

    `command` goes to the session, `lines` are shown locally.
    """
    command: Optional[Command]
    lines: List[str]


def transform_body(body, emojis=None):
    return expand_emoji_aliases(body, emojis)


def parse_connect(arg, defaults):
    """Build a `Connect` from ``<server> [port] [nick] [tls]``.

    Raises
    ------
    ValueError
        With the message to show the user.
    """
    args = arg.split()
    if not args:
        raise ValueError(USAGE['connect'])
    server = args[0]
    port = defaults.port
    nick = defaults.nick
    use_tls = defaults.tls
    if len(args) > 1:
        try:
            port = int(args[1])
        except ValueError:
            raise ValueError('Invalid port: %s' % args[1])
        if not 0 < port < 65536:
            raise ValueError('Invalid port: %s' % args[1])
    if len(args) > 2:
        nick = args[2]
    if len(args) > 3:
        try:
            use_tls = parse_bool(args[3])
        except ValueError:
            raise ValueError('Invalid TLS flag: %s' % args[3])
    return Connect(server, port, nick, use_tls)


def parse_input(text, defaults=None, emojis=None):
    """Turn a submitted line into a command and local display lines.

    The first local line is always the echo of the input. Free text and
    ``/msg`` bodies have emoji aliases expanded before they are sent.

    Args:
        text: Submitted input, not blank
        defaults: IrcConfig supplying /connect defaults
        emojis: Alias to replacement text mapping

    Returns:
        ParsedInput
    """
    if defaults is None:
        defaults = IrcConfig()

    if not text.startswith('/'):
        body = transform_body(text, emojis)
        return ParsedInput(SendPlainMessage(body), ['You: %s' % body])

    parts = text[1:].strip().split(None, 1)
    if not parts:
        return ParsedInput(None, ['You: %s' % text, 'Unknown command: /'])
    word = parts[0]
    command = word.lower()
    arg = parts[1].strip() if len(parts) > 1 else ''
    echo = 'You: %s' % text
    logger.debug('command %s %r', command, arg)

    if command == 'connect':
        try:
            return ParsedInput(parse_connect(arg, defaults), [echo])
        except ValueError as ex:
            return ParsedInput(None, [echo, str(ex)])
    elif command in ('join', 'part'):
        if not arg:
            return ParsedInput(None, [echo, USAGE[command]])
        channel = arg.split()[0]
        if command == 'join':
            return ParsedInput(JoinChannel(channel), [echo])
        return ParsedInput(PartChannel(channel), [echo])
    elif command == 'msg':
        msg = arg.split(None, 1)
        if len(msg) < 2 or not msg[1].strip():
            return ParsedInput(None, [echo, USAGE['msg']])
        target, body = msg[0], transform_body(msg[1], emojis)
        return ParsedInput(
            SendMessage(target, body),
            ['You: /msg %s %s' % (target, body)]
        )
    elif command == 'quit':
        return ParsedInput(Quit(), [echo])
    elif command == 'help':
        return ParsedInput(None, [echo] + HELP_LINES)
    return ParsedInput(None, [echo, 'Unknown command: /%s' % word])
