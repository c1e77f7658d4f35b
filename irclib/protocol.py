#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""Minimal asyncio IRC client connection.

Only the framing needed by the session controller is implemented: reading
lines, parsing them into `Message` objects and sending the handful of
commands the client issues (NICK, USER, PRIVMSG, JOIN, PART, PONG, QUIT).
"""
import ssl
import asyncio
import logging

from .error import IRCError, ConnectionFailed, ConnectionClosed, ProtocolError


MAX_LINE_BYTES = 512
CHANNEL_PREFIXES = '#&+!'


def is_channel(target):
    """Return `True` if `target` names a channel rather than a user.

    Examples
    --------
    >>> is_channel('#python')
    True
    >>> is_channel('meow')
    False
    """
    return bool(target) and target[0] in CHANNEL_PREFIXES


class Message:
    """A single IRC protocol line.

    Attributes
    ----------
    prefix : `None` or `str`
        Message source, e.g. ``nick!user@host`` or a server name.
    command : `str`
        Upper-cased command word or three digit numeric reply.
    params : `list` of `str`
        Command parameters; the trailing parameter is the last item.
    raw : `str`
        The line as received, without the line terminator.
    """

    __slots__ = ('prefix', 'command', 'params', 'raw')

    def __init__(self, command, params=(), prefix=None, raw=None):
        self.prefix = prefix
        self.command = command.upper()
        self.params = list(params)
        self.raw = raw if raw is not None else self.encode()

    def __repr__(self):
        return '<Message %s %r from %r>' % (self.command, self.params, self.prefix)

    def __eq__(self, other):
        if not isinstance(other, Message):
            return NotImplemented
        return (self.prefix, self.command, self.params) == (
            other.prefix, other.command, other.params
        )

    @classmethod
    def parse(cls, line):
        """Parse a protocol line.

        Parameters
        ----------
        line : `str`

        Returns
        -------
        `Message`

        Raises
        ------
        irclib.error.ProtocolError
            If the line has no command.

        Examples
        --------
        >>> msg = Message.parse(':nick!u@h PRIVMSG #chan :hello there')
        >>> msg.command, msg.params, msg.source_nickname
        ('PRIVMSG', ['#chan', 'hello there'], 'nick')
        """
        raw = line.rstrip('\r\n')
        rest = raw
        # message tags are not interpreted
        if rest.startswith('@'):
            _, _, rest = rest.partition(' ')
            rest = rest.lstrip(' ')

        prefix = None
        if rest.startswith(':'):
            prefix, _, rest = rest[1:].partition(' ')
            rest = rest.lstrip(' ')

        trailing = None
        if ' :' in rest:
            rest, trailing = rest.split(' :', 1)
        elif rest.startswith(':'):
            rest, trailing = '', rest[1:]

        words = rest.split()
        if not words:
            raise ProtocolError('no command in line: %r' % raw)
        params = words[1:]
        if trailing is not None:
            params.append(trailing)
        return cls(words[0], params, prefix=prefix, raw=raw)

    @property
    def source_nickname(self):
        """Nickname part of the prefix, `None` for server messages."""
        if not self.prefix:
            return None
        nick, sep, _ = self.prefix.partition('!')
        if not sep and '.' in nick:
            return None
        return nick.partition('@')[0]

    @property
    def is_numeric(self):
        return len(self.command) == 3 and self.command.isdigit()

    def encode(self):
        """Format the message as a protocol line without terminator.

        Raises
        ------
        irclib.error.ProtocolError
            If a parameter contains a line break or NUL, or a middle
            parameter contains a space or starts with a colon.
        """
        parts = []
        if self.prefix:
            parts.append(':' + self.prefix)
        parts.append(self.command)
        for i, param in enumerate(self.params):
            if any(ch in param for ch in '\r\n\0'):
                raise ProtocolError('invalid character in parameter %r' % param)
            last = i == len(self.params) - 1
            if last and (not param or ' ' in param or param.startswith(':')):
                parts.append(':' + param)
            elif ' ' in param or param.startswith(':') or not param:
                raise ProtocolError('invalid middle parameter %r' % param)
            else:
                parts.append(param)
        return ' '.join(parts)


class ConnectionConfig:
    """Parameters used to open and register a connection.

    Attributes
    ----------
    server : `str`
    port : `int`
    nickname : `str`
    username : `str`
    realname : `str`
    use_tls : `bool`
    connect_timeout : `None` or `float`
    """

    def __init__(self, server, port, nickname,
                 username=None, realname=None,
                 use_tls=False, connect_timeout=30):
        self.server = server
        self.port = port
        self.nickname = nickname
        self.username = username or nickname
        self.realname = realname or nickname
        self.use_tls = use_tls
        self.connect_timeout = connect_timeout

    def __repr__(self):
        return '<ConnectionConfig %s:%s nick=%s tls=%s>' % (
            self.server, self.port, self.nickname, self.use_tls
        )


class IRCConnection:
    """An open connection to an IRC server.

    Attributes
    ----------
    config : `irclib.protocol.ConnectionConfig`
    reader : `asyncio.StreamReader`
    writer : `asyncio.StreamWriter`
    closed : `bool`
    """
    logger = logging.getLogger(__name__)

    def __init__(self, config, reader, writer):
        self.config = config
        self.reader = reader
        self.writer = writer
        self.closed = False

    @classmethod
    async def connect(cls, config, open_connection=asyncio.open_connection):
        """Open a TCP (optionally TLS) connection.

        Parameters
        ----------
        config : `irclib.protocol.ConnectionConfig`
        open_connection : `function`, optional
            Stream factory coroutine.

        Returns
        -------
        `irclib.protocol.IRCConnection`

        Raises
        ------
        irclib.error.ConnectionFailed
        """
        if not config.server:
            raise ConnectionFailed('no server given')
        if not 0 < int(config.port) < 65536:
            raise ConnectionFailed('invalid port %r' % config.port)

        kwargs = {}
        if config.use_tls:
            kwargs['ssl'] = ssl.create_default_context()
            kwargs['server_hostname'] = config.server

        cls.logger.info('connect %s:%s tls=%s',
                        config.server, config.port, config.use_tls)
        try:
            reader, writer = await asyncio.wait_for(
                open_connection(config.server, config.port, **kwargs),
                config.connect_timeout
            )
        except asyncio.TimeoutError:
            raise ConnectionFailed(
                'timed out connecting to %s:%s' % (config.server, config.port)
            )
        except (OSError, ssl.SSLError, UnicodeError) as ex:
            raise ConnectionFailed(ex) from ex
        return cls(config, reader, writer)

    async def identify(self):
        """Register the connection with NICK and USER."""
        await self.send('NICK', self.config.nickname)
        await self.send(
            'USER', self.config.username, '0', '*', self.config.realname
        )

    async def next_event(self):
        """Receive the next message.

        Returns
        -------
        `irclib.protocol.Message`

        Raises
        ------
        irclib.error.ConnectionClosed
            At end of stream.
        irclib.error.IRCError
            On a transport error.
        """
        while True:
            try:
                data = await self.reader.readline()
            except (OSError, ssl.SSLError) as ex:
                raise IRCError('read failed: %s' % ex) from ex
            except ValueError as ex:
                # line longer than the reader limit
                raise ProtocolError(ex) from ex
            if not data:
                raise ConnectionClosed('connection closed by server')
            line = data.decode('utf-8', errors='replace').rstrip('\r\n')
            if not line:
                continue
            self.logger.debug('recv %s', line)
            try:
                return Message.parse(line)
            except ProtocolError as ex:
                self.logger.warning('recv: %s', ex)

    async def send(self, command, *params):
        """Send a command.

        Raises
        ------
        irclib.error.ConnectionClosed
        irclib.error.ProtocolError
        irclib.error.IRCError
        """
        if self.closed:
            raise ConnectionClosed('connection is closed')
        line = Message(command, params).encode()
        data = line.encode('utf-8') + b'\r\n'
        if len(data) > MAX_LINE_BYTES:
            raise ProtocolError(
                'line too long (%d > %d bytes)' % (len(data), MAX_LINE_BYTES)
            )
        self.logger.debug('send %s', line)
        try:
            self.writer.write(data)
            await self.writer.drain()
        except (OSError, ssl.SSLError) as ex:
            raise IRCError('write failed: %s' % ex) from ex

    async def send_privmsg(self, target, body):
        await self.send('PRIVMSG', target, body)

    async def send_join(self, channel):
        await self.send('JOIN', channel)

    async def send_part(self, channel):
        await self.send('PART', channel)

    async def send_pong(self, token):
        await self.send('PONG', token)

    async def send_quit(self, reason):
        await self.send('QUIT', reason)

    async def close(self):
        """Close the connection."""
        if self.closed:
            return
        self.logger.info('close %s:%s', self.config.server, self.config.port)
        self.closed = True
        self.writer.close()
        try:
            await self.writer.wait_closed()
        except (OSError, ssl.SSLError) as ex:
            self.logger.warning('close: %r', ex)
