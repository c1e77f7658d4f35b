#!/usr/bin/env python3
# -*- coding: utf-8 -*-
import logging

from .commands import Disconnected
from .error import IRCError, ConnectionClosed, BusClosed
from .protocol import is_channel


class Listener:
    """Reads one connection and relays its events as display lines.

    Handlers are the ``_on_<COMMAND>`` methods; each returns the display
    line for the message or `None`. Numeric replies go to `_on_numeric`
    and anything else is shown as an unhandled line.

    Attributes
    ----------
    connection : `irclib.connection.SharedConnection`
    bus : `irclib.bus.CommandBus`
    handlers : `dict` of (`str`, `function`)
    """
    logger = logging.getLogger(__name__)

    CTCP_DELIM = '\x01'

    NUMERIC_PREFIXES = {
        '001': 'Welcome',
        '372': 'MOTD',
        '375': 'MOTD',
        '376': 'MOTD',
    }

    def __init__(self, connection, bus):
        self.connection = connection
        self.bus = bus
        self.handlers = {}
        for attr in dir(self):
            if attr.startswith('_on_') and attr[4:].isupper():
                self.handlers[attr[4:]] = getattr(self, attr)

    async def run(self):
        """Relay events until the stream ends, then signal the controller.

        Exactly one `irclib.commands.Disconnected` is sent when the stream
        ends or fails. Cancellation sends nothing.
        """
        self.logger.info('listen %r', self.connection)
        try:
            while True:
                message = await self.connection.next_event()
                await self.handle(message)
        except ConnectionClosed as ex:
            self.logger.info('stream closed %r: %s', self.connection, ex)
            await self.bus.send_line('*** IRC stream closed.')
        except IRCError as ex:
            self.logger.error('network error %r: %r', self.connection, ex)
            await self.bus.send_line('Error receiving message: %s' % ex)
        try:
            await self.bus.send_command(Disconnected(self.connection))
        except BusClosed:
            self.logger.info('bus closed, disconnect of %r not delivered',
                             self.connection)

    async def handle(self, message):
        """Format a message and queue the resulting display line."""
        if message.is_numeric:
            handler = self._on_numeric
        else:
            handler = self.handlers.get(message.command, self._on_unhandled)
        line = handler(message)
        if message.command == 'PING':
            await self.pong(message)
        if line is not None:
            await self.bus.send_line(line)

    async def pong(self, message):
        token = message.params[-1] if message.params else ''
        try:
            await self.connection.send_pong(token)
        except IRCError as ex:
            self.logger.error('pong %s: %r', token, ex)

    @staticmethod
    def _sender(message):
        return message.source_nickname or message.prefix or 'unknown'

    @staticmethod
    def _param(message, index, default=''):
        try:
            return message.params[index]
        except IndexError:
            return default

    def _on_PING(self, message):
        return '*** Ping: %s' % self._param(message, 0)

    def _on_PONG(self, message):
        return '*** Pong: %s' % self._param(message, 0)

    def _on_JOIN(self, message):
        return '*** %s joined %s' % (
            message.prefix or 'unknown', self._param(message, 0)
        )

    def _on_PART(self, message):
        return '*** Left channel %s' % self._param(message, 0)

    def _on_QUIT(self, message):
        reason = self._param(message, 0) or 'Quit'
        return '*** %s quit: %s' % (self._sender(message), reason)

    def _on_PRIVMSG(self, message):
        target = self._param(message, 0)
        body = self._param(message, 1)
        sender = self._sender(message)
        delim = self.CTCP_DELIM
        if len(body) >= 2 and body.startswith(delim) and body.endswith(delim):
            return '(CTCP) %s: %s' % (sender, body[1:-1])
        if is_channel(target):
            return '<%s> %s' % (sender, body)
        return '<%s->You> %s' % (sender, body)

    def _on_NOTICE(self, message):
        return '(notice to %s): %s' % (
            self._param(message, 0), self._param(message, 1)
        )

    def _on_MODE(self, message):
        return '*** Mode: %s' % ' '.join(message.params)

    def _on_numeric(self, message):
        # the first parameter is our own nickname
        text = ' '.join(message.params[1:])
        label = self.NUMERIC_PREFIXES.get(message.command, message.command)
        return '*** %s: %s' % (label, text)

    def _on_unhandled(self, message):
        self.logger.debug('unhandled %r', message)
        return '*** Unhandled: %s' % message.raw
