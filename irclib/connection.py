#!/usr/bin/env python3
# -*- coding: utf-8 -*-
import asyncio
import logging

from .error import IRCError


class SharedConnection:
    """A protocol connection shared between the controller and tasks.

    Every outbound call takes the lock for exactly one operation. Reads
    are left to the connection's single listener and do not take the lock.

    Attributes
    ----------
    connection : `irclib.protocol.IRCConnection`
        Or any object with the same coroutine methods.
    params : `irclib.commands.ConnectParams`
    lock : `asyncio.Lock`
    """
    logger = logging.getLogger(__name__)

    def __init__(self, connection, params):
        self.connection = connection
        self.params = params
        self.lock = asyncio.Lock()

    def __repr__(self):
        return '<SharedConnection %s:%s as %s>' % (
            self.params.server, self.params.port, self.params.nick
        )

    async def _call(self, name, *args):
        async with self.lock:
            return await getattr(self.connection, name)(*args)

    async def next_event(self):
        return await self.connection.next_event()

    async def send_privmsg(self, target, body):
        await self._call('send_privmsg', target, body)

    async def send_join(self, channel):
        await self._call('send_join', channel)

    async def send_part(self, channel):
        await self._call('send_part', channel)

    async def send_pong(self, token):
        await self._call('send_pong', token)

    async def send_quit(self, reason):
        await self._call('send_quit', reason)

    async def close(self):
        """Close the connection, logging instead of raising on failure."""
        try:
            await self._call('close')
        except IRCError as ex:
            self.logger.warning('close %r: %r', self, ex)
