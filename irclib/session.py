#!/usr/bin/env python3
# -*- coding: utf-8 -*-
import asyncio
import logging
from dataclasses import dataclass
from typing import Optional

from .commands import (
    ConnectParams, Connect, SendMessage, SendPlainMessage,
    JoinChannel, PartChannel, Quit, Disconnected
)
from .connection import SharedConnection
from .error import IRCError, ConnectionFailed, CommandError
from .listener import Listener
from .protocol import IRCConnection, ConnectionConfig


RECONNECT_STEP = 5
RECONNECT_MAX_DELAY = 60


def reconnect_delay(attempt):
    """Delay in seconds before reconnection attempt `attempt`.

    Examples
    --------
    >>> [reconnect_delay(n) for n in (1, 2, 11, 12, 13)]
    [5, 10, 55, 60, 60]
    """
    if attempt < 1:
        raise ValueError('attempt must be >= 1, got %r' % attempt)
    return min(RECONNECT_STEP * attempt, RECONNECT_MAX_DELAY)


@dataclass
class Session:
    """Connection state. Only the controller mutates it."""
    connection: Optional[SharedConnection] = None
    current_channel: Optional[str] = None
    last_connect_params: Optional[ConnectParams] = None

    @property
    def connected(self):
        return self.connection is not None


class SessionController:
    """Processes commands from the bus one at a time.

    Outbound sends, joins and parts run as separate tasks and report back
    through display lines only. A `Disconnected` signal for the live
    connection starts the reconnection loop, which retries with the last
    connect parameters until it succeeds or `max_reconnect_attempts`
    attempts have failed.

    Attributes
    ----------
    bus : `irclib.bus.CommandBus`
    session : `irclib.session.Session`
    connect : `function` (config)
        Connect coroutine returning a protocol connection.
    connect_timeout : `None` or `float`
        Seconds allowed for the TCP/TLS connect.
    max_reconnect_attempts : `None` or `int`
        `None` - retry forever.
    sleep : `function` (delay)
        Sleep coroutine used for the reconnection backoff.
    running : `bool`
    """
    logger = logging.getLogger(__name__)

    REALNAME = 'meow IRC Client'
    QUIT_REASON = 'Bye!'

    NOT_CONNECTED = 'Not connected. Use /connect first.'
    NOT_IN_CHANNEL = 'Not in a channel. Use /join.'
    NO_RECONNECT_PARAMS = (
        'Cannot reconnect: no previous connection configuration found.'
    )

    def __init__(self, bus,
                 connect=IRCConnection.connect,
                 connect_timeout=30,
                 max_reconnect_attempts=None,
                 sleep=asyncio.sleep):
        """
        Parameters
        ----------
        bus : `irclib.bus.CommandBus`
        connect : `function` (config), optional
            Connect coroutine.
        connect_timeout : `None` or `float`, optional
        max_reconnect_attempts : `None` or `int`, optional
            `None` - reconnect until it succeeds.
        sleep : `function` (delay), optional
            Sleep coroutine.
        """
        self.bus = bus
        self.connect = connect
        self.connect_timeout = connect_timeout
        self.max_reconnect_attempts = max_reconnect_attempts
        self.sleep = sleep
        self.session = Session()
        self.running = False
        self._listeners = {}
        self._tasks = set()

    async def emit(self, line):
        await self.bus.send_line(line)

    async def run(self):
        """Main loop.

        Ends on `Quit` or when the bus is closed and drained.
        """
        self.running = True
        try:
            while self.running:
                command = await self.bus.recv_command()
                if command is None:
                    self.logger.info('command bus closed')
                    break
                await self.handle(command)
        except asyncio.CancelledError:
            self.logger.info('cancelled')
            raise
        finally:
            self.running = False
            await self.shutdown()

    async def handle(self, command):
        """Handle one command.

        Raises
        ------
        irclib.error.CommandError
            For an object that is not one of the known commands.
        """
        self.logger.info('handle %r', command)
        if isinstance(command, Connect):
            await self._on_connect(command)
        elif isinstance(command, SendMessage):
            await self._on_send_message(command)
        elif isinstance(command, SendPlainMessage):
            await self._on_send_plain_message(command)
        elif isinstance(command, JoinChannel):
            await self._on_join(command)
        elif isinstance(command, PartChannel):
            await self._on_part(command)
        elif isinstance(command, Quit):
            await self._on_quit(command)
        elif isinstance(command, Disconnected):
            await self._on_disconnected(command)
        else:
            raise CommandError('unknown command %r' % (command,))

    async def _on_connect(self, command):
        params = command.params
        await self._retire()
        try:
            shared = await self._establish(params)
        except ConnectionFailed as ex:
            self.logger.error('connect %s:%s: %s', params.server, params.port, ex)
            await self.emit(str(ex))
            return
        self.session.connection = shared
        self.session.last_connect_params = params
        await self.emit('Connected to %s:%s as %s %s TLS' % (
            params.server, params.port, params.nick,
            'with' if params.use_tls else 'without'
        ))

    async def _on_send_message(self, command):
        shared = self.session.connection
        if shared is None:
            await self.emit(self.NOT_CONNECTED)
            return
        self._dispatch(
            shared.send_privmsg(command.target, command.body),
            '<You->%s> %s' % (command.target, command.body),
            'Error sending to %s' % command.target
        )

    async def _on_send_plain_message(self, command):
        channel = self.session.current_channel
        if channel is None:
            await self.emit(self.NOT_IN_CHANNEL)
            return
        shared = self.session.connection
        if shared is None:
            await self.emit(self.NOT_CONNECTED)
            return
        self._dispatch(
            shared.send_privmsg(channel, command.body),
            '<You (%s):> %s' % (channel, command.body),
            'Error sending'
        )

    async def _on_join(self, command):
        shared = self.session.connection
        if shared is None:
            await self.emit(self.NOT_CONNECTED)
            return
        self._join(shared, command.name)
        # set before the server confirms the join
        self.session.current_channel = command.name

    async def _on_part(self, command):
        shared = self.session.connection
        if shared is None:
            await self.emit(self.NOT_CONNECTED)
            return
        self._dispatch(
            shared.send_part(command.name),
            '*** Left %s' % command.name,
            'Error parting %s' % command.name
        )
        if self.session.current_channel == command.name:
            self.session.current_channel = None

    async def _on_quit(self, command):
        shared = self.session.connection
        if shared is not None:
            try:
                await shared.send_quit(self.QUIT_REASON)
            except IRCError as ex:
                self.logger.warning('quit %r: %r', shared, ex)
        self.running = False

    async def _on_disconnected(self, command):
        shared = self.session.connection
        if command.connection is not None and command.connection is not shared:
            self.logger.info('ignoring disconnect of retired %r',
                             command.connection)
            return
        self.logger.warning('disconnected %r', shared)
        await self._retire()
        params = self.session.last_connect_params
        if params is None:
            await self.emit(self.NO_RECONNECT_PARAMS)
            return
        await self.emit(
            '*** Disconnected from server. Attempting to reconnect...'
        )
        await self.reconnect(params)

    async def reconnect(self, params):
        """Reconnect with `params`, backing off between attempts.

        Returns
        -------
        `bool`
            `True` once reconnected, `False` if the attempts ran out.
        """
        attempt = 1
        while True:
            limit = self.max_reconnect_attempts
            if limit is not None and attempt > limit:
                self.logger.error('giving up after %d attempts', limit)
                await self.emit(
                    '*** Giving up after %d reconnection attempts. '
                    'Use /connect to retry.' % limit
                )
                return False
            delay = reconnect_delay(attempt)
            self.logger.info('reconnect #%d in %ss', attempt, delay)
            await self.sleep(delay)
            await self.emit('Attempting reconnection #%d...' % attempt)
            try:
                shared = await self._establish(params)
            except ConnectionFailed as ex:
                self.logger.error('reconnect #%d: %s', attempt, ex)
                await self.emit(
                    'Reconnection attempt #%d failed: %s' % (attempt, ex)
                )
                attempt += 1
                continue
            self.session.connection = shared
            await self.emit('*** Reconnected to %s:%s as %s' % (
                params.server, params.port, params.nick
            ))
            if self.session.current_channel is not None:
                self._join(shared, self.session.current_channel)
            return True

    def _join(self, shared, channel):
        self._dispatch(
            shared.send_join(channel),
            '*** Joined %s' % channel,
            'Error joining %s' % channel
        )

    async def _establish(self, params):
        """Connect, identify and start a listener.

        Raises
        ------
        irclib.error.ConnectionFailed
        """
        config = ConnectionConfig(
            params.server, params.port, params.nick,
            username=params.nick,
            realname=self.REALNAME,
            use_tls=params.use_tls,
            connect_timeout=self.connect_timeout
        )
        try:
            connection = await self.connect(config)
        except IRCError as ex:
            raise ConnectionFailed('Error connecting: %s' % ex) from ex
        shared = SharedConnection(connection, params)
        try:
            await connection.identify()
        except IRCError as ex:
            await shared.close()
            raise ConnectionFailed('Error identifying client: %s' % ex) from ex
        listener = Listener(shared, self.bus)
        self._listeners[shared] = asyncio.create_task(listener.run())
        return shared

    async def _retire(self):
        """Stop the live connection's listener, close it and forget it."""
        shared = self.session.connection
        self.session.connection = None
        if shared is not None:
            self.logger.info('retire %r', shared)
            listener = self._listeners.pop(shared, None)
            if listener is not None:
                listener.cancel()
            await shared.close()
        # listeners that already ended need no cancelling
        for key, task in list(self._listeners.items()):
            if task.done():
                del self._listeners[key]

    def _dispatch(self, coro, success_line, error_prefix):
        task = asyncio.create_task(
            self._run_action(coro, success_line, error_prefix)
        )
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _run_action(self, coro, success_line, error_prefix):
        try:
            await coro
        except IRCError as ex:
            self.logger.error('%s: %r', error_prefix, ex)
            await self.emit('%s: %s' % (error_prefix, ex))
        except Exception as ex:  # pylint: disable=broad-except
            self.logger.exception('%s', error_prefix)
            await self.emit('%s: %s' % (error_prefix, ex))
        else:
            await self.emit(success_line)

    async def wait_dispatched(self):
        """Wait for every send/join/part task started so far."""
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def shutdown(self):
        """Close the connection and stop listener and dispatch tasks."""
        self.logger.info('shutdown')
        tasks = list(self._listeners.values())
        await self._retire()
        tasks += list(self._tasks)
        self._listeners.clear()
        for task in tasks:
            task.cancel()
        for task in tasks:
            try:
                await task
            except asyncio.CancelledError:
                pass
            except Exception as ex:  # pylint: disable=broad-except
                self.logger.error('task %r: %r', task, ex)
