#!/usr/bin/env python3
# -*- coding: utf-8 -*-
import asyncio
import logging

from .error import BusClosed, BusFull


class CommandBus:
    """Two bounded one-way channels between the UI and the session.

    Attributes
    ----------
    commands : `asyncio.Queue`
        UI -> controller `irclib.commands.Command` values.
    lines : `asyncio.Queue`
        Controller/listener -> UI display lines (`str`).
    """
    logger = logging.getLogger(__name__)

    CAPACITY = 100

    def __init__(self, capacity=CAPACITY):
        self.commands = asyncio.Queue(capacity)
        self.lines = asyncio.Queue(capacity)
        self._closed = asyncio.Event()

    @property
    def closed(self):
        return self._closed.is_set()

    def close_commands(self):
        """Close the UI -> controller direction.

        Commands already queued are still delivered; `recv_command` returns
        `None` once they are drained.
        """
        if not self.closed:
            self.logger.info('close commands (%d pending)', self.commands.qsize())
            self._closed.set()

    async def send_command(self, command):
        """Queue a command, waiting while the queue is full.

        Raises
        ------
        irclib.error.BusClosed
        """
        if self.closed:
            raise BusClosed('command bus is closed')
        await self.commands.put(command)

    def send_command_nowait(self, command):
        """Queue a command without waiting.

        Raises
        ------
        irclib.error.BusClosed
        irclib.error.BusFull
        """
        if self.closed:
            raise BusClosed('command bus is closed')
        try:
            self.commands.put_nowait(command)
        except asyncio.QueueFull:
            raise BusFull('command queue is full (%d)' % self.commands.maxsize)

    async def recv_command(self):
        """Receive the next command.

        Returns
        -------
        `None` or `irclib.commands.Command`
            `None` once the bus is closed and drained.
        """
        while True:
            if not self.commands.empty():
                return self.commands.get_nowait()
            if self.closed:
                return None
            get = asyncio.ensure_future(self.commands.get())
            closed = asyncio.ensure_future(self._closed.wait())
            try:
                done, _ = await asyncio.wait(
                    (get, closed), return_when=asyncio.FIRST_COMPLETED
                )
            finally:
                closed.cancel()
                if not get.done():
                    # an item that woke the getter stays queued for the next pass
                    get.cancel()
            if get in done:
                return get.result()

    async def send_line(self, line):
        """Queue a display line, waiting while the queue is full."""
        await self.lines.put(line)

    def drain_lines(self):
        """Return every display line available right now, in order."""
        lines = []
        while True:
            try:
                lines.append(self.lines.get_nowait())
            except asyncio.QueueEmpty:
                return lines
