#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""Terminal front end of the meow IRC client.

Runs the render loop and the session controller side by side on one event
loop, joined by a `irclib.bus.CommandBus`.
"""
import sys
import asyncio
import logging

from blessed import Terminal

from common.config import UserConfig, get_config
from irclib.bus import CommandBus
from irclib.commands import Quit
from irclib.error import BusClosed, ConfigError
from irclib.session import SessionController

from .editor import InputLine, parse_input
from .layout import format_message, visible_width
from .scrollback import Scrollback


WELCOME_WIDTH = 60
WELCOME_TITLE = '\x1b[1m{icon}Welcome to meow IRC Client\x1b[0m'
WELCOME_BODY = [
    '\x1b[3mAvailable Commands:\x1b[0m',
    '',
    '\x1b[1m/connect <server> [port] [nick] [tls]\x1b[0m',
    '\x1b[1m/join <#channel>\x1b[0m',
    '\x1b[1m/part <#channel>\x1b[0m',
    '\x1b[1m/msg <target> <message>\x1b[0m',
    '\x1b[1m/quit\x1b[0m',
]
ICON = '󰄛 '


def boxed(text, width=WELCOME_WIDTH, left=2):
    fill = max(width - left - visible_width(text), 0)
    return '│' + ' ' * left + text + ' ' * fill + '│'


def welcome_lines(icons=False):
    title = WELCOME_TITLE.format(icon=ICON if icons else '')
    left = max(WELCOME_WIDTH - visible_width(title), 0) // 2
    rule = '─' * WELCOME_WIDTH
    lines = ['╭' + rule + '╮', boxed(title, left=left), '├' + rule + '┤']
    lines.extend(boxed(line) for line in WELCOME_BODY)
    lines.extend([
        '╰' + rule + '╯', '', 'Press \x1b[1mEnter\x1b[0m to continue...'
    ])
    return lines


class TUIClient:
    """Render loop: scrollback, input line and key handling.

    Each iteration drains the display lines available on the bus, redraws
    the frame and polls for one key.

    Attributes
    ----------
    bus : `irclib.bus.CommandBus`
    config : `common.config.UserConfig`
    term : `blessed.Terminal`
    scrollback : `tui.scrollback.Scrollback`
    input : `tui.editor.InputLine`
    running : `bool`
    """
    logger = logging.getLogger(__name__)

    KEY_TIMEOUT = 0.1
    HEADER = '╭─ meow IRC Client ── Type /help for commands. ESC to quit ─╮'
    PROMPT = '❯ '

    def __init__(self, bus, config=None, term=None):
        self.bus = bus
        self.config = config if config is not None else UserConfig()
        self.term = term if term is not None else Terminal()
        self.scrollback = Scrollback(
            self.config.tui.width, self.config.tui.padding
        )
        self.input = InputLine()
        self.running = False

    def _style(self, name, default):
        rgb = self.config.theme.rgb(name)
        if rgb is not None:
            return self.term.color_rgb(*rgb)
        return getattr(self.term, default)

    def _background(self):
        rgb = self.config.theme.rgb('background')
        if rgb is None:
            return ''
        return self.term.on_color_rgb(*rgb)

    def drain(self):
        """Move every pending display line into the scrollback.

        Returns:
            Number of lines moved
        """
        lines = self.bus.drain_lines()
        self.scrollback.extend(lines)
        return len(lines)

    def render_frame(self):
        """Build the rows of one frame, top to bottom.

        Layout:
            header
            (blank)
            last `tui.height` scrollback rows, shifted by the scroll offset
            (blank)
            input rows
        """
        tui = self.config.tui
        header = self._style('foreground', 'bold_blue')
        prompt = self._style('muted', 'bold_green')
        rows = [' ' * tui.padding + header(self.HEADER), '']
        rows.extend(self.scrollback.visible(tui.height))
        rows.append('')
        for line in format_message(self.PROMPT + self.input.text,
                                   tui.width, tui.padding):
            rows.append(prompt(line))
        return rows

    def draw(self, rows=None):
        if rows is None:
            rows = self.render_frame()
        term = self.term
        out = [self._background(), term.home, term.clear]
        for y, row in enumerate(rows):
            out.append(term.move_xy(0, y))
            out.append(row)
        term.stream.write(''.join(out))
        term.stream.flush()

    async def poll_key(self):
        """Wait up to `KEY_TIMEOUT` seconds for a key.

        `blessed.Terminal.inkey` blocks, so it runs in the default executor.
        """
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(
            None, self.term.inkey, self.KEY_TIMEOUT
        )

    async def send(self, command):
        try:
            await self.bus.send_command(command)
        except BusClosed:
            self.logger.warning('dropped %r, bus closed', command)
            self.scrollback.append('Session is closed.')
            self.running = False

    async def quit(self):
        self.running = False
        await self.send(Quit())

    async def handle_key(self, key):
        """Apply one keystroke.

        Args:
            key: blessed Keystroke
        """
        if not key and not key.is_sequence:
            return
        if key.name == 'KEY_ENTER':
            await self.submit()
        elif key.name in ('KEY_BACKSPACE', 'KEY_DELETE'):
            self.input.backspace()
        elif key.name == 'KEY_UP':
            self.input.history_up()
        elif key.name == 'KEY_DOWN':
            self.input.history_down()
        elif key.name == 'KEY_PGUP':
            self.scrollback.page_up()
        elif key.name == 'KEY_PGDOWN':
            self.scrollback.page_down()
        elif key.name == 'KEY_ESCAPE':
            await self.quit()
        elif key.is_sequence:
            self.logger.debug('ignored key %s', key.name)
        else:
            self.input.insert(str(key))

    async def submit(self):
        text = self.input.submit()
        self.scrollback.reset_scroll()
        if not text.strip():
            return
        parsed = parse_input(text, self.config.irc, self.config.emojis)
        self.scrollback.extend(parsed.lines)
        if parsed.command is None:
            return
        if isinstance(parsed.command, Quit):
            await self.quit()
        else:
            await self.send(parsed.command)

    def welcome_rows(self):
        accent = self._style('accent', 'cyan')
        rows = ['', '']
        for line in welcome_lines(self.config.theme.icons):
            for row in format_message(line, self.config.tui.width,
                                      self.config.tui.padding):
                rows.append(accent(row))
        return rows

    async def show_welcome(self):
        """Show the welcome box until Enter or Escape is pressed.

        Returns:
            False if the user pressed Escape
        """
        self.draw(self.welcome_rows())
        while True:
            key = await self.poll_key()
            if key.name == 'KEY_ENTER':
                return True
            if key.name == 'KEY_ESCAPE':
                return False

    async def run(self):
        """Run the render loop until the user quits."""
        self.running = True
        term = self.term
        with term.fullscreen(), term.cbreak(), term.hidden_cursor():
            if self.config.tui.welcome and not await self.show_welcome():
                await self.quit()
                return
            while self.running:
                self.drain()
                self.draw()
                key = await self.poll_key()
                await self.handle_key(key)
        self.logger.info('render loop finished')


async def run_client(config, controller_kwargs=None, term=None):
    """Run the UI and the session controller until either one ends.

    On the way out the command direction of the bus is closed and the
    controller gets `tui.shutdown_timeout` seconds to finish before it is
    cancelled.

    Args:
        config: UserConfig
        controller_kwargs: Extra SessionController keyword arguments
        term: blessed Terminal, a new one if None
    """
    bus = CommandBus()
    controller = SessionController(bus, **(controller_kwargs or {}))
    client = TUIClient(bus, config, term)

    ui_task = asyncio.create_task(client.run())
    session_task = asyncio.create_task(controller.run())
    try:
        done, _ = await asyncio.wait(
            [ui_task, session_task],
            return_when=asyncio.FIRST_COMPLETED
        )
    finally:
        client.running = False
        bus.close_commands()
        try:
            await asyncio.wait_for(session_task, config.tui.shutdown_timeout)
        except asyncio.TimeoutError:
            TUIClient.logger.warning('session did not stop in %ss',
                                     config.tui.shutdown_timeout)
        if not ui_task.done():
            ui_task.cancel()
            try:
                await ui_task
            except asyncio.CancelledError:
                pass

    for task in done:
        task.result()


def main():
    """Main entry point for the meow client.

    Returns:
        int: Exit code (0 for success, 1 for error)
    """
    try:
        conf, kwargs = get_config()
    except ConfigError as ex:
        print('meow: %s' % ex, file=sys.stderr)
        return 1

    try:
        asyncio.run(run_client(conf, kwargs))
        return 0
    except KeyboardInterrupt:
        return 0
    except Exception as e:
        TUIClient.logger.exception('fatal error')
        print(f'\nFatal error: {e}', file=sys.stderr)
        return 1


if __name__ == '__main__':
    sys.exit(main())
