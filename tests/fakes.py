"""
Test doubles and helpers shared by the unit and integration tests.
"""
import asyncio

from irclib.error import ConnectionClosed
from irclib.protocol import Message


class FakeConnection:
    """
    In-memory stand-in for IRCConnection.

    Inbound events are fed through a queue; outbound calls are recorded in
    `sent`. Setting `fail[method] = exc` makes that method raise.
    """

    def __init__(self, config=None):
        self.config = config
        self.events = asyncio.Queue()
        self.sent = []
        self.fail = {}
        self.identified = False
        self.closed = False

    def _check(self, name):
        ex = self.fail.get(name)
        if ex is not None:
            raise ex

    def feed(self, line):
        self.events.put_nowait(Message.parse(line))

    def end(self, ex=None):
        self.events.put_nowait(ex or ConnectionClosed('connection closed by server'))

    async def identify(self):
        self._check('identify')
        self.identified = True

    async def next_event(self):
        item = await self.events.get()
        if isinstance(item, Exception):
            raise item
        return item

    async def send_privmsg(self, target, body):
        self._check('send_privmsg')
        self.sent.append(('PRIVMSG', target, body))

    async def send_join(self, channel):
        self._check('send_join')
        self.sent.append(('JOIN', channel))

    async def send_part(self, channel):
        self._check('send_part')
        self.sent.append(('PART', channel))

    async def send_pong(self, token):
        self._check('send_pong')
        self.sent.append(('PONG', token))

    async def send_quit(self, reason):
        self._check('send_quit')
        self.sent.append(('QUIT', reason))

    async def close(self):
        self.closed = True


class FakeConnector:
    """
    Connect coroutine that hands out FakeConnection instances.

    `failures` is consumed one item per call; an exception item is raised,
    None lets that call succeed.
    """

    def __init__(self, failures=None):
        self.failures = list(failures or [])
        self.configs = []
        self.connections = []

    async def __call__(self, config):
        self.configs.append(config)
        if self.failures:
            ex = self.failures.pop(0)
            if ex is not None:
                raise ex
        connection = FakeConnection(config)
        self.connections.append(connection)
        return connection

    @property
    def last(self):
        return self.connections[-1]


async def next_command(bus, timeout=1):
    """Receive the next command or fail the test after `timeout` seconds."""
    return await asyncio.wait_for(bus.recv_command(), timeout)


async def settle(controller):
    """Let spawned listener and dispatch tasks run."""
    for _ in range(3):
        await asyncio.sleep(0)
    await controller.wait_dispatched()


async def wait_for_line(bus, line, seen=None, count=1, timeout=1):
    """
    Drain display lines until `line` has shown up `count` times.

    Returns:
        list: Every line drained, `seen` included
    """
    seen = [] if seen is None else seen

    async def poll():
        while seen.count(line) < count:
            seen.extend(bus.drain_lines())
            await asyncio.sleep(0.01)

    await asyncio.wait_for(poll(), timeout)
    return seen
