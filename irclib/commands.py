#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""Commands sent from the user interface to the session controller.

The set is closed: `SessionController.handle` has one branch per class and
raises `CommandError` for anything else.
"""
from dataclasses import dataclass
from typing import Any, Optional


@dataclass(frozen=True)
class ConnectParams:
    """Snapshot of the parameters of a successful connect."""
    server: str
    port: int
    nick: str
    use_tls: bool


@dataclass(frozen=True)
class Command:
    """Base class of all commands."""


@dataclass(frozen=True)
class Connect(Command):
    server: str
    port: int
    nick: str
    use_tls: bool

    @property
    def params(self):
        return ConnectParams(self.server, self.port, self.nick, self.use_tls)


@dataclass(frozen=True)
class SendMessage(Command):
    target: str
    body: str


@dataclass(frozen=True)
class JoinChannel(Command):
    name: str


@dataclass(frozen=True)
class PartChannel(Command):
    name: str


@dataclass(frozen=True)
class SendPlainMessage(Command):
    """Message to the current channel."""
    body: str


@dataclass(frozen=True)
class Quit(Command):
    pass


@dataclass(frozen=True)
class Disconnected(Command):
    """Internal signal from a listener whose stream ended.

    `connection` is the shared connection the listener was reading from, so
    the controller can recognise signals from connections it already retired.
    """
    connection: Optional[Any] = None
