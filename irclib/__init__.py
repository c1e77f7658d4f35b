from .bus import CommandBus
from .commands import (
    ConnectParams, Command, Connect, SendMessage, SendPlainMessage,
    JoinChannel, PartChannel, Quit, Disconnected
)
from .connection import SharedConnection
from .listener import Listener
from .protocol import IRCConnection, ConnectionConfig, Message
from .session import Session, SessionController, reconnect_delay

__version__ = '0.3.0'
