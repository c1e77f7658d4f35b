#!/usr/bin/env python3
# -*- coding: utf-8 -*-
import os
import sys
import json
import logging
from dataclasses import dataclass, field
from typing import Dict, Optional, Tuple

from irclib.error import ConfigError
from irclib.util import parse_bool


LOG_FORMAT = '[%(asctime).19s] [%(name)s] [%(levelname)s] %(message)s'

DEFAULT_PORT = 6697
DEFAULT_NICK = 'meow'
DEFAULT_TLS = True


class RobustFileHandler(logging.FileHandler):
    """FileHandler that gracefully handles flush errors on Windows"""

    def flush(self):
        """Flush the stream, ignoring EINVAL from Windows file handles"""
        try:
            super().flush()
        except OSError as e:
            if e.errno != 22:  # EINVAL
                raise


def configure_logger(logger,
                     log_file=None,
                     log_format=None,
                     log_level=logging.INFO):
    """Configure a logger with a file or stream handler

    Args:
        logger: Logger instance or logger name string
        log_file: File path string or file-like object (None for stderr)
        log_format: Format string for log messages
        log_level: Logging level (e.g., logging.INFO, logging.DEBUG)

    Returns:
        Configured logger instance
    """
    if isinstance(log_file, str):
        directory = os.path.dirname(log_file)
        if directory:
            os.makedirs(directory, exist_ok=True)
        handler = RobustFileHandler(
            log_file,
            mode='a',
            encoding='utf-8',
            errors='replace'
        )
    else:
        handler = logging.StreamHandler(log_file)

    if isinstance(logger, str):
        logger = logging.getLogger(logger)

    handler.setFormatter(logging.Formatter(log_format))
    logger.addHandler(handler)
    logger.setLevel(log_level)

    return logger


def parse_color(value):
    """Parse a ``#rrggbb`` colour

    Args:
        value: Hex string, with or without the leading '#'

    Returns:
        (r, g, b) tuple, or None if the value is not a 6 digit hex colour
    """
    if not isinstance(value, str):
        return None
    value = value.strip().lstrip('#')
    if len(value) != 6:
        return None
    try:
        rgb = int(value, 16)
    except ValueError:
        return None
    return (rgb >> 16) & 0xff, (rgb >> 8) & 0xff, rgb & 0xff


def home_dir():
    if os.name == 'nt' and os.environ.get('USERPROFILE'):
        return os.path.join(os.environ['USERPROFILE'], 'meowconf')
    return os.path.join(os.path.expanduser('~'), '.meow')


def config_path(argv=None):
    """Resolve the configuration file path

    Order: first command line argument, $MEOW_CONFIG, then config.json in
    the per-user directory (~/.meow, or %USERPROFILE%\\meowconf on Windows).
    """
    if argv is None:
        argv = sys.argv
    if len(argv) > 1:
        return argv[1]
    env = os.environ.get('MEOW_CONFIG')
    if env:
        return env
    return os.path.join(home_dir(), 'config.json')


def _section(conf, key):
    value = conf.get(key)
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ConfigError('"%s" must be an object, got %r' % (key, value))
    return value


@dataclass(frozen=True)
class IrcConfig:
    nick: str = DEFAULT_NICK
    port: int = DEFAULT_PORT
    tls: bool = DEFAULT_TLS
    connect_timeout: Optional[float] = 30
    max_reconnect_attempts: Optional[int] = None

    @classmethod
    def from_dict(cls, conf):
        try:
            port = int(conf.get('port', DEFAULT_PORT))
            tls = parse_bool(conf.get('tls', DEFAULT_TLS))
            timeout = conf.get('connect_timeout', 30)
            attempts = conf.get('max_reconnect_attempts')
            return cls(
                nick=str(conf.get('nick', DEFAULT_NICK)),
                port=port,
                tls=tls,
                connect_timeout=None if timeout is None else float(timeout),
                max_reconnect_attempts=None if attempts is None else int(attempts)
            )
        except (TypeError, ValueError) as ex:
            raise ConfigError('invalid "irc" section: %s' % ex) from ex


@dataclass(frozen=True)
class ThemeConfig:
    background: Optional[str] = None
    foreground: Optional[str] = None
    accent: Optional[str] = None
    muted: Optional[str] = None
    icons: bool = False

    @classmethod
    def from_dict(cls, conf):
        try:
            return cls(
                background=conf.get('background'),
                foreground=conf.get('foreground'),
                accent=conf.get('accent'),
                muted=conf.get('muted'),
                icons=parse_bool(conf.get('icons', False))
            )
        except ValueError as ex:
            raise ConfigError('invalid "theme" section: %s' % ex) from ex

    def rgb(self, name):
        """(r, g, b) of a theme colour, None if unset or malformed"""
        return parse_color(getattr(self, name))


@dataclass(frozen=True)
class TuiConfig:
    width: int = 80
    height: int = 20
    padding: int = 2
    welcome: bool = True
    shutdown_timeout: float = 2

    @classmethod
    def from_dict(cls, conf):
        try:
            tui = cls(
                width=int(conf.get('width', 80)),
                height=int(conf.get('height', 20)),
                padding=int(conf.get('padding', 2)),
                welcome=parse_bool(conf.get('welcome', True)),
                shutdown_timeout=float(conf.get('shutdown_timeout', 2))
            )
        except (TypeError, ValueError) as ex:
            raise ConfigError('invalid "tui" section: %s' % ex) from ex
        if tui.height < 1 or tui.padding < 0 or tui.width <= tui.padding:
            raise ConfigError(
                'invalid "tui" geometry: width=%d height=%d padding=%d'
                % (tui.width, tui.height, tui.padding)
            )
        return tui


@dataclass(frozen=True)
class UserConfig:
    irc: IrcConfig = field(default_factory=IrcConfig)
    theme: ThemeConfig = field(default_factory=ThemeConfig)
    tui: TuiConfig = field(default_factory=TuiConfig)
    emojis: Dict[str, str] = field(default_factory=dict)
    log_level: str = 'info'
    log_file: Optional[str] = None

    @classmethod
    def from_dict(cls, conf):
        """Build the configuration from a parsed JSON object

        Raises:
            ConfigError: If a section has the wrong type or a bad value
        """
        if not isinstance(conf, dict):
            raise ConfigError('configuration must be a JSON object')
        emojis = _section(conf, 'emojis')
        return cls(
            irc=IrcConfig.from_dict(_section(conf, 'irc')),
            theme=ThemeConfig.from_dict(_section(conf, 'theme')),
            tui=TuiConfig.from_dict(_section(conf, 'tui')),
            emojis={str(k): str(v) for k, v in emojis.items()},
            log_level=str(conf.get('log_level', 'info')),
            log_file=conf.get('log_file')
        )


def load_config(path):
    """Load the configuration file

    Args:
        path: JSON file path; a missing file gives the defaults

    Returns:
        UserConfig instance

    Raises:
        ConfigError: If the file can not be read or parsed
    """
    try:
        with open(path, 'r', encoding='utf-8') as fp:
            conf = json.load(fp)
    except FileNotFoundError:
        return UserConfig()
    except OSError as ex:
        raise ConfigError('cannot read %s: %s' % (path, ex)) from ex
    except ValueError as ex:
        raise ConfigError('malformed JSON in %s: %s' % (path, ex)) from ex
    return UserConfig.from_dict(conf)


def get_config(argv=None) -> Tuple[UserConfig, dict]:
    """Load configuration and set up logging

    Returns:
        Tuple of (conf, kwargs) where:
            conf: UserConfig instance
            kwargs: SessionController parameters extracted from config

    Raises:
        ConfigError: If the configuration file is malformed
    """
    conf = load_config(config_path(argv))

    level = getattr(logging, conf.log_level.upper(), None)
    if not isinstance(level, int):
        raise ConfigError('unknown log level %r' % conf.log_level)

    # the terminal belongs to the UI, so logs always go to a file
    log_file = conf.log_file or os.path.join(home_dir(), 'meow.log')
    configure_logger(logging.getLogger(), log_file, LOG_FORMAT, level)

    return conf, {
        'connect_timeout': conf.irc.connect_timeout,
        'max_reconnect_attempts': conf.irc.max_reconnect_attempts,
    }
