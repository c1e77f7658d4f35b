"""
Shared pytest fixtures for the meow test suite.

This file contains fixtures that are available to all test files.
"""
import io
import json
from unittest.mock import AsyncMock

import pytest
from blessed import Terminal

from common.config import UserConfig
from irclib.bus import CommandBus
from irclib.commands import ConnectParams
from irclib.session import SessionController

from fakes import FakeConnector


@pytest.fixture
def bus():
    """Fresh command bus."""
    return CommandBus()


@pytest.fixture
def connector():
    """Connect coroutine returning fake connections."""
    return FakeConnector()


@pytest.fixture
def fake_sleep():
    """
    Sleep replacement for the reconnection backoff.

    Returns:
        AsyncMock: Records requested delays and returns immediately
    """
    return AsyncMock()


@pytest.fixture
def controller(bus, connector, fake_sleep):
    """Session controller wired to the fake connector."""
    return SessionController(bus, connect=connector, sleep=fake_sleep)


@pytest.fixture
def connect_params():
    return ConnectParams('irc.example.org', 6667, 'meow', False)


@pytest.fixture
def user_config():
    """Default configuration without the welcome screen."""
    return UserConfig.from_dict({'tui': {'welcome': False}})


@pytest.fixture
def term():
    """
    Terminal that writes to memory and emits no escape sequences.

    Returns:
        blessed.Terminal
    """
    return Terminal(kind='xterm-256color', stream=io.StringIO(),
                    force_styling=None)


@pytest.fixture
def temp_config_file(tmp_path):
    """
    Create temporary config file for testing.

    Returns:
        Path: Path to temporary config.json file
    """
    config_file = tmp_path / 'config.json'
    config_file.write_text(json.dumps({
        'irc': {'nick': 'tester', 'port': 6667, 'tls': False},
        'theme': {'accent': '#ff8800', 'icons': True},
        'emojis': {'cat': '🐱'},
        'tui': {'width': 60, 'height': 10},
        'log_level': 'debug',
        'log_file': str(tmp_path / 'meow.log'),
    }, indent=2))
    return config_file


def pytest_configure(config):
    """
    Pytest configuration hook.

    Registers custom markers.
    """
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "integration: Integration tests")
