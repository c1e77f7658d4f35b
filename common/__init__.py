"""Configuration and logging setup for the meow client."""
from .config import (
    get_config, load_config, config_path, configure_logger, parse_color,
    UserConfig, IrcConfig, ThemeConfig, TuiConfig
)

__all__ = [
    'get_config', 'load_config', 'config_path', 'configure_logger',
    'parse_color', 'UserConfig', 'IrcConfig', 'ThemeConfig', 'TuiConfig'
]
