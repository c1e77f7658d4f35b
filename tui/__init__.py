"""Terminal user interface for the meow IRC client."""
from .app import TUIClient, run_client, main

__all__ = ['TUIClient', 'run_client', 'main']
