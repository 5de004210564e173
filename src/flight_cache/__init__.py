"""Command-line client for the Flight file cache."""

from .constants import CLI_VERSION

__version__ = CLI_VERSION
