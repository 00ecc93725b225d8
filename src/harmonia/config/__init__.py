"""
Package-wide settings. Values are read from ``harmonia.{yml,yaml,toml}``
settings files and ``HARMONIA_*`` environment variables.

Settings only control ambient behaviour (log verbosity, progress display):
they never change numerical results.
"""

from ._env import ENV
from ._settings import LOG_LEVELS, settings

__all__ = ["ENV", "LOG_LEVELS", "settings"]
