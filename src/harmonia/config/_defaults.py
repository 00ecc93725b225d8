"""
This module provides default settings for harmonia. Each function is used as a
Dynaconf validator default.
"""

from __future__ import annotations


def log_level(settings=None, validator=None) -> str:
    return "WARNING"


def progress(settings=None, validator=None) -> bool:
    return False
