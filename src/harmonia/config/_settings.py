from __future__ import annotations

from dynaconf import Dynaconf, Validator

from . import _defaults
from ._env import ENV

#: Valid log level names.
LOG_LEVELS = ["CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG", "NOTSET"]

#: Main settings data structure. See the `Dynaconf documentation <https://www.dynaconf.com/>`__
#: for details.
settings = Dynaconf(
    settings_files=["harmonia.yml", "harmonia.yaml", "harmonia.toml"],
    envvar_prefix="HARMONIA",
    environments=False,
    env=ENV,
    merge_enabled=True,
    validate_on_update=True,
    validators=[
        Validator(
            "LOG_LEVEL",
            cast=lambda x: str(x).upper(),
            is_in=LOG_LEVELS,
            default=_defaults.log_level,
        ),
        Validator(
            "PROGRESS",
            cast=bool,
            default=_defaults.progress,
        ),
    ],
)
