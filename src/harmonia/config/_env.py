from __future__ import annotations

import os

#: Identifier of the environment in which harmonia is used. Takes the value of
#: the ``HARMONIA_ENV`` environment variable if it is set; otherwise defaults to
#: ``"default"``.
ENV: str = os.environ.get("HARMONIA_ENV", "default")
