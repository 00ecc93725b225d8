"""Vertical profile harmonization and averaging kernel smoothing for
atmospheric measurement products."""

from ._version import _version

__version__ = _version  #: Harmonia version string.

# -- Lazy imports ------------------------------------------------------

import lazy_loader  # noqa: E402

__getattr__, __dir__, __all__ = lazy_loader.attach_stub(__name__, __file__)

del lazy_loader
