"""
In-memory data model: variables, products and the operations the vertical
profile and smoothing components rely on (derivation, regridding, filtering,
appending and collocation).
"""

import lazy_loader

__getattr__, __dir__, __all__ = lazy_loader.attach_stub(__name__, __file__)

del lazy_loader
