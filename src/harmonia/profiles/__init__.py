"""
Vertical profile algebra: conversions between pressure, altitude and
geopotential height, tropopause detection and partial column integration.
"""

import lazy_loader

__getattr__, __dir__, __all__ = lazy_loader.attach_stub(__name__, __file__)

del lazy_loader
