"""
Averaging kernel smoothing of vertical profiles and columns, standalone or
driven by collocated measurements.
"""

import lazy_loader

__getattr__, __dir__, __all__ = lazy_loader.attach_stub(__name__, __file__)

del lazy_loader
