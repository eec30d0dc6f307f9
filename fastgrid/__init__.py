
"""
FastGrid package initializer.
Expose the thumbnail pipeline modules for convenient imports in tests and other code.
"""

__version__ = "1.0.0"

# Re-export package submodules but DO NOT import UI at package import time
from . import errors, utils, geometry, cache, renderer, presentation, dispatcher, source
# Note: ui is intentionally NOT imported here to avoid GUI dependency during tests

__all__ = [
    "errors",
    "utils",
    "geometry",
    "cache",
    "renderer",
    "presentation",
    "dispatcher",
    "source",
]
