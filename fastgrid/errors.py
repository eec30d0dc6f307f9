"""Errors raised by the thumbnail pipeline.

Every error is local to a single cell request; none of them is fatal to
the pipeline as a whole.
"""


class FastGridError(Exception):
    """Base class for pipeline errors."""


class GeometryInvalid(FastGridError, ValueError):
    """Computed tile or pixel size is non-positive, or geometry is unknown."""


class RenderFailure(FastGridError):
    """Drawing surface could not be allocated or drawn into."""


class StaleCompletion(FastGridError):
    """Render result arrived after its cell moved on to another index."""
