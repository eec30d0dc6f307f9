# fastgrid/renderer.py
"""
Off-thread thumbnail rendering.

render_thumbnail() does the actual crop-and-scale of the shared source image
into a surface of the exact pixel target. ThumbnailRenderer runs it on a
fixed-size worker pool so the GUI thread never waits on drawing work.
"""
import os
import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass

from PIL import Image, ImageOps

from .errors import RenderFailure

logger = logging.getLogger(__name__)

EXIF_ORIENTATION = 0x0112
RESAMPLE = Image.Resampling.BILINEAR


@dataclass(frozen=True)
class Thumbnail:
    """Rendered bitmap tagged with the device scale and source orientation."""
    image: Image.Image
    scale: float
    orientation: int = 1

    @property
    def size(self):
        return self.image.size

    @property
    def point_size(self):
        """Size in points (pixels divided by the device scale)."""
        width, height = self.image.size
        return width / self.scale, height / self.scale


def source_orientation(source):
    """EXIF orientation of the source image, 1 (upright) if it carries none."""
    try:
        return int(source.getexif().get(EXIF_ORIENTATION, 1))
    except (AttributeError, ValueError, TypeError):
        return 1


def render_thumbnail(source, target, device_scale=1.0, orientation=None):
    """
    Crop-and-scale `source` into a new image of exactly `target` pixels.
    The surface uses the source's own mode so no color conversion happens.
    The source image is only read, never modified.
    Raises RenderFailure if the surface cannot be allocated or drawn.
    """
    width, height = int(target[0]), int(target[1])
    if width <= 0 or height <= 0:
        raise RenderFailure(f"invalid thumbnail size {width}x{height}")

    try:
        surface = Image.new(source.mode, (width, height))
        if source.mode == "P":
            surface.putpalette(source.getpalette())
        # ImageOps.fit never touches its input in place
        drawn = ImageOps.fit(source, (width, height), method=RESAMPLE)
        surface.paste(drawn, (0, 0, width, height))
    except MemoryError as e:
        raise RenderFailure(f"out of memory allocating {width}x{height} surface") from e
    except (ValueError, OSError) as e:
        raise RenderFailure(f"cannot render {source.mode} image at {width}x{height}: {e}") from e

    if orientation is None:
        orientation = source_orientation(source)
    return Thumbnail(image=surface, scale=device_scale, orientation=orientation)


class ThumbnailRenderer:
    """Concurrent worker pool producing thumbnails without blocking the caller."""

    def __init__(self, max_workers=None):
        if max_workers is None:
            max_workers = os.cpu_count() or 1
        self.max_workers = max_workers
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix="thumbnail-render"
        )
        self._lock = threading.Lock()
        self._closed = False

    def render(self, source, target, device_scale=1.0, orientation=None):
        """Render synchronously on the calling (worker) thread."""
        return render_thumbnail(source, target, device_scale, orientation)

    def submit(self, source, target, device_scale=1.0, orientation=None):
        """Queue a render job. Returns a Future resolving to a Thumbnail."""
        with self._lock:
            if self._closed:
                raise RenderFailure("renderer has been shut down")
            try:
                return self._executor.submit(
                    self.render, source, target, device_scale, orientation
                )
            except RuntimeError as e:
                raise RenderFailure(f"cannot schedule render: {e}") from e

    def shutdown(self, cancel_pending=True, wait=False):
        with self._lock:
            if self._closed:
                return
            self._closed = True
        logger.debug("Shutting down thumbnail renderer (%d workers)", self.max_workers)
        self._executor.shutdown(wait=wait, cancel_futures=cancel_pending)

    @property
    def closed(self):
        return self._closed

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.shutdown(wait=True)
