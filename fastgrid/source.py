import os

from PIL import Image

from .utils import log


def load_source_image(path):
    """
    Open the shared source image and decode it fully, so render workers only
    ever read finished pixel data. Raises OSError if missing or undecodable.
    """
    if not os.path.exists(path):
        raise FileNotFoundError(f"source image not found: {path}")

    with Image.open(path) as img:
        img.load()
        # copy() detaches the pixels (and info, incl. EXIF) from the file handle
        source = img.copy()
    log(f"Loaded source image {os.path.basename(path)}: {source.size[0]}x{source.size[1]} {source.mode}")
    return source


def make_demo_source(size=(1200, 1600)):
    """Synthetic RGB gradient used when no source image is configured."""
    width, height = size
    horizontal = Image.linear_gradient("L").resize((width, height))
    vertical = Image.linear_gradient("L").rotate(90).resize((width, height))
    return Image.merge("RGB", (horizontal, vertical, Image.new("L", (width, height), 128)))


def aspect_ratio(image):
    """Width / height of `image`."""
    width, height = image.size
    return width / height
