import io
import datetime

# Modes Pillow's PNG encoder writes as-is
PNG_MODES = ("1", "L", "LA", "I", "P", "RGB", "RGBA")


def format_size(num_bytes):
    """Convert bytes to human-readable format (KB, MB, GB)."""
    for unit in ['B', 'KB', 'MB', 'GB', 'TB']:
        if num_bytes < 1024.0:
            return f"{num_bytes:.2f} {unit}"
        num_bytes /= 1024.0
    return f"{num_bytes:.2f} PB"


def estimate_image_bytes(image):
    """Rough in-memory footprint of a PIL image (width * height * bands)."""
    width, height = image.size
    return width * height * len(image.getbands())


def to_png_bytes(image):
    """Encode a PIL image as PNG bytes for widgets that take raw data."""
    if image.mode not in PNG_MODES:
        image = image.convert("RGBA")
    byte_arr = io.BytesIO()
    image.save(byte_arr, format="PNG")
    return byte_arr.getvalue()


def log(message):
    """Print a log message with timestamp."""
    time_str = datetime.datetime.now().strftime("%H:%M:%S")
    print(f"[{time_str}] {message}")
