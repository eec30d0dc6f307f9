import os

# ------------------------
# App Information
# ------------------------
APP_NAME = "FastGrid"
APP_VERSION = "1.0.0"

# ------------------------
# Paths
# ------------------------
BASE_DIR = os.path.dirname(os.path.abspath(__file__))
ASSETS_DIR = os.path.join(BASE_DIR, "assets")
SOURCE_IMAGE = os.path.join(ASSETS_DIR, "source.jpg")

# ------------------------
# Grid Settings
# ------------------------
ITEM_COUNT = 10000
COLUMN_COUNT = 4
SPACING = 2.0               # points between tiles and between rows
SOURCE_ASPECT_RATIO = 0.75  # width / height of the source image
DEVICE_SCALE = 1.0          # physical pixels per point

# ------------------------
# Rendering / Cache Settings
# ------------------------
RENDER_WORKERS = None                 # None -> one worker per core
CACHE_MAX_BYTES = 256 * 1024 * 1024   # soft budget, not a capacity contract
MEMORY_PRESSURE_PERCENT = 90.0        # system RAM usage that triggers a purge
PRESSURE_CHECK_EVERY = 64             # puts between memory probes

# ------------------------
# Theme Colors
# ------------------------
THEME_BG = "#0D0D0D"
THEME_PANEL = "#1A1A1A"
THEME_ACCENT = "#E50914"
THEME_TEXT = "#FFFFFF"
THEME_SUBTEXT = "#AAAAAA"
TILE_PLACEHOLDER = "#808080"

# ------------------------
# UI Settings
# ------------------------
FONT_FAMILY = "Segoe UI"
FONT_SIZE = 11
WINDOW_SIZE = (420, 760)
VISIBLE_ROWS = 6
REFRESH_MS = 30
