# fastgrid/ui.py
import logging

import PySimpleGUI as sg
from PIL import Image

import config
from .cache import ThumbnailCache
from .dispatcher import VisibilityDispatcher
from .geometry import GridLayout
from .presentation import PresentationQueue
from .renderer import ThumbnailRenderer
from .utils import format_size, to_png_bytes

logger = logging.getLogger(__name__)


# =========================
# THEME
# =========================
sg.theme("DarkGrey14")
sg.set_options(font=(config.FONT_FAMILY, config.FONT_SIZE))

PANEL_BG = config.THEME_PANEL
TEXT_DIM = config.THEME_SUBTEXT

# horizontal space taken by the scroll slider and window padding
GRID_MARGIN = 60


# ============== Cells ==============


class ImageCell:
    """One recycled grid slot backed by an sg.Image element."""

    def __init__(self, element):
        self.element = element
        self.index = None
        self._placeholder = None

    def set_placeholder(self, png_bytes, size):
        self._placeholder = png_bytes
        self.element.update(data=png_bytes, size=size)

    def bind(self, thumbnail):
        self.element.update(data=to_png_bytes(thumbnail.image))

    def prepare_for_reuse(self):
        if self._placeholder is not None:
            self.element.update(data=self._placeholder)


def _placeholder_png(width, height):
    return to_png_bytes(Image.new("RGB", (max(1, width), max(1, height)), config.TILE_PLACEHOLDER))


class GridView:
    """
    A page of VISIBLE_ROWS x COLUMN_COUNT recycled cells over ITEM_COUNT items.
    Scrolling reassigns cells to new indices and reports them to the dispatcher.
    """

    def __init__(self, dispatcher, cells):
        self.dispatcher = dispatcher
        self.layout = dispatcher.layout
        self.cells = cells
        self.first_row = 0

    @property
    def max_first_row(self):
        total_rows = self.layout.rows_for(self.dispatcher.item_count)
        return max(0, total_rows - len(self.cells))

    def resize(self, viewport_width):
        if not self.dispatcher.viewport_changed(viewport_width):
            return False
        side = self.layout.tile_side
        height = self.layout.tile_height()
        placeholder = _placeholder_png(side, height)
        for row in self.cells:
            for cell in row:
                cell.set_placeholder(placeholder, (side, height))
        self.reload()
        return True

    def reload(self):
        """Re-announce every visible cell (after a geometry change)."""
        for row in self.cells:
            for cell in row:
                if cell.index is not None:
                    self.dispatcher.on_cell_end_display(cell.index, cell)
                    cell.index = None
        self.scroll_to(self.first_row)

    def scroll_to(self, first_row):
        self.first_row = max(0, min(int(first_row), self.max_first_row))
        for r, row in enumerate(self.cells):
            for c, cell in enumerate(row):
                index = self.layout.index_at(self.first_row + r, c)
                if cell.index == index:
                    continue
                if cell.index is not None:
                    self.dispatcher.on_cell_end_display(cell.index, cell)
                cell.prepare_for_reuse()
                if index >= self.dispatcher.item_count:
                    cell.index = None
                    continue
                cell.index = index
                self.dispatcher.on_cell_will_display(index, cell)


# ============== Window ==============


def _make_window(rows, columns):
    grid = []
    for r in range(rows):
        grid.append([
            sg.Image(key=("-CELL-", r, c), pad=(int(config.SPACING) // 2, int(config.SPACING) // 2),
                     background_color=config.TILE_PLACEHOLDER)
            for c in range(columns)
        ])

    header_row = [
        sg.Text(
            f"{config.APP_NAME} - {config.ITEM_COUNT} thumbnails",
            font=(config.FONT_FAMILY, 14),
            text_color=config.THEME_TEXT,
            background_color=PANEL_BG,
        )
    ]
    nav_row = [
        sg.Button("▲", key="-UP-", button_color=("white", config.THEME_ACCENT)),
        sg.Button("▼", key="-DOWN-", button_color=("white", config.THEME_ACCENT)),
        sg.Text("", key="-STATUS-", text_color=TEXT_DIM, background_color=PANEL_BG, expand_x=True),
    ]
    slider = sg.Slider(
        range=(0, 1),
        default_value=0,
        orientation="v",
        disable_number_display=True,
        enable_events=True,
        expand_y=True,
        key="-SCROLL-",
    )

    layout = [
        header_row,
        nav_row,
        [
            sg.Column(grid, background_color=PANEL_BG, pad=(0, 0), expand_x=True, expand_y=True),
            slider,
        ],
    ]
    return sg.Window(
        config.APP_NAME,
        layout,
        size=config.WINDOW_SIZE,
        finalize=True,
        resizable=True,
        background_color=PANEL_BG,
    )


def _viewport_width(window):
    width, _ = window.size
    return width - GRID_MARGIN


def _status_text(dispatcher):
    cache_stats = dispatcher.cache.stats()
    stats = dispatcher.stats()
    return (
        f"tile {dispatcher.layout.tile_side}pt | "
        f"cached {cache_stats['entries']} ({format_size(cache_stats['bytes'])}) | "
        f"rendering {stats.get('in_flight', 0)} | "
        f"hits {stats.get('hits', 0)} | stale {stats.get('stale_completions', 0)}"
    )


def build_pipeline(source):
    """Wire layout, cache, worker pool and presentation queue around `source`."""
    layout = GridLayout(
        config.COLUMN_COUNT, config.SPACING, config.SOURCE_ASPECT_RATIO, config.DEVICE_SCALE
    )
    return VisibilityDispatcher(
        source,
        layout,
        ThumbnailCache(),
        ThumbnailRenderer(config.RENDER_WORKERS),
        PresentationQueue(),
        config.ITEM_COUNT,
    )


def run(source):
    dispatcher = build_pipeline(source)
    window = _make_window(config.VISIBLE_ROWS, config.COLUMN_COUNT)
    window.bind("<Configure>", "-CONFIGURE-")

    cells = [
        [ImageCell(window[("-CELL-", r, c)]) for c in range(config.COLUMN_COUNT)]
        for r in range(config.VISIBLE_ROWS)
    ]
    grid = GridView(dispatcher, cells)

    # geometry must be known before the first cell asks for a thumbnail
    grid.resize(_viewport_width(window))
    window["-SCROLL-"].update(range=(0, grid.max_first_row))
    grid.scroll_to(0)

    try:
        while True:
            event, values = window.read(timeout=config.REFRESH_MS)
            if event in (sg.WIN_CLOSED, "Exit"):
                break

            if event == "-CONFIGURE-":
                grid.resize(_viewport_width(window))
            elif event == "-SCROLL-":
                grid.scroll_to(values["-SCROLL-"])
            elif event in ("-UP-", "-DOWN-"):
                step = -len(cells) if event == "-UP-" else len(cells)
                grid.scroll_to(grid.first_row + step)
                window["-SCROLL-"].update(value=grid.first_row)

            # this loop is the presentation thread: finished renders bind here
            dispatcher.presenter.drain()
            window["-STATUS-"].update(_status_text(dispatcher))
    finally:
        dispatcher.close()
        window.close()
