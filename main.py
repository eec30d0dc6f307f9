# main.py
import logging

import PySimpleGUI as sg

import config
from fastgrid import utils
from fastgrid.source import load_source_image, make_demo_source, aspect_ratio

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(message)s")


def load_source():
    """Load the configured source image, or fall back to a generated one."""
    try:
        source = load_source_image(config.SOURCE_IMAGE)
    except OSError as e:
        logging.warning("Could not load source image (%s); using generated demo image.", e)
        width = 1200
        source = make_demo_source((width, int(round(width / config.SOURCE_ASPECT_RATIO))))

    ratio = aspect_ratio(source)
    if abs(ratio - config.SOURCE_ASPECT_RATIO) > 0.01:
        logging.info(
            "Source aspect ratio %.3f differs from configured %.3f; thumbnails will be cropped.",
            ratio, config.SOURCE_ASPECT_RATIO,
        )
    return source


def main():
    source = load_source()
    utils.log(f"{config.APP_NAME} {config.APP_VERSION} started.")

    # GUI imported late so the pipeline modules stay importable without a display
    from fastgrid import ui

    # run the UI (blocks until user exits)
    try:
        ui.run(source)
    except Exception as e:
        logging.exception("Unhandled exception in UI.run(): %s", e)
        sg.popup_error(f"Fatal error in UI:\n{e}", keep_on_top=True)


if __name__ == "__main__":
    main()
