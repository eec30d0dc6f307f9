# fastgrid/presentation.py
"""
Hand-off from render workers to the single GUI thread.

Workers post() callables; the GUI event loop calls drain() on every tick,
so every cell binding runs on that one thread, in posting order.
"""
import logging
import queue
import threading

logger = logging.getLogger(__name__)


class PresentationQueue:
    def __init__(self):
        self._q = queue.Queue()
        self._owner = None

    def post(self, fn, *args):
        """Schedule fn(*args) on the presentation thread. Safe from any thread."""
        self._q.put((fn, args))

    def drain(self, max_items=None):
        """
        Run queued callables on the calling thread. Returns how many ran.
        A failing callable is logged and does not stop the drain.
        """
        if self._owner is None:
            self._owner = threading.get_ident()
        ran = 0
        while max_items is None or ran < max_items:
            try:
                fn, args = self._q.get_nowait()
            except queue.Empty:
                break
            try:
                fn(*args)
            except Exception:
                logger.exception("Presentation callback %r failed", fn)
            ran += 1
        return ran

    def pending(self):
        return self._q.qsize()

    def on_presentation_thread(self):
        """True on the thread that drains this queue (or before the first drain)."""
        return self._owner is None or self._owner == threading.get_ident()
