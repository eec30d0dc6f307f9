# fastgrid/dispatcher.py
"""
Visibility dispatcher: the grid calls on_cell_will_display() for every cell
about to appear. Hits bind straight away; misses become render jobs whose
results go into the cache and then back to the cell on the GUI thread.

Cells are recycled by the grid, so every cell carries a ticket
(index, generation). A result is only bound if the cell's ticket still
matches the job that produced it; anything else is a stale completion and
is dropped quietly.
"""
import logging
import threading
import weakref
from collections import Counter
from enum import Enum
from functools import partial

from .errors import GeometryInvalid, RenderFailure, StaleCompletion
from .renderer import source_orientation

logger = logging.getLogger(__name__)


class CellState(Enum):
    REQUESTED = "requested"
    BOUND = "bound"
    RENDERING = "rendering"
    REJECTED = "rejected"
    RENDER_FAILED = "render_failed"
    STALE = "stale"


class _Job:
    __slots__ = ("key", "target", "generation", "future", "waiters")

    def __init__(self, key, target, generation):
        self.key = key
        self.target = target
        self.generation = generation
        self.future = None
        self.waiters = []

    def has_waiter(self, cell):
        return any(ref() is cell for ref in self.waiters)

    def drop_waiter(self, cell):
        self.waiters = [ref for ref in self.waiters if ref() is not None and ref() is not cell]


class VisibilityDispatcher:
    def __init__(self, source, layout, cache, renderer, presenter, item_count):
        self.source = source
        self.layout = layout
        self.cache = cache
        self.renderer = renderer
        self.presenter = presenter
        self.item_count = item_count
        self.orientation = source_orientation(source)
        self._tickets = weakref.WeakKeyDictionary()
        self._jobs = {}
        # pixel target of the newest job submitted per key
        self._latest_target = {}
        self._lock = threading.Lock()
        self._generation = 0
        self._closed = False
        self._counts = Counter()

    # ---- keys / tickets ----

    def storage_key(self, index):
        """Cache key for logical item `index`: the flattened grid index itself."""
        if isinstance(index, bool) or not isinstance(index, int):
            raise TypeError(f"grid index must be an int, got {type(index).__name__}")
        if not 0 <= index < self.item_count:
            raise IndexError(f"grid index {index} outside 0..{self.item_count - 1}")
        return index

    def _count(self, name, amount=1):
        with self._lock:
            self._counts[name] += amount

    def _pixel_target(self):
        try:
            return self.layout.pixel_target()
        except GeometryInvalid as e:
            logger.warning("Rejecting thumbnail request: %s", e)
            return None

    # ---- grid callbacks (presentation thread) ----

    def on_cell_will_display(self, index, cell):
        """Bind a cached thumbnail to `cell` or schedule one. Returns the CellState."""
        key = self.storage_key(index)
        if self._closed:
            return CellState.STALE

        with self._lock:
            previous = self._tickets.get(cell)
            self._tickets[cell] = (key, self._generation)
            generation = self._generation
        if previous is not None and previous[0] != key:
            self._release(previous[0], cell)

        thumb = self.cache.get(key)
        target = self._pixel_target()
        # thumbnails rendered for an older geometry count as misses
        if thumb is not None and (target is None or thumb.size == tuple(target)):
            self._count("hits")
            cell.bind(thumb)
            self._count("bound")
            return CellState.BOUND
        self._count("misses")
        if target is None:
            self._count("rejected")
            return CellState.REJECTED

        with self._lock:
            job = self._jobs.get(key)
            if job is not None and job.target == target and job.generation == generation:
                if not job.has_waiter(cell):
                    job.waiters.append(weakref.ref(cell))
                return CellState.RENDERING

            # job for an older geometry: this cell no longer waits on it
            replaced = None
            if job is not None:
                job.drop_waiter(cell)
                if not job.waiters:
                    replaced = job
            job = _Job(key, target, generation)
            job.waiters.append(weakref.ref(cell))
            try:
                job.future = self.renderer.submit(
                    self.source, target, self.layout.device_scale, self.orientation
                )
            except RenderFailure as e:
                logger.warning("Could not schedule thumbnail %d: %s", key, e)
                self._counts["renders_failed"] += 1
                job = None
            else:
                self._jobs[key] = job
                self._latest_target[key] = target
                self._counts["renders_started"] += 1

        if replaced is not None and replaced.future.cancel():
            self._count("cancelled")
        if job is None:
            return CellState.RENDER_FAILED
        job.future.add_done_callback(partial(self._on_render_done, job))
        return CellState.RENDERING

    def on_cell_end_display(self, index, cell):
        """Cell scrolled away; its pending result (if any) must not reach it."""
        with self._lock:
            ticket = self._tickets.pop(cell, None)
        if ticket is not None:
            self._release(ticket[0], cell)

    def viewport_changed(self, viewport_width):
        """Recompute tile geometry. Returns True if the tile side changed."""
        try:
            changed = self.layout.update_viewport(viewport_width)
        except GeometryInvalid as e:
            logger.warning("Ignoring viewport width %s: %s", viewport_width, e)
            return False
        if changed:
            logger.info("Tile side is now %s pt (viewport %s)", self.layout.tile_side, viewport_width)
        return changed

    def _release(self, key, cell):
        with self._lock:
            job = self._jobs.get(key)
            if job is None:
                return
            job.drop_waiter(cell)
            idle = not job.waiters
        # cancel() runs done-callbacks inline, so it must happen outside the lock
        if idle and job.future.cancel():
            self._count("cancelled")

    # ---- completion ----

    def _on_render_done(self, job, future):
        """Runs on the worker thread that finished (or the thread that cancelled)."""
        with self._lock:
            current = self._jobs.get(job.key)
            if current is job:
                del self._jobs[job.key]
            # newer geometry owns the slot, even after its job has finished
            superseded = self._latest_target.get(job.key, job.target) != job.target
            waiters = list(job.waiters)
            job.waiters.clear()
            current_generation = self._generation

        if future.cancelled():
            logger.debug("Render of thumbnail %d cancelled", job.key)
            return

        exc = future.exception()
        if exc is not None:
            self._count("renders_failed")
            if isinstance(exc, RenderFailure):
                logger.warning("Render failed for thumbnail %d: %s", job.key, exc)
            else:
                logger.error("Unexpected render error for thumbnail %d", job.key, exc_info=exc)
            return

        if job.generation != current_generation:
            self._count("stale_completions", len(waiters) or 1)
            return

        thumb = future.result()
        if not superseded:
            self.cache.put(job.key, thumb)
        self.presenter.post(self._deliver, job, thumb, waiters)

    def _check_ticket(self, job, cell):
        if self._closed:
            raise StaleCompletion(f"pipeline closed before thumbnail {job.key} arrived")
        if cell is None:
            raise StaleCompletion(f"cell for thumbnail {job.key} was released")
        with self._lock:
            ticket = self._tickets.get(cell)
        if ticket != (job.key, job.generation):
            raise StaleCompletion(f"cell moved on from thumbnail {job.key} to {ticket}")

    def _deliver(self, job, thumb, waiters):
        """Presentation thread: bind `thumb` to every cell still showing job.key."""
        for ref in waiters:
            cell = ref()
            try:
                self._check_ticket(job, cell)
            except StaleCompletion as e:
                logger.debug("Discarding stale thumbnail: %s", e)
                self._count("stale_completions")
                continue
            cell.bind(thumb)
            self._count("bound")

    # ---- lifecycle ----

    def close(self):
        """Tear down: every in-flight result becomes stale and the pool stops."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
            self._generation += 1
        self.renderer.shutdown(cancel_pending=True)

    @property
    def closed(self):
        return self._closed

    def in_flight(self):
        with self._lock:
            return len(self._jobs)

    def stats(self):
        with self._lock:
            stats = dict(self._counts)
            stats["in_flight"] = len(self._jobs)
        return stats
