import pytest
from PIL import Image

from fastgrid import renderer
from fastgrid.errors import RenderFailure
from fastgrid.geometry import PixelTarget
from fastgrid.renderer import Thumbnail, ThumbnailRenderer, render_thumbnail, source_orientation
from fastgrid.source import make_demo_source


@pytest.fixture
def source():
    return make_demo_source((300, 400))


def test_render_matches_pixel_target(source):
    thumb = render_thumbnail(source, PixelTarget(96, 128), device_scale=2.0)
    assert isinstance(thumb, Thumbnail)
    assert thumb.size == (96, 128)
    assert thumb.scale == 2.0
    assert thumb.point_size == (48.0, 64.0)


def test_render_keeps_pixel_format():
    for mode in ("RGB", "RGBA", "L"):
        src = Image.new(mode, (120, 160))
        thumb = render_thumbnail(src, (30, 40))
        assert thumb.image.mode == mode


def test_render_crops_instead_of_distorting():
    # left half black, right half white, square target from a wide source
    src = Image.new("L", (400, 100), 0)
    src.paste(255, (200, 0, 400, 100))
    thumb = render_thumbnail(src, (50, 50))
    # centered crop keeps the split in the middle
    assert thumb.image.getpixel((5, 25)) == 0
    assert thumb.image.getpixel((45, 25)) == 255


def test_render_is_deterministic(source):
    first = render_thumbnail(source, (64, 85))
    second = render_thumbnail(source, (64, 85))
    assert first.size == second.size
    assert first.image.tobytes() == second.image.tobytes()


def test_render_never_mutates_source(source):
    before = source.tobytes()
    render_thumbnail(source, (10, 13))
    assert source.tobytes() == before
    assert source.size == (300, 400)


def test_non_positive_target_fails(source):
    with pytest.raises(RenderFailure):
        render_thumbnail(source, (0, 100))
    with pytest.raises(RenderFailure):
        render_thumbnail(source, (100, -5))


def test_allocation_failure_becomes_render_failure(source, monkeypatch):
    def boom(*args, **kwargs):
        raise MemoryError()

    monkeypatch.setattr(renderer.Image, "new", boom)
    with pytest.raises(RenderFailure):
        render_thumbnail(source, (10, 10))


def test_orientation_tag_is_carried():
    src = Image.new("RGB", (40, 30))
    exif = Image.Exif()
    exif[renderer.EXIF_ORIENTATION] = 6
    src.info["exif"] = exif.tobytes()
    assert source_orientation(src) == 6
    assert render_thumbnail(src, (8, 6)).orientation == 6
    assert source_orientation(Image.new("RGB", (4, 4))) == 1
    # explicit orientation skips the EXIF lookup
    assert render_thumbnail(src, (8, 6), orientation=3).orientation == 3


def test_pool_renders_off_thread(source):
    with ThumbnailRenderer(max_workers=2) as pool:
        futures = [pool.submit(source, (20 + i, 30 + i), 1.0) for i in range(6)]
        sizes = [f.result(timeout=10).size for f in futures]
    assert sizes == [(20 + i, 30 + i) for i in range(6)]


def test_pool_failure_surfaces_on_future(source):
    with ThumbnailRenderer(max_workers=1) as pool:
        future = pool.submit(source, (0, 0))
        with pytest.raises(RenderFailure):
            future.result(timeout=10)


def test_submit_after_shutdown_fails(source):
    pool = ThumbnailRenderer(max_workers=1)
    pool.shutdown()
    assert pool.closed
    with pytest.raises(RenderFailure):
        pool.submit(source, (10, 10))
    # second shutdown is a no-op
    pool.shutdown()


def test_default_pool_size_follows_cores(monkeypatch):
    monkeypatch.setattr(renderer.os, "cpu_count", lambda: 3)
    pool = ThumbnailRenderer()
    try:
        assert pool.max_workers == 3
    finally:
        pool.shutdown()
