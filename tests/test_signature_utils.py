import math

import pytest
from PyQt6.QtCore import Qt
from PyQt6.QtGui import QColor, QImage

from utils.signature_utils import (MODE_DRAW, MODE_TYPE, SignatureRasterizer, content_bounds,
                                   crop_bounds, typed_font_size, underline_points)


@pytest.fixture
def rasterizer(qapp):
    return SignatureRasterizer(200, 200)


def blank_image(width=200, height=200):
    image = QImage(width, height, QImage.Format.Format_ARGB32_Premultiplied)
    image.fill(Qt.GlobalColor.transparent)
    return image


def test_crop_adds_clamped_padding():
    assert crop_bounds((10, 10, 90, 40), 200, 200, 20) == (0, 0, 110, 60)
    assert crop_bounds((150, 170, 195, 199), 200, 200, 20) == (130, 150, 200, 200)


def test_content_bounds_of_blank_image_is_none(qapp):
    assert content_bounds(blank_image()) is None


def test_content_bounds_finds_opaque_pixels(qapp):
    image = blank_image()
    image.setPixelColor(10, 10, QColor("black"))
    image.setPixelColor(90, 40, QColor("black"))
    assert content_bounds(image) == (10, 10, 90, 40)


def test_extract_crops_to_padded_bounds(rasterizer):
    rasterizer.image.setPixelColor(10, 10, QColor("black"))
    rasterizer.image.setPixelColor(90, 40, QColor("black"))

    cropped = rasterizer.extract_image()
    assert (cropped.width(), cropped.height()) == (110, 60)

    png = rasterizer.extract_png()
    assert png.startswith(b"\x89PNG")
    decoded = QImage.fromData(png, "PNG")
    assert (decoded.width(), decoded.height()) == (110, 60)


def test_extract_empty_surface_returns_none(rasterizer):
    assert rasterizer.extract_image() is None
    assert rasterizer.extract_png() is None


def test_stroke_sets_content_and_clear_resets(rasterizer):
    rasterizer.begin_stroke(20, 20)
    assert not rasterizer.has_content
    for x in range(30, 120, 10):
        rasterizer.extend_stroke(x, 20 + x / 4)
    rasterizer.end_stroke()

    assert rasterizer.has_content
    assert not rasterizer.is_drawing
    assert content_bounds(rasterizer.image) is not None

    rasterizer.clear()
    assert not rasterizer.has_content
    assert content_bounds(rasterizer.image) is None


def test_stroke_uses_selected_color(rasterizer):
    rasterizer.set_color("#dc2626")
    rasterizer.begin_stroke(20, 50)
    rasterizer.extend_stroke(60, 50)
    rasterizer.extend_stroke(100, 50)
    rasterizer.end_stroke()

    pixel = rasterizer.image.pixelColor(60, 50)
    assert pixel.alpha() > 0
    assert pixel.red() > pixel.blue()
    assert pixel.red() > pixel.green()


def test_high_dpi_surface_draws_in_logical_coordinates(qapp):
    rasterizer = SignatureRasterizer(100, 50, device_pixel_ratio=2.0)
    assert (rasterizer.width, rasterizer.height) == (100, 50)
    assert (rasterizer.image.width(), rasterizer.image.height()) == (200, 100)

    rasterizer.begin_stroke(10, 25)
    rasterizer.extend_stroke(50, 25)
    rasterizer.extend_stroke(90, 25)
    rasterizer.end_stroke()

    left, top, right, bottom = content_bounds(rasterizer.image)
    assert left < 30 and right > 170
    assert 40 < top <= bottom < 60
    cropped = rasterizer.extract_image()
    assert cropped.width() == 200
    assert 80 <= cropped.height() <= 100


def test_extend_without_begin_is_ignored(rasterizer):
    rasterizer.extend_stroke(50, 50)
    assert not rasterizer.has_content


def test_typed_signature_renders_content(rasterizer):
    assert rasterizer.render_typed("Jane Doe") is True
    assert rasterizer.has_content
    assert rasterizer.extract_png() is not None


def test_blank_typed_text_is_ignored(rasterizer):
    assert rasterizer.render_typed("   ") is False
    assert not rasterizer.has_content


def test_switching_mode_clears_surface(rasterizer):
    rasterizer.render_typed("Jane")
    rasterizer.switch_mode(MODE_DRAW)
    assert not rasterizer.has_content
    assert content_bounds(rasterizer.image) is None
    rasterizer.switch_mode(MODE_TYPE)
    assert rasterizer.mode == MODE_TYPE
    with pytest.raises(ValueError):
        rasterizer.switch_mode("stamp")


def test_typed_font_size_is_capped():
    assert typed_font_size(460, "Al") == 56
    assert typed_font_size(460, "A" * 20) == pytest.approx(46)


def test_underline_follows_arc_and_pressure():
    points = underline_points(center_x=100, center_y=50, text_width=60, font_size=20)

    start_x, end_x = 100 - 30 - 10, 100 + 30 + 20
    steps = math.floor((end_x - start_x) / 3)
    assert len(points) == steps + 1
    assert points[0][0] == pytest.approx(start_x)
    assert points[-1][0] == pytest.approx(end_x)

    base_y = 50 + 20 * 0.35
    assert points[0][1] == pytest.approx(base_y)
    assert points[0][2] == pytest.approx(0.4)
    # 終端ではペン先が持ち上がる
    assert points[-1][1] == pytest.approx(base_y + math.sin(12) * 0.8 - 0.15 * 30)
    assert max(p[2] for p in points) <= 1.2 + 1e-9
