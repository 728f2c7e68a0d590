"""
Tests for palette extraction and rendering.

Run with: pytest tests/test_image_tools.py -v
"""

import io

import pytest
from PIL import Image

from crevion.image_tools import (
    Swatch,
    brightness_level,
    extract_palette,
    palette_bar,
    render_palette_image,
    swatch_name,
)

PNG_SIGNATURE = b"\x89PNG\r\n\x1a\n"


def png_bytes(size=(64, 64), color=(255, 0, 0), split_color=None):
    img = Image.new("RGB", size, color)
    if split_color:
        # Right quarter in a second color
        img.paste(split_color, (size[0] * 3 // 4, 0, size[0], size[1]))
    buffer = io.BytesIO()
    img.save(buffer, format="PNG")
    return buffer.getvalue()


class TestExtractPalette:
    def test_solid_color(self):
        swatches = extract_palette(png_bytes(color=(255, 0, 0)))
        assert swatches[0].rgb == (255, 0, 0)
        assert swatches[0].hex == "#ff0000"
        assert swatches[0].percentage == 100

    def test_most_common_first(self):
        swatches = extract_palette(png_bytes(color=(0, 0, 255), split_color=(255, 255, 0)))
        assert swatches[0].rgb == (0, 0, 255)
        assert swatches[0].population > swatches[1].population
        assert sum(s.percentage for s in swatches) == 100

    def test_rgba_input(self):
        img = Image.new("RGBA", (10, 10), (0, 255, 0, 128))
        buffer = io.BytesIO()
        img.save(buffer, format="PNG")
        assert extract_palette(buffer.getvalue())

    def test_not_an_image(self):
        with pytest.raises(ValueError):
            extract_palette(b"definitely not an image")


class TestNaming:
    def test_swatch_names(self):
        assert "Vibrant" in swatch_name((255, 0, 0))
        assert "Muted" in swatch_name((128, 128, 128))
        assert "Dark" in swatch_name((20, 0, 0))
        assert "Light" in swatch_name((250, 250, 250))

    @pytest.mark.parametrize("brightness,label", [(255, "Very Bright"), (180, "Bright"), (120, "Medium"), (60, "Dark"), (0, "Very Dark")])
    def test_brightness_level(self, brightness, label):
        assert brightness_level(brightness).startswith(label)

    def test_palette_bar(self):
        assert palette_bar(50) == "█" * 10 + "░" * 10
        assert len(palette_bar(100)) == 20


class TestRender:
    def test_render_png(self):
        swatches = [
            Swatch((255, 0, 0), 10, 50, swatch_name((255, 0, 0))),
            Swatch((0, 0, 0), 10, 50, swatch_name((0, 0, 0))),
        ]
        data = render_palette_image(swatches)
        assert data.startswith(PNG_SIGNATURE)
        with Image.open(io.BytesIO(data)) as img:
            assert img.width == 800
