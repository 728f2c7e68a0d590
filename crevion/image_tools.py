"""Image Tools - Color palette extraction & background removal

Palette extraction runs locally with Pillow + numpy. Background removal
is delegated to the remove.bg API.
"""
import colorsys
import io
from dataclasses import dataclass
from typing import List, Tuple

import aiohttp
import numpy as np
from PIL import Image, ImageDraw, ImageFont

from .config import logger
from .errors import RemoveBgError

REMOVE_BG_API = "https://api.remove.bg/v1.0/removebg"
REMOVE_BG_TIMEOUT = 60

PALETTE_SIZE = 6
ANALYSIS_SIZE = (200, 200)
PALETTE_IMAGE_SIZE = (800, 600)

# ============================================================================
# PALETTE EXTRACTION
# ============================================================================

@dataclass
class Swatch:
    rgb: Tuple[int, int, int]
    population: int
    percentage: int
    name: str

    @property
    def hex(self) -> str:
        return "#{:02x}{:02x}{:02x}".format(*self.rgb)

    @property
    def brightness(self) -> float:
        r, g, b = self.rgb
        return (r * 299 + g * 587 + b * 114) / 1000


def swatch_name(rgb: Tuple[int, int, int]) -> str:
    """Vibrant/Muted style label from lightness and saturation."""
    _, lightness, saturation = colorsys.rgb_to_hls(*(c / 255 for c in rgb))
    tone = "Vibrant" if saturation >= 0.45 else "Muted"
    if lightness < 0.3:
        return f"🌑 Dark {tone}" if tone == "Vibrant" else f"🌙 Dark {tone}"
    if lightness > 0.7:
        return f"☀️ Light {tone}" if tone == "Vibrant" else f"💫 Light {tone}"
    return f"⭐ {tone}" if tone == "Vibrant" else f"🎨 {tone}"


def brightness_level(brightness: float) -> str:
    if brightness > 200:
        return "Very Bright ☀️"
    if brightness > 150:
        return "Bright 💡"
    if brightness > 100:
        return "Medium 🌤️"
    if brightness > 50:
        return "Dark 🌙"
    return "Very Dark 🌑"


def extract_palette(image_data: bytes, count: int = PALETTE_SIZE) -> List[Swatch]:
    """Dominant colors of an image, most common first.

    Raises:
        ValueError: if the bytes are not a readable image

    """
    try:
        img = Image.open(io.BytesIO(image_data))
        img = img.convert("RGB")
    except Exception as e:
        raise ValueError(f"Could not read image: {e}") from e

    img.thumbnail(ANALYSIS_SIZE)
    quantized = img.quantize(colors=count)
    palette = quantized.getpalette()

    indices = np.asarray(quantized).ravel()
    populations = np.bincount(indices, minlength=count)
    total = int(populations.sum())

    swatches = []
    for index in np.argsort(populations)[::-1]:
        population = int(populations[index])
        if population == 0 or len(swatches) >= count:
            continue
        rgb = tuple(palette[index * 3:index * 3 + 3])
        swatches.append(Swatch(
            rgb=rgb,
            population=population,
            percentage=round(population * 100 / total),
            name=swatch_name(rgb),
        ))

    if not swatches:
        raise ValueError("No colors found in image")
    return swatches


def render_palette_image(swatches: List[Swatch]) -> bytes:
    """Horizontal color bars with name, HEX, RGB and share, as PNG bytes."""
    width, height = PALETTE_IMAGE_SIZE
    bar_height = height // len(swatches)

    img = Image.new("RGB", (width, bar_height * len(swatches)), "white")
    draw = ImageDraw.Draw(img)
    font = ImageFont.load_default()

    for i, swatch in enumerate(swatches):
        top = i * bar_height
        draw.rectangle([0, top, width, top + bar_height], fill=swatch.rgb)

        text_color = (0, 0, 0) if swatch.brightness > 128 else (255, 255, 255)
        text_y = top + bar_height // 2 - 6
        # Emoji are not in the default bitmap font
        label = swatch.name.split(" ", 1)[-1]
        draw.text((30, text_y), label, fill=text_color, font=font)
        draw.text((280, text_y), swatch.hex.upper(), fill=text_color, font=font)
        draw.text((480, text_y), "RGB({}, {}, {})".format(*swatch.rgb), fill=text_color, font=font)
        draw.text((width - 80, text_y), f"{swatch.percentage}%", fill=text_color, font=font)

    buffer = io.BytesIO()
    img.save(buffer, format="PNG")
    return buffer.getvalue()


def palette_bar(percentage: int) -> str:
    filled = min(percentage // 5, 20)
    return "█" * filled + "░" * (20 - filled)

# ============================================================================
# BACKGROUND REMOVAL
# ============================================================================

async def remove_background(image_url: str, api_key: str) -> bytes:
    """Send an image URL to remove.bg and return the PNG it produces.

    Raises:
        RemoveBgError: the API answered with a non-200 status

    """
    form = aiohttp.FormData()
    form.add_field("image_url", image_url)
    form.add_field("size", "auto")

    timeout = aiohttp.ClientTimeout(total=REMOVE_BG_TIMEOUT)
    async with aiohttp.ClientSession(timeout=timeout) as session:
        async with session.post(REMOVE_BG_API, data=form, headers={"X-Api-Key": api_key}) as response:
            if response.status != 200:
                body = await response.text()
                logger.error(f"remove.bg error {response.status}: {body[:200]}")
                raise RemoveBgError(response.status)
            return await response.read()
