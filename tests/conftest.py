"""Gemensamma fixtures: Pillow-genererade bilder och råa Figma-noder."""

from io import BytesIO

import pytest
from PIL import Image


def make_image(size, color=(0, 0, 255, 255), fmt="PNG", mode="RGBA") -> bytes:
    im = Image.new(mode, size, color if mode == "RGBA" else color[:3])
    buf = BytesIO()
    im.save(buf, format=fmt)
    return buf.getvalue()


def open_image(data: bytes) -> Image.Image:
    im = Image.open(BytesIO(data))
    im.load()
    return im


@pytest.fixture
def png_bytes() -> bytes:
    return make_image((100, 50))


@pytest.fixture
def card_frame() -> dict:
    """Ram med text, dolt subträd och en vektor."""
    return {
        "id": "1:1",
        "name": "Card",
        "type": "FRAME",
        "fills": [{"type": "SOLID", "color": {"r": 1, "g": 1, "b": 1, "a": 1}}],
        "cornerRadius": 8,
        "children": [
            {
                "id": "1:2",
                "name": "Title",
                "type": "TEXT",
                "characters": "Hello",
                "style": {
                    "fontFamily": "Inter",
                    "fontWeight": 600,
                    "fontSize": 16,
                    "lineHeightPx": 24,
                    "letterSpacing": 0,
                },
            },
            {
                "id": "1:3",
                "name": "Hidden",
                "type": "RECTANGLE",
                "visible": False,
                "children": [{"id": "1:4", "name": "Inner", "type": "RECTANGLE"}],
            },
            {"id": "1:5", "name": "Icon", "type": "VECTOR"},
        ],
    }
