"""Pytest configuration and image builders for FrameFlow tests."""

import io

import numpy as np
import pytest
from PIL import Image

from frameflow.models import Template, TemplateConfig

FRAME_GREY = (60, 60, 60, 255)
RED = (255, 0, 0, 255)
BLUE = (0, 0, 255, 255)
GREEN = (0, 255, 0, 255)


def frame_image(width=100, height=200, hole=(10, 20, 80, 160)):
    """Opaque grey frame with a transparent screen hole (x, y, w, h)"""
    pixels = np.zeros((height, width, 4), dtype=np.uint8)
    pixels[:] = FRAME_GREY
    x, y, w, h = hole
    pixels[y:y + h, x:x + w] = 0
    return Image.fromarray(pixels)


def split_image(width, height, first=RED, second=BLUE, vertical=True):
    """Two-colour image: top/bottom halves when vertical, else left/right"""
    pixels = np.zeros((height, width, 4), dtype=np.uint8)
    if vertical:
        pixels[:height // 2] = first
        pixels[height // 2:] = second
    else:
        pixels[:, :width // 2] = first
        pixels[:, width // 2:] = second
    return Image.fromarray(pixels)


def solid_image(width, height, color):
    return Image.new("RGBA", (width, height), color)


def png_bytes(image):
    buffer = io.BytesIO()
    image.save(buffer, format="PNG")
    return buffer.getvalue()


def make_template(rotation=0, config=None, frame=None, template_id="t1", name="Pixel 8"):
    return Template(
        id=template_id,
        name=name,
        frame_image_src=frame if frame is not None else frame_image(),
        config=config or TemplateConfig(x=10, y=20, width=80, height=160, border_radius=0),
        original_width=100,
        original_height=200,
        rotation=rotation,
    )


def pixel(image, x, y):
    return tuple(int(v) for v in np.asarray(image)[y, x])


@pytest.fixture
def template():
    return make_template()


@pytest.fixture
def portrait_screenshot():
    return split_image(80, 160)


@pytest.fixture
def frame_file(tmp_path):
    path = tmp_path / "frame.png"
    frame_image().save(path)
    return path
