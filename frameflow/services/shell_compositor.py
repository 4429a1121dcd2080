"""
Shell Compositor

Stage 1 of the pipeline: places a screenshot into a template's screen region
and draws the device frame on top, with the whole canvas turned to the
template's rotation.

Usage:
    from frameflow.services.shell_compositor import compose_shell

    shelled = compose_shell("screenshots/01_home.png", template)
    shelled.save("01_home_shell.png")
"""

import logging
import math
from typing import Any, Tuple

from PIL import Image

from frameflow.models import Template
from frameflow.services.canvas import Canvas
from frameflow.services.image_io import load_image

logger = logging.getLogger(__name__)


def shell_canvas_size(template: Template, frame_size: Tuple[int, int]) -> Tuple[int, int]:
    """
    Canvas size bounding the frame's rotated footprint.

    Args:
        template: Template whose rotation is used
        frame_size: (width, height) of the unrotated frame artwork

    Returns:
        (width, height), swapped for 90/270 degree rotations
    """
    frame_width, frame_height = frame_size
    if template.is_horizontal:
        return frame_height, frame_width
    return frame_width, frame_height


def needs_quarter_turn(template: Template, screen_size: Tuple[int, int]) -> bool:
    """True when the screenshot's orientation disagrees with the screen region's"""
    screen_width, screen_height = screen_size
    screen_is_portrait = screen_height > screen_width
    return template.config.is_portrait != screen_is_portrait


def compose_shell(screenshot: Any, template: Template) -> Image.Image:
    """
    Composite a screenshot into a device shell.

    Process:
    1. Decode screenshot and frame artwork
    2. Size the canvas to the rotated frame
    3. Rotate about the canvas centre into the frame's unrotated space
    4. Clip to the rounded screen region and draw the screenshot,
       turned 90 degrees when its orientation disagrees with the region
    5. Draw the frame on top

    Args:
        screenshot: Screenshot source (bytes, data URL, path or image)
        template: Device shell template

    Returns:
        RGBA image of the shelled screenshot

    Raises:
        DecodeError: If the screenshot or the frame cannot be decoded
    """
    frame = load_image(template.frame_image_src)
    screen = load_image(screenshot)

    frame_width, frame_height = frame.size
    canvas_width, canvas_height = shell_canvas_size(template, frame.size)
    config = template.config

    if config.is_degenerate:
        logger.warning(
            f"Template '{template.name}' has an empty screen region "
            f"({config.width}x{config.height}); only the frame will be drawn"
        )

    canvas = Canvas(canvas_width, canvas_height)
    with canvas.saved():
        canvas.translate(canvas_width / 2, canvas_height / 2)
        canvas.rotate(math.radians(template.effective_rotation))
        canvas.translate(-frame_width / 2, -frame_height / 2)

        with canvas.saved():
            canvas.clip_rounded_rect(config.x, config.y, config.width, config.height, config.border_radius)

            if needs_quarter_turn(template, screen.size):
                canvas.translate(config.x + config.width / 2, config.y + config.height / 2)
                canvas.rotate(math.pi / 2)
                canvas.draw_image(screen, -config.height / 2, -config.width / 2, config.height, config.width)
            else:
                canvas.draw_image(screen, config.x, config.y, config.width, config.height)

        canvas.draw_image(frame, 0, 0)

    logger.debug(
        f"Composed shell '{template.name}' {canvas_width}x{canvas_height} "
        f"(rotation {template.effective_rotation})"
    )
    return canvas.to_image()
