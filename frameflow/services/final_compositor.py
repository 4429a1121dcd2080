"""
Final Compositor

Stage 2 of the pipeline: surrounds a shelled image with an optional blurred
background, centres it, and draws overlay text.

Layers, bottom to top:
    1. Background (blur mode only): cover-fit, blurred and darkened
    2. Shelled image, centred at native resolution
    3. Text with drop shadow

Usage:
    from frameflow.services.final_compositor import compose_final

    final = compose_final(shell_result, screenshot_src, bg_settings)
"""

import logging
from typing import Any, List, Optional, Tuple

from PIL import Image

from frameflow.config.shell_config import FinalConfig, TextConfig
from frameflow.errors import DecodeError
from frameflow.models import BackgroundSettings, BackgroundType, ShellResult, TextSettings
from frameflow.services.canvas import Canvas
from frameflow.services.fonts import get_font
from frameflow.services.image_io import load_image

logger = logging.getLogger(__name__)


def resolve_bg_type(settings: BackgroundSettings,
                    override: Optional[BackgroundType] = None) -> BackgroundType:
    return BackgroundType(override) if override else settings.type


def background_source_for(settings: BackgroundSettings, screenshot_src: Any) -> Any:
    """The custom background when one is set, otherwise the screenshot itself"""
    return settings.custom_src or screenshot_src


def bound_scale(width: float, height: float,
                limit: int = FinalConfig.MAX_CANVAS_DIMENSION) -> float:
    """Uniform downscale keeping both dimensions within ``limit`` (1.0 when they fit)"""
    largest = max(width, height)
    if largest > limit:
        return limit / largest
    return 1.0


def final_canvas_size(shell_size: Tuple[int, int], is_blur: bool) -> Tuple[int, int, float]:
    """
    Logical canvas size and the bounding scale.

    Args:
        shell_size: (width, height) of the shelled image
        is_blur: Whether a background margin is added

    Returns:
        (logical_width, logical_height, scale); the output image is the
        logical size multiplied by scale
    """
    padding = FinalConfig.BLUR_PADDING_RATIO if is_blur else 0
    shell_width, shell_height = shell_size
    width = round(shell_width * (1 + padding))
    height = round(shell_height * (1 + padding))
    return width, height, bound_scale(width, height)


def cover_rect(image_size: Tuple[int, int], canvas_size: Tuple[float, float],
               settings: BackgroundSettings) -> Tuple[float, float, float, float]:
    """
    Where the background is drawn: cover-fit, then user scale and offsets.

    The image is matched to the canvas height when it is wider than the
    canvas, otherwise to the canvas width, so it always overflows rather
    than leaving gaps. Offsets are percentages of the canvas size applied
    after centring.

    Returns:
        (x, y, width, height) in canvas units
    """
    image_width, image_height = image_size
    canvas_width, canvas_height = canvas_size

    image_aspect = image_width / image_height
    canvas_aspect = canvas_width / canvas_height
    if image_aspect > canvas_aspect:
        draw_height = canvas_height
        draw_width = draw_height * image_aspect
    else:
        draw_width = canvas_width
        draw_height = draw_width / image_aspect

    scale_factor = settings.scale / 100
    draw_width *= scale_factor
    draw_height *= scale_factor

    draw_x = (canvas_width - draw_width) / 2 + (settings.x_offset / 100) * canvas_width
    draw_y = (canvas_height - draw_height) / 2 + (settings.y_offset / 100) * canvas_height
    return draw_x, draw_y, draw_width, draw_height


def text_font_px(text_config: TextSettings, canvas_width: float, is_blur: bool) -> int:
    """Font size in pixels; in blur mode it refers to the unpadded shell width"""
    reference = canvas_width / TextConfig.BLUR_MODE_WIDTH_DIVISOR if is_blur else canvas_width
    return round((text_config.font_size / 100) * reference)


def vertical_text_positions(count: int, font_px: float, anchor_y: float) -> List[float]:
    """
    Centre y of each character of vertical text.

    Characters sit in slots of ``font_px * 1.1``; the block of ``count`` slots
    is centred on ``anchor_y``.
    """
    pitch = font_px * TextConfig.VERTICAL_PITCH
    top = anchor_y - count * pitch / 2
    return [top + (index + 0.5) * pitch for index in range(count)]


def draw_text(canvas: Canvas, text_config: TextSettings, canvas_size: Tuple[float, float],
              is_blur: bool, font_path: Optional[str] = None) -> None:
    """Draw overlay text with its drop shadow onto the canvas"""
    canvas_width, canvas_height = canvas_size
    font_px = text_font_px(text_config, canvas_width, is_blur)

    # Guard clause: Nothing visible
    if font_px <= 0 or not text_config.text:
        return

    font = get_font(font_px, font_path)
    anchor_x = (text_config.x / 100) * canvas_width
    anchor_y = (text_config.y / 100) * canvas_height

    with canvas.saved():
        canvas.set_shadow(
            TextConfig.SHADOW_COLOR,
            TextConfig.SHADOW_BLUR,
            TextConfig.SHADOW_OFFSET_X,
            TextConfig.SHADOW_OFFSET_Y
        )
        if text_config.is_vertical:
            characters = list(text_config.text)
            positions = vertical_text_positions(len(characters), font_px, anchor_y)
            for character, center_y in zip(characters, positions):
                canvas.fill_text(character, anchor_x, center_y, font, text_config.color)
        else:
            canvas.fill_text(text_config.text, anchor_x, anchor_y, font, text_config.color)


def compose_final(
    shell_image: Any,
    background_src: Any,
    settings: BackgroundSettings,
    text_config: Optional[TextSettings] = None,
    bg_type_override: Optional[BackgroundType] = None,
    font_path: Optional[str] = None
) -> Image.Image:
    """
    Produce the exportable image for a shelled screenshot.

    Args:
        shell_image: Shelled image source, or a ShellResult whose text and
            background overrides are used when not passed explicitly
        background_src: Background source (only decoded in blur mode)
        settings: Global background settings
        text_config: Overlay text, if any
        bg_type_override: Per-result background mode
        font_path: Font file for the overlay text

    Returns:
        RGBA image, at most FinalConfig.MAX_CANVAS_DIMENSION on each side

    Raises:
        DecodeError: If the shell, or the background in blur mode, cannot be decoded
    """
    if isinstance(shell_image, ShellResult):
        text_config = text_config or shell_image.text_config
        bg_type_override = bg_type_override or shell_image.bg_type
        shell_image = shell_image.base64

    shell = load_image(shell_image)
    is_blur = resolve_bg_type(settings, bg_type_override) == BackgroundType.BLUR

    width, height, scale = final_canvas_size(shell.size, is_blur)
    if scale != 1.0:
        logger.info(
            f"Canvas {width}x{height} exceeds {FinalConfig.MAX_CANVAS_DIMENSION}px, "
            f"scaling by {scale:.4f}"
        )

    canvas = Canvas(max(1, round(width * scale)), max(1, round(height * scale)))
    canvas.scale(scale)

    if is_blur:
        # Guard clause: Blur mode needs something to blur
        if background_src is None:
            raise DecodeError("Blur background requested but no background source given")
        background = load_image(background_src)
        with canvas.saved():
            canvas.set_filter(blur=settings.blur, brightness=FinalConfig.BACKGROUND_BRIGHTNESS)
            canvas.draw_image(background, *cover_rect(background.size, (width, height), settings))

    canvas.draw_image(shell, (width - shell.width) / 2, (height - shell.height) / 2)

    if text_config is not None:
        draw_text(canvas, text_config, (width, height), is_blur, font_path)

    return canvas.to_image()
