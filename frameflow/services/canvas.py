"""
Raster Drawing Surface

An in-memory RGBA canvas with a scoped drawing state (affine transform,
clip mask, filter and drop shadow), used by both compositing stages.

Coordinates are continuous: pixel (i, j) covers [i, i+1) x [j, j+1).
Pixels are kept premultiplied in float32 so that source-over compositing,
blur and brightness are plain linear operations.

Usage:
    from frameflow.services.canvas import Canvas

    canvas = Canvas(400, 800)
    with canvas.saved():
        canvas.translate(200, 400)
        canvas.rotate(math.pi / 2)
        canvas.draw_image(image, -100, -50, 200, 100)
    result = canvas.to_image()
"""

import logging
import math
from contextlib import contextmanager
from dataclasses import dataclass, replace
from typing import Iterator, Optional, Tuple

import cv2
import numpy as np
from PIL import Image, ImageDraw, ImageFont

from frameflow.config.shell_config import ShellConfig, get_interpolation_method
from frameflow.services.color_utils import RGBA, parse_color

logger = logging.getLogger(__name__)


def _translation(tx: float, ty: float) -> np.ndarray:
    return np.array([[1.0, 0.0, tx], [0.0, 1.0, ty], [0.0, 0.0, 1.0]])


def _scaling(sx: float, sy: float) -> np.ndarray:
    return np.array([[sx, 0.0, 0.0], [0.0, sy, 0.0], [0.0, 0.0, 1.0]])


def _exact_cos_sin(radians: float) -> Tuple[float, float]:
    """cos/sin with exact values at quarter turns, so 90 degree steps stay pixel-exact"""
    quarters = radians / (math.pi / 2)
    nearest = round(quarters)
    if abs(quarters - nearest) < 1e-9:
        return [(1.0, 0.0), (0.0, 1.0), (-1.0, 0.0), (0.0, -1.0)][nearest % 4]
    return math.cos(radians), math.sin(radians)


def _blur_margin(sigma: float) -> int:
    return int(math.ceil(3 * sigma)) if sigma > 0 else 0


def _rect_coverage(matrix: np.ndarray, x: float, y: float, width: float, height: float,
                   radius: float, region: Tuple[int, int, int, int]) -> np.ndarray:
    """
    Anti-aliased coverage of a rounded rect over the pixels of ``region``.

    The rect is given in the space that ``matrix`` maps to the pixel grid.
    Coverage comes from the signed distance of each pixel centre, measured
    in pixels, so an edge on a pixel boundary is exact.
    """
    x0, y0, x1, y1 = region
    rows, cols = np.mgrid[y0:y1, x0:x1].astype(np.float64) + 0.5

    inverse = np.linalg.inv(matrix)
    ux = inverse[0, 0] * cols + inverse[0, 1] * rows + inverse[0, 2]
    uy = inverse[1, 0] * cols + inverse[1, 1] * rows + inverse[1, 2]

    scale_x = math.hypot(matrix[0, 0], matrix[1, 0])
    scale_y = math.hypot(matrix[0, 1], matrix[1, 1])
    qx = (np.abs(ux - (x + width / 2)) - (width / 2 - radius)) * scale_x
    qy = (np.abs(uy - (y + height / 2)) - (height / 2 - radius)) * scale_y

    outside = np.hypot(np.maximum(qx, 0), np.maximum(qy, 0))
    inside = np.minimum(np.maximum(qx, qy), 0)
    distance = outside + inside - radius * min(scale_x, scale_y)
    return np.clip(0.5 - distance, 0.0, 1.0).astype(np.float32)


def premultiply(image: Image.Image) -> np.ndarray:
    """RGBA image -> premultiplied float32 array in [0, 1]"""
    pixels = np.asarray(image.convert("RGBA"), dtype=np.float32) / 255.0
    pixels[..., :3] *= pixels[..., 3:4]
    return pixels


@dataclass(frozen=True)
class Shadow:
    """Drop shadow applied to subsequent draws (device-space offset)"""
    color: RGBA
    blur: float
    offset_x: float = 0
    offset_y: float = 0


@dataclass(frozen=True)
class _DrawState:
    transform: np.ndarray
    clip: Optional[np.ndarray] = None
    blur: float = 0
    brightness: float = 1.0
    shadow: Optional[Shadow] = None


class Canvas:
    """RGBA pixel canvas with a save/restore drawing state"""

    def __init__(self, width: int, height: int):
        """
        Create a fully transparent canvas.

        Args:
            width: Canvas width in pixels (>= 1)
            height: Canvas height in pixels (>= 1)
        """
        self.width = max(1, int(width))
        self.height = max(1, int(height))
        self.pixels = np.zeros((self.height, self.width, 4), dtype=np.float32)
        self._state = _DrawState(transform=np.identity(3))
        self._stack = []

    # ------------------------------------------------------------------
    # Drawing state
    # ------------------------------------------------------------------

    @contextmanager
    def saved(self) -> Iterator["Canvas"]:
        """Scope for state changes; the previous state is restored on every exit path."""
        self._stack.append(self._state)
        try:
            yield self
        finally:
            self._state = self._stack.pop()

    @property
    def transform(self) -> np.ndarray:
        return self._state.transform.copy()

    def _concat(self, matrix: np.ndarray) -> None:
        self._state = replace(self._state, transform=self._state.transform @ matrix)

    def translate(self, tx: float, ty: float) -> None:
        self._concat(_translation(tx, ty))

    def rotate(self, radians: float) -> None:
        c, s = _exact_cos_sin(radians)
        self._concat(np.array([[c, -s, 0.0], [s, c, 0.0], [0.0, 0.0, 1.0]]))

    def scale(self, sx: float, sy: Optional[float] = None) -> None:
        self._concat(_scaling(sx, sx if sy is None else sy))

    def set_filter(self, blur: float = 0, brightness: float = 1.0) -> None:
        """Gaussian blur (std dev in user units) and brightness for later draws"""
        self._state = replace(self._state, blur=max(0.0, float(blur)), brightness=float(brightness))

    def set_shadow(self, color: str, blur: float, offset_x: float = 0, offset_y: float = 0) -> None:
        shadow = Shadow(parse_color(color), max(0.0, float(blur)), offset_x, offset_y)
        self._state = replace(self._state, shadow=shadow)

    def _device_scale(self) -> float:
        return math.sqrt(abs(np.linalg.det(self._state.transform[:2, :2])))

    # ------------------------------------------------------------------
    # Clipping
    # ------------------------------------------------------------------

    def clip_rect(self, x: float, y: float, width: float, height: float) -> None:
        self.clip_rounded_rect(x, y, width, height, 0)

    def clip_rounded_rect(self, x: float, y: float, width: float, height: float,
                          radius: float = 0) -> None:
        """
        Intersect the clip with a rounded rectangle in user space.

        The radius is clamped to half the shorter side. A rectangle with no
        area leaves an empty clip, so nothing drawn afterwards is visible.
        """
        mask = np.zeros((self.height, self.width), dtype=np.float32)

        if width > 0 and height > 0:
            radius = max(0.0, min(float(radius), width / 2, height / 2))
            region = self._device_bounds(
                np.array([[x, y], [x + width, y], [x + width, y + height], [x, y + height]]),
                margin=1
            )
            if region is not None:
                x0, y0, x1, y1 = region
                mask[y0:y1, x0:x1] = _rect_coverage(
                    self._state.transform, x, y, width, height, radius, region
                )

        clip = self._state.clip
        self._state = replace(self._state, clip=mask if clip is None else clip * mask)

    # ------------------------------------------------------------------
    # Drawing
    # ------------------------------------------------------------------

    def draw_image(self, image: Image.Image, x: float = 0, y: float = 0,
                   width: Optional[float] = None, height: Optional[float] = None) -> None:
        """
        Draw an image into the rect (x, y, width, height) of user space.

        Width and height default to the image's own size. The current
        transform, filter, shadow and clip all apply.
        """
        self._draw_premultiplied(premultiply(image), x, y, width, height)

    def fill_text(self, text: str, x: float, y: float,
                  font: ImageFont.FreeTypeFont, color: str) -> None:
        """Fill text centred horizontally and vertically on (x, y)"""
        if not text:
            return

        left, top, right, bottom = font.getbbox(text, anchor="mm")
        left, top = math.floor(left), math.floor(top)
        right, bottom = math.ceil(right), math.ceil(bottom)
        # Nothing to draw (whitespace)
        if right <= left or bottom <= top:
            return

        mask = Image.new("L", (right - left, bottom - top), 0)
        ImageDraw.Draw(mask).text((-left, -top), text, font=font, fill=255, anchor="mm")

        r, g, b, a = parse_color(color)
        coverage = np.asarray(mask, dtype=np.float32) / 255.0 * (a / 255.0)
        layer = np.empty(coverage.shape + (4,), dtype=np.float32)
        layer[..., 0] = coverage * (r / 255.0)
        layer[..., 1] = coverage * (g / 255.0)
        layer[..., 2] = coverage * (b / 255.0)
        layer[..., 3] = coverage

        self._draw_premultiplied(layer, x + left, y + top)

    def _draw_premultiplied(self, source: np.ndarray, x: float, y: float,
                            width: Optional[float] = None,
                            height: Optional[float] = None) -> None:
        src_h, src_w = source.shape[:2]
        width = src_w if width is None else width
        height = src_h if height is None else height

        # Guard clause: Nothing to draw
        if src_w == 0 or src_h == 0 or width == 0 or height == 0:
            return

        # Source pixel space -> device space
        matrix = (
            self._state.transform
            @ _translation(x, y)
            @ _scaling(width / src_w, height / src_h)
        )

        device_scale = self._device_scale()
        filter_sigma = self._state.blur * device_scale
        shadow = self._state.shadow
        shadow_visible = shadow is not None and shadow.color[3] > 0
        spread = _blur_margin(filter_sigma)
        if shadow_visible:
            spread += _blur_margin(shadow.blur / 2) + int(math.ceil(max(abs(shadow.offset_x), abs(shadow.offset_y))))

        corners = np.array([[0, 0], [src_w, 0], [src_w, src_h], [0, src_h]], dtype=np.float64)
        region = self._device_bounds(corners, margin=1, spread=spread, matrix=matrix)
        # Entirely off canvas
        if region is None:
            return

        x0, y0, x1, y1 = region
        out_w, out_h = x1 - x0, y1 - y0
        layer_matrix = _translation(-x0, -y0) @ matrix

        # Sample with the image edges extended, then cut back to the exact
        # footprint of the destination rect, so edges stay opaque when
        # scaled or blurred
        layer = self._warp(source, layer_matrix, out_w, out_h, cv2.BORDER_REPLICATE)
        if filter_sigma > 0:
            layer = cv2.GaussianBlur(layer, (0, 0), sigmaX=filter_sigma, borderType=cv2.BORDER_REPLICATE)
        footprint = _rect_coverage(layer_matrix, 0, 0, src_w, src_h, 0, (0, 0, out_w, out_h))
        layer *= footprint[..., None]

        if self._state.brightness != 1.0:
            layer[..., :3] *= self._state.brightness
            np.minimum(layer[..., :3], layer[..., 3:4], out=layer[..., :3])

        if shadow_visible:
            self._composite(
                self._shadow_layer(layer, shadow),
                x0 + int(round(shadow.offset_x)),
                y0 + int(round(shadow.offset_y))
            )
        self._composite(layer, x0, y0)

    def _device_bounds(self, points: np.ndarray, margin: int = 0, spread: int = 0,
                       matrix: Optional[np.ndarray] = None) -> Optional[Tuple[int, int, int, int]]:
        """Integer device bbox of user-space points, limited to the canvas grown by ``spread``"""
        matrix = self._state.transform if matrix is None else matrix
        device = points @ matrix[:2, :2].T + matrix[:2, 2]

        x0 = max(math.floor(device[:, 0].min()) - margin - spread, -spread)
        y0 = max(math.floor(device[:, 1].min()) - margin - spread, -spread)
        x1 = min(math.ceil(device[:, 0].max()) + margin + spread, self.width + spread)
        y1 = min(math.ceil(device[:, 1].max()) + margin + spread, self.height + spread)

        if x1 <= x0 or y1 <= y0:
            return None
        if spread == 0:
            x0, y0 = max(x0, 0), max(y0, 0)
            x1, y1 = min(x1, self.width), min(y1, self.height)
            if x1 <= x0 or y1 <= y0:
                return None
        return x0, y0, x1, y1

    def _warp(self, source: np.ndarray, matrix: np.ndarray, out_w: int, out_h: int,
              border_mode: int = cv2.BORDER_CONSTANT) -> np.ndarray:
        """Resample ``source`` through ``matrix`` into an out_w x out_h layer"""
        src_h, src_w = source.shape[:2]

        # Shrink first so large downscales average instead of skipping pixels
        scale_x = math.hypot(matrix[0, 0], matrix[1, 0])
        scale_y = math.hypot(matrix[0, 1], matrix[1, 1])
        if scale_x < 1 or scale_y < 1:
            new_w = max(1, int(round(src_w * min(scale_x, 1.0))))
            new_h = max(1, int(round(src_h * min(scale_y, 1.0))))
            if (new_w, new_h) != (src_w, src_h):
                source = cv2.resize(
                    source, (new_w, new_h),
                    interpolation=get_interpolation_method(ShellConfig.DOWNSCALE_METHOD)
                )
                matrix = matrix @ _scaling(src_w / new_w, src_h / new_h)

        # OpenCV samples at integer pixel centres
        cv_matrix = _translation(-0.5, -0.5) @ matrix @ _translation(0.5, 0.5)

        layer = cv2.warpAffine(
            source,
            cv_matrix[:2],
            (out_w, out_h),
            flags=get_interpolation_method(),
            borderMode=border_mode,
            borderValue=(0, 0, 0, 0)
        )
        return np.clip(layer, 0.0, 1.0)

    def _shadow_layer(self, layer: np.ndarray, shadow: Shadow) -> np.ndarray:
        r, g, b, a = (channel / 255.0 for channel in shadow.color)
        alpha = layer[..., 3] * a
        shadow_layer = np.empty_like(layer)
        shadow_layer[..., 0] = alpha * r
        shadow_layer[..., 1] = alpha * g
        shadow_layer[..., 2] = alpha * b
        shadow_layer[..., 3] = alpha
        if shadow.blur > 0:
            shadow_layer = cv2.GaussianBlur(
                shadow_layer, (0, 0), sigmaX=shadow.blur / 2, borderType=cv2.BORDER_REPLICATE
            )
        return shadow_layer

    def _composite(self, layer: np.ndarray, x: int, y: int) -> None:
        """Source-over composite of a premultiplied layer placed at (x, y)"""
        layer_h, layer_w = layer.shape[:2]
        cx0, cy0 = max(x, 0), max(y, 0)
        cx1, cy1 = min(x + layer_w, self.width), min(y + layer_h, self.height)
        if cx1 <= cx0 or cy1 <= cy0:
            return

        source = layer[cy0 - y:cy1 - y, cx0 - x:cx1 - x]
        if self._state.clip is not None:
            source = source * self._state.clip[cy0:cy1, cx0:cx1, None]

        target = self.pixels[cy0:cy1, cx0:cx1]
        target *= 1.0 - source[..., 3:4]
        target += source

    # ------------------------------------------------------------------
    # Output
    # ------------------------------------------------------------------

    def to_image(self) -> Image.Image:
        """Un-premultiplied 8-bit RGBA copy of the canvas"""
        alpha = self.pixels[..., 3:4]
        color = np.divide(
            self.pixels[..., :3], alpha,
            out=np.zeros_like(self.pixels[..., :3]),
            where=alpha > 0
        )
        straight = np.concatenate([np.clip(color, 0.0, 1.0), np.clip(alpha, 0.0, 1.0)], axis=-1)
        return Image.fromarray(np.round(straight * 255.0).astype(np.uint8))
