"""
Image Loading Helpers

Decodes every kind of image source the pipeline accepts (encoded bytes,
base64 data URLs, file paths, in-memory Pillow images) into RGBA, and
encodes results losslessly.

Usage:
    from frameflow.services.image_io import load_image, encode_png

    image = load_image("screenshots/01_home.png")
    png_bytes = encode_png(image)
"""

import base64
import binascii
import io
import logging
from pathlib import Path
from typing import Any, Tuple

from PIL import Image, UnidentifiedImageError

from frameflow.config.shell_config import OptimizeConfig, ShellConfig
from frameflow.errors import DecodeError

logger = logging.getLogger(__name__)

DATA_URL_PREFIX = "data:"


def _describe(source: Any) -> str:
    if isinstance(source, (bytes, bytearray)):
        return f"<{len(source)} bytes>"
    if isinstance(source, str) and source.startswith(DATA_URL_PREFIX):
        return f"<data URL, {len(source)} chars>"
    return str(source)


def _decode_data_url(data_url: str) -> bytes:
    header, _, payload = data_url.partition(",")
    if not payload:
        raise DecodeError(f"Malformed data URL: {_describe(data_url)}")
    if ";base64" not in header:
        raise DecodeError("Only base64 data URLs are supported")
    try:
        return base64.b64decode(payload, validate=False)
    except (binascii.Error, ValueError) as e:
        raise DecodeError(f"Invalid base64 payload: {e}") from e


def _read_source(source: Any) -> bytes:
    """Return the encoded bytes behind a source"""
    if isinstance(source, (bytes, bytearray, memoryview)):
        return bytes(source)

    if isinstance(source, str) and source.startswith(DATA_URL_PREFIX):
        return _decode_data_url(source)

    if isinstance(source, (str, Path)):
        path = Path(source)
        # Guard clause: Missing file
        if not path.is_file():
            raise DecodeError(f"Image file not found: {path}")
        try:
            return path.read_bytes()
        except OSError as e:
            raise DecodeError(f"Could not read {path}: {e}") from e

    raise DecodeError(f"Unsupported image source type: {type(source).__name__}")


def load_image(source: Any) -> Image.Image:
    """
    Decode an image source to an RGBA Pillow image.

    Args:
        source: Encoded bytes, a base64 data URL, a file path or a Pillow image

    Returns:
        Fully loaded RGBA image (independent of the source)

    Raises:
        DecodeError: If the source is missing, unreadable or not an image
    """
    if source is None:
        raise DecodeError("No image source given")

    if isinstance(source, Image.Image):
        return source.convert("RGBA") if source.mode != "RGBA" else source.copy()

    data = _read_source(source)
    try:
        with Image.open(io.BytesIO(data)) as img:
            img.load()
            return img.convert("RGBA")
    except (UnidentifiedImageError, OSError, ValueError, Image.DecompressionBombError) as e:
        raise DecodeError(f"Could not decode image {_describe(source)}: {e}") from e


def image_size(source: Any) -> Tuple[int, int]:
    """Return (width, height) of an image source"""
    return load_image(source).size


def encode_png(image: Image.Image, compress_level: int = None) -> bytes:
    """
    Encode an image as PNG, keeping the alpha channel.

    Args:
        image: Image to encode
        compress_level: zlib level 0-9 (default from ShellConfig)

    Returns:
        PNG bytes
    """
    level = ShellConfig.PNG_COMPRESSION_LEVEL if compress_level is None else compress_level
    buffer = io.BytesIO()
    image.save(buffer, format="PNG", compress_level=level)
    return buffer.getvalue()


def to_data_url(image: Image.Image) -> str:
    """Encode an image as a base64 PNG data URL"""
    payload = base64.b64encode(encode_png(image)).decode("ascii")
    return f"data:image/png;base64,{payload}"


def data_url_to_bytes(data_url: str) -> bytes:
    """Return the encoded bytes of a base64 data URL"""
    return _decode_data_url(data_url)


def optimize_image(source: Any, max_dim: int, fmt: str = "PNG") -> Any:
    """
    Downscale an input so its longest side is at most max_dim.

    Sources already within bounds are returned unchanged. Larger ones are
    resized preserving the aspect ratio and re-encoded: PNG keeps frame
    transparency, JPEG keeps screenshots small.

    Args:
        source: Any source accepted by load_image
        max_dim: Longest allowed side in pixels
        fmt: "PNG" or "JPEG"

    Returns:
        The original source, or a data URL of the optimized image

    Raises:
        DecodeError: If the source cannot be decoded
    """
    image = load_image(source)
    width, height = image.size

    # Guard clause: Already small enough
    if width <= max_dim and height <= max_dim:
        return source

    if width > height:
        new_width, new_height = max_dim, max(1, round(height / width * max_dim))
    else:
        new_width, new_height = max(1, round(width / height * max_dim)), max_dim

    resized = image.resize((new_width, new_height), Image.LANCZOS)
    logger.debug(f"Optimized image {width}x{height} -> {new_width}x{new_height}")

    if fmt.upper() == "JPEG":
        buffer = io.BytesIO()
        resized.convert("RGB").save(buffer, format="JPEG", quality=OptimizeConfig.JPEG_QUALITY)
        payload = base64.b64encode(buffer.getvalue()).decode("ascii")
        return f"data:image/jpeg;base64,{payload}"

    return to_data_url(resized)
