"""
Font lookup for overlay text.

Tries an explicit font file, then well-known bold sans-serif fonts for each
platform, then Pillow's bundled scalable font.
"""

import logging
import os
from functools import lru_cache
from typing import Optional

from PIL import ImageFont

from frameflow.config.shell_config import TextConfig

logger = logging.getLogger(__name__)

# Distinct (path, size) pairs kept loaded
FONT_CACHE_SIZE = 32


def find_bold_font(preferred: Optional[str] = None) -> str:
    """Return the first existing font path, or "" when none is installed."""
    candidates = []
    if preferred:
        candidates.append(str(preferred))
    env_font = os.getenv("FRAMEFLOW_FONT")
    if env_font:
        candidates.append(env_font)
    candidates.extend(TextConfig.FONT_CANDIDATES)

    for path in candidates:
        if os.path.exists(path):
            return path
    return ""


@lru_cache(maxsize=FONT_CACHE_SIZE)
def _load_font(path: str, size: int) -> ImageFont.FreeTypeFont:
    if path:
        try:
            return ImageFont.truetype(path, size)
        except OSError as e:
            logger.warning(f"Could not load font {path}: {e}; using default font")
    return ImageFont.load_default(size)


def get_font(size: int, preferred: Optional[str] = None) -> ImageFont.FreeTypeFont:
    """Load a bold sans-serif font at ``size`` pixels (cached)."""
    return _load_font(find_bold_font(preferred), max(1, int(size)))
