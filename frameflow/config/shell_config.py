"""
Compositing Configuration Constants

This module centralizes all magic numbers and configuration
constants used by the shell and final compositors.

Usage:
    from frameflow.config.shell_config import FinalConfig

    limit = FinalConfig.MAX_CANVAS_DIMENSION
"""


class ShellConfig:
    """Configuration constants for stage 1 (screenshot into device shell)"""

    # ==================================
    # ROTATION
    # ==================================

    # Template rotations are multiples of this step (degrees)
    ROTATION_STEP = 90

    # Full turn used to normalize stored rotations
    FULL_TURN = 360

    # ==================================
    # INTERPOLATION
    # ==================================

    # OpenCV interpolation method for drawing images through a transform
    INTERPOLATION_METHOD = 'LINEAR'

    # OpenCV interpolation method for shrinking images before the transform
    DOWNSCALE_METHOD = 'AREA'

    # ==================================
    # IMAGE QUALITY
    # ==================================

    # PNG compression level (0-9, lossless either way)
    PNG_COMPRESSION_LEVEL = 6


class FinalConfig:
    """Configuration constants for stage 2 (background, shell and text)"""

    # ==================================
    # CANVAS DIMENSIONS
    # ==================================

    # Extra margin (as a fraction of the shell size) revealing the background
    BLUR_PADDING_RATIO = 0.5

    # Largest canvas dimension a rasterizer is expected to handle
    MAX_CANVAS_DIMENSION = 8192

    # ==================================
    # BACKGROUND FILTER
    # ==================================

    # Brightness multiplier applied with the background blur
    BACKGROUND_BRIGHTNESS = 0.9


class TextConfig:
    """Configuration constants for overlay text"""

    # Font size percentages refer to the shell width, which is the padded
    # canvas width divided by (1 + BLUR_PADDING_RATIO) in blur mode
    BLUR_MODE_WIDTH_DIVISOR = 1 + FinalConfig.BLUR_PADDING_RATIO

    # Vertical text pitch as a multiple of the font size
    VERTICAL_PITCH = 1.1

    # ==================================
    # SHADOW SETTINGS
    # ==================================

    SHADOW_BLUR = 10
    SHADOW_OFFSET_X = 0
    SHADOW_OFFSET_Y = 4
    SHADOW_COLOR = 'rgba(0, 0, 0, 0.5)'

    # ==================================
    # FONT
    # ==================================

    # Bold sans-serif candidates, tried in order
    FONT_CANDIDATES = [
        "/usr/share/fonts/truetype/dejavu/DejaVuSans-Bold.ttf",
        "/usr/share/fonts/dejavu/DejaVuSans-Bold.ttf",
        "/usr/share/fonts/truetype/liberation/LiberationSans-Bold.ttf",
        "/usr/share/fonts/liberation/LiberationSans-Bold.ttf",
        "/Library/Fonts/Arial Bold.ttf",
        "/System/Library/Fonts/Supplemental/Arial Bold.ttf",
        "/System/Library/Fonts/Helvetica.ttc",
        "C:/Windows/Fonts/arialbd.ttf",
    ]


class ExportConfig:
    """Configuration for batch export"""

    # Brand prefix of exported file names
    BRAND = "HONOR-Shell"

    # <brand>_<template-name>_<screenshot-id>.png
    FILENAME_PATTERN = "{brand}_{template}_{item}.png"

    # Pause between deliveries (seconds) so a native bridge is not flooded
    PACING_DELAY_SECONDS = 0.4


class OptimizeConfig:
    """Input image optimization limits"""

    # Frame artwork and custom backgrounds (kept as PNG for transparency)
    FRAME_MAX_DIMENSION = 2000
    BACKGROUND_MAX_DIMENSION = 2000

    # Screenshots (re-encoded as JPEG)
    SCREENSHOT_MAX_DIMENSION = 1600
    JPEG_QUALITY = 85


# Convenience function for getting OpenCV interpolation constant
def get_interpolation_method(name: str = None):
    """Returns OpenCV interpolation method constant"""
    import cv2
    method_name = name or ShellConfig.INTERPOLATION_METHOD
    return getattr(cv2, f'INTER_{method_name}')
