"""
Data Model

Templates, background and text settings, and stage 1 results. Field names
follow Python conventions; from_dict/to_dict use the camelCase keys of the
stored template library (frameImageSrc, borderRadius, xOffset, ...).
"""

import re
import secrets
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Dict, Optional

from frameflow.config.shell_config import ShellConfig


class BackgroundType(str, Enum):
    """How the area around a shelled image is filled"""

    TRANSPARENT = "transparent"
    BLUR = "blur"


@dataclass(frozen=True)
class TemplateConfig:
    """Screen region in the frame's unrotated pixel space.

    Attributes:
        x: Left edge of the screen region
        y: Top edge of the screen region
        width: Region width (> 0)
        height: Region height (> 0)
        border_radius: Corner radius (>= 0), clamped when drawn
    """
    x: float = 0
    y: float = 0
    width: float = 0
    height: float = 0
    border_radius: float = 0

    @property
    def is_degenerate(self) -> bool:
        return self.width <= 0 or self.height <= 0

    @property
    def is_portrait(self) -> bool:
        return self.height > self.width

    @classmethod
    def default_for(cls, frame_width: int, frame_height: int) -> "TemplateConfig":
        """Default region for new frame artwork: centred, 80% of the frame."""
        return cls(
            x=round(frame_width * 0.1),
            y=round(frame_height * 0.1),
            width=round(frame_width * 0.8),
            height=round(frame_height * 0.8),
            border_radius=round(min(frame_width, frame_height) * 0.05),
        )

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TemplateConfig":
        return cls(
            x=data.get("x", 0),
            y=data.get("y", 0),
            width=data.get("width", 0),
            height=data.get("height", 0),
            border_radius=data.get("borderRadius", 0),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "x": self.x,
            "y": self.y,
            "width": self.width,
            "height": self.height,
            "borderRadius": self.border_radius,
        }


@dataclass(frozen=True)
class Template:
    """A reusable device shell: frame artwork plus its screen region.

    ``rotation`` is a multiple of 90 degrees and is stored as edited, so it
    may exceed 360 or be negative; use ``effective_rotation`` for drawing.
    """
    id: str
    name: str
    frame_image_src: Any
    config: TemplateConfig
    original_width: int = 0
    original_height: int = 0
    rotation: int = 0

    @property
    def effective_rotation(self) -> int:
        return self.rotation % ShellConfig.FULL_TURN

    @property
    def is_horizontal(self) -> bool:
        return (self.effective_rotation // ShellConfig.ROTATION_STEP) % 2 != 0

    @property
    def slug(self) -> str:
        """Template name with whitespace runs replaced by underscores"""
        return re.sub(r"\s+", "_", self.name)

    def rotated(self) -> "Template":
        """Copy turned a further 90 degrees (rotation is not normalized)."""
        return replace(self, rotation=self.rotation + ShellConfig.ROTATION_STEP)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Template":
        return cls(
            id=str(data["id"]),
            name=data.get("name", ""),
            frame_image_src=data.get("frameImageSrc"),
            config=TemplateConfig.from_dict(data.get("config", {})),
            original_width=data.get("originalWidth", 0),
            original_height=data.get("originalHeight", 0),
            rotation=data.get("rotation") or 0,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "frameImageSrc": self.frame_image_src,
            "config": self.config.to_dict(),
            "originalWidth": self.original_width,
            "originalHeight": self.original_height,
            "rotation": self.rotation,
        }


@dataclass(frozen=True)
class BackgroundSettings:
    """Global background display settings.

    Attributes:
        type: Background mode, may be overridden per result
        blur: Gaussian blur radius in pixels
        scale: Extra zoom of the background, in percent
        x_offset: Horizontal shift as a percentage of the canvas width
        y_offset: Vertical shift as a percentage of the canvas height
        custom_src: Background image replacing the screenshot, if any
    """
    type: BackgroundType = BackgroundType.TRANSPARENT
    blur: float = 20
    scale: float = 100
    x_offset: float = 0
    y_offset: float = 0
    custom_src: Any = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "BackgroundSettings":
        return cls(
            type=BackgroundType(data.get("type", BackgroundType.TRANSPARENT.value)),
            blur=data.get("blur", 20),
            scale=data.get("scale", 100),
            x_offset=data.get("xOffset", 0),
            y_offset=data.get("yOffset", 0),
            custom_src=data.get("customSrc"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type.value,
            "blur": self.blur,
            "scale": self.scale,
            "xOffset": self.x_offset,
            "yOffset": self.y_offset,
            "customSrc": self.custom_src,
        }


@dataclass(frozen=True)
class TextSettings:
    """Overlay text. ``font_size``, ``x`` and ``y`` are percentages."""
    text: str = ""
    font_size: float = 10
    x: float = 50
    y: float = 90
    color: str = "#ffffff"
    is_vertical: bool = False

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TextSettings":
        return cls(
            text=data.get("text", ""),
            font_size=data.get("fontSize", 10),
            x=data.get("x", 50),
            y=data.get("y", 90),
            color=data.get("color", "#ffffff"),
            is_vertical=bool(data.get("isVertical", False)),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "text": self.text,
            "fontSize": self.font_size,
            "x": self.x,
            "y": self.y,
            "color": self.color,
            "isVertical": self.is_vertical,
        }


@dataclass(frozen=True)
class ShellResult:
    """Stage 1 output for one (screenshot, template) pair plus overlays."""
    base64: str
    text_config: Optional[TextSettings] = None
    bg_type: Optional[BackgroundType] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ShellResult":
        text = data.get("textConfig")
        bg_type = data.get("bgType")
        return cls(
            base64=data["base64"],
            text_config=TextSettings.from_dict(text) if text else None,
            bg_type=BackgroundType(bg_type) if bg_type else None,
        )

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"base64": self.base64}
        if self.text_config is not None:
            data["textConfig"] = self.text_config.to_dict()
        if self.bg_type is not None:
            data["bgType"] = self.bg_type.value
        return data


def new_item_id() -> str:
    return secrets.token_hex(5)[:9]


@dataclass(frozen=True)
class ScreenshotItem:
    """A screenshot waiting to be composited into the selected templates."""
    src: Any
    id: str = field(default_factory=new_item_id)
