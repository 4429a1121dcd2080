"""
Workspace Configuration Module

Knows where templates, screenshots and exports live for a run, and which
brand and pacing the export uses. Values come from explicit arguments first,
then environment variables, then the defaults in shell_config.

Usage:
    from frameflow.config.project_config import WorkspaceConfig

    config = WorkspaceConfig(root=Path("."))
    print(config.templates_dir)
"""

import logging
import os
from pathlib import Path
from typing import Optional

from frameflow.config.shell_config import ExportConfig

logger = logging.getLogger(__name__)


class WorkspaceConfig:
    """Directory layout and export options for a FrameFlow workspace"""

    TEMPLATES_DIR_ENV = "FRAMEFLOW_TEMPLATES_DIR"
    BRAND_ENV = "FRAMEFLOW_BRAND"
    EXPORT_DELAY_ENV = "FRAMEFLOW_EXPORT_DELAY"
    FONT_ENV = "FRAMEFLOW_FONT"

    def __init__(
        self,
        root: Optional[Path] = None,
        templates_dir: Optional[Path] = None,
        screenshots_dir: Optional[Path] = None,
        output_dir: Optional[Path] = None,
        brand: Optional[str] = None,
        export_delay: Optional[float] = None,
        font_path: Optional[Path] = None
    ):
        """
        Initialize workspace configuration.

        Args:
            root: Workspace root (default: current directory)
            templates_dir: Directory holding index.json and frame images
            screenshots_dir: Directory holding screenshots to composite
            output_dir: Directory receiving exported images
            brand: File name prefix for exports
            export_delay: Pause between deliveries, in seconds
            font_path: Font file for overlay text
        """
        self._root = Path(root) if root is not None else Path.cwd()
        self._templates_dir = templates_dir
        self._screenshots_dir = screenshots_dir
        self._output_dir = output_dir
        self._brand = brand
        self._export_delay = export_delay
        self._font_path = font_path

    @property
    def root(self) -> Path:
        """Workspace root path"""
        return self._root

    @property
    def templates_dir(self) -> Path:
        """Directory with the template index and frame artwork"""
        if self._templates_dir is not None:
            return Path(self._templates_dir)
        env_dir = os.getenv(self.TEMPLATES_DIR_ENV)
        if env_dir:
            return Path(env_dir)
        return self._root / "templates"

    @property
    def screenshots_dir(self) -> Path:
        """Directory where raw screenshots are stored"""
        if self._screenshots_dir is not None:
            return Path(self._screenshots_dir)
        return self._root / "screenshots"

    @property
    def output_dir(self) -> Path:
        """Directory where final images are exported"""
        if self._output_dir is not None:
            return Path(self._output_dir)
        return self._root / "exports"

    @property
    def brand(self) -> str:
        """Brand prefix used in exported file names"""
        return self._brand or os.getenv(self.BRAND_ENV) or ExportConfig.BRAND

    @property
    def configured_export_delay(self) -> Optional[float]:
        """Pause set by argument or environment, None when left to the sink"""
        if self._export_delay is not None:
            return max(0.0, float(self._export_delay))
        env_value = os.getenv(self.EXPORT_DELAY_ENV)
        if env_value:
            try:
                return max(0.0, float(env_value))
            except ValueError:
                logger.warning(f"Ignoring invalid {self.EXPORT_DELAY_ENV}={env_value!r}")
        return None

    @property
    def export_delay(self) -> float:
        """Pause between successive deliveries"""
        delay = self.configured_export_delay
        return ExportConfig.PACING_DELAY_SECONDS if delay is None else delay

    @property
    def font_path(self) -> Optional[Path]:
        """Font file for overlay text, if one is configured"""
        if self._font_path is not None:
            return Path(self._font_path)
        env_font = os.getenv(self.FONT_ENV)
        return Path(env_font) if env_font else None

    def ensure_directories(self) -> None:
        """Create necessary directories if they don't exist"""
        self.templates_dir.mkdir(parents=True, exist_ok=True)
        self.output_dir.mkdir(parents=True, exist_ok=True)
