"""
FrameFlow: composites screenshots into device shells.

Stage 1 (compose_shell) places a screenshot into a template's screen region
under the frame artwork. Stage 2 (compose_final) adds an optional blurred
background and overlay text for export.
"""

from frameflow.errors import DecodeError, FrameFlowError, SinkError, TemplateNotFoundError
from frameflow.models import (
    BackgroundSettings,
    BackgroundType,
    ScreenshotItem,
    ShellResult,
    Template,
    TemplateConfig,
    TextSettings,
)
from frameflow.services.final_compositor import compose_final
from frameflow.services.result_store import ResultStore
from frameflow.services.shell_compositor import compose_shell
from frameflow.services.sinks import CallbackSink, DeliverySink, DirectorySink, MemorySink, get_sink

__version__ = "1.0.0"

__all__ = [
    "BackgroundSettings",
    "BackgroundType",
    "CallbackSink",
    "DecodeError",
    "DeliverySink",
    "DirectorySink",
    "FrameFlowError",
    "MemorySink",
    "ResultStore",
    "ScreenshotItem",
    "ShellResult",
    "SinkError",
    "Template",
    "TemplateConfig",
    "TemplateNotFoundError",
    "TextSettings",
    "compose_final",
    "compose_shell",
    "get_sink",
]
