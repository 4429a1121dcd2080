"""
Export Command

Stage 2 for every stored result: composes the final image and hands it to
the configured delivery sink, pausing between deliveries.
"""

import logging
import time
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from frameflow.config.shell_config import ExportConfig
from frameflow.errors import DecodeError, SinkError
from frameflow.models import BackgroundSettings, ScreenshotItem, Template
from frameflow.services.final_compositor import background_source_for, compose_final
from frameflow.services.image_io import encode_png
from frameflow.services.result_store import ResultStore
from frameflow.services.sinks import DeliverySink

STATUS_OK = "ok"
STATUS_EMPTY = "empty"
STATUS_FAILED = "failed"


@dataclass
class ExportReport:
    """
    Outcome of an export.

    Attributes:
        delivered: File names handed to the sink, in order
        skipped: Pairs without a stage 1 result
        failed: File names that could not be composed
        status: "ok", "empty" (nothing to export) or "failed" (the sink
            rejected an image, or no result could be composed)
        error: Why the export failed
    """
    delivered: List[str] = field(default_factory=list)
    skipped: int = 0
    failed: List[str] = field(default_factory=list)
    status: str = STATUS_OK
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status != STATUS_FAILED


def export_filename(template: Template, item: ScreenshotItem,
                    brand: str = ExportConfig.BRAND) -> str:
    """<brand>_<template name, whitespace runs as _>_<screenshot id>.png"""
    return ExportConfig.FILENAME_PATTERN.format(brand=brand, template=template.slug, item=item.id)


class Exporter:
    """Composes and delivers final images for every stored result"""

    def __init__(
        self,
        store: ResultStore,
        sink: DeliverySink,
        settings: Optional[BackgroundSettings] = None,
        brand: str = ExportConfig.BRAND,
        delay: Optional[float] = None,
        font_path: Optional[str] = None
    ):
        """
        Initialize exporter

        Args:
            store: Stage 1 results
            sink: Delivery destination, chosen once
            settings: Global background settings
            brand: File name prefix
            delay: Pause between deliveries (default: the sink's pacing delay)
            font_path: Font file for overlay text
        """
        self.logger = logging.getLogger(__name__)
        self.store = store
        self.sink = sink
        self.settings = settings or BackgroundSettings()
        self.brand = brand
        self.delay = sink.pacing_delay if delay is None else max(0.0, delay)
        self.font_path = font_path

    def export_all(self, items: Sequence[ScreenshotItem],
                   templates: Sequence[Template]) -> ExportReport:
        """
        Export every (item, template) pair holding a result.

        A result that cannot be composed (undecodable source, invalid text
        colour) is logged and skipped. A sink that raises SinkError or returns
        False stops the export; images already delivered stay delivered. When
        results existed but none could be composed the export has failed too.
        """
        report = ExportReport()
        snapshot = self.store.snapshot()

        for item in items:
            for template in templates:
                result = snapshot.get(item.id, {}).get(template.id)
                if result is None:
                    report.skipped += 1
                    continue

                filename = export_filename(template, item, self.brand)
                try:
                    image = compose_final(
                        result,
                        background_source_for(self.settings, item.src),
                        self.settings,
                        font_path=self.font_path
                    )
                except (DecodeError, ValueError) as e:
                    self.logger.error(f"Could not compose {filename}: {e}")
                    report.failed.append(filename)
                    continue

                if report.delivered and self.delay > 0:
                    time.sleep(self.delay)

                try:
                    if self.sink.deliver(encode_png(image), filename) is False:
                        raise SinkError(f"{self.sink.name} sink rejected {filename}")
                except SinkError as e:
                    self.logger.error(f"Export stopped at {filename}: {e}")
                    report.status = STATUS_FAILED
                    report.error = str(e)
                    return report

                report.delivered.append(filename)

        if report.failed and not report.delivered:
            report.status = STATUS_FAILED
            report.error = f"no image could be composed ({len(report.failed)} failed)"
        elif not report.delivered:
            report.status = STATUS_EMPTY
        self.logger.info(
            f"Export {report.status}: {len(report.delivered)} delivered, "
            f"{len(report.failed)} failed, {report.skipped} without result"
        )
        return report
