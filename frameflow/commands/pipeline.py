#!/usr/bin/env python3
"""
Shell Pipeline Command

End-to-end batch workflow:
1. Load screenshots from a directory and the selected templates
2. Compose every screenshot into every template (stage 1)
3. Attach overlay text to the results
4. Compose finals and deliver them to the output directory (stage 2)
"""

import logging
from typing import List, Optional, Sequence

from frameflow.commands.export import STATUS_EMPTY, STATUS_FAILED, Exporter, ExportReport
from frameflow.commands.generate_shells import BatchResult, ShellBatch
from frameflow.config.project_config import WorkspaceConfig
from frameflow.config.shell_config import OptimizeConfig
from frameflow.errors import DecodeError, FrameFlowError
from frameflow.models import BackgroundSettings, ScreenshotItem, Template, TextSettings
from frameflow.services.image_io import optimize_image
from frameflow.services.result_store import ResultStore
from frameflow.services.sinks import DeliverySink, get_sink
from frameflow.services.template_library import TemplateLibrary


class PipelineError(FrameFlowError):
    """Raised when the pipeline cannot start"""
    pass


SCREENSHOT_SUFFIXES = ('.png', '.jpg', '.jpeg', '.webp')


class ShellPipeline:
    """Orchestrates stage 1 and stage 2 for a directory of screenshots"""

    # Console colors
    RED = '\033[0;31m'
    GREEN = '\033[0;32m'
    YELLOW = '\033[1;33m'
    BLUE = '\033[0;34m'
    MAGENTA = '\033[0;35m'
    CYAN = '\033[0;36m'
    NC = '\033[0m'

    def __init__(
        self,
        workspace: Optional[WorkspaceConfig] = None,
        template_keys: Optional[Sequence[str]] = None,
        settings: Optional[BackgroundSettings] = None,
        text_config: Optional[TextSettings] = None,
        sink: Optional[DeliverySink] = None,
        optimize: bool = True,
        store: Optional[ResultStore] = None
    ):
        """
        Initialize shell pipeline

        Args:
            workspace: Directories, brand and pacing (default: current directory);
                without a configured delay the sink's own pacing applies
            template_keys: Template ids or slugs (default: the selected templates)
            settings: Global background settings
            text_config: Overlay text applied to every result
            sink: Delivery sink (default: the workspace output directory)
            optimize: Downscale screenshots before compositing
            store: Result store (default: a new one)
        """
        self.logger = logging.getLogger(__name__)
        self.workspace = workspace or WorkspaceConfig()
        self.template_keys = list(template_keys or [])
        self.settings = settings or BackgroundSettings()
        self.text_config = text_config
        self.sink = sink or get_sink('directory', output_dir=self.workspace.output_dir)
        self.optimize = optimize
        self.store = store or ResultStore()

    def _print_banner(self) -> None:
        """Print pipeline banner"""
        print()
        print(f"{self.MAGENTA}╔════════════════════════════════════════════╗{self.NC}")
        print(f"{self.MAGENTA}║         📱  FrameFlow Pipeline  📱         ║{self.NC}")
        print(f"{self.MAGENTA}╚════════════════════════════════════════════╝{self.NC}")
        print()

    def _print_section(self, title: str) -> None:
        """Print section header"""
        print()
        print(f"{self.BLUE}━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━{self.NC}")
        print(f"{self.BLUE}{title}{self.NC}")
        print(f"{self.BLUE}━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━{self.NC}")

    def _print_success(self, message: str) -> None:
        """Print success message"""
        print(f"{self.GREEN}✅ {message}{self.NC}")

    def _print_error(self, message: str) -> None:
        """Print error message"""
        print(f"{self.RED}❌ {message}{self.NC}")

    def _print_info(self, message: str) -> None:
        """Print info message"""
        print(f"{self.CYAN}ℹ️  {message}{self.NC}")

    def _load_templates(self) -> List[Template]:
        """
        Resolve the templates to use

        Raises:
            PipelineError: If no template is available
        """
        library = TemplateLibrary(self.workspace.templates_dir)
        if self.template_keys:
            templates = [library.find(key) for key in self.template_keys]
        else:
            templates = library.active()

        # Guard clause: Nothing selected
        if not templates:
            raise PipelineError(
                f"No templates selected in {library.index_path}. "
                f"Add one with 'frameflow template add'"
            )
        return templates

    def _load_items(self) -> List[ScreenshotItem]:
        """
        Screenshots of the workspace, in file name order

        Raises:
            PipelineError: If the directory holds no screenshots
        """
        directory = self.workspace.screenshots_dir
        if not directory.is_dir():
            raise PipelineError(f"Screenshots directory not found: {directory}")

        paths = sorted(
            path for path in directory.iterdir()
            if path.is_file() and path.suffix.lower() in SCREENSHOT_SUFFIXES
        )

        # Guard clause: Nothing to compose
        if not paths:
            raise PipelineError(f"No screenshots found in {directory}")

        items = []
        for path in paths:
            src = path
            if self.optimize:
                try:
                    src = optimize_image(path, OptimizeConfig.SCREENSHOT_MAX_DIMENSION, "JPEG")
                except DecodeError as e:
                    # Left as is; stage 1 reports the pair as failed
                    self.logger.warning(f"Could not optimize {path.name}: {e}")
            items.append(ScreenshotItem(src=src, id=path.stem))
        return items

    def _apply_overlays(self, items: Sequence[ScreenshotItem], templates: Sequence[Template]) -> None:
        """Attach the overlay text to every stored result"""
        if self.text_config is None:
            return
        for item in items:
            for template in templates:
                self.store.set_text_config(item.id, template.id, self.text_config)

    def _print_summary(self, batch: BatchResult, report: ExportReport) -> None:
        """Print pipeline summary"""
        print()
        print(f"{self.CYAN}📊 Summary:{self.NC}")
        print(f"   Shells composed: {self.YELLOW}{batch.composed}{self.NC}")
        if batch.failed_count:
            print(f"   Shells failed: {self.RED}{batch.failed_count}{self.NC}")
        print(f"   Images exported: {self.YELLOW}{len(report.delivered)}{self.NC}")
        if report.failed:
            print(f"   Exports failed: {self.RED}{len(report.failed)}{self.NC}")
        if getattr(self.sink, 'output_dir', None) is not None:
            print(f"   Destination: {self.YELLOW}{self.sink.output_dir}{self.NC}")
        print()

    def execute(self) -> ExportReport:
        """
        Run both stages and return the export report

        Raises:
            PipelineError: If there is nothing to process
            TemplateNotFoundError: If a requested template does not exist
        """
        templates = self._load_templates()
        items = self._load_items()
        self._print_info(f"{len(items)} screenshot(s) x {len(templates)} template(s)")

        self._print_section("🖼️  Stage 1: composing shells")
        batch = ShellBatch(
            self.store,
            on_result=lambda item, template: self._print_success(f"{item.id} → {template.name}")
        ).run(items, templates)
        self._apply_overlays(items, templates)

        self._print_section("📦 Stage 2: exporting")
        exporter = Exporter(
            self.store,
            self.sink,
            settings=self.settings,
            brand=self.workspace.brand,
            delay=self.workspace.configured_export_delay,
            font_path=str(self.workspace.font_path) if self.workspace.font_path else None
        )
        report = exporter.export_all(items, templates)
        self._print_summary(batch, report)
        return report

    def run(self) -> int:
        """
        Run the pipeline

        Returns:
            Exit code (0 for success, 1 for failure)
        """
        try:
            self._print_banner()
            report = self.execute()

            if report.status == STATUS_FAILED:
                self._print_error(f"Export failed: {report.error}")
                return 1
            if report.status == STATUS_EMPTY:
                self._print_error("No image was exported!")
                return 1

            self._print_success(f"{len(report.delivered)} image(s) exported")
            return 0

        except FrameFlowError as e:
            self._print_error(str(e))
            return 1
        except KeyboardInterrupt:
            print()
            self._print_error("Cancelled by user")
            return 130
        except Exception as e:
            self.logger.exception("Unexpected error during pipeline execution")
            self._print_error(f"Unexpected error: {e}")
            return 1
