"""
Delivery Sinks

Where finished images go. The sink is chosen once when the export is
configured and injected into the exporter; the pipeline only needs an
attempt to deliver each image.

Usage:
    from frameflow.services.sinks import get_sink

    sink = get_sink('directory', output_dir=Path("exports"))
    sink.deliver(png_bytes, "HONOR-Shell_Pixel_8_a1b2c3.png")
"""

import base64
import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Callable, Dict, List, Tuple

from frameflow.errors import SinkError


class DeliverySink(ABC):
    """
    Abstract destination for exported images.

    Implementations raise SinkError (or return False) when delivery fails;
    they never change pipeline state.
    """

    def __init__(self):
        self.logger = logging.getLogger(__name__)

    @property
    @abstractmethod
    def name(self) -> str:
        """Short identifier (e.g., 'directory')"""
        pass

    @property
    def pacing_delay(self) -> float:
        """Suggested pause between deliveries (0 = none needed)"""
        return 0.0

    @abstractmethod
    def deliver(self, image: bytes, filename: str) -> bool:
        """
        Deliver one encoded image.

        Args:
            image: Encoded PNG bytes
            filename: Target file name

        Returns:
            True on success

        Raises:
            SinkError: If delivery fails
        """
        pass


class DirectorySink(DeliverySink):
    """Writes images into a directory on the local filesystem"""

    def __init__(self, output_dir: Path):
        super().__init__()
        self.output_dir = Path(output_dir)

    @property
    def name(self) -> str:
        return "directory"

    def deliver(self, image: bytes, filename: str) -> bool:
        # Guard clause: Keep writes inside the output directory
        if Path(filename).name != filename:
            raise SinkError(f"Invalid export file name: {filename!r}")

        target = self.output_dir / filename
        try:
            self.output_dir.mkdir(parents=True, exist_ok=True)
            target.write_bytes(image)
        except OSError as e:
            raise SinkError(f"Failed to write {target}: {e}") from e

        self.logger.info(f"Saved {target} ({len(image) / 1024:.1f} KB)")
        return True


class CallbackSink(DeliverySink):
    """
    Hands images to a native bridge.

    The callable receives the base64 payload (no data URL prefix) and the
    file name, like a platform saveImage(data, name) bridge. A falsy return
    value or an exception is a failed delivery.
    """

    BRIDGE_PACING_SECONDS = 0.4

    def __init__(self, callback: Callable[[str, str], object], pacing_delay: float = None):
        super().__init__()
        self.callback = callback
        self._pacing_delay = self.BRIDGE_PACING_SECONDS if pacing_delay is None else pacing_delay

    @property
    def name(self) -> str:
        return "bridge"

    @property
    def pacing_delay(self) -> float:
        return self._pacing_delay

    def deliver(self, image: bytes, filename: str) -> bool:
        payload = base64.b64encode(image).decode("ascii")
        try:
            accepted = self.callback(payload, filename)
        except Exception as e:
            raise SinkError(f"Bridge failed to save {filename}: {e}") from e

        if accepted is False:
            raise SinkError(f"Bridge rejected {filename}")
        return True


class MemorySink(DeliverySink):
    """Keeps delivered images in memory (previews and tests)"""

    def __init__(self):
        super().__init__()
        self.delivered: List[Tuple[str, bytes]] = []

    @property
    def name(self) -> str:
        return "memory"

    def deliver(self, image: bytes, filename: str) -> bool:
        self.delivered.append((filename, image))
        return True

    @property
    def filenames(self) -> List[str]:
        return [filename for filename, _ in self.delivered]


# Registry of available sinks
SINKS: Dict[str, type] = {
    'directory': DirectorySink,
    'bridge': CallbackSink,
    'memory': MemorySink,
}


def get_sink(kind: str, **options) -> DeliverySink:
    """
    Factory function to get a delivery sink by kind.

    Args:
        kind: Sink identifier ('directory', 'bridge', 'memory')
        **options: Constructor arguments of the sink

    Returns:
        DeliverySink instance

    Raises:
        ValueError: If the kind is not recognized

    Example:
        sink = get_sink('directory', output_dir=Path("exports"))
    """
    if kind not in SINKS:
        available = ', '.join(SINKS.keys())
        raise ValueError(
            f"Unknown sink: '{kind}'. "
            f"Available sinks: {available}"
        )

    return SINKS[kind](**options)
