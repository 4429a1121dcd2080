"""
Shell Generation Command

Stage 1 work queue: composes every (screenshot, template) pair that has no
result yet, one at a time, storing each result as soon as it is ready.

    1. Scan items x templates for the first pair without a result
    2. compose_shell -> PNG data URL -> ResultStore
    3. Re-scan until nothing is left

Pairs that fail to decode are logged and remembered for the rest of the run,
so one bad screenshot never stalls the queue.
"""

import logging
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Sequence, Set, Tuple

from frameflow.errors import DecodeError
from frameflow.models import ScreenshotItem, ShellResult, Template
from frameflow.services.image_io import to_data_url
from frameflow.services.result_store import ResultStore
from frameflow.services.shell_compositor import compose_shell

Task = Tuple[ScreenshotItem, Template]


@dataclass
class BatchResult:
    """Outcome of one ShellBatch run"""
    composed: int = 0
    failed: List[Tuple[str, str]] = field(default_factory=list)

    @property
    def failed_count(self) -> int:
        return len(self.failed)


def find_next_task(
    items: Sequence[ScreenshotItem],
    templates: Sequence[Template],
    store: ResultStore,
    skip: Optional[Set[Tuple[str, str]]] = None
) -> Optional[Task]:
    """
    First pair, in item then template order, that still needs a result.

    Args:
        items: Screenshots in upload order
        templates: Selected templates in selection order
        store: Results computed so far
        skip: (item id, template id) pairs to leave alone

    Returns:
        (item, template) or None when every pair is done
    """
    skip = skip or set()
    snapshot = store.snapshot()
    for item in items:
        done = snapshot.get(item.id, {})
        for template in templates:
            if template.id not in done and (item.id, template.id) not in skip:
                return item, template
    return None


class ShellBatch:
    """Runs the stage 1 queue against a ResultStore"""

    def __init__(
        self,
        store: ResultStore,
        compose: Callable[[object, Template], object] = compose_shell,
        on_result: Optional[Callable[[ScreenshotItem, Template], None]] = None
    ):
        """
        Initialize shell batch

        Args:
            store: Destination of the results
            compose: Stage 1 compositor
            on_result: Called after each stored result (progress reporting)
        """
        self.logger = logging.getLogger(__name__)
        self.store = store
        self.compose = compose
        self.on_result = on_result

    def process_task(self, item: ScreenshotItem, template: Template) -> ShellResult:
        """Compose one pair and store it"""
        image = self.compose(item.src, template)
        result = ShellResult(base64=to_data_url(image))
        self.store.put_result(item.id, template.id, result)
        self.logger.debug(f"Stored shell for item {item.id} / template {template.id}")
        return result

    def run(self, items: Sequence[ScreenshotItem], templates: Sequence[Template]) -> BatchResult:
        """
        Compose every missing pair.

        Pairs already holding a result are never recomputed. Decode failures
        are recorded and skipped for the remainder of this run.
        """
        outcome = BatchResult()
        failed: Set[Tuple[str, str]] = set()

        # Guard clause: Nothing to pair
        if not items or not templates:
            return outcome

        while True:
            task = find_next_task(items, templates, self.store, failed)
            if task is None:
                break

            item, template = task
            try:
                self.process_task(item, template)
            except DecodeError as e:
                self.logger.error(f"Shell failed for item {item.id} / template '{template.name}': {e}")
                failed.add((item.id, template.id))
                outcome.failed.append((item.id, template.id))
                continue

            outcome.composed += 1
            if self.on_result is not None:
                self.on_result(item, template)

        self.logger.info(f"Shell batch done: {outcome.composed} composed, {outcome.failed_count} failed")
        return outcome
