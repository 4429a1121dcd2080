"""
Result Store

Holds stage 1 results per screenshot item and template. Every mutation
derives a new snapshot from the previous one and swaps it in under a lock,
so readers only ever see complete snapshots.

Usage:
    from frameflow.services.result_store import ResultStore

    store = ResultStore()
    store.put_result(item.id, template.id, ShellResult(base64=data_url))
    result = store.get(item.id, template.id)
"""

import logging
import threading
from dataclasses import replace
from types import MappingProxyType
from typing import Callable, Dict, Mapping, Optional

from frameflow.models import BackgroundType, ShellResult, TextSettings

# item id -> template id -> result
Snapshot = Mapping[str, Mapping[str, ShellResult]]


def _freeze(results: Dict[str, Dict[str, ShellResult]]) -> Snapshot:
    return MappingProxyType({
        item_id: MappingProxyType(dict(per_template))
        for item_id, per_template in results.items()
    })


class ResultStore:
    """Copy-on-write map of (item, template) -> ShellResult"""

    def __init__(self):
        self.logger = logging.getLogger(__name__)
        self._lock = threading.Lock()
        self._snapshot: Snapshot = _freeze({})

    def snapshot(self) -> Snapshot:
        """Current read-only snapshot"""
        return self._snapshot

    def get(self, item_id: str, template_id: str) -> Optional[ShellResult]:
        return self._snapshot.get(item_id, {}).get(template_id)

    def has(self, item_id: str, template_id: str) -> bool:
        return self.get(item_id, template_id) is not None

    def _update(self, mutate: Callable[[Dict[str, Dict[str, ShellResult]]], None]) -> None:
        """Build the next snapshot from a mutable copy of the current one"""
        with self._lock:
            working = {
                item_id: dict(per_template)
                for item_id, per_template in self._snapshot.items()
            }
            mutate(working)
            self._snapshot = _freeze({k: v for k, v in working.items() if v})

    def put_result(self, item_id: str, template_id: str, result: ShellResult) -> None:
        def mutate(results):
            results.setdefault(item_id, {})[template_id] = result

        self._update(mutate)

    def _replace_result(self, item_id: str, template_id: str, **changes) -> bool:
        """Change fields of an existing result; False when there is none"""
        changed = []

        def mutate(results):
            current = results.get(item_id, {}).get(template_id)
            if current is not None:
                results[item_id][template_id] = replace(current, **changes)
                changed.append(True)

        self._update(mutate)
        if not changed:
            self.logger.debug(f"No result for {item_id}/{template_id}; nothing to update")
        return bool(changed)

    def set_text_config(self, item_id: str, template_id: str,
                        text_config: Optional[TextSettings]) -> bool:
        return self._replace_result(item_id, template_id, text_config=text_config)

    def set_bg_type(self, item_id: str, template_id: str,
                    bg_type: Optional[BackgroundType]) -> bool:
        """Override the background mode of a single result"""
        return self._replace_result(item_id, template_id, bg_type=bg_type)

    def clear_bg_overrides(self) -> None:
        """Drop every per-result background override (a new global mode applies to all)"""
        def mutate(results):
            for per_template in results.values():
                for template_id, result in per_template.items():
                    if result.bg_type is not None:
                        per_template[template_id] = replace(result, bg_type=None)

        self._update(mutate)

    def invalidate_template(self, template_id: str) -> int:
        """Remove every result made with a template; returns how many were removed"""
        removed = []

        def mutate(results):
            for per_template in results.values():
                if per_template.pop(template_id, None) is not None:
                    removed.append(template_id)

        self._update(mutate)
        if removed:
            self.logger.info(f"Invalidated {len(removed)} result(s) for template {template_id}")
        return len(removed)

    def remove_item(self, item_id: str) -> None:
        def mutate(results):
            results.pop(item_id, None)

        self._update(mutate)

    def clear(self) -> None:
        with self._lock:
            self._snapshot = _freeze({})

    def __len__(self) -> int:
        return sum(len(per_template) for per_template in self._snapshot.values())
