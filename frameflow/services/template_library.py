"""
Template Library

Persists device shell templates in an ``index.json`` beside the frame
artwork:

    {
      "templates": [{"id": ..., "name": ..., "frameImageSrc": "pixel8.png", ...}],
      "activeTemplateIds": [...],
      "lastUsedConfig": {"x": ..., "borderRadius": ...}
    }

Relative ``frameImageSrc`` values are resolved against the library directory.

Usage:
    from frameflow.services.template_library import TemplateLibrary

    library = TemplateLibrary(Path("templates"))
    template = library.add_frame("Pixel 8", Path("pixel8.png"))
    template = library.find("Pixel_8")
"""

import json
import logging
import time
from dataclasses import replace
from pathlib import Path
from typing import Any, Dict, List, Optional

from frameflow.config.shell_config import OptimizeConfig
from frameflow.errors import FrameFlowError, TemplateNotFoundError
from frameflow.models import Template, TemplateConfig
from frameflow.services.image_io import data_url_to_bytes, load_image, optimize_image
from frameflow.services.result_store import ResultStore


class TemplateLibrary:
    """Reads and writes the JSON template index of a directory"""

    INDEX_FILENAME = "index.json"

    def __init__(self, directory: Path):
        self.logger = logging.getLogger(__name__)
        self.directory = Path(directory)
        self.index_path = self.directory / self.INDEX_FILENAME
        self.templates: List[Template] = []
        self.active_ids: List[str] = []
        self.last_used_config: Optional[TemplateConfig] = None
        self.load()

    # =====================================
    # PERSISTENCE
    # =====================================

    def load(self) -> None:
        """Load the index; a missing index is an empty library"""
        if not self.index_path.exists():
            self.templates, self.active_ids, self.last_used_config = [], [], None
            return

        try:
            with open(self.index_path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise FrameFlowError(f"Could not read template index {self.index_path}: {e}") from e

        self.templates = [Template.from_dict(entry) for entry in data.get('templates', [])]
        known = {template.id for template in self.templates}
        self.active_ids = [tid for tid in data.get('activeTemplateIds', []) if tid in known]

        last_config = data.get('lastUsedConfig')
        self.last_used_config = TemplateConfig.from_dict(last_config) if last_config else None
        self.logger.debug(f"Loaded {len(self.templates)} template(s) from {self.index_path}")

    def save(self) -> None:
        """Write the index atomically"""
        data: Dict[str, Any] = {
            'templates': [
                dict(template.to_dict(), slug=template.slug) for template in self.templates
            ],
            'activeTemplateIds': list(self.active_ids),
        }
        if self.last_used_config is not None:
            data['lastUsedConfig'] = self.last_used_config.to_dict()

        self.directory.mkdir(parents=True, exist_ok=True)
        temp_path = self.index_path.with_suffix('.json.tmp')
        with open(temp_path, 'w', encoding='utf-8') as f:
            json.dump(data, f, indent=2, ensure_ascii=False)
        temp_path.replace(self.index_path)

    # =====================================
    # LOOKUP
    # =====================================

    def _resolve(self, template: Template) -> Template:
        """Point a relative frame file name at the library directory"""
        src = template.frame_image_src
        if isinstance(src, str) and src and not src.startswith('data:') and not Path(src).is_absolute():
            return replace(template, frame_image_src=str(self.directory / src))
        return template

    def get(self, template_id: str) -> Template:
        """
        Get a template by id.

        Raises:
            TemplateNotFoundError: If no template has this id
        """
        for template in self.templates:
            if template.id == template_id:
                return self._resolve(template)
        raise TemplateNotFoundError(f"Template '{template_id}' not found")

    def find(self, key: str) -> Template:
        """Get a template by id, slug or exact name"""
        for template in self.templates:
            if key in (template.id, template.slug, template.name):
                return self._resolve(template)
        raise TemplateNotFoundError(f"Template '{key}' not found")

    def list(self) -> List[Template]:
        return [self._resolve(template) for template in self.templates]

    def active(self) -> List[Template]:
        """Selected templates in selection order"""
        return [self.get(template_id) for template_id in self.active_ids]

    # =====================================
    # MUTATION
    # =====================================

    def upsert(self, template: Template) -> Template:
        """
        Insert a template or replace the one with the same id.

        Saving also selects the template and remembers its screen region
        as the starting point for the next new template.
        """
        for index, existing in enumerate(self.templates):
            if existing.id == template.id:
                self.templates[index] = template
                break
        else:
            self.templates.append(template)

        if template.id not in self.active_ids:
            self.active_ids.append(template.id)
        self.last_used_config = template.config
        self.save()
        self.logger.info(f"Saved template '{template.name}' ({template.id})")
        return template

    def add_frame(self, name: str, frame_path: Path,
                  config: Optional[TemplateConfig] = None) -> Template:
        """
        Create a template from frame artwork.

        The artwork is downscaled to OptimizeConfig.FRAME_MAX_DIMENSION and
        copied into the library as PNG. Without an explicit config the last
        used one is reused, else a region covering 80% of the frame.

        Raises:
            DecodeError: If the artwork cannot be decoded
        """
        frame_path = Path(frame_path)
        optimized = optimize_image(frame_path, OptimizeConfig.FRAME_MAX_DIMENSION, "PNG")
        width, height = load_image(optimized).size

        known = {t.id for t in self.templates}
        stamp = int(time.time() * 1000)
        while str(stamp) in known:
            stamp += 1
        template_id = str(stamp)
        filename = f"{template_id}.png"
        self.directory.mkdir(parents=True, exist_ok=True)
        target = self.directory / filename
        if isinstance(optimized, str) and optimized.startswith('data:'):
            target.write_bytes(data_url_to_bytes(optimized))
        else:
            load_image(frame_path).save(target, format='PNG')

        if config is None:
            config = self.last_used_config or TemplateConfig.default_for(width, height)

        template = Template(
            id=template_id,
            name=name,
            frame_image_src=filename,
            config=config,
            original_width=width,
            original_height=height,
        )
        self.upsert(template)
        return self._resolve(template)

    def rotate(self, key: str) -> Template:
        """Turn a template a further 90 degrees"""
        template = self.find(key)
        stored = next(t for t in self.templates if t.id == template.id)
        rotated = stored.rotated()
        self.upsert(rotated)
        return self._resolve(rotated)

    def delete(self, template_id: str, store: Optional[ResultStore] = None) -> Template:
        """
        Remove a template, its selection and (when given) its cached results.

        Raises:
            TemplateNotFoundError: If no template has this id
        """
        template = self.get(template_id)
        self.templates = [t for t in self.templates if t.id != template_id]
        self.active_ids = [tid for tid in self.active_ids if tid != template_id]
        self.save()

        if store is not None:
            store.invalidate_template(template_id)

        self.logger.info(f"Deleted template '{template.name}' ({template_id})")
        return template

    def __len__(self) -> int:
        return len(self.templates)
