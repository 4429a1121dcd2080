import json

import pytest

from conftest import frame_image
from frameflow.errors import TemplateNotFoundError
from frameflow.models import ShellResult, Template, TemplateConfig
from frameflow.services.image_io import to_data_url
from frameflow.services.result_store import ResultStore
from frameflow.services.template_library import TemplateLibrary


@pytest.fixture
def library(tmp_path):
    return TemplateLibrary(tmp_path / "templates")


def test_empty_library(library):
    assert len(library) == 0
    assert library.active() == []
    assert library.last_used_config is None


def test_add_frame_copies_artwork_and_defaults_region(library, frame_file):
    template = library.add_frame("Pixel 8", frame_file)

    assert template.name == "Pixel 8"
    assert (template.original_width, template.original_height) == (100, 200)
    assert template.config == TemplateConfig.default_for(100, 200)
    assert (library.directory / f"{template.id}.png").exists()
    assert template.frame_image_src == str(library.directory / f"{template.id}.png")
    assert library.active_ids == [template.id]


def test_new_template_reuses_last_config(library, frame_file):
    config = TemplateConfig(x=5, y=6, width=70, height=150, border_radius=9)
    library.add_frame("First", frame_file, config)

    second = library.add_frame("Second", frame_file)

    assert second.config == config
    assert second.id != library.find("First").id


def test_index_round_trip(library, frame_file, tmp_path):
    template = library.add_frame("Pixel 8 Pro", frame_file)

    reloaded = TemplateLibrary(tmp_path / "templates")
    data = json.loads(reloaded.index_path.read_text())

    assert data["templates"][0]["slug"] == "Pixel_8_Pro"
    assert data["templates"][0]["frameImageSrc"] == f"{template.id}.png"
    assert reloaded.get(template.id) == template
    assert reloaded.active_ids == [template.id]
    assert reloaded.last_used_config == template.config


def test_find_by_id_slug_or_name(library, frame_file):
    template = library.add_frame("Pixel 8 Pro", frame_file)

    assert library.find(template.id) == template
    assert library.find("Pixel_8_Pro") == template
    assert library.find("Pixel 8 Pro") == template
    with pytest.raises(TemplateNotFoundError):
        library.find("iPhone")
    with pytest.raises(KeyError):
        library.get("missing")


def test_rotate_persists(library, frame_file, tmp_path):
    template = library.add_frame("Pixel", frame_file)

    for _ in range(5):
        library.rotate("Pixel")

    reloaded = TemplateLibrary(tmp_path / "templates")
    assert reloaded.get(template.id).rotation == 450
    assert reloaded.get(template.id).effective_rotation == 90


def test_delete_cascades_into_results(library, frame_file):
    keep = library.add_frame("Keep", frame_file)
    drop = library.add_frame("Drop", frame_file)
    store = ResultStore()
    store.put_result("item", keep.id, ShellResult(base64="k"))
    store.put_result("item", drop.id, ShellResult(base64="d"))

    library.delete(drop.id, store)

    assert [t.id for t in library.list()] == [keep.id]
    assert library.active_ids == [keep.id]
    assert store.get("item", drop.id) is None
    assert store.get("item", keep.id) is not None
    with pytest.raises(TemplateNotFoundError):
        library.delete(drop.id)


def test_data_url_frames_are_kept_as_is(library):
    src = to_data_url(frame_image())
    template = Template(id="x", name="Inline", frame_image_src=src, config=TemplateConfig())
    library.upsert(template)

    assert library.get("x").frame_image_src == src
