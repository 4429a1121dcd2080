import json

import pytest

from conftest import GREEN, solid_image, split_image
from frameflow.commands.pipeline import ShellPipeline
from frameflow.config.project_config import WorkspaceConfig
from frameflow.main import _background_settings, create_parser, main
from frameflow.models import ShellResult
from frameflow.services.image_io import image_size, load_image
from frameflow.services.result_store import ResultStore
from frameflow.services.template_library import TemplateLibrary


@pytest.fixture
def workspace(tmp_path, frame_file, monkeypatch):
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("FRAMEFLOW_TEMPLATES_DIR", raising=False)
    monkeypatch.delenv("FRAMEFLOW_BRAND", raising=False)
    monkeypatch.delenv("FRAMEFLOW_EXPORT_DELAY", raising=False)
    screenshots = tmp_path / "screenshots"
    screenshots.mkdir()
    split_image(80, 160).save(screenshots / "01_home.png")
    split_image(160, 80, vertical=False).save(screenshots / "02_wide.png")
    return tmp_path


def _templates(workspace):
    return json.loads((workspace / "templates" / "index.json").read_text())["templates"]


def test_parser_requires_a_command():
    with pytest.raises(SystemExit):
        create_parser().parse_args([])


def test_template_add_list_rotate_remove(workspace, frame_file, capsys):
    assert main(["template", "add", "Pixel 8", str(frame_file),
                 "--region", "10", "20", "80", "160", "--radius", "6"]) == 0
    stored = _templates(workspace)[0]
    assert stored["config"] == {"x": 10, "y": 20, "width": 80, "height": 160, "borderRadius": 6}

    assert main(["template", "list"]) == 0
    assert "Pixel 8" in capsys.readouterr().out

    assert main(["template", "rotate", "Pixel_8"]) == 0
    assert _templates(workspace)[0]["rotation"] == 90

    assert main(["template", "remove", "Pixel_8"]) == 0
    assert _templates(workspace) == []


def test_unknown_template_fails(workspace):
    assert main(["template", "remove", "nothing"]) == 1


def test_shell_and_final(workspace, frame_file):
    main(["template", "add", "Pixel 8", str(frame_file), "--region", "10", "20", "80", "160"])
    shell_path = workspace / "out" / "shell.png"
    final_path = workspace / "out" / "final.png"

    assert main(["shell", "screenshots/01_home.png", "--template", "Pixel_8", "-o", str(shell_path)]) == 0
    assert load_image(shell_path).size == (100, 200)

    assert main([
        "final", str(shell_path), "--screenshot", "screenshots/01_home.png",
        "--bg-type", "blur", "--text", "Hello", "-o", str(final_path)
    ]) == 0
    assert load_image(final_path).size == (150, 300)


def test_shell_with_bad_screenshot_fails(workspace, frame_file):
    main(["template", "add", "Pixel 8", str(frame_file)])
    (workspace / "broken.png").write_bytes(b"nope")

    assert main(["shell", "broken.png", "--template", "Pixel_8", "-o", "x.png"]) == 1


def test_batch_exports_every_pair(workspace, frame_file):
    main(["template", "add", "Pixel 8", str(frame_file), "--region", "10", "20", "80", "160"])
    main(["template", "add", "Tab", str(frame_file)])

    assert main(["batch", "--brand", "Acme", "--text", "Hi"]) == 0

    exported = sorted(path.name for path in (workspace / "exports").iterdir())
    assert exported == [
        "Acme_Pixel_8_01_home.png",
        "Acme_Pixel_8_02_wide.png",
        "Acme_Tab_01_home.png",
        "Acme_Tab_02_wide.png",
    ]


def test_batch_without_templates_fails(workspace):
    assert main(["batch"]) == 1


def test_batch_with_selected_template(workspace, frame_file):
    main(["template", "add", "Pixel 8", str(frame_file)])
    main(["template", "add", "Tab", str(frame_file)])

    assert main(["batch", "--template", "Tab", "--output-dir", "finals", "--bg-type", "blur"]) == 0

    exported = sorted(path.name for path in (workspace / "finals").iterdir())
    assert exported == ["HONOR-Shell_Tab_01_home.png", "HONOR-Shell_Tab_02_wide.png"]
    assert load_image(workspace / "finals" / exported[0]).size == (150, 300)


def test_invalid_text_colour_is_rejected(workspace, capsys):
    with pytest.raises(SystemExit):
        main(["batch", "--text", "Hi", "--color", "#12"])
    assert "Invalid hex color" in capsys.readouterr().err


def test_large_custom_background_is_downscaled(workspace):
    large = workspace / "large.png"
    solid_image(3000, 1500, GREEN).save(large)
    small = workspace / "small.png"
    solid_image(300, 150, GREEN).save(small)
    parser = create_parser()

    settings = _background_settings(parser.parse_args(["final", "s.png", "-o", "o.png", "--background", str(large)]))
    assert image_size(settings.custom_src) == (2000, 1000)

    settings = _background_settings(parser.parse_args(["final", "s.png", "-o", "o.png", "--background", str(small)]))
    assert settings.custom_src == small


def test_batch_fails_when_no_image_composes(workspace, frame_file):
    main(["template", "add", "Pixel 8", str(frame_file)])
    template_id = TemplateLibrary(workspace / "templates").find("Pixel_8").id
    store = ResultStore()
    for item_id in ("01_home", "02_wide"):
        store.put_result(item_id, template_id, ShellResult(base64="data:image/png;base64,AAAA"))

    assert ShellPipeline(workspace=WorkspaceConfig(root=workspace), store=store).run() == 1


def test_batch_honours_configured_export_delay(workspace, frame_file, monkeypatch):
    main(["template", "add", "Pixel 8", str(frame_file)])
    monkeypatch.setenv("FRAMEFLOW_EXPORT_DELAY", "0.25")
    sleeps = []
    monkeypatch.setattr("frameflow.commands.export.time.sleep", sleeps.append)

    assert main(["batch"]) == 0
    assert sleeps == [0.25]


def test_batch_to_directory_does_not_pause_by_default(workspace, frame_file, monkeypatch):
    main(["template", "add", "Pixel 8", str(frame_file)])
    sleeps = []
    monkeypatch.setattr("frameflow.commands.export.time.sleep", sleeps.append)

    assert main(["batch"]) == 0
    assert sleeps == []
