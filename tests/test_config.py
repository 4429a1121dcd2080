from pathlib import Path

import cv2
import pytest

from frameflow.config.project_config import WorkspaceConfig
from frameflow.config.shell_config import ExportConfig, get_interpolation_method


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ("FRAMEFLOW_TEMPLATES_DIR", "FRAMEFLOW_BRAND", "FRAMEFLOW_EXPORT_DELAY", "FRAMEFLOW_FONT"):
        monkeypatch.delenv(name, raising=False)


def test_defaults(tmp_path):
    config = WorkspaceConfig(root=tmp_path)

    assert config.templates_dir == tmp_path / "templates"
    assert config.screenshots_dir == tmp_path / "screenshots"
    assert config.output_dir == tmp_path / "exports"
    assert config.brand == ExportConfig.BRAND
    assert config.export_delay == pytest.approx(0.4)
    assert config.font_path is None


def test_environment_overrides(tmp_path, monkeypatch):
    monkeypatch.setenv("FRAMEFLOW_TEMPLATES_DIR", str(tmp_path / "lib"))
    monkeypatch.setenv("FRAMEFLOW_BRAND", "Acme")
    monkeypatch.setenv("FRAMEFLOW_EXPORT_DELAY", "0")
    monkeypatch.setenv("FRAMEFLOW_FONT", "/fonts/bold.ttf")

    config = WorkspaceConfig(root=tmp_path)

    assert config.templates_dir == tmp_path / "lib"
    assert config.brand == "Acme"
    assert config.export_delay == 0
    assert config.font_path == Path("/fonts/bold.ttf")


def test_arguments_win_over_environment(tmp_path, monkeypatch):
    monkeypatch.setenv("FRAMEFLOW_BRAND", "Acme")

    config = WorkspaceConfig(root=tmp_path, brand="Mine", export_delay=-3)

    assert config.brand == "Mine"
    assert config.export_delay == 0


def test_invalid_delay_falls_back(tmp_path, monkeypatch):
    monkeypatch.setenv("FRAMEFLOW_EXPORT_DELAY", "soon")

    assert WorkspaceConfig(root=tmp_path).export_delay == pytest.approx(0.4)


def test_ensure_directories(tmp_path):
    config = WorkspaceConfig(root=tmp_path)
    config.ensure_directories()

    assert config.templates_dir.is_dir()
    assert config.output_dir.is_dir()


def test_interpolation_method():
    assert get_interpolation_method() == cv2.INTER_LINEAR
    assert get_interpolation_method("AREA") == cv2.INTER_AREA


def test_export_delay_is_unset_until_configured(tmp_path, monkeypatch):
    assert WorkspaceConfig(root=tmp_path).configured_export_delay is None
    assert WorkspaceConfig(root=tmp_path, export_delay=1.5).configured_export_delay == 1.5

    monkeypatch.setenv("FRAMEFLOW_EXPORT_DELAY", "0")
    assert WorkspaceConfig(root=tmp_path).configured_export_delay == 0


def test_package_readme_exists():
    root = Path(__file__).resolve().parent.parent
    pyproject = (root / "pyproject.toml").read_text()

    assert 'readme = "README.md"' in pyproject
    assert (root / "README.md").is_file()
