import pytest

from frameflow.models import (
    BackgroundSettings,
    BackgroundType,
    ScreenshotItem,
    ShellResult,
    Template,
    TemplateConfig,
    TextSettings,
)


def _template(rotation=0, name="Pixel 8"):
    return Template(
        id="t1",
        name=name,
        frame_image_src="frame.png",
        config=TemplateConfig(x=10, y=20, width=80, height=160, border_radius=12),
        original_width=100,
        original_height=200,
        rotation=rotation,
    )


@pytest.mark.parametrize("rotation, effective, horizontal", [
    (0, 0, False),
    (90, 90, True),
    (180, 180, False),
    (270, 270, True),
    (360, 0, False),
    (450, 90, True),
    (-90, 270, True),
    (-180, 180, False),
])
def test_rotation_normalization(rotation, effective, horizontal):
    template = _template(rotation)

    assert template.effective_rotation == effective
    assert template.is_horizontal is horizontal


def test_rotated_accumulates_without_normalizing():
    template = _template(270).rotated()

    assert template.rotation == 360
    assert template.effective_rotation == 0


def test_slug_replaces_whitespace_runs():
    assert _template(name="Pixel  8\tPro").slug == "Pixel_8_Pro"


def test_config_shape():
    assert TemplateConfig(width=80, height=160).is_portrait
    assert not TemplateConfig(width=80, height=80).is_portrait
    assert TemplateConfig(width=0, height=10).is_degenerate


def test_default_config_for_frame():
    config = TemplateConfig.default_for(1000, 2000)

    assert (config.x, config.y, config.width, config.height) == (100, 200, 800, 1600)
    assert config.border_radius == 50


def test_template_dict_uses_stored_keys():
    data = _template(90).to_dict()

    assert data["frameImageSrc"] == "frame.png"
    assert data["config"]["borderRadius"] == 12
    assert data["originalWidth"] == 100
    assert Template.from_dict(data) == _template(90)


def test_template_from_dict_defaults_missing_rotation():
    template = Template.from_dict({"id": 7, "name": "x", "frameImageSrc": "a.png", "config": {}})

    assert template.id == "7"
    assert template.rotation == 0
    assert template.config.is_degenerate


def test_background_settings_dict():
    settings = BackgroundSettings.from_dict({"type": "blur", "xOffset": 5, "customSrc": None})

    assert settings.type is BackgroundType.BLUR
    assert settings.x_offset == 5
    assert settings.blur == 20
    assert settings.to_dict()["xOffset"] == 5


def test_shell_result_dict_omits_unset_overrides():
    assert ShellResult(base64="data:x").to_dict() == {"base64": "data:x"}

    result = ShellResult(
        base64="data:x",
        text_config=TextSettings(text="Hi", is_vertical=True),
        bg_type=BackgroundType.TRANSPARENT,
    )
    data = result.to_dict()

    assert data["textConfig"]["isVertical"] is True
    assert data["bgType"] == "transparent"
    assert ShellResult.from_dict(data) == result


def test_screenshot_items_get_distinct_ids():
    ids = {ScreenshotItem(src=b"").id for _ in range(50)}

    assert len(ids) == 50
    assert all(len(item_id) == 9 for item_id in ids)
