import pytest

from conftest import GREEN, make_template, png_bytes, solid_image, split_image
from frameflow.commands.export import Exporter, export_filename
from frameflow.commands.generate_shells import ShellBatch, find_next_task
from frameflow.errors import SinkError
from frameflow.models import BackgroundSettings, BackgroundType, ScreenshotItem, ShellResult, TextSettings
from frameflow.services.image_io import load_image
from frameflow.services.result_store import ResultStore
from frameflow.services.sinks import DeliverySink, MemorySink


class FailingSink(DeliverySink):
    """Accepts ``limit`` images, then fails"""

    def __init__(self, limit):
        super().__init__()
        self.limit = limit
        self.delivered = []

    @property
    def name(self):
        return "failing"

    def deliver(self, image, filename):
        if len(self.delivered) >= self.limit:
            raise SinkError("disk full")
        self.delivered.append(filename)
        return True


class RejectingSink(DeliverySink):
    """Reports failure through its return value"""

    @property
    def name(self):
        return "rejecting"

    def deliver(self, image, filename):
        return False


@pytest.fixture
def items():
    return [
        ScreenshotItem(src=png_bytes(split_image(80, 160)), id="home"),
        ScreenshotItem(src=png_bytes(split_image(80, 160)), id="cart"),
    ]


@pytest.fixture
def templates():
    return [
        make_template(template_id="t1", name="Pixel 8"),
        make_template(rotation=90, template_id="t2", name="Pixel 8  Landscape"),
    ]


def test_find_next_task_order(items, templates):
    store = ResultStore()

    assert find_next_task(items, templates, store) == (items[0], templates[0])

    store.put_result("home", "t1", ShellResult(base64="x"))
    assert find_next_task(items, templates, store) == (items[0], templates[1])

    skip = {("home", "t2")}
    assert find_next_task(items, templates, store, skip) == (items[1], templates[0])


def test_batch_fills_every_pair(items, templates):
    store = ResultStore()
    seen = []

    outcome = ShellBatch(store, on_result=lambda item, template: seen.append((item.id, template.id))).run(
        items, templates
    )

    assert outcome.composed == 4
    assert outcome.failed_count == 0
    assert seen == [("home", "t1"), ("home", "t2"), ("cart", "t1"), ("cart", "t2")]
    assert load_image(store.get("home", "t2").base64).size == (200, 100)


def test_batch_never_recomputes_existing_results(items, templates):
    store = ResultStore()
    store.put_result("home", "t1", ShellResult(base64="cached"))

    outcome = ShellBatch(store).run(items, templates)

    assert outcome.composed == 3
    assert store.get("home", "t1").base64 == "cached"


def test_batch_continues_after_decode_failure(templates):
    store = ResultStore()
    items = [
        ScreenshotItem(src=b"broken", id="bad"),
        ScreenshotItem(src=png_bytes(split_image(80, 160)), id="good"),
    ]

    outcome = ShellBatch(store).run(items, templates)

    assert outcome.composed == 2
    assert outcome.failed == [("bad", "t1"), ("bad", "t2")]
    assert store.has("good", "t1") and store.has("good", "t2")
    assert not store.has("bad", "t1")


def test_batch_with_nothing_to_do(items):
    assert ShellBatch(ResultStore()).run(items, []).composed == 0


def test_export_filename():
    template = make_template(name="Pixel 8  Pro")
    item = ScreenshotItem(src=b"", id="abc123def")

    assert export_filename(template, item) == "HONOR-Shell_Pixel_8_Pro_abc123def.png"
    assert export_filename(template, item, brand="Acme") == "Acme_Pixel_8_Pro_abc123def.png"


def _filled_store(items, templates):
    store = ResultStore()
    ShellBatch(store).run(items, templates)
    return store


def test_export_delivers_in_stable_order(items, templates):
    store = _filled_store(items, templates)
    sink = MemorySink()

    report = Exporter(store, sink, delay=0).export_all(items, templates)

    assert report.status == "ok"
    assert report.ok
    assert sink.filenames == [
        "HONOR-Shell_Pixel_8_home.png",
        "HONOR-Shell_Pixel_8_Landscape_home.png",
        "HONOR-Shell_Pixel_8_cart.png",
        "HONOR-Shell_Pixel_8_Landscape_cart.png",
    ]
    assert load_image(sink.delivered[0][1]).size == (100, 200)


def test_export_applies_background_override(items, templates):
    store = _filled_store(items, templates)
    store.set_bg_type("home", "t1", BackgroundType.BLUR)
    sink = MemorySink()

    Exporter(store, sink, delay=0).export_all(items[:1], templates[:1])

    assert load_image(sink.delivered[0][1]).size == (150, 300)


def test_export_uses_custom_background(items, templates):
    store = _filled_store(items, templates)
    settings = BackgroundSettings(type=BackgroundType.BLUR, custom_src=solid_image(10, 10, GREEN))
    sink = MemorySink()

    Exporter(store, sink, settings=settings, delay=0).export_all(items[:1], templates[:1])

    final = load_image(sink.delivered[0][1])
    r, g, b, a = final.getpixel((1, 1))
    assert g > 200 and r < 5 and a == 255


def test_export_skips_pairs_without_result(items, templates):
    store = ResultStore()
    ShellBatch(store).run(items[:1], templates)

    report = Exporter(store, MemorySink(), delay=0).export_all(items, templates)

    assert len(report.delivered) == 2
    assert report.skipped == 2


def test_export_nothing_is_empty(items, templates):
    report = Exporter(ResultStore(), MemorySink(), delay=0).export_all(items, templates)

    assert report.status == "empty"
    assert report.ok
    assert report.delivered == []


def test_export_stops_on_sink_failure(items, templates):
    store = _filled_store(items, templates)
    sink = FailingSink(limit=2)

    report = Exporter(store, sink, delay=0).export_all(items, templates)

    assert report.status == "failed"
    assert not report.ok
    assert report.error == "disk full"
    assert report.delivered == sink.delivered
    assert len(report.delivered) == 2


def test_export_continues_after_decode_failure(items, templates):
    store = _filled_store(items, templates)
    store.put_result("home", "t1", ShellResult(base64="data:image/png;base64,AAAA"))

    report = Exporter(store, MemorySink(), delay=0).export_all(items, templates)

    assert report.status == "ok"
    assert report.failed == ["HONOR-Shell_Pixel_8_home.png"]
    assert len(report.delivered) == 3


def test_export_paces_deliveries(items, templates, monkeypatch):
    store = _filled_store(items, templates)
    sleeps = []
    monkeypatch.setattr("frameflow.commands.export.time.sleep", sleeps.append)

    Exporter(store, MemorySink(), delay=0.4).export_all(items, templates)

    assert sleeps == [0.4, 0.4, 0.4]


def test_export_defaults_to_sink_pacing(items, templates, monkeypatch):
    store = _filled_store(items, templates)
    sleeps = []
    monkeypatch.setattr("frameflow.commands.export.time.sleep", sleeps.append)

    Exporter(store, MemorySink()).export_all(items, templates)

    assert sleeps == []


def test_export_stops_when_sink_returns_false(items, templates):
    store = _filled_store(items, templates)

    report = Exporter(store, RejectingSink(), delay=0).export_all(items, templates)

    assert report.status == "failed"
    assert not report.ok
    assert report.delivered == []
    assert "HONOR-Shell_Pixel_8_home.png" in report.error


def test_export_invalid_text_colour_fails_only_that_image(items, templates):
    store = _filled_store(items, templates)
    store.set_text_config("home", "t1", TextSettings(text="Hi", color="#12"))
    sink = MemorySink()

    report = Exporter(store, sink, delay=0).export_all(items, templates)

    assert report.status == "ok"
    assert report.failed == ["HONOR-Shell_Pixel_8_home.png"]
    assert sink.filenames == [
        "HONOR-Shell_Pixel_8_Landscape_home.png",
        "HONOR-Shell_Pixel_8_cart.png",
        "HONOR-Shell_Pixel_8_Landscape_cart.png",
    ]


def test_export_where_nothing_composes_is_failed(items, templates):
    store = ResultStore()
    store.put_result("home", "t1", ShellResult(base64="data:image/png;base64,AAAA"))

    report = Exporter(store, MemorySink(), delay=0).export_all(items, templates)

    assert report.status == "failed"
    assert not report.ok
    assert report.delivered == []
    assert report.failed == ["HONOR-Shell_Pixel_8_home.png"]
    assert report.error
