import io

from PIL import Image

from blessing_bot.core.placement import BoundingBox, ObjectAnnotation
from blessing_bot.core.text_render import EMOJI_PLACEHOLDER, PillowTextMeasurer, RenderOptions, render_greeting


class RecordingSurface:
    def __init__(self, source):
        self.source = source
        self.rects = []
        self.texts = []
        self.images = []

    def fill_rect(self, x, y, width, height, color):
        self.rects.append((x, y, width, height, color))

    def draw_text(self, text, x, y, font, color):
        self.texts.append(text)

    def draw_image(self, bitmap, x, y, size):
        self.images.append((bitmap.size, size))

    def to_image(self):
        return self.source.copy()


def _png(color=(255, 0, 0, 255), size=(72, 72)):
    buffer = io.BytesIO()
    Image.new("RGBA", size, color).save(buffer, "PNG")
    return buffer.getvalue()


def _failing_fetch(codepoint):
    raise OSError(f"no bitmap for {codepoint}")


def test_empty_text_returns_identical_copy_without_surface():
    image = Image.new("RGB", (64, 48), (10, 20, 30))
    created = []

    def factory(source):
        created.append(source)
        return RecordingSurface(source)

    result = render_greeting(image, "", _failing_fetch, surface_factory=factory)
    assert created == []
    assert result is not image
    assert result.tobytes() == image.tobytes()


def test_failed_emoji_draws_placeholder():
    image = Image.new("RGB", (400, 400), "white")
    surfaces = []

    def factory(source):
        surfaces.append(RecordingSurface(source))
        return surfaces[0]

    render_greeting(image, "早安(heart)", _failing_fetch, measurer=PillowTextMeasurer(), surface_factory=factory)
    surface = surfaces[0]
    assert EMOJI_PLACEHOLDER in surface.texts
    assert "早安" in surface.texts
    assert surface.images == []
    assert len(surface.rects) == 1


def test_emoji_bitmap_is_drawn_at_font_size():
    image = Image.new("RGB", (400, 400), "white")
    fetched = []

    def fetch(codepoint):
        fetched.append(codepoint)
        return _png()

    surfaces = []

    def factory(source):
        surfaces.append(RecordingSurface(source))
        return surfaces[0]

    measurer = PillowTextMeasurer()
    render_greeting(image, "(sun)平安", fetch, measurer=measurer, surface_factory=factory)
    assert fetched == ["2600"]
    assert len(surfaces[0].images) == 1
    assert surfaces[0].images[0][1] == measurer.font_size


def test_rendered_image_keeps_size_and_mode():
    image = Image.new("RGB", (320, 240), (0, 128, 255))
    result = render_greeting(image, "平安喜樂(flower)", lambda code: _png(), options=RenderOptions())
    assert result.size == image.size
    assert result.mode == "RGB"
    assert result.tobytes() != image.tobytes()


def test_panel_avoids_detected_object():
    image = Image.new("RGB", (400, 400), (0, 0, 0))
    options = RenderOptions(panel_color=(255, 255, 255, 255))
    bottom_object = ObjectAnnotation(BoundingBox(0.0, 0.6, 1.0, 1.0))
    result = render_greeting(image, "平安", _failing_fetch, annotations=[bottom_object], options=options)
    # text moved to the top-left region, the bottom of the image is untouched
    assert result.crop((0, 280, 400, 400)).getbbox() is None
    assert result.crop((0, 0, 200, 140)).getbbox() is not None
