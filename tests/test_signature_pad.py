import base64
import io
import random
import unittest

from PIL import Image

from signature_pad import (
    DATA_URI_PREFIX,
    PadState,
    SignaturePad,
    Stroke,
    StrokeRenderer,
    SurfaceGeometry,
    encode_png_data_uri,
)


def _decode(uri: str) -> Image.Image:
    assert uri.startswith(DATA_URI_PREFIX)
    return Image.open(io.BytesIO(base64.b64decode(uri[len(DATA_URI_PREFIX):])))


def _ink_pixels(img: Image.Image) -> int:
    return sum(1 for a in img.getchannel("A").getdata() if a > 0)


class Recorder:
    def __init__(self):
        self.calls = []

    def __call__(self, value: str) -> None:
        self.calls.append(value)


def _draw(pad: SignaturePad, points) -> None:
    pad.begin(points[0])
    for p in points[1:]:
        pad.extend(p)
    pad.end()


class ScenarioTests(unittest.TestCase):
    def test_single_stroke_emits_png_data_uri(self) -> None:
        rec = Recorder()
        pad = SignaturePad(on_change=rec)
        pad.begin((10, 10))
        pad.extend((20, 10))
        pad.extend((20, 20))
        pad.end()

        self.assertFalse(pad.is_empty())
        self.assertEqual(len(rec.calls), 1)
        self.assertTrue(rec.calls[0].startswith("data:image/"))
        self.assertEqual(rec.calls[0], pad.signature_value)
        self.assertEqual(pad.state, PadState.HAS_SIGNATURE)

    def test_clear_on_fresh_pad(self) -> None:
        rec = Recorder()
        pad = SignaturePad(on_change=rec)
        pad.clear()
        self.assertTrue(pad.is_empty())
        self.assertEqual(pad.signature_value, "")
        self.assertEqual(rec.calls, [""])
        self.assertEqual(pad.state, PadState.EMPTY)

    def test_clear_after_stroke_leaves_blank_surface(self) -> None:
        pad = SignaturePad()
        _draw(pad, [(10, 10), (100, 50), (200, 80)])
        self.assertGreater(_ink_pixels(pad.image), 0)

        pad.clear()
        self.assertTrue(pad.is_empty())
        pad.redraw_all([])
        self.assertEqual(_ink_pixels(pad.image), 0)

    def test_two_strokes_are_kept_in_order(self) -> None:
        pad = SignaturePad()
        _draw(pad, [(10, 10), (50, 10)])
        _draw(pad, [(10, 100), (50, 150)])

        strokes = pad.committed_strokes
        self.assertEqual(len(strokes), 2)
        self.assertEqual(strokes[0].points[0], (10.0, 10.0))
        self.assertEqual(strokes[1].points[0], (10.0, 100.0))

        pad.redraw_all()
        img = pad.image
        ratio = pad.geometry.pixel_ratio
        self.assertGreater(img.getpixel((int(30 * ratio), int(10 * ratio)))[3], 0)
        self.assertGreater(img.getpixel((int(30 * ratio), int(125 * ratio)))[3], 0)


class PropertyTests(unittest.TestCase):
    def test_emptiness_tracks_closed_strokes(self) -> None:
        rng = random.Random(7)
        for _ in range(30):
            pad = SignaturePad()
            closed = 0
            for _ in range(rng.randint(0, 12)):
                op = rng.choice(["begin", "extend", "end", "end"])
                if op == "begin":
                    pad.begin((rng.uniform(0, 600), rng.uniform(0, 200)))
                elif op == "extend":
                    pad.extend((rng.uniform(0, 600), rng.uniform(0, 200)))
                else:
                    if pad.state == PadState.DRAWING:
                        closed += 1
                    pad.end()
                if pad.state != PadState.DRAWING:
                    self.assertEqual(pad.is_empty(), closed == 0)
                    self.assertEqual(pad.signature_value == "", closed == 0)

    def test_open_stroke_is_not_empty(self) -> None:
        pad = SignaturePad()
        pad.begin((5, 5))
        self.assertFalse(pad.is_empty())
        self.assertEqual(pad.state, PadState.DRAWING)
        self.assertEqual(pad.signature_value, "")

    def test_clear_always_notifies_once(self) -> None:
        rec = Recorder()
        pad = SignaturePad(on_change=rec)
        pad.clear()
        pad.clear()
        self.assertEqual(rec.calls, ["", ""])
        self.assertEqual(pad.state, PadState.EMPTY)

    def test_one_segment_per_move(self) -> None:
        for n in (0, 1, 5, 40):
            pad = SignaturePad()
            pad.begin((1, 1))
            for i in range(n):
                pad.extend((2 + i, 1 + i % 3))
            pad.end()
            self.assertEqual(pad.renderer.segment_count, n)

    def test_redraw_is_byte_identical(self) -> None:
        pad = SignaturePad()
        _draw(pad, [(12.5, 30), (80, 42.25), (140.75, 90), (141, 91)])
        _draw(pad, [(300, 150)])
        _draw(pad, [(400, 20), (590, 190)])
        incremental = pad.signature_value

        pad.redraw_all(pad.committed_strokes)
        self.assertEqual(pad.encode(), incremental)

    def test_no_callback_mid_stroke(self) -> None:
        rec = Recorder()
        pad = SignaturePad(on_change=rec)
        pad.begin((1, 1))
        for i in range(10):
            pad.extend((i * 10, i * 5))
            self.assertEqual(rec.calls, [])
        pad.end()
        self.assertEqual(len(rec.calls), 1)


class InputSequenceTests(unittest.TestCase):
    def test_out_of_order_events_are_ignored(self) -> None:
        rec = Recorder()
        pad = SignaturePad(on_change=rec)
        pad.extend((10, 10))
        pad.end()
        self.assertTrue(pad.is_empty())
        self.assertEqual(rec.calls, [])

        pad.begin((10, 10))
        pad.begin((300, 100))
        pad.end()
        self.assertEqual(len(pad.committed_strokes), 1)
        self.assertEqual(pad.committed_strokes[0].points, [(10.0, 10.0)])

    def test_single_tap_leaves_a_dot(self) -> None:
        pad = SignaturePad()
        _draw(pad, [(100, 100)])
        self.assertFalse(pad.is_empty())
        self.assertGreater(_ink_pixels(_decode(pad.signature_value)), 0)

    def test_committed_strokes_is_a_copy(self) -> None:
        pad = SignaturePad()
        _draw(pad, [(1, 1), (2, 2)])
        strokes = pad.committed_strokes
        self.assertIsInstance(strokes, tuple)
        self.assertTrue(all(s.closed for s in strokes))

    def test_bind_replaces_callback(self) -> None:
        first, second = Recorder(), Recorder()
        pad = SignaturePad(on_change=first)
        pad.bind(second)
        _draw(pad, [(1, 1), (9, 9)])
        self.assertEqual(first.calls, [])
        self.assertEqual(len(second.calls), 1)


class GeometryTests(unittest.TestCase):
    def test_normalize_scales_display_to_logical(self) -> None:
        g = SurfaceGeometry(width=600, height=200, display_width=300, display_height=100, pixel_ratio=3)
        self.assertEqual(g.normalize((150, 50)), (300.0, 100.0))
        self.assertEqual(g.raster_size, (1800, 600))
        self.assertEqual(g.to_pixels((300.0, 100.0)), (900.0, 300.0))

    def test_normalize_clamps_to_surface(self) -> None:
        g = SurfaceGeometry(width=600, height=200, display_width=600, display_height=200)
        self.assertEqual(g.normalize((-20, 500)), (0.0, 200.0))

    def test_bad_display_values_fall_back(self) -> None:
        g = SurfaceGeometry(width=600, height=200, display_width=0, display_height=-1, pixel_ratio=0)
        self.assertEqual((g.display_width, g.display_height, g.pixel_ratio), (600.0, 200.0, 1.0))

    def test_same_stroke_lands_in_same_place_at_any_display_size(self) -> None:
        small = SignaturePad(geometry=SurfaceGeometry(display_width=300, display_height=100, pixel_ratio=2))
        large = SignaturePad(geometry=SurfaceGeometry(display_width=1200, display_height=400, pixel_ratio=2))
        _draw(small, [(50, 25), (250, 75)])
        _draw(large, [(200, 100), (1000, 300)])
        self.assertEqual(small.committed_strokes[0].points, large.committed_strokes[0].points)
        self.assertEqual(small.signature_value, large.signature_value)

    def test_raster_follows_pixel_ratio(self) -> None:
        pad = SignaturePad(geometry=SurfaceGeometry(pixel_ratio=1.5))
        _draw(pad, [(10, 10), (20, 20)])
        self.assertEqual(_decode(pad.signature_value).size, (900, 300))


class ResizeTests(unittest.TestCase):
    def test_resize_redraws_committed_strokes(self) -> None:
        rec = Recorder()
        pad = SignaturePad(on_change=rec, geometry=SurfaceGeometry(pixel_ratio=1))
        _draw(pad, [(10, 10), (100, 100)])
        before = pad.signature_value

        pad.resize(SurfaceGeometry(pixel_ratio=2))
        self.assertEqual(pad.image.size, (1200, 400))
        self.assertGreater(pad.image.getpixel((110, 110))[3], 0)
        self.assertEqual(pad.signature_value, before)
        self.assertEqual(len(rec.calls), 1)

    def test_resize_without_raster_change_keeps_buffer(self) -> None:
        pad = SignaturePad()
        _draw(pad, [(10, 10), (100, 100)])
        img = pad.image
        pad.resize(SurfaceGeometry(display_width=300, display_height=100))
        self.assertIs(pad.image, img)
        self.assertEqual(pad.geometry.display_width, 300)

    def test_open_stroke_survives_resize(self) -> None:
        pad = SignaturePad(geometry=SurfaceGeometry(pixel_ratio=1))
        pad.begin((10, 10))
        pad.extend((50, 10))
        pad.resize(SurfaceGeometry(pixel_ratio=2))
        pad.extend((90, 10))
        pad.end()
        self.assertEqual(len(pad.committed_strokes[0].points), 3)
        self.assertGreater(pad.image.getpixel((60, 20))[3], 0)


class RendererTests(unittest.TestCase):
    def test_encode_is_deterministic(self) -> None:
        r = StrokeRenderer(SurfaceGeometry())
        r.redraw_all([Stroke(points=[(1, 1), (30, 40)], closed=True)])
        self.assertEqual(encode_png_data_uri(r.image), encode_png_data_uri(r.image.copy()))

    def test_pen_width_has_a_floor(self) -> None:
        r = StrokeRenderer(SurfaceGeometry(pixel_ratio=0.1), pen_width=1.0)
        self.assertEqual(r.pen_px, 1)

    def test_empty_strokes_are_skipped(self) -> None:
        r = StrokeRenderer(SurfaceGeometry())
        r.redraw_all([Stroke(points=[])])
        self.assertEqual(_ink_pixels(r.image), 0)
        self.assertEqual(r.segment_count, 0)


if __name__ == "__main__":
    unittest.main()
