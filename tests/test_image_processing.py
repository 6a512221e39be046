import base64
import io
import unittest

from PIL import Image

from image_utils import (
    _compress_bytes_to_limit,
    data_url_to_bytes,
    data_url_to_image,
    image_has_ink,
    permit_kind,
    permit_preview_kind,
    prepare_permit_file,
)


def _png_bytes(img: Image.Image) -> bytes:
    buf = io.BytesIO()
    img.save(buf, format="PNG")
    return buf.getvalue()


def _data_url(raw: bytes) -> str:
    return "data:image/png;base64," + base64.b64encode(raw).decode("ascii")


class ImageProcessingTests(unittest.TestCase):
    def test_transparent_png_composites_on_white_when_forced_jpeg(self) -> None:
        img = Image.new("RGBA", (10, 10), (0, 0, 0, 0))
        img.putpixel((5, 5), (255, 0, 0, 255))

        ok, out_bytes, ct, err = _compress_bytes_to_limit(
            _png_bytes(img),
            max_mb=1,
            _purpose="test",
            prefer_fmt="JPEG",
        )

        self.assertTrue(ok, msg=err)
        self.assertEqual(ct, "image/jpeg")

        out_img = Image.open(io.BytesIO(out_bytes))
        self.assertEqual(out_img.mode, "RGB")
        pixel = out_img.getpixel((0, 0))
        self.assertTrue(all(channel >= 250 for channel in pixel), msg=f"Pixel was not near white: {pixel}")

    def test_data_url_split(self) -> None:
        raw = _png_bytes(Image.new("RGBA", (4, 4), (0, 0, 0, 0)))
        mime, out = data_url_to_bytes(_data_url(raw))
        self.assertEqual(mime, "image/png")
        self.assertEqual(out, raw)

    def test_data_url_rejects_garbage(self) -> None:
        self.assertEqual(data_url_to_bytes("not a data url"), ("", b""))
        self.assertEqual(data_url_to_bytes("data:image/png;base64,@@@"), ("", b""))
        self.assertIsNone(data_url_to_image(""))

    def test_data_url_to_image_flattens_on_background(self) -> None:
        img = Image.new("RGBA", (6, 6), (0, 0, 0, 0))
        img.putpixel((2, 2), (0, 0, 0, 255))
        out = data_url_to_image(_data_url(_png_bytes(img)), background=(255, 255, 255))
        self.assertEqual(out.mode, "RGB")
        self.assertEqual(out.getpixel((0, 0)), (255, 255, 255))
        self.assertEqual(out.getpixel((2, 2)), (0, 0, 0))

    def test_ink_detection(self) -> None:
        blank = Image.new("RGBA", (50, 50), (0, 0, 0, 0))
        self.assertFalse(image_has_ink(blank))
        self.assertFalse(image_has_ink(None))

        inked = blank.copy()
        for x in range(10, 40):
            inked.putpixel((x, 25), (31, 41, 55, 255))
        self.assertTrue(image_has_ink(inked))
        self.assertTrue(image_has_ink(data_url_to_image(_data_url(_png_bytes(inked)))))


class PermitFileTests(unittest.TestCase):
    def test_permit_kind(self) -> None:
        self.assertEqual(permit_kind("tillstand.PDF"), "pdf")
        self.assertEqual(permit_kind("scan", "application/pdf"), "pdf")
        self.assertEqual(permit_kind("photo.jpeg"), "image")
        self.assertEqual(permit_kind("blob", "image/webp"), "image")
        self.assertEqual(permit_kind("notes.docx"), "other")

    def test_preview_kind_from_url(self) -> None:
        self.assertEqual(permit_preview_kind(None), "none")
        self.assertEqual(permit_preview_kind("https://x.supabase.co/storage/v1/object/public/permits/dm-1/a.pdf"), "pdf")
        self.assertEqual(permit_preview_kind("https://x.supabase.co/storage/v1/object/public/permits/dm-1/a.png?"), "image")

    def test_pdf_accepted(self) -> None:
        data = b"%PDF-1.4\n%fake\n"
        ok, out, ct, err = prepare_permit_file("permit.pdf", data, "application/pdf", 1.0)
        self.assertTrue(ok, msg=err)
        self.assertEqual(out, data)
        self.assertEqual(ct, "application/pdf")

    def test_fake_pdf_rejected(self) -> None:
        ok, out, _, err = prepare_permit_file("permit.pdf", b"hello", "application/pdf", 1.0)
        self.assertFalse(ok)
        self.assertEqual(out, b"")
        self.assertIn("Invalid PDF", err)

    def test_small_image_passes_through(self) -> None:
        data = _png_bytes(Image.new("RGB", (20, 20), (200, 10, 10)))
        ok, out, ct, err = prepare_permit_file("permit.png", data, "image/png", 1.0)
        self.assertTrue(ok, msg=err)
        self.assertEqual(out, data)
        self.assertEqual(ct, "image/png")

    def test_unsupported_type(self) -> None:
        ok, _, _, err = prepare_permit_file("permit.txt", b"abc", "text/plain", 1.0)
        self.assertFalse(ok)
        self.assertIn("Unsupported", err)


if __name__ == "__main__":
    unittest.main()
