import base64
import binascii
import io
import logging
import re
from typing import Optional, Tuple

import numpy as np
from PIL import Image

from config import MAX_DIM_PX

LOGGER = logging.getLogger("drinkmix")

_DATA_URL_RE = re.compile(r"^data:(?P<mime>[\w.+-]+/[\w.+-]+)?(?P<b64>;base64)?,(?P<payload>.*)$", re.DOTALL)


def _human_mb(num_bytes: int) -> str:
    return f"{(num_bytes / (1024 * 1024)):.1f}MB"


def _image_has_transparency(img: Image.Image) -> bool:
    if img.mode in ("RGBA", "LA"):
        alpha = img.getchannel("A")
        return alpha.getextrema()[0] < 255
    if img.mode == "P":
        return "transparency" in img.info
    return False


def _composite_on_white(img: Image.Image) -> Image.Image:
    if img.mode in ("RGBA", "LA", "P"):
        rgba = img.convert("RGBA")
        white_bg = Image.new("RGB", rgba.size, (255, 255, 255))
        white_bg.paste(rgba, mask=rgba.split()[3])
        return white_bg
    return img.convert("RGB")


def _encode_image_bytes(img: Image.Image, fmt: str, quality: int = 85) -> bytes:
    buf = io.BytesIO()
    if fmt.upper() == "JPEG":
        if _image_has_transparency(img):
            img = _composite_on_white(img)
        elif img.mode != "RGB":
            img = img.convert("RGB")
        img.save(buf, format="JPEG", quality=int(quality), optimize=True)
    else:
        img.save(buf, format="PNG", optimize=True)
    return buf.getvalue()


# ============================================================
# DATA URLS (signatures are stored as PNG data URLs)
# ============================================================
def data_url_to_bytes(data_url: str) -> Tuple[str, bytes]:
    """Split a data URL into (mime, raw bytes). Returns ("", b"") when it is not one."""
    m = _DATA_URL_RE.match((data_url or "").strip())
    if not m:
        return "", b""
    mime = m.group("mime") or "text/plain"
    payload = m.group("payload")
    if not m.group("b64"):
        return mime, payload.encode("utf-8")
    try:
        return mime, base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError):
        return "", b""


def data_url_to_image(data_url: str, background: Optional[Tuple[int, int, int]] = None) -> Optional[Image.Image]:
    mime, raw = data_url_to_bytes(data_url)
    if not raw or not mime.startswith("image/"):
        return None
    try:
        img = Image.open(io.BytesIO(raw))
        img.load()
    except Exception as e:
        LOGGER.error("Failed to decode data URL image", extra={"ctx": {"component": "image", "error": type(e).__name__}})
        return None
    if background is not None and _image_has_transparency(img):
        rgba = img.convert("RGBA")
        bg = Image.new("RGB", rgba.size, background)
        bg.paste(rgba, mask=rgba.split()[3])
        return bg
    return img


# ============================================================
# PERMIT FILES (image or PDF)
# ============================================================
def permit_kind(filename: str, content_type: str = "") -> str:
    """'image', 'pdf' or 'other' based on content type or extension."""
    ct = (content_type or "").lower()
    ext = (filename or "").rsplit("?", 1)[0].rsplit(".", 1)[-1].lower() if "." in (filename or "") else ""
    if ct == "application/pdf" or ext == "pdf":
        return "pdf"
    if ct.startswith("image/") or ext in ("png", "jpg", "jpeg", "webp", "gif", "bmp"):
        return "image"
    return "other"


def permit_preview_kind(url: Optional[str]) -> str:
    if not url:
        return "none"
    return permit_kind(url)


def validate_image_file(file_bytes: bytes, max_mb: float, _purpose: str) -> Tuple[bool, str]:
    if not file_bytes:
        return False, "No image data received."

    size_bytes = len(file_bytes)
    max_bytes = int(max_mb * 1024 * 1024)

    try:
        img = Image.open(io.BytesIO(file_bytes))
        w, h = img.size
    except Exception:
        return False, "Invalid image file. Please upload a valid PNG/JPG."

    if w > MAX_DIM_PX or h > MAX_DIM_PX:
        return False, f"Image dimensions too large ({w}x{h}). Max allowed is {MAX_DIM_PX}x{MAX_DIM_PX}px."

    if size_bytes <= max_bytes:
        return True, ""

    return False, f"Image too large ({_human_mb(size_bytes)}). Please use an image under {max_mb:.0f}MB."


def validate_pdf_file(file_bytes: bytes, max_mb: float) -> Tuple[bool, str]:
    if not file_bytes:
        return False, "No file data received."
    if not file_bytes.lstrip()[:5].startswith(b"%PDF-"):
        return False, "Invalid PDF file."
    if len(file_bytes) > int(max_mb * 1024 * 1024):
        return False, f"PDF too large ({_human_mb(len(file_bytes))}). Please use a file under {max_mb:.0f}MB."
    return True, ""


# (scale, qualities) tried in order until the encoded permit fits.
_SHRINK_STEPS = [
    (1.0, (85, 75, 65, 55)),
    (0.8, (75, 65, 55)),
    (0.6, (70, 60, 50)),
    (0.45, (65, 50)),
]


def _compress_bytes_to_limit(
    file_bytes: bytes,
    max_mb: float,
    _purpose: str,
    prefer_fmt: Optional[str] = None,
) -> Tuple[bool, bytes, str, str]:
    """Re-encode (and if needed downscale) an image until it fits `max_mb`.

    Returns (ok, bytes, content_type, error). Transparent images stay PNG when that
    already fits, unless a format is forced.
    """
    limit = int(max_mb * 1024 * 1024)
    try:
        img = Image.open(io.BytesIO(file_bytes))
        img.load()
    except Exception:
        return False, b"", "", "Invalid image file. Please upload a valid PNG/JPG."

    w, h = img.size
    if w > MAX_DIM_PX or h > MAX_DIM_PX:
        return False, b"", "", f"Image dimensions too large ({w}x{h}). Max allowed is {MAX_DIM_PX}x{MAX_DIM_PX}px."

    fmt = (prefer_fmt or "JPEG").upper()
    if prefer_fmt is None and _image_has_transparency(img):
        as_png = _encode_image_bytes(img, "PNG")
        if len(as_png) <= limit:
            return True, as_png, "image/png", ""

    ct = "image/jpeg" if fmt == "JPEG" else "image/png"
    for scale, qualities in _SHRINK_STEPS:
        candidate = img if scale == 1.0 else img.resize((max(1, int(w * scale)), max(1, int(h * scale))))
        for q in qualities:
            out = _encode_image_bytes(candidate, fmt, quality=q)
            if len(out) <= limit:
                LOGGER.info(
                    "Permit image re-encoded",
                    extra={"ctx": {"component": "image", "from": _human_mb(len(file_bytes)), "to": _human_mb(len(out)), "scale": scale, "quality": q}},
                )
                return True, out, ct, ""

    return False, b"", "", f"Image too large ({_human_mb(len(file_bytes))}) and could not be compressed under {max_mb:.0f}MB."


def prepare_permit_file(filename: str, file_bytes: bytes, content_type: str, max_mb: float) -> Tuple[bool, bytes, str, str]:
    """Validate (and if needed shrink) an uploaded permit. Returns (ok, bytes, content_type, error)."""
    kind = permit_kind(filename, content_type)
    if kind == "pdf":
        ok, err = validate_pdf_file(file_bytes, max_mb)
        return ok, (file_bytes if ok else b""), "application/pdf", err
    if kind == "image":
        ok, err = validate_image_file(file_bytes, max_mb, "permit")
        if ok:
            return True, file_bytes, content_type or "image/png", ""
        if err.startswith("Image too large"):
            return _compress_bytes_to_limit(file_bytes, max_mb, "permit")
        return False, b"", "", err
    return False, b"", "", "Unsupported file type. Upload a PDF or an image (PNG/JPG/WEBP)."


def image_has_ink(img: Optional[Image.Image], min_pixels: int = 25) -> bool:
    """
    Pixel check for stored signatures (admin view only).
    Counts pixels that are opaque and clearly darker/different than a white page.
    """
    if img is None:
        return False
    arr = np.asarray(img.convert("RGBA"))
    if arr.ndim != 3 or arr.shape[2] < 4:
        return False
    alpha = arr[:, :, 3]
    rgb = arr[:, :, :3].astype(np.int16)
    diff = np.max(np.abs(rgb - 255), axis=2)
    ink_pixels = int(np.count_nonzero((alpha > 10) & (diff > 10)))
    return ink_pixels >= min_pixels
