"""Feed browser canvas output into a SignaturePad.

Browsers report whole stroke lists on every rerun; the pad wants begin/extend/end
events. Only strokes the pad has not committed yet are replayed. When the
browser surface was rebuilt the pad is cleared and the whole list is replayed.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Sequence

from signature_pad import SignaturePad, SurfaceGeometry

LOGGER = logging.getLogger("drinkmix")

RawStroke = List[Sequence[float]]


def _as_point(value: Any) -> Optional[Sequence[float]]:
    if isinstance(value, dict):
        value = (value.get("x"), value.get("y"))
    if not isinstance(value, (list, tuple)) or len(value) < 2:
        return None
    try:
        return (float(value[0]), float(value[1]))
    except (TypeError, ValueError):
        return None


def clean_strokes(raw: Any) -> List[RawStroke]:
    out: List[RawStroke] = []
    for stroke in raw or []:
        if not isinstance(stroke, (list, tuple)):
            continue
        points = [p for p in (_as_point(v) for v in stroke) if p is not None]
        if points:
            out.append(points)
    return out


def replay_strokes(pad: SignaturePad, strokes: List[RawStroke]) -> int:
    for points in strokes:
        pad.begin(points[0])
        for p in points[1:]:
            pad.extend(p)
        pad.end()
    return len(strokes)


def geometry_from_payload(pad: SignaturePad, payload: Dict[str, Any]) -> SurfaceGeometry:
    def _f(key: str, fallback: float) -> float:
        try:
            v = float(payload.get(key))
        except (TypeError, ValueError):
            return fallback
        return v if v > 0 else fallback

    g = pad.geometry
    return SurfaceGeometry(
        width=g.width,
        height=g.height,
        display_width=_f("display_width", g.display_width),
        display_height=_f("display_height", g.display_height),
        pixel_ratio=_f("pixel_ratio", g.pixel_ratio),
    )


def _as_nonce(value: Any) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return 0


def _remounted(pad: SignaturePad, mount: str, nonce: int) -> bool:
    if not mount:
        return False
    if pad.source is None:
        return True
    last_mount, last_nonce = pad.source
    return mount != last_mount or nonce < last_nonce


def _same_prefix(pad: SignaturePad, strokes: List[RawStroke], tolerance: float = 0.5) -> bool:
    """True when the first committed strokes still match what the browser reports."""
    for stroke, raw in zip(pad.committed_strokes, strokes):
        if len(stroke.points) != len(raw):
            return False
        for (x, y), p in zip(stroke.points, raw):
            nx, ny = pad.geometry.normalize(p)
            if abs(nx - x) > tolerance or abs(ny - y) > tolerance:
                return False
    return True


def sync_pad_from_payload(pad: SignaturePad, payload: Optional[Dict[str, Any]]) -> int:
    """Bring the pad in line with a component payload. Returns the number of strokes replayed."""
    if not isinstance(payload, dict):
        return 0

    geometry = geometry_from_payload(pad, payload)
    if geometry != pad.geometry:
        pad.resize(geometry)

    strokes = clean_strokes(payload.get("strokes"))
    mount = str(payload.get("mount_id") or "")
    nonce = _as_nonce(payload.get("nonce"))
    committed = len(pad.committed_strokes)

    if committed and (
        _remounted(pad, mount, nonce)
        or len(strokes) < committed
        or not _same_prefix(pad, strokes)
    ):
        # browser surface was rebuilt; its list wins
        LOGGER.debug("Browser strokes diverged; rebuilding pad", extra={"ctx": {"component": "signature", "mount": mount}})
        pad.clear()
        committed = 0

    if mount:
        pad.source = (mount, nonce)

    fresh = strokes[committed:]
    if fresh:
        LOGGER.debug("Replaying strokes", extra={"ctx": {"component": "signature", "count": len(fresh)}})
    return replay_strokes(pad, fresh)


def strokes_from_fabric_json(json_data: Optional[Dict[str, Any]]) -> List[RawStroke]:
    """Point lists from streamlit-drawable-canvas freedraw output (Fabric.js path objects)."""
    strokes: List[RawStroke] = []
    for obj in (json_data or {}).get("objects", []) or []:
        if not isinstance(obj, dict) or obj.get("type") != "path":
            continue
        points: RawStroke = []
        for cmd in obj.get("path") or []:
            if not isinstance(cmd, (list, tuple)) or len(cmd) < 3:
                continue
            op = str(cmd[0]).upper()
            if op not in ("M", "L", "Q", "C"):
                continue
            p = _as_point(cmd[-2:])
            if p is not None:
                points.append(p)
        if points:
            strokes.append(points)
    return strokes
