import streamlit.components.v1 as components
from pathlib import Path

# Declare the component. Streamlit will serve index.html from this folder.
_component = components.declare_component(
    name="signature_canvas",
    path=str(Path(__file__).parent),
)

def signature_canvas(
    *,
    width: int = 600,
    height: int = 200,
    stroke_width: float = 2.5,
    stroke_color: str = "#1f2937",
    background_color: str = "#ffffff",
    key: str | None = None,
):
    """Pointer/touch signature surface.

    The browser draws strokes locally and reports them after every pointer release:
      {"strokes": [[[x, y], ...], ...], "display_width": float, "display_height": float,
       "pixel_ratio": float, "nonce": int}
    Coordinates are CSS pixels relative to the canvas element.
    """
    return _component(
        logical_width=int(width),
        logical_height=int(height),
        stroke_width=float(stroke_width),
        stroke_color=str(stroke_color),
        background_color=str(background_color),
        height=int(height) + 8,
        key=key,
        default=None,
    )


def signature_canvas_available() -> bool:
    return (Path(__file__).parent / "index.html").exists()
