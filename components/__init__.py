from components.signature_canvas import signature_canvas, signature_canvas_available

__all__ = ["signature_canvas", "signature_canvas_available"]
