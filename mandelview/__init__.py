"""Grayscale Mandelbrot viewer with drag-to-pan and scroll-to-zoom."""

from .config import ViewerConfig
from .renderer import (
    FractalRenderer,
    calculate_escape,
    escape_time,
    pixel_to_complex,
    render_frame,
    row_bands,
)
from .viewport import InputDeltas, ViewSnapshot, ViewportState, apply_input

__all__ = [
    "FractalRenderer",
    "InputDeltas",
    "ViewSnapshot",
    "ViewerConfig",
    "ViewportState",
    "apply_input",
    "calculate_escape",
    "escape_time",
    "pixel_to_complex",
    "render_frame",
    "row_bands",
]
