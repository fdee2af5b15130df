"""Startup configuration for the Mandelbrot viewer."""

from dataclasses import dataclass
from typing import Optional
import math

from .viewport import ViewportState


# =============================================================================
# Constants
# =============================================================================

WIDTH = 1024
HEIGHT = 1024

MAX_ITERATIONS = 255
ESCAPE_RADIUS = 64.0

# Scroll up multiplies the scale by ZOOM_IN_FACTOR, scroll down by ZOOM_OUT_FACTOR
ZOOM_IN_FACTOR = 1.1
ZOOM_OUT_FACTOR = 0.9
DEFAULT_SCALE = 0.5

WINDOW_TITLE = "Mandelbrot"


@dataclass(frozen=True)
class ViewerConfig:
    """Tunable values for one viewer session."""

    width: int = WIDTH
    height: int = HEIGHT
    max_iterations: int = MAX_ITERATIONS
    zoom_in_factor: float = ZOOM_IN_FACTOR
    zoom_out_factor: float = ZOOM_OUT_FACTOR
    escape_radius: float = ESCAPE_RADIUS
    initial_scale: float = DEFAULT_SCALE
    initial_offset: tuple = (0.0, 0.0)
    workers: Optional[int] = None

    def __post_init__(self):
        for name in ("width", "height", "max_iterations"):
            value = getattr(self, name)
            if not isinstance(value, int) or value <= 0:
                raise ValueError(f"{name} must be a positive integer, got {value!r}")
        for name in ("zoom_in_factor", "zoom_out_factor", "escape_radius", "initial_scale"):
            value = getattr(self, name)
            if not math.isfinite(value) or value <= 0:
                raise ValueError(f"{name} must be positive and finite, got {value!r}")
        if len(self.initial_offset) != 2 or not all(math.isfinite(v) for v in self.initial_offset):
            raise ValueError(f"initial_offset must be two finite numbers, got {self.initial_offset!r}")
        if self.workers is not None and self.workers <= 0:
            raise ValueError(f"workers must be positive, got {self.workers!r}")

    @property
    def half_size(self) -> tuple:
        return self.width / 2, self.height / 2

    def new_viewport(self) -> ViewportState:
        """Build the viewport the viewer starts with."""
        return ViewportState(
            scale=self.initial_scale,
            center_offset=tuple(self.initial_offset),
            max_iterations=self.max_iterations,
            zoom_in_factor=self.zoom_in_factor,
            zoom_out_factor=self.zoom_out_factor,
        )
