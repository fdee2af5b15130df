"""View state for the Mandelbrot viewer and the rules that update it."""

from dataclasses import dataclass
import logging
import math

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ViewSnapshot:
    """Read-only copy of the viewport handed to the renderer."""
    scale: float
    offset_x: float
    offset_y: float
    max_iterations: int


@dataclass
class ViewportState:
    """Scale and pan offset of the visible window into the complex plane.

    Larger scales zoom in. The offset is in plane units and is added to the
    geometrically mapped coordinate of every pixel.
    """
    scale: float = 0.5
    center_offset: tuple = (0.0, 0.0)
    max_iterations: int = 255
    zoom_in_factor: float = 1.1
    zoom_out_factor: float = 0.9

    def apply_zoom(self, delta: float):
        """Shrink the scale on a negative delta, grow it on a positive one.

        Zero and non-finite deltas are ignored. A step that would leave the
        scale at zero, negative or infinite is dropped and the current scale
        is kept.
        """
        if delta == 0 or not math.isfinite(delta):
            return
        factor = self.zoom_out_factor if delta < 0 else self.zoom_in_factor
        new_scale = self.scale * factor
        if not math.isfinite(new_scale) or new_scale <= 0:
            logger.debug("Ignoring zoom step: scale %r would become %r", self.scale, new_scale)
            return
        self.scale = new_scale

    def apply_pan(self, pixel_delta: tuple, viewport_half_size: tuple):
        """Move the offset against a drag, in plane units at the current zoom."""
        dx, dy = pixel_delta
        half_w, half_h = viewport_half_size
        offset_x, offset_y = self.center_offset
        self.center_offset = (
            offset_x - dx / half_w / self.scale,
            offset_y - dy / half_h / self.scale,
        )

    def reset(self, scale: float = 0.5, offset: tuple = (0.0, 0.0)):
        self.scale = scale
        self.center_offset = tuple(offset)

    def snapshot(self) -> ViewSnapshot:
        return ViewSnapshot(
            scale=self.scale,
            offset_x=self.center_offset[0],
            offset_y=self.center_offset[1],
            max_iterations=self.max_iterations,
        )


@dataclass(frozen=True)
class InputDeltas:
    """Interaction requested by one batch of input events."""
    scroll: float = 0.0
    drag: tuple = (0.0, 0.0)
    reset: bool = False
    quit: bool = False

    @property
    def is_empty(self) -> bool:
        return self.scroll == 0 and self.drag == (0.0, 0.0) and not self.reset


def apply_input(viewport: ViewportState, deltas: InputDeltas,
                viewport_half_size: tuple, reset_scale: float = 0.5,
                reset_offset: tuple = (0.0, 0.0)) -> bool:
    """Apply one batch of deltas to the viewport. Returns True if it changed."""
    if deltas.is_empty:
        return False
    if deltas.reset:
        viewport.reset(reset_scale, reset_offset)
    # One zoom step per batch regardless of how far the wheel moved
    viewport.apply_zoom(deltas.scroll)
    if deltas.drag != (0.0, 0.0):
        viewport.apply_pan(deltas.drag, viewport_half_size)
    return True
