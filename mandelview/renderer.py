"""Escape-time rendering of the Mandelbrot set into an RGBA pixel buffer.

Rows of the frame are split into contiguous bands, one per worker thread.
Each band is computed with numpy, which releases the GIL inside its array
operations, and written straight into its own slice of the caller's buffer.
"""

from concurrent.futures import ThreadPoolExecutor, wait
from typing import Optional
import logging
import math
import os
import time

import numpy as np

from .viewport import ViewSnapshot, ViewportState

logger = logging.getLogger(__name__)

ESCAPE_RADIUS = 64.0
MAX_INTENSITY = 255
BYTES_PER_PIXEL = 4


# =============================================================================
# Escape-time Kernels
# =============================================================================

def calculate_escape(c: tuple, max_iterations: int = 255,
                     escape_radius: float = ESCAPE_RADIUS) -> int:
    """Return the 0-based iteration at which c escapes, or 0 if it never does.

    Each step adds c to z before testing the magnitude, so the recorded index
    is the step whose sum first leaves the escape radius. Values are capped
    at 255.
    """
    c_re, c_im = c
    z_re, z_im = 0.0, 0.0
    for i in range(max_iterations):
        x = z_re + c_re
        y = z_im + c_im
        if math.sqrt(x * x + y * y) > escape_radius:
            return min(i, MAX_INTENSITY)
        z_re, z_im = x * x - y * y, 2.0 * x * y
    return 0


def escape_time(c_re: np.ndarray, c_im: np.ndarray, max_iterations: int,
                escape_radius: float = ESCAPE_RADIUS) -> np.ndarray:
    """Vectorised calculate_escape over arrays of plane coordinates.

    Escaped points are dropped from the working set after each step, so the
    cost of an iteration shrinks with the number of points still inside.
    """
    shape = np.shape(c_re)
    c_re = np.asarray(c_re, dtype=np.float64).ravel()
    c_im = np.asarray(c_im, dtype=np.float64).ravel()
    out = np.zeros(c_re.size, dtype=np.uint8)

    idx = np.arange(c_re.size)
    z_re = np.zeros_like(c_re)
    z_im = np.zeros_like(c_im)

    # Far outside the view c itself can overflow when squared
    with np.errstate(over="ignore", invalid="ignore"):
        for i in range(max_iterations):
            x = z_re + c_re
            y = z_im + c_im
            escaped = np.sqrt(x * x + y * y) > escape_radius
            if escaped.any():
                out[idx[escaped]] = min(i, MAX_INTENSITY)
                keep = ~escaped
                idx, c_re, c_im, x, y = idx[keep], c_re[keep], c_im[keep], x[keep], y[keep]
                if idx.size == 0:
                    break
            z_re = x * x - y * y
            z_im = 2.0 * x * y

    return out.reshape(shape)


# =============================================================================
# Coordinate Mapping
# =============================================================================

def pixel_to_complex(x: float, y: float, view: ViewSnapshot,
                     width: int, height: int) -> tuple:
    """Map pixel (x, y) to its point in the complex plane."""
    half_width = width / 2
    half_height = height / 2
    relative_x = x / (half_width * view.scale) + view.offset_x - 1.0 / view.scale
    relative_y = y / (half_height * view.scale) + view.offset_y - 1.0 / view.scale
    return relative_x, relative_y


def row_bands(height: int, parts: int) -> list:
    """Split [0, height) into at most `parts` contiguous (start, stop) ranges."""
    parts = max(1, min(parts, height))
    base, extra = divmod(height, parts)
    bands = []
    start = 0
    for i in range(parts):
        stop = start + base + (1 if i < extra else 0)
        bands.append((start, stop))
        start = stop
    return bands


# =============================================================================
# Renderer
# =============================================================================

class FractalRenderer:
    """Fills RGBA pixel buffers with a grayscale Mandelbrot render.

    The renderer keeps a thread pool alive between frames. Use it as a
    context manager or call close() when done.
    """

    def __init__(self, workers: Optional[int] = None,
                 escape_radius: float = ESCAPE_RADIUS):
        self.workers = workers or os.cpu_count() or 1
        self.escape_radius = escape_radius
        self._pool = ThreadPoolExecutor(
            max_workers=self.workers, thread_name_prefix="mandelview-render"
        )
        self.last_render_ms = 0.0

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()

    def close(self):
        self._pool.shutdown(wait=True)

    def render(self, viewport, width: int, height: int,
               max_iterations: int, buffer) -> None:
        """Overwrite every pixel of `buffer` with the view's escape times.

        `buffer` is any writable object exposing width * height * 4 bytes
        (bytearray, memoryview, numpy array). Blocks until the whole frame
        has been written.
        """
        if width <= 0 or height <= 0:
            raise ValueError(f"Frame dimensions must be positive, got {width}x{height}")
        frame = np.frombuffer(buffer, dtype=np.uint8)
        expected = width * height * BYTES_PER_PIXEL
        if frame.size != expected:
            raise ValueError(
                f"Pixel buffer holds {frame.size} bytes, expected {expected} "
                f"for {width}x{height} RGBA"
            )
        frame = frame.reshape(height, width, BYTES_PER_PIXEL)

        view = viewport.snapshot() if isinstance(viewport, ViewportState) else viewport

        t0 = time.perf_counter()
        futures = [
            self._pool.submit(self._render_band, frame, view, width, height,
                              max_iterations, start, stop)
            for start, stop in row_bands(height, self.workers)
        ]
        # Every band must finish before a failure in any of them is raised
        wait(futures)
        for future in futures:
            future.result()
        self.last_render_ms = (time.perf_counter() - t0) * 1000
        logger.debug("Rendered %dx%d in %.1fms (scale=%g, offset=(%g, %g))",
                     width, height, self.last_render_ms,
                     view.scale, view.offset_x, view.offset_y)

    def _render_band(self, frame: np.ndarray, view: ViewSnapshot, width: int,
                     height: int, max_iterations: int, start: int, stop: int):
        """Compute rows [start, stop) and write them into their slice of frame."""
        xs = np.arange(width, dtype=np.float64)
        ys = np.arange(start, stop, dtype=np.float64)
        c_re, c_im = pixel_to_complex(xs[np.newaxis, :], ys[:, np.newaxis],
                                      view, width, height)
        c_re, c_im = np.broadcast_arrays(c_re, c_im)

        values = escape_time(c_re, c_im, max_iterations, self.escape_radius)

        band = frame[start:stop]
        band[..., :3] = values[..., np.newaxis]
        band[..., 3] = 255


def render_frame(viewport, width: int, height: int, max_iterations: int,
                 buffer, workers: Optional[int] = None,
                 escape_radius: float = ESCAPE_RADIUS) -> None:
    """Render a single frame with a throwaway renderer."""
    with FractalRenderer(workers=workers, escape_radius=escape_radius) as renderer:
        renderer.render(viewport, width, height, max_iterations, buffer)
