"""Interactive Mandelbrot viewer - pygame front end over the numpy renderer."""

from dataclasses import dataclass
from typing import Iterable, Optional
import logging
import os
import time

import pygame
from PIL import Image

from .config import WINDOW_TITLE, ViewerConfig
from .renderer import FractalRenderer
from .viewport import InputDeltas, apply_input

logger = logging.getLogger(__name__)


# =============================================================================
# Constants
# =============================================================================

FONT_SIZE = 20
PADDING = 8
HELP_OVERLAY_ALPHA = 200
FRAME_RATE = 60
SCREENSHOT_PATTERN = "mandelbrot_{:03d}.png"

HELP_LINES = [
    "Keybindings:",
    "",
    "  Drag           Pan",
    "  Scroll         Zoom",
    "  0              Reset to starting view",
    "  S              Save screenshot",
    "  F              Toggle timing",
    "  H / ?          This help",
    "  Q / ESC        Quit",
]


def log_error(method_name: str, err: BaseException):
    """Log a failed call along with every exception chained beneath it."""
    logger.error("%s() failed: %s", method_name, err)
    source = err.__cause__ or err.__context__
    while source is not None:
        logger.error("  Caused by: %s", source)
        source = source.__cause__ or source.__context__


# =============================================================================
# Event Processing
# =============================================================================

def collect_input(events: Iterable) -> InputDeltas:
    """Fold a batch of pygame events into the deltas they request."""
    scroll = 0.0
    drag_x = drag_y = 0.0
    reset = quit_requested = False

    for event in events:
        if event.type == pygame.QUIT:
            quit_requested = True
        elif event.type == pygame.MOUSEWHEEL:
            scroll += event.y
        elif event.type == pygame.MOUSEMOTION:
            if event.buttons[0]:
                drag_x += event.rel[0]
                drag_y += event.rel[1]
        elif event.type == pygame.KEYDOWN:
            if event.key in (pygame.K_ESCAPE, pygame.K_q):
                quit_requested = True
            elif event.key == pygame.K_0:
                reset = True

    return InputDeltas(
        scroll=scroll, drag=(drag_x, drag_y), reset=reset, quit=quit_requested
    )


@dataclass
class OverlayState:
    """What gets drawn on top of the fractal."""
    show_timing: bool = True
    show_help: bool = False


# =============================================================================
# Main Viewer Class
# =============================================================================

class FractalViewer:
    """Interactive Mandelbrot viewer with a pygame window."""

    def __init__(self, config: Optional[ViewerConfig] = None):
        self.config = config or ViewerConfig()
        self.viewport = self.config.new_viewport()
        self.renderer = FractalRenderer(
            workers=self.config.workers, escape_radius=self.config.escape_radius
        )

        # The presentation layer owns the pixel buffer
        self.buffer = bytearray(self.config.width * self.config.height * 4)

        self.overlay = OverlayState()
        self.needs_render = True
        self.running = True
        self.screenshot_count = 0

        # Timing
        self.frame_times = []
        self.last_fps = 0.0

        # Pygame objects (initialized in run())
        self.screen = None
        self.clock = None
        self.font = None

    def run(self):
        """Main entry point - initialize pygame and run the event loop."""
        self._init_pygame()
        try:
            while self.running:
                self._handle_events()
                self._render_if_needed()
                self.clock.tick(FRAME_RATE)
        finally:
            self.renderer.close()
            self._print_stats()
            pygame.quit()

    def _init_pygame(self):
        pygame.init()
        self.screen = pygame.display.set_mode(
            (self.config.width, self.config.height), pygame.RESIZABLE
        )
        pygame.display.set_caption(WINDOW_TITLE)
        self.clock = pygame.time.Clock()
        self.font = pygame.font.SysFont("monospace", FONT_SIZE)
        logger.info("Window %dx%d, %d render workers",
                    self.config.width, self.config.height, self.renderer.workers)

    def _print_stats(self):
        """Print rendering statistics on exit."""
        if self.frame_times:
            avg_ms = sum(self.frame_times) / len(self.frame_times)
            print(f"\nRendered {len(self.frame_times)} frames")
            print(f"Average frame time: {avg_ms:.1f}ms ({1000/avg_ms:.0f} FPS)")

    # =========================================================================
    # Event Handling
    # =========================================================================

    def _handle_events(self):
        """Process all pending events, then update the view in one step."""
        events = pygame.event.get()
        for event in events:
            if event.type == pygame.KEYDOWN:
                handler = self._key_handlers.get(event.key)
                if handler:
                    handler(self, event)
            elif event.type in (pygame.VIDEORESIZE, pygame.WINDOWRESIZED):
                self.needs_render = True

        deltas = collect_input(events)
        if deltas.quit:
            self.running = False
            return

        if apply_input(self.viewport, deltas, self._window_half_size(),
                       reset_scale=self.config.initial_scale,
                       reset_offset=self.config.initial_offset):
            self.needs_render = True

    @property
    def _key_handlers(self) -> dict:
        """Map keys to handler methods."""
        return {
            pygame.K_f: FractalViewer._toggle_timing,
            pygame.K_h: FractalViewer._toggle_help,
            pygame.K_QUESTION: FractalViewer._toggle_help,
            pygame.K_SLASH: FractalViewer._toggle_help,
            pygame.K_s: FractalViewer._save_screenshot,
        }

    def _toggle_timing(self, event):
        self.overlay.show_timing = not self.overlay.show_timing
        self.needs_render = True

    def _toggle_help(self, event):
        self.overlay.show_help = not self.overlay.show_help
        self.needs_render = True

    def _save_screenshot(self, event):
        filename = SCREENSHOT_PATTERN.format(self.screenshot_count)
        while os.path.exists(filename):
            self.screenshot_count += 1
            filename = SCREENSHOT_PATTERN.format(self.screenshot_count)
        image = Image.frombuffer(
            "RGBA", (self.config.width, self.config.height), bytes(self.buffer),
            "raw", "RGBA", 0, 1,
        )
        image.save(filename)
        print(f"Saved: {filename}")

    def _window_half_size(self) -> tuple:
        if self.screen is None:
            return self.config.half_size
        width, height = self.screen.get_size()
        return width / 2, height / 2

    # =========================================================================
    # Rendering
    # =========================================================================

    def _render_if_needed(self):
        """Render frame if state has changed."""
        if not self.needs_render:
            return

        t0 = time.perf_counter()
        cfg = self.config
        self.renderer.render(self.viewport, cfg.width, cfg.height,
                             self.viewport.max_iterations, self.buffer)

        try:
            self.screen = pygame.display.get_surface()
            window_size = self.screen.get_size()
            surface = pygame.image.frombuffer(self.buffer, (cfg.width, cfg.height), "RGBA")
            if window_size != (cfg.width, cfg.height):
                surface = pygame.transform.scale(surface, window_size)
            self.screen.blit(surface, (0, 0))

            total_ms = (time.perf_counter() - t0) * 1000
            self.last_fps = 1000 / total_ms if total_ms > 0 else 0

            if self.overlay.show_timing:
                self._draw_timing_overlay()
            if self.overlay.show_help:
                self._draw_help_overlay()

            pygame.display.flip()
        except pygame.error as err:
            log_error("pygame.display.flip", err)
            self.running = False
            return

        self.frame_times.append(total_ms)
        self.needs_render = False

    def _draw_timing_overlay(self):
        view = self.viewport
        text = (f"{self.renderer.last_render_ms:.1f}ms | {self.last_fps:.0f} FPS | "
                f"scale: {view.scale:.3e} | "
                f"offset: ({view.center_offset[0]:.6f}, {view.center_offset[1]:.6f})")
        self._draw_text(text, PADDING, PADDING // 2)

    def _draw_text(self, text: str, x: int, y: int, color=(255, 255, 255)) -> int:
        """Render text at position and return new x position."""
        surf = self.font.render(text, True, color, (0, 0, 0))
        self.screen.blit(surf, (x, y))
        return x + surf.get_width()

    def _draw_help_overlay(self):
        line_height = self.font.get_linesize()
        help_width = max(self.font.size(line)[0] for line in HELP_LINES) + PADDING * 2
        help_height = len(HELP_LINES) * line_height + PADDING * 2

        help_bg = pygame.Surface((help_width, help_height))
        help_bg.set_alpha(HELP_OVERLAY_ALPHA)
        help_bg.fill((0, 0, 0))
        help_y = line_height + PADDING
        self.screen.blit(help_bg, (PADDING, help_y))

        for i, line in enumerate(HELP_LINES):
            text_surface = self.font.render(line, True, (255, 255, 255))
            self.screen.blit(text_surface, (PADDING * 2, help_y + PADDING + i * line_height))
