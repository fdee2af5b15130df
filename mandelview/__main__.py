import argparse
import logging

from PIL import Image

from .config import (
    DEFAULT_SCALE,
    ESCAPE_RADIUS,
    HEIGHT,
    MAX_ITERATIONS,
    WIDTH,
    ZOOM_IN_FACTOR,
    ZOOM_OUT_FACTOR,
    ViewerConfig,
)
from .renderer import render_frame


def build_parser():
    parser = argparse.ArgumentParser(
        prog="mandelview",
        description="Interactive Mandelbrot viewer: drag to pan, scroll to zoom",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    parser.add_argument(
        "--width",
        type=int,
        default=WIDTH,
        help="width of the pixel buffer",
    )
    parser.add_argument(
        "--height",
        type=int,
        default=HEIGHT,
        help="height of the pixel buffer",
    )
    parser.add_argument(
        "--max-iterations",
        type=int,
        default=MAX_ITERATIONS,
        help="the max escape-time iterations per pixel",
    )
    parser.add_argument(
        "--zoom-in-factor",
        type=float,
        default=ZOOM_IN_FACTOR,
        help="scale multiplier applied when scrolling up",
    )
    parser.add_argument(
        "--zoom-out-factor",
        type=float,
        default=ZOOM_OUT_FACTOR,
        help="scale multiplier applied when scrolling down",
    )
    parser.add_argument(
        "--escape-radius",
        type=float,
        default=ESCAPE_RADIUS,
        help="magnitude beyond which a point counts as escaped",
    )
    parser.add_argument(
        "--workers",
        type=int,
        default=None,
        help="render threads (defaults to the number of CPUs)",
    )
    parser.add_argument(
        "--scale",
        type=float,
        default=DEFAULT_SCALE,
        help="initial zoom scale; larger values zoom in",
    )
    parser.add_argument(
        "--offset",
        type=float,
        nargs=2,
        default=[0.0, 0.0],
        metavar=("X", "Y"),
        help="initial pan offset in plane units",
    )
    parser.add_argument(
        "-o",
        "--out-file",
        default=None,
        help="render a single frame to this image file instead of opening a window",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="enable debug logging",
    )
    return parser


def render_to_file(config: ViewerConfig, out_file: str):
    """Render one frame headlessly and write it with Pillow."""
    viewport = config.new_viewport()
    buffer = bytearray(config.width * config.height * 4)
    render_frame(viewport, config.width, config.height, config.max_iterations,
                 buffer, workers=config.workers, escape_radius=config.escape_radius)
    image = Image.frombuffer("RGBA", (config.width, config.height), bytes(buffer),
                             "raw", "RGBA", 0, 1)
    image.save(out_file)


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    try:
        config = ViewerConfig(
            width=args.width,
            height=args.height,
            max_iterations=args.max_iterations,
            zoom_in_factor=args.zoom_in_factor,
            zoom_out_factor=args.zoom_out_factor,
            escape_radius=args.escape_radius,
            initial_scale=args.scale,
            initial_offset=tuple(args.offset),
            workers=args.workers,
        )
    except ValueError as err:
        parser.error(str(err))

    if args.out_file:
        print(f"Mandelbrot {config.width}x{config.height}")
        print(f"scale: {config.initial_scale}")
        print(f"offset: {config.initial_offset}")
        print(f"max_iterations: {config.max_iterations}")
        render_to_file(config, args.out_file)
        print(f"Saved: {args.out_file}")
        return

    # Deferred so headless renders never touch the display stack
    from .viewer import FractalViewer

    viewer = FractalViewer(config)
    viewer.run()


if __name__ == "__main__":
    main()
