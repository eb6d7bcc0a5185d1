from __future__ import annotations

import argparse
import logging
import random
import sys
from pathlib import Path
from typing import Optional

from .core.controller import CompositionController
from .core.modes import BackgroundMode, BlendMode, LayoutVariant, MovementMode, SpriteMode
from .core.postfx import PostFXChain, parse_effect
from .core.render import RenderConfig
from .core.seeded import generate_seed_string
from .data.assets import ICON_ASSET_IDS
from .data.palettes import PALETTES
from .export import render_frames, write_gif, write_png, write_png_frames
from .logging_utils import LogMode, setup_logging
from .utils.image_ops import BlurBackend
from .utils.seedfile import load_seed, save_seed

log = logging.getLogger(__name__)

PRESETS = {
    "single": "apply_single_tile_preset",
    "nebula": "apply_nebula_preset",
    "minimal": "apply_minimal_grid_preset",
}

# flag dest -> controller setter
NUMBER_FLAGS = {
    "density": "set_scale_percent",
    "scale_base": "set_scale_base",
    "scale_spread": "set_scale_spread",
    "variance": "set_palette_variance",
    "intensity": "set_motion_intensity",
    "speed": "set_motion_speed",
    "opacity": "set_layer_opacity",
    "rotation": "set_rotation_amount",
    "rotation_speed": "set_rotation_speed",
}
CHOICE_FLAGS = {
    "palette": "use_palette",
    "sprite": "set_sprite_mode",
    "icon": "set_icon_asset",
    "movement": "set_movement_mode",
    "blend": "set_blend_mode",
    "background": "set_background_mode",
    "layout": "set_layout_variant",
}


def _add_logging_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default="INFO",
        help="Set log level (default: INFO)",
    )
    parser.add_argument(
        "--log-mode",
        choices=[mode.value for mode in LogMode],
        default=LogMode.NORMAL.value,
        help="Logging preset: quiet suppresses console info, perf forces DEBUG",
    )
    parser.add_argument("--log-file", default=None, help="Path to log file (default: per-user spritefield directory)")
    parser.add_argument(
        "--log-format",
        choices=["plain", "kv"],
        default="plain",
        help="Log format (plain or key=value)",
    )


def _build_logging_parent() -> argparse.ArgumentParser:
    parent = argparse.ArgumentParser(add_help=False)
    _add_logging_args(parent)
    return parent


def _build_scene_parent() -> argparse.ArgumentParser:
    parent = argparse.ArgumentParser(add_help=False)
    g = parent.add_argument_group("scene")
    seed = g.add_mutually_exclusive_group()
    seed.add_argument("--seed", help="Seed string (default: a fresh random seed)")
    seed.add_argument("--seed-file", type=Path, help="Read the seed from a one-line file")
    g.add_argument("--preset", choices=sorted(PRESETS), help="Apply a preset before the other flags")
    g.add_argument("--palette", choices=[p.id for p in PALETTES])
    g.add_argument("--sprite", choices=[m.value for m in SpriteMode])
    g.add_argument("--icon", choices=list(ICON_ASSET_IDS))
    g.add_argument("--movement", choices=[m.value for m in MovementMode])
    g.add_argument("--blend", choices=[m.value for m in BlendMode], help="Manual blend mode (default: auto)")
    g.add_argument("--background", choices=[m.value for m in BackgroundMode])
    g.add_argument("--layout", choices=[m.value for m in LayoutVariant])
    g.add_argument("--density", type=float, help="Tile density percent 0..1000")
    g.add_argument("--scale-base", type=float)
    g.add_argument("--scale-spread", type=float)
    g.add_argument("--variance", type=float, help="Palette variance 0..100")
    g.add_argument("--intensity", type=float, help="Motion intensity 0..100")
    g.add_argument("--speed", type=float, help="Motion speed 0..100")
    g.add_argument("--opacity", type=float, help="Layer opacity 15..100")
    g.add_argument("--rotation", type=float, help="Rotation amount in degrees (enables rotation)")
    g.add_argument("--rotation-speed", type=float)
    g.add_argument("--width", type=int, default=640)
    g.add_argument("--height", type=int, default=640)
    g.add_argument("--transparent", action="store_true", help="Leave the background transparent")

    fx = parent.add_argument_group("post-effects")
    fx.add_argument(
        "--effect",
        action="append",
        default=[],
        metavar="NAME[:k=v,...]",
        help="Post-effect, e.g. glow:intensity=60,radius=30 (repeatable, applied in order)",
    )
    fx.add_argument("--blur", choices=[b.value for b in BlurBackend], help="Blur backend for shadow/glow")
    return parent


def build_parser() -> argparse.ArgumentParser:
    logging_parent = _build_logging_parent()
    scene_parent = _build_scene_parent()
    parser = argparse.ArgumentParser(prog="spritefield", description="spritefield CLI", parents=[logging_parent])
    sub = parser.add_subparsers(dest="command", required=True)

    def add_subparser(name: str, scene: bool = True, **kwargs) -> argparse.ArgumentParser:
        parents = [logging_parent, scene_parent] if scene else [logging_parent]
        return sub.add_parser(name, parents=parents, **kwargs)

    p_render = add_subparser("render", help="Render one frame to PNG")
    p_render.add_argument("--out", type=Path, default=Path("frame.png"))
    p_render.add_argument("--time", type=float, default=0.0, help="Animation time in ideal frames")

    p_export = add_subparser("export", help="Export an animation as GIF or PNG frames")
    p_export.add_argument("--out", type=Path, required=True, help="GIF path, or a directory with --format png")
    p_export.add_argument("--format", choices=["gif", "png"], default="gif")
    p_export.add_argument("--frames", type=int, default=60)
    p_export.add_argument("--fps", type=int, default=30)
    p_export.add_argument("--upscale", type=float, default=1.0)
    p_export.add_argument("--no-loop", action="store_true")

    p_serve = add_subparser("serve", help="Serve a live preview over HTTP")
    p_serve.add_argument("--host", default="127.0.0.1")
    p_serve.add_argument("--port", type=int, default=5000)
    p_serve.add_argument("--open", action="store_true", help="Open a browser tab")

    p_seed = add_subparser("seed", scene=False, help="Generate or read a seed string")
    p_seed.add_argument("--save", type=Path, help="Write a fresh seed to this file")
    p_seed.add_argument("--load", type=Path, help="Print the seed stored in this file")
    return parser


def build_chain(parser: argparse.ArgumentParser, args: argparse.Namespace) -> PostFXChain:
    steps = []
    for text in args.effect:
        try:
            steps.append(parse_effect(text))
        except ValueError as exc:
            parser.error(str(exc))
    backend = BlurBackend(args.blur) if args.blur else None
    return PostFXChain(steps, backend=backend)


def build_controller(parser: argparse.ArgumentParser, args: argparse.Namespace) -> CompositionController:
    if args.width <= 0 or args.height <= 0:
        parser.error("--width and --height must be positive")
    seed = args.seed
    if args.seed_file is not None:
        try:
            seed = load_seed(args.seed_file)
        except (OSError, ValueError) as exc:
            parser.error(f"cannot read seed file: {exc}")
    controller = CompositionController(
        render_config=RenderConfig(width=args.width, height=args.height, transparent_background=args.transparent)
    )
    if args.preset:
        getattr(controller, PRESETS[args.preset])()
    for dest, setter in CHOICE_FLAGS.items():
        value = getattr(args, dest)
        if value is not None:
            getattr(controller, setter)(value)
    for dest, setter in NUMBER_FLAGS.items():
        value = getattr(args, dest)
        if value is not None:
            getattr(controller, setter)(value)
    if seed:
        controller.set_seed(seed)
    # icons load in the background; a still frame should include them
    controller.assets.wait(timeout=5.0)
    return controller


def _cmd_render(parser, args) -> int:
    chain = build_chain(parser, args)
    controller = build_controller(parser, args)
    try:
        im = chain.apply(controller.render_at(args.time))
        write_png(args.out, im)
        print(f"{controller.get_state().seed} -> {args.out}")
    finally:
        controller.destroy()
    return 0


def _cmd_export(parser, args) -> int:
    if args.frames <= 0:
        parser.error("--frames must be positive")
    chain = build_chain(parser, args)
    controller = build_controller(parser, args)
    try:
        frames = render_frames(controller, args.frames, args.fps, chain=chain, upscale=args.upscale)
        if args.format == "gif":
            write_gif(args.out, frames, args.fps, loop=not args.no_loop)
        else:
            write_png_frames(args.out, frames)
        print(f"{controller.get_state().seed} -> {args.out} ({len(frames)} frames)")
    finally:
        controller.destroy()
    return 0


def _cmd_serve(parser, args) -> int:
    from .web import serve

    chain = build_chain(parser, args)
    controller = build_controller(parser, args)
    serve(controller, host=args.host, port=args.port, chain=chain, browser=args.open)
    return 0


def _cmd_seed(parser, args) -> int:
    if args.load is not None:
        try:
            print(load_seed(args.load))
        except (OSError, ValueError) as exc:
            log.error("Cannot read seed: %s", exc)
            return 1
        return 0
    seed = generate_seed_string(random.Random())
    if args.save is not None:
        save_seed(args.save, seed)
    print(seed)
    return 0


COMMANDS = {
    "render": _cmd_render,
    "export": _cmd_export,
    "serve": _cmd_serve,
    "seed": _cmd_seed,
}


def main(argv: Optional[list[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    setup_logging(
        level=args.log_level,
        log_file=args.log_file,
        kv_format=(args.log_format == "kv"),
        log_mode=args.log_mode,
    )
    return COMMANDS[args.command](parser, args)


if __name__ == "__main__":
    sys.exit(main())
