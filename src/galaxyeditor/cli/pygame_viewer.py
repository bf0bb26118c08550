from __future__ import annotations

import argparse
import importlib.metadata
import logging
import math
import os
import platform
import sys
from pathlib import Path
from typing import Any, Sequence

from galaxyeditor.content.io import load_map_json, map_hash, save_map_json
from galaxyeditor.editor.commands import EditorCommands
from galaxyeditor.editor.geometry import Point
from galaxyeditor.editor.gestures import GestureController, KeyEvent, PointerEvent
from galaxyeditor.editor.model import MapModel
from galaxyeditor.editor.render import RGBA, MapRenderer, Renderer
from galaxyeditor.editor.state import EditorState
from galaxyeditor.editor.viewport import ViewportTransform

WINDOW_SIZE = (1280, 800)
BACKGROUND_COLOR = (0, 0, 0)
HUD_COLOR: RGBA = (220, 220, 220, 1.0)
DOUBLE_CLICK_MS = 400
DOUBLE_CLICK_SLOP_PX = 5
FONT_NAME = "arial"
FRAME_RATE = 60

pygame: Any | None = None

# keypad and shifted names that map onto the editor's shortcut keys
KEY_ALIASES = {
    "[+]": "+",
    "[-]": "-",
    "keypad +": "+",
    "keypad -": "-",
    "return": "enter",
}


def dash_segments(start: Point, end: Point, dash: tuple[float, float]) -> list[tuple[Point, Point]]:
    """Split a line into the drawn pieces of an ``(on, off)`` dash pattern."""
    on_length, off_length = dash
    length = math.dist(start, end)
    if length == 0 or on_length <= 0:
        return []
    ux = (end[0] - start[0]) / length
    uy = (end[1] - start[1]) / length
    segments: list[tuple[Point, Point]] = []
    travelled = 0.0
    while travelled < length:
        segment_end = min(travelled + on_length, length)
        segments.append(
            (
                (start[0] + ux * travelled, start[1] + uy * travelled),
                (start[0] + ux * segment_end, start[1] + uy * segment_end),
            )
        )
        travelled = segment_end + off_length
    return segments


class PygameRenderer(Renderer):
    """Draws onto a pygame surface; translucent shapes go through a SRCALPHA scratch surface.

    The surface is sized in device pixels; every primitive is scaled by
    ``pixel_ratio`` on the way in.
    """

    def __init__(self, surface: Any, pygame_module: Any, *, pixel_ratio: float = 1.0) -> None:
        if pixel_ratio <= 0:
            raise ValueError(f"pixel_ratio must be > 0: {pixel_ratio}")
        self.surface = surface
        self.pg = pygame_module
        self.pixel_ratio = pixel_ratio
        self._fonts: dict[tuple[int, bool], Any] = {}

    def _font(self, size: int, bold: bool) -> Any:
        device_size = max(1, round(size * self.pixel_ratio))
        font = self._fonts.get((device_size, bold))
        if font is None:
            font = self.pg.font.SysFont(FONT_NAME, device_size, bold=bold)
            self._fonts[(device_size, bold)] = font
        return font

    def _point(self, point: Point) -> Point:
        return point[0] * self.pixel_ratio, point[1] * self.pixel_ratio

    def _width(self, width: float) -> int:
        return max(1, round(width * self.pixel_ratio))

    def _color(self, color: RGBA) -> tuple[int, int, int, int]:
        r, g, b, alpha = color
        return int(r), int(g), int(b), max(0, min(255, round(alpha * 255)))

    def _draw(self, bounds: tuple[float, float, float, float], color: RGBA, paint: Any) -> None:
        """Run ``paint(surface, dx, dy, rgba)`` directly or through a translucent scratch surface."""
        rgba = self._color(color)
        if rgba[3] >= 255:
            paint(self.surface, 0.0, 0.0, rgba)
            return
        if rgba[3] == 0:
            return
        left, top, right, bottom = bounds
        clip = self.surface.get_rect()
        left = max(math.floor(left), clip.left)
        top = max(math.floor(top), clip.top)
        right = min(math.ceil(right), clip.right)
        bottom = min(math.ceil(bottom), clip.bottom)
        if right <= left or bottom <= top:
            return
        scratch = self.pg.Surface((right - left, bottom - top), self.pg.SRCALPHA)
        paint(scratch, -left, -top, rgba)
        self.surface.blit(scratch, (left, top))

    def begin_frame(self, width: int, height: int) -> None:
        self.surface.fill(BACKGROUND_COLOR)

    def line(self, start: Point, end: Point, color: RGBA, width: float = 1.0, dash: tuple[float, float] | None = None) -> None:
        pieces = dash_segments(start, end, dash) if dash is not None else [(start, end)]
        pieces = [(self._point(a), self._point(b)) for a, b in pieces]
        start, end = self._point(start), self._point(end)
        pixel_width = self._width(width)
        pad = pixel_width + 1
        bounds = (
            min(start[0], end[0]) - pad,
            min(start[1], end[1]) - pad,
            max(start[0], end[0]) + pad,
            max(start[1], end[1]) + pad,
        )

        def paint(target: Any, dx: float, dy: float, rgba: tuple[int, int, int, int]) -> None:
            for (x1, y1), (x2, y2) in pieces:
                self.pg.draw.line(target, rgba, (x1 + dx, y1 + dy), (x2 + dx, y2 + dy), pixel_width)

        self._draw(bounds, color, paint)

    def polygon(self, points: Sequence[Point], *, fill: RGBA | None = None, stroke: RGBA | None = None, width: float = 1.0) -> None:
        if len(points) < 3:
            return
        device_points = [self._point(point) for point in points]
        pad = self._width(width) + 1
        bounds = (
            min(x for x, _ in device_points) - pad,
            min(y for _, y in device_points) - pad,
            max(x for x, _ in device_points) + pad,
            max(y for _, y in device_points) + pad,
        )
        for color, line_width in ((fill, 0), (stroke, self._width(width))):
            if color is None:
                continue

            def paint(target: Any, dx: float, dy: float, rgba: tuple[int, int, int, int], line_width: int = line_width) -> None:
                self.pg.draw.polygon(target, rgba, [(x + dx, y + dy) for x, y in device_points], line_width)

            self._draw(bounds, color, paint)

    def circle(self, center: Point, radius: float, *, fill: RGBA | None = None, stroke: RGBA | None = None, width: float = 1.0) -> None:
        cx, cy = self._point(center)
        device_radius = max(1, round(radius * self.pixel_ratio))
        pad = device_radius + self._width(width) + 1
        bounds = (cx - pad, cy - pad, cx + pad, cy + pad)
        for color, line_width in ((fill, 0), (stroke, self._width(width))):
            if color is None:
                continue

            def paint(target: Any, dx: float, dy: float, rgba: tuple[int, int, int, int], line_width: int = line_width) -> None:
                self.pg.draw.circle(target, rgba, (cx + dx, cy + dy), device_radius, line_width)

            self._draw(bounds, color, paint)

    def rect(self, x: float, y: float, w: float, h: float, *, fill: RGBA | None = None, stroke: RGBA | None = None, width: float = 1.0) -> None:
        x, y = self._point((x, y))
        w, h = w * self.pixel_ratio, h * self.pixel_ratio
        pad = self._width(width) + 1
        bounds = (x - pad, y - pad, x + w + pad, y + h + pad)
        for color, line_width in ((fill, 0), (stroke, self._width(width))):
            if color is None:
                continue

            def paint(target: Any, dx: float, dy: float, rgba: tuple[int, int, int, int], line_width: int = line_width) -> None:
                box = self.pg.Rect(round(x + dx), round(y + dy), max(1, math.ceil(w)), max(1, math.ceil(h)))
                self.pg.draw.rect(target, rgba, box, line_width)

            self._draw(bounds, color, paint)

    def text(self, value: str, x: float, y: float, color: RGBA, *, size: int = 12, bold: bool = False, align: str = "center") -> None:
        font = self._font(size, bold)
        rendered = font.render(value, True, self._color(color)[:3])
        if color[3] < 1.0:
            rendered.set_alpha(self._color(color)[3])
        x, y = self._point((x, y))
        width = rendered.get_width()
        if align == "center":
            left = x - width / 2
        elif align == "right":
            left = x - width
        else:
            left = x
        self.surface.blit(rendered, (round(left), round(y - font.get_ascent())))

    def measure_text(self, value: str, *, size: int = 12, bold: bool = False) -> float:
        return self._font(size, bold).size(value)[0] / self.pixel_ratio


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="galaxy-editor",
        description="Run the galaxy map editor window.",
    )
    parser.add_argument(
        "--map-path",
        help="Optional map JSON to open on startup; an empty map is used when omitted.",
    )
    parser.add_argument(
        "--save-path",
        default="saves/galaxy_map.json",
        help="Map JSON path used by F5 save and F9 reload.",
    )
    parser.add_argument(
        "--headless",
        action="store_true",
        help="Force SDL dummy video driver for CI/testing and exit after drawing one frame.",
    )
    parser.add_argument("--width", type=int, default=WINDOW_SIZE[0], help="Window width in pixels.")
    parser.add_argument("--height", type=int, default=WINDOW_SIZE[1], help="Window height in pixels.")
    parser.add_argument(
        "--pixel-ratio",
        type=float,
        default=1.0,
        help="Device pixels per logical pixel; the window is opened at width and height times this ratio.",
    )
    parser.add_argument("--debug", action="store_true", help="Enable debug logging.")
    return parser


def _env_flag_enabled(var_name: str) -> bool:
    return os.environ.get(var_name, "").strip().lower() in {"1", "true", "yes", "on"}


def _configure_logging(debug: bool) -> None:
    logging.basicConfig(level=logging.DEBUG if debug else logging.INFO, format="[%(levelname)s] %(message)s")


def _print_startup_banner() -> None:
    try:
        pygame_version = importlib.metadata.version("pygame")
    except importlib.metadata.PackageNotFoundError:
        pygame_version = "not-installed"
    print(
        "[galaxyeditor.viewer] startup "
        f"python={platform.python_version()} "
        f"pygame={pygame_version} "
        f"platform={platform.platform()}"
    )
    for name in ("SDL_VIDEODRIVER", "SDL_AUDIODRIVER", "SDL_VIDEO_WINDOW_POS"):
        value = os.environ.get(name, "<unset>")
        print(f"[galaxyeditor.viewer] env {name}={value}")


def _ensure_pygame_imported() -> Any:
    global pygame
    if pygame is None:
        import pygame as pygame_module

        pygame = pygame_module
    return pygame


def _build_editor(map_path: str | None, size: tuple[int, int]) -> EditorCommands:
    model = load_map_json(map_path) if map_path else MapModel()
    state = EditorState(model=model, viewport=ViewportTransform(width=size[0], height=size[1]))
    commands = EditorCommands(state)
    commands.center_on_all()
    return commands


def _save_editor_map(commands: EditorCommands, save_path: str) -> None:
    save_map_json(save_path, commands.model)
    print(
        "[galaxyeditor.viewer] saved "
        f"path={save_path} "
        f"systems={len(commands.model.systems)} "
        f"map_hash={map_hash(commands.model)}"
    )


def _reload_editor_map(commands: EditorCommands, path_value: str) -> None:
    commands.load_model(load_map_json(path_value))
    commands.center_on_all()
    print(
        "[galaxyeditor.viewer] loaded "
        f"path={path_value} "
        f"systems={len(commands.model.systems)} "
        f"map_hash={map_hash(commands.model)}"
    )


def _key_event(pygame_module: Any, event: Any) -> KeyEvent:
    name = pygame_module.key.name(event.key)
    name = KEY_ALIASES.get(name, name)
    if len(name) != 1 and event.unicode and event.unicode.isprintable():
        name = event.unicode
    mods = event.mod
    return KeyEvent(
        key=name,
        shift=bool(mods & pygame_module.KMOD_SHIFT),
        ctrl=bool(mods & (pygame_module.KMOD_CTRL | pygame_module.KMOD_META)),
        alt=bool(mods & pygame_module.KMOD_ALT),
    )


def _pointer_event(pygame_module: Any, pos: tuple[int, int], button: int = 1, *, renderer: Renderer | None = None) -> PointerEvent:
    mods = pygame_module.key.get_mods()
    x, y = renderer.to_logical(*pos) if renderer is not None else (float(pos[0]), float(pos[1]))
    return PointerEvent(
        x=float(x),
        y=float(y),
        button=button,
        shift=bool(mods & pygame_module.KMOD_SHIFT),
        ctrl=bool(mods & (pygame_module.KMOD_CTRL | pygame_module.KMOD_META)),
        alt=bool(mods & pygame_module.KMOD_ALT),
    )


def _hud_lines(commands: EditorCommands, status_message: str | None) -> list[str]:
    state = commands.state
    current = commands.history.current
    lines = [
        f"mode={state.mode} scale={state.viewport.scale:.2f} "
        f"systems={len(state.model.systems)} selected={len(state.selected_keys)}",
        f"history={commands.history.current_index + 1}/{len(commands.history)} "
        f"last={current.description if current is not None else '-'}",
    ]
    if status_message:
        lines.append(status_message)
    return lines


def run_galaxy_editor(
    map_path: str | None = None,
    *,
    headless: bool = False,
    save_path: str = "saves/galaxy_map.json",
    size: tuple[int, int] = WINDOW_SIZE,
    pixel_ratio: float = 1.0,
) -> int:
    if pixel_ratio <= 0:
        print(f"[galaxyeditor.viewer] invalid pixel ratio: {pixel_ratio}", file=sys.stderr)
        return 1

    if headless:
        os.environ["SDL_VIDEODRIVER"] = "dummy"
        print("[galaxyeditor.viewer] warning: headless mode active; no window will open.")

    _print_startup_banner()
    pygame_module = _ensure_pygame_imported()

    try:
        pygame_module.init()
    except Exception as exc:
        print(
            "[galaxyeditor.viewer] failed during pygame.init(): "
            f"{exc}. Hint: verify a working SDL video driver (set SDL_VIDEODRIVER=dummy for headless mode).",
            file=sys.stderr,
        )
        return 1

    try:
        commands = _build_editor(map_path, size)
    except Exception as exc:
        print(f"[galaxyeditor.viewer] failed to load map: {exc}", file=sys.stderr)
        pygame_module.quit()
        return 1

    try:
        pygame_module.display.set_caption("Galaxy Map Editor")
        renderer = PygameRenderer(None, pygame_module, pixel_ratio=pixel_ratio)
        screen = pygame_module.display.set_mode(renderer.device_size(*size), pygame_module.RESIZABLE)
    except Exception as exc:
        print(
            "[galaxyeditor.viewer] failed during pygame.display.set_mode(...): "
            f"{exc}. Hint: GUI sessions require a valid display; in CI/WSL/remote shells use --headless or GALAXYEDITOR_HEADLESS=1.",
            file=sys.stderr,
        )
        pygame_module.quit()
        return 1

    driver_name = pygame_module.display.get_driver()
    print(f"[galaxyeditor.viewer] display initialized: {driver_name}, window size={size} pixel_ratio={pixel_ratio}")

    renderer.surface = screen
    map_renderer = MapRenderer(renderer)
    gestures = GestureController(commands)

    if headless:
        map_renderer.draw(commands.state)
        pygame_module.display.flip()
        pygame_module.quit()
        return 0

    clock = pygame_module.time.Clock()
    status_message: str | None = None
    last_click_ms = -DOUBLE_CLICK_MS
    last_click_pos = (0, 0)
    running = True

    while running:
        clock.tick(FRAME_RATE)
        for event in pygame_module.event.get():
            if event.type == pygame_module.QUIT:
                running = False
            elif event.type == pygame_module.VIDEORESIZE:
                screen = pygame_module.display.set_mode(event.size, pygame_module.RESIZABLE)
                renderer.surface = screen
                logical_x, logical_y = renderer.to_logical(*event.size)
                commands.state.viewport.resize(max(1, round(logical_x)), max(1, round(logical_y)))
            elif event.type == pygame_module.KEYDOWN and event.key == pygame_module.K_F5:
                try:
                    _save_editor_map(commands, save_path)
                    status_message = f"saved {save_path}"
                except Exception as exc:
                    status_message = f"save failed: {exc}"
                    print(f"[galaxyeditor.viewer] save failed path={save_path}: {exc}", file=sys.stderr)
            elif event.type == pygame_module.KEYDOWN and event.key == pygame_module.K_F9:
                reload_path = save_path if Path(save_path).exists() else map_path
                if reload_path:
                    try:
                        _reload_editor_map(commands, reload_path)
                        status_message = f"loaded {reload_path}"
                    except Exception as exc:
                        status_message = f"load failed: {exc}"
                        print(f"[galaxyeditor.viewer] load failed path={reload_path}: {exc}", file=sys.stderr)
            elif event.type == pygame_module.KEYDOWN:
                gestures.key_down(_key_event(pygame_module, event))
            elif event.type == pygame_module.MOUSEWHEEL:
                # pygame reports wheel-up as positive y; the editor zooms in on negative deltas.
                gestures.wheel(renderer.to_logical(*pygame_module.mouse.get_pos()), -event.y)
            elif event.type == pygame_module.MOUSEBUTTONDOWN and event.button in (1, 2, 3):
                pointer = _pointer_event(pygame_module, event.pos, event.button, renderer=renderer)
                now_ms = pygame_module.time.get_ticks()
                is_double = (
                    event.button == 1
                    and now_ms - last_click_ms <= DOUBLE_CLICK_MS
                    and math.dist(event.pos, last_click_pos) <= DOUBLE_CLICK_SLOP_PX
                )
                if event.button == 1:
                    last_click_ms = now_ms
                    last_click_pos = event.pos
                if is_double and gestures.double_click(pointer):
                    last_click_ms = -DOUBLE_CLICK_MS
                    continue
                gestures.pointer_down(pointer)
            elif event.type == pygame_module.MOUSEBUTTONUP and event.button in (1, 2, 3):
                gestures.pointer_up(_pointer_event(pygame_module, event.pos, event.button, renderer=renderer))
            elif event.type == pygame_module.MOUSEMOTION:
                gestures.pointer_move(_pointer_event(pygame_module, event.pos, renderer=renderer))

        map_renderer.draw(commands.state)
        hud_y = float(commands.state.viewport.height - 12)
        for line in reversed(_hud_lines(commands, status_message)):
            renderer.text(line, 8.0, hud_y, HUD_COLOR, size=13, align="left")
            hud_y -= 16
        pygame_module.display.flip()

    pygame_module.quit()
    return 0


def main(argv: list[str] | None = None) -> None:
    parser = _build_parser()
    args = parser.parse_args(argv)
    _configure_logging(args.debug)
    headless = args.headless or _env_flag_enabled("GALAXYEDITOR_HEADLESS")
    raise SystemExit(
        run_galaxy_editor(
            map_path=args.map_path,
            headless=headless,
            save_path=args.save_path,
            size=(args.width, args.height),
            pixel_ratio=args.pixel_ratio,
        )
    )


if __name__ == "__main__":
    main()
