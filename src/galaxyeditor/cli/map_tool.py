from __future__ import annotations

import argparse
import json
import logging
from collections import Counter
from pathlib import Path
from typing import Sequence

from galaxyeditor.content.io import load_map_json, map_hash, save_map_json
from galaxyeditor.editor.falloff import FALLOFF_CURVES, FALLOFF_FIBONACCI, apply_richness_falloff
from galaxyeditor.editor.render import LAYER_ORDER, MapRenderer, RecordingRenderer
from galaxyeditor.editor.state import EditorState
from galaxyeditor.editor.statistics import faction_statistics, region_statistics
from galaxyeditor.editor.viewport import ViewportTransform


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="galaxy-map-tool",
        description="Inspect and batch-edit galaxy map JSON files.",
    )
    parser.add_argument("--debug", action="store_true", help="Enable debug logging.")
    subparsers = parser.add_subparsers(dest="command", required=True)

    validate = subparsers.add_parser("validate", help="Load a map, report its size, hash and dangling links.")
    validate.add_argument("map_path", help="Path to map JSON")

    stats = subparsers.add_parser("stats", help="Print faction and region statistics.")
    stats.add_argument("map_path", help="Path to map JSON")
    stats.add_argument("--json", action="store_true", help="Print statistics as JSON")

    falloff = subparsers.add_parser("falloff", help="Rewrite resource richness by distance from the origin.")
    falloff.add_argument("map_path", help="Path to map JSON")
    falloff.add_argument("output_path", help="Output path for the rewritten map JSON")
    falloff.add_argument("--min", dest="min_richness", type=float, default=1.0, help="Richness at the farthest system")
    falloff.add_argument("--max", dest="max_richness", type=float, default=10.0, help="Richness at the origin")
    falloff.add_argument("--curve", choices=FALLOFF_CURVES, default=FALLOFF_FIBONACCI, help="Falloff curve")
    falloff.add_argument(
        "--asteroid-multiplier",
        type=float,
        default=1.0,
        help="Multiplier applied on asteroid-belt planets",
    )
    falloff.add_argument("--force", action="store_true", help="Overwrite output path if it already exists")

    summary = subparsers.add_parser("render-summary", help="Draw one frame offscreen and count primitives per layer.")
    summary.add_argument("map_path", help="Path to map JSON")
    summary.add_argument("--width", type=int, default=800)
    summary.add_argument("--height", type=int, default=600)
    summary.add_argument("--heatmap", action="store_true", help="Enable the heatmap overlay")
    summary.add_argument("--faction-area", action="store_true", help="Enable faction areas and their table")
    return parser


def _run_validate(args: argparse.Namespace) -> None:
    model = load_map_json(args.map_path)
    undrawable = sum(1 for system in model.systems if system.coordinates is None)
    print(
        "ok "
        f"map_path={args.map_path} "
        f"systems={len(model.systems)} "
        f"regions={len(model.regions)} "
        f"links={len(model.link_pairs())} "
        f"dangling_links={len(model.dangling_links())} "
        f"undrawable={undrawable} "
        f"map_hash={map_hash(model)}"
    )


def _run_stats(args: argparse.Namespace) -> None:
    model = load_map_json(args.map_path)
    factions = faction_statistics(model)
    regions = [region_statistics(model, region.region_id) for region in model.regions]
    if args.json:
        payload = {
            "factions": {name: row.to_dict() for name, row in factions.items()},
            "regions": [row.to_dict() for row in regions],
        }
        print(json.dumps(payload, indent=2, sort_keys=True))
        return
    for name, row in factions.items():
        print(
            f"faction {name} "
            f"systems={row.systems} core={row.core_systems} planets={row.planets} "
            f"stars={row.stars} resources={row.resources} territory={row.territory:.0f}"
        )
    for row in regions:
        print(
            f"region {row.region_id} "
            f"systems={row.systems} core={row.core_systems} king={row.king_systems} "
            f"area={row.area:.2f} avg_distance={row.average_distance:.2f}"
        )


def _run_falloff(args: argparse.Namespace) -> None:
    output_path = Path(args.output_path)
    if output_path.exists() and not args.force:
        raise ValueError(f"output exists: {output_path} (use --force to overwrite)")
    model = load_map_json(args.map_path)
    changed = apply_richness_falloff(
        model.systems,
        args.min_richness,
        args.max_richness,
        args.curve,
        asteroid_multiplier=args.asteroid_multiplier,
    )
    save_map_json(output_path, model)
    print(f"ok output_path={output_path} curve={args.curve} changed={changed} map_hash={map_hash(model)}")


def _run_render_summary(args: argparse.Namespace) -> None:
    model = load_map_json(args.map_path)
    state = EditorState(model=model, viewport=ViewportTransform(width=args.width, height=args.height))
    state.show_heatmap = args.heatmap
    state.show_faction_area = args.faction_area
    state.viewport.center_on_points(
        [system.coordinates for system in model.systems if system.coordinates is not None]
    )
    recorder = RecordingRenderer()
    MapRenderer(recorder).draw(state)
    counts = Counter(layer for layer, _, _ in recorder.calls)
    for layer in LAYER_ORDER:
        print(f"layer={layer} ops={counts.get(layer, 0)}")
    print(f"ok map_path={args.map_path} scale={state.viewport.scale:.3f} ops={len(recorder.calls)}")


COMMANDS = {
    "validate": _run_validate,
    "stats": _run_stats,
    "falloff": _run_falloff,
    "render-summary": _run_render_summary,
}


def main(argv: Sequence[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.debug else logging.WARNING, format="[%(levelname)s] %(message)s")

    try:
        if not Path(args.map_path).exists():
            raise ValueError(f"input map_path does not exist: {args.map_path}")
        COMMANDS[args.command](args)
    except Exception as exc:
        print(f"error: {exc}")
        return 1

    return 0


if __name__ == "__main__":
    raise SystemExit(main())
