"""Command line entry point: load a puzzle document, solve it, report the path."""

import argparse
import json
import logging
from typing import List, Optional

from exceptions import PuzzleFormatError
from logger import configure_logging
from overlay import draw_solution, render_board
from puzzle_io import format_grid, format_steps, load_puzzle, path_to_cell_indices
from solver import DEFAULT_NODE_BUDGET, solve, validate_path

# --- CONFIG ---
PUZZLE_PATH = "assets/puzzle.json"
NODE_BUDGET = DEFAULT_NODE_BUDGET  # expansions before the search gives up
OUTPUT_IMAGE = None                # e.g. "solution.png" to save an overlay
STEP_PREVIEW = 20                  # steps listed after a solve


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Solve a Zip puzzle from a JSON grid and wall map")
    parser.add_argument("puzzle", nargs="?", default=PUZZLE_PATH, help="Path to the puzzle JSON document")
    parser.add_argument("--node-budget", type=int, default=NODE_BUDGET, help="Maximum search expansions")
    parser.add_argument("--timeout", type=float, default=None, help="Give up after this many seconds")
    parser.add_argument("--overlay", default=OUTPUT_IMAGE, help="Write the solved board to this PNG")
    parser.add_argument("--steps", type=int, default=STEP_PREVIEW, help="Number of path steps to list (0 for all)")
    parser.add_argument("--json", action="store_true", help="Print the result as JSON instead of text")
    parser.add_argument("--log-level", default="WARNING", help="Logging level (DEBUG, INFO, WARNING, ERROR)")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(getattr(logging, args.log_level.upper(), logging.WARNING))

    # Step 1: grid + walls from the extractor's document
    try:
        puzzle = load_puzzle(args.puzzle)
    except (FileNotFoundError, PuzzleFormatError) as exc:
        print(f"Cannot load puzzle: {exc}")
        return 2
    grid = puzzle.grid

    # Step 2: search
    result = solve(grid, max_number=puzzle.max_number, node_budget=args.node_budget, timeout=args.timeout)

    if args.json:
        payload = {
            "status": result.status.value,
            "message": result.message,
            "path": [list(pos) for pos in result.path] if result.path else None,
            "cell_indices": path_to_cell_indices(result.path, grid.width) if result.path else None,
            "nodes_expanded": result.nodes_expanded,
            "nodes_pruned": result.nodes_pruned,
            "elapsed": round(result.elapsed, 4),
        }
        print(json.dumps(payload, indent=2))
    else:
        print(f"Grid: {grid.height}x{grid.width}, numbers 1 to {grid.max_number}, walls: {len(grid.wall_map())}")
        print(format_grid(grid))

    if not result.success:
        if not args.json:
            print(f"No valid path found ({result.status.value}): {result.message}")
            print(f"  Attempts: {result.nodes_expanded:,}  Pruned: {result.nodes_pruned:,}")
        return 1

    problems = validate_path(grid, result.path)
    if problems:
        # a solved result must always pass validation
        raise RuntimeError("Solver returned an invalid path: " + "; ".join(problems))

    if not args.json:
        print(f"Solved in {result.elapsed * 1000:.0f}ms")
        print(f"  Attempts: {result.nodes_expanded:,}  Pruned: {result.nodes_pruned:,}")
        print(f"  Path length: {len(result.path)}/{result.passable_cells} cells")
        print(format_steps(grid, result.path, limit=args.steps or None))

    # Step 3: overlay
    if args.overlay:
        board, xs, ys = render_board(grid)
        draw_solution(board, xs, ys, result.path, out_path=args.overlay)
        if not args.json:
            print(f"Saved overlay -> {args.overlay}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
