"""Render a puzzle board and draw a solved path over it with OpenCV."""

import os
from typing import List, Optional, Sequence, Tuple

import cv2
import numpy as np

from grid import Coord, ZipGrid
from logger import get_logger

LOGGER = get_logger(__name__)

CELL_SIZE = 60
MARGIN = 12
BACKGROUND = (255, 255, 255)
GRID_LINE = (210, 210, 210)
WALL_COLOR = (20, 20, 20)
BLOCKED_COLOR = (90, 90, 90)
WAYPOINT_FILL = (0, 0, 0)
WAYPOINT_TEXT = (255, 255, 255)


def grid_lines(grid: ZipGrid, cell_size: int = CELL_SIZE, margin: int = MARGIN) -> Tuple[List[int], List[int]]:
    """Pixel coordinates of the ``width + 1`` vertical and ``height + 1`` horizontal lines."""
    xs = [margin + c * cell_size for c in range(grid.width + 1)]
    ys = [margin + r * cell_size for r in range(grid.height + 1)]
    return xs, ys


def cell_centers(xs: Sequence[int], ys: Sequence[int]) -> List[List[Tuple[int, int]]]:
    return [
        [((xs[c] + xs[c + 1]) // 2, (ys[r] + ys[r + 1]) // 2) for c in range(len(xs) - 1)]
        for r in range(len(ys) - 1)
    ]


def render_board(grid: ZipGrid, cell_size: int = CELL_SIZE,
                 margin: int = MARGIN) -> Tuple[np.ndarray, List[int], List[int]]:
    """
    Draw the empty puzzle: thin grid lines, blocked cells, thick walls and
    numbered circles.
    Returns:
      (BGR image, xs, ys) where xs/ys are grid line coordinates.
    """
    xs, ys = grid_lines(grid, cell_size, margin)
    img = np.full((ys[-1] + margin, xs[-1] + margin, 3), BACKGROUND, dtype=np.uint8)

    for cell in grid.cells():
        if cell.blocked:
            cv2.rectangle(img, (xs[cell.col], ys[cell.row]), (xs[cell.col + 1], ys[cell.row + 1]), BLOCKED_COLOR, -1)

    for x in xs:
        cv2.line(img, (x, ys[0]), (x, ys[-1]), GRID_LINE, 1)
    for y in ys:
        cv2.line(img, (xs[0], y), (xs[-1], y), GRID_LINE, 1)

    thickness = max(3, cell_size // 12)
    for (r, c), walls in grid.wall_map().items():
        if walls.bottom:
            cv2.line(img, (xs[c], ys[r + 1]), (xs[c + 1], ys[r + 1]), WALL_COLOR, thickness)
        if walls.left:
            cv2.line(img, (xs[c], ys[r]), (xs[c], ys[r + 1]), WALL_COLOR, thickness)
    cv2.rectangle(img, (xs[0], ys[0]), (xs[-1], ys[-1]), WALL_COLOR, thickness)

    centers = cell_centers(xs, ys)
    radius = max(4, int(0.3 * cell_size))
    scale = cell_size / 80.0
    for number, (r, c) in grid.waypoints.items():
        cx, cy = centers[r][c]
        cv2.circle(img, (cx, cy), radius, WAYPOINT_FILL, -1, lineType=cv2.LINE_AA)
        label = str(number)
        (tw, th), _ = cv2.getTextSize(label, cv2.FONT_HERSHEY_SIMPLEX, scale, 2)
        cv2.putText(img, label, (cx - tw // 2, cy + th // 2), cv2.FONT_HERSHEY_SIMPLEX,
                    scale, WAYPOINT_TEXT, 2, cv2.LINE_AA)
    return img, xs, ys


def draw_solution(image: np.ndarray, xs: Sequence[int], ys: Sequence[int], path: Sequence[Coord],
                  out_path: Optional[str] = None) -> np.ndarray:
    """Draw the path as a green-to-red polyline through cell centres.

    The input image is left untouched; the drawn copy is returned and,
    when ``out_path`` is given, written to disk.
    """
    out = image.copy()
    if path:
        centers = cell_centers(xs, ys)
        pts = [centers[r][c] for (r, c) in path]
        n = len(pts)
        cell = min(xs[1] - xs[0], ys[1] - ys[0]) if len(xs) > 1 and len(ys) > 1 else 10
        width = max(2, cell // 8)
        for i in range(n - 1):
            t = i / max(1, n - 2)
            cv2.line(out, pts[i], pts[i + 1], (0, int(255 * (1 - t)), int(255 * t)), width, cv2.LINE_AA)
        for p in pts:
            cv2.circle(out, p, max(2, width // 2), (255, 255, 255), -1)

    if out_path:
        folder = os.path.dirname(out_path)
        if folder:
            os.makedirs(folder, exist_ok=True)
        if not cv2.imwrite(out_path, out):
            raise OSError(f"Could not write overlay image to {out_path}")
        LOGGER.info("Saved overlay -> %s", out_path)
    return out
