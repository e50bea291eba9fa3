"""Image frames with their keypoints, scale pyramid and search grid."""

from __future__ import annotations

import itertools
import math
from dataclasses import dataclass
from typing import NamedTuple

import numpy as np

from planarslam.geometry import Se2

GRID_COLS = 64
GRID_ROWS = 48


@dataclass
class KeyPoint:
    """A detected image feature."""

    x: float
    y: float
    octave: int = 0
    size: float = 1.0
    angle: float = -1.0
    response: float = 0.0


class ScalePyramid(NamedTuple):
    scale_factors: list[float]
    level_sigma2: list[float]
    inv_level_sigma2: list[float]


def scale_pyramid(levels: int, factor: float) -> ScalePyramid:
    """Per-level scale factors, squared sigmas and their inverses."""
    if levels < 1:
        raise ValueError("a scale pyramid needs at least one level")
    factors = [1.0]
    for _ in range(1, levels):
        factors.append(factors[-1] * factor)
    sigma2 = [1.0] + [f * f for f in factors[1:]]
    return ScalePyramid(factors, sigma2, [1.0 / s for s in sigma2])


def _round_half_away(value: float) -> int:
    return int(math.floor(value + 0.5)) if value >= 0 else -int(math.floor(-value + 0.5))


class Frame:
    """An undistorted image with its features, odometry and feature grid."""

    _next_id = itertools.count()

    def __init__(
        self,
        keypoints,
        image_size,
        odom: Se2 | None = None,
        *,
        descriptors=None,
        image=None,
        scale_levels: int = 1,
        scale_factor: float = 1.2,
        bounds=None,
        grid_cols: int = GRID_COLS,
        grid_rows: int = GRID_ROWS,
        time: float = 0.0,
    ) -> None:
        self.keypoints = list(keypoints)
        self.keypoints_un = list(self.keypoints)
        self.descriptors = descriptors if descriptors is not None else np.zeros((0, 32), np.uint8)
        self.image = image
        self.odom = odom if odom is not None else Se2()
        self.time = time
        self.tcw = np.eye(4)
        self.tcr = np.eye(4)
        self.twb = Se2()
        self.trb = Se2()
        self.grid_cols = grid_cols
        self.grid_rows = grid_rows
        width, height = image_size
        self.min_x, self.min_y, self.max_x, self.max_y = (
            bounds if bounds is not None else (0.0, 0.0, float(width), float(height))
        )
        self.grid_width_inv = grid_cols / (self.max_x - self.min_x)
        self.grid_height_inv = grid_rows / (self.max_y - self.min_y)
        self.grid: list[list[list[int]]] = [[[] for _ in range(grid_rows)] for _ in range(grid_cols)]

        self.scale_levels = scale_levels
        self.scale_factor = scale_factor
        pyramid = scale_pyramid(scale_levels, scale_factor)
        self.scale_factors = pyramid.scale_factors
        self.level_sigma2 = pyramid.level_sigma2
        self.inv_level_sigma2 = pyramid.inv_level_sigma2

        self.id = -1
        if not self.keypoints:
            return
        self.id = next(Frame._next_id)
        for idx, kp in enumerate(self.keypoints_un):
            cell = self.pos_in_grid(kp)
            if cell is not None:
                self.grid[cell[0]][cell[1]].append(idx)

    @property
    def n(self) -> int:
        return len(self.keypoints)

    def pos_in_grid(self, kp: KeyPoint) -> tuple[int, int] | None:
        """Grid cell of a keypoint, or None if it falls outside the grid."""
        pos_x = _round_half_away((kp.x - self.min_x) * self.grid_width_inv)
        pos_y = _round_half_away((kp.y - self.min_y) * self.grid_height_inv)
        if not (0 <= pos_x < self.grid_cols and 0 <= pos_y < self.grid_rows):
            return None
        return pos_x, pos_y

    def features_in_area(self, x, y, r, min_level=-1, max_level=-1) -> list[int]:
        """Indices of keypoints within a square of half-size ``r`` around (x, y)."""
        min_cx = max(0, math.floor((x - self.min_x - r) * self.grid_width_inv))
        if min_cx >= self.grid_cols:
            return []
        max_cx = min(self.grid_cols - 1, math.ceil((x - self.min_x + r) * self.grid_width_inv))
        if max_cx < 0:
            return []
        min_cy = max(0, math.floor((y - self.min_y - r) * self.grid_height_inv))
        if min_cy >= self.grid_rows:
            return []
        max_cy = min(self.grid_rows - 1, math.ceil((y - self.min_y + r) * self.grid_height_inv))
        if max_cy < 0:
            return []

        check_levels = not (min_level == -1 and max_level == -1)
        same_level = check_levels and min_level == max_level

        found = []
        for ix in range(min_cx, max_cx + 1):
            for iy in range(min_cy, max_cy + 1):
                for idx in self.grid[ix][iy]:
                    kp = self.keypoints_un[idx]
                    if same_level:
                        if kp.octave != min_level:
                            continue
                    elif check_levels and not (min_level <= kp.octave <= max_level):
                        continue
                    if abs(kp.x - x) > r or abs(kp.y - y) > r:
                        continue
                    found.append(idx)
        return found

    def in_img_bound(self, x, y) -> bool:
        return self.min_x <= x <= self.max_x and self.min_y <= y <= self.max_y