from __future__ import annotations

"""
File: flowsim/sim/geometry.py
Purpose: Manhattan path construction and time interpolation along paths.
Key responsibilities:
- Build horizontal-then-vertical L paths between cells.
- Measure paths and convert length to playback duration.
- Map a progress fraction to a position on a multi-segment path.
"""

from typing import Sequence

from flowsim.settings import settings
from flowsim.sim.entities import Point


def distance(a: Point, b: Point) -> float:
    """Manhattan distance helper."""
    return abs(b.x - a.x) + abs(b.y - a.y)


def lerp(start: float, end: float, t: float) -> float:
    return start + (end - start) * t


def generate_path(start: Point, end: Point) -> list[Point]:
    """Return the L-shaped path from start to end, moving horizontally first."""
    if start == end:
        return [start]
    if start.x == end.x or start.y == end.y:
        return [start, end]
    return [start, Point(x=end.x, y=start.y), end]


def chain_path(stops: Sequence[Point]) -> list[Point]:
    """Join L paths through an ordered list of stops into one path."""
    if not stops:
        return []
    path: list[Point] = [stops[0]]
    for nxt in stops[1:]:
        leg = generate_path(path[-1], nxt)
        path.extend(leg[1:])
    return path


def path_length(path: Sequence[Point]) -> float:
    """Sum of Manhattan segment lengths."""
    return sum(distance(path[i], path[i + 1]) for i in range(len(path) - 1))


def path_duration(
    path: Sequence[Point],
    speed_multiplier: float = 1.0,
    base_speed_px_s: float | None = None,
) -> float:
    """Return the time in ms needed to travel the path at the given playback speed."""
    if speed_multiplier <= 0:
        raise ValueError(f"speed_multiplier must be > 0, got {speed_multiplier}")
    base_speed = settings.base_speed_px_s if base_speed_px_s is None else base_speed_px_s
    if base_speed <= 0:
        raise ValueError(f"base speed must be > 0, got {base_speed}")
    return (path_length(path) / base_speed) * 1000.0 / speed_multiplier


def position_along_path(path: Sequence[Point], progress: float) -> Point:
    """Interpolate the point reached after travelling `progress` of the path length."""
    if not path:
        raise ValueError("path must contain at least one point")
    if len(path) == 1 or progress <= 0:
        return path[0]
    if progress >= 1:
        return path[-1]

    segment_lengths = [distance(path[i], path[i + 1]) for i in range(len(path) - 1)]
    total = sum(segment_lengths)
    if total == 0:
        return path[0]

    target = progress * total
    travelled = 0.0
    for idx, seg_len in enumerate(segment_lengths):
        if travelled + seg_len >= target:
            t = (target - travelled) / seg_len if seg_len > 0 else 0.0
            a, b = path[idx], path[idx + 1]
            return Point(x=lerp(a.x, b.x, t), y=lerp(a.y, b.y, t))
        travelled += seg_len
    return path[-1]
