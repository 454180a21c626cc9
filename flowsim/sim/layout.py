from __future__ import annotations

"""
File: flowsim/sim/layout.py
Purpose: Area/actor type tables and grid helpers shared by loaders and planning.
Key responsibilities:
- Fixed type -> label/colour/traversability configuration.
- Area/actor lookup, bounds, and snapping raw coordinates onto the grid.
"""

from dataclasses import dataclass
import math
from typing import Iterable, Literal

from flowsim.settings import settings
from flowsim.sim.entities import Actor, ActorType, Area, AreaType, Point


@dataclass(frozen=True)
class AreaTypeConfig:
    type: AreaType
    label: str
    default_color: str
    traversable: bool


@dataclass(frozen=True)
class ActorTypeConfig:
    type: ActorType
    label: str
    default_color: str
    shape: Literal["square", "circle", "rounded"]


AREA_TYPE_CONFIGS: dict[str, AreaTypeConfig] = {
    cfg.type: cfg
    for cfg in (
        AreaTypeConfig("dock", "Dock", "#e9ecef", True),
        AreaTypeConfig("staging", "Staging", "#d2bab0", True),
        AreaTypeConfig("storage", "Storage", "#a5d8ff", True),
        AreaTypeConfig("picking", "Picking", "#b2f2bb", True),
        AreaTypeConfig("packing", "Packing", "#ffec99", True),
        AreaTypeConfig("obstacle", "Obstacle", "#495057", False),
        AreaTypeConfig("empty", "Empty", "#ffffff", True),
        AreaTypeConfig("custom", "Custom", "#dee2e6", True),
    )
}

ACTOR_TYPE_CONFIGS: dict[str, ActorTypeConfig] = {
    cfg.type: cfg
    for cfg in (
        ActorTypeConfig("pallet", "Pallet", "#d2bab0", "square"),
        ActorTypeConfig("forklift", "Forklift", "#ffc078", "square"),
        ActorTypeConfig("picker", "Picker", "#74c0fc", "circle"),
        ActorTypeConfig("cart", "Cart", "#b197fc", "rounded"),
        ActorTypeConfig("custom", "Custom", "#868e96", "square"),
    )
}


def is_area_type_traversable(area_type: str) -> bool:
    """Unknown types are treated as traversable."""
    cfg = AREA_TYPE_CONFIGS.get(area_type)
    return cfg.traversable if cfg is not None else True


def default_area_color(area_type: str) -> str:
    cfg = AREA_TYPE_CONFIGS.get(area_type)
    return cfg.default_color if cfg is not None else "#dee2e6"


def default_actor_color(actor_type: str) -> str:
    cfg = ACTOR_TYPE_CONFIGS.get(actor_type, ACTOR_TYPE_CONFIGS["pallet"])
    return cfg.default_color


def find_area(areas: Iterable[Area], area_id: str) -> Area | None:
    return next((a for a in areas if a.id == area_id), None)


def find_actor(actors: Iterable[Actor], actor_id: str) -> Actor | None:
    return next((a for a in actors if a.id == actor_id), None)


def calculate_areas_bounds(areas: Iterable[Area]) -> dict[str, float]:
    """Bounding box of every area cell; all zeros when there are no cells."""
    xs: list[float] = []
    ys: list[float] = []
    for area in areas:
        for cell in area.cells:
            xs.append(cell.x)
            ys.append(cell.y)
    if not xs:
        return {"minX": 0, "maxX": 0, "minY": 0, "maxY": 0}
    return {"minX": min(xs), "maxX": max(xs), "minY": min(ys), "maxY": max(ys)}


def snap_to_grid(
    x: float,
    y: float,
    cell_size: int | None = None,
    origin_x: int | None = None,
    origin_y: int | None = None,
) -> Point:
    """Round a raw diagram coordinate to the nearest grid cell corner."""
    size = settings.cell_size if cell_size is None else cell_size
    ox = settings.grid_origin_x if origin_x is None else origin_x
    oy = settings.grid_origin_y if origin_y is None else origin_y
    if size <= 0:
        raise ValueError(f"cell_size must be > 0, got {size}")
    # round half up; builtin round() sends .5 to the even neighbour
    sx = math.floor((x - ox) / size + 0.5)
    sy = math.floor((y - oy) / size + 0.5)
    return Point(x=sx * size + ox, y=sy * size + oy)
