from __future__ import annotations

"""
File: flowsim/sim/world.py
Purpose: Deterministic warehouse scenario generation.
Key responsibilities:
- Use a seeded RNG to place pallets inside a staging block.
- Lay out dock cells, an obstacle wall, and a pallets-to-docks flow.
- Compute a scenario hash for comparability across runs.
"""

from dataclasses import asdict
import hashlib
import json
import math
import random

from flowsim.settings import SCALE_MAP, settings
from flowsim.sim.entities import Actor, Area, Flow, ObjectToDestinationFlow, Point
from flowsim.sim.layout import default_actor_color, default_area_color


def generate_scenario(
    seed: int,
    scale: str,
    columns: int = 20,
    rows: int = 14,
    with_flow: bool = True,
    cell_size: int | None = None,
) -> tuple[list[Area], list[Actor], list[Flow], str]:
    """Generate areas/actors/flows deterministically and return a scenario hash."""
    if scale not in SCALE_MAP:
        raise ValueError(f"invalid scale: {scale}")
    if columns <= 0 or rows <= 0:
        raise ValueError("columns and rows must be > 0")

    size = settings.cell_size if cell_size is None else cell_size
    cfg = SCALE_MAP[scale]
    actors_count = cfg["actors"]
    docks_count = cfg["docks"]

    staging_rows = math.ceil(actors_count * 2 / columns)
    dock_rows = math.ceil(docks_count / columns)
    if staging_rows + dock_rows + 2 > rows:
        raise ValueError(f"grid {columns}x{rows} too small for scale {scale}")

    rng = random.Random(seed)

    def cell(col: int, row: int) -> Point:
        return Point(x=col * size, y=row * size)

    staging_cells = [cell(c, r) for r in range(staging_rows) for c in range(columns)]
    first_dock_row = rows - dock_rows
    dock_cells = [
        cell(idx % columns, first_dock_row + idx // columns) for idx in range(docks_count)
    ]
    wall_col = columns // 2
    wall_cells = [cell(wall_col, r) for r in range(staging_rows + 1, first_dock_row - 1)]

    areas = [
        Area(id="area_staging", type="staging", label="Staging", color=default_area_color("staging"), cells=staging_cells),
        Area(id="area_dock", type="dock", label="Dock", color=default_area_color("dock"), cells=dock_cells),
    ]
    if wall_cells:
        areas.append(
            Area(id="area_wall", type="obstacle", label="Obstacle", color=default_area_color("obstacle"), cells=wall_cells)
        )

    picked = rng.sample(staging_cells, actors_count)
    actors = [
        Actor(
            id=f"pallet-{idx}",
            type="pallet",
            color=default_actor_color("pallet"),
            start_position=position,
            label=f"P{idx}",
        )
        for idx, position in enumerate(picked, start=1)
    ]

    flows: list[Flow] = []
    if with_flow:
        flows.append(
            ObjectToDestinationFlow(
                id="flow-1",
                name="Pallets to docks",
                actor_ids=[a.id for a in actors],
                destination_area_id="area_dock",
                assignment="auto-nearest",
            )
        )

    payload = {
        "seed": seed,
        "scale": scale,
        "columns": columns,
        "rows": rows,
        "areas": [asdict(a) for a in areas],
        "actors": [asdict(a) for a in actors],
        "flows": [{"flow_type": f.flow_type, **asdict(f)} for f in flows],
    }
    encoded = json.dumps(payload, sort_keys=True, separators=(",", ":")).encode("utf-8")
    scenario_hash = hashlib.sha256(encoded).hexdigest()
    return areas, actors, flows, scenario_hash
