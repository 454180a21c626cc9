"""
File: flowsim/settings.py
Purpose: Environment-backed configuration for the flow simulator.
Key responsibilities:
- Define grid geometry, playback speed, and publish cadence.
- Define scale presets for generated scenarios.
"""

from dataclasses import dataclass
import os


DEFAULT_SCALE_MAP = {
    "mini": {"actors": 3, "docks": 4},
    "small": {"actors": 8, "docks": 10},
    "demo": {"actors": 15, "docks": 20},
    "large": {"actors": 30, "docks": 40},
}


def _int_env(name: str, default: int = 0) -> int:
    """Parse an integer env var with a fallback."""
    raw = os.getenv(name, "")
    if raw == "":
        return default
    return int(raw)


def _bool_env(name: str, default: bool) -> bool:
    """Parse a boolean env var (1/true/yes) with a fallback."""
    raw = os.getenv(name, "")
    if raw == "":
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def _build_scale_map() -> dict[str, dict[str, int]]:
    """Return the scale map with optional global overrides."""
    scale_map = {key: value.copy() for key, value in DEFAULT_SCALE_MAP.items()}
    actors = _int_env("FLEET_ACTORS", 0)
    docks = _int_env("FLEET_DOCKS", 0)
    if actors > 0 and docks > 0:
        for key in scale_map:
            scale_map[key] = {"actors": actors, "docks": docks}
    return scale_map


SCALE_MAP = _build_scale_map()


@dataclass(frozen=True)
class Settings:
    """Simulator configuration parsed from environment."""
    cell_size: int = int(os.getenv("CELL_SIZE", "40"))
    grid_origin_x: int = int(os.getenv("GRID_ORIGIN_X", "400"))
    grid_origin_y: int = int(os.getenv("GRID_ORIGIN_Y", "-60"))
    base_speed_px_s: float = float(os.getenv("BASE_SPEED_PX_S", "200"))
    publish_interval_ms: float = float(os.getenv("PUBLISH_INTERVAL_MS", "33"))
    frame_hz: int = int(os.getenv("FRAME_HZ", "60"))
    speed_multiplier: float = float(os.getenv("SPEED_MULTIPLIER", "1.0"))
    playback_mode: str = os.getenv("PLAYBACK_MODE", "auto")
    scenario_path: str = os.getenv("SCENARIO_PATH", "")
    fleet_seed: int = int(os.getenv("FLEET_SEED", "42"))
    fleet_scale: str = os.getenv("FLEET_SCALE", "demo")
    realtime: bool = _bool_env("SIM_REALTIME", True)
    viewer_host: str = os.getenv("VIEWER_HOST", "0.0.0.0")
    viewer_port: int = int(os.getenv("VIEWER_PORT", "8000"))


settings = Settings()
