"""Lightweight loader for engine configuration values."""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional, Union

logger = logging.getLogger(__name__)

_DEFAULT_PATH = Path(__file__).resolve().parent.parent / "config" / "engine.json"
_CONFIG_PATH: Path = _DEFAULT_PATH
_CONFIG_DATA: Optional[Dict[str, Any]] = None


def _load(path: Path) -> Dict[str, Any]:
    try:
        with path.open("r", encoding="utf-8") as handle:
            data = json.load(handle)
    except FileNotFoundError:
        return {}
    except (OSError, ValueError) as exc:
        logger.warning("failed to read config %s: %s; using defaults", path, exc)
        return {}
    if not isinstance(data, dict):
        logger.warning("config %s is not a JSON object; using defaults", path)
        return {}
    return data


def _ensure_loaded() -> Dict[str, Any]:
    global _CONFIG_DATA
    if _CONFIG_DATA is None:
        _CONFIG_DATA = _load(_CONFIG_PATH)
    return _CONFIG_DATA


def load(path: Union[str, Path, None] = None) -> Dict[str, Any]:
    """(Re)load configuration, optionally from a different file."""
    global _CONFIG_PATH, _CONFIG_DATA
    _CONFIG_PATH = Path(path) if path is not None else _DEFAULT_PATH
    _CONFIG_DATA = _load(_CONFIG_PATH)
    return _CONFIG_DATA


def get(path: str, default: Any = None) -> Any:
    """Return a config value using dotted paths, or default when missing."""
    data = _ensure_loaded()
    if not path:
        return data

    current: Any = data
    for segment in path.split('.'):
        if isinstance(current, dict) and segment in current:
            current = current[segment]
        else:
            return default
    return current


@dataclass(frozen=True)
class WorldSettings:
    """Tunables for terrain generation and meshing."""

    seed: int = 0xDEADBEEF
    chunk_size: int = 32
    amplitude: float = 24.0
    spawn_radius: int = 2
    noise_layers: int = 3
    noise_scale: float = 32.0
    workers: int = 4

    def __post_init__(self) -> None:
        if self.chunk_size <= 0:
            raise ValueError("chunk_size must be positive")
        if self.noise_layers <= 0:
            raise ValueError("noise_layers must be at least 1")
        if self.noise_scale <= 0.0:
            raise ValueError("noise_scale must be positive")
        if self.workers <= 0:
            raise ValueError("workers must be positive")

    @classmethod
    def from_config(cls, **overrides: Any) -> "WorldSettings":
        defaults = cls()
        values = {
            "seed": int(get("world.seed", defaults.seed)),
            "chunk_size": int(get("world.chunk_size", defaults.chunk_size)),
            "amplitude": float(get("world.amplitude", defaults.amplitude)),
            "spawn_radius": int(get("world.spawn_radius", defaults.spawn_radius)),
            "noise_layers": int(get("noise.layers", defaults.noise_layers)),
            "noise_scale": float(get("noise.scale", defaults.noise_scale)),
            "workers": int(get("compute.workers", defaults.workers)),
        }
        values.update(overrides)
        return cls(**values)
