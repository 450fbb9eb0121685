from __future__ import annotations

import os
import sys
from pathlib import Path


PORTABLE_DIRS = [
    "data",
    "exports",
    "logs",
]

HOME_ENV = "PREVENTIVI_HOME"


def get_base_dir() -> Path:
    if getattr(sys, "frozen", False):
        return Path(sys.executable).resolve().parent
    return Path(__file__).resolve().parent


def get_home_dir() -> Path:
    override = os.environ.get(HOME_ENV, "").strip()
    if override:
        return Path(override).expanduser().resolve()
    return get_base_dir()


def get_assets_dir() -> Path:
    return get_base_dir() / "assets"


def ensure_portable_dirs() -> dict[str, Path]:
    home = get_home_dir()
    paths: dict[str, Path] = {}
    for name in PORTABLE_DIRS:
        p = home / name
        p.mkdir(parents=True, exist_ok=True)
        paths[name] = p
    return paths


def get_portable_dir(name: str) -> Path:
    if name not in PORTABLE_DIRS:
        raise ValueError(f"Unknown portable dir: {name}")
    p = get_home_dir() / name
    p.mkdir(parents=True, exist_ok=True)
    return p
