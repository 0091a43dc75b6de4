from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True)
class Paths:
    package_root: Path
    data_dir: Path
    schema_dir: Path


def get_paths() -> Paths:
    # src/foodchain/paths.py -> package data lives beside this module
    package_root = Path(__file__).resolve().parent
    data_dir = package_root / "data"
    schema_dir = data_dir / "schemas"
    return Paths(
        package_root=package_root,
        data_dir=data_dir,
        schema_dir=schema_dir,
    )
