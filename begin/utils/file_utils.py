import os
from pathlib import Path


def ensure_dir(path: str | Path) -> Path:
    p = Path(path)
    p.mkdir(parents=True, exist_ok=True)
    return p


def relative_to_reference(path: str | Path, reference: str | Path) -> str:
    return os.path.relpath(os.fspath(path), os.fspath(reference))
