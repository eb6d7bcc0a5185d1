from __future__ import annotations

from pathlib import Path


def save_seed(path: str | Path, seed: str) -> Path:
    """Write ``seed`` as a single line."""
    seed = seed.strip()
    if not seed or "\n" in seed:
        raise ValueError(f"Invalid seed {seed!r}")
    path = Path(path)
    path.write_text(seed + "\n", encoding="utf-8")
    return path


def load_seed(path: str | Path) -> str:
    """Return the first non-empty line of a seed file."""
    for line in Path(path).read_text(encoding="utf-8").splitlines():
        if line.strip():
            return line.strip()
    raise ValueError(f"No seed in {path}")
