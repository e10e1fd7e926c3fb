from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True, slots=True)
class OutputLayout:
    root: Path
    binomix_dir: Path
    histogram_dir: Path


def create_output_layout(outdir: Path) -> OutputLayout:
    root = outdir
    binomix_dir = root / "binomix"
    histogram_dir = root / "histogram"

    for path in (root, binomix_dir, histogram_dir):
        path.mkdir(parents=True, exist_ok=True)

    return OutputLayout(
        root=root,
        binomix_dir=binomix_dir,
        histogram_dir=histogram_dir,
    )
